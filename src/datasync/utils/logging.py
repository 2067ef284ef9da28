"""
Logging configuration for datasync.

Console output goes through rich's RichHandler (or a plain stream handler),
with an optional parseable file log for service deployments.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "datasync"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


class ConsoleFormatter(logging.Formatter):
    """Plain console format: ``level: timestamp - msg``, with file:line for errors."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname}: {self.formatTime(record)} - {record.getMessage()}"
        if record.levelno >= logging.ERROR and record.pathname:
            base = (
                f"{record.levelname}: {self.formatTime(record)} - "
                f"{Path(record.pathname).name}:{record.lineno} - {record.getMessage()}"
            )
        return base


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for datasync.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        format_string: Optional custom format string for the plain console handler
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite
        console: Optional Rich Console instance to log to (default: stderr console)
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Whether to use RichHandler for console output (default: True)

    Returns:
        The ``datasync`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)

    # Only clear handlers from this specific logger, not root or child loggers
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich:
            handler: logging.Handler = RichHandler(
                console=console or Console(stderr=True),
                level=level_int,
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
                omit_repeated_times=False,
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level_int)
            handler.setFormatter(logging.Formatter(format_string) if format_string else ConsoleFormatter())
        logger.addHandler(handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything the logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: dict[str, Any], base_dir: Path | None = None) -> logging.Logger:
    """
    Setup logging from the ``logging:`` section of a datasync config.

    Recognised keys: ``level``, ``file``, ``file_mode``, ``format``,
    ``console_enabled`` and ``console_type`` (``rich`` or ``plain``).
    Relative log file paths are resolved against ``base_dir``.
    """
    logging_config = config.get("logging") or {}

    level = logging_config.get("level", logging.INFO)
    file_mode = logging_config.get("file_mode", "a")
    format_string = logging_config.get("format")
    console_enabled = logging_config.get("console_enabled", True)
    console_type = logging_config.get("console_type", "rich")

    log_file = logging_config.get("file") or logging_config.get("log_file")
    if log_file and base_dir:
        log_file = Path(log_file)
        if not log_file.is_absolute():
            log_file = base_dir / log_file

    return setup_logging(
        level=level,
        log_file=log_file,
        format_string=format_string,
        file_mode=file_mode,
        console_enabled=console_enabled,
        use_rich=console_type == "rich",
    )


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a logger in the ``datasync`` hierarchy.

    Args:
        name: Logger name (default: "datasync")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
