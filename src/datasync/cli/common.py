"""
Shared CLI plumbing: config file option, config loading and logging setup.
"""

from pathlib import Path

import typer

from datasync.config import DEFAULT_CONFIG_FILE, Config, load_config
from datasync.exceptions import ConfigurationError
from datasync.utils.logging import setup_logging_from_config

CONFIG_OPTION = typer.Option(
    Path(DEFAULT_CONFIG_FILE),
    "--config",
    "-c",
    envvar="DATASYNC_CONFIG",
    help="Task configuration file (JSON or YAML)",
)
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
LOG_FILE_OPTION = typer.Option(None, "--log-file", help="Also write logs to this file")


def load_or_exit(config_path: Path, log_level: str | None = None, log_file: Path | None = None) -> Config:
    """Load the task file and configure logging; exit with status 1 on config errors."""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    logging_cfg = dict(config.logging)
    if log_level:
        logging_cfg["level"] = log_level
    if log_file:
        logging_cfg["file"] = str(log_file)
    setup_logging_from_config({"logging": logging_cfg}, base_dir=config.path.parent if config.path else None)
    return config
