"""
Tests for logging setup.
"""

import logging

from rich.logging import RichHandler

from datasync.utils.logging import ROOT_LOGGER, get_logger, setup_logging, setup_logging_from_config


class TestSetupLogging:
    def teardown_method(self):
        setup_logging(console_enabled=False)

    def test_rich_console_handler(self):
        logger = setup_logging(level="DEBUG")
        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_plain_console_handler(self):
        logger = setup_logging(level="warning", use_rich=False)
        assert logger.level == logging.WARNING
        assert not any(isinstance(h, RichHandler) for h in logger.handlers)
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging(level="LOUD").level == logging.INFO

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "datasync.log"
        setup_logging(level="INFO", log_file=log_file, console_enabled=False)

        get_logger("datasync.sync.tree").info("Transferred /a -> /b")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()

        text = log_file.read_text()
        assert "[INFO    ] datasync.sync.tree: Transferred /a -> /b" in text

    def test_from_config_resolves_relative_file(self, tmp_path):
        logger = setup_logging_from_config(
            {"logging": {"level": "ERROR", "file": "sync.log", "console_enabled": False}}, base_dir=tmp_path
        )

        assert logger.level == logging.ERROR
        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert file_handlers[0].baseFilename == str(tmp_path / "sync.log")

    def test_get_logger_propagates(self):
        logger = get_logger("datasync.service.scheduler")
        assert logger.propagate is True
        assert logger.parent.name in ("datasync.service", ROOT_LOGGER)
