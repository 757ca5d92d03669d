"""
TELELINK Unit Tests - Logging Configuration

Unit tests for telelink/logging_config.py.

Run:
    pytest tests/unit/test_logging_config.py -v
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from telelink.logging_config import (
    DEFAULT_BACKUP_COUNT,
    DEFAULT_MAX_BYTES,
    ROOT_NAMESPACES,
    get_logger,
    set_service_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_loggers():
    """Remove handlers installed by a test."""
    yield
    for namespace in ROOT_NAMESPACES:
        logger = logging.getLogger(namespace)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
    logging.getLogger("services.alpaca").setLevel(logging.NOTSET)


class TestSetupLogging:
    """Handler installation."""

    def test_console_only(self):
        setup_logging(log_level="DEBUG")

        for namespace in ROOT_NAMESPACES:
            logger = logging.getLogger(namespace)
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 1
            assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "telelink.log"
        setup_logging(log_level="INFO", log_file=log_file)

        handlers = logging.getLogger("telelink").handlers
        file_handlers = [h for h in handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == DEFAULT_MAX_BYTES
        assert file_handlers[0].backupCount == DEFAULT_BACKUP_COUNT

        logging.getLogger("services.telescope.client").info("Connected")
        file_handlers[0].flush()
        assert "Connected" in log_file.read_text()

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        setup_logging(log_level="WARNING")

        logger = logging.getLogger("telelink")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(log_level="VERBOSE")
        assert logging.getLogger("telelink").level == logging.INFO


class TestLoggers:
    """Logger naming and per-service levels."""

    def test_get_logger_prefixes_name(self):
        assert get_logger("custom").name == "telelink.custom"

    def test_get_logger_keeps_known_namespaces(self):
        assert get_logger("telelink.main").name == "telelink.main"
        assert get_logger("services.alpaca.alpaca_client").name == "services.alpaca.alpaca_client"

    def test_set_service_level(self):
        set_service_level("alpaca", "debug")
        assert logging.getLogger("services.alpaca").level == logging.DEBUG
