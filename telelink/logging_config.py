"""
TELELINK Logging Configuration

Provides centralized logging configuration for the TELELINK telescope
client with support for:
- Console output
- Rotating file handlers with size limits
- Per-service log level configuration

Usage:
    from telelink.logging_config import setup_logging, get_logger

    # Initialize logging at application startup
    setup_logging(log_level="INFO", log_file="telelink.log")

    # Get a logger for your module
    logger = get_logger(__name__)
    logger.info("Driver connected")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Module-level constants
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5MB
DEFAULT_BACKUP_COUNT = 3

# Logger namespaces configured by setup_logging
ROOT_NAMESPACES = ("telelink", "services")

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _level(name: str) -> int:
    return LOG_LEVELS.get(name.upper(), logging.INFO)


def setup_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str | Path] = None,
) -> None:
    """Configure logging for the TELELINK application.

    Sets up the ``telelink`` and ``services`` loggers with a console handler
    and an optional rotating file handler. Should be called once at
    application startup; calling it again replaces the previous handlers.

    Args:
        log_level: Default logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If provided, enables file logging
                  with rotation.
    """
    level = _level(log_level)
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        from logging.handlers import RotatingFileHandler

        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for namespace in ROOT_NAMESPACES:
        root_logger = logging.getLogger(namespace)
        root_logger.setLevel(level)
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the telelink namespace.

    Module names from the ``services`` package are kept as they are, since
    that namespace is configured by setup_logging as well.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured logger instance
    """
    if not name.startswith(ROOT_NAMESPACES):
        name = f"telelink.{name}"
    return logging.getLogger(name)


def set_service_level(service_name: str, level: str) -> None:
    """Set log level for a specific service package.

    Args:
        service_name: Name of the service (e.g., "alpaca", "telescope")
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Example:
        set_service_level("alpaca", "DEBUG")  # Verbose driver traffic
    """
    logging.getLogger(f"services.{service_name}").setLevel(_level(level))
