"""Logging configuration for the word sheet."""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from wordsheet.config import LoggingSettings, settings


def setup_logging(
    first_message: str = "",
    level: Optional[Union[int, str]] = None,
    logging_settings: Optional[LoggingSettings] = None,
) -> None:
    """Configure logging for the entire application.

    Args:
        first_message: Banner written once the handlers are installed.
        level: Optional logging level. If None, the configured level is used.
        logging_settings: Settings to use instead of the global ones.
    """
    logging_settings = logging_settings or settings.logging

    # Set default level if not provided
    if level is None:
        level = logging_settings.level
    if isinstance(level, str):
        level = logging.getLevelName(level)

    formatter = logging.Formatter(logging_settings.format)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if first_message:
        root_logger.info("================================================")
        root_logger.info(first_message)
    root_logger.info(f"Logging configured with level: {logging.getLevelName(level)}")

    # Add file handler with rotation
    if logging_settings.dir is not None:
        try:
            log_dir = Path(logging_settings.dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / "wordsheet.log"
            file_handler = TimedRotatingFileHandler(
                log_file,
                when=logging_settings.rotation,
                interval=logging_settings.interval,
                backupCount=logging_settings.backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            root_logger.info(
                f"Log file: {log_file} (rotation: {logging_settings.rotation}, "
                f"interval: {logging_settings.interval}, backup_count: {logging_settings.backup_count})"
            )
        except OSError as e:
            root_logger.warning(f"Could not set up file logging: {e}")

    # Set logging levels for third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
