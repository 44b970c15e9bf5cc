import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from dynacasbin.core.config import settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "message": "%(message)s"}'
)


class LogConfig:
    """Handler configuration derived from settings."""

    def __init__(self, log_dir: str | None = None):
        self.log_dir = log_dir or settings.LOG_DIR
        self.log_file = os.path.join(self.log_dir, "dynacasbin.log")
        self.max_bytes = 10 * 1024 * 1024  # 10MB
        self.backup_count = 5
        self.environment = settings.ENVIRONMENT

        self.log_format = TEXT_FORMAT
        if self.environment == "production":
            self.log_format = JSON_FORMAT

        self.log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(self.log_level, int):
            self.log_level = logging.INFO

    def get_file_handler(self) -> RotatingFileHandler:
        os.makedirs(self.log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            filename=self.log_file,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(self.log_level)
        handler.setFormatter(logging.Formatter(self.log_format))
        return handler

    def get_console_handler(self) -> logging.StreamHandler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(self.log_level)
        handler.setFormatter(logging.Formatter(self.log_format))
        return handler


def setup_logger(name: str | None = None, log_dir: str | None = None) -> logging.Logger:
    """
    Attach the package handlers to a logger.

    The library itself only calls ``logging.getLogger(__name__)``; entry
    points (scripts, services embedding the adapter) call this once.

    Args:
        name: Logger name, the root logger when omitted
        log_dir: Overrides ``settings.LOG_DIR``

    Returns:
        logging.Logger: Configured logger instance
    """
    config = LogConfig(log_dir)

    logger = logging.getLogger(name or "")
    logger.setLevel(config.log_level)
    logger.handlers = []

    try:
        logger.addHandler(config.get_file_handler())
    except OSError as e:
        sys.stderr.write(f"Error setting up file handler: {str(e)}\n")
    if config.environment != "production" or not logger.handlers:
        logger.addHandler(config.get_console_handler())

    return logger


def get_logger(name: str = __name__) -> logging.Logger:
    return setup_logger(name)
