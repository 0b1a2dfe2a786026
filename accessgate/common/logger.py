"""Logging setup for accessgate runs.

Library modules log through ``logging.getLogger(__name__)``. A CLI run
configures the top-level ``accessgate`` logger once, which covers all of
them: console output always, a rotating file under ``LOG_DIR`` on request.
"""

import logging
import logging.handlers
import os

LOGGER_NAME = "accessgate"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"  # ISO 8601
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logger(
    name: str = LOGGER_NAME,
    log_dir: str = "./logs",
    level: str = "INFO",
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and/or rotating file handlers to ``name``.

    Calling it again only updates the level; handlers are attached once per
    logger so repeated runs in one process do not duplicate output.

    Args:
        name: Logger name
        log_dir: Directory for ``<name>.log`` when file logging is enabled
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        file_logging: Enable the rotating file handler
        console_logging: Enable the stderr handler
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    level_name = level.upper()
    if level_name not in LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LEVELS)}")

    logger = logging.getLogger(name)
    logger.setLevel(level_name)
    if logger.handlers:
        return logger

    handlers = []
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                os.path.join(log_dir, f"{name}.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )
    if console_logging:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_from_settings(settings) -> logging.Logger:
    """Configure the package logger from ``LOG_LEVEL``, ``LOG_DIR`` and ``LOG_TO_FILE``."""
    return setup_logger(
        LOGGER_NAME,
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.log_to_file,
    )


def reset_logger(name: str = LOGGER_NAME) -> None:
    """Detach and close every handler of ``name``."""
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
