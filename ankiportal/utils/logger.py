"""Centralized logging configuration."""

import logging
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    name: str = "ankiportal",
) -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once: handlers are only attached the first time.

    Args:
        level: Logging level
        log_file: Optional path of a file to log to as well
        name: Logger to configure (the package logger by default)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if getattr(logger, "_ankiportal_configured", False):
        return logger

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger._ankiportal_configured = True
    return logger
