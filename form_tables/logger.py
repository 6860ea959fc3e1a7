"""
Logging configuration for the form-table link checker.
"""

import logging
import os
import sys
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "form_tables",
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and return a logger instance.

    Safe to call repeatedly: the console handler is installed once, later
    calls only change the level or add the requested log file.

    Args:
        name: Logger name
        level: Logging level (default: INFO)
        log_file: Optional file path for logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    has_console = False
    for handler in logger.handlers:
        handler.setLevel(level)
        if not isinstance(handler, logging.FileHandler):
            has_console = True

    if not has_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        target = os.path.abspath(log_file)
        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in logger.handlers
        )
        if not already:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


# Default logger instance, created once at import time
logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get a child logger for a specific module.

    Child loggers (e.g. "form_tables.prober") inherit the package logger's
    handlers and level; the name in each record shows which stage logged it.

    Args:
        module_name: Name of the module (e.g., 'parser', 'parity')

    Returns:
        Child logger instance
    """
    return logging.getLogger(f"form_tables.{module_name}")
