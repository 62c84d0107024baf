"""
Centralized logging configuration for WebScrape.
"""

import logging
import sys
from typing import Optional


def setup_logger(
    name: str = "webscrape",
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Setup and return a configured logger.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path to write logs

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    # Format: timestamp - level - module - message
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Pre-configured loggers for different modules
def get_crawler_logger() -> logging.Logger:
    """Logger for crawl scheduler and page extraction."""
    return setup_logger("crawler", logging.DEBUG)


def get_oracle_logger() -> logging.Logger:
    """Logger for the extraction oracle client."""
    return setup_logger("oracle", logging.DEBUG)


def get_research_logger() -> logging.Logger:
    """Logger for the research pipeline."""
    return setup_logger("research", logging.DEBUG)


def get_export_logger() -> logging.Logger:
    """Logger for export serialization."""
    return setup_logger("export", logging.INFO)


def get_api_logger() -> logging.Logger:
    """Logger for API routes, jobs and websockets."""
    return setup_logger("api", logging.INFO)
