"""Utility modules for WebScrape."""

from .logger import (
    setup_logger,
    get_crawler_logger,
    get_oracle_logger,
    get_research_logger,
    get_export_logger,
    get_api_logger,
)

__all__ = [
    "setup_logger",
    "get_crawler_logger",
    "get_oracle_logger",
    "get_research_logger",
    "get_export_logger",
    "get_api_logger",
]
