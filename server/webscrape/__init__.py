"""
WebScrape Server Package

Oracle-driven web crawler, research pipeline and data exporter.
"""

from .config import config, AppConfig
from .exceptions import (
    WebScrapeError,
    OracleError,
    OracleConfigError,
    OracleTransportError,
    OracleResponseError,
    RunError,
    NoPagesExtractedError,
    JobError,
    JobNotFoundError,
    JobNotCompletedError,
    ExportError,
    InvalidFormatError,
)

__all__ = [
    # Config
    "config",
    "AppConfig",
    # Exceptions
    "WebScrapeError",
    "OracleError",
    "OracleConfigError",
    "OracleTransportError",
    "OracleResponseError",
    "RunError",
    "NoPagesExtractedError",
    "JobError",
    "JobNotFoundError",
    "JobNotCompletedError",
    "ExportError",
    "InvalidFormatError",
]
