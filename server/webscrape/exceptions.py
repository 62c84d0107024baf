"""
Custom exceptions for WebScrape.

Provides a hierarchy of exceptions for consistent error handling
throughout the application.
"""

from typing import Optional


class WebScrapeError(Exception):
    """Base exception for all WebScrape errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Oracle exceptions
class OracleError(WebScrapeError):
    """Base exception for extraction oracle failures."""
    pass


class OracleConfigError(OracleError):
    """Raised when the oracle client is missing required configuration."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"Oracle is not configured: {setting} is missing", {"setting": setting})


class OracleTransportError(OracleError):
    """Raised when the oracle cannot be reached."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Oracle request failed: {reason}", {"reason": reason})


class OracleResponseError(OracleError):
    """Raised when the oracle answers with a non-success status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"API {status}: {body}", {"status": status})


# Run exceptions
class RunError(WebScrapeError):
    """Base exception for run-level failures."""
    pass


class NoPagesExtractedError(RunError):
    """Raised when a run finishes without a single successful page."""

    def __init__(self, pages: Optional[list] = None):
        self.pages = list(pages or [])
        super().__init__(
            "No pages scraped.",
            {"attempted": len(self.pages)}
        )


# Job-related exceptions
class JobError(WebScrapeError):
    """Base exception for job-related errors."""
    pass


class JobNotFoundError(JobError):
    """Raised when a requested job does not exist."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found", {"job_id": job_id})


class JobNotCompletedError(JobError):
    """Raised when trying to access results of an unfinished job."""

    def __init__(self, job_id: str, state: str):
        self.job_id = job_id
        self.state = state
        super().__init__(
            f"Job {job_id} has no results (current state: {state})",
            {"job_id": job_id, "state": state}
        )


# Export exceptions
class ExportError(WebScrapeError):
    """Base exception for export errors."""
    pass


class InvalidFormatError(ExportError):
    """Raised when an invalid export format is requested."""

    def __init__(self, format: str, valid_formats: list[str]):
        self.format = format
        self.valid_formats = valid_formats
        super().__init__(
            f"Invalid format '{format}'. Valid formats: {valid_formats}",
            {"format": format, "valid_formats": valid_formats}
        )

