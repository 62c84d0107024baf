"""
Page-level models shared by the crawl scheduler, research pipeline and exporter.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, model_validator


# Schema-less payload recovered from oracle replies
JsonValue = Union[None, str, int, float, bool, list[Any], dict[str, Any]]


class UrlType(str, Enum):
    """Coarse content type inferred from a URL's extension."""
    WEBPAGE = "webpage"
    JSON = "json"
    CSV = "csv"
    PDF = "pdf"
    IMAGE = "image"
    XML = "xml"
    CODE = "code"
    AUDIO = "audio"
    VIDEO = "video"
    ARCHIVE = "archive"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"


class ExtractionMode(str, Enum):
    """What kind of data a page extraction asks the oracle for."""
    FULL = "full"
    TEXT = "text"
    LINKS = "links"
    STRUCTURED = "structured"
    DEVELOPER = "developer"


class TokenUsage(BaseModel):
    """Oracle usage counters for a single request."""
    input_units: int = Field(default=0, ge=0, description="Prompt tokens consumed")
    output_units: int = Field(default=0, ge=0, description="Completion tokens produced")

    @property
    def total_units(self) -> int:
        return self.input_units + self.output_units


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PageRecord(BaseModel):
    """One fetched/extracted page, successful or not."""
    url: str = Field(..., description="Absolute page URL")
    url_type: UrlType = Field(default=UrlType.WEBPAGE, description="Content type inferred from the URL")
    mode: ExtractionMode = Field(default=ExtractionMode.FULL, description="Extraction mode used")
    raw_text: str = Field(default="", description="Oracle reply, or an error description")
    structured: Optional[Any] = Field(default=None, description="JSON payload parsed from the reply")
    usage: Optional[TokenUsage] = Field(default=None, description="Oracle usage counters")
    error: bool = Field(default=False, description="True when extraction failed")
    timestamp: datetime = Field(default_factory=utc_now, description="When the record was produced")
    elapsed_ms: float = Field(default=0.0, description="Oracle round-trip time")

    @model_validator(mode="after")
    def _drop_payload_on_error(self) -> "PageRecord":
        if self.error:
            self.structured = None
        return self

    @property
    def is_success(self) -> bool:
        return not self.error

    @property
    def has_structured(self) -> bool:
        return self.structured is not None
