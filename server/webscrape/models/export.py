from enum import Enum

from pydantic import BaseModel, Field


class ExportFormat(str, Enum):
    """Available export formats."""
    JSON = "json"
    CSV = "csv"
    MARKDOWN = "markdown"
    TXT = "txt"
    SQL = "sql"
    HTML = "html"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]


_EXTENSIONS = {
    ExportFormat.JSON: ".json",
    ExportFormat.CSV: ".csv",
    ExportFormat.MARKDOWN: ".md",
    ExportFormat.TXT: ".txt",
    ExportFormat.SQL: ".sql",
    ExportFormat.HTML: ".html",
}

_MIME_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.MARKDOWN: "text/markdown",
    ExportFormat.TXT: "text/plain",
    ExportFormat.SQL: "text/plain",
    ExportFormat.HTML: "text/html",
}


class ExportArtifact(BaseModel):
    """Serialized export ready to be written or downloaded."""
    filename: str = Field(..., description="Suggested file name")
    content: str = Field(..., description="Serialized payload")
    mime_type: str = Field(..., description="MIME type of the payload")
