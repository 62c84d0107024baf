from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, HttpUrl, Field, computed_field, field_validator

from .page import ExtractionMode, PageRecord
from .progress import RunState


class CrawlScope(str, Enum):
    """How far a crawl follows links from its seed."""
    SINGLE = "single"
    CONNECTED = "connected"
    DEEP = "deep"


def url_key(url: str) -> str:
    """Identity used for visited/queued bookkeeping."""
    return url.rstrip("/")


@dataclass
class CrawlJob:
    """
    Transient state of one BFS crawl.

    `visited` only grows; a URL is never queued once it has been visited.
    """

    seed: str
    scope: CrawlScope
    max_pages: int
    domain: str = ""
    visited: set[str] = field(default_factory=set)
    queue: deque[str] = field(default_factory=deque)
    queued: set[str] = field(default_factory=set)

    def __post_init__(self):
        if not self.domain:
            self.domain = (urlparse(self.seed).hostname or "").lower()
        if self.scope == CrawlScope.SINGLE:
            self.max_pages = 1
        self.enqueue(self.seed)

    def is_known(self, url: str) -> bool:
        key = url_key(url)
        return key in self.visited or key in self.queued

    def enqueue(self, url: str) -> bool:
        """Append a URL unless it was already visited or queued."""
        if self.is_known(url):
            return False
        self.queue.append(url)
        self.queued.add(url_key(url))
        return True

    def pop(self) -> str:
        url = self.queue.popleft()
        self.queued.discard(url_key(url))
        return url

    def mark_visited(self, url: str) -> None:
        self.visited.add(url_key(url))

    def is_visited(self, url: str) -> bool:
        return url_key(url) in self.visited

    @property
    def budget_left(self) -> int:
        return self.max_pages - len(self.visited)


class CrawlRequest(BaseModel):
    """Request payload for starting a crawl job."""
    seed_url: HttpUrl = Field(..., description="Starting URL for the crawl")
    scope: CrawlScope = Field(default=CrawlScope.SINGLE, description="Link-following scope")
    max_pages: int = Field(default=10, ge=1, le=50, description="Page budget (1-50)")
    mode: ExtractionMode = Field(default=ExtractionMode.FULL, description="Extraction mode")

    @field_validator("seed_url", mode="before")
    @classmethod
    def default_scheme(cls, value):
        if isinstance(value, str) and "://" not in value:
            return f"https://{value.strip()}"
        return value


class CrawlResult(BaseModel):
    """Complete output of one crawl run."""
    seed: str = Field(..., description="Starting URL")
    domain: str = Field(..., description="Domain the crawl was bound to")
    scope: CrawlScope = Field(..., description="Scope used")
    max_pages: int = Field(..., description="Effective page budget")
    state: RunState = Field(default=RunState.COMPLETED, description="completed or aborted")
    urls_discovered: int = Field(default=0, description="Distinct URLs seen (visited or queued)")
    pages: list[PageRecord] = Field(default_factory=list, description="Records in fetch order")

    @computed_field
    @property
    def successful_pages(self) -> int:
        return sum(1 for p in self.pages if p.is_success)

    @computed_field
    @property
    def failed_pages(self) -> int:
        return sum(1 for p in self.pages if p.error)

    def first_error(self) -> Optional[PageRecord]:
        return next((p for p in self.pages if p.error), None)
