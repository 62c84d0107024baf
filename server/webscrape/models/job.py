from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .page import ExtractionMode, utc_now
from .progress import ResearchPhase, RunState


class JobKind(str, Enum):
    """Which core entry point a job runs."""
    CRAWL = "crawl"
    RESEARCH = "research"


class JobStatus(BaseModel):
    """Current status of a crawl or research job."""
    job_id: str = Field(..., description="Unique job identifier")
    kind: JobKind = Field(..., description="crawl or research")
    state: RunState = Field(default=RunState.PENDING, description="Job lifecycle state")
    target: str = Field(..., description="Seed URL or research query")
    mode: ExtractionMode = Field(default=ExtractionMode.FULL)

    phase: Optional[ResearchPhase] = Field(default=None, description="Last reported phase")
    last_message: str = Field(default="", description="Last status line")
    pages_done: int = Field(default=0, description="Pages attempted so far")
    pages_failed: int = Field(default=0, description="Pages that failed so far")
    pages_total: Optional[int] = Field(default=None, description="Expected page count, when known")

    error: Optional[str] = Field(default=None, description="Failure reason for failed jobs")
    created_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = Field(default=None)

    @property
    def is_active(self) -> bool:
        return self.state in (RunState.PENDING, RunState.RUNNING)
