from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .page import utc_now


class RunState(str, Enum):
    """Lifecycle state of a run or job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


class ResearchPhase(str, Enum):
    """Phase tokens reported on the progress channel."""
    PLANNING = "planning"
    DISCOVERING = "discovering"
    SCRAPING = "scraping"
    SYNTHESIZING = "synthesizing"
    DONE = "done"


class ProgressKind(str, Enum):
    STATUS = "status"
    PHASE = "phase"
    PAGE = "page"


class ProgressEvent(BaseModel):
    """Immutable, advisory progress notification."""
    model_config = ConfigDict(frozen=True)

    kind: ProgressKind = Field(..., description="Event category")
    message: str = Field(default="", description="Human-readable status line")
    phase: Optional[ResearchPhase] = Field(default=None, description="Phase token for phase events")
    url: Optional[str] = Field(default=None, description="Page URL for page events")
    error: bool = Field(default=False, description="Whether the page failed")
    current: Optional[int] = Field(default=None, description="Pages done so far")
    total: Optional[int] = Field(default=None, description="Expected page count")
    timestamp: datetime = Field(default_factory=utc_now)
