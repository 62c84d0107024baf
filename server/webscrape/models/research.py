from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .page import ExtractionMode, PageRecord
from .progress import RunState


class ResearchPlan(BaseModel):
    """Output of the planning phase."""
    understanding: str = Field(default="", description="How the oracle read the goal")
    strategy: str = Field(default="", description="Overall approach")
    search_queries: list[str] = Field(default_factory=list, description="Ordered search queries")
    target_sites: list[str] = Field(default_factory=list, description="Sites worth visiting")
    data_points: list[str] = Field(default_factory=list, description="Fields to extract per source")
    estimated_sources: Optional[int] = Field(default=None, description="Oracle's source estimate")


class DiscoveredSource(BaseModel):
    """A candidate page found during discovery."""
    url: str
    title: str = ""
    source_kind: str = ""
    relevance_note: str = ""


class KeyTheme(BaseModel):
    theme: str
    frequency: str = ""
    source_count: int = 0


class SynthesisReport(BaseModel):
    """Cross-source summary produced after scraping."""
    executive_summary: str = Field(default="", description="Narrative summary")
    key_themes: list[KeyTheme] = Field(default_factory=list)
    top_recommendations: list[str] = Field(default_factory=list)
    sentiment_tally: dict[str, int] = Field(default_factory=dict)
    actionable_insights: list[str] = Field(default_factory=list)


class ResearchKind(str, Enum):
    RESEARCH = "research"
    DIRECT = "direct"


class ResearchRequest(BaseModel):
    """Request payload for a research run or a direct scrape."""
    query: str = Field(..., min_length=1, description="Research goal, or a URL to scrape directly")
    max_sources: Optional[int] = Field(default=None, ge=1, le=50, description="Source budget override")
    mode: ExtractionMode = Field(default=ExtractionMode.FULL, description="Extraction mode for direct scrapes")


class ResearchResult(BaseModel):
    """Aggregate output of a research run or direct scrape."""
    goal: str = Field(..., description="Original research goal or URL")
    kind: ResearchKind = Field(default=ResearchKind.RESEARCH)
    state: RunState = Field(default=RunState.COMPLETED, description="completed or aborted")
    plan: Optional[ResearchPlan] = None
    sources: list[DiscoveredSource] = Field(default_factory=list)
    pages: list[PageRecord] = Field(default_factory=list)
    synthesis: Optional[SynthesisReport] = None
    synthesis_error: Optional[str] = None

    @computed_field
    @property
    def successful_pages(self) -> int:
        return sum(1 for p in self.pages if p.is_success)
