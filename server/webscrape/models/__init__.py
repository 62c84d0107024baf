"""
Data models for WebScrape.

This package contains Pydantic models for:
- Page records and oracle usage
- Crawl requests, transient crawl state and results
- Research plans, sources and synthesis reports
- Progress events and export descriptors
- Job status for the HTTP API
"""

from .page import (
    JsonValue,
    UrlType,
    ExtractionMode,
    TokenUsage,
    PageRecord,
)

from .progress import (
    RunState,
    ResearchPhase,
    ProgressKind,
    ProgressEvent,
)

from .crawl import (
    CrawlScope,
    CrawlJob,
    CrawlRequest,
    CrawlResult,
    url_key,
)

from .research import (
    ResearchPlan,
    DiscoveredSource,
    KeyTheme,
    SynthesisReport,
    ResearchKind,
    ResearchRequest,
    ResearchResult,
)

from .export import (
    ExportFormat,
    ExportArtifact,
)

from .job import (
    JobKind,
    JobStatus,
)

__all__ = [
    # Page models
    "JsonValue",
    "UrlType",
    "ExtractionMode",
    "TokenUsage",
    "PageRecord",
    # Progress models
    "RunState",
    "ResearchPhase",
    "ProgressKind",
    "ProgressEvent",
    # Crawl models
    "CrawlScope",
    "CrawlJob",
    "CrawlRequest",
    "CrawlResult",
    "url_key",
    # Research models
    "ResearchPlan",
    "DiscoveredSource",
    "KeyTheme",
    "SynthesisReport",
    "ResearchKind",
    "ResearchRequest",
    "ResearchResult",
    # Export models
    "ExportFormat",
    "ExportArtifact",
    # Job models
    "JobKind",
    "JobStatus",
]
