"""
Services package for WebScrape.

This package contains business logic services:
- Oracle client and per-page extraction
- Crawl scheduler and research pipeline
- URL classification, link and JSON recovery
- Export serialization
- Job manager and WebSocket relay for the HTTP API
"""

from .classifier import url_classifier, UrlClassifier
from .link_extractor import link_extractor, LinkExtractor
from .text_parser import text_parser, StructuredTextParser
from .oracle import ExtractionOracleClient, OracleReply, create_oracle_client
from .extractor import PageExtractor, Oracle
from .run_context import RunContext
from .rate_limiter import RequestPacer
from .crawler import CrawlScheduler
from .research import ResearchPipeline
from .exporter import export_serializer, ExportSerializer
from .websocket import connection_manager, ConnectionManager
from .job_manager import job_manager, JobManager

__all__ = [
    # Classification and parsing
    "url_classifier",
    "UrlClassifier",
    "link_extractor",
    "LinkExtractor",
    "text_parser",
    "StructuredTextParser",
    # Oracle
    "ExtractionOracleClient",
    "OracleReply",
    "create_oracle_client",
    "PageExtractor",
    "Oracle",
    # Runs
    "RunContext",
    "RequestPacer",
    "CrawlScheduler",
    "ResearchPipeline",
    # Exporter
    "export_serializer",
    "ExportSerializer",
    # WebSocket
    "connection_manager",
    "ConnectionManager",
    # Job manager
    "job_manager",
    "JobManager",
]
