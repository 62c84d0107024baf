"""
Centralized configuration for WebScrape.

This module consolidates all configuration values used throughout the application,
making it easier to manage, modify, and understand the system's behavior.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class OracleConfig:
    """Extraction oracle (LLM API) configuration."""

    API_URL: str = "https://api.anthropic.com/v1/messages"
    API_VERSION: str = "2023-06-01"
    MODEL: str = "claude-sonnet-4-20250514"
    MAX_TOKENS: int = 8000

    # Request timeouts (seconds)
    REQUEST_TIMEOUT: int = 180
    CONNECT_TIMEOUT: int = 10

    # Let the oracle fetch pages itself through its web search tool
    ENABLE_WEB_SEARCH: bool = True
    WEB_SEARCH_TOOL: str = "web_search_20250305"


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    REQUEST_DELAY: float = 1.5  # seconds between page extractions


@dataclass(frozen=True)
class CrawlLimits:
    """Crawling limits and constraints."""

    MIN_PAGES: int = 1
    MAX_PAGES: int = 50
    DEFAULT_PAGES: int = 10


@dataclass(frozen=True)
class ResearchConfig:
    """Research pipeline configuration."""

    MAX_SOURCES: int = 8
    SYNTHESIS_EXCERPT_LENGTH: int = 800
    FALLBACK_QUERY_LENGTH: int = 200


@dataclass(frozen=True)
class ExportConfig:
    """Output and export configuration."""

    CSV_TEXT_EXCERPT_LENGTH: int = 500
    SQL_TABLE_NAME: str = "scraped_data"
    FILENAME_PREFIX: str = "scrape"


@dataclass(frozen=True)
class HistoryConfig:
    """Job history retention."""

    MAX_JOBS: int = 20


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration for development."""

    ALLOWED_ORIGINS: tuple[str, ...] = (
        "http://localhost:5173",
        "http://localhost:5174",
        "http://localhost:3000",
    )


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all configuration sections and provides environment-based overrides.
    """

    oracle: OracleConfig = field(default_factory=OracleConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    crawl_limits: CrawlLimits = field(default_factory=CrawlLimits)
    research: ResearchConfig = field(default_factory=ResearchConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)

    # Application info
    APP_NAME: str = "WebScrape"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Oracle-driven web crawling, research and data export"

    # Credentials
    API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY"))

    # Environment
    DEBUG: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Create configuration from environment variables.

        Supports overrides via environment variables:
        - WEBSCRAPE_REQUEST_DELAY
        - WEBSCRAPE_ORACLE_MODEL
        - WEBSCRAPE_MAX_SOURCES
        """
        config = cls()

        if delay := os.getenv("WEBSCRAPE_REQUEST_DELAY"):
            object.__setattr__(config.rate_limit, "REQUEST_DELAY", float(delay))

        if model := os.getenv("WEBSCRAPE_ORACLE_MODEL"):
            object.__setattr__(config.oracle, "MODEL", model)

        if max_sources := os.getenv("WEBSCRAPE_MAX_SOURCES"):
            object.__setattr__(config.research, "MAX_SOURCES", int(max_sources))

        return config


# Global configuration instance
config = AppConfig.from_env()
