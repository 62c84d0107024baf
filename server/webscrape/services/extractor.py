"""
Per-page extraction through the oracle.

Builds extraction prompts from the extraction mode and URL type, calls the
oracle, and turns the answer (or the failure) into a PageRecord.
"""

import time
from typing import Optional, Protocol
from urllib.parse import urlparse

from ..exceptions import OracleError
from ..models.page import ExtractionMode, PageRecord
from ..utils.logger import get_crawler_logger
from .classifier import UrlClassifier, url_classifier
from .link_extractor import LinkExtractor, link_extractor
from .oracle import OracleReply
from .prompts import (
    DISCOVERY_SYSTEM,
    build_discovery_prompt,
    build_extraction_prompt,
    build_extraction_system,
)
from .run_context import RunContext

logger = get_crawler_logger()


class Oracle(Protocol):
    """Anything that answers (system, user) prompts like ExtractionOracleClient."""

    async def complete(self, system_prompt: str, user_prompt: str) -> OracleReply: ...


def get_domain(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


class PageExtractor:
    """
    Single-page extraction and one-shot site discovery.

    Oracle failures during extraction are captured as error records so a
    crawl or research run can carry on with the next page.
    """

    def __init__(
        self,
        oracle: Oracle,
        classifier: Optional[UrlClassifier] = None,
        links: Optional[LinkExtractor] = None,
    ):
        self.oracle = oracle
        self.classifier = classifier or url_classifier
        self.links = links or link_extractor

    async def extract(
        self,
        url: str,
        context: RunContext,
        mode: ExtractionMode = ExtractionMode.FULL,
        data_points: Optional[list[str]] = None,
    ) -> PageRecord:
        """
        Extract one page.

        Args:
            url: Page URL
            context: Active run context (receives status messages)
            mode: Extraction mode
            data_points: Optional fields the oracle should focus on

        Returns:
            PageRecord, with error=True if the oracle call failed
        """
        url_type = self.classifier.classify(url)
        await context.emit_status(f"Extracting: {url}")
        logger.debug(f"[EXTRACT] Starting: {url} (type={url_type.value}, mode={mode.value})")

        start = time.perf_counter()
        try:
            reply = await self.oracle.complete(
                build_extraction_system(mode, url_type),
                build_extraction_prompt(url, mode, url_type, data_points),
            )
        except OracleError as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.warning(f"[EXTRACT] Failed: {url} - {e}")
            await context.emit_status(f"  ✗ {e.message}")
            return PageRecord(
                url=url,
                url_type=url_type,
                mode=mode,
                raw_text=f"Error: {e.message}",
                error=True,
                elapsed_ms=elapsed,
            )

        elapsed = (time.perf_counter() - start) * 1000
        units = reply.usage.total_units if reply.usage else 0
        logger.info(f"[EXTRACT] Done: {url} ({elapsed:.2f}ms, units={units}, structured={reply.structured is not None})")
        return PageRecord(
            url=url,
            url_type=url_type,
            mode=mode,
            raw_text=reply.text,
            structured=reply.structured,
            usage=reply.usage,
            elapsed_ms=elapsed,
        )

    async def discover(self, url: str, context: RunContext) -> list[str]:
        """
        Ask the oracle for pages on the URL's domain.

        Oracle errors propagate; callers decide whether discovery is optional.

        Returns:
            Deduplicated URLs in discovery order
        """
        domain = get_domain(url)
        await context.emit_status(f"Mapping {domain}...")

        reply = await self.oracle.complete(DISCOVERY_SYSTEM, build_discovery_prompt(url, domain))

        found: list[str] = []
        structured = reply.structured
        if isinstance(structured, dict) and isinstance(structured.get("discovered_urls"), list):
            for entry in structured["discovered_urls"]:
                candidate = entry.get("url") if isinstance(entry, dict) else entry
                if isinstance(candidate, str):
                    found.extend(sorted(self.links.extract_from_value(candidate, domain)))

        record = PageRecord(url=url, raw_text=reply.text, structured=structured)
        found.extend(sorted(self.links.extract_links(record, domain)))

        urls = list(dict.fromkeys(found))
        await context.emit_status(f"Found {len(urls)} pages")
        logger.info(f"[DISCOVER] {domain}: {len(urls)} candidate URLs")
        return urls
