from typing import AsyncIterator, Optional

from ..config import config
from ..exceptions import NoPagesExtractedError, OracleError
from ..models.crawl import CrawlJob, CrawlResult, CrawlScope
from ..models.page import ExtractionMode, PageRecord
from ..models.progress import ResearchPhase, RunState
from ..utils.logger import get_crawler_logger
from .extractor import PageExtractor
from .link_extractor import LinkExtractor, link_extractor
from .rate_limiter import RequestPacer
from .run_context import RunContext

logger = get_crawler_logger()


class CrawlScheduler:
    """
    Breadth-first crawler over a single domain with a FIFO URL frontier.

    Scope controls link following:
    - single: only the seed is fetched
    - connected: the seed plus pages found by one up-front discovery
    - deep: discovery, then every successful page feeds new links back in

    Pages are extracted one at a time with a fixed delay in between. The
    abort flag on the run context is checked once per iteration, so an
    in-flight extraction always completes and is yielded.
    """

    def __init__(
        self,
        extractor: PageExtractor,
        pacer: Optional[RequestPacer] = None,
        links: Optional[LinkExtractor] = None,
    ):
        """
        Initialize the crawl scheduler.

        Args:
            extractor: Page extractor backed by the oracle
            pacer: Inter-request delay; defaults to the configured delay
            links: Link extractor used for deep crawls
        """
        self.extractor = extractor
        self.pacer = pacer or RequestPacer()
        self.links = links or link_extractor
        self.job: Optional[CrawlJob] = None

    async def crawl(
        self,
        seed: str,
        scope: CrawlScope,
        max_pages: int,
        context: RunContext,
        mode: ExtractionMode = ExtractionMode.FULL,
    ) -> AsyncIterator[PageRecord]:
        """
        Crawl from a seed, yielding one PageRecord per visited URL.

        Args:
            seed: Absolute seed URL
            scope: Link-following scope
            max_pages: Page budget, clamped to the configured limits (1 for single scope)
            context: Run context holding the abort flag and progress events
            mode: Extraction mode for every page
        """
        limits = config.crawl_limits
        max_pages = min(max(max_pages, limits.MIN_PAGES), limits.MAX_PAGES)
        job = CrawlJob(seed=seed, scope=scope, max_pages=max_pages)
        self.job = job

        if scope != CrawlScope.SINGLE:
            await self._discover(job, context)

        limit = min(len(job.queue), job.max_pages)
        await context.emit_phase(ResearchPhase.SCRAPING)
        await context.emit_status(f"Scraping {limit} page{'s' if limit != 1 else ''}...")

        while job.queue and len(job.visited) < job.max_pages:
            if context.aborted:
                await context.emit_status("Aborted.")
                logger.info(f"[CRAWL] Aborted after {len(job.visited)} pages: {seed}")
                break

            url = job.pop()
            if job.is_visited(url):
                continue
            job.mark_visited(url)

            current = len(job.visited)
            limit = max(limit, min(current + len(job.queue), job.max_pages))
            await context.emit_status(f"[{current}/{limit}] {url}")

            record = await self.extractor.extract(url, context, mode)
            await context.emit_page(url, record.error, current, limit)
            yield record

            if scope == CrawlScope.DEEP and record.is_success and job.budget_left > 0:
                added = sum(1 for link in sorted(self.links.extract_links(record, job.domain)) if job.enqueue(link))
                if added:
                    await context.emit_status(f"  +{added} new links")

            if job.queue and job.budget_left > 0:
                await self.pacer.wait()

        await context.emit_phase(ResearchPhase.DONE)

    async def _discover(self, job: CrawlJob, context: RunContext) -> None:
        await context.emit_phase(ResearchPhase.DISCOVERING)
        await context.emit_status(f"Discovering pages on {job.domain}...")
        try:
            urls = await self.extractor.discover(job.seed, context)
        except OracleError as e:
            logger.warning(f"[CRAWL] Discovery failed for {job.domain}: {e}")
            await context.emit_status(f"Discovery partial: {e.message}")
            return

        for url in urls:
            if len(job.queue) >= job.max_pages:
                break
            job.enqueue(url)
        await context.emit_status(f"{len(job.queue)} pages found (max: {job.max_pages})")

    async def run(
        self,
        seed: str,
        scope: CrawlScope,
        max_pages: int,
        context: RunContext,
        mode: ExtractionMode = ExtractionMode.FULL,
    ) -> CrawlResult:
        """
        Drive a crawl to completion and collect its records.

        Returns:
            CrawlResult in state completed or aborted

        Raises:
            NoPagesExtractedError: The run was not aborted and no page succeeded
        """
        pages = [record async for record in self.crawl(seed, scope, max_pages, context, mode)]
        job = self.job

        result = CrawlResult(
            seed=seed,
            domain=job.domain,
            scope=scope,
            max_pages=job.max_pages,
            state=RunState.ABORTED if context.aborted else RunState.COMPLETED,
            urls_discovered=len(job.visited | job.queued),
            pages=pages,
        )

        if result.state == RunState.COMPLETED and result.successful_pages == 0:
            logger.error(f"[CRAWL] No pages extracted for {seed}")
            raise NoPagesExtractedError(pages)

        logger.info(
            f"[CRAWL] {result.state.value}: {result.successful_pages}/{len(pages)} pages extracted from {job.domain} "
            f"(paced {self.pacer.get_stats()['total_waited']}s)"
        )
        return result
