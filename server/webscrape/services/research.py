"""
Four-phase research pipeline: plan, discover, scrape, synthesize.

The pipeline is a small state machine. A driver loop calls the handler for
the current phase; each handler updates the run state and returns the next
phase. Abort is polled between phases and between pages, and every
per-step failure is converted into data so that only a run without a single
successful page surfaces as an error.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from ..config import config
from ..exceptions import NoPagesExtractedError, OracleError
from ..models.crawl import url_key
from ..models.page import ExtractionMode, PageRecord
from ..models.progress import ResearchPhase, RunState
from ..models.research import (
    DiscoveredSource,
    KeyTheme,
    ResearchKind,
    ResearchPlan,
    ResearchResult,
    SynthesisReport,
)
from ..utils.logger import get_research_logger
from .extractor import Oracle, PageExtractor
from .link_extractor import LinkExtractor, link_extractor
from .prompts import (
    PLANNING_SYSTEM,
    SOURCE_DISCOVERY_SYSTEM,
    SYNTHESIS_SYSTEM,
    build_planning_prompt,
    build_source_discovery_prompt,
    build_synthesis_prompt,
)
from .rate_limiter import RequestPacer
from .run_context import RunContext

logger = get_research_logger()

URL_INPUT = re.compile(r"^(https?://\S+|[a-z0-9-]+(\.[a-z0-9-]+)+(/\S*)?)$", re.IGNORECASE)


def looks_like_url(text: str) -> bool:
    """True when the input should be scraped directly rather than researched."""
    return bool(URL_INPUT.match(text.strip()))


def ensure_scheme(url: str) -> str:
    url = url.strip()
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = "https://" + url
    return url


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass
class ResearchState:
    """Mutable state of one research run, owned by the driver loop."""

    goal: str
    context: RunContext
    plan: Optional[ResearchPlan] = None
    sources: list[DiscoveredSource] = field(default_factory=list)
    pages: list[PageRecord] = field(default_factory=list)
    synthesis: Optional[SynthesisReport] = None
    synthesis_error: Optional[str] = None

    @property
    def successful_pages(self) -> list[PageRecord]:
        return [p for p in self.pages if p.is_success]


PhaseHandler = Callable[[ResearchState], Awaitable[ResearchPhase]]


class ResearchPipeline:
    """
    Sequences oracle calls for a natural-language research goal.

    Phases run strictly one after another; scraping visits sources in
    discovery order with the configured inter-request delay.
    """

    def __init__(
        self,
        oracle: Oracle,
        extractor: Optional[PageExtractor] = None,
        pacer: Optional[RequestPacer] = None,
        links: Optional[LinkExtractor] = None,
        max_sources: Optional[int] = None,
    ):
        """
        Initialize the research pipeline.

        Args:
            oracle: Extraction oracle
            extractor: Page extractor; built from the oracle when omitted
            pacer: Inter-request delay between scraped sources
            links: Link extractor used as a discovery safety net
            max_sources: Source budget; defaults to the configured budget
        """
        self.oracle = oracle
        self.extractor = extractor or PageExtractor(oracle)
        self.pacer = pacer or RequestPacer()
        self.links = links or link_extractor
        self.max_sources = max_sources or config.research.MAX_SOURCES

        self._handlers: dict[ResearchPhase, PhaseHandler] = {
            ResearchPhase.PLANNING: self._plan,
            ResearchPhase.DISCOVERING: self._discover,
            ResearchPhase.SCRAPING: self._scrape,
            ResearchPhase.SYNTHESIZING: self._synthesize,
        }

    async def execute(
        self,
        user_input: str,
        context: RunContext,
        mode: ExtractionMode = ExtractionMode.FULL,
    ) -> ResearchResult:
        """Route URLs to a direct scrape and anything else to a research run."""
        if looks_like_url(user_input):
            return await self.scrape_url(ensure_scheme(user_input), context, mode)
        return await self.run(user_input, context)

    async def run(self, goal: str, context: RunContext) -> ResearchResult:
        """
        Run all four phases for a research goal.

        Returns:
            ResearchResult in state completed or aborted

        Raises:
            NoPagesExtractedError: The run was not aborted and no source was extracted
        """
        state = ResearchState(goal=goal.strip(), context=context)
        logger.info(f"[RESEARCH] Starting: {state.goal[:80]}")

        phase = ResearchPhase.PLANNING
        while phase != ResearchPhase.DONE:
            if context.aborted:
                await context.emit_status("Aborted.")
                break
            await context.emit_phase(phase)
            phase = await self._handlers[phase](state)

        await context.emit_phase(ResearchPhase.DONE)

        result = ResearchResult(
            goal=state.goal,
            kind=ResearchKind.RESEARCH,
            state=RunState.ABORTED if context.aborted else RunState.COMPLETED,
            plan=state.plan,
            sources=state.sources,
            pages=state.pages,
            synthesis=state.synthesis,
            synthesis_error=state.synthesis_error,
        )

        if result.state == RunState.COMPLETED and result.successful_pages == 0:
            logger.error(f"[RESEARCH] No sources extracted for: {state.goal[:80]}")
            raise NoPagesExtractedError(state.pages)

        logger.info(
            f"[RESEARCH] {result.state.value}: {result.successful_pages}/{len(result.pages)} sources, "
            f"synthesis={'yes' if result.synthesis else 'no'}"
        )
        return result

    async def scrape_url(
        self,
        url: str,
        context: RunContext,
        mode: ExtractionMode = ExtractionMode.FULL,
    ) -> ResearchResult:
        """
        Direct scrape: one extraction, no planning, discovery or synthesis.

        Raises:
            NoPagesExtractedError: The extraction failed
        """
        await context.emit_phase(ResearchPhase.SCRAPING)
        record = await self.extractor.extract(url, context, mode)
        await context.emit_page(url, record.error, 1, 1)
        await context.emit_phase(ResearchPhase.DONE)

        if record.error:
            raise NoPagesExtractedError([record])

        return ResearchResult(goal=url, kind=ResearchKind.DIRECT, pages=[record])

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    async def _plan(self, state: ResearchState) -> ResearchPhase:
        context = state.context
        await context.emit_status("Planning research strategy...")
        state.plan = ResearchPlan()
        try:
            reply = await self.oracle.complete(PLANNING_SYSTEM, build_planning_prompt(state.goal))
        except OracleError as e:
            logger.warning(f"[RESEARCH] Planning failed: {e}")
            await context.emit_status(f"Planning failed: {e.message}")
        else:
            try:
                state.plan = self.parse_plan(reply.structured)
            except Exception as e:
                logger.warning(f"[RESEARCH] Unreadable plan: {e}", exc_info=True)
                await context.emit_status("Plan unreadable; continuing without one")

        if not state.plan.search_queries:
            state.plan.search_queries = [self.fallback_query(state.goal)]
            await context.emit_status("Using the goal as the search query")

        await context.emit_status(f"Plan ready: {len(state.plan.search_queries)} queries")
        return ResearchPhase.DISCOVERING

    async def _discover(self, state: ResearchState) -> ResearchPhase:
        context = state.context
        plan = state.plan or ResearchPlan(search_queries=[self.fallback_query(state.goal)])
        await context.emit_status(f"Searching {len(plan.search_queries)} queries for sources...")

        try:
            reply = await self.oracle.complete(
                SOURCE_DISCOVERY_SYSTEM,
                build_source_discovery_prompt(plan.search_queries, plan.target_sites, self.max_sources),
            )
        except OracleError as e:
            logger.warning(f"[RESEARCH] Discovery failed: {e}")
            await context.emit_status(f"Discovery failed: {e.message}")
            return ResearchPhase.SCRAPING

        try:
            sources = self.parse_sources(reply.structured)
        except Exception as e:
            logger.warning(f"[RESEARCH] Unreadable source list: {e}", exc_info=True)
            sources = []
        known = {url_key(s.url) for s in sources}
        for url in sorted(self.links.extract_from_value(reply.text, None)):
            if url_key(url) not in known:
                known.add(url_key(url))
                sources.append(DiscoveredSource(url=url, source_kind="link"))

        state.sources = sources[: self.max_sources]
        await context.emit_status(f"Found {len(state.sources)} sources")
        return ResearchPhase.SCRAPING

    async def _scrape(self, state: ResearchState) -> ResearchPhase:
        context = state.context
        total = len(state.sources)
        data_points = state.plan.data_points if state.plan else None

        for index, source in enumerate(state.sources, start=1):
            if context.aborted:
                await context.emit_status("Aborted.")
                return ResearchPhase.DONE

            await context.emit_status(f"[{index}/{total}] {source.title or source.url}")
            record = await self.extractor.extract(source.url, context, ExtractionMode.FULL, data_points)
            state.pages.append(record)
            await context.emit_page(source.url, record.error, index, total)

            if index < total:
                await self.pacer.wait()

        return ResearchPhase.SYNTHESIZING

    async def _synthesize(self, state: ResearchState) -> ResearchPhase:
        context = state.context
        successful = state.successful_pages
        if not successful:
            await context.emit_status("No sources extracted; skipping synthesis")
            return ResearchPhase.DONE

        await context.emit_status(f"Synthesizing {len(successful)} sources...")
        excerpt_length = config.research.SYNTHESIS_EXCERPT_LENGTH
        excerpts = "\n\n".join(
            f"[Source: {page.url}]\n{page.raw_text[:excerpt_length]}"
            for page in successful
        )

        try:
            reply = await self.oracle.complete(SYNTHESIS_SYSTEM, build_synthesis_prompt(state.goal, excerpts))
        except OracleError as e:
            logger.warning(f"[RESEARCH] Synthesis failed: {e}")
            state.synthesis_error = e.message
            await context.emit_status(f"Synthesis unavailable: {e.message}")
            return ResearchPhase.DONE

        try:
            state.synthesis = self.parse_synthesis(reply.structured, reply.text)
        except Exception as e:
            logger.warning(f"[RESEARCH] Unreadable synthesis: {e}", exc_info=True)
            state.synthesis_error = f"Unreadable synthesis reply: {e}"
            await context.emit_status("Synthesis unavailable: unreadable reply")
            return ResearchPhase.DONE

        await context.emit_status("Synthesis complete")
        return ResearchPhase.DONE

    # ------------------------------------------------------------------
    # Reply parsing
    # ------------------------------------------------------------------

    def fallback_query(self, goal: str) -> str:
        return " ".join(goal.split())[: config.research.FALLBACK_QUERY_LENGTH]

    @staticmethod
    def parse_plan(structured: Any) -> ResearchPlan:
        if not isinstance(structured, dict):
            return ResearchPlan()
        return ResearchPlan(
            understanding=str(structured.get("understanding") or ""),
            strategy=str(structured.get("strategy") or ""),
            search_queries=_string_list(structured.get("search_queries") or structured.get("queries")),
            target_sites=_string_list(structured.get("target_sites")),
            data_points=_string_list(structured.get("data_points")),
            estimated_sources=_as_int(structured.get("estimated_sources")),
        )

    @staticmethod
    def parse_sources(structured: Any) -> list[DiscoveredSource]:
        if isinstance(structured, dict):
            entries = structured.get("sources") or structured.get("discovered_urls") or []
        elif isinstance(structured, list):
            entries = structured
        else:
            entries = []

        sources: list[DiscoveredSource] = []
        seen: set[str] = set()
        for entry in entries if isinstance(entries, list) else []:
            if isinstance(entry, str):
                entry = {"url": entry}
            if not isinstance(entry, dict):
                continue
            url = entry.get("url")
            if not isinstance(url, str) or not url.startswith(("http://", "https://")):
                continue
            if url_key(url) in seen:
                continue
            seen.add(url_key(url))
            sources.append(DiscoveredSource(
                url=url,
                title=str(entry.get("title") or ""),
                source_kind=str(entry.get("type") or entry.get("source_kind") or ""),
                relevance_note=str(entry.get("relevance") or entry.get("relevance_note") or ""),
            ))
        return sources

    @staticmethod
    def parse_synthesis(structured: Any, text: str) -> SynthesisReport:
        if not isinstance(structured, dict):
            return SynthesisReport(executive_summary=text.strip())

        themes = []
        raw_themes = structured.get("key_themes")
        for item in raw_themes if isinstance(raw_themes, list) else []:
            if isinstance(item, str):
                themes.append(KeyTheme(theme=item))
            elif isinstance(item, dict) and item.get("theme"):
                themes.append(KeyTheme(
                    theme=str(item["theme"]),
                    frequency=str(item.get("frequency") or ""),
                    source_count=_as_int(item.get("source_count")) or 0,
                ))

        raw_sentiment = structured.get("sentiment") or structured.get("sentiment_tally") or {}
        sentiment = {}
        if isinstance(raw_sentiment, dict):
            for label, count in raw_sentiment.items():
                value = _as_int(count)
                if value is not None:
                    sentiment[str(label)] = value

        return SynthesisReport(
            executive_summary=str(structured.get("executive_summary") or text.strip()),
            key_themes=themes,
            top_recommendations=_string_list(structured.get("top_recommendations")),
            sentiment_tally=sentiment,
            actionable_insights=_string_list(structured.get("actionable_insights")),
        )
