"""
Tests for the research pipeline phases, direct scraping and failure paths.
"""

import asyncio

import pytest

from conftest import FakeOracle, fenced
from webscrape.exceptions import NoPagesExtractedError, OracleError
from webscrape.models.progress import ResearchPhase, RunState
from webscrape.models.research import ResearchKind
from webscrape.services.rate_limiter import RequestPacer
from webscrape.services.research import ResearchPipeline, ensure_scheme, looks_like_url


GOAL = "best budget laptops for students"

PLAN = fenced({
    "understanding": "Compare cheap laptops",
    "strategy": "Reviews first",
    "search_queries": ["budget laptop review", "student laptop forum"],
    "target_sites": ["reddit.com"],
    "data_points": ["price", "battery"],
    "estimated_sources": "4",
})

SOURCES = fenced({"sources": [
    {"url": "https://a.com/r", "title": "A review", "type": "review", "relevance": "hands-on"},
    "https://b.org/x",
    {"url": "ftp://c.net/file"},
]}) + "\nAlso worth a look: https://c.net/y."

SYNTHESIS = fenced({
    "executive_summary": "Chromebooks win on price.",
    "key_themes": [{"theme": "battery", "frequency": "high", "source_count": 2}, "weight"],
    "top_recommendations": ["Acer 514"],
    "sentiment": {"positive": 3, "negative": "1", "mixed": "n/a"},
    "actionable_insights": ["Buy refurbished"],
})


def make_pipeline(oracle, max_sources=None) -> ResearchPipeline:
    return ResearchPipeline(oracle, pacer=RequestPacer(0), max_sources=max_sources)


def run_research(pipeline, context, goal=GOAL):
    return asyncio.run(pipeline.run(goal, context))


class TestResearchRun:
    """Tests for a full plan, discover, scrape, synthesize run."""

    def test_all_phases(self, context):
        oracle = FakeOracle(plan=PLAN, sources=SOURCES, synthesis=SYNTHESIS)

        result = run_research(make_pipeline(oracle), context)

        assert context.phases == [
            ResearchPhase.PLANNING,
            ResearchPhase.DISCOVERING,
            ResearchPhase.SCRAPING,
            ResearchPhase.SYNTHESIZING,
            ResearchPhase.DONE,
        ]
        assert result.kind == ResearchKind.RESEARCH
        assert result.state == RunState.COMPLETED
        assert result.plan.search_queries == ["budget laptop review", "student laptop forum"]
        assert result.plan.data_points == ["price", "battery"]
        assert result.plan.estimated_sources == 4

        assert [s.url for s in result.sources] == ["https://a.com/r", "https://b.org/x", "https://c.net/y"]
        assert result.sources[0].title == "A review"
        assert result.sources[0].source_kind == "review"
        assert result.sources[2].source_kind == "link"
        assert oracle.extracted == ["https://a.com/r", "https://b.org/x", "https://c.net/y"]

        assert result.successful_pages == 3
        assert result.synthesis.executive_summary == "Chromebooks win on price."
        assert [t.theme for t in result.synthesis.key_themes] == ["battery", "weight"]
        assert result.synthesis.key_themes[0].source_count == 2
        assert result.synthesis.sentiment_tally == {"positive": 3, "negative": 1}
        assert result.synthesis_error is None

    def test_synthesis_prompt_carries_source_excerpts(self, context):
        long_text = "x" * 2000
        oracle = FakeOracle(
            plan=PLAN,
            sources=fenced({"sources": ["https://a.com/r"]}),
            pages={"https://a.com/r": long_text},
        )

        run_research(make_pipeline(oracle), context)

        prompt = oracle.last_synthesis_prompt
        assert "[Source: https://a.com/r]\n" + "x" * 800 in prompt
        assert "x" * 801 not in prompt

    def test_source_budget(self, context):
        oracle = FakeOracle(plan=PLAN, sources=SOURCES)

        result = run_research(make_pipeline(oracle, max_sources=2), context)

        assert len(result.sources) == 2
        assert oracle.extracted == ["https://a.com/r", "https://b.org/x"]

    def test_page_events_per_source(self, context):
        oracle = FakeOracle(plan=PLAN, sources=SOURCES, pages={"https://b.org/x": OracleError("API 500: x")})

        result = run_research(make_pipeline(oracle), context)

        assert [p.error for p in result.pages] == [False, True, False]
        assert result.successful_pages == 2
        assert "[2/3] https://b.org/x" in context.status_messages


class TestPlanningFallback:
    """Tests for the query fallback when planning yields nothing usable."""

    def test_prose_plan_falls_back_to_goal(self, context):
        oracle = FakeOracle(plan="I would search around a bit.", sources=fenced({"sources": ["https://a.com/r"]}))

        result = run_research(make_pipeline(oracle), context, goal="  best   laptops\n 2024 ")

        assert result.plan.search_queries == ["best laptops 2024"]
        assert "Using the goal as the search query" in context.status_messages

    def test_planning_failure_is_not_fatal(self, context):
        oracle = FakeOracle(plan=OracleError("timeout"), sources=fenced({"sources": ["https://a.com/r"]}))

        result = run_research(make_pipeline(oracle), context)

        assert "Planning failed: timeout" in context.status_messages
        assert result.plan.search_queries == [GOAL]
        assert result.successful_pages == 1

    def test_fallback_query_is_truncated(self):
        pipeline = make_pipeline(FakeOracle())

        assert len(pipeline.fallback_query("word " * 100)) == 200

    def test_out_of_range_estimate_keeps_the_plan(self, context):
        plan = '```json\n{"search_queries": ["laptop review"], "estimated_sources": 1e999}\n```'
        oracle = FakeOracle(plan=plan, sources=fenced({"sources": ["https://a.com/r"]}))

        result = run_research(make_pipeline(oracle), context)

        assert result.plan.search_queries == ["laptop review"]
        assert result.plan.estimated_sources is None
        assert result.successful_pages == 1

    def test_unreadable_plan_falls_back_to_goal(self, context, monkeypatch):
        def unreadable(structured):
            raise ValueError("bad plan")

        pipeline = make_pipeline(FakeOracle(plan=PLAN, sources=fenced({"sources": ["https://a.com/r"]})))
        monkeypatch.setattr(pipeline, "parse_plan", unreadable)

        result = run_research(pipeline, context)

        assert "Plan unreadable; continuing without one" in context.status_messages
        assert result.plan.search_queries == [GOAL]
        assert result.successful_pages == 1


class TestResearchFailures:
    """Tests for degraded and failed runs."""

    def test_discovery_failure_yields_no_pages_error(self, context):
        oracle = FakeOracle(plan=PLAN, sources=OracleError("API 503: unavailable"))

        with pytest.raises(NoPagesExtractedError) as exc_info:
            run_research(make_pipeline(oracle), context)

        assert exc_info.value.pages == []
        assert "Discovery failed: API 503: unavailable" in context.status_messages
        assert "No sources extracted; skipping synthesis" in context.status_messages

    def test_all_sources_failed(self, context):
        oracle = FakeOracle(
            plan=PLAN,
            sources=fenced({"sources": ["https://a.com/r", "https://b.org/x"]}),
            pages={"https://a.com/r": OracleError("nope"), "https://b.org/x": OracleError("nope")},
        )

        with pytest.raises(NoPagesExtractedError) as exc_info:
            run_research(make_pipeline(oracle), context)

        assert len(exc_info.value.pages) == 2
        assert all(p.error for p in exc_info.value.pages)
        assert "synthesis" not in [kind for kind, _ in oracle.calls]

    def test_synthesis_failure_keeps_pages(self, context):
        oracle = FakeOracle(
            plan=PLAN,
            sources=fenced({"sources": ["https://a.com/r"]}),
            synthesis=OracleError("API 529: overloaded"),
        )

        result = run_research(make_pipeline(oracle), context)

        assert result.state == RunState.COMPLETED
        assert result.synthesis is None
        assert result.synthesis_error == "API 529: overloaded"
        assert result.successful_pages == 1
        assert "Synthesis unavailable: API 529: overloaded" in context.status_messages

    @pytest.mark.parametrize("synthesis", [
        {"executive_summary": "s", "key_themes": 5},
        {"executive_summary": "s", "key_themes": True, "sentiment": ["positive"]},
        {"executive_summary": "s", "key_themes": "battery", "sentiment": "good"},
    ])
    def test_badly_shaped_synthesis_keeps_pages(self, context, synthesis):
        oracle = FakeOracle(plan=PLAN, sources=fenced({"sources": ["https://a.com/r"]}), synthesis=fenced(synthesis))

        result = run_research(make_pipeline(oracle), context)

        assert result.state == RunState.COMPLETED
        assert result.successful_pages == 1
        assert result.synthesis.executive_summary == "s"
        assert result.synthesis.key_themes == []
        assert result.synthesis.sentiment_tally == {}

    def test_unreadable_synthesis_keeps_pages(self, context, monkeypatch):
        def unreadable(structured, text):
            raise TypeError("bad synthesis")

        pipeline = make_pipeline(FakeOracle(plan=PLAN, sources=fenced({"sources": ["https://a.com/r"]})))
        monkeypatch.setattr(pipeline, "parse_synthesis", unreadable)

        result = run_research(pipeline, context)

        assert result.state == RunState.COMPLETED
        assert result.synthesis is None
        assert result.synthesis_error == "Unreadable synthesis reply: bad synthesis"
        assert result.successful_pages == 1
        assert "Synthesis unavailable: unreadable reply" in context.status_messages

    def test_badly_shaped_source_list(self, context):
        oracle = FakeOracle(plan=PLAN, sources=fenced({"sources": 5}))

        with pytest.raises(NoPagesExtractedError):
            run_research(make_pipeline(oracle), context)

        assert "Found 0 sources" in context.status_messages

    def test_prose_synthesis_becomes_summary(self, context):
        oracle = FakeOracle(
            plan=PLAN,
            sources=fenced({"sources": ["https://a.com/r"]}),
            synthesis="Laptops are fine.",
        )

        result = run_research(make_pipeline(oracle), context)

        assert result.synthesis.executive_summary == "Laptops are fine."
        assert result.synthesis.key_themes == []

    def test_abort_during_scraping(self, context):
        def abort_then_answer():
            context.abort()
            return fenced({"price": 300})

        oracle = FakeOracle(plan=PLAN, sources=SOURCES, pages={"https://a.com/r": abort_then_answer})

        result = run_research(make_pipeline(oracle), context)

        assert result.state == RunState.ABORTED
        assert [p.url for p in result.pages] == ["https://a.com/r"]
        assert result.synthesis is None
        assert "synthesis" not in [kind for kind, _ in oracle.calls]
        assert "Aborted." in context.status_messages
        assert context.phases[-1] == ResearchPhase.DONE

    def test_abort_before_start(self, context):
        context.abort()
        oracle = FakeOracle()

        result = run_research(make_pipeline(oracle), context)

        assert result.state == RunState.ABORTED
        assert result.pages == []
        assert oracle.calls == []


class TestDirectScrape:
    """Tests for URL input routing and direct scraping."""

    @pytest.mark.parametrize("text, expected", [
        ("https://example.com/a", True),
        ("example.com/pricing", True),
        ("docs.python.org", True),
        ("find cheap flights", False),
        ("https://example.com/a and more", False),
        ("laptops", False),
    ])
    def test_looks_like_url(self, text, expected):
        assert looks_like_url(text) is expected

    def test_ensure_scheme(self):
        assert ensure_scheme("example.com") == "https://example.com"
        assert ensure_scheme("http://example.com") == "http://example.com"

    def test_execute_routes_url_to_direct_scrape(self, context):
        oracle = FakeOracle()

        result = asyncio.run(make_pipeline(oracle).execute("example.com/pricing", context))

        assert result.kind == ResearchKind.DIRECT
        assert result.plan is None
        assert result.synthesis is None
        assert [p.url for p in result.pages] == ["https://example.com/pricing"]
        assert context.phases == [ResearchPhase.SCRAPING, ResearchPhase.DONE]
        assert [kind for kind, _ in oracle.calls] == ["extract"]

    def test_execute_routes_text_to_research(self, context):
        oracle = FakeOracle(plan=PLAN, sources=fenced({"sources": ["https://a.com/r"]}))

        result = asyncio.run(make_pipeline(oracle).execute(GOAL, context))

        assert result.kind == ResearchKind.RESEARCH
        assert oracle.calls[0][0] == "plan"

    def test_direct_scrape_failure(self, context):
        oracle = FakeOracle(pages={"https://example.com": OracleError("API 401: bad key")})

        with pytest.raises(NoPagesExtractedError) as exc_info:
            asyncio.run(make_pipeline(oracle).scrape_url("https://example.com", context))

        assert exc_info.value.pages[0].raw_text == "Error: API 401: bad key"


class TestReplyParsing:
    """Tests for the lenient phase reply parsers."""

    def test_parse_sources_from_list(self):
        sources = ResearchPipeline.parse_sources([
            "https://a.com", "https://a.com/", {"url": "mailto:x@y.z"}, 42, {"title": "no url"},
        ])

        assert [s.url for s in sources] == ["https://a.com"]

    def test_parse_sources_from_discovered_urls(self):
        sources = ResearchPipeline.parse_sources({"discovered_urls": [{"url": "https://a.com/p", "title": "P"}]})

        assert sources[0].title == "P"

    def test_parse_plan_accepts_queries_key(self):
        plan = ResearchPipeline.parse_plan({"queries": ["one", "", "two"]})

        assert plan.search_queries == ["one", "two"]

    def test_parse_plan_non_object(self):
        assert ResearchPipeline.parse_plan(["x"]).search_queries == []

    @pytest.mark.parametrize("estimate", [float("inf"), float("nan"), "many", [3], {"n": 3}])
    def test_parse_plan_unusable_estimate(self, estimate):
        plan = ResearchPipeline.parse_plan({"search_queries": ["q"], "estimated_sources": estimate})

        assert plan.search_queries == ["q"]
        assert plan.estimated_sources is None

    @pytest.mark.parametrize("themes", [5, True, "battery", {"theme": "battery"}])
    def test_parse_synthesis_ignores_non_list_themes(self, themes):
        report = ResearchPipeline.parse_synthesis({"executive_summary": "s", "key_themes": themes}, "")

        assert report.executive_summary == "s"
        assert report.key_themes == []

    @pytest.mark.parametrize("sentiment", [5, ["positive"], "good", {"positive": float("inf")}])
    def test_parse_synthesis_ignores_unusable_sentiment(self, sentiment):
        report = ResearchPipeline.parse_synthesis({"sentiment": sentiment}, "fallback")

        assert report.executive_summary == "fallback"
        assert report.sentiment_tally == {}

    @pytest.mark.parametrize("sources", [5, True, "https://a.com", {"url": "https://a.com"}])
    def test_parse_sources_non_list(self, sources):
        assert ResearchPipeline.parse_sources({"sources": sources}) == []
