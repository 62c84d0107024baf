"""
Shared fixtures: a scripted oracle and zero-delay pacing.
"""

import json
from typing import Callable, Optional, Union

import pytest

from webscrape.exceptions import OracleError
from webscrape.services.oracle import OracleReply
from webscrape.services.prompts import (
    DISCOVERY_SYSTEM,
    PLANNING_SYSTEM,
    SOURCE_DISCOVERY_SYSTEM,
    SYNTHESIS_SYSTEM,
)
from webscrape.services.rate_limiter import RequestPacer
from webscrape.services.run_context import RunContext
from webscrape.services.text_parser import text_parser

Script = Union[str, Exception, Callable[[], str]]


def fenced(payload) -> str:
    """Wrap a payload the way the oracle usually answers."""
    return f"Here is the data:\n```json\n{json.dumps(payload)}\n```"


class FakeOracle:
    """
    Oracle double that answers from a script keyed by request kind.

    Extraction replies are looked up by URL; unknown URLs get a small JSON
    payload naming the URL. A scripted Exception is raised instead of
    answering, and a callable is invoked to produce the answer.
    """

    def __init__(
        self,
        pages: Optional[dict[str, Script]] = None,
        discovery: Optional[Script] = None,
        plan: Optional[Script] = None,
        sources: Optional[Script] = None,
        synthesis: Optional[Script] = None,
    ):
        self.pages = pages or {}
        self.discovery = discovery if discovery is not None else fenced({"discovered_urls": []})
        self.plan = plan if plan is not None else fenced({"search_queries": []})
        self.sources = sources if sources is not None else fenced({"sources": []})
        self.synthesis = synthesis if synthesis is not None else fenced({"executive_summary": "summary"})
        self.calls: list[tuple[str, str]] = []
        self.last_synthesis_prompt: Optional[str] = None
        self.closed = False

    async def complete(self, system_prompt: str, user_prompt: str) -> OracleReply:
        if system_prompt == DISCOVERY_SYSTEM:
            return self._answer("discovery", "", self.discovery)
        if system_prompt == PLANNING_SYSTEM:
            return self._answer("plan", "", self.plan)
        if system_prompt == SOURCE_DISCOVERY_SYSTEM:
            return self._answer("sources", "", self.sources)
        if system_prompt == SYNTHESIS_SYSTEM:
            self.last_synthesis_prompt = user_prompt
            return self._answer("synthesis", "", self.synthesis)

        url = user_prompt.split("\n", 1)[0].replace("Extract data from:", "").strip()
        script = self.pages.get(url, fenced({"page": url}))
        return self._answer("extract", url, script)

    def _answer(self, kind: str, url: str, script: Script) -> OracleReply:
        self.calls.append((kind, url))
        if isinstance(script, Exception):
            raise script
        text = script() if callable(script) else script
        return OracleReply(text=text, structured=text_parser.parse(text))

    @property
    def extracted(self) -> list[str]:
        return [url for kind, url in self.calls if kind == "extract"]

    async def close(self):
        self.closed = True


@pytest.fixture
def oracle_error():
    """Factory for the oracle failure used throughout the tests."""
    return lambda message="boom": OracleError(message)


@pytest.fixture
def pacer():
    return RequestPacer(0)


@pytest.fixture
def context():
    return RunContext()
