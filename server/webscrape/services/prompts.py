"""
Prompt templates for the extraction oracle.

Every prompt asks for a readable answer plus a JSON payload in a
```json fence, which StructuredTextParser recovers.
"""

from typing import Optional

from ..models.page import ExtractionMode, UrlType


EXTRACTION_BASE = (
    "You are a web data extraction engine. Fetch the URL via web search and extract data. "
    "Return a readable summary AND JSON in ```json fences.\n"
    "Rules: extract REAL data only, never fabricate. Include discovered_links array."
)

MODE_SECTIONS = {
    ExtractionMode.FULL: (
        "\n\nFULL: Extract meta tags, OpenGraph, JSON-LD, text by headings, links, images, tables, "
        "structured data, assets.\n"
        'JSON: {"metadata":{},"text_content":{},"links":{},"images":[],"tables":[],'
        '"structured_data":{},"discovered_links":[]}'
    ),
    ExtractionMode.TEXT: (
        "\n\nTEXT: Clean text organized by headings.\n"
        'JSON: {"metadata":{},"content":{"headings":[],"body":"","summary":""},"discovered_links":[]}'
    ),
    ExtractionMode.LINKS: (
        "\n\nLINKS: All URLs: hyperlinks, images, scripts, stylesheets.\n"
        'JSON: {"metadata":{},"links":{},"images":[],"assets":{},"discovered_links":[]}'
    ),
    ExtractionMode.STRUCTURED: (
        "\n\nSTRUCTURED: Tables, JSON-LD, Schema.org, OpenGraph.\n"
        'JSON: {"metadata":{},"tables":[],"json_ld":[],"opengraph":{},"discovered_links":[]}'
    ),
    ExtractionMode.DEVELOPER: (
        "\n\nDEV: HTTP info, tech stack, DOM, API endpoints.\n"
        'JSON: {"http":{},"tech_stack":{},"api_endpoints":[],"resources":{},"discovered_links":[]}'
    ),
}

FILE_HINTS = {
    UrlType.JSON: "\nJSON file: parse fully.",
    UrlType.CSV: "\nCSV: parse into objects.",
    UrlType.PDF: "\nPDF: extract text and metadata.",
    UrlType.IMAGE: "\nImage: report metadata.",
    UrlType.XML: "\nXML: convert to JSON.",
    UrlType.CODE: "\nCode: identify language, analyze.",
}

DISCOVERY_SYSTEM = (
    "You are a web crawler. Find real pages for the given site. Return JSON:\n"
    '```json\n{"discovered_urls":[{"url":"...","title":"..."}]}\n```'
)

PLANNING_SYSTEM = (
    "You are a research planner. Turn the user's goal into a concrete web research plan. "
    "Return a short explanation AND JSON in ```json fences:\n"
    '```json\n{"understanding":"...","strategy":"...","search_queries":["..."],'
    '"target_sites":["..."],"data_points":["..."],"estimated_sources":5}\n```'
)

SOURCE_DISCOVERY_SYSTEM = (
    "You are a research source finder. Use web search to find real, specific pages that answer "
    "the queries. Never invent URLs. Return JSON in ```json fences:\n"
    '```json\n{"sources":[{"url":"...","title":"...","type":"article|forum|review|dataset|official",'
    '"relevance":"..."}]}\n```'
)

SYNTHESIS_SYSTEM = (
    "You are a research analyst. Combine the source excerpts into one report. Only use facts "
    "present in the excerpts. Return a readable report AND JSON in ```json fences:\n"
    '```json\n{"executive_summary":"...","key_themes":[{"theme":"...","frequency":"high|medium|low",'
    '"source_count":1}],"top_recommendations":["..."],'
    '"sentiment":{"positive":0,"neutral":0,"negative":0},"actionable_insights":["..."]}\n```'
)


def build_extraction_system(mode: ExtractionMode, url_type: UrlType) -> str:
    """System prompt for a single page extraction."""
    return EXTRACTION_BASE + MODE_SECTIONS.get(mode, MODE_SECTIONS[ExtractionMode.FULL]) + FILE_HINTS.get(url_type, "")


def build_extraction_prompt(
    url: str,
    mode: ExtractionMode,
    url_type: UrlType,
    data_points: Optional[list[str]] = None,
) -> str:
    prompt = (
        f"Extract data from: {url}\n\n"
        f"URL type: {url_type.value} | Mode: {mode.value}\n\n"
        "Fetch via web search, extract and structure data. "
        "Return readable summary AND JSON in ```json fences."
    )
    if data_points:
        prompt += "\n\nFocus on these data points:\n" + "\n".join(f"- {point}" for point in data_points)
    return prompt


def build_discovery_prompt(url: str, domain: str) -> str:
    return (
        f"Discover all pages for: {url}\nDomain: {domain}\n\n"
        "Search for sitemaps, blog posts, docs, help, products. Be thorough."
    )


def build_planning_prompt(goal: str) -> str:
    return f"Research goal:\n{goal}\n\nPlan the searches, sites and data points needed."


def build_source_discovery_prompt(queries: list[str], target_sites: list[str], max_sources: int) -> str:
    lines = ["Find sources for these search queries:"]
    lines.extend(f"- {query}" for query in queries)
    if target_sites:
        lines.append("\nPrefer these sites where relevant:")
        lines.extend(f"- {site}" for site in target_sites)
    lines.append(f"\nReturn at most {max_sources} sources.")
    return "\n".join(lines)


def build_synthesis_prompt(goal: str, excerpts: str) -> str:
    return f"Research goal:\n{goal}\n\nSource excerpts:\n\n{excerpts}"
