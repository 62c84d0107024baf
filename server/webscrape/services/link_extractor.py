"""
Domain-bound link extraction from oracle replies.

Walks any JSON value (and a record's raw text) looking for URL-shaped
substrings, keeping same-domain, non-asset links.
"""

import re
from typing import Any, Optional
from urllib.parse import urlparse

from ..models.page import PageRecord


URL_PATTERN = re.compile(r"https?://[^\s\"'<>,)}\]]+")

ASSET_PATTERN = re.compile(
    r"\.(png|jpe?g|gif|svg|webp|ico|css|js|woff2?|ttf|otf|eot|mp3|wav|mp4|webm|mov|pdf)$",
    re.IGNORECASE,
)

TRAILING_PUNCTUATION = ".;:!?"


def is_same_site(host: str, domain: str) -> bool:
    """True if host equals domain or is one of its subdomains."""
    host = host.lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


class LinkExtractor:
    """
    Finds same-domain page links inside nested oracle payloads.

    Links are normalized to scheme://host/path: query, fragment and
    trailing slash are dropped.
    """

    def extract_links(self, record: PageRecord, domain: Optional[str]) -> set[str]:
        """
        Extract links from a page record's structured payload and raw text.

        Args:
            record: Page record to scan
            domain: Crawl domain; None keeps links on any host

        Returns:
            Set of normalized absolute URLs
        """
        links: set[str] = set()
        if record.structured is not None:
            links |= self.extract_from_value(record.structured, domain)
        links |= self.extract_from_value(record.raw_text, domain)
        return links

    def extract_from_value(self, value: Any, domain: Optional[str]) -> set[str]:
        """Recursively scan a JSON value for links."""
        links: set[str] = set()
        self._walk(value, domain, links)
        return links

    def _walk(self, value: Any, domain: Optional[str], links: set[str]) -> None:
        if value is None:
            return
        if isinstance(value, str):
            for match in URL_PATTERN.findall(value):
                normalized = self._normalize(match, domain)
                if normalized:
                    links.add(normalized)
        elif isinstance(value, dict):
            for item in value.values():
                self._walk(item, domain, links)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._walk(item, domain, links)

    def _normalize(self, candidate: str, domain: Optional[str]) -> Optional[str]:
        candidate = candidate.rstrip(TRAILING_PUNCTUATION)
        try:
            parsed = urlparse(candidate)
            host = parsed.hostname
        except ValueError:
            return None

        if not host:
            return None
        if domain and not is_same_site(host, domain):
            return None
        if ASSET_PATTERN.search(parsed.path):
            return None

        return f"{parsed.scheme}://{parsed.netloc}{parsed.path}".rstrip("/")


# Global extractor instance
link_extractor = LinkExtractor()
