"""
Unit tests for URL classification and link extraction.
"""

import pytest

from webscrape.models.page import PageRecord, UrlType
from webscrape.services.classifier import UrlClassifier, url_classifier
from webscrape.services.link_extractor import LinkExtractor, is_same_site


class TestUrlClassifier:
    """Tests for the UrlClassifier service."""

    @pytest.mark.parametrize("url, expected", [
        ("https://x.com/data.json", UrlType.JSON),
        ("https://x.com/export.TSV", UrlType.CSV),
        ("https://x.com/feed.xml", UrlType.XML),
        ("https://x.com/paper.pdf", UrlType.PDF),
        ("https://x.com/logo.jpeg", UrlType.IMAGE),
        ("https://x.com/song.wav", UrlType.AUDIO),
        ("https://x.com/clip.webm", UrlType.VIDEO),
        ("https://x.com/dump.tar.gz", UrlType.ARCHIVE),
        ("https://x.com/app.py", UrlType.CODE),
        ("https://x.com/letter.docx", UrlType.DOCUMENT),
        ("https://x.com/budget.xlsx", UrlType.SPREADSHEET),
    ])
    def test_known_extensions(self, url, expected):
        assert url_classifier.classify(url) == expected

    def test_query_and_fragment_ignored(self):
        """Query strings and fragments must not hide the extension."""
        classifier = UrlClassifier()

        assert classifier.classify("https://x.com/data.json?page=2") == UrlType.JSON
        assert classifier.classify("https://x.com/data.csv#row-4") == UrlType.CSV
        assert classifier.classify("https://x.com/page?file=report.pdf") == UrlType.WEBPAGE

    def test_unknown_or_missing_extension_is_webpage(self):
        classifier = UrlClassifier()

        assert classifier.classify("https://example.com") == UrlType.WEBPAGE
        assert classifier.classify("https://example.com/about/") == UrlType.WEBPAGE
        assert classifier.classify("https://example.com/index.php") == UrlType.WEBPAGE
        assert classifier.classify("") == UrlType.WEBPAGE
        assert classifier.classify("not a url at all") == UrlType.WEBPAGE

    def test_classify_batch(self):
        result = url_classifier.classify_batch(["https://a.com/x.json", "https://a.com/y"])

        assert result == {
            "https://a.com/x.json": UrlType.JSON,
            "https://a.com/y": UrlType.WEBPAGE,
        }


class TestLinkExtractor:
    """Tests for domain-bound link extraction."""

    @pytest.fixture
    def extractor(self):
        return LinkExtractor()

    def test_same_site(self):
        assert is_same_site("example.com", "example.com")
        assert is_same_site("Docs.Example.com", "example.com")
        assert not is_same_site("badexample.com", "example.com")
        assert not is_same_site("example.com.evil.org", "example.com")

    def test_nested_payload_and_raw_text(self, extractor):
        """Links are found in nested structured values and in the raw text."""
        record = PageRecord(
            url="https://example.com",
            raw_text="See https://example.com/contact. Also https://other.org/x",
            structured={
                "nav": [{"href": "https://example.com/about/"}],
                "footer": {"links": ["https://blog.example.com/post?id=1#top"]},
                "count": 3,
            },
        )

        links = extractor.extract_links(record, "example.com")

        assert links == {
            "https://example.com/about",
            "https://example.com/contact",
            "https://blog.example.com/post",
        }

    def test_assets_dropped(self, extractor):
        text = " ".join([
            "https://example.com/logo.PNG",
            "https://example.com/app.js",
            "https://example.com/font.woff2",
            "https://example.com/report.pdf",
            "https://example.com/docs",
        ])

        assert extractor.extract_from_value(text, "example.com") == {"https://example.com/docs"}

    def test_terminators_and_trailing_punctuation(self, extractor):
        text = '<a href="https://example.com/a">x</a> (https://example.com/b), [https://example.com/c]!'

        links = extractor.extract_from_value(text, "example.com")

        assert links == {"https://example.com/a", "https://example.com/b", "https://example.com/c"}

    def test_any_host_when_domain_is_none(self, extractor):
        links = extractor.extract_from_value(["https://a.com/x", "https://b.org/y/"], None)

        assert links == {"https://a.com/x", "https://b.org/y"}

    def test_malformed_urls_dropped(self, extractor):
        """Malformed candidates are skipped without raising."""
        links = extractor.extract_from_value("http://[broken https://example.com/ok", "example.com")

        assert links == {"https://example.com/ok"}

    def test_empty_inputs(self, extractor):
        assert extractor.extract_from_value(None, "example.com") == set()
        assert extractor.extract_from_value({}, "example.com") == set()
        assert extractor.extract_links(PageRecord(url="https://example.com"), "example.com") == set()
