"""
Unit tests for JSON recovery from oracle prose.
"""

from webscrape.services.text_parser import StructuredTextParser, text_parser


class TestStructuredTextParser:
    """Tests for the StructuredTextParser heuristics."""

    def test_fenced_block_wins(self):
        text = 'Intro {"ignored": true}\n```json\n{"a": 1}\n```\ntrailing {"b": 2}'

        assert text_parser.parse(text) == {"a": 1}

    def test_fence_label_is_case_insensitive(self):
        assert text_parser.parse('```JSON\n[1, 2]\n```') == [1, 2]

    def test_prose_trimmed_around_object(self):
        text = 'Sure! Here you go: {"title": "Home", "links": ["x"]} Hope this helps.'

        assert text_parser.parse(text) == {"title": "Home", "links": ["x"]}

    def test_prose_trimmed_around_array(self):
        assert text_parser.parse('Results: [{"n": 1}, {"n": 2}] done') == [{"n": 1}, {"n": 2}]

    def test_plain_json(self):
        assert text_parser.parse('  {"ok": null}  ') == {"ok": None}

    def test_no_json_returns_none(self):
        parser = StructuredTextParser()

        assert parser.parse("Just some prose without data.") is None
        assert parser.parse("") is None
        assert parser.parse(None) is None

    def test_invalid_json_returns_none(self):
        """Broken payloads are not an error, only an absent structure."""
        assert text_parser.parse('{"a": 1,, }') is None
        assert text_parser.parse('```json\n{not json}\n```') is None

    def test_deeply_nested_payload_does_not_raise(self):
        assert text_parser.parse("[" * 100000 + "]" * 100000) is None

    def test_parse_object(self):
        assert text_parser.parse_object('{"k": "v"}') == {"k": "v"}
        assert text_parser.parse_object("[1, 2, 3]") == {}
        assert text_parser.parse_object("nothing here") == {}
