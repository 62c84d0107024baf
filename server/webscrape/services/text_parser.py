"""
Recovery of JSON payloads embedded in oracle free-text replies.
"""

import json
import re
from typing import Any, Optional


FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
LEADING_PROSE = re.compile(r"^[^{\[]*")
TRAILING_PROSE = re.compile(r"[^}\]]*$")


class StructuredTextParser:
    """
    Pulls a JSON object or array out of prose.

    A fenced ```json block wins. Otherwise everything before the first
    brace/bracket and after the last one is trimmed and the remainder is
    parsed. Failures yield None, never an exception.
    """

    def parse(self, text: Optional[str]) -> Optional[Any]:
        if not text:
            return None

        match = FENCED_JSON.search(text)
        if match:
            return self._loads(match.group(1).strip())

        candidate = TRAILING_PROSE.sub("", LEADING_PROSE.sub("", text, count=1), count=1)
        if candidate.startswith(("{", "[")):
            return self._loads(candidate)
        return None

    def parse_object(self, text: Optional[str]) -> dict:
        """Parse, keeping the result only if it is a JSON object."""
        value = self.parse(text)
        return value if isinstance(value, dict) else {}

    @staticmethod
    def _loads(payload: str) -> Optional[Any]:
        try:
            return json.loads(payload)
        except (json.JSONDecodeError, RecursionError):
            return None


# Global parser instance
text_parser = StructuredTextParser()
