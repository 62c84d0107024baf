"""
Extraction oracle client.

Sends a (system prompt, user prompt) pair to an Anthropic-style Messages API
and returns the reply text, any JSON payload recovered from it, and usage.
Failures are raised once; the client never retries.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from ..config import config, AppConfig
from ..exceptions import OracleConfigError, OracleResponseError, OracleTransportError
from ..models.page import TokenUsage
from ..utils.logger import get_oracle_logger
from .text_parser import StructuredTextParser, text_parser

logger = get_oracle_logger()


@dataclass
class OracleReply:
    """Raw oracle answer plus what could be recovered from it."""

    text: str
    structured: Optional[Any] = None
    usage: Optional[TokenUsage] = None


class ExtractionOracleClient:
    """
    Async client for the extraction oracle with:
    - Connection pooling through a shared aiohttp session
    - Optional web search tool so the oracle can fetch pages itself
    - Structured payload recovery on every reply
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        app_config: Optional[AppConfig] = None,
        parser: Optional[StructuredTextParser] = None,
    ):
        """
        Initialize the oracle client.

        Args:
            api_key: API key; defaults to the configured ANTHROPIC_API_KEY
            app_config: Configuration to use instead of the global one
            parser: Parser for JSON payloads embedded in replies
        """
        self.config = app_config or config
        self.api_key = api_key or self.config.API_KEY
        self.parser = parser or text_parser
        self.timeout = aiohttp.ClientTimeout(
            total=self.config.oracle.REQUEST_TIMEOUT,
            connect=self.config.oracle.CONNECT_TIMEOUT,
        )
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the pooled aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _build_payload(self, system_prompt: str, user_prompt: str) -> dict:
        oracle_config = self.config.oracle
        payload = {
            "model": oracle_config.MODEL,
            "max_tokens": oracle_config.MAX_TOKENS,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if oracle_config.ENABLE_WEB_SEARCH:
            payload["tools"] = [{"type": oracle_config.WEB_SEARCH_TOOL, "name": "web_search"}]
        return payload

    async def complete(self, system_prompt: str, user_prompt: str) -> OracleReply:
        """
        Send one request to the oracle.

        Args:
            system_prompt: Instructions for the oracle
            user_prompt: The concrete task

        Returns:
            OracleReply with text, optional structured payload and usage

        Raises:
            OracleConfigError: No API key configured
            OracleResponseError: Non-2xx answer
            OracleTransportError: Network failure or timeout
        """
        if not self.api_key:
            raise OracleConfigError("ANTHROPIC_API_KEY")

        session = await self._get_session()
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.config.oracle.API_VERSION,
        }
        payload = self._build_payload(system_prompt, user_prompt)

        start = time.perf_counter()
        try:
            async with session.post(self.config.oracle.API_URL, json=payload, headers=headers) as response:
                if response.status >= 300:
                    body = await response.text()
                    logger.warning(f"[ORACLE] Response {response.status} after {(time.perf_counter() - start):.2f}s")
                    raise OracleResponseError(response.status, body[:500])
                data = await response.json()
        except asyncio.TimeoutError:
            logger.warning("[ORACLE] Request timed out")
            raise OracleTransportError("request timed out")
        except aiohttp.ClientError as e:
            logger.warning(f"[ORACLE] Client error: {e}")
            raise OracleTransportError(str(e)) from e
        except ValueError as e:
            logger.warning(f"[ORACLE] Unreadable response body: {e}")
            raise OracleTransportError(f"unreadable response body: {e}") from e

        logger.debug(f"[ORACLE] Reply received in {(time.perf_counter() - start):.2f}s")
        return self.parse_response(data)

    def parse_response(self, data: dict) -> OracleReply:
        """Turn a Messages API response body into an OracleReply."""
        blocks = data.get("content") or []
        text = "\n\n".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = TokenUsage(
                input_units=raw_usage.get("input_tokens", 0) or 0,
                output_units=raw_usage.get("output_tokens", 0) or 0,
            )

        return OracleReply(text=text, structured=self.parser.parse(text), usage=usage)


def create_oracle_client(api_key: Optional[str] = None) -> ExtractionOracleClient:
    """
    Factory function to create an oracle client.

    Args:
        api_key: Optional API key override

    Returns:
        ExtractionOracleClient instance
    """
    return ExtractionOracleClient(api_key=api_key)
