"""
Inter-request pacing service.

Keeps oracle-backed page extraction polite by sleeping a fixed delay
between consecutive pages of a run.
"""

import asyncio
import time
from typing import Optional

from ..config import config


class RequestPacer:
    """
    Fixed-delay pacer used between page extractions.

    Callers only pace when another page follows, so no delay is spent
    after the last page of a run.
    """

    def __init__(self, delay: Optional[float] = None):
        """
        Initialize the pacer.

        Args:
            delay: Seconds between requests; defaults to the configured delay
        """
        self.delay = config.rate_limit.REQUEST_DELAY if delay is None else max(delay, 0.0)
        self.total_waited = 0.0
        self.waits = 0

    async def wait(self) -> float:
        """
        Sleep the configured delay.

        Returns:
            Time waited in seconds
        """
        if self.delay <= 0:
            return 0.0
        start = time.perf_counter()
        await asyncio.sleep(self.delay)
        waited = time.perf_counter() - start
        self.total_waited += waited
        self.waits += 1
        return waited

    def get_stats(self) -> dict:
        """Get pacing statistics."""
        return {
            "delay": self.delay,
            "waits": self.waits,
            "total_waited": round(self.total_waited, 3),
        }
