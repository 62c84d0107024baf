"""
Per-run context: cooperative abort flag and ordered progress events.
"""

from typing import Awaitable, Callable, Optional

from ..models.progress import ProgressEvent, ProgressKind, ResearchPhase
from ..utils.logger import get_crawler_logger

logger = get_crawler_logger()

ProgressListener = Callable[[ProgressEvent], Awaitable[None]]


class RunContext:
    """
    State owned by exactly one active run.

    The abort flag is polled by the crawl scheduler and the research
    pipeline between iterations and phases; an in-flight oracle call
    always completes. Events are appended and delivered in emission order.
    """

    def __init__(self, listeners: Optional[list[ProgressListener]] = None):
        self._aborted = False
        self.events: list[ProgressEvent] = []
        self._listeners: list[ProgressListener] = list(listeners or [])

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        """Request cooperative cancellation. Cannot be undone."""
        self._aborted = True

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    @property
    def status_messages(self) -> list[str]:
        return [e.message for e in self.events if e.kind == ProgressKind.STATUS]

    @property
    def phases(self) -> list[ResearchPhase]:
        return [e.phase for e in self.events if e.kind == ProgressKind.PHASE]

    async def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)
        for listener in self._listeners:
            try:
                await listener(event)
            except Exception as e:
                logger.debug(f"[PROGRESS] Listener failed: {e}")

    async def emit_status(self, message: str) -> None:
        await self.emit(ProgressEvent(kind=ProgressKind.STATUS, message=message))

    async def emit_phase(self, phase: ResearchPhase, message: str = "") -> None:
        await self.emit(ProgressEvent(kind=ProgressKind.PHASE, phase=phase, message=message or phase.value))

    async def emit_page(self, url: str, error: bool, current: int, total: int) -> None:
        await self.emit(ProgressEvent(
            kind=ProgressKind.PAGE,
            url=url,
            error=error,
            current=current,
            total=total,
            message=f"{'✗' if error else '✓'} {url}",
        ))
