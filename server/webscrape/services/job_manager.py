"""
Job manager for crawl and research orchestration.

Handles job creation, background execution, abort, status tracking, result
retrieval and export for the HTTP API. Jobs live in memory only.
"""

import uuid
import asyncio
from typing import Callable, Optional, Union

from ..config import config
from ..exceptions import (
    JobNotCompletedError,
    JobNotFoundError,
    NoPagesExtractedError,
    WebScrapeError,
)
from ..models.crawl import CrawlRequest, CrawlResult, CrawlScope
from ..models.export import ExportArtifact, ExportFormat
from ..models.job import JobKind, JobStatus
from ..models.page import PageRecord, utc_now
from ..models.progress import ProgressEvent, ProgressKind, RunState
from ..models.research import ResearchKind, ResearchRequest, ResearchResult
from ..utils.logger import get_crawler_logger
from .crawler import CrawlScheduler
from .exporter import ExportSerializer, export_serializer
from .extractor import Oracle, PageExtractor
from .oracle import create_oracle_client
from .rate_limiter import RequestPacer
from .research import ResearchPipeline
from .run_context import RunContext
from .websocket import ConnectionManager, connection_manager

# Initialize logger
logger = get_crawler_logger()

JobRequest = Union[CrawlRequest, ResearchRequest]
JobResult = Union[CrawlResult, ResearchResult]


class JobManager:
    """
    Manages crawl and research jobs with in-memory storage.

    Features:
    - Job creation and background execution
    - Cooperative abort through the job's RunContext
    - Live progress relayed to WebSocket subscribers
    - Bounded history, newest first
    - Result retrieval and export
    """

    def __init__(
        self,
        oracle_factory: Optional[Callable[[], Oracle]] = None,
        request_delay: Optional[float] = None,
        notifier: Optional[ConnectionManager] = None,
        serializer: Optional[ExportSerializer] = None,
    ):
        """
        Initialize the job manager.

        Args:
            oracle_factory: Builds one oracle per job; defaults to the HTTP client
            request_delay: Inter-request delay override for every job
            notifier: WebSocket manager receiving progress and final states
            serializer: Export serializer
        """
        self.oracle_factory = oracle_factory or create_oracle_client
        self.request_delay = request_delay
        self.notifier = notifier or connection_manager
        self.serializer = serializer or export_serializer

        self._jobs: dict[str, JobStatus] = {}
        self._requests: dict[str, JobRequest] = {}
        self._contexts: dict[str, RunContext] = {}
        self._results: dict[str, JobResult] = {}
        self._pages: dict[str, list[PageRecord]] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Creation and execution
    # ------------------------------------------------------------------

    def create_crawl_job(self, request: CrawlRequest) -> str:
        """
        Create a new crawl job.

        Args:
            request: Crawl request parameters

        Returns:
            Unique job ID
        """
        job_id = self._register(JobStatus(
            job_id=self._new_id(),
            kind=JobKind.CRAWL,
            target=str(request.seed_url),
            mode=request.mode,
            pages_total=1 if request.scope == CrawlScope.SINGLE else request.max_pages,
        ), request)
        logger.info(
            f"[JOB] Created crawl job {job_id}: {request.seed_url} "
            f"(scope={request.scope.value}, max_pages={request.max_pages}, mode={request.mode.value})"
        )
        return job_id

    def create_research_job(self, request: ResearchRequest) -> str:
        """
        Create a new research job.

        Args:
            request: Research query, or a URL to scrape directly

        Returns:
            Unique job ID
        """
        job_id = self._register(JobStatus(
            job_id=self._new_id(),
            kind=JobKind.RESEARCH,
            target=request.query.strip(),
            mode=request.mode,
        ), request)
        logger.info(f"[JOB] Created research job {job_id}: {request.query[:80]}")
        return job_id

    def _new_id(self) -> str:
        job_id = str(uuid.uuid4())[:8]
        while job_id in self._jobs:
            job_id = str(uuid.uuid4())[:8]
        return job_id

    def _register(self, status: JobStatus, request: JobRequest) -> str:
        job_id = status.job_id
        self._jobs[job_id] = status
        self._requests[job_id] = request
        self._contexts[job_id] = RunContext()
        self._trim_history()
        return job_id

    def _trim_history(self) -> None:
        """Forget the oldest finished jobs beyond the history limit."""
        limit = config.history.MAX_JOBS
        finished = [s for s in self._jobs.values() if not s.is_active]
        excess = len(self._jobs) - limit
        for status in finished[:max(excess, 0)]:
            self.delete_job(status.job_id)

    async def start_job(self, job_id: str) -> None:
        """
        Start executing a job in the background.

        Raises:
            JobNotFoundError: Unknown job ID
        """
        self.get_status(job_id)
        self._tasks[job_id] = asyncio.create_task(self.run_job(job_id))

    async def run_job(self, job_id: str) -> None:
        """
        Execute a job to completion and record its outcome.

        Args:
            job_id: Job ID to execute
        """
        status = self.get_status(job_id)
        request = self._requests[job_id]
        context = self._contexts[job_id]

        async def on_progress(event: ProgressEvent):
            self._track(status, event)
            await self.notifier.broadcast_progress(job_id, event)

        context.subscribe(on_progress)
        status.state = RunState.RUNNING
        logger.info(f"[JOB] Starting job {job_id}: {status.target[:80]}")

        oracle = self.oracle_factory()
        pacer = RequestPacer(self.request_delay)
        try:
            if isinstance(request, CrawlRequest):
                scheduler = CrawlScheduler(PageExtractor(oracle), pacer=pacer)
                result = await scheduler.run(
                    str(request.seed_url), request.scope, request.max_pages, context, request.mode,
                )
            else:
                pipeline = ResearchPipeline(oracle, pacer=pacer, max_sources=request.max_sources)
                result = await pipeline.execute(request.query, context, request.mode)

            self._results[job_id] = result
            self._pages[job_id] = list(result.pages)
            status.state = result.state
            status.finished_at = utc_now()
            logger.info(f"[JOB] {status.state.value} job {job_id}: {len(result.pages)} pages")

            await self.notifier.broadcast_job_completed(job_id, status.model_dump(mode="json"))

        except NoPagesExtractedError as e:
            self._pages[job_id] = list(e.pages)
            self._fail(status, e.message)
            await self.notifier.broadcast_job_failed(job_id, e.message)

        except WebScrapeError as e:
            self._pages.setdefault(job_id, [])
            self._fail(status, e.message)
            await self.notifier.broadcast_job_failed(job_id, e.message)

        except Exception as e:
            logger.error(f"[JOB] Unexpected error in job {job_id}: {e}", exc_info=True)
            self._pages.setdefault(job_id, [])
            self._fail(status, str(e))
            await self.notifier.broadcast_job_failed(job_id, str(e))

        finally:
            close = getattr(oracle, "close", None)
            if close is not None:
                await close()

    @staticmethod
    def _track(status: JobStatus, event: ProgressEvent) -> None:
        if event.kind == ProgressKind.PHASE:
            status.phase = event.phase
        elif event.kind == ProgressKind.PAGE:
            status.pages_done = event.current or status.pages_done + 1
            status.pages_total = event.total
            if event.error:
                status.pages_failed += 1
        else:
            status.last_message = event.message

    @staticmethod
    def _fail(status: JobStatus, error: str) -> None:
        status.state = RunState.FAILED
        status.error = error
        status.finished_at = utc_now()
        logger.error(f"[JOB] Failed job {status.job_id}: {error}")

    def abort_job(self, job_id: str) -> bool:
        """
        Request cooperative cancellation of a pending or running job.

        Returns:
            True if the abort was requested, False if the job already finished

        Raises:
            JobNotFoundError: Unknown job ID
        """
        status = self.get_status(job_id)
        if not status.is_active:
            return False
        self._contexts[job_id].abort()
        logger.info(f"[JOB] Abort requested for job {job_id}")
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self, job_id: str) -> JobStatus:
        """
        Get current status of a job.

        Raises:
            JobNotFoundError: Unknown job ID
        """
        status = self._jobs.get(job_id)
        if status is None:
            raise JobNotFoundError(job_id)
        return status

    def get_result(self, job_id: str) -> Optional[JobResult]:
        """Get the result of a completed or aborted job; None for failed jobs."""
        status = self.get_status(job_id)
        if status.is_active:
            raise JobNotCompletedError(job_id, status.state.value)
        return self._results.get(job_id)

    def get_pages(self, job_id: str) -> list[PageRecord]:
        """Records produced so far; failed jobs keep their error records."""
        self.get_status(job_id)
        return list(self._pages.get(job_id, []))

    def export(self, job_id: str, fmt: Union[ExportFormat, str]) -> ExportArtifact:
        """
        Export a finished job's records.

        Raises:
            JobNotFoundError: Unknown job ID
            JobNotCompletedError: Job still pending or running
            InvalidFormatError: Unknown format
            ExportError: Job has no records
        """
        result = self.get_result(job_id)
        pages = self.get_pages(job_id)

        summary = None
        topic = None
        if isinstance(result, ResearchResult) and result.kind == ResearchKind.RESEARCH:
            summary = result.synthesis
            topic = result.goal

        return self.serializer.serialize(pages, fmt, summary=summary, topic=topic)

    def list_jobs(self) -> list[JobStatus]:
        """List jobs, newest first."""
        return list(reversed(self._jobs.values()))

    def delete_job(self, job_id: str) -> bool:
        """Delete a job and its results, cancelling it if still running."""
        if job_id not in self._jobs:
            return False
        del self._jobs[job_id]
        self._requests.pop(job_id, None)
        self._contexts.pop(job_id, None)
        self._results.pop(job_id, None)
        self._pages.pop(job_id, None)
        task = self._tasks.pop(job_id, None)
        if task and not task.done():
            task.cancel()
        return True


# Global job manager instance
job_manager = JobManager()
