from fastapi import APIRouter, HTTPException, BackgroundTasks, WebSocket, WebSocketDisconnect
from fastapi.responses import Response
import asyncio

from ..exceptions import JobNotFoundError, WebScrapeError
from ..models.crawl import CrawlRequest
from ..models.research import ResearchRequest
from ..services.job_manager import job_manager
from ..services.websocket import connection_manager
from ..utils.logger import get_api_logger

# Initialize logger
logger = get_api_logger()

router = APIRouter(prefix="/api", tags=["scrape"])


def to_http_error(error: WebScrapeError) -> HTTPException:
    """Map domain exceptions onto HTTP status codes."""
    status_code = 404 if isinstance(error, JobNotFoundError) else 400
    return HTTPException(status_code=status_code, detail=error.message)


@router.post("/crawl")
async def start_crawl(request: CrawlRequest, background_tasks: BackgroundTasks):
    """
    Start a new crawl job.

    Args:
        request: Crawl request with seed_url, scope, max_pages, mode

    Returns:
        Job ID for tracking progress
    """
    logger.info(f"[API] POST /crawl - seed_url={request.seed_url}, scope={request.scope.value}")

    job_id = job_manager.create_crawl_job(request)
    background_tasks.add_task(job_manager.start_job, job_id)

    logger.info(f"[API] Job created: {job_id}")

    return {
        "job_id": job_id,
        "message": "Crawl job started",
        "seed_url": str(request.seed_url),
        "scope": request.scope.value,
        "max_pages": request.max_pages,
        "mode": request.mode.value,
    }


@router.post("/research")
async def start_research(request: ResearchRequest, background_tasks: BackgroundTasks):
    """
    Start a new research job.

    A query that looks like a URL is scraped directly; anything else runs
    the plan, discover, scrape and synthesize phases.
    """
    logger.info(f"[API] POST /research - query={request.query[:80]!r}")

    job_id = job_manager.create_research_job(request)
    background_tasks.add_task(job_manager.start_job, job_id)

    logger.info(f"[API] Job created: {job_id}")

    return {
        "job_id": job_id,
        "message": "Research job started",
        "query": request.query,
        "max_sources": request.max_sources,
        "mode": request.mode.value,
    }


@router.get("/status/{job_id}")
async def get_status(job_id: str):
    """
    Get current status of a job.

    Returns:
        Current job state, phase, page counters and last status line
    """
    try:
        status = job_manager.get_status(job_id)
    except WebScrapeError as e:
        raise to_http_error(e)

    return status.model_dump(mode="json")


@router.get("/results/{job_id}")
async def get_results(job_id: str):
    """
    Get results of a finished job.

    Failed jobs return their error and whatever records were attempted.
    """
    try:
        status = job_manager.get_status(job_id)
        result = job_manager.get_result(job_id)
    except WebScrapeError as e:
        raise to_http_error(e)

    if result is None:
        return {
            "job_id": job_id,
            "kind": status.kind.value,
            "state": status.state.value,
            "error": status.error,
            "pages": [page.model_dump(mode="json") for page in job_manager.get_pages(job_id)],
        }

    return {
        "job_id": job_id,
        "kind": status.kind.value,
        **result.model_dump(mode="json"),
    }


@router.post("/jobs/{job_id}/abort")
async def abort_job(job_id: str):
    """Request cooperative cancellation of a running job."""
    try:
        requested = job_manager.abort_job(job_id)
    except WebScrapeError as e:
        raise to_http_error(e)

    if not requested:
        raise HTTPException(status_code=400, detail=f"Job {job_id} already finished")
    return {"message": f"Abort requested for job {job_id}"}


@router.get("/export/{job_id}/{format}")
async def export_job(job_id: str, format: str):
    """
    Download a job's records in one of: json, csv, markdown, txt, sql, html.
    """
    try:
        artifact = job_manager.export(job_id, format)
    except WebScrapeError as e:
        raise to_http_error(e)

    logger.info(f"[API] Export {job_id} as {format}: {artifact.filename}")

    return Response(
        content=artifact.content,
        media_type=artifact.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.filename}"'
        }
    )


@router.get("/jobs")
async def list_jobs():
    """
    List recent jobs, newest first.
    """
    jobs = job_manager.list_jobs()
    return {
        "jobs": [
            {
                "job_id": job.job_id,
                "kind": job.kind.value,
                "state": job.state.value,
                "target": job.target,
                "pages_done": job.pages_done,
                "created_at": job.created_at.isoformat(),
            }
            for job in jobs
        ],
        "total": len(jobs),
    }


@router.delete("/jobs/{job_id}")
async def delete_job(job_id: str):
    if job_manager.delete_job(job_id):
        return {"message": f"Job {job_id} deleted"}
    raise HTTPException(status_code=404, detail=f"Job {job_id} not found")


@router.websocket("/ws/{job_id}")
async def websocket_endpoint(websocket: WebSocket, job_id: str):
    """
    WebSocket endpoint for real-time job updates.

    Messages sent:
    - initial_status: Job status at connection time
    - progress: One run progress event (status line, phase or page)
    - job_completed: Final status when the job completes or is aborted
    - job_failed: Error information if the job fails
    """
    await connection_manager.connect(websocket, job_id)

    try:
        try:
            status = job_manager.get_status(job_id)
        except JobNotFoundError:
            status = None
        if status:
            await websocket.send_json({
                "type": "initial_status",
                "job_id": job_id,
                "data": status.model_dump(mode="json"),
            })

        # Keep connection alive and listen for client messages
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=30.0)
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                try:
                    await websocket.send_json({"type": "heartbeat"})
                except Exception:
                    break

    except WebSocketDisconnect:
        logger.info(f"[WS] Client disconnected from job {job_id}")
    except Exception as e:
        logger.error(f"[WS] Error in websocket for job {job_id}: {e}")
    finally:
        await connection_manager.disconnect(websocket)
