"""
Route handlers for starting, stopping and watching scrape runs.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from finder.models import ScrapeParams

from ..coordinator import RunCoordinator
from ..deps import get_coordinator, get_scrape_params
from ..models import MessageResponse, StartResponse, StatusOut
from ..progress import ProgressBroker, format_sse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["control"])


@router.api_route("/start", methods=["GET", "POST"], response_model=StartResponse)
async def start_scraper(
    params: ScrapeParams = Depends(get_scrape_params),
    coordinator: RunCoordinator = Depends(get_coordinator),
):
    """Start a scrape now; with interval > 0 keep re-running it."""
    busy = "Login" if coordinator.login_pending else "Scraper"
    if coordinator.start(params):
        return StartResponse(success=True, message="Scraper started", scheduled=coordinator.scheduled)
    if coordinator.scheduled:
        return StartResponse(
            success=True,
            message=f"{busy} already running, the schedule starts after it finishes",
            scheduled=True,
        )
    return StartResponse(success=False, message=f"{busy} already running, start skipped", scheduled=False)


@router.api_route("/stop", methods=["GET", "POST"], response_model=MessageResponse)
async def stop_scraper(coordinator: RunCoordinator = Depends(get_coordinator)):
    """Cancel the schedule and abort the browser of a running scrape."""
    await coordinator.stop()
    return MessageResponse(success=True, message="Scraper stopped")


@router.post("/login", response_model=MessageResponse)
async def start_login(coordinator: RunCoordinator = Depends(get_coordinator)):
    """Open a visible browser; cookies are saved once the Facebook session appears."""
    if not coordinator.login():
        return MessageResponse(success=False, message="A scrape or login is already running")
    return MessageResponse(success=True, message="Browser opened, log in to Facebook there")


@router.get("/status", response_model=StatusOut)
async def scraper_status(coordinator: RunCoordinator = Depends(get_coordinator)):
    return StatusOut(**coordinator.status())


async def event_stream(broker: ProgressBroker, keepalive: float):
    """Yield SSE frames: the current state first, then every new event."""
    q = broker.subscribe()
    try:
        yield format_sse(broker.last)
        while True:
            try:
                event = await asyncio.wait_for(q.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield format_sse(event)
    finally:
        broker.unsubscribe(q)


@router.get("/progress")
async def progress_stream(request: Request, coordinator: RunCoordinator = Depends(get_coordinator)):
    """Server-sent events with {stage, progress, message} updates."""
    keepalive = request.app.state.config.KEEPALIVE_SECONDS
    return StreamingResponse(
        event_stream(coordinator.broker, keepalive),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
