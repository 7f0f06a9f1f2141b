import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

from anthropic import APIError
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse

from retroriff.api.deps import get_harvester
from retroriff.core.config import get_settings
from retroriff.core.rate_limit import limiter
from retroriff.schemas.harvest import (
    EMPTY_CRITERIA_MESSAGE,
    CatalogSong,
    HarvesterResult,
    HarvestResponse,
    SearchCriteria,
)
from retroriff.services.catalog import CATALOG
from retroriff.services.harvester import Harvester, process_query
from retroriff.services.packaging import (
    build_archive,
    choose_delivery,
    estimate_total_size,
    generate_archive_filename,
)
from retroriff.services.prioritizer import (
    PrioritizationValidationError,
    PrioritizerUnavailableError,
)
from retroriff.services.session import (
    HARVEST_FAILED_MESSAGE,
    HarvestFailedError,
    HarvestSession,
    ProgressUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()

QUEUE_POLL_SECONDS = 1.0


def _content_disposition(filename: str) -> str:
    """Build an RFC 6266 Content-Disposition header value for a download."""
    safe_filename = filename.replace('"', '\\"')
    ascii_filename = quote(filename, safe="")
    return f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{ascii_filename}"


@router.get("/catalog", response_model=list[CatalogSong])
def get_catalog() -> list[CatalogSong]:
    """The fixed set of songs every harvest works through."""
    return [
        CatalogSong(id=e.id, title=e.title, artist=e.artist, popularity=e.popularity)
        for e in CATALOG
    ]


@router.post("", response_model=HarvestResponse)
@limiter.limit(lambda: f"{settings.harvest_rate_limit_per_minute}/minute")
async def harvest(
    request: Request,
    criteria: SearchCriteria,
    harvester: Harvester = Depends(get_harvester),
) -> HarvestResponse:
    """Run a full harvest and report whether the result should be zipped or listed."""
    try:
        result = await process_query(criteria, harvester)
    except (PrioritizationValidationError, PrioritizerUnavailableError, APIError) as e:
        logger.warning("Search prioritization failed: %s", e)
        raise HTTPException(status_code=502, detail=HARVEST_FAILED_MESSAGE) from e

    total_size = estimate_total_size(result.songs)
    return HarvestResponse(
        ai_result=result.ai_result,
        songs=result.songs,
        total_size_bytes=total_size,
        delivery=choose_delivery(total_size),
    )


@router.post("/archive")
@limiter.limit(lambda: f"{settings.archive_rate_limit_per_minute}/minute")
def download_archive(request: Request, result: HarvesterResult) -> StreamingResponse:
    """Package harvested songs as a zip download."""
    try:
        archive = build_archive(result.songs)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return StreamingResponse(
        iter([archive]),
        media_type="application/zip",
        headers={"Content-Disposition": _content_disposition(generate_archive_filename())},
    )


def _sse(event: str, data: Any) -> dict[str, str]:
    return {"event": event, "data": data if isinstance(data, str) else json.dumps(data)}


def _consume_result(task: asyncio.Task) -> None:
    # Client went away mid-harvest; the outcome is only logged
    if not task.cancelled() and task.exception() is not None:
        logger.info("Harvest finished after client disconnect: %s", task.exception())


async def _harvest_events(
    request: Request,
    criteria: SearchCriteria,
    harvester: Harvester,
    progress_interval: float,
) -> AsyncIterator[dict[str, str]]:
    """Yield progress events while a harvest runs, then its result or error.

    Progress comes from the session's cosmetic ticker, not from the harvester.
    """
    queue: asyncio.Queue[ProgressUpdate] = asyncio.Queue()
    session = HarvestSession(
        harvester.harvest,
        progress_interval=progress_interval,
        on_change=queue.put_nowait,
    )
    task = asyncio.create_task(session.submit(criteria))

    while not (task.done() and queue.empty()):
        if await request.is_disconnected():
            task.add_done_callback(_consume_result)
            return
        try:
            update = await asyncio.wait_for(queue.get(), timeout=QUEUE_POLL_SECONDS)
        except TimeoutError:
            continue
        yield _sse("progress", update.to_dict())

    try:
        response = task.result()
    except HarvestFailedError as e:
        yield _sse("error", {"detail": str(e)})
    else:
        yield _sse("result", response.model_dump_json(by_alias=True))


@router.get("/stream")
async def harvest_stream(
    request: Request,
    artists: str | None = Query(default=None, max_length=200),
    genre: str | None = Query(default=None, max_length=200),
    year: str | None = Query(default=None, max_length=200),
    harvester: Harvester = Depends(get_harvester),
) -> EventSourceResponse:
    """Server-sent events for a harvest.

    Event types:
    - progress: {status, percent, text}
    - result: HarvestResponse JSON
    - error: {detail}
    """
    try:
        criteria = SearchCriteria(artists=artists, genre=genre, year=year)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=EMPTY_CRITERIA_MESSAGE) from e

    return EventSourceResponse(
        _harvest_events(request, criteria, harvester, settings.progress_interval_seconds),
        media_type="text/event-stream",
        headers={"X-Accel-Buffering": "no"},
    )
