"""
API routes for triggering crawls.

Endpoints:
- POST /api/scrape          Run a crawl and return its summary when finished
- GET  /api/scrape/stream   Run a crawl and stream progress as Server-Sent Events

Stream events:
    event: log        data: {"message", "timestamp", "stage"?, "percentage"?}
    event: error      data: {"message"}
    event: complete   data: {"success", "jobCount", "keywords", "countries", "filename"?, "summary"}

The stream ends after the first complete or error event.

Running locally:
    cd backend
    uvicorn main:app --reload
"""

import json
import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from browser.pool import BrowserLaunchError
from config.settings import settings
from sourcing.targets import CrawlRequest
from workers.ingestion_worker import notify_failure, run_pipeline, stream_pipeline
from workers.types import ProgressEvent

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


# =============================================================================
# Pydantic Models
# =============================================================================

class ScrapeRequest(BaseModel):
    """Crawl trigger input. Both lists are comma-separated."""
    searchText: str
    locationText: str
    timeFilterSeconds: int = Field(default=settings.DEFAULT_TIME_FILTER_SECONDS, gt=0)


class ScrapeResponse(BaseModel):
    success: bool
    run_id: str
    keywords: list[str]
    countries: list[str]
    pages_fetched: int
    page_errors: int
    jobs_found: int
    duplicates: int
    invalid_urls: int
    total: int
    succeeded: int
    failed: int
    skipped_cached: int
    archived: int
    archive_saved: bool
    notified: int
    notify_failed: int
    filename: Optional[str] = None


def format_sse(event: ProgressEvent) -> str:
    return f"event: {event.event}\ndata: {json.dumps(event.data)}\n\n"


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/scrape", response_model=ScrapeResponse)
async def scrape(body: ScrapeRequest):
    """
    Run a full crawl synchronously.

    Returns 400 for an empty keyword or country list, 503 when the browser
    cannot be started and 500 for any other failure. Failures are also
    reported to the notification sink.
    """
    try:
        request = CrawlRequest.from_text(body.searchText, body.locationText, body.timeFilterSeconds)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        summary = await run_pipeline(request, location_text=body.locationText)
    except BrowserLaunchError as e:
        logger.error(f"Crawl could not start: {e}")
        await notify_failure(e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.exception("Crawl failed")
        await notify_failure(e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to scrape jobs: {e}")

    return ScrapeResponse(success=True, **summary.to_dict())


@router.get("/scrape/stream")
async def scrape_stream(
    searchText: str = Query(""),
    locationText: str = Query(""),
    timeFilterSeconds: int = Query(settings.DEFAULT_TIME_FILTER_SECONDS, gt=0),
):
    """
    Run a crawl and stream its progress.

    Invalid input is reported as a single error event rather than an HTTP
    error, so EventSource clients always get a readable message.
    """
    try:
        request = CrawlRequest.from_text(searchText, locationText, timeFilterSeconds)
    except ValueError as e:
        request = None
        validation_error = str(e)

    async def events() -> AsyncIterator[str]:
        if request is None:
            yield format_sse(ProgressEvent.error(validation_error))
            return
        async for event in stream_pipeline(request, location_text=locationText):
            yield format_sse(event)

    return StreamingResponse(events(), media_type="text/event-stream", headers=SSE_HEADERS)
