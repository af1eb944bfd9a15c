"""
Ingestion Worker (crawl pipeline orchestrator)

Runs one crawl request end to end. Invoked synchronously by the API
(POST /api/scrape), as an event stream (GET /api/scrape/stream), or as a
Lambda handler.

Event format (Lambda):
{
    "searchText": "CFA, ACCA",
    "locationText": "United States, United Kingdom",
    "timeFilterSeconds": 86400      // Optional
}

Workflow:
1. Generate crawl targets (keywords x countries x pages)
2. CRAWL PHASE: list pages per (keyword, country) group, early exit on empty page
3. In-run dedup by normalized URL (invalid URLs dropped)
4. ENRICH PHASE: detail pages in concurrent batches through the session pool
5. Persistent dedup: skip jobs already delivered (48h URL cache); archive
   successful jobs, the URL index skipping ones archived before
6. DELIVERY PHASE: xlsx export sent through the rate-limited dispatcher;
   delivered URLs go into the URL cache
7. Flush URL cache and archive once

Only a browser that fails to launch aborts the run; the sink then gets a
"LinkedIn Job Scrape Failed" notice. Storage problems degrade (archive not
written), delivery problems are counted.

Log Format:
All logs use prefix [IngestionWorker:run_id=X] for CloudWatch filtering.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional

from analysis.job_analyzer import analyze_job
from browser.pool import BrowserManager, SessionPool
from cache.run_cache import RunCache
from cache.url_cache import UrlCache
from config.settings import settings
from export.spreadsheet import build_export_caption, build_export_filename, create_workbook
from models.job import JobRecord
from notify.dispatcher import Notification, NotificationSink, RateLimitedDispatcher
from notify.telegram import TelegramSink
from sourcing.targets import CrawlRequest
from storage.archive_store import StatisticsArchiveStore
from storage.object_store import ObjectStore
from utils.urls import is_valid_job_url
from utils.worker_logging import IngestionLogContext
from workers.crawler_worker import FetchPage, crawl_targets, make_browser_fetcher
from workers.extractor_worker import DetailEnrichmentBatcher
from workers.types import CrawlSummary, EnrichmentResult, ProgressEvent

logger = logging.getLogger()
logger.setLevel(logging.INFO)

EXPORT_KEY = "export"

# Progress percentages reported at phase boundaries
CRAWL_SPAN = (0, 50)
ENRICH_SPAN = (50, 90)

Enrich = Callable[[list[JobRecord]], Awaitable[list[EnrichmentResult]]]
Emit = Callable[[ProgressEvent], None]


def new_run_id() -> str:
    return uuid.uuid4().hex[:8]


def _span(span: tuple[int, int], done: int, total: int) -> int:
    low, high = span
    return low + int((high - low) * done / max(total, 1))


# =============================================================================
# In-run Dedup
# =============================================================================

def dedupe_in_run(records: list[JobRecord], run_cache: RunCache) -> tuple[list[JobRecord], int, int]:
    """
    Drop invalid and repeated URLs; first occurrence wins.

    Returns:
        (unique_records, duplicate_count, invalid_url_count)
    """
    unique = []
    duplicates = 0
    invalid = 0
    for record in records:
        if not is_valid_job_url(record.url):
            invalid += 1
            continue
        if not run_cache.add(record.url):
            duplicates += 1
            continue
        unique.append(record)
    return unique, duplicates, invalid


# =============================================================================
# Phases
# =============================================================================

async def _in_executor(fn, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, fn, *args)


def _archive_results(
    archive: StatisticsArchiveStore,
    results: list[EnrichmentResult],
    extracted_at: datetime,
) -> int:
    """Queue every successfully enriched job. Returns how many were new to the archive."""
    added = 0
    for result in results:
        if result.is_ok and archive.add_job(analyze_job(result.record, extracted_at)):
            added += 1
    return added


async def _deliver(
    records: list[JobRecord],
    request: CrawlRequest,
    location_text: str,
    sink: NotificationSink,
    summary: CrawlSummary,
    log: IngestionLogContext,
    sleep,
) -> list[str]:
    """
    Send the export (or a no-jobs notice).

    Returns the URLs of successfully enriched jobs in a delivered export.
    Error rows are left out so those jobs are offered again next run.
    """
    dispatcher = RateLimitedDispatcher(
        sink,
        delay_seconds=settings.DISPATCH_DELAY_SECONDS,
        sleep=sleep,
        run_id=summary.run_id,
        listener=log.listener,
    )

    if not records:
        text = (
            f"🔍 LinkedIn Job Scrape Complete\n\nSearch: {', '.join(request.keywords)}\n"
            f"Locations: {location_text}\n\nℹ️ No new jobs found matching the criteria."
        )
        result = await dispatcher.dispatch([Notification(key="no-jobs", text=text)])
        summary.notified, summary.notify_failed = result.sent, result.failed
        return []

    log.log_info(f"Creating Excel file with {len(records)} jobs")
    content = create_workbook(records)
    summary.filename = build_export_filename(records)
    caption = build_export_caption(records, location_text)

    result = await dispatcher.dispatch([
        Notification(key=EXPORT_KEY, text=caption, content=content, filename=summary.filename),
    ])
    summary.notified, summary.notify_failed = result.sent, result.failed
    if EXPORT_KEY in result.delivered_keys:
        return [record.url for record in records if not record.is_error()]
    return []


async def notify_failure(
    error: BaseException,
    sink: Optional[NotificationSink] = None,
    sleep=asyncio.sleep,
    run_id: Optional[str] = None,
) -> bool:
    """
    Tell the notification sink that a crawl failed.

    A failed notice is logged and never raised. Returns True when it was sent.
    """
    run_id = run_id or new_run_id()
    if sink is None:
        sink = TelegramSink.from_settings()
    dispatcher = RateLimitedDispatcher(
        sink,
        delay_seconds=settings.DISPATCH_DELAY_SECONDS,
        sleep=sleep,
        run_id=run_id,
    )
    text = f"❌ LinkedIn Job Scrape Failed\n\nError: {error}"
    result = await dispatcher.dispatch([Notification(key="failure", text=text)])
    if result.failed:
        logger.error(f"[IngestionWorker:run_id={run_id}] Failed to send the failure notice")
    return result.sent == 1


async def run_pipeline(
    request: CrawlRequest,
    run_id: Optional[str] = None,
    location_text: str = "",
    emit: Optional[Emit] = None,
    browser: Optional[BrowserManager] = None,
    archive: Optional[StatisticsArchiveStore] = None,
    url_cache: Optional[UrlCache] = None,
    sink: Optional[NotificationSink] = None,
    sleep=asyncio.sleep,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    _fetch_page: Optional[FetchPage] = None,
    _enrich: Optional[Enrich] = None,
) -> CrawlSummary:
    """
    Run one crawl request through every phase.

    Args:
        request: Keywords x countries
        run_id: Log/run identifier (generated when omitted)
        location_text: Raw location input, echoed in notifications
        emit: Receives progress events (streaming trigger)
        browser / archive / url_cache / sink: Collaborators, built from settings when omitted
        sleep: Awaitable sleep for all pacing, replaced in tests
        _fetch_page / _enrich: Replace the browser-driven phases (tests)

    Returns:
        CrawlSummary with total / succeeded / failed counts

    Raises:
        BrowserLaunchError: If the browser cannot be started
    """
    run_id = run_id or new_run_id()
    started_at = now()
    listener = (lambda level, message: emit(ProgressEvent.log(message))) if emit else None
    log = IngestionLogContext(run_id, listener)
    summary = CrawlSummary(run_id=run_id, keywords=list(request.keywords), countries=list(request.countries))
    location_text = location_text or ", ".join(request.countries)

    def progress(message: str, stage: str, percentage: int) -> None:
        logger.info(f"[IngestionWorker:run_id={run_id}] {message}")
        if emit is not None:
            emit(ProgressEvent.log(message, stage=stage, percentage=percentage))

    store = None
    if archive is None or url_cache is None:
        store = ObjectStore.from_settings()
    if archive is None:
        archive = StatisticsArchiveStore(store)
    if url_cache is None:
        url_cache = UrlCache.from_settings(store)
    if sink is None:
        sink = TelegramSink.from_settings()

    log.log_info(
        f"Starting crawl for {len(request.keywords)} keywords x {len(request.countries)} countries "
        f"(last {request.time_filter_seconds}s)"
    )

    needs_browser = _fetch_page is None or _enrich is None
    owns_browser = needs_browser and browser is None
    if needs_browser:
        browser = browser or BrowserManager()
        if owns_browser:
            await browser.start()

    try:
        # ===================================================================
        # CRAWL PHASE
        # ===================================================================
        fetch_page = _fetch_page or make_browser_fetcher(browser, request.time_filter_seconds)
        crawl = await crawl_targets(
            request,
            fetch_page,
            run_id,
            sleep=sleep,
            listener=listener,
            on_group=lambda i, n, key: progress(
                f"Scraping {key} ({i + 1}/{n})", "scraping", _span(CRAWL_SPAN, i, n)),
        )
        summary.pages_fetched = crawl.pages_fetched
        summary.page_errors = crawl.page_errors
        summary.jobs_found = len(crawl.records)

        for record in crawl.records:
            record.extracted_date = started_at.isoformat()
        unique, summary.duplicates, summary.invalid_urls = dedupe_in_run(crawl.records, RunCache())
        summary.total = len(unique)
        progress(
            f"Found {summary.jobs_found} jobs, {summary.total} unique "
            f"({summary.duplicates} duplicates, {summary.invalid_urls} invalid URLs)",
            "dedup", CRAWL_SPAN[1],
        )

        # ===================================================================
        # ENRICH PHASE
        # ===================================================================
        if _enrich is not None:
            results = await _enrich(unique)
        else:
            pool = SessionPool(browser, settings.ENRICH_POOL_SIZE)
            try:
                await pool.open()
                batcher = DetailEnrichmentBatcher(pool, run_id, sleep=sleep, listener=listener)
                results = await batcher.enrich(
                    unique,
                    on_batch=lambda b, n, s: progress(
                        f"Batch {b}/{n}: {s.succeeded} ok, {s.failed} failed",
                        "enriching", _span(ENRICH_SPAN, b, n)),
                )
            finally:
                await pool.close()
    finally:
        if owns_browser:
            await browser.close()

    summary.succeeded = sum(1 for r in results if r.is_ok)
    summary.failed = len(results) - summary.succeeded
    log.log_info(f"Enrichment done: {summary.succeeded} succeeded, {summary.failed} failed")

    # =======================================================================
    # PERSISTENT DEDUP + ARCHIVE
    # =======================================================================
    await _in_executor(url_cache.load)
    await _in_executor(archive.load)

    deliverable = []
    for result in results:
        if url_cache.has(result.record.url):
            summary.skipped_cached += 1
        else:
            deliverable.append(result.to_output_record())
    summary.archived = _archive_results(archive, results, started_at)
    log.log_info(
        f"{summary.skipped_cached} already delivered in the last {settings.URL_CACHE_TTL_HOURS}h, "
        f"{summary.archived} new to the archive"
    )

    # =======================================================================
    # DELIVERY PHASE
    # =======================================================================
    progress("Sending results", "delivering", ENRICH_SPAN[1])
    delivered_urls = await _deliver(deliverable, request, location_text, sink, summary, log, sleep)
    url_cache.add_many(delivered_urls)

    await _in_executor(url_cache.save)
    summary.archive_saved = await _in_executor(archive.save)

    log.log_info(
        f"Done: {summary.total} jobs, {summary.succeeded} succeeded, {summary.failed} failed, "
        f"{len(delivered_urls)} delivered, archive saved={summary.archive_saved}"
    )
    return summary


async def stream_pipeline(request: CrawlRequest, **kwargs) -> AsyncIterator[ProgressEvent]:
    """
    Run the pipeline and yield its progress as events.

    Yields log events while running, then exactly one complete or error
    event, after which the stream ends.
    """
    queue: asyncio.Queue = asyncio.Queue()
    yield ProgressEvent.log("LinkedIn job scraping started", stage="initialization", percentage=0)

    async def runner() -> None:
        try:
            summary = await run_pipeline(request, emit=queue.put_nowait, **kwargs)
        except Exception as e:
            logger.exception("Pipeline failed")
            await notify_failure(
                e,
                sink=kwargs.get("sink"),
                sleep=kwargs.get("sleep", asyncio.sleep),
                run_id=kwargs.get("run_id"),
            )
            queue.put_nowait(ProgressEvent.error(str(e)))
        else:
            queue.put_nowait(ProgressEvent.complete(summary))

    task = asyncio.create_task(runner())
    try:
        while True:
            event = await queue.get()
            yield event
            if event.is_terminal:
                break
    finally:
        if not task.done():
            task.cancel()


# =============================================================================
# Lambda Handler
# =============================================================================

def handler(event: dict, context) -> dict:
    """
    Lambda handler for a scheduled or async-invoked crawl.

    Args:
        event: {searchText, locationText, timeFilterSeconds?}
        context: Lambda context (unused)

    Returns:
        Status dict with the run summary
    """
    search_text = event.get("searchText", "")
    location_text = event.get("locationText", "")
    time_filter = int(event.get("timeFilterSeconds") or settings.DEFAULT_TIME_FILTER_SECONDS)

    try:
        request = CrawlRequest.from_text(search_text, location_text, time_filter)
    except ValueError as e:
        logger.error(f"Invalid event: {e}")
        return {"status": "error", "reason": "invalid_request", "error": str(e)}

    run_id = new_run_id()
    log = IngestionLogContext(run_id)
    log.log_info(f"Starting worker for \"{search_text}\" in \"{location_text}\"")

    try:
        summary = asyncio.run(run_pipeline(request, run_id=run_id, location_text=location_text))
    except Exception as e:
        log.log_error(f"Worker error: {e}")
        logger.exception(f"Worker error for run {run_id}: {e}")
        asyncio.run(notify_failure(e, run_id=run_id))
        return {"run_id": run_id, "status": "error", "error": str(e)}

    return {"status": "success", **summary.to_dict()}
