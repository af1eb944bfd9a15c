"""
Extractor Worker (detail enrichment batcher)

Visits each crawled job's detail page and fills in compensation,
description, referral, recruiter card and long description.

Concurrency:
- A SessionPool of reusable browser pages (default 4) bounds concurrency
- Jobs are processed in batches of pool size; each batch is gathered
  with return_exceptions=True and fully settles before the next starts
- Results come back index-aligned with the input list

Per job:
1. No URL -> NO_URL failure, no navigation
2. Jitter, navigate (domcontentloaded); must land on a job view page
3. Probe the known content containers in order
4. Parse section fields, then the recruiter card + long description

Retry:
- Only navigation timeouts, net::ERR_ network errors, closed targets and
  protocol errors are retried, at most ENRICH_MAX_RETRIES times
- Backoff before retry n (0-based): ENRICH_RETRY_BASE_SECONDS + n * ENRICH_RETRY_INCREMENT_SECONDS
- Once the pool is closed (run cancelled) every error is terminal

Inter-batch delay: ENRICH_BATCH_DELAY_SECONDS, doubled after a batch with
more failures than successes, skipped after the last batch.

Log Format:
All logs use prefix [ExtractorWorker:run_id=X:job=N] (N is 1-based).
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser.pool import SessionPool
from config.settings import settings
from extractors.linkedin import (
    CONTAINER_SELECTORS,
    LinkedInExtractor,
    is_job_detail_url,
    looks_like_login_wall,
)
from models.job import JobRecord
from utils.worker_logging import ExtractorLogContext, LogListener
from workers.types import BatchSummary, DetailFetchError, EnrichmentResult, ErrorKind

logger = logging.getLogger()
logger.setLevel(logging.INFO)

Sleep = Callable[[float], Awaitable[None]]

# Substrings of browser error messages -> kind, checked in order
ERROR_SIGNATURES = [
    ("Navigation timeout", ErrorKind.NAVIGATION_TIMEOUT),
    ("Waiting for selector", ErrorKind.NAVIGATION_TIMEOUT),
    ("net::ERR_", ErrorKind.NETWORK),
    ("Target closed", ErrorKind.TARGET_CLOSED),
    ("has been closed", ErrorKind.TARGET_CLOSED),
    ("Protocol error", ErrorKind.PROTOCOL),
]


def classify_error(error: BaseException) -> ErrorKind:
    """Map an enrichment exception to an ErrorKind."""
    if isinstance(error, DetailFetchError):
        return error.kind
    message = str(error)
    for signature, kind in ERROR_SIGNATURES:
        if signature in message:
            return kind
    if isinstance(error, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return ErrorKind.NAVIGATION_TIMEOUT
    return ErrorKind.UNKNOWN


def next_batch_delay(summary: BatchSummary, base: float) -> float:
    """Delay before the next batch: doubled when failures outnumber successes."""
    return base * 2 if summary.failures_dominate else base


def retry_backoff(retry_index: int, base: float, increment: float) -> float:
    """Wait before retry number retry_index (0 for the first retry)."""
    return base + retry_index * increment


def to_output_records(results: list[EnrichmentResult]) -> list[JobRecord]:
    return [result.to_output_record() for result in results]


# =============================================================================
# Single Page
# =============================================================================

async def probe_container(page: Page, timeout_ms: int) -> Optional[str]:
    """First container selector that appears on the page, or None."""
    for selector in CONTAINER_SELECTORS:
        try:
            await page.wait_for_selector(selector, timeout=timeout_ms, state="attached")
            return selector
        except PlaywrightTimeoutError:
            continue
    return None


async def fetch_detail(
    page: Page,
    record: JobRecord,
    extractor: LinkedInExtractor,
    sleep: Sleep = asyncio.sleep,
    jitter: Optional[float] = None,
) -> JobRecord:
    """
    Navigate one page to a job and return the enriched record.

    Raises:
        DetailFetchError: REDIRECTED / BLOCKED / NO_CONTENT
        playwright Error: navigation failures (classified by the caller)
    """
    if jitter is None:
        jitter = random.uniform(settings.ENRICH_JITTER_MIN_SECONDS, settings.ENRICH_JITTER_MAX_SECONDS)
    await sleep(jitter)

    await page.goto(record.url, wait_until="domcontentloaded", timeout=settings.ENRICH_REQUEST_TIMEOUT_MS)
    if not is_job_detail_url(page.url):
        raise DetailFetchError(ErrorKind.REDIRECTED, f"Redirected to unexpected URL: {page.url}")

    await sleep(settings.ENRICH_SETTLE_SECONDS)
    container = await probe_container(page, settings.ENRICH_SELECTOR_TIMEOUT_MS)
    content = await page.content()

    if container is None:
        if looks_like_login_wall(content):
            raise DetailFetchError(ErrorKind.BLOCKED, "Hit login wall or challenge page")
        raise DetailFetchError(ErrorKind.NO_CONTENT, "No valid content selectors found")

    return extractor.apply_details(record, content, container)


# =============================================================================
# Batcher
# =============================================================================

class DetailEnrichmentBatcher:
    """
    Enrich a list of jobs through a bounded session pool.

    Example:
        batcher = DetailEnrichmentBatcher(pool, run_id="a1b2")
        results = await batcher.enrich(records)
    """

    def __init__(
        self,
        pool: SessionPool,
        run_id: str,
        extractor: Optional[LinkedInExtractor] = None,
        sleep: Sleep = asyncio.sleep,
        batch_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_base: Optional[float] = None,
        retry_increment: Optional[float] = None,
        listener: Optional[LogListener] = None,
        _fetch_detail=fetch_detail,
    ):
        self.pool = pool
        self.run_id = run_id
        self.extractor = extractor or LinkedInExtractor()
        self._sleep = sleep
        self.batch_delay = settings.ENRICH_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        self.max_retries = settings.ENRICH_MAX_RETRIES if max_retries is None else max_retries
        self.retry_base = settings.ENRICH_RETRY_BASE_SECONDS if retry_base is None else retry_base
        self.retry_increment = settings.ENRICH_RETRY_INCREMENT_SECONDS if retry_increment is None else retry_increment
        self.listener = listener
        self._fetch_detail = _fetch_detail

    @property
    def batch_size(self) -> int:
        return self.pool.size

    async def enrich_one(self, index: int, record: JobRecord, total: int) -> EnrichmentResult:
        log = ExtractorLogContext(self.run_id, str(index + 1), self.listener)
        if not record.url:
            log.log_warning("No URL, skipping")
            return EnrichmentResult.failed(record, ErrorKind.NO_URL, "No URL available")

        attempts = 0
        async with self.pool.session() as page:
            while True:
                attempts += 1
                retry_note = f" (retry {attempts - 1})" if attempts > 1 else ""
                log.log_info(f"Enriching {index + 1}/{total}: {record.url}{retry_note}")
                try:
                    enriched = await self._fetch_detail(page, record, self.extractor, sleep=self._sleep)
                    return EnrichmentResult.ok(enriched, attempts=attempts)
                except Exception as e:
                    kind = classify_error(e)
                    retries_done = attempts - 1
                    if self.pool.closed or not kind.retryable or retries_done >= self.max_retries:
                        log.log_error(f"Failed ({kind.value}) after {attempts} attempt(s): {e}")
                        return EnrichmentResult.failed(record, kind, str(e), attempts=attempts)

                    delay = retry_backoff(retries_done, self.retry_base, self.retry_increment)
                    log.log_warning(f"{kind.value}: {e}; retry {retries_done + 1}/{self.max_retries} in {delay}s")
                    await self._sleep(delay)

    async def run_batch(self, start: int, batch: list[JobRecord], total: int) -> list[EnrichmentResult]:
        """Enrich one batch concurrently; results keep the batch order."""
        outcomes = await asyncio.gather(
            *(self.enrich_one(start + offset, record, total) for offset, record in enumerate(batch)),
            return_exceptions=True,
        )

        results = []
        for record, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                results.append(EnrichmentResult.failed(record, classify_error(outcome), str(outcome)))
            else:
                results.append(outcome)
        return results

    async def enrich(
        self,
        records: list[JobRecord],
        on_batch: Optional[Callable[[int, int, BatchSummary], None]] = None,
    ) -> list[EnrichmentResult]:
        """
        Enrich every record, batch by batch.

        Args:
            records: Deduplicated jobs from the crawl
            on_batch: Called with (batch_number, batch_count, summary) after each batch

        Returns:
            One EnrichmentResult per input record, same order
        """
        size = self.batch_size
        total = len(records)
        batch_count = (total + size - 1) // size
        results: list[EnrichmentResult] = []

        for batch_number, start in enumerate(range(0, total, size), start=1):
            batch = records[start:start + size]
            batch_results = await self.run_batch(start, batch, total)
            results.extend(batch_results)

            summary = BatchSummary(
                succeeded=sum(1 for r in batch_results if r.is_ok),
                failed=sum(1 for r in batch_results if not r.is_ok),
            )
            logger.info(
                f"[ExtractorWorker:run_id={self.run_id}] Batch {batch_number}/{batch_count} completed - "
                f"Success: {summary.succeeded}/{len(batch)}, Errors: {summary.failed}/{len(batch)}"
            )
            if on_batch is not None:
                on_batch(batch_number, batch_count, summary)

            if start + size < total:
                delay = next_batch_delay(summary, self.batch_delay)
                if summary.failures_dominate:
                    logger.info(f"[ExtractorWorker:run_id={self.run_id}] High error rate, delay doubled to {delay}s")
                await self._sleep(delay)

        succeeded = sum(1 for r in results if r.is_ok)
        logger.info(
            f"[ExtractorWorker:run_id={self.run_id}] Enriched {total} jobs: "
            f"{succeeded} succeeded, {total - succeeded} failed"
        )
        return results
