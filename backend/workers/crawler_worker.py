"""
Crawler Worker (list-page fetcher)

Walks the crawl targets of one request, one (keyword, country) group at a
time, and turns every list page into JobRecords.

Per group:
1. Fetch page 0, 1, ... in order (each page in its own browser context)
2. Parse the cards; stamp them with keyword/country/currency/domain
3. A page with zero cards means the group is exhausted: stop, no retry
4. A navigation or parse error is logged and also ends the group; the
   remaining groups still run

Pacing (configurable, sleep injectable):
- PAGE_DELAY_SECONDS between pages of a group
- COUNTRY_DELAY_SECONDS between countries of a keyword
- KEYWORD_DELAY_SECONDS between keywords

Only a browser that cannot be started (or is gone) aborts the crawl.

Log Format:
All logs use prefix [CrawlerWorker:run_id=X:target=keyword/country].
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from browser.pool import BrowserLaunchError, BrowserManager
from config.settings import settings
from extractors.linkedin import LinkedInExtractor, build_search_url, stamp_target
from models.job import JobRecord
from sourcing.targets import CrawlRequest, CrawlTarget, group_targets
from utils.worker_logging import CrawlerLogContext, LogListener

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# target -> list page HTML
FetchPage = Callable[[CrawlTarget], Awaitable[str]]
Sleep = Callable[[float], Awaitable[None]]


class PageFetchError(Exception):
    """A list page returned a non-success response."""


@dataclass
class GroupResult:
    """Outcome of paginating one (keyword, country) group."""
    target_key: str
    records: list[JobRecord] = field(default_factory=list)
    pages_fetched: int = 0
    exhausted: bool = False
    error: Optional[str] = None


@dataclass
class CrawlResult:
    groups: list[GroupResult] = field(default_factory=list)

    @property
    def records(self) -> list[JobRecord]:
        records = []
        for group in self.groups:
            records.extend(group.records)
        return records

    @property
    def pages_fetched(self) -> int:
        return sum(g.pages_fetched for g in self.groups)

    @property
    def page_errors(self) -> int:
        return sum(1 for g in self.groups if g.error)


# =============================================================================
# Page Fetching
# =============================================================================

def make_browser_fetcher(browser: BrowserManager, time_filter_seconds: int) -> FetchPage:
    """
    Fetcher that loads each list page in a fresh browser context.

    The context carries the target country's Accept-Language header.
    """
    async def fetch(target: CrawlTarget) -> str:
        url = build_search_url(target, time_filter_seconds)
        async with browser.isolated_page(target.country_config.language) as page:
            response = await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=settings.NAVIGATION_TIMEOUT_MS,
            )
            if response is not None and not response.ok:
                raise PageFetchError(f"HTTP {response.status} for {url}")
            return await page.content()

    return fetch


# =============================================================================
# Pagination
# =============================================================================

async def crawl_group(
    targets: list[CrawlTarget],
    fetch_page: FetchPage,
    run_id: str,
    extractor: Optional[LinkedInExtractor] = None,
    sleep: Sleep = asyncio.sleep,
    page_delay: Optional[float] = None,
    listener: Optional[LogListener] = None,
) -> GroupResult:
    """
    Paginate one group until it is exhausted, fails, or runs out of pages.

    Raises:
        BrowserLaunchError: If the browser is not available (fatal)
    """
    extractor = extractor or LinkedInExtractor()
    page_delay = settings.PAGE_DELAY_SECONDS if page_delay is None else page_delay
    target_key = targets[0].group_key if targets else "-"
    log = CrawlerLogContext(run_id, target_key, listener)
    result = GroupResult(target_key=target_key)

    for index, target in enumerate(targets):
        log.log_info(f"Page {target.page_number + 1}")
        try:
            html = await fetch_page(target)
            records = extractor.parse_listing(html)
        except BrowserLaunchError:
            raise
        except Exception as e:
            log.log_error(f"Error on page {target.page_number + 1}: {e}")
            result.error = str(e)
            break

        result.pages_fetched += 1
        if not records:
            log.log_info(f"No jobs found on page {target.page_number + 1}, moving on")
            result.exhausted = True
            break

        result.records.extend(stamp_target(records, target))
        log.log_info(f"Found {len(records)} jobs on this page (group total: {len(result.records)})")

        if index < len(targets) - 1 and page_delay > 0:
            await sleep(page_delay)

    return result


async def crawl_targets(
    request: CrawlRequest,
    fetch_page: FetchPage,
    run_id: str,
    max_pages: Optional[int] = None,
    sleep: Sleep = asyncio.sleep,
    listener: Optional[LogListener] = None,
    on_group: Optional[Callable[[int, int, str], None]] = None,
) -> CrawlResult:
    """
    Crawl every (keyword, country) group of a request in order.

    Args:
        request: Keywords x countries to crawl
        fetch_page: Returns list page HTML for a target
        run_id: Run identifier for log prefixes
        max_pages: Pages per group (default MAX_PAGES)
        sleep: Awaitable sleep, replaced in tests
        listener: Receives every log line (streaming trigger)
        on_group: Called with (group_index, group_count, target_key) before each group

    Returns:
        CrawlResult with one GroupResult per group
    """
    max_pages = max_pages or settings.MAX_PAGES
    groups = list(group_targets(request, max_pages))
    result = CrawlResult()
    previous: Optional[CrawlTarget] = None

    for index, targets in enumerate(groups):
        if not targets:
            continue
        first = targets[0]
        if previous is not None:
            if first.keyword != previous.keyword:
                await sleep(settings.KEYWORD_DELAY_SECONDS)
            else:
                await sleep(settings.COUNTRY_DELAY_SECONDS)
        previous = first

        if on_group is not None:
            on_group(index, len(groups), first.group_key)
        result.groups.append(await crawl_group(targets, fetch_page, run_id, sleep=sleep, listener=listener))

    logger.info(
        f"[CrawlerWorker:run_id={run_id}] Crawled {len(groups)} groups, "
        f"{result.pages_fetched} pages, {len(result.records)} jobs, {result.page_errors} group errors"
    )
    return result
