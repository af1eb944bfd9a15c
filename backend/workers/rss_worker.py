"""
RSS Worker

Two scheduled jobs over job RSS feeds:

run_rss_monitor (POST /api/rss/check, scheduled every CHECK_INTERVAL_MINUTES):
1. Fetch RSS_FEED_URLS concurrently (a failing feed contributes nothing)
2. Keep entries published within the last interval + 1 minutes
3. Skip URLs already delivered (48h URL cache)
4. Send one HTML message per job through the rate-limited dispatcher
5. Cache the URLs that were actually delivered, save the cache

run_stats_extraction (POST /api/stats/extract-and-save):
1. Fetch RSS_STATS_FEED_URLS
2. Analyze each entry into a JobStatistic and queue it in the archive
   (the URL index skips anything archived before)
3. Save the archive when anything new was queued

Log Format:
All logs use prefix [RssWorker:run_id=X].
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from analysis.job_analyzer import analyze_job
from cache.url_cache import UrlCache
from config.settings import settings
from extractors.rss import RssFeedExtractor, filter_recent_jobs
from notify.dispatcher import Notification, NotificationSink, RateLimitedDispatcher
from notify.telegram import TelegramSink, format_job_message
from storage.archive_store import SUMMARY_TOP_N, StatisticsArchiveStore
from storage.object_store import ObjectStore
from storage.statistics import top_n
from utils.worker_logging import RssLogContext
from workers.ingestion_worker import new_run_id

logger = logging.getLogger()
logger.setLevel(logging.INFO)


async def _in_executor(fn, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, fn, *args)


async def run_rss_monitor(
    feed_urls: Optional[list[str]] = None,
    interval_minutes: Optional[int] = None,
    url_cache: Optional[UrlCache] = None,
    sink: Optional[NotificationSink] = None,
    extractor: Optional[RssFeedExtractor] = None,
    sleep=asyncio.sleep,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> dict:
    """
    Check the monitor feeds and notify about new jobs.

    Returns:
        {total, recent, sent, failed, skipped_cached}
    """
    log = RssLogContext(new_run_id())
    feed_urls = settings.get_rss_feed_urls() if feed_urls is None else feed_urls
    interval_minutes = interval_minutes or settings.CHECK_INTERVAL_MINUTES
    extractor = extractor or RssFeedExtractor()
    sink = sink or TelegramSink.from_settings()
    if url_cache is None:
        url_cache = UrlCache.from_settings(ObjectStore.from_settings())

    items = await extractor.fetch_feeds(feed_urls)
    log.log_info(f"Fetched {len(items)} jobs from {len(feed_urls)} feeds")

    recent = filter_recent_jobs(items, interval_minutes, now())
    log.log_info(f"Found {len(recent)} recent jobs (within {interval_minutes} minutes)")

    result = {"total": len(items), "recent": len(recent), "sent": 0, "failed": 0, "skipped_cached": 0}
    if not recent:
        return result

    await _in_executor(url_cache.load)
    fresh = [item for item in recent if not url_cache.has(item.link)]
    result["skipped_cached"] = len(recent) - len(fresh)
    if not fresh:
        log.log_info("All recent jobs were already sent")
        return result

    dispatcher = RateLimitedDispatcher(sink, delay_seconds=settings.DISPATCH_DELAY_SECONDS, sleep=sleep, run_id=log.run_id)
    dispatched = await dispatcher.dispatch([
        Notification(key=item.link, text=format_job_message(item)) for item in fresh
    ])
    url_cache.add_many(dispatched.delivered_keys)
    await _in_executor(url_cache.save)

    result["sent"] = dispatched.sent
    result["failed"] = dispatched.failed
    log.log_info(f"Job check completed: {dispatched.sent} sent, {dispatched.failed} failed")
    return result


async def run_stats_extraction(
    feed_urls: Optional[list[str]] = None,
    archive: Optional[StatisticsArchiveStore] = None,
    extractor: Optional[RssFeedExtractor] = None,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> dict:
    """
    Analyze the statistics feeds into the archive.

    Returns:
        processed / newJobs counts, month totals and top counters
    """
    log = RssLogContext(new_run_id())
    feed_urls = settings.get_rss_stats_feed_urls() if feed_urls is None else feed_urls
    extractor = extractor or RssFeedExtractor()
    archive = archive or StatisticsArchiveStore(ObjectStore.from_settings())

    await _in_executor(archive.load)
    items = await extractor.fetch_feeds(feed_urls)
    log.log_info(f"Fetched {len(items)} jobs from {len(feed_urls)} stats feeds")

    extracted_at = now()
    processed = 0
    new_jobs = 0
    for item in items:
        stat = analyze_job(extractor.to_record(item), extracted_at)
        processed += 1
        if archive.add_job(stat):
            new_jobs += 1

    saved = False
    if new_jobs:
        log.log_info(f"Saving {new_jobs} new jobs to the archive")
        saved = await _in_executor(archive.save)
    else:
        log.log_info(f"No new jobs to save (all {processed} already archived)")

    stats = archive.get_stats()
    current = archive.current_statistics()
    return {
        "success": True,
        "message": f"Processed {processed} jobs, added {new_jobs} new jobs",
        "processed": processed,
        "newJobs": new_jobs,
        "saved": saved,
        "currentMonth": stats["currentMonth"],
        "currentMonthTotal": stats["currentMonthJobs"],
        "totalAllTime": stats["totalJobsAllTime"],
        "statistics": {
            "byIndustry": current.by_industry,
            "byCertificate": current.by_certificate,
            "bySeniority": current.by_seniority,
            "topKeywords": top_n(current.by_keyword, SUMMARY_TOP_N),
        },
    }
