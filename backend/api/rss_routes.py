"""
API routes for the RSS monitor.

Endpoints:
- POST /api/rss/check   Fetch the monitor feeds and notify about jobs posted
                        within the last CHECK_INTERVAL_MINUTES (cron target)
"""

from fastapi import APIRouter

from workers.rss_worker import run_rss_monitor

router = APIRouter()


@router.post("/rss/check")
async def check_feeds():
    """Returns {total, recent, sent, failed, skipped_cached}."""
    return await run_rss_monitor()
