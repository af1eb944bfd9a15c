"""
API routes for the statistics archive.

Endpoints:
- GET  /api/stats/summary            Current month top counters and archive totals
- GET  /api/stats/month/{month}      Statistics document for one month (YYYY-MM)
- GET  /api/stats/archives           Every archived month plus their aggregate
- POST /api/stats/extract-and-save   Analyze the stats RSS feeds into the archive

Reads go through a freshly loaded StatisticsArchiveStore (get_archive_store),
overridable with app.dependency_overrides in tests.
"""

import logging
import re

from fastapi import APIRouter, Depends, HTTPException, status

from storage.archive_store import StatisticsArchiveStore
from storage.object_store import ObjectStore, StorageError
from workers.rss_worker import run_stats_extraction

logger = logging.getLogger(__name__)

router = APIRouter()

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def get_archive_store() -> StatisticsArchiveStore:
    archive = StatisticsArchiveStore(ObjectStore.from_settings())
    archive.load()
    return archive


def _storage_unavailable(e: StorageError) -> HTTPException:
    logger.error(f"Archive read failed: {e}")
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Archive storage unavailable")


@router.get("/stats/summary")
def get_summary(archive: StatisticsArchiveStore = Depends(get_archive_store)):
    summary = archive.get_summary()
    summary["storage"] = archive.get_stats()
    return summary


@router.get("/stats/month/{month}")
def get_month(month: str, archive: StatisticsArchiveStore = Depends(get_archive_store)):
    if not MONTH_RE.match(month):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Month must be YYYY-MM")

    try:
        stats = archive.get_month_statistics(month)
    except StorageError as e:
        raise _storage_unavailable(e)
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No statistics for {month}")

    entry = archive.manifest.months.get(month)
    return {
        "month": month,
        "statistics": stats.to_dict(),
        "jobCount": entry.total_jobs if entry else stats.total_jobs,
        "archived": month != archive.manifest.current_month,
    }


@router.get("/stats/archives")
def get_archives(archive: StatisticsArchiveStore = Depends(get_archive_store)):
    try:
        return archive.get_all_archives_aggregated()
    except StorageError as e:
        raise _storage_unavailable(e)


@router.post("/stats/extract-and-save")
async def extract_and_save():
    return await run_stats_extraction()
