"""
Statistics archive store.

Append-friendly archive of JobStatistic records in an S3-compatible bucket,
indexed by a single manifest.json. Records are grouped into day shards
(metadata + descriptions, gzip NDJSON), day shards into months, and each month
carries its own statistics document.

Lifecycle per run:
    archive = StatisticsArchiveStore(ObjectStore.from_settings())
    archive.load()               # manifest + URL index (+ monthly rollover)
    for stat in stats:
        archive.add_job(stat)    # dedup by URL, queue, update counters
    archive.save()               # write shards, stats, manifest, URL index

Dedup: url-index.json holds every normalized URL ever archived. add_job()
refuses URLs already in the index or already queued, and save() drops any
record whose URL is already present in the target shard.

Degraded mode: without a bucket, or when the manifest/index cannot be read,
the store runs on empty in-memory state. add_job() still deduplicates within
the run, save() writes nothing and returns False.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

from models.archive import (
    DayShard,
    JobStatistic,
    Manifest,
    descriptions_key,
    metadata_key,
    month_of,
    stats_key,
)
from storage.object_store import ObjectStore, StorageError
from storage.statistics import MonthlyStatistics, top_n
from utils.urls import normalize_url
from utils.worker_logging import ArchiveLogContext

MANIFEST_KEY = "manifest.json"
URL_INDEX_KEY = "url-index.json"
SUMMARY_TOP_N = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StatisticsArchiveStore:
    def __init__(self, store: ObjectStore, now: Callable[[], datetime] = _utc_now):
        self.store = store
        self._now = now
        self.manifest: Optional[Manifest] = None
        self.url_index: set[str] = set()
        self.pending: dict[str, list[JobStatistic]] = {}
        self.month_stats: dict[str, MonthlyStatistics] = {}
        self.loaded = False
        self.degraded = False
        self.ctx = ArchiveLogContext(self._current_month())

    def _current_month(self) -> str:
        return self._now().strftime("%Y-%m")

    def _empty_manifest(self) -> Manifest:
        return Manifest(current_month=self._current_month(), updated_at=self._now().isoformat())

    def _enter_degraded(self, reason: str) -> None:
        self.ctx.log_warning(f"Running without archive storage: {reason}")
        self.manifest = self._empty_manifest()
        self.url_index = set()
        self.month_stats = {self.manifest.current_month: MonthlyStatistics()}
        self.degraded = True
        self.loaded = True

    # =========================================================================
    # Load
    # =========================================================================

    def load(self) -> None:
        """Read manifest and URL index, roll the month over if needed, load current stats."""
        self.pending = {}
        self.month_stats = {}
        self.degraded = False
        current_month = self._current_month()
        self.ctx.month = current_month

        if not self.store.is_available():
            self._enter_degraded("no bucket configured")
            return

        try:
            manifest_data = self.store.get_json(MANIFEST_KEY)
            index_data = self.store.get_json(URL_INDEX_KEY)
        except StorageError as e:
            self._enter_degraded(str(e))
            return

        if manifest_data:
            try:
                self.manifest = Manifest.from_dict(manifest_data)
            except (KeyError, TypeError, AttributeError) as e:
                self._enter_degraded(f"unreadable manifest: {e}")
                return
            self.ctx.log_info(f"Loaded manifest: {self.manifest.total_jobs_all_time} total jobs")
        else:
            self.manifest = self._empty_manifest()
            self.ctx.log_info("No manifest found, starting a new archive")

        urls = (index_data or {}).get("urls") or []
        self.url_index = {normalize_url(url) for url in urls if url}
        self.ctx.log_info(f"Loaded URL index: {len(self.url_index)} known URLs")

        try:
            if self.manifest.current_month != current_month:
                self._rollover(current_month)
                current_stats = MonthlyStatistics()
            else:
                current_stats = MonthlyStatistics.from_dict(self.store.get_json(stats_key(current_month)))
        except StorageError as e:
            self._enter_degraded(str(e))
            return

        self.month_stats[current_month] = current_stats
        self.loaded = True
        self.ctx.log_info(f"Current month statistics: {current_stats.total_jobs} jobs")

    def _rollover(self, current_month: str) -> None:
        """Freeze the manifest's month and start a new current month."""
        previous = self.manifest.current_month
        self.ctx.log_info(f"Month changed from {previous} to {current_month}, archiving {previous}")

        entry = self.manifest.months.get(previous)
        if entry is not None:
            entry.archived = True
        if previous not in self.manifest.available_months:
            self.manifest.available_months.insert(0, previous)
            self.manifest.available_months.sort(reverse=True)

        self.manifest.current_month = current_month
        self.manifest.updated_at = self._now().isoformat()
        self.store.put_json(MANIFEST_KEY, self.manifest.to_dict())

    # =========================================================================
    # Queue
    # =========================================================================

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def _stats_for(self, month: str) -> MonthlyStatistics:
        """Statistics object for a month, read from the bucket on first use."""
        if month not in self.month_stats:
            existing = None
            if not self.degraded and month in self.manifest.months:
                try:
                    existing = self.store.get_json(stats_key(month))
                except StorageError as e:
                    self.ctx.log_warning(f"Could not read statistics for {month}: {e}")
            self.month_stats[month] = MonthlyStatistics.from_dict(existing)
        return self.month_stats[month]

    def _is_pending(self, url: str) -> bool:
        return any(normalize_url(job.url) == url for jobs in self.pending.values() for job in jobs)

    def add_job(self, job: JobStatistic) -> bool:
        """Queue a job for the next save(). Returns False for duplicates."""
        self._ensure_loaded()
        url = normalize_url(job.url)
        if not url or url in self.url_index or self._is_pending(url):
            return False

        self.url_index.add(url)
        date_key = job.date_key
        self.pending.setdefault(date_key, []).append(job)
        self._stats_for(month_of(date_key)).update(job)
        return True

    def job_exists(self, url: str) -> bool:
        key = normalize_url(url)
        return key in self.url_index or self._is_pending(key)

    @property
    def pending_count(self) -> int:
        return sum(len(jobs) for jobs in self.pending.values())

    # =========================================================================
    # Save
    # =========================================================================

    def save(self) -> bool:
        """
        Write pending jobs, touched statistics, manifest and URL index.

        Returns True when everything was written (or there was nothing to
        write), False in degraded mode or on a storage error. Pending jobs are
        kept after a failed save.
        """
        self._ensure_loaded()
        if self.degraded:
            self.ctx.log_warning(f"Archive unavailable, not saving {self.pending_count} pending jobs")
            return False
        if not self.pending:
            self.ctx.log_info("Nothing to save")
            return True

        try:
            touched_months = self._write_shards()
            for month in sorted(touched_months):
                stats = self.month_stats.get(month)
                if stats is not None:
                    self.store.put_json(stats_key(month), stats.to_dict())

            self.manifest.recompute_totals()
            self.manifest.updated_at = self._now().isoformat()
            self.store.put_json(MANIFEST_KEY, self.manifest.to_dict())
            self.store.put_json(URL_INDEX_KEY, {
                "urls": sorted(self.url_index),
                "updatedAt": self.manifest.updated_at,
                "count": len(self.url_index),
            })
        except StorageError as e:
            self.ctx.log_error(f"Save failed: {e}")
            return False

        self.pending = {}
        self.ctx.log_info(f"Saved archive, total jobs all time: {self.manifest.total_jobs_all_time}")
        return True

    def _write_shards(self) -> set[str]:
        touched: set[str] = set()
        for date_key in sorted(self.pending):
            jobs = self.pending[date_key]
            if not jobs:
                continue
            month = month_of(date_key)
            entry = self.manifest.month_entry(month)
            shard = entry.find_day(date_key) or DayShard(
                date=date_key,
                metadata=metadata_key(date_key),
                descriptions=descriptions_key(date_key),
            )

            existing_metadata = self.store.get_ndjson_gz(shard.metadata)
            existing_descriptions = self.store.get_ndjson_gz(shard.descriptions)
            existing_urls = {normalize_url(row.get("url")) for row in existing_metadata}
            new_jobs = []
            for job in jobs:
                url = normalize_url(job.url)
                if url not in existing_urls:
                    existing_urls.add(url)
                    new_jobs.append(job)

            if not new_jobs:
                self.ctx.log_info(f"No new jobs for {date_key}")
                continue

            all_metadata = existing_metadata + [job.metadata_dict() for job in new_jobs]
            all_descriptions = existing_descriptions + [job.description_dict() for job in new_jobs]
            shard.metadata_bytes = self.store.put_ndjson_gz(shard.metadata, all_metadata)
            shard.descriptions_bytes = self.store.put_ndjson_gz(shard.descriptions, all_descriptions)
            shard.job_count = len(all_metadata)

            entry.upsert_day(shard)
            entry.recompute_total()
            touched.add(month)
            self.ctx.log_info(f"Saved {len(new_jobs)} new jobs for {date_key}")
        return touched

    # =========================================================================
    # Reads
    # =========================================================================

    def _read_shard(self, shard: DayShard, with_descriptions: bool = True) -> list[JobStatistic]:
        metadata = self.store.get_ndjson_gz(shard.metadata)
        descriptions = {}
        if with_descriptions:
            descriptions = {row.get("id"): row.get("description", "") for row in self.store.get_ndjson_gz(shard.descriptions)}
        jobs = []
        for row in metadata:
            job = JobStatistic.from_dict(row)
            job.description = descriptions.get(job.id, "")
            jobs.append(job)
        return jobs

    def load_jobs_for_month(self, month: str) -> list[JobStatistic]:
        """Archived plus still-pending jobs for a month, descriptions joined in."""
        self._ensure_loaded()
        jobs: list[JobStatistic] = []
        entry = self.manifest.months.get(month)
        if entry is not None and not self.degraded:
            for shard in entry.days:
                jobs.extend(self._read_shard(shard))
        for date_key, pending in self.pending.items():
            if month_of(date_key) == month:
                jobs.extend(pending)
        return jobs

    def load_metadata_for_month(self, month: str) -> list[dict]:
        self._ensure_loaded()
        entry = self.manifest.months.get(month)
        if entry is None or self.degraded:
            return []
        rows: list[dict] = []
        for shard in entry.days:
            rows.extend(self.store.get_ndjson_gz(shard.metadata))
        return rows

    def load_jobs_for_date_range(self, start: date | str, end: date | str) -> list[JobStatistic]:
        """Jobs from every shard whose date falls within [start, end]."""
        self._ensure_loaded()
        start_key, end_key = str(start)[:10], str(end)[:10]
        jobs: list[JobStatistic] = []
        if self.degraded:
            return jobs
        for month in sorted(self.manifest.months):
            for shard in self.manifest.months[month].days:
                if start_key <= shard.date <= end_key:
                    jobs.extend(self._read_shard(shard))
        return jobs

    def load_job_description(self, job_id: str, extracted_date: str) -> Optional[str]:
        self._ensure_loaded()
        date_key = extracted_date[:10]
        entry = self.manifest.months.get(month_of(date_key))
        shard = entry.find_day(date_key) if entry else None
        if shard is None or self.degraded:
            return None
        for row in self.store.get_ndjson_gz(shard.descriptions):
            if row.get("id") == job_id:
                return row.get("description") or None
        return None

    def get_month_statistics(self, month: str) -> Optional[MonthlyStatistics]:
        self._ensure_loaded()
        if month in self.month_stats:
            return self.month_stats[month]
        if self.degraded:
            return None
        data = self.store.get_json(stats_key(month))
        return MonthlyStatistics.from_dict(data) if data else None

    def get_all_archives_aggregated(self) -> dict:
        """Per-month statistics plus their sum, built from the stats documents only."""
        self._ensure_loaded()
        archives = []
        aggregated = MonthlyStatistics()
        for month in self.manifest.available_months:
            stats = self.get_month_statistics(month)
            if stats is None:
                continue
            entry = self.manifest.months.get(month)
            archives.append({
                "month": month,
                "statistics": stats.to_dict(),
                "jobCount": entry.total_jobs if entry and entry.total_jobs else stats.total_jobs,
                "archived": month != self.manifest.current_month,
            })
            aggregated.merge(stats)
        return {
            "archives": archives,
            "aggregated": aggregated.to_dict(),
            "totalJobs": aggregated.total_jobs,
        }

    def current_statistics(self) -> MonthlyStatistics:
        self._ensure_loaded()
        return self._stats_for(self.manifest.current_month)

    def get_summary(self) -> dict:
        self._ensure_loaded()
        stats = self.current_statistics()
        months = self.manifest.available_months
        total = self.manifest.total_jobs_all_time
        return {
            "lastUpdated": self.manifest.updated_at,
            "totalJobsAllTime": total,
            "currentMonth": self.manifest.current_month,
            "availableArchives": [m for m in months if m != self.manifest.current_month],
            "overallStatistics": {
                "totalMonths": len(months),
                "averageJobsPerMonth": round(total / max(len(months), 1)) if total else 0,
                "topIndustries": top_n(stats.by_industry, SUMMARY_TOP_N),
                "topCertificates": top_n(stats.by_certificate, SUMMARY_TOP_N),
                "topKeywords": top_n(stats.by_keyword, SUMMARY_TOP_N),
            },
        }

    def get_stats(self) -> dict:
        self._ensure_loaded()
        return {
            "currentMonth": self.manifest.current_month,
            "currentMonthJobs": self.current_statistics().total_jobs,
            "totalJobsAllTime": self.manifest.total_jobs_all_time,
            "availableArchives": len(self.manifest.available_months),
            "pendingJobs": self.pending_count,
            "degraded": self.degraded,
        }
