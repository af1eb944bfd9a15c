"""
Typed structures passed between pipeline stages.

EnrichmentResult is the tagged outcome of detail enrichment for one job.
The "Error: <message>" record shape used by storage and export is produced
only by to_output_record(), at that boundary.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from models.job import JobRecord


class ErrorKind(str, Enum):
    """Why detail enrichment of a job failed."""
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NETWORK = "network"
    TARGET_CLOSED = "target_closed"
    PROTOCOL = "protocol"
    BLOCKED = "blocked"
    REDIRECTED = "redirected"
    NO_CONTENT = "no_content"
    NO_URL = "no_url"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS


RETRYABLE_KINDS = frozenset({
    ErrorKind.NAVIGATION_TIMEOUT,
    ErrorKind.NETWORK,
    ErrorKind.TARGET_CLOSED,
    ErrorKind.PROTOCOL,
})


class DetailFetchError(Exception):
    """Detail page could not be enriched."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


@dataclass
class EnrichmentResult:
    """
    Outcome of enriching one job.

    status is "ok" (record holds the enriched job) or "failed" (record is the
    input job, error_kind/error_message say why).
    """
    status: str
    record: JobRecord
    error_kind: Optional[ErrorKind] = None
    error_message: str = ""
    attempts: int = 0

    @classmethod
    def ok(cls, record: JobRecord, attempts: int = 1) -> "EnrichmentResult":
        return cls(status="ok", record=record, attempts=attempts)

    @classmethod
    def failed(cls, record: JobRecord, kind: ErrorKind, message: str, attempts: int = 0) -> "EnrichmentResult":
        return cls(status="failed", record=record, error_kind=kind, error_message=message, attempts=attempts)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    def to_output_record(self) -> JobRecord:
        """Record for storage/export; failures carry the error placeholder in every enrichment field."""
        if self.is_ok:
            return self.record
        return self.record.with_error(self.error_message)


@dataclass
class BatchSummary:
    """Counts for one enrichment batch. Drives the next inter-batch delay."""
    succeeded: int = 0
    failed: int = 0

    @property
    def failures_dominate(self) -> bool:
        return self.failed > self.succeeded


@dataclass
class CrawlSummary:
    """
    Final counts for one crawl run.

    Returned by the synchronous trigger and carried in the streaming
    trigger's complete event.
    """
    run_id: str
    keywords: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    pages_fetched: int = 0
    page_errors: int = 0
    jobs_found: int = 0
    duplicates: int = 0
    invalid_urls: int = 0
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped_cached: int = 0
    archived: int = 0
    archive_saved: bool = False
    notified: int = 0
    notify_failed: int = 0
    filename: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProgressEvent:
    """One event of the streaming trigger: log, error or complete."""
    event: str
    data: dict

    @classmethod
    def log(cls, message: str, stage: Optional[str] = None, percentage: Optional[int] = None) -> "ProgressEvent":
        data = {"message": message, "timestamp": datetime.now(timezone.utc).isoformat()}
        if stage is not None:
            data["stage"] = stage
        if percentage is not None:
            data["percentage"] = percentage
        return cls(event="log", data=data)

    @classmethod
    def error(cls, message: str) -> "ProgressEvent":
        return cls(event="error", data={"message": message})

    @classmethod
    def complete(cls, summary: CrawlSummary) -> "ProgressEvent":
        data = {
            "success": True,
            "jobCount": summary.total,
            "keywords": summary.keywords,
            "countries": summary.countries,
            "summary": summary.to_dict(),
        }
        if summary.filename:
            data["filename"] = summary.filename
        return cls(event="complete", data=data)

    @property
    def is_terminal(self) -> bool:
        return self.event in ("complete", "error")
