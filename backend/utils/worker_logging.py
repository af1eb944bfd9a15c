"""
Worker logging utilities with Protocol + Mixin pattern.

Provides trait-like logging functionality for pipeline stages.
Each stage defines its type and context format, the mixin provides
consistent log_info/log_warning/log_error methods.

Usage:
    class CrawlerLogContext(WorkerLoggerMixin):
        worker_type = WorkerType.CRAWLER

        def __init__(self, run_id: str, target_key: str):
            self.run_id = run_id
            self.target_key = target_key

        def _log_context(self) -> str:
            return f"run_id={self.run_id}:target={self.target_key}"

    ctx = CrawlerLogContext("a1b2", "CFA/United States")
    ctx.log_info("Fetching page 0")  # [CrawlerWorker:run_id=a1b2:target=CFA/United States] Fetching page 0

Contexts can also forward every line to a listener callback. The streaming
trigger uses this to turn log lines into progress events without the stages
knowing anything about the transport.
"""

import logging
from enum import Enum
from typing import Callable, Optional, Protocol

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# (level, message) -> None
LogListener = Callable[[str, str], None]


class WorkerType(Enum):
    """Worker type enum for log prefix identification."""
    INGESTION = "IngestionWorker"
    CRAWLER = "CrawlerWorker"
    EXTRACTOR = "ExtractorWorker"
    ARCHIVE = "ArchiveStore"
    DISPATCHER = "Dispatcher"
    RSS = "RssWorker"


class WorkerLoggerProtocol(Protocol):
    """
    Protocol defining what classes using WorkerLoggerMixin must provide.

    This enables type checking - mypy will error if a class uses the mixin
    but doesn't define worker_type or _log_context().
    """
    worker_type: WorkerType

    def _log_context(self) -> str:
        """Return context string like 'run_id=5' or 'run_id=5:job=3'."""
        ...


class WorkerLoggerMixin:
    """
    Mixin providing log_info/log_warning/log_error methods.

    Classes using this mixin must satisfy WorkerLoggerProtocol:
    - Define worker_type: WorkerType class attribute
    - Implement _log_context() -> str method

    Log format: [WorkerType:context] message

    Examples:
    - [IngestionWorker:run_id=a1b2] Generated 40 crawl targets
    - [ExtractorWorker:run_id=a1b2:job=17] Retry 1/2 after 5.0s
    """

    # Set by subclass __init__ to mirror log lines to a progress listener
    listener: Optional[LogListener] = None

    def _log_prefix(self: WorkerLoggerProtocol) -> str:
        """Build log prefix from worker type and context."""
        return f"[{self.worker_type.value}:{self._log_context()}]"

    def _emit(self, level: str, message: str) -> None:
        listener = getattr(self, "listener", None)
        if listener is not None:
            listener(level, message)

    def log_info(self: WorkerLoggerProtocol, message: str) -> None:
        """Log info message with worker prefix."""
        logger.info(f"{self._log_prefix()} {message}")
        self._emit("info", message)

    def log_warning(self: WorkerLoggerProtocol, message: str) -> None:
        """Log warning message with worker prefix."""
        logger.warning(f"{self._log_prefix()} {message}")
        self._emit("warning", message)

    def log_error(self: WorkerLoggerProtocol, message: str) -> None:
        """Log error message with worker prefix."""
        logger.error(f"{self._log_prefix()} {message}")
        self._emit("error", message)


# =============================================================================
# Concrete Context Classes
# =============================================================================

class IngestionLogContext(WorkerLoggerMixin):
    """
    Logging context for the crawl pipeline orchestrator.

    Log format: [IngestionWorker:run_id=X] message
    """
    worker_type = WorkerType.INGESTION

    def __init__(self, run_id: str, listener: Optional[LogListener] = None):
        self.run_id = run_id
        self.listener = listener

    def _log_context(self) -> str:
        return f"run_id={self.run_id}"


class CrawlerLogContext(WorkerLoggerMixin):
    """
    Logging context for list-page fetching of one keyword/country group.

    Log format: [CrawlerWorker:run_id=X:target=keyword/country] message
    """
    worker_type = WorkerType.CRAWLER

    def __init__(self, run_id: str, target_key: str, listener: Optional[LogListener] = None):
        self.run_id = run_id
        self.target_key = target_key
        self.listener = listener

    def _log_context(self) -> str:
        return f"run_id={self.run_id}:target={self.target_key}"


class ExtractorLogContext(WorkerLoggerMixin):
    """
    Logging context for detail enrichment of one job.

    Log format: [ExtractorWorker:run_id=X:job=index] message
    """
    worker_type = WorkerType.EXTRACTOR

    def __init__(self, run_id: str, job_key: str, listener: Optional[LogListener] = None):
        self.run_id = run_id
        self.job_key = job_key
        self.listener = listener

    def _log_context(self) -> str:
        return f"run_id={self.run_id}:job={self.job_key}"


class ArchiveLogContext(WorkerLoggerMixin):
    """
    Logging context for the statistics archive store.

    Log format: [ArchiveStore:month=YYYY-MM] message
    """
    worker_type = WorkerType.ARCHIVE

    def __init__(self, month: str):
        self.month = month

    def _log_context(self) -> str:
        return f"month={self.month}"


class DispatcherLogContext(WorkerLoggerMixin):
    """
    Logging context for rate-limited notification delivery.

    Log format: [Dispatcher:run_id=X] message
    """
    worker_type = WorkerType.DISPATCHER

    def __init__(self, run_id: str, listener: Optional[LogListener] = None):
        self.run_id = run_id
        self.listener = listener

    def _log_context(self) -> str:
        return f"run_id={self.run_id}"


class RssLogContext(WorkerLoggerMixin):
    """
    Logging context for RSS monitor and RSS statistics runs.

    Log format: [RssWorker:run_id=X] message
    """
    worker_type = WorkerType.RSS

    def __init__(self, run_id: str):
        self.run_id = run_id

    def _log_context(self) -> str:
        return f"run_id={self.run_id}"
