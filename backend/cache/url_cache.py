"""
Persistent URL cache with a time-to-live.

Remembers URLs that were already delivered downstream (notification sent,
export produced) so the next run does not deliver them again. The whole
cache shares one lastUpdated timestamp and expires as a unit: on load, a
cache older than the TTL (48h by default) is discarded.

File format:
{
    "urls": ["https://...", ...],
    "lastUpdated": "2025-03-14T09:00:00+00:00",
    "metadata": {"totalUrlsCached": 2, "version": "1.0.0"}
}

Backends:
- FileCacheBackend: local JSON file (default cache/linkedin-jobs-cache.json)
- ObjectCacheBackend: the same document stored as an object in the archive bucket

Usage:
    cache = UrlCache(FileCacheBackend(path))
    cache.load()
    if not cache.has(url): ...deliver...; cache.add(url)
    cache.save()
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol

from config.settings import settings
from storage.object_store import ObjectStore, StorageError
from utils.urls import normalize_url

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0.0"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheBackend(Protocol):
    def read(self) -> Optional[dict]:
        ...

    def write(self, data: dict) -> None:
        ...


class FileCacheBackend:
    """Cache document on the local filesystem."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


class ObjectCacheBackend:
    """Cache document stored as a JSON object in the archive bucket."""

    def __init__(self, store: ObjectStore, key: str):
        self.store = store
        self.key = key

    def read(self) -> Optional[dict]:
        return self.store.get_json(self.key)

    def write(self, data: dict) -> None:
        self.store.put_json(self.key, data)


class UrlCache:
    def __init__(
        self,
        backend: CacheBackend,
        ttl_hours: int = 48,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.backend = backend
        self.ttl = timedelta(hours=ttl_hours)
        self._now = now
        self._urls: set[str] = set()
        self.last_updated: Optional[datetime] = None
        self.loaded = False

    @classmethod
    def from_settings(cls, store: Optional[ObjectStore] = None) -> "UrlCache":
        """Bucket-backed when URL_CACHE_OBJECT_KEY is set and a store is available, else file-backed."""
        if settings.URL_CACHE_OBJECT_KEY and store is not None and store.is_available():
            backend = ObjectCacheBackend(store, settings.URL_CACHE_OBJECT_KEY)
        else:
            backend = FileCacheBackend(settings.URL_CACHE_FILE)
        return cls(backend, ttl_hours=settings.URL_CACHE_TTL_HOURS)

    def load(self) -> None:
        """
        Read the cache document. Missing, unreadable or expired caches load as empty.
        """
        self._urls = set()
        self.last_updated = None
        self.loaded = True

        try:
            data = self.backend.read()
        except (OSError, json.JSONDecodeError, StorageError) as e:
            logger.warning(f"[url_cache] Could not read cache, starting empty: {e}")
            return

        if not data:
            logger.info("[url_cache] No existing cache, starting empty")
            return

        last_updated = _parse_timestamp(data.get("lastUpdated"))
        if last_updated is None:
            logger.warning("[url_cache] Cache has no valid lastUpdated, discarding")
            return

        age = self._now() - last_updated
        if age > self.ttl:
            logger.info(f"[url_cache] Cache expired ({age} old, TTL {self.ttl}), discarding")
            return

        self._urls = {normalize_url(url) for url in data.get("urls", []) if url}
        self.last_updated = last_updated
        logger.info(f"[url_cache] Loaded {len(self._urls)} cached URLs")

    def save(self) -> bool:
        """Write the cache with a fresh lastUpdated. Returns False on write failure."""
        now = self._now()
        data = {
            "urls": sorted(self._urls),
            "lastUpdated": now.isoformat(),
            "metadata": {
                "totalUrlsCached": len(self._urls),
                "version": CACHE_VERSION,
            },
        }
        try:
            self.backend.write(data)
        except (OSError, StorageError) as e:
            logger.error(f"[url_cache] Failed to save cache: {e}")
            return False
        self.last_updated = now
        logger.info(f"[url_cache] Saved {len(self._urls)} URLs")
        return True

    def has(self, url: str) -> bool:
        return normalize_url(url) in self._urls

    def add(self, url: str) -> None:
        key = normalize_url(url)
        if key:
            self._urls.add(key)

    def add_many(self, urls) -> None:
        for url in urls:
            self.add(url)

    def clear(self) -> None:
        self._urls.clear()

    def get_stats(self) -> dict:
        return {
            "totalUrls": len(self._urls),
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
            "ttlHours": self.ttl.total_seconds() / 3600,
        }

    def __len__(self) -> int:
        return len(self._urls)


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
