"""
Tests for the persistent 48h URL cache and the in-run cache.

Run: python3 -m pytest cache/__tests__/test_url_cache.py -v
"""

import json
from datetime import date, datetime, timedelta, timezone

from cache.run_cache import RunCache
from cache.url_cache import FileCacheBackend, ObjectCacheBackend, UrlCache
from conftest import FakeObjectStore

NOW = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)
URL = "https://www.linkedin.com/jobs/view/1"


class Clock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


def write_cache(path, urls, last_updated: datetime) -> None:
    path.write_text(json.dumps({"urls": urls, "lastUpdated": last_updated.isoformat()}))


class TestUrlCacheFile:
    """Tests for the file-backed TTL cache."""

    def test_missing_file_loads_empty(self, tmp_path):
        cache = UrlCache(FileCacheBackend(tmp_path / "cache.json"), now=Clock(NOW))
        cache.load()
        assert cache.loaded
        assert len(cache) == 0

    def test_fresh_cache_is_used(self, tmp_path):
        path = tmp_path / "cache.json"
        write_cache(path, [URL], NOW - timedelta(hours=47))

        cache = UrlCache(FileCacheBackend(path), now=Clock(NOW))
        cache.load()

        assert cache.has(URL)
        assert cache.has(" HTTPS://www.linkedin.com/jobs/view/1")

    def test_expired_cache_is_discarded(self, tmp_path):
        """The whole cache expires as one unit after the TTL."""
        path = tmp_path / "cache.json"
        write_cache(path, [URL], NOW - timedelta(hours=49))

        cache = UrlCache(FileCacheBackend(path), now=Clock(NOW))
        cache.load()

        assert not cache.has(URL)

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{broken")
        cache = UrlCache(FileCacheBackend(path), now=Clock(NOW))
        cache.load()
        assert len(cache) == 0

    def test_save_refreshes_timestamp(self, tmp_path):
        path = tmp_path / "nested" / "cache.json"
        clock = Clock(NOW)
        cache = UrlCache(FileCacheBackend(path), now=clock)
        cache.load()
        cache.add_many([URL, URL.upper()])

        assert cache.save() is True

        data = json.loads(path.read_text())
        assert data["urls"] == [URL]
        assert data["lastUpdated"] == NOW.isoformat()
        assert data["metadata"]["totalUrlsCached"] == 1

        # Saving again resets the TTL for every URL
        clock.moment = NOW + timedelta(hours=40)
        cache.save()
        clock.moment = NOW + timedelta(hours=80)
        reloaded = UrlCache(FileCacheBackend(path), now=clock)
        reloaded.load()
        assert reloaded.has(URL)

    def test_stats(self, tmp_path):
        cache = UrlCache(FileCacheBackend(tmp_path / "c.json"), ttl_hours=24, now=Clock(NOW))
        cache.add(URL)
        assert cache.get_stats() == {"totalUrls": 1, "lastUpdated": None, "ttlHours": 24}


class TestUrlCacheObject:
    """Tests for the bucket-backed cache."""

    def test_round_trip_through_bucket(self):
        store = FakeObjectStore()
        cache = UrlCache(ObjectCacheBackend(store, "cache/urls.json"), now=Clock(NOW))
        cache.load()
        cache.add(URL)
        cache.save()

        reloaded = UrlCache(ObjectCacheBackend(store, "cache/urls.json"), now=Clock(NOW))
        reloaded.load()
        assert reloaded.has(URL)

    def test_write_failure_returns_false(self):
        store = FakeObjectStore()
        store.fail_writes = True
        cache = UrlCache(ObjectCacheBackend(store, "cache/urls.json"), now=Clock(NOW))
        cache.add(URL)
        assert cache.save() is False

    def test_read_failure_loads_empty(self):
        store = FakeObjectStore()
        store.fail_reads = True
        cache = UrlCache(ObjectCacheBackend(store, "cache/urls.json"), now=Clock(NOW))
        cache.load()
        assert cache.loaded
        assert len(cache) == 0


class TestRunCache:
    """Tests for in-run dedup."""

    def test_add_reports_first_sighting(self):
        cache = RunCache()
        assert cache.add(URL) is True
        assert cache.add(URL.upper() + "  ") is False
        assert cache.has(URL)
        assert len(cache) == 1

    def test_resets_on_new_day(self):
        today = {"value": date(2025, 3, 14)}
        cache = RunCache(today=lambda: today["value"])
        cache.add(URL)

        today["value"] = date(2025, 3, 15)

        assert not cache.has(URL)
        assert cache.add(URL) is True
