"""
Unit tests for the RSS worker.

The feed extractor's fetch_feeds is an AsyncMock returning FeedItems, so no
HTTP is made.

Run: python3 -m pytest workers/__tests__/test_rss_worker.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from cache.url_cache import ObjectCacheBackend, UrlCache
from conftest import FakeObjectStore
from extractors.rss import FeedItem, RssFeedExtractor
from notify.telegram import NotificationError
from storage.archive_store import StatisticsArchiveStore
from workers.rss_worker import run_rss_monitor, run_stats_extraction

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


def make_item(n: int, pub_date: str = "Fri, 14 Mar 2025 11:45:00 GMT", title: str = "") -> FeedItem:
    return FeedItem(
        title=title or f"Acme hiring Risk Analyst {n} in London, England, United Kingdom",
        link=f"https://www.linkedin.com/jobs/view/{n}",
        pub_date=pub_date,
        description="CFA preferred. Strong Excel and Python skills.",
    )


def make_extractor(items: list[FeedItem]) -> RssFeedExtractor:
    extractor = RssFeedExtractor()
    extractor.fetch_feeds = AsyncMock(return_value=items)
    return extractor


def make_sink(fail_texts_containing: str = "") -> MagicMock:
    sink = MagicMock()

    async def send_message(text):
        if fail_texts_containing and fail_texts_containing in text:
            raise NotificationError("Too Many Requests", status_code=429)

    sink.send_message = AsyncMock(side_effect=send_message)
    return sink


class TestRunRssMonitor:
    """Tests for the notify-on-new-jobs check."""

    def run(self, items, cache_store, sink, interval=60):
        return asyncio.run(run_rss_monitor(
            feed_urls=["https://feeds.example.com/a"],
            interval_minutes=interval,
            url_cache=UrlCache(ObjectCacheBackend(cache_store, "cache/rss.json")),
            sink=sink,
            extractor=make_extractor(items),
            sleep=AsyncMock(),
            now=lambda: NOW,
        ))

    def test_sends_recent_jobs_once(self):
        cache_store = FakeObjectStore()
        items = [make_item(1), make_item(2), make_item(3, pub_date="Fri, 14 Mar 2025 09:00:00 GMT")]
        sink = make_sink()

        result = self.run(items, cache_store, sink)

        assert result == {"total": 3, "recent": 2, "sent": 2, "failed": 0, "skipped_cached": 0}
        assert sink.send_message.await_count == 2

        again = self.run(items, cache_store, make_sink())
        assert again["skipped_cached"] == 2
        assert again["sent"] == 0

    def test_failed_message_not_cached(self):
        """A job whose message failed is retried on the next check."""
        cache_store = FakeObjectStore()
        items = [make_item(1), make_item(2)]

        result = self.run(items, cache_store, make_sink(fail_texts_containing="Risk Analyst 2"))

        assert result["sent"] == 1
        assert result["failed"] == 1

        retry_sink = make_sink()
        again = self.run(items, cache_store, retry_sink)
        assert again["sent"] == 1
        assert "Risk Analyst 2" in retry_sink.send_message.await_args.args[0]

    def test_no_recent_jobs(self):
        cache_store = FakeObjectStore()
        sink = make_sink()

        result = self.run([make_item(1, pub_date="Thu, 13 Mar 2025 09:00:00 GMT")], cache_store, sink)

        assert result["recent"] == 0
        sink.send_message.assert_not_awaited()
        assert cache_store.writes == []


class TestRunStatsExtraction:
    """Tests for archiving feed jobs as statistics."""

    def test_archives_new_jobs(self, fake_store):
        archive = StatisticsArchiveStore(fake_store, now=lambda: NOW)

        result = asyncio.run(run_stats_extraction(
            feed_urls=["https://feeds.example.com/stats"],
            archive=archive,
            extractor=make_extractor([make_item(1), make_item(2)]),
            now=lambda: NOW,
        ))

        assert result["success"] is True
        assert result["processed"] == 2
        assert result["newJobs"] == 2
        assert result["saved"] is True
        assert result["currentMonth"] == "2025-03"
        assert result["currentMonthTotal"] == 2
        assert result["totalAllTime"] == 2
        assert result["statistics"]["byCertificate"] == {"CFA": 2}

    def test_repeat_run_adds_nothing(self, fake_store):
        items = [make_item(1)]
        for _ in range(2):
            result = asyncio.run(run_stats_extraction(
                feed_urls=["https://feeds.example.com/stats"],
                archive=StatisticsArchiveStore(fake_store, now=lambda: NOW),
                extractor=make_extractor(items),
                now=lambda: NOW,
            ))

        assert result["newJobs"] == 0
        assert result["saved"] is False
        assert result["totalAllTime"] == 1
