"""
Integration tests for the HTTP surface.

Tests the endpoint logic with mocked dependencies:
- run_pipeline / stream_pipeline: patched, so no browser is started
- get_archive_store: overridden via FastAPI dependency injection with an
  archive on the in-memory FakeObjectStore
- run_stats_extraction / run_rss_monitor: patched AsyncMocks

Run: python3 -m pytest api/__tests__/test_api_routes.py -v
"""
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from api.stats_routes import get_archive_store
from browser.pool import BrowserLaunchError
from conftest import FakeObjectStore, build_statistic
from main import app
from storage.archive_store import StatisticsArchiveStore
from workers.types import CrawlSummary, ProgressEvent

NOW = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def archive_client():
    """Client whose stats routes read an archive holding two March jobs."""
    store = FakeObjectStore()
    archive = StatisticsArchiveStore(store, now=lambda: NOW)
    archive.load()
    archive.add_job(build_statistic(1))
    archive.add_job(build_statistic(2, certificates=["CFA", "FRM"]))
    archive.save()

    def override_get_archive_store():
        fresh = StatisticsArchiveStore(store, now=lambda: NOW)
        fresh.load()
        return fresh

    app.dependency_overrides[get_archive_store] = override_get_archive_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_summary(**overrides) -> CrawlSummary:
    data = {
        "run_id": "a1b2c3d4",
        "keywords": ["CFA"],
        "countries": ["United Kingdom"],
        "pages_fetched": 2,
        "jobs_found": 5,
        "total": 5,
        "succeeded": 5,
        "archived": 5,
        "archive_saved": True,
        "notified": 1,
        "filename": "jobs_2025-03-14.xlsx",
    }
    data.update(overrides)
    return CrawlSummary(**data)


def parse_sse(text: str) -> list[tuple[str, dict]]:
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert "archive_configured" in body
        assert "telegram_configured" in body


class TestScrape:
    """Tests for POST /api/scrape."""

    def test_empty_keywords_rejected(self, client):
        with patch("api.scrape_routes.run_pipeline", new_callable=AsyncMock) as run:
            response = client.post("/api/scrape", json={"searchText": " , ", "locationText": "UK"})

        assert response.status_code == 400
        assert "keyword" in response.json()["detail"]
        run.assert_not_awaited()

    def test_non_positive_time_filter_rejected(self, client):
        response = client.post(
            "/api/scrape",
            json={"searchText": "CFA", "locationText": "UK", "timeFilterSeconds": 0},
        )

        assert response.status_code == 422

    def test_returns_summary(self, client):
        with patch("api.scrape_routes.run_pipeline", new_callable=AsyncMock) as run:
            run.return_value = make_summary()
            response = client.post(
                "/api/scrape",
                json={"searchText": "CFA", "locationText": "United Kingdom"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["total"] == 5
        assert body["filename"] == "jobs_2025-03-14.xlsx"

        request = run.await_args.args[0]
        assert request.keywords == ("CFA",)
        assert request.time_filter_seconds == 86400
        assert run.await_args.kwargs["location_text"] == "United Kingdom"

    def test_browser_failure(self, client):
        with patch("api.scrape_routes.run_pipeline", new_callable=AsyncMock) as run, \
                patch("api.scrape_routes.notify_failure", new_callable=AsyncMock) as notify:
            run.side_effect = BrowserLaunchError("Failed to launch browser")
            response = client.post("/api/scrape", json={"searchText": "CFA", "locationText": "UK"})

        assert response.status_code == 503
        notify.assert_awaited_once()
        assert str(notify.await_args.args[0]) == "Failed to launch browser"

    def test_unexpected_failure(self, client):
        with patch("api.scrape_routes.run_pipeline", new_callable=AsyncMock) as run, \
                patch("api.scrape_routes.notify_failure", new_callable=AsyncMock) as notify:
            run.side_effect = RuntimeError("disk full")
            response = client.post("/api/scrape", json={"searchText": "CFA", "locationText": "UK"})

        assert response.status_code == 500
        assert "disk full" in response.json()["detail"]
        notify.assert_awaited_once()


class TestScrapeStream:
    """Tests for GET /api/scrape/stream."""

    def test_invalid_input_is_error_event(self, client):
        response = client.get("/api/scrape/stream", params={"searchText": "CFA", "locationText": ""})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert events == [("error", {"message": "At least one country is required"})]

    def test_streams_pipeline_events(self, client):
        async def fake_stream(request, location_text=""):
            yield ProgressEvent.log("Starting", stage="crawl", percentage=0)
            yield ProgressEvent.complete(make_summary())

        with patch("api.scrape_routes.stream_pipeline", fake_stream):
            response = client.get(
                "/api/scrape/stream",
                params={"searchText": "CFA", "locationText": "United Kingdom"},
            )

        events = parse_sse(response.text)
        assert [name for name, _ in events] == ["log", "complete"]
        assert events[0][1]["stage"] == "crawl"
        assert events[1][1]["jobCount"] == 5
        assert events[1][1]["filename"] == "jobs_2025-03-14.xlsx"
        assert response.headers["cache-control"] == "no-cache"


class TestStatsRoutes:
    """Tests for the statistics archive endpoints."""

    def test_summary(self, archive_client):
        response = archive_client.get("/api/stats/summary")

        assert response.status_code == 200
        body = response.json()
        assert body["currentMonth"] == "2025-03"
        assert body["totalJobsAllTime"] == 2
        assert body["storage"]["currentMonthJobs"] == 2
        assert body["overallStatistics"]["topCertificates"] == {"CFA": 2, "FRM": 1}

    def test_month(self, archive_client):
        response = archive_client.get("/api/stats/month/2025-03")

        assert response.status_code == 200
        body = response.json()
        assert body["jobCount"] == 2
        assert body["archived"] is False

    def test_month_bad_format(self, archive_client):
        assert archive_client.get("/api/stats/month/2025-13").status_code == 400
        assert archive_client.get("/api/stats/month/march").status_code == 400

    def test_month_missing(self, archive_client):
        assert archive_client.get("/api/stats/month/2024-01").status_code == 404

    def test_archives(self, archive_client):
        response = archive_client.get("/api/stats/archives")

        assert response.status_code == 200
        body = response.json()
        assert [a["month"] for a in body["archives"]] == ["2025-03"]
        assert body["totalJobs"] == 2

    def test_extract_and_save(self, client):
        with patch("api.stats_routes.run_stats_extraction", new_callable=AsyncMock) as run:
            run.return_value = {"success": True, "processed": 3, "newJobs": 1}
            response = client.post("/api/stats/extract-and-save")

        assert response.status_code == 200
        assert response.json()["newJobs"] == 1


class TestRssRoutes:
    """Tests for the RSS monitor trigger."""

    def test_check(self, client):
        result = {"total": 4, "recent": 2, "sent": 2, "failed": 0, "skipped_cached": 0}
        with patch("api.rss_routes.run_rss_monitor", new_callable=AsyncMock) as run:
            run.return_value = result
            response = client.post("/api/rss/check")

        assert response.status_code == 200
        assert response.json() == result
