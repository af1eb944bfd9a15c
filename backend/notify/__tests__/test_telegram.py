"""
Tests for the Telegram sink and message formatting.

HTTP is served by httpx.MockTransport.

Run: python3 -m pytest notify/__tests__/test_telegram.py -v
"""

import asyncio
import json

import httpx
import pytest

from extractors.rss import FeedItem
from models.job import JobRecord
from notify.telegram import NotificationError, TelegramSink, format_job_message, format_record_message


def make_sink(handler, token: str = "123:abc", chat_id: str = "42") -> TelegramSink:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramSink(token, chat_id, client=client)


class TestSendMessage:
    """Tests for sendMessage calls."""

    def test_posts_html_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        asyncio.run(make_sink(handler).send_message("<b>hi</b>"))

        assert seen["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert seen["body"] == {
            "chat_id": "42",
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    def test_api_error_uses_description(self):
        def handler(request):
            return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})

        with pytest.raises(NotificationError) as exc:
            asyncio.run(make_sink(handler).send_message("hi"))

        assert "chat not found" in str(exc.value)
        assert exc.value.status_code == 400

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NotificationError, match="Network error"):
            asyncio.run(make_sink(handler).send_message("hi"))

    def test_missing_credentials(self):
        """Nothing is sent when the bot is not configured."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"ok": True})

        sink = make_sink(handler, token="")
        assert not sink.configured
        with pytest.raises(NotificationError, match="not configured"):
            asyncio.run(sink.send_message("hi"))
        assert calls == []


class TestSendDocument:
    def test_multipart_upload(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"ok": True})

        asyncio.run(make_sink(handler).send_document(b"PK-data", "jobs.xlsx", "caption"))

        assert seen["url"].endswith("/sendDocument")
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'filename="jobs.xlsx"' in seen["body"]
        assert b"PK-data" in seen["body"]


class TestFormatting:
    """Tests for HTML message bodies."""

    def test_job_message_escapes_html(self):
        item = FeedItem(
            title="R&D <Labs> hiring Quant Analyst in London",
            link="https://www.linkedin.com/jobs/view/1?a=1&b=2",
            pub_date="Fri, 14 Mar 2025 11:30:00 GMT",
            description="Build models",
        )
        message = format_job_message(item)

        assert "<b>Quant Analyst</b>" in message
        assert "R&amp;D &lt;Labs&gt;" in message
        assert "14/03/2025 11:30 UTC" in message
        assert 'href="https://www.linkedin.com/jobs/view/1?a=1&amp;b=2"' in message

    def test_record_message_hides_error_fields(self):
        record = JobRecord(url="https://www.linkedin.com/jobs/view/1", title="Analyst", company="Acme")
        message = format_record_message(record.with_error("Navigation timeout"))

        assert "<b>Analyst</b>" in message
        assert "Error" not in message

    def test_record_message_shows_compensation(self):
        record = JobRecord(url="https://x.com/jobs/1", title="Analyst", compensation="£50k", recruiter_name="Jane")
        message = format_record_message(record)
        assert "💰 £50k" in message
        assert "👤 Jane" in message
