"""
Telegram notification sink.

Sends HTML-formatted messages and documents through the Bot API with httpx.
Every failure (missing credentials, non-2xx response, network error) is
raised as NotificationError; pacing and per-message isolation belong to the
dispatcher.

Environment Variables:
- TELEGRAM_BOT_TOKEN: bot token
- TELEGRAM_CHAT_ID: destination chat
"""

import html
import logging
from typing import Optional

import httpx

from config.settings import settings
from extractors.rss import FeedItem, extract_job_details
from models.job import JobRecord

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"
SEND_TIMEOUT = 30.0  # seconds
MAX_SNIPPET_CHARS = 300


class NotificationError(Exception):
    """A message could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TelegramSink:
    def __init__(self, bot_token: str, chat_id: str, client: Optional[httpx.AsyncClient] = None):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self._client = client

    @classmethod
    def from_settings(cls) -> "TelegramSink":
        return cls(settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_CHAT_ID)

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def _url(self, method: str) -> str:
        return f"{API_BASE}/bot{self.bot_token}/{method}"

    async def _post(self, method: str, **kwargs) -> None:
        if not self.configured:
            raise NotificationError("Telegram credentials not configured")

        try:
            if self._client is not None:
                response = await self._client.post(self._url(method), timeout=SEND_TIMEOUT, **kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self._url(method), timeout=SEND_TIMEOUT, **kwargs)
        except httpx.HTTPError as e:
            raise NotificationError(f"Network error: {e}") from e

        if response.is_error:
            try:
                description = response.json().get("description")
            except ValueError:
                description = None
            raise NotificationError(
                description or f"Failed to call {method}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

    async def send_message(self, text: str) -> None:
        await self._post("sendMessage", json={
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        })

    async def send_document(self, content: bytes, filename: str, caption: str = "") -> None:
        await self._post(
            "sendDocument",
            data={"chat_id": self.chat_id, "caption": caption, "parse_mode": "HTML"},
            files={"document": (filename, content)},
        )


# =============================================================================
# Message formatting
# =============================================================================

def _snippet(text: str, limit: int = MAX_SNIPPET_CHARS) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[:limit].rstrip() + "…"


def format_job_message(item: FeedItem) -> str:
    """HTML message for one RSS job."""
    details = extract_job_details(item.title)
    lines = [
        f"<b>{html.escape(details.position)}</b>",
        f"🏢 {html.escape(details.company)}",
        f"📍 {html.escape(details.location)}",
    ]
    published = item.published_at()
    if published is not None:
        lines.append(f"🕒 {published.strftime('%d/%m/%Y %H:%M')} UTC")
    if item.description:
        lines.append("")
        lines.append(html.escape(_snippet(item.description)))
    lines.append("")
    lines.append(f'<a href="{html.escape(item.link, quote=True)}">View job</a>')
    return "\n".join(lines)


def format_record_message(record: JobRecord) -> str:
    """HTML message for one crawled (and possibly enriched) job."""
    lines = [
        f"<b>{html.escape(record.title or 'Untitled role')}</b>",
        f"🏢 {html.escape(record.company or 'Unknown company')}",
        f"📍 {html.escape(record.location or record.search_country or 'Unknown location')}",
    ]
    if record.compensation and not record.is_error() and not record.compensation.startswith("No compensation"):
        lines.append(f"💰 {html.escape(record.compensation)}")
    if record.recruiter_name and not record.is_error():
        lines.append(f"👤 {html.escape(record.recruiter_name)}")
    lines.append("")
    lines.append(f'<a href="{html.escape(record.url, quote=True)}">View job</a>')
    return "\n".join(lines)
