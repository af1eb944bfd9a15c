"""
Rate-limited dispatcher.

Delivers notifications one at a time through a sink, pausing delay_seconds
between items. A failed item is logged and counted; it never stops the
remaining items. Only the keys of delivered items are reported back, and only
those are written to the URL cache by callers.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol

from notify.telegram import NotificationError
from utils.worker_logging import DispatcherLogContext, LogListener


class NotificationSink(Protocol):
    async def send_message(self, text: str) -> None:
        ...

    async def send_document(self, content: bytes, filename: str, caption: str = "") -> None:
        ...


@dataclass
class Notification:
    """A text message, or a document when content is set. key identifies it in the result (usually a job URL)."""
    key: str
    text: str = ""
    content: Optional[bytes] = None
    filename: str = ""

    @property
    def is_document(self) -> bool:
        return self.content is not None


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0
    delivered_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"sent": self.sent, "failed": self.failed}


class RateLimitedDispatcher:
    def __init__(
        self,
        sink: NotificationSink,
        delay_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        run_id: str = "-",
        listener: Optional[LogListener] = None,
    ):
        self.sink = sink
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.ctx = DispatcherLogContext(run_id, listener)

    async def _deliver(self, item: Notification) -> None:
        if item.is_document:
            await self.sink.send_document(item.content, item.filename, item.text)
        else:
            await self.sink.send_message(item.text)

    async def dispatch(self, items: list[Notification]) -> DispatchResult:
        result = DispatchResult()
        for index, item in enumerate(items):
            if index > 0 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
            try:
                await self._deliver(item)
            except NotificationError as e:
                result.failed += 1
                status = f" (HTTP {e.status_code})" if e.status_code else ""
                self.ctx.log_warning(f"Failed to send {index + 1}/{len(items)}{status}: {e}")
                continue
            result.sent += 1
            result.delivered_keys.append(item.key)

        self.ctx.log_info(f"Dispatched {len(items)} notifications: {result.sent} sent, {result.failed} failed")
        return result
