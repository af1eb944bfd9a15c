"""
In-run URL cache.

Tracks which normalized URLs have already been seen during the current crawl
so the same job discovered under two keywords/countries is enriched once.
If the calendar day changes while the process is alive the set starts over.
"""

import threading
from datetime import date, datetime, timezone
from typing import Callable

from utils.urls import normalize_url


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class RunCache:
    def __init__(self, today: Callable[[], date] = _utc_today):
        self._today = today
        self._day = today()
        self._urls: set[str] = set()
        self._lock = threading.Lock()

    def _reset_if_new_day(self) -> None:
        current = self._today()
        if current != self._day:
            self._day = current
            self._urls.clear()

    def has(self, url: str) -> bool:
        with self._lock:
            self._reset_if_new_day()
            return normalize_url(url) in self._urls

    def add(self, url: str) -> bool:
        """Record a URL. Returns True if it had not been seen yet."""
        key = normalize_url(url)
        with self._lock:
            self._reset_if_new_day()
            if key in self._urls:
                return False
            self._urls.add(key)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)

    def clear(self) -> None:
        with self._lock:
            self._urls.clear()
