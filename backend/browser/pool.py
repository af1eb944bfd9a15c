"""
Browser manager and session pool.

BrowserManager owns one Chromium instance. Every unit of work gets its own
browser context (cookies, headers and storage are not shared between
contexts), so list pages for one country never leak state into another.

SessionPool holds a fixed number of reusable pages in an asyncio.Queue.
Workers check a page out with `async with pool.session() as page:` and it
is returned to the queue when the block exits, so at most `size` detail
pages are ever open at once.

Cancellation: closing the manager closes every context. In-flight
navigations then fail, and `pool.closed` tells callers to stop retrying.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1366, "height": 768}
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


class BrowserLaunchError(Exception):
    """The browser could not be started. Fatal for a crawl run."""


class BrowserManager:
    """Lifecycle of a single headless Chromium instance."""

    def __init__(self, headless: bool = True, _playwright_factory=async_playwright):
        self.headless = headless
        self._playwright_factory = _playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> "BrowserManager":
        """
        Launch Chromium.

        Raises:
            BrowserLaunchError: If Playwright or the browser binary fails to start
        """
        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS,
            )
        except PlaywrightError as e:
            await self.close()
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e
        self._closed = False
        logger.info("[browser] Chromium launched")
        return self

    async def new_context(self, language: str) -> BrowserContext:
        if self._browser is None or self._closed:
            raise BrowserLaunchError("Browser is not running")
        return await self._browser.new_context(
            user_agent=USER_AGENT,
            viewport=VIEWPORT,
            locale=language.split(",")[0],
            extra_http_headers={"Accept-Language": language},
        )

    @asynccontextmanager
    async def isolated_page(self, language: str) -> AsyncIterator[Page]:
        """A page in a fresh context, closed (with its context) on exit."""
        context = await self.new_context(language)
        try:
            yield await context.new_page()
        finally:
            await _quiet_close(context)

    async def close(self) -> None:
        self._closed = True
        if self._browser is not None:
            await _quiet_close(self._browser)
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logger.warning(f"[browser] Error stopping playwright: {e}")
            self._playwright = None

    async def __aenter__(self) -> "BrowserManager":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class SessionPool:
    """
    Fixed-size pool of reusable pages.

    Example:
        pool = SessionPool(manager, size=4)
        await pool.open("en-US,en;q=0.9")
        async with pool.session() as page:
            await page.goto(url)
    """

    def __init__(self, manager: BrowserManager, size: int):
        if size < 1:
            raise ValueError("Session pool size must be at least 1")
        self.manager = manager
        self.size = size
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=size)
        self._contexts: list[BrowserContext] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self.manager.closed

    async def open(self, language: str = "en-US,en;q=0.9") -> "SessionPool":
        for _ in range(self.size):
            context = await self.manager.new_context(language)
            self._contexts.append(context)
            self._queue.put_nowait(await context.new_page())
        return self

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        page = await self._queue.get()
        try:
            yield page
        finally:
            self._queue.put_nowait(page)

    async def close(self) -> None:
        self._closed = True
        for context in self._contexts:
            await _quiet_close(context)
        self._contexts.clear()


async def _quiet_close(closable) -> None:
    """Close a context/browser that may already be gone."""
    try:
        await closable.close()
    except PlaywrightError as e:
        logger.debug(f"[browser] Ignoring close error: {e}")
