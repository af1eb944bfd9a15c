"""
RSS feed extractor

Feeds are fetched concurrently over HTTP and parsed with feedparser. An entry
is kept only if it has a title, a link and a publication date. CDATA wrappers
left in titles/descriptions by some feed generators are stripped.

Feed titles usually follow "<Company> hiring <Position> in <Location>", which
extract_job_details() splits into its parts.

A feed that fails to download or parse contributes nothing; the other feeds
are still returned.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import feedparser
import httpx
from dateutil import parser as date_parser

from extractors.base_extractor import BaseJobExtractor
from extractors.enums import Source
from models.job import JobRecord
from utils.urls import is_valid_job_url, normalize_url

logger = logging.getLogger(__name__)

FEED_TIMEOUT = 20.0  # seconds
FEED_USER_AGENT = 'Mozilla/5.0 (compatible; JobMonitor/1.0)'

_CDATA_RE = re.compile(r"<!\[CDATA\[|\]\]>")
_HIRING_RE = re.compile(r"(.+?)\s+hiring\s+(.+?)\s+(?:at|in)\s+(.+)", re.IGNORECASE)


class FeedFetchError(Exception):
    """A single feed could not be downloaded or parsed."""

    def __init__(self, message: str, feed_url: str):
        super().__init__(message)
        self.feed_url = feed_url


@dataclass
class FeedItem:
    title: str
    link: str
    pub_date: str
    description: str = ""

    def published_at(self) -> Optional[datetime]:
        """Publication time as an aware datetime, or None if unparsable."""
        try:
            parsed = date_parser.parse(self.pub_date)
        except (ValueError, OverflowError, TypeError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


@dataclass
class JobDetails:
    company: str
    position: str
    location: str
    full_title: str


def clean_cdata(text: str | None) -> str:
    return _CDATA_RE.sub("", text or "").strip()


def extract_job_details(title: str) -> JobDetails:
    """
    Split a feed title into company / position / location.

    Example:
        >>> extract_job_details("Acme hiring Analyst in London").company
        'Acme'
    """
    clean_title = clean_cdata(title)
    match = _HIRING_RE.match(clean_title)
    if match:
        return JobDetails(
            company=match.group(1).strip(),
            position=match.group(2).strip(),
            location=match.group(3).strip(),
            full_title=clean_title,
        )
    return JobDetails(company="N/A", position=clean_title, location="N/A", full_title=clean_title)


def filter_recent_jobs(items: list[FeedItem], interval_minutes: int, now: Optional[datetime] = None) -> list[FeedItem]:
    """Keep items published within the last interval_minutes + 1 minutes (and not in the future)."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=interval_minutes + 1)
    recent = []
    for item in items:
        published = item.published_at()
        if published is not None and cutoff <= published <= now:
            recent.append(item)
    return recent


def dedupe_feed_items(feeds: list[list[FeedItem]]) -> list[FeedItem]:
    """Flatten feed results, dropping invalid and repeated links (first occurrence wins)."""
    seen: set[str] = set()
    items = []
    for feed_items in feeds:
        for item in feed_items:
            if not is_valid_job_url(item.link):
                logger.warning(f"[rss] Skipping job with invalid URL: \"{item.link}\" - {item.title}")
                continue
            key = normalize_url(item.link)
            if key in seen:
                continue
            seen.add(key)
            items.append(item)
    return items


class RssFeedExtractor(BaseJobExtractor):
    """Fetches and parses job RSS feeds."""

    SOURCE = Source.RSS

    def get_headers(self, language: str = 'en-US,en;q=0.9'):
        headers = super().get_headers(language)
        headers['User-Agent'] = FEED_USER_AGENT
        return headers

    def parse_feed(self, raw_content: str) -> list[FeedItem]:
        feed = feedparser.parse(raw_content)
        items = []
        for entry in feed.entries:
            title = clean_cdata(entry.get('title'))
            link = (entry.get('link') or '').strip()
            pub_date = (entry.get('published') or entry.get('updated') or '').strip()
            if not (title and link and pub_date):
                continue
            items.append(FeedItem(
                title=title,
                link=link,
                pub_date=pub_date,
                description=clean_cdata(entry.get('summary') or entry.get('description')),
            ))
        return items

    def parse_listing(self, raw_content: str) -> list[JobRecord]:
        return [self.to_record(item) for item in self.parse_feed(raw_content)]

    @staticmethod
    def to_record(item: FeedItem) -> JobRecord:
        details = extract_job_details(item.title)
        published = item.published_at()
        return JobRecord(
            url=item.link,
            title=item.title,
            company=details.company if details.company != "N/A" else "",
            location=details.location if details.location != "N/A" else "",
            posted_date=published.isoformat() if published else item.pub_date,
            description=item.description,
        )

    async def fetch_feed(self, url: str) -> list[FeedItem]:
        """
        Download and parse one feed.

        Raises:
            FeedFetchError: On HTTP or network failure
        """
        try:
            response = await self.make_request(url, timeout=FEED_TIMEOUT)
        except httpx.HTTPStatusError as e:
            raise FeedFetchError(f"Failed to fetch feed: HTTP {e.response.status_code}", url) from e
        except httpx.HTTPError as e:
            raise FeedFetchError(f"Error fetching feed: {e}", url) from e

        items = self.parse_feed(response.text)
        logger.info(f"[rss] Parsed {len(items)} entries from {url}")
        return items

    async def fetch_feeds(self, urls: list[str]) -> list[FeedItem]:
        """Fetch all feeds concurrently and return deduplicated items."""
        results = await asyncio.gather(
            *(self.fetch_feed(url) for url in urls),
            return_exceptions=True,
        )

        feeds = []
        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                logger.error(f"[rss] Error fetching feed {url}: {result}")
                feeds.append([])
            else:
                feeds.append(result)
        return dedupe_feed_items(feeds)
