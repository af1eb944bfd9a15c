"""
Crawl target generation.

A crawl request is a list of keywords x a list of countries. Each
(keyword, country) pair is paginated from page 0 up to max_pages - 1, and the
fetcher stops a pair early as soon as a page comes back empty, so targets are
handed out in groups rather than as one flat list.

Ordering: keywords outer, countries inner, pages innermost.
"""

from dataclasses import dataclass
from typing import Iterator

from sourcing.countries import CountryConfig, get_country_config


@dataclass(frozen=True)
class CrawlTarget:
    """One list page to fetch. Consumed once, discarded after parsing."""
    keyword: str
    country: str
    country_config: CountryConfig
    page_number: int

    @property
    def group_key(self) -> str:
        return f"{self.keyword}/{self.country}"


@dataclass(frozen=True)
class CrawlRequest:
    keywords: tuple[str, ...]
    countries: tuple[str, ...]
    time_filter_seconds: int = 86400

    @classmethod
    def from_text(cls, search_text: str, location_text: str, time_filter_seconds: int = 86400) -> "CrawlRequest":
        """
        Build a request from the comma-separated trigger inputs.

        Raises:
            ValueError: If either list is empty after trimming
        """
        keywords = tuple(parse_csv(search_text))
        countries = tuple(parse_csv(location_text))
        if not keywords:
            raise ValueError("At least one search keyword is required")
        if not countries:
            raise ValueError("At least one country is required")
        return cls(keywords=keywords, countries=countries, time_filter_seconds=time_filter_seconds)


def parse_csv(text: str | None) -> list[str]:
    """Split on commas, trim, drop empties."""
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def generate_targets(request: CrawlRequest, max_pages: int) -> Iterator[CrawlTarget]:
    """Yield every (keyword, country, page) target in crawl order."""
    for group in group_targets(request, max_pages):
        yield from group


def group_targets(request: CrawlRequest, max_pages: int) -> Iterator[list[CrawlTarget]]:
    """Yield one list of page targets per (keyword, country) pair."""
    for keyword in request.keywords:
        for country in request.countries:
            config = get_country_config(country)
            yield [
                CrawlTarget(keyword=keyword, country=country, country_config=config, page_number=page)
                for page in range(max_pages)
            ]
