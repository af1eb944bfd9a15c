"""
Base extractor class for job extraction pipeline

This module provides the abstract base class that all source-specific
extractors implement. The pipeline has two stages per source:

1. Listing extraction: turn a raw listing document (search result HTML,
   RSS XML) into JobRecords with list-level fields
2. Raw info extraction: parse detail fields out of a job page
   (only for sources that have detail pages)

Fetching is kept outside of parsing so parsers stay pure and testable
against saved snapshots. HTTP sources use make_request(); browser sources
are driven by the workers through browser.pool.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, TYPE_CHECKING
import httpx

if TYPE_CHECKING:
    from models.job import JobRecord
    from .enums import Source


DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) '
    'AppleWebKit/537.36 (KHTML, like Gecko) '
    'Chrome/120.0.0.0 Safari/537.36'
)
DEFAULT_LANGUAGE = 'en-US,en;q=0.9'


class BaseJobExtractor(ABC):
    """
    Abstract base class for job source extractors

    Each source extractor must define:
    1. SOURCE: Source enum value (e.g., Source.LINKEDIN)
    2. parse_listing(): Method to turn a listing document into JobRecords

    Sources with detail pages also override extract_raw_info().
    """

    SOURCE: 'Source'

    def __init__(self):
        if not hasattr(self.__class__, 'SOURCE'):
            raise NotImplementedError(
                f"{self.__class__.__name__} must define SOURCE class variable"
            )

    @abstractmethod
    def parse_listing(self, raw_content: str) -> list['JobRecord']:
        """
        Parse a listing document into job records

        Implementation notes:
        - Per-field extraction is best-effort; missing fields become ""
        - Records without a usable link are dropped
        - Must not raise on malformed markup; return what could be parsed

        Returns:
            List of JobRecord in document order
        """
        pass

    def extract_raw_info(self, raw_content: str) -> Dict[str, str]:
        """
        Extract detail fields from a job page (Stage 2 of pipeline).

        Raises:
            NotImplementedError: For sources without detail pages
        """
        raise NotImplementedError(f"{self.__class__.__name__} has no detail pages")

    def get_headers(self, language: str = DEFAULT_LANGUAGE) -> Dict[str, str]:
        """
        Get default HTTP headers for requests

        Args:
            language: Accept-Language value (per-country for crawled sources)

        Returns:
            Dict of HTTP headers
        """
        return {
            'User-Agent': DEFAULT_USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': language,
        }

    async def make_request(
        self,
        url: str,
        method: str = 'GET',
        params: Optional[Dict] = None,
        headers: Optional[Dict] = None,
        timeout: float = 10.0
    ) -> httpx.Response:
        """
        Helper method to make HTTP requests with consistent error handling

        Args:
            url: URL to request
            method: HTTP method (GET, POST, etc.)
            params: Query parameters
            headers: Additional headers (merged with default headers)
            timeout: Request timeout in seconds

        Returns:
            httpx.Response object

        Raises:
            httpx.HTTPStatusError: On HTTP error responses
            httpx.TimeoutException: On request timeout
            httpx.ConnectError: On connection failure
        """
        request_headers = self.get_headers()
        if headers:
            request_headers.update(headers)

        async with httpx.AsyncClient(follow_redirects=True) as client:
            response = await client.request(
                method=method,
                url=url,
                params=params,
                headers=request_headers,
                timeout=timeout
            )
            response.raise_for_status()
            return response
