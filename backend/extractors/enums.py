"""
Source Enum

Defines the job sources the pipeline can ingest from.
This is in a separate file to avoid circular imports between extractors.
"""

from enum import Enum


class Source(str, Enum):
    """
    Supported job sources

    LINKEDIN is crawled (list pages + detail pages), RSS is polled.
    """
    LINKEDIN = "linkedin"
    RSS = "rss"
