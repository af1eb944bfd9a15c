"""
Crawl sourcing.

Turns a crawl request (keywords x countries) into paginated list-page targets.
"""

from sourcing.countries import COUNTRY_CONFIGS, CountryConfig, get_country_config
from sourcing.targets import CrawlRequest, CrawlTarget, generate_targets, group_targets, parse_csv

__all__ = [
    "COUNTRY_CONFIGS",
    "CountryConfig",
    "CrawlRequest",
    "CrawlTarget",
    "generate_targets",
    "get_country_config",
    "group_targets",
    "parse_csv",
]
