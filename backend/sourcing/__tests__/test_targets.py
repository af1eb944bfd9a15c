"""
Tests for crawl target generation.

Run: python3 -m pytest sourcing/__tests__/test_targets.py -v
"""

import pytest

from sourcing.countries import DEFAULT_CURRENCY, get_country_config
from sourcing.targets import CrawlRequest, generate_targets, group_targets, parse_csv


def make_request(keywords=("CFA", "ACCA"), countries=("United Kingdom", "Germany")) -> CrawlRequest:
    return CrawlRequest(keywords=tuple(keywords), countries=tuple(countries))


class TestParseCsv:
    """Tests for comma-separated trigger input."""

    def test_trims_and_drops_empties(self):
        """Should strip whitespace and skip blank entries."""
        assert parse_csv(" CFA , ,ACCA,") == ["CFA", "ACCA"]

    def test_none_and_empty(self):
        assert parse_csv(None) == []
        assert parse_csv("  ") == []


class TestCrawlRequestFromText:
    """Tests for building a request from raw text."""

    def test_builds_request(self):
        request = CrawlRequest.from_text("CFA, ACCA", "United Kingdom", 3600)
        assert request.keywords == ("CFA", "ACCA")
        assert request.countries == ("United Kingdom",)
        assert request.time_filter_seconds == 3600

    def test_empty_keywords_rejected(self):
        """Should raise when no keyword survives trimming."""
        with pytest.raises(ValueError, match="keyword"):
            CrawlRequest.from_text(" , ", "Germany")

    def test_empty_countries_rejected(self):
        with pytest.raises(ValueError, match="country"):
            CrawlRequest.from_text("CFA", "")


class TestGenerateTargets:
    """Tests for target ordering and pagination."""

    def test_count_is_keywords_times_countries_times_pages(self):
        targets = list(generate_targets(make_request(), max_pages=3))
        assert len(targets) == 2 * 2 * 3

    def test_keywords_outer_countries_inner_pages_innermost(self):
        """Should iterate keyword, then country, then page."""
        targets = list(generate_targets(make_request(), max_pages=2))
        order = [(t.keyword, t.country, t.page_number) for t in targets]
        assert order[:4] == [
            ("CFA", "United Kingdom", 0),
            ("CFA", "United Kingdom", 1),
            ("CFA", "Germany", 0),
            ("CFA", "Germany", 1),
        ]
        assert order[4] == ("ACCA", "United Kingdom", 0)

    def test_groups_share_key(self):
        """Each group holds every page of one keyword/country pair."""
        groups = list(group_targets(make_request(keywords=["CFA"]), max_pages=4))
        assert len(groups) == 2
        assert {t.group_key for t in groups[0]} == {"CFA/United Kingdom"}
        assert [t.page_number for t in groups[0]] == [0, 1, 2, 3]

    def test_targets_carry_country_config(self):
        target = next(generate_targets(make_request(countries=["United Kingdom"]), max_pages=1))
        assert target.country_config.currency == "GBP"


class TestCountryConfig:
    """Tests for per-country lookup."""

    def test_known_country(self):
        config = get_country_config("Germany")
        assert config.currency == "EUR"
        assert config.language.startswith("de-DE")

    def test_unknown_country_falls_back(self):
        """Unknown countries are searched by their raw text."""
        config = get_country_config("  Narnia ")
        assert config.location_param == "Narnia"
        assert config.currency == DEFAULT_CURRENCY
