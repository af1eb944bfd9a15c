"""
Tests for location parsing.

Run: python3 -m pytest analysis/__tests__/test_location.py -v
"""

from analysis.location import LocationData, extract_location, is_valid_location, parse_location


class TestParseLocation:
    """Tests for comma-separated location strings."""

    def test_city_region_country(self):
        parsed = parse_location("London, England, United Kingdom")
        assert parsed == LocationData(country="United Kingdom", city="London", region="Europe")

    def test_us_state_code(self):
        parsed = parse_location("Dallas, TX")
        assert parsed.country == "United States"
        assert parsed.city == "Dallas"
        assert parsed.region == "America"

    def test_country_alias(self):
        assert parse_location("Manchester, UK").country == "United Kingdom"

    def test_single_city(self):
        parsed = parse_location("Paris")
        assert parsed.country == "France"
        assert parsed.city == "Paris"

    def test_single_country(self):
        parsed = parse_location("Germany")
        assert parsed.country == "Germany"
        assert parsed.city is None

    def test_placeholders_never_resolve(self):
        assert parse_location("Remote") == LocationData()
        assert parse_location("N/A") == LocationData()
        assert not is_valid_location("")

    def test_unknown_last_part(self):
        assert parse_location("Springfield, Nowhere") == LocationData()


class TestExtractLocation:
    """Tests for fallbacks beyond the location field."""

    def test_falls_back_to_crawl_country(self):
        parsed = extract_location("Remote", "", "Germany")
        assert parsed.country == "Germany"
        assert parsed.region == "Europe"

    def test_falls_back_to_description(self):
        parsed = extract_location(None, "Join our Singapore office", "")
        assert parsed.country == "Singapore"
        assert parsed.region == "Asia"

    def test_nothing_found(self):
        assert extract_location("", "No place named", "") == LocationData()
