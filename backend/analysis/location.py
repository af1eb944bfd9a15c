"""
Country / city / region extraction from free-form location strings.

Resolution order for "A, B, C":
1. last part is a known country  -> country, city = first part
2. last part is a state/province -> its country, city = first part
3. last part is a known city     -> its country, city = first part

Without a comma the whole string is tried as a country, then a city, then a
state. Placeholders such as "Remote" or "N/A" never resolve.
"""

import re
from dataclasses import dataclass
from typing import Optional

EUROPE = "Europe"
AMERICA = "America"
MIDDLE_EAST = "Middle East"
ASIA = "Asia"
AFRICA = "Africa"
OCEANIA = "Oceania"

COUNTRY_REGIONS: dict[str, str] = {
    # Europe
    "United Kingdom": EUROPE, "Germany": EUROPE, "France": EUROPE, "Italy": EUROPE,
    "Spain": EUROPE, "Poland": EUROPE, "Romania": EUROPE, "Netherlands": EUROPE,
    "Belgium": EUROPE, "Czech Republic": EUROPE, "Czechia": EUROPE, "Greece": EUROPE,
    "Portugal": EUROPE, "Sweden": EUROPE, "Hungary": EUROPE, "Austria": EUROPE,
    "Switzerland": EUROPE, "Bulgaria": EUROPE, "Denmark": EUROPE, "Finland": EUROPE,
    "Slovakia": EUROPE, "Norway": EUROPE, "Ireland": EUROPE, "Croatia": EUROPE,
    "Lithuania": EUROPE, "Slovenia": EUROPE, "Latvia": EUROPE, "Estonia": EUROPE,
    "Luxembourg": EUROPE, "Malta": EUROPE, "Iceland": EUROPE, "Monaco": EUROPE,
    "Serbia": EUROPE, "Ukraine": EUROPE, "Cyprus": EUROPE,
    # Americas
    "United States": AMERICA, "Canada": AMERICA, "Mexico": AMERICA, "Brazil": AMERICA,
    "Argentina": AMERICA, "Colombia": AMERICA, "Peru": AMERICA, "Chile": AMERICA,
    "Costa Rica": AMERICA, "Panama": AMERICA, "Uruguay": AMERICA,
    # Asia
    "China": ASIA, "India": ASIA, "Indonesia": ASIA, "Pakistan": ASIA, "Japan": ASIA,
    "Philippines": ASIA, "Vietnam": ASIA, "Thailand": ASIA, "South Korea": ASIA,
    "Malaysia": ASIA, "Singapore": ASIA, "Hong Kong": ASIA, "Taiwan": ASIA,
    "Sri Lanka": ASIA, "Kazakhstan": ASIA,
    # Middle East
    "Turkey": MIDDLE_EAST, "Saudi Arabia": MIDDLE_EAST, "United Arab Emirates": MIDDLE_EAST,
    "Israel": MIDDLE_EAST, "Jordan": MIDDLE_EAST, "Lebanon": MIDDLE_EAST, "Oman": MIDDLE_EAST,
    "Kuwait": MIDDLE_EAST, "Qatar": MIDDLE_EAST, "Bahrain": MIDDLE_EAST,
    # Africa
    "Nigeria": AFRICA, "Egypt": AFRICA, "South Africa": AFRICA, "Kenya": AFRICA,
    "Morocco": AFRICA, "Ghana": AFRICA, "Tunisia": AFRICA, "Mauritius": AFRICA,
    # Oceania
    "Australia": OCEANIA, "New Zealand": OCEANIA,
}

COUNTRY_ALIASES = {
    "usa": "United States", "us": "United States", "united states of america": "United States",
    "uk": "United Kingdom", "england": "United Kingdom", "scotland": "United Kingdom",
    "wales": "United Kingdom", "northern ireland": "United Kingdom",
    "uae": "United Arab Emirates", "the netherlands": "Netherlands",
}

_US_STATE_CODES = (
    "AL AK AZ AR CA CO CT DE FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS MO MT NE NV "
    "NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY DC"
).split()
_US_STATE_NAMES = [
    "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado", "Connecticut",
    "Delaware", "Florida", "Hawaii", "Idaho", "Illinois", "Indiana", "Iowa", "Kansas",
    "Kentucky", "Louisiana", "Maine", "Maryland", "Massachusetts", "Michigan", "Minnesota",
    "Mississippi", "Missouri", "Montana", "Nebraska", "Nevada", "New Hampshire", "New Jersey",
    "New Mexico", "New York", "North Carolina", "North Dakota", "Ohio", "Oklahoma", "Oregon",
    "Pennsylvania", "Rhode Island", "South Carolina", "South Dakota", "Tennessee", "Texas",
    "Utah", "Vermont", "Virginia", "Washington", "West Virginia", "Wisconsin", "Wyoming",
    "District of Columbia",
]
_CA_PROVINCES = [
    "AB", "BC", "MB", "NB", "NL", "NS", "NT", "NU", "ON", "PE", "QC", "SK", "YT",
    "Alberta", "British Columbia", "Manitoba", "New Brunswick", "Newfoundland and Labrador",
    "Nova Scotia", "Ontario", "Prince Edward Island", "Quebec", "Saskatchewan",
]
_AU_STATES = [
    "NSW", "VIC", "QLD", "WA", "SA", "TAS", "ACT", "NT",
    "New South Wales", "Victoria", "Queensland", "Western Australia", "South Australia",
    "Tasmania", "Australian Capital Territory",
]

# Later entries win for ambiguous codes (WA, NT): US states are the common case
STATE_TO_COUNTRY: dict[str, str] = {
    **{s.lower(): "Australia" for s in _AU_STATES},
    **{s.lower(): "Canada" for s in _CA_PROVINCES},
    **{s.lower(): "United States" for s in _US_STATE_CODES + _US_STATE_NAMES},
}

CITY_TO_COUNTRY: dict[str, str] = {
    "london": "United Kingdom", "manchester": "United Kingdom", "edinburgh": "United Kingdom",
    "birmingham": "United Kingdom", "glasgow": "United Kingdom", "leeds": "United Kingdom",
    "dublin": "Ireland", "paris": "France", "berlin": "Germany", "frankfurt": "Germany",
    "munich": "Germany", "hamburg": "Germany", "amsterdam": "Netherlands", "rotterdam": "Netherlands",
    "brussels": "Belgium", "zurich": "Switzerland", "geneva": "Switzerland", "madrid": "Spain",
    "barcelona": "Spain", "milan": "Italy", "rome": "Italy", "lisbon": "Portugal",
    "stockholm": "Sweden", "copenhagen": "Denmark", "oslo": "Norway", "vienna": "Austria",
    "warsaw": "Poland", "prague": "Czech Republic",
    "new york": "United States", "san francisco": "United States", "chicago": "United States",
    "boston": "United States", "los angeles": "United States", "seattle": "United States",
    "toronto": "Canada", "montreal": "Canada", "vancouver": "Canada",
    "singapore": "Singapore", "hong kong": "Hong Kong", "tokyo": "Japan", "mumbai": "India",
    "bangalore": "India", "bengaluru": "India", "shanghai": "China", "beijing": "China",
    "dubai": "United Arab Emirates", "abu dhabi": "United Arab Emirates", "riyadh": "Saudi Arabia",
    "doha": "Qatar", "sydney": "Australia", "melbourne": "Australia", "auckland": "New Zealand",
    "johannesburg": "South Africa", "cape town": "South Africa", "lagos": "Nigeria", "nairobi": "Kenya",
}

_COUNTRY_BY_LOWER = {name.lower(): name for name in COUNTRY_REGIONS}

INVALID_LOCATION = re.compile(
    r"^(?:null|unknown|n/a|na|not specified|various|remote|anywhere|global|worldwide|)$", re.I)


@dataclass
class LocationData:
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None


def region_for_country(country: Optional[str]) -> Optional[str]:
    return COUNTRY_REGIONS.get(country) if country else None


def _lookup_country(token: str) -> Optional[str]:
    key = token.strip().lower()
    return _COUNTRY_BY_LOWER.get(key) or COUNTRY_ALIASES.get(key)


def _resolve(country: Optional[str], city: Optional[str]) -> LocationData:
    return LocationData(country=country, city=city, region=region_for_country(country))


def is_valid_location(location: Optional[str]) -> bool:
    return bool(location) and not INVALID_LOCATION.match(location.strip())


def parse_location(location: Optional[str]) -> LocationData:
    """
    Example:
        >>> parse_location("Dallas, TX")
        LocationData(country='United States', city='Dallas', region='America')
    """
    if not is_valid_location(location):
        return LocationData()

    parts = [p.strip() for p in location.split(",") if p.strip()]
    if len(parts) > 1:
        last = parts[-1]
        country = (
            _lookup_country(last)
            or STATE_TO_COUNTRY.get(last.lower())
            or CITY_TO_COUNTRY.get(last.lower())
        )
        return _resolve(country, parts[0]) if country else LocationData()

    single = parts[0]
    country = _lookup_country(single)
    if country:
        return _resolve(country, None)
    if single.lower() in CITY_TO_COUNTRY:
        return _resolve(CITY_TO_COUNTRY[single.lower()], single)
    if single.lower() in STATE_TO_COUNTRY:
        return _resolve(STATE_TO_COUNTRY[single.lower()], None)
    return LocationData()


def extract_location(location: Optional[str], description: str = "", fallback_country: str = "") -> LocationData:
    """Location field first, then the crawl country, then the first country named in the description."""
    parsed = parse_location(location)
    if parsed.country:
        return parsed

    country = _lookup_country(fallback_country) if fallback_country else None
    if country:
        return _resolve(country, parsed.city)

    for name in COUNTRY_REGIONS:
        if re.search(rf"\b{re.escape(name)}\b", description or ""):
            return _resolve(name, None)
    return LocationData()
