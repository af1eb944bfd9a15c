"""
Per-country search configuration.

Each country maps to the site domain to query, the location parameter the
search endpoint expects, the currency jobs are tagged with, and the
Accept-Language header the browser context sends.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = "linkedin.com"
DEFAULT_CURRENCY = "USD"
DEFAULT_LANGUAGE = "en-US,en;q=0.9"


@dataclass(frozen=True)
class CountryConfig:
    domain: str
    location_param: str
    currency: str
    language: str


COUNTRY_CONFIGS: dict[str, CountryConfig] = {
    "United States": CountryConfig(DEFAULT_DOMAIN, "United States", "USD", "en-US,en;q=0.9"),
    "United Kingdom": CountryConfig(DEFAULT_DOMAIN, "United Kingdom", "GBP", "en-GB,en;q=0.9"),
    "Ireland": CountryConfig(DEFAULT_DOMAIN, "Ireland", "EUR", "en-IE,en;q=0.9"),
    "Canada": CountryConfig(DEFAULT_DOMAIN, "Canada", "CAD", "en-CA,en;q=0.9,fr-CA,fr;q=0.8"),
    "Germany": CountryConfig(DEFAULT_DOMAIN, "Germany", "EUR", "de-DE,de;q=0.9,en;q=0.8"),
    "France": CountryConfig(DEFAULT_DOMAIN, "France", "EUR", "fr-FR,fr;q=0.9,en;q=0.8"),
    "Australia": CountryConfig(DEFAULT_DOMAIN, "Australia", "AUD", "en-AU,en;q=0.9"),
    "Netherlands": CountryConfig(DEFAULT_DOMAIN, "Netherlands", "EUR", "nl-NL,nl;q=0.9,en;q=0.8"),
    "Luxembourg": CountryConfig(DEFAULT_DOMAIN, "Luxembourg", "EUR", "fr-LU,fr;q=0.9,de-LU,de;q=0.8,en;q=0.7"),
    "Belgium": CountryConfig(DEFAULT_DOMAIN, "Belgium", "EUR", "nl-BE,nl;q=0.9,fr-BE,fr;q=0.8,en;q=0.7"),
    "Switzerland": CountryConfig(DEFAULT_DOMAIN, "Switzerland", "CHF", "de-CH,de;q=0.9,fr-CH,fr;q=0.8,en;q=0.7"),
    "Spain": CountryConfig(DEFAULT_DOMAIN, "Spain", "EUR", "es-ES,es;q=0.9,en;q=0.8"),
    "Italy": CountryConfig(DEFAULT_DOMAIN, "Italy", "EUR", "it-IT,it;q=0.9,en;q=0.8"),
}


def get_country_config(country: str) -> CountryConfig:
    """
    Look up a country, falling back to the default domain/currency.

    Unknown countries are still searchable: the raw text becomes the
    location parameter.

    Example:
        >>> get_country_config("Narnia").currency
        'USD'
    """
    config = COUNTRY_CONFIGS.get(country.strip())
    if config is not None:
        return config

    logger.warning(f"[sourcing] Unknown country '{country}', using default config")
    return CountryConfig(
        domain=DEFAULT_DOMAIN,
        location_param=country.strip(),
        currency=DEFAULT_CURRENCY,
        language=DEFAULT_LANGUAGE,
    )
