"""
Salary extraction from free text.

Patterns are tried from most to least specific; the first match that
produces a plausible amount (1,000 to 10,000,000) wins.

Period detection looks at the text around the match for year/month/hour
keywords. When none is present the period defaults to "year", since most
postings quote annual figures. Hourly or monthly amounts written without a
period keyword are therefore classified as annual.
"""

import re
from typing import Optional

from models.archive import SalaryData

CURRENCY_MAP = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "USD": "USD",
    "EUR": "EUR",
    "GBP": "GBP",
    "CAD": "CAD",
    "AUD": "AUD",
    "CHF": "CHF",
    "SGD": "SGD",
}

_CUR = r"([£$€¥₹]|USD|EUR|GBP|CAD|AUD)"
_NUM = r"(\d{1,3}(?:[,\s]\d{3})*(?:\.\d{2})?)"
_SEP = r"\s*(?:-|–|—|to)\s*"

# (compiled pattern, kind, confidence)
SALARY_PATTERNS = [
    # $50,000 - $70,000 / 100,000-120,000 USD
    (re.compile(_CUR + r"\s*" + _NUM + _SEP + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand|mil|million)?\b", re.I),
     "range", "high"),
    # £45k-£60k
    (re.compile(_CUR + r"\s*(\d{1,3}(?:\.\d{1,2})?)\s*(k)" + _SEP + _CUR + r"?\s*(\d{1,3}(?:\.\d{1,2})?)\s*(k)\b", re.I),
     "range-k-both", "high"),
    # between $50k and $70k
    (re.compile(r"between\s+" + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand)?\s+and\s+" + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand)?", re.I),
     "range-between", "high"),
    # £70,000 per annum / $80k p.a.
    (re.compile(_CUR + r"\s*" + _NUM + r"\s*(k|thousand)?\s*(?:per annum|p\.?a\.?|annually|/year|/yr|per year)", re.I),
     "annual-single", "high"),
    # up to $70k
    (re.compile(r"(?:up to|upto|maximum|max)\s+" + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand|mil)?", re.I),
     "max-only", "medium"),
    # starting from $50k / minimum £45,000
    (re.compile(r"(?:starting from|starting at|minimum|min|from)\s+" + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand|mil)?", re.I),
     "min-only", "medium"),
    # salary: $60k
    (re.compile(r"(?:salary|compensation|pay|package|remuneration|base)(?:\s*:|\s+of|\s+is|\s+range)?\s*" + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand|mil)?", re.I),
     "single", "medium"),
    # OTE $100k
    (re.compile(r"(?:OTE|on.target.earnings?)\s*(?:of|:)?\s*" + _CUR + r"?\s*" + _NUM + r"\s*(k|thousand|mil)?", re.I),
     "single", "medium"),
    # $50-70k
    (re.compile(r"([£$€¥₹])\s*(\d{1,3})(?:\.\d{1,2})?\s*[-–]\s*(\d{1,3})(?:\.\d{1,2})?\s*(k)\b", re.I),
     "compact-range", "high"),
    # 50,000 USD
    (re.compile(_NUM + r"\s*(k|thousand)?\s*(USD|EUR|GBP|CAD|AUD|CHF|SGD)\b", re.I),
     "currency-after", "medium"),
]

PERIOD_PATTERNS = [
    ("year", re.compile(r"\b(?:year|yearly|annual|annually|per annum|p\.a\.|pa|/year|/yr)\b", re.I)),
    ("month", re.compile(r"\b(?:month|monthly|per month|/month|/mo)\b", re.I)),
    ("hour", re.compile(r"\b(?:hour|hourly|per hour|/hour|/hr)\b", re.I)),
]

ANNUAL_MULTIPLIERS = {"year": 1, "month": 12, "hour": 2080}

MIN_PLAUSIBLE = 1000
MAX_PLAUSIBLE = 10_000_000


def normalize_currency(token: Optional[str]) -> str:
    if not token:
        return "USD"
    return CURRENCY_MAP.get(token.strip().upper()) or CURRENCY_MAP.get(token.strip(), "USD")


def parse_amount(number: str, multiplier: Optional[str] = None) -> Optional[int]:
    try:
        value = float(re.sub(r"[,\s]", "", number))
    except ValueError:
        return None
    if multiplier:
        mult = multiplier.lower()
        if mult == "k" or "thousand" in mult:
            value *= 1000
        elif "mil" in mult:
            value *= 1_000_000
    return round(value)


def _amounts(match: re.Match, kind: str) -> tuple[str, Optional[int], Optional[int]]:
    g = match.groups()
    if kind == "range":
        return normalize_currency(g[0] or g[2]), parse_amount(g[1], g[4]), parse_amount(g[3], g[4])
    if kind == "range-k-both":
        return normalize_currency(g[0] or g[3]), parse_amount(g[1], g[2]), parse_amount(g[4], g[5])
    if kind == "range-between":
        return normalize_currency(g[0] or g[3]), parse_amount(g[1], g[2]), parse_amount(g[4], g[5])
    if kind == "max-only":
        return normalize_currency(g[0]), None, parse_amount(g[1], g[2])
    if kind == "min-only":
        return normalize_currency(g[0]), parse_amount(g[1], g[2]), None
    if kind in ("single", "annual-single"):
        value = parse_amount(g[1], g[2])
        return normalize_currency(g[0]), value, value
    if kind == "compact-range":
        return normalize_currency(g[0]), parse_amount(g[1], g[3]), parse_amount(g[2], g[3])
    if kind == "currency-after":
        value = parse_amount(g[0], g[1])
        return normalize_currency(g[2]), value, value
    return "USD", None, None


def _plausible(value: Optional[int]) -> bool:
    return value is None or MIN_PLAUSIBLE <= value <= MAX_PLAUSIBLE


def detect_period(text: str, position: int) -> str:
    context = text[max(0, position - 50):position + 100]
    for period, pattern in PERIOD_PATTERNS:
        if pattern.search(context):
            return period
    return "year"


def extract_salary(title: str, description: str) -> Optional[SalaryData]:
    """
    Find the first plausible salary in title + description.

    Example:
        >>> extract_salary("Analyst", "Salary £45,000 - £55,000 per annum").currency
        'GBP'
    """
    text = f"{title} {description}"
    for pattern, kind, confidence in SALARY_PATTERNS:
        for match in pattern.finditer(text):
            currency, low, high = _amounts(match, kind)
            if low is None and high is None:
                continue
            if low is not None and high is not None and low > high:
                low, high = high, low
            if not (_plausible(low) and _plausible(high)):
                continue
            return SalaryData(
                min=low,
                max=high,
                currency=currency,
                period=detect_period(text, match.start()),
                raw=match.group(0).strip(),
                confidence=confidence,
            )
    return None


def normalize_to_annual(salary: SalaryData) -> SalaryData:
    multiplier = ANNUAL_MULTIPLIERS.get(salary.period, 1)
    return SalaryData(
        min=round(salary.min * multiplier) if salary.min is not None else None,
        max=round(salary.max * multiplier) if salary.max is not None else None,
        currency=salary.currency,
        period="year",
        raw=salary.raw,
        confidence=salary.confidence,
    )
