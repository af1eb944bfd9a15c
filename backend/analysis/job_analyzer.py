"""
Job analyzer

Derives the archived statistics fields (certificates, skills, degrees,
seniority, industry, location, salary, keywords) from a job's title and
description, and assembles the JobStatistic that goes into the archive.

All matching is keyword/regex based.
"""

import re
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from analysis.location import extract_location
from analysis.salary import extract_salary
from models.archive import JobStatistic
from models.job import JobRecord

MAX_KEYWORDS = 15

_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")

CERTIFICATE_PATTERNS = [
    ("CFA", re.compile(r"\bCFA\b", re.I)),
    ("ACCA", re.compile(r"\bACCA\b", re.I)),
    ("ACA", re.compile(r"\bACA\b")),
    ("CIMA", re.compile(r"\bCIMA\b", re.I)),
    ("FRM", re.compile(r"\bFRM\b")),
    ("MBA", re.compile(r"\bMBA\b")),
    ("CPA", re.compile(r"\bCPA\b")),
]

YEARS_PATTERNS = [
    re.compile(r"(\d+)\+?\s*(?:to|-|–)\s*(\d+)\+?\s*years?", re.I),
    re.compile(r"(\d+)\+?\s*years?", re.I),
    re.compile(r"minimum\s*(?:of\s*)?(\d+)\s*years?", re.I),
    re.compile(r"at\s*least\s*(\d+)\s*years?", re.I),
]

DEGREE_PATTERNS = [
    ("PhD", re.compile(r"\bPh\.?D\.?(?!\w)|\bDoctorate\b", re.I)),
    ("MBA", re.compile(r"\bMBA\b", re.I)),
    ("Master's", re.compile(r"\bMaster'?s?\b|\bM\.?Sc\.?(?!\w)", re.I)),
    ("Bachelor's", re.compile(r"\bBachelor'?s?\b|\bB\.?Sc\.?(?!\w)|\bB\.S\.(?!\w)", re.I)),
]

SOFTWARE_PATTERNS = [
    ("Excel", re.compile(r"\bexcel\b", re.I)),
    ("Bloomberg", re.compile(r"\bbloomberg\b", re.I)),
    ("Power BI", re.compile(r"power\s*bi\b", re.I)),
    ("Tableau", re.compile(r"\btableau\b", re.I)),
    ("SAP", re.compile(r"\bSAP\b")),
    ("Oracle", re.compile(r"\boracle\b", re.I)),
]

PROGRAMMING_PATTERNS = [
    ("Python", re.compile(r"\bpython\b", re.I)),
    ("R", re.compile(r"\bR\b(?!&)")),
    ("SQL", re.compile(r"\bSQL\b", re.I)),
    ("VBA", re.compile(r"\bVBA\b", re.I)),
    ("JavaScript", re.compile(r"javascript", re.I)),
    ("MATLAB", re.compile(r"\bMATLAB\b", re.I)),
]

# First match wins; checked against the title before the description
SENIORITY_RULES = [
    ("Executive", ("chief", "cfo", "ceo", "coo", "cto", "managing director", "head of", "partner")),
    ("Director", ("director", " vp", "vice president")),
    ("Senior", ("senior", "sr.", "sr ", "lead", "principal", "staff")),
    ("Manager", ("manager",)),
    ("Junior", ("junior", "jr.", "jr ", "associate", "assistant")),
    ("Entry Level", ("graduate", "intern", "trainee", "entry level", "entry-level", "apprentice")),
]
DEFAULT_SENIORITY = "Mid Level"

INDUSTRY_RULES = [
    ("Investment Banking", ("investment bank", "m&a", "corporate finance", "capital markets")),
    ("Asset Management", ("asset manag", "portfolio manag", "fund manag", "wealth manag")),
    ("Private Equity", ("private equity", "venture capital", "buyout")),
    ("Hedge Fund", ("hedge fund",)),
    ("Equity Research", ("equity research", "research analyst")),
    ("Risk Management", ("risk manag", "risk analyst", "credit risk", "market risk")),
    ("Accounting & Audit", ("audit", "accountant", "accounting", "tax ")),
    ("Insurance", ("insurance", "actuar", "underwrit")),
    ("Fintech", ("fintech", "payments", "crypto", "blockchain")),
    ("Consulting", ("consult", "advisory")),
    ("Banking", ("bank", "lending", "treasury")),
    ("Technology", ("software", "engineer", "developer", "data scien", "machine learning")),
]
DEFAULT_INDUSTRY = "General Finance"

STOP_WORDS = {
    "the", "and", "for", "with", "you", "will", "are", "this", "from", "that",
    "have", "been", "our", "your", "all", "who", "can", "their", "they", "has",
    "not", "but", "any", "its", "into", "more", "about", "such", "other",
}


def clean_text(text: str | None) -> str:
    """Strip tags and collapse whitespace."""
    return _SPACE_RE.sub(" ", _TAG_RE.sub(" ", text or "")).strip()


def _matching_labels(patterns, text: str) -> list[str]:
    return [label for label, pattern in patterns if pattern.search(text)]


def extract_certificates(text: str) -> list[str]:
    return _matching_labels(CERTIFICATE_PATTERNS, text)


def extract_years_experience(text: str) -> str:
    """'3-5 years' / '5+ years' / ''"""
    for pattern in YEARS_PATTERNS:
        match = pattern.search(text)
        if match:
            groups = match.groups()
            if len(groups) > 1 and groups[1]:
                return f"{groups[0]}-{groups[1]} years"
            return f"{groups[0]}+ years"
    return ""


def extract_academic_degrees(text: str) -> list[str]:
    return _matching_labels(DEGREE_PATTERNS, text)


def extract_software(text: str) -> list[str]:
    return _matching_labels(SOFTWARE_PATTERNS, text)


def extract_programming_skills(text: str) -> list[str]:
    return _matching_labels(PROGRAMMING_PATTERNS, text)


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Most frequent 3+ letter words, stop words removed."""
    words = re.findall(r"\b[a-z]{3,}\b", text.lower())
    counts = Counter(w for w in words if w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(limit)]


def _first_rule(rules, text: str) -> Optional[str]:
    padded = f" {text.lower()} "
    for label, needles in rules:
        if any(needle in padded for needle in needles):
            return label
    return None


def classify_seniority(title: str, description: str = "") -> str:
    return _first_rule(SENIORITY_RULES, title) or _first_rule(SENIORITY_RULES, description[:500]) or DEFAULT_SENIORITY


def classify_industry(title: str, description: str = "") -> str:
    return _first_rule(INDUSTRY_RULES, title) or _first_rule(INDUSTRY_RULES, description) or DEFAULT_INDUSTRY


def analyze_job(record: JobRecord, extracted_at: Optional[datetime] = None) -> JobStatistic:
    """
    Build the archived JobStatistic for a crawled or RSS job.

    The long description is preferred when enrichment produced one;
    error placeholders from failed enrichment are ignored.
    """
    extracted_at = extracted_at or datetime.now(timezone.utc)
    long_text = record.detailed_description
    if not long_text or long_text.startswith("Error:") or long_text.startswith("No detailed"):
        long_text = record.description if not record.description.startswith("Error:") else ""
    text = clean_text(long_text)
    title = clean_text(record.title)
    combined = f"{title} {text}"

    location = extract_location(record.location, text, record.search_country)
    compensation = record.compensation if record.compensation and not record.compensation.startswith(("Error:", "No compensation")) else ""

    return JobStatistic(
        id=record.id,
        title=title,
        company=record.company or "Unknown Company",
        url=record.url,
        extracted_date=extracted_at.isoformat(),
        location=record.location or "Unknown Location",
        country=location.country,
        city=location.city,
        region=location.region,
        posted_date=record.posted_date,
        keywords=extract_keywords(combined),
        certificates=extract_certificates(combined),
        industry=classify_industry(title, text),
        seniority=classify_seniority(title, text),
        description=text,
        salary=extract_salary(title, f"{compensation} {text}"),
        software=extract_software(combined),
        programming_skills=extract_programming_skills(combined),
        years_experience=extract_years_experience(text),
        academic_degrees=extract_academic_degrees(combined),
        input_keyword=record.input_keyword,
        search_country=record.search_country,
    )
