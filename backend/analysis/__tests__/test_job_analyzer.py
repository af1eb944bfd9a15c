"""
Tests for job text analysis.

Run: python3 -m pytest analysis/__tests__/test_job_analyzer.py -v
"""

from datetime import datetime, timezone

from analysis.job_analyzer import (
    DEFAULT_INDUSTRY,
    DEFAULT_SENIORITY,
    analyze_job,
    classify_industry,
    classify_seniority,
    clean_text,
    extract_academic_degrees,
    extract_certificates,
    extract_keywords,
    extract_programming_skills,
    extract_software,
    extract_years_experience,
)
from models.job import JobRecord

EXTRACTED_AT = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)


def make_record(**overrides) -> JobRecord:
    data = {
        "url": "https://www.linkedin.com/jobs/view/1",
        "id": "1",
        "title": "Senior Risk Analyst",
        "company": "Acme Capital",
        "location": "London, England, United Kingdom",
        "description": "CFA required, 3+ years in market risk. Python and Excel. "
                       "Salary £50,000 - £60,000 per annum. Master's degree preferred.",
        "search_country": "United Kingdom",
        "input_keyword": "risk",
    }
    data.update(overrides)
    return JobRecord(**data)


class TestTextExtraction:
    """Tests for the individual pattern tables."""

    def test_clean_text(self):
        assert clean_text("<p>Hello</p>\n\n<b>world</b>") == "Hello world"

    def test_certificates(self):
        assert extract_certificates("CFA charterholder or ACCA qualified") == ["CFA", "ACCA"]

    def test_years_range_and_plus(self):
        assert extract_years_experience("3-5 years of experience") == "3-5 years"
        assert extract_years_experience("at least 5+ years") == "5+ years"
        assert extract_years_experience("no requirement") == ""

    def test_degrees(self):
        assert extract_academic_degrees("Bachelor's in Finance, MBA a plus") == ["MBA", "Bachelor's"]

    def test_software_and_programming(self):
        text = "Advanced Excel, Power BI and SQL; Python preferred"
        assert extract_software(text) == ["Excel", "Power BI"]
        assert extract_programming_skills(text) == ["Python", "SQL"]

    def test_keywords_skip_stop_words(self):
        keywords = extract_keywords("the risk team and the risk desk for risk reporting")
        assert keywords[0] == "risk"
        assert "the" not in keywords
        assert "and" not in keywords


class TestClassification:
    """Tests for rule-based labels."""

    def test_seniority_from_title(self):
        assert classify_seniority("Senior Analyst") == "Senior"
        assert classify_seniority("Graduate Analyst") == "Entry Level"
        assert classify_seniority("Head of Treasury") == "Executive"

    def test_seniority_default(self):
        assert classify_seniority("Analyst") == DEFAULT_SENIORITY

    def test_industry_title_first_then_description(self):
        assert classify_industry("Risk Analyst") == "Risk Management"
        assert classify_industry("Analyst", "a leading hedge fund") == "Hedge Fund"
        assert classify_industry("Financial Analyst") == DEFAULT_INDUSTRY


class TestAnalyzeJob:
    """Tests for building the archived record."""

    def test_full_analysis(self):
        stat = analyze_job(make_record(), EXTRACTED_AT)
        assert stat.id == "1"
        assert stat.extracted_date == EXTRACTED_AT.isoformat()
        assert stat.country == "United Kingdom"
        assert stat.city == "London"
        assert stat.region == "Europe"
        assert stat.certificates == ["CFA"]
        assert stat.years_experience == "3+ years"
        assert stat.seniority == "Senior"
        assert stat.industry == "Risk Management"
        assert "Python" in stat.programming_skills
        assert "Excel" in stat.software
        assert stat.salary.currency == "GBP"
        assert (stat.salary.min, stat.salary.max) == (50000, 60000)
        assert stat.input_keyword == "risk"

    def test_prefers_detailed_description(self):
        record = make_record(description="short", detailed_description="Long text mentioning FRM")
        assert analyze_job(record, EXTRACTED_AT).certificates == ["FRM"]

    def test_ignores_error_placeholders(self):
        """Failed enrichment leaves 'Error:' text that must not be analyzed."""
        record = make_record().with_error("Navigation timeout")
        stat = analyze_job(record, EXTRACTED_AT)
        assert stat.description == ""
        assert stat.salary is None
        assert stat.certificates == []

    def test_defaults_for_missing_fields(self):
        stat = analyze_job(make_record(company="", location=""), EXTRACTED_AT)
        assert stat.company == "Unknown Company"
        assert stat.location == "Unknown Location"
        assert stat.country == "United Kingdom"
