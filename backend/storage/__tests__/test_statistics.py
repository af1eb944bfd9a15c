"""
Tests for monthly statistics counters.

Run: python3 -m pytest storage/__tests__/test_statistics.py -v
"""

from models.archive import SalaryData
from storage.statistics import MonthlyStatistics, SalaryStats, normalize_city, salary_bucket, top_n


class TestNormalizeCity:
    """Tests for city name cleanup."""

    def test_strips_decorations(self):
        assert normalize_city("Greater London Area") == "London"
        assert normalize_city("City of Westminster") == "Westminster"

    def test_home_nations_are_not_cities(self):
        assert normalize_city("England") is None
        assert normalize_city("United Kingdom") is None
        assert normalize_city(None) is None

    def test_plain_city_unchanged(self):
        assert normalize_city("Frankfurt") == "Frankfurt"


class TestSalaryBucket:
    def test_bucket_edges(self):
        assert salary_bucket(29_999) == "0-30k"
        assert salary_bucket(30_000) == "30-50k"
        assert salary_bucket(149_999) == "100-150k"
        assert salary_bucket(150_000) == "150k+"


class TestMonthlyStatistics:
    """Tests for incremental updates and merging."""

    def test_update_counts_every_dimension(self, make_statistic):
        stats = MonthlyStatistics()
        stats.update(make_statistic(1))
        stats.update(make_statistic(2, city="Greater Manchester Area", certificates=["CFA", "ACCA"]))

        assert stats.total_jobs == 2
        assert stats.by_date == {"2025-03-14": 2}
        assert stats.by_certificate == {"CFA": 2, "ACCA": 1}
        assert stats.by_city == {"London": 1, "Manchester": 1}
        assert stats.by_keyword["valuation"] == 2
        assert stats.by_region == {"England": 2}

    def test_salary_stats(self, make_statistic):
        """Every salary counts; only positive midpoints are bucketed."""
        stats = MonthlyStatistics()
        stats.update(make_statistic(1))  # midpoint 60k GBP
        stats.update(make_statistic(2, salary=SalaryData(min=None, max=None)))
        stats.update(make_statistic(3, salary=None))

        salary = stats.salary_stats
        assert salary.total_with_salary == 2
        assert salary.by_currency == {"GBP": 1}
        assert salary.salary_ranges["50-75k"] == 1
        assert sum(salary.salary_ranges.values()) == 1

    def test_merge(self, make_statistic):
        march, april = MonthlyStatistics(), MonthlyStatistics()
        march.update(make_statistic(1))
        april.update(make_statistic(2, extracted_date="2025-04-01T10:00:00+00:00"))

        total = MonthlyStatistics()
        total.merge(march)
        total.merge(april)

        assert total.total_jobs == 2
        assert total.by_date == {"2025-03-14": 1, "2025-04-01": 1}
        assert total.by_industry == {"Investment Banking": 2}
        assert total.salary_stats.total_with_salary == 2

    def test_document_shape(self, make_statistic):
        stats = MonthlyStatistics()
        stats.update(make_statistic(1))
        data = stats.to_dict()

        assert data["totalJobs"] == 1
        assert data["byProgrammingSkill"] == {}
        assert data["salaryStats"]["totalWithSalary"] == 1
        assert MonthlyStatistics.from_dict(data).to_dict() == data

    def test_from_empty_document(self):
        assert MonthlyStatistics.from_dict(None).total_jobs == 0
        assert SalaryStats.from_dict({}).salary_ranges["150k+"] == 0


class TestTopN:
    def test_highest_first(self):
        assert top_n({"a": 1, "b": 5, "c": 3}, 2) == {"b": 5, "c": 3}
