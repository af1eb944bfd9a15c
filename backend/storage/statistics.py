"""
Monthly statistics counters.

One MonthlyStatistics document per month (stats/YYYY-MM.json). Counters are
updated incrementally as jobs are queued and merged month by month for the
all-archives view; raw records are never rescanned to build them.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from models.archive import JobStatistic

SALARY_BUCKETS = [
    ("0-30k", 30_000),
    ("30-50k", 50_000),
    ("50-75k", 75_000),
    ("75-100k", 100_000),
    ("100-150k", 150_000),
    ("150k+", None),
]

# attribute name -> JSON key
COUNTER_FIELDS = {
    "by_date": "byDate",
    "by_industry": "byIndustry",
    "by_certificate": "byCertificate",
    "by_keyword": "byKeyword",
    "by_seniority": "bySeniority",
    "by_location": "byLocation",
    "by_country": "byCountry",
    "by_city": "byCity",
    "by_region": "byRegion",
    "by_company": "byCompany",
    "by_software": "bySoftware",
    "by_programming_skill": "byProgrammingSkill",
    "by_years_experience": "byYearsExperience",
    "by_academic_degree": "byAcademicDegree",
}

_NON_CITIES = re.compile(r"^(?:England|Scotland|Wales|United Kingdom)$", re.I)


def normalize_city(city: Optional[str]) -> Optional[str]:
    """
    Example:
        >>> normalize_city("Greater London Area")
        'London'
    """
    if not city:
        return None
    normalized = re.sub(r"\s+Area$", "", city, flags=re.I)
    normalized = re.sub(r"^City of\s+", "", normalized, flags=re.I)
    normalized = re.sub(r"^Greater\s+", "", normalized, flags=re.I).strip()
    if not normalized or _NON_CITIES.match(normalized):
        return None
    return normalized


def _bump(counter: dict[str, int], key: Optional[str], amount: int = 1) -> None:
    if key:
        counter[key] = counter.get(key, 0) + amount


def salary_bucket(midpoint: float) -> str:
    for label, upper in SALARY_BUCKETS:
        if upper is None or midpoint < upper:
            return label
    return SALARY_BUCKETS[-1][0]


def top_n(counter: dict[str, int], n: int) -> dict[str, int]:
    """Highest counts first; ties keep insertion order."""
    ranked = sorted(counter.items(), key=lambda item: item[1], reverse=True)
    return dict(ranked[:n])


@dataclass
class SalaryStats:
    total_with_salary: int = 0
    by_currency: dict[str, int] = field(default_factory=dict)
    salary_ranges: dict[str, int] = field(
        default_factory=lambda: {label: 0 for label, _ in SALARY_BUCKETS}
    )

    def update(self, job: JobStatistic) -> None:
        if job.salary is None:
            return
        self.total_with_salary += 1
        midpoint = job.salary.midpoint or 0
        if midpoint > 0:
            _bump(self.by_currency, job.salary.currency)
            _bump(self.salary_ranges, salary_bucket(midpoint))

    def merge(self, other: "SalaryStats") -> None:
        self.total_with_salary += other.total_with_salary
        for key, value in other.by_currency.items():
            _bump(self.by_currency, key, value)
        for key, value in other.salary_ranges.items():
            _bump(self.salary_ranges, key, value)

    def to_dict(self) -> dict:
        return {
            "totalWithSalary": self.total_with_salary,
            "byCurrency": dict(self.by_currency),
            "salaryRanges": dict(self.salary_ranges),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SalaryStats":
        stats = cls()
        if not data:
            return stats
        stats.total_with_salary = data.get("totalWithSalary", 0)
        stats.by_currency = dict(data.get("byCurrency") or {})
        stats.salary_ranges.update(data.get("salaryRanges") or {})
        return stats


@dataclass
class MonthlyStatistics:
    total_jobs: int = 0
    by_date: dict[str, int] = field(default_factory=dict)
    by_industry: dict[str, int] = field(default_factory=dict)
    by_certificate: dict[str, int] = field(default_factory=dict)
    by_keyword: dict[str, int] = field(default_factory=dict)
    by_seniority: dict[str, int] = field(default_factory=dict)
    by_location: dict[str, int] = field(default_factory=dict)
    by_country: dict[str, int] = field(default_factory=dict)
    by_city: dict[str, int] = field(default_factory=dict)
    by_region: dict[str, int] = field(default_factory=dict)
    by_company: dict[str, int] = field(default_factory=dict)
    by_software: dict[str, int] = field(default_factory=dict)
    by_programming_skill: dict[str, int] = field(default_factory=dict)
    by_years_experience: dict[str, int] = field(default_factory=dict)
    by_academic_degree: dict[str, int] = field(default_factory=dict)
    salary_stats: SalaryStats = field(default_factory=SalaryStats)

    def update(self, job: JobStatistic) -> None:
        """Count one newly queued job."""
        self.total_jobs += 1
        _bump(self.by_date, job.date_key)
        _bump(self.by_industry, job.industry)
        _bump(self.by_seniority, job.seniority)
        _bump(self.by_location, job.location)
        _bump(self.by_country, job.country)
        _bump(self.by_city, normalize_city(job.city))
        _bump(self.by_region, job.region)
        _bump(self.by_company, job.company)
        _bump(self.by_years_experience, job.years_experience)
        for cert in job.certificates:
            _bump(self.by_certificate, cert)
        for keyword in job.keywords:
            _bump(self.by_keyword, keyword)
        for software in job.software:
            _bump(self.by_software, software)
        for skill in job.programming_skills:
            _bump(self.by_programming_skill, skill)
        for degree in job.academic_degrees:
            _bump(self.by_academic_degree, degree)
        self.salary_stats.update(job)

    def merge(self, other: "MonthlyStatistics") -> None:
        self.total_jobs += other.total_jobs
        for attr in COUNTER_FIELDS:
            target = getattr(self, attr)
            for key, value in getattr(other, attr).items():
                _bump(target, key, value)
        self.salary_stats.merge(other.salary_stats)

    def to_dict(self) -> dict:
        data = {"totalJobs": self.total_jobs}
        for attr, key in COUNTER_FIELDS.items():
            data[key] = dict(getattr(self, attr))
        data["salaryStats"] = self.salary_stats.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MonthlyStatistics":
        stats = cls()
        if not data:
            return stats
        stats.total_jobs = data.get("totalJobs", 0)
        for attr, key in COUNTER_FIELDS.items():
            setattr(stats, attr, dict(data.get(key) or {}))
        stats.salary_stats = SalaryStats.from_dict(data.get("salaryStats"))
        return stats
