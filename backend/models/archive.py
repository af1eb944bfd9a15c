"""
Typed structures for the statistics archive.

Object layout in the archive bucket:

    manifest.json                                  Manifest (index of everything below)
    url-index.json                                 {"urls": [...], "updatedAt": ..., "count": N}
    stats/YYYY-MM.json                             MonthlyStatistics for one month
    metadata/YYYY/MM/day-DD.ndjson.gz              one JobStatistic per line, no description
    descriptions/YYYY/MM/day-DD.ndjson.gz          {"id": ..., "description": ...} per line

Shards are only ever located through the Manifest. Every DayShard lives in the
MonthEntry whose key is the shard's own year-month.
"""

from dataclasses import dataclass, field
from typing import Optional


MANIFEST_VERSION = "2.0.0"


def month_of(date_key: str) -> str:
    """'2025-03-14' -> '2025-03'"""
    return date_key[:7]


def stats_key(month: str) -> str:
    return f"stats/{month}.json"


def metadata_key(date_key: str) -> str:
    year, month, day = date_key.split("-")
    return f"metadata/{year}/{month}/day-{day}.ndjson.gz"


def descriptions_key(date_key: str) -> str:
    year, month, day = date_key.split("-")
    return f"descriptions/{year}/{month}/day-{day}.ndjson.gz"


@dataclass
class SalaryData:
    """Salary extracted from free text. Period falls back to 'year'."""
    min: Optional[int]
    max: Optional[int]
    currency: str = "USD"
    period: str = "year"
    raw: str = ""
    confidence: str = "medium"

    @property
    def midpoint(self) -> Optional[float]:
        if self.min is not None and self.max is not None:
            return (self.min + self.max) / 2
        return self.min or self.max

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "currency": self.currency,
            "period": self.period,
            "raw": self.raw,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["SalaryData"]:
        if not data:
            return None
        return cls(
            min=data.get("min"),
            max=data.get("max"),
            currency=data.get("currency", "USD"),
            period=data.get("period", "year"),
            raw=data.get("raw", ""),
            confidence=data.get("confidence", "medium"),
        )


@dataclass
class JobStatistic:
    """
    Archived form of a job, enriched with analyzer output.

    Split at rest into metadata (everything except description) and the
    description body, joined back by id when read.
    """
    id: str
    title: str
    company: str
    url: str
    extracted_date: str
    location: str = ""
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    posted_date: str = ""
    keywords: list[str] = field(default_factory=list)
    certificates: list[str] = field(default_factory=list)
    industry: str = ""
    seniority: str = ""
    description: str = ""
    salary: Optional[SalaryData] = None
    software: list[str] = field(default_factory=list)
    programming_skills: list[str] = field(default_factory=list)
    years_experience: str = ""
    academic_degrees: list[str] = field(default_factory=list)
    input_keyword: str = ""
    search_country: str = ""

    @property
    def date_key(self) -> str:
        """YYYY-MM-DD of the extraction timestamp (the shard this job lands in)."""
        return self.extracted_date[:10]

    def metadata_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "country": self.country,
            "city": self.city,
            "region": self.region,
            "url": self.url,
            "postedDate": self.posted_date,
            "extractedDate": self.extracted_date,
            "keywords": self.keywords,
            "certificates": self.certificates,
            "industry": self.industry,
            "seniority": self.seniority,
            "salary": self.salary.to_dict() if self.salary else None,
            "software": self.software,
            "programmingSkills": self.programming_skills,
            "yearsExperience": self.years_experience,
            "academicDegrees": self.academic_degrees,
            "inputKeyword": self.input_keyword,
            "searchCountry": self.search_country,
        }

    def description_dict(self) -> dict:
        return {"id": self.id, "description": self.description}

    def to_dict(self) -> dict:
        data = self.metadata_dict()
        data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "JobStatistic":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            company=data.get("company", ""),
            url=data.get("url", ""),
            extracted_date=data.get("extractedDate", ""),
            location=data.get("location", ""),
            country=data.get("country"),
            city=data.get("city"),
            region=data.get("region"),
            posted_date=data.get("postedDate", ""),
            keywords=list(data.get("keywords") or []),
            certificates=list(data.get("certificates") or []),
            industry=data.get("industry", ""),
            seniority=data.get("seniority", ""),
            description=data.get("description", ""),
            salary=SalaryData.from_dict(data.get("salary")),
            software=list(data.get("software") or []),
            programming_skills=list(data.get("programmingSkills") or []),
            years_experience=data.get("yearsExperience", ""),
            academic_degrees=list(data.get("academicDegrees") or []),
            input_keyword=data.get("inputKeyword", ""),
            search_country=data.get("searchCountry", ""),
        )


@dataclass
class DayShard:
    """One day's pair of compressed NDJSON files."""
    date: str
    metadata: str
    descriptions: str
    job_count: int = 0
    metadata_bytes: int = 0
    descriptions_bytes: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "metadata": self.metadata,
            "descriptions": self.descriptions,
            "jobCount": self.job_count,
            "metadataBytes": self.metadata_bytes,
            "descriptionsBytes": self.descriptions_bytes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DayShard":
        return cls(
            date=data["date"],
            metadata=data.get("metadata") or metadata_key(data["date"]),
            descriptions=data.get("descriptions") or descriptions_key(data["date"]),
            job_count=data.get("jobCount", 0),
            metadata_bytes=data.get("metadataBytes", 0),
            descriptions_bytes=data.get("descriptionsBytes", 0),
        )


@dataclass
class MonthEntry:
    """Manifest entry for one month. archived=True once the month has rolled over."""
    stats: str
    total_jobs: int = 0
    archived: bool = False
    days: list[DayShard] = field(default_factory=list)

    def find_day(self, date_key: str) -> Optional[DayShard]:
        for day in self.days:
            if day.date == date_key:
                return day
        return None

    def upsert_day(self, shard: DayShard) -> None:
        """Replace or insert the shard, keeping days sorted by date."""
        self.days = [d for d in self.days if d.date != shard.date]
        self.days.append(shard)
        self.days.sort(key=lambda d: d.date)

    def recompute_total(self) -> None:
        self.total_jobs = sum(d.job_count for d in self.days)

    def to_dict(self) -> dict:
        return {
            "stats": self.stats,
            "totalJobs": self.total_jobs,
            "archived": self.archived,
            "days": [d.to_dict() for d in self.days],
        }

    @classmethod
    def from_dict(cls, month: str, data: dict) -> "MonthEntry":
        return cls(
            stats=data.get("stats") or stats_key(month),
            total_jobs=data.get("totalJobs", 0),
            archived=data.get("archived", False),
            days=[DayShard.from_dict(d) for d in data.get("days", [])],
        )


@dataclass
class Manifest:
    """Root index of the archive. Owned and mutated only by the archive store."""
    current_month: str
    updated_at: str = ""
    version: str = MANIFEST_VERSION
    months: dict[str, MonthEntry] = field(default_factory=dict)
    available_months: list[str] = field(default_factory=list)
    total_jobs_all_time: int = 0

    def month_entry(self, month: str) -> MonthEntry:
        """Get or create the entry for a month."""
        if month not in self.months:
            self.months[month] = MonthEntry(stats=stats_key(month))
        return self.months[month]

    def recompute_totals(self) -> None:
        """Refresh all-time total and the newest-first list of months holding jobs."""
        self.total_jobs_all_time = sum(m.total_jobs for m in self.months.values())
        populated = [month for month, entry in self.months.items() if entry.total_jobs > 0]
        self.available_months = sorted(set(populated) | set(self.available_months), reverse=True)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "updatedAt": self.updated_at,
            "currentMonth": self.current_month,
            "months": {month: entry.to_dict() for month, entry in self.months.items()},
            "availableMonths": self.available_months,
            "totalJobsAllTime": self.total_jobs_all_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Manifest":
        return cls(
            version=data.get("version", MANIFEST_VERSION),
            updated_at=data.get("updatedAt", ""),
            current_month=data["currentMonth"],
            months={
                month: MonthEntry.from_dict(month, entry)
                for month, entry in (data.get("months") or {}).items()
            },
            available_months=list(data.get("availableMonths") or []),
            total_jobs_all_time=data.get("totalJobsAllTime", 0),
        )
