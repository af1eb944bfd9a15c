"""
Data models shared across pipeline stages.

- job: JobRecord (crawled listing, enriched in place)
- archive: Manifest / MonthEntry / DayShard and the archived JobStatistic
"""

from models.job import JobRecord
from models.archive import DayShard, JobStatistic, Manifest, MonthEntry, SalaryData

__all__ = ["JobRecord", "JobStatistic", "SalaryData", "Manifest", "MonthEntry", "DayShard"]
