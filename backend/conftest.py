"""
Pytest configuration and fixtures for testing.

Nothing here touches the network or a real bucket:
- fake_store: in-memory stand-in for storage.object_store.ObjectStore
- make_record / make_statistic: factories for JobRecord and JobStatistic
- fixed_now: a frozen UTC clock for archive/cache code that takes now=
"""
import copy
from datetime import datetime, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv

from models.archive import JobStatistic, SalaryData
from models.job import JobRecord
from storage.object_store import StorageError

# Load environment variables (.env.local takes precedence over .env)
env_local = Path('.env.local')
env_file = Path('.env')

if env_local.exists():
    load_dotenv(env_local)
elif env_file.exists():
    load_dotenv(env_file)


class FakeObjectStore:
    """
    Dict-backed object store with the same surface as ObjectStore.

    Set fail_reads / fail_writes to make every get_* / put_* raise
    StorageError. writes records each key written, in order.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self.objects: dict = {}
        self.writes: list[str] = []
        self.fail_reads = False
        self.fail_writes = False

    def is_available(self) -> bool:
        return self.available

    def _check_read(self, key):
        if self.fail_reads:
            raise StorageError(f"get {key} failed: simulated")

    def _check_write(self, key):
        if self.fail_writes:
            raise StorageError(f"put {key} failed: simulated")

    def get_json(self, key):
        self._check_read(key)
        value = self.objects.get(key)
        return copy.deepcopy(value)

    def put_json(self, key, data):
        self._check_write(key)
        self.objects[key] = copy.deepcopy(data)
        self.writes.append(key)
        return len(str(data))

    def get_ndjson_gz(self, key):
        self._check_read(key)
        return copy.deepcopy(self.objects.get(key, []))

    def put_ndjson_gz(self, key, rows):
        self._check_write(key)
        rows = copy.deepcopy(list(rows))
        self.objects[key] = rows
        self.writes.append(key)
        return 100 * len(rows)


@pytest.fixture
def fake_store():
    return FakeObjectStore()


@pytest.fixture
def fixed_now():
    moment = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)
    return lambda: moment


def build_record(n: int = 1, **overrides) -> JobRecord:
    data = {
        "url": f"https://www.linkedin.com/jobs/view/{1000 + n}",
        "id": str(1000 + n),
        "title": f"Financial Analyst {n}",
        "company": "Acme Capital",
        "location": "London, England, United Kingdom",
        "country": "United Kingdom",
        "city": "London",
        "region": "England",
        "currency": "GBP",
        "posted_date": "2025-03-13",
        "extracted_date": "2025-03-14T09:00:00+00:00",
        "input_keyword": "analyst",
        "search_country": "United Kingdom",
    }
    data.update(overrides)
    return JobRecord(**data)


def build_statistic(n: int = 1, **overrides) -> JobStatistic:
    data = {
        "id": str(1000 + n),
        "title": f"Financial Analyst {n}",
        "company": "Acme Capital",
        "url": f"https://www.linkedin.com/jobs/view/{1000 + n}",
        "extracted_date": "2025-03-14T09:00:00+00:00",
        "location": "London, England, United Kingdom",
        "country": "United Kingdom",
        "city": "London",
        "region": "England",
        "keywords": ["modelling", "valuation"],
        "certificates": ["CFA"],
        "industry": "Investment Banking",
        "seniority": "Mid Level",
        "description": f"Description for job {n}",
        "salary": SalaryData(min=50000, max=70000, currency="GBP"),
    }
    data.update(overrides)
    return JobStatistic(**data)


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_statistic():
    return build_statistic
