# tests/conftest.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest import mock

import pytest

from job_ingest import config
from job_ingest.config import RunConfig
from job_ingest.errors import CommitError
from job_ingest.models.job import JobPosting
from job_ingest.scrapers.serpapi import SerpApiScraper
from job_ingest.storage.db import Database

NOW = datetime(2024, 3, 15, 18, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------
# Test-wide env defaults: no real credentials, no real Supabase
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    monkeypatch.setattr(config, "SERPAPI_KEY", "")
    monkeypatch.setattr(config, "SUPABASE_URL", "")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_KEY", "")
    yield


# ---------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------
class FlakyDatabase(Database):
    """SQLite store whose Nth, Mth, ... batch commits fail."""

    def __init__(self, db_path: str, fail_on: List[int]):
        self.fail_on = set(fail_on)
        self.commit_calls = 0
        super().__init__(db_path)

    def _apply_batch(self, ops):
        self.commit_calls += 1
        if self.commit_calls in self.fail_on:
            raise CommitError("simulated outage", [op.doc_id for op in ops])
        return super()._apply_batch(ops)


@pytest.fixture
def store(tmp_path):
    db = Database(str(tmp_path / "jobs.db"))
    yield db
    db.close()


@pytest.fixture
def flaky_store(tmp_path):
    created = []

    def _make(fail_on: List[int]) -> FlakyDatabase:
        db = FlakyDatabase(str(tmp_path / f"flaky-{len(created)}.db"), fail_on)
        created.append(db)
        return db

    yield _make
    for db in created:
        db.close()


# ---------------------------------------------------------------------
# Postings and raw upstream results
# ---------------------------------------------------------------------
@pytest.fixture
def make_posting():
    def _make(title="Software Engineer", company="Acme", location="Seattle, WA", **extra) -> JobPosting:
        extra.setdefault("created_at", NOW)
        return JobPosting(title=title, company=company, location=location, **extra)

    return _make


@pytest.fixture
def raw_job():
    counter = {"n": 0}

    def _make(title="Software Engineer", company="Acme", location="Seattle, WA",
              job_id: Optional[str] = "auto", **extra) -> Dict[str, Any]:
        counter["n"] += 1
        raw: Dict[str, Any] = {
            "title": title,
            "company_name": company,
            "location": location,
            "description": extra.pop("description", f"{title} at {company}"),
            "detected_extensions": {"posted_at": "2 days ago"},
            "apply_options": [{"title": "Company site", "link": f"https://jobs.example.com/{counter['n']}"}],
        }
        if job_id == "auto":
            job_id = f"job-{counter['n']}"
        if job_id:
            raw["job_id"] = job_id
        raw.update(extra)
        return raw

    return _make


# ---------------------------------------------------------------------
# Upstream source double: real SerpAPI mapping, canned fetch results
# ---------------------------------------------------------------------
class FakeSource(SerpApiScraper):
    def __init__(self, results: Optional[Dict[tuple, Any]] = None):
        super().__init__(api_key="test-key", session=mock.MagicMock(), delay=0)
        self.results = results or {}
        self.fetch_calls: List[tuple] = []

    def fetch(self, query, location, limit=config.MAX_JOBS_PER_QUERY):
        self.fetch_calls.append((query, location))
        value = self.results.get((query, location), [])
        if isinstance(value, Exception):
            raise value
        return list(value)[:limit]


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def run_config():
    def _make(**overrides) -> RunConfig:
        values = dict(
            queries=["software engineer"],
            locations=["Seattle, WA"],
            request_delay=0,
        )
        values.update(overrides)
        return RunConfig(**values)

    return _make
