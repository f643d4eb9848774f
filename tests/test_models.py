from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from job_ingest.config import RunConfig
from job_ingest.engine.signature import generate_job_signature
from job_ingest.models.job import JobPosting, format_timestamp, make_document_id, parse_timestamp
from job_ingest.models.run import BatchRun, RunSummary

NOW = datetime(2024, 3, 15, 18, 0, 0, tzinfo=timezone.utc)


def test_missing_fields_get_defaults():
    p = JobPosting(title="Engineer", company=None, location=None, description=None, created_at=None)
    assert (p.company, p.location, p.description, p.apply_url) == ("", "", "", "")
    assert p.created_at.tzinfo is not None
    assert p.signature == generate_job_signature("Engineer", "", "")
    assert p.id == "engineer--"


def test_title_is_required():
    with pytest.raises(ValidationError):
        JobPosting(title="  ")


def test_blank_source_id_falls_back_to_slug():
    p = JobPosting(title="Data Engineer", company="Globex", location="Austin, TX", source_job_id="  ")
    assert p.source_job_id is None
    assert not p.has_source_id
    assert p.id == make_document_id("Data Engineer", "Globex", "Austin, TX") == "data-engineer-globex-austin--tx"


def test_document_timestamps_sort_as_strings():
    early = format_timestamp(datetime(2024, 3, 9, 23, 59, tzinfo=timezone.utc))
    late  = format_timestamp(datetime(2024, 3, 10, 0, 0, tzinfo=timezone.utc))
    assert early < late
    assert late == "2024-03-10T00:00:00.000000Z"
    assert parse_timestamp(late) == datetime(2024, 3, 10, tzinfo=timezone.utc)


def test_document_excludes_id_and_restores_it():
    p = JobPosting(title="Engineer", company="Acme", source_job_id="abc", created_at=NOW)
    doc = p.to_document()
    assert "id" not in doc
    assert doc["created_at"] == "2024-03-15T18:00:00.000000Z"
    assert doc["posted_date"] is None

    back = JobPosting.from_document("abc", doc)
    assert back.id == "abc"
    assert back.created_at == NOW
    assert back.signature == p.signature


def test_stored_signature_is_kept():
    assert JobPosting(title="Engineer", signature="deadbeef").signature == "deadbeef"


def test_batch_run_from_summary():
    summary = RunSummary(batch_id="2024-03-15", total_jobs=10, new_jobs=7, duplicates=3, errors=["x"])
    run = summary.to_batch_run(NOW)
    doc = run.to_document()
    assert doc["completed_at"] == "2024-03-15T18:00:00.000000Z"
    assert BatchRun.from_document(doc) == run


def test_planned_pairs_apply_caps():
    cfg = RunConfig(queries=["a", "b", "c"], locations=["x", "y"], max_queries=2, max_locations=1)
    assert cfg.planned_pairs() == [("a", "x"), ("b", "x")]
