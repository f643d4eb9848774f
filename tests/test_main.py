import json

import pytest

from job_ingest import config, main
from job_ingest.storage.db import Database


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "cli.db")
    monkeypatch.setattr(main, "setup_logging", lambda log_dir=None: None)
    monkeypatch.setattr(main, "open_store", lambda db_path=None: Database(path))
    return path


def test_parser_collects_repeated_options():
    args = main.build_parser().parse_args(
        ["ingest", "--query", "python developer", "--query", "data engineer", "--location", "Remote", "--dry-run"],
    )
    cfg = main.run_config_from_args(args)
    assert cfg.queries == ["python developer", "data engineer"]
    assert cfg.locations == ["Remote"]
    assert cfg.dry_run and not cfg.force_run
    assert cfg.target_collection == config.JOBS_COLLECTION


def test_parser_defaults_and_staging():
    cfg = main.run_config_from_args(main.build_parser().parse_args(["ingest", "--staging"]))
    assert cfg.queries == config.SEARCH_QUERIES
    assert cfg.similarity_threshold == 85
    assert cfg.target_collection == config.STAGING_COLLECTION


def test_ingest_without_api_key_exits_2(db_path, monkeypatch):
    monkeypatch.setattr(main, "open_store", lambda db_path=None: pytest.fail("store opened"))
    assert main.main(["ingest"]) == 2


def test_invalid_threshold_exits_2(db_path):
    assert main.main(["dedupe", "--threshold", "150"]) == 2


def test_ingest_prints_summary_then_skips_same_day(db_path, monkeypatch, capsys, make_source, raw_job):
    source = make_source({("software engineer", "Seattle, WA"): [raw_job(), raw_job("Data Engineer")]})
    monkeypatch.setattr(main, "SerpApiScraper", lambda delay: source)
    argv = ["ingest", "--query", "software engineer", "--location", "Seattle, WA"]

    assert main.main(argv) == 0
    out = capsys.readouterr().out
    assert "BATCH" in out
    assert "New" in out

    assert main.main(argv) == 0
    assert "Already ran today" in capsys.readouterr().out
    assert len(source.fetch_calls) == 1

    with Database(db_path) as db:
        assert db.count(config.JOBS_COLLECTION) == 2
        assert db.count(config.BATCH_RUNS_COLLECTION) == 1


def test_dedupe_json_output(db_path, capsys, make_posting):
    with Database(db_path) as db:
        for p in (make_posting(source_job_id="a"), make_posting("software engineer", "ACME Inc", source_job_id="b")):
            db.create(config.JOBS_COLLECTION, p.id, p.to_document())

    assert main.main(["dedupe", "--json"]) == 0
    (summary,) = json.loads(capsys.readouterr().out)
    assert summary["kind"] == "deduplication"
    assert summary["removed"] == 1
    assert summary["duplicate_groups"][0]["keep_id"] == "a"

    with Database(db_path) as db:
        assert [d["id"] for d in db.query(config.JOBS_COLLECTION)] == ["a"]


def test_sweep_dry_run_table(db_path, capsys):
    assert main.main(["sweep", "--dry-run"]) == 0
    out = capsys.readouterr().out
    assert "SWEEP SUMMARY" in out
    assert "deduplication" in out and "migration" in out
