import pytest

from job_ingest.engine.writer import chunked, commit_in_chunks
from job_ingest.errors import CommitError
from job_ingest.storage.base import DELETE, SET, WriteOp


def _set_ops(n, collection="jobs"):
    return [WriteOp(SET, collection, f"doc-{i:04d}", {"n": i}) for i in range(n)]


def test_chunked_sizes():
    assert [len(c) for c in chunked(list(range(1200)), 500)] == [500, 500, 200]
    assert list(chunked([], 500)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_1200_operations_commit_as_500_500_200(store):
    report = commit_in_chunks(store, _set_ops(1200))
    assert report.chunk_sizes == [500, 500, 200]
    assert report.chunks_committed == 3
    assert report.written == 1200
    assert report.errors == []
    assert store.count("jobs") == 1200


def test_chunk_size_is_capped_at_store_limit(store):
    report = commit_in_chunks(store, _set_ops(700), chunk_size=10_000)
    assert report.chunk_sizes == [500, 200]


def test_failed_chunk_is_reported_and_others_commit(flaky_store):
    db = flaky_store(fail_on=[2])
    report = commit_in_chunks(db, _set_ops(12), chunk_size=5)

    assert report.chunk_sizes == [5, 2]
    assert report.failed_ids == [f"doc-{i:04d}" for i in range(5, 10)]
    assert len(report.errors) == 1
    assert "chunk 2" in report.errors[0]
    assert db.count("jobs") == 7
    assert db.get("jobs", "doc-0005") is None


def test_delete_ops(store):
    commit_in_chunks(store, _set_ops(3))
    report = commit_in_chunks(store, [WriteOp(DELETE, "jobs", "doc-0001")])
    assert report.written == 1
    assert store.count("jobs") == 2


# ── WriteBatch ─────────────────────────────────────────────────────────────────
def test_batch_refuses_more_than_500_ops(store):
    batch = store.batch()
    for op in _set_ops(500):
        batch.add(op)
    with pytest.raises(ValueError):
        batch.set("jobs", "one-too-many", {})
    assert len(batch) == 500


def test_batch_commit_is_all_or_nothing(store):
    batch = store.batch()
    batch.set("jobs", "good", {"ok": True})
    batch.add(WriteOp("bogus", "jobs", "bad"))
    with pytest.raises(CommitError):
        batch.commit()
    assert store.get("jobs", "good") is None


def test_empty_batch_commits_nothing(store):
    assert store.batch().commit() == 0
