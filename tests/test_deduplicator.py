from datetime import datetime, timedelta, timezone

import pytest

from job_ingest.engine.deduplicator import NEW, DedupIndex, Deduplicator, pick_survivor, survivor_sort_key
from job_ingest.models.run import EXACT_SIGNATURE, HIGH_SIMILARITY

NOW = datetime(2024, 3, 15, 18, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def cluster(make_posting):
    return [
        make_posting("Software Engineer", "Acme Inc", "Seattle, WA"),
        make_posting("software engineer", "ACME", "seattle, wa"),
        make_posting("Senior Software Engineer", "Acme, Inc.", "Seattle, Washington"),
        make_posting("Software Engineer II", "Acme LLC", "Seattle, Washington, United States"),
    ]


def test_cluster_of_four_yields_one_new_three_exact(cluster):
    assert len({p.signature for p in cluster}) == 1

    dedup = Deduplicator()
    accepted, groups = dedup.deduplicate(cluster)

    assert [p.id for p in accepted] == [cluster[0].id]
    assert len(groups) == 1
    assert groups[0].reason == EXACT_SIGNATURE
    assert groups[0].keep_id == cluster[0].id
    assert groups[0].removed_ids == [p.id for p in cluster[1:]]
    assert groups[0].similarity == 100


def test_resolve_states(make_posting):
    dedup = Deduplicator()
    first = make_posting("Software Engineer", "Tech Solutions Inc", "San Francisco, CA")
    exact = make_posting("software engineer", "Tech Solutions", "san francisco, california")
    near  = make_posting("Software Engineer", "Tech Solutions Corporation", "San Francisco")
    other = make_posting("Product Designer", "Globex", "Austin, TX")

    r1 = dedup.resolve(first)
    assert r1.status == NEW and not r1.is_duplicate

    r2 = dedup.resolve(exact)
    assert r2.status == EXACT_SIGNATURE
    assert r2.matched_id == first.id
    assert r2.similarity == 100

    r3 = dedup.resolve(near)
    assert near.signature != first.signature
    assert r3.status == HIGH_SIMILARITY
    assert r3.matched_id == first.id
    assert r3.similarity >= 85

    assert dedup.resolve(other).status == NEW
    assert len(dedup.index) == 2


def test_near_duplicate_matches_best_candidate(make_posting):
    dedup = Deduplicator()
    weaker = make_posting("Software Engineers", "Acme", "Seattle, WA", source_job_id="weaker")
    best   = make_posting("Software Engineer", "Acme", "Seattle, WA", source_job_id="best")
    dedup.index.add(weaker)
    dedup.index.add(best)

    incoming = make_posting("Software Engineer", "Acme", "Seattle")
    res = dedup.resolve(incoming)
    assert res.status == HIGH_SIMILARITY
    assert res.matched_id == "best"


def test_seed_counts_only_unique_and_catches_duplicates(make_posting):
    stored = [make_posting(source_job_id="a"), make_posting(source_job_id="b")]
    dedup = Deduplicator()
    assert dedup.seed(stored) == 1

    accepted, groups = dedup.deduplicate([make_posting("Sr. Software Engineer", source_job_id="c")])
    assert accepted == []
    assert groups[0].keep_id == "a"


def test_threshold_controls_near_duplicates(make_posting):
    a = make_posting("Software Engineer", "Acme", "Seattle, WA")
    b = make_posting("Software Engineers", "Acme", "Seattle, WA")

    strict = Deduplicator(threshold=100)
    assert len(strict.deduplicate([a, b])[0]) == 2

    loose = Deduplicator(threshold=85)
    assert len(loose.deduplicate([a, b])[0]) == 1


def test_each_deduplicator_gets_its_own_index(make_posting):
    first, second = Deduplicator(), Deduplicator()
    first.resolve(make_posting())
    assert len(first.index) == 1
    assert len(second.index) == 0
    assert second.resolve(make_posting()).status == NEW


def test_explicit_index_is_shared_when_passed(make_posting):
    index = DedupIndex()
    Deduplicator(index=index).resolve(make_posting())
    assert Deduplicator(index=index).resolve(make_posting()).status == EXACT_SIGNATURE


# ── Survivor tie-break ─────────────────────────────────────────────────────────
def test_survivor_prefers_source_id_over_age(make_posting):
    older_no_id = make_posting(created_at=NOW - timedelta(days=3))
    newer_id    = make_posting(source_job_id="src-1", created_at=NOW)
    assert pick_survivor([older_no_id, newer_id]) is newer_id


def test_survivor_then_prefers_oldest(make_posting):
    old = make_posting(source_job_id="old", created_at=NOW - timedelta(days=2))
    new = make_posting(source_job_id="new", created_at=NOW)
    assert pick_survivor([new, old]) is old

    old_plain = make_posting(location="Seattle", created_at=NOW - timedelta(hours=1))
    new_plain = make_posting(created_at=NOW)
    assert pick_survivor([new_plain, old_plain]) is old_plain


def test_survivor_sort_key_orders_a_group(make_posting):
    a = make_posting(source_job_id="a", created_at=NOW)
    b = make_posting(created_at=NOW - timedelta(days=5))
    c = make_posting(source_job_id="c", created_at=NOW - timedelta(days=1))
    assert sorted([a, b, c], key=survivor_sort_key) == [c, a, b]


def test_pick_survivor_rejects_empty_group():
    with pytest.raises(ValueError):
        pick_survivor([])
