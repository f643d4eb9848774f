import pytest

from job_ingest.engine.similarity import (
    are_jobs_similar,
    calculate_job_similarity,
    find_similar_jobs,
    similarity_breakdown,
)


def _job(title="Software Engineer", company="Acme", location="Seattle, WA", **extra):
    return {"title": title, "company": company, "location": location, **extra}


@pytest.mark.parametrize("job", [
    _job(),
    _job("Principal ML Engineer", "Globex Corporation", "Austin, Texas"),
    _job("Data Scientist", "Initech", ""),
    _job("Engineer", "X", "Remote"),
])
def test_reflexive(job):
    assert calculate_job_similarity(job, job) == 100


def test_posting_objects_are_accepted(make_posting):
    posting = make_posting()
    assert calculate_job_similarity(posting, posting) == 100
    assert calculate_job_similarity(posting, _job()) == 100


def test_tech_solutions_scenario():
    a = _job("Software Engineer", "Tech Solutions Inc", "San Francisco, CA")
    b = _job("Software Engineer", "Tech Solutions Corporation", "San Francisco")
    assert calculate_job_similarity(a, b) >= 85
    assert are_jobs_similar(a, b)


def test_normalization_invariance():
    a = _job("Senior Software Engineer", "ACME, Inc.", "seattle, washington")
    b = _job("software engineer", "acme", "Seattle, WA")
    assert calculate_job_similarity(a, b) == 100


def test_remote_equals_anywhere():
    assert calculate_job_similarity(_job(location="Remote"), _job(location="Anywhere")) == 100


def test_different_role_same_company_is_not_similar():
    a = _job("Software Engineer")
    b = _job("Data Engineer")
    assert calculate_job_similarity(a, b) < 85
    assert not are_jobs_similar(a, b)


def test_missing_fields_degrade_without_error():
    a = _job(company="")
    b = _job(company="")
    score = calculate_job_similarity(a, b)
    assert 0 <= score < 100
    assert calculate_job_similarity(_job(title="X", company=""), {"title": "Y"}) < 85


def test_threshold_monotonic():
    a = _job("Software Engineer", "Acme", "Seattle, WA")
    b = _job("Software Engineers", "Acme Labs", "Seattle")
    score = calculate_job_similarity(a, b)
    for threshold in range(0, 101, 5):
        assert are_jobs_similar(a, b, threshold) == (score >= threshold)
        if are_jobs_similar(a, b, threshold):
            assert all(are_jobs_similar(a, b, lower) for lower in range(0, threshold + 1))


def test_find_similar_jobs_empty_candidates():
    assert find_similar_jobs(_job(), []) == []


def test_find_similar_jobs_sorted_descending():
    target = _job()
    unrelated = _job("Product Manager", "Globex", "Austin, TX", id="unrelated")
    same      = _job("Senior Software Engineer", "Acme Inc", "Seattle, Washington", id="same")
    close     = _job("Software Engineers", "Acme", "Seattle, WA", id="close")

    matches = find_similar_jobs(target, [unrelated, close, same])
    assert [m.job["id"] for m in matches] == ["same", "close"]
    assert matches[0].similarity == 100
    assert matches[0].similarity >= matches[1].similarity >= 85


def test_find_similar_jobs_respects_threshold():
    close = _job("Software Engineers")
    assert find_similar_jobs(_job(), [close], threshold=100) == []


def test_breakdown_reports_fields():
    parts = similarity_breakdown(_job(), _job(location="Seattle"))
    assert set(parts) == {"title", "company", "location", "total"}
    assert parts["title"] == 100
    assert parts["location"] == 100
    assert parts["total"] == 100
