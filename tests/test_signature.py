import re

from job_ingest.engine.signature import generate_job_signature, signature_key


def test_signature_is_md5_hex():
    sig = generate_job_signature("Software Engineer", "Acme", "Seattle, WA")
    assert re.fullmatch(r"[0-9a-f]{32}", sig)


def test_signature_deterministic():
    args = ("Software Engineer", "Tech Solutions Inc", "San Francisco, CA")
    assert generate_job_signature(*args) == generate_job_signature(*args)


def test_signature_ignores_case_whitespace_and_legal_suffix():
    a = generate_job_signature("Software Engineer", "Tech Solutions Inc.", "San Francisco, CA")
    b = generate_job_signature("  software   ENGINEER ", "tech solutions", "san francisco, california")
    assert a == b


def test_signature_ignores_seniority_markers():
    assert generate_job_signature("Senior Data Engineer II", "Acme", "Remote") == \
        generate_job_signature("Data Engineer", "Acme", "Remote")


def test_signature_remote_equals_anywhere():
    assert generate_job_signature("Data Engineer", "Acme", "Remote") == \
        generate_job_signature("Data Engineer", "Acme", "Anywhere")


def test_signature_differs_for_different_roles():
    assert generate_job_signature("Data Engineer", "Acme", "Remote") != \
        generate_job_signature("Data Scientist", "Acme", "Remote")


def test_signature_key_is_readable():
    assert signature_key("Sr. Software Engineer", "Tech Solutions Inc", "San Francisco, California") == \
        "software engineer|tech solutions|san francisco, ca"
