"""
Signature generator — content fingerprint used for exact-duplicate detection.
"""

import hashlib
from typing import Optional

from job_ingest.engine.normalizer import (
    normalize_company_name,
    normalize_job_title,
    normalize_location,
)

SEPARATOR = "|"


def signature_key(title: Optional[str], company: Optional[str], location: Optional[str]) -> str:
    """Readable pre-hash key: 'software engineer|tech solutions|san francisco, ca'."""
    return SEPARATOR.join([
        normalize_job_title(title),
        normalize_company_name(company),
        normalize_location(location).lower(),
    ])


def generate_job_signature(title: Optional[str], company: Optional[str], location: Optional[str]) -> str:
    return hashlib.md5(signature_key(title, company, location).encode()).hexdigest()
