"""
Similarity scorer — 0–100 fuzzy match between two postings.

Sub-scores (each 0–100) on normalized fields:
  title     normalized Levenshtein similarity        weight 0.55
  company   normalized Levenshtein similarity        weight 0.30
  location  token-set ratio on "city st" tokens     weight 0.15

Token-set on location lets "San Francisco" match "San Francisco, CA".
Title and company stay on edit distance: token-set would score
"Data Engineer" against "Senior Data Engineer Manager" as a full match.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Union

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein

from job_ingest import config
from job_ingest.engine.normalizer import (
    normalize_company_name,
    normalize_job_title,
    normalize_location,
)
from job_ingest.models.job import JobPosting

logger = logging.getLogger(__name__)

TITLE_WEIGHT    = 0.55
COMPANY_WEIGHT  = 0.30
LOCATION_WEIGHT = 0.15

PostingLike = Union[JobPosting, Mapping[str, Any]]


@dataclass
class SimilarJob:
    job: Any
    similarity: int


def _field(posting: PostingLike, name: str) -> str:
    if isinstance(posting, Mapping):
        return posting.get(name) or ""
    return getattr(posting, name, "") or ""


def _edit_similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    return Levenshtein.normalized_similarity(a, b) * 100


def _location_tokens(location: str) -> str:
    return normalize_location(location).lower().replace(",", " ")


def similarity_breakdown(a: PostingLike, b: PostingLike) -> Dict[str, float]:
    """Per-field sub-scores plus the weighted total, for inspecting a match."""
    title_a,   title_b   = normalize_job_title(_field(a, "title")),      normalize_job_title(_field(b, "title"))
    company_a, company_b = normalize_company_name(_field(a, "company")), normalize_company_name(_field(b, "company"))
    loc_a,     loc_b     = _location_tokens(_field(a, "location")),      _location_tokens(_field(b, "location"))

    title    = _edit_similarity(title_a, title_b)
    company  = _edit_similarity(company_a, company_b)
    location = fuzz.token_set_ratio(loc_a, loc_b) if loc_a and loc_b else 0.0

    total = title * TITLE_WEIGHT + company * COMPANY_WEIGHT + location * LOCATION_WEIGHT
    return {
        "title":    round(title, 2),
        "company":  round(company, 2),
        "location": round(location, 2),
        "total":    int(round(total)),
    }


def calculate_job_similarity(a: PostingLike, b: PostingLike) -> int:
    return similarity_breakdown(a, b)["total"]


def are_jobs_similar(a: PostingLike, b: PostingLike, threshold: int = config.SIMILARITY_THRESHOLD) -> bool:
    return calculate_job_similarity(a, b) >= threshold


def find_similar_jobs(
    target: PostingLike,
    candidates: Iterable[PostingLike],
    threshold: int = config.SIMILARITY_THRESHOLD,
) -> List[SimilarJob]:
    """All candidates scoring >= threshold, best match first."""
    matches: List[SimilarJob] = []
    for candidate in candidates:
        score = calculate_job_similarity(target, candidate)
        if score >= threshold:
            matches.append(SimilarJob(job=candidate, similarity=score))
    # sorted() is stable: equal scores keep candidate order
    return sorted(matches, key=lambda m: m.similarity, reverse=True)
