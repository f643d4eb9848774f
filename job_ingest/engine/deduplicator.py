"""
Deduplicator — classifies each incoming posting as new, exact duplicate or
near duplicate against a per-run index.

Two-pass strategy per posting:
  1. Exact: MD5 signature of normalized (title | company | location)
  2. Fuzzy: weighted title/company/location similarity against every
     posting accepted so far (threshold 85 by default)

The index is an explicit object built fresh for every run and passed in,
so back-to-back runs never share state.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from job_ingest import config
from job_ingest.engine.similarity import find_similar_jobs
from job_ingest.models.job import JobPosting
from job_ingest.models.run import EXACT_SIGNATURE, HIGH_SIMILARITY, DuplicateGroup

logger = logging.getLogger(__name__)

NEW = "new"

_EPOCH_MAX = datetime.max.replace(tzinfo=timezone.utc)


@dataclass
class DedupIndex:
    """signature → kept id, plus every posting accepted for fuzzy comparison."""

    signatures: Dict[str, str]  = field(default_factory=dict)
    accepted:   List[JobPosting] = field(default_factory=list)

    def add(self, posting: JobPosting):
        self.signatures[posting.signature] = posting.id
        self.accepted.append(posting)

    def __len__(self) -> int:
        return len(self.accepted)

    def __contains__(self, signature: str) -> bool:
        return signature in self.signatures


@dataclass
class Resolution:
    posting: JobPosting
    status: str                       # new | exact_signature | high_similarity
    matched_id: Optional[str] = None
    similarity: int = 0

    @property
    def is_duplicate(self) -> bool:
        return self.status != NEW


class Deduplicator:
    def __init__(self, threshold: int = config.SIMILARITY_THRESHOLD, index: Optional[DedupIndex] = None):
        self.threshold = threshold
        self.index     = index if index is not None else DedupIndex()
        self._groups: Dict[Tuple[str, str], DuplicateGroup] = {}

    # ── Seeding ───────────────────────────────────────────────────────────────
    def seed(self, postings: Iterable[JobPosting]) -> int:
        """Load already-stored postings. They count as kept but not as new."""
        count = 0
        for posting in postings:
            if posting.signature in self.index:
                continue
            self.index.add(posting)
            count += 1
        logger.info("Dedup index seeded with %d postings", count)
        return count

    # ── Main entry ────────────────────────────────────────────────────────────
    def resolve(self, posting: JobPosting) -> Resolution:
        kept_id = self.index.signatures.get(posting.signature)
        if kept_id is not None:
            self._record(kept_id, posting.id, 100, EXACT_SIGNATURE)
            return Resolution(posting, EXACT_SIGNATURE, kept_id, 100)

        matches = find_similar_jobs(posting, self.index.accepted, self.threshold)
        if matches:
            best = matches[0]
            self._record(best.job.id, posting.id, best.similarity, HIGH_SIMILARITY)
            return Resolution(posting, HIGH_SIMILARITY, best.job.id, best.similarity)

        self.index.add(posting)
        return Resolution(posting, NEW)

    def deduplicate(self, postings: Iterable[JobPosting]) -> Tuple[List[JobPosting], List[DuplicateGroup]]:
        accepted: List[JobPosting] = []
        total = 0
        for posting in postings:
            total += 1
            if not self.resolve(posting).is_duplicate:
                accepted.append(posting)
        logger.info("Dedup: %d → %d", total, len(accepted))
        return accepted, self.groups

    # ── Report ────────────────────────────────────────────────────────────────
    @property
    def groups(self) -> List[DuplicateGroup]:
        return list(self._groups.values())

    def _record(self, keep_id: str, removed_id: str, similarity: int, reason: str):
        key = (keep_id, reason)
        group = self._groups.get(key)
        if group is None:
            self._groups[key] = DuplicateGroup(
                keep_id=keep_id, removed_ids=[removed_id], similarity=similarity, reason=reason,
            )
            return
        group.removed_ids.append(removed_id)
        # Report the weakest match that still qualified
        group.similarity = min(group.similarity, similarity)


# ── Survivor tie-break ─────────────────────────────────────────────────────────
def survivor_sort_key(posting: JobPosting) -> Tuple[int, datetime, str]:
    """Source-id holders first, then the earliest created_at, then id."""
    created = posting.created_at or _EPOCH_MAX
    return (0 if posting.has_source_id else 1, created, posting.id)


def pick_survivor(group: Sequence[JobPosting]) -> JobPosting:
    if not group:
        raise ValueError("pick_survivor() needs at least one posting")
    return min(group, key=survivor_sort_key)
