"""
Migration / cleanup sweep — re-applies the duplicate resolver across whole
collections.

cleanup_canonical(): keeps one survivor per exact-signature group (source id
    first, then oldest), then deletes every survivor that resolves as a
    near-duplicate of one kept earlier in the pass.
migrate_staging(): seeds the index from the entire canonical store, walks
    staging oldest first, copies survivors into the canonical store and
    drains every processed staging record.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from job_ingest import config
from job_ingest.engine.deduplicator import Deduplicator, pick_survivor, survivor_sort_key
from job_ingest.engine.writer import commit_in_chunks
from job_ingest.errors import StoreError
from job_ingest.models.job import JobPosting
from job_ingest.models.run import EXACT_SIGNATURE, DuplicateGroup, SweepSummary
from job_ingest.storage.base import DocumentStore
from job_ingest.storage.repository import JobRepository

logger = logging.getLogger(__name__)

MIGRATE = "migration"
CLEANUP = "deduplication"


class MigrationSweep:
    def __init__(
        self,
        store: DocumentStore,
        threshold: int = config.SIMILARITY_THRESHOLD,
        chunk_size: int = config.WRITE_CHUNK_SIZE,
        dry_run: bool = False,
        now: Optional[datetime] = None,
    ):
        self.store      = store
        self.repo       = JobRepository(store)
        self.threshold  = threshold
        self.chunk_size = chunk_size
        self.dry_run    = dry_run
        self._now       = now

    def _clock(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    # ── Main entry ────────────────────────────────────────────────────────────
    def run(self) -> List[SweepSummary]:
        return [self.cleanup_canonical(), self.migrate_staging()]

    # ── Canonical cleanup ─────────────────────────────────────────────────────
    def cleanup_canonical(self) -> SweepSummary:
        started = time.monotonic()
        summary = SweepSummary(kind=CLEANUP, dry_run=self.dry_run)

        postings = self.repo.load_postings(config.JOBS_COLLECTION)
        summary.processed = len(postings)

        # Exact-signature groups: one survivor each, the rest go
        by_signature: Dict[str, List[JobPosting]] = {}
        for posting in postings:
            by_signature.setdefault(posting.signature, []).append(posting)

        losers: List[str] = []
        groups: List[DuplicateGroup] = []
        survivors: List[JobPosting] = []
        for group in by_signature.values():
            keep = pick_survivor(group)
            survivors.append(keep)
            if len(group) > 1:
                removed = [p.id for p in sorted(group, key=survivor_sort_key) if p is not keep]
                losers.extend(removed)
                groups.append(DuplicateGroup(keep_id=keep.id, removed_ids=removed, reason=EXACT_SIGNATURE))

        # Near-duplicates across the survivors, best candidates first
        dedup = Deduplicator(self.threshold)
        for posting in sorted(survivors, key=survivor_sort_key):
            if dedup.resolve(posting).is_duplicate:
                losers.append(posting.id)
        groups.extend(dedup.groups)

        summary.kept             = summary.processed - len(losers)
        summary.duplicates       = len(losers)
        summary.duplicate_groups = groups

        if self.dry_run:
            logger.info("Dry run: %d of %d canonical postings would be removed", len(losers), len(postings))
        elif losers:
            ops    = [JobRepository.delete_op(doc_id, config.JOBS_COLLECTION) for doc_id in losers]
            report = commit_in_chunks(self.store, ops, self.chunk_size)
            summary.removed          = report.written
            summary.chunks_committed = report.chunks_committed
            summary.errors.extend(report.errors)

        summary.execution_time_ms = int((time.monotonic() - started) * 1000)
        self._record(config.DEDUPLICATION_RUNS_COLLECTION, summary)
        logger.info(
            "Cleanup: %d postings, %d duplicates in %d groups, %d removed",
            summary.processed, summary.duplicates, len(summary.duplicate_groups), summary.removed,
        )
        return summary

    # ── Staging migration ─────────────────────────────────────────────────────
    def migrate_staging(self) -> SweepSummary:
        started = time.monotonic()
        now     = self._clock()
        summary = SweepSummary(kind=MIGRATE, dry_run=self.dry_run)

        dedup = Deduplicator(self.threshold)
        dedup.seed(self.repo.load_postings(config.JOBS_COLLECTION))

        staged   = self.repo.load_postings(config.STAGING_COLLECTION)
        migrated: List[JobPosting] = []
        for posting in staged:
            summary.processed += 1
            if dedup.resolve(posting).is_duplicate:
                summary.duplicates += 1
                continue
            migrated.append(posting.model_copy(update={"migrated_at": now}))

        summary.migrated         = len(migrated)
        summary.duplicate_groups = dedup.groups

        if self.dry_run:
            logger.info(
                "Dry run: %d staged postings, %d would migrate, %d duplicates",
                len(staged), len(migrated), summary.duplicates,
            )
        else:
            self._migrate_and_drain(staged, migrated, summary)

        summary.execution_time_ms = int((time.monotonic() - started) * 1000)
        self._record(config.MIGRATION_RUNS_COLLECTION, summary)
        logger.info(
            "Migration: %d staged, %d migrated, %d duplicates, %d drained",
            summary.processed, summary.migrated, summary.duplicates, summary.removed,
        )
        return summary

    def _migrate_and_drain(self, staged: List[JobPosting], migrated: List[JobPosting], summary: SweepSummary):
        set_ops = [JobRepository.set_op(p, config.JOBS_COLLECTION) for p in migrated]
        written = commit_in_chunks(self.store, set_ops, self.chunk_size)
        summary.chunks_committed += written.chunks_committed
        summary.errors.extend(written.errors)
        summary.migrated          = written.written

        # Staging copies of postings whose migration chunk failed stay for the next sweep
        failed   = set(written.failed_ids)
        drain    = [p.id for p in staged if p.id not in failed]
        del_ops  = [JobRepository.delete_op(doc_id, config.STAGING_COLLECTION) for doc_id in drain]
        drained  = commit_in_chunks(self.store, del_ops, self.chunk_size)
        summary.removed           = drained.written
        summary.chunks_committed += drained.chunks_committed
        summary.errors.extend(drained.errors)

    # ── Audit ─────────────────────────────────────────────────────────────────
    def _record(self, collection: str, summary: SweepSummary):
        if self.dry_run:
            return
        try:
            self.repo.record_sweep(collection, summary.to_document(self._clock()))
        except StoreError as exc:
            logger.error("Failed to record %s run: %s", summary.kind, exc)
            summary.errors.append(f"Failed to record {summary.kind} run: {exc}")
