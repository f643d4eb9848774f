"""
Batch ingestion controller — one daily run end to end.

  batch id → idempotency check → seed dedup index (last 7 days)
    → for each (query, location): fetch → parse → resolve → accumulate
    → enrich → commit in chunks (≤500 ops) → batch_runs record

Fetch and parse failures are recorded and skipped. A failed chunk is
recorded; the other chunks still commit. Nothing is written in dry-run mode.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol
from zoneinfo import ZoneInfo

from job_ingest import config
from job_ingest.config import RunConfig
from job_ingest.engine.deduplicator import Deduplicator
from job_ingest.engine.enrich import enrich_posting
from job_ingest.engine.writer import commit_in_chunks
from job_ingest.errors import RecordParseError, StoreError, UpstreamFetchError
from job_ingest.models.job import JobPosting
from job_ingest.models.run import EXACT_SIGNATURE, RunSummary
from job_ingest.storage.base import DocumentStore
from job_ingest.storage.repository import JobRepository

logger = logging.getLogger(__name__)


class JobSource(Protocol):
    def fetch(self, query: str, location: str, limit: int) -> List[Dict[str, Any]]: ...

    def to_posting(self, raw: Dict[str, Any], **context: Any) -> JobPosting: ...


def generate_batch_id(now: Optional[datetime] = None, tz: str = config.BATCH_TIMEZONE) -> str:
    """Calendar date in the batch time zone, e.g. '2024-03-15'."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz)).strftime("%Y-%m-%d")


class BatchIngestionController:
    def __init__(
        self,
        store: DocumentStore,
        source: JobSource,
        run_config: Optional[RunConfig] = None,
        now: Optional[datetime] = None,
    ):
        self.repo   = JobRepository(store)
        self.store  = store
        self.source = source
        self.cfg    = (run_config or RunConfig()).validate()
        self._now   = now

    def _clock(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    # ── Main entry ────────────────────────────────────────────────────────────
    def run(self) -> RunSummary:
        started  = time.monotonic()
        now      = self._clock()
        batch_id = generate_batch_id(now)
        summary  = RunSummary(batch_id=batch_id, dry_run=self.cfg.dry_run)
        logger.info("Batch %s starting (dry_run=%s, force=%s)", batch_id, self.cfg.dry_run, self.cfg.force_run)

        if not self.cfg.force_run:
            prior = self.repo.find_batch_run(batch_id)
            if prior is not None:
                logger.info("Batch %s already completed at %s — skipping", batch_id, prior.completed_at)
                summary.skipped   = True
                summary.prior_run = prior
                return summary

        dedup = Deduplicator(self.cfg.similarity_threshold)
        since = now - timedelta(days=config.INDEX_LOOKBACK_DAYS)
        dedup.seed(self.repo.load_postings(config.JOBS_COLLECTION, since=since))

        accepted: List[JobPosting] = []
        for query, location in self.cfg.planned_pairs():
            accepted.extend(self._process_pair(query, location, batch_id, now, dedup, summary))

        summary.new_jobs           = len(accepted)
        summary.duplicates         = summary.exact_duplicates + summary.similar_duplicates
        summary.duplicate_groups   = dedup.groups

        for posting in accepted:
            enrich_posting(posting)

        if self.cfg.dry_run:
            logger.info("Dry run: %d postings would be written to '%s'", len(accepted), self.cfg.target_collection)
        else:
            self._persist(accepted, summary)

        summary.execution_time_ms = int((time.monotonic() - started) * 1000)

        if not self.cfg.dry_run:
            try:
                self.repo.record_batch_run(summary.to_batch_run(self._clock()))
            except StoreError as exc:
                logger.error("Failed to record batch run %s: %s", batch_id, exc)
                summary.errors.append(f"Failed to record batch run: {exc}")

        logger.info(
            "Batch %s done: %d fetched, %d new, %d duplicates, %d errors",
            batch_id, summary.total_jobs, summary.new_jobs, summary.duplicates, len(summary.errors),
        )
        return summary

    # ── Steps ─────────────────────────────────────────────────────────────────
    def _process_pair(
        self,
        query: str,
        location: str,
        batch_id: str,
        now: datetime,
        dedup: Deduplicator,
        summary: RunSummary,
    ) -> List[JobPosting]:
        try:
            raw_jobs = self.source.fetch(query, location, self.cfg.max_jobs_per_query)
        except UpstreamFetchError as exc:
            logger.error("%s", exc)
            summary.errors.append(str(exc))
            return []

        summary.queries_processed += 1
        summary.total_jobs        += len(raw_jobs)
        logger.info("Fetched %d postings for '%s' in '%s'", len(raw_jobs), query, location)

        accepted: List[JobPosting] = []
        for raw in raw_jobs:
            try:
                posting = self.source.to_posting(
                    raw, batch_id=batch_id, search_query=query, search_location=location, now=now,
                )
            except RecordParseError as exc:
                logger.warning("%s", exc)
                summary.parse_failures += 1
                summary.errors.append(str(exc))
                continue

            resolution = dedup.resolve(posting)
            if not resolution.is_duplicate:
                accepted.append(posting)
            elif resolution.status == EXACT_SIGNATURE:
                summary.exact_duplicates += 1
            else:
                summary.similar_duplicates += 1
                logger.debug(
                    "'%s' @ %s ~ %s (%d)", posting.title, posting.company, resolution.matched_id, resolution.similarity,
                )
        return accepted

    def _persist(self, accepted: List[JobPosting], summary: RunSummary):
        ops = [JobRepository.set_op(p, self.cfg.target_collection) for p in accepted]
        report = commit_in_chunks(self.store, ops, self.cfg.write_chunk_size)
        summary.persisted        = report.written
        summary.chunks_committed = report.chunks_committed
        summary.chunk_sizes      = list(report.chunk_sizes)
        summary.errors.extend(report.errors)
        logger.info(
            "Persisted %d/%d postings to '%s' in %d chunks",
            report.written, len(accepted), self.cfg.target_collection, report.chunks_committed,
        )
