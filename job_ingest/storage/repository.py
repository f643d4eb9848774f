"""
Job repository — collection-aware reads and writes on top of a DocumentStore.
The controller and the sweep talk to this, never to raw collections.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from job_ingest import config
from job_ingest.models.job import JobPosting, format_timestamp
from job_ingest.models.run import BatchRun
from job_ingest.storage.base import DELETE, SET, DocumentStore, WriteOp

logger = logging.getLogger(__name__)


class JobRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ── Postings ──────────────────────────────────────────────────────────────
    def load_postings(
        self,
        collection: str = config.JOBS_COLLECTION,
        since: Optional[datetime] = None,
    ) -> List[JobPosting]:
        """Postings in ascending created_at order. Unreadable documents are skipped."""
        where = [("created_at", ">=", format_timestamp(since))] if since else None
        postings: List[JobPosting] = []
        for doc in self.store.query(collection, where=where, order_by="created_at"):
            doc_id = doc.pop("id")
            try:
                postings.append(JobPosting.from_document(doc_id, doc))
            except ValidationError as exc:
                logger.warning("Skipping unreadable %s/%s: %s", collection, doc_id, exc.errors()[0]["msg"])
        return postings

    @staticmethod
    def set_op(posting: JobPosting, collection: str = config.JOBS_COLLECTION) -> WriteOp:
        return WriteOp(SET, collection, posting.id, posting.to_document())

    @staticmethod
    def delete_op(doc_id: str, collection: str) -> WriteOp:
        return WriteOp(DELETE, collection, doc_id)

    # ── Run records ───────────────────────────────────────────────────────────
    def find_batch_run(self, batch_id: str) -> Optional[BatchRun]:
        docs = self.store.query(
            config.BATCH_RUNS_COLLECTION, where=[("batch_id", "==", batch_id)], limit=1,
        )
        if not docs:
            return None
        doc = docs[0]
        doc.pop("id")
        return BatchRun.from_document(doc)

    def record_batch_run(self, run: BatchRun) -> str:
        # Forced re-runs on the same day get their own record
        doc_id = f"{run.batch_id}-{format_timestamp(run.completed_at)}"
        self.store.create(config.BATCH_RUNS_COLLECTION, doc_id, run.to_document())
        logger.info("Recorded batch run %s", doc_id)
        return doc_id

    def record_sweep(self, collection: str, document: Dict[str, Any]) -> str:
        doc_id = f"{document.get('kind', 'sweep')}-{document['completed_at']}"
        self.store.create(collection, doc_id, document)
        logger.info("Recorded %s record %s", collection, doc_id)
        return doc_id
