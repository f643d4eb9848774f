"""
Run records — persisted audit documents (batch, migration and dedup runs)
and the in-memory summaries handed back to callers.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from job_ingest.models.job import format_timestamp, parse_timestamp, utcnow

EXACT_SIGNATURE = "exact_signature"
HIGH_SIMILARITY = "high_similarity"


class DuplicateGroup(BaseModel):
    """One keep/remove decision. Report-only, never stored on its own."""

    keep_id: str
    removed_ids: List[str] = Field(default_factory=list)
    similarity: int = 100
    reason: str = EXACT_SIGNATURE


class BatchRun(BaseModel):
    """One live ingestion run. Written once at the end, never updated."""

    batch_id: str
    completed_at: datetime = Field(default_factory=utcnow)
    total_jobs: int = 0
    new_jobs: int = 0
    duplicates: int = 0
    queries_processed: int = 0
    persisted: int = 0
    chunks_committed: int = 0
    errors: List[str] = Field(default_factory=list)
    execution_time_ms: int = 0

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump()
        doc["completed_at"] = format_timestamp(self.completed_at)
        return doc

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "BatchRun":
        return cls.model_validate({**data, "completed_at": parse_timestamp(data.get("completed_at")) or utcnow()})


class RunSummary(BaseModel):
    """Result of BatchIngestionController.run()."""

    batch_id: str
    success: bool = True
    dry_run: bool = False
    skipped: bool = False
    prior_run: Optional[BatchRun] = None
    total_jobs: int = 0
    new_jobs: int = 0
    duplicates: int = 0
    exact_duplicates: int = 0
    similar_duplicates: int = 0
    parse_failures: int = 0
    queries_processed: int = 0
    persisted: int = 0
    chunks_committed: int = 0
    chunk_sizes: List[int] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    duplicate_groups: List[DuplicateGroup] = Field(default_factory=list)
    execution_time_ms: int = 0

    def to_batch_run(self, completed_at: Optional[datetime] = None) -> BatchRun:
        return BatchRun(
            batch_id=self.batch_id,
            completed_at=completed_at or utcnow(),
            total_jobs=self.total_jobs,
            new_jobs=self.new_jobs,
            duplicates=self.duplicates,
            queries_processed=self.queries_processed,
            persisted=self.persisted,
            chunks_committed=self.chunks_committed,
            errors=list(self.errors),
            execution_time_ms=self.execution_time_ms,
        )


class SweepSummary(BaseModel):
    """Result of one sweep pass (staging migration or canonical cleanup)."""

    kind: str
    dry_run: bool = False
    processed: int = 0
    migrated: int = 0
    duplicates: int = 0
    removed: int = 0
    kept: int = 0
    chunks_committed: int = 0
    errors: List[str] = Field(default_factory=list)
    duplicate_groups: List[DuplicateGroup] = Field(default_factory=list)
    execution_time_ms: int = 0

    def to_document(self, completed_at: Optional[datetime] = None) -> Dict[str, Any]:
        doc = self.model_dump()
        doc["completed_at"] = format_timestamp(completed_at or utcnow())
        return doc
