"""
Chunked commit — splits a list of write operations into batches no larger
than the store's per-commit ceiling and commits them one after another.

Each chunk is atomic; chunks are independent. A failed chunk is reported
and the remaining chunks are still attempted.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, TypeVar

from job_ingest import config
from job_ingest.errors import CommitError
from job_ingest.storage.base import DocumentStore, WriteOp

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


@dataclass
class ChunkReport:
    chunk_sizes: List[int] = field(default_factory=list)       # committed chunks only
    written_ids: List[str] = field(default_factory=list)
    failed_ids: List[str]  = field(default_factory=list)
    errors: List[str]      = field(default_factory=list)

    @property
    def chunks_committed(self) -> int:
        return len(self.chunk_sizes)

    @property
    def written(self) -> int:
        return sum(self.chunk_sizes)


def commit_in_chunks(
    store: DocumentStore,
    operations: Sequence[WriteOp],
    chunk_size: int = config.WRITE_CHUNK_SIZE,
) -> ChunkReport:
    size   = min(chunk_size, config.MAX_BATCH_OPS)
    report = ChunkReport()
    chunks = list(chunked(operations, size))
    for i, chunk in enumerate(chunks):
        batch = store.batch()
        for op in chunk:
            batch.add(op)
        ids = [op.doc_id for op in chunk]
        try:
            batch.commit()
        except CommitError as exc:
            err = CommitError(exc.reason, ids, chunk_index=i)
            logger.error("%s", err)
            report.errors.append(str(err))
            report.failed_ids.extend(ids)
            continue
        report.chunk_sizes.append(len(chunk))
        report.written_ids.extend(ids)
        logger.info("Committed chunk %d/%d (%d ops)", i + 1, len(chunks), len(chunk))
    return report
