"""
Document store interface shared by the SQLite and Supabase backends.

Documents live in named collections and are addressed by (collection, id).
Bulk writes go through WriteBatch, which caps each commit at
config.MAX_BATCH_OPS operations; a commit is all-or-nothing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from job_ingest import config
from job_ingest.errors import CommitError, StoreError

logger = logging.getLogger(__name__)

SET    = "set"
DELETE = "delete"

# (field, operator, value)
Where = Tuple[str, str, Any]

OPERATORS = ("==", "!=", "<", "<=", ">", ">=")

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_field(name: str) -> str:
    if not _FIELD_NAME.match(name):
        raise StoreError(f"Invalid field name: {name!r}")
    return name


def check_where(where: Optional[Sequence[Where]]) -> List[Where]:
    clauses = list(where or [])
    for field_name, op, _ in clauses:
        check_field(field_name)
        if op not in OPERATORS:
            raise StoreError(f"Unsupported operator: {op!r}")
    return clauses


@dataclass
class WriteOp:
    kind: str                       # set | delete
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None


class WriteBatch:
    """Collects up to MAX_BATCH_OPS operations and applies them atomically."""

    def __init__(self, store: "DocumentStore", limit: int = config.MAX_BATCH_OPS):
        self._store = store
        self._limit = limit
        self._ops: List[WriteOp] = []
        self._committed = False

    def _append(self, op: WriteOp):
        if self._committed:
            raise StoreError("Batch already committed")
        if len(self._ops) >= self._limit:
            raise ValueError(f"A write batch holds at most {self._limit} operations")
        self._ops.append(op)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._append(WriteOp(SET, collection, doc_id, dict(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._append(WriteOp(DELETE, collection, doc_id))
        return self

    def add(self, op: WriteOp) -> "WriteBatch":
        self._append(op)
        return self

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> int:
        """Apply every queued op or none of them. Returns the op count."""
        if self._committed:
            raise StoreError("Batch already committed")
        if not self._ops:
            self._committed = True
            return 0
        try:
            self._store._apply_batch(self._ops)
        except CommitError:
            raise
        except Exception as exc:
            raise CommitError(str(exc), [op.doc_id for op in self._ops]) from exc
        self._committed = True
        logger.debug("Committed batch of %d ops", len(self._ops))
        return len(self._ops)


class DocumentStore:
    """Base for document stores. Query results are dicts with an 'id' key."""
    NAME = ""

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def query(
        self,
        collection: str,
        where: Optional[Sequence[Where]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]):
        """Insert a new document; StoreError if the id is taken."""
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        """Merge fields into an existing document; StoreError if missing."""
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str):
        raise NotImplementedError

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def _apply_batch(self, ops: Sequence[WriteOp]):
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
