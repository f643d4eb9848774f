"""
SQLite storage handler — local document store used when Supabase is not
configured and by the test suite.

Each document is one row of (collection, id, JSON data). Filters and
ordering use json_extract; timestamps are stored as fixed-width UTC
strings so string comparison is time comparison.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from job_ingest import config
from job_ingest.errors import CommitError, StoreError
from job_ingest.storage.base import DELETE, SET, DocumentStore, Where, WriteOp, check_field, check_where

logger = logging.getLogger(__name__)


_CREATE_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    collection      TEXT NOT NULL,
    id              TEXT NOT NULL,
    data            TEXT NOT NULL,  -- JSON object
    PRIMARY KEY (collection, id)
);
CREATE INDEX IF NOT EXISTS idx_documents_created
    ON documents(collection, json_extract(data, '$.created_at'));
CREATE INDEX IF NOT EXISTS idx_documents_batch
    ON documents(collection, json_extract(data, '$.batch_id'));
"""


class Database(DocumentStore):
    NAME = "sqlite"

    def __init__(self, db_path: str = None):
        self.db_path = db_path or config.DB_PATH
        self._conn = None
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_db(self):
        conn = self._connect()
        conn.executescript(_CREATE_SQL)
        conn.commit()
        logger.debug("Database initialised at %s", self.db_path)

    # ── Reads ─────────────────────────────────────────────────────────────────
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        row = self._connect().execute(
            "SELECT id, data FROM documents WHERE collection=? AND id=?",
            (collection, doc_id),
        ).fetchone()
        return self._row_to_dict(row) if row else None

    def query(
        self,
        collection: str,
        where: Optional[Sequence[Where]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        sql    = "SELECT id, data FROM documents WHERE collection=?"
        params: List[Any] = [collection]
        for field_name, op, value in check_where(where):
            sql += f" AND json_extract(data, '$.{field_name}') {'=' if op == '==' else op} ?"
            params.append(value)
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(data, '$.{check_field(order_by)}') {direction}, id {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        try:
            rows = self._connect().execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Query on '{collection}' failed: {exc}") from exc
        return [self._row_to_dict(r) for r in rows]

    # ── Single-document writes ────────────────────────────────────────────────
    def create(self, collection: str, doc_id: str, data: Dict[str, Any]):
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO documents (collection, id, data) VALUES (?,?,?)",
                    (collection, doc_id, json.dumps(data)),
                )
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"Document {collection}/{doc_id} already exists") from exc

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        current = self.get(collection, doc_id)
        if current is None:
            raise StoreError(f"Document {collection}/{doc_id} not found")
        current.pop("id")
        current.update(fields)
        conn = self._connect()
        with conn:
            conn.execute(
                "UPDATE documents SET data=? WHERE collection=? AND id=?",
                (json.dumps(current), collection, doc_id),
            )

    def delete(self, collection: str, doc_id: str):
        conn = self._connect()
        with conn:
            conn.execute("DELETE FROM documents WHERE collection=? AND id=?", (collection, doc_id))

    # ── Batched writes ────────────────────────────────────────────────────────
    def _apply_batch(self, ops: Sequence[WriteOp]):
        conn = self._connect()
        try:
            # One transaction per batch: commit on success, rollback on any error
            with conn:
                for op in ops:
                    if op.kind == SET:
                        conn.execute(
                            "INSERT OR REPLACE INTO documents (collection, id, data) VALUES (?,?,?)",
                            (op.collection, op.doc_id, json.dumps(op.data)),
                        )
                    elif op.kind == DELETE:
                        conn.execute(
                            "DELETE FROM documents WHERE collection=? AND id=?",
                            (op.collection, op.doc_id),
                        )
                    else:
                        raise StoreError(f"Unknown write op: {op.kind}")
        except (sqlite3.Error, StoreError, TypeError, ValueError) as exc:
            raise CommitError(str(exc), [op.doc_id for op in ops]) from exc

    def count(self, collection: str) -> int:
        row = self._connect().execute(
            "SELECT COUNT(*) FROM documents WHERE collection=?", (collection,)
        ).fetchone()
        return int(row[0])

    def _row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        d = json.loads(row["data"])
        d["id"] = row["id"]
        return d

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
