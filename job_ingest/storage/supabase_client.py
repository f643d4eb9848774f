"""
Supabase client — document store backed by a single Postgres table, so the
pipeline keeps its state across scheduled runs.
Falls back gracefully if SUPABASE_URL / SUPABASE_SERVICE_KEY are not set:
`available` stays False and storage.open_store() picks SQLite instead.

Batched writes go through the apply_write_batch() function below, which
runs inside one Postgres transaction, so a chunk lands entirely or not at all.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from job_ingest import config
from job_ingest.errors import CommitError, StoreError
from job_ingest.storage.base import DocumentStore, Where, WriteOp, check_field, check_where

logger = logging.getLogger(__name__)

# DDL to run once in the Supabase SQL editor.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT NOT NULL,
    id          TEXT NOT NULL,
    data        JSONB NOT NULL,
    PRIMARY KEY (collection, id)
);
CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(collection, (data->>'created_at'));
CREATE INDEX IF NOT EXISTS idx_documents_batch   ON documents(collection, (data->>'batch_id'));

CREATE OR REPLACE FUNCTION apply_write_batch(ops JSONB) RETURNS INTEGER
LANGUAGE plpgsql AS $$
DECLARE
    op JSONB;
    n  INTEGER := 0;
BEGIN
    IF jsonb_array_length(ops) > 500 THEN
        RAISE EXCEPTION 'write batch exceeds 500 operations';
    END IF;
    FOR op IN SELECT * FROM jsonb_array_elements(ops) LOOP
        IF op->>'kind' = 'set' THEN
            INSERT INTO documents (collection, id, data)
            VALUES (op->>'collection', op->>'id', op->'data')
            ON CONFLICT (collection, id) DO UPDATE SET data = excluded.data;
        ELSIF op->>'kind' = 'delete' THEN
            DELETE FROM documents WHERE collection = op->>'collection' AND id = op->>'id';
        ELSE
            RAISE EXCEPTION 'unknown op kind %', op->>'kind';
        END IF;
        n := n + 1;
    END LOOP;
    RETURN n;
END;
$$;
"""

_TABLE     = "documents"
_PAGE_SIZE = 1000   # PostgREST default max-rows

_FILTERS = {
    "==": "eq",
    "!=": "neq",
    "<":  "lt",
    "<=": "lte",
    ">":  "gt",
    ">=": "gte",
}


def _filter_value(value: Any) -> str:
    # ->> yields text, so compare as text
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SupabaseStore(DocumentStore):
    NAME = "supabase"

    def __init__(self, client=None):
        self._client = client
        self._available = client is not None
        if client is not None:
            return
        if config.SUPABASE_URL and config.SUPABASE_SERVICE_KEY:
            try:
                from supabase import create_client
                self._client = create_client(
                    config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY
                )
                self._available = True
                logger.info("Supabase connected: %s", config.SUPABASE_URL)
            except Exception as exc:
                logger.warning("Supabase init failed (falling back to SQLite): %s", exc)
        else:
            logger.info("Supabase not configured — using SQLite only")

    @property
    def available(self) -> bool:
        return self._available

    def _table(self):
        if not self._available:
            raise StoreError("Supabase is not available")
        return self._client.table(_TABLE)

    # ── Reads ─────────────────────────────────────────────────────────────────
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            res = self._table().select("id,data").eq("collection", collection).eq("id", doc_id).limit(1).execute()
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Supabase get {collection}/{doc_id} failed: {exc}") from exc
        return self._row_to_dict(res.data[0]) if res.data else None

    def query(
        self,
        collection: str,
        where: Optional[Sequence[Where]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        clauses = check_where(where)
        results: List[Dict[str, Any]] = []
        start = 0
        while True:
            page = _PAGE_SIZE if limit is None else min(_PAGE_SIZE, limit - len(results))
            if page <= 0:
                break
            q = self._table().select("id,data").eq("collection", collection)
            for field_name, op, value in clauses:
                q = getattr(q, _FILTERS[op])(f"data->>{field_name}", _filter_value(value))
            if order_by:
                q = q.order(f"data->>{check_field(order_by)}", desc=descending)
            q = q.order("id", desc=descending)
            try:
                rows = q.range(start, start + page - 1).execute().data or []
            except Exception as exc:
                raise StoreError(f"Supabase query on '{collection}' failed: {exc}") from exc
            results.extend(self._row_to_dict(r) for r in rows)
            if len(rows) < page:
                break
            start += page
        return results

    # ── Single-document writes ────────────────────────────────────────────────
    def create(self, collection: str, doc_id: str, data: Dict[str, Any]):
        try:
            self._table().insert({"collection": collection, "id": doc_id, "data": data}).execute()
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Supabase create {collection}/{doc_id} failed: {exc}") from exc

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        current = self.get(collection, doc_id)
        if current is None:
            raise StoreError(f"Document {collection}/{doc_id} not found")
        current.pop("id")
        current.update(fields)
        try:
            self._table().update({"data": current}).eq("collection", collection).eq("id", doc_id).execute()
        except Exception as exc:
            raise StoreError(f"Supabase update {collection}/{doc_id} failed: {exc}") from exc

    def delete(self, collection: str, doc_id: str):
        try:
            self._table().delete().eq("collection", collection).eq("id", doc_id).execute()
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Supabase delete {collection}/{doc_id} failed: {exc}") from exc

    # ── Batched writes ────────────────────────────────────────────────────────
    def _apply_batch(self, ops: Sequence[WriteOp]):
        if not self._available:
            raise CommitError("Supabase is not available", [op.doc_id for op in ops])
        payload = [self._op_to_row(op) for op in ops]
        try:
            self._client.rpc("apply_write_batch", {"ops": payload}).execute()
            logger.debug("Supabase: applied batch of %d ops", len(payload))
        except Exception as exc:
            raise CommitError(str(exc), [op.doc_id for op in ops]) from exc

    # ── Helpers ───────────────────────────────────────────────────────────────
    @staticmethod
    def _op_to_row(op: WriteOp) -> Dict[str, Any]:
        return {
            "kind":       op.kind,
            "collection": op.collection,
            "id":         op.doc_id,
            "data":       op.data,
        }

    @staticmethod
    def _row_to_dict(row: Dict[str, Any]) -> Dict[str, Any]:
        d = dict(row.get("data") or {})
        d["id"] = row["id"]
        return d
