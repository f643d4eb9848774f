import logging

from job_ingest.storage.base import DocumentStore
from job_ingest.storage.db import Database
from job_ingest.storage.supabase_client import SupabaseStore

logger = logging.getLogger(__name__)


def open_store(db_path: str = None) -> DocumentStore:
    """Supabase when configured and reachable, SQLite otherwise."""
    supabase = SupabaseStore()
    if supabase.available:
        return supabase
    logger.info("Using SQLite store at %s", db_path or "default path")
    return Database(db_path)
