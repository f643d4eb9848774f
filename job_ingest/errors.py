"""
Error taxonomy for the ingestion pipeline.

Fatal:      ConfigurationError — raised before any fetch or write happens.
Non-fatal:  UpstreamFetchError (one query/location pair),
            RecordParseError   (one raw posting),
            CommitError        (one write chunk).
Non-fatal errors are recorded in the run summary and the run continues.
"""

from typing import List, Optional


class IngestError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(IngestError):
    """Missing credentials or invalid run options."""


class UpstreamFetchError(IngestError):
    def __init__(self, query: str, location: str, reason: str):
        self.query = query
        self.location = location
        self.reason = reason
        super().__init__(f'Failed to fetch "{query}" in "{location}": {reason}')


class RecordParseError(IngestError):
    def __init__(self, reason: str, raw_id: Optional[str] = None):
        self.reason = reason
        self.raw_id = raw_id
        label = f" ({raw_id})" if raw_id else ""
        super().__init__(f"Failed to parse job record{label}: {reason}")


class StoreError(IngestError):
    """Read or write failure in the document store."""


class CommitError(StoreError):
    def __init__(self, reason: str, doc_ids: Optional[List[str]] = None, chunk_index: Optional[int] = None):
        self.reason = reason
        self.doc_ids = list(doc_ids or [])
        self.chunk_index = chunk_index
        where = f"chunk {chunk_index + 1}" if chunk_index is not None else "batch"
        super().__init__(f"Commit of {where} ({len(self.doc_ids)} ops) failed: {reason}")
