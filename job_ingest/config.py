"""
Central configuration for the job ingestion pipeline.
All user-facing settings live here.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from job_ingest.errors import ConfigurationError

load_dotenv()

# ── Search Queries ─────────────────────────────────────────────────────────────
SEARCH_QUERIES: List[str] = [
    # Software Engineering
    "software engineer",
    "senior software engineer",
    "full stack engineer",
    "frontend engineer",
    "backend engineer",
    "software developer",
    # AI / ML
    "machine learning engineer",
    "data scientist",
    "ai engineer",
    "ml engineer",
    "mlops engineer",
    "data engineer",
    # DevOps & Cloud
    "devops engineer",
    "cloud engineer",
    "site reliability engineer",
    "platform engineer",
    "kubernetes engineer",
    # Product & Design
    "product manager",
    "senior product manager",
    "product designer",
    "ux designer",
    "ui designer",
    # Leadership
    "engineering manager",
    "technical lead",
    "staff engineer",
    "principal engineer",
    # Other
    "security engineer",
    "mobile developer",
    "ios developer",
    "android developer",
]

SEARCH_LOCATIONS: List[str] = [
    "Anywhere",
    "United States",
    "Seattle, Washington, United States",
    "San Francisco, California, United States",
    "New York, New York, United States",
    "Austin, Texas, United States",
    "Boston, Massachusetts, United States",
    "Los Angeles, California, United States",
    "Chicago, Illinois, United States",
    "Denver, Colorado, United States",
    "Washington, District of Columbia, United States",
    "Atlanta, Georgia, United States",
]

# Upstream call volume caps (queries × locations per run)
MAX_QUERIES         = 20
MAX_LOCATIONS       = 6
MAX_JOBS_PER_QUERY  = 50

# ── Dedup ──────────────────────────────────────────────────────────────────────
SIMILARITY_THRESHOLD = 85    # 0–100, at or above = near duplicate
INDEX_LOOKBACK_DAYS  = 7     # canonical postings seeded into the run index

# ── Batching ───────────────────────────────────────────────────────────────────
BATCH_TIMEZONE    = os.getenv("BATCH_TIMEZONE", "America/Los_Angeles")
MAX_BATCH_OPS     = 500      # store's hard per-commit operation ceiling
WRITE_CHUNK_SIZE  = 500

# ── Collections ────────────────────────────────────────────────────────────────
JOBS_COLLECTION               = "jobs"
STAGING_COLLECTION            = "batch_jobs"
BATCH_RUNS_COLLECTION         = "batch_runs"
MIGRATION_RUNS_COLLECTION     = "migration_runs"
DEDUPLICATION_RUNS_COLLECTION = "deduplication_runs"

# ── SerpAPI (Google Jobs) ──────────────────────────────────────────────────────
SERPAPI_KEY       = os.getenv("SERPAPI_KEY", "")
SERPAPI_URL       = "https://serpapi.com/search.json"
SERPAPI_ENGINE    = "google_jobs"
SERPAPI_PAGE_SIZE = 10       # google_jobs returns 10 results per page
REQUEST_TIMEOUT   = 20       # seconds
SOURCE_NAME       = "Google Jobs"

# ── Supabase ───────────────────────────────────────────────────────────────────
SUPABASE_URL         = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")

# ── Database (SQLite fallback when Supabase not configured) ────────────────────
DB_PATH = os.getenv("JOB_INGEST_DB_PATH", os.path.join(os.path.dirname(__file__), "jobs.db"))

# ── Scraper Behaviour ──────────────────────────────────────────────────────────
REQUEST_DELAY = 1.0   # fixed seconds between successive upstream calls

# ── Logging ────────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass
class RunConfig:
    """Options for one ingestion run. Defaults come from the module constants."""

    queries: List[str] = field(default_factory=lambda: list(SEARCH_QUERIES))
    locations: List[str] = field(default_factory=lambda: list(SEARCH_LOCATIONS))
    max_jobs_per_query: int = MAX_JOBS_PER_QUERY
    similarity_threshold: int = SIMILARITY_THRESHOLD
    dry_run: bool = False
    force_run: bool = False
    write_chunk_size: int = WRITE_CHUNK_SIZE
    request_delay: float = REQUEST_DELAY
    target_collection: str = JOBS_COLLECTION
    max_queries: int = MAX_QUERIES
    max_locations: int = MAX_LOCATIONS

    def validate(self) -> "RunConfig":
        if not self.queries:
            raise ConfigurationError("At least one search query is required")
        if not self.locations:
            raise ConfigurationError("At least one search location is required")
        if not 0 <= self.similarity_threshold <= 100:
            raise ConfigurationError(
                f"similarity_threshold must be within 0-100, got {self.similarity_threshold}"
            )
        if not 1 <= self.write_chunk_size <= MAX_BATCH_OPS:
            raise ConfigurationError(
                f"write_chunk_size must be within 1-{MAX_BATCH_OPS}, got {self.write_chunk_size}"
            )
        if self.max_jobs_per_query < 1:
            raise ConfigurationError("max_jobs_per_query must be >= 1")
        if self.request_delay < 0:
            raise ConfigurationError("request_delay cannot be negative")
        return self

    def planned_pairs(self) -> List[tuple]:
        """(query, location) pairs this run will fetch, after the volume caps."""
        return [
            (query, location)
            for query in self.queries[: self.max_queries]
            for location in self.locations[: self.max_locations]
        ]
