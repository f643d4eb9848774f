"""
main.py — Entry point for the job ingestion pipeline.

Commands:
  ingest   Fetch Google Jobs results for every (query, location) pair,
           resolve duplicates and write survivors (once per day unless --force)
  migrate  Move the staging collection (batch_jobs) into jobs, draining it
  dedupe   Remove duplicates already in the jobs collection
  sweep    dedupe, then migrate

Run once : python -m job_ingest.main ingest
Schedule : cron / GitHub Actions, once a day
"""

import argparse
import json
import logging
import os
import sys
import time
from typing import List, Optional

from job_ingest import config
from job_ingest.config import RunConfig
from job_ingest.engine.ingest import BatchIngestionController
from job_ingest.engine.sweep import MigrationSweep
from job_ingest.errors import ConfigurationError
from job_ingest.models.run import RunSummary, SweepSummary
from job_ingest.scrapers.serpapi import SerpApiScraper
from job_ingest.storage import open_store

logger = logging.getLogger("main")


# ── Logging ────────────────────────────────────────────────────────────────────
def setup_logging(log_dir: Optional[str] = None):
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(
                os.path.join(log_dir or os.path.dirname(__file__), "job_ingest.log"),
                encoding="utf-8",
            ),
        ],
    )


# ── CLI ────────────────────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job_ingest", description="Job ingestion and duplicate resolution")
    parser.add_argument("command", choices=["ingest", "migrate", "dedupe", "sweep"])
    parser.add_argument("--dry-run", action="store_true", help="run every decision, write nothing")
    parser.add_argument("--force", action="store_true", help="ignore today's batch_runs record")
    parser.add_argument("--query", action="append", dest="queries", metavar="Q",
                        help="search query (repeatable; default: built-in list)")
    parser.add_argument("--location", action="append", dest="locations", metavar="LOC",
                        help="search location (repeatable; default: built-in list)")
    parser.add_argument("--max-per-query", type=int, default=config.MAX_JOBS_PER_QUERY)
    parser.add_argument("--threshold", type=int, default=config.SIMILARITY_THRESHOLD,
                        help="similarity threshold 0-100")
    parser.add_argument("--chunk-size", type=int, default=config.WRITE_CHUNK_SIZE,
                        help="operations per commit (max %d)" % config.MAX_BATCH_OPS)
    parser.add_argument("--staging", action="store_true",
                        help="ingest into batch_jobs instead of jobs")
    parser.add_argument("--json", action="store_true", help="print the summary as JSON")
    return parser


def run_config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        queries=args.queries or list(config.SEARCH_QUERIES),
        locations=args.locations or list(config.SEARCH_LOCATIONS),
        max_jobs_per_query=args.max_per_query,
        similarity_threshold=args.threshold,
        dry_run=args.dry_run,
        force_run=args.force,
        write_chunk_size=args.chunk_size,
        target_collection=config.STAGING_COLLECTION if args.staging else config.JOBS_COLLECTION,
    ).validate()


# ── Summaries ──────────────────────────────────────────────────────────────────
def print_run_summary(summary: RunSummary, elapsed: float):
    print(f"\n{'='*65}")
    print(f"  BATCH {summary.batch_id}{'  (DRY RUN)' if summary.dry_run else ''}")
    print(f"{'='*65}")
    if summary.skipped:
        prior = summary.prior_run
        print(f"  Already ran today (completed {prior.completed_at:%Y-%m-%d %H:%M:%S} UTC).")
        print(f"  {'New jobs (prior run)':<24} {prior.new_jobs:>6}")
        print("  Use --force to run again.")
    else:
        print(f"  {'Queries processed':<24} {summary.queries_processed:>6}")
        print(f"  {'Total fetched':<24} {summary.total_jobs:>6}")
        print(f"  {'New':<24} {summary.new_jobs:>6}")
        print(f"  {'Exact duplicates':<24} {summary.exact_duplicates:>6}")
        print(f"  {'Similar duplicates':<24} {summary.similar_duplicates:>6}")
        print(f"  {'Persisted':<24} {summary.persisted:>6}")
        print(f"  {'Chunks committed':<24} {summary.chunks_committed:>6}")
        print(f"  {'Errors':<24} {len(summary.errors):>6}")
        for err in summary.errors[:10]:
            print(f"    - {err[:90]}")
    print(f"{'='*65}")
    print(f"  Completed in {elapsed:.1f}s")
    print(f"{'='*65}\n")


def print_sweep_summary(summaries: List[SweepSummary], elapsed: float):
    print(f"\n{'='*65}")
    print("  SWEEP SUMMARY")
    print(f"{'='*65}")
    print(f"  {'Pass':<14} {'Seen':>6} {'Dups':>6} {'Migrated':>9} {'Removed':>8} {'Errors':>7}")
    print(f"  {'-'*14} {'-'*6} {'-'*6} {'-'*9} {'-'*8} {'-'*7}")
    for s in summaries:
        print(f"  {s.kind:<14} {s.processed:>6} {s.duplicates:>6} {s.migrated:>9} {s.removed:>8} {len(s.errors):>7}")
    print(f"{'='*65}")
    print(f"  Completed in {elapsed:.1f}s")
    print(f"{'='*65}\n")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    t0 = time.time()

    try:
        cfg = run_config_from_args(args)
        if args.command == "ingest":
            source = SerpApiScraper(delay=cfg.request_delay)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    store = open_store()
    try:
        if args.command == "ingest":
            summary = BatchIngestionController(store, source, cfg).run()
            if args.json:
                print(summary.model_dump_json(indent=2))
            else:
                print_run_summary(summary, time.time() - t0)
            return 0

        sweep = MigrationSweep(store, cfg.similarity_threshold, cfg.write_chunk_size, cfg.dry_run)
        if args.command == "migrate":
            results = [sweep.migrate_staging()]
        elif args.command == "dedupe":
            results = [sweep.cleanup_canonical()]
        else:
            results = sweep.run()
        if args.json:
            print(json.dumps([r.model_dump() for r in results], indent=2))
        else:
            print_sweep_summary(results, time.time() - t0)
        return 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
