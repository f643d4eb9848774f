"""
Base scraper classes — shared HTTP session, pacing and parsing helpers
for upstream job-search sources.
"""

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from fake_useragent import UserAgent
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from job_ingest import config
from job_ingest.models.job import JobPosting

logger = logging.getLogger(__name__)
_ua = UserAgent()


def pace(seconds: float = config.REQUEST_DELAY):
    """Fixed politeness delay between successive upstream calls."""
    if seconds > 0:
        time.sleep(seconds)


def parse_relative_date(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """'3 days ago' → now - 3 days. None when the text carries no age."""
    now = now or datetime.now(timezone.utc)
    if not text:
        return None
    t = text.lower()
    if any(w in t for w in ("just", "now", "today", "moment")):
        return now
    if "yesterday" in t:
        return now - timedelta(days=1)
    m = re.search(r"(\d+)\+?\s*(second|sec|minute|min|hour|hr|day|week|month|year|s|m|h|d|w)", t)
    if not m:
        return None
    n, unit = int(m.group(1)), m.group(2)
    if unit.startswith("s"):
        return now - timedelta(seconds=n)
    if unit.startswith("min") or unit == "m":
        return now - timedelta(minutes=n)
    if unit.startswith("mon"):
        return now - timedelta(days=n * 30)
    if unit.startswith("h"):
        return now - timedelta(hours=n)
    if unit.startswith("d"):
        return now - timedelta(days=n)
    if unit.startswith("w"):
        return now - timedelta(weeks=n)
    if unit.startswith("y"):
        return now - timedelta(days=n * 365)
    return None


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "User-Agent": _ua.random,
        "Accept":     "application/json",
    })
    # Transport-level retries only; the pipeline itself never retries a pair
    retry = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset(["GET"]),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class BaseAPIScraper:
    """Base for upstream sources that answer a (query, location) search with JSON."""
    SOURCE = ""

    def __init__(self, session: Optional[requests.Session] = None, delay: float = config.REQUEST_DELAY):
        self._session = session or build_session()
        self.delay = delay
        self.calls = 0

    def fetch(self, query: str, location: str, limit: int = config.MAX_JOBS_PER_QUERY) -> List[Dict[str, Any]]:
        """Raw result dicts for one pair. Raises UpstreamFetchError."""
        raise NotImplementedError

    def to_posting(self, raw: Dict[str, Any], **context: Any) -> JobPosting:
        """Map one raw result to a JobPosting. Raises RecordParseError."""
        raise NotImplementedError

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        # Pace before every call except the first one this scraper makes
        if self.calls:
            pace(self.delay)
        self.calls += 1
        r = self._session.get(url, params=params, timeout=config.REQUEST_TIMEOUT)
        r.raise_for_status()
        return r.json()
