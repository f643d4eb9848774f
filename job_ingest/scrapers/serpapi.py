"""
SerpAPI Google Jobs scraper.
Requires SERPAPI_KEY (https://serpapi.com).
Docs: https://serpapi.com/google-jobs-api
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from job_ingest import config
from job_ingest.errors import ConfigurationError, RecordParseError, UpstreamFetchError
from job_ingest.models.job import JobPosting, utcnow
from job_ingest.scrapers.base import BaseAPIScraper, parse_relative_date

logger = logging.getLogger(__name__)

# SerpAPI answers an empty search with an "error" field; it is not a failure
_NO_RESULTS = "hasn't returned any results"


def search_location(location: str) -> str:
    """'Anywhere' is not a place Google Jobs understands."""
    return "United States" if location.strip().lower() == "anywhere" else location


def _highlights(raw: Dict[str, Any], heading: str) -> List[str]:
    for block in raw.get("job_highlights") or []:
        if (block.get("title") or "").strip().lower() == heading:
            return [str(item) for item in block.get("items") or []]
    return []


class SerpApiScraper(BaseAPIScraper):
    SOURCE = config.SOURCE_NAME

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        self.api_key = api_key if api_key is not None else config.SERPAPI_KEY
        if not self.api_key:
            raise ConfigurationError("SERPAPI_KEY is not set")
        super().__init__(**kwargs)

    def fetch(self, query: str, location: str, limit: int = config.MAX_JOBS_PER_QUERY) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "engine":   config.SERPAPI_ENGINE,
            "q":        query,
            "location": search_location(location),
            "hl":       "en",
            "gl":       "us",
            "api_key":  self.api_key,
        }
        results: List[Dict[str, Any]] = []
        while len(results) < limit:
            try:
                data = self._get_json(config.SERPAPI_URL, dict(params))
            except (requests.RequestException, ValueError) as exc:
                raise UpstreamFetchError(query, location, str(exc)) from exc

            if not isinstance(data, dict):
                raise UpstreamFetchError(query, location, "unexpected response shape")
            error = data.get("error")
            if error:
                if _NO_RESULTS in str(error):
                    break
                raise UpstreamFetchError(query, location, str(error))

            page       = data.get("jobs_results") or []
            pagination = data.get("serpapi_pagination") or {}
            if not isinstance(page, list) or not isinstance(pagination, dict):
                raise UpstreamFetchError(query, location, "unexpected response shape")
            results.extend(page)
            token = pagination.get("next_page_token")
            if not page or not token:
                break
            params["next_page_token"] = token

        logger.info("%s: %d results for '%s' in '%s'", self.SOURCE, len(results[:limit]), query, location)
        return results[:limit]

    def to_posting(self, raw: Dict[str, Any], **context: Any) -> JobPosting:
        if not isinstance(raw, dict):
            raise RecordParseError(f"expected an object, got {type(raw).__name__}")
        now = context.get("now") or utcnow()
        try:
            ext     = raw.get("detected_extensions") or {}
            options = raw.get("apply_options") or []
            posted  = ext.get("posted_at") or raw.get("posted_at") or ""
            return JobPosting(
                source_job_id    = raw.get("job_id"),
                title            = raw.get("title"),
                company          = raw.get("company_name") or raw.get("company"),
                location         = raw.get("location"),
                description      = raw.get("description") or raw.get("snippet"),
                salary           = raw.get("salary") or ext.get("salary") or None,
                posted_at        = posted or None,
                posted_date      = parse_relative_date(posted, now),
                apply_url        = (options[0].get("link") if options else None) or raw.get("apply_link") or raw.get("link"),
                source           = self.SOURCE,
                qualifications   = _highlights(raw, "qualifications"),
                responsibilities = _highlights(raw, "responsibilities"),
                benefits         = _highlights(raw, "benefits"),
                batch_id         = context.get("batch_id"),
                search_query     = context.get("search_query"),
                search_location  = context.get("search_location"),
                created_at       = now,
            )
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or "record"
            raise RecordParseError(f"{field}: {first['msg']}", raw.get("job_id")) from exc
        except AttributeError as exc:
            raise RecordParseError(f"malformed field: {exc}", raw.get("job_id")) from exc
