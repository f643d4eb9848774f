"""
Job posting record — one advertisement as it flows from the upstream source
into the staging and canonical collections.

Defaulting happens here, once, at model validation. Everything downstream
(normalizer, similarity, resolver) can rely on string fields being strings and
timestamps being timezone-aware UTC datetimes.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from job_ingest import config
from job_ingest.engine.signature import generate_job_signature

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_ID_UNSAFE = re.compile(r"[^a-zA-Z0-9-]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC ISO-8601 so that string order equals time order."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def make_document_id(title: str, company: str, location: str) -> str:
    """Deterministic fallback id for postings without a source-assigned one."""
    raw = f"{title}-{company}-{location}"
    return _ID_UNSAFE.sub("-", raw).lower()


class JobPosting(BaseModel):
    """A single job posting."""

    model_config = ConfigDict(extra="ignore", validate_assignment=False)

    id: str = Field(default="", description="Document id in the store")
    source_job_id: Optional[str] = Field(default=None, description="Stable id assigned by the upstream source")
    title: str = Field(description="Job title")
    company: str = Field(default="", description="Company name")
    location: str = Field(default="", description="Job location as reported by the source")
    description: str = Field(default="")
    salary: Optional[str] = Field(default=None, description="Raw salary text")
    posted_at: Optional[str] = Field(default=None, description="Raw posting age, e.g. '3 days ago'")
    posted_date: Optional[datetime] = None
    apply_url: str = Field(default="")
    source: str = Field(default=config.SOURCE_NAME)
    batch_id: Optional[str] = None
    search_query: Optional[str] = None
    search_location: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    signature: str = Field(default="", description="Content fingerprint, derived if empty")
    is_available: bool = True

    # Enrichment
    qualifications: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    experience_level: Optional[str] = None
    job_type: Optional[str] = None
    work_arrangement: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_type: Optional[str] = None
    search_keywords: List[str] = Field(default_factory=list)
    skill_tags: List[str] = Field(default_factory=list)
    company_size: Optional[str] = None
    freshness: Optional[str] = None
    migrated_at: Optional[datetime] = None

    # ── Validation ────────────────────────────────────────────────────────────
    @field_validator("title", mode="before")
    @classmethod
    def _require_title(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("title is required")
        return text

    @field_validator("company", "location", "description", "apply_url", mode="before")
    @classmethod
    def _blank_if_missing(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("source_job_id", mode="before")
    @classmethod
    def _empty_id_is_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("posted_date", "migrated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: Any) -> datetime:
        return parse_timestamp(value) or utcnow()

    @model_validator(mode="after")
    def _derive_identity(self) -> "JobPosting":
        if not self.signature:
            self.signature = generate_job_signature(self.title, self.company, self.location)
        if not self.id:
            self.id = self.source_job_id or make_document_id(self.title, self.company, self.location)
        return self

    # ── Serialization ─────────────────────────────────────────────────────────
    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        for key in ("created_at", "posted_date", "migrated_at"):
            doc[key] = format_timestamp(doc[key])
        return doc

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "JobPosting":
        return cls.model_validate({**data, "id": doc_id})

    @property
    def has_source_id(self) -> bool:
        return bool(self.source_job_id)
