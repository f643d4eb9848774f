"""
Metadata enrichment — derives experience level, job type, work arrangement,
salary range, company size, freshness and keyword tags from a posting's
free text and dates.
"""

import re
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from job_ingest.models.job import JobPosting, utcnow

# ── Keyword tables ─────────────────────────────────────────────────────────────
TECH_KEYWORDS = [
    "javascript", "typescript", "python", "java", "go", "rust", "c++", "c#",
    "react", "vue", "angular", "node", "express", "django", "flask",
    "aws", "azure", "gcp", "docker", "kubernetes", "terraform",
    "sql", "postgresql", "mysql", "mongodb", "redis",
    "graphql", "rest", "api", "microservices",
    "machine learning", "artificial intelligence", "data science",
    "devops", "ci/cd", "jenkins", "github actions",
]

SKILL_LANGUAGES = [
    "javascript", "typescript", "python", "java", "go", "rust", "c++", "c#",
    "php", "ruby", "swift", "kotlin", "scala", "r", "matlab",
]
SKILL_FRAMEWORKS = [
    "react", "vue", "angular", "svelte", "next.js", "nuxt",
    "django", "flask", "fastapi", "spring", "express", "nest.js",
]
SKILL_TOOLS = [
    "git", "docker", "kubernetes", "terraform", "jenkins",
    "aws", "azure", "gcp", "firebase", "supabase",
]

LARGE_COMPANIES = [
    "google", "microsoft", "amazon", "apple", "facebook", "meta",
    "netflix", "uber", "lyft", "airbnb", "spotify", "twitter",
    "linkedin", "salesforce", "oracle", "ibm", "cisco", "intel",
    "nvidia", "adobe", "paypal", "square", "stripe", "shopify",
]

# ── Patterns ───────────────────────────────────────────────────────────────────
_EXECUTIVE = re.compile(r"\b(cto|ceo|vp|vice president|director|head of)\b")
_LEAD      = re.compile(r"\b(lead|principal|staff|architect|senior manager)\b")
_SENIOR    = re.compile(r"\b(senior|sr)\b")
_ENTRY     = re.compile(r"\b(junior|jr|entry|intern|graduate|new grad|associate)\b")
_YEARS     = re.compile(r"(\d+)\+?\s*years?\s*(?:of\s*)?experience", re.IGNORECASE)

_INTERNSHIP = re.compile(r"\b(intern|internship)\b")
_CONTRACT   = re.compile(r"\b(contract|contractor|freelance|temporary|temp|consultant)\b")
_PART_TIME  = re.compile(r"\bpart[\s-]?time\b")

_REMOTE = re.compile(r"\b(remote|anywhere|work from home|wfh|distributed)\b")
_HYBRID = re.compile(r"\b(hybrid|flexible)\b")

_MONEY  = r"\$\s?(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s?(k)?"
_PER    = r"(?:\s?/\s?(?:hour|hr|year|yr))?"
_RANGE  = re.compile(_MONEY + _PER + r"\s*(?:-|–|to)\s*" + _MONEY)
_UP_TO  = re.compile(r"up to\s+" + _MONEY)
_FROM   = re.compile(r"(?:starting (?:at|from)|from)\s+" + _MONEY)
_HOURLY = re.compile(r"(/\s?(hour|hr)\b|per hour|an hour|hourly)")

_ENTERPRISE = re.compile(r"\b(fortune 500|enterprise|multinational|global)\b")
_STARTUP    = re.compile(r"\b(startup|start-up|early[\s-]stage|seed|series a)\b")
_HEADCOUNT  = re.compile(r"(\d[\d,]*)\+?\s*(?:employees|people|team members)")

NEW_WINDOW    = timedelta(hours=24)
RECENT_WINDOW = timedelta(days=7)


def _contains(text: str, keyword: str) -> bool:
    # Word-ish boundaries that still work for "c++", "c#", "ci/cd", "next.js"
    return re.search(r"(?<![\w])" + re.escape(keyword) + r"(?![\w+#])", text) is not None


def _amount(number: str, k: Optional[str]) -> int:
    value = float(number.replace(",", ""))
    return int(value * 1000) if k else int(value)


# ── Extractors ─────────────────────────────────────────────────────────────────
def extract_salary_info(salary_text: Optional[str], description: str = "") -> Tuple[Optional[int], Optional[int], Optional[str]]:
    """(salary_min, salary_max, salary_type) from the salary text, else the description."""
    for source in (salary_text or "", description or ""):
        text = source.lower()
        if not text:
            continue
        low = high = None
        m = _RANGE.search(text)
        if m:
            low, high = _amount(m.group(1), m.group(2)), _amount(m.group(3), m.group(4) or m.group(2))
        elif _UP_TO.search(text):
            m = _UP_TO.search(text)
            high = _amount(m.group(1), m.group(2))
        elif _FROM.search(text):
            m = _FROM.search(text)
            low = _amount(m.group(1), m.group(2))
        else:
            continue
        salary_type = "hourly" if _HOURLY.search(text) else "annual"
        return low, high, salary_type
    return None, None, None


def extract_experience_level(title: str, description: str = "") -> str:
    text = f"{title} {description or ''}".lower()
    if _EXECUTIVE.search(text):
        return "executive"
    if _LEAD.search(text):
        return "lead"
    if _SENIOR.search(text):
        return "senior"
    if _ENTRY.search(text):
        return "entry"
    m = _YEARS.search(description or "")
    if m:
        years = int(m.group(1))
        if years >= 8:
            return "lead"
        if years >= 5:
            return "senior"
        if years >= 2:
            return "mid"
        return "entry"
    return "mid"


def extract_job_type(title: str, description: str = "") -> str:
    text = f"{title} {description or ''}".lower()
    if _INTERNSHIP.search(text):
        return "internship"
    if _CONTRACT.search(text):
        return "contract"
    if _PART_TIME.search(text):
        return "part-time"
    return "full-time"


def extract_work_arrangement(location: str, description: str = "") -> str:
    text = f"{location or ''} {description or ''}".lower()
    if _REMOTE.search(text):
        return "remote"
    if _HYBRID.search(text):
        return "hybrid"
    return "on-site"


def extract_search_keywords(title: str, description: str = "") -> List[str]:
    text = f"{title} {description or ''}".lower()
    return [k for k in TECH_KEYWORDS if _contains(text, k)]


def extract_skill_tags(description: str) -> List[str]:
    text = (description or "").lower()
    seen: List[str] = []
    for skill in SKILL_LANGUAGES + SKILL_FRAMEWORKS + SKILL_TOOLS:
        if skill not in seen and _contains(text, skill):
            seen.append(skill)
    return seen


def extract_company_size(company: str, description: str = "") -> str:
    """startup | small | medium | large | enterprise. Defaults to medium."""
    if any(_contains((company or "").lower(), name) for name in LARGE_COMPANIES):
        return "large"
    text = f"{company or ''} {description or ''}".lower()
    if not description:
        return "medium"
    if _ENTERPRISE.search(text):
        return "enterprise"
    if _STARTUP.search(text):
        return "startup"
    m = _HEADCOUNT.search(text)
    if m:
        count = int(m.group(1).replace(",", ""))
        if count >= 10000:
            return "enterprise"
        if count >= 1000:
            return "large"
        if count >= 100:
            return "medium"
        if count >= 10:
            return "small"
        return "startup"
    return "medium"


def calculate_job_freshness(posted_date: Optional[datetime], now: Optional[datetime] = None) -> str:
    """new (≤ 24h) | recent (≤ 7 days) | older. Unknown dates are older."""
    if posted_date is None:
        return "older"
    age = (now or utcnow()) - posted_date
    if age <= NEW_WINDOW:
        return "new"
    if age <= RECENT_WINDOW:
        return "recent"
    return "older"


def enrich_posting(posting: JobPosting) -> JobPosting:
    """Fill derived metadata in place. Fields the source already set are kept."""
    low, high, salary_type = extract_salary_info(posting.salary, posting.description)
    if posting.salary_min is None and posting.salary_max is None:
        posting.salary_min, posting.salary_max = low, high
        posting.salary_type = posting.salary_type or salary_type

    posting.experience_level = posting.experience_level or extract_experience_level(posting.title, posting.description)
    posting.job_type         = posting.job_type or extract_job_type(posting.title, posting.description)
    posting.work_arrangement = posting.work_arrangement or extract_work_arrangement(posting.location, posting.description)
    posting.search_keywords  = posting.search_keywords or extract_search_keywords(posting.title, posting.description)
    posting.skill_tags       = posting.skill_tags or extract_skill_tags(posting.description)
    posting.company_size     = posting.company_size or extract_company_size(posting.company, posting.description)
    # Age is measured at ingestion time, not at read time
    posting.freshness        = posting.freshness or calculate_job_freshness(posting.posted_date, posting.created_at)
    return posting
