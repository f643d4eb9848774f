"""
Normalizer — canonical forms for title, company and location.

Everything here is pure and memoized; the signature generator and the
similarity scorer call these on every comparison.
"""

import re
from functools import lru_cache
from typing import List, Optional

REMOTE = "Remote"

# ── Company ────────────────────────────────────────────────────────────────────
LEGAL_SUFFIXES = {
    "inc", "incorporated", "corp", "corporation", "co", "company",
    "ltd", "limited", "llc", "llp", "lp", "plc", "pllc", "pc",
    "gmbh", "ag", "sa", "bv", "nv", "pty", "srl",
}

COMPANY_ABBREVIATIONS = {
    "intl":  "international",
    "natl":  "national",
    "mfg":   "manufacturing",
    "svcs":  "services",
    "svc":   "service",
    "mgmt":  "management",
    "univ":  "university",
    "hosp":  "hospital",
    "med":   "medical",
    "ctr":   "center",
    "assoc": "associates",
    "bros":  "brothers",
    "dept":  "department",
}

# ── Title ──────────────────────────────────────────────────────────────────────
TITLE_LEVEL_TOKENS = {
    "senior", "sr", "junior", "jr", "staff", "lead", "principal",
    "i", "ii", "iii", "iv", "v",
    "1", "2", "3", "4", "5",
}
_TITLE_LEVEL_PHRASES = re.compile(r"\b(entry|mid)[\s-]+level\b")
_PARENTHETICAL       = re.compile(r"\([^)]*\)")

# ── Location ───────────────────────────────────────────────────────────────────
_REMOTE_PATTERN   = re.compile(r"\b(remote|anywhere|work from home|wfh)\b", re.IGNORECASE)
_AREA_DESCRIPTORS = re.compile(r"\b(greater|metro|metropolitan|area|region|downtown)\b", re.IGNORECASE)
_NULLISH          = {"", "undefined", "null", "none"}
_COUNTRY_TOKENS   = {"united states", "united states of america", "usa", "us", "u.s.", "u.s.a."}

CITY_CORRECTIONS = {
    # Seattle
    "seatle": "Seattle", "seattel": "Seattle", "seatlle": "Seattle", "seattle": "Seattle",
    # San Francisco
    "sanfrancisco": "San Francisco", "san fran": "San Francisco", "sf": "San Francisco",
    "sanfran": "San Francisco", "sanfranciso": "San Francisco", "san francisco": "San Francisco",
    # Los Angeles
    "losangeles": "Los Angeles", "los angles": "Los Angeles", "la": "Los Angeles",
    "losangles": "Los Angeles",
    # New York
    "newyork": "New York", "new york city": "New York", "nyc": "New York",
    "ny": "New York", "newyrok": "New York",
    # Chicago
    "chicago": "Chicago", "chicgo": "Chicago", "chigaco": "Chicago",
    # Austin
    "austin": "Austin", "austine": "Austin", "austn": "Austin",
    # Boston
    "boston": "Boston", "bosotn": "Boston", "bostno": "Boston",
    # Denver
    "denver": "Denver", "dener": "Denver", "denvor": "Denver",
    # Dallas
    "dallas": "Dallas", "dalas": "Dallas", "dalls": "Dallas",
    # Houston
    "houston": "Houston", "houstan": "Houston", "huston": "Houston",
    # Phoenix
    "phoenix": "Phoenix", "pheonix": "Phoenix", "phenix": "Phoenix",
    # Philadelphia
    "philadelphia": "Philadelphia", "philly": "Philadelphia",
    "philadephia": "Philadelphia", "philadelfia": "Philadelphia",
    # San Diego
    "sandiego": "San Diego", "san deigo": "San Diego", "sandeigo": "San Diego",
    # San Jose
    "sanjose": "San Jose", "san hose": "San Jose", "sanhose": "San Jose",
    # Portland
    "portland": "Portland", "portlnd": "Portland", "protland": "Portland",
    # Miami
    "miami": "Miami", "maimi": "Miami", "mimai": "Miami",
    # Atlanta
    "atlanta": "Atlanta", "altanta": "Atlanta", "atalanta": "Atlanta",
    # Washington DC
    "washington dc": "Washington DC", "washington d.c.": "Washington DC",
    "dc": "Washington DC", "washingtondc": "Washington DC",
}

STATE_MAPPINGS = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC",
    # misspellings
    "washignton": "WA", "washingtion": "WA", "californa": "CA", "califronia": "CA",
    "texes": "TX", "flordia": "FL", "gorgia": "GA", "virgina": "VA",
    "pensylvania": "PA", "massachusets": "MA", "conneticut": "CT", "minesota": "MN",
    "misouri": "MO", "tenessee": "TN", "wisconson": "WI", "michagan": "MI",
}
STATE_CODES = set(STATE_MAPPINGS.values())


def _collapse(text: str) -> str:
    return " ".join(text.split())


# ── Company ────────────────────────────────────────────────────────────────────
@lru_cache(maxsize=4096)
def normalize_company_name(name: Optional[str]) -> str:
    """
    "Tech Solutions Inc." and "tech solutions inc" → "tech solutions".
    Legal suffixes are only removed from the end so that names such as
    "Company Name Co Op" keep their interior words.
    """
    if not name:
        return ""
    text = name.lower().strip().replace("&", " and ")
    text = re.sub(r"[^\w\s]", " ", text)
    tokens = [COMPANY_ABBREVIATIONS.get(t, t) for t in text.split()]

    stripped = list(tokens)
    while stripped and stripped[-1] in LEGAL_SUFFIXES:
        stripped.pop()
    # A company literally called "Company Inc" keeps its name
    return " ".join(stripped or tokens)


# ── Title ──────────────────────────────────────────────────────────────────────
@lru_cache(maxsize=4096)
def normalize_job_title(title: Optional[str]) -> str:
    """'Senior Software Engineer II (Remote)' → 'software engineer'."""
    if not title:
        return ""
    text = _PARENTHETICAL.sub(" ", title.lower())
    text = re.sub(r"[^\w\s-]", " ", text)
    text = _TITLE_LEVEL_PHRASES.sub(" ", text)

    tokens = [t for t in text.split() if t.strip("-")]
    kept   = [t for t in tokens if t not in TITLE_LEVEL_TOKENS]
    return " ".join(kept or tokens)


# ── Location ───────────────────────────────────────────────────────────────────
def is_anywhere_location(location: Optional[str]) -> bool:
    if location is None:
        return True
    text = location.strip()
    return text.lower() in _NULLISH or bool(_REMOTE_PATTERN.search(text))


def _capitalize_segment(segment: str) -> str:
    words = []
    for word in segment.split():
        if re.fullmatch(r"[A-Z]{2}", word):
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)


def _state_code(state: str) -> str:
    if state.upper() in STATE_CODES and len(state) == 2:
        return state.upper()
    return STATE_MAPPINGS.get(state.lower(), state)


def _strip_area(segment: str) -> str:
    stripped = _collapse(_AREA_DESCRIPTORS.sub(" ", segment))
    return stripped or segment


@lru_cache(maxsize=4096)
def normalize_location(location: Optional[str]) -> str:
    """
    Canonical "City, ST" form.

    Order: remote/empty → "Remote"; whole-string city correction; trailing
    country dropped; single segment resolved as city, state name or state
    code; otherwise city correction plus state mapping on the first two
    segments; finally per-word capitalization keeping two-letter codes.
    """
    if is_anywhere_location(location):
        return REMOTE

    text = _collapse(location.strip())
    if text.lower() in CITY_CORRECTIONS:
        return CITY_CORRECTIONS[text.lower()]

    parts: List[str] = [p.strip() for p in text.split(",") if p.strip()]
    while len(parts) > 1 and parts[-1].lower() in _COUNTRY_TOKENS:
        parts.pop()
    parts = [_strip_area(p) for p in parts]
    if not parts:
        # Only separators, e.g. " , "
        return REMOTE

    if len(parts) == 1:
        single = parts[0]
        lower  = single.lower()
        if lower in CITY_CORRECTIONS:
            return CITY_CORRECTIONS[lower]
        if lower in STATE_MAPPINGS:
            return STATE_MAPPINGS[lower]
        if len(single) == 2 and single.upper() in STATE_CODES:
            return single.upper()
        return _capitalize_segment(single)

    city, state = parts[0], parts[1]
    city  = CITY_CORRECTIONS.get(city.lower(), city)
    state = _state_code(state)
    return ", ".join(_capitalize_segment(p) for p in (city, state))
