"""
Raw posting -> canonical Posting.

Everything here is pure: the same RawPosting, Employer and `now` always give
the same Posting, and the identity key never depends on `now`.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime
from typing import Any

from .models import Employer, EmploymentType, Posting, PostingStatus, RawPosting, Seniority
from .utils import parse_iso, utcnow

DEFAULT_DEPARTMENT = "Engineering"
DEFAULT_LOCATION = "Remote"

_WS_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[\W_]+")
_CITY_STATE_RE = re.compile(r"([^,]+),\s*([A-Za-z]{2})\b")
_SALARY_RANGE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(k?)\s*[-–—]\s*(\d+(?:\.\d+)?)\s*(k?)", re.IGNORECASE)
_SALARY_SINGLE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(k?)", re.IGNORECASE)


# -----------------------------
# Text helpers
# -----------------------------
def clean_text(value: Any) -> str:
    """Collapse whitespace runs, drop control characters, trim. None -> ''."""
    if value is None:
        return ""
    s = "".join(ch for ch in str(value) if unicodedata.category(ch)[0] != "C" or ch in "\t\n\r")
    return _WS_RE.sub(" ", s).strip()


def _key_part(value: str) -> str:
    s = _WS_RE.sub(" ", value.casefold()).strip()
    return _NON_ALNUM_RE.sub("-", s).strip("-")


def identity_key(employer: str, title: str, location: str) -> str:
    """
    Stable fingerprint of (employer, title, location).

    >>> identity_key("Acme Corp", "  Senior  Engineer ", "San Francisco, CA")
    'acme-corp:senior-engineer:san-francisco-ca'
    """
    return ":".join(_key_part(p or "") for p in (employer, title, location))


def parse_location(text: str | None, default: str | None = None) -> str | None:
    """
    'Remote - US' -> 'Remote'; 'san francisco, ca 94105' -> 'san francisco, CA';
    anything else is returned trimmed; blank -> default.
    """
    s = clean_text(text)
    if not s:
        return default
    if "remote" in s.lower():
        return "Remote"
    m = _CITY_STATE_RE.search(s)
    if m:
        return f"{m.group(1).strip()}, {m.group(2).upper()}"
    return s


def parse_salary(text: str | None) -> tuple[int | None, int | None]:
    """
    Parse "120k-180k", "$120,000 - $180,000" or a single value into (min, max).
    Unparseable input gives (None, None).
    """
    if not text:
        return (None, None)
    s = str(text).replace(",", "").replace("$", "")
    has_k = "k" in s.lower()

    m = _SALARY_RANGE_RE.search(s)
    if m:
        lo, hi = float(m.group(1)), float(m.group(3))
        if has_k:
            lo, hi = lo * 1000, hi * 1000
        lo_i, hi_i = int(lo), int(hi)
        return (min(lo_i, hi_i), max(lo_i, hi_i))

    m = _SALARY_SINGLE_RE.search(s)
    if m:
        v = float(m.group(1))
        if has_k:
            v *= 1000
        return (int(v), int(v))
    return (None, None)


def classify_title(title: str) -> tuple[EmploymentType, Seniority]:
    """Employment type and seniority inferred from title keywords."""
    t = (title or "").lower()

    if "intern" in t:
        emp = EmploymentType.INTERNSHIP
    elif "contract" in t:
        emp = EmploymentType.CONTRACT
    elif "part-time" in t or "part time" in t:
        emp = EmploymentType.PART_TIME
    else:
        emp = EmploymentType.FULL_TIME

    if any(k in t for k in ("junior", "entry", "intern")):
        level = Seniority.ENTRY
    elif "senior" in t or "sr." in t or "sr " in t:
        level = Seniority.SENIOR
    elif "staff" in t or "lead" in t:
        level = Seniority.STAFF
    elif any(k in t for k in ("principal", "architect", "director")):
        level = Seniority.PRINCIPAL
    else:
        level = Seniority.MID
    return emp, level


# -----------------------------
# Normalizer
# -----------------------------
def normalize(raw: RawPosting, employer: Employer, *, now: datetime | None = None) -> Posting:
    """
    Build the canonical Posting for `raw` observed at `employer`.

    Raises:
        ValueError: when the title is blank after cleaning.
    """
    title = clean_text(raw.title)
    if not title:
        raise ValueError(f"posting from {employer.slug!r} has no title")

    ts = now or utcnow()
    location = clean_text(raw.location) or DEFAULT_LOCATION
    first_seen = parse_iso(raw.first_seen_at) or ts
    last_seen = parse_iso(raw.last_seen_at) or ts

    return Posting(
        employer=employer,
        title=title,
        department=clean_text(raw.department) or DEFAULT_DEPARTMENT,
        location=location,
        employment_type=_coerce_enum(EmploymentType, raw.employment_type, EmploymentType.FULL_TIME),
        seniority=_coerce_enum(Seniority, raw.seniority, Seniority.MID),
        description=clean_text(raw.description),
        application_url=(raw.application_url or "").strip() or employer.career_page_url,
        identity_key=identity_key(employer.name, title, location),
        first_seen_at=first_seen,
        last_seen_at=max(first_seen, last_seen),
        status=PostingStatus.ACTIVE,
        salary_min=_coerce_salary(raw.salary_min),
        salary_max=_coerce_salary(raw.salary_max),
        requirements=[s for s in (clean_text(r) for r in raw.requirements or []) if s],
        benefits=[s for s in (clean_text(b) for b in raw.benefits or []) if s],
    )


def _coerce_enum(enum_cls: Any, value: Any, default: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return default
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return enum_cls(key)
    except ValueError:
        return default


def _coerce_salary(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None
