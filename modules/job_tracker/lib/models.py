from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .utils import to_iso, utcnow


class EmploymentType(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"


class Seniority(str, Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    STAFF = "staff"
    PRINCIPAL = "principal"


class PostingStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True)
class Employer:
    """
    Static descriptor of one employer whose career page we watch.
    The slug doubles as the extractor registry key.
    """

    name: str
    slug: str
    career_page_url: str
    industry: str = "Technology"
    headquarters: str = "San Francisco, CA"
    status: str = "active"

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "slug": self.slug,
            "career_page_url": self.career_page_url,
            "industry": self.industry,
            "headquarters": self.headquarters,
            "status": self.status,
        }


@dataclass
class RawPosting:
    """
    A posting as an extractor saw it (pre-normalization).
    Only `title` is mandatory; everything else is backfilled by the normalizer.
    """

    title: str
    department: str | None = None
    location: str | None = None
    employment_type: str | None = None
    seniority: str | None = None
    description: str | None = None
    application_url: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    requirements: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)
    first_seen_at: datetime | str | None = None
    last_seen_at: datetime | str | None = None


@dataclass
class Posting:
    """Canonical job posting, keyed by `identity_key`."""

    employer: Employer
    title: str
    department: str
    location: str
    employment_type: EmploymentType
    seniority: Seniority
    description: str
    application_url: str
    identity_key: str
    first_seen_at: datetime
    last_seen_at: datetime
    status: PostingStatus = PostingStatus.ACTIVE
    salary_min: int | None = None
    salary_max: int | None = None
    requirements: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)

    def days_posted(self, now: datetime | None = None) -> int:
        return days_between(self.first_seen_at, now or utcnow())

    def to_record(self, employer_id: str, *, now: datetime | None = None) -> dict[str, Any]:
        """Flatten into the field set persisted in the `postings` collection."""
        return {
            "identity_key": self.identity_key,
            "employer": employer_id,
            "title": self.title,
            "department": self.department,
            "location": self.location,
            "employment_type": self.employment_type.value,
            "seniority": self.seniority.value,
            "description": self.description,
            "application_url": self.application_url,
            "status": self.status.value,
            "first_seen_at": to_iso(self.first_seen_at),
            "last_seen_at": to_iso(self.last_seen_at),
            "days_posted": self.days_posted(now),
            "salary_min": self.salary_min,
            "salary_max": self.salary_max,
            "requirements": list(self.requirements),
            "benefits": list(self.benefits),
        }


@dataclass(frozen=True)
class ExtractionResult:
    """
    Outcome of one extractor call. `kind` is "live" for scraped data and
    "fallback" for the employer's canned sample set.
    """

    kind: str
    postings: list[RawPosting] = field(default_factory=list)
    reason: str | None = None

    @classmethod
    def live(cls, postings: list[RawPosting]) -> ExtractionResult:
        return cls(kind="live", postings=list(postings))

    @classmethod
    def fallback(cls, postings: list[RawPosting], reason: str) -> ExtractionResult:
        return cls(kind="fallback", postings=list(postings), reason=reason)

    @property
    def is_fallback(self) -> bool:
        return self.kind == "fallback"


@dataclass
class SourceRun:
    """Per-source outcome of one orchestration cycle (never persisted)."""

    slug: str
    employer: str
    succeeded: bool
    postings_found: int = 0
    elapsed_ms: int = 0
    fallback: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "company": self.employer,
            "slug": self.slug,
            "success": self.succeeded,
            "jobs": self.postings_found,
            "durationMs": self.elapsed_ms,
            "fallback": self.fallback,
            "error": self.error,
        }


@dataclass
class OrchestrationResult:
    postings: list[Posting] = field(default_factory=list)
    report: list[SourceRun] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.postings)


@dataclass
class SyncStats:
    created: int = 0
    updated: int = 0
    errors: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "newJobs": self.created,
            "updatedJobs": self.updated,
            "errors": self.errors,
            "total": self.total,
        }


def days_between(start: datetime, end: datetime) -> int:
    """Whole days between two instants, rounded up (0 only for identical instants)."""
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / 86400)


@dataclass
class CycleResult:
    """Outcome of one scrape + sync cycle, shaped for the HTTP/CLI callers."""

    stats: SyncStats
    report: list[SourceRun] = field(default_factory=list)
    found: int = 0
    duration_ms: int = 0
    started_at: datetime | None = None
    target: str = "all companies"
    closed: int | None = None

    @property
    def message(self) -> str:
        return (
            f"Scraping completed for {self.target}: {self.stats.created} new, "
            f"{self.stats.updated} updated, {self.stats.errors} errors"
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "success": True,
            "message": self.message,
            "stats": {
                **self.stats.to_dict(),
                "duration": self.duration_ms,
                "timestamp": to_iso(self.started_at or utcnow()),
            },
            "jobs": self.found,
            "target": self.target,
            "sources": [r.to_dict() for r in self.report],
        }
        if self.closed is not None:
            out["closed"] = self.closed
        return out
