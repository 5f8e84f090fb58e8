from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup  # pip install beautifulsoup4 html5lib

from .. import logging_bridge
from ..http_client import HttpClient
from ..models import Employer, ExtractionResult, RawPosting, Seniority
from ..normalize import classify_title, clean_text, parse_location

# (keywords, value): first rule whose keyword appears in the lower-cased title wins
Rule = tuple[tuple[str, ...], Any]

DEFAULT_CARD_SELECTOR = ".job-listing, .career-opportunity, .position"
DEFAULT_TITLE_SELECTOR = "h3, h4, .job-title"
DEFAULT_LOCATION_SELECTOR = ".location"

# Alphabet/Amazon style bands; multipliers applied to (base_min, base_max)
STANDARD_MULTIPLIERS: Mapping[Seniority, tuple[float, float]] = {
    Seniority.ENTRY: (0.8, 0.9),
    Seniority.MID: (1.0, 1.1),
    Seniority.SENIOR: (1.2, 1.4),
    Seniority.STAFF: (1.5, 1.8),
    Seniority.PRINCIPAL: (1.9, 2.3),
}

# Startup style bands, shifted down one notch
STARTUP_MULTIPLIERS: Mapping[Seniority, tuple[float, float]] = {
    Seniority.ENTRY: (0.7, 0.8),
    Seniority.MID: (0.9, 1.0),
    Seniority.SENIOR: (1.1, 1.3),
    Seniority.STAFF: (1.4, 1.7),
    Seniority.PRINCIPAL: (1.8, 2.2),
}


def match_rule(title: str, rules: Sequence[Rule], default: Any) -> Any:
    t = (title or "").lower()
    for keywords, value in rules:
        if any(k in t for k in keywords):
            return value
    return default


class SourceExtractor:
    """
    One employer career page -> raw postings.

    Subclasses are mostly data: selectors, keyword rules for department,
    salary band and requirements, benefits, a description suffix, and the
    fallback set returned when the page cannot be used.

    Contract:
      - fetch(employer) makes at most one outbound GET and never raises for
        network/HTTP/parse trouble; it returns ExtractionResult.fallback(...)
        carrying the canned set instead.
      - Cards without a title are dropped; a card that blows up while being
        read is logged and skipped.
    """

    # Concrete subclasses MUST set these
    slug: str = ""
    employer: Employer

    # Page layout
    card_selector: str = DEFAULT_CARD_SELECTOR
    title_selector: str = DEFAULT_TITLE_SELECTOR
    department_selector: str | None = None
    location_selector: str = DEFAULT_LOCATION_SELECTOR
    link_base: str | None = None  # origin used for relative hrefs

    # Heuristics
    department_rules: Sequence[Rule] = ()
    default_department: str = "Engineering"
    salary_bands: Sequence[Rule] = ()
    default_salary_band: tuple[int, int] = (120_000, 200_000)
    salary_multipliers: Mapping[Seniority, tuple[float, float]] = STANDARD_MULTIPLIERS
    requirement_rules: Sequence[Rule] = ()
    default_requirements: Sequence[str] = ()
    trailing_requirements: Sequence[str] = ()
    benefits: Sequence[str] = ()
    description_suffix: str = ""

    # Canned postings (RawPosting kwargs); turned into fresh objects per call
    fallback_set: Sequence[Mapping[str, Any]] = ()

    def __init__(self, http: HttpClient | None = None, *, skip_network: bool = False) -> None:
        self._owns_http = http is None
        self.http = http or HttpClient()
        self.skip_network = skip_network
        self.log = logging.getLogger(f"{__name__}.{self.slug or type(self).__name__}")

    # ---- public ----

    def fetch(self, employer: Employer | None = None) -> ExtractionResult:
        emp = employer or self.employer
        if self.skip_network:
            return ExtractionResult.fallback(self.fallback_postings(emp), reason="skip_network")

        t0 = time.perf_counter_ns()
        try:
            html = self.http.get_text(emp.career_page_url)
            postings = self.parse(html, emp)
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            self.log.warning("Falling back to sample %s postings: %s", emp.name, reason)
            logging_bridge.error({
                "component": "job_tracker.scrapers",
                "op": "fetch",
                "slug": self.slug,
                "url": emp.career_page_url,
                "error": repr(e),
                "fallback": True,
            })
            return ExtractionResult.fallback(self.fallback_postings(emp), reason=reason)

        if not postings:
            self.log.info("No structured postings on %s; using sample set", emp.career_page_url)
            return ExtractionResult.fallback(self.fallback_postings(emp), reason="no postings found on page")

        logging_bridge.activity({
            "component": "job_tracker.scrapers",
            "op": "fetch",
            "slug": self.slug,
            "url": emp.career_page_url,
            "found": len(postings),
            "duration_us": int((time.perf_counter_ns() - t0) // 1000),
        })
        return ExtractionResult.live(postings)

    def parse(self, html: str, employer: Employer | None = None) -> list[RawPosting]:
        """Read every posting card on a career page."""
        emp = employer or self.employer
        soup = BeautifulSoup(html, "html5lib")
        out: list[RawPosting] = []
        for idx, card in enumerate(soup.select(self.card_selector)):
            try:
                raw = self._read_card(card, emp)
            except Exception as e:
                self.log.warning("Skipping %s card #%d: %r", self.slug, idx, e)
                continue
            if raw is not None:
                out.append(raw)
        return out

    def fallback_postings(self, employer: Employer | None = None) -> list[RawPosting]:
        emp = employer or self.employer
        out: list[RawPosting] = []
        for spec in self.fallback_set:
            data = dict(spec)
            data.setdefault("application_url", emp.career_page_url)
            data.setdefault("location", emp.headquarters)
            data["requirements"] = list(data.get("requirements") or [])
            data["benefits"] = list(data.get("benefits") or [])
            out.append(RawPosting(**data))
        return out

    # ---- heuristics ----

    def department_for(self, title: str) -> str:
        return match_rule(title, self.department_rules, self.default_department)

    def salary_for(self, title: str, seniority: Seniority) -> tuple[int, int]:
        base_min, base_max = match_rule(title, self.salary_bands, self.default_salary_band)
        lo, hi = self.salary_multipliers.get(seniority, self.salary_multipliers[Seniority.MID])
        return (int(base_min * lo + 0.5), int(base_max * hi + 0.5))

    def requirements_for(self, title: str) -> list[str]:
        reqs = list(match_rule(title, self.requirement_rules, self.default_requirements))
        return reqs + list(self.trailing_requirements)

    def describe(self, title: str, employer: Employer) -> str:
        return f"{title} position at {employer.name}. {self.description_suffix}".strip()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    # ---- internals ----

    def _read_card(self, card: Any, employer: Employer) -> RawPosting | None:
        title = _first_text(card, self.title_selector)
        if not title:
            return None

        department = _first_text(card, self.department_selector) if self.department_selector else ""
        location = parse_location(_first_text(card, self.location_selector), default=employer.headquarters)
        employment_type, seniority = classify_title(title)
        salary_min, salary_max = self.salary_for(title, seniority)

        return RawPosting(
            title=title,
            department=department or self.department_for(title),
            location=location,
            employment_type=employment_type.value,
            seniority=seniority.value,
            description=self.describe(title, employer),
            application_url=self._link(card, employer),
            salary_min=salary_min,
            salary_max=salary_max,
            requirements=self.requirements_for(title),
            benefits=list(self.benefits),
        )

    def _link(self, card: Any, employer: Employer) -> str:
        a = card if getattr(card, "name", None) == "a" else card.find("a")
        href = (a.get("href") or "").strip() if a is not None else ""
        if not href:
            return employer.career_page_url
        if href.startswith(("http://", "https://")):
            return href
        return urljoin(self.link_base or employer.career_page_url, href)


def _first_text(node: Any, selector: str | None) -> str:
    if not selector:
        return ""
    el = node.select_one(selector)
    return clean_text(el.get_text(" ", strip=True)) if el is not None else ""
