"""
Runs the registered sources with bounded concurrency and aggregates their
normalized postings plus a per-source report.

Sources are taken in groups of `concurrency`; a group runs concurrently and
the orchestrator pauses `group_delay` seconds before starting the next one,
so no more than `concurrency` fetches are ever outstanding. Each source task
returns its own (SourceRun, postings) pair and slices are merged only after
the whole group has finished.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime

from . import logging_bridge
from .http_client import HttpClient
from .models import OrchestrationResult, Posting, SourceRun
from .normalize import normalize
from .retry import RetryExecutor
from .scrapers.base import SourceExtractor
from .utils import chunked, utcnow

LOG = logging.getLogger(__name__)


class UnknownSourceError(KeyError):
    """Slug has no registered extractor."""


def _default_get_extractor(slug: str) -> type[SourceExtractor]:
    """
    Resolve extractor class from the registry. Importing the scrapers package
    registers every bundled source.
    """
    from . import scrapers  # noqa: F401
    from .scrapers.registry import get as get_extractor_class

    return get_extractor_class(slug)


def _default_slugs() -> list[str]:
    from . import scrapers  # noqa: F401
    from .scrapers.registry import all_sources

    return list(all_sources().keys())


class Orchestrator:
    def __init__(
        self,
        *,
        concurrency: int = 3,
        group_delay: float = 2.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_jitter: float = 1.0,
        skip_network: bool = False,
        http: HttpClient | None = None,
        request_timeout: float = 30.0,
        get_extractor: Callable[[str], type[SourceExtractor]] | None = None,
        default_slugs: Callable[[], list[str]] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = int(concurrency)
        self.group_delay = float(group_delay)
        self.max_attempts = int(max_attempts)
        self.base_delay = float(base_delay)
        self.max_jitter = float(max_jitter)
        self.skip_network = skip_network
        # None -> each source gets its own client; requests.Session is not thread-safe
        self.http = http
        self.request_timeout = float(request_timeout)
        self._get_extractor = get_extractor or _default_get_extractor
        self._default_slugs = default_slugs or _default_slugs
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or utcnow

    # ---- public ----

    async def run_all(self, slugs: Sequence[str] | None = None) -> OrchestrationResult:
        """
        Run every requested source (default: all registered) and aggregate.
        Failures, including unknown slugs, land in the report as failed runs.
        """
        targets = [s.strip().lower() for s in (slugs or self._default_slugs()) if s and s.strip()]
        result = OrchestrationResult()
        t0 = time.perf_counter()

        groups = list(chunked(targets, self.concurrency))
        for idx, group in enumerate(groups):
            LOG.info("Source group %d/%d: %s", idx + 1, len(groups), ", ".join(group))
            outcomes = await asyncio.gather(*(self._run_source(slug) for slug in group))
            for run, postings in outcomes:
                result.report.append(run)
                result.postings.extend(postings)
            if idx + 1 < len(groups) and self.group_delay > 0:
                LOG.debug("Waiting %.1fs before next source group", self.group_delay)
                await self._sleep(self.group_delay)

        logging_bridge.activity({
            "component": "job_tracker.orchestrator",
            "op": "summary",
            "sources": targets,
            "found_by_source": {r.slug: r.postings_found for r in result.report},
            "failed": [r.slug for r in result.report if not r.succeeded],
            "fallback": [r.slug for r in result.report if r.fallback],
            "total": result.total,
            "total_ms": int((time.perf_counter() - t0) * 1000),
        })
        return result

    async def run_one(self, slug: str) -> list[Posting]:
        """Postings for one source. Raises UnknownSourceError for unregistered slugs."""
        key = (slug or "").strip().lower()
        self.resolve(key)
        _run, postings = await self._run_source(key)
        return postings

    # ---- internals ----

    def resolve(self, slug: str) -> type[SourceExtractor]:
        try:
            return self._get_extractor(slug)
        except KeyError as e:
            raise UnknownSourceError(slug) from e

    async def _run_source(self, slug: str) -> tuple[SourceRun, list[Posting]]:
        t0 = time.perf_counter()

        def _elapsed_ms() -> int:
            return int((time.perf_counter() - t0) * 1000)

        try:
            extractor_cls = self.resolve(slug)
        except UnknownSourceError:
            LOG.error("Unknown source %r", slug)
            return (SourceRun(slug=slug, employer=slug, succeeded=False, error=f"Unknown company: {slug}"), [])

        http = self.http or HttpClient(timeout=self.request_timeout)
        extractor = extractor_cls(http, skip_network=self.skip_network)
        employer = extractor.employer
        executor = RetryExecutor(
            self.max_attempts,
            self.base_delay,
            self.max_jitter,
            sleep=self._sleep,
            label=slug,
        )

        try:
            extraction = await executor.run(lambda: extractor.fetch(employer))
        except Exception as e:
            LOG.error("Source %s failed after %d attempts: %r", slug, self.max_attempts, e)
            logging_bridge.error({
                "component": "job_tracker.orchestrator",
                "op": "source",
                "slug": slug,
                "error": repr(e),
            })
            run = SourceRun(slug=slug, employer=employer.name, succeeded=False, elapsed_ms=_elapsed_ms(), error=str(e))
            return (run, [])
        finally:
            if http is not self.http:
                http.close()

        now = self._clock()
        postings: list[Posting] = []
        for raw in extraction.postings:
            try:
                postings.append(normalize(raw, employer, now=now))
            except ValueError as e:
                LOG.warning("Dropping %s posting: %s", slug, e)

        run = SourceRun(
            slug=slug,
            employer=employer.name,
            succeeded=True,
            postings_found=len(postings),
            elapsed_ms=_elapsed_ms(),
            fallback=extraction.is_fallback,
        )
        LOG.info(
            "%s: %d postings in %dms%s",
            employer.name, run.postings_found, run.elapsed_ms, " (fallback)" if run.fallback else "",
        )
        return (run, postings)
