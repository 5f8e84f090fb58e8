"""
Pipeline entry points: one ingestion cycle (scrape -> normalize -> sync) and
the staleness sweep.

Features:
  - Store built from Settings (PocketBase or local SQLite) or injected
  - Authentication before any scraping; StoreAuthError aborts the cycle
  - Optional whole-cycle deadline (PipelineTimeoutError)
  - Dependency injection for testability (`get_extractor`, `sleep`, `clock`)
  - Summary activity record for every cycle
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime

from . import logging_bridge
from .config import ConfigError, Settings
from .models import CycleResult
from .orchestrator import Orchestrator, UnknownSourceError
from .scrapers.base import SourceExtractor
from .store import PocketBaseStore, SqliteStore, Store
from .sweeper import StalenessSweeper
from .sync import SyncEngine
from .utils import utcnow


class PipelineTimeoutError(TimeoutError):
    """The cycle did not finish within Settings.deadline_sec."""


# =============================================================================
# STORE
# =============================================================================
def build_store(settings: Settings) -> Store:
    if settings.store_backend == "sqlite":
        return SqliteStore(settings.sqlite_path)
    if settings.store_backend == "pocketbase":
        return PocketBaseStore(
            settings.pocketbase_url,
            settings.pocketbase_email,
            settings.pocketbase_password,
            auth_collection=settings.pocketbase_auth_collection,
            timeout=settings.request_timeout_sec,
        )
    raise ConfigError(f"Unknown store backend {settings.store_backend!r}")


# =============================================================================
# INGESTION CYCLE
# =============================================================================
async def run_cycle(
    settings: Settings,
    *,
    company: str | None = None,
    store: Store | None = None,
    get_extractor: Callable[[str], type[SourceExtractor]] | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> CycleResult:
    """
    Scrape the configured sources (or just `company`), sync the results and
    optionally sweep stale postings.

    Raises:
        UnknownSourceError: `company` is not a registered source.
        StoreAuthError: the store rejected our credentials.
    """
    clock = clock or utcnow
    started_at = clock()
    t0 = time.perf_counter()

    owns_store = store is None
    store = store or build_store(settings)
    orchestrator = Orchestrator(
        concurrency=settings.concurrency,
        group_delay=settings.group_delay_sec,
        max_attempts=settings.max_attempts,
        base_delay=settings.base_delay_ms / 1000.0,
        skip_network=settings.skip_network,
        request_timeout=settings.request_timeout_sec,
        get_extractor=get_extractor,
        sleep=sleep,
        clock=clock,
    )

    try:
        if company:
            slug = company.strip().lower()
            orchestrator.resolve(slug)
            slugs: list[str] | None = [slug]
            target = slug
        else:
            slugs = settings.sources or None
            target = "all companies"

        await asyncio.to_thread(store.authenticate)

        scraped = await orchestrator.run_all(slugs)
        engine = SyncEngine(
            store,
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay_sec,
            sleep=sleep,
            clock=clock,
        )
        stats = await engine.apply(scraped.postings)

        closed: int | None = None
        if settings.sweep_after_sync:
            closed = await StalenessSweeper(store, clock=clock).sweep(settings.stale_threshold_days)
    finally:
        if owns_store:
            store.close()

    result = CycleResult(
        stats=stats,
        report=scraped.report,
        found=scraped.total,
        duration_ms=int((time.perf_counter() - t0) * 1000),
        started_at=started_at,
        target=target,
        closed=closed,
    )
    logging_bridge.activity({
        "component": "job_tracker.engine",
        "op": "summary",
        "target": target,
        "store": settings.store_backend,
        "skip_network": settings.skip_network,
        "found": result.found,
        **stats.to_dict(),
        "closed": closed,
        "failed_sources": [r.slug for r in scraped.report if not r.succeeded],
        "duration_ms": result.duration_ms,
    })
    return result


async def execute(settings: Settings, **kwargs) -> CycleResult:
    """`run_cycle` bounded by settings.deadline_sec (when set)."""
    if settings.deadline_sec is None:
        return await run_cycle(settings, **kwargs)
    try:
        return await asyncio.wait_for(run_cycle(settings, **kwargs), timeout=settings.deadline_sec)
    except asyncio.TimeoutError as e:
        logging_bridge.error({
            "component": "job_tracker.engine",
            "op": "deadline",
            "deadline_sec": settings.deadline_sec,
            "company": kwargs.get("company"),
        })
        raise PipelineTimeoutError(f"Ingestion cycle exceeded {settings.deadline_sec}s") from e


def run_once(settings: Settings, **kwargs) -> CycleResult:
    """Blocking wrapper for schedulers/CLI: one bounded cycle on a fresh event loop."""
    return asyncio.run(execute(settings, **kwargs))


# =============================================================================
# STALENESS SWEEP
# =============================================================================
async def sweep_async(
    settings: Settings,
    *,
    store: Store | None = None,
    threshold_days: int | None = None,
    clock: Callable[[], datetime] | None = None,
) -> int:
    """
    Close postings unseen for `threshold_days` (default from settings).
    Store setup errors (auth) propagate; sweep failures themselves yield 0.
    """
    owns_store = store is None
    store = store or build_store(settings)
    try:
        await asyncio.to_thread(store.authenticate)
        days = int(threshold_days or settings.stale_threshold_days)
        return await StalenessSweeper(store, clock=clock).sweep(days)
    finally:
        if owns_store:
            store.close()


def sweep_stale(settings: Settings, **kwargs) -> int:
    return asyncio.run(sweep_async(settings, **kwargs))


__all__ = [
    "PipelineTimeoutError",
    "UnknownSourceError",
    "build_store",
    "execute",
    "run_cycle",
    "run_once",
    "sweep_async",
    "sweep_stale",
]
