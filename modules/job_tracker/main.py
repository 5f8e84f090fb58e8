from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity


def run(**kwargs: Any) -> dict[str, Any]:
    """
    Entry point for the 'job_tracker' module (one scrape + sync cycle).

    Accepts kwargs (from scheduler/runner/CLI); every key overrides the
    matching JOBTRACKER_* / POCKETBASE_* environment variable:
      company: str | None            # scrape one source instead of all
      store_backend: "pocketbase" | "sqlite"
      sqlite_path: str
      sources: list[str] | "anthropic,waymo"
      skip_network: bool = False     # fallback sets only, no HTTP
      concurrency: int = 3
      deadline_sec: float | None
      sweep_after_sync: bool = False

    Returns:
      Result dict: {success, message, stats, jobs, target, sources}.
    """
    kw = dict(kwargs)
    company = kw.pop("company", None) or None

    settings = Settings.from_env_and_kwargs(kw)

    log_activity({
        "component": "job_tracker.main",
        "op": "start",
        "company": company,
        "store": settings.store_backend,
        "sources": settings.sources or "all",
        "skip_network": settings.skip_network,
    })

    result = _run_engine(settings, company=company)
    return result.to_dict()
