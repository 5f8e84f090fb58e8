from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import sweep_stale
from .lib.utils import now_iso


def run(**kwargs: Any) -> dict[str, Any]:
    """
    Entry point for 'job_tracker.sweep': close postings not seen for
    `threshold_days` (default JOBTRACKER_STALE_DAYS, else 7).
    """
    kw = dict(kwargs)
    threshold = kw.pop("threshold_days", None)
    settings = Settings.from_env_and_kwargs(kw)
    days = int(threshold or settings.stale_threshold_days)

    closed = sweep_stale(settings, threshold_days=days)
    return {
        "success": True,
        "message": f"Closed {closed} stale postings",
        "closed": closed,
        "thresholdDays": days,
        "timestamp": now_iso(),
    }
