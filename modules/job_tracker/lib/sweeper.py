from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from . import logging_bridge
from .models import PostingStatus
from .store import POSTINGS, Store, eq, lt
from .utils import to_iso, utcnow

LOG = logging.getLogger(__name__)


class StalenessSweeper:
    """
    Closes active postings whose `last_seen_at` is older than the threshold.

    Best effort: a failed listing yields 0 and a failed single update is
    logged and left for the next sweep. `sweep` never raises.
    """

    def __init__(self, store: Store, *, clock: Callable[[], datetime] | None = None):
        self.store = store
        self._clock = clock or utcnow

    async def sweep(self, threshold_days: int = 7) -> int:
        now = self._clock()
        cutoff_at = now - timedelta(days=threshold_days)
        cutoff = to_iso(cutoff_at)
        try:
            stale = await asyncio.to_thread(
                self.store.list,
                POSTINGS,
                [eq("status", PostingStatus.ACTIVE.value), lt("last_seen_at", cutoff_at)],
            )
        except Exception as e:
            LOG.error("Staleness sweep could not list postings: %r", e, exc_info=True)
            logging_bridge.error({
                "component": "job_tracker.sweeper",
                "op": "list",
                "cutoff": cutoff,
                "error": repr(e),
            })
            return 0

        closed = 0
        stamp = to_iso(now)
        for record in stale:
            try:
                await asyncio.to_thread(
                    self.store.update,
                    POSTINGS,
                    str(record["id"]),
                    {"status": PostingStatus.CLOSED.value, "last_seen_at": stamp},
                )
                closed += 1
            except Exception as e:
                LOG.warning("Could not close posting %s: %r", record.get("identity_key") or record.get("id"), e)
                logging_bridge.error({
                    "component": "job_tracker.sweeper",
                    "op": "close",
                    "record_id": record.get("id"),
                    "error": repr(e),
                })

        logging_bridge.activity({
            "component": "job_tracker.sweeper",
            "op": "summary",
            "threshold_days": threshold_days,
            "cutoff": cutoff,
            "candidates": len(stale),
            "closed": closed,
        })
        if closed:
            LOG.info("Closed %d stale postings (unseen since %s)", closed, cutoff)
        return closed
