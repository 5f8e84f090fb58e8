"""
Upserts normalized postings into the store, keyed by identity key.

Batches run sequentially with a pause between them; postings inside a batch
run concurrently. Employer records are resolved by name and created on first
sight. One `now` is used for the whole call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Any

from . import logging_bridge
from .models import Employer, Posting, PostingStatus, SyncStats, days_between
from .store import EMPLOYERS, POSTINGS, DuplicateRecordError, Store, StoreAuthError, StoreError, eq
from .utils import chunked, parse_iso, to_iso, utcnow

LOG = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"


class SyncEngine:
    def __init__(
        self,
        store: Store,
        *,
        batch_size: int = 10,
        batch_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.store = store
        self.batch_size = int(batch_size)
        self.batch_delay = float(batch_delay)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or utcnow

    async def apply(self, postings: Sequence[Posting]) -> SyncStats:
        """
        Create-or-update every posting. Per-posting failures are counted in
        `errors`; only StoreAuthError escapes.
        """
        run = _SyncRun(self.store, now=self._clock())
        stats = SyncStats(total=len(postings))
        t0 = time.perf_counter()

        batches = list(chunked(list(postings), self.batch_size))
        for idx, batch in enumerate(batches):
            outcomes = await asyncio.gather(*(run.upsert(p) for p in batch), return_exceptions=True)
            auth_error: StoreAuthError | None = None
            for posting, outcome in zip(batch, outcomes):
                if outcome == CREATED:
                    stats.created += 1
                elif outcome == UPDATED:
                    stats.updated += 1
                else:
                    stats.errors += 1
                    if isinstance(outcome, StoreAuthError):
                        auth_error = outcome
                    LOG.error("Failed to sync %s: %r", posting.identity_key, outcome)
                    logging_bridge.error({
                        "component": "job_tracker.sync",
                        "op": "upsert",
                        "identity_key": posting.identity_key,
                        "employer": posting.employer.name,
                        "error": repr(outcome),
                    })
            if auth_error is not None:
                raise auth_error
            if idx + 1 < len(batches) and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

        logging_bridge.activity({
            "component": "job_tracker.sync",
            "op": "summary",
            **stats.to_dict(),
            "batches": len(batches),
            "reactivated": run.reactivated,
            "total_ms": int((time.perf_counter() - t0) * 1000),
        })
        return stats


class _SyncRun:
    """State scoped to one `apply` call: timestamp, employer cache, locks."""

    def __init__(self, store: Store, *, now: datetime):
        self.store = store
        self.now = now
        self.reactivated = 0
        self._employer_ids: dict[str, str] = {}
        self._employer_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._key_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def upsert(self, posting: Posting) -> str:
        employer_id = await self.employer_id(posting.employer)
        async with self._key_locks[posting.identity_key]:
            existing = await asyncio.to_thread(self.store.first, POSTINGS, [eq("identity_key", posting.identity_key)])
            if existing is not None:
                await self._update(existing, posting, employer_id)
                return UPDATED

            record = posting.to_record(employer_id, now=self.now)
            record.update({
                "status": PostingStatus.ACTIVE.value,
                "first_seen_at": to_iso(self.now),
                "last_seen_at": to_iso(self.now),
                "days_posted": 0,
            })
            try:
                await asyncio.to_thread(self.store.create, POSTINGS, record)
                return CREATED
            except DuplicateRecordError:
                # Another writer created it between lookup and create.
                existing = await asyncio.to_thread(
                    self.store.first, POSTINGS, [eq("identity_key", posting.identity_key)]
                )
                if existing is None:
                    raise
                await self._update(existing, posting, employer_id)
                return UPDATED

    async def employer_id(self, employer: Employer) -> str:
        name = employer.name
        if name in self._employer_ids:
            return self._employer_ids[name]
        async with self._employer_locks[name]:
            if name in self._employer_ids:
                return self._employer_ids[name]
            record = await asyncio.to_thread(self.store.first, EMPLOYERS, [eq("name", name)])
            if record is None:
                try:
                    record = await asyncio.to_thread(self.store.create, EMPLOYERS, employer.to_record())
                    LOG.info("Created employer %s", name)
                except DuplicateRecordError:
                    record = await asyncio.to_thread(self.store.first, EMPLOYERS, [eq("name", name)])
                    if record is None:
                        raise StoreError(f"employer {name!r} reported duplicate but cannot be read back") from None
            self._employer_ids[name] = str(record["id"])
            return self._employer_ids[name]

    async def _update(self, existing: dict[str, Any], posting: Posting, employer_id: str) -> None:
        first_seen = parse_iso(existing.get("first_seen_at")) or self.now
        stored_last = parse_iso(existing.get("last_seen_at"))
        last_seen = max(stored_last, self.now) if stored_last else self.now

        if existing.get("status") == PostingStatus.CLOSED.value:
            self.reactivated += 1
            LOG.info("Reactivating closed posting %s", posting.identity_key)

        data = posting.to_record(employer_id, now=self.now)
        data.update({
            "status": PostingStatus.ACTIVE.value,
            "first_seen_at": to_iso(first_seen),
            "last_seen_at": to_iso(last_seen),
            "days_posted": days_between(first_seen, self.now),
        })
        await asyncio.to_thread(self.store.update, POSTINGS, str(existing["id"]), data)
