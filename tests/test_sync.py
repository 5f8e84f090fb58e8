import asyncio

import pytest

from modules.job_tracker.lib.models import Employer, RawPosting
from modules.job_tracker.lib.normalize import normalize
from modules.job_tracker.lib.store import EMPLOYERS, POSTINGS, DuplicateRecordError, StoreAuthError, StoreError, eq
from modules.job_tracker.lib.sync import SyncEngine

ACME = Employer(name="Acme", slug="acme", career_page_url="https://acme.example/careers")


def acme_postings(now):
    raws = [RawPosting(title="iOS Engineer", location="SF, CA"), RawPosting(title="PM", location="Remote")]
    return [normalize(r, ACME, now=now) for r in raws]


def engine(store, sleeps, clock, **kwargs):
    return SyncEngine(store, sleep=sleeps, clock=clock, **kwargs)


def test_acme_first_pass_then_rerun_an_hour_later(sqlite_store, sleeps, clock):
    stats = asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    assert (stats.created, stats.updated, stats.errors, stats.total) == (2, 0, 0, 2)

    employers = sqlite_store.list(EMPLOYERS)
    assert [e["name"] for e in employers] == ["Acme"]
    first = {p["identity_key"]: p for p in sqlite_store.list(POSTINGS)}
    assert len(first) == 2
    for p in first.values():
        assert p["employer"] == employers[0]["id"]
        assert p["first_seen_at"] == p["last_seen_at"] == "2025-01-01T06:00:00.000Z"
        assert p["status"] == "active"
        assert p["days_posted"] == 0

    clock.advance(hours=1)
    stats = asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    assert (stats.created, stats.updated, stats.errors) == (0, 2, 0)

    second = {p["identity_key"]: p for p in sqlite_store.list(POSTINGS)}
    assert second.keys() == first.keys()
    for key, p in second.items():
        assert p["first_seen_at"] == first[key]["first_seen_at"]
        assert p["last_seen_at"] == "2025-01-01T07:00:00.000Z"
        assert p["days_posted"] == 1
    assert len(sqlite_store.list(EMPLOYERS)) == 1


def test_duplicate_identity_keys_in_one_batch_create_one_record(sqlite_store, sleeps, clock):
    postings = acme_postings(clock.now) + acme_postings(clock.now)
    stats = asyncio.run(engine(sqlite_store, sleeps, clock).apply(postings))

    assert stats.created == 2 and stats.updated == 2 and stats.errors == 0
    assert len(sqlite_store.list(POSTINGS)) == 2


def test_closed_posting_is_reactivated(sqlite_store, sleeps, clock):
    asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    rec = sqlite_store.list(POSTINGS)[0]
    sqlite_store.update(POSTINGS, rec["id"], {"status": "closed"})

    clock.advance(days=10)
    stats = asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))

    assert stats.updated == 2 and stats.created == 0
    after = sqlite_store.first(POSTINGS, [eq("id", rec["id"])])
    assert after["status"] == "active"
    assert after["first_seen_at"] == rec["first_seen_at"]
    assert after["days_posted"] == 10


def test_last_seen_never_moves_backwards(sqlite_store, sleeps, clock):
    asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    clock.advance(hours=-3)
    asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    assert {p["last_seen_at"] for p in sqlite_store.list(POSTINGS)} == {"2025-01-01T06:00:00.000Z"}


def test_batches_pause_between_each_other(sqlite_store, sleeps, clock):
    raws = [RawPosting(title=f"Engineer {i}") for i in range(25)]
    postings = [normalize(r, ACME, now=clock.now) for r in raws]
    stats = asyncio.run(engine(sqlite_store, sleeps, clock, batch_size=10, batch_delay=0.5).apply(postings))

    assert stats.created == 25
    assert sleeps.calls == [0.5, 0.5]


class FlakyStore:
    """Wraps a real store; fails creates for selected titles."""

    def __init__(self, inner, fail_titles=(), exc=StoreError):
        self.inner = inner
        self.fail_titles = set(fail_titles)
        self.exc = exc

    def first(self, collection, conditions):
        return self.inner.first(collection, conditions)

    def list(self, *args, **kwargs):
        return self.inner.list(*args, **kwargs)

    def create(self, collection, data):
        if collection == POSTINGS and data.get("title") in self.fail_titles:
            raise self.exc("write rejected")
        return self.inner.create(collection, data)

    def update(self, collection, record_id, data):
        return self.inner.update(collection, record_id, data)


def test_store_error_counted_and_rest_continue(sqlite_store, sleeps, clock):
    store = FlakyStore(sqlite_store, fail_titles={"PM"})
    stats = asyncio.run(engine(store, sleeps, clock).apply(acme_postings(clock.now)))

    assert (stats.created, stats.updated, stats.errors, stats.total) == (1, 0, 1, 2)
    assert [p["title"] for p in sqlite_store.list(POSTINGS)] == ["iOS Engineer"]


def test_auth_error_aborts_sync(sqlite_store, sleeps, clock):
    store = FlakyStore(sqlite_store, fail_titles={"PM"}, exc=StoreAuthError)
    with pytest.raises(StoreAuthError):
        asyncio.run(engine(store, sleeps, clock).apply(acme_postings(clock.now)))


class RacingStore(FlakyStore):
    """The first create for a key loses a race against an external writer."""

    def __init__(self, inner):
        super().__init__(inner)
        self.raced = False

    def create(self, collection, data):
        if collection == POSTINGS and not self.raced:
            self.raced = True
            self.inner.create(collection, data)
            raise DuplicateRecordError("validation_not_unique")
        return self.inner.create(collection, data)


def test_duplicate_on_create_becomes_update(sqlite_store, sleeps, clock):
    store = RacingStore(sqlite_store)
    stats = asyncio.run(engine(store, sleeps, clock).apply(acme_postings(clock.now)[:1]))
    assert (stats.created, stats.updated, stats.errors) == (0, 1, 0)
    assert len(sqlite_store.list(POSTINGS)) == 1


def test_empty_input_is_a_no_op(sqlite_store, sleeps, clock):
    stats = asyncio.run(engine(sqlite_store, sleeps, clock).apply([]))
    assert stats.to_dict() == {"newJobs": 0, "updatedJobs": 0, "errors": 0, "total": 0}
    assert sqlite_store.list(EMPLOYERS) == []


def test_days_posted_counts_partial_days_up(sqlite_store, sleeps, clock):
    asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    clock.advance(days=2, hours=1)
    asyncio.run(engine(sqlite_store, sleeps, clock).apply(acme_postings(clock.now)))
    assert {p["days_posted"] for p in sqlite_store.list(POSTINGS)} == {3}


class EmployerRaceStore(FlakyStore):
    """The first employer create inserts the row, then reports a duplicate."""

    def __init__(self, inner, insert=True):
        super().__init__(inner)
        self.insert = insert
        self.employer_creates = 0

    def create(self, collection, data):
        if collection == EMPLOYERS:
            self.employer_creates += 1
            if self.employer_creates == 1:
                if self.insert:
                    self.inner.create(collection, data)
                raise DuplicateRecordError("validation_not_unique")
        return self.inner.create(collection, data)


def test_employer_duplicate_on_create_reads_back_existing_row(sqlite_store, sleeps, clock):
    store = EmployerRaceStore(sqlite_store)
    stats = asyncio.run(engine(store, sleeps, clock).apply(acme_postings(clock.now)[:1]))

    assert (stats.created, stats.updated, stats.errors) == (1, 0, 0)
    employers = sqlite_store.list(EMPLOYERS)
    assert len(employers) == 1
    assert sqlite_store.list(POSTINGS)[0]["employer"] == employers[0]["id"]


def test_employer_duplicate_that_cannot_be_read_back_is_an_error(sqlite_store, sleeps, clock):
    store = EmployerRaceStore(sqlite_store, insert=False)
    stats = asyncio.run(engine(store, sleeps, clock).apply(acme_postings(clock.now)[:1]))

    assert (stats.created, stats.updated, stats.errors) == (0, 0, 1)
    assert sqlite_store.list(EMPLOYERS) == []
    assert sqlite_store.list(POSTINGS) == []
