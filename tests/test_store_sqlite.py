# tests/test_store_sqlite.py
from datetime import datetime, timezone

import pytest

from modules.job_tracker.lib.store import (
    EMPLOYERS,
    POSTINGS,
    DuplicateRecordError,
    RecordNotFoundError,
    StoreError,
    eq,
    lt,
)
from modules.job_tracker.lib.store.sqlite import SqliteStore, count_rows, reset_db


def posting(employer_id: str, key: str, **extra) -> dict:
    data = {
        "identity_key": key,
        "employer": employer_id,
        "title": key.split(":")[1],
        "first_seen_at": "2025-01-01T06:00:00.000Z",
        "last_seen_at": "2025-01-01T06:00:00.000Z",
    }
    data.update(extra)
    return data


@pytest.fixture
def emp(sqlite_store):
    return sqlite_store.create(EMPLOYERS, {"name": "Acme", "slug": "acme"})


def test_create_assigns_id_and_defaults(sqlite_store, emp):
    assert emp["id"] and emp["status"] == "active"
    rec = sqlite_store.create(POSTINGS, posting(emp["id"], "acme:pm:remote", requirements=["SQL", "Go"]))
    assert len(rec["id"]) == 15
    assert rec["status"] == "active"
    assert rec["days_posted"] == 0
    assert rec["requirements"] == ["SQL", "Go"]
    assert rec["benefits"] == []


def test_list_filters_sorts_and_limits(sqlite_store, emp):
    sqlite_store.create(POSTINGS, posting(emp["id"], "acme:a:remote", last_seen_at="2025-01-03T00:00:00.000Z"))
    sqlite_store.create(POSTINGS, posting(emp["id"], "acme:b:remote", last_seen_at="2025-01-01T00:00:00.000Z"))
    sqlite_store.create(POSTINGS, posting(emp["id"], "acme:c:remote", status="closed"))

    active = sqlite_store.list(POSTINGS, [eq("status", "active")], sort="-last_seen_at")
    assert [p["identity_key"] for p in active] == ["acme:a:remote", "acme:b:remote"]

    older = sqlite_store.list(POSTINGS, [lt("last_seen_at", "2025-01-02T00:00:00.000Z")], sort="identity_key")
    assert [p["identity_key"] for p in older] == ["acme:b:remote", "acme:c:remote"]
    cutoff = datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert sqlite_store.list(POSTINGS, [lt("last_seen_at", cutoff)], sort="identity_key") == older

    assert len(sqlite_store.list(POSTINGS, limit=1)) == 1
    assert sqlite_store.first(POSTINGS, [eq("identity_key", "missing")]) is None


def test_unique_collisions_raise_duplicate(sqlite_store, emp):
    with pytest.raises(DuplicateRecordError):
        sqlite_store.create(EMPLOYERS, {"name": "Acme"})
    sqlite_store.create(POSTINGS, posting(emp["id"], "acme:pm:remote"))
    with pytest.raises(DuplicateRecordError):
        sqlite_store.create(POSTINGS, posting(emp["id"], "acme:pm:remote"))


def test_posting_requires_existing_employer(sqlite_store):
    with pytest.raises(StoreError) as ei:
        sqlite_store.create(POSTINGS, posting("nope", "acme:pm:remote"))
    assert not isinstance(ei.value, DuplicateRecordError)


def test_update_patches_fields(sqlite_store, emp):
    rec = sqlite_store.create(POSTINGS, posting(emp["id"], "acme:pm:remote"))
    out = sqlite_store.update(POSTINGS, rec["id"], {"status": "closed", "days_posted": 4, "bogus": 1})
    assert out["status"] == "closed"
    assert out["days_posted"] == 4
    assert out["title"] == rec["title"]
    assert "bogus" not in out


def test_update_missing_record(sqlite_store):
    with pytest.raises(RecordNotFoundError):
        sqlite_store.update(POSTINGS, "does-not-exist", {"status": "closed"})


def test_unknown_field_and_collection_rejected(sqlite_store):
    with pytest.raises(StoreError):
        sqlite_store.list(POSTINGS, [eq("bogus", 1)])
    with pytest.raises(StoreError):
        sqlite_store.list(POSTINGS, sort="-bogus")
    with pytest.raises(StoreError):
        sqlite_store.list("users")


def test_count_rows_and_reset(tmp_path):
    dbp = str(tmp_path / "jt.db")
    reset_db(dbp)
    assert count_rows(dbp) == 0

    store = SqliteStore(dbp)
    emp = store.create(EMPLOYERS, {"name": "Acme"})
    store.create(POSTINGS, posting(emp["id"], "acme:pm:remote"))
    assert count_rows(dbp) == 1
    assert count_rows(dbp, EMPLOYERS) == 1

    reset_db(dbp)
    assert count_rows(dbp) == 0
