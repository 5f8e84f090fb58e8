# tests/conftest.py
import asyncio
import json
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from modules.job_tracker.lib import config as jt_config
from modules.job_tracker.lib.models import Employer, RawPosting
from modules.job_tracker.lib.store.sqlite import SqliteStore


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    import os

    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    # Throwaway log dir so real logs stay clean (per test)
    monkeypatch.setenv("LOG_DIR", tempfile.mkdtemp(prefix="jt-pytest-logs-"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")

    # Local store, no network, no politeness delays unless a test opts back in
    monkeypatch.setenv("JOBTRACKER_STORE", "sqlite")
    monkeypatch.setenv("JOBTRACKER_SQLITE_PATH", str(tmp_path / "jobtracker.db"))
    monkeypatch.setenv("JOBTRACKER_SKIP_NETWORK", "1")
    monkeypatch.setenv("JOBTRACKER_GROUP_DELAY_SEC", "0")
    monkeypatch.setenv("JOBTRACKER_BATCH_DELAY_SEC", "0")
    monkeypatch.setenv("JOBTRACKER_BASE_DELAY_MS", "0")
    for name in ("POCKETBASE_URL", "POCKETBASE_ADMIN_EMAIL", "POCKETBASE_ADMIN_PASSWORD",
                 "JOBTRACKER_SOURCES", "JOBTRACKER_DEADLINE_SEC", "JOBTRACKER_SWEEP_AFTER_SYNC", "CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    yield


# ---------------------------------------------------------------------
# Clocks / sleeps
# ---------------------------------------------------------------------
T0 = datetime(2025, 1, 1, 6, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock the tests advance by hand."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    """Async no-op sleep that records requested delays."""
    calls: list[float] = []

    async def _sleep(delay: float) -> None:
        calls.append(delay)
        await asyncio.sleep(0)

    _sleep.calls = calls  # type: ignore[attr-defined]
    return _sleep


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Store / domain fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteStore(str(tmp_path / "store.db"))


@pytest.fixture
def acme():
    return Employer(
        name="Acme Corp",
        slug="acme",
        career_page_url="https://acme.example/careers",
        industry="Testing",
        headquarters="Austin, TX",
    )


@pytest.fixture
def raw_engineer():
    return RawPosting(
        title="Senior Engineer",
        location="San Francisco, CA",
        department="Engineering",
        employment_type="full_time",
        seniority="senior",
        description="Build things.",
        salary_min=150_000,
        salary_max=200_000,
        requirements=["Python"],
        benefits=["Health insurance"],
    )


@pytest.fixture
def fresh_settings(tmp_path):
    """Brand-new sqlite-backed Settings per test."""
    return jt_config.Settings.from_env_and_kwargs({
        "store_backend": "sqlite",
        "sqlite_path": str(tmp_path / "cycle.db"),
        "skip_network": True,
        "group_delay_sec": 0,
        "batch_delay_sec": 0,
    })


@pytest.fixture
def write_min_config(tmp_path, monkeypatch):
    cfg = {
        "timezone": "UTC",
        "jobs": [
            {
                "id": "scrape-never",
                "module": "modules.job_tracker",
                "trigger": {"date": "2099-01-01T00:00:00Z"},
                "kwargs": {"skip_network": True},
                "summary": "pytest config",
            }
        ],
    }
    p = tmp_path / "config.json"
    p.write_text(json.dumps(cfg), encoding="utf-8")
    monkeypatch.setenv("CONFIG_PATH", str(p))
    return p
