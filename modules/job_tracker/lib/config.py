from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .utils import getenv_str, truthy


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


_STORE_BACKENDS = ("pocketbase", "sqlite")

# kwarg name -> environment variable consulted when the kwarg is absent
_ENV_KEYS = {
    "store_backend": "JOBTRACKER_STORE",
    "pocketbase_url": "POCKETBASE_URL",
    "pocketbase_email": "POCKETBASE_ADMIN_EMAIL",
    "pocketbase_password": "POCKETBASE_ADMIN_PASSWORD",
    "pocketbase_auth_collection": "POCKETBASE_AUTH_COLLECTION",
    "sqlite_path": "JOBTRACKER_SQLITE_PATH",
    "sources": "JOBTRACKER_SOURCES",
    "concurrency": "JOBTRACKER_CONCURRENCY",
    "group_delay_sec": "JOBTRACKER_GROUP_DELAY_SEC",
    "batch_size": "JOBTRACKER_BATCH_SIZE",
    "batch_delay_sec": "JOBTRACKER_BATCH_DELAY_SEC",
    "max_attempts": "JOBTRACKER_MAX_ATTEMPTS",
    "base_delay_ms": "JOBTRACKER_BASE_DELAY_MS",
    "request_timeout_sec": "JOBTRACKER_REQUEST_TIMEOUT_SEC",
    "stale_threshold_days": "JOBTRACKER_STALE_DAYS",
    "deadline_sec": "JOBTRACKER_DEADLINE_SEC",
    "skip_network": "JOBTRACKER_SKIP_NETWORK",
    "sweep_after_sync": "JOBTRACKER_SWEEP_AFTER_SYNC",
}


# -----------------------------
# Models
# -----------------------------
@dataclass
class Settings:
    """
    Canonical configuration for one ingestion cycle (scrape + sync) or sweep.

    Store credentials and tunables come from the environment; kwargs passed by
    the scheduler/runner/API override them key by key.
    """

    # Store selection
    store_backend: str = "pocketbase"
    pocketbase_url: str = "http://127.0.0.1:8090"
    pocketbase_email: str = ""
    pocketbase_password: str = field(default="", repr=False)
    pocketbase_auth_collection: str | None = None
    sqlite_path: str = "./local/state/jobtracker.db"

    # Source selection (empty -> every registered source)
    sources: list[str] = field(default_factory=list)

    # Orchestrator
    concurrency: int = 3
    group_delay_sec: float = 2.0
    max_attempts: int = 3
    base_delay_ms: int = 1000
    request_timeout_sec: float = 30.0
    skip_network: bool = False

    # Sync engine
    batch_size: int = 10
    batch_delay_sec: float = 0.5

    # Sweeper
    stale_threshold_days: int = 7
    sweep_after_sync: bool = False

    # Whole-cycle bound (None -> unbounded)
    deadline_sec: float | None = None

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None = None) -> Settings:
        """
        Build Settings from kwargs with environment fallback and validation.

        Recognized kwargs (all optional) mirror the dataclass fields; e.g.
            store_backend: "pocketbase" | "sqlite"
            sources: list[str] | "anthropic,waymo"
            concurrency: int = 3
            deadline_sec: float | None
        """
        kw = dict(kwargs or {})

        def pick(name: str) -> Any:
            if kw.get(name) is not None:
                return kw[name]
            return getenv_str(_ENV_KEYS[name])

        try:
            settings = cls(
                store_backend=str(pick("store_backend") or "pocketbase").strip().lower(),
                pocketbase_url=str(pick("pocketbase_url") or "http://127.0.0.1:8090").strip().rstrip("/"),
                pocketbase_email=str(pick("pocketbase_email") or "").strip(),
                pocketbase_password=str(pick("pocketbase_password") or ""),
                pocketbase_auth_collection=(str(pick("pocketbase_auth_collection") or "").strip() or None),
                sqlite_path=str(pick("sqlite_path") or "./local/state/jobtracker.db"),
                sources=_parse_sources(pick("sources")),
                concurrency=_int_or(pick("concurrency"), 3),
                group_delay_sec=_float_or(pick("group_delay_sec"), 2.0),
                max_attempts=_int_or(pick("max_attempts"), 3),
                base_delay_ms=int(_float_or(pick("base_delay_ms"), 1000)),
                request_timeout_sec=_float_or(pick("request_timeout_sec"), 30.0),
                skip_network=truthy(pick("skip_network")),
                batch_size=_int_or(pick("batch_size"), 10),
                batch_delay_sec=_float_or(pick("batch_delay_sec"), 0.5),
                stale_threshold_days=_int_or(pick("stale_threshold_days"), 7),
                sweep_after_sync=truthy(pick("sweep_after_sync")),
                deadline_sec=_float_or(pick("deadline_sec"), None),
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Invalid job tracker setting: {e}") from e

        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _parse_sources(value: Any) -> list[str]:
    """Accept a list of slugs or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        raise ConfigError("'sources' must be a list of slugs or a comma-separated string.")
    return [s.strip().lower() for s in items if s.strip()]


def _float_or(value: Any, default: float | None) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return float(value)


def _int_or(value: Any, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return int(value)


def _validate_settings(s: Settings) -> None:
    if s.store_backend not in _STORE_BACKENDS:
        raise ConfigError(f"'store_backend' must be one of {_STORE_BACKENDS}, got {s.store_backend!r}.")
    if s.store_backend == "pocketbase":
        if not s.pocketbase_url:
            raise ConfigError("'pocketbase_url' cannot be empty.")
        if not s.pocketbase_email or not s.pocketbase_password:
            raise ConfigError(
                "PocketBase credentials missing. Set POCKETBASE_ADMIN_EMAIL and POCKETBASE_ADMIN_PASSWORD."
            )
    if s.store_backend == "sqlite" and not s.sqlite_path.strip():
        raise ConfigError("'sqlite_path' cannot be empty.")

    if s.concurrency <= 0:
        raise ConfigError("'concurrency' must be >= 1.")
    if s.batch_size <= 0:
        raise ConfigError("'batch_size' must be >= 1.")
    if s.max_attempts <= 0:
        raise ConfigError("'max_attempts' must be >= 1.")
    if s.stale_threshold_days <= 0:
        raise ConfigError("'stale_threshold_days' must be >= 1.")
    for name in ("group_delay_sec", "batch_delay_sec", "base_delay_ms", "request_timeout_sec"):
        if getattr(s, name) < 0:
            raise ConfigError(f"'{name}' must be >= 0.")
    if s.deadline_sec is not None and s.deadline_sec <= 0:
        raise ConfigError("'deadline_sec' must be > 0 when provided.")
