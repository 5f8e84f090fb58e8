# service/config_schema.py
from __future__ import annotations

import copy
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the scheduler config is invalid."""


@dataclass
class _LoadResult:
    cfg: dict[str, Any]
    source: str


_TRIGGER_FIELDS = ("cron", "interval", "date", "daily_time")
_DAILY_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

# Used when the config file has no jobs: scrape every morning, sweep half an hour later.
DEFAULT_JOBS: list[dict[str, Any]] = [
    {
        "id": "daily-scrape",
        "module": "modules.job_tracker",
        "trigger": {"cron": {"hour": 6, "minute": 0, "timezone": "UTC"}},
        "summary": "Scrape all career pages and sync postings",
    },
    {
        "id": "daily-sweep",
        "module": "modules.job_tracker.sweep",
        "trigger": {"cron": {"hour": 6, "minute": 30, "timezone": "UTC"}},
        "summary": "Close postings not seen for a week",
    },
]


def load_config(path: str | None = None, *, use_defaults: bool = True) -> dict[str, Any]:
    """
    Load the scheduler configuration.

    Resolution order:
      1) Explicit `path` argument (if provided)
      2) os.environ['CONFIG_PATH'] (if set and the file exists)
      3) Internal default (DEFAULT_JOBS)

    An empty `jobs` list is replaced by DEFAULT_JOBS unless `use_defaults` is False.

    Returns:
        dict with at least {"jobs": [...], "timezone": str}.
    """
    resolved_path = path or os.environ.get("CONFIG_PATH")
    if resolved_path and not path and not os.path.exists(resolved_path):
        logger.info("CONFIG_PATH %s does not exist; using default jobs.", resolved_path)
        resolved_path = None

    if not resolved_path:
        cfg: dict[str, Any] = {"jobs": []}
    else:
        cfg = _read_any(resolved_path).cfg

    if use_defaults and not cfg.get("jobs"):
        cfg["jobs"] = copy.deepcopy(DEFAULT_JOBS)
    _apply_top_level_defaults(cfg)
    return cfg


def validate(cfg: dict[str, Any]) -> None:
    """
    Validate the configuration. Raise ConfigError on any problem.
    """
    if not isinstance(cfg, dict):
        raise ConfigError("Config must be a dict.")

    jobs = cfg.get("jobs")
    if jobs is None:
        raise ConfigError("Missing required top-level 'jobs' list.")
    if not isinstance(jobs, list):
        raise ConfigError("'jobs' must be a list.")

    tz = cfg.get("timezone")
    if tz is not None and not isinstance(tz, str):
        raise ConfigError("'timezone' must be a string if provided.")

    seen_ids: set[str] = set()
    for idx, job in enumerate(jobs):
        if not isinstance(job, dict):
            raise ConfigError(f"Job at index {idx} must be an object/dict.")

        module = job.get("module")
        if not isinstance(module, str) or not module.strip():
            raise ConfigError(f"Job {idx}: 'module' is required and must be a non-empty string.")

        job_id = _derive_job_id(job, idx)
        if job_id in seen_ids:
            raise ConfigError(f"Duplicate job id '{job_id}'.")
        seen_ids.add(job_id)

        _validate_trigger(job.get("trigger"), job_id)

        _require_optional_bool(job, "coalesce", job_id)
        _require_optional_int(job, "timeout_sec", job_id, allow_zero=True)
        _require_optional_int(job, "max_instances", job_id, allow_zero=False)
        _require_optional_int(job, "misfire_grace_time", job_id, allow_zero=True)

        if "kwargs" in job and not isinstance(job["kwargs"], dict):
            raise ConfigError(f"Job '{job_id}': 'kwargs' must be a dict if provided.")

        for opt_str in ("summary", "description"):
            if opt_str in job and not isinstance(job[opt_str], str):
                raise ConfigError(f"Job '{job_id}': '{opt_str}' must be a string if provided.")


def _validate_trigger(trigger: Any, job_id: str) -> None:
    if not isinstance(trigger, dict):
        raise ConfigError(f"Job '{job_id}': 'trigger' object is required.")

    present = [k for k in _TRIGGER_FIELDS if trigger.get(k) is not None]
    if len(present) != 1:
        raise ConfigError(f"Job '{job_id}': exactly one trigger required among {', '.join(_TRIGGER_FIELDS)}.")

    kind = present[0]
    value = trigger[kind]
    if kind == "interval":
        if not isinstance(value, dict):
            raise ConfigError(f"Job '{job_id}': interval must be an object of time kwargs.")
        for k in ("weeks", "days", "hours", "minutes", "seconds"):
            if k in value:
                _to_int(value[k], field=f"interval.{k}", job_id=job_id, allow_zero=True)
    elif kind == "cron":
        if not isinstance(value, (str, dict)):
            raise ConfigError(f"Job '{job_id}': cron must be a crontab string or an object.")
    elif kind == "date":
        run_at = value.get("run_at") if isinstance(value, dict) else value
        if isinstance(run_at, bool) or not isinstance(run_at, (str, int, float)) or run_at == "":
            raise ConfigError(f"Job '{job_id}': date must be an ISO-8601 string or epoch seconds.")
    elif kind == "daily_time":
        times = value.get("time") if isinstance(value, dict) else value
        for t in [times] if isinstance(times, str) else (times or [None]):
            _validate_daily_time(t, job_id)


def _apply_top_level_defaults(cfg: dict[str, Any]) -> None:
    if "jobs" not in cfg or not isinstance(cfg["jobs"], list):
        cfg["jobs"] = []

    tz = cfg.get("timezone")
    if not isinstance(tz, str) or not tz.strip():
        cfg["timezone"] = os.environ.get("TZ", "UTC")

    normalized_jobs: list[dict[str, Any]] = []
    for idx, job in enumerate(cfg["jobs"]):
        if not isinstance(job, dict):
            raise ConfigError(f"Job at index {idx} must be an object/dict.")

        job_copy = dict(job)
        job_copy["id"] = _derive_job_id(job_copy, idx)

        # Top-level trigger keys are accepted and folded into "trigger"
        loose = {k: job_copy.pop(k) for k in _TRIGGER_FIELDS if k in job_copy}
        if loose and "trigger" in job_copy:
            raise ConfigError(
                f"Job '{job_copy['id']}': do not mix top-level triggers {sorted(loose)} with nested 'trigger'."
            )
        if loose:
            job_copy["trigger"] = loose

        if "coalesce" in job_copy:
            job_copy["coalesce"] = _to_bool(job_copy["coalesce"], field="coalesce", job_id=job_copy["id"])

        for n, allow_zero in (("timeout_sec", True), ("max_instances", False), ("misfire_grace_time", True)):
            if n in job_copy:
                job_copy[n] = _to_int(job_copy[n], field=n, job_id=job_copy["id"], allow_zero=allow_zero)

        normalized_jobs.append(job_copy)

    cfg["jobs"] = normalized_jobs


def _derive_job_id(job: dict[str, Any], idx: int) -> str:
    # id | name | module -> id
    for key in ("id", "name", "module"):
        v = job.get(key)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return f"job_{idx}"


def _validate_daily_time(dt: Any, job_id: str) -> None:
    if not isinstance(dt, str):
        raise ConfigError(f"Job '{job_id}': daily_time.time must be a string like 'HH:MM'.")
    m = _DAILY_TIME_RE.match(dt.strip())
    if not m:
        raise ConfigError(f"Job '{job_id}': daily_time.time must match HH:MM[:SS] (24h).")
    hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if not (0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59):
        raise ConfigError(f"Job '{job_id}': daily_time.time out of range (00:00..23:59).")


def _require_optional_bool(job: dict[str, Any], field: str, job_id: str) -> None:
    if field in job:
        _to_bool(job[field], field=field, job_id=job_id)


def _require_optional_int(job: dict[str, Any], field: str, job_id: str, *, allow_zero: bool) -> None:
    if field in job:
        _to_int(job[field], field=field, job_id=job_id, allow_zero=allow_zero)


def _to_bool(value: Any, *, field: str, job_id: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"1", "true", "yes", "on"}:
            return True
        if v in {"0", "false", "no", "off"}:
            return False
    raise ConfigError(f"Job '{job_id}': '{field}' must be a boolean (or boolean-like string).")


def _to_int(value: Any, *, field: str, job_id: str, allow_zero: bool) -> int:
    try:
        iv = int(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"Job '{job_id}': '{field}' must be an integer.") from err
    if iv < 0 or (iv == 0 and not allow_zero):
        raise ConfigError(f"Job '{job_id}': '{field}' must be >= {'0' if allow_zero else '1'} (got {iv}).")
    return iv


def _read_any(path: str) -> _LoadResult:
    lower = path.lower()
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}: {e}") from e

    if lower.endswith((".yml", ".yaml")):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Top-level YAML must be a mapping/object.")
        return _LoadResult(cfg=data, source=path)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Top-level JSON must be an object.")
    return _LoadResult(cfg=data, source=path)
