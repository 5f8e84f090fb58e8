# service/logging_utils.py
"""
Structured JSONL activity/error logs.

One file per day and kind under LOG_DIR ({prefix}-YYYY-MM-DD.jsonl). Every
record is deep-copied, scrubbed of secret-looking keys and stamped with
host/pid before a single O_APPEND write. Settings are read from the
environment on each write so tests can point LOG_DIR at a temp dir.

Environment:
    LOG_DIR                  default /app/local/logs
    ACTIVITY_LOG_PREFIX      default activity
    ERROR_LOG_PREFIX         default error
    ACTIVITY_LOG_MAX_BYTES   size-based rotation; <=0 disables (default)
    LOG_DISABLE=1            drop records entirely
"""

from __future__ import annotations

import contextlib
import datetime as _dt
import json
import os
import socket
from collections.abc import Iterable
from typing import Any

REDACTED = "***REDACTED***"

# Case-insensitive substrings of keys whose values are never written
_DEFAULT_REDACT_KEYS = frozenset({
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "cookie",
})

_HOSTNAME = socket.gethostname()
_PID = os.getpid()


# ---- Public API --------------------------------------------------------------


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Append one activity record. Never mutates `record`.
    May raise OSError or TypeError (unserializable values).
    """
    _write_jsonl(_log_path_for_today(os.getenv("ACTIVITY_LOG_PREFIX", "activity")), record)


def write_error_log(record: dict[str, Any]) -> None:
    """Append one error record; same contract as write_activity_log."""
    _write_jsonl(_log_path_for_today(os.getenv("ERROR_LOG_PREFIX", "error")), record)


def get_activity_log_path() -> str:
    return _log_path_for_today(os.getenv("ACTIVITY_LOG_PREFIX", "activity"))


def redact(record: dict[str, Any], keys: Iterable[str] | None = None) -> dict[str, Any]:
    """Redacted deep copy of `record`; keys matching any substring in `keys` are scrubbed."""
    return _redact_deep(record, tuple(keys or _DEFAULT_REDACT_KEYS))


# ---- Internal helpers --------------------------------------------------------


def _log_dir() -> str:
    return os.getenv("LOG_DIR", "/app/local/logs")


def _max_bytes() -> int:
    try:
        return int(os.getenv("ACTIVITY_LOG_MAX_BYTES", "0"))
    except ValueError:
        return 0


def _log_path_for_today(prefix: str) -> str:
    return os.path.join(_log_dir(), f"{prefix}-{_dt.date.today().isoformat()}.jsonl")


def _rotate_file_if_needed(path: str) -> None:
    """Size-based rotation only; date rotation comes from the filename."""
    limit = _max_bytes()
    if limit <= 0:
        return
    try:
        if os.path.getsize(path) < limit:
            return
    except FileNotFoundError:
        return
    rotated = f"{path}.{_dt.datetime.now().strftime('%Y%m%d-%H%M%S')}"
    with contextlib.suppress(FileNotFoundError):
        os.replace(path, rotated)


def _scrub_bearer(value: str) -> str:
    """'Bearer abc' -> 'Bearer ***REDACTED***'."""
    if "bearer " not in value.lower():
        return value
    scheme, _, _rest = value.partition(" ")
    return f"{scheme} {REDACTED}"


def _redact_deep(value: Any, patterns: Iterable[str]) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and any(p in k.lower() for p in patterns) else _redact_deep(v, patterns)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_deep(v, patterns) for v in value)
    if isinstance(value, str):
        return _scrub_bearer(value)
    return value


def _write_jsonl(path: str, record: dict[str, Any]) -> None:
    if os.getenv("LOG_DISABLE") == "1":
        return

    payload = _redact_deep(record, _DEFAULT_REDACT_KEYS)
    meta = payload.get("_meta") if isinstance(payload.get("_meta"), dict) else {}
    payload["_meta"] = {**meta, "host": _HOSTNAME, "pid": _PID}
    # Serialize before touching the file so a bad record leaves no partial line.
    data = (json.dumps(payload, ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")

    def _append_once() -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        _rotate_file_if_needed(path)
        fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)

    try:
        _append_once()
    except OSError:
        # one retry for transient failures
        _append_once()
