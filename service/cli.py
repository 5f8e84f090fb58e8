# service/cli.py
"""
Command-line entrypoints for the job tracker container.

Subcommands
-----------
serve [--host H] [--port P] [--no-api]
    - Starts the APScheduler loop via service.scheduler.start()
    - Serves the HTTP trigger (service.api) with uvicorn until SIGINT/SIGTERM

run MODULE [--kwargs k=v ...]
    - Executes a module ad-hoc via runner.run_module_once(...)

scrape [--company SLUG] [--skip-network]
    - One ingestion cycle; prints the JSON summary

sweep [--threshold-days N]
    - Closes postings not seen for N days

sources
    - Prints the registered sources

list-jobs / validate-config
    - Scheduler configuration helpers

Exit codes: 0 ok, 1 failure (bad config, store auth, deadline, unknown company), 130 interrupted.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import time
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import uvicorn

from service import config_schema as _config_schema
from service import logging_utils as L
from service import runner as _runner
from service import scheduler as _scheduler

LOG = logging.getLogger("service.cli")


def _ensure_logging() -> None:
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    key=value strings -> dict. JSON-looking values (numbers, bools, arrays,
    objects, quoted strings) are decoded; anything else stays a raw string.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k, v = k.strip(), v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except json.JSONDecodeError:
            out[k] = v
    return out


def _print_table(rows: Iterable[tuple[str, str]], headers: tuple[str, str] = ("ID", "DETAILS")) -> None:
    rows = list(rows)
    w0 = max(len(headers[0]), *(len(r[0]) for r in rows)) if rows else len(headers[0])
    w1 = max(len(headers[1]), *(len(r[1]) for r in rows)) if rows else len(headers[1])
    sep = f"+-{'-' * w0}-+-{'-' * w1}-+"
    print(sep)
    print(f"| {headers[0].ljust(w0)} | {headers[1].ljust(w1)} |")
    print(sep)
    for c0, c1 in rows:
        print(f"| {c0.ljust(w0)} | {c1.ljust(w1)} |")
    print(sep)


def _job_rows(cfg: dict[str, Any]) -> list[tuple[str, str]]:
    rows = []
    for idx, j in enumerate(cfg.get("jobs") or []):
        jid = str(j.get("id") or j.get("name") or idx)
        desc = j.get("summary") or j.get("description") or json.dumps(j.get("trigger"), default=str)
        rows.append((jid, f"{j.get('module')}: {desc}"))
    return rows


def _fail(where: str, e: BaseException, **fields: Any) -> int:
    print(f"FAILURE: {e}", file=sys.stderr)
    try:
        L.write_error_log({"ts": _now_iso(), "where": where, "error": repr(e), **fields})
    except OSError:
        LOG.debug("write_error_log failed", exc_info=True)
    return 1


# ------------------------------ Subcommands ----------------------------------
def cmd_validate_config(args: argparse.Namespace) -> int:
    try:
        cfg = _config_schema.load_config(args.config, use_defaults=False)
        _config_schema.validate(cfg)
    except _config_schema.ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 1
    print("OK: configuration is valid.")
    return 0


def cmd_list_jobs(args: argparse.Namespace) -> int:
    try:
        cfg = _config_schema.load_config(args.config)
    except _config_schema.ConfigError as e:
        print(f"ERROR: failed to list jobs: {e}", file=sys.stderr)
        return 1
    rows = _job_rows(cfg)
    if not rows:
        print("No jobs found in config.")
        return 0
    _print_table(rows, headers=("JOB", "DETAILS"))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    start_time = time.monotonic()
    kwargs = _parse_kv_pairs(args.kwargs or [])
    LOG.debug("Run module %s with kwargs=%s", args.module, kwargs)

    try:
        result, run_id = _runner.run_module_once(module=args.module, kwargs=kwargs, trigger_type="adhoc")
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        return _fail("cli.run", e, module=args.module, kwargs=kwargs,
                     duration_ms=int((time.monotonic() - start_time) * 1000))

    L.write_activity_log({
        "ts": _now_iso(),
        "event": "cli_run",
        "run_id": run_id,
        "module": args.module,
        "trigger_type": "adhoc",
        "kwargs": kwargs,
        "duration_ms": int((time.monotonic() - start_time) * 1000),
    })
    print(f"DONE: {(result or {}).get('message', 'Module run completed.')}")
    if args.json and result is not None:
        print(json.dumps(result, indent=2, default=str))
    return 0


def _run_tracker_module(module: str, kwargs: dict[str, Any], where: str) -> int:
    try:
        result, _run_id = _runner.run_module_once(module=module, kwargs=kwargs, trigger_type="cli")
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        return _fail(where, e, kwargs=kwargs)
    print(json.dumps(result, indent=2, default=str))
    return 0


def cmd_scrape(args: argparse.Namespace) -> int:
    kwargs: dict[str, Any] = {}
    if args.company:
        kwargs["company"] = args.company
    if args.skip_network:
        kwargs["skip_network"] = True
    return _run_tracker_module("modules.job_tracker", kwargs, "cli.scrape")


def cmd_sweep(args: argparse.Namespace) -> int:
    kwargs: dict[str, Any] = {}
    if args.threshold_days is not None:
        kwargs["threshold_days"] = args.threshold_days
    return _run_tracker_module("modules.job_tracker.sweep", kwargs, "cli.sweep")


def cmd_sources(args: argparse.Namespace) -> int:
    from modules.job_tracker.lib.scrapers import all_sources

    _print_table(
        ((slug, f"{cls.employer.name} ({cls.employer.career_page_url})") for slug, cls in all_sources().items()),
        headers=("SOURCE", "EMPLOYER"),
    )
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """
    Run the scheduler and (unless --no-api) the HTTP trigger until a
    termination signal. uvicorn owns SIGINT/SIGTERM while it runs.
    """
    L.write_activity_log({"ts": _now_iso(), "event": "serve_start", "api": not args.no_api})

    try:
        sched = _scheduler.start(config_path=args.config)
    except Exception as e:
        LOG.exception("Scheduler failed to start")
        return _fail("cli.serve", e)
    LOG.info("Scheduler jobs: %s", ", ".join(sched.get_job_ids()) or "(none)")

    try:
        if args.no_api:
            stopping = []
            for sig in (signal.SIGINT, signal.SIGTERM):
                signal.signal(sig, lambda signum, frame: stopping.append(signum))
            while not stopping:
                time.sleep(0.3)
        else:
            from service.api import create_app

            uvicorn.run(create_app(), host=args.host, port=args.port, log_level=os.getenv("LOG_LEVEL", "info").lower())
    except KeyboardInterrupt:
        return 130
    finally:
        sched.stop()
        sched.join(timeout=10.0)
        L.write_activity_log({"ts": _now_iso(), "event": "serve_stop"})
    return 0


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="python -m service.cli", description="Job tracker command-line tools")
    p.add_argument("--config", help="Path to scheduler config file (fallbacks to CONFIG_PATH env or default jobs).")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="Run the scheduler and the HTTP trigger.")
    sp.add_argument("--host", default=os.getenv("API_HOST", "0.0.0.0"))
    sp.add_argument("--port", type=int, default=int(os.getenv("API_PORT", "8000")))
    sp.add_argument("--no-api", action="store_true", help="Scheduler only.")
    sp.set_defaults(func=cmd_serve)

    sp = sub.add_parser("run", help="Execute a module ad-hoc via runner.run_module_once().")
    sp.add_argument("module", help="Module path to run (e.g., modules.job_tracker).")
    sp.add_argument("--kwargs", metavar="k=v", nargs="*", help="Keyword arguments for the module (JSON values supported).")
    sp.add_argument("--json", action="store_true", help="Print the module's result as JSON.")
    sp.set_defaults(func=cmd_run)

    sp = sub.add_parser("scrape", help="Run one ingestion cycle now.")
    sp.add_argument("--company", help="Only this source slug (e.g., waymo).")
    sp.add_argument("--skip-network", action="store_true", help="Use each source's sample postings.")
    sp.set_defaults(func=cmd_scrape)

    sp = sub.add_parser("sweep", help="Close postings not seen recently.")
    sp.add_argument("--threshold-days", type=int, default=None)
    sp.set_defaults(func=cmd_sweep)

    sp = sub.add_parser("sources", help="List registered sources.")
    sp.set_defaults(func=cmd_sources)

    sp = sub.add_parser("list-jobs", help="Print scheduled jobs.")
    sp.set_defaults(func=cmd_list_jobs)

    sp = sub.add_parser("validate-config", help="Verify scheduler configuration.")
    sp.set_defaults(func=cmd_validate_config)

    return p


def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    args = _build_parser().parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
