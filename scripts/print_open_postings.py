#!/usr/bin/env python3
"""Print the newest active postings from a local SQLite job tracker store."""

import argparse
import os
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent  # ../scripts -> project root
sys.path.insert(0, str(PROJECT_ROOT))

from modules.job_tracker.lib.store import EMPLOYERS, POSTINGS, StoreError, eq  # noqa: E402
from modules.job_tracker.lib.store.sqlite import SqliteStore  # noqa: E402

DEFAULT_DB = os.getenv("JOBTRACKER_SQLITE_PATH", str(PROJECT_ROOT / "local" / "state" / "jobtracker.db"))


def format_timestamp(iso_str: str) -> str:
    """ISO timestamp -> readable local time."""
    try:
        dt = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return str(iso_str)
    return dt.astimezone().strftime("%Y-%m-%d %H:%M %Z")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--db", default=DEFAULT_DB, help="Path to the SQLite store")
    parser.add_argument("--limit", type=int, default=15)
    parser.add_argument("--company", help="Only postings from this employer name")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if not os.path.exists(args.db):
        print(f"Database not found: {args.db}", file=sys.stderr)
        return 1

    store = SqliteStore(args.db)
    try:
        employers = {e["id"]: e["name"] for e in store.list(EMPLOYERS)}
        conditions = [eq("status", "active")]
        if args.company:
            ids = [i for i, name in employers.items() if name.lower() == args.company.lower()]
            if not ids:
                print(f"No employer named {args.company!r}")
                return 0
            conditions.append(eq("employer", ids[0]))
        postings = store.list(POSTINGS, conditions, limit=args.limit, sort="-first_seen_at")
    except StoreError as e:
        print(f"Error reading {args.db}: {e}", file=sys.stderr)
        return 1

    if not postings:
        print("No active postings.")
        return 0

    for i, p in enumerate(postings, 1):
        print(f"{i:2d}. [{format_timestamp(p['first_seen_at'])}] {employers.get(p['employer'], '?')}")
        print(f"     Title:    {p['title']} ({p['location']})")
        if p.get("salary_min") and p.get("salary_max"):
            print(f"     Salary:   ${p['salary_min']:,} - ${p['salary_max']:,}")
        print(f"     Apply:    {p['application_url']}")
        print(f"     Seen for: {p.get('days_posted', 0)} day(s)")
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
