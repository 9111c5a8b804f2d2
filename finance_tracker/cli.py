"""Command-line interface for the Finance Tracker.

Usage:
  python -m finance_tracker.cli init-db [--reset]
  python -m finance_tracker.cli summary --login alice --from 2024-01-01 --json out/summary.json
  python -m finance_tracker.cli serve --port 3001

Every command accepts --config pointing at a JSON config file.
"""

from __future__ import annotations

import argparse
import datetime as dt
from typing import List, Optional

import sqlalchemy as sa

from . import categories, goals, ledger, savings
from .db import init_db
from .models import User, db
from .reports import build_summary, format_text_report, save_json
from .webapp import create_app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Finance Tracker")
    p.add_argument("--config", "-c", help="Path to JSON config")
    sub = p.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Create database tables")
    init.add_argument("--reset", action="store_true", help="Drop existing tables first")

    summary = sub.add_parser("summary", help="Print a finance summary for one user")
    summary.add_argument("--login", required=True, help="Login of the user to summarize")
    summary.add_argument("--from", dest="date_from", help="Start date (YYYY-MM-DD)")
    summary.add_argument("--to", dest="date_to", help="End date (YYYY-MM-DD)")
    summary.add_argument("--json", dest="json_out", help="Write summary JSON to path")

    serve = sub.add_parser("serve", help="Run the development server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3001)
    serve.add_argument("--debug", action="store_true")
    return p.parse_args(argv)


def _parse_date(d: Optional[str]) -> Optional[dt.date]:
    if not d:
        return None
    return dt.date.fromisoformat(d)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    app = create_app(config_path=args.config)

    if args.command == "serve":
        app.run(host=args.host, port=args.port, debug=args.debug)
        return 0

    with app.app_context():
        if args.command == "init-db":
            init_db(reset=args.reset)
            print("Database initialized.")
            return 0

        user = db.session.scalars(sa.select(User).where(User.login == args.login)).first()
        if user is None:
            print(f"No user with login {args.login!r}")
            return 1
        summary = build_summary(
            ledger.list_transactions(user.id),
            savings.list_savings(user.id),
            goals.list_goals(user.id),
            categories.list_categories(user.id),
            start=_parse_date(args.date_from),
            end=_parse_date(args.date_to),
        )
        print(format_text_report(summary))

        if args.json_out:
            save_json(summary, args.json_out)
            print(f"\nSaved JSON summary to: {args.json_out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
