"""Lumi marketing report entrypoint.

Usage::

    # Reconcile the live backends for one week, leader scope
    python main.py report --start 2026-03-01 --end 2026-03-07 \\
        --role leader --viewer-team "Team A"

    # Reconcile local JSON exports instead of the live backends
    python main.py report --marketing-file data/mkt.json --orders-file data/f3.json

    # Replay writes queued while the backend was unreachable
    python main.py drain-outbox
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from lumi_report.application.report_service import ReportRequest, print_outcome, run_reporting_pipeline
from lumi_report.config import load_settings
from lumi_report.domain.access import ROLES, Viewer
from lumi_report.domain.filters import FilterCriteria
from lumi_report.infrastructure.local_store import LocalStore
from lumi_report.infrastructure.rest_source import RestClient


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}") from exc


def _criteria_from_args(args: argparse.Namespace) -> FilterCriteria:
    return FilterCriteria(
        start_date=args.start,
        end_date=args.end,
        products=args.product,
        markets=args.market,
        teams=args.team,
        shifts=args.shift,
        search_text=args.search,
    )


def cmd_report(args: argparse.Namespace) -> int:
    settings = load_settings()
    request = ReportRequest(
        criteria=_criteria_from_args(args),
        viewer=Viewer(role=args.role, team=args.viewer_team, email=args.viewer_email),
        include_unmatched=True if args.include_unmatched else None,
        output_dir=Path(args.output_dir),
        marketing_file=Path(args.marketing_file) if args.marketing_file else None,
        orders_file=Path(args.orders_file) if args.orders_file else None,
    )
    outcome = run_reporting_pipeline(request, settings=settings)
    print_outcome(outcome)
    return 0


def cmd_drain_outbox(args: argparse.Namespace) -> int:
    settings = load_settings()
    client = RestClient(timeout=settings.http_timeout, retries=settings.http_retries)
    report = LocalStore(settings.local_store_path).outbox().drain(client)
    print(f"Outbox drained: synced={report.synced}, failed={report.failed}, remaining={report.remaining}")
    return 1 if report.failed else 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lumi-report",
        description="Reconcile self-reported marketing activity against F3 orders.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for library messages.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- report ----
    rep = subparsers.add_parser("report", help="Build the reconciliation report.")
    rep.add_argument("--start", type=_parse_day, help="First day (inclusive), YYYY-MM-DD.")
    rep.add_argument("--end", type=_parse_day, help="Last day (inclusive), YYYY-MM-DD.")
    rep.add_argument("--product", action="append", default=[], help="Product filter, repeatable.")
    rep.add_argument("--market", action="append", default=[], help="Market filter, repeatable.")
    rep.add_argument("--team", action="append", default=[], help="Team filter, repeatable.")
    rep.add_argument("--shift", action="append", default=[], help="Shift filter, repeatable.")
    rep.add_argument("--search", default="", help="Case-insensitive text search.")
    rep.add_argument(
        "--include-unmatched",
        action="store_true",
        help="Add rows for staff that only appear in F3 orders.",
    )
    rep.add_argument("--role", default="admin", choices=list(ROLES), help="Viewer role.")
    rep.add_argument("--viewer-team", default="", help="Viewer team (leader scope).")
    rep.add_argument("--viewer-email", default="", help="Viewer email (user scope).")
    rep.add_argument("--output-dir", default="output", help="Directory for JSON/HTML/Excel output.")
    data = rep.add_argument_group("local sources")
    data.add_argument("--marketing-file", help="Marketing report JSON export.")
    data.add_argument("--orders-file", help="F3 orders JSON export.")
    rep.set_defaults(func=cmd_report)

    # ---- drain-outbox ----
    drain = subparsers.add_parser("drain-outbox", help="Replay writes queued while offline.")
    drain.set_defaults(func=cmd_drain_outbox)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except (ValueError, FileNotFoundError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
