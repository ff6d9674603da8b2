"""Command-line interface for the roster engine."""

from __future__ import annotations

import argparse
import json
from datetime import datetime, time, timedelta
from typing import Tuple

from rota.config import RotaConfig, load_config
from rota.domain.repositories import DatabaseManager, ShiftRepository
from rota.domain.selectors import BulkDeleteSelector
from rota.engine.orchestrator import ALGORITHMS, AutoScheduler, AutoScheduleRequest
from rota.io.export_csv import export_shifts_csv
from rota.io.import_csv import import_roles_csv
from rota.services.access import Actor
from rota.services.bulk_delete import BulkDeletionService
from rota.services.filters import ShiftFilters, apply_filters
from rota.summary import format_summary, summarize_shifts
from rota.timewindow import RELATIVE_PERIODS, SCHEDULE_PERIODS, parse_day, utc_now

CLI_USER = "cli"


def _load(args: argparse.Namespace) -> Tuple[RotaConfig, DatabaseManager]:
    cfg = load_config(args.config) if args.config else RotaConfig()
    db = DatabaseManager(args.db or cfg.db_url)
    return cfg, db


def _admin(args: argparse.Namespace) -> Actor:
    return Actor(user_id=CLI_USER, company_id=args.company, is_admin=True)


def _day_range(args: argparse.Namespace) -> Tuple[datetime, datetime]:
    """``--from``/``--to`` (inclusive days) as a half-open range; defaults to the next 7 days."""
    first = parse_day(args.date_from) if args.date_from else utc_now().date()
    last = parse_day(args.date_to) if args.date_to else first + timedelta(days=6)
    return datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min)


def _cmd_init_db(args: argparse.Namespace) -> None:
    """Initialize the database."""
    _, db = _load(args)
    if args.reset:
        db.reset()
    else:
        db.create_tables()
    print(f"[OK] Database initialized: {db.db_url}")


def _cmd_import_roles(args: argparse.Namespace) -> None:
    """Import role templates from CSV."""
    _, db = _load(args)
    db.create_tables()
    with db.session_scope() as session:
        count = import_roles_csv(session, args.csv)
    print(f"[OK] Imported {count} roles")


def _cmd_list(args: argparse.Namespace) -> None:
    """List shifts in a range, narrowed by display filters."""
    _, db = _load(args)
    start, end = _day_range(args)
    filters = ShiftFilters(
        view="mine" if args.user else None,
        current_user_id=args.user,
        status=args.status,
        location=args.location,
        shift_type=args.type,
        date_filter=args.when,
    )
    with db.session_scope() as session:
        shifts = ShiftRepository.query(session, start, end, company_id=args.company)
        shifts = apply_filters(shifts, filters)
        for shift in shifts:
            who = shift.user_id or "(open)"
            print(
                f"{shift.start_time:%Y-%m-%d %H:%M} - {shift.end_time:%Y-%m-%d %H:%M}  "
                f"{shift.title:<30} {who:<12} {shift.status:<18} {shift.id}"
            )
    print(f"[INFO] {len(shifts)} shifts")


def _schedule(args: argparse.Namespace, commit: bool) -> None:
    cfg, db = _load(args)
    request = AutoScheduleRequest(
        period=args.period,
        algorithm=args.algorithm or cfg.default_algorithm,
        start_date=args.start_date,
        end_date=args.end_date,
        auto_create_shifts=commit,
        excluded_staff_ids=args.exclude or [],
        max_shifts_per_staff=args.max_per_staff,
    )
    scheduler = AutoScheduler(cfg)
    with db.session_scope() as session:
        response = scheduler.run(session, _admin(args), request)

    if args.json:
        print(json.dumps(response.to_dict(), indent=2))
        return
    for candidate in response.shifts:
        who = candidate.assigned.name if candidate.assigned else "(unfilled)"
        suffix = f"  [{candidate.error}]" if candidate.error else ""
        print(f"{candidate.start_time:%a %Y-%m-%d %H:%M}  {candidate.title:<30} {who}{suffix}")
    for warning in response.warnings:
        print(f"[WARN] {warning}")
    for suggestion in response.suggestions:
        print(f"[INFO] {suggestion}")


def _cmd_preview(args: argparse.Namespace) -> None:
    """Preview a schedule without writing it."""
    _schedule(args, commit=False)


def _cmd_generate(args: argparse.Namespace) -> None:
    """Generate and persist a schedule."""
    _schedule(args, commit=True)


def _cmd_bulk_delete(args: argparse.Namespace) -> None:
    """Delete every shift in a day, ISO week or month."""
    _, db = _load(args)
    with db.session_scope() as session:
        if args.period:
            result = BulkDeletionService.delete_period(
                session, _admin(args), args.period, user_id=args.user, status=args.status
            )
        else:
            selector = BulkDeleteSelector(day=args.day, week=args.week, month=args.month)
            result = BulkDeletionService.delete(session, _admin(args), selector, user_id=args.user, status=args.status)
    print(f"[OK] Deleted {result['deleted_count']} shifts")


def _cmd_export(args: argparse.Namespace) -> None:
    """Export shifts to CSV."""
    _, db = _load(args)
    start, end = _day_range(args)
    with db.session_scope() as session:
        count = export_shifts_csv(session, args.out, start, end, company_id=args.company)
    print(f"[OK] Exported {count} shifts to {args.out}")


def _cmd_summary(args: argparse.Namespace) -> None:
    """Print hours and coverage numbers for a range."""
    _, db = _load(args)
    start, end = _day_range(args)
    with db.session_scope() as session:
        shifts = ShiftRepository.query(session, start, end, company_id=args.company)
        print(format_summary(summarize_shifts(shifts)))


def _add_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="date_from", help="First day YYYY-MM-DD (default: today)")
    parser.add_argument("--to", dest="date_to", help="Last day YYYY-MM-DD, inclusive (default: 6 days later)")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="rota", description="Shift roster engine")

    # Global options
    parser.add_argument("--db", help="Database URL (default: from config, else sqlite:///rota.db)")
    parser.add_argument("--config", help="Path to config YAML/JSON")

    sub = parser.add_subparsers(dest="command", required=True)

    # init-db command
    init = sub.add_parser("init-db", help="Create database tables")
    init.add_argument("--reset", action="store_true", help="Drop all tables first (deletes data)")
    init.set_defaults(func=_cmd_init_db)

    # import-roles command
    imp = sub.add_parser("import-roles", help="Import role templates from CSV")
    imp.add_argument("csv", help="Path to roles CSV")
    imp.set_defaults(func=_cmd_import_roles)

    # list command
    lst = sub.add_parser("list", help="List shifts")
    lst.add_argument("--company", help="Company id")
    _add_range(lst)
    lst.add_argument("--user", help="Only this staff member's shifts plus open shifts")
    lst.add_argument("--status", help="Exact status")
    lst.add_argument("--location", help="Exact location name")
    lst.add_argument("--type", choices=["assigned", "open"], help="Shift type")
    lst.add_argument("--when", choices=list(RELATIVE_PERIODS), help="Relative to now: today, week or month")
    lst.set_defaults(func=_cmd_list)

    # preview and generate commands
    for name, func, help_text in (
        ("preview", _cmd_preview, "Preview an auto-generated schedule"),
        ("generate", _cmd_generate, "Generate and store a schedule"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--company", required=True, help="Company id")
        cmd.add_argument("--period", default="this_week", choices=list(SCHEDULE_PERIODS))
        cmd.add_argument("--start-date", help="Custom period start YYYY-MM-DD")
        cmd.add_argument("--end-date", help="Custom period end YYYY-MM-DD (inclusive)")
        cmd.add_argument("--algorithm", choices=list(ALGORITHMS), help="Assignment algorithm")
        cmd.add_argument("--exclude", action="append", help="Staff id to leave out (repeatable)")
        cmd.add_argument("--max-per-staff", type=int, help="Cap on shifts per staff member")
        cmd.add_argument("--json", action="store_true", help="Print the full response as JSON")
        cmd.set_defaults(func=func)

    # bulk-delete command
    bulk = sub.add_parser("bulk-delete", help="Delete all shifts in a day, week or month")
    bulk.add_argument("--company", required=True, help="Company id")
    scope = bulk.add_mutually_exclusive_group(required=True)
    scope.add_argument("--period", choices=list(RELATIVE_PERIODS), help="Current day, week or month")
    scope.add_argument("--day", help="YYYY-MM-DD")
    scope.add_argument("--week", help="ISO week key YYYY-Www")
    scope.add_argument("--month", help="YYYY-MM")
    bulk.add_argument("--user", help="Only this staff member's shifts")
    bulk.add_argument("--status", help="Only shifts in this status")
    bulk.set_defaults(func=_cmd_bulk_delete)

    # export command
    exp = sub.add_parser("export", help="Export shifts to CSV")
    exp.add_argument("--out", required=True, help="Output CSV path")
    exp.add_argument("--company", help="Company id")
    _add_range(exp)
    exp.set_defaults(func=_cmd_export)

    # summary command
    summ = sub.add_parser("summary", help="Summarize shifts in a range")
    summ.add_argument("--company", help="Company id")
    _add_range(summ)
    summ.set_defaults(func=_cmd_summary)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
