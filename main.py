#!/usr/bin/env python3
"""
assetwatch -- Compliance, health and risk views for monitored government websites.

Reads an asset registry database and prints the same views the API serves.

Usage:
  python main.py seed-catalog
  python main.py summary
  python main.py pm-header
  python main.py indices
  python main.py header 12
  python main.py panel 12
  python main.py panel 12 --json
  python main.py ministry 3
  python main.py report 3
  python main.py summary --db sqlite:///other.db --no-color

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the registry (overridden by --db).
  HISTORY_WINDOW_DAYS, INDEX_LOW, INDEX_HIGH, ...  see core/config.py.
"""

import argparse
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.aggregates import (
    dashboard_summary,
    ministry_assets_summary,
    ministry_report,
    pm_dashboard_header,
    pm_dashboard_indices,
)
from core.config import get_settings
from core.formatter import (
    disable_color,
    print_control_panel,
    print_header,
    print_indices,
    print_ministry_report,
    print_ministry_summary,
    print_pm_header,
    print_summary,
    to_json,
)
from core.panels import AssetDashboardHeader, control_panel, dashboard_header
from registry.store import AssetRegistry, AssetSnapshot


def _load_snapshot(registry: AssetRegistry, asset_id: int) -> Optional[AssetSnapshot]:
    snapshot = registry.snapshot(asset_id)
    if snapshot is None:
        print(f"  [!] Asset {asset_id} not found.", file=sys.stderr)
    return snapshot


def _header(snapshot: AssetSnapshot, now: datetime) -> AssetDashboardHeader:
    return dashboard_header(
        snapshot.asset,
        snapshot.metrics,
        snapshot.latest_health,
        snapshot.health_history,
        snapshot.incidents,
        now=now,
        thresholds=get_settings().thresholds(),
    )


def _emit(result, as_json: bool, printer) -> None:
    if as_json:
        print(to_json(result))
    else:
        printer(result)


def _run_ministry(args: argparse.Namespace, registry: AssetRegistry, now: datetime) -> int:
    snapshot = registry.ministry_snapshot(args.ministry_id)
    if snapshot is None:
        print(f"  [!] Ministry {args.ministry_id} not found.", file=sys.stderr)
        return 1
    if args.command == "ministry":
        summary = ministry_assets_summary(snapshot.ministry, snapshot.assets, snapshot.incidents)
        _emit(summary, args.json, print_ministry_summary)
        return 0
    report = ministry_report(
        snapshot.ministry,
        snapshot.assets,
        snapshot.incidents,
        snapshot.metrics,
        snapshot.latest_results,
        {kpi.id: kpi for kpi in registry.list_kpis()},
        now=now,
    )
    _emit(report, args.json, print_ministry_report)
    return 0


def run(args: argparse.Namespace, registry: AssetRegistry) -> int:
    """Execute one subcommand against an open registry. Returns the exit code."""
    settings = get_settings()
    thresholds = settings.thresholds()
    now = datetime.now(timezone.utc)

    if args.command == "seed-catalog":
        inserted = registry.seed_catalog()
        print(f"  {inserted} KPI definition(s) added, {len(registry.list_kpis())} active.")
        return 0

    if args.command == "summary":
        result = dashboard_summary(registry.rollups(now=now), registry.list_incidents(), thresholds)
        _emit(result, args.json, print_summary)
        return 0

    if args.command == "pm-header":
        result = pm_dashboard_header(
            registry.rollups(now=now, comparison_days=settings.history_window_days),
            registry.list_ministries(),
            registry.list_incidents(),
            now=now,
            thresholds=thresholds,
            window_days=settings.history_window_days,
        )
        _emit(result, args.json, print_pm_header)
        return 0

    if args.command == "indices":
        result = pm_dashboard_indices(registry.rollups(now=now))
        _emit(result, args.json, print_indices)
        return 0

    if args.command in ("ministry", "report"):
        return _run_ministry(args, registry, now)

    snapshot = _load_snapshot(registry, args.asset_id)
    if snapshot is None:
        return 1
    header = _header(snapshot, now)

    if args.command == "header":
        _emit(header, args.json, print_header)
        return 0

    # panel
    since = now - timedelta(days=settings.history_window_days)
    panel = control_panel(
        header,
        snapshot.asset,
        registry.list_kpis(),
        registry.history(args.asset_id, since=since),
        registry.latest_results(args.asset_id),
        now=now,
    )
    _emit(panel, args.json, print_control_panel)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetwatch",
        description="Compliance, health and risk views for monitored digital assets.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed-catalog
  python main.py summary
  python main.py panel 12 --json > panel.json
  DATABASE_URL=postgresql://user:pw@host/db python main.py pm-header
        """,
    )
    parser.add_argument(
        "--db",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL or the local SQLite file)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output structured JSON instead of the terminal report",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color codes in terminal output",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.add_parser("seed-catalog", help="Insert the default KPI catalog (existing ids are kept)")
    commands.add_parser("summary", help="Admin dashboard summary across all assets")
    commands.add_parser("pm-header", help="Government-wide headline figures")
    commands.add_parser("indices", help="Government-wide non-zero index means")
    header = commands.add_parser("header", help="Dashboard header for one asset")
    header.add_argument("asset_id", type=int, metavar="ASSET_ID")
    panel = commands.add_parser("panel", help="Control panel (every KPI evaluated) for one asset")
    panel.add_argument("asset_id", type=int, metavar="ASSET_ID")
    ministry = commands.add_parser("ministry", help="Asset and incident totals for one ministry")
    ministry.add_argument("ministry_id", type=int, metavar="MINISTRY_ID")
    report = commands.add_parser("report", help="Per-asset compliance and open incidents for one ministry")
    report.add_argument("ministry_id", type=int, metavar="MINISTRY_ID")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply color preference before any output
    if args.no_color:
        disable_color()

    if not args.command:
        parser.print_help()
        return 0

    registry = AssetRegistry(args.db)
    try:
        return run(args, registry)
    finally:
        registry.close()


if __name__ == "__main__":
    sys.exit(main())
