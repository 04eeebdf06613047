"""
Rework Dashboard — Command-line pipeline run.

Loads one quality-hold export, applies the dashboard filters and prints the
dashboard-ready outputs as plain-text summaries.

Usage:
    python main.py holds.xlsx
    python main.py holds.csv --start 2024-01-01 --end 2024-03-31 --location "Plant A"
    python main.py holds.csv --store-dir .rework-store --granularity week
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from rework_dashboard.config import DEFAULT_GRANULARITY, DEFECT_DRIVER_SORTS, TIME_GRANULARITIES
from rework_dashboard.dashboard import (
    describe_date_range,
    format_currency,
    format_pct,
    get_cost_over_time,
    get_defect_drivers,
    get_disposition_mix,
    get_location_options,
    get_manager_overview,
    get_root_cause_breakdown,
    get_top_defect_items,
)
from rework_dashboard.ingest import ingest_file
from rework_dashboard.insights import RemoteInsights, default_remote, generate_insights
from rework_dashboard.kpis import filter_records
from rework_dashboard.session import DashboardSession
from rework_dashboard.storage import JsonFileStore, MemoryStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Quality-hold rework dashboard")
    parser.add_argument("file", nargs="?", help="CSV or Excel export to load")
    parser.add_argument("--start", help="First hold date to include (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last hold date to include (YYYY-MM-DD)")
    parser.add_argument(
        "--location", action="append", default=[],
        help="Location to include; repeat for several (default: all)",
    )
    parser.add_argument("--granularity", choices=TIME_GRANULARITIES, default=DEFAULT_GRANULARITY)
    parser.add_argument("--sort-by", choices=DEFECT_DRIVER_SORTS, default="cases")
    parser.add_argument(
        "--store-dir",
        help="Directory to persist the loaded batch in; reused when no file is given",
    )
    parser.add_argument("--clear", action="store_true", help="Clear persisted data and exit")
    parser.add_argument("--insights-url", help="Insights service endpoint (overrides REWORK_INSIGHTS_URL)")
    parser.add_argument("--insights-health-url", help="Insights service health endpoint")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _parse_day(text: str | None) -> pd.Timestamp | None:
    return pd.Timestamp(text).normalize() if text else None


def _print_overview(overview: dict) -> None:
    print(f"\n  Total hold units : {overview['total_hold_units']:,}")
    print(f"  Cases reworked   : {overview['total_reworked']:,}")
    print(f"  Released         : {format_pct(overview['released_pct'])}")
    print(f"  Reworked         : {format_pct(overview['rework_pct'])}")
    print(f"  Scrapped         : {format_pct(overview['scrap_pct'])}")
    print(f"  Rework cost      : {format_currency(overview['rework_cost'])}")
    print(f"  Scrap cost       : {format_currency(overview['scrap_cost'])}")
    print(f"  Top root cause   : {overview['top_root_cause'] or '—'}")
    print(f"  Days tracked     : {overview['days_tracked']}")

    print("\n  Goals:")
    for goal in overview["goals"].values():
        if goal["unit"] == "USD":
            current, target = format_currency(goal["current"]), format_currency(goal["goal"])
        else:
            current, target = format_pct(goal["current"]), format_pct(goal["goal"])
        print(f"    {goal['label']:22s} | {current:>16s} vs {target:>16s} | {goal['status']}")


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline once and print the dashboard outputs. Returns an exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    store = JsonFileStore(args.store_dir) if args.store_dir else MemoryStore()
    session = DashboardSession.from_store(store)

    if args.clear:
        session.clear()
        print("All data cleared.")
        return 0

    print("=" * 70)
    print("  REWORK DASHBOARD — Quality Hold Analytics")
    print("=" * 70)

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("\n[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)

    if args.file:
        result = ingest_file(args.file, session)
        print(f"\n  {result.message}")
        for warning in result.warnings:
            print(f"  ! {warning}")
        if not result.ok:
            return 1
        if result.sheet_name:
            print(f"  Sheet: {result.sheet_name}")
    elif session.has_data:
        print(f"\n  Using {len(session.records)} stored records")

    if not session.has_data:
        print("\n  No data loaded. Please upload a CSV or Excel file.")
        return 1

    # ------------------------------------------------------------------
    # 2. Filters
    # ------------------------------------------------------------------
    print("\n[ 2 ] FILTERS")
    print("-" * 40)

    try:
        start, end = _parse_day(args.start), _parse_day(args.end)
    except ValueError as exc:
        print(f"\n  Invalid date filter: {exc}")
        return 2
    locations = set(args.location)

    active = filter_records(session.records, start, end, locations)
    logger.info("Filtered to %d of %d records", len(active), len(session.records))
    print(f"\n  Locations available: {get_location_options(session.records)}")
    print(f"  {describe_date_range(start, end, len(active))}")

    # ------------------------------------------------------------------
    # 3. Dashboard outputs
    # ------------------------------------------------------------------
    print("\n[ 3 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    overview = get_manager_overview(session, start, end, locations)
    print(f"\n  {overview['message']}")
    if not active:
        return 0
    _print_overview(overview)

    print("\n  Disposition mix:")
    for label, cases in get_disposition_mix(active, overview).items():
        print(f"    {label:10s} | {cases:,.0f}")

    print("\n  Root causes (cases reworked):")
    for cause, cases in get_root_cause_breakdown(active):
        print(f"    {cause:30s} | {cases:,}")

    cost_series = get_cost_over_time(active, args.granularity)
    print(f"\n  Cost over time ({args.granularity}):")
    if not cost_series.empty:
        print(cost_series[["label", "cost_rework", "cost_scrap"]].to_string(index=False))

    print(f"\n  Defect drivers (by {args.sort_by}):")
    print(get_defect_drivers(active, sort_by=args.sort_by).to_string(index=False))

    print("\n  Top defect items:")
    print(get_top_defect_items(active).to_string(index=False))

    # ------------------------------------------------------------------
    # 4. Insights
    # ------------------------------------------------------------------
    print("\n[ 4 ] INSIGHTS")
    print("-" * 40)

    if args.insights_url:
        remote = RemoteInsights(args.insights_url, args.insights_health_url)
    else:
        remote = default_remote()
    insights = generate_insights(active, overview, remote)
    print(f"\n  Source: {insights.source}")
    for line in insights.insights:
        print(f"  - {line}")
    if insights.key_phrases:
        print(f"  Key phrases: {', '.join(insights.key_phrases)}")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
