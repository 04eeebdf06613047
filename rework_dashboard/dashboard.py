"""
Dashboard-ready output functions.

These are the primary entry points for a front end. Each function returns
plain dicts, lists or DataFrames suitable for rendering KPI cards, donut and
Pareto charts, the cost-over-time bar chart and the defect-driver table.
"""

import logging

import pandas as pd

from .config import (
    DEFAULT_GRANULARITY,
    DEFECT_DRIVER_ROWS,
    DEFECT_DRIVER_SORTS,
    NOT_AVAILABLE,
    TOP_CAUSES,
    UNKNOWN,
)
from .kpis import (
    compute_hold_metrics,
    cost_time_series,
    evaluate_goals,
    filter_records,
    rank_root_causes,
)
from .loaders.utils import is_finite, normalise_number
from .records import HoldRecord
from .session import DashboardSession

logger = logging.getLogger(__name__)


def get_manager_overview(
    session: DashboardSession,
    start: pd.Timestamp | None = None,
    end: pd.Timestamp | None = None,
    locations: set[str] | None = None,
) -> dict:
    """Single entry point a front end calls to populate the summary cards.

    Returns
    -------
    {
        "record_count": ..., "total_hold_units": ..., "released_pct": ...,
        ...,  # every key of kpis.compute_hold_metrics
        "goals": {...},  # kpis.evaluate_goals
        "message": "...", "severity": "success" | "error",
    }
    """
    active = filter_records(session.records, start, end, locations)
    overview = compute_hold_metrics(active)
    overview["goals"] = evaluate_goals(active, session.records, session.goals)
    overview["message"], overview["severity"] = status_message(len(session.records), len(active))
    return overview


def status_message(total_loaded: int, active_count: int) -> tuple[str, str]:
    """Return (message, severity) for the loaded / filtered state.

    An empty dataset and an empty filter result are reported differently.
    """
    if total_loaded == 0:
        return "No data loaded. Please upload a CSV or Excel file.", "error"
    if active_count == 0:
        return "No records match your filters.", "error"
    return f"✓ Showing {active_count} of {total_loaded} records.", "success"


def describe_date_range(
    start: pd.Timestamp | None,
    end: pd.Timestamp | None,
    count: int,
) -> str:
    """Caption for the active date filter."""
    fmt = "%b %d, %Y"
    if start is None and end is None:
        return f"Showing all records ({count})"
    if start is not None and end is not None:
        return f"Showing {start.strftime(fmt)} → {end.strftime(fmt)} ({count} records)"
    if start is not None:
        return f"From {start.strftime(fmt)} onward ({count} records)"
    return f"Up to {end.strftime(fmt)} ({count} records)"


def get_location_options(records: list[HoldRecord]) -> list[str]:
    """Sorted distinct locations for the location filter."""
    return sorted({r.location for r in records if r.location})


def get_disposition_mix(records: list[HoldRecord], metrics: dict | None = None) -> dict[str, float]:
    """Released / Reworked / Scrapped case counts for the disposition donut.

    Uses the KPI percentages x total hold units; when those are unavailable
    falls back to summing cases per disposition keyword.
    """
    metrics = metrics or compute_hold_metrics(records)
    total = metrics["total_hold_units"]
    pcts = [metrics["released_pct"], metrics["rework_pct"], metrics["scrap_pct"]]

    if total > 0 and all(is_finite(p) for p in pcts):
        released, reworked, scrapped = (total * p / 100 for p in pcts)
        return {"Released": released, "Reworked": reworked, "Scrapped": scrapped}

    mix = {"Released": 0.0, "Reworked": 0.0, "Scrapped": 0.0}
    for record in records:
        disp = (record.disposition or "").strip().lower()
        if "release" in disp:
            mix["Released"] += record.unreworked_cases
        if "rework" in disp:
            mix["Reworked"] += record.cases_reworked
        if "scrap" in disp:
            mix["Scrapped"] += record.unreworked_cases
    return mix


def get_cost_over_time(records: list[HoldRecord], granularity: str = DEFAULT_GRANULARITY) -> pd.DataFrame:
    return cost_time_series(records, granularity)


def get_root_cause_breakdown(records: list[HoldRecord], top_n: int = TOP_CAUSES) -> list[tuple[str, int]]:
    """Top root causes by cases reworked, with the remainder folded into "Other"."""
    ranking = rank_root_causes(records)
    top = ranking[:top_n]
    other = sum(value for _, value in ranking[top_n:])
    if other > 0:
        top.append(("Other", other))
    return top


def get_root_cause_pareto(records: list[HoldRecord], top_n: int = TOP_CAUSES) -> list[tuple[str, int]]:
    return rank_root_causes(records)[:top_n]


def _lag_days(raw: str | None) -> float:
    return normalise_number(raw or "", default=float("nan"))


def _lag_sort_key(record: HoldRecord) -> float:
    lag = _lag_days(record.rework_lag)
    return lag if is_finite(lag) else 0.0


_DRIVER_SORT_KEYS = {
    "cases": lambda r: r.cases_produced or 0,
    "cost": lambda r: r.cost or 0.0,
    "lag": _lag_sort_key,
}


def get_defect_drivers(
    records: list[HoldRecord],
    sort_by: str = "cases",
    limit: int = DEFECT_DRIVER_ROWS,
) -> pd.DataFrame:
    """Top hold records for the defect-driver table.

    Parameters
    ----------
    sort_by : "cases" (cases produced), "cost" or "lag" (numeric rework lag),
              all descending.

    Returns
    -------
    DataFrame with columns:
        work_order, date, cases, root_cause, disposition, cost, age
    """
    if sort_by not in DEFECT_DRIVER_SORTS:
        raise ValueError(f"sort_by must be one of {DEFECT_DRIVER_SORTS}, got '{sort_by}'")

    columns = ["work_order", "date", "cases", "root_cause", "disposition", "cost", "age"]
    if not records:
        return pd.DataFrame(columns=columns)

    rows = []
    for r in sorted(records, key=_DRIVER_SORT_KEYS[sort_by], reverse=True)[:limit]:
        lag_raw = (r.rework_lag or "").strip()
        lag = _lag_days(lag_raw)
        if lag_raw and is_finite(lag):
            age = f"{lag:g} days"
        else:
            age = lag_raw or "—"
        rows.append({
            "work_order": (r.work_order_id or "").strip() or "—",
            "date": r.event_date or "—",
            "cases": r.cases_produced,
            "root_cause": r.root_cause or "—",
            "disposition": r.disposition or "—",
            "cost": r.cost,
            "age": age,
        })
    return pd.DataFrame(rows, columns=columns)


def get_top_defect_items(records: list[HoldRecord], limit: int = DEFECT_DRIVER_ROWS) -> pd.DataFrame:
    """Items (description, else item type) ranked by cases reworked.

    Returns
    -------
    DataFrame with columns: item, cases_reworked, pct_of_reworked
    """
    totals: dict[str, int] = {}
    for r in records:
        name = r.description if r.description and r.description != UNKNOWN else r.item_type
        name = name or UNKNOWN
        totals[name] = totals.get(name, 0) + r.cases_reworked

    grand_total = sum(totals.values())
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return pd.DataFrame(
        [
            {
                "item": name,
                "cases_reworked": count,
                "pct_of_reworked": count / grand_total * 100 if grand_total else 0.0,
            }
            for name, count in ranked
        ],
        columns=["item", "cases_reworked", "pct_of_reworked"],
    )


def format_pct(value) -> str:
    """Render a KPI percentage for a card ("20.0%" or "N/A")."""
    return f"{value:.1f}%" if is_finite(value) else NOT_AVAILABLE


def format_currency(value) -> str:
    """Render a cost card; zero or missing cost shows as "N/A"."""
    return f"${value:,.2f}" if is_finite(value) and value > 0 else NOT_AVAILABLE
