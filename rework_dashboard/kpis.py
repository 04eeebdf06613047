"""
KPI computation functions: pure functions with no side effects.

Provides record filtering, hold/rework/scrap rollups, root-cause ranking,
time-bucketed cost series, goal scaling and goal-status classification.
"""

import logging
import math

import pandas as pd

from .config import (
    AT_GOAL_TOLERANCE,
    GOAL_REGISTRY,
    NEAR_GOAL_TOLERANCE,
    NOT_AVAILABLE,
    TIME_GRANULARITIES,
    UNKNOWN,
)
from .loaders.utils import is_finite, parse_flexible_date
from .records import HoldRecord, records_to_frame

logger = logging.getLogger(__name__)


def filter_records(
    records: list[HoldRecord],
    start: pd.Timestamp | None = None,
    end: pd.Timestamp | None = None,
    locations: set[str] | list[str] | None = None,
) -> list[HoldRecord]:
    """Apply the dashboard's date-range and location filters.

    The range is inclusive; `end` covers its whole day. Records whose hold /
    production date does not parse are dropped. An empty location set means
    all locations.
    """
    start_ts = pd.Timestamp(start).normalize() if start is not None else None
    end_ts = pd.Timestamp(end).normalize() if end is not None else None
    wanted = {loc for loc in (locations or []) if loc}

    result = []
    for record in records:
        dt = parse_flexible_date(record.event_date)
        if dt is None:
            continue
        if start_ts is not None and dt < start_ts:
            continue
        if end_ts is not None and dt > end_ts:
            continue
        if wanted and record.location not in wanted:
            continue
        result.append(record)
    return result


def _pct(part: float, whole: float):
    if whole <= 0:
        return NOT_AVAILABLE
    return part * 100 / whole


def _squashed_dispositions(df: pd.DataFrame) -> pd.Series:
    return (
        df["disposition"].fillna("").astype(str).str.lower().str.replace(r"\s+", "", regex=True)
    )


def compute_hold_metrics(records: list[HoldRecord]) -> dict:
    """Roll up hold, release, rework and scrap figures.

    Logic
    -----
    - total_hold_units = sum of cases_produced
    - total_reworked   = sum of cases_reworked
    - disposition "rework" (exact, whitespace ignored): unreworked cases count
      as released, cost_rework adds to rework_cost
    - otherwise disposition containing "release": unreworked cases released
    - independently, disposition containing "scrap": unreworked cases count
      as scrapped, cost_scrap adds to scrap_cost

    where unreworked = max(cases_produced - cases_reworked, 0). Percentages
    are "N/A" when there are no hold units.
    """
    df = records_to_frame(records)

    total_hold_units = int(df["cases_produced"].sum())
    total_reworked = int(df["cases_reworked"].sum())

    disp = _squashed_dispositions(df)
    unreworked = (df["cases_produced"] - df["cases_reworked"]).clip(lower=0)
    is_rework = disp == "rework"
    is_release = ~is_rework & disp.str.contains("release", regex=False)
    is_scrap = disp.str.contains("scrap", regex=False)

    released_units = int(unreworked[is_rework | is_release].sum())
    scrap_units = int(unreworked[is_scrap].sum())
    rework_cost = float(df.loc[is_rework, "cost_rework"].sum())
    scrap_cost = float(df.loc[is_scrap, "cost_scrap"].sum())

    return {
        "record_count": len(df),
        "total_hold_units": total_hold_units,
        "total_reworked": total_reworked,
        "released_units": released_units,
        "scrap_units": scrap_units,
        "rework_cost": rework_cost,
        "scrap_cost": scrap_cost,
        "released_pct": _pct(released_units, total_hold_units),
        "scrap_pct": _pct(scrap_units, total_hold_units),
        "rework_pct": _pct(total_reworked, total_hold_units),
        "top_root_cause": top_root_cause(records),
        "days_tracked": days_tracked(records),
        "root_cause_assignment_pct": root_cause_assignment_pct(records),
    }


def _ranked(records: list[HoldRecord], key: str, value: str) -> list[tuple[str, int]]:
    """Sum `value` grouped by `key`, largest first; ties keep first-seen order."""
    if not records:
        return []
    df = records_to_frame(records)
    labels = df[key].fillna("").astype(str).str.strip().replace("", UNKNOWN)
    totals = df[value].groupby(labels, sort=False).sum()
    totals = totals.sort_values(ascending=False, kind="stable")
    return [(str(label), int(total)) for label, total in totals.items()]


def rank_root_causes(records: list[HoldRecord]) -> list[tuple[str, int]]:
    """Root causes ranked by cases reworked."""
    return _ranked(records, "root_cause", "cases_reworked")


def rank_by_hold_units(records: list[HoldRecord], field: str) -> list[tuple[str, int]]:
    """Values of `field` (e.g. location, disposition) ranked by cases produced."""
    return _ranked(records, field, "cases_produced")


def top_root_cause(records: list[HoldRecord]) -> str | None:
    ranking = rank_root_causes(records)
    return ranking[0][0] if ranking else None


def days_tracked(records: list[HoldRecord]) -> int:
    """Number of distinct hold (or production) date values."""
    return len({r.event_date for r in records})


def root_cause_assignment_pct(records: list[HoldRecord]):
    """Share of records carrying a root cause other than blank / "Unknown"."""
    if not records:
        return NOT_AVAILABLE
    assigned = sum(
        1 for r in records if (r.root_cause or "").strip().lower() not in ("", UNKNOWN.lower())
    )
    return assigned * 100 / len(records)


def cost_time_series(records: list[HoldRecord], granularity: str = "month") -> pd.DataFrame:
    """Sum rework and scrap cost per day, week (Monday start) or month.

    Returns
    -------
    DataFrame with columns: bucket_start, label, cost_rework, cost_scrap,
    sorted ascending by bucket_start. Records with unparseable dates are left
    out.
    """
    granularity = granularity.lower()
    if granularity not in TIME_GRANULARITIES:
        raise ValueError(f"granularity must be one of {TIME_GRANULARITIES}, got '{granularity}'")

    columns = ["bucket_start", "label", "cost_rework", "cost_scrap"]
    rows = []
    for record in records:
        dt = parse_flexible_date(record.event_date)
        if dt is None:
            continue
        rows.append({"date": dt, "cost_rework": record.cost_rework, "cost_scrap": record.cost_scrap})
    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(rows)
    dates = pd.to_datetime(df["date"])
    if granularity == "day":
        df["bucket_start"] = dates.dt.normalize()
    elif granularity == "week":
        df["bucket_start"] = dates.dt.normalize() - pd.to_timedelta(dates.dt.weekday, unit="D")
    else:
        df["bucket_start"] = dates.dt.to_period("M").dt.to_timestamp()

    result = (
        df.groupby("bucket_start")[["cost_rework", "cost_scrap"]]
        .sum()
        .reset_index()
        .sort_values("bucket_start")
        .reset_index(drop=True)
    )
    result["label"] = result["bucket_start"].map(lambda ts: _bucket_label(ts, granularity))
    logger.debug("Built %s cost series with %d buckets", granularity, len(result))
    return result[columns]


def _bucket_label(ts: pd.Timestamp, granularity: str) -> str:
    if granularity == "day":
        return ts.strftime("%m/%d/%Y")
    if granularity == "week":
        return f"Week of {ts.strftime('%m/%d/%Y')}"
    return ts.strftime("%b %Y")


def goal_scaling_factor(
    filtered_hold_units: float,
    full_hold_units: float,
    filtered_count: int,
    full_count: int,
) -> float:
    """Share of the full dataset covered by the filtered subset.

    Uses hold units, or record counts when the full set has no hold units.
    """
    if full_hold_units > 0:
        return filtered_hold_units / full_hold_units
    if full_count > 0:
        return filtered_count / full_count
    return 1.0


def scale_goal(goal: float, kind: str, factor: float) -> float:
    """Scale an absolute goal by `factor`; clamp a rate goal to [0, 100]."""
    if kind == "rate":
        return min(max(goal, 0.0), 100.0)
    return goal * factor


def classify_goal_status(current, goal, direction: str) -> str:
    """Return 'At Goal', 'Exceeds Goal', 'Approaching', 'Off Track' or 'N/A'.

    Logic
    -----
    delta = current - goal
    at_tol = max(0.2, |goal| * 1%), near_tol = max(1.0, |goal| * 5%)

    - |delta| <= at_tol                      -> At Goal
    - direction='higher':
        Exceeds Goal if delta > at_tol
        Approaching  if delta >= -near_tol
        Off Track    otherwise
    - direction='lower' mirrors it: Exceeds Goal if delta < -at_tol,
      Approaching if delta <= near_tol.
    """
    if not is_finite(current) or not is_finite(goal):
        return NOT_AVAILABLE

    delta = current - goal
    at_tol = max(AT_GOAL_TOLERANCE[0], abs(goal) * AT_GOAL_TOLERANCE[1])
    near_tol = max(NEAR_GOAL_TOLERANCE[0], abs(goal) * NEAR_GOAL_TOLERANCE[1])

    if abs(delta) <= at_tol:
        return "At Goal"
    if direction == "higher":
        if delta > at_tol:
            return "Exceeds Goal"
        if delta >= -near_tol:
            return "Approaching"
        return "Off Track"
    # lower
    if delta < -at_tol:
        return "Exceeds Goal"
    if delta <= near_tol:
        return "Approaching"
    return "Off Track"


def evaluate_goals(
    filtered: list[HoldRecord],
    full: list[HoldRecord],
    goals: dict[str, float],
) -> dict[str, dict]:
    """Compare filtered-set KPIs with (scaled) goals.

    Returns
    -------
    Dict keyed by goal name:
    {
        "rework_cost": {"label": ..., "current": ..., "goal": ...,
                        "direction": "lower", "unit": "USD", "status": ...},
        ...
    }
    """
    metrics = compute_hold_metrics(filtered)
    full_hold_units = sum(r.cases_produced for r in full)
    factor = goal_scaling_factor(
        metrics["total_hold_units"], full_hold_units, len(filtered), len(full)
    )
    current_values = {
        "rework_cost": metrics["rework_cost"],
        "release_rate": metrics["released_pct"],
        "root_cause_assignment": metrics["root_cause_assignment_pct"],
    }

    summary: dict[str, dict] = {}
    for name, registry in GOAL_REGISTRY.items():
        raw_goal = goals.get(name, math.nan)
        goal = scale_goal(raw_goal, registry["kind"], factor) if is_finite(raw_goal) else math.nan
        current = current_values[name]
        summary[name] = {
            "label": registry["label"],
            "current": current if is_finite(current) else None,
            "goal": goal if is_finite(goal) else None,
            "direction": registry["direction"],
            "unit": registry["unit"],
            "status": classify_goal_status(current, goal, registry["direction"]),
        }
    return summary
