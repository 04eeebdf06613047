"""
Row Normalizer: turn raw data rows into HoldRecords.

Cost attribution is a per-row unit-cost allocation: `cost` is the total for
the batch's `cases_produced`, so rework cost scales by the reworked cases and
scrap cost by the cases that were not reworked.
"""

import logging
import math

from ..config import UNKNOWN, WORK_ORDER_FALLBACK_INDEX
from ..records import HoldRecord
from .columns import ColumnMap
from .utils import cell_text, is_blank_row, normalise_count, normalise_number, normalise_rate

logger = logging.getLogger(__name__)

_LOCATION_FIELDS = ("plant_name", "work_center", "site", "location")


def _cell(row: list[str], idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    return row[idx]


def attribute_cost(
    cost: float,
    cases_produced: int,
    cases_reworked: int,
    disposition: str | None,
) -> tuple[float, float]:
    """Return (cost_rework, cost_scrap) for one row.

    Logic
    -----
    - unit_cost = cost / cases_produced (0 when nothing was produced)
    - "rework" or "rework ..."           -> unit_cost * cases_reworked
    - "scrap", "scrapped" or "scrap ..." -> unit_cost * max(produced - reworked, 0)
    - anything else                      -> 0, 0
    """
    unit_cost = cost / cases_produced if cases_produced > 0 else 0.0
    trimmed = (disposition or "").strip().lower()
    squashed = "".join(trimmed.split())

    cost_rework = 0.0
    cost_scrap = 0.0
    if squashed == "rework" or trimmed.startswith("rework "):
        cost_rework = unit_cost * cases_reworked
    if squashed in ("scrap", "scrapped") or trimmed.startswith("scrap "):
        cost_scrap = unit_cost * max(cases_produced - cases_reworked, 0)
    return cost_rework, cost_scrap


def _goal_value(text: str, rate: bool) -> float:
    if rate:
        return normalise_rate(text)
    return normalise_number(text, default=math.nan)


def normalize_row(raw_cells: list, columns: ColumnMap) -> HoldRecord | None:
    """Build a HoldRecord from one data row, or None to skip the row.

    Rows are skipped when every cell is blank or the date cell is blank.
    """
    if is_blank_row(raw_cells):
        return None
    row = [cell_text(c) for c in raw_cells]

    date_value = _cell(row, columns["date"])
    if not date_value:
        return None

    cases_produced = normalise_count(_cell(row, columns["cases_produced"]))
    cases_reworked = normalise_count(_cell(row, columns["cases_reworked"]))
    cost = max(normalise_number(_cell(row, columns["cost"]), 0.0), 0.0)

    cost_impact = cost
    if columns.has("cost_impact"):
        cost_impact = normalise_number(_cell(row, columns["cost_impact"]), default=cost)

    disposition = _cell(row, columns["disposition"]) if columns.has("disposition") else None
    cost_rework, cost_scrap = attribute_cost(cost, cases_produced, cases_reworked, disposition)

    # First non-blank per row: mfg order, work order, then the fallback cell
    work_order = next(
        (value for value in (
            _cell(row, columns["mfg_order"]),
            _cell(row, columns["work_order"]),
            _cell(row, WORK_ORDER_FALLBACK_INDEX),
        ) if value),
        "",
    )

    location = next(
        (_cell(row, columns[name]) for name in _LOCATION_FIELDS if _cell(row, columns[name])),
        UNKNOWN,
    )

    return HoldRecord(
        work_order_id=work_order or None,
        production_date=_cell(row, columns["production_date"]),
        hold_date=_cell(row, columns["hold_date"]) if columns.has("hold_date") else date_value,
        description=_cell(row, columns["description"]) if columns.has("description") else UNKNOWN,
        item_type=_cell(row, columns["item_type"]) if columns.has("item_type") else UNKNOWN,
        disposition=disposition,
        location=location,
        root_cause=_cell(row, columns["root_cause"]) if columns.has("root_cause") else UNKNOWN,
        cases_produced=cases_produced,
        cases_reworked=cases_reworked,
        cost=cost,
        cost_impact=cost_impact,
        rework_lag=_cell(row, columns["rework_lag"]) if columns.has("rework_lag") else None,
        cost_rework=cost_rework,
        cost_scrap=cost_scrap,
        goal_rework_cost=_goal_value(_cell(row, columns["goal_rework_cost"]), rate=False),
        goal_release_rate=_goal_value(_cell(row, columns["goal_release_rate"]), rate=True),
        goal_root_cause_assignment=_goal_value(
            _cell(row, columns["goal_root_cause_assignment"]), rate=True
        ),
    )


def normalize_rows(rows: list[list], columns: ColumnMap) -> list[HoldRecord]:
    """Normalise every data row, dropping skipped rows."""
    records = []
    skipped = 0
    for raw in rows:
        record = normalize_row(raw, columns)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.info("Skipped %d blank or undated rows", skipped)
    return records
