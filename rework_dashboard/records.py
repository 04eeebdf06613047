"""
Canonical hold record and its DataFrame / blob representations.

One HoldRecord is produced per accepted data row. Raw text fields (dates,
disposition, rework lag) are kept as found in the source; numeric fields are
already coerced and the rework/scrap cost attribution is already derived.
"""

import logging
import math
from dataclasses import asdict, dataclass, fields

import pandas as pd

from .config import UNKNOWN

logger = logging.getLogger(__name__)


@dataclass
class HoldRecord:
    work_order_id: str | None = None
    production_date: str = ""
    hold_date: str = ""
    description: str = UNKNOWN
    item_type: str = UNKNOWN
    disposition: str | None = None
    location: str = UNKNOWN
    root_cause: str = UNKNOWN
    cases_produced: int = 0
    cases_reworked: int = 0
    cost: float = 0.0
    cost_impact: float = 0.0
    rework_lag: str | None = None
    cost_rework: float = 0.0
    cost_scrap: float = 0.0
    goal_rework_cost: float = math.nan
    goal_release_rate: float = math.nan
    goal_root_cause_assignment: float = math.nan

    @property
    def event_date(self) -> str:
        """Date text used for filtering and bucketing: hold date, else production date."""
        return self.hold_date or self.production_date

    @property
    def unreworked_cases(self) -> int:
        return max(self.cases_produced - self.cases_reworked, 0)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HoldRecord":
        """Rebuild a record from a stored dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


RECORD_COLUMNS = [f.name for f in fields(HoldRecord)]

# Per-row goal fields and the goal metric each one overrides
ROW_GOAL_FIELDS = {
    "goal_rework_cost": "rework_cost",
    "goal_release_rate": "release_rate",
    "goal_root_cause_assignment": "root_cause_assignment",
}


def row_goal_overrides(records: list[HoldRecord]) -> dict[str, float]:
    """Return the first finite per-row value of each goal field, keyed by metric."""
    overrides: dict[str, float] = {}
    for record in records:
        for attr, metric in ROW_GOAL_FIELDS.items():
            if metric in overrides:
                continue
            value = getattr(record, attr)
            if isinstance(value, (int, float)) and math.isfinite(value):
                overrides[metric] = float(value)
        if len(overrides) == len(ROW_GOAL_FIELDS):
            break
    return overrides


def records_to_frame(records: list[HoldRecord]) -> pd.DataFrame:
    """Convert records to a DataFrame with one column per HoldRecord field.

    An empty input still yields the full column schema.
    """
    df = pd.DataFrame([r.to_dict() for r in records], columns=RECORD_COLUMNS)
    for col in ("cases_produced", "cases_reworked"):
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(int)
    for col in ("cost", "cost_impact", "cost_rework", "cost_scrap"):
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
    return df
