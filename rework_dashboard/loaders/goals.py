"""
Goals extractor: read KPI targets from a small key-value table.

Two layouts are recognised and both are applied, horizontal first:

    Horizontal                      Vertical
    Rework Cost | Release Rate      Rework Cost   | 6,500,000
    6,500,000   | 45%               Release Rate  | 45%

Label text is mapped to a goal metric through config.GOAL_LABEL_RULES.
Later values overwrite earlier ones for the same metric.
"""

import logging
import math
import re

from ..config import (
    GOAL_HORIZONTAL_PAIRS,
    GOAL_LABEL_RULES,
    GOAL_REGISTRY,
    GOAL_VERTICAL_ROWS,
)
from .utils import (
    cell_text,
    collapse_whitespace,
    is_blank_row,
    normalise_number,
    normalise_rate,
    strip_number_noise,
)

logger = logging.getLogger(__name__)

_PLAIN_NUMBER_RE = re.compile(r"-?(\d+(\.\d*)?|\.\d+)")


def goal_metric_for_label(label: str) -> str | None:
    """Map label text to a goal metric name, or None."""
    text = collapse_whitespace(label)
    if not text:
        return None
    for fragments, metric in GOAL_LABEL_RULES:
        if any(fragment in text for fragment in fragments):
            return metric
    return None


def goal_value(val, metric: str) -> float:
    """Parse a goal cell; NaN unless the cell reads as a plain number.

    Rate goals follow loaders.utils.normalise_rate: "0.4" reads as 40, "1%" as 1.
    """
    if not _PLAIN_NUMBER_RE.fullmatch(strip_number_noise(val)):
        return math.nan
    if GOAL_REGISTRY[metric]["kind"] == "rate":
        return normalise_rate(val)
    return normalise_number(val, default=math.nan)


def extract_horizontal_goals(rows: list[list]) -> dict[str, float]:
    """Read label-row / value-row pairs among the first GOAL_HORIZONTAL_PAIRS pairs."""
    rows = [r for r in rows if not is_blank_row(r)]
    goals: dict[str, float] = {}
    for idx in range(min(GOAL_HORIZONTAL_PAIRS, len(rows) - 1)):
        labels, values = rows[idx], rows[idx + 1]
        for col, label in enumerate(labels):
            metric = goal_metric_for_label(cell_text(label))
            if metric is None or col >= len(values):
                continue
            value = goal_value(values[col], metric)
            if math.isfinite(value):
                goals[metric] = value
    return goals


def extract_vertical_goals(rows: list[list]) -> dict[str, float]:
    """Read rows whose first cell is a label and a later cell a number."""
    goals: dict[str, float] = {}
    for row in rows[:GOAL_VERTICAL_ROWS]:
        if not row:
            continue
        metric = goal_metric_for_label(cell_text(row[0]))
        if metric is None:
            continue
        for cell in row[1:]:
            value = goal_value(cell, metric)
            if math.isfinite(value):
                goals[metric] = value
                break
    return goals


def extract_goals(rows: list[list]) -> dict[str, float]:
    """Extract goals from a table in either layout."""
    goals = extract_horizontal_goals(rows)
    goals.update(extract_vertical_goals(rows))
    if goals:
        logger.info("Extracted goals: %s", goals)
    else:
        logger.info("No goal values found in table")
    return goals
