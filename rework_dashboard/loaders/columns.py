"""
Column Resolver: map logical hold-record fields to header positions.

Resolution is driven entirely by config.COLUMN_RULES. For each field the
rules are tried in order; the first rule that matches any header cell wins,
and within a rule the leftmost cell wins. Unresolved fields map to -1.
"""

import logging
from dataclasses import dataclass, field

from ..config import COLUMN_RULES, CURRENCY_SIGILS
from ..errors import MissingDateColumn
from .utils import alnum_text, cell_text, collapse_whitespace, compact_text

logger = logging.getLogger(__name__)

NOT_FOUND = -1


def _normalised(header: str, mode: str) -> str:
    if mode == "contains":
        return collapse_whitespace(header)
    if mode.startswith("alnum"):
        return alnum_text(header)
    return compact_text(header)


def header_matches(header: str, mode: str, candidates, excludes=()) -> bool:
    """Return True if a header cell satisfies one rule.

    Parameters
    ----------
    header : Raw header cell text.
    mode : One of the match modes documented in config.COLUMN_RULES.
    candidates : Tuples of fragments; all fragments of one tuple must match.
    excludes : Fragments that disqualify the header.
    """
    text = _normalised(header, mode)
    if not text:
        return False
    if any(_normalised(ex, mode) in text for ex in excludes):
        return False
    if mode == "currency_contains" and not any(s in header for s in CURRENCY_SIGILS):
        return False

    for fragments in candidates:
        parts = [_normalised(f, mode) for f in fragments]
        if mode.endswith("equals"):
            if len(parts) == 1 and text == parts[0]:
                return True
        elif all(p in text for p in parts):
            return True
    return False


def find_column(headers: list[str], rules) -> int:
    """Apply an ordered rule list to the header cells; -1 when nothing matches."""
    for mode, candidates, excludes in rules:
        for idx, header in enumerate(headers):
            if header_matches(header, mode, candidates, excludes):
                return idx
    return NOT_FOUND


@dataclass
class ColumnMap:
    """Header position of each logical field (-1 when absent)."""

    indices: dict[str, int] = field(default_factory=dict)

    def __getitem__(self, name: str) -> int:
        return self.indices.get(name, NOT_FOUND)

    def has(self, name: str) -> bool:
        return self[name] != NOT_FOUND

    def missing(self) -> list[str]:
        return [name for name, idx in self.indices.items() if idx == NOT_FOUND]


def resolve_columns(header_row: list) -> ColumnMap:
    """Map every field in COLUMN_RULES to a column index.

    Raises
    ------
    MissingDateColumn
        If no header cell satisfies any date rule.
    """
    headers = [cell_text(c) for c in header_row]
    columns = ColumnMap({name: find_column(headers, rules) for name, rules in COLUMN_RULES.items()})

    if not columns.has("date"):
        raise MissingDateColumn("File must contain a Date column")

    for name in ("cases_produced", "cases_reworked", "disposition", "cost"):
        if not columns.has(name):
            logger.warning("Column for '%s' not found in header %s", name, headers)
    logger.debug("Resolved columns: %s (unresolved: %s)", columns.indices, columns.missing())
    return columns
