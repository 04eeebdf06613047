"""Data ingestion loaders for quality-hold exports."""

from .columns import ColumnMap, resolve_columns
from .csv_text import decode_text, parse_csv_text
from .goals import extract_goals
from .header import HeaderMatch, locate_header, score_header_row
from .rows import attribute_cost, normalize_row, normalize_rows
from .workbook import find_goal_sheet, pick_data_sheet, read_workbook

__all__ = [
    "ColumnMap",
    "HeaderMatch",
    "attribute_cost",
    "decode_text",
    "extract_goals",
    "find_goal_sheet",
    "locate_header",
    "normalize_row",
    "normalize_rows",
    "parse_csv_text",
    "pick_data_sheet",
    "read_workbook",
    "resolve_columns",
    "score_header_row",
]
