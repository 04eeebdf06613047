"""
Workbook loader: read every sheet as a raw text table and pick the data sheet.

Source workbooks vary by site. The hold log may sit on any sheet, under a
title block of arbitrary height, next to a goals sheet and pivot summaries.
Sheets whose name mentions "goal" are left out of the data-sheet pick unless
nothing else remains.

.xlsx/.xlsm files are read with openpyxl; legacy .xls needs xlrd through
pandas and is reported as unsupported when xlrd is not installed.
"""

import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, time

import openpyxl
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from ..config import GOAL_SHEET_KEYWORD, HEADER_SCAN_ROWS, MIN_HEADER_SCORE
from ..errors import NoDataSheetFound, UnsupportedFormat
from .header import best_header_row
from .utils import is_blank_row

logger = logging.getLogger(__name__)


def cell_to_text(val) -> str:
    """Render a worksheet cell the way it would read in a CSV export.

    Dates become ISO YYYY-MM-DD, whole floats lose their ".0".
    """
    if val is None:
        return ""
    if isinstance(val, float) and pd.isna(val):
        return ""
    if isinstance(val, (datetime, pd.Timestamp)):
        if isinstance(val, pd.Timestamp) and pd.isna(val):
            return ""
        if val.hour or val.minute or val.second:
            return val.strftime("%Y-%m-%d %H:%M:%S")
        return val.strftime("%Y-%m-%d")
    if isinstance(val, date):
        return val.isoformat()
    if isinstance(val, time):
        return val.strftime("%H:%M:%S")
    if isinstance(val, bool):
        return "TRUE" if val else "FALSE"
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def _read_xlsx(raw: bytes) -> dict[str, list[list[str]]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        logger.exception("Failed to open workbook")
        raise UnsupportedFormat(f"Could not read spreadsheet: {exc}") from exc

    sheets: dict[str, list[list[str]]] = {}
    try:
        for ws in wb.worksheets:
            sheets[ws.title] = [
                [cell_to_text(v) for v in row] for row in ws.iter_rows(values_only=True)
            ]
    finally:
        wb.close()
    return sheets


def _read_xls(raw: bytes) -> dict[str, list[list[str]]]:
    try:
        import xlrd
    except ImportError as exc:
        raise UnsupportedFormat(
            "Reading .xls files requires xlrd. pip install xlrd, or save the file as .xlsx"
        ) from exc

    try:
        frames = pd.read_excel(
            io.BytesIO(raw), sheet_name=None, header=None, dtype=object, engine="xlrd"
        )
    except (xlrd.XLRDError, ImportError, ValueError) as exc:
        logger.exception("Failed to open legacy workbook")
        raise UnsupportedFormat(f"Could not read spreadsheet: {exc}") from exc

    return {
        name: [[cell_to_text(v) for v in row] for row in df.itertuples(index=False)]
        for name, df in frames.items()
    }


def read_workbook(raw: bytes, legacy: bool = False) -> dict[str, list[list[str]]]:
    """Read all sheets into {sheet_name: rows of cell text}, preserving sheet order."""
    sheets = _read_xls(raw) if legacy else _read_xlsx(raw)
    logger.info("Read workbook with sheets %s", list(sheets))
    return sheets


@dataclass
class DataSheetPick:
    sheet_name: str
    header_row: int
    score: int
    rows: list[list[str]]


def pick_data_sheet(
    sheets: dict[str, list[list[str]]],
    max_scan: int = HEADER_SCAN_ROWS,
) -> DataSheetPick:
    """Choose the sheet and header row that look most like a hold log.

    Returns the winning table starting at its header row, with blank rows
    dropped.

    Raises
    ------
    NoDataSheetFound
        If no candidate sheet has a row scoring MIN_HEADER_SCORE or more.
    """
    candidates = [name for name in sheets if GOAL_SHEET_KEYWORD not in name.lower()]
    if not candidates:
        candidates = list(sheets)

    best: DataSheetPick | None = None
    for name in candidates:
        match = best_header_row(sheets[name], max_scan)
        if match is None:
            continue
        if best is None or match.score > best.score:
            best = DataSheetPick(name, match.row_index, match.score, [])

    if best is None or best.score < MIN_HEADER_SCORE:
        raise NoDataSheetFound(
            "No sheet with a recognisable header (date, cases, cause columns) was found"
        )

    best.rows = [row for row in sheets[best.sheet_name][best.header_row:] if not is_blank_row(row)]
    logger.info(
        "Using sheet '%s' with header at row %d (score %d)",
        best.sheet_name, best.header_row, best.score,
    )
    return best


def find_goal_sheet(sheets: dict[str, list[list[str]]]) -> str | None:
    """Return the first sheet whose name mentions goals, if any."""
    for name in sheets:
        if GOAL_SHEET_KEYWORD in name.lower():
            return name
    return None
