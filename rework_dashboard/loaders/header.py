"""
Header Locator: pick the schema header row out of a noisy table.

Spreadsheet exports often carry report titles, filter summaries or blank
padding above the real header. Each candidate row is scored by the column
families it mentions (see config.HEADER_FAMILIES); the date family alone
reaches the acceptance threshold, so a table without a date axis is rejected.
"""

import logging
from dataclasses import dataclass

from ..config import HEADER_FAMILIES, HEADER_SCAN_ROWS, MIN_HEADER_SCORE
from ..errors import MissingDateColumn
from .utils import cell_text, collapse_whitespace, is_blank_row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeaderMatch:
    row_index: int
    score: int


def _mentions(cells: list[str], keywords: tuple[str, ...]) -> bool:
    for cell in cells:
        squashed = cell.replace(" ", "")
        for keyword in keywords:
            if keyword in cell or keyword.replace(" ", "") in squashed:
                return True
    return False


def score_header_row(row: list) -> int:
    """Sum the weights of every column family mentioned somewhere in `row`."""
    cells = [collapse_whitespace(cell_text(c)) for c in row]
    cells = [c for c in cells if c]
    return sum(weight for keywords, weight in HEADER_FAMILIES if _mentions(cells, keywords))


def best_header_row(rows: list[list], max_scan: int = HEADER_SCAN_ROWS) -> HeaderMatch | None:
    """Return the best-scoring non-blank row in the scan window.

    Ties keep the first row seen. Returns None when every scanned row is
    blank; no threshold is applied here.
    """
    best: HeaderMatch | None = None
    for idx, row in enumerate(rows[:max_scan]):
        if is_blank_row(row):
            continue
        score = score_header_row(row)
        if best is None or score > best.score:
            best = HeaderMatch(row_index=idx, score=score)
    return best


def locate_header(rows: list[list], max_scan: int = HEADER_SCAN_ROWS) -> HeaderMatch:
    """Locate the schema header row.

    Raises
    ------
    MissingDateColumn
        If no scanned row reaches MIN_HEADER_SCORE.
    """
    best = best_header_row(rows, max_scan)
    if best is None or best.score < MIN_HEADER_SCORE:
        logger.warning(
            "No header row with a date column in the first %d rows (best score %s)",
            max_scan, best.score if best else None,
        )
        raise MissingDateColumn(
            "File must contain a date column (e.g. 'Hold Date' or 'Production Date')"
        )
    logger.info("Header found at row %d (score %d)", best.row_index, best.score)
    return best
