"""
Ingestion boundary: one uploaded file in, one session update out.

ingest_file / ingest_bytes never raise IngestionError. Each outcome comes
back as an IngestionResult carrying a user-facing message, and on failure
the session's current batch is left as it was.

Goal handling
-------------
- Workbook with a goals sheet or per-row goal columns: goals replaced.
- Workbook without either: active goals kept.
- CSV: goals replaced by per-row goal columns, else reset to defaults.
- CSV without a date column: the same text is read as a goals table; any
  goal found makes the call a partial success.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import (
    LEGACY_WORKBOOK_SUFFIXES,
    MAX_FILE_SIZE_BYTES,
    MESSAGE_DISPLAY_SECONDS,
    WORKBOOK_SUFFIXES,
)
from .errors import EmptyResult, FileTooLarge, IngestionError, MissingDateColumn
from .loaders import (
    decode_text,
    extract_goals,
    find_goal_sheet,
    locate_header,
    normalize_rows,
    parse_csv_text,
    pick_data_sheet,
    read_workbook,
    resolve_columns,
)
from .records import HoldRecord, row_goal_overrides
from .session import DashboardSession

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    status: str  # "success", "partial" or "error"
    message: str
    record_count: int = 0
    goals: dict[str, float] = field(default_factory=dict)
    persisted: bool = False
    sheet_name: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != "error"

    @property
    def severity(self) -> str:
        return {"success": "success", "partial": "info"}.get(self.status, "error")

    @property
    def display_seconds(self) -> int:
        return MESSAGE_DISPLAY_SECONDS[self.severity]


def is_workbook(filename: str) -> bool:
    """Spreadsheet vs CSV is decided by file suffix only."""
    return Path(filename).suffix.lower() in WORKBOOK_SUFFIXES


def check_file_size(size: int, filename: str) -> None:
    if size > MAX_FILE_SIZE_BYTES:
        raise FileTooLarge(
            f"File too large ({size / 1024 / 1024:.1f} MB): {filename}. "
            f"Max {MAX_FILE_SIZE_BYTES // (1024 * 1024)} MB."
        )


def records_from_table(rows: list[list[str]], header_index: int) -> list[HoldRecord]:
    """Resolve columns on the header row and normalise the rows below it.

    Raises
    ------
    MissingDateColumn
        If the header row has no date column.
    EmptyResult
        If no data row survives normalisation.
    """
    columns = resolve_columns(rows[header_index])
    records = normalize_rows(rows[header_index + 1:], columns)
    if not records:
        raise EmptyResult("File is empty or has no dated data rows")
    return records


def _loaded(
    session: DashboardSession,
    records: list[HoldRecord],
    filename: str,
    sheet_name: str | None = None,
) -> IngestionResult:
    persisted = session.replace_records(records)
    result = IngestionResult(
        status="success",
        message=f"✓ Successfully loaded {len(records)} records from {filename}",
        record_count=len(records),
        goals=dict(session.goals),
        persisted=persisted,
        sheet_name=sheet_name,
    )
    if not persisted:
        result.warnings.append(
            "Data too large to save. You will need to re-upload "
            "the file next session."
        )
    logger.info("Loaded %d hold records from %s", len(records), filename)
    return result


def _ingest_csv(raw: bytes, filename: str, session: DashboardSession) -> IngestionResult:
    rows = parse_csv_text(decode_text(raw))
    try:
        header = locate_header(rows)
        records = records_from_table(rows, header.row_index)
    except MissingDateColumn:
        goals = extract_goals(rows)
        if not goals:
            raise
        session.set_goals(goals)
        return IngestionResult(
            status="partial",
            message=f"Goals updated from {filename} ({len(goals)} found); no data rows loaded",
            goals=dict(session.goals),
        )

    session.set_goals(row_goal_overrides(records))
    return _loaded(session, records, filename)


def _ingest_workbook(raw: bytes, filename: str, session: DashboardSession) -> IngestionResult:
    legacy = Path(filename).suffix.lower() in LEGACY_WORKBOOK_SUFFIXES
    sheets = read_workbook(raw, legacy=legacy)

    pick = pick_data_sheet(sheets)
    records = records_from_table(pick.rows, 0)

    goals: dict[str, float] = {}
    goal_sheet = find_goal_sheet(sheets)
    if goal_sheet is not None:
        goals.update(extract_goals(sheets[goal_sheet]))
    goals.update(row_goal_overrides(records))
    if goals:
        session.set_goals(goals)

    return _loaded(session, records, filename, sheet_name=pick.sheet_name)


def ingest_bytes(raw: bytes, filename: str, session: DashboardSession) -> IngestionResult:
    """Ingest an uploaded file's bytes into `session`."""
    try:
        check_file_size(len(raw), filename)
        if is_workbook(filename):
            return _ingest_workbook(raw, filename, session)
        return _ingest_csv(raw, filename, session)
    except IngestionError as exc:
        logger.warning("Could not load %s: %s", filename, exc)
        return IngestionResult(status="error", message=str(exc))


def ingest_file(path: str | Path, session: DashboardSession) -> IngestionResult:
    """Ingest a file from disk; the size limit is checked before reading."""
    path = Path(path)
    try:
        check_file_size(path.stat().st_size, path.name)
        raw = path.read_bytes()
    except FileTooLarge as exc:
        logger.warning("Could not load %s: %s", path.name, exc)
        return IngestionResult(status="error", message=str(exc))
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        message = f"Could not read file {path.name}: {exc.strerror or exc}"
        return IngestionResult(status="error", message=message)
    return ingest_bytes(raw, path.name, session)
