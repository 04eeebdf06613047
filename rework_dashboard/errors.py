"""
Ingestion errors.

Every error here is recoverable at the ingestion boundary: ingest.py turns
them into user-facing messages and leaves the loaded batch untouched.
"""


class IngestionError(ValueError):
    """Base class for errors raised while turning a file into hold records."""


class FileTooLarge(IngestionError):
    """The file exceeds the upload size limit; raised before any parsing."""


class UnsupportedFormat(IngestionError):
    """The spreadsheet could not be opened with the available readers."""


class NoDataSheetFound(IngestionError):
    """No sheet in the workbook carries a recognisable header row."""


class MissingDateColumn(IngestionError):
    """No scanned row or header cell carries a date column."""


class EmptyResult(IngestionError):
    """The header resolved but no data row survived normalisation."""


class QuotaExceeded(Exception):
    """A key-value store refused a blob that is over its capacity."""
