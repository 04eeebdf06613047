"""
CSV text loader: decode uploaded bytes and split them into a raw table.

Quoted fields, embedded delimiters and ragged rows are handled by the csv
module; the delimiter is sniffed from the first lines and defaults to ",".
"""

import csv
import io
import logging

import chardet

from ..config import MAX_FILE_SIZE_BYTES
from ..errors import UnsupportedFormat

logger = logging.getLogger(__name__)

_DELIMITERS = ",;\t|"


def decode_text(raw: bytes) -> str:
    """Decode file bytes, trying UTF-8 first and then chardet's guess.

    A leading byte-order mark is dropped. Undecodable bytes are replaced
    rather than raising.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        detected = chardet.detect(raw).get("encoding") or "cp1252"
        logger.info("File is not UTF-8, decoding as %s", detected)
        try:
            text = raw.decode(detected, errors="replace")
        except LookupError:
            text = raw.decode("cp1252", errors="replace")
    return text.lstrip("﻿").replace("\x00", "")


def _sniff_delimiter(text: str) -> str:
    sample = "\n".join([line for line in text.splitlines() if line.strip()][:25])
    if not sample:
        return ","
    try:
        return csv.Sniffer().sniff(sample, delimiters=_DELIMITERS).delimiter
    except csv.Error:
        return ","


def parse_csv_text(text: str) -> list[list[str]]:
    """Split CSV text into rows of cell strings, skipping empty lines.

    A single field may be as large as the whole upload (an unclosed quote
    runs to the end of the file).

    Raises
    ------
    UnsupportedFormat
        If the csv module cannot tokenise the text.
    """
    delimiter = _sniff_delimiter(text)
    csv.field_size_limit(MAX_FILE_SIZE_BYTES)
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    try:
        rows = [row for row in reader if any(cell.strip() for cell in row)]
    except csv.Error as exc:
        raise UnsupportedFormat(f"Could not parse CSV text: {exc}") from exc
    logger.info("Parsed %d non-empty CSV rows (delimiter %r)", len(rows), delimiter)
    return rows
