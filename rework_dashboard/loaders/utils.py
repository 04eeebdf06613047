"""
Shared utilities for data ingestion: header-text normalisation, numeric
coercion, flexible date parsing.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
# Thousands separators, currency, percent, whitespace, quotes
_NUMBER_NOISE_RE = re.compile(r"[,$€£%\s\"']")
_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_US_DATE_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def cell_text(val: Any) -> str:
    """Return a cell as stripped text; None becomes ''."""
    if val is None:
        return ""
    return str(val).strip()


def is_blank_row(row: list) -> bool:
    return all(not cell_text(c) for c in row)


def collapse_whitespace(text: str) -> str:
    """Lowercase and collapse runs of whitespace to single spaces."""
    return " ".join(str(text).split()).lower()


def compact_text(text: str) -> str:
    """Lowercase with all whitespace removed."""
    return _WHITESPACE_RE.sub("", str(text)).lower()


def alnum_text(text: str) -> str:
    """Lowercase with everything but letters and digits removed."""
    return _NON_ALNUM_RE.sub("", str(text).lower())


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def normalise_number(val: Any, default: float = 0.0) -> float:
    """Coerce messy numeric text to float.

    Strips thousands separators, currency and percent signs, whitespace and
    quotes, then keeps only digits, a single leading minus and the first
    decimal point. Returns `default` when nothing numeric remains.

    >>> normalise_number("$1,234.50")
    1234.5
    >>> normalise_number("abc", default=float("nan"))
    nan
    """
    if val is None or isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        return float(val) if math.isfinite(val) else default

    text = strip_number_noise(val)
    negative = text.startswith("-")
    digits = _NON_NUMERIC_RE.sub("", text)
    head, dot, tail = digits.partition(".")
    digits = head + dot + tail.replace(".", "")

    if not digits.strip("."):
        return default
    number = float(digits)
    return -number if negative else number


def strip_number_noise(val: Any) -> str:
    """Drop thousands separators, currency and percent signs, whitespace and quotes."""
    return _NUMBER_NOISE_RE.sub("", cell_text(val))


def normalise_count(val: Any) -> int:
    """Coerce a case count to a non-negative int; fractions truncate."""
    return max(int(normalise_number(val, 0.0)), 0)


def normalise_percentage(val: float | None, assume_decimal: bool = False) -> float | None:
    """Normalise percentage to 0-100 range.

    If assume_decimal is True, values with magnitude at most 1.0 are
    multiplied by 100 (e.g. 0.4 -> 40.0). Values already in 0-100 range are
    left as-is.
    """
    if val is None or not math.isfinite(val):
        return val
    if assume_decimal and 0 < abs(val) <= 1.0:
        return val * 100.0
    return val


def normalise_rate(val: Any) -> float:
    """Read a rate cell as a percentage in 0-100 terms; NaN when not numeric.

    Text carrying a "%" sign is taken as already a percentage, so "1%" stays
    1. Bare values with magnitude at most 1 are fractions: "0.4" and "1" read
    as 40 and 100.
    """
    value = normalise_number(val, default=math.nan)
    if "%" in cell_text(val):
        return value
    return normalise_percentage(value, assume_decimal=True)


def is_finite(val: Any) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool) and math.isfinite(val)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def parse_flexible_date(val: Any) -> pd.Timestamp | None:
    """Parse the date text stored on hold records.

    Only the first whitespace-separated token is considered, so trailing
    times are ignored. Accepts YYYY-MM-DD and M/D/YY or M/D/YYYY (two-digit
    years are 20xx), then falls back to pandas' parser for tokens that carry
    a digit. Returns None for unparseable values.
    """
    if val is None:
        return None
    if isinstance(val, pd.Timestamp):
        return None if pd.isna(val) else val.normalize()
    if isinstance(val, (datetime, date)):
        return pd.Timestamp(val).normalize()

    parts = str(val).strip().split()
    if not parts:
        return None
    token = parts[0]

    try:
        if _ISO_DATE_RE.match(token):
            year, month, day = (int(p) for p in token.split("-"))
            return pd.Timestamp(year=year, month=month, day=day)
        if _US_DATE_RE.match(token):
            month, day, year = (int(p) for p in token.split("/"))
            if year < 100:
                year += 2000
            return pd.Timestamp(year=year, month=month, day=day)
    except ValueError:
        logger.debug("Out-of-range date value: %s", val)
        return None

    if not any(ch.isdigit() for ch in token):
        return None
    try:
        parsed = pd.Timestamp(token)
    except (ValueError, TypeError, OverflowError):
        logger.debug("Could not parse date value: %s", val)
        return None
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_localize(None)
    return parsed.normalize()
