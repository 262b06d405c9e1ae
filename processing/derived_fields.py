"""
Derived-field calculator — processing time, progress and fill-rate ratios.

All four derived fields are a pure function of the record's date and quantity
fields.  They are never edited directly: the parser, the reconciler and the
edit path all call compute_derived() after touching a record, so the stored
values can never drift from their inputs.

Public API:
    compute_derived(record, now) → record
    calculate_processing_time(record, now) → str
    calculate_progress_percentage(record) → int
    calculate_ratio(numerator, denominator) → str
    parse_date(value) → datetime | None
"""

import logging
import math
import re
import warnings
from datetime import datetime
from typing import Any

import pandas as pd

from config.schema import (
    PROCESSING_DATE_FIELDS,
    PROGRESS_DATE_FIELDS,
    RECEIPT_DATE_FIELD,
)

logger = logging.getLogger(__name__)

# Leading numeric prefix, the way a spreadsheet user expects "12 cajas" to read.
_LEADING_FLOAT_PATTERN = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

_SECONDS_PER_DAY = 24 * 60 * 60

# Strings pandas resolves against the clock rather than a calendar day.
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})
_TIME_ONLY_PATTERN = re.compile(r"^\d{1,2}:\d{2}(:\d{2}(\.\d+)?)?\s*([ap]\.?m\.?)?$", re.IGNORECASE)
_MIN_YEAR = 1900


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def compute_derived(record: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """
    Recompute every derived field on *record* in place.

    Args:
        record: Order record keyed by canonical field names.
        now: Reference time for open orders.  Defaults to the current time.

    Returns:
        The same record, for chaining.
    """
    record["tiempoProcesamiento"] = calculate_processing_time(record, now)
    record["porcentajeAvance"] = calculate_progress_percentage(record)
    record["cocienteIJ"] = calculate_ratio(
        record.get("cantidadTotalAsignada"),
        record.get("cantidadTotalSolicitada"),
    )
    record["cocienteKL"] = calculate_ratio(
        record.get("cantidadRenglonesAsignados"),
        record.get("cantidadRenglonesSolicitados"),
    )
    return record


def calculate_processing_time(record: dict[str, Any], now: datetime | None = None) -> str:
    """
    Days elapsed between receipt of the F8 and its latest recorded milestone.

    The latest milestone is the maximum parseable date among
    PROCESSING_DATE_FIELDS that falls after the receipt date.  When no
    milestone is later than the receipt, the order is still open and the
    count runs up to *now*.

    Returns:
        "<N> días", or "" when the receipt date is missing or unparseable.
    """
    received = parse_date(record.get(RECEIPT_DATE_FIELD))
    if received is None:
        return ""

    latest = received
    for field_name in PROCESSING_DATE_FIELDS:
        milestone = parse_date(record.get(field_name))
        if milestone is not None and milestone > latest:
            latest = milestone

    if latest == received:
        latest = now if now is not None else datetime.now()

    elapsed = abs((latest - received).total_seconds())
    days = math.ceil(elapsed / _SECONDS_PER_DAY)
    return f"{days} días"


def calculate_progress_percentage(record: dict[str, Any]) -> int:
    """Share of the nine tracked milestones that have a value, 0-100."""
    completed = sum(1 for field_name in PROGRESS_DATE_FIELDS if _is_filled(record.get(field_name)))
    return _round_half_up(completed / len(PROGRESS_DATE_FIELDS) * 100)


def calculate_ratio(numerator: Any, denominator: Any) -> str:
    """
    Fill rate as text.

    Non-numeric inputs count as 0.

    Returns:
        "N/A" when the denominator is 0, otherwise the quotient with two
        decimals (e.g. "2.50").
    """
    num = _parse_float(numerator)
    den = _parse_float(denominator)

    if den == 0:
        return "N/A"

    return f"{num / den:.2f}"


def parse_date(value: Any) -> datetime | None:
    """
    Parse a free-form date string.

    Returns:
        A naive datetime (timezone-aware input is converted to UTC first),
        or None for blank or unparseable values, relative words such as
        "today", bare times of day, and years before 1900.
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    if text.lower() in _RELATIVE_DATE_WORDS or _TIME_ONLY_PATTERN.match(text):
        logger.debug(f"Date '{text}' has no calendar day, treated as missing")
        return None

    with warnings.catch_warnings():
        # pandas warns when it falls back to dateutil for a single value
        warnings.simplefilter("ignore", UserWarning)
        parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        logger.debug(f"Unparseable date '{text}' treated as missing")
        return None

    if parsed.year < _MIN_YEAR:
        logger.debug(f"Date '{text}' parsed to year {parsed.year}, treated as missing")
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)

    return parsed.to_pydatetime()


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _is_filled(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _parse_float(value: Any) -> float:
    """Read the leading number of *value*; anything unreadable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) else float(value)

    match = _LEADING_FLOAT_PATTERN.match(str(value))
    if match is None:
        return 0.0

    return float(match.group(0))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
