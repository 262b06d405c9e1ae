"""
CSV parser for the published requisition feed.

The feed is a Google Sheets "publish to web" CSV export.  Parsing is
deliberately lenient: a double quote toggles an "inside field" state so commas
in quoted cells are kept, blank lines are skipped, short rows are padded with
empty strings, and nothing in a malformed row aborts the parse.  Anomalies are
collected as warnings instead.

Each parsed row is keyed by the mapped field names (processing/column_mapper)
and has its derived fields computed before it is returned.

Public API:
    parse_csv(text, now) → CsvParseResult
    parse_csv_line(line) → list[str]
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from processing.column_mapper import ColumnMappingResult, map_columns
from processing.derived_fields import compute_derived

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data class
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class CsvParseResult:
    """Output of the parse_csv() function."""

    records: list[dict[str, Any]] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    column_mapping: ColumnMappingResult = field(default_factory=ColumnMappingResult)
    warnings: list[dict] = field(default_factory=list)
    """One entry per anomalous data line: line number and message."""


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def parse_csv(text: str, now: datetime | None = None) -> CsvParseResult:
    """
    Parse raw CSV text into order records.

    Args:
        text: Full CSV body.  First non-blank line is the header row.
        now: Reference time passed to the derived-field calculator.

    Returns:
        CsvParseResult with one record per non-blank data line.
    """
    result = CsvParseResult()

    # (line_number, text) pairs, 1-based, blank lines removed
    lines = [
        (number, line)
        for number, line in enumerate(text.split("\n"), start=1)
        if line.strip() != ""
    ]

    if not lines:
        logger.info("Feed is empty — no records parsed")
        return result

    header_line_number, header_line = lines[0]
    headers = parse_csv_line(header_line)
    result.headers = headers
    result.column_mapping = map_columns(headers)
    keys = [result.column_mapping.mapping[header] for header in headers]

    for line_number, line in lines[1:]:
        values = parse_csv_line(line)

        if len(values) > len(keys):
            result.warnings.append({
                "line": line_number,
                "message": f"{len(values)} values for {len(keys)} columns — extra values ignored",
            })

        record: dict[str, Any] = {}
        for index, key in enumerate(keys):
            record[key] = values[index] if index < len(values) else ""

        compute_derived(record, now)
        result.records.append(record)

    for warning in result.warnings:
        logger.warning(f"Line {warning['line']}: {warning['message']}")

    logger.info(
        f"Parsed {len(result.records)} records from {len(headers)} columns "
        f"(header on line {header_line_number}), {len(result.warnings)} warnings"
    )

    return result


def parse_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into trimmed values.

    A double quote flips the quoted state and is never emitted; there is no
    support for escaped quotes.  An unterminated quote simply runs to the end
    of the line.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    values.append("".join(current).strip())
    return values
