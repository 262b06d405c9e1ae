"""
CSV exporter — writes the merged order set back out in the feed's layout.

Output has the fixed 25-column EXPORT_COLUMNS header.  A value containing a
comma is wrapped in double quotes; quotes and newlines inside values are
written as is, so such values do not survive a round trip through
processing/csv_parser.

Public API:
    export_csv(records) → str
    save_csv(records, output_path) → Path
    records_to_frame(records) → pd.DataFrame
"""

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from config.schema import EXPORT_COLUMNS

logger = logging.getLogger(__name__)


def export_csv(records: list[dict[str, Any]]) -> str:
    """Render *records* as CSV text, one line per order, header first."""
    lines = [",".join(label for label, _ in EXPORT_COLUMNS)]

    for record in records:
        row = [_format_value(record.get(field_name)) for _, field_name in EXPORT_COLUMNS]
        lines.append(",".join(row))

    return "\n".join(lines) + "\n"


def save_csv(records: list[dict[str, Any]], output_path: Path) -> Path:
    """Write export_csv() output to *output_path* as UTF-8."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(export_csv(records), encoding="utf-8")
    logger.info(f"Exported {len(records)} orders to '{output_path}'")
    return output_path


def records_to_frame(records: list[dict[str, Any]]) -> pd.DataFrame:
    """Orders as a DataFrame with the export labels as columns."""
    rows = [
        {label: _display_value(record.get(field_name)) for label, field_name in EXPORT_COLUMNS}
        for record in records
    ]
    return pd.DataFrame(rows, columns=[label for label, _ in EXPORT_COLUMNS])


def _display_value(value: Any) -> Any:
    return "" if value is None else value


def _format_value(value: Any) -> str:
    text = "" if value is None else str(value)
    if "," in text:
        return f'"{text}"'
    return text
