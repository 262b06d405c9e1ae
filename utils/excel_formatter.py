"""
Excel formatter — writes the order set to a formatted workbook.

Sheet 1: "Pedidos" — every order in export column order, with auto-filter,
         frozen header, and the progress column as a percentage.
Sheet 2: "Resumen" — order count and average progress per status.

Public API:
    format_and_save(records, output_path) → Path
"""

import logging
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
import pandas as pd

from config.schema import EXPORT_COLUMNS, ORDER_STATUSES
from output.csv_exporter import records_to_frame

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

_HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
_DELIVERED_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
_HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
_NORMAL_FONT = Font(size=10)
_BOLD_FONT = Font(bold=True, size=10)

_MAX_COL_WIDTH = 50
_MIN_COL_WIDTH = 8

_PROGRESS_LABEL = "PORCENTAJE AVANCE"
_STATUS_LABEL = "ESTADO"
_NO_STATUS = "(sin estado)"


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def format_and_save(records: list[dict[str, Any]], output_path: Path) -> Path:
    """
    Write a formatted workbook with the orders and a per-status summary.

    Args:
        records: Merged order records.
        output_path: Path where the .xlsx file should be saved.

    Returns:
        The output_path (same as input, for convenience).
    """
    frame = records_to_frame(records)
    workbook = openpyxl.Workbook()

    orders_sheet = workbook.active
    orders_sheet.title = "Pedidos"
    _write_orders_sheet(orders_sheet, frame)

    summary_sheet = workbook.create_sheet("Resumen")
    _write_summary_sheet(summary_sheet, frame)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(str(output_path))
    workbook.close()

    logger.info(f"Excel file saved to '{output_path}' ({len(frame)} orders)")
    return output_path


# ═══════════════════════════════════════════════════════════════════════════
# Sheet 1: Pedidos
# ═══════════════════════════════════════════════════════════════════════════

def _write_orders_sheet(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    frame: pd.DataFrame,
) -> None:
    """Write every order; delivered orders are shaded green."""
    labels = [label for label, _ in EXPORT_COLUMNS]
    progress_col = labels.index(_PROGRESS_LABEL) + 1

    _write_header_row(worksheet, labels)

    for row_offset, (_, row) in enumerate(frame.iterrows()):
        excel_row = row_offset + 2
        delivered = row[_STATUS_LABEL] == ORDER_STATUSES[-1]

        for col_idx, label in enumerate(labels, start=1):
            value = row[label]
            if col_idx == progress_col:
                value = _progress_fraction(value)
            elif value == "":
                value = None

            cell = worksheet.cell(row=excel_row, column=col_idx, value=value)
            cell.font = _NORMAL_FONT
            if col_idx == progress_col:
                cell.number_format = "0%"
            if delivered:
                cell.fill = _DELIVERED_FILL

    _auto_fit_column_widths(worksheet)

    last_col_letter = get_column_letter(len(labels))
    worksheet.auto_filter.ref = f"A1:{last_col_letter}{len(frame) + 1}"
    worksheet.freeze_panes = "A2"


# ═══════════════════════════════════════════════════════════════════════════
# Sheet 2: Resumen
# ═══════════════════════════════════════════════════════════════════════════

def _write_summary_sheet(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    frame: pd.DataFrame,
) -> None:
    """Order count and average progress per status, in workflow order."""
    _write_header_row(worksheet, ["Estado", "Pedidos", "Avance promedio"])

    summary = _status_summary(frame)
    for row_offset, (status, count, average) in enumerate(summary):
        excel_row = row_offset + 2
        worksheet.cell(row=excel_row, column=1, value=status).font = _NORMAL_FONT
        worksheet.cell(row=excel_row, column=2, value=count).font = _NORMAL_FONT
        avg_cell = worksheet.cell(row=excel_row, column=3, value=average)
        avg_cell.font = _NORMAL_FONT
        avg_cell.number_format = "0%"

    total_row = len(summary) + 2
    worksheet.cell(row=total_row, column=1, value="Total").font = _BOLD_FONT
    worksheet.cell(row=total_row, column=2, value=len(frame)).font = _BOLD_FONT

    _auto_fit_column_widths(worksheet)


def _status_summary(frame: pd.DataFrame) -> list[tuple[str, int, float]]:
    """(status, order count, mean progress as a fraction) for each status present."""
    if frame.empty:
        return []

    work = pd.DataFrame({
        "status": frame[_STATUS_LABEL].replace("", _NO_STATUS),
        "progress": frame[_PROGRESS_LABEL].map(_progress_fraction),
    })
    grouped = work.groupby("status")["progress"].agg(["count", "mean"])

    order = ORDER_STATUSES + sorted(s for s in grouped.index if s not in ORDER_STATUSES)
    return [
        (status, int(grouped.at[status, "count"]), round(float(grouped.at[status, "mean"]), 4))
        for status in order
        if status in grouped.index
    ]


# ═══════════════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════════════

def _progress_fraction(value: Any) -> float:
    try:
        return float(value) / 100
    except (TypeError, ValueError):
        return 0.0


def _write_header_row(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    labels: list[str],
) -> None:
    for col_idx, label in enumerate(labels, start=1):
        cell = worksheet.cell(row=1, column=col_idx, value=label)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = Alignment(horizontal="center")


def _auto_fit_column_widths(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
) -> None:
    """
    Set column widths based on content length, clamped between
    _MIN_COL_WIDTH and _MAX_COL_WIDTH.
    """
    for column_cells in worksheet.columns:
        max_length = _MIN_COL_WIDTH
        col_letter = get_column_letter(column_cells[0].column)

        for cell in column_cells:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))

        worksheet.column_dimensions[col_letter].width = min(max_length + 2, _MAX_COL_WIDTH)
