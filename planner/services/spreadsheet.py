"""
Excel exports built with openpyxl.

render_week_workbook(week, rows)        -> bytes   one sheet, nine fixed columns
render_class_report(report)             -> bytes   one sheet per subject
"""
from __future__ import annotations

import json
import logging
import re
from io import BytesIO
from typing import Any, Dict, List, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from planner.services.class_report import ReportRow
from planner.utils.helpers import find_field_key

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# (header, column width)
WEEK_COLUMNS: Tuple[Tuple[str, int], ...] = (
    ("Enseignant", 20),
    ("Jour", 15),
    ("Période", 10),
    ("Classe", 12),
    ("Matière", 20),
    ("Leçon", 45),
    ("Travaux de classe", 45),
    ("Support", 25),
    ("Devoirs", 45),
)

REPORT_COLUMNS: Tuple[Tuple[str, int], ...] = (
    ("Mois", 12),
    ("Semaine", 10),
    ("Période", 10),
    ("Leçon", 40),
    ("Travaux de classe", 40),
    ("Support", 25),
    ("Devoirs", 40),
)

MAX_SHEET_NAME = 30
_UNSAFE_SHEET_CHARS = re.compile(r"[*?:/\\\[\]]")


def safe_sheet_name(name: str) -> str:
    """Truncate to 30 characters, then replace characters Excel forbids in sheet names."""
    name = ILLEGAL_CHARACTERS_RE.sub("", name)
    return _UNSAFE_SHEET_CHARS.sub("_", name[:MAX_SHEET_NAME]) or "_"


def _cell_value(value: Any) -> Any:
    """
    openpyxl only accepts scalars; nested JSON is written as text.

    Control characters Excel cannot store (e.g. the vertical tab of a Word
    soft line break) are dropped from strings.
    """
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, (dict, list)):
        value = json.dumps(value, ensure_ascii=False)
    return ILLEGAL_CHARACTERS_RE.sub("", str(value))


def _write_sheet(ws, columns: Sequence[Tuple[str, int]], rows: Sequence[Sequence[Any]]) -> None:
    header_font = Font(bold=True)
    for col_idx, (header, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        ws.column_dimensions[get_column_letter(col_idx)].width = width
    for row_idx, values in enumerate(rows, start=2):
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col_idx, value=_cell_value(value))


def _to_bytes(wb: Workbook) -> bytes:
    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def week_sheet_rows(rows: Sequence[Any]) -> List[List[Any]]:
    """Project raw rows onto WEEK_COLUMNS (case-insensitive headers, '' when absent)."""
    projected = []
    for row in rows:
        values = []
        for header, _ in WEEK_COLUMNS:
            key = find_field_key(row, header)
            values.append(row[key] if key is not None else "")
        projected.append(values)
    return projected


def render_week_workbook(week: int, rows: Sequence[Any]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = f"Plan S{week}"
    _write_sheet(ws, WEEK_COLUMNS, week_sheet_rows(rows))
    logger.info("render_week_workbook: week=%d rows=%d", week, len(rows))
    return _to_bytes(wb)


def render_class_report(report: Dict[str, List[ReportRow]]) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for subject in sorted(report):
        sheet_rows = [
            [r.month, r.week, r.period, r.lesson, r.class_work, r.support, r.homework]
            for r in report[subject]
        ]
        ws = wb.create_sheet(title=safe_sheet_name(subject))
        _write_sheet(ws, REPORT_COLUMNS, sheet_rows)
        logger.info("render_class_report: sheet %r with %d rows", ws.title, len(sheet_rows))
    return _to_bytes(wb)
