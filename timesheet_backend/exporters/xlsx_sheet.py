"""Build the worklog spreadsheet from scratch with openpyxl."""

from __future__ import annotations

import io
import logging
import re
from typing import Any, Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Side
from openpyxl.utils import get_column_letter

from timesheet_backend.core.schema import WeekLabel, WorkAreaEntry, WorklogRow
from timesheet_backend.exporters.layout import LAYOUT, ExportLayout, date_text, merge_runs
from timesheet_backend.extractors.work_areas import referenced_areas, resolve_area_aliases

logger = logging.getLogger(__name__)

_THIN = Side(style="thin", color="000000")
BLACK_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_WEEK_NUMBER_PREFIX = re.compile(r"^(\d+)\s+\(")


def _date_cell_text(row: WorklogRow, weekly: bool) -> str:
    text = date_text(row)
    if weekly and isinstance(row.date_value, WeekLabel):
        return _WEEK_NUMBER_PREFIX.sub(r"\1\n(", text)
    return text


def _apply_border(ws, first_row: int, last_row: int, columns: int) -> None:
    for row in ws.iter_rows(min_row=first_row, max_row=last_row, min_col=1, max_col=columns):
        for cell in row:
            cell.border = BLACK_BORDER


def render_xlsx(
    rows: Sequence[WorklogRow],
    areas: Mapping[str, WorkAreaEntry] | None,
    weekly: bool,
    include_legend: bool,
    layout: ExportLayout = LAYOUT,
) -> bytes:
    show_area = bool(areas)
    header = layout.header(weekly, show_area)
    columns = len(header)

    workbook = Workbook()
    ws = workbook.active
    ws.title = layout.xlsx.sheet_title
    ws.append(header)

    for row in rows:
        values: list[Any] = [_date_cell_text(row, weekly), row.user, float(row.hours)]
        if show_area:
            values.append(resolve_area_aliases(row, areas) or "")
        values.append(row.description)
        ws.append(values)

    summary_row = len(rows) + 2
    last_data_row = max(2, len(rows) + 1)
    ws.cell(row=summary_row, column=2, value=layout.labels.summary)
    total = ws.cell(row=summary_row, column=3, value=f"=SUM(C2:C{last_data_row})")
    total.number_format = layout.xlsx.hours_format

    legend_entries = referenced_areas(rows, areas) if include_legend and areas else {}
    legend_first_row: int | None = None
    if legend_entries:
        legend_first_row = summary_row + 2
        ws.cell(row=legend_first_row, column=1, value=layout.labels.legend)
        for offset, entry in enumerate(legend_entries.values(), start=1):
            ws.cell(row=legend_first_row + offset, column=1, value=entry.alias)
            ws.cell(row=legend_first_row + offset, column=2, value=entry.name)

    _apply_border(ws, 1, summary_row, columns)
    if legend_first_row is not None:
        _apply_border(ws, legend_first_row, legend_first_row + len(legend_entries), 2)

    widths = layout.scaled_widths(show_area, layout.xlsx.total_chars, layout.xlsx.min_column_chars)
    for index, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width

    if weekly:
        centered = Alignment(horizontal="center", vertical="center", wrap_text=True)
        for data_row in range(2, len(rows) + 2):
            ws.cell(row=data_row, column=1).alignment = centered
        for start, end in merge_runs(rows):
            if end > start:
                ws.merge_cells(start_row=start + 2, start_column=1, end_row=end + 2, end_column=1)

    buffer = io.BytesIO()
    workbook.save(buffer)
    logger.info("Rendered XLSX sheet with %d rows (legend entries: %d)", len(rows), len(legend_entries))
    return buffer.getvalue()
