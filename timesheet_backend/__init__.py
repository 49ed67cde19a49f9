"""Worklog CSV to DOCX/XLSX timesheet transformer."""

from timesheet_backend.core.aggregation import aggregate_weekly
from timesheet_backend.exporters.docx_table import render_docx
from timesheet_backend.exporters.xlsx_sheet import render_xlsx
from timesheet_backend.extractors.work_areas import parse_area_index
from timesheet_backend.extractors.worklog_csv import normalize_worklog

__all__ = [
    "aggregate_weekly",
    "normalize_worklog",
    "parse_area_index",
    "render_docx",
    "render_xlsx",
]
