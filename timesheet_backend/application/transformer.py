"""Application service tying the parsers, the aggregator and the exporters together."""
from __future__ import annotations

import logging
from typing import Callable

from timesheet_backend.core.aggregation import aggregate_weekly
from timesheet_backend.core.schema import WorkAreaEntry, WorklogRow
from timesheet_backend.core.validation import EmptyResultError, ensure_rows
from timesheet_backend.domain import ExportedDocument, ProcessedWorklog
from timesheet_backend.exporters.docx_table import render_docx
from timesheet_backend.exporters.xlsx_sheet import render_xlsx
from timesheet_backend.extractors.work_areas import parse_area_index, rows_without_area
from timesheet_backend.extractors.worklog_csv import normalize_worklog

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def result_file_name(input_name: str | None, extension: str) -> str:
    """Derive ``<worklog stem>.<extension>`` from the uploaded file name."""

    trimmed = str(input_name or "").strip()
    if not trimmed:
        return f"result.{extension}"
    dot = trimmed.rfind(".")
    stem = trimmed[:dot] if dot > 0 else trimmed
    return f"{stem.strip() or 'result'}.{extension}"


class TimesheetService:
    """Coordinates the worklog processing and export use cases."""

    def process(
        self,
        worklog_text: str,
        worklog_name: str,
        areas_text: str | None = None,
    ) -> ProcessedWorklog:
        log: list[str] = []
        append = self._collector(log)

        append("Reading files...")
        daily_rows = normalize_worklog(worklog_text, append)
        if not daily_rows:
            raise EmptyResultError("No usable worklog rows found in CSV (after filtering summary rows).")
        append(f"Usable worklog rows: {len(daily_rows)}")

        work_areas: dict[str, WorkAreaEntry] | None = None
        if areas_text is not None:
            append("Reading optional work areas CSV...")
            work_areas = parse_area_index(areas_text)
            append(f"Loaded work areas: {len(work_areas)}")
            self._warn_unmapped(daily_rows, work_areas, append)

        append("Processing finished. You can now export Excel or DOCX.")
        return ProcessedWorklog(
            source_name=worklog_name,
            daily_rows=daily_rows,
            work_areas=work_areas,
            log=log,
        )

    def rows_for_export(self, processed: ProcessedWorklog, weekly: bool) -> list[WorklogRow]:
        rows = aggregate_weekly(processed.daily_rows) if weekly else list(processed.daily_rows)
        ensure_rows(rows, "No worklog rows left to export.")
        return rows

    def export_xlsx(self, processed: ProcessedWorklog, *, weekly: bool, include_legend: bool) -> ExportedDocument:
        content = render_xlsx(
            self.rows_for_export(processed, weekly),
            processed.work_areas,
            weekly,
            bool(include_legend and processed.work_areas),
        )
        return ExportedDocument(
            filename=result_file_name(processed.source_name, "xlsx"),
            media_type=XLSX_MEDIA_TYPE,
            content=content,
        )

    def export_docx(
        self,
        processed: ProcessedWorklog,
        template: bytes,
        *,
        weekly: bool,
        include_legend: bool,
    ) -> ExportedDocument:
        content = render_docx(
            template,
            self.rows_for_export(processed, weekly),
            processed.work_areas,
            weekly,
            bool(include_legend and processed.work_areas),
        )
        return ExportedDocument(
            filename=result_file_name(processed.source_name, "docx"),
            media_type=DOCX_MEDIA_TYPE,
            content=content,
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _collector(log: list[str]) -> Callable[[str], None]:
        def append(line: str) -> None:
            log.append(line)
            logger.info(line)

        return append

    @staticmethod
    def _warn_unmapped(
        rows: list[WorklogRow],
        work_areas: dict[str, WorkAreaEntry],
        append: Callable[[str], None],
    ) -> None:
        unmatched = rows_without_area(rows, work_areas)
        for position, row, codes in unmatched:
            append(
                f"Warning: no matching work area key for worklog row {position} "
                f"(user: {row.user}, date: {row.date_key}, keys: {', '.join(codes) if codes else 'none'})."
            )
        if unmatched:
            append(f"Warnings found: {len(unmatched)} worklog row(s) without matching work area keys.")


_service = TimesheetService()


def get_transform_service() -> TimesheetService:
    """Return the singleton transform service for the process."""

    return _service
