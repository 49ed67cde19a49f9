"""Splice a worklog table (and optional legend) into a DOCX template.

The template is treated as an opaque archive: only ``word/document.xml``
is rewritten, and within it only the paragraph whose text equals the
placeholder is replaced.  Everything else is copied byte for byte.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from decimal import Decimal
from typing import Mapping, Sequence
from xml.sax.saxutils import escape, unescape

from timesheet_backend.core.schema import WorkAreaEntry, WorklogRow
from timesheet_backend.core.validation import TemplateStructureError
from timesheet_backend.exporters.layout import (
    LAYOUT,
    ExportLayout,
    date_text,
    format_german_number,
    merge_modes,
    total_hours,
)
from timesheet_backend.extractors.work_areas import referenced_areas, resolve_area_aliases

logger = logging.getLogger(__name__)

DOCUMENT_PATH = "word/document.xml"

_PARAGRAPH = re.compile(r"<w:p(?:\s[^>]*)?(?<!/)>.*?</w:p>", re.DOTALL)
_TEXT_NODE = re.compile(r"<w:t(?:\s[^>]*)?>(.*?)</w:t>", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")
_ENTITIES = {"&quot;": '"', "&apos;": "'"}
_EMPTY_PARAGRAPH = "<w:p><w:r><w:t></w:t></w:r></w:p>"
_ENTITIES_OUT = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: object) -> str:
    return escape("" if text is None else str(text), _ENTITIES_OUT)


def paragraph_text(paragraph_xml: str) -> str:
    return "".join(unescape(match, _ENTITIES) for match in _TEXT_NODE.findall(paragraph_xml))


def replace_placeholder_paragraph(document_xml: str, needle: str, replacement_xml: str) -> str:
    """Replace the first paragraph whose collapsed text equals ``needle``."""

    for match in _PARAGRAPH.finditer(document_xml):
        text = _WHITESPACE.sub(" ", paragraph_text(match.group(0))).strip()
        if text == needle:
            return document_xml[: match.start()] + replacement_xml + document_xml[match.end() :]
    raise TemplateStructureError(f"Could not find DOCX placeholder paragraph '{needle}'")


class DocxTableBuilder:
    """Builds the WordprocessingML markup for the worklog and legend tables."""

    def __init__(self, layout: ExportLayout = LAYOUT) -> None:
        self.layout = layout
        self.font_size = layout.docx.font_size_half_points

    def _run_properties(self, bold: bool = False) -> str:
        bold_xml = "<w:b/><w:bCs/>" if bold else ""
        return f'<w:rPr>{bold_xml}<w:sz w:val="{self.font_size}"/><w:szCs w:val="{self.font_size}"/></w:rPr>'

    def text_run(self, text: object, bold: bool = False) -> str:
        return f'<w:r>{self._run_properties(bold)}<w:t xml:space="preserve">{escape_xml(text)}</w:t></w:r>'

    def paragraph(self, text: object, bold: bool = False, jc: str | None = None) -> str:
        alignment = f'<w:jc w:val="{jc}"/>' if jc else ""
        runs: list[str] = []
        for index, line in enumerate(str(text or "").split("\n")):
            if index > 0:
                runs.append("<w:r><w:br/></w:r>")
            runs.append(self.text_run(line, bold=bold))
        return f"<w:p><w:pPr>{alignment}</w:pPr>{''.join(runs)}</w:p>"

    def cell(
        self,
        text: object,
        width: int | None = None,
        bold: bool = False,
        jc: str | None = None,
        v_align: str | None = None,
        v_merge: str | None = None,
    ) -> str:
        properties = ""
        if width:
            properties += f'<w:tcW w:w="{width}" w:type="dxa"/>'
        if v_align:
            properties += f'<w:vAlign w:val="{v_align}"/>'
        if v_merge == "restart":
            properties += '<w:vMerge w:val="restart"/>'
        elif v_merge == "continue":
            properties += "<w:vMerge/>"
        tc_pr = f"<w:tcPr>{properties}</w:tcPr>" if properties else ""
        return f"<w:tc>{tc_pr}{self.paragraph(text, bold=bold, jc=jc)}</w:tc>"

    def worklog_table(
        self,
        rows: Sequence[WorklogRow],
        areas: Mapping[str, WorkAreaEntry] | None,
        weekly: bool,
    ) -> str:
        show_area = bool(areas)
        grid = self.layout.scaled_widths(show_area, self.layout.docx.grid_width_dxa)
        grid_xml = "".join(f'<w:gridCol w:w="{width}"/>' for width in grid)
        table_properties = (
            "<w:tblPr>"
            '<w:tblStyle w:val="TableGrid"/>'
            '<w:tblW w:w="5000" w:type="pct"/>'
            '<w:tblLayout w:type="fixed"/>'
            "</w:tblPr>"
        )

        header = self.layout.header(weekly, show_area)
        header_cells = [
            self.cell(text, width=grid[index], bold=True, jc="center", v_align="center")
            for index, text in enumerate(header)
        ]
        rows_xml = [f"<w:tr>{''.join(header_cells)}</w:tr>"]

        for row, mode in zip(rows, merge_modes(rows)):
            cells = [
                self.cell(
                    "" if mode == "continue" else date_text(row),
                    width=grid[0],
                    jc="center" if weekly else "left",
                    v_align="center",
                    v_merge=mode,
                ),
                self.cell(row.user, width=grid[1], v_align="top"),
                self.cell(format_german_number(row.hours), width=grid[2], jc="right", v_align="top"),
            ]
            if show_area:
                cells.append(self.cell(resolve_area_aliases(row, areas) or "", width=grid[3], v_align="top"))
            cells.append(self.cell(row.description, width=grid[-1], v_align="top"))
            rows_xml.append(f"<w:tr>{''.join(cells)}</w:tr>")

        rows_xml.append(self.summary_row(grid, total_hours(rows)))
        return f"<w:tbl>{table_properties}<w:tblGrid>{grid_xml}</w:tblGrid>{''.join(rows_xml)}</w:tbl>{_EMPTY_PARAGRAPH}"

    def summary_row(self, grid: Sequence[int], hours: Decimal) -> str:
        cells = [
            self.cell("", width=grid[0], bold=True, v_align="center"),
            self.cell(self.layout.labels.summary, width=grid[1], bold=True, v_align="center"),
            self.cell(format_german_number(hours), width=grid[2], bold=True, jc="right", v_align="center"),
        ]
        cells.extend(self.cell("", width=width, bold=True, v_align="center") for width in grid[3:])
        return f"<w:tr>{''.join(cells)}</w:tr>"

    def legend(self, entries: Mapping[str, WorkAreaEntry]) -> str:
        docx = self.layout.docx
        heading = (
            '<w:p><w:pPr><w:spacing w:after="0"/></w:pPr>'
            f"<w:r>{self._run_properties(bold=True)}<w:t>{escape_xml(self.layout.labels.legend)}</w:t></w:r></w:p>"
        )
        rows = []
        for entry in entries.values():
            rows.append(
                "<w:tr>"
                f'<w:tc><w:tcPr><w:tcW w:w="{docx.legend_alias_width_dxa}" w:type="dxa"/></w:tcPr>'
                f"<w:p><w:r>{self._run_properties()}<w:t>{escape_xml(entry.alias)}</w:t></w:r></w:p></w:tc>"
                f'<w:tc><w:tcPr><w:tcW w:w="{docx.legend_name_width_dxa}" w:type="dxa"/></w:tcPr>'
                f"<w:p><w:r>{self._run_properties()}<w:t>{escape_xml(entry.name)}</w:t></w:r></w:p></w:tc>"
                "</w:tr>"
            )
        table_width = docx.legend_alias_width_dxa + docx.legend_name_width_dxa
        table = (
            "<w:tbl><w:tblPr>"
            '<w:tblStyle w:val="TableGrid"/>'
            f'<w:tblW w:w="{table_width}" w:type="dxa"/>'
            '<w:tblLayout w:type="fixed"/>'
            f"</w:tblPr>{''.join(rows)}</w:tbl>"
        )
        return heading + table + _EMPTY_PARAGRAPH


def _rewrite_archive(template: bytes, path: str, content: bytes) -> bytes:
    output = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(template), "r") as source, zipfile.ZipFile(output, "w") as target:
        for info in source.infolist():
            data = content if info.filename == path else source.read(info.filename)
            target.writestr(info, data)
    return output.getvalue()


def render_docx(
    template: bytes,
    rows: Sequence[WorklogRow],
    areas: Mapping[str, WorkAreaEntry] | None,
    weekly: bool,
    include_legend: bool,
    layout: ExportLayout = LAYOUT,
) -> bytes:
    """Return a copy of ``template`` with the placeholder paragraph replaced by the worklog table."""

    try:
        with zipfile.ZipFile(io.BytesIO(template), "r") as archive:
            if DOCUMENT_PATH not in archive.namelist():
                raise TemplateStructureError(f"DOCX template has no {DOCUMENT_PATH}")
            document_xml = archive.read(DOCUMENT_PATH).decode("utf-8")
    except zipfile.BadZipFile as exc:
        raise TemplateStructureError("DOCX template is not a valid archive") from exc

    builder = DocxTableBuilder(layout)
    replacement = builder.worklog_table(rows, areas, weekly)
    if include_legend and areas:
        legend_entries = referenced_areas(rows, areas)
        if legend_entries:
            replacement += builder.legend(legend_entries)

    updated = replace_placeholder_paragraph(document_xml, layout.docx.placeholder, replacement)
    logger.info("Rendered DOCX table with %d rows", len(rows))
    return _rewrite_archive(template, DOCUMENT_PATH, updated.encode("utf-8"))
