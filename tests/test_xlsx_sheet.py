import io
import sys
from pathlib import Path

from openpyxl import load_workbook

sys.path.append(str(Path(__file__).resolve().parents[1]))

from timesheet_backend.core.aggregation import aggregate_weekly
from timesheet_backend.exporters.xlsx_sheet import render_xlsx
from timesheet_backend.extractors.work_areas import parse_area_index
from timesheet_backend.extractors.worklog_csv import normalize_worklog


def _noop(line: str) -> None:
    pass


def _rows(body: str):
    return normalize_worklog("User,Worklog,Key,Logged,Date\n" + body, _noop)


def _sheet(content: bytes):
    workbook = load_workbook(io.BytesIO(content))
    return workbook["Timesheet"]


def test_daily_sheet_layout_and_summary_formula():
    rows = _rows("A,task one,K1,1h,03/02/26\nB,task two,K1,2h,04/02/26\n")

    ws = _sheet(render_xlsx(rows, None, weekly=False, include_legend=False))

    assert [cell.value for cell in ws[1]] == ["Datum", "Mitarbeiter*in", "Stunden", "Beschreibung der Tätigkeit"]
    assert ws["A2"].value == "03.02.2026"
    assert ws["B2"].value == "A"
    assert ws["C2"].value == 1
    assert ws["D3"].value == "task two"
    assert ws["B4"].value == "Summe"
    assert ws["C4"].value == "=SUM(C2:C3)"
    assert ws["C4"].number_format == "0.00"
    assert ws.max_row == 4


def test_borders_and_column_widths():
    rows = _rows("A,task one,K1,1h,03/02/26\n")

    ws = _sheet(render_xlsx(rows, None, weekly=False, include_legend=False))

    for row in ws.iter_rows(min_row=1, max_row=3, max_col=4):
        for cell in row:
            assert cell.border.left.style == "thin"
            assert cell.border.bottom.style == "thin"
    assert [ws.column_dimensions[letter].width for letter in "ABCD"] == [19, 24, 14, 62]


def test_area_column_and_legend_with_referenced_entries_only():
    rows = _rows("A,task,K1,1h,03/02/26\n")
    areas = parse_area_index("Key,Name,Alias\nK1,Team Alpha,TA\nK2,Unused Team,UT\n")

    ws = _sheet(render_xlsx(rows, areas, weekly=False, include_legend=True))

    assert ws["D1"].value == "Bereich"
    assert ws["D2"].value == "TA"
    assert ws["C3"].value == "=SUM(C2:C2)"
    assert ws["A5"].value == "Legende"
    assert ws["A6"].value == "TA"
    assert ws["B6"].value == "Team Alpha"
    assert ws.max_row == 6
    values = [cell.value for row in ws.iter_rows() for cell in row]
    assert "UT" not in values
    assert "Unused Team" not in values
    assert ws["A6"].border.top.style == "thin"
    assert ws["C6"].border.top.style is None
    assert [ws.column_dimensions[letter].width for letter in "ABCDE"] == [17, 19, 12, 16, 56]


def test_legend_is_skipped_without_references():
    rows = _rows("A,task,K9,1h,03/02/26\n")
    areas = parse_area_index("Key,Name,Alias\nK1,Team Alpha,TA\n")

    ws = _sheet(render_xlsx(rows, areas, weekly=False, include_legend=True))

    assert ws.max_row == 3
    assert ws["D2"].value in (None, "")


def test_weekly_date_cells_are_merged_and_centered():
    rows = aggregate_weekly(
        _rows(
            "A,task,K1,1h,03/02/26\n"
            "B,task,K1,2h,04/02/26\n"
            "C,task,K1,1h,05/02/26\n"
            "A,task,K1,1h,10/02/26\n"
        )
    )

    ws = _sheet(render_xlsx(rows, None, weekly=True, include_legend=False))

    assert ws["A1"].value == "Kalenderwoche"
    assert ws["A2"].value == "6\n(02.02 - 06.02)"
    assert [str(merged) for merged in ws.merged_cells.ranges] == ["A2:A4"]
    assert ws["A2"].alignment.horizontal == "center"
    assert ws["A2"].alignment.vertical == "center"
    assert ws["A2"].alignment.wrap_text
    assert ws["A5"].value == "7\n(09.02 - 13.02)"
    assert ws["C6"].value == "=SUM(C2:C5)"


def test_empty_row_set_still_produces_valid_formula():
    ws = _sheet(render_xlsx([], None, weekly=False, include_legend=False))

    assert ws["B2"].value == "Summe"
    assert ws["C2"].value == "=SUM(C2:C2)"
