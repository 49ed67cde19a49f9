import io
import sys
import zipfile
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from timesheet_backend.core.aggregation import aggregate_weekly
from timesheet_backend.core.validation import TemplateStructureError
from timesheet_backend.exporters.docx_table import (
    DOCUMENT_PATH,
    render_docx,
    replace_placeholder_paragraph,
)
from timesheet_backend.exporters.templates import build_template
from timesheet_backend.extractors.work_areas import parse_area_index
from timesheet_backend.extractors.worklog_csv import normalize_worklog


def _noop(line: str) -> None:
    pass


def _rows(body: str):
    return normalize_worklog("User,Worklog,Key,Logged,Date\n" + body, _noop)


def _document_xml(docx: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(docx)) as archive:
        return archive.read(DOCUMENT_PATH).decode("utf-8")


@pytest.fixture()
def template() -> bytes:
    return build_template()


def test_without_work_areas_there_is_no_area_column_or_legend(template):
    rows = _rows("Test User A,task a,TEST-1,1h,03/02/26 at 08:00\n")

    xml = _document_xml(render_docx(template, rows, None, weekly=False, include_legend=True))

    assert "Bereich" not in xml
    assert "Legende" not in xml
    assert ">Tabelle<" not in xml
    assert "03.02.2026" in xml
    assert "1,00" in xml
    assert xml.count('<w:gridCol w:w=') == 4
    assert '<w:gridCol w:w="1440"/><w:gridCol w:w="1800"/>' in xml


def test_legend_contains_only_referenced_areas(template):
    rows = _rows("Test User A,task a,TEST-1,1h,03/02/26 at 08:00\n")
    areas = parse_area_index("Key,Name,Alias\nTEST-1,Team Alpha,TA\nTEST-2,Unused Team,UT\n")

    xml = _document_xml(render_docx(template, rows, areas, weekly=False, include_legend=True))

    assert "Bereich" in xml
    assert "Legende" in xml
    assert ">TA<" in xml
    assert ">Team Alpha<" in xml
    assert ">UT<" not in xml
    assert ">Unused Team<" not in xml
    assert xml.count('<w:gridCol w:w=') == 5


def test_legend_is_omitted_when_not_requested(template):
    rows = _rows("A,task a,TEST-1,1h,03/02/26\n")
    areas = parse_area_index("Key,Name,Alias\nTEST-1,Team Alpha,TA\n")

    xml = _document_xml(render_docx(template, rows, areas, weekly=False, include_legend=False))

    assert "Bereich" in xml
    assert "Legende" not in xml


def test_same_date_rows_are_vertically_merged(template):
    rows = _rows(
        "A,first,K1,1h,03/02/26\n"
        "B,second,K1,1h,03/02/26\n"
        "C,third,K1,1h,03/02/26\n"
        "A,other day,K1,1h,04/02/26\n"
    )

    xml = _document_xml(render_docx(template, rows, None, weekly=False, include_legend=False))

    assert xml.count('<w:vMerge w:val="restart"/>') == 1
    assert xml.count("<w:vMerge/>") == 2
    assert xml.count("03.02.2026") == 1


def test_summary_row_totals_all_hours(template):
    rows = _rows("A,first,K1,1h 15m,03/02/26\nB,second,K1,2.5,04/02/26\n")

    xml = _document_xml(render_docx(template, rows, None, weekly=False, include_legend=False))

    assert "Summe" in xml
    assert "3,75" in xml


def test_weekly_labels_use_line_breaks(template):
    rows = aggregate_weekly(_rows("A,task,K1,1h,03/02/26\nA,task,K1,2h,04/02/26\n"))

    xml = _document_xml(render_docx(template, rows, None, weekly=True, include_legend=False))

    assert "Kalenderwoche" in xml
    assert "<w:br/>" in xml
    assert ">(02.02 - 06.02)<" in xml
    assert "\n(02.02" not in xml
    assert "3,00" in xml


def test_free_text_is_escaped(template):
    rows = _rows('A,"Fix <b> & ""quotes""",K1,1h,03/02/26\n')

    xml = _document_xml(render_docx(template, rows, None, weekly=False, include_legend=False))

    assert "Fix &lt;b&gt; &amp; &quot;quotes&quot;" in xml


def test_other_archive_entries_are_passed_through(template):
    rows = _rows("A,task,K1,1h,03/02/26\n")

    output = render_docx(template, rows, None, weekly=False, include_legend=False)

    with zipfile.ZipFile(io.BytesIO(template)) as source, zipfile.ZipFile(io.BytesIO(output)) as result:
        assert source.namelist() == result.namelist()
        for name in source.namelist():
            if name != DOCUMENT_PATH:
                assert source.read(name) == result.read(name)


def test_template_without_document_is_rejected():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("word/styles.xml", "<styles/>")

    with pytest.raises(TemplateStructureError):
        render_docx(buffer.getvalue(), _rows("A,task,K1,1h,03/02/26\n"), None, False, False)


def test_template_that_is_not_an_archive_is_rejected():
    with pytest.raises(TemplateStructureError):
        render_docx(b"not a zip", _rows("A,task,K1,1h,03/02/26\n"), None, False, False)


def test_template_without_placeholder_is_rejected():
    template = build_template(placeholder="Something else")

    with pytest.raises(TemplateStructureError):
        render_docx(template, _rows("A,task,K1,1h,03/02/26\n"), None, False, False)


def test_placeholder_split_across_runs_is_found_and_only_first_is_replaced():
    xml = (
        "<w:body>"
        "<w:p><w:pPr><w:jc w:val=\"left\"/></w:pPr><w:r><w:t>Tab</w:t></w:r><w:r><w:t xml:space=\"preserve\">elle </w:t></w:r></w:p>"
        "<w:p><w:r><w:t>Tabelle</w:t></w:r></w:p>"
        "</w:body>"
    )

    result = replace_placeholder_paragraph(xml, "Tabelle", "<w:tbl/>")

    assert result == "<w:body><w:tbl/><w:p><w:r><w:t>Tabelle</w:t></w:r></w:p></w:body>"


def _table_rows(xml: str) -> list[str]:
    table = xml[xml.index("<w:tbl>") : xml.index("</w:tbl>")]
    return table.split("<w:tr>")[1:]


def test_weekly_rows_of_several_users_share_one_merged_week_cell(template):
    rows = aggregate_weekly(
        _rows(
            "A,task,K1,1h,03/02/26\n"
            "B,task,K1,2h,04/02/26\n"
            "C,task,K1,1h,05/02/26\n"
            "A,task,K1,1h,10/02/26\n"
        )
    )

    xml = _document_xml(render_docx(template, rows, None, weekly=True, include_legend=False))
    body_rows = _table_rows(xml)[1:-1]

    assert [row.date_key for row in rows] == ["2026-W06", "2026-W06", "2026-W06", "2026-W07"]
    assert '<w:vMerge w:val="restart"/>' in body_rows[0]
    assert body_rows[1].count("<w:vMerge/>") == 1
    assert body_rows[2].count("<w:vMerge/>") == 1
    assert "vMerge" not in body_rows[3]
    assert xml.count(">(02.02 - 06.02)<") == 1
    first_date_cell = body_rows[0].split("</w:tc>")[0]
    assert '<w:jc w:val="center"/>' in first_date_cell
    assert '<w:jc w:val="center"/>' in body_rows[3].split("</w:tc>")[0]


def test_daily_date_cells_are_left_aligned(template):
    rows = _rows("A,task,K1,1h,03/02/26\n")

    xml = _document_xml(render_docx(template, rows, None, weekly=False, include_legend=False))

    assert '<w:jc w:val="left"/>' in _table_rows(xml)[1].split("</w:tc>")[0]


@pytest.mark.parametrize("with_areas, cells", [(False, 4), (True, 5)])
def test_summary_row_spans_every_column(template, with_areas, cells):
    rows = _rows("A,task,K1,1h,03/02/26\n")
    areas = parse_area_index("Key,Name,Alias\nK1,Team Alpha,TA\n") if with_areas else None

    xml = _document_xml(render_docx(template, rows, areas, weekly=False, include_legend=False))
    summary = _table_rows(xml)[-1]

    assert "Summe" in summary
    assert summary.count("<w:tc>") == cells
    trailing = summary.split("<w:tc>")[4:]
    assert len(trailing) == cells - 3
    assert all("<w:t xml:space=\"preserve\"></w:t>" in cell for cell in trailing)


def test_self_closing_paragraph_before_placeholder_is_kept():
    xml = (
        "<w:body>"
        '<w:p w14:paraId="1A2B3C4D"/>'
        "<w:p><w:r><w:t>Intro</w:t></w:r></w:p>"
        "<w:p/>"
        "<w:p><w:r><w:t>Tabelle</w:t></w:r></w:p>"
        "</w:body>"
    )

    result = replace_placeholder_paragraph(xml, "Tabelle", "<w:tbl/>")

    assert result == (
        "<w:body>"
        '<w:p w14:paraId="1A2B3C4D"/>'
        "<w:p><w:r><w:t>Intro</w:t></w:r></w:p>"
        "<w:p/>"
        "<w:tbl/>"
        "</w:body>"
    )
