"""Column layout and formatting shared by the DOCX and XLSX exporters."""

from __future__ import annotations

import os
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from pathlib import Path
from typing import Sequence

import yaml
from pydantic import BaseModel, Field

from timesheet_backend.core.aggregation import SUM_PRECISION
from timesheet_backend.core.schema import CalendarDay, WorklogRow

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


class Labels(BaseModel):
    date: str = "Datum"
    week: str = "Kalenderwoche"
    user: str = "Mitarbeiter*in"
    hours: str = "Stunden"
    area: str = "Bereich"
    description: str = "Beschreibung der Tätigkeit"
    summary: str = "Summe"
    legend: str = "Legende"


class Proportions(BaseModel):
    with_area: list[int] = Field(default_factory=lambda: [14, 16, 10, 13, 47])
    without_area: list[int] = Field(default_factory=lambda: [16, 20, 12, 52])


class DocxLayout(BaseModel):
    placeholder: str = "Tabelle"
    grid_width_dxa: int = 9000
    font_size_half_points: int = 16
    legend_alias_width_dxa: int = 2500
    legend_name_width_dxa: int = 4500


class XlsxLayout(BaseModel):
    sheet_title: str = "Timesheet"
    total_chars: int = 120
    min_column_chars: int = 8
    hours_format: str = "0.00"


class ExportLayout(BaseModel):
    labels: Labels = Field(default_factory=Labels)
    proportions: Proportions = Field(default_factory=Proportions)
    docx: DocxLayout = Field(default_factory=DocxLayout)
    xlsx: XlsxLayout = Field(default_factory=XlsxLayout)

    def header(self, weekly: bool, show_area: bool) -> list[str]:
        labels = self.labels
        columns = [labels.week if weekly else labels.date, labels.user, labels.hours]
        if show_area:
            columns.append(labels.area)
        columns.append(labels.description)
        return columns

    def column_weights(self, show_area: bool) -> list[int]:
        return self.proportions.with_area if show_area else self.proportions.without_area

    def scaled_widths(self, show_area: bool, total: int, minimum: int = 0) -> list[int]:
        weights = self.column_weights(show_area)
        weight_sum = sum(weights)
        return [max(minimum, round_half_up(Decimal(weight) / weight_sum * total)) for weight in weights]


def _layout_path() -> Path:
    env_path = os.getenv("TIMESHEET_LAYOUT_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return CONFIG_DIR / "export_layout.yaml"


def load_layout(path: Path | None = None) -> ExportLayout:
    path = path or _layout_path()
    if not path.exists():
        return ExportLayout()
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    return ExportLayout.model_validate(data)


LAYOUT = load_layout()


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_german_date(moment: datetime) -> str:
    return moment.strftime("%d.%m.%Y")


def format_german_number(value: Decimal | float, decimals: int = 2) -> str:
    with localcontext() as context:
        context.prec = SUM_PRECISION
        quantum = Decimal(1).scaleb(-decimals)
        return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)).replace(".", ",")


def date_text(row: WorklogRow) -> str:
    if isinstance(row.date_value, CalendarDay):
        return format_german_date(row.date_value.moment)
    return row.date_value.label


def merge_runs(rows: Sequence[WorklogRow]) -> list[tuple[int, int]]:
    """Maximal runs ``(start, end)`` (inclusive, 0-based) of consecutive equal ``date_key``."""

    runs: list[tuple[int, int]] = []
    start = 0
    while start < len(rows):
        end = start
        while end + 1 < len(rows) and rows[end + 1].date_key == rows[start].date_key:
            end += 1
        runs.append((start, end))
        start = end + 1
    return runs


def merge_modes(rows: Sequence[WorklogRow]) -> list[str | None]:
    """Per row: ``"restart"`` for the first row of a multi-row run, ``"continue"`` for the rest."""

    modes: list[str | None] = [None] * len(rows)
    for start, end in merge_runs(rows):
        if end == start:
            continue
        modes[start] = "restart"
        for index in range(start + 1, end + 1):
            modes[index] = "continue"
    return modes


def total_hours(rows: Sequence[WorklogRow]) -> Decimal:
    with localcontext() as context:
        context.prec = SUM_PRECISION
        return sum((row.hours for row in rows), Decimal("0"))
