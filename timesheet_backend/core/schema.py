from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, constr


class CalendarDay(BaseModel):
    """Concrete worked day, anchored to local noon."""

    kind: Literal["day"] = "day"
    moment: datetime


class WeekLabel(BaseModel):
    """Pre-formatted work week label of an aggregated row."""

    kind: Literal["week"] = "week"
    label: str


DateValue = Annotated[Union[CalendarDay, WeekLabel], Field(discriminator="kind")]


class WorklogRow(BaseModel):
    date_value: DateValue
    date_key: constr(pattern=r"^\d{4}-(\d{2}-\d{2}|W\d{2})$")
    date_sort: int
    user: constr(min_length=1)
    hours: Decimal = Field(gt=0, decimal_places=2)
    description: constr(min_length=1)
    key: str | None = None
    keys: list[str] | None = None

    @property
    def is_daily(self) -> bool:
        return isinstance(self.date_value, CalendarDay)

    def area_codes(self) -> list[str]:
        codes: list[str] = []
        if self.key:
            codes.append(self.key)
        if self.keys:
            codes.extend(code for code in self.keys if code)
        return codes


class WorkAreaEntry(BaseModel):
    name: constr(min_length=1)
    alias: constr(min_length=1)
