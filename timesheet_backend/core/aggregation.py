from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable

from timesheet_backend.core.ordering import sort_worklog_rows
from timesheet_backend.core.schema import CalendarDay, WeekLabel, WorklogRow
from timesheet_backend.core.text import split_worklog_parts

_DAILY = re.compile(r"^daily\b", re.IGNORECASE)

# row hours may use the full default precision; sums need headroom
SUM_PRECISION = 60


@dataclass(frozen=True)
class WeekRange:
    start: datetime
    end: datetime
    week_number: int
    week_year: int

    @property
    def key(self) -> str:
        return f"{self.week_year}-W{self.week_number:02d}"

    @property
    def short_range(self) -> str:
        return f"({self.start:%d.%m} - {self.end:%d.%m})"


@dataclass
class _WeekGroup:
    week: WeekRange
    user: str
    hours: Decimal = Decimal("0")
    descriptions: list[str] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)
    codes: dict[str, None] = field(default_factory=dict)

    def add_description(self, part: str) -> None:
        is_daily = bool(_DAILY.match(part))
        dedupe_key = "daily" if is_daily else part.lower()
        if dedupe_key in self.seen:
            return
        self.seen.add(dedupe_key)
        self.descriptions.append("Daily" if is_daily else part)


def work_week_range(moment: datetime) -> WeekRange:
    """Monday-to-Friday work week containing ``moment``, both ends at noon."""

    start = (moment - timedelta(days=moment.weekday())).replace(hour=12, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=4)
    iso = start.isocalendar()
    return WeekRange(start=start, end=end, week_number=iso[1], week_year=iso[0])


def aggregate_weekly(rows: Iterable[WorklogRow]) -> list[WorklogRow]:
    """Collapse daily rows into one row per (work week, user).

    Rows that already carry a week label are skipped.
    """

    groups: dict[tuple[str, str], _WeekGroup] = {}
    with localcontext() as context:
        context.prec = SUM_PRECISION
        for row in rows:
            if not isinstance(row.date_value, CalendarDay):
                continue
            week = work_week_range(row.date_value.moment)
            group = groups.get((week.key, row.user))
            if group is None:
                group = _WeekGroup(week=week, user=row.user)
                groups[(week.key, row.user)] = group

            group.hours += row.hours
            for part in split_worklog_parts(row.description):
                group.add_description(part)
            for code in row.area_codes():
                group.codes.setdefault(code, None)

        totals = {
            group_key: group.hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            for group_key, group in groups.items()
        }

    aggregated = [
        WorklogRow(
            date_value=WeekLabel(label=f"{group.week.week_number}\n{group.week.short_range}"),
            date_key=group.week.key,
            date_sort=int(group.week.start.timestamp() * 1000),
            user=group.user,
            hours=totals[group_key],
            description=", ".join(group.descriptions),
            keys=list(group.codes),
        )
        for group_key, group in groups.items()
    ]
    return sort_worklog_rows(aggregated)
