from __future__ import annotations

from typing import Iterable

from timesheet_backend.core.collation import collation_key
from timesheet_backend.core.schema import WorklogRow


def ordering_key(row: WorklogRow) -> tuple:
    return row.date_sort, collation_key(row.user), collation_key(row.description)


def compare_worklog_rows(left: WorklogRow, right: WorklogRow) -> int:
    a, b = ordering_key(left), ordering_key(right)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort_worklog_rows(rows: Iterable[WorklogRow]) -> list[WorklogRow]:
    """Return a new list ordered by date, then user, then description."""

    return sorted(rows, key=ordering_key)
