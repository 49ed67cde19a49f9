"""Parser and lookups for the optional work area reference table."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from timesheet_backend.core.csvio import field_at, read_csv_records, resolve_columns
from timesheet_backend.core.schema import WorkAreaEntry, WorklogRow
from timesheet_backend.core.text import normalize_field
from timesheet_backend.core.validation import FormatError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("Key", "Name", "Alias")

AreaIndex = Mapping[str, WorkAreaEntry]


def parse_area_index(text: str) -> dict[str, WorkAreaEntry]:
    records = read_csv_records(text, source="work_areas.csv")
    if len(records) < 2:
        raise FormatError("work_areas.csv has no data rows")

    columns, missing = resolve_columns(records[0], REQUIRED_COLUMNS)
    if missing:
        raise FormatError('work_areas.csv header must contain "Key", "Name", and "Alias"')

    index: dict[str, WorkAreaEntry] = {}
    for record in records[1:]:
        code = normalize_field(field_at(record, columns["Key"]))
        name = normalize_field(field_at(record, columns["Name"]))
        alias = normalize_field(field_at(record, columns["Alias"]))
        if not code or not name or not alias:
            continue
        index[code] = WorkAreaEntry(name=name, alias=alias)

    logger.info("Loaded %d work areas", len(index))
    return index


def resolve_area_aliases(row: WorklogRow, index: AreaIndex | None) -> str | None:
    """Aliases of the row's codes, one per line, or ``None`` if none resolve."""

    if not index:
        return None
    aliases: list[str] = []
    seen: set[str] = set()
    for code in row.area_codes():
        entry = index.get(code)
        if entry is None:
            continue
        norm = entry.alias.lower()
        if norm in seen:
            continue
        seen.add(norm)
        aliases.append(entry.alias)
    return "\n".join(aliases) if aliases else None


def referenced_areas(rows: Iterable[WorklogRow], index: AreaIndex) -> dict[str, WorkAreaEntry]:
    """Entries of ``index`` used by at least one row, in index order."""

    used = {code for row in rows for code in row.area_codes()}
    return {code: entry for code, entry in index.items() if code in used}


def rows_without_area(rows: Iterable[WorklogRow], index: AreaIndex) -> list[tuple[int, WorklogRow, list[str]]]:
    """Rows (1-based position, row, distinct codes) with no code present in ``index``."""

    unmatched: list[tuple[int, WorklogRow, list[str]]] = []
    for position, row in enumerate(rows, start=1):
        codes = list(dict.fromkeys(row.area_codes()))
        if any(code in index for code in codes):
            continue
        unmatched.append((position, row, codes))
    return unmatched
