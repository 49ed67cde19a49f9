"""Parser for the worklog CSV export (one line per logged piece of work).

Every record is normalised into a :class:`WorklogRow`.  Records that
cannot be used (no user, no description, unreadable ``Logged`` or
``Date`` value) are skipped and reported through the ``warn`` callback so
that the caller can show them to the user; they never abort the parse.
"""

from __future__ import annotations

import logging
import re
import warnings
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable

import pandas as pd

from timesheet_backend.core.csvio import field_at, read_csv_records, resolve_columns
from timesheet_backend.core.ordering import sort_worklog_rows
from timesheet_backend.core.schema import CalendarDay, WorklogRow
from timesheet_backend.core.text import normalize_field, split_worklog_parts
from timesheet_backend.core.validation import FormatError, RowRejection

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("User", "Worklog", "Key", "Logged", "Date")

STRICT_DATE_FORMATS = [
    (re.compile(r"^\d{2}/\d{2}/\d{2}$"), "%d/%m/%y"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}$"), "%d/%m/%Y"),
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
]

_HOURS_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*h")
_MINUTES_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*m")
_AT_TIME = re.compile(r"\s+at\s+", re.IGNORECASE)
_CENT = Decimal("0.01")

Warn = Callable[[str], None]


def _safe_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        decimal_value = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not decimal_value.is_finite():
        return None
    return decimal_value


def round_hours(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _match_amount(pattern: re.Pattern[str], text: str) -> Decimal:
    match = pattern.search(text)
    if not match:
        return Decimal("0")
    return _safe_decimal(match.group(1).replace(",", ".")) or Decimal("0")


def parse_logged_hours(logged: Any) -> Decimal | None:
    """Convert a ``Logged`` value such as ``1h 30m``, ``45m`` or ``1,5`` to hours."""

    text = str(logged or "").strip().lower()
    if not text:
        return None

    total = _match_amount(_HOURS_PATTERN, text) + _match_amount(_MINUTES_PATTERN, text) / 60
    if total <= 0:
        total = _safe_decimal(text.replace(",", ".", 1))
    if total is None:
        return None
    try:
        hours = round_hours(total)
    except InvalidOperation:
        return None
    # values below half a cent round to zero and count as unparseable
    return hours if hours > 0 else None


def _flexible_date(text: str) -> datetime | None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        try:
            stamp = pd.to_datetime(text, errors="coerce")
        except (ValueError, OverflowError):
            return None
    if stamp is None or pd.isna(stamp):
        return None
    moment = stamp.to_pydatetime()
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def parse_worklog_date(date_field: Any) -> datetime | None:
    """Parse a ``Date`` value into a naive local datetime at noon.

    Ranges (``"01/02/26 to 03/02/26"``) are not supported and yield ``None``.
    """

    raw = str(date_field or "").strip()
    if not raw:
        return None
    if " to " in raw.lower():
        return None

    date_part = _AT_TIME.split(raw, maxsplit=1)[0].strip()
    for pattern, fmt in STRICT_DATE_FORMATS:
        if not pattern.match(date_part):
            continue
        try:
            return datetime.strptime(date_part, fmt).replace(hour=12)
        except ValueError:
            continue

    moment = _flexible_date(date_part)
    if moment is None:
        return None
    return moment.replace(hour=12, minute=0, second=0, microsecond=0)


def _rejection_reason(hours: Decimal | None, moment: datetime | None) -> str:
    if hours is None and moment is None:
        return "invalid_logged_and_date"
    if hours is None:
        return "invalid_logged"
    return "invalid_date"


def date_sort_value(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def normalize_worklog(text: str, warn: Warn | None = None) -> list[WorklogRow]:
    """Parse worklog CSV text into canonically ordered rows."""

    warn = warn or logger.warning
    records = read_csv_records(text, source="CSV")
    if len(records) < 2:
        raise FormatError("CSV has no data rows")

    columns, missing = resolve_columns(records[0], REQUIRED_COLUMNS)
    if missing:
        raise FormatError(f"CSV header missing columns: {', '.join(missing)}")

    rows: list[WorklogRow] = []
    rejected = 0
    for position, record in enumerate(records[1:], start=2):
        user = normalize_field(field_at(record, columns["User"]))
        description = ", ".join(split_worklog_parts(field_at(record, columns["Worklog"])))
        key = normalize_field(field_at(record, columns["Key"]))
        logged = normalize_field(field_at(record, columns["Logged"]))
        date_field = normalize_field(field_at(record, columns["Date"]))
        fields = {"user": user, "description": description, "key": key, "logged": logged}

        rejection: RowRejection | None = None
        hours: Decimal | None = None
        moment: datetime | None = None
        if not user:
            rejection = RowRejection(position, "missing_user", fields)
        elif not description:
            rejection = RowRejection(position, "missing_worklog/summary_row", fields)
        else:
            hours = parse_logged_hours(logged)
            moment = parse_worklog_date(date_field)
            if hours is None or moment is None:
                rejection = RowRejection(
                    position,
                    _rejection_reason(hours, moment),
                    {**fields, "dateField": date_field},
                )

        if rejection is not None:
            rejected += 1
            warn(rejection.describe())
            continue

        rows.append(
            WorklogRow(
                date_value=CalendarDay(moment=moment),
                date_key=moment.strftime("%Y-%m-%d"),
                date_sort=date_sort_value(moment),
                user=user,
                hours=hours,
                description=description,
                key=key or None,
            )
        )

    logger.info("Parsed %d worklog rows, discarded %d", len(rows), rejected)
    return sort_worklog_rows(rows)
