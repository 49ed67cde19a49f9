from __future__ import annotations

import io
import warnings
from typing import Iterable

import pandas as pd

from timesheet_backend.core.text import cell_text
from timesheet_backend.core.validation import FormatError


def _keep_fields(fields: list[str]) -> list[str]:
    return fields


def read_csv_records(text: str, *, source: str = "CSV") -> list[list[str]]:
    """Read delimited text into raw string records, header included."""

    text = text.lstrip("\ufeff")
    if not text.strip():
        return []
    try:
        # records wider than the header keep their leading fields; the rest is dropped
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            frame = pd.read_csv(
                io.StringIO(text),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
                on_bad_lines=_keep_fields,
            )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as exc:
        raise FormatError(f"{source} parse error: {exc}") from exc
    return [[cell_text(cell) for cell in row] for row in frame.itertuples(index=False, name=None)]


def resolve_columns(header: Iterable[str], required: Iterable[str]) -> tuple[dict[str, int], list[str]]:
    """Map each required column name to its header index (case-insensitive exact match).

    Returns the mapping and the list of required names that were not found.
    """

    lowered = [str(cell).strip().lower() for cell in header]
    indices: dict[str, int] = {}
    missing: list[str] = []
    for name in required:
        try:
            indices[name] = lowered.index(name.lower())
        except ValueError:
            missing.append(name)
    return indices, missing


def field_at(record: list[str], index: int) -> str:
    return record[index] if index < len(record) else ""
