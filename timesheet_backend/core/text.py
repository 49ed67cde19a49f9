from __future__ import annotations

import re
from typing import Any

import pandas as pd


_LINE_BREAKS = re.compile(r"\r\n|\r|\n")
_WHITESPACE = re.compile(r"\s+")
_LEADING_BULLET = re.compile(r"^\s*-\s*")
_PART_SEPARATORS = re.compile(r"(?:\r\n|\r|\n|[;,])+")


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str) and pd.isna(value):
        return ""
    return str(value)


def normalize_field(value: Any) -> str:
    text = _LINE_BREAKS.sub(" ", cell_text(value))
    return _WHITESPACE.sub(" ", text).strip()


def normalize_description(value: Any) -> str:
    return _LEADING_BULLET.sub("", normalize_field(value))


def split_worklog_parts(value: Any) -> list[str]:
    """Split a worklog text into task fragments on line breaks, ``;`` and ``,``."""

    parts = (normalize_description(part) for part in _PART_SEPARATORS.split(cell_text(value)))
    return [part for part in parts if part]
