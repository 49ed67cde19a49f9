from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Sequence


class TransformError(Exception):
    """Base class for failures surfaced to the caller."""


class FormatError(TransformError):
    """Raised when an input CSV is structurally unusable."""


class TemplateStructureError(TransformError):
    """Raised when a DOCX template lacks the document body or placeholder."""


class EmptyResultError(TransformError):
    """Raised when no usable rows remain after filtering or aggregation."""


@dataclass
class RowRejection:
    """A single discarded worklog record. Logged, never raised."""

    record: int
    reason: str
    fields: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        payload = json.dumps(self.fields, ensure_ascii=False)
        return f"Discarded CSV record {self.record}: {self.reason} | {payload}"


def ensure_rows(rows: Sequence, message: str = "No usable worklog rows remain.") -> None:
    if not rows:
        raise EmptyResultError(message)
