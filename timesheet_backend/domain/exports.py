"""Domain records passed between the transform service and its callers."""
from __future__ import annotations

from dataclasses import dataclass, field

from timesheet_backend.core.schema import WorkAreaEntry, WorklogRow


@dataclass(slots=True)
class ProcessedWorklog:
    """Daily rows and optional work areas read from one upload."""

    source_name: str
    daily_rows: list[WorklogRow]
    work_areas: dict[str, WorkAreaEntry] | None = None
    log: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ExportedDocument:
    """Rendered export ready for delivery."""

    filename: str
    media_type: str
    content: bytes
