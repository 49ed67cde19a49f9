"""Domain layer definitions."""

from .exports import ExportedDocument, ProcessedWorklog

__all__ = [
    "ExportedDocument",
    "ProcessedWorklog",
]
