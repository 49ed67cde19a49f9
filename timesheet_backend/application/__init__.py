"""Application services."""

from .transformer import TimesheetService, get_transform_service, result_file_name

__all__ = [
    "TimesheetService",
    "get_transform_service",
    "result_file_name",
]
