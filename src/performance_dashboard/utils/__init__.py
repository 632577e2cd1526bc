"""Utilities package for the performance dashboard.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from performance_dashboard.utils.exceptions import (
    DashboardError,
    ErrorCode,
    FetchError,
    FileError,
    HTTPStatusMixin,
    MalformedCellWarning,
    MissingSheetError,
    ValidationError,
    WorkbookError,
)
from performance_dashboard.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "DashboardError",
    "ErrorCode",
    "FetchError",
    "FileError",
    "HTTPStatusMixin",
    "MalformedCellWarning",
    "MissingSheetError",
    "ValidationError",
    "WorkbookError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
