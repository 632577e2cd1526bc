"""Centralized exception classes for the performance dashboard.

This module provides a hierarchy of custom exceptions with error codes,
HTTP status code mapping, and structured error details for consistent
error handling throughout the application.

Exception Hierarchy:
    DashboardError (base)
    ├── FileError
    │   ├── WorkbookNotFoundError
    │   ├── FileTooLargeError
    │   ├── UnsupportedFormatError
    │   └── FileWriteError
    ├── WorkbookError
    │   ├── WorkbookReadError
    │   ├── MissingSheetError
    │   └── MalformedCellWarning
    ├── FetchError
    ├── WidgetNotFoundError
    ├── ValidationError
    └── ConfigurationError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the application.

    Error codes are grouped by category:
    - E1xxx: File/storage errors
    - E2xxx: Workbook, sheet and cell errors
    - E3xxx: Fetch and widget loading errors
    - E4xxx: Request validation errors
    - E9xxx: Internal/unexpected errors
    """

    # File errors (E1xxx)
    FILE_NOT_FOUND = "E1001"
    FILE_TOO_LARGE = "E1002"
    UNSUPPORTED_FORMAT = "E1003"
    FILE_READ_ERROR = "E1004"
    FILE_WRITE_ERROR = "E1005"

    # Workbook errors (E2xxx)
    WORKBOOK_READ_FAILED = "E2001"
    SHEET_NOT_FOUND = "E2002"
    MALFORMED_CELL = "E2003"

    # Loading errors (E3xxx)
    FETCH_FAILED = "E3001"
    WIDGET_NOT_FOUND = "E3002"
    WIDGET_FAILED = "E3003"

    # Validation errors (E4xxx)
    VALIDATION_FAILED = "E4001"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"
    UNEXPECTED_ERROR = "E9999"


class HTTPStatusMixin:
    """Mixin that provides HTTP status code for exceptions.

    This mixin allows exceptions to declare their appropriate HTTP status code
    for API responses. Subclasses should set the `http_status` class attribute.
    """

    http_status: int = 500

    def get_http_status(self) -> int:
        """Get the HTTP status code for this exception.

        Returns:
            HTTP status code appropriate for this error.
        """
        return self.http_status


class DashboardError(Exception, HTTPStatusMixin):
    """Base exception for all performance dashboard errors.

    All custom exceptions in the application should inherit from this class.
    It provides:
    - Unique error codes for programmatic handling
    - HTTP status code mapping for API responses
    - Structured error details for logging and debugging

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
        http_status: HTTP status code for API responses (default 500).
        recoverable: Whether callers are expected to degrade instead of fail.
    """

    http_status: int = 500
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for API responses.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# File Errors (E1xxx)
# =============================================================================


class FileError(DashboardError):
    """Base class for file and storage errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FILE_READ_ERROR,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            error_code: Error code.
            file_path: Path to the problematic file.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, error_code, details)
        self.file_path = file_path


class WorkbookNotFoundError(FileError):
    """Raised when the stored workbook file does not exist."""

    http_status: int = 404

    def __init__(
        self,
        file_path: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = message or f"Workbook not found: {file_path}"
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_NOT_FOUND,
            file_path=file_path,
            details=details,
        )


class FileTooLargeError(FileError):
    """Raised when an upload exceeds the maximum allowed size."""

    http_status: int = 413

    def __init__(
        self,
        file_size: int,
        max_size: int,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual file size in bytes.
            max_size: Maximum allowed size in bytes.
            file_path: Optional file path.
            details: Additional details.
        """
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        message = (
            f"File size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_TOO_LARGE,
            file_path=file_path,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


class UnsupportedFormatError(FileError):
    """Raised when an uploaded file is not a spreadsheet."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        extension: str | None = None,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if extension:
            details["extension"] = extension
        super().__init__(
            message=message,
            error_code=ErrorCode.UNSUPPORTED_FORMAT,
            file_path=file_path,
            details=details,
        )
        self.extension = extension


class FileWriteError(FileError):
    """Raised when the workbook cannot be written to storage."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_WRITE_ERROR,
            file_path=file_path,
            details=details,
        )


# =============================================================================
# Workbook Errors (E2xxx)
# =============================================================================


class WorkbookError(DashboardError):
    """Base class for workbook content errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.WORKBOOK_READ_FAILED,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with sheet information.

        Args:
            message: Error message.
            error_code: Error code.
            sheet_name: Sheet where the error occurred.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name


class WorkbookReadError(WorkbookError):
    """Raised when bytes cannot be decoded as a spreadsheet workbook."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.WORKBOOK_READ_FAILED,
            details=details,
        )


class MissingSheetError(WorkbookError):
    """Raised when a named sheet is absent from the workbook.

    This is recoverable: consumers show a "data unavailable" state for the
    affected widget instead of failing.
    """

    http_status: int = 404
    recoverable: bool = True

    def __init__(
        self,
        sheet_name: str,
        available: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if available is not None:
            details["available_sheets"] = available
        super().__init__(
            message=f"Sheet not found: {sheet_name}",
            error_code=ErrorCode.SHEET_NOT_FOUND,
            sheet_name=sheet_name,
            details=details,
        )


class MalformedCellWarning(WorkbookError):
    """Raised when a single cell cannot be coerced to its expected kind.

    The normalizer catches this, logs it and substitutes the field default,
    so it never escapes a row or sheet.
    """

    recoverable: bool = True

    def __init__(
        self,
        value: Any,
        kind: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["raw_value"] = repr(value)
        details["kind"] = kind
        if field:
            details["field"] = field
        super().__init__(
            message=f"Cannot read {value!r} as {kind}",
            error_code=ErrorCode.MALFORMED_CELL,
            details=details,
        )
        self.value = value
        self.kind = kind
        self.field = field


# =============================================================================
# Loading Errors (E3xxx)
# =============================================================================


class FetchError(DashboardError):
    """Raised when the workbook bytes cannot be fetched.

    Recoverable and retryable: the consuming view shows a retry state.
    """

    http_status: int = 502
    recoverable: bool = True

    def __init__(
        self,
        message: str,
        source: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if source:
            details["source"] = source
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, ErrorCode.FETCH_FAILED, details)
        self.source = source
        self.status_code = status_code


class WidgetNotFoundError(DashboardError):
    """Raised when an unknown widget name is requested."""

    http_status: int = 404

    def __init__(
        self,
        name: str,
        available: list[str] | None = None,
    ) -> None:
        details: dict[str, Any] = {"widget": name}
        if available is not None:
            details["available_widgets"] = available
        super().__init__(
            message=f"Unknown widget: {name}",
            error_code=ErrorCode.WIDGET_NOT_FOUND,
            details=details,
        )
        self.name = name


# =============================================================================
# Validation and Internal Errors
# =============================================================================


class ValidationError(DashboardError):
    """General validation error for request input."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            field: Field that failed validation.
            errors: List of validation errors.
            details: Additional details.
        """
        details = details or {}
        if field:
            details["field"] = field
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_FAILED,
            details=details,
        )


class ConfigurationError(DashboardError):
    """Raised when injected configuration is invalid."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if setting:
            details["setting"] = setting
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
        )
