"""Tests for the centralized exception classes."""

from performance_dashboard.utils.exceptions import (
    ConfigurationError,
    DashboardError,
    ErrorCode,
    FetchError,
    FileError,
    FileTooLargeError,
    FileWriteError,
    MalformedCellWarning,
    MissingSheetError,
    UnsupportedFormatError,
    ValidationError,
    WidgetNotFoundError,
    WorkbookError,
    WorkbookNotFoundError,
    WorkbookReadError,
)


class TestErrorCode:
    """Tests for ErrorCode enumeration."""

    def test_error_codes_are_unique(self) -> None:
        """All error codes should have unique values."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))

    def test_error_code_format(self) -> None:
        """Error codes should follow Exxxx format."""
        for code in ErrorCode:
            assert code.value.startswith("E")
            assert len(code.value) == 5
            assert code.value[1:].isdigit()

    def test_file_errors_start_with_e1(self) -> None:
        file_codes = [
            ErrorCode.FILE_NOT_FOUND,
            ErrorCode.FILE_TOO_LARGE,
            ErrorCode.UNSUPPORTED_FORMAT,
            ErrorCode.FILE_READ_ERROR,
            ErrorCode.FILE_WRITE_ERROR,
        ]
        for code in file_codes:
            assert code.value.startswith("E1")

    def test_workbook_errors_start_with_e2(self) -> None:
        workbook_codes = [
            ErrorCode.WORKBOOK_READ_FAILED,
            ErrorCode.SHEET_NOT_FOUND,
            ErrorCode.MALFORMED_CELL,
        ]
        for code in workbook_codes:
            assert code.value.startswith("E2")

    def test_loading_errors_start_with_e3(self) -> None:
        loading_codes = [
            ErrorCode.FETCH_FAILED,
            ErrorCode.WIDGET_NOT_FOUND,
            ErrorCode.WIDGET_FAILED,
        ]
        for code in loading_codes:
            assert code.value.startswith("E3")


class TestDashboardError:
    """Tests for base DashboardError class."""

    def test_basic_initialization(self) -> None:
        """Test basic error initialization."""
        error = DashboardError("Test error message")
        assert str(error) == "[E9001] Test error message"
        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.details == {}
        assert error.http_status == 500
        assert error.recoverable is False

    def test_with_custom_error_code(self) -> None:
        error = DashboardError("Custom error", error_code=ErrorCode.FILE_NOT_FOUND)
        assert error.error_code == ErrorCode.FILE_NOT_FOUND
        assert str(error) == "[E1001] Custom error"

    def test_to_dict(self) -> None:
        """Test to_dict conversion."""
        error = DashboardError(
            "Test error",
            error_code=ErrorCode.FILE_NOT_FOUND,
            details={"path": "/test/file"},
        )
        result = error.to_dict()
        assert result["error_code"] == "E1001"
        assert result["message"] == "Test error"
        assert result["details"]["path"] == "/test/file"

    def test_to_dict_without_details(self) -> None:
        error = DashboardError("Test error")
        assert "details" not in error.to_dict()

    def test_get_http_status(self) -> None:
        assert DashboardError("Test").get_http_status() == 500


class TestFileErrors:
    """Tests for file and storage exceptions."""

    def test_workbook_not_found_error(self) -> None:
        error = WorkbookNotFoundError("/public/Project Performance Template.xlsx")
        assert isinstance(error, FileError)
        assert error.error_code == ErrorCode.FILE_NOT_FOUND
        assert error.http_status == 404
        assert "Template.xlsx" in str(error)
        assert error.details["file_path"].endswith("Template.xlsx")

    def test_file_too_large_error(self) -> None:
        error = FileTooLargeError(file_size=20_000_000, max_size=10_000_000)
        assert error.file_size == 20_000_000
        assert error.max_size == 10_000_000
        assert error.http_status == 413
        assert error.details["file_size_bytes"] == 20_000_000
        assert error.details["max_size_bytes"] == 10_000_000

    def test_unsupported_format_error(self) -> None:
        error = UnsupportedFormatError("Only workbooks", extension=".csv")
        assert error.extension == ".csv"
        assert error.error_code == ErrorCode.UNSUPPORTED_FORMAT
        assert error.http_status == 400
        assert error.details["extension"] == ".csv"

    def test_file_write_error(self) -> None:
        error = FileWriteError("Disk full", file_path="/public/book.xlsx")
        assert error.http_status == 500
        assert error.error_code == ErrorCode.FILE_WRITE_ERROR
        assert error.details["file_path"] == "/public/book.xlsx"


class TestWorkbookErrors:
    """Tests for workbook, sheet and cell exceptions."""

    def test_workbook_read_error(self) -> None:
        error = WorkbookReadError("Not a zip file", details={"size_bytes": 12})
        assert isinstance(error, WorkbookError)
        assert error.http_status == 400
        assert error.error_code == ErrorCode.WORKBOOK_READ_FAILED
        assert error.details["size_bytes"] == 12

    def test_missing_sheet_error_is_recoverable(self) -> None:
        error = MissingSheetError("PPM", available=["WOs", "Services"])
        assert error.recoverable is True
        assert error.http_status == 404
        assert error.sheet_name == "PPM"
        assert error.details["sheet_name"] == "PPM"
        assert error.details["available_sheets"] == ["WOs", "Services"]
        assert "PPM" in str(error)

    def test_malformed_cell_warning(self) -> None:
        warning = MalformedCellWarning("abc", "number", field="planned")
        assert warning.recoverable is True
        assert warning.error_code == ErrorCode.MALFORMED_CELL
        assert warning.details["raw_value"] == "'abc'"
        assert warning.details["kind"] == "number"
        assert warning.details["field"] == "planned"


class TestLoadingErrors:
    """Tests for fetch and widget exceptions."""

    def test_fetch_error_is_retryable(self) -> None:
        error = FetchError("Timed out", source="example.com", status_code=503)
        assert error.recoverable is True
        assert error.http_status == 502
        assert error.details == {"source": "example.com", "status_code": 503}

    def test_fetch_error_without_status(self) -> None:
        error = FetchError("Connection refused")
        assert error.status_code is None
        assert "status_code" not in error.details

    def test_widget_not_found_error(self) -> None:
        error = WidgetNotFoundError("charts", available=["kpi_billing"])
        assert error.http_status == 404
        assert error.name == "charts"
        assert error.details["available_widgets"] == ["kpi_billing"]


class TestValidationAndConfiguration:
    def test_validation_error(self) -> None:
        error = ValidationError(
            "Invalid input", field="schema", errors=["Expected one of: ppm"]
        )
        assert error.http_status == 400
        assert error.details["field"] == "schema"
        assert error.details["validation_errors"] == ["Expected one of: ppm"]

    def test_configuration_error(self) -> None:
        error = ConfigurationError("Unknown backend", setting="storage_backend")
        assert error.http_status == 500
        assert error.error_code == ErrorCode.CONFIGURATION_ERROR
        assert error.details["setting"] == "storage_backend"
