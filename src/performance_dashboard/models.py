"""Pydantic models for API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field

from performance_dashboard.services.loader import WidgetResult, WidgetStatus
from performance_dashboard.utils.exceptions import ErrorCode


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str


class StatusResponse(BaseModel):
    """Service status with the (masked) effective configuration."""

    status: str
    environment: str
    timestamp: str
    workbook_available: bool = Field(
        ..., description="Whether a workbook is currently stored"
    )
    config: dict[str, Any] = Field(
        default_factory=dict, description="Non-sensitive configuration values"
    )


class UploadResponse(BaseModel):
    """Response model for workbook upload endpoint."""

    success: bool = Field(default=True, description="Whether the upload was stored")
    message: str = Field(..., description="Status message")
    filename: str = Field(..., description="Original filename of the upload")
    file_size: int = Field(..., description="Size of the uploaded file in bytes")
    location: str = Field(..., description="Where the workbook was stored")
    sheets: list[str] = Field(
        default_factory=list, description="Sheet names found in the workbook"
    )


class WidgetListResponse(BaseModel):
    """Available widget names."""

    widgets: list[str]


class WidgetResponse(BaseModel):
    """Payload or localized error state for one widget."""

    widget: str = Field(..., description="Widget name")
    status: WidgetStatus = Field(..., description="Load outcome")
    data: dict[str, Any] | None = Field(
        default=None, description="Widget payload when status is 'ok'"
    )
    error: dict[str, Any] | None = Field(
        default=None, description="Error code and message when the load failed"
    )
    retryable: bool = Field(
        default=False, description="Whether retrying the load may succeed"
    )
    duration_seconds: float = Field(default=0.0, description="Load duration")

    @classmethod
    def from_result(cls, result: WidgetResult) -> "WidgetResponse":
        return cls(**result.to_dict())


class DashboardResponse(BaseModel):
    """Every requested widget, loaded independently."""

    widgets: dict[str, WidgetResponse]


class ErrorDetail(BaseModel):
    """Error detail model for API error responses.

    This model provides structured error responses with:
    - Human-readable error message
    - Machine-readable error code
    - Optional additional details for debugging
    - Optional request ID for correlation
    """

    detail: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., 'E2002')",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        detail: str,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> "ErrorDetail":
        return cls(
            detail=detail,
            error_code=error_code.value,
            details=details,
            request_id=request_id,
        )
