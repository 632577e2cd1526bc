"""FastAPI application for the project performance dashboard."""

import asyncio
import inspect
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Annotated, Any

from fastapi import (
    FastAPI,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from performance_dashboard import __version__
from performance_dashboard.config import (
    Settings,
    settings as default_settings,
    validate_settings_on_startup,
)
from performance_dashboard.models import (
    DashboardResponse,
    ErrorDetail,
    HealthResponse,
    StatusResponse,
    UploadResponse,
    WidgetListResponse,
    WidgetResponse,
)
from performance_dashboard.services.export import records_to_csv
from performance_dashboard.services.file_store import FileStore, build_file_store
from performance_dashboard.services.loader import (
    build_source,
    load_dashboard,
    load_widget,
    load_workbook_bytes,
)
from performance_dashboard.services.mapper import map_sheet
from performance_dashboard.services.schemas import get_schema
from performance_dashboard.utils.exceptions import (
    DashboardError,
    ErrorCode,
    FileTooLargeError,
    UnsupportedFormatError,
    ValidationError,
    WidgetNotFoundError,
    WorkbookNotFoundError,
)
from performance_dashboard.utils.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)
from performance_dashboard.widgets import WIDGET_SCHEMAS, WIDGETS

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

logger = get_logger(__name__)


def _widget_options(name: str, **candidates: Any) -> dict[str, Any]:
    """Keep only the query options the widget builder accepts."""
    params = inspect.signature(WIDGETS[name]).parameters
    return {k: v for k, v in candidates.items() if v is not None and k in params}


def create_app(
    settings: Settings | None = None,
    store: FileStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use. Defaults to the environment-derived instance.
        store: Workbook store. Defaults to the backend named in ``settings``.
    """
    settings = settings or default_settings
    store = store or build_file_store(settings)
    source = build_source(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        configure_logging(level=settings.log_level_int, use_structured_formatter=True)
        validate_settings_on_startup(settings)
        logger.info(
            "Dashboard service starting",
            storage_backend=settings.storage_backend,
            workbook_available=store.exists(),
        )
        yield
        logger.info("Dashboard service stopped")

    app = FastAPI(
        title="Project Performance Dashboard API",
        description=(
            "Reads the project performance workbook and serves normalized "
            "payloads for each dashboard widget."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.source = source

    # Configure CORS using settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID, expose it in context and response headers."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(DashboardError)
    async def dashboard_exception_handler(
        request: Request, exc: DashboardError
    ) -> JSONResponse:
        """Render dashboard exceptions as structured error bodies."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.error(
            f"Dashboard error: {exc.message}",
            error_code=exc.error_code.value,
            http_status=exc.http_status,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorDetail(
                detail=exc.message,
                error_code=exc.error_code.value,
                details=exc.details if exc.details else None,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Custom exception handler for HTTP exceptions."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorDetail(
                detail=str(exc.detail),
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all exception handler for unexpected errors.

        Logs the full exception and returns a generic error response
        to avoid leaking internal details.
        """
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if settings.debug:
            detail = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            detail = "Internal server error. Please try again later."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorDetail(
                detail=detail,
                error_code=ErrorCode.INTERNAL_ERROR.value,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> dict[str, Any]:
        """Check the health status of the service."""
        request_id = getattr(request.state, "request_id", None)
        logger.debug("Health check requested", request_id=request_id)
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
        }

    @app.get("/api/status", response_model=StatusResponse, tags=["Health"])
    async def service_status() -> dict[str, Any]:
        """Report environment, workbook availability and safe configuration."""
        return {
            "status": "running",
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
            "workbook_available": await asyncio.to_thread(store.exists),
            "config": settings.to_safe_dict(),
        }

    @app.post(
        "/api/upload",
        response_model=UploadResponse,
        tags=["Workbook"],
        responses={
            400: {"model": ErrorDetail, "description": "Invalid workbook upload"},
            413: {"model": ErrorDetail, "description": "File too large"},
        },
    )
    async def upload_workbook(
        request: Request,
        file: Annotated[UploadFile, File(description="Workbook file to store")],
    ) -> dict[str, Any]:
        """Replace the stored workbook.

        The upload must be a readable ``.xlsx``/``.xlsm`` workbook within the
        configured size limit. It replaces the previous file atomically.

        Raises:
            ValidationError: 400 if no file or an empty file is sent
            UnsupportedFormatError: 400 for other file types
            FileTooLargeError: 413 if the file exceeds the size limit
            WorkbookReadError: 400 if the file is not a readable workbook
        """
        request_id = getattr(request.state, "request_id", None)

        if not file.filename:
            raise ValidationError(message="A workbook file must be provided", field="file")

        extension = Path(file.filename).suffix.lower()
        if extension not in settings.allowed_extensions_list:
            logger.warning(
                "Rejected upload with unsupported extension",
                filename=file.filename,
                request_id=request_id,
            )
            raise UnsupportedFormatError(
                message=(
                    "Only spreadsheet workbooks are accepted "
                    f"({', '.join(settings.allowed_extensions_list)})"
                ),
                extension=extension or None,
            )

        content = await file.read()
        file_size = len(content)
        if file_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")

        if file_size > settings.max_file_size_bytes:
            logger.warning(
                "File too large",
                file_size=file_size,
                max_size=settings.max_file_size_bytes,
                request_id=request_id,
            )
            raise FileTooLargeError(
                file_size=file_size,
                max_size=settings.max_file_size_bytes,
            )

        workbook = await asyncio.to_thread(load_workbook_bytes, content)
        location = await asyncio.to_thread(store.put, content)

        logger.info(
            "Workbook uploaded",
            filename=file.filename,
            file_size=file_size,
            sheets=len(workbook.sheets),
            request_id=request_id,
        )
        return {
            "success": True,
            "message": "File uploaded successfully",
            "filename": file.filename,
            "file_size": file_size,
            "location": location,
            "sheets": workbook.sheet_names,
        }

    @app.get(
        "/api/download",
        tags=["Workbook"],
        response_class=Response,
        responses={404: {"model": ErrorDetail, "description": "No workbook stored"}},
    )
    async def download_workbook() -> Response:
        """Return the stored workbook as an attachment."""
        if not await asyncio.to_thread(store.exists):
            raise WorkbookNotFoundError(settings.workbook_filename)
        data = await asyncio.to_thread(store.get)
        return Response(
            content=data,
            media_type=XLSX_MEDIA_TYPE,
            headers={
                "Content-Disposition": (
                    f'attachment; filename="{settings.workbook_filename}"'
                )
            },
        )

    @app.get("/api/widgets", response_model=WidgetListResponse, tags=["Widgets"])
    async def list_widgets() -> dict[str, Any]:
        return {"widgets": list(WIDGETS)}

    @app.get(
        "/api/widgets/{name}",
        response_model=WidgetResponse,
        tags=["Widgets"],
        responses={404: {"model": ErrorDetail, "description": "Unknown widget"}},
    )
    async def get_widget(
        name: str,
        as_of: Annotated[date | None, Query(description="Reference date")] = None,
        month_index: Annotated[
            int | None, Query(ge=0, description="Selected month (0-based)")
        ] = None,
    ) -> WidgetResponse:
        """Load one widget.

        Data problems (missing sheet, unreadable workbook, failed fetch) are
        reported in the body's ``status``/``error``, not as HTTP errors.
        """
        if name not in WIDGETS:
            raise WidgetNotFoundError(name, available=list(WIDGETS))
        options = _widget_options(name, as_of=as_of, month_index=month_index)
        result = await load_widget(source, name, **options)
        return WidgetResponse.from_result(result)

    @app.get(
        "/api/widgets/{name}/records.csv",
        tags=["Widgets"],
        response_class=Response,
        responses={404: {"model": ErrorDetail, "description": "Unknown widget or sheet"}},
    )
    async def export_widget_records(
        name: str,
        schema: Annotated[
            str | None, Query(description="Schema name; defaults to the first")
        ] = None,
    ) -> Response:
        """Export the mapped records behind a widget as CSV."""
        if name not in WIDGET_SCHEMAS:
            raise WidgetNotFoundError(name, available=list(WIDGETS))
        schemas = [s.name for s in WIDGET_SCHEMAS[name]]
        if schema is None:
            schema = schemas[0]
        if schema not in schemas:
            raise ValidationError(
                message=f"Schema '{schema}' does not belong to widget '{name}'",
                field="schema",
                errors=[f"Expected one of: {', '.join(schemas)}"],
            )

        data = await source.fetch()
        workbook = await asyncio.to_thread(load_workbook_bytes, data)
        record_schema = get_schema(schema)
        mapped = map_sheet(workbook, record_schema)
        if mapped.error is not None:
            raise mapped.error

        return Response(
            content=records_to_csv(mapped.records, record_schema),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{name}-{schema}.csv"'
            },
        )

    @app.get("/api/dashboard", response_model=DashboardResponse, tags=["Widgets"])
    async def get_dashboard(
        as_of: Annotated[date | None, Query(description="Reference date")] = None,
    ) -> DashboardResponse:
        """Load every widget concurrently; each reports its own status."""
        options = {name: _widget_options(name, as_of=as_of) for name in WIDGETS}
        results = await load_dashboard(source, options=options)
        return DashboardResponse(
            widgets={
                name: WidgetResponse.from_result(result)
                for name, result in results.items()
            }
        )

    logger.info("FastAPI application created successfully")
    return app


# Create the application instance
app = create_app()
