"""Asynchronous workbook loading for dashboard widgets.

Each widget load is independent: it fetches the workbook bytes, decodes its
own in-memory workbook in a worker thread and builds its payload. A failure
in one widget is captured into that widget's :class:`WidgetResult` and never
reaches the others.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from performance_dashboard.services.file_store import FileStore, build_file_store
from performance_dashboard.services.workbook_reader import WorkbookReader
from performance_dashboard.utils.exceptions import (
    DashboardError,
    ErrorCode,
    FetchError,
    MissingSheetError,
    WidgetNotFoundError,
    WorkbookNotFoundError,
)
from performance_dashboard.utils.logging import (
    LogContext,
    PerformanceMetrics,
    get_logger,
    timed_operation,
)
from performance_dashboard.widgets import WIDGETS
from performance_dashboard.workbook import Workbook

if TYPE_CHECKING:
    from performance_dashboard.config import Settings

logger = get_logger(__name__)


class WidgetStatus(str, Enum):
    """Outcome of one widget load."""

    OK = "ok"
    ERROR = "error"
    UNAVAILABLE = "unavailable"
    CANCELLED = "cancelled"


@dataclass
class WidgetResult:
    """Payload or localized error state for one widget."""

    widget: str
    status: WidgetStatus
    data: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    retryable: bool = False
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "widget": self.widget,
            "status": self.status.value,
            "data": self.data,
            "error": self.error,
            "retryable": self.retryable,
            "duration_seconds": round(self.duration_seconds, 4),
        }


# =============================================================================
# Sources
# =============================================================================


class WorkbookSource(Protocol):
    """Where workbook bytes come from."""

    @property
    def description(self) -> str: ...

    async def fetch(self) -> bytes:
        """Return the workbook bytes.

        Raises:
            FetchError: If the bytes cannot be retrieved.
        """
        ...


class StoreSource:
    """Reads the workbook from a :class:`FileStore`."""

    def __init__(self, store: FileStore) -> None:
        self.store = store

    @property
    def description(self) -> str:
        return type(self.store).__name__

    async def fetch(self) -> bytes:
        try:
            return await asyncio.to_thread(self.store.get)
        except WorkbookNotFoundError as e:
            raise FetchError(
                "No workbook has been uploaded yet",
                source=self.description,
                details=e.details,
            ) from e
        except OSError as e:
            raise FetchError(f"Cannot read workbook: {e}", source=self.description) from e


class UrlSource:
    """Fetches the workbook over HTTP(S) with httpx."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    @property
    def description(self) -> str:
        return httpx.URL(self.url).host or "url"

    async def _get(self, client: httpx.AsyncClient) -> bytes:
        response = await client.get(self.url)
        response.raise_for_status()
        return response.content

    async def fetch(self) -> bytes:
        try:
            if self._client is not None:
                return await self._get(self._client)
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                return await self._get(client)
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Workbook request failed with status {e.response.status_code}",
                source=self.description,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(
                f"Workbook request failed: {type(e).__name__}",
                source=self.description,
            ) from e


def build_source(settings: Settings, store: FileStore | None = None) -> WorkbookSource:
    """Remote URL when configured, otherwise the configured file store."""
    if settings.workbook_url:
        return UrlSource(settings.workbook_url, timeout=settings.fetch_timeout_seconds)
    return StoreSource(store or build_file_store(settings))


# =============================================================================
# Loading
# =============================================================================


def load_workbook_bytes(data: bytes) -> Workbook:
    return WorkbookReader().read_bytes(data)


def _resolve(name: str) -> Callable[..., dict[str, Any]]:
    builder = WIDGETS.get(name)
    if builder is None:
        raise WidgetNotFoundError(name, available=list(WIDGETS))
    return builder


async def load_widget(source: WorkbookSource, name: str, **options: Any) -> WidgetResult:
    """Fetch, decode and build one widget.

    Data problems are reported in the result, never raised.

    Raises:
        WidgetNotFoundError: If ``name`` is not a registered widget.
    """
    builder = _resolve(name)
    with LogContext(widget=name), timed_operation(logger, "load_widget") as metrics:
        try:
            data = await source.fetch()
            metrics.bytes_read = len(data)
            workbook = await asyncio.to_thread(load_workbook_bytes, data)
            metrics.sheets_read = len(workbook.sheets)
            payload = builder(workbook, **options)
        except MissingSheetError as e:
            return _failed(name, WidgetStatus.UNAVAILABLE, e, metrics)
        except FetchError as e:
            logger.error("Workbook fetch failed", source=source.description, error=e.message)
            return _failed(name, WidgetStatus.ERROR, e, metrics, retryable=True)
        except DashboardError as e:
            logger.error("Widget load failed", error=str(e))
            return _failed(name, WidgetStatus.ERROR, e, metrics, retryable=e.recoverable)
        except Exception as e:
            logger.exception("Unexpected error building widget", error_type=type(e).__name__)
            error = DashboardError(str(e), ErrorCode.WIDGET_FAILED)
            return _failed(name, WidgetStatus.ERROR, error, metrics)

        metrics.finish()
        return WidgetResult(
            widget=name,
            status=WidgetStatus.OK,
            data=payload,
            duration_seconds=metrics.duration_seconds,
        )


def _failed(
    name: str,
    status: WidgetStatus,
    error: DashboardError,
    metrics: PerformanceMetrics,
    retryable: bool = False,
) -> WidgetResult:
    metrics.finish()
    return WidgetResult(
        widget=name,
        status=status,
        error=error.to_dict(),
        retryable=retryable,
        duration_seconds=metrics.duration_seconds,
    )


async def load_dashboard(
    source: WorkbookSource,
    names: Iterable[str] | None = None,
    options: dict[str, dict[str, Any]] | None = None,
) -> dict[str, WidgetResult]:
    """Load several widgets concurrently, each isolated from the others."""
    selected = list(names) if names is not None else list(WIDGETS)
    for name in selected:
        _resolve(name)
    options = options or {}

    logger.info("Loading dashboard", widgets=len(selected))
    results = await asyncio.gather(
        *(load_widget(source, name, **options.get(name, {})) for name in selected)
    )
    return dict(zip(selected, results, strict=True))


@dataclass
class WidgetLoader:
    """One cancellable widget load.

    ``on_result`` receives the finished result unless the load was
    cancelled first; a cancelled load's result is never published.
    """

    source: WorkbookSource
    name: str
    on_result: Callable[[WidgetResult], None] | None = None
    options: dict[str, Any] = field(default_factory=dict)
    _task: asyncio.Task[WidgetResult] | None = field(default=None, init=False, repr=False)
    _cancelled: bool = field(default=False, init=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> asyncio.Task[WidgetResult]:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"widget:{self.name}")
        return self._task

    async def _run(self) -> WidgetResult:
        result = await load_widget(self.source, self.name, **self.options)
        if not self._cancelled and self.on_result is not None:
            self.on_result(result)
        return result

    def cancel(self) -> None:
        """Abort the in-flight load, including any pending fetch."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info("Widget load cancelled", widget=self.name)

    async def wait(self) -> WidgetResult:
        if self._cancelled and self._task is None:
            return WidgetResult(widget=self.name, status=WidgetStatus.CANCELLED)
        task = self.start()
        try:
            return await task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise
            return WidgetResult(widget=self.name, status=WidgetStatus.CANCELLED)
