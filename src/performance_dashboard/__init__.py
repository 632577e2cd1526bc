"""Project Performance Dashboard - workbook ingestion and widget payloads."""

__version__ = "0.1.0"

from performance_dashboard.api import app, create_app  # noqa: E402

__all__ = ["app", "create_app"]


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from performance_dashboard.config import settings

    uvicorn.run(
        "performance_dashboard.api:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
    )
