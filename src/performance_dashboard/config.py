"""Configuration management for the performance dashboard.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
PDB_ prefix, or via a .env file in the project root.

Environment Variables:
    PDB_STORAGE_BACKEND: Workbook storage backend (default: local)
    PDB_STORAGE_DIR: Directory holding the workbook file (default: public)
    PDB_WORKBOOK_FILENAME: Stored workbook file name
        (default: Project Performance Template.xlsx)
    PDB_WORKBOOK_URL: Optional remote URL the dashboard fetches instead
    PDB_MAX_FILE_SIZE_MB: Maximum upload size in MB (default: 10)
    PDB_ALLOWED_EXTENSIONS: Comma-separated upload extensions (default: .xlsx,.xlsm)
    PDB_FETCH_TIMEOUT_SECONDS: Timeout for remote workbook fetches (default: 30)
    PDB_ENVIRONMENT: Deployment environment name (default: development)
    PDB_LOG_LEVEL: Logging level (default: INFO)
    PDB_DEBUG: Enable debug mode (default: false)
    PDB_CORS_ORIGINS: Comma-separated CORS origins (default: *)
    PDB_SERVER_HOST: Server bind host (default: 0.0.0.0)
    PDB_SERVER_PORT: Server bind port (default: 3001)
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_STORAGE_BACKENDS = {"local"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables prefixed with
    PDB_ or via a .env file. Instances are passed explicitly to the file store
    and the API factory; the module-level ``settings`` is only the default.

    Example .env file:
        PDB_STORAGE_DIR=/srv/dashboard/public
        PDB_LOG_LEVEL=DEBUG
        PDB_MAX_FILE_SIZE_MB=20
    """

    model_config = SettingsConfigDict(
        env_prefix="PDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Storage Settings
    # =========================================================================

    storage_backend: str = "local"
    """Backend used by the file store. Only "local" is implemented."""

    storage_dir: str = "public"
    """Directory holding the single workbook file."""

    workbook_filename: str = "Project Performance Template.xlsx"
    """Name the uploaded workbook is stored under."""

    workbook_url: str | None = None
    """Optional HTTP(S) URL to fetch the workbook from instead of the store."""

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_file_size_mb: int = 10
    """Maximum upload size in megabytes."""

    allowed_extensions: str = ".xlsx,.xlsm"
    """Comma-separated list of accepted upload extensions."""

    # =========================================================================
    # Loading Settings
    # =========================================================================

    fetch_timeout_seconds: float = 30.0
    """Timeout applied to remote workbook fetches."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    environment: str = "development"
    """Deployment environment name reported by the status endpoint."""

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional error details."""

    # =========================================================================
    # Server Settings
    # =========================================================================

    cors_origins: str = "*"
    """Comma-separated list of allowed CORS origins, or * for all."""

    server_host: str = "0.0.0.0"
    """Host address for the server to bind to."""

    server_port: int = 3001
    """Port for the server to listen on."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Validate the storage backend is one we can build."""
        lowered = v.strip().lower()
        if lowered not in SUPPORTED_STORAGE_BACKENDS:
            raise ValueError(
                f"Unsupported storage_backend: {v}. "
                f"Must be one of: {', '.join(sorted(SUPPORTED_STORAGE_BACKENDS))}"
            )
        return lowered

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_file_size(cls, v: int) -> int:
        """Validate file size is positive and reasonable."""
        if not 1 <= v <= 500:
            raise ValueError(f"max_file_size_mb must be between 1 and 500, got {v}")
        return v

    @field_validator("workbook_filename")
    @classmethod
    def validate_workbook_filename(cls, v: str) -> str:
        """Validate the workbook file name is a bare name."""
        name = v.strip()
        if not name or Path(name).name != name:
            raise ValueError(f"workbook_filename must be a plain file name, got {v!r}")
        return name

    @field_validator("fetch_timeout_seconds")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:
        """Validate the fetch timeout is positive."""
        if v <= 0:
            raise ValueError(f"fetch_timeout_seconds must be positive, got {v}")
        return v

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"server_port must be between 1 and 65535, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def workbook_path(self) -> Path:
        """Get the full path of the stored workbook."""
        return Path(self.storage_dir) / self.workbook_filename

    @property
    def allowed_extensions_list(self) -> list[str]:
        """Get accepted extensions as lowercase strings with a leading dot."""
        extensions = []
        for ext in self.allowed_extensions.split(","):
            ext = ext.strip().lower()
            if not ext:
                continue
            extensions.append(ext if ext.startswith(".") else f".{ext}")
        return extensions

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary suitable for status responses.

        Returns:
            Dictionary representation without the remote URL's credentials.
        """
        return {
            "storage_backend": self.storage_backend,
            "storage_dir": self.storage_dir,
            "workbook_filename": self.workbook_filename,
            "workbook_url": "***" if self.workbook_url else "(not set)",
            "max_file_size_mb": self.max_file_size_mb,
            "allowed_extensions": self.allowed_extensions_list,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "environment": self.environment,
            "log_level": self.log_level,
            "debug": self.debug,
            "cors_origins": self.cors_origins,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


def validate_settings_on_startup(s: Settings) -> None:
    """Validate settings on application startup.

    Args:
        s: Settings instance to validate.
    """
    logger = logging.getLogger(__name__)

    if s.cors_origins == "*" and not s.debug:
        logger.warning(
            "CORS is configured to allow all origins (*). "
            "Consider restricting this in production."
        )

    if not s.workbook_path.exists() and not s.workbook_url:
        logger.warning(
            f"No workbook at {s.workbook_path} yet. Widgets will report an "
            "error until one is uploaded."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"storage_backend={s.storage_backend}, "
        f"max_file_size_mb={s.max_file_size_mb}"
    )


# Create the global settings instance
settings = Settings()
