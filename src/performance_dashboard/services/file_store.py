"""Storage for the single dashboard workbook.

The backend is chosen from injected settings; nothing here reads process
environment directly.
"""

from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from performance_dashboard.utils.exceptions import (
    ConfigurationError,
    FileWriteError,
    WorkbookNotFoundError,
)
from performance_dashboard.utils.logging import get_logger

if TYPE_CHECKING:
    from performance_dashboard.config import Settings

logger = get_logger(__name__)


@runtime_checkable
class FileStore(Protocol):
    """Holds one workbook file, replaced wholesale on every upload."""

    def put(self, data: bytes) -> str:
        """Store ``data`` and return its location."""
        ...

    def get(self) -> bytes:
        """Return the stored bytes.

        Raises:
            WorkbookNotFoundError: If nothing has been stored yet.
        """
        ...

    def exists(self) -> bool: ...


class LocalFileStore:
    """Workbook stored on local disk.

    Writes go to a temporary file in the target directory which is then
    renamed over the target, so readers see either the old or the new file,
    never a partial one. A lock lets one writer finish at a time.
    """

    def __init__(self, directory: Path | str, filename: str) -> None:
        self.directory = Path(directory)
        self.filename = filename
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def exists(self) -> bool:
        return self.path.is_file()

    def put(self, data: bytes) -> str:
        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, temp_name = tempfile.mkstemp(
                    prefix=f".{self.filename}.", suffix=".tmp", dir=self.directory
                )
            except OSError as e:
                raise FileWriteError(
                    f"Cannot write workbook: {e}", file_path=str(self.path)
                ) from e
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(temp_name, self.path)
            except OSError as e:
                raise FileWriteError(
                    f"Cannot write workbook: {e}", file_path=str(self.path)
                ) from e
            finally:
                Path(temp_name).unlink(missing_ok=True)

        logger.info("Workbook stored", path=str(self.path), size_bytes=len(data))
        return str(self.path)

    def get(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            raise WorkbookNotFoundError(str(self.path)) from None


SUPPORTED_BACKENDS = {"local": LocalFileStore}


def build_file_store(settings: Settings) -> FileStore:
    """Create the file store configured by ``settings.storage_backend``.

    Raises:
        ConfigurationError: For an unknown backend.
    """
    backend = SUPPORTED_BACKENDS.get(settings.storage_backend)
    if backend is None:
        raise ConfigurationError(
            f"Unsupported storage backend: {settings.storage_backend}",
            setting="storage_backend",
        )
    return backend(settings.storage_dir, settings.workbook_filename)
