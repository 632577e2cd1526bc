from __future__ import annotations

from pathlib import Path

import pytest

from performance_dashboard.services.file_store import LocalFileStore
from performance_dashboard.services.workbook_reader import WorkbookReader
from performance_dashboard.workbook import Workbook
from tests.fixtures import build_template_bytes

TEMPLATE_FILENAME = "Project Performance Template.xlsx"


@pytest.fixture(scope="session")
def template_bytes() -> bytes:
    """The sample workbook with every dashboard sheet."""
    return build_template_bytes()


@pytest.fixture
def template_workbook(template_bytes: bytes) -> Workbook:
    return WorkbookReader().read_bytes(template_bytes)


@pytest.fixture
def store(tmp_path: Path) -> LocalFileStore:
    """An empty local store rooted in a temporary directory."""
    return LocalFileStore(tmp_path / "public", TEMPLATE_FILENAME)


@pytest.fixture
def stored_template(store: LocalFileStore, template_bytes: bytes) -> LocalFileStore:
    store.put(template_bytes)
    return store
