"""Walk sheet rows until a sentinel row."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from performance_dashboard.services.normalizer import is_blank
from performance_dashboard.utils.exceptions import MissingSheetError
from performance_dashboard.utils.logging import get_logger
from performance_dashboard.workbook import Sheet, Workbook

logger = get_logger(__name__)

DEFAULT_SENTINEL = "Total"


@dataclass(frozen=True)
class Row:
    """Raw values of one spreadsheet row, starting at column A."""

    number: int
    values: tuple[Any, ...]

    def __getitem__(self, column: int) -> Any:
        """Return the value at a 1-based column, or None past the end."""
        if column < 1 or column > len(self.values):
            return None
        return self.values[column - 1]

    def __len__(self) -> int:
        return len(self.values)

    def slice(self, column: int, span: int | None) -> tuple[Any, ...]:
        """Return ``span`` values from ``column``; to the row end when None."""
        start = max(column - 1, 0)
        if span is None:
            return self.values[start:]
        window = self.values[start : start + span]
        return window + (None,) * (span - len(window))


def _matches(value: Any, literal: str) -> bool:
    return isinstance(value, str) and value.strip().lower() == literal.strip().lower()


def is_stop_row(key: Any, sentinel: str | None) -> bool:
    """True when a key cell ends the walk: blank, or the sentinel literal."""
    if is_blank(key):
        return True
    return sentinel is not None and _matches(key, sentinel)


class RowWalk:
    """A lazy, finite, restartable sequence of rows.

    Every ``iter()`` starts a fresh pass at ``start_row``. A pass ends before
    the first row whose key cell is blank or equals the sentinel
    (case-insensitive); other empty cells never end it.
    """

    def __init__(
        self,
        sheet: Sheet | None,
        start_row: int,
        key_column: int,
        sentinel: str | None = DEFAULT_SENTINEL,
        error: MissingSheetError | None = None,
    ) -> None:
        if start_row < 1 or key_column < 1:
            raise ValueError("start_row and key_column are 1-based")
        self.sheet = sheet
        self.start_row = start_row
        self.key_column = key_column
        self.sentinel = sentinel
        self.error = error

    @property
    def sheet_found(self) -> bool:
        return self.sheet is not None

    def __iter__(self) -> Iterator[Row]:
        if self.sheet is None:
            return
        row_number = self.start_row
        while row_number <= self.sheet.max_row:
            if is_stop_row(self.sheet.cell(row_number, self.key_column), self.sentinel):
                return
            yield Row(number=row_number, values=self.sheet.row(row_number))
            row_number += 1


def walk(
    sheet: Sheet | None,
    start_row: int,
    key_column: int,
    sentinel: str | None = DEFAULT_SENTINEL,
) -> RowWalk:
    """Walk ``sheet`` from ``start_row`` while ``key_column`` holds a key."""
    return RowWalk(sheet, start_row, key_column, sentinel)


def walk_sheet(
    workbook: Workbook,
    sheet_name: str,
    start_row: int,
    key_column: int,
    sentinel: str | None = DEFAULT_SENTINEL,
) -> RowWalk:
    """Walk a named sheet; an absent sheet gives an empty walk, never an error.

    The returned walk carries ``sheet_found=False`` and the
    ``MissingSheetError`` so callers can show a "data unavailable" state.
    """
    sheet = workbook.get(sheet_name)
    if sheet is None:
        error = MissingSheetError(sheet_name, available=workbook.sheet_names)
        logger.warning(
            "Sheet not found, walking nothing",
            sheet=sheet_name,
            available=workbook.sheet_names,
        )
        return RowWalk(None, start_row, key_column, sentinel, error=error)
    return RowWalk(sheet, start_row, key_column, sentinel)


def find_row(
    sheet: Sheet,
    key_column: int,
    match: str,
    start_row: int = 1,
) -> Row | None:
    """Return the first row whose key equals ``match`` (case-insensitive)."""
    for row_number in range(start_row, sheet.max_row + 1):
        if _matches(sheet.cell(row_number, key_column), match):
            return Row(number=row_number, values=sheet.row(row_number))
    return None
