"""Dataclasses representing a parsed performance workbook."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from performance_dashboard.utils.exceptions import MissingSheetError

# Sheet names are part of the external contract and matched case-sensitively.
PROJECT_OVERVIEW_SHEET = "Project Overview"
FINANCIAL_SHEET = "Financial"
KPI_SHEET = "KPI-Penalties"
BILLING_SHEET = "Billing"
MANPOWER_SHEET = "Manpower"
OPEX_SHEET = "OPEX"
PPM_SHEET = "PPM"
WORK_ORDERS_SHEET = "WOs"
SERVICES_SHEET = "Services"

DASHBOARD_SHEETS = (
    PROJECT_OVERVIEW_SHEET,
    FINANCIAL_SHEET,
    KPI_SHEET,
    BILLING_SHEET,
    MANPOWER_SHEET,
    OPEX_SHEET,
    PPM_SHEET,
    WORK_ORDERS_SHEET,
    SERVICES_SHEET,
)


@dataclass
class Sheet:
    """A named grid of raw cell values.

    Rows and columns are 1-based, as shown in the spreadsheet UI.
    """

    name: str
    rows: list[tuple[Any, ...]]

    @property
    def max_row(self) -> int:
        return len(self.rows)

    @property
    def max_column(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def row(self, row: int) -> tuple[Any, ...]:
        """Return the raw values of a row, or an empty tuple past the end."""
        if row < 1 or row > len(self.rows):
            return ()
        return self.rows[row - 1]

    def cell(self, row: int, column: int) -> Any:
        """Return a single raw value, or None outside the used range."""
        values = self.row(row)
        if column < 1 or column > len(values):
            return None
        return values[column - 1]


@dataclass
class Workbook:
    """A parsed workbook: its sheets keyed by exact name."""

    sheets: dict[str, Sheet]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets)

    def get(self, name: str) -> Sheet | None:
        return self.sheets.get(name)

    def sheet(self, name: str) -> Sheet:
        """Return the named sheet.

        Raises:
            MissingSheetError: If the workbook has no sheet with that exact name.
        """
        found = self.sheets.get(name)
        if found is None:
            raise MissingSheetError(name, available=self.sheet_names)
        return found
