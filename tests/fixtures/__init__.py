"""Test fixtures and helpers for building sample workbooks.

The template mirrors ``Project Performance Template.xlsx``: every dashboard
sheet with a few months of data.

Example usage:
    from tests.fixtures import build_template_bytes, sheet_workbook, truncate_part

    data = build_template_bytes(omit={"Billing"})
    workbook = sheet_workbook("PPM", [["Jan-25", 10, 8, None, 2]], start_row=3)
"""

from __future__ import annotations

import io
import zipfile
from datetime import datetime
from typing import Any

from openpyxl import Workbook as OpenpyxlWorkbook

from performance_dashboard.workbook import Sheet, Workbook

OPEX_CATEGORIES: list[tuple[str, int, int]] = [
    ("Direct Labor", 40000, 44000),
    ("Indirect Labor", 10000, 10000),
    ("Subtotal Labor", 50000, 54000),
    ("Materials & Consumables", 15000, 15000),
    ("Equipment & Tools", 5000, 6000),
    ("Subcontracted Services", 20000, 30000),
    ("Utilities", 5000, 5000),
    ("Overheads & Indirect Costs", 5000, 5000),
    ("Other Variable Costs", 0, 0),
    ("TOTAL OPEX (Actual)", 100000, 115000),
]

MONTHS_2025 = [datetime(2025, m, 1).strftime("%b-%y") for m in range(1, 13)]


def template_rows() -> dict[str, list[list[Any]]]:
    """Rows for every dashboard sheet, starting at spreadsheet row 1."""
    opex = [
        ["OPEX Tracker"],
        [None, "Category", *MONTHS_2025, "Total"],
    ]
    for name, jan, feb in OPEX_CATEGORIES:
        opex.append([None, name, jan, feb, *([0] * 10), jan + feb])

    return {
        "Project Overview": [
            ["Project Overview", None, "Field", "Value"],
            [None, None, "Title", "Tower A Facilities Management"],
            [None, None, "Reference", "PRJ-001"],
            [None, None, "Client", "Acme Holdings"],
            [None, None, "Start", datetime(2025, 1, 1)],
            [None, None, "End", datetime(2025, 12, 31)],
            [None, None, "Value", 1200000],
        ],
        "Financial": [
            ["Financial Performance"],
            ["Month", "Budgeted", "Actual", "Variance", "Revenue", "Profit",
             "Margin", "Variations", "Impact"],
            ["Jan-25", 100000, 90000, 10000, 120000, 30000, 0.25, 1, 5000],
            ["Feb-25", 100000, 110000, -10000, 130000, 20000, 0.1538, 0, 0],
            ["Total", 200000, 200000, 0, 250000, 50000, 0.2, 1, 5000],
        ],
        "KPI-Penalties": [
            ["Month", "KPI Score", "Base Bill", "Deduction %", "Deduction",
             "Penalty", "Net Invoice"],
            ["Jan-25", 0.95, 100000, 0.05, 5000, 1000, 94000],
            ["Feb-25", 0.85, 100000, "12%", 12000, 0, 88000],
            ["Mar-25", 0, 0, 0, 0, 0, 0],
        ],
        "Billing": [
            ["Month", "Status", "Submitted", "Amount", "Certified", "Disputed",
             "Received", "Notes"],
            ["Jan-25", "Paid", datetime(2025, 2, 5), 94000, 90000, 4000, "Yes", None],
            ["Feb-25", "Submitted", datetime(2025, 3, 5), 88000, None, None, "No",
             "Awaiting certification"],
            ["Mar-25", "Under preparation", None, 0, None, None, None, None],
        ],
        "Manpower": [
            ["Manpower Plan"],
            ["Sr", "Role", "Reports To", "Level", "BOQ",
             datetime(2025, 1, 1), datetime(2025, 2, 1)],
            [1, "Project Manager", None, 1, 1, 1, 1],
            [2, "Technician", "Project Manager", 2, 10, 8, 11],
            [None, "Total", None, None, 11, 9, 12],
        ],
        "OPEX": opex,
        "PPM": [
            ["PPM Performance"],
            ["Month", "Planned", "Completed", None, "Carry Over", None, "Notes"],
            ["Jan-25", 10, 8, None, 2],
            ["Feb-25", 20, 20, None, 0, None, "All done"],
            ["Mar-25", 0, 0, None, 0],
        ],
        "WOs": [
            ["Work Orders"],
            ["Month", "Raised", "Completed", None, "Backlog"],
            ["Jan-25", 50, 45, None, 5],
            ["Feb-25", 40, 34, None, 6],
        ],
        "Services": [
            ["Systems & Services"],
            ["Sr", "System", "Ownership", "Subcontractor", "Status", "Start",
             "End", "Contract Value"],
            [1, "HVAC", "Subcontractor", "CoolCo", "Active",
             datetime(2025, 1, 1), datetime(2025, 12, 31), 1250000],
            [2, "Cleaning", "In-House", None, "Active",
             datetime(2025, 1, 1), datetime(2025, 12, 31), None],
            [3, "Lifts", "Subcontractor", "LiftCo", "On Hold", 45658, None, 300000],
            [None, "Total", None, None, None, None, None, 1550000],
        ],
    }


def build_workbook_bytes(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Save rows to an in-memory ``.xlsx`` with openpyxl."""
    wb = OpenpyxlWorkbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_template_bytes(
    omit: set[str] | None = None,
    overrides: dict[str, list[list[Any]]] | None = None,
) -> bytes:
    """The full template, optionally without some sheets or with replacements."""
    sheets = template_rows()
    sheets.update(overrides or {})
    for name in omit or set():
        sheets.pop(name, None)
    return build_workbook_bytes(sheets)


def sheet_workbook(
    name: str, rows: list[list[Any]], start_row: int = 1
) -> Workbook:
    """A single-sheet in-memory workbook; ``rows`` begin at ``start_row``."""
    padding = [()] * (start_row - 1)
    return Workbook(
        sheets={name: Sheet(name=name, rows=padding + [tuple(r) for r in rows])}
    )


def truncate_part(data: bytes, part: str = "xl/worksheets/sheet1.xml") -> bytes:
    """Rewrite an ``.xlsx`` with one zip member cut in half.

    The container stays a valid zip; only the XML inside ``part`` is broken.
    """
    source = zipfile.ZipFile(io.BytesIO(data))
    buffer = io.BytesIO()
    with source, zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
        for info in source.infolist():
            content = source.read(info.filename)
            if info.filename == part:
                content = content[: len(content) // 2]
            target.writestr(info, content)
    return buffer.getvalue()
