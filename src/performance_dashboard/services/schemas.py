"""Record schemas for every dashboard sheet.

Columns are 1-based (``1`` is column A), matching the template's layout.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from performance_dashboard.services.mapper import (
    DerivedField,
    FieldSpec,
    Layout,
    RecordSchema,
    completion_rate,
    round_half_up,
)
from performance_dashboard.services.normalizer import CellKind
from performance_dashboard.workbook import (
    BILLING_SHEET,
    FINANCIAL_SHEET,
    KPI_SHEET,
    MANPOWER_SHEET,
    OPEX_SHEET,
    PPM_SHEET,
    PROJECT_OVERVIEW_SHEET,
    SERVICES_SHEET,
    WORK_ORDERS_SHEET,
)

DAYS_PER_MONTH = 30.44
PPM_TARGET = 95.0

# Manpower: month labels sit on row 2 and monthly actuals start at column F.
MANPOWER_LABEL_ROW = 2
MANPOWER_MONTHS_COLUMN = 6

NUMBER = CellKind.NUMBER
STRING = CellKind.STRING
DATE = CellKind.DATE
MONTH = CellKind.MONTH
PERCENTAGE = CellKind.PERCENTAGE


def _duration_months(values: Mapping[str, Any]) -> int:
    start, end = values["start_date"], values["end_date"]
    if start is None or end is None:
        return 0
    return max(math.ceil((end - start).days / DAYS_PER_MONTH), 0)


def _fraction_to_percent(name: str):
    def compute(values: Mapping[str, Any]) -> float:
        return round_half_up(values[name] * 100)

    return compute


def _first_actual(values: Mapping[str, Any]) -> float:
    actuals = values["actuals"]
    return actuals[0] if actuals else 0


def _ppm_status(values: Mapping[str, Any]) -> str:
    return "Above Target" if values["completion"] >= PPM_TARGET else "Below Target"


PROJECT_OVERVIEW = RecordSchema(
    name="project_overview",
    sheet_name=PROJECT_OVERVIEW_SHEET,
    layout=Layout.COLUMN,
    value_column=4,
    start_row=2,
    fields=(
        FieldSpec("title", 1, STRING, default="No Title"),
        FieldSpec("reference", 2, STRING, default="No Reference"),
        FieldSpec("client", 3, STRING, default="No Client"),
        FieldSpec("start_date", 4, DATE),
        FieldSpec("end_date", 5, DATE),
        FieldSpec("contract_value", 6, NUMBER),
    ),
    derived=(DerivedField("duration_months", _duration_months),),
)

FINANCIAL = RecordSchema(
    name="financial",
    sheet_name=FINANCIAL_SHEET,
    start_row=3,
    key_column=1,
    fields=(
        FieldSpec("month", 1, MONTH),
        FieldSpec("budgeted_cost", 2, NUMBER),
        FieldSpec("actual_cost", 3, NUMBER),
        FieldSpec("cost_variance", 4, NUMBER),
        FieldSpec("revenue", 5, NUMBER),
        FieldSpec("profit", 6, NUMBER),
        FieldSpec("profit_margin_fraction", 7, PERCENTAGE),
        FieldSpec("variations", 8, NUMBER),
        FieldSpec("variation_impact", 9, NUMBER),
    ),
    derived=(
        DerivedField("profit_margin", _fraction_to_percent("profit_margin_fraction")),
        DerivedField("budget_variance", lambda v: v["actual_cost"] - v["budgeted_cost"]),
    ),
)

KPI = RecordSchema(
    name="kpi",
    sheet_name=KPI_SHEET,
    start_row=2,
    key_column=1,
    fields=(
        FieldSpec("month", 1, MONTH),
        # Both are fractions in the template (0.95, "12%"); scores get a
        # derived points value for display and the risk index.
        FieldSpec("kpi_score", 2, PERCENTAGE),
        FieldSpec("base_bill", 3, NUMBER),
        FieldSpec("kpi_deduction_rate", 4, PERCENTAGE),
        FieldSpec("kpi_deduction", 5, NUMBER),
        FieldSpec("penalty", 6, NUMBER),
        FieldSpec("net_invoice", 7, NUMBER),
    ),
    derived=(
        DerivedField("kpi_score_pct", _fraction_to_percent("kpi_score")),
        DerivedField(
            "kpi_deduction_pct", _fraction_to_percent("kpi_deduction_rate")
        ),
    ),
)

BILLING = RecordSchema(
    name="billing",
    sheet_name=BILLING_SHEET,
    start_row=2,
    key_column=1,
    fields=(
        FieldSpec("month", 1, MONTH),
        FieldSpec("status", 2, STRING, default="Not Started"),
        FieldSpec("submitted_date", 3, DATE),
        FieldSpec("submitted_amount", 4, NUMBER),
        FieldSpec("certified_amount", 5, NUMBER, allow_null=True),
        FieldSpec("disputed_amount", 6, NUMBER, allow_null=True),
        FieldSpec("received", 7, STRING),
        FieldSpec("notes", 8, STRING),
    ),
)

MANPOWER_HIERARCHY = RecordSchema(
    name="manpower_hierarchy",
    sheet_name=MANPOWER_SHEET,
    start_row=3,
    key_column=2,
    fields=(
        FieldSpec("sr_no", 1, NUMBER),
        FieldSpec("role", 2, STRING),
        FieldSpec("reports_to", 3, STRING, allow_null=True),
        FieldSpec("level", 4, NUMBER),
        FieldSpec("boq", 5, NUMBER),
        FieldSpec("actuals", MANPOWER_MONTHS_COLUMN, NUMBER, span=None),
    ),
    derived=(
        DerivedField("actual", _first_actual),
        DerivedField("variance", lambda v: v["actual"] - v["boq"]),
    ),
)

MANPOWER_TOTALS = RecordSchema(
    name="manpower_totals",
    sheet_name=MANPOWER_SHEET,
    layout=Layout.LOOKUP,
    match="Total",
    start_row=3,
    key_column=2,
    fields=(
        FieldSpec("boq", 5, NUMBER),
        FieldSpec("actuals", MANPOWER_MONTHS_COLUMN, NUMBER, span=None),
    ),
)

# Twelve months, January in column C; the year total is in column O.
OPEX_BY_CATEGORY = RecordSchema(
    name="opex_by_category",
    sheet_name=OPEX_SHEET,
    start_row=3,
    key_column=2,
    fields=(
        FieldSpec("category", 2, STRING),
        FieldSpec("monthly", 3, NUMBER, allow_null=True, span=12, zero_as_null=True),
        FieldSpec("year_total", 15, NUMBER),
    ),
)

PPM = RecordSchema(
    name="ppm",
    sheet_name=PPM_SHEET,
    start_row=3,
    key_column=1,
    fields=(
        FieldSpec("month", 1, MONTH),
        FieldSpec("planned", 2, NUMBER),
        FieldSpec("completed", 3, NUMBER),
        FieldSpec("carry_over", 5, NUMBER),
        FieldSpec("notes", 7, STRING),
    ),
    derived=(
        DerivedField("completion", completion_rate("completed", "planned")),
        DerivedField("status", _ppm_status),
    ),
)

WORK_ORDERS = RecordSchema(
    name="work_orders",
    sheet_name=WORK_ORDERS_SHEET,
    start_row=3,
    key_column=1,
    fields=(
        FieldSpec("month", 1, MONTH),
        FieldSpec("raised", 2, NUMBER),
        FieldSpec("completed", 3, NUMBER),
        FieldSpec("backlog", 5, NUMBER),
    ),
    derived=(DerivedField("completion", completion_rate("completed", "raised")),),
)

SERVICES = RecordSchema(
    name="services",
    sheet_name=SERVICES_SHEET,
    start_row=3,
    key_column=2,
    fields=(
        FieldSpec("sr", 1, NUMBER),
        FieldSpec("system", 2, STRING),
        FieldSpec("ownership", 3, STRING),
        FieldSpec("subcontractor", 4, STRING, default="-"),
        FieldSpec("status", 5, STRING),
        FieldSpec("start_date", 6, DATE),
        FieldSpec("end_date", 7, DATE),
        FieldSpec("contract_value", 8, NUMBER),
    ),
)

SCHEMAS: dict[str, RecordSchema] = {
    schema.name: schema
    for schema in (
        PROJECT_OVERVIEW,
        FINANCIAL,
        KPI,
        BILLING,
        MANPOWER_HIERARCHY,
        MANPOWER_TOTALS,
        OPEX_BY_CATEGORY,
        PPM,
        WORK_ORDERS,
        SERVICES,
    )
}


def get_schema(name: str) -> RecordSchema:
    """Look up a schema by name.

    Raises:
        KeyError: If no schema has that name.
    """
    return SCHEMAS[name]
