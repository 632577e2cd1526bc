"""Dashboard widget payloads.

Each builder takes a parsed :class:`Workbook` and returns a plain,
JSON-serializable dict for one dashboard card. A builder raises
``MissingSheetError`` when its primary sheet is absent; secondary sheets
(such as the contract value on the financial card) degrade to zeros.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date
from typing import Any

from performance_dashboard.services.aggregator import (
    Average,
    Count,
    LastActive,
    RatioOfSums,
    Sum,
    TrendDelta,
    active_records,
    aggregate,
    percent_change,
)
from performance_dashboard.services.formatting import (
    format_currency,
    format_display_date,
    format_millions,
    format_percent,
    format_short_date,
)
from performance_dashboard.services.mapper import (
    MappedSheet,
    Record,
    RecordSchema,
    map_sheet,
    round_half_up,
    safe_ratio,
)
from performance_dashboard.services.normalizer import CellKind, is_blank, normalize
from performance_dashboard.services.schemas import (
    BILLING,
    FINANCIAL,
    KPI,
    MANPOWER_HIERARCHY,
    MANPOWER_LABEL_ROW,
    MANPOWER_MONTHS_COLUMN,
    MANPOWER_TOTALS,
    OPEX_BY_CATEGORY,
    PPM,
    PROJECT_OVERVIEW,
    SERVICES,
    WORK_ORDERS,
)
from performance_dashboard.utils.exceptions import MissingSheetError
from performance_dashboard.utils.logging import get_logger
from performance_dashboard.workbook import OPEX_SHEET, Workbook

logger = get_logger(__name__)

WidgetBuilder = Callable[..., dict[str, Any]]


def _require(workbook: Workbook, schema: RecordSchema) -> MappedSheet:
    mapped = map_sheet(workbook, schema)
    if not mapped.sheet_found:
        logger.warning("Widget data unavailable", schema=schema.name)
        raise mapped.error or MissingSheetError(schema.sheet_name)
    return mapped


def _jsonable(record: Record) -> dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in record.to_dict().items()
    }


def _rows(records: Iterable[Record]) -> list[dict[str, Any]]:
    return [_jsonable(r) for r in records]


def _pct(value: float) -> float:
    return round_half_up(value, 1)


# ---------------------------------------------------------------------------
# Project header
# ---------------------------------------------------------------------------


def project_progress(start: date | None, end: date | None, as_of: date) -> int:
    """Elapsed share of the project window in whole percent, clamped to 0-100."""
    if start is None or end is None or end <= start:
        return 0
    elapsed = safe_ratio((as_of - start).days, (end - start).days, 100.0)
    return int(round_half_up(min(max(elapsed, 0.0), 100.0), 0))


def project_header(workbook: Workbook, as_of: date | None = None) -> dict[str, Any]:
    overview = _require(workbook, PROJECT_OVERVIEW).records[0]
    start, end = overview["start_date"], overview["end_date"]
    return {
        "title": overview["title"],
        "reference": overview["reference"],
        "client": overview["client"],
        "start_date": format_short_date(start),
        "end_date": format_short_date(end),
        "contract_value": overview["contract_value"],
        "contract_value_display": format_currency(overview["contract_value"]),
        "duration_months": overview["duration_months"],
        "duration": f"{overview['duration_months']} months",
        "progress": project_progress(start, end, as_of or date.today()),
    }


# ---------------------------------------------------------------------------
# Financial overview
# ---------------------------------------------------------------------------


def financial_overview(workbook: Workbook) -> dict[str, Any]:
    records = _require(workbook, FINANCIAL).records
    overview = map_sheet(workbook, PROJECT_OVERVIEW)
    contract_value = overview.records[0]["contract_value"] if overview.records else 0

    totals = aggregate(
        records,
        {
            "budgeted_cost": Sum("budgeted_cost"),
            "actual_cost": Sum("actual_cost"),
            "revenue": Sum("revenue"),
            "profit": Sum("profit"),
            "cost_variance": Sum("cost_variance"),
            "variations": Sum("variations"),
            "variation_impact": Sum("variation_impact"),
            "avg_profit_margin": RatioOfSums("profit", "revenue"),
            "cost_variance_pct": RatioOfSums("cost_variance", "revenue"),
        },
    )
    return {
        "months": _rows(records),
        "totals": {
            name: totals[name]
            for name in (
                "budgeted_cost",
                "actual_cost",
                "revenue",
                "profit",
                "cost_variance",
                "variations",
                "variation_impact",
            )
        },
        "avg_profit_margin": _pct(totals["avg_profit_margin"]),
        "cost_variance_pct": _pct(totals["cost_variance_pct"]),
        "contract_value": contract_value,
        "variation_impact_pct": _pct(
            safe_ratio(totals["variation_impact"], contract_value, 100.0)
        ),
        "variations": _rows(
            r for r in records if r["variations"] > 0 or r["variation_impact"] > 0
        ),
    }


# ---------------------------------------------------------------------------
# KPI & billing
# ---------------------------------------------------------------------------


def _is_paid(record: Record) -> bool:
    return record["received"] == "Yes"


def _is_processed(record: Record) -> bool:
    return record["status"] != "Under preparation"


def kpi_billing(workbook: Workbook) -> dict[str, Any]:
    kpi = _require(workbook, KPI).records
    billing_sheet = map_sheet(workbook, BILLING)
    billing = billing_sheet.records
    active = active_records(kpi, "base_bill")

    kpi_totals = aggregate(
        active,
        {
            "total_base_bill": Sum("base_bill"),
            "total_deductions": Sum("kpi_deduction"),
            "total_penalties": Sum("penalty"),
            "avg_kpi_score": Average("kpi_score_pct"),
            "avg_deduction_pct": RatioOfSums("kpi_deduction", "base_bill"),
            "impact_pct": RatioOfSums(("kpi_deduction", "penalty"), "base_bill"),
        },
    )
    billing_totals = aggregate(
        billing,
        {
            "total_submitted": Sum("submitted_amount"),
            "total_certified": Sum("certified_amount"),
            "total_disputed": Sum("disputed_amount"),
            "certification_rate": RatioOfSums("certified_amount", "submitted_amount"),
            "dispute_rate": RatioOfSums("disputed_amount", "submitted_amount"),
            "recovery_rate": RatioOfSums(
                "certified_amount", ("certified_amount", "disputed_amount")
            ),
            "paid_invoices": Count(_is_paid),
            "processed_invoices": Count(_is_processed),
        },
    )
    payment_rate = safe_ratio(
        billing_totals["paid_invoices"], billing_totals["processed_invoices"], 100.0
    )
    avg_kpi = kpi_totals["avg_kpi_score"]
    risk_index = billing_totals["dispute_rate"] * 0.4 + (100 - avg_kpi) * 0.6
    latest = active[-1] if active else None

    metrics = {
        "total_base_bill": kpi_totals["total_base_bill"],
        "total_deductions": kpi_totals["total_deductions"],
        "total_penalties": kpi_totals["total_penalties"],
        "avg_kpi_score": _pct(avg_kpi),
        "total_submitted": billing_totals["total_submitted"],
        "total_certified": billing_totals["total_certified"],
        "total_disputed": billing_totals["total_disputed"],
        "certification_rate": _pct(billing_totals["certification_rate"]),
        "dispute_rate": _pct(billing_totals["dispute_rate"]),
        "recovery_rate": _pct(billing_totals["recovery_rate"]),
        "avg_deduction_pct": _pct(kpi_totals["avg_deduction_pct"]),
        "payment_rate": _pct(payment_rate),
        "risk_index": _pct(risk_index),
        "kpi_trend": _pct(TrendDelta("kpi_score_pct", "base_bill").reduce(kpi)),
        "total_impact": kpi_totals["total_deductions"] + kpi_totals["total_penalties"],
        "impact_pct": _pct(kpi_totals["impact_pct"]),
    }
    return {
        "kpi": [
            {**_jsonable(r), "deduction_display": format_percent(r["kpi_deduction_rate"])}
            for r in kpi
        ],
        "billing": _rows(billing),
        "billing_available": billing_sheet.sheet_found,
        "latest": {
            "month": latest["month"] if latest else "No Data",
            "score": latest["kpi_score_pct"] if latest else 0,
        },
        "metrics": metrics,
    }


# ---------------------------------------------------------------------------
# Manpower
# ---------------------------------------------------------------------------


def manpower_month_labels(workbook: Workbook) -> list[str]:
    """Month labels from the Manpower header row, trailing blanks dropped."""
    sheet = workbook.get(MANPOWER_HIERARCHY.sheet_name)
    if sheet is None:
        return []
    raw = list(sheet.row(MANPOWER_LABEL_ROW)[MANPOWER_MONTHS_COLUMN - 1 :])
    while raw and is_blank(raw[-1]):
        raw.pop()
    return [normalize(v, CellKind.MONTH, field="month_label") for v in raw]


def _month_value(values: tuple[Any, ...], index: int) -> float:
    return values[index] if 0 <= index < len(values) else 0


def manpower_analysis(
    workbook: Workbook, month_index: int | None = None
) -> dict[str, Any]:
    roles = _require(workbook, MANPOWER_HIERARCHY).records
    totals = map_sheet(workbook, MANPOWER_TOTALS).records
    labels = manpower_month_labels(workbook)

    if month_index is None:
        month_index = max(len(labels) - 1, 0)
    elif labels and not 0 <= month_index < len(labels):
        raise ValueError(f"month_index must be between 0 and {len(labels) - 1}")

    nodes = []
    for role in roles:
        actual = _month_value(role["actuals"], month_index)
        nodes.append(
            {
                "sr_no": role["sr_no"],
                "role": role["role"],
                "reports_to": role["reports_to"],
                "level": int(role["level"]),
                "boq": role["boq"],
                "actual": actual,
                "variance": actual - role["boq"],
            }
        )

    levels: dict[int, list[dict[str, Any]]] = {}
    for node in nodes:
        levels.setdefault(node["level"], []).append(node)

    trend = []
    if totals:
        total = totals[0]
        for index, label in enumerate(labels):
            actual = _month_value(total["actuals"], index)
            trend.append(
                {
                    "month": label,
                    "boq": total["boq"],
                    "actual": actual,
                    "variance": actual - total["boq"],
                }
            )

    return {
        "months": labels,
        "selected_month": labels[month_index] if labels else None,
        "month_index": month_index,
        "levels": [
            {"level": level, "nodes": levels[level]} for level in sorted(levels)
        ],
        "trend": trend,
        "missing": [
            {"role": n["role"], "variance": n["variance"]}
            for n in nodes
            if n["variance"] < 0
        ],
        "extra": [
            {"role": n["role"], "variance": n["variance"]}
            for n in nodes
            if n["variance"] > 0
        ],
    }


# ---------------------------------------------------------------------------
# OPEX
# ---------------------------------------------------------------------------

OPEX_SERIES = {
    "Direct Labor": "direct_labor",
    "Indirect Labor": "indirect_labor",
    "Materials & Consumables": "materials",
    "Equipment & Tools": "equipment",
    "Subcontracted Services": "services",
    "Utilities": "utilities",
    "Overheads & Indirect Costs": "overheads",
    "TOTAL OPEX (Actual)": "total",
}
SUBTOTAL_LABOR = "Subtotal Labor"
OTHER_VARIABLE_COSTS = "Other Variable Costs"
TOTAL_OPEX = "TOTAL OPEX (Actual)"
DISTRIBUTION_EXCLUDED = {SUBTOTAL_LABOR, TOTAL_OPEX, OTHER_VARIABLE_COSTS}
OPEX_LABEL_ROW = 2
OPEX_MONTH_COUNT = 12

LABOR_SHARE_LIMIT = 35
LABOR_GROWTH_LIMIT = 10
SERVICES_SHARE_LIMIT = 50
TOTAL_CHANGE_LIMIT = 10
ASSET_SHARE_LIMIT = 25


def _opex_month_labels(workbook: Workbook) -> list[str]:
    sheet = workbook.get(OPEX_SHEET)
    raw = sheet.row(OPEX_LABEL_ROW)[2 : 2 + OPEX_MONTH_COUNT] if sheet else ()
    raw = tuple(raw) + (None,) * (OPEX_MONTH_COUNT - len(raw))
    fallback = [date(2000, m, 1).strftime("%b") for m in range(1, 13)]
    return [
        normalize(value, CellKind.MONTH, default=fallback[i], field="month_label")
        for i, value in enumerate(raw)
    ]


def _change(current: float, previous: float) -> float:
    return safe_ratio(current - previous, previous, 100.0)


def opex_insights(latest: dict[str, Any], previous: dict[str, Any]) -> dict[str, list[str]]:
    """Trends, alerts and suggested actions from the last two months of data."""
    trends: list[str] = []
    alerts: list[str] = []
    actions: list[str] = []

    def v(month: dict[str, Any], key: str) -> float:
        return month.get(key) or 0

    total = v(latest, "total")
    labor = v(latest, "direct_labor") + v(latest, "indirect_labor")
    labor_ratio = safe_ratio(labor, total, 100.0)
    labor_change = _change(
        labor, v(previous, "direct_labor") + v(previous, "indirect_labor")
    )
    if labor_ratio > LABOR_SHARE_LIMIT or labor_change > LABOR_GROWTH_LIMIT:
        trends.append(f"Labor costs represent {labor_ratio:.1f}% of total OPEX")
        actions.append(
            "Review labor sourcing strategy and consider automation opportunities"
        )

    services_ratio = safe_ratio(v(latest, "services"), total, 100.0)
    if services_ratio > SERVICES_SHARE_LIMIT:
        alerts.append(
            f"Critical dependency on subcontracted services ({services_ratio:.1f}%)"
        )
        actions.append("Develop strategic insourcing plan for critical services")

    total_change = _change(total, v(previous, "total"))
    if abs(total_change) > TOTAL_CHANGE_LIMIT:
        direction = "increased" if total_change > 0 else "decreased"
        trends.append(f"OPEX {direction} by {abs(total_change):.1f}%")
        if total_change > 0:
            alerts.append("Significant cost escalation requires executive attention")
            actions.append("Initiate comprehensive cost optimization program")

    asset_ratio = safe_ratio(
        v(latest, "materials") + v(latest, "equipment"), total, 100.0
    )
    if asset_ratio > ASSET_SHARE_LIMIT:
        trends.append(f"High materials and equipment spend ({asset_ratio:.1f}% of OPEX)")
        actions.append("Review asset utilization and procurement strategy")

    return {"trends": trends[:3], "alerts": alerts[:2], "actions": actions[:2]}


def opex_overview(workbook: Workbook) -> dict[str, Any]:
    records = _require(workbook, OPEX_BY_CATEGORY).records
    by_category = {r["category"]: r for r in records}
    labels = _opex_month_labels(workbook)

    def monthly(category: str) -> tuple[Any, ...]:
        record = by_category.get(category)
        return record["monthly"] if record else (None,) * OPEX_MONTH_COUNT

    def year_total(*categories: str) -> float:
        return sum(
            by_category[c]["year_total"] for c in categories if c in by_category
        )

    months = [
        {"month": label, **{key: monthly(name)[i] for name, key in OPEX_SERIES.items()}}
        for i, label in enumerate(labels)
    ]

    last_month = -1
    for month in months:
        if not month["total"]:
            break
        last_month += 1

    latest = months[last_month] if last_month >= 0 else {}
    previous = months[last_month - 1] if last_month >= 1 else {}

    def trend(*keys: str) -> float:
        current = sum(latest.get(k) or 0 for k in keys)
        prior = sum(previous.get(k) or 0 for k in keys)
        return _pct(percent_change(current, prior))

    kpis = [
        {"label": "Total OPEX", "value": year_total(TOTAL_OPEX), "trend": trend("total")},
        {
            "label": "Labor Cost",
            "value": year_total(SUBTOTAL_LABOR),
            "trend": trend("direct_labor", "indirect_labor"),
        },
        {
            "label": "Services",
            "value": year_total("Subcontracted Services"),
            "trend": trend("services"),
        },
        {
            "label": "Materials & Equipment",
            "value": year_total("Materials & Consumables", "Equipment & Tools"),
            "trend": trend("materials", "equipment"),
        },
    ]

    distribution = [
        {"name": r["category"], "value": r["year_total"]}
        for r in records
        if r["category"] not in DISTRIBUTION_EXCLUDED and r["year_total"] > 0
    ]

    insights = (
        opex_insights(latest, previous)
        if last_month >= 1
        else {"trends": [], "alerts": [], "actions": []}
    )
    return {
        "months": months,
        "last_month_index": last_month,
        "last_month": labels[last_month] if last_month >= 0 else None,
        "kpis": kpis,
        "distribution": distribution,
        "insights": insights,
    }


# ---------------------------------------------------------------------------
# PPM & work orders
# ---------------------------------------------------------------------------


def ppm_status_class(completion: float) -> str:
    if not completion:
        return "warning"
    if completion >= 98:
        return "success"
    if completion >= 90:
        return "warning"
    return "danger"


def work_order_status_class(completion: float) -> str:
    if not completion:
        return "warning"
    if completion >= 95:
        return "success"
    if completion >= 85:
        return "warning"
    return "danger"


def _month_over_month(active: list[Record], field: str) -> float:
    if len(active) < 2:
        return 0
    return _pct(active[-1][field] - active[-2][field])


def ppm_work_orders(workbook: Workbook) -> dict[str, Any]:
    ppm = _require(workbook, PPM).records
    work_orders = _require(workbook, WORK_ORDERS).records
    ppm_active = active_records(ppm, "planned")
    wo_active = active_records(work_orders, "raised")

    ppm_current = ppm_active[-1] if ppm_active else None
    wo_current = wo_active[-1] if wo_active else None
    ppm_completion = LastActive("completion", "planned").reduce(ppm)
    wo_completion = LastActive("completion", "raised").reduce(work_orders)

    return {
        "ppm": _rows(ppm),
        "work_orders": _rows(work_orders),
        "ppm_current": _jsonable(ppm_current) if ppm_current else None,
        "wo_current": _jsonable(wo_current) if wo_current else None,
        "ppm_carry_over_pct": _pct(
            safe_ratio(
                ppm_current["carry_over"] if ppm_current else 0,
                ppm_current["planned"] if ppm_current else 0,
                100.0,
            )
        ),
        "wo_backlog_pct": _pct(
            safe_ratio(
                wo_current["backlog"] if wo_current else 0,
                wo_current["raised"] if wo_current else 0,
                100.0,
            )
        ),
        "ppm_completion_trend": _month_over_month(ppm_active, "completion"),
        "wo_completion_trend": _month_over_month(wo_active, "completion"),
        "ppm_completion_delta": _pct(TrendDelta("completion", "planned").reduce(ppm)),
        "wo_completion_delta": _pct(
            TrendDelta("completion", "raised").reduce(work_orders)
        ),
        "ppm_status": ppm_status_class(ppm_completion),
        "wo_status": work_order_status_class(wo_completion),
    }


# ---------------------------------------------------------------------------
# Systems overview
# ---------------------------------------------------------------------------

IN_HOUSE = "In-House"
SUBCONTRACTOR = "Subcontractor"


def _ownership(value: str) -> Callable[[Record], bool]:
    return lambda r: r["ownership"] == value


def _status(value: str) -> Callable[[Record], bool]:
    return lambda r: r["status"] == value


def systems_overview(workbook: Workbook) -> dict[str, Any]:
    records = _require(workbook, SERVICES).records
    owned = [r for r in records if r["ownership"]]
    counts = aggregate(
        owned,
        {
            "total": Count(),
            "in_house": Count(_ownership(IN_HOUSE)),
            "subcontracted": Count(_ownership(SUBCONTRACTOR)),
            "active": Count(_status("Active")),
            "on_hold": Count(_status("On Hold")),
            "not_started": Count(_status("Not Started")),
            "subcontracted_value": Sum("contract_value", where=_ownership(SUBCONTRACTOR)),
        },
    )
    rows = [
        {
            "sr": r["sr"],
            "system": r["system"],
            "ownership": r["ownership"],
            "subcontractor": r["subcontractor"],
            "status": r["status"],
            "start_date": format_display_date(r["start_date"]),
            "end_date": format_display_date(r["end_date"]),
            "contract_value": format_millions(r["contract_value"]),
        }
        for r in records
    ]
    return {
        "rows": rows,
        "counts": {
            name: counts[name]
            for name in (
                "total",
                "in_house",
                "subcontracted",
                "active",
                "on_hold",
                "not_started",
            )
        },
        "in_house_pct": _pct(safe_ratio(counts["in_house"], counts["total"], 100.0)),
        "subcontracted_pct": _pct(
            safe_ratio(counts["subcontracted"], counts["total"], 100.0)
        ),
        "subcontracted_value": counts["subcontracted_value"],
        "subcontracted_value_display": format_millions(counts["subcontracted_value"]),
    }


WIDGETS: dict[str, WidgetBuilder] = {
    "project_header": project_header,
    "financial_overview": financial_overview,
    "kpi_billing": kpi_billing,
    "manpower_analysis": manpower_analysis,
    "opex_overview": opex_overview,
    "ppm_work_orders": ppm_work_orders,
    "systems_overview": systems_overview,
}

WIDGET_SCHEMAS: dict[str, tuple[RecordSchema, ...]] = {
    "project_header": (PROJECT_OVERVIEW,),
    "financial_overview": (FINANCIAL, PROJECT_OVERVIEW),
    "kpi_billing": (KPI, BILLING),
    "manpower_analysis": (MANPOWER_HIERARCHY, MANPOWER_TOTALS),
    "opex_overview": (OPEX_BY_CATEGORY,),
    "ppm_work_orders": (PPM, WORK_ORDERS),
    "systems_overview": (SERVICES,),
}
