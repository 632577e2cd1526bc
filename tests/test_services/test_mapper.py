"""Tests for the declarative record mapper."""

import dataclasses
from datetime import date
from types import MappingProxyType

import pytest

from performance_dashboard.services.mapper import (
    DerivedField,
    FieldSpec,
    Layout,
    Record,
    RecordSchema,
    completion_rate,
    map_row,
    map_sheet,
    round_half_up,
    safe_ratio,
)
from performance_dashboard.services.normalizer import CellKind
from performance_dashboard.services.row_walker import Row
from performance_dashboard.workbook import Sheet, Workbook
from tests.fixtures import sheet_workbook

COMPLETION = RecordSchema(
    name="completion",
    sheet_name="Tasks",
    start_row=2,
    fields=(
        FieldSpec("month", 1, CellKind.MONTH),
        FieldSpec("planned", 2),
        FieldSpec("completed", 3),
        FieldSpec("owner", 4, CellKind.STRING, default="Unassigned"),
        FieldSpec("certified", 5, allow_null=True),
    ),
    derived=(DerivedField("completion", completion_rate("completed", "planned")),),
)


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "places", "expected"),
        [(12.25, 1, 12.3), (12.35, 1, 12.4), (-12.25, 1, -12.3), (0.5, 0, 1.0), (2.5, 0, 3.0)],
    )
    def test_round_half_up(self, value: float, places: int, expected: float) -> None:
        assert round_half_up(value, places) == expected

    def test_safe_ratio(self) -> None:
        assert safe_ratio(1, 4) == 0.25
        assert safe_ratio(1, 4, 100.0) == 25.0

    @pytest.mark.parametrize("denominator", [0, None])
    def test_safe_ratio_zero_denominator(self, denominator: float | None) -> None:
        assert safe_ratio(5, denominator, 100.0) == 0

    def test_safe_ratio_null_numerator(self) -> None:
        assert safe_ratio(None, 4) == 0


class TestMapRow:
    """Tests for mapping a single row."""

    def test_maps_fields_and_derivations(self) -> None:
        record = map_row(Row(3, ("Jan-25", 10, 8, "Ali", 5)), COMPLETION)
        assert record.schema == "completion"
        assert record.row_number == 3
        assert record["month"] == "Jan-25"
        assert record["completion"] == 80.0
        assert record["owner"] == "Ali"

    def test_zero_denominator_gives_zero_not_error(self) -> None:
        record = map_row(Row(3, ("Mar-25", 0, 0)), COMPLETION)
        assert record["completion"] == 0

    def test_completion_rounds_half_up(self) -> None:
        # 1/16 is exactly 6.25%, which rounds up rather than to even.
        assert map_row(Row(1, ("Jan-25", 8, 1)), COMPLETION)["completion"] == 12.5
        assert map_row(Row(1, ("Jan-25", 16, 1)), COMPLETION)["completion"] == 6.3

    def test_defaults_for_blank_cells(self) -> None:
        record = map_row(Row(1, ("Jan-25", None, None)), COMPLETION)
        assert record["planned"] == 0
        assert record["owner"] == "Unassigned"
        assert record["certified"] is None

    def test_malformed_cell_isolated_to_field(self) -> None:
        record = map_row(Row(1, ("Jan-25", "lots", 3)), COMPLETION)
        assert record["planned"] == 0
        assert record["completed"] == 3

    def test_idempotent(self) -> None:
        """The same row always maps to an equal record."""
        row = Row(4, ("Feb-25", 20, 19, None, 0))
        assert map_row(row, COMPLETION) == map_row(row, COMPLETION)

    def test_record_is_immutable(self) -> None:
        record = map_row(Row(1, ("Jan-25", 1, 1)), COMPLETION)
        assert isinstance(record.values, MappingProxyType)
        with pytest.raises(TypeError):
            record.values["planned"] = 5  # type: ignore[index]
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.schema = "other"  # type: ignore[misc]

    def test_span_fields(self) -> None:
        schema = RecordSchema(
            name="series",
            sheet_name="Series",
            fields=(
                FieldSpec("category", 1, CellKind.STRING),
                FieldSpec("monthly", 2, allow_null=True, span=3, zero_as_null=True),
                FieldSpec("rest", 2, span=None),
            ),
        )
        record = map_row(Row(1, ("Labor", 5, 0, None, 7)), schema)
        assert record["monthly"] == (5, None, None)
        assert record["rest"] == (5, 0, 0, 7)
        assert record.to_dict()["monthly"] == [5, None, None]

    def test_get_with_default(self) -> None:
        record = Record(schema="x", values={"a": 1})
        assert record.get("a") == 1
        assert record.get("missing", "-") == "-"


class TestMapSheet:
    """Tests for mapping whole sheets in each layout."""

    def test_rows_layout(self) -> None:
        workbook = sheet_workbook(
            "Tasks",
            [["Month", "Planned", "Completed"], ["Jan-25", 10, 8], ["Feb-25", 4, 4], ["Total", 14, 12]],
        )
        mapped = map_sheet(workbook, COMPLETION)
        assert mapped.sheet_found
        assert [r["completion"] for r in mapped] == [80.0, 100.0]
        assert len(mapped) == 2

    def test_missing_sheet(self) -> None:
        mapped = map_sheet(Workbook(sheets={}), COMPLETION)
        assert mapped.sheet_found is False
        assert mapped.records == ()
        assert mapped.error is not None
        assert mapped.error.sheet_name == "Tasks"

    def test_column_layout(self) -> None:
        schema = RecordSchema(
            name="overview",
            sheet_name="Overview",
            layout=Layout.COLUMN,
            value_column=2,
            start_row=2,
            fields=(
                FieldSpec("title", 1, CellKind.STRING, default="No Title"),
                FieldSpec("start", 2, CellKind.DATE),
                FieldSpec("value", 3),
            ),
        )
        workbook = Workbook(
            sheets={
                "Overview": Sheet(
                    name="Overview",
                    rows=[("Field", "Value"), ("Title", None), ("Start", 45658), ("Value", "1,000")],
                )
            }
        )
        (record,) = map_sheet(workbook, schema).records
        assert record["title"] == "No Title"
        assert record["start"] == date(2025, 1, 1)
        assert record["value"] == 1000.0

    def test_lookup_layout(self) -> None:
        schema = RecordSchema(
            name="totals",
            sheet_name="Plan",
            layout=Layout.LOOKUP,
            match="Total",
            start_row=1,
            key_column=2,
            fields=(FieldSpec("boq", 3),),
        )
        workbook = sheet_workbook("Plan", [[1, "PM", 1], [None, "Total", 11]])
        (record,) = map_sheet(workbook, schema).records
        assert record["boq"] == 11
        assert record.row_number == 2

    def test_lookup_without_match_is_empty(self) -> None:
        schema = RecordSchema(
            name="totals",
            sheet_name="Plan",
            layout=Layout.LOOKUP,
            match="Total",
            key_column=2,
            fields=(FieldSpec("boq", 3),),
        )
        mapped = map_sheet(sheet_workbook("Plan", [[1, "PM", 1]]), schema)
        assert mapped.sheet_found
        assert mapped.records == ()

    def test_field_names(self) -> None:
        assert COMPLETION.field_names == [
            "month",
            "planned",
            "completed",
            "owner",
            "certified",
            "completion",
        ]
