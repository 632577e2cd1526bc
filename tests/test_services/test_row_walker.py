"""Tests for the sentinel-terminated row walker."""

import logging

import pytest

from performance_dashboard.services.row_walker import (
    Row,
    find_row,
    is_stop_row,
    walk,
    walk_sheet,
)
from performance_dashboard.workbook import Sheet, Workbook
from tests.fixtures import sheet_workbook


def _sheet(rows: list[list[object]]) -> Sheet:
    return Sheet(name="Data", rows=[tuple(r) for r in rows])


class TestRow:
    def test_one_based_access(self) -> None:
        row = Row(number=3, values=("Jan-25", 10, 8))
        assert row[1] == "Jan-25"
        assert row[3] == 8

    def test_past_the_end_is_none(self) -> None:
        row = Row(number=3, values=("Jan-25",))
        assert row[5] is None
        assert row[0] is None

    def test_slice_pads_to_span(self) -> None:
        row = Row(number=1, values=(None, "Labor", 1, 2))
        assert row.slice(3, 4) == (1, 2, None, None)

    def test_slice_to_row_end(self) -> None:
        row = Row(number=1, values=(None, "Labor", 1, 2))
        assert row.slice(3, None) == (1, 2)


class TestIsStopRow:
    @pytest.mark.parametrize("key", [None, "", "  ", "Total", "TOTAL", " total "])
    def test_stop_keys(self, key: object) -> None:
        assert is_stop_row(key, "Total")

    @pytest.mark.parametrize("key", ["Jan-25", 0, "Totals", "Subtotal"])
    def test_data_keys(self, key: object) -> None:
        assert not is_stop_row(key, "Total")

    def test_no_sentinel(self) -> None:
        assert not is_stop_row("Total", None)


class TestWalk:
    """Tests for walk over a single sheet."""

    def test_stops_before_sentinel(self) -> None:
        sheet = _sheet([["Month"], ["Jan-25", 1], ["Feb-25", 2], ["Total", 3], ["Mar-25", 4]])
        rows = list(walk(sheet, start_row=2, key_column=1))
        assert [r.number for r in rows] == [2, 3]
        assert rows[1][2] == 2

    def test_stops_at_blank_key(self) -> None:
        sheet = _sheet([["Jan-25", 1], [None, 2], ["Mar-25", 3]])
        assert [r[1] for r in walk(sheet, start_row=1, key_column=1)] == ["Jan-25"]

    def test_empty_non_key_cells_do_not_stop(self) -> None:
        sheet = _sheet([["Jan-25", None, None], ["Feb-25", 5]])
        assert len(list(walk(sheet, start_row=1, key_column=1))) == 2

    def test_runs_to_end_of_sheet(self) -> None:
        sheet = _sheet([["Jan-25"], ["Feb-25"]])
        assert len(list(walk(sheet, start_row=1, key_column=1))) == 2

    def test_key_column_other_than_a(self) -> None:
        sheet = _sheet([[1, "Project Manager"], [2, "Technician"], [None, "Total"]])
        roles = [r[2] for r in walk(sheet, start_row=1, key_column=2)]
        assert roles == ["Project Manager", "Technician"]

    def test_start_past_end_is_empty(self) -> None:
        sheet = _sheet([["Jan-25"]])
        assert list(walk(sheet, start_row=5, key_column=1)) == []

    def test_restartable(self) -> None:
        """Each iteration is a fresh, identical pass."""
        sheet = _sheet([["Jan-25", 1], ["Feb-25", 2]])
        walked = walk(sheet, start_row=1, key_column=1)
        assert list(walked) == list(walked)

    def test_custom_sentinel(self) -> None:
        sheet = _sheet([["A"], ["END"], ["B"]])
        rows = list(walk(sheet, start_row=1, key_column=1, sentinel="end"))
        assert len(rows) == 1

    def test_invalid_coordinates(self) -> None:
        with pytest.raises(ValueError):
            walk(_sheet([]), start_row=0, key_column=1)


class TestWalkSheet:
    def test_named_sheet(self) -> None:
        workbook = sheet_workbook("PPM", [["Jan-25", 10], ["Feb-25", 20]], start_row=3)
        walked = walk_sheet(workbook, "PPM", start_row=3, key_column=1)
        assert walked.sheet_found
        assert [r.number for r in walked] == [3, 4]

    def test_missing_sheet_is_empty_not_error(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        workbook = Workbook(sheets={})
        with caplog.at_level(logging.WARNING):
            walked = walk_sheet(workbook, "PPM", start_row=3, key_column=1)
        assert list(walked) == []
        assert walked.sheet_found is False
        assert walked.error is not None
        assert walked.error.sheet_name == "PPM"
        assert "Sheet not found" in caplog.text

    def test_sheet_names_are_case_sensitive(self) -> None:
        workbook = sheet_workbook("ppm", [["Jan-25", 10]])
        assert walk_sheet(workbook, "PPM", start_row=1, key_column=1).sheet_found is False


class TestFindRow:
    def test_finds_first_match(self) -> None:
        sheet = _sheet([[None, "Role"], [1, "PM"], [None, "total", 11]])
        found = find_row(sheet, key_column=2, match="Total")
        assert found is not None
        assert found.number == 3
        assert found[3] == 11

    def test_no_match(self) -> None:
        sheet = _sheet([[None, "Role"]])
        assert find_row(sheet, key_column=2, match="Total") is None
