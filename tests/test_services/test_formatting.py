"""Tests for display formatting helpers."""

from datetime import date

import pytest

from performance_dashboard.services.formatting import (
    format_currency,
    format_display_date,
    format_millions,
    format_percent,
    format_short_date,
)


class TestDates:
    def test_display_date(self) -> None:
        assert format_display_date(date(2025, 1, 1)) == "Jan 1, 2025"
        assert format_display_date(None) == "-"

    def test_short_date(self) -> None:
        assert format_short_date(date(2025, 12, 31)) == "31 Dec 25"
        assert format_short_date(None) == "-"


class TestNumbers:
    def test_currency(self) -> None:
        assert format_currency(1200000) == "QAR 1,200,000"
        assert format_currency(1234.5) == "QAR 1,235"

    @pytest.mark.parametrize(
        ("fraction", "places", "expected"),
        [(0.12, 0, "12%"), (0.05, 0, "5%"), (0.125, 1, "12.5%"), (0, 0, "0%")],
    )
    def test_percent(self, fraction: float, places: int, expected: str) -> None:
        assert format_percent(fraction, places) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(1_250_000, "1.3M"), (1_550_000, "1.6M"), (300_000, "0.3M"), (0, "-"), (None, "-")],
    )
    def test_millions(self, value: float | None, expected: str) -> None:
        assert format_millions(value) == expected
