"""Display formatting for widget payloads."""

from __future__ import annotations

from datetime import date

from performance_dashboard.services.mapper import round_half_up

CURRENCY = "QAR"


def format_display_date(value: date | None) -> str:
    """``date(2025, 1, 1)`` -> ``"Jan 1, 2025"``; ``"-"`` when absent."""
    if value is None:
        return "-"
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_short_date(value: date | None) -> str:
    """``date(2025, 1, 1)`` -> ``"1 Jan 25"``; ``"-"`` when absent."""
    if value is None:
        return "-"
    return f"{value.day} {value.strftime('%b %y')}"


def format_currency(value: float) -> str:
    return f"{CURRENCY} {round_half_up(value, 0):,.0f}"


def format_percent(fraction: float, places: int = 0) -> str:
    """Render a fraction as a percentage: ``0.12`` -> ``"12%"``."""
    return f"{round_half_up(fraction * 100, places):.{places}f}%"


def format_millions(value: float | None) -> str:
    """``1_250_000`` -> ``"1.3M"``; ``"-"`` for blank or zero values."""
    if not value:
        return "-"
    return f"{round_half_up(value / 1_000_000, 1):.1f}M"
