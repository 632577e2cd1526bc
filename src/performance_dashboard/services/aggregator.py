"""Reduce mapped records into summary metrics.

Reducers are small declarative objects; ``aggregate`` applies a named set of
them to one record sequence::

    totals = aggregate(records, {
        "avg_kpi": Average("kpi_score", baseline="base_bill"),
        "certification_rate": RatioOfSums("certified_amount", "submitted_amount"),
    })

An empty record sequence always yields zeros, never an error.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from performance_dashboard.services.mapper import Record, safe_ratio

Predicate = Callable[[Record], bool]


def _number(record: Record, field: str) -> float:
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def is_active(record: Record, baseline: str | None) -> bool:
    """A record is active when its baseline field is non-zero."""
    return baseline is None or _number(record, baseline) != 0


class Reducer(Protocol):
    def reduce(self, records: Sequence[Record]) -> float: ...


@dataclass(frozen=True)
class Sum:
    field: str
    where: Predicate | None = None

    def reduce(self, records: Sequence[Record]) -> float:
        return sum(
            (_number(r, self.field) for r in records if self.where is None or self.where(r)),
            0,
        )


@dataclass(frozen=True)
class Count:
    where: Predicate | None = None

    def reduce(self, records: Sequence[Record]) -> float:
        return sum(1 for r in records if self.where is None or self.where(r))


@dataclass(frozen=True)
class Average:
    """Mean of ``field`` over records whose ``baseline`` is non-zero."""

    field: str
    baseline: str | None = None

    def reduce(self, records: Sequence[Record]) -> float:
        active = [r for r in records if is_active(r, self.baseline)]
        return safe_ratio(sum((_number(r, self.field) for r in active), 0), len(active))


@dataclass(frozen=True)
class TrendDelta:
    """``last - first`` of ``field`` over active records; 0 with fewer than two."""

    field: str
    baseline: str | None = None

    def reduce(self, records: Sequence[Record]) -> float:
        active = [r for r in records if is_active(r, self.baseline)]
        if len(active) < 2:
            return 0
        return _number(active[-1], self.field) - _number(active[0], self.field)


@dataclass(frozen=True)
class RatioOfSums:
    """Sum of numerators over sum of denominators, times ``scale``.

    Each side may name several fields, added together per record. Both sums
    run over the full record set before dividing.
    """

    numerator: str | tuple[str, ...]
    denominator: str | tuple[str, ...]
    scale: float = 100.0

    @staticmethod
    def _total(records: Sequence[Record], fields: str | tuple[str, ...]) -> float:
        names = (fields,) if isinstance(fields, str) else fields
        return sum((_number(r, name) for r in records for name in names), 0)

    def reduce(self, records: Sequence[Record]) -> float:
        return safe_ratio(
            self._total(records, self.numerator),
            self._total(records, self.denominator),
            self.scale,
        )


@dataclass(frozen=True)
class LastActive:
    """``field`` on the last active record, or 0 when none is active."""

    field: str
    baseline: str | None = None

    def reduce(self, records: Sequence[Record]) -> float:
        for record in reversed(records):
            if is_active(record, self.baseline):
                return _number(record, self.field)
        return 0


class Aggregate(dict):
    """Named reducer results; missing names read as 0."""

    def __missing__(self, key: str) -> float:
        return 0


def aggregate(records: Sequence[Record], reducers: Mapping[str, Reducer]) -> Aggregate:
    records = list(records)
    return Aggregate({name: reducer.reduce(records) for name, reducer in reducers.items()})


def active_records(records: Sequence[Record], baseline: str) -> list[Record]:
    return [r for r in records if is_active(r, baseline)]


def percent_change(current: Any, previous: Any) -> float:
    """Month-over-month change in percent; 0 when either side is missing."""
    if not current or not previous:
        return 0.0
    return (current - previous) / previous * 100
