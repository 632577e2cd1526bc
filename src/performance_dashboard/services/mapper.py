"""Declarative record mapping.

A :class:`RecordSchema` says which column feeds which field, what kind of
value it holds and what to substitute when the cell is blank or malformed.
One generic engine (:func:`map_row` / :func:`map_sheet`) applies every
schema, so adding a dashboard sheet means declaring a schema, not writing
another extraction loop.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from performance_dashboard.services.normalizer import UNSET, CellKind, normalize
from performance_dashboard.services.row_walker import (
    DEFAULT_SENTINEL,
    Row,
    find_row,
    walk_sheet,
)
from performance_dashboard.utils.exceptions import MissingSheetError
from performance_dashboard.utils.logging import (
    LogContext,
    get_logger,
    timed_operation,
)
from performance_dashboard.workbook import Workbook

logger = get_logger(__name__)


class Layout(str, Enum):
    """How a schema's records are laid out on its sheet."""

    ROWS = "rows"
    """One record per walked row."""

    COLUMN = "column"
    """One record read down a single column."""

    LOOKUP = "lookup"
    """One record from the first row whose key matches a literal."""


@dataclass(frozen=True)
class FieldSpec:
    """Source and normalization rules for one record field.

    Attributes:
        name: Field name on the record.
        column: 1-based source column. For ``Layout.COLUMN`` schemas this is
            the 1-based position down the value column instead.
        kind: Expected value kind.
        default: Substitute for blank/malformed cells (kind default if unset).
        allow_null: Keep ``None`` for blank cells ("not yet available").
        span: Number of consecutive cells read into a tuple; ``None`` reads
            to the end of the row. ``1`` yields a scalar.
        zero_as_null: Treat a numeric zero like a blank cell.
    """

    name: str
    column: int
    kind: CellKind = CellKind.NUMBER
    default: Any = UNSET
    allow_null: bool = False
    span: int | None = 1
    zero_as_null: bool = False


@dataclass(frozen=True)
class DerivedField:
    """A field computed from fields already mapped on the same row."""

    name: str
    compute: Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class RecordSchema:
    """Declarative description of one sheet's records."""

    name: str
    sheet_name: str
    fields: tuple[FieldSpec, ...]
    derived: tuple[DerivedField, ...] = ()
    layout: Layout = Layout.ROWS
    start_row: int = 2
    key_column: int = 1
    sentinel: str | None = DEFAULT_SENTINEL
    value_column: int = 1
    match: str | None = None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields] + [d.name for d in self.derived]


@dataclass(frozen=True)
class Record:
    """An immutable mapped record."""

    schema: str
    values: Mapping[str, Any]
    row_number: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in self.values.items()
        }


@dataclass(frozen=True)
class MappedSheet:
    """Records mapped from one sheet plus whether the sheet existed."""

    schema: RecordSchema
    records: tuple[Record, ...] = ()
    sheet_found: bool = True
    error: MissingSheetError | None = None

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


def safe_ratio(numerator: float | None, denominator: float | None, scale: float = 1.0) -> float:
    """Return ``numerator / denominator * scale``, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return (numerator or 0) / denominator * scale


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero (``12.25`` -> ``12.3``), unlike ``round()``."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def completion_rate(numerator: str, denominator: str) -> Callable[[Mapping[str, Any]], float]:
    """Build a derivation for ``numerator / denominator * 100`` to 1 decimal."""

    def compute(values: Mapping[str, Any]) -> float:
        return round_half_up(safe_ratio(values[numerator], values[denominator], 100.0))

    return compute


def _read_field(row: Row, spec: FieldSpec) -> Any:
    def norm(raw: Any) -> Any:
        if spec.zero_as_null and isinstance(raw, (int, float)) and raw == 0:
            raw = None
        value = normalize(
            raw,
            spec.kind,
            default=spec.default,
            allow_null=spec.allow_null,
            field=spec.name,
        )
        return value

    if spec.span == 1:
        return norm(row[spec.column])
    return tuple(norm(raw) for raw in row.slice(spec.column, spec.span))


def map_row(row: Row, schema: RecordSchema) -> Record:
    """Map one row to a record. Pure: the same row always maps equal."""
    values: dict[str, Any] = {}
    for spec in schema.fields:
        values[spec.name] = _read_field(row, spec)
    for derived in schema.derived:
        values[derived.name] = derived.compute(MappingProxyType(values))
    return Record(schema=schema.name, values=values, row_number=row.number)


def map_rows(rows: Iterable[Row], schema: RecordSchema) -> tuple[Record, ...]:
    return tuple(map_row(row, schema) for row in rows)


def map_sheet(workbook: Workbook, schema: RecordSchema) -> MappedSheet:
    """Map every record a schema describes.

    A missing sheet yields an empty result with ``sheet_found=False``; it is
    logged, never raised.
    """
    with LogContext(sheet=schema.sheet_name), timed_operation(
        logger, "map_sheet"
    ) as metrics:
        if schema.layout is Layout.ROWS:
            walk = walk_sheet(
                workbook,
                schema.sheet_name,
                start_row=schema.start_row,
                key_column=schema.key_column,
                sentinel=schema.sentinel,
            )
            if not walk.sheet_found:
                return MappedSheet(schema, sheet_found=False, error=walk.error)
            records = map_rows(walk, schema)
        else:
            sheet = workbook.get(schema.sheet_name)
            if sheet is None:
                logger.warning("Sheet not found", schema=schema.name)
                return MappedSheet(
                    schema,
                    sheet_found=False,
                    error=MissingSheetError(
                        schema.sheet_name, available=workbook.sheet_names
                    ),
                )
            if schema.layout is Layout.COLUMN:
                depth = max(spec.column for spec in schema.fields)
                values = tuple(
                    sheet.cell(schema.start_row + offset, schema.value_column)
                    for offset in range(depth)
                )
                records = (map_row(Row(number=schema.start_row, values=values), schema),)
            else:
                found = find_row(
                    sheet,
                    schema.key_column,
                    schema.match or DEFAULT_SENTINEL,
                    start_row=schema.start_row,
                )
                if found is None:
                    logger.warning(
                        "Lookup row not found", schema=schema.name, match=schema.match
                    )
                    records = ()
                else:
                    records = (map_row(found, schema),)

        metrics.records_mapped = len(records)
        return MappedSheet(schema, records=records)


__all__ = [
    "DerivedField",
    "FieldSpec",
    "Layout",
    "MappedSheet",
    "Record",
    "RecordSchema",
    "completion_rate",
    "map_row",
    "map_rows",
    "map_sheet",
    "round_half_up",
    "safe_ratio",
]
