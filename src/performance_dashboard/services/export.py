"""Tabular export of mapped records."""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from performance_dashboard.services.mapper import Record, RecordSchema


def records_to_dataframe(
    records: Sequence[Record], schema: RecordSchema | None = None
) -> pd.DataFrame:
    """Build a DataFrame with one row per record.

    Span fields (monthly series) are expanded into ``name_1``, ``name_2``...
    columns. With ``schema`` the column order follows the schema even when
    there are no records.
    """
    rows = []
    for record in records:
        row = {}
        for name, value in record.values.items():
            if isinstance(value, tuple):
                row.update({f"{name}_{i + 1}": v for i, v in enumerate(value)})
            else:
                row[name] = value
        rows.append(row)

    frame = pd.DataFrame(rows)
    if schema is not None and frame.empty:
        return pd.DataFrame(columns=schema.field_names)
    return frame


def records_to_csv(records: Sequence[Record], schema: RecordSchema | None = None) -> str:
    return records_to_dataframe(records, schema).to_csv(index=False)
