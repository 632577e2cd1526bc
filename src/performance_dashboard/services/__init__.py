"""Workbook ingestion services: normalize cells, walk rows, map and aggregate."""

from performance_dashboard.services.aggregator import aggregate
from performance_dashboard.services.mapper import map_row, map_sheet
from performance_dashboard.services.normalizer import CellKind, normalize
from performance_dashboard.services.row_walker import walk, walk_sheet

__all__ = [
    "CellKind",
    "aggregate",
    "map_row",
    "map_sheet",
    "normalize",
    "walk",
    "walk_sheet",
]
