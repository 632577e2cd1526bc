"""Decode workbook bytes into in-memory sheets using openpyxl."""

from __future__ import annotations

import io
import zipfile
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet._read_only import ReadOnlyWorksheet

from performance_dashboard.utils.exceptions import WorkbookReadError
from performance_dashboard.utils.logging import get_logger, timed_operation
from performance_dashboard.workbook import Sheet, Workbook

logger = get_logger(__name__)

# Read-only mode parses sheet XML lazily, so these can surface while iterating.
READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    ParseError,
    KeyError,
    ValueError,
    OSError,
)


class WorkbookReader:
    """Read spreadsheet workbooks into :class:`Workbook` objects.

    Only computed values are kept (``data_only=True``): the dashboard reads
    what the spreadsheet displays, not the formulas behind it.
    """

    def read_bytes(self, data: bytes) -> Workbook:
        """Parse a workbook from raw bytes.

        Raises:
            WorkbookReadError: If the bytes are not a readable workbook.
        """
        with timed_operation(logger, "read_workbook") as metrics:
            metrics.bytes_read = len(data)
            try:
                wb = load_workbook(
                    filename=io.BytesIO(data), data_only=True, read_only=True
                )
            except READ_ERRORS as e:
                raise WorkbookReadError(
                    f"Cannot open workbook: {e}",
                    details={"size_bytes": len(data)},
                ) from e

            sheet_name: str | None = None
            try:
                sheets: dict[str, Sheet] = {}
                for ws in wb.worksheets:
                    sheet_name = ws.title
                    sheets[ws.title] = self._read_sheet(ws)
            except READ_ERRORS as e:
                raise WorkbookReadError(
                    f"Cannot read sheet '{sheet_name}': {e}",
                    details={"size_bytes": len(data), "sheet_name": sheet_name},
                ) from e
            finally:
                wb.close()
            metrics.sheets_read = len(sheets)
            metrics.rows_read = sum(s.max_row for s in sheets.values())

        return Workbook(
            sheets=sheets,
            metadata={"sheet_names": list(sheets), "size_bytes": len(data)},
        )

    @staticmethod
    def _read_sheet(ws: ReadOnlyWorksheet) -> Sheet:
        rows = [tuple(values) for values in ws.iter_rows(values_only=True)]
        # Read-only mode can report trailing blank rows; drop them.
        while rows and all(v is None for v in rows[-1]):
            rows.pop()
        return Sheet(name=ws.title, rows=rows)
