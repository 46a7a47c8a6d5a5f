"""
excel_import/readers/xlsx_reader.py

Lazy row stream over the first worksheet of an .xlsx workbook.
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterator
from datetime import date, datetime, time
from typing import IO, Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from excel_import.errors import InvalidFileError


def stringify_cell(value: Any) -> str:
    """
    Render one openpyxl cell value as the text the row decoder consumes.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


class SheetRowStream:
    """
    Iterator of ``(row_index, cells)`` over the first worksheet.

    The workbook is opened on construction, so an unreadable file fails
    before any row is requested. ``row_index`` is 0-based and counts every
    physical row, blank ones included. Trailing blank cells are dropped.
    """

    def __init__(self, stream: IO[bytes]) -> None:
        try:
            self._workbook = load_workbook(stream, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise InvalidFileError(f"Input is not a readable .xlsx workbook: {exc}") from exc
        self._rows = self._iter_rows()

    def __iter__(self) -> SheetRowStream:
        return self

    def __next__(self) -> tuple[int, tuple[str, ...]]:
        return next(self._rows)

    def close(self) -> None:
        self._rows.close()
        self._workbook.close()

    def _iter_rows(self) -> Iterator[tuple[int, tuple[str, ...]]]:
        try:
            if not self._workbook.worksheets:
                return
            worksheet = self._workbook.worksheets[0]
            for row_index, values in enumerate(worksheet.iter_rows(values_only=True)):
                cells = [stringify_cell(value) for value in values]
                while cells and cells[-1] == "":
                    cells.pop()
                yield row_index, tuple(cells)
        finally:
            self._workbook.close()


def iter_sheet_rows(stream: IO[bytes]) -> SheetRowStream:
    """
    Open ``stream`` as a workbook and return its lazy row stream.

    Raises:
        InvalidFileError: the stream is not a readable .xlsx workbook.
    """

    return SheetRowStream(stream)
