"""
Exceptions raised by the Excel import engine.

Per-row problems are never raised; they are recorded as ``RowRejection``
values. Everything here is either a construction/entry error or a terminal
import outcome.
"""

from __future__ import annotations


class ExcelImportError(Exception):
    """Base exception for Excel import failures."""


class InvalidFileError(ExcelImportError, ValueError):
    """Raised when the input file is missing, unnamed, or not an .xlsx workbook."""


class RecordDeclarationError(ExcelImportError, TypeError):
    """Raised when a record class cannot be used for imports."""


class DuplicateColumnHeaderError(RecordDeclarationError):
    """Raised when two record slots declare the same column header."""

    def __init__(self, column_header: str, slot_names: tuple[str, str]) -> None:
        super().__init__(
            f"Column header {column_header!r} is declared by both "
            f"{slot_names[0]!r} and {slot_names[1]!r}."
        )
        self.column_header = column_header
        self.slot_names = slot_names


class ImportAlreadyStartedError(ExcelImportError, RuntimeError):
    """Raised when an import controller is started a second time."""


class LimitExceededError(ExcelImportError):
    """Raised after finalization when the sheet holds more rows than allowed."""

    def __init__(self, max_allowed_rows: int) -> None:
        super().__init__(f"Import exceeded the maximum of {max_allowed_rows} data rows.")
        self.max_allowed_rows = max_allowed_rows


class SinkFailureError(ExcelImportError):
    """Raised when the batch sink signals failure; ingestion is aborted."""

    def __init__(self, message: str, *, batch_number: int, batch_size: int) -> None:
        super().__init__(message)
        self.batch_number = batch_number
        self.batch_size = batch_size
