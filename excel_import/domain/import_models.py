"""
excel_import/domain/import_models.py

Domain models shared by the import listener, exporter, and controller.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum


class RowRejectionCode(str, Enum):
    """
    Why a data row was routed to the rejected rows.
    """

    MISSING_COLUMN = "MissingColumn"
    MISSING_VALUE = "MissingValue"
    TYPE_MISMATCH = "TypeMismatch"
    FIELD_REJECTED = "FieldRejected"
    RECORD_REJECTED = "RecordRejected"
    LIMIT_EXCEEDED = "LimitExceeded"


@dataclass(frozen=True)
class RowRejection:
    """
    One structured row-level failure.
    """

    code: RowRejectionCode
    row_index: int
    message: str
    column: str | None = None
    value: str | None = None
    target_type: str | None = None

    @property
    def reason(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(frozen=True)
class RejectedRow:
    """
    A raw data row that failed decoding or validation.

    ``row_index`` is the 1-based position among data rows, ``sheet_row`` the
    1-based row number shown by spreadsheet applications.
    """

    raw_cells: tuple[str, ...]
    reason: str
    row_index: int
    sheet_row: int
    rejection: RowRejection


@dataclass(frozen=True)
class CountersSnapshot:
    """
    Consistent point-in-time read of the import counters.
    """

    total_seen: int = 0
    accepted: int = 0
    rejected: int = 0


class ImportCounters:
    """
    Row counters written by the ingesting task and read by observers.

    ``total_seen`` only moves together with ``accepted`` or ``rejected`` so
    ``accepted + rejected == total_seen`` holds for every snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_seen = 0
        self._accepted = 0
        self._rejected = 0

    @property
    def total_seen(self) -> int:
        with self._lock:
            return self._total_seen

    @property
    def accepted(self) -> int:
        with self._lock:
            return self._accepted

    @property
    def rejected(self) -> int:
        with self._lock:
            return self._rejected

    def record_accepted(self) -> None:
        with self._lock:
            self._total_seen += 1
            self._accepted += 1

    def record_rejected(self) -> None:
        with self._lock:
            self._total_seen += 1
            self._rejected += 1

    def snapshot(self) -> CountersSnapshot:
        with self._lock:
            return CountersSnapshot(
                total_seen=self._total_seen,
                accepted=self._accepted,
                rejected=self._rejected,
            )
