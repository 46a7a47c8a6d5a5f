"""
tests/conftest.py

Shared fixtures: workbook builders, upload handles, and a recording sink.
"""

from __future__ import annotations

import io
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from fastapi import UploadFile
from openpyxl import Workbook, load_workbook

from excel_import.config import ImportSettings
from excel_import.domain.import_models import CountersSnapshot
from excel_import.services.hooks import ImportHooks


class RecordingSink:
    """
    Collects hook calls in order so tests can assert batching and ordering.
    """

    def __init__(self, *, fail_on_call: int | None = None, raise_on_call: int | None = None) -> None:
        self.batches: list[list[Any]] = []
        self.events: list[tuple[str, Any]] = []
        self.after_import_calls: list[CountersSnapshot] = []
        self._fail_on_call = fail_on_call
        self._raise_on_call = raise_on_call

    def before_import(self, batch: list[Any]) -> None:
        self.events.append(("before_import", len(batch)))

    def import_batch(self, batch: list[Any]) -> bool:
        call_number = len(self.batches) + 1
        self.batches.append(list(batch))
        self.events.append(("import_batch", len(batch)))
        if self._raise_on_call == call_number:
            raise RuntimeError("database unavailable")
        return self._fail_on_call != call_number

    def after_import(self, counters: CountersSnapshot) -> None:
        self.after_import_calls.append(counters)
        self.events.append(("after_import", counters.total_seen))

    def hooks(self, **overrides: Any) -> ImportHooks:
        values: dict[str, Any] = {
            "import_batch": self.import_batch,
            "before_import": self.before_import,
            "after_import": self.after_import,
        }
        values.update(overrides)
        return ImportHooks(**values)

    @property
    def batch_sizes(self) -> list[int]:
        return [len(batch) for batch in self.batches]

    @property
    def records(self) -> list[Any]:
        return [record for batch in self.batches for record in batch]


@dataclass
class ExportedWorkbook:
    header: tuple[Any, ...]
    rows: list[tuple[Any, ...]]


@pytest.fixture()
def settings(tmp_path: Path) -> ImportSettings:
    """Settings that write failure workbooks under the test's temp dir."""
    return ImportSettings(rejected_export_base_path=str(tmp_path / "failures"))


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def make_sink() -> Callable[..., RecordingSink]:
    return RecordingSink


@pytest.fixture()
def workbook_bytes() -> Callable[[Sequence[Sequence[Any]]], bytes]:
    """Build an in-memory .xlsx workbook from row values."""

    def _build(rows: Sequence[Sequence[Any]]) -> bytes:
        workbook = Workbook()
        worksheet = workbook.active
        for row in rows:
            worksheet.append(list(row))
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build


@pytest.fixture()
def make_upload(workbook_bytes: Callable[[Sequence[Sequence[Any]]], bytes]) -> Callable[..., UploadFile]:
    """Wrap workbook rows as an ``UploadFile`` named ``filename``."""

    def _make(rows: Sequence[Sequence[Any]], filename: str = "customers.xlsx") -> UploadFile:
        return UploadFile(file=io.BytesIO(workbook_bytes(rows)), filename=filename)

    return _make


@pytest.fixture()
def read_export() -> Callable[[Path], ExportedWorkbook]:
    """Load a rejected-row workbook back into header + data rows."""

    def _read(path: Path) -> ExportedWorkbook:
        workbook = load_workbook(path)
        try:
            rows = list(workbook.worksheets[0].iter_rows(values_only=True))
        finally:
            workbook.close()
        return ExportedWorkbook(header=rows[0], rows=rows[1:])

    return _read
