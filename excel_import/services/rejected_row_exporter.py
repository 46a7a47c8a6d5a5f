"""
excel_import/services/rejected_row_exporter.py

Writes rejected rows to a failure workbook.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell

from excel_import.config import REASON_COLUMN_HEADER, normalize_export_filename
from excel_import.domain.import_models import RejectedRow
from excel_import.logging_utils import log_event

logger = logging.getLogger(__name__)


class RejectedRowExporter:
    """
    Serializes rejected rows as ``<base_path>/<filename>``.

    The workbook holds the source header cells plus a trailing ``reason``
    column, then one row per rejection in stream order. A workbook is written
    even when nothing was rejected so the failure file URL always resolves.
    """

    def __init__(self, *, base_path: str | Path) -> None:
        self._base_path = Path(base_path)

    def resolve_path(self, filename: str | None) -> Path:
        return self._base_path / normalize_export_filename(filename)

    def export(
        self,
        *,
        filename: str | None,
        header_cells: Sequence[str],
        rejected_rows: Sequence[RejectedRow],
    ) -> Path:
        target = self.resolve_path(filename)
        target.parent.mkdir(parents=True, exist_ok=True)

        width = max([len(header_cells), *(len(row.raw_cells) for row in rejected_rows)])
        header: list[str | None] = list(header_cells) + [None] * (width - len(header_cells))

        workbook = Workbook(write_only=True)
        worksheet = workbook.create_sheet("rejected")
        worksheet.append(_text_cells(worksheet, header + [REASON_COLUMN_HEADER]))
        for row in rejected_rows:
            cells: list[str | None] = list(row.raw_cells) + [None] * (width - len(row.raw_cells))
            worksheet.append(_text_cells(worksheet, cells + [row.reason]))
        workbook.save(target)

        log_event(
            logger,
            logging.INFO,
            "rejected_rows_exported",
            path=str(target),
            rejected=len(rejected_rows),
        )
        return target


def _text_cells(worksheet: Any, values: Sequence[str | None]) -> list[Any]:
    """
    Keep text that openpyxl would read as a formula (leading ``=``) as a plain string cell.
    """

    cells: list[Any] = []
    for value in values:
        if isinstance(value, str) and value.startswith("="):
            cell = WriteOnlyCell(worksheet, value=value)
            cell.data_type = "s"
            cells.append(cell)
        else:
            cells.append(value)
    return cells
