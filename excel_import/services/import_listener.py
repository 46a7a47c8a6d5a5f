"""
excel_import/services/import_listener.py

Row-stream consumer that decodes, validates, batches, and finalizes an import.

State machine::

    INIT -> READING_HEADER -> READING_DATA -> FLUSHING <-> READING_DATA
         -> FINALIZING -> DONE

with terminal branches DONE_LIMIT_EXCEEDED, DONE_SINK_FAILED and
DONE_FAILED (unexpected errors such as an unreadable workbook or a hook
raising outside the sink).

All mutation happens on the ingesting thread. Observers only read the
counters (``ImportCounters.snapshot``), the finished event, and scalar
attributes.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Sequence
from enum import Enum
from pathlib import Path
from typing import Any

from excel_import.config import LimitPolicy
from excel_import.domain.import_models import (
    CountersSnapshot,
    ImportCounters,
    RejectedRow,
    RowRejection,
    RowRejectionCode,
)
from excel_import.errors import LimitExceededError, SinkFailureError
from excel_import.logging_utils import log_event
from excel_import.services.hooks import ImportHooks
from excel_import.services.rejected_row_exporter import RejectedRowExporter
from excel_import.validators.record_validator import RecordValidator
from excel_import.validators.row_decoder import RowDecoder

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Monotonic clock in milliseconds; only differences are meaningful."""
    return time.monotonic_ns() // 1_000_000


class ListenerState(str, Enum):
    INIT = "INIT"
    READING_HEADER = "READING_HEADER"
    READING_DATA = "READING_DATA"
    FLUSHING = "FLUSHING"
    FINALIZING = "FINALIZING"
    DONE = "DONE"
    DONE_LIMIT_EXCEEDED = "DONE_LIMIT_EXCEEDED"
    DONE_SINK_FAILED = "DONE_SINK_FAILED"
    DONE_FAILED = "DONE_FAILED"


TERMINAL_STATES = frozenset(
    {
        ListenerState.DONE,
        ListenerState.DONE_LIMIT_EXCEEDED,
        ListenerState.DONE_SINK_FAILED,
        ListenerState.DONE_FAILED,
    }
)


class ImportListener:
    """
    Consumes ``(row_index, cells)`` events for one import.

    Accepted records are buffered and handed to ``hooks.import_batch`` every
    ``batch_size`` records and once more for the final partial batch.
    Rejected rows are kept in stream order and exported when the stream ends,
    the row ceiling is hit, or the sink fails.
    """

    def __init__(
        self,
        *,
        decoder: RowDecoder,
        validator: RecordValidator,
        hooks: ImportHooks,
        exporter: RejectedRowExporter,
        rejected_export_filename: str,
        header_row_index: int,
        batch_size: int,
        max_allowed_rows: int,
        limit_policy: LimitPolicy = LimitPolicy.STOP,
        start_time_millis: int | None = None,
        log_row_rejections: bool = True,
    ) -> None:
        self._decoder = decoder
        self._validator = validator
        self._hooks = hooks
        self._exporter = exporter
        self._rejected_export_filename = rejected_export_filename
        self._header_row_index = header_row_index
        self._batch_size = batch_size
        self._max_allowed_rows = max_allowed_rows
        self._limit_policy = limit_policy
        self._log_row_rejections = log_row_rejections

        self._state = ListenerState.INIT
        self._buffer: list[Any] = []
        self._rejected: list[RejectedRow] = []
        self._counters = ImportCounters()
        self._finished = threading.Event()
        self._header_cells: tuple[str, ...] = ()
        self._header_index: dict[str, int] = {}
        self._batch_count = 0
        self._limit_exceeded = False
        self._error: BaseException | None = None
        self._export_path: Path | None = None
        self._start_time_millis = start_time_millis if start_time_millis is not None else now_millis()
        self._end_time_millis: int | None = None

    # ------------------------------------------------------------------
    # Observed state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    @property
    def accepting_rows(self) -> bool:
        return self._state in (ListenerState.INIT, ListenerState.READING_HEADER, ListenerState.READING_DATA)

    @property
    def counters(self) -> ImportCounters:
        return self._counters

    @property
    def limit_exceeded(self) -> bool:
        return self._limit_exceeded

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def rejected_rows(self) -> tuple[RejectedRow, ...]:
        return tuple(self._rejected)

    @property
    def header_cells(self) -> tuple[str, ...]:
        return self._header_cells

    @property
    def header_index(self) -> dict[str, int]:
        return dict(self._header_index)

    @property
    def batch_count(self) -> int:
        return self._batch_count

    @property
    def export_path(self) -> Path | None:
        return self._export_path

    @property
    def start_time_millis(self) -> int:
        return self._start_time_millis

    @property
    def end_time_millis(self) -> int | None:
        return self._end_time_millis

    @property
    def elapsed_millis(self) -> int | None:
        if not self.finished or self._end_time_millis is None:
            return None
        return self._end_time_millis - self._start_time_millis

    def wait(self, timeout: float | None = None) -> bool:
        return self._finished.wait(timeout)

    # ------------------------------------------------------------------
    # Stream driving
    # ------------------------------------------------------------------

    def consume(self, rows: Iterable[tuple[int, Sequence[str]]]) -> None:
        """
        Feed every sheet row through the listener until the stream ends or a
        terminal state is reached.

        Rows before the header row are skipped, the header row builds the
        column index, completely blank data rows are ignored.

        Raises:
            LimitExceededError: more data rows than ``max_allowed_rows``.
            SinkFailureError: the batch sink failed; ingestion was aborted.
        """

        self._state = ListenerState.READING_HEADER
        try:
            for row_index, cells in rows:
                if row_index < self._header_row_index:
                    continue
                if row_index == self._header_row_index:
                    self.on_header(cells)
                    continue
                if all(str(cell).strip() == "" for cell in cells):
                    continue
                self.on_row(cells, sheet_row=row_index + 1)
                if not self.accepting_rows:
                    break
            if self._state not in TERMINAL_STATES:
                self.on_stream_end()
        except (LimitExceededError, SinkFailureError):
            raise
        except Exception as exc:
            if self._state not in TERMINAL_STATES:
                self._fail(exc)
            raise

    def on_header(self, cells: Sequence[str]) -> None:
        self._header_cells = tuple(cells)
        index: dict[str, int] = {}
        for position, cell in enumerate(cells):
            name = str(cell).strip()
            if not name:
                continue
            if name in index:
                logger.warning(
                    "Duplicate sheet header ignored header=%r first_column=%s column=%s",
                    name,
                    index[name],
                    position,
                )
                continue
            index[name] = position
        self._header_index = index
        self._state = ListenerState.READING_DATA

        missing = [
            descriptor.column_header
            for descriptor in self._decoder.descriptors
            if descriptor.required and descriptor.column_header not in index
        ]
        if missing:
            logger.warning("Required columns missing from header row columns=%s", missing)

    def on_row(self, cells: Sequence[str], *, sheet_row: int) -> None:
        if not self.accepting_rows:
            return
        if self._state is ListenerState.READING_HEADER:
            self._state = ListenerState.READING_DATA

        row_index = self._counters.total_seen + 1
        if row_index > self._max_allowed_rows:
            self._on_limit_exceeded(cells, row_index=row_index, sheet_row=sheet_row)
            return

        record, rejection = self._decoder.decode(
            header_index=self._header_index,
            raw_cells=cells,
            row_index=row_index,
        )
        if rejection is None:
            rejection = self._validator.validate(record, row_index=row_index)

        if rejection is not None:
            self._reject(cells, rejection=rejection, sheet_row=sheet_row)
            return

        self._buffer.append(record)
        self._counters.record_accepted()
        if len(self._buffer) >= self._batch_size:
            self._flush()

    def on_stream_end(self) -> None:
        if self._state in TERMINAL_STATES:
            return
        self._finalize(ListenerState.DONE)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reject(self, cells: Sequence[str], *, rejection: RowRejection, sheet_row: int) -> None:
        self._rejected.append(
            RejectedRow(
                raw_cells=tuple(cells),
                reason=rejection.reason,
                row_index=rejection.row_index,
                sheet_row=sheet_row,
                rejection=rejection,
            )
        )
        self._counters.record_rejected()

        if self._log_row_rejections:
            logger.warning(
                "Excel row rejected row=%s sheet_row=%s code=%s column=%s value=%r",
                rejection.row_index,
                sheet_row,
                rejection.code.value,
                rejection.column,
                rejection.value,
            )

    def _on_limit_exceeded(self, cells: Sequence[str], *, row_index: int, sheet_row: int) -> None:
        self._limit_exceeded = True
        if self._limit_policy is LimitPolicy.REJECT:
            self._reject(
                cells,
                rejection=RowRejection(
                    code=RowRejectionCode.LIMIT_EXCEEDED,
                    row_index=row_index,
                    message=f"Row exceeds the maximum of {self._max_allowed_rows} data rows.",
                ),
                sheet_row=sheet_row,
            )

        log_event(
            logger,
            logging.WARNING,
            "import_limit_exceeded",
            max_allowed_rows=self._max_allowed_rows,
            policy=self._limit_policy.value,
            sheet_row=sheet_row,
        )
        error = LimitExceededError(self._max_allowed_rows)
        self._error = error
        self._finalize(ListenerState.DONE_LIMIT_EXCEEDED)
        raise error

    def _flush(self) -> None:
        if not self._buffer:
            return

        resume_state = self._state
        self._state = ListenerState.FLUSHING
        batch = self._buffer
        self._buffer = []
        self._batch_count += 1
        batch_number = self._batch_count

        try:
            if self._hooks.before_import is not None:
                replaced = self._hooks.before_import(batch)
                if replaced is not None:
                    batch = list(replaced)
            outcome = self._hooks.import_batch(batch)
        except Exception as exc:
            raise self._abort_on_sink_failure(
                f"Batch {batch_number} sink raised {type(exc).__name__}: {exc}",
                batch_number=batch_number,
                batch_size=len(batch),
                cause=exc,
            ) from exc

        if outcome is False:
            raise self._abort_on_sink_failure(
                f"Batch {batch_number} was rejected by the sink.",
                batch_number=batch_number,
                batch_size=len(batch),
            )

        logger.debug("Excel batch imported batch=%s size=%s", batch_number, len(batch))
        self._state = resume_state

    def _abort_on_sink_failure(
        self,
        message: str,
        *,
        batch_number: int,
        batch_size: int,
        cause: BaseException | None = None,
    ) -> SinkFailureError:
        error = SinkFailureError(message, batch_number=batch_number, batch_size=batch_size)
        self._error = error
        logger.error(
            "Excel import aborted by sink failure batch=%s size=%s error=%s",
            batch_number,
            batch_size,
            cause if cause is not None else message,
        )
        self._export_quietly()
        self._mark_finished(ListenerState.DONE_SINK_FAILED)
        return error

    def _finalize(self, final_state: ListenerState) -> None:
        self._state = ListenerState.FINALIZING
        self._flush()
        if self._hooks.after_import is not None:
            self._hooks.after_import(self._counters.snapshot())
        self._export_path = self._exporter.export(
            filename=self._rejected_export_filename,
            header_cells=self._header_cells,
            rejected_rows=self._rejected,
        )
        self._mark_finished(final_state)

        counts: CountersSnapshot = self._counters.snapshot()
        log_event(
            logger,
            logging.INFO,
            "import_finished",
            state=final_state.value,
            total=counts.total_seen,
            accepted=counts.accepted,
            rejected=counts.rejected,
            batches=self._batch_count,
            elapsed_ms=self.elapsed_millis,
        )

    def _fail(self, exc: BaseException) -> None:
        self._error = exc
        logger.error("Excel import failed state=%s error=%s: %s", self._state.value, type(exc).__name__, exc)
        self._export_quietly()
        self._mark_finished(ListenerState.DONE_FAILED)

    def _export_quietly(self) -> None:
        try:
            self._export_path = self._exporter.export(
                filename=self._rejected_export_filename,
                header_cells=self._header_cells,
                rejected_rows=self._rejected,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Failed to export rejected rows after import failure")

    def _mark_finished(self, final_state: ListenerState) -> None:
        self._end_time_millis = now_millis()
        self._state = final_state
        self._finished.set()
