"""
excel_import/services/import_controller.py

Entry point for importing one .xlsx workbook into a user-supplied sink.

Typical use::

    controller = ExcelImportController(
        file=upload_file,
        record_class=Customer,
        hooks=ImportHooks(import_batch=repository.save_all),
        source_count=expected_rows,
    )
    controller.start_import_async()
    ...
    snapshot = controller.get_import_snapshot()

Construction resolves the record declaration, so declaration errors such as
duplicate column headers surface before any file I/O. ``start_import`` blocks
until the listener reaches a terminal state; ``start_import_async`` detaches
the same work onto a background executor and reports failures only through
logs and snapshots.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import closing, contextmanager
from pathlib import Path

from fastapi import UploadFile

from excel_import.config import (
    EXCEL_FILE_SUFFIX,
    ImportSettings,
    LimitPolicy,
    get_import_settings,
    normalize_export_filename,
)
from excel_import.domain.fields import FieldDescriptor, build_field_descriptors
from excel_import.domain.import_models import CountersSnapshot
from excel_import.errors import ImportAlreadyStartedError, InvalidFileError
from excel_import.logging_utils import log_event
from excel_import.readers.xlsx_reader import iter_sheet_rows
from excel_import.schemas.import_snapshot import (
    ImportResultResponse,
    ImportSnapshot,
    ImportStatusCode,
    format_progress_percent,
)
from excel_import.services.executors import ImportTaskExecutor, ThreadTaskExecutor
from excel_import.services.hooks import ImportHooks
from excel_import.services.import_listener import ImportListener, ListenerState, now_millis
from excel_import.services.rejected_row_exporter import RejectedRowExporter
from excel_import.validators.record_validator import RecordValidator
from excel_import.validators.row_decoder import RowDecoder

logger = logging.getLogger(__name__)

_FINISHED_MESSAGES: dict[ListenerState, str] = {
    ListenerState.DONE: "Import finished.",
    ListenerState.DONE_LIMIT_EXCEEDED: "Import finished: maximum row count exceeded.",
    ListenerState.DONE_SINK_FAILED: "Import aborted: batch sink failed.",
    ListenerState.DONE_FAILED: "Import failed.",
}


class ExcelImportController:
    """
    Wires field descriptors, decoder, validator, listener, and exporter for
    one workbook, and exposes progress to concurrent observers.
    """

    def __init__(
        self,
        *,
        file: UploadFile | None,
        record_class: type,
        hooks: ImportHooks,
        header_row_index: int | None = None,
        max_allowed_rows: int | None = None,
        batch_size: int | None = None,
        rejected_export_filename: str | None = None,
        source_count: int = 0,
        limit_policy: LimitPolicy | None = None,
        settings: ImportSettings | None = None,
        exporter: RejectedRowExporter | None = None,
    ) -> None:
        self._settings = settings or get_import_settings()

        self._header_row_index = (
            self._settings.header_row_index if header_row_index is None else header_row_index
        )
        self._max_allowed_rows = (
            self._settings.max_allowed_rows if max_allowed_rows is None else max_allowed_rows
        )
        self._batch_size = self._settings.batch_size if batch_size is None else batch_size
        self._limit_policy = limit_policy or self._settings.limit_policy

        if self._header_row_index < 0:
            raise ValueError("header_row_index must be >= 0.")
        if self._max_allowed_rows < 1:
            raise ValueError("max_allowed_rows must be >= 1.")
        if self._batch_size < 1:
            raise ValueError("batch_size must be > 0.")
        if source_count < 0:
            raise ValueError("source_count must be >= 0.")

        self._file = file
        self._record_class = record_class
        self._hooks = hooks
        self._source_count = source_count
        self._descriptors = build_field_descriptors(record_class)
        self._rejected_export_filename = normalize_export_filename(
            rejected_export_filename,
            default=self._settings.rejected_export_filename,
        )
        self._exporter = exporter or RejectedRowExporter(
            base_path=self._settings.rejected_export_base_path,
        )

        self._listener: ImportListener | None = None
        self._error: BaseException | None = None
        self._started = False
        self._start_lock = threading.Lock()
        self._done = threading.Event()

    # ------------------------------------------------------------------
    # Configuration views
    # ------------------------------------------------------------------

    @property
    def descriptors(self) -> tuple[FieldDescriptor, ...]:
        return self._descriptors

    @property
    def listener(self) -> ImportListener | None:
        return self._listener

    @property
    def rejected_export_filename(self) -> str:
        return self._rejected_export_filename

    @property
    def source_count(self) -> int:
        return self._source_count

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start_import(self) -> ImportSnapshot:
        """
        Run the import on the calling thread and return the final snapshot.

        Raises:
            InvalidFileError: no file, no filename, wrong suffix, or unreadable workbook.
            LimitExceededError: the sheet held more data rows than allowed.
            SinkFailureError: ``import_batch`` failed and ingestion was aborted.
            ImportAlreadyStartedError: the controller was already started.
        """

        self._mark_started()
        try:
            return self._run_import()
        except Exception as exc:
            self._error = exc
            raise
        finally:
            self._done.set()

    def start_import_async(self, executor: ImportTaskExecutor | None = None) -> None:
        """
        Detach the import onto ``executor`` (a daemon thread by default) and return.

        Failures are logged and reflected in later snapshots, never raised here.
        """

        self._mark_started()
        task_executor = executor or ThreadTaskExecutor()
        try:
            task_executor.submit(self._run_in_background)
        except Exception as exc:
            self._error = exc
            self._done.set()
            logger.exception("Failed to schedule Excel import file=%s", self._filename())
            raise

    def get_import_snapshot(self) -> ImportSnapshot:
        listener = self._listener
        listener_finished = listener is not None and listener.finished

        terminal_state: ListenerState | None = None
        if listener_finished:
            terminal_state = listener.state
        elif listener is None and self._failed_before_listener():
            terminal_state = ListenerState.DONE_FAILED

        error = self._error or (listener.error if listener is not None else None)
        elapsed_millis = listener.elapsed_millis if listener_finished else None
        # Counters are read after the finished flag so a FINISHED snapshot carries final counts.
        counts = listener.counters.snapshot() if listener is not None else CountersSnapshot()

        if terminal_state is None:
            status_code = ImportStatusCode.IN_PROGRESS
            message = "Import in progress." if self._started else "Import not started."
        else:
            status_code = ImportStatusCode.FINISHED
            message = _FINISHED_MESSAGES[terminal_state]

        return ImportSnapshot(
            progress_percent=format_progress_percent(counts.total_seen, self._source_count),
            elapsed_millis=elapsed_millis,
            source_count=self._source_count,
            success_count=counts.accepted,
            fail_count=counts.rejected,
            total_count=counts.total_seen,
            fail_file_url=str(self.get_rejected_export_path()),
            status_code=status_code,
            message=message,
            terminal_state=terminal_state.value if terminal_state is not None else None,
            limit_exceeded=listener.limit_exceeded if listener is not None else False,
            sink_failed=terminal_state is ListenerState.DONE_SINK_FAILED,
            error=f"{type(error).__name__}: {error}" if error is not None else None,
        )

    def get_import_result(self) -> ImportResultResponse:
        return ImportResultResponse.from_snapshot(self.get_import_snapshot())

    def get_import_progress(self) -> str:
        listener = self._listener
        if listener is None:
            return "0%"
        return format_progress_percent(listener.counters.total_seen, self._source_count)

    def get_rejected_export_path(self) -> Path:
        return self._exporter.resolve_path(self._rejected_export_filename)

    def is_finished(self) -> bool:
        listener = self._listener
        if listener is not None and listener.finished:
            return True
        return listener is None and self._failed_before_listener()

    def get_elapsed_millis(self) -> int | None:
        listener = self._listener
        return listener.elapsed_millis if listener is not None else None

    def wait_until_finished(self, timeout: float | None = None) -> bool:
        """
        Block until a started import is over; returns False on timeout.
        """

        return self._done.wait(timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _failed_before_listener(self) -> bool:
        # Entry failures (file checks, unreadable workbook) end the import before a listener exists.
        return self._done.is_set() and self._error is not None and self._listener is None

    def _mark_started(self) -> None:
        with self._start_lock:
            if self._started:
                raise ImportAlreadyStartedError("Import has already been started for this controller.")
            self._started = True

    def _run_in_background(self) -> None:
        try:
            self._run_import()
        except Exception as exc:  # noqa: BLE001
            self._error = exc
            counts = self._listener.counters.snapshot() if self._listener is not None else CountersSnapshot()
            logger.exception(
                "Background Excel import failed file=%s record=%s total=%s accepted=%s rejected=%s",
                self._filename(),
                self._record_class.__name__,
                counts.total_seen,
                counts.accepted,
                counts.rejected,
            )
        finally:
            self._done.set()

    def _run_import(self) -> ImportSnapshot:
        upload = self._check_excel_file()

        stream = upload.file
        stream.seek(0)
        with closing(iter_sheet_rows(stream)) as rows:
            listener = self._build_listener()
            listener.consume(rows)
        return self.get_import_snapshot()

    def _build_listener(self) -> ImportListener:
        listener = ImportListener(
            decoder=RowDecoder(record_class=self._record_class, descriptors=self._descriptors),
            validator=RecordValidator(descriptors=self._descriptors, check_record=self._hooks.check_record),
            hooks=self._hooks,
            exporter=self._exporter,
            rejected_export_filename=self._rejected_export_filename,
            header_row_index=self._header_row_index,
            batch_size=self._batch_size,
            max_allowed_rows=self._max_allowed_rows,
            limit_policy=self._limit_policy,
            start_time_millis=now_millis(),
            log_row_rejections=self._settings.log_row_rejections,
        )
        self._listener = listener

        log_event(
            logger,
            logging.INFO,
            "import_started",
            file=self._filename(),
            record=self._record_class.__name__,
            header_row_index=self._header_row_index,
            batch_size=self._batch_size,
            max_allowed_rows=self._max_allowed_rows,
            limit_policy=self._limit_policy.value,
        )
        return listener

    def _check_excel_file(self) -> UploadFile:
        upload = self._file
        filename = self._filename()
        if (
            upload is None
            or getattr(upload, "file", None) is None
            or not filename
            or not filename.strip().lower().endswith(EXCEL_FILE_SUFFIX)
        ):
            raise InvalidFileError(f"Input file must be an {EXCEL_FILE_SUFFIX} workbook, got {filename!r}.")
        return upload

    def _filename(self) -> str | None:
        if self._file is None:
            return None
        return getattr(self._file, "filename", None)


@contextmanager
def open_upload(path: str | Path) -> Iterator[UploadFile]:
    """
    Wrap a workbook on disk as an ``UploadFile`` for non-HTTP callers.
    """

    file_path = Path(path)
    with open(file_path, "rb") as file_handle:
        yield UploadFile(file=file_handle, filename=file_path.name)
