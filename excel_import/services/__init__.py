"""
excel_import/services package marker.
"""

from excel_import.services.executors import (
    FastAPIBackgroundTaskExecutor,
    ImportTaskExecutor,
    ThreadTaskExecutor,
)
from excel_import.services.hooks import ImportHooks
from excel_import.services.import_controller import ExcelImportController, open_upload
from excel_import.services.import_listener import ImportListener, ListenerState
from excel_import.services.rejected_row_exporter import RejectedRowExporter

__all__ = [
    "ExcelImportController",
    "FastAPIBackgroundTaskExecutor",
    "ImportHooks",
    "ImportListener",
    "ImportTaskExecutor",
    "ListenerState",
    "RejectedRowExporter",
    "ThreadTaskExecutor",
    "open_upload",
]
