"""
excel_import/services/hooks.py

User hooks invoked by the import listener.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from excel_import.domain.import_models import CountersSnapshot

# Returns False (or raises) to signal failure; any other return value is success.
BatchSink = Callable[[list[Any]], Any]
BeforeImportHook = Callable[[list[Any]], "Sequence[Any] | None"]
AfterImportHook = Callable[[CountersSnapshot], None]
RecordCheckHook = Callable[[Any], bool]


@dataclass(frozen=True)
class ImportHooks:
    """
    Callbacks wired into one import.

    ``import_batch`` is the sink and must be supplied. ``before_import`` may
    mutate the batch in place or return a replacement sequence.
    """

    import_batch: BatchSink
    before_import: BeforeImportHook | None = None
    after_import: AfterImportHook | None = None
    check_record: RecordCheckHook | None = None

    def __post_init__(self) -> None:
        if not callable(self.import_batch):
            raise TypeError("ImportHooks.import_batch must be callable.")
