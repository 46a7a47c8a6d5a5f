"""
excel_import/validators/record_validator.py

Two-stage validation of decoded records.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from excel_import.domain.import_models import RowRejection, RowRejectionCode
from excel_import.validators.coercion import format_value

if TYPE_CHECKING:
    from excel_import.domain.fields import FieldDescriptor

RecordCheck = Callable[[Any], bool]


class RecordValidator:
    """
    Runs per-field validators, then the record-level check.

    Field validators short-circuit: the first failing slot rejects the row
    and later validators are not called. The record check only runs when
    every field validator passed.
    """

    def __init__(
        self,
        *,
        descriptors: Sequence[FieldDescriptor],
        check_record: RecordCheck | None = None,
    ) -> None:
        self._validated = tuple(d for d in descriptors if d.validator is not None)
        self._check_record = check_record

    def validate(self, record: Any, *, row_index: int) -> RowRejection | None:
        """
        Return ``None`` when ``record`` passes both stages, else the rejection.
        """

        for descriptor in self._validated:
            value = format_value(getattr(record, descriptor.slot_name, None))
            if not descriptor.validator(value):
                return RowRejection(
                    code=RowRejectionCode.FIELD_REJECTED,
                    row_index=row_index,
                    column=descriptor.column_header,
                    value=value,
                    message=f"Value for {descriptor.column_header!r} failed validation (row {row_index}).",
                )

        if self._check_record is not None and not self._check_record(record):
            return RowRejection(
                code=RowRejectionCode.RECORD_REJECTED,
                row_index=row_index,
                message=f"Record failed validation (row {row_index}).",
            )

        return None
