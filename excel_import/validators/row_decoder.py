"""
excel_import/validators/row_decoder.py

Decode one raw sheet row into a record instance.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from excel_import.domain.import_models import RowRejection, RowRejectionCode
from excel_import.validators.coercion import CoercionError, coerce_value

if TYPE_CHECKING:
    from excel_import.domain.fields import FieldDescriptor


class RowDecoder:
    """
    Applies field descriptors to raw cell strings.

    The decoder is pure: it performs no I/O, keeps no state between rows, and
    reports failures as ``RowRejection`` values instead of raising.
    """

    def __init__(self, *, record_class: type, descriptors: Sequence[FieldDescriptor]) -> None:
        self._record_class = record_class
        self._descriptors = tuple(descriptors)

    @property
    def descriptors(self) -> tuple[FieldDescriptor, ...]:
        return self._descriptors

    def decode(
        self,
        *,
        header_index: Mapping[str, int],
        raw_cells: Sequence[str],
        row_index: int,
    ) -> tuple[Any | None, RowRejection | None]:
        """
        Decode ``raw_cells`` into a record.

        Returns ``(record, None)`` on success or ``(None, rejection)`` on the
        first missing column, missing value, or type mismatch.
        """

        values: dict[str, Any] = {}

        for descriptor in self._descriptors:
            column = header_index.get(descriptor.column_header)
            if column is None:
                if descriptor.required:
                    return None, RowRejection(
                        code=RowRejectionCode.MISSING_COLUMN,
                        row_index=row_index,
                        column=descriptor.column_header,
                        message=f"Required column {descriptor.column_header!r} is not in the header row.",
                    )
                if descriptor.default_value is None:
                    continue
                raw_value = descriptor.default_value
            else:
                raw_value = raw_cells[column] if column < len(raw_cells) else ""
                if self._is_blank(raw_value):
                    if descriptor.default_value is not None:
                        raw_value = descriptor.default_value
                    elif descriptor.required:
                        return None, RowRejection(
                            code=RowRejectionCode.MISSING_VALUE,
                            row_index=row_index,
                            column=descriptor.column_header,
                            message=f"Required value for {descriptor.column_header!r} is missing (row {row_index}).",
                        )
                    else:
                        continue

            try:
                values[descriptor.slot_name] = coerce_value(raw_value, descriptor.target_type)
            except CoercionError as exc:
                type_name = descriptor.target_type.__name__
                return None, RowRejection(
                    code=RowRejectionCode.TYPE_MISMATCH,
                    row_index=row_index,
                    column=descriptor.column_header,
                    value=raw_value,
                    target_type=type_name,
                    message=f"Value for {descriptor.column_header!r} cannot be read as {type_name}: {exc}.",
                )

        try:
            record = self._record_class(**values)
        except ValueError as exc:
            return None, RowRejection(
                code=RowRejectionCode.RECORD_REJECTED,
                row_index=row_index,
                message=f"Record could not be constructed: {exc}",
            )
        return record, None

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
