"""
excel_import/domain/fields.py

Declaration of importable record slots and the field descriptor registry.

Record types are plain dataclasses. A slot becomes importable when it is
declared with ``import_field``::

    @dataclass
    class Customer:
        name: str | None = import_field("name", required=True)
        age: int | None = import_field("age", default_value="0")
        email: str | None = import_field("email", validator=lambda v: bool(v.strip()))
        notes: str = ""  # not imported

The registry resolves each importable slot once, at controller construction,
into an immutable ``FieldDescriptor``. Row decoding never touches dataclass
or typing introspection.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from excel_import.errors import DuplicateColumnHeaderError, RecordDeclarationError
from excel_import.validators.coercion import CoercionError, coerce_value

IMPORT_FIELD_METADATA_KEY = "excel_import"

FieldValidator = Callable[[str], bool]

SUPPORTED_TARGET_TYPES: tuple[type, ...] = (str, int, float, bool, Decimal, date, datetime, time)


@dataclass(frozen=True)
class ImportFieldSpec:
    """
    Import metadata attached to one dataclass slot.
    """

    column_header: str
    default_value: str | None = None
    required: bool = False
    validator: FieldValidator | None = None


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Resolved, immutable import rule for one record slot.
    """

    column_header: str
    slot_name: str
    target_type: type
    default_value: str | None = None
    required: bool = False
    validator: FieldValidator | None = None


def import_field(
    column_header: str,
    *,
    default_value: str | None = None,
    required: bool = False,
    validator: FieldValidator | None = None,
    default: Any = None,
) -> Any:
    """
    Declare a dataclass slot populated from the column named ``column_header``.

    ``default_value`` is the raw cell text used when the cell is blank or the
    column is absent; it goes through the same coercion as sheet values.
    ``default`` is the plain dataclass default the slot holds when it is left
    unset.
    """

    spec = ImportFieldSpec(
        column_header=column_header,
        default_value=default_value,
        required=required,
        validator=validator,
    )
    return dataclasses.field(default=default, metadata={IMPORT_FIELD_METADATA_KEY: spec})


def build_field_descriptors(record_class: type) -> tuple[FieldDescriptor, ...]:
    """
    Compile ``record_class`` into its ordered field descriptors.

    Raises:
        RecordDeclarationError: the class is not a dataclass, an importable slot
            has an unsupported type, a blank header, or a default value that
            cannot be read as its type, or a plain slot has no default.
        DuplicateColumnHeaderError: two importable slots share a column header.
    """

    if not (isinstance(record_class, type) and dataclasses.is_dataclass(record_class)):
        raise RecordDeclarationError(f"Record class must be a dataclass type, got {record_class!r}.")

    try:
        hints = typing.get_type_hints(record_class)
    except (NameError, TypeError) as exc:
        raise RecordDeclarationError(
            f"Could not resolve type annotations of {record_class.__name__}: {exc}"
        ) from exc

    descriptors: list[FieldDescriptor] = []
    slots_by_header: dict[str, str] = {}

    for slot in dataclasses.fields(record_class):
        spec = slot.metadata.get(IMPORT_FIELD_METADATA_KEY)
        if spec is None:
            if slot.init and _has_no_default(slot):
                raise RecordDeclarationError(
                    f"{record_class.__name__}.{slot.name} is not imported and has no default value."
                )
            continue

        if not slot.init:
            raise RecordDeclarationError(
                f"{record_class.__name__}.{slot.name} is imported but excluded from __init__."
            )

        header = spec.column_header.strip() if isinstance(spec.column_header, str) else ""
        if not header:
            raise RecordDeclarationError(f"{record_class.__name__}.{slot.name} has a blank column header.")

        if header in slots_by_header:
            raise DuplicateColumnHeaderError(header, (slots_by_header[header], slot.name))
        slots_by_header[header] = slot.name

        target_type = _resolve_target_type(record_class, slot.name, hints.get(slot.name, str))
        if spec.default_value is not None:
            try:
                coerce_value(spec.default_value, target_type)
            except CoercionError as exc:
                raise RecordDeclarationError(
                    f"{record_class.__name__}.{slot.name} default value {spec.default_value!r} "
                    f"is not a valid {target_type.__name__}: {exc}"
                ) from exc

        descriptors.append(
            FieldDescriptor(
                column_header=header,
                slot_name=slot.name,
                target_type=target_type,
                default_value=spec.default_value,
                required=spec.required,
                validator=spec.validator,
            )
        )

    return tuple(descriptors)


def _has_no_default(slot: dataclasses.Field) -> bool:
    return slot.default is dataclasses.MISSING and slot.default_factory is dataclasses.MISSING


def _resolve_target_type(record_class: type, slot_name: str, annotation: Any) -> type:
    target = annotation
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            target = members[0]

    if target is Any:
        return str
    if target not in SUPPORTED_TARGET_TYPES:
        supported = ", ".join(t.__name__ for t in SUPPORTED_TARGET_TYPES)
        raise RecordDeclarationError(
            f"{record_class.__name__}.{slot_name} has unsupported type {annotation!r}. "
            f"Supported types: {supported}."
        )
    return target
