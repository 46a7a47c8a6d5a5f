"""
tests/test_fields.py

Unit tests for record declarations and the field descriptor registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from excel_import.domain.fields import FieldDescriptor, build_field_descriptors, import_field
from excel_import.errors import DuplicateColumnHeaderError, RecordDeclarationError


def _not_blank(value: str) -> bool:
    return value.strip() != ""


@dataclass
class Customer:
    name: str | None = import_field("name", required=True)
    age: int | None = import_field("age", default_value="0")
    email: Optional[str] = import_field("email", validator=_not_blank)
    notes: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class Invoice:
    number: int | None = import_field(" Invoice No ", required=True)
    amount: Decimal | None = import_field("Amount")
    issued_on: date | None = import_field("Issued On")
    paid: bool = import_field("Paid", default_value="no", default=False)


class TestBuildFieldDescriptors:
    def test_descriptors_follow_declaration_order(self) -> None:
        descriptors = build_field_descriptors(Customer)

        assert [d.slot_name for d in descriptors] == ["name", "age", "email"]
        assert all(isinstance(d, FieldDescriptor) for d in descriptors)

    def test_unannotated_slots_are_ignored(self) -> None:
        slot_names = {d.slot_name for d in build_field_descriptors(Customer)}

        assert "notes" not in slot_names
        assert "tags" not in slot_names

    def test_metadata_is_carried_over(self) -> None:
        name, age, email = build_field_descriptors(Customer)

        assert name.required is True
        assert name.default_value is None
        assert age.default_value == "0"
        assert age.required is False
        assert email.validator is _not_blank

    def test_optional_annotations_resolve_to_inner_type(self) -> None:
        descriptors = {d.slot_name: d for d in build_field_descriptors(Invoice)}

        assert descriptors["number"].target_type is int
        assert descriptors["amount"].target_type is Decimal
        assert descriptors["issued_on"].target_type is date
        assert descriptors["paid"].target_type is bool

    def test_column_headers_are_stripped(self) -> None:
        number = build_field_descriptors(Invoice)[0]

        assert number.column_header == "Invoice No"

    def test_descriptors_are_immutable(self) -> None:
        descriptor = build_field_descriptors(Customer)[0]

        with pytest.raises((AttributeError, TypeError)):
            descriptor.required = False  # type: ignore[misc]

    def test_unset_slot_keeps_plain_default(self) -> None:
        invoice = Invoice()

        assert invoice.paid is False
        assert invoice.number is None


class TestDeclarationErrors:
    def test_duplicate_column_header_raises(self) -> None:
        @dataclass
        class Duplicated:
            id: int | None = import_field("id")
            legacy_id: int | None = import_field("id")

        with pytest.raises(DuplicateColumnHeaderError) as ctx:
            build_field_descriptors(Duplicated)

        assert ctx.value.column_header == "id"
        assert ctx.value.slot_names == ("id", "legacy_id")

    def test_duplicate_is_a_declaration_error(self) -> None:
        assert issubclass(DuplicateColumnHeaderError, RecordDeclarationError)

    def test_non_dataclass_is_rejected(self) -> None:
        class Plain:
            name: str = "x"

        with pytest.raises(RecordDeclarationError):
            build_field_descriptors(Plain)

    def test_dataclass_instance_is_rejected(self) -> None:
        with pytest.raises(RecordDeclarationError):
            build_field_descriptors(Customer())  # type: ignore[arg-type]

    def test_plain_slot_without_default_is_rejected(self) -> None:
        @dataclass
        class MissingDefault:
            owner: str
            name: str | None = import_field("name")

        with pytest.raises(RecordDeclarationError, match="owner"):
            build_field_descriptors(MissingDefault)

    def test_unsupported_slot_type_is_rejected(self) -> None:
        @dataclass
        class Unsupported:
            payload: dict | None = import_field("payload")

        with pytest.raises(RecordDeclarationError, match="unsupported type"):
            build_field_descriptors(Unsupported)

    def test_blank_column_header_is_rejected(self) -> None:
        @dataclass
        class Blank:
            name: str | None = import_field("  ")

        with pytest.raises(RecordDeclarationError, match="blank column header"):
            build_field_descriptors(Blank)

    def test_default_value_must_match_slot_type(self) -> None:
        @dataclass
        class BadDefault:
            quantity: int | None = import_field("quantity", default_value="abc")

        with pytest.raises(RecordDeclarationError, match="quantity"):
            build_field_descriptors(BadDefault)

    def test_default_values_of_every_type_are_checked(self) -> None:
        @dataclass
        class GoodDefaults:
            count: int | None = import_field("count", default_value="3")
            active: bool | None = import_field("active", default_value="yes")
            since: date | None = import_field("since", default_value="2024-02-02")
            price: Decimal | None = import_field("price", default_value="9.99")

        assert len(build_field_descriptors(GoodDefaults)) == 4

        @dataclass
        class BadDate:
            since: date | None = import_field("since", default_value="someday")

        with pytest.raises(RecordDeclarationError, match="not a valid date"):
            build_field_descriptors(BadDate)
