"""
excel_import package marker.
"""

from excel_import.domain.fields import FieldDescriptor, build_field_descriptors, import_field
from excel_import.errors import (
    DuplicateColumnHeaderError,
    ExcelImportError,
    ImportAlreadyStartedError,
    InvalidFileError,
    LimitExceededError,
    RecordDeclarationError,
    SinkFailureError,
)
from excel_import.schemas.import_snapshot import ImportResultResponse, ImportSnapshot, ImportStatusCode
from excel_import.services.hooks import ImportHooks
from excel_import.services.import_controller import ExcelImportController, open_upload

__all__ = [
    "DuplicateColumnHeaderError",
    "ExcelImportController",
    "ExcelImportError",
    "FieldDescriptor",
    "ImportAlreadyStartedError",
    "ImportHooks",
    "ImportResultResponse",
    "ImportSnapshot",
    "ImportStatusCode",
    "InvalidFileError",
    "LimitExceededError",
    "RecordDeclarationError",
    "SinkFailureError",
    "build_field_descriptors",
    "import_field",
    "open_upload",
]
