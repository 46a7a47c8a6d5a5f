"""
excel_import/domain package marker.
"""

from excel_import.domain.fields import FieldDescriptor, ImportFieldSpec, build_field_descriptors, import_field
from excel_import.domain.import_models import (
    CountersSnapshot,
    ImportCounters,
    RejectedRow,
    RowRejection,
    RowRejectionCode,
)

__all__ = [
    "CountersSnapshot",
    "FieldDescriptor",
    "ImportCounters",
    "ImportFieldSpec",
    "RejectedRow",
    "RowRejection",
    "RowRejectionCode",
    "build_field_descriptors",
    "import_field",
]
