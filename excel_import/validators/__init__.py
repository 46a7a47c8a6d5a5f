"""
excel_import/validators package marker.
"""

from excel_import.validators.coercion import CoercionError, coerce_value, format_value
from excel_import.validators.record_validator import RecordValidator
from excel_import.validators.row_decoder import RowDecoder

__all__ = [
    "CoercionError",
    "RecordValidator",
    "RowDecoder",
    "coerce_value",
    "format_value",
]
