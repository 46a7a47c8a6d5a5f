"""
excel_import/schemas package marker.
"""

from excel_import.schemas.import_snapshot import (
    ImportResultResponse,
    ImportSnapshot,
    ImportStatusCode,
    format_progress_percent,
)

__all__ = [
    "ImportResultResponse",
    "ImportSnapshot",
    "ImportStatusCode",
    "format_progress_percent",
]
