"""
excel_import/schemas/import_snapshot.py

Read-only progress and result views of an import.
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

RESULT_CODE_FINISHED = 10000
RESULT_CODE_IN_PROGRESS = 10001


class ImportStatusCode(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"


class ImportSnapshot(BaseModel):
    """
    Point-in-time view of one import.

    Counter fields come from a single consistent read, so
    ``success_count + fail_count == total_count`` within one snapshot.
    """

    model_config = ConfigDict(frozen=True)

    progress_percent: str = "0%"
    elapsed_millis: int | None = Field(default=None, ge=0)
    source_count: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    fail_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)
    fail_file_url: str
    status_code: ImportStatusCode
    message: str
    terminal_state: str | None = None
    limit_exceeded: bool = False
    sink_failed: bool = False
    error: str | None = None


class ImportResultResponse(BaseModel):
    """
    ``code``/``message``/``data`` envelope around a snapshot.
    """

    code: int
    message: str
    data: ImportSnapshot

    @classmethod
    def from_snapshot(cls, snapshot: ImportSnapshot) -> "ImportResultResponse":
        code = (
            RESULT_CODE_FINISHED
            if snapshot.status_code is ImportStatusCode.FINISHED
            else RESULT_CODE_IN_PROGRESS
        )
        return cls(code=code, message=snapshot.message, data=snapshot)


def format_progress_percent(total_seen: int, source_count: int) -> str:
    """
    Render ``total_seen / source_count`` as a whole percentage, rounding half up.
    """

    if total_seen <= 0 or source_count <= 0:
        return "0%"
    return f"{math.floor(total_seen / source_count * 100 + 0.5)}%"
