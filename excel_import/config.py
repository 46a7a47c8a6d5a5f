"""
excel_import/config.py

Process-wide configuration for Excel imports.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

EXCEL_FILE_SUFFIX = ".xlsx"
REASON_COLUMN_HEADER = "reason"

DEFAULT_HEADER_ROW_INDEX = 0
DEFAULT_MAX_ALLOWED_ROWS = 10000
DEFAULT_BATCH_SIZE = 1000
DEFAULT_REJECTED_EXPORT_FILENAME = "rejected_rows" + EXCEL_FILE_SUFFIX
DEFAULT_REJECTED_EXPORT_BASE_PATH = "import_failures"


class LimitPolicy(str, Enum):
    """
    What happens to the first row past ``max_allowed_rows``.

    ``stop`` reads the row but does not count it. ``reject`` counts it and
    routes it to the rejected rows with reason ``LimitExceeded``. Both end
    the import.
    """

    STOP = "stop"
    REJECT = "reject"


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_limit_policy_env(name: str, default: LimitPolicy) -> LimitPolicy:
    raw_value = _get_str_env(name, default.value).lower()
    try:
        return LimitPolicy(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for Excel imports.
    """

    header_row_index: int = DEFAULT_HEADER_ROW_INDEX
    max_allowed_rows: int = DEFAULT_MAX_ALLOWED_ROWS
    batch_size: int = DEFAULT_BATCH_SIZE
    rejected_export_filename: str = DEFAULT_REJECTED_EXPORT_FILENAME
    rejected_export_base_path: str = DEFAULT_REJECTED_EXPORT_BASE_PATH
    limit_policy: LimitPolicy = LimitPolicy.STOP
    log_row_rejections: bool = True


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        header_row_index=max(0, _get_int_env("EXCEL_IMPORT_HEADER_ROW_INDEX", DEFAULT_HEADER_ROW_INDEX)),
        max_allowed_rows=max(1, _get_int_env("EXCEL_IMPORT_MAX_ALLOWED_ROWS", DEFAULT_MAX_ALLOWED_ROWS)),
        batch_size=max(1, _get_int_env("EXCEL_IMPORT_BATCH_SIZE", DEFAULT_BATCH_SIZE)),
        rejected_export_filename=_get_str_env(
            "EXCEL_IMPORT_REJECTED_FILENAME",
            DEFAULT_REJECTED_EXPORT_FILENAME,
        ),
        rejected_export_base_path=_get_str_env(
            "EXCEL_IMPORT_REJECTED_BASE_PATH",
            DEFAULT_REJECTED_EXPORT_BASE_PATH,
        ),
        limit_policy=_get_limit_policy_env("EXCEL_IMPORT_LIMIT_POLICY", LimitPolicy.STOP),
        log_row_rejections=_get_bool_env("EXCEL_IMPORT_LOG_ROW_REJECTIONS", True),
    )


def normalize_export_filename(filename: str | None, *, default: str = DEFAULT_REJECTED_EXPORT_FILENAME) -> str:
    """
    Fall back to ``default`` for blank names and append the spreadsheet suffix when missing.
    """

    name = (filename or "").strip()
    if not name:
        name = default
    if not name.lower().endswith(EXCEL_FILE_SUFFIX):
        name = name + EXCEL_FILE_SUFFIX
    return name
