"""CSV ingestion for exported tracker reports."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from .config import REQUIRED_COLUMNS, SETTINGS

logger = logging.getLogger(__name__)


class ReportInputError(ValueError):
    """Raised when an export cannot be read as a ticket report."""


def _frame_to_rows(df: pd.DataFrame, source: str) -> list[dict[str, Any]]:
    df.columns = [str(c).strip() for c in df.columns]
    missing = REQUIRED_COLUMNS.difference(df.columns)
    if missing:
        raise ReportInputError(f"{source} missing columns: {sorted(missing)}")
    rows = df.to_dict(orient="records")
    logger.debug("Read %s rows from %s", len(rows), source)
    return rows


def read_report_csv(path: str | Path) -> list[dict[str, Any]]:
    """Read an exported CSV file into raw string-keyed rows.

    Every cell is kept as text; blank cells become empty strings. Blank
    lines are skipped.
    """
    csv_path = Path(path)
    try:
        df = pd.read_csv(
            csv_path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding=SETTINGS.csv_encoding,
        )
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise ReportInputError(f"Could not read {csv_path}: {exc}") from exc
    return _frame_to_rows(df, str(csv_path))


def read_report_text(text: str) -> list[dict[str, Any]]:
    """Same as ``read_report_csv`` for CSV content already in memory."""
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ReportInputError(f"Could not parse CSV text: {exc}") from exc
    return _frame_to_rows(df, "CSV text")
