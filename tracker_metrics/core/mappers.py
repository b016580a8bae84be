"""Mapping raw tracker export rows into Ticket instances."""

from __future__ import annotations

import hashlib
import json
import logging
import math
import re
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import asdict, fields
from datetime import date, datetime
from typing import Any

import pandas as pd
import pytz

from .classify import is_bug, is_revise, normalize_function, normalize_type
from .config import (
    CLOSED_AT_COLUMNS,
    COL_ASSIGNEE,
    COL_CREATED_AT,
    COL_FUNCTION,
    COL_ID,
    COL_ID_ALT,
    COL_PARENT,
    COL_PROJECT,
    COL_SPRINT_CLOSED,
    COL_SPRINT_CREATED,
    COL_STATUS,
    COL_STORY_POINTS,
    COL_SUBJECT,
    COL_TYPE,
    DEFAULT_ASSIGNEE,
    DEFAULT_PROJECT,
    DEFAULT_TYPE,
    TIMEZONE,
)
from .models import Ticket

logger = logging.getLogger(__name__)

TICKET_COLUMNS: list[str] = [f.name for f in fields(Ticket)]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_TZ = pytz.timezone(TIMEZONE)


class RowParseError(ValueError):
    """Raised when a row is structurally unusable and must be dropped."""


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def _text(row: Mapping[str, Any], column: str, default: str = "") -> str:
    value = row.get(column)
    if _is_missing(value):
        return default
    text = str(value).strip()
    return text or default


def parse_story_points(value: Any) -> int:
    """Parse a story point cell, returning 0 for anything unusable.

    Leading integers are honoured ("5 SP" -> 5, "3.5" -> 3); negative or
    non-numeric values become 0.
    """
    if _is_missing(value) or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def parse_timestamp(value: Any) -> pd.Timestamp:
    """Parse a date cell into a tz-aware timestamp in the report timezone.

    Unparseable text yields ``NaT`` (the invalid-date marker). Non-scalar
    cells raise ``RowParseError`` so the whole row is dropped.
    """
    if _is_missing(value):
        return pd.NaT
    if not isinstance(value, (str, datetime, date)):
        raise RowParseError(f"unsupported date value {value!r}")
    if isinstance(value, str) and not value.strip():
        return pd.NaT
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return pd.NaT
    return ts.tz_convert(_TZ)


def _closed_timestamp(row: Mapping[str, Any]) -> pd.Timestamp | None:
    for column in CLOSED_AT_COLUMNS:
        value = row.get(column)
        if _is_missing(value) or (isinstance(value, str) and not value.strip()):
            continue
        return parse_timestamp(value)
    return None


def cycle_days(created: pd.Timestamp, closed: pd.Timestamp | None) -> int | None:
    if closed is None or pd.isna(closed) or pd.isna(created):
        return None
    delta = (closed - created).total_seconds() / 86400.0
    return int(math.floor(delta + 0.5))


def _row_digest(row: Mapping[str, Any], position: int) -> str:
    payload = json.dumps({str(k): row[k] for k in row}, sort_keys=True, default=str)
    return hashlib.sha256(f"{position}:{payload}".encode()).hexdigest()


def _ticket_ids(
    row: Mapping[str, Any],
    position: int,
    normalized_type: str,
    raw_type: str,
    deterministic: bool,
) -> tuple[str, str | None]:
    natural = _text(row, COL_ID) or _text(row, COL_ID_ALT)
    parent = _text(row, COL_PARENT)
    token = _row_digest(row, position) if deterministic else uuid.uuid4().hex
    if natural:
        return natural, (parent if parent and parent != natural else None)
    if not parent:
        return f"TICKET-{token[:9]}", None
    if normalized_type == "Feature":
        # The feature row carries its own id in the Parent column
        return parent, None
    return f"{parent}-{raw_type.upper()}-{token[:6]}", parent


def map_row(row: Mapping[str, Any], position: int, *, deterministic_ids: bool = True) -> Ticket:
    if not isinstance(row, Mapping):
        raise RowParseError(f"row {position} is not a mapping: {type(row).__name__}")

    raw_type = _text(row, COL_TYPE, DEFAULT_TYPE)
    normalized = normalize_type(raw_type)
    subject = _text(row, COL_SUBJECT)
    created = parse_timestamp(row.get(COL_CREATED_AT))
    closed = _closed_timestamp(row)
    ticket_id, parent_id = _ticket_ids(row, position, normalized, raw_type, deterministic_ids)

    return Ticket(
        id=ticket_id,
        assignee=_text(row, COL_ASSIGNEE, DEFAULT_ASSIGNEE),
        function=normalize_function(_text(row, COL_FUNCTION)),
        status=_text(row, COL_STATUS),
        story_points=parse_story_points(row.get(COL_STORY_POINTS)),
        type=raw_type,
        normalized_type=normalized,
        project=_text(row, COL_PROJECT, DEFAULT_PROJECT),
        sprint_closed=_text(row, COL_SPRINT_CLOSED),
        sprint_created=_text(row, COL_SPRINT_CREATED),
        subject=subject,
        is_bug=is_bug(normalized, raw_type),
        is_revise=is_revise(subject),
        created_date=created,
        closed_date=closed,
        cycle_days=cycle_days(created, closed),
        parent_id=parent_id,
    )


def parse_rows(rows: Iterable[Mapping[str, Any]], *, deterministic_ids: bool = True) -> list[Ticket]:
    """Normalize raw rows into tickets, dropping rows that fail to parse.

    Output order follows input order. With ``deterministic_ids=False`` ids
    synthesized for rows without a natural id are random and differ between
    runs; metric values do not depend on ids.
    """
    tickets: list[Ticket] = []
    dropped = 0
    for position, row in enumerate(rows):
        try:
            tickets.append(map_row(row, position, deterministic_ids=deterministic_ids))
        except Exception as exc:
            dropped += 1
            logger.warning("Dropping row %s: %s", position, exc)
    if dropped:
        logger.info("Parsed %s tickets, dropped %s malformed rows", len(tickets), dropped)
    return tickets


def tickets_to_dataframe(tickets: Iterable[Ticket]) -> pd.DataFrame:
    rows = [asdict(t) for t in tickets]
    if not rows:
        return pd.DataFrame(columns=TICKET_COLUMNS)
    df = pd.DataFrame(rows, columns=TICKET_COLUMNS)
    df["story_points"] = df["story_points"].astype(int)
    df["cycle_days"] = pd.to_numeric(df["cycle_days"], errors="coerce")
    for col in ("created_date", "closed_date"):
        df[col] = pd.to_datetime(df[col], utc=True, errors="coerce").dt.tz_convert(_TZ)
    return df
