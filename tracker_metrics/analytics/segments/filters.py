"""Ticket segment filters shared by the aggregation passes and report views."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd
import pytz

from tracker_metrics.core.classify import is_valid_assignee
from tracker_metrics.core.config import CLOSED_STATUS, TIME_PERIOD_MONTHS, TIMEZONE
from tracker_metrics.core.models import Ticket

TZ = pytz.timezone(TIMEZONE)


def contributor_tickets(df: pd.DataFrame, roster: Collection[str] | None = None) -> pd.DataFrame:
    """Closed tickets owned by valid individual assignees."""
    if df.empty:
        return df
    closed = df["status"] == CLOSED_STATUS
    valid = df["assignee"].map(lambda name: is_valid_assignee(name, roster)).astype(bool)
    return df[closed & valid]


@dataclass(slots=True)
class ReportFilters:
    search_assignee: str = ""
    project: str | None = None
    function: str | None = None
    time_period: str = "all"
    sprints: list[str] = field(default_factory=list)
    include_all_statuses: bool = False


def _cutoff(time_period: str, now: datetime | None) -> pd.Timestamp | None:
    if time_period == "all":
        return None
    months = TIME_PERIOD_MONTHS.get(time_period)
    if months is None:
        raise ValueError(f"Unknown time period '{time_period}'")
    ref = pd.Timestamp(now) if now is not None else pd.Timestamp.now(tz=TZ)
    if ref.tzinfo is None:
        ref = ref.tz_localize(TZ)
    return ref - pd.DateOffset(months=months)


def filter_tickets(
    tickets: Iterable[Ticket],
    filters: ReportFilters,
    *,
    now: datetime | None = None,
) -> list[Ticket]:
    """Apply report filters, preserving ticket order.

    Parameters
    ----------
    tickets : Iterable[Ticket]
        Parsed tickets.
    filters : ReportFilters
        Active filter selection.
    now : datetime, optional
        Reference point for relative time periods; defaults to the current
        time in the report timezone.

    Returns
    -------
    list[Ticket]
        Tickets matching every active filter.
    """
    cutoff = _cutoff(filters.time_period, now)
    needle = filters.search_assignee.strip().lower()
    sprints = set(filters.sprints)
    out: list[Ticket] = []
    for t in tickets:
        if not filters.include_all_statuses and not t.is_closed:
            continue
        if needle and needle not in t.assignee.lower():
            continue
        if filters.project and t.project != filters.project:
            continue
        if filters.function and t.function != filters.function:
            continue
        if sprints and t.sprint_closed not in sprints:
            continue
        if cutoff is not None:
            if t.closed_date is None or pd.isna(t.closed_date) or t.closed_date < cutoff:
                continue
        out.append(t)
    return out
