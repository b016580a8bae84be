"""Shared derived column computations for analytics."""

from __future__ import annotations

import numpy as np
import pandas as pd

from tracker_metrics.core.config import CARRY_OVER_DAYS, MISSING_SPRINT


def _sprint_label(value) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or text == MISSING_SPRINT:
        return None
    return text


def _week_bucket(closed, created) -> str | None:
    for ts in (closed, created):
        if ts is None or pd.isna(ts):
            continue
        year, week, _ = ts.isocalendar()
        return f"{year}-W{week:02d}"
    return None


def add_derived_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """Add the per-ticket columns the aggregators fold over.

    Adds the following columns:
        - revise_sp: story points when the ticket is a revise
        - bug_sp: story points when the ticket is a bug and not a revise
        - user_story_sp: story points for everything else
        - sprint_label: Sprint Closed value, or None when blank / "#N/A"
        - period: sprint_label, falling back to the ISO week of the closed
          (else created) date; None when neither is available
        - timed: cycle_days is known and positive
        - carried_over: timed and cycle_days above CARRY_OVER_DAYS

    Each ticket lands in exactly one story point bucket, revise checked
    before bug, so the three buckets always sum to ``story_points``.

    Parameters
    ----------
    df : pd.DataFrame
        Ticket frame as produced by ``tickets_to_dataframe``.

    Returns
    -------
    pd.DataFrame
        Copy of input with derived columns added.
    """
    out = df.copy()
    points = pd.to_numeric(out["story_points"], errors="coerce").fillna(0).astype(int)
    revise = out["is_revise"].astype(bool)
    bug = out["is_bug"].astype(bool) & ~revise
    out["revise_sp"] = np.where(revise, points, 0)
    out["bug_sp"] = np.where(bug, points, 0)
    out["user_story_sp"] = np.where(~revise & ~bug, points, 0)

    cycle = pd.to_numeric(out["cycle_days"], errors="coerce")
    out["timed"] = cycle.gt(0)
    out["carried_over"] = cycle.gt(CARRY_OVER_DAYS)

    out["sprint_label"] = out["sprint_closed"].map(_sprint_label)
    if out.empty:
        out["period"] = pd.Series(dtype=object)
        return out
    weeks = [_week_bucket(c, s) for c, s in zip(out["closed_date"], out["created_date"])]
    out["period"] = out["sprint_label"].where(out["sprint_label"].notna(), pd.Series(weeks, index=out.index))
    return out


def safe_ratio(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """Element-wise ratio that yields 0.0 wherever the denominator is 0."""
    num = numerator.astype(float)
    den = denominator.astype(float)
    return (num / den.where(den != 0)).fillna(0.0)
