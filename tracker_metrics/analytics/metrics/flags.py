"""Threshold-driven classification flags for assignees and functions.

Flags are independent: each condition is evaluated on its own and an
entity carries the set of every flag whose condition holds. All cut points
are inclusive (``>=`` / ``<=``) except the load comparisons, which are
strict against a multiple of the cohort median.
"""

from __future__ import annotations

import pandas as pd

from tracker_metrics.analytics.metrics.stats import population_stats
from tracker_metrics.core.thresholds import Thresholds

TOP_PERFORMER = "top_performer"
LOW_PERFORMER = "low_performer"
HIGH_BUG_RATE = "high_bug_rate"
HIGH_REVISE_RATE = "high_revise_rate"
UNDERUTILIZED = "underutilized"
OVERLOADED = "overloaded"


def _median(series: pd.Series) -> float:
    numeric = pd.to_numeric(series, errors="coerce").dropna()
    if numeric.empty:
        return 0.0
    return float(numeric.median())


def assignee_flags(
    *,
    z: float,
    bug_rate: float,
    revise_rate: float,
    effective_story_points: float,
    active_weeks: int,
    typical_load: float,
    max_active_weeks: int,
    thresholds: Thresholds,
    has_spread: bool = True,
) -> set[str]:
    flags: set[str] = set()
    # Without spread every z-score is 0 and ranks nobody
    if has_spread:
        if z >= thresholds.top_performer_z:
            flags.add(TOP_PERFORMER)
        if z <= thresholds.low_performer_z:
            flags.add(LOW_PERFORMER)
    if bug_rate >= thresholds.high_bug_rate:
        flags.add(HIGH_BUG_RATE)
    if revise_rate >= thresholds.high_revise_rate:
        flags.add(HIGH_REVISE_RATE)
    low_load = typical_load > 0 and effective_story_points < thresholds.underutilized_threshold * typical_load
    low_presence = max_active_weeks > 0 and active_weeks / max_active_weeks < thresholds.active_weeks_threshold
    if low_load or low_presence:
        flags.add(UNDERUTILIZED)
    return flags


def flag_assignees(agg: pd.DataFrame, thresholds: Thresholds) -> pd.Series:
    """Return a Series of flag sets aligned with ``agg``.

    ``agg`` needs ``z_score``, ``bug_rate``, ``revise_rate``,
    ``effective_story_points`` and ``active_weeks`` columns. The cohort's
    typical load is the median effective story points. When the cohort
    has no spread in effective story points, no one is ranked top or low
    whatever the z cuts are.
    """
    if agg.empty:
        return pd.Series(dtype=object)
    typical_load = _median(agg["effective_story_points"])
    max_active = int(agg["active_weeks"].max())
    _, spread = population_stats(agg["effective_story_points"])
    return pd.Series(
        [
            assignee_flags(
                z=float(row.z_score),
                bug_rate=float(row.bug_rate),
                revise_rate=float(row.revise_rate),
                effective_story_points=float(row.effective_story_points),
                active_weeks=int(row.active_weeks),
                typical_load=typical_load,
                max_active_weeks=max_active,
                thresholds=thresholds,
                has_spread=spread > 0,
            )
            for row in agg.itertuples(index=False)
        ],
        index=agg.index,
        dtype=object,
    )


def flag_functions(agg: pd.DataFrame, thresholds: Thresholds) -> pd.Series:
    """Mark functions whose per-member load departs from the median function.

    A function is ``overloaded`` when its average story points per member
    exceeds ``overloaded_multiplier`` times the median of all function
    averages, and ``underutilized`` when it falls below
    ``underutilized_multiplier`` times that median. A non-positive median
    flags nothing.
    """
    if agg.empty:
        return pd.Series(dtype=object)
    median = _median(agg["avg_story_points"])
    results = []
    for avg in agg["avg_story_points"].astype(float):
        flags: set[str] = set()
        if median > 0:
            if avg > thresholds.overloaded_multiplier * median:
                flags.add(OVERLOADED)
            if avg < thresholds.underutilized_multiplier * median:
                flags.add(UNDERUTILIZED)
        results.append(flags)
    return pd.Series(results, index=agg.index, dtype=object)
