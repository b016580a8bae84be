"""Function (team discipline) aggregations."""

from __future__ import annotations

import pandas as pd

from tracker_metrics.analytics.metrics.derived import add_derived_metrics, safe_ratio


def aggregate_by_function(df: pd.DataFrame) -> pd.DataFrame:
    """Fold closed contributor tickets into one row per function.

    Rates are story-point weighted with the same revise-before-bug buckets
    used for assignees. ``std_dev_story_points`` is the population standard
    deviation of member story point totals within the function.
    """
    if df.empty:
        return pd.DataFrame()
    out = add_derived_metrics(df)
    agg = (
        out.groupby("function", sort=False)
        .agg(
            member_count=("assignee", "nunique"),
            ticket_count=("id", "count"),
            total_story_points=("story_points", "sum"),
            bug_story_points=("bug_sp", "sum"),
            revise_story_points=("revise_sp", "sum"),
            bug_count=("is_bug", "sum"),
            revise_count=("is_revise", "sum"),
            avg_cycle_time_days=("cycle_days", "mean"),
            carry_over_count=("carried_over", "sum"),
            timed_count=("timed", "sum"),
        )
        .reset_index()
    )
    member_totals = out.groupby(["function", "assignee"], sort=False)["story_points"].sum()
    spread = member_totals.groupby(level="function", sort=False).std(ddof=0).fillna(0.0)
    agg["std_dev_story_points"] = agg["function"].map(spread).fillna(0.0)
    agg["avg_story_points"] = safe_ratio(agg["total_story_points"], agg["member_count"])
    agg["bug_rate_closed"] = safe_ratio(agg["bug_story_points"], agg["total_story_points"])
    agg["revise_rate_closed"] = safe_ratio(agg["revise_story_points"], agg["total_story_points"])
    agg["carry_over_rate"] = safe_ratio(agg["carry_over_count"], agg["timed_count"])
    return agg
