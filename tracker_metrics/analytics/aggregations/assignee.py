"""Assignee-based aggregations."""

from __future__ import annotations

import pandas as pd

from tracker_metrics.analytics.metrics.derived import add_derived_metrics, safe_ratio
from tracker_metrics.core.config import UNKNOWN_FUNCTION
from tracker_metrics.core.thresholds import Thresholds


def _primary_function(values: pd.Series) -> str:
    for value in values:
        if value and value != UNKNOWN_FUNCTION:
            return value
    return UNKNOWN_FUNCTION


def _cohort_ratio(series: pd.Series) -> pd.Series:
    top = float(series.max()) if not series.empty else 0.0
    if top <= 0:
        return pd.Series(0.0, index=series.index)
    return series.astype(float) / top


def effective_story_points(total: pd.Series, bug_rate: pd.Series, revise_rate: pd.Series, thresholds: Thresholds):
    """Discount raw story points by rework rates, floored at zero."""
    effective = (
        total.astype(float)
        * (1 - thresholds.revise_rate_penalty * revise_rate)
        * (1 - thresholds.bug_rate_penalty * bug_rate)
    )
    return effective.clip(lower=0.0)


def score_performance(agg: pd.DataFrame, thresholds: Thresholds) -> pd.Series:
    """Weighted sum of cohort-relative sub-scores.

    Every component is the assignee's value divided by the cohort maximum,
    so the score is relative to the run and only comparable within it.
    """
    return (
        thresholds.story_points_weight * _cohort_ratio(agg["effective_story_points"])
        + thresholds.ticket_count_weight * _cohort_ratio(agg["ticket_count"])
        + thresholds.project_variety_weight * _cohort_ratio(agg["projects_worked_on"])
    )


def aggregate_by_assignee(df: pd.DataFrame, thresholds: Thresholds) -> pd.DataFrame:
    """Fold closed contributor tickets into one row per assignee.

    ``df`` must already be restricted to closed tickets with valid
    assignees. Rows come out in first-appearance order.
    """
    if df.empty:
        return pd.DataFrame()
    out = add_derived_metrics(df)
    agg = (
        out.groupby("assignee", sort=False)
        .agg(
            function=("function", _primary_function),
            ticket_count=("id", "count"),
            total_story_points=("story_points", "sum"),
            user_story_story_points=("user_story_sp", "sum"),
            bug_story_points=("bug_sp", "sum"),
            revise_story_points=("revise_sp", "sum"),
            bug_count=("is_bug", "sum"),
            revise_count=("is_revise", "sum"),
            projects_worked_on=("project", "nunique"),
            active_weeks=("period", "nunique"),
            sprints_participated=("sprint_label", "nunique"),
            avg_cycle_time_days=("cycle_days", "mean"),
            carry_over_count=("carried_over", "sum"),
            timed_count=("timed", "sum"),
        )
        .reset_index()
    )
    agg["bug_rate"] = safe_ratio(agg["bug_story_points"], agg["total_story_points"])
    agg["revise_rate"] = safe_ratio(agg["revise_story_points"], agg["total_story_points"])
    agg["effective_story_points"] = effective_story_points(
        agg["total_story_points"], agg["bug_rate"], agg["revise_rate"], thresholds
    )
    agg["velocity_per_sprint"] = safe_ratio(agg["total_story_points"], agg["sprints_participated"])
    agg["carry_over_rate"] = safe_ratio(agg["carry_over_count"], agg["timed_count"])
    agg["performance_score"] = score_performance(agg, thresholds)
    return agg
