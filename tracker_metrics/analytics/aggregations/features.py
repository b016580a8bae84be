"""Parent feature roll-up aggregations."""

from __future__ import annotations

import pandas as pd

from tracker_metrics.core.config import CLOSED_STATUS


def aggregate_by_feature(df: pd.DataFrame) -> pd.DataFrame:
    """Roll closed child tickets up onto their parent Feature tickets.

    A child is any closed ticket whose ``parent_id`` matches the id of a
    ticket with normalized type Feature. Features without closed children
    are omitted. Story points and counts come from children only.
    """
    if df.empty or "parent_id" not in df.columns:
        return pd.DataFrame()
    features = df[df["normalized_type"] == "Feature"].drop_duplicates(subset="id", keep="first")
    if features.empty:
        return pd.DataFrame()
    children = df[(df["status"] == CLOSED_STATUS) & df["parent_id"].isin(features["id"])]
    if children.empty:
        return pd.DataFrame()
    agg = (
        children.groupby("parent_id", sort=False)
        .agg(
            child_count=("id", "count"),
            total_story_points=("story_points", "sum"),
            bug_children=("is_bug", "sum"),
            start=("created_date", "min"),
            end=("closed_date", "max"),
        )
        .reset_index()
        .rename(columns={"parent_id": "feature_id"})
    )
    meta = features.set_index("id")[["subject", "project"]].rename(columns={"subject": "title"})
    return agg.join(meta, on="feature_id")
