"""MetricsService: orchestrates normalization, aggregation, and flagging."""

from __future__ import annotations

import logging
import math
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from tracker_metrics.analytics.aggregations.assignee import aggregate_by_assignee
from tracker_metrics.analytics.aggregations.features import aggregate_by_feature
from tracker_metrics.analytics.aggregations.function import aggregate_by_function
from tracker_metrics.analytics.metrics.alerts import build_alerts
from tracker_metrics.analytics.metrics.flags import flag_assignees, flag_functions
from tracker_metrics.analytics.metrics.stats import z_scores
from tracker_metrics.analytics.segments.filters import contributor_tickets

from .mappers import parse_rows, tickets_to_dataframe
from .models import Alert, AssigneeMetrics, FeatureRollup, FunctionMetrics, Ticket
from .thresholds import Thresholds

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MetricsReport:
    tickets: list[Ticket]
    assignees: list[AssigneeMetrics] = field(default_factory=list)
    functions: list[FunctionMetrics] = field(default_factory=list)
    features: list[FeatureRollup] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)


def _optional_float(value) -> float | None:
    if value is None or pd.isna(value):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _optional_ts(value) -> pd.Timestamp | None:
    if value is None or pd.isna(value):
        return None
    return value


def _to_assignee_metrics(agg: pd.DataFrame) -> list[AssigneeMetrics]:
    return [
        AssigneeMetrics(
            assignee=str(row.assignee),
            function=str(row.function),
            ticket_count=int(row.ticket_count),
            total_story_points=int(row.total_story_points),
            effective_story_points=float(row.effective_story_points),
            bug_rate=float(row.bug_rate),
            revise_rate=float(row.revise_rate),
            performance_score=float(row.performance_score),
            z_score=float(row.z_score),
            flags=set(row.flags),
            projects_worked_on=int(row.projects_worked_on),
            active_weeks=int(row.active_weeks),
            user_story_story_points=int(row.user_story_story_points),
            bug_story_points=int(row.bug_story_points),
            revise_story_points=int(row.revise_story_points),
            bug_count=int(row.bug_count),
            revise_count=int(row.revise_count),
            avg_cycle_time_days=_optional_float(row.avg_cycle_time_days),
            sprints_participated=int(row.sprints_participated),
            velocity_per_sprint=float(row.velocity_per_sprint),
            carry_over_count=int(row.carry_over_count),
            carry_over_rate=float(row.carry_over_rate),
        )
        for row in agg.itertuples(index=False)
    ]


def _to_function_metrics(agg: pd.DataFrame) -> list[FunctionMetrics]:
    return [
        FunctionMetrics(
            function=str(row.function),
            member_count=int(row.member_count),
            total_story_points=int(row.total_story_points),
            avg_cycle_time_days=_optional_float(row.avg_cycle_time_days),
            bug_rate_closed=float(row.bug_rate_closed),
            revise_rate_closed=float(row.revise_rate_closed),
            ticket_count=int(row.ticket_count),
            bug_count=int(row.bug_count),
            revise_count=int(row.revise_count),
            avg_story_points=float(row.avg_story_points),
            std_dev_story_points=float(row.std_dev_story_points),
            carry_over_count=int(row.carry_over_count),
            carry_over_rate=float(row.carry_over_rate),
            flags=set(row.flags),
        )
        for row in agg.itertuples(index=False)
    ]


def _to_feature_rollups(agg: pd.DataFrame) -> list[FeatureRollup]:
    return [
        FeatureRollup(
            feature_id=str(row.feature_id),
            title=str(row.title),
            project=str(row.project),
            child_count=int(row.child_count),
            total_story_points=int(row.total_story_points),
            bug_children=int(row.bug_children),
            start=_optional_ts(row.start),
            end=_optional_ts(row.end),
        )
        for row in agg.itertuples(index=False)
    ]


class MetricsService:
    """Stateless batch engine from raw rows to a metrics snapshot.

    The thresholds are snapshotted at construction; ``Thresholds`` is
    frozen, so a running computation cannot observe later changes.
    """

    def __init__(
        self,
        thresholds: Thresholds | Mapping[str, Any] | None = None,
        roster: Collection[str] | None = None,
    ):
        self.thresholds = Thresholds.from_mapping(thresholds)
        self.roster = frozenset(roster) if roster else None

    def parse(self, rows: Iterable[Mapping[str, Any]], *, deterministic_ids: bool = True) -> list[Ticket]:
        return parse_rows(rows, deterministic_ids=deterministic_ids)

    def assignee_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        agg = aggregate_by_assignee(df, self.thresholds)
        if agg.empty:
            return agg
        agg["z_score"] = z_scores(agg["effective_story_points"])
        agg["flags"] = flag_assignees(agg, self.thresholds)
        return agg

    def function_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        agg = aggregate_by_function(df)
        if agg.empty:
            return agg
        agg["flags"] = flag_functions(agg, self.thresholds)
        return agg

    def compute(self, tickets: list[Ticket]) -> MetricsReport:
        frame = tickets_to_dataframe(tickets)
        contributors = contributor_tickets(frame, self.roster)
        assignees = _to_assignee_metrics(self.assignee_frame(contributors))
        functions = _to_function_metrics(self.function_frame(contributors))
        features = _to_feature_rollups(aggregate_by_feature(frame))
        alerts = build_alerts(assignees, functions, frame)
        logger.info(
            "Computed metrics: %s tickets, %s contributor tickets, %s assignees, %s functions",
            len(tickets),
            len(contributors),
            len(assignees),
            len(functions),
        )
        return MetricsReport(
            tickets=list(tickets),
            assignees=assignees,
            functions=functions,
            features=features,
            alerts=alerts,
        )

    def run(self, rows: Iterable[Mapping[str, Any]], *, deterministic_ids: bool = True) -> MetricsReport:
        return self.compute(self.parse(rows, deterministic_ids=deterministic_ids))


def compute_metrics(
    tickets: list[Ticket],
    thresholds: Thresholds | Mapping[str, Any] | None = None,
    roster: Collection[str] | None = None,
) -> MetricsReport:
    return MetricsService(thresholds, roster).compute(tickets)
