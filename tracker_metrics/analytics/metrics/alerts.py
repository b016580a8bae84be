"""Alert records derived from flags, project delivery and team balance."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from tracker_metrics.analytics.metrics.flags import (
    HIGH_BUG_RATE,
    HIGH_REVISE_RATE,
    LOW_PERFORMER,
    OVERLOADED,
    TOP_PERFORMER,
    UNDERUTILIZED,
)
from tracker_metrics.core.config import (
    CLOSED_STATUS,
    FUNCTION_ACHIEVEMENT_SP,
    FUNCTION_QUALITY_RATE,
    FUNCTION_REVISE_RATE,
    PROJECT_ACHIEVEMENT_MIN_SP,
    PROJECT_ACHIEVEMENT_SHARE,
    PROJECT_REVISE_RATE,
    QUALITY_MIN_TICKETS,
    WORKLOAD_GAP,
)
from tracker_metrics.core.models import Alert, AssigneeMetrics, FunctionMetrics

# Issues first, recognition last
ALERT_PRIORITY: dict[str, int] = {
    "overloaded": 1,
    "quality-concern": 2,
    "workload-imbalance": 3,
    "high-revise": 4,
    "high-bug": 5,
    "low-performer": 6,
    "underutilized": 7,
    "top-performer": 8,
    "achievement": 9,
}


def _assignee_alerts(m: AssigneeMetrics) -> list[Alert]:
    alerts: list[Alert] = []
    if TOP_PERFORMER in m.flags:
        alerts.append(
            Alert(
                type="top-performer",
                message=f"{m.assignee} is a top performer (z-score {m.z_score:.2f}).",
                assignee=m.assignee,
                function=m.function,
                value=m.z_score,
            )
        )
    if LOW_PERFORMER in m.flags:
        alerts.append(
            Alert(
                type="low-performer",
                message=f"{m.assignee} is below the team's delivery range (z-score {m.z_score:.2f}).",
                assignee=m.assignee,
                function=m.function,
                value=m.z_score,
            )
        )
    if HIGH_BUG_RATE in m.flags:
        alerts.append(
            Alert(
                type="high-bug",
                message=f"{m.assignee} spent {m.bug_rate:.0%} of closed story points on bugs.",
                assignee=m.assignee,
                function=m.function,
                value=m.bug_rate,
            )
        )
    if HIGH_REVISE_RATE in m.flags:
        alerts.append(
            Alert(
                type="high-revise",
                message=f"{m.assignee} spent {m.revise_rate:.0%} of closed story points on revisions.",
                assignee=m.assignee,
                function=m.function,
                value=m.revise_rate,
            )
        )
    if UNDERUTILIZED in m.flags:
        alerts.append(
            Alert(
                type="underutilized",
                message=f"{m.assignee} has room for more work ({m.effective_story_points:.0f} effective SP).",
                assignee=m.assignee,
                function=m.function,
                value=m.effective_story_points,
            )
        )
    return alerts


def _function_alerts(f: FunctionMetrics) -> list[Alert]:
    alerts: list[Alert] = []
    if OVERLOADED in f.flags:
        alerts.append(
            Alert(
                type="overloaded",
                message=f"{f.function} is overloaded at {f.avg_story_points:.1f} SP per member.",
                function=f.function,
                value=f.avg_story_points,
                category="function",
            )
        )
    if UNDERUTILIZED in f.flags:
        alerts.append(
            Alert(
                type="underutilized",
                message=f"{f.function} is underutilized at {f.avg_story_points:.1f} SP per member.",
                function=f.function,
                value=f.avg_story_points,
                category="function",
            )
        )
    if f.ticket_count >= QUALITY_MIN_TICKETS:
        revise_share = f.revise_count / f.ticket_count
        if revise_share > FUNCTION_REVISE_RATE:
            alerts.append(
                Alert(
                    type="quality-concern",
                    message=f"{f.function} has a {revise_share:.0%} revise rate across {f.ticket_count} tickets.",
                    function=f.function,
                    value=revise_share,
                    category="function",
                )
            )
        elif revise_share < FUNCTION_QUALITY_RATE:
            alerts.append(
                Alert(
                    type="achievement",
                    message=f"{f.function} keeps its revise rate at {revise_share:.0%}.",
                    function=f.function,
                    value=revise_share,
                    category="function",
                )
            )
    if f.total_story_points > FUNCTION_ACHIEVEMENT_SP and f.member_count >= 2:
        alerts.append(
            Alert(
                type="achievement",
                message=(
                    f"{f.function} delivered {f.total_story_points} SP "
                    f"({f.avg_story_points:.0f} SP per member)."
                ),
                function=f.function,
                value=float(f.total_story_points),
                category="function",
            )
        )
    return alerts


def _project_alerts(tickets: pd.DataFrame) -> list[Alert]:
    closed = tickets[tickets["status"] == CLOSED_STATUS]
    if closed.empty:
        return []
    per_project = closed.groupby("project", sort=False).agg(
        story_points=("story_points", "sum"),
        ticket_count=("id", "count"),
        revise_count=("is_revise", "sum"),
    )
    total = float(per_project["story_points"].sum())
    alerts: list[Alert] = []
    for project, row in per_project.iterrows():
        points = int(row["story_points"])
        share = points / total if total > 0 else 0.0
        if share > PROJECT_ACHIEVEMENT_SHARE and points > PROJECT_ACHIEVEMENT_MIN_SP:
            alerts.append(
                Alert(
                    type="achievement",
                    message=f"{project} delivered {points} SP ({share:.0%} of the total).",
                    value=float(points),
                    category="project",
                    project=str(project),
                )
            )
        count = int(row["ticket_count"])
        revise_share = int(row["revise_count"]) / count
        if revise_share > PROJECT_REVISE_RATE and count >= QUALITY_MIN_TICKETS:
            alerts.append(
                Alert(
                    type="quality-concern",
                    message=f"{project} has a {revise_share:.0%} revise rate across {count} tickets.",
                    value=revise_share,
                    category="project",
                    project=str(project),
                )
            )
    return alerts


def function_load_ratios(functions: Iterable[FunctionMetrics]) -> dict[str, float]:
    """Per-member load of each function relative to the median function.

    Returns an empty mapping when the median average is not positive.
    """
    functions = list(functions)
    if not functions:
        return {}
    median = float(pd.Series([f.avg_story_points for f in functions], dtype=float).median())
    if median <= 0:
        return {}
    return {f.function: f.avg_story_points / median for f in functions}


def _workload_alert(functions: list[FunctionMetrics]) -> list[Alert]:
    ratios = function_load_ratios(functions)
    staffed = [f.function for f in functions if f.member_count >= 2 and f.function in ratios]
    if len(staffed) < 2:
        return []
    highest = max(staffed, key=lambda name: ratios[name])
    lowest = min(staffed, key=lambda name: ratios[name])
    gap = ratios[highest] - ratios[lowest]
    if gap <= WORKLOAD_GAP:
        return []
    return [
        Alert(
            type="workload-imbalance",
            message=(
                f"Workload imbalance: {highest} at {ratios[highest]:.0%} of the median load "
                f"vs {lowest} at {ratios[lowest]:.0%}."
            ),
            value=gap,
            category="cross-function",
        )
    ]


def build_alerts(
    assignees: Iterable[AssigneeMetrics],
    functions: Iterable[FunctionMetrics],
    tickets: pd.DataFrame | None = None,
) -> list[Alert]:
    """Collect assignee, function, project and cross-function alerts.

    ``tickets`` is the full ticket frame; project alerts are computed over
    its closed tickets and skipped when it is not given. Alerts are ordered
    by ``ALERT_PRIORITY`` and then by assignee, function and project name.
    """
    functions = list(functions)
    alerts: list[Alert] = []
    for m in assignees:
        alerts.extend(_assignee_alerts(m))
    for f in functions:
        alerts.extend(_function_alerts(f))
    alerts.extend(_workload_alert(functions))
    if tickets is not None and not tickets.empty:
        alerts.extend(_project_alerts(tickets))
    return sorted(
        alerts,
        key=lambda a: (
            ALERT_PRIORITY.get(a.type, 999),
            a.assignee or "",
            a.function or "",
            a.project or "",
        ),
    )
