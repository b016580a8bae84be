import pytest

from tracker_metrics.analytics.metrics.alerts import build_alerts, function_load_ratios
from tracker_metrics.core.mappers import parse_rows, tickets_to_dataframe
from tracker_metrics.core.models import AssigneeMetrics, FunctionMetrics


def _member(name, flags, **kwargs):
    params = dict(
        assignee=name,
        function="BE",
        ticket_count=3,
        total_story_points=10,
        effective_story_points=8.0,
        bug_rate=0.3,
        revise_rate=0.25,
        z_score=1.2,
        flags=set(flags),
    )
    params.update(kwargs)
    return AssigneeMetrics(**params)


def test_alerts_sorted_by_priority_then_name():
    assignees = [
        _member("Zed Young", {"top_performer", "high_bug_rate"}),
        _member("Amy Lee", {"high_revise_rate", "high_bug_rate", "underutilized"}),
    ]
    functions = [
        FunctionMetrics("QA", 2, 60, 3.0, 0.1, 0.0, avg_story_points=30.0, flags={"overloaded"}),
        FunctionMetrics("FE", 2, 8, None, 0.0, 0.0, avg_story_points=4.0, flags={"underutilized"}),
    ]
    alerts = build_alerts(assignees, functions)
    assert [(a.type, a.assignee, a.function) for a in alerts] == [
        ("overloaded", None, "QA"),
        ("workload-imbalance", None, None),
        ("high-revise", "Amy Lee", "BE"),
        ("high-bug", "Amy Lee", "BE"),
        ("high-bug", "Zed Young", "BE"),
        ("underutilized", None, "FE"),
        ("underutilized", "Amy Lee", "BE"),
        ("top-performer", "Zed Young", "BE"),
    ]
    assert alerts[0].value == 30.0
    assert "30%" in alerts[4].message
    assert alerts[1].category == "cross-function"


def test_no_flags_no_alerts():
    assert build_alerts([_member("Amy Lee", set())], []) == []


def _ticket_frame(project_sizes):
    rows = []
    for project, count, revises in project_sizes:
        for i in range(count):
            rows.append(
                {
                    "Assignee": "Amy Lee",
                    "Status": "Closed",
                    "Story Points": "5",
                    "Project": project,
                    "Subject": "Revise layout" if i < revises else "Build page",
                }
            )
    rows.append({"Assignee": "Amy Lee", "Status": "In Progress", "Story Points": "100", "Project": "Lyra"})
    return tickets_to_dataframe(parse_rows(rows))


def test_project_delivery_and_quality_alerts():
    tickets = _ticket_frame([("Orion", 12, 4), ("Lyra", 2, 2)])
    alerts = build_alerts([], [], tickets)
    assert [(a.type, a.project) for a in alerts] == [
        ("quality-concern", "Orion"),
        ("achievement", "Orion"),
    ]
    assert alerts[0].value == pytest.approx(4 / 12)
    assert alerts[1].value == 60.0
    assert all(a.category == "project" for a in alerts)


def test_project_alerts_need_enough_tickets():
    # 100% revise but fewer than ten tickets, and under the delivery floor
    assert build_alerts([], [], _ticket_frame([("Orion", 9, 9)])) == []


def test_function_quality_alerts():
    functions = [
        FunctionMetrics("BE", 1, 40, None, 0.0, 0.0, ticket_count=12, revise_count=4),
        FunctionMetrics("FE", 1, 30, None, 0.0, 0.0, ticket_count=10, revise_count=1),
        FunctionMetrics("QA", 1, 20, None, 0.0, 0.0, ticket_count=9, revise_count=5),
    ]
    alerts = build_alerts([], functions)
    assert [(a.type, a.function) for a in alerts] == [("quality-concern", "BE"), ("achievement", "FE")]
    assert "33%" in alerts[0].message


def test_function_delivery_achievement_needs_two_members():
    functions = [
        FunctionMetrics("BE", 2, 120, None, 0.0, 0.0, avg_story_points=60.0),
        FunctionMetrics("FE", 1, 150, None, 0.0, 0.0, avg_story_points=150.0),
    ]
    alerts = [a for a in build_alerts([], functions) if a.type == "achievement"]
    assert [a.function for a in alerts] == ["BE"]


def test_workload_imbalance_between_staffed_functions():
    functions = [
        FunctionMetrics("QA", 1, 30, None, 0.0, 0.0, avg_story_points=30.0),
        FunctionMetrics("FE", 2, 8, None, 0.0, 0.0, avg_story_points=4.0),
        FunctionMetrics("BE", 2, 20, None, 0.0, 0.0, avg_story_points=10.0),
    ]
    assert function_load_ratios(functions) == pytest.approx({"QA": 3.0, "FE": 0.4, "BE": 1.0})
    (alert,) = [a for a in build_alerts([], functions) if a.type == "workload-imbalance"]
    assert alert.value == pytest.approx(0.6)
    assert "BE" in alert.message and "FE" in alert.message

    functions[2] = FunctionMetrics("BE", 2, 11, None, 0.0, 0.0, avg_story_points=5.5)
    assert not [a for a in build_alerts([], functions) if a.type == "workload-imbalance"]
