import pandas as pd
import pytest

from tracker_metrics import MetricsService, compute_metrics, parse_rows
from tracker_metrics.cli import main, report_frames
from tracker_metrics.core.loader import ReportInputError, read_report_csv, read_report_text

CSV_TEXT = """\
ID,Assignee,Function,Status,Story Points,Type,Project,Sprint Closed,Sprint Created,Subject,Created At,Closed At,Parent
,Alice Johnson,BE,Closed,100,Task,Orion,Sprint 01,Sprint 01,Payments API,2024-01-01,2024-01-05,
,Bob Smith,BE,Closed,20,Task,Orion,Sprint 01,Sprint 01,Refund flow,2024-01-01,2024-01-03,
,Backend Team,BE,Closed,40,Task,Orion,Sprint 01,Sprint 01,Shared chores,2024-01-01,2024-01-03,
,,BE,Closed,13,Task,Orion,Sprint 01,Sprint 01,Orphan,2024-01-01,2024-01-03,
,Bob Smith,BE,In Progress,8,Task,Orion,Sprint 02,Sprint 02,Reports,2024-01-04,,
"""


@pytest.fixture
def rows():
    return read_report_text(CSV_TEXT)


def test_read_report_text(rows):
    assert len(rows) == 5
    assert rows[0]["Assignee"] == "Alice Johnson"
    assert rows[3]["Assignee"] == ""


def test_read_report_missing_columns():
    with pytest.raises(ReportInputError):
        read_report_text("Assignee,Status\nAlice,Closed\n")


def test_read_report_csv_missing_file(tmp_path):
    with pytest.raises(ReportInputError):
        read_report_csv(tmp_path / "nope.csv")


def test_two_member_cohort_flags_and_alerts(rows):
    report = MetricsService().run(rows)
    assert len(report.tickets) == 5
    by_name = {m.assignee: m for m in report.assignees}
    assert set(by_name) == {"Alice Johnson", "Bob Smith"}

    alice, bob = by_name["Alice Johnson"], by_name["Bob Smith"]
    assert alice.z_score == pytest.approx(1.0)
    assert bob.z_score == pytest.approx(-1.0)
    assert "top_performer" in alice.flags
    assert "low_performer" in bob.flags
    assert bob.ticket_count == 1
    assert alice.avg_cycle_time_days == pytest.approx(4.0)

    (be,) = report.functions
    assert be.function == "BE"
    assert be.member_count == 2
    assert be.total_story_points == 120
    assert not be.overloaded and not be.underutilized

    assert [(a.type, a.category) for a in report.alerts] == [
        ("low-performer", "assignee"),
        ("underutilized", "assignee"),
        ("top-performer", "assignee"),
        ("achievement", "project"),
        ("achievement", "function"),
    ]
    # Project delivery counts every closed ticket, team accounts included
    assert report.alerts[3].project == "Orion"
    assert report.alerts[3].value == 173.0


def test_equal_cohort_has_no_performance_flags():
    base = {"Function": "QA", "Status": "Closed", "Story Points": "5", "Sprint Closed": "Sprint 01"}
    tickets = parse_rows([{**base, "Assignee": name} for name in ("Amy Lee", "Ben Ode", "Cy Park")])
    report = compute_metrics(tickets)
    for m in report.assignees:
        assert m.z_score == 0.0
        assert not m.flags & {"top_performer", "low_performer"}


@pytest.mark.parametrize("cuts", [{"topPerformerZ": 0.0, "lowPerformerZ": 0.0}, {"topPerformerZ": -0.5}])
def test_equal_cohort_ignores_z_cuts_at_zero(cuts):
    base = {"Function": "QA", "Status": "Closed", "Story Points": "5", "Sprint Closed": "Sprint 01"}
    tickets = parse_rows([{**base, "Assignee": name} for name in ("Amy Lee", "Ben Ode", "Cy Park")])
    report = compute_metrics(tickets, cuts)
    for m in report.assignees:
        assert m.z_score == 0.0
        assert not m.flags & {"top_performer", "low_performer"}


def test_compute_is_idempotent(rows):
    service = MetricsService({"highBugRate": 0.3})
    tickets = service.parse(rows)
    first = service.compute(tickets)
    second = service.compute(tickets)
    assert first.assignees == second.assignees
    assert first.functions == second.functions
    assert first.alerts == second.alerts


def test_random_ids_do_not_change_metrics(rows):
    service = MetricsService()
    a = service.run(rows, deterministic_ids=False)
    b = service.run(rows, deterministic_ids=False)
    assert [t.id for t in a.tickets] != [t.id for t in b.tickets]
    assert a.assignees == b.assignees


def test_roster_restricts_contributors(rows):
    report = MetricsService(roster=["alice johnson"]).run(rows)
    assert [m.assignee for m in report.assignees] == ["Alice Johnson"]


def test_empty_input():
    report = MetricsService().run([])
    assert report.tickets == []
    assert report.assignees == []
    assert report.functions == []
    assert report.features == []
    assert report.alerts == []


def test_report_frames_join_flags(rows):
    frames = report_frames(MetricsService().run(rows))
    assignees = frames["assignees"].set_index("assignee")
    assert assignees.loc["Alice Johnson", "flags"] == "top_performer"
    assert assignees.loc["Bob Smith", "flags"] == "low_performer, underutilized"


def test_cli_writes_outputs(tmp_path, capsys):
    report = tmp_path / "export.csv"
    report.write_text(CSV_TEXT, encoding="utf-8")
    thresholds = tmp_path / "thresholds.yaml"
    thresholds.write_text("openproject_thresholds:\n  topPerformerZ: 2.0\n")
    out_dir = tmp_path / "out"

    assert main([str(report), "--thresholds", str(thresholds), "--output-dir", str(out_dir)]) == 0
    for name in ("assignees", "functions", "features", "alerts"):
        assert (out_dir / f"{name}.csv").exists()
    assignees = pd.read_csv(out_dir / "assignees.csv", keep_default_na=False)
    alice = assignees[assignees["assignee"] == "Alice Johnson"].iloc[0]
    assert alice["flags"] == ""
    assert "5 tickets, 2 assignees" in capsys.readouterr().out


def test_cli_rejects_bad_thresholds(tmp_path):
    report = tmp_path / "export.csv"
    report.write_text(CSV_TEXT, encoding="utf-8")
    thresholds = tmp_path / "thresholds.yaml"
    thresholds.write_text("highBugRate: lots\n")
    assert main([str(report), "--thresholds", str(thresholds), "--output-dir", str(tmp_path / "out")]) == 2


def test_cli_roster_file(tmp_path):
    report = tmp_path / "export.csv"
    report.write_text(CSV_TEXT, encoding="utf-8")
    roster = tmp_path / "roster.txt"
    roster.write_text("Bob Smith\n\n")
    out_dir = tmp_path / "out"
    assert main([str(report), "--roster", str(roster), "--output-dir", str(out_dir)]) == 0
    assignees = pd.read_csv(out_dir / "assignees.csv")
    assert assignees["assignee"].tolist() == ["Bob Smith"]


def test_cli_unreadable_report_returns_error(tmp_path):
    # A directory is not a readable CSV file
    assert main([str(tmp_path), "--output-dir", str(tmp_path / "out")]) == 2
    assert not (tmp_path / "out").exists()


def test_cli_unreadable_thresholds_and_roster(tmp_path):
    report = tmp_path / "export.csv"
    report.write_text(CSV_TEXT, encoding="utf-8")
    folder = tmp_path / "configs"
    folder.mkdir()
    out_dir = str(tmp_path / "out")
    assert main([str(report), "--thresholds", str(folder), "--output-dir", out_dir]) == 2
    assert main([str(report), "--roster", str(folder), "--output-dir", out_dir]) == 2
    assert main([str(report), "--roster", str(tmp_path / "missing.txt"), "--output-dir", out_dir]) == 2
