from types import SimpleNamespace

import pytest

from tracker_metrics.core.thresholds import Thresholds, ThresholdsError, default_thresholds, load_thresholds


def test_defaults():
    t = default_thresholds()
    assert t.top_performer_z == 1.0
    assert t.low_performer_z == -1.0
    assert t.high_bug_rate == 0.25
    assert t.high_revise_rate == 0.20
    assert t.overloaded_multiplier == 1.3
    assert t.underutilized_multiplier == 0.6
    assert (t.story_points_weight, t.ticket_count_weight, t.project_variety_weight) == (0.5, 0.25, 0.25)
    assert (t.revise_rate_penalty, t.bug_rate_penalty) == (0.8, 0.5)
    assert (t.underutilized_threshold, t.active_weeks_threshold) == (0.6, 0.7)
    assert default_thresholds() is t


def test_from_mapping_accepts_camel_and_snake_case():
    t = Thresholds.from_mapping({"highBugRate": 0.4, "top_performer_z": 1.5, "notAThreshold": 3})
    assert t.high_bug_rate == 0.4
    assert t.top_performer_z == 1.5
    assert t.low_performer_z == -1.0


def test_from_mapping_missing_or_none_keeps_defaults():
    assert Thresholds.from_mapping(None) == Thresholds()
    assert Thresholds.from_mapping({"highBugRate": None}).high_bug_rate == 0.25


def test_from_mapping_reads_object_attributes():
    t = Thresholds.from_mapping(SimpleNamespace(overloadedMultiplier="1.5"))
    assert t.overloaded_multiplier == 1.5


def test_as_dict_uses_camel_case():
    d = Thresholds().as_dict()
    assert d["topPerformerZ"] == 1.0
    assert d["activeWeeksThreshold"] == 0.7
    assert len(d) == 13


@pytest.mark.parametrize(
    "data",
    [
        {"highBugRate": "lots"},
        {"highBugRate": True},
        {"highBugRate": float("nan")},
        {"storyPointsWeight": -0.5},
        {"bugRatePenalty": [0.5]},
    ],
)
def test_invalid_values_raise(data):
    with pytest.raises(ThresholdsError):
        Thresholds.from_mapping(data)


def test_negative_z_cut_is_allowed():
    assert Thresholds.from_mapping({"lowPerformerZ": -2}).low_performer_z == -2.0


def test_load_thresholds_from_yaml(tmp_path):
    path = tmp_path / "thresholds.yaml"
    path.write_text("openproject_thresholds:\n  highReviseRate: 0.3\n  bug_rate_penalty: 0.4\n")
    t = load_thresholds(path)
    assert t.high_revise_rate == 0.3
    assert t.bug_rate_penalty == 0.4
    assert t.high_bug_rate == 0.25


def test_load_thresholds_bare_mapping(tmp_path):
    path = tmp_path / "thresholds.yaml"
    path.write_text("topPerformerZ: 2\n")
    assert load_thresholds(path).top_performer_z == 2.0


def test_load_thresholds_missing_file_or_path(tmp_path):
    assert load_thresholds(None) == Thresholds()
    assert load_thresholds(tmp_path / "absent.yaml") == Thresholds()


def test_load_thresholds_rejects_bad_files(tmp_path):
    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- 1\n- 2\n")
    with pytest.raises(ThresholdsError):
        load_thresholds(not_mapping)

    broken = tmp_path / "broken.yaml"
    broken.write_text("highBugRate: [0.3\n")
    with pytest.raises(ThresholdsError):
        load_thresholds(broken)

    bad_value = tmp_path / "bad.yaml"
    bad_value.write_text("openproject_thresholds:\n  highBugRate: high\n")
    with pytest.raises(ThresholdsError):
        load_thresholds(bad_value)
