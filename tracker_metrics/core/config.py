"""Central configuration, constants, and shared column definitions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Report Settings
# =============================================================================
TIMEZONE = "Asia/Jakarta"

# Identifier under which the external settings store keeps threshold overrides
THRESHOLDS_KEY = "openproject_thresholds"

# =============================================================================
# Input Header (exported tracker CSV)
# =============================================================================
COL_ID = "ID"
COL_ID_ALT = "#"
COL_ASSIGNEE = "Assignee"
COL_FUNCTION = "Function"
COL_STATUS = "Status"
COL_STORY_POINTS = "Story Points"
COL_TYPE = "Type"
COL_PROJECT = "Project"
COL_SUBJECT = "Subject"
COL_SPRINT_CLOSED = "Sprint Closed"
COL_SPRINT_CREATED = "Sprint Created"
COL_CREATED_AT = "Created At"
COL_PARENT = "Parent"

# Closed timestamp candidates, first non-empty wins
CLOSED_AT_COLUMNS: Sequence[str] = ("Closed At", "Closed Date", "Updated At")

REQUIRED_COLUMNS: frozenset[str] = frozenset({COL_ASSIGNEE, COL_STATUS, COL_STORY_POINTS})

# =============================================================================
# Ticket Defaults
# =============================================================================
CLOSED_STATUS = "Closed"
DEFAULT_ASSIGNEE = "Unassigned"
DEFAULT_PROJECT = "Unknown"
DEFAULT_TYPE = "Task"
UNKNOWN_FUNCTION = "Unknown"
MISSING_SPRINT = "#N/A"

# =============================================================================
# Team Disciplines
# =============================================================================
FUNCTION_TYPES: Sequence[str] = (
    "BE",
    "FE",
    "QA",
    "DESIGNER",
    "PRODUCT",
    "INFRA",
    "BUSINESS SUPPORT",
    "RESEARCHER",
    "PRINCIPAL",
    "COORDINATOR",
    "UX WRITER",
    "APPS",
)

# =============================================================================
# Ticket Type Classification
# =============================================================================
NORMALIZED_TYPES: Sequence[str] = (
    "Feature",
    "Bug",
    "Regression",
    "Improvement",
    "Release",
    "Task",
    "Other",
)

# Exact (lowercase) label matches; anything containing "bug" is a Bug first
TYPE_ALIASES: dict[str, str] = {
    "feature": "Feature",
    "regression": "Regression",
    "improvement": "Improvement",
    "release": "Release",
    "task": "Task",
}

BUG_MARKER = "bug"
REVISE_MARKER = "revise"

# =============================================================================
# Assignee Validity
# =============================================================================
# Exact (lowercase) names that are never real people
PLACEHOLDER_ASSIGNEES: frozenset[str] = frozenset(
    {
        "",
        "unassigned",
        "n/a",
        "#n/a",
        "none",
        "null",
        "nan",
        "-",
    }
)

# Substrings that mark deleted or deactivated accounts
DELETED_USER_MARKERS: Sequence[str] = (
    "deleted user",
    "[deleted]",
    "former user",
)

# Whole words that mark team or discipline accounts rather than individuals
TEAM_NAME_MARKERS: Sequence[str] = (
    "team",
    "frontend",
    "backend",
    "tester",
)

# =============================================================================
# Report Periods
# =============================================================================
TIME_PERIOD_MONTHS: dict[str, int] = {
    "1q": 3,
    "2q": 6,
    "3q": 9,
}

# =============================================================================
# Carry-Over and Team Alerts
# =============================================================================
# A closed ticket that ran longer than two weeks plus a day was carried over
CARRY_OVER_DAYS = 15

PROJECT_ACHIEVEMENT_SHARE = 0.4
PROJECT_ACHIEVEMENT_MIN_SP = 50
PROJECT_REVISE_RATE = 0.3
FUNCTION_REVISE_RATE = 0.25
FUNCTION_QUALITY_RATE = 0.15
FUNCTION_ACHIEVEMENT_SP = 100
QUALITY_MIN_TICKETS = 10
WORKLOAD_GAP = 0.4

# =============================================================================
# Output Columns
# =============================================================================
ASSIGNEE_COLUMNS: Sequence[str] = (
    "assignee",
    "function",
    "ticket_count",
    "total_story_points",
    "effective_story_points",
    "user_story_story_points",
    "bug_story_points",
    "revise_story_points",
    "bug_rate",
    "revise_rate",
    "z_score",
    "performance_score",
    "projects_worked_on",
    "active_weeks",
    "avg_cycle_time_days",
    "velocity_per_sprint",
    "carry_over_count",
    "carry_over_rate",
    "flags",
)

FUNCTION_COLUMNS: Sequence[str] = (
    "function",
    "member_count",
    "ticket_count",
    "total_story_points",
    "avg_story_points",
    "std_dev_story_points",
    "avg_cycle_time_days",
    "bug_rate_closed",
    "revise_rate_closed",
    "carry_over_count",
    "carry_over_rate",
    "flags",
)


@dataclass(slots=True)
class AppSettings:
    csv_encoding: str = "utf-8-sig"
    output_encoding: str = "utf-8"
    float_precision: int = 4


SETTINGS = AppSettings()
