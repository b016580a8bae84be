"""Domain data models for tracker tickets and derived performance metrics."""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd

from .config import CLOSED_STATUS


@dataclass(frozen=True, slots=True)
class Ticket:
    id: str
    assignee: str
    function: str
    status: str
    story_points: int
    type: str
    normalized_type: str
    project: str
    sprint_closed: str
    sprint_created: str
    subject: str
    is_bug: bool
    is_revise: bool
    # NaT marks an unparseable timestamp; closed_date is None when absent
    created_date: pd.Timestamp
    closed_date: pd.Timestamp | None
    cycle_days: int | None
    parent_id: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.status == CLOSED_STATUS


@dataclass(slots=True)
class AssigneeMetrics:
    assignee: str
    function: str
    ticket_count: int
    total_story_points: int
    effective_story_points: float
    bug_rate: float
    revise_rate: float
    performance_score: float = 0.0
    z_score: float = 0.0
    flags: set[str] = field(default_factory=set)
    projects_worked_on: int = 0
    active_weeks: int = 0
    user_story_story_points: int = 0
    bug_story_points: int = 0
    revise_story_points: int = 0
    bug_count: int = 0
    revise_count: int = 0
    avg_cycle_time_days: float | None = None
    sprints_participated: int = 0
    velocity_per_sprint: float = 0.0
    carry_over_count: int = 0
    carry_over_rate: float = 0.0


@dataclass(slots=True)
class FunctionMetrics:
    function: str
    member_count: int
    total_story_points: int
    avg_cycle_time_days: float | None
    bug_rate_closed: float
    revise_rate_closed: float
    ticket_count: int = 0
    bug_count: int = 0
    revise_count: int = 0
    avg_story_points: float = 0.0
    std_dev_story_points: float = 0.0
    carry_over_count: int = 0
    carry_over_rate: float = 0.0
    flags: set[str] = field(default_factory=set)

    @property
    def overloaded(self) -> bool:
        return "overloaded" in self.flags

    @property
    def underutilized(self) -> bool:
        return "underutilized" in self.flags


@dataclass(slots=True)
class FeatureRollup:
    feature_id: str
    title: str
    project: str
    child_count: int
    total_story_points: int
    bug_children: int
    start: pd.Timestamp | None
    end: pd.Timestamp | None


@dataclass(slots=True)
class Alert:
    type: str
    message: str
    assignee: str | None = None
    function: str | None = None
    value: float | None = None
    # assignee, function, project or cross-function
    category: str = "assignee"
    project: str | None = None
