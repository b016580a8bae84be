"""Ticket classification from free-text tracker fields.

Every function here is total over arbitrary string input: blank or missing
values map to a defined category instead of raising. Matching rules are the
explicit substring/exact tables from config.py (TYPE_ALIASES, BUG_MARKER,
REVISE_MARKER and the assignee marker lists).
"""

from __future__ import annotations

import re
from collections.abc import Collection

from .config import (
    BUG_MARKER,
    DELETED_USER_MARKERS,
    FUNCTION_TYPES,
    PLACEHOLDER_ASSIGNEES,
    REVISE_MARKER,
    TEAM_NAME_MARKERS,
    TYPE_ALIASES,
    UNKNOWN_FUNCTION,
)

_FUNCTION_LOOKUP: dict[str, str] = {f.lower(): f for f in FUNCTION_TYPES}
# Letters and digits bound a word; "_" and punctuation separate words
_TEAM_PATTERN = re.compile(r"(?<![a-z0-9])(?:" + "|".join(map(re.escape, TEAM_NAME_MARKERS)) + r")(?![a-z0-9])")


def normalize_type(value: str | None) -> str:
    """Map a raw ticket type label to its canonical category.

    Parameters
    ----------
    value : str | None
        Raw ``Type`` column value.

    Returns
    -------
    str
        One of Feature, Bug, Regression, Improvement, Release, Task, Other.

    Examples
    --------
    >>> normalize_type("FEATURE")
    'Feature'
    >>> normalize_type("Production Bug")
    'Bug'
    >>> normalize_type("User story")
    'Other'
    """
    if not value:
        return "Other"
    text = str(value).strip().lower()
    if BUG_MARKER in text:
        return "Bug"
    return TYPE_ALIASES.get(text, "Other")


def is_bug(normalized_type: str, raw_type: str | None) -> bool:
    if normalized_type == "Bug":
        return True
    return BUG_MARKER in str(raw_type or "").lower()


def is_revise(subject: str | None) -> bool:
    """True when the subject mentions a revision anywhere, any casing."""
    return REVISE_MARKER in str(subject or "").lower()


def normalize_function(value: str | None) -> str:
    """Match a discipline tag case-insensitively, falling back to "Unknown"."""
    if not value:
        return UNKNOWN_FUNCTION
    text = " ".join(str(value).split()).lower()
    return _FUNCTION_LOOKUP.get(text, UNKNOWN_FUNCTION)


def is_valid_assignee(value: str | None, roster: Collection[str] | None = None) -> bool:
    """Check whether an assignee name denotes a real individual contributor.

    Team accounts (any name with a whole-word team or discipline marker,
    so "Backend Team" is rejected but "Steam Smith" is not), deleted-user
    markers and placeholders such as "Unassigned" or "N/A" are rejected.
    When ``roster`` is given and non-empty, only names on the roster
    (case-insensitive) are valid.

    Parameters
    ----------
    value : str | None
        Assignee display name.
    roster : Collection[str] | None
        Optional allow-list of known people.

    Returns
    -------
    bool
        True if the name counts toward per-person metrics.
    """
    if value is None:
        return False
    text = str(value).strip()
    lowered = text.lower()
    if lowered in PLACEHOLDER_ASSIGNEES:
        return False
    if any(marker in lowered for marker in DELETED_USER_MARKERS):
        return False
    if _TEAM_PATTERN.search(lowered):
        return False
    if roster:
        known = {" ".join(str(name).split()).lower() for name in roster}
        return " ".join(text.split()).lower() in known
    return True
