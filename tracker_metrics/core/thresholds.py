"""Threshold configuration: defaults, validation, and YAML loading.

Thresholds are validated here, at the configuration boundary. The
aggregation and flagging passes assume they receive a validated
``Thresholds`` value and never re-check it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .config import THRESHOLDS_KEY

logger = logging.getLogger(__name__)

_DEFAULTS: Thresholds | None = None

# Fields that scale or discount scores; negative values are rejected
_NON_NEGATIVE = frozenset(
    {
        "story_points_weight",
        "ticket_count_weight",
        "project_variety_weight",
        "revise_rate_penalty",
        "bug_rate_penalty",
        "overloaded_multiplier",
        "underutilized_multiplier",
        "underutilized_threshold",
        "active_weeks_threshold",
    }
)


class ThresholdsError(ValueError):
    """Raised when a threshold value cannot be used by the engine."""


@dataclass(frozen=True, slots=True)
class Thresholds:
    top_performer_z: float = 1.0
    low_performer_z: float = -1.0
    high_bug_rate: float = 0.25
    high_revise_rate: float = 0.20
    overloaded_multiplier: float = 1.3
    underutilized_multiplier: float = 0.6
    story_points_weight: float = 0.5
    ticket_count_weight: float = 0.25
    project_variety_weight: float = 0.25
    revise_rate_penalty: float = 0.8
    bug_rate_penalty: float = 0.5
    underutilized_threshold: float = 0.6
    active_weeks_threshold: float = 0.7

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | object | None) -> Thresholds:
        """Build thresholds from any mapping or attribute-bearing object.

        Keys may be camelCase (``topPerformerZ``) or snake_case
        (``top_performer_z``). Missing or ``None`` fields keep their
        defaults; unknown keys are ignored.

        Raises
        ------
        ThresholdsError
            If a supplied value is non-numeric or non-finite, or a weight,
            penalty, multiplier or ratio is negative.
        """
        base = default_thresholds()
        if data is None:
            return base
        if isinstance(data, Thresholds):
            return data
        updates: dict[str, float] = {}
        for f in fields(cls):
            raw = _lookup(data, f.name)
            if raw is None:
                continue
            updates[f.name] = _coerce(f.name, raw)
        return replace(base, **updates)

    def as_dict(self) -> dict[str, float]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _lookup(data: Mapping[str, Any] | object, name: str):
    keys = (_camel(name), name)
    if isinstance(data, Mapping):
        for key in keys:
            if key in data:
                return data[key]
        return None
    for key in keys:
        if hasattr(data, key):
            return getattr(data, key)
    return None


def _coerce(name: str, raw: Any) -> float:
    if isinstance(raw, bool):
        raise ThresholdsError(f"Threshold '{name}' must be numeric, got {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ThresholdsError(f"Threshold '{name}' must be numeric, got {raw!r}") from exc
    if not math.isfinite(value):
        raise ThresholdsError(f"Threshold '{name}' must be finite, got {raw!r}")
    if name in _NON_NEGATIVE and value < 0:
        raise ThresholdsError(f"Threshold '{name}' must be non-negative, got {value}")
    return value


def default_thresholds() -> Thresholds:
    """Return the process-wide default thresholds (built once)."""
    global _DEFAULTS
    if _DEFAULTS is None:
        _DEFAULTS = Thresholds()
    return _DEFAULTS


def load_thresholds(path: str | Path | None = None) -> Thresholds:
    """Load threshold overrides from a YAML file.

    The file may hold the overrides under the ``openproject_thresholds`` key
    or as a bare mapping. A missing path or file yields the defaults.

    Raises
    ------
    ThresholdsError
        If the file is not valid YAML, is not a mapping, or holds invalid
        values.
    """
    if path is None:
        return default_thresholds()
    yaml_path = Path(path)
    if not yaml_path.exists():
        logger.info("Thresholds file %s not found; using defaults", yaml_path)
        return default_thresholds()
    try:
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ThresholdsError(f"Could not read thresholds file {yaml_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ThresholdsError(f"Invalid thresholds file {yaml_path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ThresholdsError(f"Thresholds file {yaml_path} must contain a mapping")
    section = data.get(THRESHOLDS_KEY, data)
    if not isinstance(section, Mapping):
        raise ThresholdsError(f"'{THRESHOLDS_KEY}' in {yaml_path} must be a mapping")
    thresholds = Thresholds.from_mapping(section)
    logger.debug("Loaded thresholds from %s: %s", yaml_path, thresholds)
    return thresholds
