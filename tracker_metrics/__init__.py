"""Ticket normalization and performance metrics engine."""

from tracker_metrics.core.mappers import parse_rows
from tracker_metrics.core.models import Alert, AssigneeMetrics, FeatureRollup, FunctionMetrics, Ticket
from tracker_metrics.core.service import MetricsReport, MetricsService, compute_metrics
from tracker_metrics.core.thresholds import Thresholds, ThresholdsError, load_thresholds

__all__ = [
    "Alert",
    "AssigneeMetrics",
    "FeatureRollup",
    "FunctionMetrics",
    "MetricsReport",
    "MetricsService",
    "Ticket",
    "Thresholds",
    "ThresholdsError",
    "compute_metrics",
    "load_thresholds",
    "parse_rows",
]
