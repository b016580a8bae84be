"""Cohort statistics: population mean, standard deviation and z-scores."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd


def population_stats(values: pd.Series) -> tuple[float, float]:
    """Return ``(mean, std)`` treating the values as the whole population.

    Empty input yields ``(0.0, 0.0)``. Identical values always give a
    standard deviation of exactly 0.
    """
    numeric = pd.to_numeric(values, errors="coerce").dropna()
    if numeric.empty:
        return 0.0, 0.0
    mean = float(numeric.mean())
    if numeric.nunique() <= 1:
        return mean, 0.0
    return mean, float(np.std(numeric.to_numpy(dtype=float), ddof=0))


def z_scores(values: pd.Series) -> pd.Series:
    """Convert each value to ``(value - mean) / std`` over the cohort.

    Every score is 0 when the standard deviation is 0, which covers empty
    and single-member cohorts as well as cohorts of equal values.

    Examples
    --------
    >>> z_scores(pd.Series([100.0, 20.0])).tolist()
    [1.0, -1.0]
    """
    mean, std = population_stats(values)
    if std == 0 or not math.isfinite(std):
        return pd.Series(0.0, index=values.index)
    return (pd.to_numeric(values, errors="coerce").astype(float) - mean) / std
