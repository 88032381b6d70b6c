# PURPOSE: Small numeric helpers shared by the analytics modules.
# CONTEXT: Population statistics (ddof=0) over plain Python sequences, plus a guarded
#          percentage so no caller ever divides by a zero total.

from __future__ import annotations
from typing import Sequence, Tuple

import numpy as np


def safe_pct(part: float, total: float) -> float:
    """Percentage of part in total; 0 when the total is zero or negative."""
    if total <= 0:
        return 0.0
    return part / total * 100


def mean_std(values: Sequence[float]) -> Tuple[float, float]:
    """Population mean and standard deviation; (0, 0) for an empty sequence."""
    if len(values) == 0:
        return 0.0, 0.0
    arr = np.asarray(values, dtype=float)
    return float(arr.mean()), float(arr.std(ddof=0))


def coefficient_of_variation(values: Sequence[float]) -> float | None:
    """
    stddev / mean as a ratio (not a percentage).

    returns None when the mean is not positive, so callers pick their own neutral value.
    """
    mean, std = mean_std(values)
    if mean <= 0:
        return None
    return std / mean


def linear_fit(y: Sequence[float]) -> Tuple[float, float]:
    """
    Ordinary least squares over equally spaced points x = 0..n-1.

    returns:
    - (slope, intercept); (0, 0) with fewer than two points.
    """
    n = len(y)
    if n < 2:
        return 0.0, 0.0
    x = np.arange(n, dtype=float)
    ys = np.asarray(y, dtype=float)
    x_mean, y_mean = x.mean(), ys.mean()
    slope = float(((x - x_mean) * (ys - y_mean)).sum() / ((x - x_mean) ** 2).sum())
    return slope, float(y_mean - slope * x_mean)
