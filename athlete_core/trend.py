"""
Performance trend: closed-form ordinary least squares over the score index.

    slope     = (n Σxy - Σx Σy) / (n Σx² - (Σx)²)
    intercept = (Σy - slope Σx) / n
    R²        = 1 - SS_res / SS_tot      (clamped to [0, 1])

A constant series has no variance to explain: slope 0, R² 0.

with x = 0..n-1.
"""

from typing import Sequence

import numpy as np

from .errors import ensure_finite
from .models import TrendResult, TrendDirection


IMPROVING_SLOPE = 0.5
DECLINING_SLOPE = -0.5


def classify_trend(slope: float) -> TrendDirection:
    if slope > IMPROVING_SLOPE:
        return TrendDirection.IMPROVING
    if slope < DECLINING_SLOPE:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def analyze_trend(scores: Sequence[float]) -> TrendResult:
    """
    Fit a linear trend to a chronological score series.

    Args:
        scores: Performance scores, oldest first

    Returns:
        TrendResult; fewer than two points give a flat, stable trend
        with strength 0.5
    """
    y = np.asarray(scores, dtype=float)
    n = y.size

    if n < 2:
        return TrendResult(
            slope=0.0,
            intercept=float(y[0]) if n == 1 else 0.0,
            r_squared=0.0,
            direction=TrendDirection.STABLE,
            strength=0.5,
            n_points=n,
        )

    # Constant series: the fitted mean can differ from the values by rounding
    if np.ptp(y) == 0:
        return TrendResult(
            slope=0.0,
            intercept=float(ensure_finite('trend intercept', float(y[0]))),
            r_squared=0.0,
            direction=TrendDirection.STABLE,
            strength=0.0,
            n_points=n,
        )

    x = np.arange(n, dtype=float)
    sum_x = n * (n - 1) / 2
    sum_xx = n * (n - 1) * (2 * n - 1) / 6
    sum_y = y.sum()
    sum_xy = (x * y).sum()

    # n >= 2 keeps the denominator positive
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x ** 2)
    intercept = (sum_y - slope * sum_x) / n

    ss_tot = ((y - y.mean()) ** 2).sum()
    ss_res = ((y - (slope * x + intercept)) ** 2).sum()
    r_squared = float(np.clip(1 - ss_res / ss_tot, 0.0, 1.0))

    slope = float(ensure_finite('trend slope', float(slope)))
    intercept = float(ensure_finite('trend intercept', float(intercept)))
    r_squared = float(ensure_finite('trend r_squared', float(r_squared)))

    return TrendResult(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        direction=classify_trend(slope),
        strength=min(1.0, abs(slope)),
        n_points=n,
    )
