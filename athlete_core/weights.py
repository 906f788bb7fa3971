"""
Adaptive factor weights and the outcome feedback nudge.

For each factor named in an outcome's contributing factors:

    w ← clamp(w × 1.05, floor, ceiling)    on success
    w ← clamp(w × 0.95, floor, ceiling)    on failure

then the vector is renormalized to sum to 1. Plain division can push a
weight back outside [floor, ceiling], so renormalization solves for the
scale t with Σ clip(w × t, floor, ceiling) = 1 instead. When no weight hits
a bound this is exactly w / Σw.
"""

from typing import Dict, Iterable, Optional

import numpy as np

from .config import EngineConfig
from .errors import ComputationError, ensure_finite
from .models import Outcome


DEFAULT_ADAPTIVE_WEIGHTS: Dict[str, float] = {
    'trainingConsistency': 0.25,
    'trainingLoad': 0.20,
    'recoveryQuality': 0.15,
    'skillDevelopment': 0.15,
    'motivation': 0.10,
    'stress': 0.08,
    'competitionLevel': 0.07,
}

SUM_TOLERANCE = 1e-6


def default_weights() -> Dict[str, float]:
    return dict(DEFAULT_ADAPTIVE_WEIGHTS)


def renormalize_within_bounds(
    weights: Dict[str, float],
    floor: float = 0.05,
    ceiling: float = 0.40,
    iterations: int = 200
) -> Dict[str, float]:
    """
    Scale weights to sum to 1 with every value inside [floor, ceiling].

    Σ clip(w × t) is continuous and non-decreasing in t, running from
    n × floor at t = 0 to n × ceiling for large t, so bisection finds t
    whenever n × floor <= 1 <= n × ceiling.
    """
    names = list(weights)
    w = np.array([weights[k] for k in names], dtype=float)
    n = w.size

    if n == 0 or not np.all(np.isfinite(w)) or np.any(w <= 0):
        raise ComputationError(f"Cannot renormalize weights {weights}")
    if not (n * floor <= 1.0 <= n * ceiling):
        raise ComputationError(
            f"{n} weights cannot sum to 1 within [{floor}, {ceiling}]"
        )

    def total(t: float) -> float:
        return float(np.clip(w * t, floor, ceiling).sum())

    low = 0.0
    high = 1.0 / w.sum()
    while total(high) < 1.0:
        high *= 2

    for _ in range(iterations):
        mid = (low + high) / 2
        if total(mid) < 1.0:
            low = mid
        else:
            high = mid

    scaled = np.clip(w * high, floor, ceiling)

    # Spread the residual bisection error over the weights still inside the bounds
    free = (scaled > floor) & (scaled < ceiling)
    residual = 1.0 - scaled.sum()
    if free.any():
        scaled[free] += residual / free.sum()

    ensure_finite('weight sum', float(scaled.sum()))
    return {k: float(v) for k, v in zip(names, scaled)}


def apply_outcome(
    weights: Optional[Dict[str, float]],
    outcome: Outcome,
    config: Optional[EngineConfig] = None
) -> Dict[str, float]:
    """
    Nudge the factors that contributed to an outcome.

    Args:
        weights: Current weights (default vector if None)
        outcome: Reported outcome
        config: Multipliers and bounds (defaults if None)

    Returns:
        New weight dictionary; the input is not modified
    """
    config = config or EngineConfig()
    updated = dict(weights) if weights else default_weights()

    multiplier = config.success_multiplier if outcome.success else config.failure_multiplier
    contributing = set(outcome.contributing_factors)

    for factor in updated:
        if factor in contributing:
            nudged = updated[factor] * multiplier
            updated[factor] = min(config.weight_ceiling, max(config.weight_floor, nudged))

    return renormalize_within_bounds(updated, config.weight_floor, config.weight_ceiling)


def weights_are_valid(
    weights: Dict[str, float],
    floor: float = 0.05,
    ceiling: float = 0.40,
    tolerance: float = SUM_TOLERANCE
) -> bool:
    """Check the sum-to-one and per-value bound invariant."""
    values = list(weights.values())
    if abs(sum(values) - 1.0) > tolerance:
        return False
    return all(floor - tolerance <= v <= ceiling + tolerance for v in values)


def unknown_factors(factors: Iterable[str]) -> list:
    """Contributing factors that do not name an adaptive weight."""
    return sorted(set(factors) - set(DEFAULT_ADAPTIVE_WEIGHTS))
