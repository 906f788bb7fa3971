"""
Error types raised by the analytics engine.

Missing history is never an error: extraction falls back to default feature
values and the confidence of the result drops instead.
"""

import math


class AnalyticsError(Exception):
    """Base class for all analytics engine errors."""


class InvalidInputError(AnalyticsError, ValueError):
    """Request or record is missing required fields or holds bad values."""


class NotFoundError(AnalyticsError, LookupError):
    """Unknown athlete, program or session."""


class ComputationError(AnalyticsError, ArithmeticError):
    """An intermediate result was NaN or infinite."""


def ensure_finite(name: str, value: float) -> float:
    """Return value unchanged, raising ComputationError if it is not finite."""
    if value is None or not math.isfinite(value):
        raise ComputationError(f"{name} is not a finite number: {value!r}")
    return value
