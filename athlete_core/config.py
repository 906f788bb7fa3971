"""
Engine configuration.

All tunables live in one dataclass so a deployment can override them from a
JSON file without touching code. The literal model constants (risk weights,
performance factor weights, template tables) are not configuration and stay
in their modules.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Dict, Any, Tuple
import json

from .errors import InvalidInputError


@dataclass
class EngineConfig:
    """
    Tunable parameters for the analytics engine.

    Durations are in days unless the name says otherwise.
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # HISTORY FETCH
    # ═══════════════════════════════════════════════════════════════════════════

    history_window_days: int = 28          # Session lookback; injuries are fetched in full
    fetch_timeout_seconds: float = 2.0     # After this, history degrades to empty
    recent_session_count: int = 10         # Sessions used for load/performance averages

    # ═══════════════════════════════════════════════════════════════════════════
    # PREDICTION
    # ═══════════════════════════════════════════════════════════════════════════

    default_horizon_days: int = 30

    # ═══════════════════════════════════════════════════════════════════════════
    # ADAPTIVE WEIGHTS
    # ═══════════════════════════════════════════════════════════════════════════

    weight_floor: float = 0.05
    weight_ceiling: float = 0.40
    success_multiplier: float = 1.05
    failure_multiplier: float = 0.95

    # ═══════════════════════════════════════════════════════════════════════════
    # PROGRAMS
    # ═══════════════════════════════════════════════════════════════════════════

    default_program_duration_weeks: Optional[int] = None   # None keeps template duration
    completed_program_retention_days: int = 90

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EngineConfig':
        """Create configuration from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidInputError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**d)

    def validate(self) -> Tuple[bool, str]:
        """Validate parameter constraints."""
        issues = []

        if self.history_window_days <= 0:
            issues.append("history_window_days must be positive")
        if self.fetch_timeout_seconds <= 0:
            issues.append("fetch_timeout_seconds must be positive")
        if self.recent_session_count < 1:
            issues.append("recent_session_count must be at least 1")
        if self.default_horizon_days < 1:
            issues.append("default_horizon_days must be at least 1")

        # The 7-factor vector must be able to sum to 1 inside the bounds
        if not (0 < self.weight_floor < self.weight_ceiling <= 1):
            issues.append("Weights: 0 < floor < ceiling <= 1")
        elif not (7 * self.weight_floor <= 1.0 <= 7 * self.weight_ceiling):
            issues.append("Weight bounds cannot hold a 7-factor vector summing to 1")

        if not (1.0 < self.success_multiplier <= 1.5):
            issues.append("success_multiplier must be in (1.0, 1.5]")
        if not (0.5 <= self.failure_multiplier < 1.0):
            issues.append("failure_multiplier must be in [0.5, 1.0)")

        if self.default_program_duration_weeks is not None and self.default_program_duration_weeks < 1:
            issues.append("default_program_duration_weeks must be at least 1")
        if self.completed_program_retention_days < 0:
            issues.append("completed_program_retention_days must be non-negative")

        if issues:
            return False, "; ".join(issues)
        return True, "Valid"


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: JSON file with a subset of EngineConfig fields (defaults if None)

    Returns:
        Validated EngineConfig
    """
    if path is None:
        config = EngineConfig()
    else:
        with open(Path(path)) as f:
            config = EngineConfig.from_dict(json.load(f))

    ok, message = config.validate()
    if not ok:
        raise InvalidInputError(f"Invalid engine config: {message}")
    return config
