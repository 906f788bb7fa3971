"""
Feature extraction: raw athlete records to bounded [0, 1] feature vectors.

Two vectors are produced from the same history:
- Risk features (physical, training, performance, injury history)
- Performance features (consistency, load, recovery, skill, motivation,
  stress, competition level)

Every normalization is a linear map clamped to [0, 1]. Absent history never
raises; it yields the documented default and the feature is marked missing.
"""

from typing import List, Optional, Sequence, Tuple
import re

import numpy as np

from .models import (
    AthleteProfile,
    TrainingSessionRecord,
    InjuryRecord,
    FeatureVector,
)


# Defaults for absent profile attributes
DEFAULT_AGE = 20
DEFAULT_WEIGHT_LBS = 180.0
DEFAULT_HEIGHT = "6'0\""
DEFAULT_HEIGHT_INCHES = 72
DEFAULT_POSITION = 'QB'
DEFAULT_GAR_SCORE = 75.0

# A week: recovery fallback when fewer than two sessions are known
DEFAULT_RECOVERY_HOURS = 168.0

POSITION_RISK = {
    'QB': 0.3, 'RB': 0.7, 'WR': 0.6, 'TE': 0.5,
    'OL': 0.4, 'DL': 0.8, 'LB': 0.7, 'CB': 0.6, 'S': 0.6, 'K': 0.2, 'P': 0.2,
}
UNKNOWN_POSITION_RISK = 0.5

RISK_FEATURES = (
    'age', 'weight', 'height', 'position',
    'trainingLoad', 'sessionFrequency', 'recoveryTime',
    'recentPerformance',
    'previousInjuries', 'chronicConditions',
)

PERFORMANCE_FEATURES = (
    'trainingConsistency', 'trainingLoad', 'recoveryQuality',
    'skillDevelopment', 'motivation', 'stress', 'competitionLevel',
)

_HEIGHT_PATTERN = re.compile(r"(\d+)'\s*(\d+)\"?")


def _clamp01(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


# ═══════════════════════════════════════════════════════════════════════════════
# SCALAR NORMALIZATIONS
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_age(age: float) -> float:
    """Map 16-25 years onto [0, 1]."""
    return _clamp01((age - 16) / 9)


def normalize_weight(weight_lbs: float) -> float:
    """Map 140-300 lbs onto [0, 1]."""
    return _clamp01((weight_lbs - 140) / 160)


def height_to_inches(height: Optional[str]) -> int:
    """
    Parse a feet/inches string such as 6'2" into inches.

    Malformed or absent strings fall back to 72 inches (6'0").
    """
    if not height:
        return DEFAULT_HEIGHT_INCHES
    match = _HEIGHT_PATTERN.search(height)
    if match:
        return int(match.group(1)) * 12 + int(match.group(2))
    return DEFAULT_HEIGHT_INCHES


def normalize_height(height: Optional[str]) -> float:
    """Map 60-84 inches onto [0, 1]."""
    return _clamp01((height_to_inches(height) - 60) / 24)


def encode_position(position: Optional[str]) -> float:
    """Fixed per-position injury exposure, 0.5 for unknown positions."""
    if not position:
        return UNKNOWN_POSITION_RISK
    return POSITION_RISK.get(position.upper(), UNKNOWN_POSITION_RISK)


def normalize_training_load(avg_session_load: float) -> float:
    return _clamp01(avg_session_load / 100)


def normalize_session_frequency(session_count: int, window_days: int) -> float:
    """One session every three days saturates the feature."""
    if window_days <= 0:
        return 0.0
    return _clamp01(session_count / (window_days / 3))


def normalize_recovery_time(hours: float) -> float:
    return _clamp01(hours / 168)


def normalize_performance(gar_score: float) -> float:
    return _clamp01(gar_score / 100)


def normalize_injury_history(injury_count: int) -> float:
    return _clamp01(injury_count / 5)


def normalize_chronic_conditions(condition_count: int) -> float:
    return _clamp01(condition_count / 3)


# ═══════════════════════════════════════════════════════════════════════════════
# SESSION AGGREGATES
# ═══════════════════════════════════════════════════════════════════════════════

def sort_sessions(sessions: Sequence[TrainingSessionRecord]) -> List[TrainingSessionRecord]:
    return sorted(sessions, key=lambda s: s.session_date)


def session_intervals_days(sessions: Sequence[TrainingSessionRecord]) -> np.ndarray:
    """Gaps in days between consecutive sessions (sorted by date)."""
    ordered = sort_sessions(sessions)
    if len(ordered) < 2:
        return np.array([])
    ordinals = np.array([s.session_date.toordinal() for s in ordered], dtype=float)
    return np.diff(ordinals)


def average_recovery_hours(sessions: Sequence[TrainingSessionRecord]) -> Optional[float]:
    """Mean gap between sessions in hours, or None with fewer than two sessions."""
    intervals = session_intervals_days(sessions)
    if intervals.size == 0:
        return None
    return float(intervals.mean() * 24)


def performance_scores(sessions: Sequence[TrainingSessionRecord]) -> List[float]:
    """Chronological GAR scores of sessions that reported one."""
    return [
        float(s.performance_score)
        for s in sort_sessions(sessions)
        if s.performance_score is not None
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# RISK FEATURES
# ═══════════════════════════════════════════════════════════════════════════════

def extract_risk_features(
    profile: AthleteProfile,
    sessions: Sequence[TrainingSessionRecord],
    injuries: Sequence[InjuryRecord],
    window_days: int = 28,
    recent_count: int = 10
) -> FeatureVector:
    """
    Normalize an athlete's records into the ten risk features.

    Args:
        profile: Athlete profile
        sessions: Training sessions inside the history window
        injuries: Injury history
        window_days: Length of the history window the sessions cover
        recent_count: Number of most recent sessions used for averages

    Returns:
        FeatureVector with all ten risk features
    """
    values = {}
    missing = set()

    # Physical
    if profile.age is None:
        missing.add('age')
    values['age'] = normalize_age(profile.age if profile.age is not None else DEFAULT_AGE)

    if profile.weight_lbs is None:
        missing.add('weight')
    values['weight'] = normalize_weight(
        profile.weight_lbs if profile.weight_lbs is not None else DEFAULT_WEIGHT_LBS
    )

    if not profile.height:
        missing.add('height')
    values['height'] = normalize_height(profile.height or DEFAULT_HEIGHT)

    if not profile.position:
        missing.add('position')
    values['position'] = encode_position(profile.position or DEFAULT_POSITION)

    # Training
    ordered = sort_sessions(sessions)
    recent = ordered[-recent_count:]

    if recent:
        loads = np.array([s.load for s in recent], dtype=float)
        values['trainingLoad'] = normalize_training_load(float(loads.mean()))
    else:
        missing.add('trainingLoad')
        values['trainingLoad'] = 0.0

    if ordered:
        values['sessionFrequency'] = normalize_session_frequency(len(ordered), window_days)
    else:
        missing.add('sessionFrequency')
        values['sessionFrequency'] = 0.0

    recovery_hours = average_recovery_hours(ordered)
    if recovery_hours is None:
        missing.add('recoveryTime')
        recovery_hours = DEFAULT_RECOVERY_HOURS
    values['recoveryTime'] = normalize_recovery_time(recovery_hours)

    # Performance
    scores = performance_scores(recent)
    if scores:
        values['recentPerformance'] = normalize_performance(float(np.mean(scores)))
    else:
        missing.add('recentPerformance')
        values['recentPerformance'] = normalize_performance(DEFAULT_GAR_SCORE)

    # Injury history
    if injuries:
        values['previousInjuries'] = normalize_injury_history(len(injuries))
        values['chronicConditions'] = normalize_chronic_conditions(
            sum(1 for injury in injuries if injury.recurring)
        )
    else:
        missing.update(('previousInjuries', 'chronicConditions'))
        values['previousInjuries'] = 0.0
        values['chronicConditions'] = 0.0

    return FeatureVector(values=values, missing=frozenset(missing))


# ═══════════════════════════════════════════════════════════════════════════════
# PERFORMANCE FEATURES
# ═══════════════════════════════════════════════════════════════════════════════

def calculate_training_consistency(sessions: Sequence[TrainingSessionRecord]) -> Optional[float]:
    """Regularity of session spacing; a 3-day interval scores 1.0."""
    intervals = session_intervals_days(sessions)
    if intervals.size == 0:
        return None
    avg_interval = float(intervals.mean())
    return _clamp01(1 / (1 + abs(avg_interval - 3)))


def calculate_performance_load(sessions: Sequence[TrainingSessionRecord]) -> Optional[float]:
    """Average intensity fraction times average duration over a 120 min cap."""
    if not sessions:
        return None
    intensity = np.mean([s.intensity for s in sessions])
    duration = np.mean([s.duration_min for s in sessions])
    return _clamp01((intensity / 10) * (duration / 120))


def calculate_recovery_quality(sessions: Sequence[TrainingSessionRecord]) -> Optional[float]:
    """Sleep and nutrition on top of a 0.5 base."""
    sleep = [s.sleep_hours for s in sessions if s.sleep_hours is not None]
    calories = [s.calories for s in sessions if s.calories is not None]
    if not sleep and not calories:
        return None

    score = 0.5
    if sleep:
        score += min(0.2, max(0.0, (float(np.mean(sleep)) - 6) / 4))
    if calories:
        score += min(0.15, max(0.0, (float(np.mean(calories)) - 1500) / 1000))
    return _clamp01(score)


def calculate_skill_development(scores: Sequence[float]) -> Optional[float]:
    """Relative change of the last five scores against the five before."""
    if len(scores) < 2:
        return None
    recent = np.asarray(scores[-5:], dtype=float)
    earlier = np.asarray(scores[-10:-5], dtype=float)
    if earlier.size == 0:
        return None

    earlier_avg = earlier.mean()
    if earlier_avg == 0:
        return None
    improvement = (recent.mean() - earlier_avg) / earlier_avg
    return _clamp01(0.5 + improvement)


def calculate_motivation(sessions: Sequence[TrainingSessionRecord]) -> Optional[float]:
    if not sessions:
        return None
    attendance = sum(1 for s in sessions if s.completed) / len(sessions)
    exertion = np.mean([
        s.perceived_exertion if s.perceived_exertion is not None else 5
        for s in sessions
    ])
    return _clamp01(attendance * 0.6 + (exertion / 10) * 0.4)


def calculate_stress_level(sessions: Sequence[TrainingSessionRecord]) -> Optional[float]:
    fatigue = [s.fatigue for s in sessions if s.fatigue is not None]
    if not fatigue:
        return None
    return _clamp01(float(np.mean(fatigue)) / 10)


def extract_performance_features(
    profile: AthleteProfile,
    sessions: Sequence[TrainingSessionRecord],
    recent_count: int = 10
) -> Tuple[FeatureVector, List[float]]:
    """
    Build the performance predictor inputs.

    Args:
        profile: Athlete profile
        sessions: Training sessions inside the history window
        recent_count: Sessions used for load averages

    Returns:
        Tuple of (features, chronological performance score series)
    """
    ordered = sort_sessions(sessions)
    scores = performance_scores(ordered)

    # (value, default) per feature
    computed = {
        'trainingConsistency': (calculate_training_consistency(ordered), 0.5),
        'trainingLoad': (calculate_performance_load(ordered[-recent_count:]), 0.5),
        'recoveryQuality': (calculate_recovery_quality(ordered), 0.5),
        'skillDevelopment': (calculate_skill_development(scores), 0.5),
        'motivation': (calculate_motivation(ordered), 0.5),
        'stress': (calculate_stress_level(ordered), 0.3),
        'competitionLevel': (
            _clamp01(profile.competition_level / 10)
            if profile.competition_level is not None else None,
            0.5,
        ),
    }

    values = {}
    missing = set()
    for name, (value, default) in computed.items():
        if value is None:
            missing.add(name)
            value = default
        values[name] = value

    return FeatureVector(values=values, missing=frozenset(missing)), scores
