"""
Records exchanged between the analytics engine and its collaborators.

Boundary records (profiles, sessions, injuries, outcomes) are validated once
in their ``from_dict`` constructors. Algorithms downstream trust the fields.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any, List, FrozenSet
import math

from .errors import InvalidInputError


class ExperienceLevel(Enum):
    """Athlete experience classification, also used as program difficulty."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class InjurySeverity(Enum):
    """Injury severity classification."""
    MINOR = "minor"
    MODERATE = "moderate"
    SERIOUS = "serious"
    SEVERE = "severe"


class RiskLevel(Enum):
    """Injury risk tier."""
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


class TrendDirection(Enum):
    """Direction of a performance score series."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class Priority(Enum):
    """Recommendation priority."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


def _parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            pass
    raise InvalidInputError(f"{field_name} must be an ISO date, got {value!r}")


def _parse_number(value: Any, field_name: str, cast=float):
    """Coerce a numeric field; None stays None."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInputError(f"{field_name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field_name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidInputError(f"{field_name} must be finite, got {value!r}")
    if cast is int:
        if not number.is_integer():
            raise InvalidInputError(f"{field_name} must be a whole number, got {value!r}")
        return int(number)
    return number


_TRUE_STRINGS = ('true', 't', 'yes', 'y', '1')
_FALSE_STRINGS = ('false', 'f', 'no', 'n', '0', '')


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise InvalidInputError(f"{field_name} must be a boolean, got {value!r}")
    if value is None:
        return False
    return bool(value)


def _check_range(name: str, value: Optional[float], low: float, high: float):
    if value is not None and not (low <= value <= high):
        raise InvalidInputError(f"{name} must be in [{low}, {high}], got {value}")


def _parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInputError(f"{field_name} must be one of {allowed}, got {value!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# INPUT RECORDS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class AthleteProfile:
    """
    Athlete identity, physical attributes and program preferences.

    Physical attributes are optional. Extraction substitutes defaults for the
    absent ones and marks those features as missing.
    """
    athlete_id: str
    name: str = ""

    # Physical
    age: Optional[int] = None
    weight_lbs: Optional[float] = None
    height: Optional[str] = None            # e.g. 6'1"
    position: Optional[str] = None
    gender: Optional[str] = None

    # Sport and goals
    sport: Optional[str] = None
    goals: List[str] = field(default_factory=list)
    experience: ExperienceLevel = ExperienceLevel.INTERMEDIATE
    weaknesses: List[str] = field(default_factory=list)
    equipment: Optional[str] = None          # 'minimal' selects bodyweight work
    activity_level: str = "moderate"
    competition_level: Optional[float] = None   # 0-10

    # Optional extras
    genetic_markers: Dict[str, str] = field(default_factory=dict)
    metrics: Dict[str, float] = field(default_factory=dict)   # 0-100 self assessments

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'AthleteProfile':
        """Build a profile from a loosely shaped mapping."""
        athlete_id = d.get('athlete_id') or d.get('id')
        if not athlete_id:
            raise InvalidInputError("athlete_id is required")

        goals = d.get('goals') or []
        if isinstance(goals, str):
            goals = [goals]

        profile = cls(
            athlete_id=str(athlete_id),
            name=d.get('name', ''),
            age=_parse_number(d.get('age'), 'age', int),
            weight_lbs=_parse_number(d.get('weight_lbs', d.get('weight')), 'weight_lbs'),
            height=d.get('height'),
            position=d.get('position'),
            gender=d.get('gender'),
            sport=d.get('sport'),
            goals=[str(g).lower() for g in goals],
            experience=_parse_enum(
                ExperienceLevel, d.get('experience', 'intermediate'), 'experience'
            ),
            weaknesses=list(d.get('weaknesses') or []),
            equipment=d.get('equipment'),
            activity_level=d.get('activity_level', 'moderate'),
            competition_level=_parse_number(d.get('competition_level'), 'competition_level'),
            genetic_markers=dict(d.get('genetic_markers') or d.get('genetics') or {}),
            metrics=dict(d.get('metrics') or {}),
        )

        _check_range('age', profile.age, 5, 100)
        if profile.weight_lbs is not None and profile.weight_lbs <= 0:
            raise InvalidInputError(f"weight_lbs must be positive, got {profile.weight_lbs}")
        _check_range('competition_level', profile.competition_level, 0, 10)
        return profile

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['experience'] = self.experience.value
        return d


@dataclass(frozen=True)
class TrainingSessionRecord:
    """One recorded training session. Immutable once recorded."""
    session_date: date
    intensity: float                 # 0-10
    duration_min: float
    perceived_exertion: Optional[float] = None   # 0-10
    fatigue: Optional[float] = None              # 0-10
    sleep_hours: Optional[float] = None
    calories: Optional[float] = None
    performance_score: Optional[float] = None    # GAR, 0-100
    completed: bool = True

    @property
    def load(self) -> float:
        """Session load: intensity fraction times minutes."""
        return self.intensity / 10.0 * self.duration_min

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TrainingSessionRecord':
        if 'date' not in d and 'session_date' not in d:
            raise InvalidInputError("session date is required")
        record = cls(
            session_date=_parse_date(d.get('session_date', d.get('date')), 'session_date'),
            intensity=_parse_number(d.get('intensity', 5), 'intensity'),
            duration_min=_parse_number(d.get('duration_min', d.get('duration', 60)), 'duration_min'),
            perceived_exertion=_parse_number(d.get('perceived_exertion'), 'perceived_exertion'),
            fatigue=_parse_number(d.get('fatigue'), 'fatigue'),
            sleep_hours=_parse_number(d.get('sleep_hours'), 'sleep_hours'),
            calories=_parse_number(d.get('calories'), 'calories'),
            performance_score=_parse_number(d.get('performance_score'), 'performance_score'),
            completed=_parse_bool(d.get('completed', True), 'completed'),
        )
        _check_range('intensity', record.intensity, 0, 10)
        _check_range('perceived_exertion', record.perceived_exertion, 0, 10)
        _check_range('fatigue', record.fatigue, 0, 10)
        _check_range('performance_score', record.performance_score, 0, 100)
        if record.duration_min < 0:
            raise InvalidInputError(f"duration_min must be non-negative, got {record.duration_min}")
        return record


@dataclass(frozen=True)
class InjuryRecord:
    """One recorded injury."""
    severity: InjurySeverity
    treatment_days: int = 0
    recurring: bool = False
    injury_date: Optional[date] = None
    description: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'InjuryRecord':
        if 'severity' not in d:
            raise InvalidInputError("injury severity is required")
        injury_date = d.get('injury_date', d.get('date'))
        record = cls(
            severity=_parse_enum(InjurySeverity, d['severity'], 'severity'),
            treatment_days=_parse_number(d.get('treatment_days', 0), 'treatment_days', int),
            recurring=_parse_bool(d.get('recurring', d.get('recurrence', False)), 'recurring'),
            injury_date=_parse_date(injury_date, 'injury_date') if injury_date else None,
            description=d.get('description', ''),
        )
        if record.treatment_days < 0:
            raise InvalidInputError("treatment_days must be non-negative")
        return record


@dataclass(frozen=True)
class AdaptationEvent:
    """How an athlete responded to a program adaptation."""
    type: str                  # e.g. 'volume_increase', 'intensity_increase'
    outcome: str               # 'positive' or 'negative'
    reason: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'AdaptationEvent':
        if not d.get('type') or d.get('outcome') not in ('positive', 'negative'):
            raise InvalidInputError("adaptation needs a type and outcome 'positive' or 'negative'")
        return cls(type=d['type'], outcome=d['outcome'], reason=d.get('reason'))


@dataclass(frozen=True)
class Outcome:
    """Reported result of a training block, fed back into adaptive weights."""
    success: bool
    contributing_factors: List[str] = field(default_factory=list)
    adaptation: Optional[AdaptationEvent] = None
    performance_score: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Outcome':
        if 'success' not in d:
            raise InvalidInputError("outcome.success is required")
        adaptation = d.get('adaptation')
        return cls(
            success=_parse_bool(d['success'], 'success'),
            contributing_factors=list(d.get('contributing_factors') or []),
            adaptation=AdaptationEvent.from_dict(adaptation) if adaptation else None,
            performance_score=_parse_number(d.get('performance_score'), 'performance_score'),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class FeatureVector:
    """
    Normalized features in [0, 1].

    ``missing`` names the features whose source data was absent and which
    hold a default value instead.
    """
    values: Dict[str, float]
    missing: FrozenSet[str] = frozenset()

    def __getitem__(self, name: str) -> float:
        return self.values[name]

    def get(self, name: str, default: float = 0.0) -> float:
        return self.values.get(name, default)

    def copy(self) -> 'FeatureVector':
        return FeatureVector(dict(self.values), frozenset(self.missing))

    def to_dict(self) -> Dict[str, float]:
        return dict(self.values)


@dataclass
class Recommendation:
    priority: Priority
    category: str
    message: str
    actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'priority': self.priority.value,
            'category': self.category,
            'message': self.message,
            'actions': list(self.actions),
        }


def sort_recommendations(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Order HIGH > MEDIUM > LOW, keeping rule order within a tier."""
    return sorted(recommendations, key=lambda r: PRIORITY_ORDER[r.priority])


@dataclass
class RiskAssessment:
    """Injury risk result. Not persisted."""
    score: float
    level: RiskLevel
    confidence: float
    recommendations: List[Recommendation]
    factors: FeatureVector

    def to_dict(self) -> Dict[str, Any]:
        return {
            'risk_score': round(self.score, 2),
            'risk_level': self.level.value,
            'confidence': round(self.confidence, 2),
            'recommendations': [r.to_dict() for r in self.recommendations],
            'factors': self.factors.to_dict(),
        }


@dataclass
class TrendResult:
    """Least-squares fit of a score series against its index."""
    slope: float
    intercept: float
    r_squared: float
    direction: TrendDirection
    strength: float
    n_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'slope': self.slope,
            'intercept': self.intercept,
            'r_squared': self.r_squared,
            'direction': self.direction.value,
            'strength': self.strength,
            'n_points': self.n_points,
        }


@dataclass
class PerformancePrediction:
    """Forecast of the performance score over a time horizon."""
    predicted_score: float
    confidence: float
    trend: TrendDirection
    trend_strength: float
    time_horizon_days: int
    trend_contribution: float
    feature_contribution: float
    factors: FeatureVector
    recommendations: List[Recommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'predicted_performance': round(self.predicted_score),
            'confidence': round(self.confidence, 2),
            'trend': self.trend.value,
            'trend_strength': self.trend_strength,
            'time_horizon': self.time_horizon_days,
            'factors': self.factors.to_dict(),
            'recommendations': [r.to_dict() for r in self.recommendations],
        }


@dataclass
class AdaptiveWeights:
    """Per-athlete factor importance vector."""
    athlete_id: str
    weights: Dict[str, float]
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'athlete_id': self.athlete_id,
            'weights': dict(self.weights),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
