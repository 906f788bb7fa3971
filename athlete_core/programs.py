"""
Adaptive training programs: template selection, customization, adaptation
and the progress state machine.

Generation pipeline:
1. Select a template from the athlete's goals (then sport)
2. Customize difficulty, sessions per week, focus and equipment
3. Expand the schedule (see scheduling.py)
4. Adapt exercises to genetic modifiers
5. Reinforce from the athlete's adaptation history

A program is ACTIVE until every session is completed or it is ended
explicitly, then COMPLETED. There is no paused state.
"""

from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Iterable
import logging
import math
import uuid

import numpy as np

from .errors import InvalidInputError, NotFoundError
from .models import AthleteProfile, AdaptationEvent, ExperienceLevel
from .personalization import GeneticProfile
from .scheduling import ProgramPhase, ScheduledSession, build_schedule, rules_for_category


logger = logging.getLogger(__name__)


class ProgramStatus(Enum):
    """Lifecycle state of a training program."""
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class ProgramTemplate:
    """Reusable program skeleton before athlete customization."""
    id: str
    name: str
    category: str
    difficulty: ExperienceLevel
    duration_weeks: int
    sessions_per_week: int
    focus: List[str]
    phases: List[ProgramPhase]
    description: str = ""
    equipment_required: str = "standard"

    def summary(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'difficulty': self.difficulty.value,
            'duration': self.duration_weeks,
            'sessions_per_week': self.sessions_per_week,
            'focus': list(self.focus),
        }


PROGRAM_TEMPLATES: Dict[str, ProgramTemplate] = {
    'strength_basic': ProgramTemplate(
        id='strength_basic',
        name='Basic Strength Training',
        description='Linear strength progression built on compound lifts',
        category='strength',
        difficulty=ExperienceLevel.BEGINNER,
        duration_weeks=8,
        sessions_per_week=3,
        focus=['strength', 'muscle-building'],
        phases=[
            ProgramPhase('Foundation', [1, 2], 'Form and technique', 60),
            ProgramPhase('Build', [3, 4, 5, 6], 'Progressive overload', 75),
            ProgramPhase('Peak', [7, 8], 'Max strength', 85),
        ],
    ),
    'endurance_cardio': ProgramTemplate(
        id='endurance_cardio',
        name='Cardio Endurance Training',
        description='Periodized aerobic development with a taper',
        category='endurance',
        difficulty=ExperienceLevel.INTERMEDIATE,
        duration_weeks=12,
        sessions_per_week=4,
        focus=['cardio', 'endurance'],
        phases=[
            ProgramPhase('Base Building', [1, 2, 3], 'Build aerobic base', 65),
            ProgramPhase('Tempo Training', [4, 5, 6, 7], 'Improve lactate threshold', 80),
            ProgramPhase('Race Pace', [8, 9, 10], 'Race-specific training', 90),
            ProgramPhase('Taper', [11, 12], 'Peak performance', 70),
        ],
    ),
    'sports_football': ProgramTemplate(
        id='sports_football',
        name='Football Performance Training',
        description='Season-blocked agility, power and technique work',
        category='sports-specific',
        difficulty=ExperienceLevel.ADVANCED,
        duration_weeks=10,
        sessions_per_week=5,
        focus=['agility', 'power', 'endurance', 'technique'],
        phases=[
            ProgramPhase('Pre-Season', [1, 2, 3], 'Build foundation', 70),
            ProgramPhase('In-Season', [4, 5, 6, 7, 8], 'Maintain performance', 75),
            ProgramPhase('Off-Season', [9, 10], 'Recovery and rebuilding', 60),
        ],
    ),
}

DEFAULT_TEMPLATE_ID = 'strength_basic'

SPORT_TEMPLATES = {
    'football': 'sports_football',
}

WEAKNESS_FOCUS = {
    'upper_body_strength': 'upper_body_development',
    'lower_body_strength': 'lower_body_development',
    'core_stability': 'core_development',
    'speed': 'speed_development',
    'agility': 'agility_development',
    'endurance': 'aerobic_development',
    'flexibility': 'mobility_development',
}

ADVANCED_INTENSITY_BONUS = 10
MAX_INTENSITY = 100.0
VOLUME_INCREASE_MULTIPLIER = 1.1
INTENSITY_DECREASE_MULTIPLIER = 0.9

MODIFIABLE_FIELDS = ('name', 'duration_weeks', 'sessions_per_week', 'goals')


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ═══════════════════════════════════════════════════════════════════════════════
# PROGRAM STATE
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ProgramProgress:
    """Completion counters for a program."""
    current_week: int = 1
    completed_sessions: int = 0
    total_sessions: int = 0
    overall_progress: float = 0.0       # percent

    def refresh(self, duration_weeks: int, sessions_per_week: int) -> None:
        """Recompute derived fields from the completed session count."""
        if self.total_sessions > 0:
            self.overall_progress = min(100.0, self.completed_sessions / self.total_sessions * 100)
        completed_weeks = self.completed_sessions // max(1, sessions_per_week)
        self.current_week = min(max(1, duration_weeks), max(1, completed_weeks + 1))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_week': self.current_week,
            'completed_sessions': self.completed_sessions,
            'total_sessions': self.total_sessions,
            'overall_progress': round(self.overall_progress, 2),
        }


@dataclass
class TrainingProgram:
    """
    An athlete's customized, scheduled program and its progress.

    ``schedule`` holds one list of sessions per week. ``performance_log``
    keeps the performance data reported with each session completion in
    the order it arrived.
    """
    id: str
    athlete_id: str
    template_id: str
    name: str
    category: str
    difficulty: ExperienceLevel
    duration_weeks: int
    sessions_per_week: int
    goals: List[str]
    focus: List[str]
    phases: List[ProgramPhase]
    description: str = ""
    equipment_required: str = "standard"
    progression: str = "linear"
    schedule: List[List[ScheduledSession]] = field(default_factory=list)
    progress: ProgramProgress = field(default_factory=ProgramProgress)
    status: ProgramStatus = ProgramStatus.ACTIVE
    adaptation_factors: Dict[str, float] = field(default_factory=dict)
    performance_log: List[Dict[str, Any]] = field(default_factory=list)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == ProgramStatus.ACTIVE

    def sessions(self) -> Iterable[ScheduledSession]:
        for week in self.schedule:
            yield from week

    def find_session(self, session_id: str) -> ScheduledSession:
        for session in self.sessions():
            if session.id == session_id:
                return session
        raise NotFoundError(f"Session {session_id} not found in program {self.id}")

    def complete_session(
        self,
        session_id: str,
        performance_data: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> ScheduledSession:
        """
        Mark a session completed and advance progress.

        Completing an already completed session changes nothing. The
        program moves to COMPLETED when the last session is done.

        Raises:
            InvalidInputError: If the program is already completed
            NotFoundError: If the session id is not in the schedule
        """
        if not self.is_active:
            raise InvalidInputError(f"Program {self.id} is already completed")

        session = self.find_session(session_id)
        if session.completed:
            logger.debug(f"Session {session_id} of program {self.id} already completed")
            return session

        now = now or datetime.now()
        session.completed = True
        session.completed_at = now
        session.performance = dict(performance_data or {})

        self.progress.completed_sessions += 1
        self.progress.refresh(self.duration_weeks, self.sessions_per_week)
        self.performance_log.append({
            'session_id': session_id,
            'performance': dict(session.performance),
            'timestamp': now,
        })

        if self.progress.completed_sessions >= self.progress.total_sessions:
            self.end(now)
        return session

    def end(self, now: Optional[datetime] = None) -> None:
        """Move the program to COMPLETED. Ending twice keeps the first timestamp."""
        if self.status == ProgramStatus.COMPLETED:
            return
        self.status = ProgramStatus.COMPLETED
        self.completed_at = now or datetime.now()
        logger.info(f"Program {self.id} completed for athlete {self.athlete_id}")

    def to_dict(self, include_schedule: bool = True) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'athlete_id': self.athlete_id,
            'template_id': self.template_id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'difficulty': self.difficulty.value,
            'duration': self.duration_weeks,
            'sessions_per_week': self.sessions_per_week,
            'goals': list(self.goals),
            'focus': list(self.focus),
            'equipment_required': self.equipment_required,
            'progression': self.progression,
            'phases': [p.to_dict() for p in self.phases],
            'progress': self.progress.to_dict(),
            'status': self.status.value,
            'adaptation_factors': dict(self.adaptation_factors),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'modified_at': self.modified_at.isoformat() if self.modified_at else None,
        }
        if include_schedule:
            d['schedule'] = [
                {'week': i + 1, 'sessions': [s.to_dict() for s in week]}
                for i, week in enumerate(self.schedule)
            ]
        return d


# ═══════════════════════════════════════════════════════════════════════════════
# TEMPLATES AND CUSTOMIZATION
# ═══════════════════════════════════════════════════════════════════════════════

def list_templates() -> List[Dict[str, Any]]:
    return [template.summary() for template in PROGRAM_TEMPLATES.values()]


def get_template(template_id: str) -> ProgramTemplate:
    try:
        return PROGRAM_TEMPLATES[template_id]
    except KeyError:
        raise NotFoundError(f"Unknown program template {template_id}")


def select_template(goals: Iterable[str], sport: Optional[str] = None) -> ProgramTemplate:
    """
    Goals decide first: 'strength' beats 'endurance', which beats the sport
    table. Anything else gets the default strength template.
    """
    goals = {g.lower() for g in goals}
    if 'strength' in goals:
        return PROGRAM_TEMPLATES['strength_basic']
    if 'endurance' in goals:
        return PROGRAM_TEMPLATES['endurance_cardio']

    template_id = SPORT_TEMPLATES.get((sport or '').lower(), DEFAULT_TEMPLATE_ID)
    return PROGRAM_TEMPLATES[template_id]


def customize_template(template: ProgramTemplate, profile: AthleteProfile) -> ProgramTemplate:
    """
    Fit a template to the athlete. The shared template is not modified.

    - beginners: difficulty beginner, one session fewer per week (floor 2)
    - advanced: difficulty advanced, every phase +10 intensity (cap 100)
    - intermediate: template difficulty unchanged
    - each weakness appends a focus tag
    - minimal equipment switches to bodyweight work
    """
    customized = replace(
        template,
        focus=list(template.focus),
        phases=deepcopy(template.phases),
    )

    if profile.experience == ExperienceLevel.BEGINNER:
        customized.difficulty = ExperienceLevel.BEGINNER
        customized.sessions_per_week = max(2, template.sessions_per_week - 1)
    elif profile.experience == ExperienceLevel.ADVANCED:
        customized.difficulty = ExperienceLevel.ADVANCED
        for phase in customized.phases:
            phase.intensity = min(MAX_INTENSITY, phase.intensity + ADVANCED_INTENSITY_BONUS)

    for weakness in profile.weaknesses:
        tag = WEAKNESS_FOCUS.get(weakness, f"{weakness}_development")
        if tag not in customized.focus:
            customized.focus.append(tag)

    if (profile.equipment or '').lower() == 'minimal':
        customized.equipment_required = 'bodyweight'

    return customized


# ═══════════════════════════════════════════════════════════════════════════════
# ADAPTATION
# ═══════════════════════════════════════════════════════════════════════════════

def _scale_rep_range(reps: str, factor: float) -> str:
    try:
        bounds = [int(part) for part in reps.split('-')]
    except ValueError:
        return reps
    return '-'.join(str(max(1, _round_half_up(b * factor))) for b in bounds)


def adapt_to_genetics(program: TrainingProgram, genetics: Optional[GeneticProfile]) -> TrainingProgram:
    """
    Scale exercises by genetic modifiers, in place.

    Sprint work scales intensity by sprint_power (capped at 100). Strength
    work scales sets by strength_gain and reps by its inverse.
    """
    if genetics is None or not genetics.modifiers:
        return program

    sprint_power = genetics.sprint_power
    strength_gain = genetics.strength_gain

    for session in program.sessions():
        for exercise in session.exercises:
            if exercise.type == 'sprint' and sprint_power:
                exercise.intensity = min(MAX_INTENSITY, exercise.intensity * sprint_power)
            if exercise.type == 'strength' and strength_gain:
                exercise.sets = max(1, _round_half_up(exercise.sets * strength_gain))
                exercise.reps = _scale_rep_range(exercise.reps, 1 / strength_gain)

    return program


def apply_adaptation_history(
    program: TrainingProgram,
    history: Iterable[AdaptationEvent]
) -> TrainingProgram:
    """
    Reinforce a program from how the athlete responded before, in place.

    A positive 'volume_increase' scales every exercise's sets by 1.1. A
    negative 'intensity_increase' caused by injury scales session and
    exercise intensity by 0.9.
    """
    history = list(history)
    if not history:
        return program

    increase_volume = any(
        e.outcome == 'positive' and e.type == 'volume_increase' for e in history
    )
    decrease_intensity = any(
        e.outcome == 'negative' and e.type == 'intensity_increase' and e.reason == 'injury'
        for e in history
    )

    for session in program.sessions():
        if decrease_intensity:
            session.intensity = session.intensity * INTENSITY_DECREASE_MULTIPLIER
        for exercise in session.exercises:
            if increase_volume:
                exercise.sets = _round_half_up(exercise.sets * VOLUME_INCREASE_MULTIPLIER)
            if decrease_intensity:
                exercise.intensity = exercise.intensity * INTENSITY_DECREASE_MULTIPLIER

    if increase_volume:
        logger.info(f"Program {program.id}: volume increased from adaptation history")
    if decrease_intensity:
        logger.info(f"Program {program.id}: intensity reduced after injury history")
    return program


# ═══════════════════════════════════════════════════════════════════════════════
# GENERATION
# ═══════════════════════════════════════════════════════════════════════════════

def new_program_id() -> str:
    return f"program_{uuid.uuid4().hex[:12]}"


def generate_program(
    profile: AthleteProfile,
    history: Iterable[AdaptationEvent] = (),
    genetics: Optional[GeneticProfile] = None,
    adaptation_factors: Optional[Dict[str, float]] = None,
    duration_weeks: Optional[int] = None,
    goals: Optional[List[str]] = None,
    now: Optional[datetime] = None,
    program_id: Optional[str] = None
) -> TrainingProgram:
    """
    Build a customized, scheduled and adapted program for an athlete.

    Args:
        profile: Athlete profile; athlete_id, sport and goals are required
        history: Athlete's adaptation history
        genetics: Genetic profile (no genetic adaptation if None)
        adaptation_factors: Adaptive weight snapshot attached to the program
        duration_weeks: Override the template duration
        goals: Override the profile goals
        now: Creation timestamp
        program_id: Explicit id (random if None)

    Returns:
        TrainingProgram in the ACTIVE state

    Raises:
        InvalidInputError: If athlete id, sport or goals are missing, or
            the duration override is not positive
    """
    goals = [g.lower() for g in (goals if goals is not None else profile.goals)]
    if not profile.athlete_id or not profile.sport or not goals:
        raise InvalidInputError("Athlete ID, sport, and goals are required")
    if duration_weeks is not None and duration_weeks < 1:
        raise InvalidInputError(f"duration_weeks must be at least 1, got {duration_weeks}")

    template = select_template(goals, profile.sport)
    customized = customize_template(template, profile)

    program = TrainingProgram(
        id=program_id or new_program_id(),
        athlete_id=profile.athlete_id,
        template_id=template.id,
        name=customized.name,
        description=customized.description,
        category=customized.category,
        difficulty=customized.difficulty,
        duration_weeks=duration_weeks or customized.duration_weeks,
        sessions_per_week=customized.sessions_per_week,
        goals=goals,
        focus=customized.focus,
        phases=customized.phases,
        equipment_required=customized.equipment_required,
        progression=rules_for_category(customized.category)['progression'],
        adaptation_factors=dict(adaptation_factors or {}),
        created_at=now or datetime.now(),
    )
    program.schedule = build_schedule(program)
    program.progress.total_sessions = program.duration_weeks * program.sessions_per_week

    adapt_to_genetics(program, genetics)
    apply_adaptation_history(program, history)

    logger.info(
        f"Generated program {program.id} ({template.id}, {program.difficulty.value}) "
        f"for athlete {profile.athlete_id}"
    )
    return program


def modify_program(
    program: TrainingProgram,
    modifications: Dict[str, Any],
    now: Optional[datetime] = None
) -> TrainingProgram:
    """
    Change name, duration, sessions per week or goals, in place.

    A new duration or session count regenerates the schedule; sessions
    whose id survives keep their completion. Completed session counts are
    kept, so shrinking a program can complete it.

    Raises:
        InvalidInputError: On unknown fields or out-of-range values
    """
    unknown = set(modifications) - set(MODIFIABLE_FIELDS)
    if unknown:
        raise InvalidInputError(f"Cannot modify program fields: {', '.join(sorted(unknown))}")
    if not program.is_active:
        raise InvalidInputError(f"Program {program.id} is already completed")

    if modifications.get('name'):
        program.name = str(modifications['name'])
    if modifications.get('goals'):
        program.goals = [str(g).lower() for g in modifications['goals']]

    duration = modifications.get('duration_weeks')
    sessions_per_week = modifications.get('sessions_per_week')
    if duration is not None and int(duration) < 1:
        raise InvalidInputError(f"duration_weeks must be at least 1, got {duration}")
    if sessions_per_week is not None and not 1 <= int(sessions_per_week) <= 7:
        raise InvalidInputError(f"sessions_per_week must be in [1, 7], got {sessions_per_week}")

    if duration is not None or sessions_per_week is not None:
        previous = {s.id: s for s in program.sessions() if s.completed}
        if duration is not None:
            program.duration_weeks = int(duration)
        if sessions_per_week is not None:
            program.sessions_per_week = int(sessions_per_week)

        program.schedule = build_schedule(program)
        for session in program.sessions():
            done = previous.get(session.id)
            if done is not None:
                session.completed = True
                session.completed_at = done.completed_at
                session.performance = done.performance

        program.progress.total_sessions = program.duration_weeks * program.sessions_per_week
        program.progress.refresh(program.duration_weeks, program.sessions_per_week)

    program.modified_at = now or datetime.now()
    if program.progress.completed_sessions >= program.progress.total_sessions:
        program.end(program.modified_at)

    logger.info(f"Modified program {program.id}: {sorted(modifications)}")
    return program


# ═══════════════════════════════════════════════════════════════════════════════
# PROGRESS FEEDBACK
# ═══════════════════════════════════════════════════════════════════════════════

NO_PROGRAM_RECOMMENDATIONS = [
    'Start with a beginner program to build foundation',
    'Consider your goals and availability when selecting a program',
    'Consult with a coach for personalized recommendations',
]


def is_performance_improving(entries: List[Dict[str, Any]]) -> bool:
    """True when most consecutive entries improved weight or reps."""
    improving = 0
    total = 0
    for previous, current in zip(entries, entries[1:]):
        prev, cur = previous['performance'], current['performance']
        if cur.get('weight', 0) > prev.get('weight', 0) or cur.get('reps', 0) > prev.get('reps', 0):
            improving += 1
        total += 1
    return improving > total / 2


def program_recommendations(program: Optional[TrainingProgram]) -> List[str]:
    if program is None:
        return list(NO_PROGRAM_RECOMMENDATIONS)

    recommendations = []
    progress = program.progress.overall_progress
    if progress < 50:
        recommendations.append("Keep up the great work! You're making good progress.")
    elif progress < 80:
        recommendations.append("You're in the home stretch! Focus on maintaining consistency.")
    else:
        recommendations.append('Congratulations on nearing completion! Consider starting a new program.')

    if len(program.performance_log) >= 3:
        if is_performance_improving(program.performance_log[-3:]):
            recommendations.append('Your performance is improving! Keep pushing your limits.')
        else:
            recommendations.append('Consider adjusting intensity or form. Track your progress carefully.')

    return recommendations


def analyze_progress_trend(scores: List[float]) -> Dict[str, Any]:
    """
    Compare the two halves of the last five scores.

    The second half must beat the first by 5% to count as improving, or
    fall 5% short to count as declining.
    """
    if len(scores) < 2:
        return {'trend': 'insufficient_data'}

    recent = np.asarray(scores[-5:], dtype=float)
    half = len(recent) // 2
    first_avg = float(recent[:half].mean())
    second_avg = float(recent[half:].mean())

    trend = 'stable'
    if second_avg > first_avg * 1.05:
        trend = 'improving'
    elif second_avg < first_avg * 0.95:
        trend = 'declining'

    change = (second_avg - first_avg) / first_avg * 100 if first_avg else 0.0
    return {
        'trend': trend,
        'recent_average': second_avg,
        'change_percent': change,
    }


def program_analytics(program: TrainingProgram) -> Dict[str, Any]:
    scores = [float(e['performance'].get('score', 0)) for e in program.performance_log]
    expected = program.progress.current_week * program.sessions_per_week

    return {
        'program_id': program.id,
        'program_name': program.name,
        'status': program.status.value,
        'total_sessions': program.progress.total_sessions,
        'completed_sessions': program.progress.completed_sessions,
        'overall_progress': program.progress.overall_progress,
        'current_week': program.progress.current_week,
        'average_performance': float(np.mean(scores)) if scores else 0.0,
        'completion_rate': min(100.0, program.progress.completed_sessions / expected * 100),
        'trends': analyze_progress_trend(scores),
    }
