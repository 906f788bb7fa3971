"""
Program scheduling: expand a customized program into weeks of sessions.

For week 1..duration and session 1..sessions_per_week:
- the active phase is the first phase whose week range holds the week,
  falling back to the first phase when the week is past every range
- exercises are taken cyclically from the category's fixed pool
  (4 beginner, 5 intermediate, 6 advanced)
- sets, reps and rest come from difficulty-indexed tables

The expansion is deterministic: the same program always yields the same
schedule.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple, TYPE_CHECKING

from .models import ExperienceLevel

if TYPE_CHECKING:
    from .programs import TrainingProgram


@dataclass
class ProgramPhase:
    """A named block of weeks sharing a focus and a target intensity."""
    name: str
    weeks: List[int]
    focus: str
    intensity: float          # % of max

    def contains(self, week: int) -> bool:
        return week in self.weeks

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'weeks': list(self.weeks),
            'focus': self.focus,
            'intensity': self.intensity,
        }


@dataclass
class Exercise:
    """One prescribed exercise inside a session."""
    name: str
    type: str
    sets: int
    reps: str
    rest_seconds: int
    intensity: float
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type,
            'sets': self.sets,
            'reps': self.reps,
            'rest': self.rest_seconds,
            'intensity': self.intensity,
            'notes': self.notes,
        }


@dataclass
class ScheduledSession:
    """A session at a fixed week and slot in the program."""
    id: str
    week: int
    session_number: int
    name: str
    phase: str
    exercises: List[Exercise]
    intensity: float
    rest_days: int
    duration_min: int = 60
    completed: bool = False
    completed_at: Optional[datetime] = None
    performance: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'week': self.week,
            'session_number': self.session_number,
            'name': self.name,
            'phase': self.phase,
            'duration': self.duration_min,
            'intensity': self.intensity,
            'rest_days': self.rest_days,
            'completed': self.completed,
            'exercises': [e.to_dict() for e in self.exercises],
        }


# ═══════════════════════════════════════════════════════════════════════════════
# GENERATION TABLES
# ═══════════════════════════════════════════════════════════════════════════════

GENERATION_RULES: Dict[str, Dict[str, Any]] = {
    'strength': {
        'exercises': [
            ('squat', 'strength'),
            ('deadlift', 'strength'),
            ('bench_press', 'strength'),
            ('overhead_press', 'strength'),
            ('pull_ups', 'strength'),
        ],
        'progression': 'linear',
        'rest_periods': {'beginner': 120, 'intermediate': 90, 'advanced': 60},
    },
    'endurance': {
        'exercises': [
            ('running', 'cardio'),
            ('cycling', 'cardio'),
            ('swimming', 'cardio'),
            ('rowing', 'cardio'),
        ],
        'progression': 'periodized',
        'rest_periods': {'beginner': 60, 'intermediate': 45, 'advanced': 30},
    },
    'sports_specific': {
        'exercises': [
            ('agility_drills', 'agility'),
            ('plyometrics', 'sprint'),
            ('sport_specific_drills', 'technique'),
        ],
        'progression': 'block',
        'rest_periods': {'beginner': 90, 'intermediate': 60, 'advanced': 45},
    },
}

EXERCISE_COUNT = {
    ExperienceLevel.BEGINNER: 4,
    ExperienceLevel.INTERMEDIATE: 5,
    ExperienceLevel.ADVANCED: 6,
}

REP_RANGES = {
    ExperienceLevel.BEGINNER: ['12-15', '10-12', '8-10', '15-20', '20-25', '25-30'],
    ExperienceLevel.INTERMEDIATE: ['8-12', '8-10', '6-8', '12-15', '15-20', '20-25'],
    ExperienceLevel.ADVANCED: ['4-6', '6-8', '3-5', '8-10', '10-12', '12-15'],
}

DEFAULT_SESSION_MINUTES = 60


def rules_for_category(category: str) -> Dict[str, Any]:
    """Generation rules for a template category; unknown categories use strength."""
    key = category.replace('-', '_')
    return GENERATION_RULES.get(key, GENERATION_RULES['strength'])


def get_current_phase(phases: List[ProgramPhase], week: int) -> ProgramPhase:
    """First phase containing the week, or the first phase if none does."""
    for phase in phases:
        if phase.contains(week):
            return phase
    return phases[0]


def get_rep_range(difficulty: ExperienceLevel, exercise_index: int) -> str:
    ranges = REP_RANGES[difficulty]
    if 0 <= exercise_index < len(ranges):
        return ranges[exercise_index]
    return ranges[0]


def calculate_rest_days(sessions_per_week: int) -> int:
    """Rest days between sessions: floor((7 - spw) / spw), never negative."""
    if sessions_per_week <= 0:
        return 0
    return max(0, (7 - sessions_per_week) // sessions_per_week)


def select_exercises(
    category: str,
    phase: ProgramPhase,
    difficulty: ExperienceLevel
) -> List[Exercise]:
    """Pick the session's exercises cyclically from the category pool."""
    rules = rules_for_category(category)
    pool: List[Tuple[str, str]] = rules['exercises']
    count = EXERCISE_COUNT[difficulty]
    rest = rules['rest_periods'].get(difficulty.value, 60)

    exercises = []
    for i in range(count):
        name, exercise_type = pool[i % len(pool)]
        exercises.append(Exercise(
            name=name,
            type=exercise_type,
            sets=3 if difficulty == ExperienceLevel.BEGINNER else 4,
            reps=get_rep_range(difficulty, i),
            rest_seconds=rest,
            intensity=phase.intensity,
            notes=f"Focus on proper form during {phase.focus.lower()}",
        ))
    return exercises


def generate_session(
    program: 'TrainingProgram',
    week: int,
    session_number: int
) -> ScheduledSession:
    phase = get_current_phase(program.phases, week)
    return ScheduledSession(
        id=f"session_{week}_{session_number}",
        week=week,
        session_number=session_number,
        name=f"Week {week} - Session {session_number}",
        phase=phase.name,
        exercises=select_exercises(program.category, phase, program.difficulty),
        intensity=phase.intensity,
        rest_days=calculate_rest_days(program.sessions_per_week),
        duration_min=DEFAULT_SESSION_MINUTES,
    )


def build_schedule(program: 'TrainingProgram') -> List[List[ScheduledSession]]:
    """
    Expand a program into its weekly schedule.

    Args:
        program: Program with phases, duration, sessions per week,
            category and difficulty set

    Returns:
        List of weeks, each a list of ScheduledSession
    """
    return [
        [generate_session(program, week, n) for n in range(1, program.sessions_per_week + 1)]
        for week in range(1, program.duration_weeks + 1)
    ]


def format_schedule(schedule: List[List[ScheduledSession]], max_weeks: Optional[int] = None) -> str:
    """Format a schedule as readable text."""
    lines = []
    weeks = schedule if max_weeks is None else schedule[:max_weeks]

    for week_sessions in weeks:
        if not week_sessions:
            continue
        lines.append(f"Week {week_sessions[0].week} ({week_sessions[0].phase})")
        lines.append("-" * 50)
        for session in week_sessions:
            status = "done" if session.completed else "    "
            names = ", ".join(f"{e.name} {e.sets}x{e.reps}" for e in session.exercises)
            lines.append(f"  [{status}] S{session.session_number} @ {session.intensity:.0f}%: {names}")
        lines.append("")

    return "\n".join(lines)
