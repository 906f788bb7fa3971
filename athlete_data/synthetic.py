"""
Synthetic athlete data generation for simulations and demos.

Generates athletes with:
- Varied physical profiles and positions
- Session histories with compliance gaps, fatigue and sleep variance
- Injury histories scaled by susceptibility
- A latent training response used by the outcome-feedback simulation
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Dict, Any, Callable, Tuple
import numpy as np

from athlete_core.models import (
    AthleteProfile,
    ExperienceLevel,
    InjuryRecord,
    InjurySeverity,
    TrainingSessionRecord,
)


@dataclass
class SyntheticAthlete:
    """
    Generated athlete with history and latent response traits.

    ``responsiveness`` is the probability a completed training block is
    reported as a success; ``injury_susceptibility`` scales injury history
    and the chance of injury-tagged failures.
    """
    profile: AthleteProfile
    sessions: List[TrainingSessionRecord]
    injuries: List[InjuryRecord]
    archetype: str
    responsiveness: float
    injury_susceptibility: float
    key_factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'athlete_id': self.profile.athlete_id,
            'archetype': self.archetype,
            'sessions': len(self.sessions),
            'injuries': len(self.injuries),
            'responsiveness': self.responsiveness,
            'injury_susceptibility': self.injury_susceptibility,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# HISTORY GENERATION
# ═══════════════════════════════════════════════════════════════════════════════

def _height_string(inches: int) -> str:
    return f"{inches // 12}'{inches % 12}\""


def generate_session_history(
    n_weeks: int,
    sessions_per_week: int,
    intensity_mean: float,
    compliance_rate: float,
    base_score: float,
    score_drift: float,
    end_date: Optional[date] = None,
) -> List[TrainingSessionRecord]:
    """
    Generate sessions ending on ``end_date``, oldest first.

    Args:
        n_weeks: Weeks of history
        sessions_per_week: Planned sessions per week
        intensity_mean: Mean session intensity (0-10)
        compliance_rate: Probability a planned session happens
        base_score: Performance score at the start of the history
        score_drift: Score change per session
        end_date: Last day of history (today if None)
    """
    end_date = end_date or date.today()
    start = end_date - timedelta(weeks=n_weeks)
    spacing = 7 / sessions_per_week

    sessions = []
    score = base_score
    for week in range(n_weeks):
        for slot in range(sessions_per_week):
            if np.random.random() > compliance_rate:
                continue
            day = start + timedelta(days=int(week * 7 + slot * spacing))
            if day > end_date:
                continue

            intensity = float(np.clip(np.random.normal(intensity_mean, 1.0), 1, 10))
            score = score + score_drift + np.random.normal(0, 1.5)
            sessions.append(TrainingSessionRecord(
                session_date=day,
                intensity=round(intensity, 1),
                duration_min=float(np.clip(np.random.normal(70, 15), 20, 150)),
                perceived_exertion=round(float(np.clip(intensity + np.random.normal(0, 1), 0, 10)), 1),
                fatigue=round(float(np.clip(np.random.normal(intensity * 0.6, 1.5), 0, 10)), 1),
                sleep_hours=round(float(np.clip(np.random.normal(7.5, 0.8), 4, 10)), 1),
                calories=float(np.random.uniform(1800, 3200)),
                performance_score=round(float(np.clip(score, 0, 100)), 1),
            ))
    return sessions


def generate_injury_history(
    susceptibility: float,
    end_date: Optional[date] = None,
) -> List[InjuryRecord]:
    """Poisson injury count scaled by susceptibility, over the last two years."""
    end_date = end_date or date.today()
    count = np.random.poisson(susceptibility * 4)
    severities = list(InjurySeverity)

    injuries = []
    for _ in range(count):
        severity = severities[min(len(severities) - 1, np.random.poisson(susceptibility * 1.5))]
        injuries.append(InjuryRecord(
            severity=severity,
            treatment_days=int(np.random.randint(3, 60)),
            recurring=bool(np.random.random() < susceptibility * 0.5),
            injury_date=end_date - timedelta(days=int(np.random.randint(1, 730))),
        ))
    return injuries


# ═══════════════════════════════════════════════════════════════════════════════
# ATHLETE ARCHETYPES
# ═══════════════════════════════════════════════════════════════════════════════

def create_young_prospect(id_num: int, end_date: Optional[date] = None) -> SyntheticAthlete:
    """Young, improving skill player with little injury history."""
    susceptibility = np.random.uniform(0.1, 0.3)
    profile = AthleteProfile(
        athlete_id=f"young_prospect_{id_num}",
        name=f"Young Prospect {id_num}",
        age=int(np.random.randint(17, 20)),
        weight_lbs=float(np.random.uniform(170, 200)),
        height=_height_string(int(np.random.randint(70, 75))),
        position=str(np.random.choice(['WR', 'CB', 'RB'])),
        gender='male',
        sport='football',
        goals=['speed', 'agility'],
        experience=ExperienceLevel.BEGINNER,
        weaknesses=['upper_body_strength'],
        competition_level=float(np.random.uniform(3, 6)),
        genetic_markers={'ACTN3': str(np.random.choice(['RR', 'RX']))},
        metrics={'strength': 55, 'endurance': 65, 'speed': 80, 'recovery': 75},
    )
    return SyntheticAthlete(
        profile=profile,
        sessions=generate_session_history(8, 4, 6.0, 0.9, 65, 0.6, end_date),
        injuries=generate_injury_history(susceptibility, end_date),
        archetype='young_prospect',
        responsiveness=np.random.uniform(0.7, 0.9),
        injury_susceptibility=susceptibility,
        key_factors=['trainingConsistency', 'skillDevelopment'],
    )


def create_veteran_lineman(id_num: int, end_date: Optional[date] = None) -> SyntheticAthlete:
    """Heavy, experienced lineman chasing strength."""
    susceptibility = np.random.uniform(0.4, 0.6)
    profile = AthleteProfile(
        athlete_id=f"veteran_lineman_{id_num}",
        name=f"Veteran Lineman {id_num}",
        age=int(np.random.randint(23, 27)),
        weight_lbs=float(np.random.uniform(280, 320)),
        height=_height_string(int(np.random.randint(75, 79))),
        position=str(np.random.choice(['OL', 'DL'])),
        gender='male',
        sport='football',
        goals=['strength'],
        experience=ExperienceLevel.ADVANCED,
        activity_level='very_active',
        competition_level=float(np.random.uniform(6, 9)),
        genetic_markers={'MSTN': str(np.random.choice(['AA', 'AG']))},
        metrics={'strength': 85, 'endurance': 55, 'speed': 50, 'recovery': 55, 'technique': 70},
    )
    return SyntheticAthlete(
        profile=profile,
        sessions=generate_session_history(8, 5, 7.5, 0.85, 75, 0.1, end_date),
        injuries=generate_injury_history(susceptibility, end_date),
        archetype='veteran_lineman',
        responsiveness=np.random.uniform(0.5, 0.7),
        injury_susceptibility=susceptibility,
        key_factors=['trainingLoad', 'recoveryQuality'],
    )


def create_endurance_athlete(id_num: int, end_date: Optional[date] = None) -> SyntheticAthlete:
    """Lean endurance athlete with high session frequency."""
    susceptibility = np.random.uniform(0.2, 0.4)
    gender = str(np.random.choice(['male', 'female']))
    profile = AthleteProfile(
        athlete_id=f"endurance_athlete_{id_num}",
        name=f"Endurance Athlete {id_num}",
        age=int(np.random.randint(20, 30)),
        weight_lbs=float(np.random.uniform(130, 165)),
        height=_height_string(int(np.random.randint(64, 72))),
        gender=gender,
        sport='endurance',
        goals=['endurance'],
        experience=ExperienceLevel.INTERMEDIATE,
        activity_level='active',
        competition_level=float(np.random.uniform(4, 8)),
        metrics={'strength': 50, 'endurance': 85, 'speed': 65, 'recovery': 70, 'nutrition': 65},
    )
    return SyntheticAthlete(
        profile=profile,
        sessions=generate_session_history(8, 6, 5.5, 0.9, 70, 0.3, end_date),
        injuries=generate_injury_history(susceptibility, end_date),
        archetype='endurance_athlete',
        responsiveness=np.random.uniform(0.6, 0.8),
        injury_susceptibility=susceptibility,
        key_factors=['trainingConsistency', 'recoveryQuality', 'motivation'],
    )


def create_injury_prone(id_num: int, end_date: Optional[date] = None) -> SyntheticAthlete:
    """Athlete with a long injury history and recurring problems."""
    susceptibility = np.random.uniform(0.7, 0.95)
    profile = AthleteProfile(
        athlete_id=f"injury_prone_{id_num}",
        name=f"Injury Prone {id_num}",
        age=int(np.random.randint(21, 26)),
        weight_lbs=float(np.random.uniform(200, 250)),
        height=_height_string(int(np.random.randint(72, 76))),
        position=str(np.random.choice(['LB', 'DL', 'RB'])),
        gender='male',
        sport='football',
        goals=['power', 'agility'],
        experience=ExperienceLevel.INTERMEDIATE,
        competition_level=float(np.random.uniform(5, 8)),
        metrics={'strength': 70, 'endurance': 60, 'speed': 70, 'recovery': 45, 'technique': 55},
    )
    return SyntheticAthlete(
        profile=profile,
        sessions=generate_session_history(8, 4, 7.0, 0.7, 68, -0.2, end_date),
        injuries=generate_injury_history(susceptibility, end_date),
        archetype='injury_prone',
        responsiveness=np.random.uniform(0.3, 0.5),
        injury_susceptibility=susceptibility,
        key_factors=['recoveryQuality', 'stress'],
    )


def create_overreacher(id_num: int, end_date: Optional[date] = None) -> SyntheticAthlete:
    """High-volume, high-intensity athlete showing fatigue."""
    susceptibility = np.random.uniform(0.5, 0.7)
    profile = AthleteProfile(
        athlete_id=f"overreacher_{id_num}",
        name=f"Overreacher {id_num}",
        age=int(np.random.randint(18, 23)),
        weight_lbs=float(np.random.uniform(190, 230)),
        height=_height_string(int(np.random.randint(71, 76))),
        position=str(np.random.choice(['TE', 'LB', 'S'])),
        gender='male',
        sport='football',
        goals=['strength', 'endurance'],
        experience=ExperienceLevel.ADVANCED,
        activity_level='very_active',
        competition_level=float(np.random.uniform(6, 9)),
        metrics={'strength': 75, 'endurance': 70, 'speed': 68, 'recovery': 40, 'nutrition': 50},
    )
    return SyntheticAthlete(
        profile=profile,
        sessions=generate_session_history(8, 7, 8.5, 0.95, 74, -0.4, end_date),
        injuries=generate_injury_history(susceptibility, end_date),
        archetype='overreacher',
        responsiveness=np.random.uniform(0.4, 0.6),
        injury_susceptibility=susceptibility,
        key_factors=['trainingLoad', 'stress', 'competitionLevel'],
    )


ARCHETYPE_CREATORS: List[Tuple[Callable[..., SyntheticAthlete], int]] = [
    (create_young_prospect, 2),
    (create_veteran_lineman, 2),
    (create_endurance_athlete, 2),
    (create_injury_prone, 2),
    (create_overreacher, 2),
]


def generate_athlete_cohort(
    n_athletes: int = 10,
    seed: Optional[int] = None,
    end_date: Optional[date] = None
) -> List[SyntheticAthlete]:
    """
    Generate a diverse cohort of synthetic athletes.

    Args:
        n_athletes: Number of athletes to generate
        seed: Random seed for reproducibility
        end_date: Last day of every athlete's history (today if None)

    Returns:
        List of SyntheticAthlete objects
    """
    if seed is not None:
        np.random.seed(seed)

    athletes = []

    # One round of each archetype first
    for creator, default_count in ARCHETYPE_CREATORS:
        for i in range(default_count):
            if len(athletes) >= n_athletes:
                break
            athletes.append(creator(i + 1, end_date))

    while len(athletes) < n_athletes:
        creator, _ = ARCHETYPE_CREATORS[np.random.randint(len(ARCHETYPE_CREATORS))]
        athletes.append(creator(len(athletes) + 1, end_date))

    return athletes[:n_athletes]
