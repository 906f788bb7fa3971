"""
File loaders for athlete profiles and history.

Expected formats:

athletes JSON
    a list of profile objects, or {"athletes": [...]}; each object uses
    AthleteProfile.from_dict keys (athlete_id, sport, goals, ...)

sessions CSV
    athlete_id, date, intensity, duration_min, and optionally
    perceived_exertion, fatigue, sleep_hours, calories,
    performance_score, completed

injuries CSV
    athlete_id, severity, and optionally date, treatment_days,
    recurring, description
"""

from pathlib import Path
from typing import Dict, List, Any, Union
import json
import logging

import pandas as pd

from athlete_core.errors import InvalidInputError
from athlete_core.models import AthleteProfile, TrainingSessionRecord, InjuryRecord


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SESSION_REQUIRED_COLUMNS = ('athlete_id', 'date')
INJURY_REQUIRED_COLUMNS = ('athlete_id', 'severity')


def load_athletes_json(path: PathLike) -> List[AthleteProfile]:
    """Load athlete profiles from a JSON file."""
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('athletes', [])
    if not isinstance(data, list):
        raise InvalidInputError(f"{path}: expected a list of athletes")

    profiles = [AthleteProfile.from_dict(d) for d in data]
    logger.info(f"Loaded {len(profiles)} athletes from {Path(path).name}")
    return profiles


def _read_frame(path: PathLike, required: tuple) -> pd.DataFrame:
    df = pd.read_csv(path)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InvalidInputError(f"{path}: missing columns {', '.join(missing)}")

    df['athlete_id'] = df['athlete_id'].astype(str)
    # NaN cells become None so optional record fields stay unset
    return df.astype(object).where(df.notna(), None)


def _records_by_athlete(df: pd.DataFrame, build) -> Dict[str, List[Any]]:
    grouped: Dict[str, List[Any]] = {}
    for athlete_id, group in df.groupby('athlete_id', sort=False):
        rows = group.drop(columns=['athlete_id']).to_dict(orient='records')
        grouped[athlete_id] = [build({k: v for k, v in row.items() if v is not None}) for row in rows]
    return grouped


def sessions_from_frame(df: pd.DataFrame) -> Dict[str, List[TrainingSessionRecord]]:
    """Build session records per athlete from a frame with session columns."""
    sessions = _records_by_athlete(df, TrainingSessionRecord.from_dict)
    for records in sessions.values():
        records.sort(key=lambda s: s.session_date)
    return sessions


def load_sessions_csv(path: PathLike) -> Dict[str, List[TrainingSessionRecord]]:
    """Load session history from CSV, grouped by athlete id."""
    df = _read_frame(path, SESSION_REQUIRED_COLUMNS)
    sessions = sessions_from_frame(df)
    logger.info(f"Loaded {len(df)} sessions for {len(sessions)} athletes from {Path(path).name}")
    return sessions


def load_injuries_csv(path: PathLike) -> Dict[str, List[InjuryRecord]]:
    """Load injury history from CSV, grouped by athlete id."""
    df = _read_frame(path, INJURY_REQUIRED_COLUMNS)
    injuries = _records_by_athlete(df, InjuryRecord.from_dict)
    logger.info(f"Loaded {len(df)} injuries for {len(injuries)} athletes from {Path(path).name}")
    return injuries


def sessions_to_frame(sessions: Dict[str, List[TrainingSessionRecord]]) -> pd.DataFrame:
    """Flatten session history into one frame, one row per session."""
    rows = [
        {
            'athlete_id': athlete_id,
            'date': s.session_date.isoformat(),
            'intensity': s.intensity,
            'duration_min': s.duration_min,
            'perceived_exertion': s.perceived_exertion,
            'fatigue': s.fatigue,
            'sleep_hours': s.sleep_hours,
            'calories': s.calories,
            'performance_score': s.performance_score,
            'completed': s.completed,
            'load': s.load,
        }
        for athlete_id, records in sessions.items()
        for s in records
    ]
    return pd.DataFrame(rows)
