"""Athlete data access, file loading and synthetic generation."""

from .repository import AthleteRepository, InMemoryAthleteRepository
from .loaders import (
    load_athletes_json,
    load_sessions_csv,
    load_injuries_csv,
    sessions_from_frame,
    sessions_to_frame,
)
from .synthetic import SyntheticAthlete, generate_athlete_cohort

__all__ = [
    # Repository
    'AthleteRepository',
    'InMemoryAthleteRepository',
    # Loaders
    'load_athletes_json',
    'load_sessions_csv',
    'load_injuries_csv',
    'sessions_from_frame',
    'sessions_to_frame',
    # Synthetic data
    'SyntheticAthlete',
    'generate_athlete_cohort',
]
