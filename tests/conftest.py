"""Shared fixtures for the athlete analytics tests."""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from athlete_core.models import (
    AthleteProfile,
    ExperienceLevel,
    InjuryRecord,
    InjurySeverity,
    TrainingSessionRecord,
)


TODAY = date(2024, 6, 1)
NOW = datetime(2024, 6, 1, 12, 0)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def profile():
    """Complete football profile."""
    return AthleteProfile(
        athlete_id='athlete_1',
        name='Test Athlete',
        age=21,
        weight_lbs=220.0,
        height="6'2\"",
        position='RB',
        gender='male',
        sport='football',
        goals=['strength'],
        experience=ExperienceLevel.INTERMEDIATE,
        competition_level=6.0,
    )


@pytest.fixture
def make_sessions():
    """Factory for evenly spaced sessions ending on TODAY."""
    def _make(
        n,
        spacing_days=3,
        intensity=6.0,
        duration_min=60.0,
        scores=None,
        end=TODAY,
        **kwargs
    ):
        sessions = []
        for i in range(n):
            day = end - timedelta(days=spacing_days * (n - 1 - i))
            score = scores[i] if scores is not None else None
            sessions.append(TrainingSessionRecord(
                session_date=day,
                intensity=intensity,
                duration_min=duration_min,
                performance_score=score,
                **kwargs
            ))
        return sessions
    return _make


@pytest.fixture
def make_injuries():
    def _make(n, recurring=0, severity=InjurySeverity.MODERATE):
        return [
            InjuryRecord(
                severity=severity,
                treatment_days=14,
                recurring=i < recurring,
                injury_date=TODAY - timedelta(days=30 * (i + 1)),
            )
            for i in range(n)
        ]
    return _make
