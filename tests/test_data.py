"""
Tests for the repository, file loaders and synthetic data.

Run with: python -m pytest tests/test_data.py -v
"""

import asyncio
import json
from datetime import date, timedelta

import numpy as np
import pytest

from athlete_core.errors import InvalidInputError, NotFoundError
from athlete_core.models import ExperienceLevel, InjuryRecord, InjurySeverity
from athlete_data.loaders import (
    load_athletes_json,
    load_sessions_csv,
    load_injuries_csv,
    sessions_to_frame,
)
from athlete_data.repository import InMemoryAthleteRepository
from athlete_data.synthetic import (
    generate_athlete_cohort,
    generate_session_history,
    create_injury_prone,
)


END = date(2024, 6, 1)


# =============================================================================
# Repository
# =============================================================================

class TestRepository:

    def test_fetch_athlete(self, profile):
        repository = InMemoryAthleteRepository([profile])
        assert asyncio.run(repository.fetch_athlete('athlete_1')) is profile
        with pytest.raises(NotFoundError):
            asyncio.run(repository.fetch_athlete('missing'))

    def test_sessions_since(self, profile, make_sessions, today):
        repository = InMemoryAthleteRepository([profile], sessions={'athlete_1': make_sessions(10)})
        since = today - timedelta(days=9)

        recent = asyncio.run(repository.fetch_sessions('athlete_1', since))
        assert [s.session_date for s in recent] == [today - timedelta(days=d) for d in (9, 6, 3, 0)]
        assert len(asyncio.run(repository.fetch_sessions('athlete_1'))) == 10

    def test_sessions_kept_in_date_order(self, profile, make_sessions):
        sessions = make_sessions(5)
        repository = InMemoryAthleteRepository([profile])
        repository.add_sessions('athlete_1', reversed(sessions))

        fetched = asyncio.run(repository.fetch_sessions('athlete_1'))
        assert fetched == sessions

    def test_injuries_since_keep_undated(self, today):
        injuries = [
            InjuryRecord(InjurySeverity.MINOR, injury_date=today - timedelta(days=400)),
            InjuryRecord(InjurySeverity.MINOR, injury_date=today - timedelta(days=10)),
            InjuryRecord(InjurySeverity.SEVERE),
        ]
        repository = InMemoryAthleteRepository(injuries={'athlete_1': injuries})

        recent = asyncio.run(repository.fetch_injuries('athlete_1', today - timedelta(days=30)))
        assert recent == injuries[1:]

    def test_unknown_athlete_has_empty_history(self):
        repository = InMemoryAthleteRepository()
        assert asyncio.run(repository.fetch_sessions('nobody')) == []
        assert asyncio.run(repository.fetch_injuries('nobody')) == []


# =============================================================================
# Loaders
# =============================================================================

class TestLoaders:

    def test_athletes_json(self, tmp_path):
        path = tmp_path / 'athletes.json'
        path.write_text(json.dumps({'athletes': [
            {'id': 7, 'sport': 'football', 'goals': 'Strength', 'experience': 'ADVANCED'},
            {'athlete_id': 'b', 'weight': 200, 'height': "6'1\""},
        ]}))

        profiles = load_athletes_json(path)
        assert [p.athlete_id for p in profiles] == ['7', 'b']
        assert profiles[0].goals == ['strength']
        assert profiles[0].experience == ExperienceLevel.ADVANCED
        assert profiles[1].weight_lbs == 200

    def test_athletes_json_rejects_bad_profile(self, tmp_path):
        path = tmp_path / 'athletes.json'
        path.write_text(json.dumps([{'athlete_id': 'a', 'age': 150}]))
        with pytest.raises(InvalidInputError):
            load_athletes_json(path)

    def test_sessions_csv(self, tmp_path):
        path = tmp_path / 'sessions.csv'
        path.write_text(
            "athlete_id,date,intensity,duration_min,sleep_hours,performance_score\n"
            "a,2024-05-03,6,60,7.5,72\n"
            "a,2024-05-01,5,45,,70\n"
            "b,2024-05-02,8,90,8,\n"
        )

        sessions = load_sessions_csv(path)
        assert sorted(sessions) == ['a', 'b']
        assert [s.session_date for s in sessions['a']] == [date(2024, 5, 1), date(2024, 5, 3)]
        assert sessions['a'][0].sleep_hours is None
        assert sessions['a'][1].sleep_hours == 7.5
        assert sessions['b'][0].performance_score is None
        assert sessions['b'][0].load == pytest.approx(72.0)

    def test_sessions_csv_missing_column(self, tmp_path):
        path = tmp_path / 'sessions.csv'
        path.write_text("athlete_id,intensity\na,5\n")
        with pytest.raises(InvalidInputError, match='date'):
            load_sessions_csv(path)

    def test_sessions_csv_out_of_range(self, tmp_path):
        path = tmp_path / 'sessions.csv'
        path.write_text("athlete_id,date,intensity,duration_min\na,2024-05-01,14,60\n")
        with pytest.raises(InvalidInputError):
            load_sessions_csv(path)

    def test_injuries_csv(self, tmp_path):
        path = tmp_path / 'injuries.csv'
        path.write_text(
            "athlete_id,severity,date,treatment_days,recurring\n"
            "a,Moderate,2023-11-01,21,True\n"
            "a,minor,,5,False\n"
        )

        injuries = load_injuries_csv(path)['a']
        assert injuries[0].severity == InjurySeverity.MODERATE
        assert injuries[0].recurring is True
        assert injuries[0].injury_date == date(2023, 11, 1)
        assert injuries[1].injury_date is None

    def test_sessions_to_frame(self, make_sessions):
        df = sessions_to_frame({'a': make_sessions(3), 'b': make_sessions(2)})
        assert len(df) == 5
        assert set(df['athlete_id']) == {'a', 'b'}
        assert df['load'].iloc[0] == pytest.approx(36.0)


# =============================================================================
# Synthetic data
# =============================================================================

class TestSynthetic:

    def test_cohort_size_and_ids(self):
        cohort = generate_athlete_cohort(12, seed=3, end_date=END)
        ids = [a.profile.athlete_id for a in cohort]

        assert len(cohort) == 12
        assert len(set(ids)) == 12
        assert {a.archetype for a in cohort} >= {
            'young_prospect', 'veteran_lineman', 'endurance_athlete', 'injury_prone', 'overreacher',
        }

    def test_seed_is_reproducible(self):
        first = generate_athlete_cohort(5, seed=42, end_date=END)
        second = generate_athlete_cohort(5, seed=42, end_date=END)

        assert [a.to_dict() for a in first] == [a.to_dict() for a in second]
        assert first[0].sessions == second[0].sessions

    def test_session_history_bounds(self):
        sessions = generate_session_history(6, 4, 7.0, 0.8, 70, 0.5, END)

        assert sessions
        assert all(s.session_date <= END for s in sessions)
        assert all(1 <= s.intensity <= 10 for s in sessions)
        assert all(0 <= s.performance_score <= 100 for s in sessions)
        assert sessions == sorted(sessions, key=lambda s: s.session_date)

    def test_injury_prone_has_history(self):
        np.random.seed(0)
        athlete = create_injury_prone(1, END)

        assert athlete.injury_susceptibility >= 0.7
        assert athlete.profile.sport == 'football'
        assert all(i.injury_date < END for i in athlete.injuries)
