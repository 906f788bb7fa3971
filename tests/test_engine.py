"""
Tests for the AthleteAnalyticsEngine facade.

Run with: python -m pytest tests/test_engine.py -v
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from athlete_core.analytics_engine import AthleteAnalyticsEngine
from athlete_core.config import EngineConfig
from athlete_core.errors import ComputationError, InvalidInputError, NotFoundError
from athlete_core.models import AdaptationEvent, Outcome, RiskLevel, TrendDirection
from athlete_core.programs import ProgramStatus
from athlete_core.weights import DEFAULT_ADAPTIVE_WEIGHTS, weights_are_valid
from athlete_data.repository import InMemoryAthleteRepository


NOW = datetime(2024, 6, 1, 12, 0)


@pytest.fixture
def repository(profile, make_sessions, make_injuries):
    sessions = make_sessions(9, scores=[70, 71, 72, 73, 74, 75, 76, 77, 78], sleep_hours=7.5)
    return InMemoryAthleteRepository(
        athletes=[profile],
        sessions={profile.athlete_id: sessions},
        injuries={profile.athlete_id: make_injuries(1)},
    )


@pytest.fixture
def engine(repository):
    return AthleteAnalyticsEngine(repository, clock=lambda: NOW)


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# Construction
# =============================================================================

class TestConstruction:

    def test_invalid_config_rejected(self, repository):
        with pytest.raises(InvalidInputError):
            AthleteAnalyticsEngine(repository, EngineConfig(weight_floor=0.5))

    def test_stats_start_empty(self, engine):
        stats = engine.get_stats()
        assert stats['counters'] == {}
        assert stats['active_programs'] == 0
        assert stats['templates'] == 3
        assert stats['default_weights'] == DEFAULT_ADAPTIVE_WEIGHTS


# =============================================================================
# Risk and prediction
# =============================================================================

class TestRiskAndPrediction:

    def test_assess_risk(self, engine):
        assessment = run(engine.assess_risk('athlete_1'))

        assert 0.0 <= assessment.score <= 1.0
        assert assessment.level in RiskLevel
        assert assessment.factors['previousInjuries'] == pytest.approx(0.2)
        assert assessment.factors['recentPerformance'] == pytest.approx(0.74)

    def test_unknown_athlete(self, engine):
        with pytest.raises(NotFoundError):
            run(engine.assess_risk('nobody'))
        with pytest.raises(NotFoundError):
            run(engine.predict_performance('nobody'))

    def test_sessions_outside_window_ignored(self, profile, make_sessions):
        old = make_sessions(5, end=NOW.date() - timedelta(days=60))
        repository = InMemoryAthleteRepository([profile], sessions={'athlete_1': old})
        engine = AthleteAnalyticsEngine(repository, clock=lambda: NOW)

        assessment = run(engine.assess_risk('athlete_1'))
        assert assessment.factors['sessionFrequency'] == 0.0
        assert 'sessionFrequency' in assessment.factors.missing

    def test_empty_history_lowers_confidence(self, profile):
        engine = AthleteAnalyticsEngine(InMemoryAthleteRepository([profile]), clock=lambda: NOW)
        assessment = run(engine.assess_risk('athlete_1'))

        assert assessment.confidence <= 0.6
        assert assessment.factors['trainingLoad'] == 0.0
        assert assessment.factors['recoveryTime'] == 1.0

    def test_fetch_timeout_falls_back_to_empty_history(self, profile, make_sessions, caplog):
        repository = InMemoryAthleteRepository(
            [profile], sessions={'athlete_1': make_sessions(6)}, delay_seconds=0.5
        )
        engine = AthleteAnalyticsEngine(
            repository, EngineConfig(fetch_timeout_seconds=0.05), clock=lambda: NOW
        )

        with caplog.at_level(logging.WARNING, logger='athlete_core.analytics_engine'):
            assessment = run(engine.assess_risk('athlete_1'))

        assert assessment.factors['sessionFrequency'] == 0.0
        assert assessment.confidence <= 0.6
        assert engine.get_stats()['counters']['fetch_timeouts'] == 2
        assert 'timed out' in caplog.text

    def test_predict_performance(self, engine):
        prediction = run(engine.predict_performance('athlete_1'))

        assert 0.0 <= prediction.predicted_score <= 100.0
        assert prediction.trend == TrendDirection.IMPROVING
        assert prediction.time_horizon_days == 30

    def test_prediction_is_repeatable(self, engine):
        first = run(engine.predict_performance('athlete_1', 14)).to_dict()
        second = run(engine.predict_performance('athlete_1', 14)).to_dict()
        assert first == second

    def test_bad_horizon(self, engine):
        with pytest.raises(InvalidInputError):
            run(engine.predict_performance('athlete_1', 0))

    def test_computation_error_logged_and_raised(self, engine, monkeypatch, caplog):
        def broken(features):
            raise ComputationError("risk score is not a finite number: nan")

        monkeypatch.setattr('athlete_core.analytics_engine.assess_risk', broken)
        with caplog.at_level(logging.ERROR, logger='athlete_core.analytics_engine'):
            with pytest.raises(ComputationError):
                run(engine.assess_risk('athlete_1'))

        assert 'Risk assessment failed for athlete athlete_1' in caplog.text
        assert 'risk_assessments' not in engine.get_stats()['counters']


# =============================================================================
# Adaptive weights
# =============================================================================

class TestOutcomes:

    def test_default_weights(self, engine):
        assert engine.get_adaptive_weights('athlete_1').weights == DEFAULT_ADAPTIVE_WEIGHTS
        assert engine.get_adaptation_history('athlete_1') == []

    def test_record_outcome(self, engine):
        updated = engine.record_outcome(
            'athlete_1', Outcome(success=True, contributing_factors=['motivation'])
        )

        assert updated.weights['motivation'] > DEFAULT_ADAPTIVE_WEIGHTS['motivation']
        assert updated.updated_at == NOW
        assert weights_are_valid(updated.weights)
        assert engine.get_adaptive_weights('athlete_1').weights == updated.weights

    def test_record_outcome_from_dict(self, engine):
        engine.record_outcome('athlete_1', {
            'success': False,
            'contributing_factors': ['stress'],
            'adaptation': {'type': 'intensity_increase', 'outcome': 'negative', 'reason': 'injury'},
        })

        history = engine.get_adaptation_history('athlete_1')
        assert len(history) == 1
        assert history[0].reason == 'injury'
        assert history[0].recorded_at == NOW

    def test_invalid_outcome(self, engine):
        with pytest.raises(InvalidInputError):
            engine.record_outcome('athlete_1', {'contributing_factors': ['stress']})
        with pytest.raises(InvalidInputError):
            engine.record_outcome('', Outcome(success=True))

    def test_unknown_factors_warn(self, engine, caplog):
        with caplog.at_level(logging.WARNING, logger='athlete_core.analytics_engine'):
            engine.record_outcome('athlete_1', Outcome(success=True, contributing_factors=['luck']))
        assert "Ignoring unknown factors" in caplog.text

    def test_returned_weights_are_copies(self, engine):
        weights = engine.get_adaptive_weights('athlete_1')
        weights.weights['stress'] = 0.9
        assert engine.get_adaptive_weights('athlete_1').weights['stress'] == 0.08

    def test_history_feeds_next_program(self, engine):
        event = AdaptationEvent(type='intensity_increase', outcome='negative', reason='injury')
        engine.record_outcome('athlete_1', Outcome(success=False, adaptation=event))

        program = run(engine.generate_program('athlete_1'))
        assert program.schedule[0][0].intensity == pytest.approx(54.0)

    def test_weights_attached_to_program(self, engine):
        weights = engine.record_outcome('athlete_1', Outcome(success=True, contributing_factors=['stress']))
        program = run(engine.generate_program('athlete_1'))
        assert program.adaptation_factors == weights.weights


# =============================================================================
# Programs
# =============================================================================

class TestPrograms:

    def test_generate_program(self, engine):
        program = run(engine.generate_program('athlete_1'))

        assert program.template_id == 'strength_basic'
        assert program.status == ProgramStatus.ACTIVE
        assert program.created_at == NOW
        assert engine.get_program('athlete_1').id == program.id

    def test_options_override_profile(self, engine):
        program = run(engine.generate_program('athlete_1', {
            'goals': 'endurance', 'experience': 'Advanced', 'duration_weeks': 6,
        }))

        assert program.template_id == 'endurance_cardio'
        assert program.duration_weeks == 6
        assert program.phases[0].intensity == 75

    def test_missing_sport_or_goals(self, profile):
        bare = replace(profile, sport=None)
        engine = AthleteAnalyticsEngine(InMemoryAthleteRepository([bare]), clock=lambda: NOW)

        with pytest.raises(InvalidInputError, match='Athlete ID, sport, and goals are required'):
            run(engine.generate_program('athlete_1'))

    @pytest.mark.parametrize('options', [{'colour': 'red'}, {'experience': 'elite'}])
    def test_bad_options(self, engine, options):
        with pytest.raises(InvalidInputError):
            run(engine.generate_program('athlete_1', options))

    def test_new_program_replaces_current(self, engine):
        first = run(engine.generate_program('athlete_1'))
        second = run(engine.generate_program('athlete_1'))
        assert first.id != second.id
        assert engine.get_program('athlete_1').id == second.id

    def test_no_program(self, engine):
        assert engine.get_program('athlete_1') is None
        with pytest.raises(NotFoundError):
            engine.update_program_progress('athlete_1', 'session_1_1')
        with pytest.raises(NotFoundError):
            engine.end_program('athlete_1')

    def test_update_progress(self, engine):
        run(engine.generate_program('athlete_1'))
        program = engine.update_program_progress('athlete_1', 'session_1_1', {'score': 80})

        assert program.progress.completed_sessions == 1
        assert program.find_session('session_1_1').completed_at == NOW
        assert engine.get_program('athlete_1').progress.completed_sessions == 1

    def test_update_unknown_session_changes_nothing(self, engine):
        run(engine.generate_program('athlete_1'))
        with pytest.raises(NotFoundError):
            engine.update_program_progress('athlete_1', 'session_42_1')
        assert engine.get_program('athlete_1').progress.completed_sessions == 0

    def test_returned_program_is_a_copy(self, engine):
        program = run(engine.generate_program('athlete_1'))
        program.progress.completed_sessions = 99
        assert engine.get_program('athlete_1').progress.completed_sessions == 0

    def test_completing_every_session(self, engine):
        program = run(engine.generate_program('athlete_1', {'duration_weeks': 1}))
        for session in program.sessions():
            updated = engine.update_program_progress('athlete_1', session.id)

        assert updated.status == ProgramStatus.COMPLETED
        with pytest.raises(InvalidInputError):
            engine.update_program_progress('athlete_1', 'session_1_1')

    def test_end_program(self, engine):
        run(engine.generate_program('athlete_1'))
        ended = engine.end_program('athlete_1')
        assert ended.status == ProgramStatus.COMPLETED
        assert ended.completed_at == NOW

    def test_modify_program(self, engine):
        program = run(engine.generate_program('athlete_1'))
        modified = engine.modify_program(program.id, {'name': 'Block B', 'duration_weeks': 4})

        assert modified.name == 'Block B'
        assert modified.progress.total_sessions == 12
        assert modified.modified_at == NOW
        with pytest.raises(NotFoundError):
            engine.modify_program('program_missing', {'name': 'x'})

    def test_recommendations_and_analytics(self, engine):
        assert engine.get_program_recommendations('athlete_1')[0].startswith('Start with a beginner')

        program = run(engine.generate_program('athlete_1'))
        engine.update_program_progress('athlete_1', 'session_1_1', {'score': 75})
        analytics = engine.get_program_analytics(program.id)

        assert analytics['completed_sessions'] == 1
        assert analytics['average_performance'] == pytest.approx(75.0)
        assert len(engine.get_program_recommendations('athlete_1')) == 1

    def test_cleanup(self, engine):
        run(engine.generate_program('athlete_1'))
        engine.end_program('athlete_1')

        assert engine.cleanup(NOW + timedelta(days=30)) == 0
        assert engine.cleanup(NOW + timedelta(days=91)) == 1
        assert engine.get_program('athlete_1') is None

    def test_cleanup_keeps_active(self, engine):
        run(engine.generate_program('athlete_1'))
        assert engine.cleanup(NOW + timedelta(days=365)) == 0

    def test_stats(self, engine):
        run(engine.assess_risk('athlete_1'))
        run(engine.generate_program('athlete_1'))
        engine.record_outcome('athlete_1', Outcome(success=True))

        stats = engine.get_stats()
        assert stats['counters']['risk_assessments'] == 1
        assert stats['counters']['programs_generated'] == 1
        assert stats['counters']['outcomes_recorded'] == 1
        assert stats['active_programs'] == 1
        assert stats['athletes_with_weights'] == 1


# =============================================================================
# Personalized plans
# =============================================================================

class TestPersonalizedPlan:

    def test_plan(self, engine):
        plan = run(engine.generate_personalized_plan('athlete_1'))

        assert plan.athlete_id == 'athlete_1'
        assert plan.program.template_id == 'strength_basic'
        assert plan.nutrition.daily_calories > 0
        assert plan.coaching[-1].category == 'Mental Training'
        assert plan.fitness.predicted is not None
        assert plan.generated_at == NOW
        assert 'training_program' in plan.to_dict()

    def test_defaults_fill_missing_sport_and_goals(self, profile):
        bare = replace(profile, sport=None, goals=[])
        engine = AthleteAnalyticsEngine(InMemoryAthleteRepository([bare]), clock=lambda: NOW)

        plan = run(engine.generate_personalized_plan('athlete_1'))
        assert plan.program.goals == ['strength', 'endurance']
        assert plan.nutrition.macros['protein'] == round(1.8 * 220 / 2.20462)

    def test_genetics_used(self, profile):
        athlete = replace(profile, genetic_markers={'MSTN': 'aa'})
        engine = AthleteAnalyticsEngine(InMemoryAthleteRepository([athlete]), clock=lambda: NOW)

        plan = run(engine.generate_personalized_plan('athlete_1'))
        assert plan.genetics.strength_gain == 0.8
        assert 'creatine' in plan.nutrition.supplements
