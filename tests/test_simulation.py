"""
Tests for the outcome-feedback simulation and reports.

Run with: python -m pytest tests/test_simulation.py -v
"""

import asyncio
from datetime import date, datetime

import pandas as pd
import pytest

from athlete_core.analytics_engine import AthleteAnalyticsEngine
from athlete_core.weights import weights_are_valid
from athlete_data.repository import InMemoryAthleteRepository
from athlete_data.synthetic import generate_athlete_cohort
from simulation.feedback import FeedbackSimulation, aggregate_feedback
from analysis.reports import (
    generate_risk_report,
    generate_prediction_report,
    generate_program_report,
    generate_feedback_report,
    export_feedback_csv,
)


END = date(2024, 6, 1)


@pytest.fixture(scope='module')
def results():
    cohort = generate_athlete_cohort(3, seed=11, end_date=END)
    simulation = FeedbackSimulation(weeks_per_block=2)
    return simulation.run_batch(cohort, n_blocks=3, end_date=END, seed=11)


class TestFeedbackSimulation:

    def test_blocks_recorded(self, results):
        assert len(results) == 3
        for r in results:
            assert [b.block for b in r.blocks] == [1, 2, 3]
            assert all(0 <= b.sessions_completed <= b.total_sessions for b in r.blocks)

    def test_weight_invariant_held(self, results):
        for r in results:
            assert r.invariant_held
            assert weights_are_valid(r.final_weights)
            assert all(b.weight_sum == pytest.approx(1.0, abs=1e-6) for b in r.blocks)

    def test_trajectories(self, results):
        r = results[0]
        assert r.get_weight_trajectory('stress').shape == (3,)
        assert r.get_risk_trajectory().shape == (3,)
        assert 0.0 <= r.success_rate <= 1.0

    def test_reproducible(self):
        cohort = generate_athlete_cohort(1, seed=5, end_date=END)
        simulation = FeedbackSimulation(weeks_per_block=1)

        first = simulation.run_athlete(cohort[0], 2, END, seed=9).to_dict()
        second = simulation.run_athlete(cohort[0], 2, END, seed=9).to_dict()
        assert first == second

    def test_aggregate(self, results):
        agg = aggregate_feedback(results)

        assert agg['n_simulations'] == 3
        assert agg['blocks_per_athlete'] == 3
        assert agg['pct_invariant_held'] == 100.0
        assert sum(agg['mean_final_weights'].values()) == pytest.approx(1.0, abs=1e-6)
        assert aggregate_feedback([]) == {}


class TestReports:

    @pytest.fixture
    def engine(self, profile, make_sessions):
        repository = InMemoryAthleteRepository(
            [profile], sessions={'athlete_1': make_sessions(6, scores=[70, 72, 71, 74, 75, 77])}
        )
        return AthleteAnalyticsEngine(repository, clock=lambda: datetime(2024, 6, 1, 12, 0))

    def test_risk_report(self, engine):
        assessment = asyncio.run(engine.assess_risk('athlete_1'))
        report = generate_risk_report('athlete_1', assessment)

        assert 'Injury Risk Assessment: athlete_1' in report
        assert assessment.level.value in report
        assert '(default)' in report

    def test_prediction_report(self, engine):
        prediction = asyncio.run(engine.predict_performance('athlete_1'))
        report = generate_prediction_report('athlete_1', prediction)
        assert 'Predicted score' in report
        assert prediction.trend.value in report

    def test_program_report(self, engine):
        program = asyncio.run(engine.generate_program('athlete_1'))
        report = generate_program_report(program, max_weeks=1)

        assert program.id in report
        assert 'Week 1 (Foundation)' in report
        assert f'Progression:               {program.progression}' in report
        assert 'Week 2' not in report

    def test_feedback_report(self, results):
        report = generate_feedback_report(results)
        assert 'WEIGHT INVARIANT' in report
        assert results[0].athlete_id[:24] in report
        assert 'No results' in generate_feedback_report([])

    def test_export_csv(self, results, tmp_path):
        path = tmp_path / 'blocks.csv'
        export_feedback_csv(results, str(path))

        df = pd.read_csv(path)
        assert len(df) == 9
        assert set(results[0].final_weights) <= set(df.columns)
        assert df['weight_sum'].between(1 - 1e-6, 1 + 1e-6).all()
