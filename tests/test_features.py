"""
Tests for feature extraction.

Run with: python -m pytest tests/test_features.py -v
"""

import pytest
import numpy as np
from dataclasses import replace
from datetime import timedelta

from athlete_core.features import (
    normalize_age,
    normalize_weight,
    height_to_inches,
    normalize_height,
    encode_position,
    normalize_session_frequency,
    average_recovery_hours,
    extract_risk_features,
    extract_performance_features,
    calculate_skill_development,
    RISK_FEATURES,
    PERFORMANCE_FEATURES,
)
from athlete_core.models import AthleteProfile


# =============================================================================
# Scalar normalizations
# =============================================================================

class TestNormalizations:
    """Linear maps clamped to [0, 1]."""

    def test_age_range(self):
        assert normalize_age(16) == 0.0
        assert normalize_age(25) == 1.0
        assert normalize_age(20.5) == pytest.approx(0.5)

    def test_age_clamped(self):
        assert normalize_age(12) == 0.0
        assert normalize_age(40) == 1.0

    def test_weight_range(self):
        assert normalize_weight(140) == 0.0
        assert normalize_weight(300) == 1.0
        assert normalize_weight(220) == pytest.approx(0.5)

    def test_height_parsing(self):
        assert height_to_inches("6'2\"") == 74
        assert height_to_inches("5' 10") == 70
        assert normalize_height("6'0\"") == pytest.approx(0.5)

    def test_malformed_height_defaults_to_six_feet(self):
        assert height_to_inches("tall") == 72
        assert height_to_inches(None) == 72
        assert normalize_height("") == pytest.approx(0.5)

    def test_position_lookup(self):
        assert encode_position('RB') == 0.7
        assert encode_position('dl') == 0.8
        assert encode_position('K') == 0.2

    def test_unknown_position(self):
        assert encode_position('XX') == 0.5
        assert encode_position(None) == 0.5

    def test_session_frequency_saturates(self):
        assert normalize_session_frequency(4, 28) == pytest.approx(4 / (28 / 3))
        assert normalize_session_frequency(20, 28) == 1.0
        assert normalize_session_frequency(0, 28) == 0.0


# =============================================================================
# Risk features
# =============================================================================

class TestRiskFeatures:
    """Tests for extract_risk_features."""

    def test_all_features_present(self, profile, make_sessions):
        features = extract_risk_features(profile, make_sessions(5), [])
        assert set(features.values) == set(RISK_FEATURES)

    def test_empty_history_defaults(self, profile):
        """No sessions: zero load and frequency, a week of recovery."""
        features = extract_risk_features(profile, [], [])

        assert features['trainingLoad'] == 0.0
        assert features['sessionFrequency'] == 0.0
        assert features['recoveryTime'] == 1.0
        assert features['recentPerformance'] == pytest.approx(0.75)
        assert features['previousInjuries'] == 0.0
        assert {'trainingLoad', 'sessionFrequency', 'recoveryTime',
                'recentPerformance', 'previousInjuries'} <= features.missing

    def test_single_session_recovery_fallback(self, profile, make_sessions):
        features = extract_risk_features(profile, make_sessions(1), [])
        assert features['recoveryTime'] == 1.0
        assert 'recoveryTime' in features.missing
        assert 'trainingLoad' not in features.missing

    def test_training_load(self, profile, make_sessions):
        """Load = intensity/10 x minutes; 6/10 x 60 = 36 -> 0.36."""
        features = extract_risk_features(profile, make_sessions(4, intensity=6, duration_min=60), [])
        assert features['trainingLoad'] == pytest.approx(0.36)

    def test_recovery_from_session_gaps(self, profile, make_sessions):
        features = extract_risk_features(profile, make_sessions(5, spacing_days=3), [])
        assert features['recoveryTime'] == pytest.approx(72 / 168)
        assert average_recovery_hours(make_sessions(5, spacing_days=2)) == pytest.approx(48)

    def test_recent_performance_uses_scores(self, profile, make_sessions):
        sessions = make_sessions(3, scores=[70, 80, 90])
        features = extract_risk_features(profile, sessions, [])
        assert features['recentPerformance'] == pytest.approx(0.8)
        assert 'recentPerformance' not in features.missing

    def test_only_recent_sessions_count_for_load(self, profile, make_sessions, today):
        heavy = make_sessions(12, intensity=10, duration_min=100)
        light = make_sessions(2, intensity=1, duration_min=10, end=today - timedelta(days=60))
        features = extract_risk_features(profile, light + heavy, [], recent_count=10)
        assert features['trainingLoad'] == 1.0

    def test_injury_history(self, profile, make_injuries):
        features = extract_risk_features(profile, [], make_injuries(3, recurring=1))
        assert features['previousInjuries'] == pytest.approx(0.6)
        assert features['chronicConditions'] == pytest.approx(1 / 3)

    def test_missing_profile_attributes(self):
        profile = AthleteProfile(athlete_id='bare')
        features = extract_risk_features(profile, [], [])

        assert features['age'] == pytest.approx(normalize_age(20))
        assert features['weight'] == pytest.approx(normalize_weight(180))
        assert features['height'] == pytest.approx(0.5)
        assert features['position'] == 0.3
        assert {'age', 'weight', 'height', 'position'} <= features.missing

    @pytest.mark.parametrize('age,weight,height,position', [
        (5, 50.0, "4'0\"", 'QB'),
        (99, 500.0, "8'0\"", 'DL'),
        (18, 180.0, 'unknown', None),
    ])
    def test_features_bounded(self, make_sessions, make_injuries, age, weight, height, position):
        """Every feature stays in [0, 1] for extreme inputs."""
        profile = AthleteProfile(
            athlete_id='x', age=age, weight_lbs=weight, height=height, position=position
        )
        sessions = make_sessions(30, spacing_days=1, intensity=10, duration_min=300, scores=[100] * 30)
        features = extract_risk_features(profile, sessions, make_injuries(12, recurring=9))

        for name, value in features.values.items():
            assert 0.0 <= value <= 1.0, f"{name}={value}"


# =============================================================================
# Performance features
# =============================================================================

class TestPerformanceFeatures:
    """Tests for extract_performance_features."""

    def test_defaults_without_history(self, profile):
        features, scores = extract_performance_features(replace(profile, competition_level=None), [])

        assert scores == []
        assert set(features.values) == set(PERFORMANCE_FEATURES)
        for name in ('trainingConsistency', 'trainingLoad', 'recoveryQuality',
                     'skillDevelopment', 'motivation', 'competitionLevel'):
            assert features[name] == 0.5
        assert features['stress'] == 0.3
        assert features.missing == frozenset(PERFORMANCE_FEATURES)

    def test_three_day_spacing_is_fully_consistent(self, profile, make_sessions):
        features, _ = extract_performance_features(profile, make_sessions(6, spacing_days=3))
        assert features['trainingConsistency'] == 1.0

    def test_irregular_spacing_lowers_consistency(self, profile, make_sessions):
        features, _ = extract_performance_features(profile, make_sessions(6, spacing_days=5))
        assert features['trainingConsistency'] == pytest.approx(1 / 3)

    def test_load(self, profile, make_sessions):
        features, _ = extract_performance_features(profile, make_sessions(4, intensity=6, duration_min=60))
        assert features['trainingLoad'] == pytest.approx(0.3)

    def test_recovery_quality(self, profile, make_sessions):
        sessions = make_sessions(4, sleep_hours=6.4, calories=1600.0)
        features, _ = extract_performance_features(profile, sessions)
        assert features['recoveryQuality'] == pytest.approx(0.7)

    def test_recovery_quality_caps(self, profile, make_sessions):
        sessions = make_sessions(4, sleep_hours=10.0, calories=4000.0)
        features, _ = extract_performance_features(profile, sessions)
        assert features['recoveryQuality'] == pytest.approx(0.85)

    def test_skill_development_from_score_blocks(self):
        assert calculate_skill_development([70] * 5 + [77] * 5) == pytest.approx(0.6)

    def test_skill_development_needs_earlier_block(self):
        assert calculate_skill_development([70, 72, 74]) is None
        assert calculate_skill_development([70]) is None

    def test_motivation_and_stress(self, profile, make_sessions):
        sessions = make_sessions(4, perceived_exertion=8.0, fatigue=4.0)
        features, _ = extract_performance_features(profile, sessions)
        assert features['motivation'] == pytest.approx(0.6 + 0.32)
        assert features['stress'] == pytest.approx(0.4)

    def test_competition_level(self, profile):
        features, _ = extract_performance_features(profile, [])
        assert features['competitionLevel'] == pytest.approx(0.6)

    def test_scores_returned_chronologically(self, profile, make_sessions):
        sessions = make_sessions(4, scores=[70, 72, 74, 76])
        _, scores = extract_performance_features(profile, list(reversed(sessions)))
        assert scores == [70, 72, 74, 76]

    def test_features_bounded(self, profile, make_sessions):
        rng = np.random.RandomState(7)
        sessions = make_sessions(
            20, spacing_days=1, intensity=10, duration_min=400,
            scores=list(rng.uniform(0, 100, 20)), sleep_hours=12.0, calories=6000.0,
            perceived_exertion=10.0, fatigue=10.0,
        )
        features, _ = extract_performance_features(profile, sessions)
        for name, value in features.values.items():
            assert 0.0 <= value <= 1.0, f"{name}={value}"
