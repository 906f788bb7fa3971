"""
Performance forecast over a time horizon.

    predicted = skillDevelopment × 100
              + slope × (horizon_days / 30)
              + (Σ feature × weight - 0.5) × 20

clamped to [0, 100].
"""

from typing import Dict, List, Optional

from .errors import ensure_finite
from .models import (
    FeatureVector,
    PerformancePrediction,
    Recommendation,
    Priority,
    TrendDirection,
    TrendResult,
    sort_recommendations,
)


PERFORMANCE_FACTOR_WEIGHTS: Dict[str, float] = {
    # Physical factors
    'trainingConsistency': 0.25,
    'trainingLoad': 0.20,
    'recoveryQuality': 0.15,

    # Technical factors
    'skillDevelopment': 0.15,

    # Mental factors
    'motivation': 0.10,
    'stress': 0.08,

    # External factors
    'competitionLevel': 0.07,
}


def calculate_feature_contribution(
    features: FeatureVector,
    weights: Optional[Dict[str, float]] = None
) -> float:
    weights = weights or PERFORMANCE_FACTOR_WEIGHTS
    return sum(features.get(name) * weight for name, weight in weights.items())


def calculate_prediction_confidence(features: FeatureVector, history_length: int) -> float:
    confidence = 0.5

    # More scored history
    confidence += min(0.3, history_length / 20)

    if features['trainingConsistency'] > 0.7:
        confidence += 0.1
    if features['recoveryQuality'] > 0.6:
        confidence += 0.1

    return min(1.0, confidence)


def generate_performance_recommendations(
    features: FeatureVector,
    trend: TrendResult
) -> List[Recommendation]:
    recommendations = []

    if features['trainingConsistency'] < 0.6:
        recommendations.append(Recommendation(
            priority=Priority.HIGH,
            category='Training Consistency',
            message='Improve training consistency to maximize performance gains.',
            actions=['Schedule regular training sessions', 'Track attendance', 'Set realistic goals'],
        ))

    if features['recoveryQuality'] < 0.5:
        recommendations.append(Recommendation(
            priority=Priority.HIGH,
            category='Recovery',
            message='Focus on recovery to prevent performance decline.',
            actions=['Prioritize sleep (7-9 hours)', 'Monitor nutrition', 'Include rest days'],
        ))

    if features['trainingLoad'] > 0.8:
        recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            category='Training Load',
            message='High training load detected. Consider periodization.',
            actions=['Implement deload weeks', 'Monitor fatigue levels', 'Balance training types'],
        ))

    if trend.direction == TrendDirection.DECLINING:
        recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            category='Performance Trend',
            message='Performance is trending downward. Review training approach.',
            actions=['Assess technique', 'Check for overtraining', 'Consult coach'],
        ))

    return sort_recommendations(recommendations)


def predict_performance(
    features: FeatureVector,
    trend: TrendResult,
    horizon_days: int = 30,
    history_length: int = 0
) -> PerformancePrediction:
    """
    Forecast the performance score ``horizon_days`` ahead.

    Args:
        features: Performance FeatureVector from extract_performance_features
        trend: Trend of the athlete's score series
        horizon_days: Forecast horizon in days
        history_length: Number of scored sessions behind the trend

    Returns:
        PerformancePrediction
    """
    base = features['skillDevelopment'] * 100
    trend_contribution = trend.slope * (horizon_days / 30)
    feature_contribution = calculate_feature_contribution(features)

    raw = base + trend_contribution + (feature_contribution - 0.5) * 20
    ensure_finite('predicted score', raw)

    return PerformancePrediction(
        predicted_score=max(0.0, min(100.0, raw)),
        confidence=calculate_prediction_confidence(features, history_length),
        trend=trend.direction,
        trend_strength=trend.strength,
        time_horizon_days=horizon_days,
        trend_contribution=trend_contribution,
        feature_contribution=feature_contribution,
        factors=features.copy(),
        recommendations=generate_performance_recommendations(features, trend),
    )
