"""
Injury risk model: weighted feature sum plus conditional multipliers.

The base weight table does not sum to 1.0 (its entries total 1.43). It is
kept as is and the final score is clamped to [0, 1] after the multipliers
are added.
"""

from typing import Dict, List

from .errors import ensure_finite
from .models import (
    FeatureVector,
    Recommendation,
    RiskAssessment,
    RiskLevel,
    Priority,
    sort_recommendations,
)


RISK_FEATURE_WEIGHTS: Dict[str, float] = {
    # Physical factors
    'age': 0.15,
    'weight': 0.12,
    'height': 0.08,
    'position': 0.10,

    # Training factors
    'trainingLoad': 0.20,
    'sessionFrequency': 0.15,
    'recoveryTime': 0.12,

    # Performance factors
    'recentPerformance': 0.08,

    # Historical factors
    'previousInjuries': 0.25,
    'chronicConditions': 0.18,
}

HIGH_RISK_THRESHOLD = 0.7
MODERATE_RISK_THRESHOLD = 0.4


def compute_base_score(features: FeatureVector) -> float:
    """Weighted sum over the literal weight table."""
    return sum(features.get(name) * weight for name, weight in RISK_FEATURE_WEIGHTS.items())


def apply_risk_multipliers(features: FeatureVector) -> float:
    """
    Additional risk for dangerous combinations.

    Each rule triggers independently and the increments add up.
    """
    extra = 0.0

    # High training load with insufficient recovery
    if features['trainingLoad'] > 0.7 and features['recoveryTime'] < 0.3:
        extra += 0.15

    # Injury history with high training load
    if features['previousInjuries'] > 0.5 and features['trainingLoad'] > 0.6:
        extra += 0.12

    # Young athlete with high training load
    if features['age'] < 0.3 and features['trainingLoad'] > 0.7:
        extra += 0.08

    return extra


def compute_risk_score(features: FeatureVector) -> float:
    """Base score plus multipliers, clamped to [0, 1]."""
    score = compute_base_score(features) + apply_risk_multipliers(features)
    ensure_finite('risk score', score)
    return max(0.0, min(1.0, score))


def classify_risk_level(score: float) -> RiskLevel:
    """
    Classify a risk score. Each tier includes its lower bound.

        score >= 0.7 -> HIGH
        score >= 0.4 -> MODERATE
        otherwise    -> LOW
    """
    if score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MODERATE_RISK_THRESHOLD:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def data_completeness(features: FeatureVector) -> float:
    """Share of the risk weight carried by features backed by observed data."""
    total = sum(RISK_FEATURE_WEIGHTS.values())
    observed = sum(
        weight for name, weight in RISK_FEATURE_WEIGHTS.items()
        if name not in features.missing
    )
    return observed / total


def calculate_risk_confidence(features: FeatureVector) -> float:
    """
    0.5 + 0.3 x completeness, plus 0.1 each for injury and chronic history.

    Completeness is weighted by RISK_FEATURE_WEIGHTS rather than a plain
    count of observed features. With no session or injury history only the
    physical attributes (0.45 of 1.43) are observed, which keeps confidence
    at about 0.59. A plain count (4 of 10) would give 0.62.
    """
    confidence = 0.5
    confidence += data_completeness(features) * 0.3

    # Injury history makes the estimate more reliable
    if features['previousInjuries'] > 0:
        confidence += 0.1
    if features['chronicConditions'] > 0:
        confidence += 0.1

    return min(1.0, confidence)


def generate_risk_recommendations(score: float, features: FeatureVector) -> List[Recommendation]:
    recommendations = []

    if score >= HIGH_RISK_THRESHOLD:
        recommendations.append(Recommendation(
            priority=Priority.HIGH,
            category='Immediate Action',
            message='Consider reducing training intensity and consulting with a medical professional.',
            actions=['Reduce training load by 20-30%', 'Schedule medical evaluation',
                     'Increase recovery time'],
        ))

    if features['trainingLoad'] > 0.7:
        recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            category='Training Load',
            message='Your training load is high. Consider periodization to prevent overtraining.',
            actions=['Implement deload week', 'Monitor training volume', 'Add recovery sessions'],
        ))

    if features['recoveryTime'] < 0.3:
        recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            category='Recovery',
            message='Insufficient recovery time detected. Focus on sleep and active recovery.',
            actions=['Aim for 7-9 hours of sleep', 'Add mobility work', 'Consider massage therapy'],
        ))

    if features['previousInjuries'] > 0.5:
        recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            category='Injury History',
            message='Previous injury history increases current risk. Focus on prevention exercises.',
            actions=['Strengthen stabilizer muscles', 'Improve technique', 'Regular screening'],
        ))

    if score < MODERATE_RISK_THRESHOLD and not recommendations:
        recommendations.append(Recommendation(
            priority=Priority.LOW,
            category='Maintenance',
            message='Risk is low. Keep the current balance of load and recovery.',
            actions=['Continue current routine', 'Reassess after any change in load'],
        ))

    return sort_recommendations(recommendations)


def assess_risk(features: FeatureVector) -> RiskAssessment:
    """
    Assess injury risk from normalized features.

    Args:
        features: Risk FeatureVector from extract_risk_features

    Returns:
        RiskAssessment with score, level, confidence and recommendations
    """
    score = compute_risk_score(features)
    return RiskAssessment(
        score=score,
        level=classify_risk_level(score),
        confidence=calculate_risk_confidence(features),
        recommendations=generate_risk_recommendations(score, features),
        factors=features.copy(),
    )
