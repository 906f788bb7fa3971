"""
Athlete personalization: genetic insights, fitness assessment, nutrition and
coaching advice.

Genetic markers:
- ACTN3 'rr' → sprint strength (sprint_power 1.2), 'rx' → neutral (1.0),
  anything else → sprint weakness (0.8)
- MSTN 'aa' → muscle building weakness (strength_gain 0.8), anything else →
  strength (1.1)

Nutrition uses the Mifflin-St Jeor BMR scaled by an activity multiplier,
with macros in g/kg of body weight adjusted by sport and genetics.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, TYPE_CHECKING

from .features import height_to_inches
from .models import (
    AthleteProfile,
    PerformancePrediction,
    Recommendation,
    Priority,
    sort_recommendations,
)

if TYPE_CHECKING:
    from .programs import TrainingProgram


SPRINT_STRENGTH = 'Sprint performance'
MUSCLE_BUILDING = 'Muscle building potential'

ACTIVITY_MULTIPLIERS = {
    'sedentary': 1.2,
    'light': 1.375,
    'moderate': 1.55,
    'active': 1.725,
    'very_active': 1.9,
}

# Protein, carbs, fat in g per kg body weight
DEFAULT_MACROS = (1.6, 6.0, 1.2)
SPORT_MACROS = {
    'football': (1.8, 7.0, 1.2),
    'endurance': (1.4, 8.0, 1.2),
}

DEFAULT_WEIGHT_KG = 70.0
DEFAULT_HEIGHT_CM = 175.0
DEFAULT_AGE = 20
DEFAULT_METRIC = 50.0

LBS_PER_KG = 2.20462
CM_PER_INCH = 2.54

LIMITING_THRESHOLD = 60
IMPROVEMENT_THRESHOLD = 70


@dataclass
class GeneticProfile:
    """Strengths, weaknesses and performance modifiers read from markers."""
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    modifiers: Dict[str, float] = field(default_factory=dict)

    @property
    def sprint_power(self) -> Optional[float]:
        return self.modifiers.get('sprint_power')

    @property
    def strength_gain(self) -> Optional[float]:
        return self.modifiers.get('strength_gain')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strengths': list(self.strengths),
            'weaknesses': list(self.weaknesses),
            'recommendations': list(self.recommendations),
            'performance_modifiers': dict(self.modifiers),
        }


@dataclass
class FitnessAssessment:
    current_level: float
    limiting_factors: List[str]
    improvement_areas: List[str]
    predicted: Optional[PerformancePrediction] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_level': round(self.current_level, 1),
            'limiting_factors': list(self.limiting_factors),
            'improvement_areas': list(self.improvement_areas),
            'predicted_progression': self.predicted.to_dict() if self.predicted else None,
        }


@dataclass
class NutritionPlan:
    daily_calories: int
    macros: Dict[str, int]                  # grams per day
    meal_timing: Dict[str, str]
    supplements: List[str]
    hydration_ml: int
    genetic_adjustments: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'daily_calories': self.daily_calories,
            'macros': dict(self.macros),
            'meal_timing': dict(self.meal_timing),
            'supplementation': list(self.supplements),
            'hydration_ml': self.hydration_ml,
            'genetic_adjustments': dict(self.genetic_adjustments),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# GENETICS
# ═══════════════════════════════════════════════════════════════════════════════

def analyze_genetics(markers: Optional[Dict[str, str]]) -> GeneticProfile:
    """
    Read ACTN3 and MSTN genotypes into a GeneticProfile.

    Markers that are absent leave their modifier unset.
    """
    profile = GeneticProfile()
    markers = {k.upper(): str(v).lower() for k, v in (markers or {}).items()}

    actn3 = markers.get('ACTN3')
    if actn3:
        if actn3 == 'rr':
            profile.strengths.append(SPRINT_STRENGTH)
            profile.modifiers['sprint_power'] = 1.2
        elif actn3 == 'rx':
            profile.modifiers['sprint_power'] = 1.0
        else:
            profile.weaknesses.append(SPRINT_STRENGTH)
            profile.modifiers['sprint_power'] = 0.8

    mstn = markers.get('MSTN')
    if mstn:
        if mstn == 'aa':
            profile.weaknesses.append(MUSCLE_BUILDING)
            profile.modifiers['strength_gain'] = 0.8
        else:
            profile.strengths.append(MUSCLE_BUILDING)
            profile.modifiers['strength_gain'] = 1.1

    if SPRINT_STRENGTH in profile.strengths:
        profile.recommendations.append('Focus on high-intensity interval training')
    if MUSCLE_BUILDING in profile.weaknesses:
        profile.recommendations.append('Emphasize progressive overload and recovery')

    return profile


# ═══════════════════════════════════════════════════════════════════════════════
# FITNESS ASSESSMENT
# ═══════════════════════════════════════════════════════════════════════════════

def _metric(profile: AthleteProfile, name: str) -> float:
    value = profile.metrics.get(name)
    return DEFAULT_METRIC if value is None else float(value)


def calculate_fitness_level(profile: AthleteProfile) -> float:
    """Mean of the strength, endurance and speed self assessments."""
    return sum(_metric(profile, m) for m in ('strength', 'endurance', 'speed')) / 3


def identify_limiting_factors(profile: AthleteProfile) -> List[str]:
    return [
        m for m in ('recovery', 'technique', 'nutrition')
        if _metric(profile, m) < LIMITING_THRESHOLD
    ]


def identify_improvement_areas(profile: AthleteProfile) -> List[str]:
    return [
        m for m in ('strength', 'endurance', 'speed')
        if _metric(profile, m) < IMPROVEMENT_THRESHOLD
    ]


def assess_fitness(
    profile: AthleteProfile,
    prediction: Optional[PerformancePrediction] = None
) -> FitnessAssessment:
    return FitnessAssessment(
        current_level=calculate_fitness_level(profile),
        limiting_factors=identify_limiting_factors(profile),
        improvement_areas=identify_improvement_areas(profile),
        predicted=prediction,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# NUTRITION
# ═══════════════════════════════════════════════════════════════════════════════

def body_weight_kg(profile: AthleteProfile) -> float:
    if profile.weight_lbs is None:
        return DEFAULT_WEIGHT_KG
    return profile.weight_lbs / LBS_PER_KG


def body_height_cm(profile: AthleteProfile) -> float:
    if not profile.height:
        return DEFAULT_HEIGHT_CM
    return height_to_inches(profile.height) * CM_PER_INCH


def calculate_daily_calories(profile: AthleteProfile) -> int:
    """Mifflin-St Jeor BMR times the activity multiplier."""
    weight = body_weight_kg(profile)
    height = body_height_cm(profile)
    age = profile.age if profile.age is not None else DEFAULT_AGE

    bmr = 10 * weight + 6.25 * height - 5 * age
    bmr += -161 if (profile.gender or 'male').lower() == 'female' else 5

    multiplier = ACTIVITY_MULTIPLIERS.get(profile.activity_level, ACTIVITY_MULTIPLIERS['moderate'])
    return int(round(bmr * multiplier))


def calculate_macros(profile: AthleteProfile, genetics: GeneticProfile) -> Dict[str, int]:
    protein, carbs, fat = SPORT_MACROS.get((profile.sport or '').lower(), DEFAULT_MACROS)

    if genetics.strength_gain is not None and genetics.strength_gain < 1:
        protein *= 1.2

    weight = body_weight_kg(profile)
    return {
        'protein': int(round(protein * weight)),
        'carbs': int(round(carbs * weight)),
        'fat': int(round(fat * weight)),
    }


def meal_timing() -> Dict[str, str]:
    return {
        'pre_workout': '2-3 hours before training',
        'during_workout': 'If training >90 min, consume carbs',
        'post_workout': 'Within 30-60 min after training',
        'frequency': '4-6 meals per day',
    }


def recommend_supplements(genetics: GeneticProfile) -> List[str]:
    supplements = ['multivitamin', 'omega-3']
    if MUSCLE_BUILDING in genetics.weaknesses:
        supplements += ['creatine', 'beta-alanine']
    return supplements


def calculate_hydration_ml(profile: AthleteProfile) -> int:
    """35 ml per kg, scaled 1.5 for very active athletes and 1.2 otherwise."""
    multiplier = 1.5 if profile.activity_level == 'very_active' else 1.2
    return int(round(body_weight_kg(profile) * 35 * multiplier))


def generate_nutrition_plan(profile: AthleteProfile, genetics: GeneticProfile) -> NutritionPlan:
    adjustments = {}
    if genetics.strength_gain is not None and genetics.strength_gain < 1:
        adjustments['protein'] = 'Increase protein intake by 20%'

    return NutritionPlan(
        daily_calories=calculate_daily_calories(profile),
        macros=calculate_macros(profile, genetics),
        meal_timing=meal_timing(),
        supplements=recommend_supplements(genetics),
        hydration_ml=calculate_hydration_ml(profile),
        genetic_adjustments=adjustments,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# COACHING
# ═══════════════════════════════════════════════════════════════════════════════

def generate_coaching_advice(assessment: FitnessAssessment) -> List[Recommendation]:
    advice = []

    if 'recovery' in assessment.limiting_factors:
        advice.append(Recommendation(
            priority=Priority.HIGH,
            category='Recovery',
            message='Your recovery patterns are limiting performance gains.',
            actions=[
                'Prioritize 8-9 hours of sleep nightly',
                'Implement active recovery techniques',
                'Monitor HRV and fatigue levels',
            ],
        ))

    if 'technique' in assessment.improvement_areas or 'technique' in assessment.limiting_factors:
        advice.append(Recommendation(
            priority=Priority.MEDIUM,
            category='Technique',
            message='Focus on technical proficiency to maximize efficiency.',
            actions=[
                'Schedule regular technique sessions',
                'Use video analysis for form correction',
                'Work with a coach on specific drills',
            ],
        ))

    advice.append(Recommendation(
        priority=Priority.MEDIUM,
        category='Mental Training',
        message='Mental resilience is key to consistent performance.',
        actions=[
            'Set process-oriented goals',
            'Practice visualization techniques',
            'Maintain a performance journal',
        ],
    ))

    return sort_recommendations(advice)


@dataclass
class PersonalizedPlan:
    """Program, nutrition and coaching generated together for one athlete."""
    athlete_id: str
    program: 'TrainingProgram'
    nutrition: NutritionPlan
    coaching: List[Recommendation]
    genetics: GeneticProfile
    fitness: FitnessAssessment
    adaptation_factors: Dict[str, float]
    generated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'athlete_id': self.athlete_id,
            'training_program': self.program.to_dict(include_schedule=False),
            'nutrition_plan': self.nutrition.to_dict(),
            'coaching_advice': [r.to_dict() for r in self.coaching],
            'genetic_insights': self.genetics.to_dict(),
            'fitness_assessment': self.fitness.to_dict(),
            'adaptation_factors': dict(self.adaptation_factors),
            'generated_at': self.generated_at.isoformat(),
        }
