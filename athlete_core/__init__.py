"""
Core analytics for athlete injury risk, performance prediction and
adaptive training programs.

This package provides:
- Feature extraction (normalized risk and performance features)
- Injury risk scoring
- Performance trend analysis and prediction
- Adaptive factor weights fed by training outcomes
- Program generation, scheduling and progress tracking
- Personalization (genetics, nutrition, coaching)
- The async engine facade over an athlete repository
"""

# Errors and configuration
from .errors import (
    AnalyticsError,
    InvalidInputError,
    NotFoundError,
    ComputationError,
    ensure_finite,
)
from .config import EngineConfig, load_config

# Records
from .models import (
    ExperienceLevel,
    InjurySeverity,
    RiskLevel,
    TrendDirection,
    Priority,
    AthleteProfile,
    TrainingSessionRecord,
    InjuryRecord,
    AdaptationEvent,
    Outcome,
    FeatureVector,
    Recommendation,
    RiskAssessment,
    TrendResult,
    PerformancePrediction,
    AdaptiveWeights,
)

# Feature extraction
from .features import (
    extract_risk_features,
    extract_performance_features,
    POSITION_RISK,
)

# Risk, trend and prediction
from .risk import (
    RISK_FEATURE_WEIGHTS,
    assess_risk,
    classify_risk_level,
    compute_risk_score,
)
from .trend import analyze_trend, classify_trend
from .prediction import PERFORMANCE_FACTOR_WEIGHTS, predict_performance

# Adaptive weights
from .weights import (
    DEFAULT_ADAPTIVE_WEIGHTS,
    apply_outcome,
    default_weights,
    weights_are_valid,
)

# Programs and scheduling
from .scheduling import (
    ProgramPhase,
    Exercise,
    ScheduledSession,
    build_schedule,
    format_schedule,
)
from .programs import (
    PROGRAM_TEMPLATES,
    ProgramTemplate,
    ProgramProgress,
    ProgramStatus,
    TrainingProgram,
    select_template,
    generate_program,
    list_templates,
)

# Personalization
from .personalization import (
    GeneticProfile,
    FitnessAssessment,
    NutritionPlan,
    PersonalizedPlan,
    analyze_genetics,
)

# State and engine
from .state_store import KeyedStateStore
from .analytics_engine import AthleteAnalyticsEngine

__all__ = [
    # Errors
    'AnalyticsError',
    'InvalidInputError',
    'NotFoundError',
    'ComputationError',
    'ensure_finite',
    # Config
    'EngineConfig',
    'load_config',
    # Records
    'ExperienceLevel',
    'InjurySeverity',
    'RiskLevel',
    'TrendDirection',
    'Priority',
    'AthleteProfile',
    'TrainingSessionRecord',
    'InjuryRecord',
    'AdaptationEvent',
    'Outcome',
    'FeatureVector',
    'Recommendation',
    'RiskAssessment',
    'TrendResult',
    'PerformancePrediction',
    'AdaptiveWeights',
    # Features
    'extract_risk_features',
    'extract_performance_features',
    'POSITION_RISK',
    # Risk
    'RISK_FEATURE_WEIGHTS',
    'assess_risk',
    'classify_risk_level',
    'compute_risk_score',
    # Trend and prediction
    'analyze_trend',
    'classify_trend',
    'PERFORMANCE_FACTOR_WEIGHTS',
    'predict_performance',
    # Weights
    'DEFAULT_ADAPTIVE_WEIGHTS',
    'apply_outcome',
    'default_weights',
    'weights_are_valid',
    # Scheduling
    'ProgramPhase',
    'Exercise',
    'ScheduledSession',
    'build_schedule',
    'format_schedule',
    # Programs
    'PROGRAM_TEMPLATES',
    'ProgramTemplate',
    'ProgramProgress',
    'ProgramStatus',
    'TrainingProgram',
    'select_template',
    'generate_program',
    'list_templates',
    # Personalization
    'GeneticProfile',
    'FitnessAssessment',
    'NutritionPlan',
    'PersonalizedPlan',
    'analyze_genetics',
    # Engine
    'KeyedStateStore',
    'AthleteAnalyticsEngine',
]
