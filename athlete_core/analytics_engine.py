"""
Athlete Analytics Engine: the facade tying the pure algorithms to athlete
data and per-athlete state.

Reads go through the repository. Session and injury history are fetched
concurrently under a short timeout and degrade to empty history when the
timeout hits. The profile fetch has no fallback.

Mutable state (adaptive weights, adaptation history, programs) lives in
KeyedStateStore instances. Every mutation runs under the athlete's lock, so
two mutators for the same athlete never interleave.
"""

from collections import Counter
from copy import deepcopy
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List, Callable, Tuple, Union
import asyncio
import logging
import threading

from .config import EngineConfig
from .errors import ComputationError, InvalidInputError, NotFoundError
from .features import extract_risk_features, extract_performance_features
from .models import (
    AdaptationEvent,
    AdaptiveWeights,
    AthleteProfile,
    ExperienceLevel,
    InjuryRecord,
    Outcome,
    PerformancePrediction,
    RiskAssessment,
    TrainingSessionRecord,
)
from .personalization import (
    PersonalizedPlan,
    analyze_genetics,
    assess_fitness,
    generate_coaching_advice,
    generate_nutrition_plan,
)
from .prediction import PERFORMANCE_FACTOR_WEIGHTS, predict_performance
from .programs import (
    PROGRAM_TEMPLATES,
    ProgramStatus,
    TrainingProgram,
    generate_program,
    list_templates,
    modify_program,
    program_analytics,
    program_recommendations,
)
from .risk import RISK_FEATURE_WEIGHTS, assess_risk
from .state_store import KeyedStateStore
from .trend import analyze_trend
from .weights import apply_outcome, default_weights, unknown_factors


logger = logging.getLogger(__name__)

PROFILE_OVERRIDES = ('sport', 'goals', 'experience', 'weaknesses', 'equipment')
PROGRAM_OPTIONS = PROFILE_OVERRIDES + ('duration_weeks',)

# Personalized plans fill these in when the profile leaves them empty
PERSONALIZED_DEFAULTS = {'sport': 'football', 'goals': ['strength', 'endurance']}


class AthleteAnalyticsEngine:
    """
    Risk assessment, performance prediction and adaptive programs for
    athletes read from a repository.

    Args:
        repository: AthleteRepository providing profiles and history
        config: Engine tunables (defaults if None)
        clock: Callable returning the current datetime
    """

    def __init__(
        self,
        repository,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.repository = repository
        self.config = config or EngineConfig()
        ok, message = self.config.validate()
        if not ok:
            raise InvalidInputError(f"Invalid engine config: {message}")
        self.clock = clock or datetime.now

        self._weights: KeyedStateStore[AdaptiveWeights] = KeyedStateStore('adaptive_weights')
        self._history: KeyedStateStore[List[AdaptationEvent]] = KeyedStateStore('adaptation_history')
        self._programs: KeyedStateStore[TrainingProgram] = KeyedStateStore('programs')
        self._current: KeyedStateStore[str] = KeyedStateStore('current_program')

        self._counters: Counter = Counter()
        self._counter_lock = threading.Lock()

    def _count(self, name: str) -> None:
        with self._counter_lock:
            self._counters[name] += 1

    # ═══════════════════════════════════════════════════════════════════════════
    # DATA ACCESS
    # ═══════════════════════════════════════════════════════════════════════════

    async def _fetch_or_empty(self, label: str, athlete_id: str, fetch) -> list:
        try:
            return list(await asyncio.wait_for(fetch, timeout=self.config.fetch_timeout_seconds))
        except asyncio.TimeoutError:
            logger.warning(
                f"{label} fetch for athlete {athlete_id} timed out after "
                f"{self.config.fetch_timeout_seconds}s, using empty history"
            )
            self._count('fetch_timeouts')
            return []

    async def _fetch_history(
        self,
        athlete_id: str
    ) -> Tuple[List[TrainingSessionRecord], List[InjuryRecord]]:
        since = self.clock().date() - timedelta(days=self.config.history_window_days)
        sessions, injuries = await asyncio.gather(
            self._fetch_or_empty('Session', athlete_id, self.repository.fetch_sessions(athlete_id, since)),
            self._fetch_or_empty('Injury', athlete_id, self.repository.fetch_injuries(athlete_id, None)),
        )
        return sessions, injuries

    def _compute(self, label: str, athlete_id: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ComputationError:
            logger.error(f"{label} failed for athlete {athlete_id}", exc_info=True)
            raise

    # ═══════════════════════════════════════════════════════════════════════════
    # RISK AND PREDICTION
    # ═══════════════════════════════════════════════════════════════════════════

    async def assess_risk(self, athlete_id: str) -> RiskAssessment:
        """
        Score an athlete's injury risk from profile and recent history.

        Raises:
            NotFoundError: If the athlete is unknown
            ComputationError: If a non-finite result slips through
        """
        profile = await self.repository.fetch_athlete(athlete_id)
        sessions, injuries = await self._fetch_history(athlete_id)

        features = extract_risk_features(
            profile, sessions, injuries,
            window_days=self.config.history_window_days,
            recent_count=self.config.recent_session_count,
        )
        assessment = self._compute('Risk assessment', athlete_id, assess_risk, features)

        self._count('risk_assessments')
        logger.debug(
            f"Risk for {athlete_id}: {assessment.score:.3f} {assessment.level.value} "
            f"(confidence {assessment.confidence:.2f})"
        )
        return assessment

    async def predict_performance(
        self,
        athlete_id: str,
        horizon_days: Optional[int] = None
    ) -> PerformancePrediction:
        """
        Forecast an athlete's performance score ``horizon_days`` ahead.

        Identical inputs give identical predictions; only record_outcome
        changes engine state that could affect later results.
        """
        horizon = self.config.default_horizon_days if horizon_days is None else horizon_days
        if horizon < 1:
            raise InvalidInputError(f"horizon_days must be at least 1, got {horizon}")

        profile = await self.repository.fetch_athlete(athlete_id)
        sessions, _ = await self._fetch_history(athlete_id)

        features, scores = extract_performance_features(
            profile, sessions, recent_count=self.config.recent_session_count
        )
        trend = self._compute('Trend analysis', athlete_id, analyze_trend, scores)
        prediction = self._compute(
            'Performance prediction', athlete_id, predict_performance,
            features, trend, horizon_days=horizon, history_length=len(scores),
        )

        self._count('performance_predictions')
        return prediction

    # ═══════════════════════════════════════════════════════════════════════════
    # ADAPTIVE WEIGHTS
    # ═══════════════════════════════════════════════════════════════════════════

    def get_adaptive_weights(self, athlete_id: str) -> AdaptiveWeights:
        """Current weights, or the default vector for athletes without outcomes."""
        weights = self._weights.snapshot(athlete_id)
        if weights is None:
            return AdaptiveWeights(athlete_id=athlete_id, weights=default_weights())
        return weights

    def get_adaptation_history(self, athlete_id: str) -> List[AdaptationEvent]:
        return self._history.snapshot(athlete_id, [])

    def record_outcome(
        self,
        athlete_id: str,
        outcome: Union[Outcome, Dict[str, Any]]
    ) -> AdaptiveWeights:
        """
        Feed an outcome back into the athlete's adaptive weights.

        Factors that do not name an adaptive weight are ignored. An attached
        adaptation event is appended to the athlete's adaptation history.

        Returns:
            Updated AdaptiveWeights
        """
        if not athlete_id:
            raise InvalidInputError("athlete_id is required")
        if isinstance(outcome, dict):
            outcome = Outcome.from_dict(outcome)

        ignored = unknown_factors(outcome.contributing_factors)
        if ignored:
            logger.warning(f"Ignoring unknown factors for athlete {athlete_id}: {ignored}")

        now = self.clock()

        def nudge(current: Optional[AdaptiveWeights]) -> AdaptiveWeights:
            weights = current.weights if current is not None else None
            return AdaptiveWeights(
                athlete_id=athlete_id,
                weights=apply_outcome(weights, outcome, self.config),
                updated_at=now,
            )

        with self._weights.locked(athlete_id):
            try:
                updated = self._weights.update(athlete_id, nudge)
            except ComputationError:
                logger.error(f"Weight update failed for athlete {athlete_id}", exc_info=True)
                raise

            if outcome.adaptation is not None:
                event = replace(outcome.adaptation, recorded_at=outcome.adaptation.recorded_at or now)
                self._history.update(athlete_id, lambda history: (history or []) + [event])

        self._count('outcomes_recorded')
        logger.info(
            f"Recorded {'successful' if outcome.success else 'unsuccessful'} outcome "
            f"for athlete {athlete_id}"
        )
        return deepcopy(updated)

    # ═══════════════════════════════════════════════════════════════════════════
    # PROGRAMS
    # ═══════════════════════════════════════════════════════════════════════════

    def _apply_overrides(self, profile: AthleteProfile, options: Dict[str, Any]) -> AthleteProfile:
        unknown = set(options) - set(PROGRAM_OPTIONS)
        if unknown:
            raise InvalidInputError(f"Unknown program options: {', '.join(sorted(unknown))}")

        overrides = {k: options[k] for k in PROFILE_OVERRIDES if options.get(k) is not None}
        if 'experience' in overrides and not isinstance(overrides['experience'], ExperienceLevel):
            try:
                overrides['experience'] = ExperienceLevel(str(overrides['experience']).lower())
            except ValueError:
                raise InvalidInputError(f"Unknown experience level {overrides['experience']!r}")
        if isinstance(overrides.get('goals'), str):
            overrides['goals'] = [overrides['goals']]
        return replace(profile, **overrides)

    async def generate_program(
        self,
        athlete_id: str,
        options: Optional[Dict[str, Any]] = None
    ) -> TrainingProgram:
        """
        Generate and activate a new program for an athlete.

        Args:
            athlete_id: Athlete to generate for
            options: Overrides for sport, goals, experience, weaknesses,
                equipment and duration_weeks

        Returns:
            The new program; it replaces the athlete's current program

        Raises:
            InvalidInputError: If athlete id, sport or goals are missing
            NotFoundError: If the athlete is unknown
        """
        if not athlete_id:
            raise InvalidInputError("Athlete ID, sport, and goals are required")
        options = dict(options or {})

        profile = self._apply_overrides(await self.repository.fetch_athlete(athlete_id), options)
        duration = options.get('duration_weeks', self.config.default_program_duration_weeks)

        with self._current.locked(athlete_id):
            program = generate_program(
                profile,
                history=self._history.snapshot(athlete_id, []),
                genetics=analyze_genetics(profile.genetic_markers) if profile.genetic_markers else None,
                adaptation_factors=self.get_adaptive_weights(athlete_id).weights,
                duration_weeks=duration,
                now=self.clock(),
            )
            self._programs.put(program.id, program)
            self._current.put(athlete_id, program.id)

        self._count('programs_generated')
        return deepcopy(program)

    def _current_program_id(self, athlete_id: str) -> str:
        program_id = self._current.get(athlete_id)
        if program_id is None:
            raise NotFoundError(f"No active program found for athlete {athlete_id}")
        return program_id

    def update_program_progress(
        self,
        athlete_id: str,
        session_id: str,
        performance_data: Optional[Dict[str, Any]] = None
    ) -> TrainingProgram:
        """
        Mark a session of the athlete's current program completed.

        Raises:
            NotFoundError: If the athlete has no program or the session is unknown
            InvalidInputError: If the program is already completed
        """
        now = self.clock()

        def complete(program: Optional[TrainingProgram]) -> TrainingProgram:
            updated = deepcopy(program)
            updated.complete_session(session_id, performance_data, now)
            return updated

        with self._current.locked(athlete_id):
            program_id = self._current_program_id(athlete_id)
            program = self._programs.update(program_id, complete)

        self._count('sessions_completed')
        logger.info(
            f"Updated progress for program {program.id}, session {session_id}: "
            f"{program.progress.overall_progress:.1f}%"
        )
        return deepcopy(program)

    def end_program(self, athlete_id: str) -> TrainingProgram:
        """Complete the athlete's current program early."""
        now = self.clock()

        def end(program: Optional[TrainingProgram]) -> TrainingProgram:
            updated = deepcopy(program)
            updated.end(now)
            return updated

        with self._current.locked(athlete_id):
            program = self._programs.update(self._current_program_id(athlete_id), end)
        return deepcopy(program)

    def get_program(self, athlete_id: str) -> Optional[TrainingProgram]:
        """The athlete's current program, or None."""
        program_id = self._current.get(athlete_id)
        if program_id is None:
            return None
        return self._programs.snapshot(program_id)

    def _program_by_id(self, program_id: str) -> TrainingProgram:
        program = self._programs.get(program_id)
        if program is None:
            raise NotFoundError(f"Program {program_id} not found")
        return program

    def modify_program(self, program_id: str, modifications: Dict[str, Any]) -> TrainingProgram:
        """Change a program's name, duration, sessions per week or goals."""
        athlete_id = self._program_by_id(program_id).athlete_id
        now = self.clock()

        def modify(program: Optional[TrainingProgram]) -> TrainingProgram:
            return modify_program(deepcopy(program), modifications, now)

        with self._current.locked(athlete_id):
            program = self._programs.update(program_id, modify)
        return deepcopy(program)

    def get_program_recommendations(self, athlete_id: str) -> List[str]:
        return program_recommendations(self.get_program(athlete_id))

    def get_program_analytics(self, program_id: str) -> Dict[str, Any]:
        return program_analytics(self._program_by_id(program_id))

    def list_templates(self) -> List[Dict[str, Any]]:
        return list_templates()

    # ═══════════════════════════════════════════════════════════════════════════
    # PERSONALIZATION
    # ═══════════════════════════════════════════════════════════════════════════

    async def generate_personalized_plan(
        self,
        athlete_id: str,
        options: Optional[Dict[str, Any]] = None
    ) -> PersonalizedPlan:
        """
        Generate a program together with nutrition and coaching advice.

        Profiles without sport or goals get football and
        strength/endurance.
        """
        profile = await self.repository.fetch_athlete(athlete_id)
        options = dict(options or {})
        for key, value in PERSONALIZED_DEFAULTS.items():
            if not options.get(key) and not getattr(profile, key):
                options[key] = value

        prediction = await self.predict_performance(athlete_id)
        program = await self.generate_program(athlete_id, options)

        genetics = analyze_genetics(profile.genetic_markers)
        fitness = assess_fitness(profile, prediction)
        nutrition_profile = replace(profile, sport=options.get('sport') or profile.sport)

        self._count('personalized_plans')
        return PersonalizedPlan(
            athlete_id=athlete_id,
            program=program,
            nutrition=generate_nutrition_plan(nutrition_profile, genetics),
            coaching=generate_coaching_advice(fitness),
            genetics=genetics,
            fitness=fitness,
            adaptation_factors=self.get_adaptive_weights(athlete_id).weights,
            generated_at=self.clock(),
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # MAINTENANCE
    # ═══════════════════════════════════════════════════════════════════════════

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """
        Drop completed programs older than the retention window.

        Returns:
            Number of programs removed
        """
        now = now or self.clock()
        cutoff = now - timedelta(days=self.config.completed_program_retention_days)

        removed = 0
        for program_id, program in self._programs.items():
            if program.status != ProgramStatus.COMPLETED or program.completed_at is None:
                continue
            if program.completed_at >= cutoff:
                continue
            with self._current.locked(program.athlete_id):
                self._programs.delete(program_id)
                if self._current.get(program.athlete_id) == program_id:
                    self._current.delete(program.athlete_id)
            removed += 1

        if removed:
            logger.info(f"Cleaned up {removed} completed programs older than {cutoff.date()}")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        programs = [p for _, p in self._programs.items()]
        with self._counter_lock:
            counters = dict(self._counters)

        return {
            'counters': counters,
            'athletes_with_weights': len(self._weights),
            'athletes_with_history': len(self._history),
            'active_programs': sum(1 for p in programs if p.is_active),
            'completed_programs': sum(1 for p in programs if not p.is_active),
            'templates': len(PROGRAM_TEMPLATES),
            'default_weights': default_weights(),
            'risk_feature_weights': dict(RISK_FEATURE_WEIGHTS),
            'performance_factor_weights': dict(PERFORMANCE_FACTOR_WEIGHTS),
            'config': self.config.to_dict(),
        }
