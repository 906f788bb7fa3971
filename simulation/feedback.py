"""
Outcome-Feedback Simulation: block-by-block runs of the adaptive weight loop.

For each synthetic athlete the engine generates a program, the athlete works
through its sessions, and the block's outcome is reported back through
record_outcome. The next program is generated from the updated weights and
adaptation history. The weight invariant is checked after every outcome.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional, Dict, Any
import asyncio
import logging

import numpy as np

from athlete_core.analytics_engine import AthleteAnalyticsEngine
from athlete_core.config import EngineConfig
from athlete_core.models import AdaptationEvent, Outcome
from athlete_core.weights import weights_are_valid
from athlete_data.repository import InMemoryAthleteRepository
from athlete_data.synthetic import SyntheticAthlete


logger = logging.getLogger(__name__)


@dataclass
class BlockSnapshot:
    """State after one training block's outcome was recorded."""
    block: int
    program_id: str
    template_id: str
    sessions_completed: int
    total_sessions: int
    success: bool
    contributing_factors: List[str]
    adaptation: Optional[str]          # "type:outcome", e.g. "volume_increase:positive"
    risk_score: float
    predicted_score: float
    weights: Dict[str, float]
    weight_sum: float
    invariant_ok: bool


@dataclass
class FeedbackResult:
    """Complete results from one athlete's simulation."""
    athlete_id: str
    archetype: str
    blocks: List[BlockSnapshot]
    initial_weights: Dict[str, float]
    final_weights: Dict[str, float]

    # Summary metrics
    success_rate: float
    invariant_held: bool
    max_weight_drift: float            # Largest |final - initial| over factors
    mean_risk_score: float
    adaptations: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for analysis."""
        return {
            'athlete_id': self.athlete_id,
            'archetype': self.archetype,
            'blocks_simulated': len(self.blocks),
            'success_rate': self.success_rate,
            'invariant_held': self.invariant_held,
            'max_weight_drift': self.max_weight_drift,
            'mean_risk_score': self.mean_risk_score,
            'final_weights': dict(self.final_weights),
            'adaptations': dict(self.adaptations),
        }

    def get_weight_trajectory(self, factor: str) -> np.ndarray:
        """Weight of one factor after each block."""
        return np.array([b.weights[factor] for b in self.blocks])

    def get_risk_trajectory(self) -> np.ndarray:
        return np.array([b.risk_score for b in self.blocks])


class FeedbackSimulation:
    """
    Runs synthetic athletes through repeated program blocks.

    Each block completes sessions with the athlete's compliance, then
    reports a success with probability ``responsiveness``. Successful
    blocks record a positive volume increase; failed blocks record an
    injury-tagged intensity failure with probability
    ``injury_susceptibility``.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        weeks_per_block: int = 4,
        compliance_rate: float = 0.9,
        verbose: bool = False
    ):
        """
        Initialize the simulation.

        Args:
            config: Engine configuration (defaults if None)
            weeks_per_block: Program duration for each block
            compliance_rate: Probability each scheduled session is completed
            verbose: Log each block at INFO
        """
        self.config = config or EngineConfig()
        self.weeks_per_block = weeks_per_block
        self.compliance_rate = compliance_rate
        self.verbose = verbose

    def _draw_outcome(self, athlete: SyntheticAthlete) -> Outcome:
        success = bool(np.random.random() < athlete.responsiveness)

        adaptation = None
        if success:
            adaptation = AdaptationEvent(type='volume_increase', outcome='positive')
        elif np.random.random() < athlete.injury_susceptibility:
            adaptation = AdaptationEvent(type='intensity_increase', outcome='negative', reason='injury')

        return Outcome(
            success=success,
            contributing_factors=list(athlete.key_factors),
            adaptation=adaptation,
        )

    async def _run_block(
        self,
        engine: AthleteAnalyticsEngine,
        athlete: SyntheticAthlete,
        block: int
    ) -> BlockSnapshot:
        athlete_id = athlete.profile.athlete_id

        risk = await engine.assess_risk(athlete_id)
        prediction = await engine.predict_performance(athlete_id)
        program = await engine.generate_program(athlete_id, {'duration_weeks': self.weeks_per_block})

        score = prediction.predicted_score
        load = 100.0
        for session in program.sessions():
            if np.random.random() > self.compliance_rate:
                continue
            score = float(np.clip(score + np.random.normal(0.2, 1.5), 0, 100))
            load = load + np.random.normal(1.0, 2.0)
            engine.update_program_progress(
                athlete_id, session.id,
                {'score': round(score, 1), 'weight': round(load, 1), 'reps': int(np.random.randint(6, 12))},
            )

        program = engine.get_program(athlete_id)
        if program.is_active:
            program = engine.end_program(athlete_id)

        outcome = self._draw_outcome(athlete)
        weights = engine.record_outcome(athlete_id, outcome).weights

        snapshot = BlockSnapshot(
            block=block,
            program_id=program.id,
            template_id=program.template_id,
            sessions_completed=program.progress.completed_sessions,
            total_sessions=program.progress.total_sessions,
            success=outcome.success,
            contributing_factors=list(outcome.contributing_factors),
            adaptation=(
                f"{outcome.adaptation.type}:{outcome.adaptation.outcome}"
                if outcome.adaptation else None
            ),
            risk_score=risk.score,
            predicted_score=prediction.predicted_score,
            weights=dict(weights),
            weight_sum=float(sum(weights.values())),
            invariant_ok=weights_are_valid(weights, self.config.weight_floor, self.config.weight_ceiling),
        )

        if not snapshot.invariant_ok:
            logger.error(f"Weight invariant violated for {athlete_id} after block {block}: {weights}")
        if self.verbose:
            logger.info(
                f"{athlete_id} block {block}: {'success' if snapshot.success else 'failure'}, "
                f"{snapshot.sessions_completed}/{snapshot.total_sessions} sessions, "
                f"risk {snapshot.risk_score:.2f}"
            )
        return snapshot

    async def _run_athlete(
        self,
        athlete: SyntheticAthlete,
        n_blocks: int,
        end_date: date
    ) -> FeedbackResult:
        repository = InMemoryAthleteRepository(
            athletes=[athlete.profile],
            sessions={athlete.profile.athlete_id: athlete.sessions},
            injuries={athlete.profile.athlete_id: athlete.injuries},
        )
        clock_time = datetime.combine(end_date, time(12, 0))
        engine = AthleteAnalyticsEngine(repository, self.config, clock=lambda: clock_time)

        athlete_id = athlete.profile.athlete_id
        initial = engine.get_adaptive_weights(athlete_id).weights

        blocks = []
        for block in range(1, n_blocks + 1):
            blocks.append(await self._run_block(engine, athlete, block))

        final = engine.get_adaptive_weights(athlete_id).weights
        adaptations: Dict[str, int] = {}
        for b in blocks:
            if b.adaptation:
                adaptations[b.adaptation] = adaptations.get(b.adaptation, 0) + 1

        return FeedbackResult(
            athlete_id=athlete_id,
            archetype=athlete.archetype,
            blocks=blocks,
            initial_weights=initial,
            final_weights=final,
            success_rate=float(np.mean([b.success for b in blocks])) if blocks else 0.0,
            invariant_held=all(b.invariant_ok for b in blocks),
            max_weight_drift=max(abs(final[k] - initial[k]) for k in initial),
            mean_risk_score=float(np.mean([b.risk_score for b in blocks])) if blocks else 0.0,
            adaptations=adaptations,
        )

    def run_athlete(
        self,
        athlete: SyntheticAthlete,
        n_blocks: int = 4,
        end_date: Optional[date] = None,
        seed: Optional[int] = None
    ) -> FeedbackResult:
        """
        Simulate one athlete through ``n_blocks`` program blocks.

        Args:
            athlete: Synthetic athlete with history
            n_blocks: Number of program/outcome cycles
            end_date: Simulated "today" (today if None)
            seed: Random seed for session compliance and outcomes

        Returns:
            FeedbackResult
        """
        if seed is not None:
            np.random.seed(seed)
        return asyncio.run(self._run_athlete(athlete, n_blocks, end_date or date.today()))

    def run_batch(
        self,
        athletes: List[SyntheticAthlete],
        n_blocks: int = 4,
        end_date: Optional[date] = None,
        seed: Optional[int] = None
    ) -> List[FeedbackResult]:
        """
        Simulate a cohort.

        Args:
            athletes: Synthetic athletes
            n_blocks: Blocks per athlete
            end_date: Simulated "today"
            seed: Base random seed (athlete i uses seed + i)

        Returns:
            List of FeedbackResult objects
        """
        results = []
        for i, athlete in enumerate(athletes):
            athlete_seed = seed + i if seed is not None else None
            results.append(self.run_athlete(athlete, n_blocks, end_date, seed=athlete_seed))
        return results


def aggregate_feedback(results: List[FeedbackResult]) -> Dict[str, Any]:
    """
    Aggregate metrics across multiple simulation results.

    Args:
        results: List of FeedbackResult objects

    Returns:
        Dictionary of aggregated metrics
    """
    if not results:
        return {}

    n = len(results)
    factors = list(results[0].final_weights)
    final = np.array([[r.final_weights[f] for f in factors] for r in results])

    by_archetype: Dict[str, List[float]] = {}
    for r in results:
        by_archetype.setdefault(r.archetype, []).append(r.success_rate)

    return {
        'n_simulations': n,
        'blocks_per_athlete': len(results[0].blocks),
        'mean_success_rate': float(np.mean([r.success_rate for r in results])),
        'pct_invariant_held': sum(r.invariant_held for r in results) / n * 100,
        'mean_max_weight_drift': float(np.mean([r.max_weight_drift for r in results])),
        'mean_risk_score': float(np.mean([r.mean_risk_score for r in results])),
        'mean_final_weights': dict(zip(factors, final.mean(axis=0).tolist())),
        'success_by_archetype': {k: float(np.mean(v)) for k, v in by_archetype.items()},
    }
