"""
Report generation for athlete analytics.

Formats risk assessments, performance predictions, programs and
outcome-feedback simulations as plain text, and exports simulation
results to CSV.
"""

from typing import List, Optional
from datetime import datetime
import csv

from athlete_core.models import PerformancePrediction, Recommendation, RiskAssessment
from athlete_core.programs import TrainingProgram
from athlete_core.scheduling import format_schedule
from simulation.feedback import FeedbackResult, aggregate_feedback


def _format_recommendations(recommendations: List[Recommendation]) -> str:
    if not recommendations:
        return "  (none)\n"
    text = ""
    for r in recommendations:
        text += f"  [{r.priority.value:<6}] {r.category}: {r.message}\n"
        for action in r.actions:
            text += f"           - {action}\n"
    return text


def generate_risk_report(
    athlete_id: str,
    assessment: RiskAssessment,
    title: str = "Injury Risk Assessment"
) -> str:
    """
    Generate a text report for one risk assessment.

    Args:
        athlete_id: Assessed athlete
        assessment: Result of assess_risk
        title: Report title

    Returns:
        Formatted report string
    """
    report = f"""
{'='*70}
{title}: {athlete_id}
{'='*70}
Risk score:                {assessment.score:>8.3f}
Risk level:                {assessment.level.value:>8}
Confidence:                {assessment.confidence:>8.2f}

FEATURES
--------
"""
    for name, value in assessment.factors.values.items():
        flag = " (default)" if name in assessment.factors.missing else ""
        report += f"{name:<25} {value:>8.3f}{flag}\n"

    report += "\nRECOMMENDATIONS\n---------------\n"
    report += _format_recommendations(assessment.recommendations)
    report += "=" * 70 + "\n"
    return report


def generate_prediction_report(
    athlete_id: str,
    prediction: PerformancePrediction,
    title: str = "Performance Prediction"
) -> str:
    """Generate a text report for one performance prediction."""
    report = f"""
{'='*70}
{title}: {athlete_id}
{'='*70}
Predicted score:           {prediction.predicted_score:>8.1f}
Horizon:                   {prediction.time_horizon_days:>8d} days
Confidence:                {prediction.confidence:>8.2f}
Trend:                     {prediction.trend.value:>8} (strength {prediction.trend_strength:.2f})
Trend contribution:        {prediction.trend_contribution:>+8.2f}
Feature contribution:      {prediction.feature_contribution:>8.3f}

FACTORS
-------
"""
    for name, value in prediction.factors.values.items():
        report += f"{name:<25} {value:>8.3f}\n"

    report += "\nRECOMMENDATIONS\n---------------\n"
    report += _format_recommendations(prediction.recommendations)
    report += "=" * 70 + "\n"
    return report


def generate_program_report(
    program: TrainingProgram,
    max_weeks: Optional[int] = 2
) -> str:
    """
    Generate a text summary of a program and the first weeks of its schedule.

    Args:
        program: Training program
        max_weeks: Weeks of schedule to include (all if None)
    """
    progress = program.progress
    report = f"""
{'='*70}
{program.name} ({program.template_id})
{'='*70}
Program:                   {program.id}
Athlete:                   {program.athlete_id}
Status:                    {program.status.value}
Difficulty:                {program.difficulty.value}
Duration:                  {program.duration_weeks} weeks x {program.sessions_per_week} sessions
Focus:                     {', '.join(program.focus)}
Equipment:                 {program.equipment_required}
Progression:               {program.progression}
Progress:                  {progress.completed_sessions}/{progress.total_sessions} sessions ({progress.overall_progress:.1f}%), week {progress.current_week}

PHASES
------
"""
    for phase in program.phases:
        weeks = f"{phase.weeks[0]}-{phase.weeks[-1]}" if phase.weeks else "-"
        report += f"{phase.name:<20} weeks {weeks:<6} {phase.intensity:>5.0f}%  {phase.focus}\n"

    report += "\nSCHEDULE\n--------\n"
    report += format_schedule(program.schedule, max_weeks)
    report += "=" * 70 + "\n"
    return report


def generate_feedback_report(
    results: List[FeedbackResult],
    title: str = "Outcome Feedback Simulation"
) -> str:
    """
    Generate a text report from outcome-feedback simulation results.

    Args:
        results: Simulation results
        title: Report title

    Returns:
        Formatted report string
    """
    agg = aggregate_feedback(results)
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    if not agg:
        return f"{title}\nNo results.\n"

    report = f"""
{'='*70}
{title}
{'='*70}
Generated: {timestamp}
Athletes: {agg['n_simulations']}
Blocks per athlete: {agg['blocks_per_athlete']}

OUTCOMES
--------
Success rate (mean):       {agg['mean_success_rate']*100:>8.1f}%
Risk score (mean):         {agg['mean_risk_score']:>8.3f}

WEIGHT INVARIANT
----------------
Held for:                  {agg['pct_invariant_held']:>8.1f}% of athletes
Max weight drift (mean):   {agg['mean_max_weight_drift']:>8.4f}

MEAN FINAL WEIGHTS
------------------
"""
    for factor, weight in agg['mean_final_weights'].items():
        report += f"{factor:<25} {weight:>8.4f}\n"

    report += """
PER-ATHLETE BREAKDOWN
---------------------
"""
    report += f"{'Athlete':<24} {'Archetype':<18} {'Success':>8} {'Risk':>6} {'Drift':>7} {'OK':>4}\n"
    report += "-" * 70 + "\n"
    for r in results:
        report += (f"{r.athlete_id[:24]:<24} "
                   f"{r.archetype[:18]:<18} "
                   f"{r.success_rate*100:>7.0f}% "
                   f"{r.mean_risk_score:>6.2f} "
                   f"{r.max_weight_drift:>7.4f} "
                   f"{'yes' if r.invariant_held else 'NO':>4}\n")

    report += "\n" + "=" * 70 + "\n"
    return report


def export_feedback_csv(
    results: List[FeedbackResult],
    filepath: str
) -> None:
    """
    Export block-level simulation data to CSV.

    Args:
        results: Simulation results
        filepath: Output file path
    """
    if not results:
        return
    factors = list(results[0].final_weights)
    headers = [
        'athlete_id', 'archetype', 'block', 'template_id', 'sessions_completed',
        'success', 'adaptation', 'risk_score', 'predicted_score', 'weight_sum',
    ] + factors

    with open(filepath, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=headers)
        writer.writeheader()

        for r in results:
            for b in r.blocks:
                row = {
                    'athlete_id': r.athlete_id,
                    'archetype': r.archetype,
                    'block': b.block,
                    'template_id': b.template_id,
                    'sessions_completed': b.sessions_completed,
                    'success': b.success,
                    'adaptation': b.adaptation or '',
                    'risk_score': b.risk_score,
                    'predicted_score': b.predicted_score,
                    'weight_sum': b.weight_sum,
                }
                row.update(b.weights)
                writer.writerow(row)
