#!/usr/bin/env python3
"""
Athlete Analytics Engine - CLI Entry Point

Usage:
    python main.py risk [--athletes FILE --sessions CSV --injuries CSV | --synthetic N] [--athlete ID]
    python main.py predict [...] [--horizon DAYS]
    python main.py program [...] [--athlete ID] [--duration WEEKS] [--show-weeks N]
    python main.py simulate [--synthetic N] [--blocks B] [--seed S] [--csv PATH]
    python main.py templates
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from athlete_core.analytics_engine import AthleteAnalyticsEngine
from athlete_core.config import EngineConfig, load_config
from athlete_core.errors import AnalyticsError
from athlete_data.loaders import load_athletes_json, load_sessions_csv, load_injuries_csv
from athlete_data.repository import InMemoryAthleteRepository
from athlete_data.synthetic import generate_athlete_cohort
from analysis.reports import (
    generate_risk_report,
    generate_prediction_report,
    generate_program_report,
    generate_feedback_report,
    export_feedback_csv,
)
from simulation.feedback import FeedbackSimulation


logger = logging.getLogger(__name__)


def build_repository(args) -> InMemoryAthleteRepository:
    """Repository from files, or from a synthetic cohort."""
    if args.athletes:
        repository = InMemoryAthleteRepository(athletes=load_athletes_json(args.athletes))
        if args.sessions:
            for athlete_id, sessions in load_sessions_csv(args.sessions).items():
                repository.add_sessions(athlete_id, sessions)
        if args.injuries:
            for athlete_id, injuries in load_injuries_csv(args.injuries).items():
                repository.add_injuries(athlete_id, injuries)
        return repository

    cohort = generate_athlete_cohort(args.synthetic, seed=args.seed)
    return InMemoryAthleteRepository(
        athletes=[a.profile for a in cohort],
        sessions={a.profile.athlete_id: a.sessions for a in cohort},
        injuries={a.profile.athlete_id: a.injuries for a in cohort},
    )


def _selected_ids(repository: InMemoryAthleteRepository, athlete_id: Optional[str]) -> List[str]:
    return [athlete_id] if athlete_id else repository.athlete_ids()


async def run_risk(engine: AthleteAnalyticsEngine, athlete_ids: List[str], as_json: bool):
    """Assess injury risk for each athlete."""
    for athlete_id in athlete_ids:
        assessment = await engine.assess_risk(athlete_id)
        if as_json:
            print(json.dumps({'athlete_id': athlete_id, **assessment.to_dict()}, indent=2))
        else:
            print(generate_risk_report(athlete_id, assessment))


async def run_predict(
    engine: AthleteAnalyticsEngine,
    athlete_ids: List[str],
    horizon: Optional[int],
    as_json: bool
):
    """Predict performance for each athlete."""
    for athlete_id in athlete_ids:
        prediction = await engine.predict_performance(athlete_id, horizon)
        if as_json:
            print(json.dumps({'athlete_id': athlete_id, **prediction.to_dict()}, indent=2))
        else:
            print(generate_prediction_report(athlete_id, prediction))


async def run_program(
    engine: AthleteAnalyticsEngine,
    athlete_ids: List[str],
    duration: Optional[int],
    show_weeks: int,
    as_json: bool
):
    """Generate a program for each athlete."""
    options = {'duration_weeks': duration} if duration else {}
    for athlete_id in athlete_ids:
        program = await engine.generate_program(athlete_id, options)
        if as_json:
            print(json.dumps(program.to_dict(), indent=2))
        else:
            print(generate_program_report(program, show_weeks))


def run_simulation(
    config: EngineConfig,
    n_athletes: int,
    n_blocks: int,
    seed: int,
    csv_path: Optional[str] = None
):
    """Run the outcome-feedback simulation over a synthetic cohort."""
    print(f"Simulating {n_athletes} athletes over {n_blocks} program blocks...")

    cohort = generate_athlete_cohort(n_athletes, seed=seed)
    simulation = FeedbackSimulation(config, verbose=True)
    results = simulation.run_batch(cohort, n_blocks, seed=seed)

    print(generate_feedback_report(results))
    if csv_path:
        export_feedback_csv(results, csv_path)
        print(f"Block data saved to: {csv_path}")
    return results


def run_templates(engine: AthleteAnalyticsEngine):
    for template in engine.list_templates():
        print(f"{template['id']:<18} {template['name']:<32} "
              f"{template['difficulty']:<13} {template['duration']:>3} weeks "
              f"x {template['sessions_per_week']}/week  [{', '.join(template['focus'])}]")


def add_source_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('--athletes', help='Athlete profiles JSON file')
    parser.add_argument('--sessions', help='Session history CSV file')
    parser.add_argument('--injuries', help='Injury history CSV file')
    parser.add_argument('--synthetic', type=int, default=5, help='Synthetic athletes when no file is given')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    parser.add_argument('--athlete', help='Only this athlete id')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of reports')


def main():
    parser = argparse.ArgumentParser(description='Athlete Analytics Engine')
    parser.add_argument('--config', help='Engine config JSON file')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Risk command
    risk_parser = subparsers.add_parser('risk', help='Assess injury risk')
    add_source_arguments(risk_parser)

    # Predict command
    pred_parser = subparsers.add_parser('predict', help='Predict performance')
    add_source_arguments(pred_parser)
    pred_parser.add_argument('--horizon', type=int, default=None, help='Horizon in days')

    # Program command
    prog_parser = subparsers.add_parser('program', help='Generate training programs')
    add_source_arguments(prog_parser)
    prog_parser.add_argument('--duration', type=int, default=None, help='Program weeks')
    prog_parser.add_argument('--show-weeks', type=int, default=2, help='Schedule weeks to print')

    # Simulate command
    sim_parser = subparsers.add_parser('simulate', help='Run outcome-feedback simulation')
    sim_parser.add_argument('--synthetic', type=int, default=10, help='Number of athletes')
    sim_parser.add_argument('--blocks', type=int, default=4, help='Program blocks per athlete')
    sim_parser.add_argument('--seed', type=int, default=42, help='Random seed')
    sim_parser.add_argument('--csv', help='Export block data to CSV')

    # Templates command
    subparsers.add_parser('templates', help='List program templates')

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_config(args.config)

        if args.command in ('risk', 'predict', 'program'):
            repository = build_repository(args)
            engine = AthleteAnalyticsEngine(repository, config)
            athlete_ids = _selected_ids(repository, args.athlete)

            if args.command == 'risk':
                asyncio.run(run_risk(engine, athlete_ids, args.json))
            elif args.command == 'predict':
                asyncio.run(run_predict(engine, athlete_ids, args.horizon, args.json))
            else:
                asyncio.run(run_program(engine, athlete_ids, args.duration, args.show_weeks, args.json))
        elif args.command == 'simulate':
            run_simulation(config, args.synthetic, args.blocks, args.seed, args.csv)
        elif args.command == 'templates':
            run_templates(AthleteAnalyticsEngine(InMemoryAthleteRepository(), config))
        else:
            parser.print_help()
    except AnalyticsError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
