#!/usr/bin/env python3
"""
Knockout tournament generator.

Loads the roster and options, generates the bracket, prints the fixture and
optionally writes it to a YAML file.

Usage:
    python src/main.py
    python src/main.py --teams data/teams.yaml --options data/options.yaml
    python src/main.py --output fixture.yaml --seed 42 -v

Exit codes:
    0: Success
    1: Invalid roster or options
    2: Fixture export failure
"""
import argparse
import logging
import os
import random
import sys

import yaml
from filelock import FileLock, Timeout

from knockout.config import OPTIONS_FILENAME, TEAMS_FILENAME, get_data_dir, load_options, load_teams
from knockout.elimination import bracket_summary
from knockout.errors import TournamentError
from knockout.generator import generate_tournament

logger = logging.getLogger(__name__)


def format_team(team_id, teams_by_id):
    if team_id is None:
        return 'TBD'
    team = teams_by_id.get(team_id)
    return team.name if team else f"Team {team_id}"


def print_fixture(matches, teams_by_id):
    summary = bracket_summary(matches)
    print("\n--- Fixture ---")
    for round_name, round_matches in summary['rounds'].items():
        print(f"\n{round_name} (matches: {summary['matches_per_round'][round_name]})")
        for match in round_matches:
            team1 = format_team(match.team1_id, teams_by_id)
            team2 = format_team(match.team2_id, teams_by_id)
            line = f"  {match.id}: {team1} vs {team2} @ {match.venue_name} [{match.status}]"
            if match.winner_id is not None:
                line += f" -> {format_team(match.winner_id, teams_by_id)}"
            print(line)
    print(f"\nRounds: {summary['total_rounds']}, byes: {summary['byes']}")


def print_schedule(schedule, teams_by_id):
    if not schedule:
        return
    print("\n--- Schedule ---")
    for day in schedule:
        if day.is_rest_day:
            print(f"{day.date.isoformat()}: rest day")
            continue
        print(f"{day.date.isoformat()}: {day.round}")
        for match in day.matches:
            print(f"  {match.id}: {format_team(match.team1_id, teams_by_id)} vs "
                  f"{format_team(match.team2_id, teams_by_id)} @ {match.venue_name}")


def export_fixture(result, teams, output_path):
    """Write the generated tournament as YAML, holding a lock on the file."""
    data = {'teams': [team.to_dict() for team in teams]}
    data.update(result.to_dict())
    lock = FileLock(output_path + '.lock', timeout=10)
    with lock:
        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def build_parser():
    data_dir = get_data_dir()
    parser = argparse.ArgumentParser(description='Generate a single elimination tournament')
    parser.add_argument(
        '--teams',
        default=os.path.join(data_dir, TEAMS_FILENAME),
        help='Roster YAML file (default: $TOURNAMENT_DATA_DIR/teams.yaml)'
    )
    parser.add_argument(
        '--options',
        default=os.path.join(data_dir, OPTIONS_FILENAME),
        help='Options YAML file (default: $TOURNAMENT_DATA_DIR/options.yaml)'
    )
    parser.add_argument(
        '--output',
        help='Write the generated fixture to this YAML file'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for reproducible random seeding'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    logger.debug("Teams file: %s, options file: %s", args.teams, args.options)
    try:
        teams = load_teams(args.teams)
        options = load_options(args.options)
        rng = random.Random(args.seed) if args.seed is not None else None
        result = generate_tournament(teams, options, rng)
    except TournamentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("--- Insights ---")
    for insight in result.insights:
        print(f"  {insight}")

    teams_by_id = {team.id: team for team in teams}
    print_fixture(result.matches, teams_by_id)
    print_schedule(result.schedule, teams_by_id)

    if args.output:
        try:
            export_fixture(result, teams, args.output)
        except (OSError, Timeout) as e:
            print(f"Error: Failed to write {args.output}: {e}", file=sys.stderr)
            return 2
        print(f"\nFixture written to {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
