"""
YAML configuration: the team roster and the tournament options.
"""
import logging
import os

import yaml

from knockout.errors import InvalidOptionsError, InvalidRosterError
from knockout.models import HIGHER_BETTER, Team, TournamentOptions

logger = logging.getLogger(__name__)

TEAMS_FILENAME = 'teams.yaml'
OPTIONS_FILENAME = 'options.yaml'


def get_default_options():
    """Return default tournament options."""
    return {
        'ranking_type': HIGHER_BETTER,
        'seeding_method': 'random',
        'scheduling_method': 'basic',
        'num_venues': 1,
        'venue_names': [],
        'avoid_top_team_clashes': False,
        'enable_dynamic_reseeding': False,
        'withdrawn_teams': [],
        'start_date': None,
        'end_date': None,
        'enable_rest_days': False,
        'rest_day_interval': 3,
        'max_matches_per_day': 4,
    }


def get_data_dir(base_dir=None):
    """Directory holding teams.yaml and options.yaml (``TOURNAMENT_DATA_DIR`` wins)."""
    if base_dir is None:
        base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    return os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(base_dir, 'data'))


def _read_yaml(path):
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def merge_options(data):
    """Merge user supplied options over the defaults."""
    options = get_default_options()
    if not data:
        return options
    if not isinstance(data, dict):
        raise InvalidOptionsError("Options must be a mapping")
    for key, value in data.items():
        if key not in options:
            logger.warning("Ignoring unknown option: %s", key)
            continue
        options[key] = value
    return options


def load_options(path):
    """Load options from YAML file, merging with defaults."""
    if not path or not os.path.exists(path):
        logger.info("No options file at %s, using defaults", path)
        return TournamentOptions.from_dict(get_default_options())
    try:
        data = _read_yaml(path)
    except yaml.YAMLError as e:
        raise InvalidOptionsError(f"Could not parse {path}: {e}") from e
    return TournamentOptions.from_dict(merge_options(data))


def parse_teams(data):
    """Turn a list of ``{id, name, ranking}`` mappings into Team objects."""
    if data is None:
        return []
    if isinstance(data, dict) and 'teams' in data:
        data = data['teams']
    if not isinstance(data, list):
        raise InvalidRosterError("Teams must be a list of {id, name, ranking} entries")
    teams = []
    for position, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise InvalidRosterError(f"Team #{position} must be a mapping, got {entry!r}")
        if 'id' not in entry:
            raise InvalidRosterError(f"Team #{position} is missing an id")
        teams.append(Team.from_dict(entry))
    return teams


def load_teams(path):
    """Load the roster from a YAML file."""
    if not os.path.exists(path):
        raise InvalidRosterError(f"Teams file not found: {path}")
    try:
        data = _read_yaml(path)
    except yaml.YAMLError as e:
        raise InvalidRosterError(f"Could not parse {path}: {e}") from e
    teams = parse_teams(data)
    logger.info("Loaded %d teams from %s", len(teams), path)
    return teams
