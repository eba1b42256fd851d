"""
Shared pytest fixtures for the knockout tournament tests.

Running tests:
    pytest tests/
"""
import datetime
import os
import random
import sys

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.models import Team, TournamentOptions


def make_teams(count, start_id=1):
    """Teams with ids start_id.. and ranking equal to the id."""
    return [Team(i, f"Team {i}", i) for i in range(start_id, start_id + count)]


@pytest.fixture
def team_factory():
    return make_teams


@pytest.fixture
def four_teams():
    """A(1), B(2), C(3), D(4)."""
    return [Team(1, 'A', 1), Team(2, 'B', 2), Team(3, 'C', 3), Team(4, 'D', 4)]


@pytest.fixture
def eight_teams():
    return make_teams(8)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def dated_options():
    """Options with a ten day window starting 2025-06-01."""
    return TournamentOptions(
        ranking_type='lower_better',
        seeding_method='merge_sort',
        start_date=datetime.date(2025, 6, 1),
        end_date=datetime.date(2025, 6, 10),
        max_matches_per_day=2,
    )


@pytest.fixture
def client():
    """Create a test client with an empty tournament store."""
    import app as app_module
    app_module.app.config['TESTING'] = True
    app_module._tournaments.clear()
    with app_module.app.test_client() as client:
        yield client
    app_module._tournaments.clear()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Temporary data directory holding teams.yaml and options.yaml."""
    (tmp_path / 'teams.yaml').write_text(
        "- {id: 1, name: Lions, ranking: 1}\n"
        "- {id: 2, name: Tigers, ranking: 2}\n"
        "- {id: 3, name: Bears, ranking: 3}\n"
        "- {id: 4, name: Wolves, ranking: 4}\n"
        "- {id: 5, name: Eagles, ranking: 5}\n",
        encoding='utf-8',
    )
    (tmp_path / 'options.yaml').write_text(
        "ranking_type: lower_better\n"
        "seeding_method: merge_sort\n"
        "num_venues: 2\n"
        "start_date: 2025-06-01\n"
        "end_date: 2025-06-10\n",
        encoding='utf-8',
    )
    monkeypatch.setenv('TOURNAMENT_DATA_DIR', str(tmp_path))
    return tmp_path
