"""
Tests for tournament generation and the Tournament event API.
"""
import os
import random
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout import generator
from knockout.elimination import index_matches
from knockout.errors import InvalidOptionsError, InvalidRosterError, MatchNotFoundError, SeedingError
from knockout.generator import (
    CLASH_FAILED_INSIGHT, CLASH_INSIGHT, DATES_INSIGHT, FORMAT_INSIGHT, REST_DAYS_INSIGHT,
    WITHDRAWAL_FAILED_INSIGHT, Tournament, generate_tournament, validate_teams,
)
from knockout.models import COMPLETED, PENDING, POSTPONED, Team
from knockout.reseeding import RESEEDING_INSIGHT

SORTED = {'ranking_type': 'lower_better', 'seeding_method': 'merge_sort'}


class TestValidateTeams:
    """Tests for roster validation."""

    def test_accepts_dicts(self):
        roster = validate_teams([{'id': 1, 'name': 'A', 'ranking': 1}, {'id': 2, 'ranking': 2.5}])
        assert [t.name for t in roster] == ['A', 'Team 2']

    @pytest.mark.parametrize('teams', [
        [],
        None,
        'teams',
        [Team(1, 'A', 1)],
        [Team(1, 'A', 1), Team(1, 'B', 2)],
        [Team('1', 'A', 1), Team(2, 'B', 2)],
        [Team(True, 'A', 1), Team(2, 'B', 2)],
        [Team(1, 'A', 'first'), Team(2, 'B', 2)],
        [Team(1, 'A', None), Team(2, 'B', 2)],
        [Team(1, 'A', True), Team(2, 'B', 2)],
        [{'name': 'no id', 'ranking': 1}, {'id': 2, 'ranking': 2}],
        [Team(1, 'A', 1), 'B'],
    ])
    def test_rejects_invalid_rosters(self, teams):
        with pytest.raises(InvalidRosterError):
            validate_teams(teams)

    def test_rejects_oversized_roster(self, team_factory):
        with pytest.raises(InvalidRosterError):
            validate_teams(team_factory(129))


class TestGenerateTournament:
    """Tests for generate_tournament."""

    def test_four_team_example(self, four_teams):
        result = generate_tournament(four_teams, SORTED)
        matches = index_matches(result.matches)
        assert (matches['r1-m1'].team1_id, matches['r1-m1'].team2_id) == (1, 2)
        assert (matches['r1-m2'].team1_id, matches['r1-m2'].team2_id) == (3, 4)
        assert result.insights == [FORMAT_INSIGHT, "Seeding: Merge Sort, O(n log n)", "Scheduling: Basic, O(n)"]
        assert result.schedule == []

    def test_result_unpacks(self, four_teams):
        matches, insights, schedule = generate_tournament(four_teams, SORTED)
        assert len(matches) == 3
        assert insights[0] == FORMAT_INSIGHT
        assert schedule == []

    def test_invalid_options_raise(self, four_teams):
        with pytest.raises(InvalidOptionsError):
            generate_tournament(four_teams, {'seeding_method': 'alphabetical'})

    def test_invalid_roster_raises(self):
        with pytest.raises(InvalidRosterError):
            generate_tournament([Team(1, 'A', 1)])

    def test_random_seeding_is_reproducible(self, eight_teams):
        first = generate_tournament(eight_teams, rng=random.Random(5))
        second = generate_tournament(eight_teams, rng=random.Random(5))
        assert first.matches == second.matches

    def test_venue_names(self, eight_teams):
        options = dict(SORTED, num_venues=2, venue_names=['Main Court', 'Court 2'])
        result = generate_tournament(eight_teams, options)
        assert {m.venue_name for m in result.matches} == {'Main Court', 'Court 2'}

    def test_clash_avoidance(self, eight_teams):
        result = generate_tournament(eight_teams, dict(SORTED, avoid_top_team_clashes=True))
        assert CLASH_INSIGHT in result.insights
        matches = index_matches(result.matches)
        assert matches['r1-m1'].team1_id == 1
        assert matches['r1-m4'].team2_id == 2

    def test_clash_avoidance_failure_keeps_seeding(self, eight_teams, monkeypatch):
        def fail(teams):
            raise SeedingError("no slot")

        monkeypatch.setattr(generator, 'avoid_top_team_clashes', fail)
        result = generate_tournament(eight_teams, dict(SORTED, avoid_top_team_clashes=True))
        assert CLASH_FAILED_INSIGHT in result.insights
        assert len(result.matches) == 7
        assert index_matches(result.matches)['r1-m1'].team_ids == [1, 2]

    def test_failing_step_becomes_error_insight(self, four_teams, monkeypatch):
        """Test a failure after the bracket is built still returns the bracket."""
        def fail(*args, **kwargs):
            raise RuntimeError("venue service down")

        monkeypatch.setattr(generator, 'assign_venues', fail)
        result = generate_tournament(four_teams, SORTED)
        assert result.insights[-1] == "Error: venue service down"
        assert len(result.matches) == 3

    def test_dated_tournament(self, four_teams, dated_options):
        result = generate_tournament(four_teams, dated_options)
        assert DATES_INSIGHT in result.insights
        assert REST_DAYS_INSIGHT not in result.insights
        assert len(result.schedule) == 2
        assert all(m.scheduled_date is not None for m in result.matches)

    def test_rest_days_insight(self, four_teams):
        options = dict(SORTED, start_date='2025-06-01', end_date='2025-06-10', enable_rest_days=True)
        result = generate_tournament(four_teams, options)
        assert result.insights[-2:] == [DATES_INSIGHT, REST_DAYS_INSIGHT]

    def test_capacity_warning_is_last(self, eight_teams):
        options = dict(SORTED, start_date='2025-06-01', end_date='2025-06-02', max_matches_per_day=1)
        result = generate_tournament(eight_teams, options)
        assert result.insights[-1] == "Warning: Tournament requires 7 days but only 2 are available"
        assert sum(len(day.matches) for day in result.schedule) == 7

    def test_withdrawals_at_generation(self, four_teams):
        options = dict(SORTED, enable_dynamic_reseeding=True, withdrawn_teams=[3])
        result = generate_tournament(four_teams, options)
        assert RESEEDING_INSIGHT in result.insights
        matches = index_matches(result.matches)
        assert matches['r1-m2'].winner_id == 4
        assert matches['r2-m1'].team2_id == 4

    def test_withdrawals_ignored_without_reseeding(self, four_teams):
        result = generate_tournament(four_teams, dict(SORTED, withdrawn_teams=[3]))
        assert RESEEDING_INSIGHT not in result.insights
        assert index_matches(result.matches)['r1-m2'].status == PENDING


class TestTournament:
    """Tests for events applied to a generated tournament."""

    def test_play_to_champion(self, four_teams):
        tournament = Tournament.generate(four_teams, SORTED)
        tournament.apply_result('r1-m1', 1)
        tournament.apply_result('r1-m2', 4)
        final = tournament.apply_result('r2-m1', 4)
        assert final.status == COMPLETED
        assert tournament.champion == 4

    def test_unknown_match(self, four_teams):
        tournament = Tournament.generate(four_teams, SORTED)
        assert tournament.get_match('r9-m1') is None
        with pytest.raises(MatchNotFoundError):
            tournament.apply_result('r9-m1', 1)

    def test_withdraw(self, four_teams):
        tournament = Tournament.generate(four_teams, SORTED)
        assert tournament.withdraw(3)
        assert tournament.withdraw(3)
        assert tournament.withdrawn_teams == [3]
        assert tournament.insights.count(RESEEDING_INSIGHT) == 1
        assert tournament.get_match('r1-m2').winner_id == 4

    def test_withdraw_failure_keeps_bracket(self, four_teams, monkeypatch):
        def fail(*args, **kwargs):
            raise RuntimeError("reseed failed")

        tournament = Tournament.generate(four_teams, SORTED)
        before = list(tournament.matches)
        monkeypatch.setattr(generator, 'reseed', fail)
        assert not tournament.withdraw(3)
        assert tournament.matches == before
        assert tournament.withdrawn_teams == []
        assert tournament.insights[-1] == WITHDRAWAL_FAILED_INSIGHT

    def test_postpone(self, four_teams, dated_options):
        tournament = Tournament.generate(four_teams, dated_options)
        slot = tournament.postpone('r1-m1')
        assert tournament.get_match('r1-m1').status == POSTPONED
        assert tournament.postponements == [{'match_id': 'r1-m1', **slot.to_dict()}]

    def test_schedule_follows_results(self, four_teams, dated_options):
        """Test schedule entries show the teams that reached each match."""
        tournament = Tournament.generate(four_teams, dated_options)
        tournament.apply_result('r1-m1', 1)
        tournament.apply_result('r1-m2', 4)
        final_day = tournament.schedule[-1]
        assert final_day.matches[0].team_ids == [1, 4]
        assert final_day.matches[0].scheduled_date == final_day.date
        assert tournament.to_dict()['schedule'][-1]['matches'][0]['team1_id'] == 1

    def test_schedule_follows_withdrawals(self, four_teams, dated_options):
        tournament = Tournament.generate(four_teams, dated_options)
        tournament.withdraw(3)
        scheduled = {m.id: m for day in tournament.schedule for m in day.matches}
        assert scheduled['r1-m2'].team_ids == [4]
        assert scheduled['r1-m2'].status == COMPLETED
        assert scheduled['r2-m1'].team2_id == 4

    def test_to_dict(self, four_teams, dated_options):
        data = Tournament.generate(four_teams, dated_options).to_dict()
        assert set(data) == {
            'teams', 'options', 'matches', 'schedule', 'insights', 'withdrawn_teams',
            'postponements', 'total_rounds', 'byes', 'champion',
        }
        assert data['total_rounds'] == 2
        assert data['options']['start_date'] == '2025-06-01'
        assert data['matches'][0]['scheduled_date'] == '2025-06-01'
