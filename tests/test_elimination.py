"""
Unit tests for single elimination bracket generation.
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.elimination import (
    apply_result, bracket_summary, build_bracket, feeder_map, get_champion, get_round_matches,
    index_matches, is_slot_dead, propagate_byes,
)
from knockout.errors import InvalidResultError, InvalidRosterError, MatchNotFoundError
from knockout.models import BOTTOM, CANCELLED, COMPLETED, PENDING, POSTPONED, TOP, Match
from knockout.rounds import calculate_total_rounds
from knockout.seeding import merge_sort


def unresolved_byes(matches):
    """Pending matches with one team whose other slot can never be filled."""
    feeders = feeder_map(matches)
    found = []
    for match in matches:
        if match.status != PENDING or len(match.team_ids) != 1:
            continue
        empty = BOTTOM if match.team1_id is not None else TOP
        if is_slot_dead(match, empty, feeders):
            found.append(match.id)
    return found


class TestBuildBracket:
    """Tests for bracket construction."""

    def test_four_team_bracket(self, four_teams):
        """Test the classic four team example."""
        seeded = merge_sort(four_teams, 'lower_better')
        matches = index_matches(build_bracket(seeded))

        assert sorted(matches) == ['r1-m1', 'r1-m2', 'r2-m1']
        assert matches['r1-m1'].round == 'Semifinals'
        assert matches['r2-m1'].round == 'Final'
        assert (matches['r1-m1'].team1_id, matches['r1-m1'].team2_id) == (1, 2)
        assert (matches['r1-m2'].team1_id, matches['r1-m2'].team2_id) == (3, 4)
        assert matches['r1-m1'].next_match_id == 'r2-m1'
        assert matches['r1-m1'].position == TOP
        assert matches['r1-m2'].next_match_id == 'r2-m1'
        assert matches['r1-m2'].position == BOTTOM
        assert matches['r2-m1'].next_match_id is None

    def test_every_match_starts_at_first_venue(self, eight_teams):
        for match in build_bracket(eight_teams, ['Main Court', 'Court 2']):
            assert match.venue == 1
            assert match.venue_name == 'Main Court'

    def test_default_venue_name(self, four_teams):
        assert build_bracket(four_teams)[0].venue_name == 'Venue 1'

    @pytest.mark.parametrize('count', list(range(2, 34)) + [64, 65, 100, 128])
    def test_bracket_completeness(self, team_factory, count):
        """Test 2^R - 1 matches and every team in exactly one first-round slot."""
        teams = team_factory(count)
        matches = build_bracket(teams)
        rounds = calculate_total_rounds(count)
        assert len(matches) == 2 ** rounds - 1

        first_round = [m for m in matches if m.id.startswith('r1-')]
        assert len(first_round) == 2 ** (rounds - 1)
        slots = [t for m in first_round for t in (m.team1_id, m.team2_id) if t is not None]
        assert sorted(slots) == [t.id for t in teams]

    @pytest.mark.parametrize('count', list(range(2, 34)) + [100])
    def test_bye_propagation_reaches_fixpoint(self, team_factory, count):
        assert unresolved_byes(build_bracket(team_factory(count))) == []

    def test_round_sizes(self, team_factory):
        matches = build_bracket(team_factory(16))
        assert len(get_round_matches(matches, 'Round of 16')) == 8
        assert len(get_round_matches(matches, 'Quarterfinals')) == 4
        assert len(get_round_matches(matches, 'Semifinals')) == 2
        assert len(get_round_matches(matches, 'Final')) == 1

    def test_empty_roster_rejected(self):
        with pytest.raises(InvalidRosterError):
            build_bracket([])

    def test_too_many_teams_rejected(self, team_factory):
        with pytest.raises(InvalidRosterError):
            build_bracket(team_factory(129))


class TestByes:
    """Tests for bye handling."""

    def test_three_teams(self, team_factory):
        matches = index_matches(build_bracket(team_factory(3)))
        assert matches['r1-m2'].status == COMPLETED
        assert matches['r1-m2'].winner_id == 3
        assert matches['r2-m1'].team2_id == 3
        assert matches['r2-m1'].team1_id is None
        assert matches['r2-m1'].status == PENDING

    def test_five_teams_bye_runs_through_empty_match(self, team_factory):
        """Test a team is carried over an empty sibling into the final."""
        matches = index_matches(build_bracket(team_factory(5)))
        assert matches['r1-m3'].status == COMPLETED
        assert matches['r1-m3'].winner_id == 5
        # Neither slot of r1-m4 is ever filled
        assert matches['r1-m4'].team_ids == []
        assert matches['r1-m4'].status == PENDING
        assert matches['r2-m2'].status == COMPLETED
        assert matches['r2-m2'].winner_id == 5
        assert matches['r3-m1'].team2_id == 5

    def test_waiting_on_live_feeder_is_not_a_bye(self, team_factory):
        matches = index_matches(build_bracket(team_factory(6)))
        assert matches['r2-m2'].team_ids == []
        assert matches['r2-m2'].status == PENDING

    def test_match_between_cancelled_feeders_is_cancelled(self):
        matches = [
            Match('r1-m1', 1, 'Semifinals', status=CANCELLED, next_match_id='r2-m1', position=TOP),
            Match('r1-m2', 2, 'Semifinals', status=CANCELLED, next_match_id='r2-m1', position=BOTTOM),
            Match('r2-m1', 1, 'Final'),
        ]
        propagated = index_matches(propagate_byes(matches))
        assert propagated['r2-m1'].status == CANCELLED
        assert matches[2].status == PENDING

    def test_empty_first_round_match_stays_pending(self, team_factory):
        """Test placeholders of a fresh bracket are not cancelled."""
        matches = build_bracket(team_factory(9))
        assert all(m.status != CANCELLED for m in matches)

    def test_propagate_byes_returns_copies(self):
        matches = [
            Match('r1-m1', 1, 'Semifinals', team1_id=1, team2_id=None, next_match_id='r2-m1', position=TOP),
            Match('r1-m2', 2, 'Semifinals', team1_id=2, team2_id=3, next_match_id='r2-m1', position=BOTTOM),
            Match('r2-m1', 1, 'Final'),
        ]
        propagated = index_matches(propagate_byes(matches))
        assert propagated['r1-m1'].status == COMPLETED
        assert propagated['r2-m1'].team1_id == 1
        assert matches[0].status == PENDING
        assert matches[2].team1_id is None


class TestApplyResult:
    """Tests for result reporting."""

    def test_winner_moves_to_next_match(self, four_teams):
        seeded = merge_sort(four_teams, 'lower_better')
        matches = apply_result(build_bracket(seeded), 'r1-m1', 1)
        by_id = index_matches(matches)
        assert by_id['r1-m1'].status == COMPLETED
        assert by_id['r1-m1'].winner_id == 1
        assert by_id['r2-m1'].team1_id == 1

    def test_bottom_winner_fills_team2(self, four_teams):
        matches = apply_result(build_bracket(four_teams), 'r1-m2', 4)
        assert index_matches(matches)['r2-m1'].team2_id == 4

    def test_input_is_not_mutated(self, four_teams):
        matches = build_bracket(four_teams)
        apply_result(matches, 'r1-m1', 1)
        assert index_matches(matches)['r1-m1'].status == PENDING
        assert index_matches(matches)['r2-m1'].team1_id is None

    def test_winner_advances_past_dead_slot(self, team_factory):
        """Test a winner arriving opposite a dead slot keeps advancing."""
        matches = apply_result(build_bracket(team_factory(6)), 'r1-m3', 6)
        by_id = index_matches(matches)
        assert by_id['r2-m2'].status == COMPLETED
        assert by_id['r2-m2'].winner_id == 6
        assert by_id['r3-m1'].team2_id == 6

    def test_play_to_champion(self, four_teams):
        matches = build_bracket(four_teams)
        matches = apply_result(matches, 'r1-m1', 2)
        matches = apply_result(matches, 'r1-m2', 3)
        assert get_champion(matches) is None
        matches = apply_result(matches, 'r2-m1', 3)
        assert get_champion(matches) == 3

    def test_postponed_match_accepts_result(self, four_teams):
        matches = build_bracket(four_teams)
        index_matches(matches)['r1-m1'].status = POSTPONED
        matches = apply_result(matches, 'r1-m1', 1)
        assert index_matches(matches)['r1-m1'].status == COMPLETED

    def test_unknown_match(self, four_teams):
        with pytest.raises(MatchNotFoundError):
            apply_result(build_bracket(four_teams), 'r9-m9', 1)

    def test_winner_not_in_match(self, four_teams):
        with pytest.raises(InvalidResultError):
            apply_result(build_bracket(four_teams), 'r1-m1', 3)

    def test_match_missing_a_team(self, four_teams):
        with pytest.raises(InvalidResultError):
            apply_result(build_bracket(four_teams), 'r2-m1', 1)

    def test_completed_match_rejected(self, four_teams):
        matches = apply_result(build_bracket(four_teams), 'r1-m1', 1)
        with pytest.raises(InvalidResultError):
            apply_result(matches, 'r1-m1', 2)

    def test_cancelled_match_rejected(self, four_teams):
        matches = build_bracket(four_teams)
        index_matches(matches)['r1-m1'].status = CANCELLED
        with pytest.raises(InvalidResultError):
            apply_result(matches, 'r1-m1', 1)


class TestBracketSummary:
    def test_summary_with_byes(self, team_factory):
        summary = bracket_summary(build_bracket(team_factory(5)))
        assert summary['total_rounds'] == 3
        assert summary['total_teams'] == 5
        assert summary['byes'] == 2
        assert list(summary['rounds']) == ['Quarterfinals', 'Semifinals', 'Final']
        assert summary['champion'] is None
        assert summary['matches_per_round'] == {'Quarterfinals': 2, 'Semifinals': 1, 'Final': 1}

    def test_summary_of_empty_list(self):
        summary = bracket_summary([])
        assert summary['total_rounds'] == 0
        assert summary['rounds'] == {}
