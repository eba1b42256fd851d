"""
Dynamic reseeding: keep a live bracket consistent when teams withdraw.

Replacements come from the teams that hold no bracket slot, best dynamic
ranking first. When nobody is left to step in, withdrawals turn into
walkovers, byes or cancelled matches.
"""
import logging
from typing import List, Optional

from knockout.elimination import (
    cancel_match, complete_match, copy_matches, feeder_map, find_sibling, index_matches,
    is_slot_dead, resolve_byes, sort_matches,
)
from knockout.models import BOTTOM, COMPLETED, HIGHER_BETTER, PENDING, POSTPONED, TOP, Match, Team
from knockout.priority_queue import PriorityQueue
from knockout.rounds import RoundLadder, round_weight
from knockout.seeding import ranks_ahead

logger = logging.getLogger(__name__)

RESEEDING_INSIGHT = "Dynamic Reseeding: Enabled with Priority Queue"


def _upset_magnitude(ranking_a, ranking_b) -> float:
    scale = max(abs(ranking_a), abs(ranking_b))
    if not scale:
        return 0.0
    return abs(ranking_a - ranking_b) / scale


def calculate_dynamic_rankings(teams: List[Team], matches: List[Match],
                               ranking_type: str = HIGHER_BETTER) -> List[Team]:
    """
    Copies of ``teams`` with ``dynamic_ranking`` set from their results.

    Only completed matches with two teams and a winner count. A win adds the
    round weight (Final 7 down to Round of 128 1) to the winner's score, and
    beating a better ranked team raises its upset factor by the relative
    ranking gap.
    """
    by_id = {team.id: team for team in teams}
    stats = {team.id: {'matches': 0, 'wins': 0, 'rounds_advanced': 0, 'upset_factor': 1.0}
             for team in teams}

    for match in matches:
        if match.status != COMPLETED or match.team1_id is None or match.team2_id is None:
            continue
        if match.winner_id is None or not match.has_team(match.winner_id):
            continue
        loser_id = match.team2_id if match.winner_id == match.team1_id else match.team1_id
        for team_id in (match.team1_id, match.team2_id):
            if team_id in stats:
                stats[team_id]['matches'] += 1
        if match.winner_id not in stats:
            continue
        winner_stats = stats[match.winner_id]
        winner_stats['wins'] += 1
        winner_stats['rounds_advanced'] += round_weight(match.round)

        winner, loser = by_id[match.winner_id], by_id.get(loser_id)
        if loser is not None and ranks_ahead(loser.ranking, winner.ranking, ranking_type):
            winner_stats['upset_factor'] += _upset_magnitude(winner.ranking, loser.ranking)

    ranked = []
    for team in teams:
        team_copy = team.copy()
        team_stats = stats[team.id]
        dynamic_ranking = team.ranking
        if team_stats['matches'] > 0:
            win_rate = team_stats['wins'] / team_stats['matches']
            dynamic_ranking *= 1 + win_rate
            dynamic_ranking *= 1 + team_stats['rounds_advanced'] * 0.1
            dynamic_ranking *= team_stats['upset_factor']
        team_copy.dynamic_ranking = dynamic_ranking
        ranked.append(team_copy)
    return ranked


def _available_teams(ranked: List[Team], matches: List[Match], withdrawn: set,
                     ranking_type: str) -> PriorityQueue:
    in_bracket = {team_id for match in matches for team_id in match.team_ids}
    queue = PriorityQueue(lambda a, b: ranks_ahead(a.dynamic_ranking, b.dynamic_ranking, ranking_type))
    for team in ranked:
        if team.id not in in_bracket and team.id not in withdrawn:
            queue.enqueue(team)
    return queue


class _Reseeder:
    """Working state of one reseed pass over a private copy of the bracket."""

    def __init__(self, matches: List[Match], available: PriorityQueue):
        self.matches = matches
        self.by_id = index_matches(matches)
        self.available = available

    def take_replacement(self):
        team = self.available.dequeue()
        return team.id if team is not None else None

    def cancel(self, match: Match) -> None:
        cancel_match(match)
        self.propagate_cancellation(match)

    def propagate_cancellation(self, match: Match) -> None:
        """The sibling's winner, if already known, takes the next match outright."""
        next_match = self.by_id.get(match.next_match_id) if match.next_match_id else None
        if next_match is None or next_match.status not in (PENDING, POSTPONED):
            return
        sibling = find_sibling(self.matches, match)
        if sibling is None or sibling.status != COMPLETED or sibling.winner_id is None:
            return
        next_match.team1_id = sibling.winner_id
        next_match.team2_id = sibling.winner_id
        complete_match(self.by_id, next_match, sibling.winner_id)
        logger.info("Team %s advances through %s after cancellation of %s",
                    sibling.winner_id, next_match.id, match.id)

    def resolve_double_withdrawal(self, match: Match) -> None:
        first = self.take_replacement()
        second = self.take_replacement() if first is not None else None
        if first is not None and second is not None:
            match.team1_id, match.team2_id = first, second
        elif first is not None:
            match.team1_id, match.team2_id = first, None
            complete_match(self.by_id, match, first)
            logger.info("Replacement %s advances through %s as a bye", first, match.id)
        else:
            self.cancel(match)

    def resolve_single_withdrawal(self, match: Match, withdrawn_position: str) -> None:
        replacement = self.take_replacement()
        if replacement is not None:
            match.set_slot(withdrawn_position, replacement)
            logger.info("Team %s replaces withdrawn team in %s", replacement, match.id)
            return

        opponent_position = BOTTOM if withdrawn_position == TOP else TOP
        opponent = match.get_slot(opponent_position)
        match.set_slot(withdrawn_position, None)
        if opponent is not None:
            complete_match(self.by_id, match, opponent)
            logger.info("Team %s wins %s by walkover", opponent, match.id)
        elif is_slot_dead(match, opponent_position, feeder_map(self.matches)):
            self.cancel(match)
        else:
            # The opponent is still to come and will advance as a bye
            logger.debug("Withdrawn slot of %s cleared, waiting for opponent", match.id)


def reseed(matches: List[Match], teams: List[Team], withdrawn_team_ids, ranking_type: str = HIGHER_BETTER,
           ladder: Optional[RoundLadder] = None) -> List[Match]:
    """
    Remove withdrawn teams from every undecided match.

    Completed and cancelled matches are left untouched. Round labels never
    change. Calling this again with the same withdrawn ids changes nothing.
    """
    working = copy_matches(matches)
    withdrawn = set(withdrawn_team_ids or [])
    if not withdrawn:
        return working

    ladder = ladder or RoundLadder.from_matches(working)
    ranked = calculate_dynamic_rankings(teams, matches, ranking_type)
    reseeder = _Reseeder(working, _available_teams(ranked, working, withdrawn, ranking_type))
    logger.info("Reseeding for %d withdrawn team(s), %d replacement(s) available",
                len(withdrawn), reseeder.available.size())

    for match in sort_matches(working, ladder):
        if match.status not in (PENDING, POSTPONED):
            continue
        top_out = match.team1_id is not None and match.team1_id in withdrawn
        bottom_out = match.team2_id is not None and match.team2_id in withdrawn
        if top_out and bottom_out:
            reseeder.resolve_double_withdrawal(match)
        elif top_out:
            reseeder.resolve_single_withdrawal(match, TOP)
        elif bottom_out:
            reseeder.resolve_single_withdrawal(match, BOTTOM)

    resolve_byes(working, ladder)
    return working

