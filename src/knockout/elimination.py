"""
Single elimination bracket generation and management.
"""
import logging
from typing import Dict, List, Optional, Tuple

from knockout.errors import InvalidResultError, InvalidRosterError, MatchNotFoundError
from knockout.models import BOTTOM, CANCELLED, COMPLETED, PENDING, POSTPONED, TOP, Match, Team
from knockout.rounds import MAX_TEAMS, RoundLadder

logger = logging.getLogger(__name__)


def make_match_id(round_index: int, match_index: int) -> str:
    """Id of the ``match_index``-th match (0-based) of round ``round_index`` (0-based)."""
    return f"r{round_index + 1}-m{match_index + 1}"


def index_matches(matches: List[Match]) -> Dict[str, Match]:
    return {match.id: match for match in matches}


def copy_matches(matches: List[Match]) -> List[Match]:
    return [match.copy() for match in matches]


def sort_matches(matches: List[Match], ladder: RoundLadder) -> List[Match]:
    """Matches in bracket order: by round, then by match number."""
    return sorted(matches, key=lambda m: (ladder.index(m.round), m.match_number))


def get_round_matches(matches: List[Match], round_name: str) -> List[Match]:
    return sorted((m for m in matches if m.round == round_name), key=lambda m: m.match_number)


def feeder_map(matches: List[Match]) -> Dict[Tuple[str, str], Match]:
    """(next_match_id, position) -> the match whose winner fills that slot."""
    return {(m.next_match_id, m.position): m for m in matches if m.next_match_id}


def find_sibling(matches: List[Match], match: Match) -> Optional[Match]:
    """The other match feeding the same next match, if any."""
    if not match.next_match_id:
        return None
    for other in matches:
        if other.next_match_id == match.next_match_id and other.id != match.id:
            return other
    return None


def is_slot_dead(match: Match, position: str, feeders: Dict[Tuple[str, str], Match]) -> bool:
    """
    True when the slot is empty and no team can ever reach it.

    A slot is dead when it has no feeding match, when its feeder is cancelled
    or already completed (the winner has left that slot), or when the feeder
    holds no team and both of its own slots are dead.
    """
    if match.get_slot(position) is not None:
        return False
    feeder = feeders.get((match.id, position))
    if feeder is None:
        return True
    if feeder.status in (CANCELLED, COMPLETED):
        return True
    if feeder.team_ids:
        return False
    return is_slot_dead(feeder, TOP, feeders) and is_slot_dead(feeder, BOTTOM, feeders)


def forward_team(by_id: Dict[str, Match], match: Match, team_id) -> Optional[Match]:
    """Place ``team_id`` into the slot of the next match that ``match`` feeds."""
    if not match.next_match_id:
        return None
    next_match = by_id.get(match.next_match_id)
    if next_match is None:
        logger.warning("Match %s points to missing next match %s", match.id, match.next_match_id)
        return None
    next_match.set_slot(match.position, team_id)
    return next_match


def complete_match(by_id: Dict[str, Match], match: Match, winner_id) -> None:
    match.status = COMPLETED
    match.winner_id = winner_id
    forward_team(by_id, match, winner_id)


def cancel_match(match: Match) -> None:
    match.team1_id = None
    match.team2_id = None
    match.winner_id = None
    match.status = CANCELLED
    logger.info("Match %s cancelled", match.id)


def _is_unreachable(match: Match, feeders: Dict[Tuple[str, str], Match]) -> bool:
    """Both slots dead and at least one of them lost its feeder to a cancellation."""
    slots = (TOP, BOTTOM)
    if not all(is_slot_dead(match, position, feeders) for position in slots):
        return False
    match_feeders = [feeders.get((match.id, position)) for position in slots]
    return any(feeder is not None and feeder.status == CANCELLED for feeder in match_feeders)


def resolve_byes(matches: List[Match], ladder: Optional[RoundLadder] = None) -> int:
    """
    Advance every bye, in place, until nothing changes.

    Works round by round in bracket order and repeats until a fixpoint, so a
    team can be carried through several empty rounds when the team count is
    not a power of two. A freshly built final always has a live feeder on
    both sides, so only withdrawals can leave a final with a dead slot; its
    sole finalist is then crowned. An empty match that can no longer receive
    a team because a feeder was cancelled is cancelled too. Returns the
    number of byes resolved.
    """
    ladder = ladder or RoundLadder.from_matches(matches)
    by_id = index_matches(matches)
    ordered = sort_matches(matches, ladder)
    resolved = 0
    changed = True
    while changed:
        changed = False
        feeders = feeder_map(matches)
        for match in ordered:
            if match.status not in (PENDING, POSTPONED):
                continue
            teams = match.team_ids
            if not teams and _is_unreachable(match, feeders):
                cancel_match(match)
                changed = True
                continue
            if match.status != PENDING or len(teams) != 1:
                continue
            empty_position = BOTTOM if match.team1_id is not None else TOP
            if not is_slot_dead(match, empty_position, feeders):
                continue
            complete_match(by_id, match, teams[0])
            logger.debug("Bye in %s: team %s advances to %s", match.id, teams[0], match.next_match_id)
            resolved += 1
            changed = True
    return resolved


def propagate_byes(matches: List[Match], ladder: Optional[RoundLadder] = None) -> List[Match]:
    """Copy of ``matches`` with every bye advanced."""
    working = copy_matches(matches)
    resolve_byes(working, ladder)
    return working


def build_bracket(seeded_teams: List[Team], venue_names: Optional[List[str]] = None) -> List[Match]:
    """
    Create every match of a single elimination bracket.

    Round k (0-based) has 2^(R-k-1) matches; match i feeds match floor(i/2)
    of the next round, in the top slot when i is even. The first round is
    filled pairwise from the seeded order and byes are advanced.
    """
    num_teams = len(seeded_teams)
    if num_teams == 0:
        raise InvalidRosterError("No teams provided")
    if num_teams > MAX_TEAMS:
        raise InvalidRosterError(f"At most {MAX_TEAMS} teams are supported, got {num_teams}")

    ladder = RoundLadder.for_team_count(num_teams)
    first_venue_name = venue_names[0] if venue_names else "Venue 1"

    matches = []
    for round_index, round_name in enumerate(ladder):
        for match_index in range(ladder.matches_in_round(round_index)):
            next_match_id = None
            if round_index < ladder.total_rounds - 1:
                next_match_id = make_match_id(round_index + 1, match_index // 2)
            matches.append(Match(
                id=make_match_id(round_index, match_index),
                match_number=match_index + 1,
                round=round_name,
                venue=1,
                venue_name=first_venue_name,
                status=PENDING,
                next_match_id=next_match_id,
                position=TOP if match_index % 2 == 0 else BOTTOM,
            ))

    first_round = get_round_matches(matches, ladder.first)
    for i, match in enumerate(first_round):
        if i * 2 < num_teams:
            match.team1_id = seeded_teams[i * 2].id
        if i * 2 + 1 < num_teams:
            match.team2_id = seeded_teams[i * 2 + 1].id

    byes = resolve_byes(matches, ladder)
    logger.info("Built bracket: %d teams, %d rounds, %d matches, %d byes",
                num_teams, ladder.total_rounds, len(matches), byes)
    return matches


def apply_result(matches: List[Match], match_id: str, winner_id,
                 ladder: Optional[RoundLadder] = None) -> List[Match]:
    """
    Record ``winner_id`` as the winner of ``match_id``.

    The winner moves into its slot of the next match and any bye this opens
    up is advanced. Returns a new match list.
    """
    working = copy_matches(matches)
    by_id = index_matches(working)
    match = by_id.get(match_id)
    if match is None:
        raise MatchNotFoundError(match_id)
    if match.status not in (PENDING, POSTPONED):
        raise InvalidResultError(f"Match {match_id} is already {match.status}")
    if match.team1_id is None or match.team2_id is None:
        raise InvalidResultError(f"Match {match_id} does not have two teams yet")
    if not match.has_team(winner_id):
        raise InvalidResultError(f"Team {winner_id} is not playing in match {match_id}")

    complete_match(by_id, match, winner_id)
    logger.info("Result: team %s wins %s", winner_id, match_id)
    resolve_byes(working, ladder)
    return working


def get_champion(matches: List[Match]):
    """Winner of the completed final, or None."""
    for match in matches:
        if not match.next_match_id:
            return match.winner_id if match.status == COMPLETED else None
    return None


def is_bye(match: Match) -> bool:
    return match.status == COMPLETED and len(match.team_ids) == 1


def is_playable(match: Match, feeders: Dict[Tuple[str, str], Match]) -> bool:
    """False for cancelled matches, byes and empty matches no team can reach."""
    if match.status == CANCELLED or is_bye(match):
        return False
    if match.team_ids:
        return True
    return not (is_slot_dead(match, TOP, feeders) and is_slot_dead(match, BOTTOM, feeders))


def bracket_summary(matches: List[Match]) -> Dict:
    """Counts used by the CLI and API views."""
    ladder = RoundLadder.from_matches(matches)
    rounds = {name: get_round_matches(matches, name) for name in ladder}
    first_round = rounds.get(ladder.first, []) if ladder.names else []
    entrants = {team_id for match in first_round for team_id in match.team_ids}
    byes = sum(1 for m in matches if is_bye(m))
    feeders = feeder_map(matches)
    matches_per_round = {
        name: sum(1 for m in round_matches if is_playable(m, feeders))
        for name, round_matches in rounds.items()
    }
    return {
        'rounds': rounds,
        'total_rounds': ladder.total_rounds,
        'total_teams': len(entrants),
        'byes': byes,
        'matches_per_round': matches_per_round,
        'champion': get_champion(matches),
    }
