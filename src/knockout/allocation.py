"""
Venue and date allocation for bracket matches.

Venue strategies:

- basic: round robin over the venues, no conflict awareness
- graph_coloring: greedy colouring of the shared-team conflict graph. This is
  an approximation; it does not look for a minimum colouring.
- hamiltonian_path: greedy walk over each round that keeps same-venue matches
  together and numbers them. This is an approximation, not an exact
  Hamiltonian path search.

``schedule_dates`` then spreads the rounds over a calendar window.
"""
import datetime
import logging
import math
from typing import Dict, List, Optional

from knockout.errors import InvalidOptionsError
from knockout.models import Match, ScheduleDay, TournamentOptions
from knockout.rounds import RoundLadder

logger = logging.getLogger(__name__)

SCHEDULING_INSIGHTS = {
    'basic': "Scheduling: Basic, O(n)",
    'graph_coloring': "Scheduling: Graph Coloring (greedy approximation), O(n²)",
    'hamiltonian_path': "Scheduling: Hamiltonian Path (greedy approximation), O(n²)",
}

SAME_VENUE_WEIGHT = 10


def default_venue_name(venue: int, venue_names: Optional[List[str]] = None) -> str:
    if venue_names and 0 < venue <= len(venue_names) and venue_names[venue - 1]:
        return venue_names[venue - 1]
    return f"Venue {venue}"


def basic_scheduling(matches: List[Match], num_venues: int = 1) -> List[Match]:
    matches_copy = [match.copy() for match in matches]
    for i, match in enumerate(matches_copy):
        match.venue = (i % num_venues) + 1
    return matches_copy


def _shares_team(match_a: Match, match_b: Match) -> bool:
    return bool(set(match_a.team_ids) & set(match_b.team_ids))


def graph_coloring(matches: List[Match], num_venues: int = 1) -> List[Match]:
    """
    Greedy colouring where matches sharing a team are adjacent.

    Each match takes the lowest colour not used by a neighbour coloured
    before it; colours are then folded into ``num_venues`` venues. Empty slots
    never make two matches adjacent.
    """
    matches_copy = [match.copy() for match in matches]
    n = len(matches_copy)
    adjacency = [[False] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            if _shares_team(matches_copy[i], matches_copy[j]):
                adjacency[i][j] = adjacency[j][i] = True

    colors = [0] * n
    for i in range(n):
        used = {colors[j] for j in range(n) if adjacency[i][j] and colors[j]}
        color = 1
        while color in used:
            color += 1
        colors[i] = color

    for match, color in zip(matches_copy, colors):
        match.venue = ((color - 1) % num_venues) + 1
    return matches_copy


def _greedy_path(round_matches: List[Match]) -> List[int]:
    n = len(round_matches)
    weights = [[0] * n for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i != j and round_matches[i].venue == round_matches[j].venue:
                weights[i][j] = SAME_VENUE_WEIGHT

    path = [0]
    visited = {0}
    current = 0
    while len(path) < n:
        best_next, best_weight = -1, -1
        for i in range(n):
            # Strict comparison keeps the first unvisited match on ties
            if i not in visited and weights[current][i] > best_weight:
                best_next, best_weight = i, weights[current][i]
        current = best_next
        path.append(current)
        visited.add(current)
    return path


def hamiltonian_path(matches: List[Match], num_venues: int = 1) -> List[Match]:
    """Order each round by a greedy same-venue walk and number the matches along it."""
    matches_copy = [match.copy() for match in matches]
    by_round: Dict[str, List[Match]] = {}
    for match in matches_copy:
        by_round.setdefault(match.round, []).append(match)

    for round_matches in by_round.values():
        for position, index in enumerate(_greedy_path(round_matches)):
            round_matches[index].venue = (position % num_venues) + 1
            round_matches[index].sequence_number = position + 1
    return matches_copy


VENUE_STRATEGIES = {
    'basic': basic_scheduling,
    'graph_coloring': graph_coloring,
    'hamiltonian_path': hamiltonian_path,
}


def assign_venues(matches: List[Match], num_venues: int = 1, method: str = 'basic',
                  venue_names: Optional[List[str]] = None) -> List[Match]:
    """Give every match a 1-based venue and its display name."""
    strategy = VENUE_STRATEGIES.get(method)
    if strategy is None:
        raise InvalidOptionsError(f"Unknown scheduling method: {method}")
    if isinstance(num_venues, bool) or not isinstance(num_venues, int) or num_venues < 1:
        raise InvalidOptionsError(f"num_venues must be a positive integer, got {num_venues!r}")

    assigned = strategy(matches, num_venues)
    for match in assigned:
        match.venue_name = default_venue_name(match.venue, venue_names)
    logger.debug("Assigned %d matches to %d venues with %s", len(assigned), num_venues, method)
    return assigned


def _group_by_round(matches: List[Match], ladder: RoundLadder) -> Dict[str, List[Match]]:
    grouped: Dict[str, List[Match]] = {}
    for match in sorted(matches, key=lambda m: (ladder.index(m.round), m.match_number)):
        grouped.setdefault(match.round, []).append(match)
    return grouped


def available_days(options: TournamentOptions) -> int:
    if not options.has_date_window:
        return 0
    return (options.end_date - options.start_date).days + 1


def required_days(matches: List[Match], options: TournamentOptions,
                  ladder: Optional[RoundLadder] = None) -> int:
    """Days needed to play every round, rest days included."""
    ladder = ladder or RoundLadder.from_matches(matches)
    grouped = _group_by_round(matches, ladder)
    days = sum(math.ceil(len(round_matches) / options.max_matches_per_day)
               for round_matches in grouped.values())
    if options.enable_rest_days and len(grouped) > 1:
        days += (len(grouped) - 1) * options.rest_day_interval
    return days


def capacity_warning(matches: List[Match], options: TournamentOptions,
                     ladder: Optional[RoundLadder] = None) -> Optional[str]:
    """Message when the date window is too short for the bracket, else None."""
    if not options.has_date_window:
        return None
    needed = required_days(matches, options, ladder)
    available = available_days(options)
    if needed > available:
        return f"Tournament requires {needed} days but only {available} are available"
    return None


def schedule_dates(matches: List[Match], options: TournamentOptions,
                   ladder: Optional[RoundLadder] = None) -> List[ScheduleDay]:
    """
    Spread the rounds over consecutive days starting at ``options.start_date``.

    Each round takes ceil(matches / max_matches_per_day) days and, with rest
    days enabled, ``rest_day_interval`` rest days separate two rounds. A
    window that is too short only produces a warning: the remaining days run
    past ``end_date`` and every match is still scheduled.
    """
    if not options.has_date_window:
        return []
    if options.end_date < options.start_date:
        raise InvalidOptionsError("end_date must not be before start_date")

    ladder = ladder or RoundLadder.from_matches(matches)
    warning = capacity_warning(matches, options, ladder)
    if warning:
        logger.warning(warning)

    schedule = []
    current_date = options.start_date
    one_day = datetime.timedelta(days=1)
    for round_index, (round_name, round_matches) in enumerate(_group_by_round(matches, ladder).items()):
        if round_index > 0 and options.enable_rest_days:
            for _ in range(options.rest_day_interval):
                schedule.append(ScheduleDay(current_date, is_rest_day=True))
                current_date += one_day

        per_day = options.max_matches_per_day
        for start in range(0, len(round_matches), per_day):
            day_matches = [match.copy() for match in round_matches[start:start + per_day]]
            for day_match in day_matches:
                day_match.scheduled_date = current_date
            schedule.append(ScheduleDay(current_date, round=round_name, matches=day_matches))
            current_date += one_day

    logger.info("Scheduled %d matches over %d days from %s",
                len(matches), len(schedule), options.start_date.isoformat())
    return schedule


def stamp_schedule(matches: List[Match], schedule: List[ScheduleDay]) -> List[Match]:
    """Copy of ``matches`` with ``scheduled_date`` taken from the schedule."""
    dates = {}
    for day in schedule:
        if day.is_rest_day:
            continue
        for scheduled in day.matches:
            dates[scheduled.id] = day.date
    stamped = []
    for match in matches:
        match_copy = match.copy()
        if match.id in dates:
            match_copy.scheduled_date = dates[match.id]
        stamped.append(match_copy)
    return stamped


def refresh_schedule(schedule: List[ScheduleDay], matches: List[Match]) -> List[ScheduleDay]:
    """Copy of ``schedule`` whose day entries show the current state of ``matches``."""
    by_id = {match.id: match for match in matches}
    refreshed = []
    for day in schedule:
        day_copy = ScheduleDay(day.date, day.is_rest_day, day.round)
        for scheduled in day.matches:
            current = by_id.get(scheduled.id, scheduled).copy()
            current.scheduled_date = day.date
            day_copy.matches.append(current)
        refreshed.append(day_copy)
    return refreshed
