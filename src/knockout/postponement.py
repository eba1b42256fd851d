"""
Postponement of single matches on a dated schedule.

A postponed match moves to the first free day between its round and the
next one. When no such day exists the later rounds are pushed back to make
room, and the schedule is re-checked so that no round starts before the
previous one has finished.
"""
import datetime
import logging
from typing import Dict, List, Optional, Set

from knockout.elimination import copy_matches, index_matches
from knockout.errors import InvalidResultError, MatchNotFoundError
from knockout.models import CANCELLED, COMPLETED, POSTPONED, Match, ScheduleDay, Team, TournamentOptions
from knockout.rounds import RoundLadder

logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)


class PostponementSlot:
    def __init__(self, date, needs_rescheduling=False, days_to_shift=0):
        self.date = date
        self.needs_rescheduling = needs_rescheduling
        self.days_to_shift = days_to_shift

    def to_dict(self):
        return {
            'date': self.date.isoformat(),
            'needs_rescheduling': self.needs_rescheduling,
            'days_to_shift': self.days_to_shift,
        }

    def __repr__(self):
        return (f"PostponementSlot(date={self.date}, needs_rescheduling={self.needs_rescheduling}, "
                f"days_to_shift={self.days_to_shift})")


class PostponementResult:
    def __init__(self, matches, schedule, slot=None):
        self.matches = matches
        self.schedule = schedule
        self.slot = slot

    def __iter__(self):
        return iter((self.matches, self.schedule))

    def __repr__(self):
        return f"PostponementResult(matches={len(self.matches)}, days={len(self.schedule)}, slot={self.slot})"


def _ladder_for(schedule: List[ScheduleDay], matches: List[Match], ladder: Optional[RoundLadder]) -> RoundLadder:
    if ladder is not None:
        return ladder
    return RoundLadder.from_labels([m.round for m in matches] + [day.round for day in schedule])


def find_match_day(schedule: List[ScheduleDay], match_id: str) -> Optional[ScheduleDay]:
    for day in schedule:
        if day.is_rest_day:
            continue
        if any(m.id == match_id for m in day.matches):
            return day
    return None


def occupied_dates(schedule: List[ScheduleDay], match: Match,
                   current: Optional[Dict[str, Match]] = None) -> Set[datetime.date]:
    """
    Dates on which either team of ``match`` plays another match.

    Schedule days hold snapshots; pass ``current`` (id -> match) to read
    the slots as they are now.
    """
    team_ids = set(match.team_ids)
    current = current or {}
    dates = set()
    for day in schedule:
        if day.is_rest_day:
            continue
        for scheduled in day.matches:
            other = current.get(scheduled.id, scheduled)
            if other.id != match.id and team_ids & set(other.team_ids):
                dates.add(day.date)
    return dates


def _round_days(schedule: List[ScheduleDay], round_name: str) -> List[datetime.date]:
    return [day.date for day in schedule
            if not day.is_rest_day and RoundLadder.base_name(day.round) == round_name]


def _next_round_start(schedule: List[ScheduleDay], round_name: str,
                      ladder: RoundLadder) -> Optional[datetime.date]:
    """First day of the earliest later round that is on the schedule."""
    next_round = ladder.next_round(round_name)
    while next_round is not None:
        days = _round_days(schedule, next_round)
        if days:
            return min(days)
        next_round = ladder.next_round(next_round)
    return None


def find_postponement_slot(match: Match, schedule: List[ScheduleDay], options: TournamentOptions,
                           ladder: Optional[RoundLadder] = None,
                           original_date: Optional[datetime.date] = None,
                           matches: Optional[List[Match]] = None) -> PostponementSlot:
    """
    Pick the new date for ``match``.

    ``schedule`` should no longer contain the match itself. The search tries,
    in order: a free day in the gap between the match's round and the next
    round; a free day after the original date but before the next round;
    the day before the next round with later rounds shifted back; and with
    no later round, the day after the last scheduled day.
    """
    ladder = _ladder_for(schedule, [match], ladder)
    round_name = RoundLadder.base_name(match.round)
    busy = occupied_dates(schedule, match, index_matches(matches or []))
    next_start = _next_round_start(schedule, round_name, ladder)
    round_days = _round_days(schedule, round_name)

    if round_days and next_start is not None:
        candidate = max(round_days) + ONE_DAY
        while candidate < next_start:
            if candidate not in busy and candidate != original_date:
                return PostponementSlot(candidate)
            candidate += ONE_DAY

    if next_start is not None:
        if original_date is not None:
            candidate = original_date + ONE_DAY
            while candidate < next_start:
                if candidate not in busy:
                    return PostponementSlot(candidate)
                candidate += ONE_DAY

        fallback = next_start - ONE_DAY
        if original_date is not None and fallback <= original_date:
            fallback = original_date + ONE_DAY
        days_to_shift = options.rest_day_interval if options.enable_rest_days else 1
        return PostponementSlot(fallback, needs_rescheduling=True, days_to_shift=days_to_shift)

    dated = [day.date for day in schedule]
    if dated:
        candidate = max(dated) + ONE_DAY
    elif original_date is not None:
        candidate = original_date + ONE_DAY
    else:
        candidate = options.start_date or datetime.date.today()
    if candidate == original_date:
        candidate += ONE_DAY
    return PostponementSlot(candidate)


def shift_later_rounds(schedule: List[ScheduleDay], from_date: datetime.date, round_name: str,
                       days: int, ladder: RoundLadder) -> None:
    """Move, in place, every match day of a later round dated on or after ``from_date``."""
    round_index = ladder.index(round_name)
    delta = datetime.timedelta(days=days)
    for day in schedule:
        if day.is_rest_day or day.date < from_date:
            continue
        if ladder.index(day.round) > round_index:
            day.date += delta
            for scheduled in day.matches:
                scheduled.scheduled_date = day.date


def ensure_round_ordering(schedule: List[ScheduleDay], ladder: Optional[RoundLadder] = None) -> List[ScheduleDay]:
    """
    Copy of ``schedule`` in which every round starts after the previous one ends.

    Match days are grouped by round (postponed days count for their base
    round). A round whose first day comes before the last day of the previous
    round is moved forward as a block by the overlap plus one day. The result
    is sorted by date.
    """
    normalized = [day.copy() for day in schedule]
    ladder = ladder or RoundLadder.from_matches(normalized)

    by_round: Dict[str, List[ScheduleDay]] = {}
    for day in normalized:
        if day.is_rest_day or not day.round:
            continue
        by_round.setdefault(RoundLadder.base_name(day.round), []).append(day)

    previous_end = None
    for round_name in ladder:
        days = sorted(by_round.get(round_name, []), key=lambda d: d.date)
        if not days:
            continue
        if previous_end is not None and days[0].date < previous_end:
            shift = datetime.timedelta(days=(previous_end - days[0].date).days + 1)
            logger.info("Moving %s forward by %d day(s) to keep round order", round_name, shift.days)
            for day in days:
                day.date += shift
                for scheduled in day.matches:
                    scheduled.scheduled_date = day.date
        previous_end = days[-1].date

    return sorted(normalized, key=lambda d: d.date)


def _team_label(teams_by_id: Dict, team_id) -> str:
    team = teams_by_id.get(team_id)
    return team.name if team is not None else str(team_id)


def postpone(match_id: str, matches: List[Match], schedule: List[ScheduleDay], teams: List[Team],
             options: TournamentOptions, ladder: Optional[RoundLadder] = None) -> PostponementResult:
    """Postpone ``match_id`` and return the updated matches, schedule and chosen slot."""
    working = copy_matches(matches)
    by_id = index_matches(working)
    match = by_id.get(match_id)
    if match is None:
        raise MatchNotFoundError(match_id)
    if match.status in (COMPLETED, CANCELLED):
        raise InvalidResultError(f"Match {match_id} is already {match.status} and cannot be postponed")

    new_schedule = [day.copy() for day in schedule]
    ladder = _ladder_for(new_schedule, working, ladder)
    match.status = POSTPONED

    original_day = find_match_day(new_schedule, match_id)
    if original_day is None:
        logger.warning("Match %s is not on the schedule, leaving the schedule unchanged", match_id)
        return PostponementResult(working, new_schedule)

    original_day.matches = [m for m in original_day.matches if m.id != match_id]
    slot = find_postponement_slot(match, new_schedule, options, ladder, original_day.date, working)

    teams_by_id = {team.id: team for team in teams}
    logger.info("Postponing %s (%s vs %s) from %s to %s", match_id,
                _team_label(teams_by_id, match.team1_id), _team_label(teams_by_id, match.team2_id),
                original_day.date.isoformat(), slot.date.isoformat())

    if slot.needs_rescheduling:
        shift_later_rounds(new_schedule, slot.date, match.round, slot.days_to_shift, ladder)

    match.scheduled_date = slot.date
    new_schedule.append(ScheduleDay(slot.date, round=RoundLadder.postponed_label(match.round),
                                    matches=[match.copy()]))
    new_schedule = ensure_round_ordering(new_schedule, ladder)

    # The normalizer may have moved the postponed day
    for day in new_schedule:
        for scheduled in day.matches:
            if scheduled.id in by_id:
                by_id[scheduled.id].scheduled_date = day.date
    return PostponementResult(working, new_schedule, slot)
