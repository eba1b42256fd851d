"""
Tournament generation: roster -> seeded order -> bracket -> venues -> dates.

``generate_tournament`` records what it did in a list of human readable
insights. Entries starting with "Error:" mark a step that failed and was
recovered from; "Warning:" marks a capacity problem with the date window.
"""
import logging
import numbers
import random
from typing import List, Optional

from knockout.allocation import (
    SCHEDULING_INSIGHTS, assign_venues, capacity_warning, refresh_schedule, schedule_dates, stamp_schedule,
)
from knockout.elimination import apply_result, bracket_summary, build_bracket, get_champion
from knockout.errors import InvalidOptionsError, InvalidRosterError, SeedingError
from knockout.models import Match, ScheduleDay, Team, TournamentOptions
from knockout.postponement import postpone
from knockout.reseeding import RESEEDING_INSIGHT, reseed
from knockout.rounds import MAX_TEAMS, RoundLadder
from knockout.seeding import SEEDING_INSIGHTS, avoid_top_team_clashes, seed_teams

logger = logging.getLogger(__name__)

FORMAT_INSIGHT = "Tournament: Knockout"
CLASH_INSIGHT = "Optimization: Avoid Top Team Clashes"
CLASH_FAILED_INSIGHT = "Error: Top Team Clash avoidance failed, using original seeding"
DATES_INSIGHT = "Date Scheduling: Enabled"
REST_DAYS_INSIGHT = "Rest Days: Between rounds"
WITHDRAWAL_FAILED_INSIGHT = "Error: Team withdrawal failed"


class TournamentResult:
    def __init__(self, matches, insights, schedule):
        self.matches = matches
        self.insights = insights
        self.schedule = schedule

    def __iter__(self):
        return iter((self.matches, self.insights, self.schedule))

    def to_dict(self):
        return {
            'matches': [match.to_dict() for match in self.matches],
            'insights': list(self.insights),
            'schedule': [day.to_dict() for day in self.schedule],
        }

    def __repr__(self):
        return (f"TournamentResult(matches={len(self.matches)}, insights={len(self.insights)}, "
                f"days={len(self.schedule)})")


def validate_teams(teams) -> List[Team]:
    """Check the roster and return it as a list of Team objects."""
    if not isinstance(teams, (list, tuple)) or not teams:
        raise InvalidRosterError("No teams provided")
    if len(teams) < 2:
        raise InvalidRosterError("At least 2 teams are required")
    if len(teams) > MAX_TEAMS:
        raise InvalidRosterError(f"At most {MAX_TEAMS} teams are supported, got {len(teams)}")

    roster = []
    seen = set()
    for position, entry in enumerate(teams, start=1):
        if isinstance(entry, dict):
            if 'id' not in entry:
                raise InvalidRosterError(f"Team #{position} is missing an id")
            entry = Team.from_dict(entry)
        if not isinstance(entry, Team):
            raise InvalidRosterError(f"Team #{position} is not a team record: {entry!r}")
        if isinstance(entry.id, bool) or not isinstance(entry.id, int):
            raise InvalidRosterError(f"Team #{position} has an invalid id: {entry.id!r}")
        if entry.id in seen:
            raise InvalidRosterError(f"Duplicate team id: {entry.id}")
        if isinstance(entry.ranking, bool) or not isinstance(entry.ranking, numbers.Real):
            raise InvalidRosterError(f"Team {entry.id} has a non-numeric ranking: {entry.ranking!r}")
        seen.add(entry.id)
        roster.append(entry)
    return roster


def _coerce_options(options) -> TournamentOptions:
    if isinstance(options, TournamentOptions):
        return options
    if options is None or isinstance(options, dict):
        return TournamentOptions.from_dict(options)
    raise InvalidOptionsError(f"Unsupported options type: {type(options).__name__}")


def generate_tournament(teams, options=None, rng: Optional[random.Random] = None) -> TournamentResult:
    """
    Build a complete tournament from a roster.

    Invalid rosters and options raise before anything is built. Past that
    point a failing step is logged and reported as an "Error:" insight, and
    whatever was computed up to the failure is returned.
    """
    roster = validate_teams(teams)
    options = _coerce_options(options)

    insights = [FORMAT_INSIGHT]
    matches: List[Match] = []
    schedule: List[ScheduleDay] = []

    try:
        seeded = seed_teams(roster, options.seeding_method, options.ranking_type, rng)
        insights.append(SEEDING_INSIGHTS[options.seeding_method])

        if options.avoid_top_team_clashes:
            try:
                seeded = avoid_top_team_clashes(seeded)
                insights.append(CLASH_INSIGHT)
            except SeedingError as e:
                logger.error("Top team clash avoidance failed: %s", e)
                insights.append(CLASH_FAILED_INSIGHT)

        matches = build_bracket(seeded, options.venue_names)
        ladder = RoundLadder.for_team_count(len(seeded))

        matches = assign_venues(matches, options.num_venues, options.scheduling_method, options.venue_names)
        insights.append(SCHEDULING_INSIGHTS[options.scheduling_method])

        if options.enable_dynamic_reseeding and options.withdrawn_teams:
            matches = reseed(matches, roster, options.withdrawn_teams, options.ranking_type, ladder)
            insights.append(RESEEDING_INSIGHT)

        if options.has_date_window:
            warning = capacity_warning(matches, options, ladder)
            schedule = schedule_dates(matches, options, ladder)
            matches = stamp_schedule(matches, schedule)
            insights.append(DATES_INSIGHT)
            if options.enable_rest_days:
                insights.append(REST_DAYS_INSIGHT)
            if warning:
                insights.append(f"Warning: {warning}")
    except Exception as e:
        logger.exception("Tournament generation failed")
        insights.append(f"Error: {str(e) or 'Tournament generation failed'}")

    logger.info("Generated tournament: %d teams, %d matches, %d schedule days",
                len(roster), len(matches), len(schedule))
    return TournamentResult(matches, insights, schedule)


class Tournament:
    """
    A generated tournament and the events applied to it since.

    Every event swaps in the new match list (and schedule) returned by the
    engine; nothing is modified in place.
    """

    def __init__(self, teams: List[Team], options: TournamentOptions, matches: List[Match],
                 schedule: List[ScheduleDay], insights: List[str]):
        self.teams = teams
        self.options = options
        self.matches = matches
        self.schedule = schedule
        self.insights = insights
        self.withdrawn_teams = list(options.withdrawn_teams) if options.enable_dynamic_reseeding else []
        self.postponements = []

    @classmethod
    def generate(cls, teams, options=None, rng: Optional[random.Random] = None) -> "Tournament":
        roster = validate_teams(teams)
        options = _coerce_options(options)
        result = generate_tournament(roster, options, rng)
        return cls(roster, options, result.matches, result.schedule, result.insights)

    @property
    def ladder(self) -> RoundLadder:
        return RoundLadder.from_matches(self.matches)

    @property
    def champion(self):
        return get_champion(self.matches)

    def get_match(self, match_id: str) -> Optional[Match]:
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    def _update(self, matches: List[Match]) -> None:
        self.matches = matches
        self.schedule = refresh_schedule(self.schedule, matches)

    def apply_result(self, match_id: str, winner_id) -> Match:
        self._update(apply_result(self.matches, match_id, winner_id, self.ladder))
        return self.get_match(match_id)

    def withdraw(self, team_id) -> bool:
        """Withdraw ``team_id`` and reseed. Returns False when reseeding failed."""
        withdrawn = list(self.withdrawn_teams)
        if team_id not in withdrawn:
            withdrawn.append(team_id)
        try:
            matches = reseed(self.matches, self.teams, withdrawn, self.options.ranking_type, self.ladder)
        except Exception:
            logger.exception("Withdrawal of team %s failed", team_id)
            self.insights.append(WITHDRAWAL_FAILED_INSIGHT)
            return False
        self._update(matches)
        self.withdrawn_teams = withdrawn
        if RESEEDING_INSIGHT not in self.insights:
            self.insights.append(RESEEDING_INSIGHT)
        return True

    def postpone(self, match_id: str):
        result = postpone(match_id, self.matches, self.schedule, self.teams, self.options, self.ladder)
        self.schedule = result.schedule
        self._update(result.matches)
        if result.slot is not None:
            note = {'match_id': match_id}
            note.update(result.slot.to_dict())
            self.postponements.append(note)
        return result.slot

    def to_dict(self):
        summary = bracket_summary(self.matches)
        return {
            'teams': [team.to_dict() for team in self.teams],
            'options': self.options.to_dict(),
            'matches': [match.to_dict() for match in self.matches],
            'schedule': [day.to_dict() for day in self.schedule],
            'insights': list(self.insights),
            'withdrawn_teams': list(self.withdrawn_teams),
            'postponements': list(self.postponements),
            'total_rounds': summary['total_rounds'],
            'byes': summary['byes'],
            'champion': summary['champion'],
        }

    def __repr__(self):
        return f"Tournament(teams={len(self.teams)}, matches={len(self.matches)}, champion={self.champion})"
