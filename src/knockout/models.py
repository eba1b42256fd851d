import datetime

from knockout.errors import InvalidOptionsError

PENDING = 'pending'
COMPLETED = 'completed'
POSTPONED = 'postponed'
CANCELLED = 'cancelled'

TOP = 'top'
BOTTOM = 'bottom'

HIGHER_BETTER = 'higher_better'
LOWER_BETTER = 'lower_better'
RANKING_TYPES = (HIGHER_BETTER, LOWER_BETTER)

SEEDING_METHODS = ('random', 'merge_sort', 'quick_sort', 'manual')
SCHEDULING_METHODS = ('basic', 'graph_coloring', 'hamiltonian_path')


def _parse_date(value):
    if value is None or value == '':
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value))


def _format_date(value):
    return value.isoformat() if value else None


class Team:
    def __init__(self, id, name, ranking, dynamic_ranking=None):
        self.id = id
        self.name = name
        self.ranking = ranking
        self.dynamic_ranking = dynamic_ranking

    def copy(self):
        return Team(self.id, self.name, self.ranking, self.dynamic_ranking)

    def to_dict(self):
        data = {'id': self.id, 'name': self.name, 'ranking': self.ranking}
        if self.dynamic_ranking is not None:
            data['dynamic_ranking'] = self.dynamic_ranking
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get('id'),
            name=data.get('name', f"Team {data.get('id')}"),
            ranking=data.get('ranking'),
            dynamic_ranking=data.get('dynamic_ranking'),
        )

    def __eq__(self, other):
        if not isinstance(other, Team):
            return NotImplemented
        return (self.id, self.name, self.ranking, self.dynamic_ranking) == \
            (other.id, other.name, other.ranking, other.dynamic_ranking)

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, ranking={self.ranking})"


class Match:
    """A node of the bracket tree.

    The winner of a match fills the ``position`` slot of ``next_match_id``:
    ``top`` is ``team1_id`` and ``bottom`` is ``team2_id``.
    """

    FIELDS = ('id', 'match_number', 'round', 'team1_id', 'team2_id', 'venue',
              'venue_name', 'status', 'winner_id', 'next_match_id', 'position',
              'scheduled_date', 'sequence_number')

    def __init__(self, id, match_number, round, team1_id=None, team2_id=None,
                 venue=1, venue_name=None, status=PENDING, winner_id=None,
                 next_match_id=None, position=TOP, scheduled_date=None,
                 sequence_number=None):
        self.id = id
        self.match_number = match_number
        self.round = round
        self.team1_id = team1_id
        self.team2_id = team2_id
        self.venue = venue
        self.venue_name = venue_name
        self.status = status
        self.winner_id = winner_id
        self.next_match_id = next_match_id
        self.position = position
        self.scheduled_date = scheduled_date
        self.sequence_number = sequence_number

    @property
    def team_ids(self):
        return [t for t in (self.team1_id, self.team2_id) if t is not None]

    def has_team(self, team_id):
        return team_id is not None and team_id in (self.team1_id, self.team2_id)

    def get_slot(self, position):
        return self.team1_id if position == TOP else self.team2_id

    def set_slot(self, position, team_id):
        if position == TOP:
            self.team1_id = team_id
        else:
            self.team2_id = team_id

    def copy(self):
        return Match(**{name: getattr(self, name) for name in self.FIELDS})

    def to_dict(self):
        data = {name: getattr(self, name) for name in self.FIELDS}
        data['scheduled_date'] = _format_date(self.scheduled_date)
        return data

    @classmethod
    def from_dict(cls, data):
        values = {name: data[name] for name in cls.FIELDS if name in data}
        values['scheduled_date'] = _parse_date(values.get('scheduled_date'))
        return cls(**values)

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self.FIELDS)

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, teams=({self.team1_id}, {self.team2_id}), "
                f"status={self.status}, winner={self.winner_id})")


class ScheduleDay:
    def __init__(self, date, is_rest_day=False, round=None, matches=None):
        self.date = date
        self.is_rest_day = is_rest_day
        self.round = round
        self.matches = matches if matches else []

    def copy(self):
        return ScheduleDay(self.date, self.is_rest_day, self.round,
                           [match.copy() for match in self.matches])

    def to_dict(self):
        return {
            'date': _format_date(self.date),
            'is_rest_day': self.is_rest_day,
            'round': self.round,
            'matches': [match.to_dict() for match in self.matches],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            date=_parse_date(data['date']),
            is_rest_day=data.get('is_rest_day', False),
            round=data.get('round'),
            matches=[Match.from_dict(m) for m in data.get('matches', [])],
        )

    def __repr__(self):
        kind = 'rest' if self.is_rest_day else self.round
        return f"ScheduleDay(date={self.date}, round={kind}, matches={len(self.matches)})"


class TournamentOptions:
    """Validated generation settings.

    Built from a plain dict (usually YAML) whose keys match the attribute
    names. Unknown keys are ignored.
    """

    def __init__(self, ranking_type=HIGHER_BETTER, seeding_method='random',
                 scheduling_method='basic', num_venues=1, venue_names=None,
                 avoid_top_team_clashes=False, enable_dynamic_reseeding=False,
                 withdrawn_teams=None, start_date=None, end_date=None,
                 enable_rest_days=False, rest_day_interval=3, max_matches_per_day=4):
        self.ranking_type = ranking_type
        self.seeding_method = seeding_method
        self.scheduling_method = scheduling_method
        self.num_venues = num_venues
        self.venue_names = list(venue_names) if venue_names else []
        self.avoid_top_team_clashes = bool(avoid_top_team_clashes)
        self.enable_dynamic_reseeding = bool(enable_dynamic_reseeding)
        self.withdrawn_teams = list(withdrawn_teams) if withdrawn_teams else []
        self.start_date = _parse_date(start_date)
        self.end_date = _parse_date(end_date)
        self.enable_rest_days = bool(enable_rest_days)
        self.rest_day_interval = rest_day_interval
        self.max_matches_per_day = max_matches_per_day
        self.validate()

    def validate(self):
        if self.ranking_type not in RANKING_TYPES:
            raise InvalidOptionsError(f"ranking_type must be one of {RANKING_TYPES}, got {self.ranking_type!r}")
        if self.seeding_method not in SEEDING_METHODS:
            raise InvalidOptionsError(f"seeding_method must be one of {SEEDING_METHODS}, got {self.seeding_method!r}")
        if self.scheduling_method not in SCHEDULING_METHODS:
            raise InvalidOptionsError(
                f"scheduling_method must be one of {SCHEDULING_METHODS}, got {self.scheduling_method!r}")
        for name in ('num_venues', 'rest_day_interval', 'max_matches_per_day'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidOptionsError(f"{name} must be a positive integer, got {value!r}")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise InvalidOptionsError(
                f"end_date {self.end_date.isoformat()} is before start_date {self.start_date.isoformat()}")

    @property
    def has_date_window(self):
        return self.start_date is not None and self.end_date is not None

    @classmethod
    def from_dict(cls, data):
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidOptionsError("Options must be a mapping")
        try:
            start_date = _parse_date(data.get('start_date'))
            end_date = _parse_date(data.get('end_date'))
        except ValueError as e:
            raise InvalidOptionsError(f"Invalid date: {e}") from e
        return cls(
            ranking_type=data.get('ranking_type', HIGHER_BETTER),
            seeding_method=data.get('seeding_method', 'random'),
            scheduling_method=data.get('scheduling_method', 'basic'),
            num_venues=data.get('num_venues', 1),
            venue_names=data.get('venue_names'),
            avoid_top_team_clashes=data.get('avoid_top_team_clashes', False),
            enable_dynamic_reseeding=data.get('enable_dynamic_reseeding', False),
            withdrawn_teams=data.get('withdrawn_teams'),
            start_date=start_date,
            end_date=end_date,
            enable_rest_days=data.get('enable_rest_days', False),
            rest_day_interval=data.get('rest_day_interval', 3),
            max_matches_per_day=data.get('max_matches_per_day', 4),
        )

    def to_dict(self):
        return {
            'ranking_type': self.ranking_type,
            'seeding_method': self.seeding_method,
            'scheduling_method': self.scheduling_method,
            'num_venues': self.num_venues,
            'venue_names': list(self.venue_names),
            'avoid_top_team_clashes': self.avoid_top_team_clashes,
            'enable_dynamic_reseeding': self.enable_dynamic_reseeding,
            'withdrawn_teams': list(self.withdrawn_teams),
            'start_date': _format_date(self.start_date),
            'end_date': _format_date(self.end_date),
            'enable_rest_days': self.enable_rest_days,
            'rest_day_interval': self.rest_day_interval,
            'max_matches_per_day': self.max_matches_per_day,
        }

    def __repr__(self):
        return (f"TournamentOptions(seeding={self.seeding_method}, scheduling={self.scheduling_method}, "
                f"venues={self.num_venues}, ranking_type={self.ranking_type})")
