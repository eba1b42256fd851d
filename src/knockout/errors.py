"""
Exceptions raised by the tournament engine.
"""


class TournamentError(Exception):
    """Base class for tournament engine errors."""


class InvalidRosterError(TournamentError, ValueError):
    """The supplied team list cannot produce a bracket."""


class InvalidOptionsError(TournamentError, ValueError):
    """A configuration value is missing or out of range."""


class MatchNotFoundError(TournamentError, LookupError):
    """No match with the requested id exists in the bracket."""

    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class InvalidResultError(TournamentError, ValueError):
    """A result or schedule change does not fit the current bracket state."""


class SeedingError(TournamentError):
    """A seeding transform produced something that is not a permutation."""
