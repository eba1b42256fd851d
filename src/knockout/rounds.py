"""
Round naming for single elimination brackets.

A RoundLadder is computed once (from the team count or from an existing
match list) and handed to every component that needs to order rounds.
"""
import math
from typing import Iterable, List, Optional

FULL_LADDER = [
    "Round of 128",
    "Round of 64",
    "Round of 32",
    "Round of 16",
    "Quarterfinals",
    "Semifinals",
    "Final",
]

MAX_TEAMS = 2 ** len(FULL_LADDER)

POSTPONED_SUFFIX = " (Postponed)"


def calculate_total_rounds(num_teams: int) -> int:
    """Number of rounds needed for ``num_teams`` entrants (at least one)."""
    if num_teams <= 2:
        return 1
    return min(len(FULL_LADDER), math.ceil(math.log2(num_teams)))


def round_weight(round_name: str) -> int:
    """Weight of a round on the full ladder: Round of 128 is 1, the Final is 7."""
    base = RoundLadder.base_name(round_name)
    if base in FULL_LADDER:
        return FULL_LADDER.index(base) + 1
    return 1


class RoundLadder:
    """Ordered round names of one bracket, first round first."""

    def __init__(self, names: List[str]):
        self.names = list(names)
        self._positions = {name: i for i, name in enumerate(self.names)}

    @classmethod
    def for_team_count(cls, num_teams: int) -> "RoundLadder":
        total_rounds = calculate_total_rounds(num_teams)
        return cls(FULL_LADDER[-total_rounds:])

    @classmethod
    def from_labels(cls, labels: Iterable[Optional[str]]) -> "RoundLadder":
        bases = [cls.base_name(label) for label in labels if label]
        names = [name for name in FULL_LADDER if name in bases]
        # Custom labels keep their first-seen order, after the known rounds
        for base in bases:
            if base not in FULL_LADDER and base not in names:
                names.append(base)
        return cls(names)

    @classmethod
    def from_matches(cls, matches: Iterable) -> "RoundLadder":
        """Ladder of the rounds present on matches (or schedule days)."""
        return cls.from_labels(m.round for m in matches)

    @staticmethod
    def base_name(label: Optional[str]) -> Optional[str]:
        if label and label.endswith(POSTPONED_SUFFIX):
            return label[:-len(POSTPONED_SUFFIX)]
        return label

    @staticmethod
    def postponed_label(round_name: str) -> str:
        return f"{RoundLadder.base_name(round_name)}{POSTPONED_SUFFIX}"

    @property
    def total_rounds(self) -> int:
        return len(self.names)

    @property
    def first(self) -> str:
        return self.names[0]

    @property
    def final(self) -> str:
        return self.names[-1]

    def index(self, label: Optional[str]) -> int:
        """Position of a round (postponement suffix ignored); unknown rounds sort last."""
        return self._positions.get(self.base_name(label), len(self.names))

    def __contains__(self, label) -> bool:
        return self.base_name(label) in self._positions

    def next_round(self, label: str) -> Optional[str]:
        position = self.index(label)
        if position + 1 < len(self.names):
            return self.names[position + 1]
        return None

    def matches_in_round(self, round_index: int) -> int:
        return 2 ** (self.total_rounds - round_index - 1)

    def __iter__(self):
        return iter(self.names)

    def __len__(self):
        return len(self.names)

    def __repr__(self):
        return f"RoundLadder({self.names})"
