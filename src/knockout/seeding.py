"""
Seeding algorithms: order teams before they are placed into the bracket.

- merge_sort: stable, O(n log n)
- quick_sort: Lomuto partition (last element as pivot), O(n log n) average,
  O(n^2) worst case
- random: Fisher-Yates shuffle, O(n)
- manual: input order

``avoid_top_team_clashes`` is an optional post-step for order-based seeds
that spreads the top seeds across the bracket.
"""
import logging
import random
from typing import Callable, List, Optional

from knockout.errors import InvalidOptionsError, SeedingError
from knockout.models import HIGHER_BETTER, Team

logger = logging.getLogger(__name__)

SEEDING_INSIGHTS = {
    'merge_sort': "Seeding: Merge Sort, O(n log n)",
    'quick_sort': "Seeding: Quick Sort, O(n log n) average, O(n²) worst case",
    'random': "Seeding: Random, O(n)",
    'manual': "Seeding: Manual, O(n)",
}


def ranks_ahead(value_a, value_b, ranking_type: str) -> bool:
    """True when ``value_a`` is strictly better than ``value_b``."""
    if ranking_type == HIGHER_BETTER:
        return value_a > value_b
    return value_a < value_b


def _is_better(team_a: Team, team_b: Team, ranking_type: str) -> bool:
    return ranks_ahead(team_a.ranking, team_b.ranking, ranking_type)


def merge_sort(teams: List[Team], ranking_type: str = HIGHER_BETTER) -> List[Team]:
    """Sort teams best first. Teams with equal rankings keep their input order."""
    if len(teams) <= 1:
        return list(teams)

    middle = len(teams) // 2
    left = merge_sort(teams[:middle], ranking_type)
    right = merge_sort(teams[middle:], ranking_type)
    return _merge(left, right, ranking_type)


def _merge(left: List[Team], right: List[Team], ranking_type: str) -> List[Team]:
    result = []
    i = j = 0
    while i < len(left) and j < len(right):
        # Right only goes first when strictly better, which keeps the sort stable
        if _is_better(right[j], left[i], ranking_type):
            result.append(right[j])
            j += 1
        else:
            result.append(left[i])
            i += 1
    result.extend(left[i:])
    result.extend(right[j:])
    return result


def quick_sort(teams: List[Team], ranking_type: str = HIGHER_BETTER) -> List[Team]:
    """Sort teams best first (not stable)."""
    teams_copy = list(teams)
    _quick_sort(teams_copy, 0, len(teams_copy) - 1, ranking_type)
    return teams_copy


def _quick_sort(teams: List[Team], low: int, high: int, ranking_type: str) -> None:
    if low < high:
        pivot_index = _partition(teams, low, high, ranking_type)
        _quick_sort(teams, low, pivot_index - 1, ranking_type)
        _quick_sort(teams, pivot_index + 1, high, ranking_type)


def _partition(teams: List[Team], low: int, high: int, ranking_type: str) -> int:
    pivot = teams[high]
    i = low - 1
    for j in range(low, high):
        if _is_better(teams[j], pivot, ranking_type):
            i += 1
            teams[i], teams[j] = teams[j], teams[i]
    teams[i + 1], teams[high] = teams[high], teams[i + 1]
    return i + 1


def random_seeding(teams: List[Team], rng: Optional[random.Random] = None) -> List[Team]:
    """Fisher-Yates shuffle of a copy of ``teams``."""
    rng = rng or random
    teams_copy = list(teams)
    for i in range(len(teams_copy) - 1, 0, -1):
        j = rng.randint(0, i)
        teams_copy[i], teams_copy[j] = teams_copy[j], teams_copy[i]
    return teams_copy


def manual_seeding(teams: List[Team]) -> List[Team]:
    return list(teams)


def get_seed_position(seed: int, rounds: int) -> int:
    """
    Bracket slot (1-indexed) for a seed in a bracket of ``2 ** rounds`` slots.

    Seed 1 is at the top, seed 2 at the bottom, and the remaining seeds are
    spread between them so that top seeds meet as late as possible.
    """
    bracket_slots = 2 ** rounds
    if seed == 1:
        return 1
    if seed == 2:
        return bracket_slots

    power = 1
    while 2 ** power < seed:
        power += 1

    offset = 2 ** power - seed
    if seed % 2 == 1:
        position = 2 ** (rounds - power + 1) - (2 * offset - 1)
    else:
        position = 2 ** rounds - 2 ** (rounds - power) + 1 + (2 * offset - 2)

    return max(1, min(bracket_slots, position))


def avoid_top_team_clashes(teams: List[Team]) -> List[Team]:
    """
    Re-place an ordered seed list so the top seeds land in different parts
    of the bracket.

    When the team count is not a power of two several seeds can map to the
    same slot, or to a slot past the end of the list; those seeds take the
    lowest free slot instead. This is an approximation of a full seeding
    table, not an exact one.
    """
    num_teams = len(teams)
    if num_teams < 4:
        return list(teams)

    rounds = 1
    while 2 ** rounds < num_teams:
        rounds += 1

    result: List[Optional[Team]] = [None] * num_teams
    for seed, team in enumerate(teams, start=1):
        index = get_seed_position(seed, rounds) - 1
        if index >= num_teams or result[index] is not None:
            free = [i for i, slot in enumerate(result) if slot is None]
            if not free:
                raise SeedingError(f"No free bracket slot left for seed {seed}")
            logger.debug("Seed %d collides at slot %d, using slot %d", seed, index + 1, free[0] + 1)
            index = free[0]
        result[index] = team

    _check_permutation(teams, result)
    return result


def _check_permutation(original: List[Team], result: List[Optional[Team]]) -> None:
    if len(result) != len(original) or any(team is None for team in result):
        raise SeedingError("Seeding result has empty slots")
    if sorted(map(id, result)) != sorted(map(id, original)):
        raise SeedingError("Seeding result is not a permutation of the input")


def seed_teams(teams: List[Team], method: str = 'random', ranking_type: str = HIGHER_BETTER,
               rng: Optional[random.Random] = None) -> List[Team]:
    """Order ``teams`` with the named seeding method. Always returns a new list."""
    seeders: dict = {
        'merge_sort': lambda: merge_sort(teams, ranking_type),
        'quick_sort': lambda: quick_sort(teams, ranking_type),
        'random': lambda: random_seeding(teams, rng),
        'manual': lambda: manual_seeding(teams),
    }
    seeder: Optional[Callable[[], List[Team]]] = seeders.get(method)
    if seeder is None:
        raise InvalidOptionsError(f"Unknown seeding method: {method}")
    seeded = seeder()
    logger.debug("Seeded %d teams with %s", len(seeded), method)
    return seeded
