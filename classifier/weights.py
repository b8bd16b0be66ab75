"""
Fixed-point percentage helpers.

Weights are integers in basis points: 10000 == 100.00%. Provider values are
percentages (55.2 means 55.2%), so they are multiplied by 100 on the way in.
"""

import math
from typing import Sequence

FULL_WEIGHT = 10_000


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def percent_to_basis_points(percent: float) -> int:
    return round_half_up(percent * 100)


def scale_weight(parent_weight: int, child_weight: int) -> int:
    """Child fraction of the parent fraction, both in basis points."""
    return round_half_up(parent_weight * child_weight / FULL_WEIGHT)


def path_equals(path1: Sequence[str], path2: Sequence[str]) -> bool:
    if len(path1) != len(path2):
        return False
    return all(a == b for a, b in zip(path1, path2))


def format_weight(weight: float) -> str:
    return f"{weight / 100:g}%"


def format_path(path: Sequence[str]) -> str:
    return " > ".join(path)
