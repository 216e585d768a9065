"""Overall pick numbering.

The one place where (round, pick-in-round) and the 1-based overall pick
number are converted into each other. Every slot is numbered in plain
linear order; who picks at each slot comes from the draft order table, so
snake drafts need no special handling here.
"""
from __future__ import annotations

from typing import Tuple


def overall_from_round_pick(round_no: int, pick_in_round: int, coach_count: int) -> int:
    """Map (round, pick-in-round) to the overall pick number.

    Examples (coach_count=8):
        - (1, 1) → 1
        - (1, 8) → 8
        - (2, 1) → 9

    Raises:
        ValueError: coach_count < 1, round_no < 1, or pick_in_round outside 1..coach_count
    """
    if coach_count < 1:
        raise ValueError(f"coach_count must be >= 1, got {coach_count}")
    if round_no < 1:
        raise ValueError(f"round must be >= 1, got {round_no}")
    if not 1 <= pick_in_round <= coach_count:
        raise ValueError(f"pick_in_round must be 1..{coach_count}, got {pick_in_round}")
    return (round_no - 1) * coach_count + pick_in_round


def round_pick_from_overall(overall: int, coach_count: int) -> Tuple[int, int]:
    """Inverse of overall_from_round_pick: overall pick → (round, pick-in-round)."""
    if coach_count < 1:
        raise ValueError(f"coach_count must be >= 1, got {coach_count}")
    if overall < 1:
        raise ValueError(f"overall pick must be >= 1, got {overall}")
    round_no = (overall - 1) // coach_count + 1
    pick_in_round = (overall - 1) % coach_count + 1
    return round_no, pick_in_round


def total_picks(rounds_total: int, coach_count: int) -> int:
    return max(rounds_total, 0) * max(coach_count, 0)
