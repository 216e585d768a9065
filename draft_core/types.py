"""Type definitions for draft table rows and the remote pick call."""
from __future__ import annotations

from typing import Optional, TypedDict


class DraftStateRow(TypedDict, total=False):
    """
    TypedDict for one row of the ``draft_state`` table.

    Exactly one row exists per room. Written only by the remote pick
    transaction and by administrative pause/resume/reset.
    """
    room_id: str
    is_paused: bool
    # None, "Paused", or "WAIT_BLOCK_<range>" (e.g. "WAIT_BLOCK_3-4")
    pause_reason: Optional[str]
    rounds_total: int
    current_round: int
    current_pick_in_round: int
    current_coach_id: int


class CoachRow(TypedDict, total=False):
    """A participant entry in the ``coaches`` table."""
    coach_id: int
    coach_name: str


class DraftOrderRow(TypedDict, total=False):
    """Who picks at a given overall pick number (``draft_order`` table)."""
    overall_pick: int
    coach_id: int


class PlayerRow(TypedDict, total=False):
    """
    TypedDict for one row of the ``players`` table.

    The three ``drafted_*`` fields are set together by the remote pick
    transaction, or are all None while the player is available.
    """
    player_no: int
    pos: str  # "/"-delimited, e.g. "MID/FWD"
    club: str
    player_name: str
    average: float
    drafted_by_coach_id: Optional[int]
    drafted_round: Optional[int]
    drafted_pick: Optional[int]


class DraftPickParams(TypedDict):
    """Arguments of the ``draft_pick`` remote procedure."""
    p_room_id: str
    p_player_no: int
    p_coach_id: int
    p_override_turn: bool

