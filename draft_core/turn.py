"""Draft turn state machine (pure, no I/O).

This module decides whose turn it is and whether a pick attempt is legal,
from the room's ``draft_state`` row alone.

Architecture:
- The stored row encodes state as ``is_paused`` plus a free-form
  ``pause_reason``; decode_pause_reason() turns that into a DraftPhase
- derive_turn_state() projects a RoomConfig into an immutable TurnState
- next_phase() is the closed transition table for admin actions
- check_selection() is the local pre-check run before the remote pick call;
  the remote draft_pick transaction re-validates independently

Phases:
- LIVE: picks accepted
- PAUSED_MANUAL: administrator pause (or fresh/reset room)
- PAUSED_WAITING: the draft reached a slot with no draft_order row; the
  remote pick transaction sets pause_reason "WAIT_BLOCK_<range>"
- RESET: transient, while an administrator reset is being written

The engine never enters PAUSED_WAITING on its own; it only surfaces what
the remote transaction recorded.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .picks import overall_from_round_pick
from .types import DraftStateRow
from .validation import WAIT_BLOCK_PREFIX, Item, Participant, RoomConfig

MANUAL_PAUSE_REASON = "Paused"


class DraftPhase(str, enum.Enum):
    LIVE = "LIVE"
    PAUSED_MANUAL = "PAUSED_MANUAL"
    PAUSED_WAITING = "PAUSED_WAITING"
    RESET = "RESET"

    @property
    def is_paused(self) -> bool:
        return self is not DraftPhase.LIVE


class DraftAction(str, enum.Enum):
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    RESET = "RESET"
    RESET_COMPLETE = "RESET_COMPLETE"


class InvalidTransition(ValueError):
    """Raised when an action is not allowed from the current phase."""

    def __init__(self, phase: DraftPhase, action: DraftAction):
        super().__init__(f"cannot {action.value} while {phase.value}")
        self.phase = phase
        self.action = action


_TRANSITIONS: Dict[Tuple[DraftPhase, DraftAction], DraftPhase] = {
    (DraftPhase.LIVE, DraftAction.PAUSE): DraftPhase.PAUSED_MANUAL,
    (DraftPhase.PAUSED_MANUAL, DraftAction.PAUSE): DraftPhase.PAUSED_MANUAL,
    (DraftPhase.PAUSED_WAITING, DraftAction.PAUSE): DraftPhase.PAUSED_MANUAL,
    (DraftPhase.PAUSED_MANUAL, DraftAction.RESUME): DraftPhase.LIVE,
    # Admin resumes once the missing block of draft order has been entered
    (DraftPhase.PAUSED_WAITING, DraftAction.RESUME): DraftPhase.LIVE,
    (DraftPhase.LIVE, DraftAction.RESET): DraftPhase.RESET,
    (DraftPhase.PAUSED_MANUAL, DraftAction.RESET): DraftPhase.RESET,
    (DraftPhase.PAUSED_WAITING, DraftAction.RESET): DraftPhase.RESET,
    (DraftPhase.RESET, DraftAction.RESET_COMPLETE): DraftPhase.PAUSED_MANUAL,
}


def next_phase(phase: DraftPhase, action: DraftAction) -> DraftPhase:
    """Apply an admin action to a phase.

    Raises:
        InvalidTransition: If the action is not defined for this phase
    """
    try:
        return _TRANSITIONS[(phase, action)]
    except KeyError:
        raise InvalidTransition(phase, action) from None


def decode_pause_reason(is_paused: bool, pause_reason: Optional[str]) -> Tuple[DraftPhase, Optional[str]]:
    """Decode the stored (is_paused, pause_reason) pair.

    Returns:
        (phase, wait_block) where wait_block is the round range of a
        WAIT_BLOCK reason (e.g. "3-4") and None otherwise

    Examples:
        - (False, "Paused") → (LIVE, None)
        - (True, None) → (PAUSED_MANUAL, None)
        - (True, "WAIT_BLOCK_3-4") → (PAUSED_WAITING, "3-4")
    """
    if not is_paused:
        return DraftPhase.LIVE, None
    reason = (pause_reason or "").strip()
    if reason.startswith(WAIT_BLOCK_PREFIX):
        return DraftPhase.PAUSED_WAITING, reason[len(WAIT_BLOCK_PREFIX):]
    return DraftPhase.PAUSED_MANUAL, None


def encode_wait_block(first_round: int, last_round: int) -> str:
    """pause_reason value for a missing draft order block."""
    if first_round == last_round:
        return f"{WAIT_BLOCK_PREFIX}{first_round}"
    return f"{WAIT_BLOCK_PREFIX}{first_round}-{last_round}"


def pause_reason_label(pause_reason: Optional[str]) -> Optional[str]:
    """Human readable pause reason; None when there is nothing to show."""
    if not pause_reason:
        return None
    if pause_reason.startswith(WAIT_BLOCK_PREFIX):
        block = pause_reason[len(WAIT_BLOCK_PREFIX):]
        return f"Waiting for Admin to set draft order for rounds {block}…"
    return MANUAL_PAUSE_REASON


@dataclass(frozen=True)
class TurnState:
    phase: DraftPhase
    round_no: int
    pick_in_round: int
    rounds_total: int
    coach_id: int
    # Overall pick of the slot on the clock; None if it cannot be mapped
    overall: Optional[int] = None
    wait_block: Optional[str] = None
    pause_reason: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.phase is DraftPhase.LIVE

    @property
    def is_past_final_round(self) -> bool:
        # rounds_total was lowered below the current round; no slot is on the clock
        return self.round_no > self.rounds_total

    def is_on_clock(self, coach_id: int) -> bool:
        return self.is_live and self.coach_id == coach_id


def derive_turn_state(config: RoomConfig, coach_count: int) -> TurnState:
    """Project a room configuration into its TurnState."""
    phase, wait_block = decode_pause_reason(config.is_paused, config.pause_reason)
    try:
        overall = overall_from_round_pick(
            config.current_round, config.current_pick_in_round, coach_count
        )
    except ValueError:
        # Roster and state briefly disagree (e.g. coaches not loaded yet)
        overall = None
    return TurnState(
        phase=phase,
        round_no=config.current_round,
        pick_in_round=config.current_pick_in_round,
        rounds_total=config.rounds_total,
        coach_id=config.current_coach_id,
        overall=overall,
        wait_block=wait_block,
        pause_reason=config.pause_reason,
    )


@dataclass
class SelectionRejected:
    """Represents a local pick-legality failure (pure core)."""

    kind: str
    message: str


def check_selection(
    turn: Optional[TurnState],
    coach_id: int,
    item: Optional[Item],
) -> SelectionRejected | None:
    """Local legality check for a pick attempt.

    A pick is allowed only when the draft is LIVE, ``coach_id`` is on the
    clock and the player is still available. Passing this check does not
    guarantee the remote pick succeeds (another coach may get there first).

    Returns:
        SelectionRejected if the attempt must not be sent, otherwise None

    Rejection kinds:
        not_loaded → no draft state yet
        waiting → PAUSED_WAITING (missing draft order)
        paused → PAUSED_MANUAL or RESET
        not_your_turn → coach_id is not on the clock
        unknown_item → player not in the room's player list
        already_drafted → player already has a draft outcome
    """
    if turn is None:
        return SelectionRejected(kind="not_loaded", message="Draft state not loaded yet.")

    if turn.phase is DraftPhase.PAUSED_WAITING:
        return SelectionRejected(
            kind="waiting",
            message=pause_reason_label(turn.pause_reason) or "Draft is paused.",
        )
    if turn.phase is not DraftPhase.LIVE:
        return SelectionRejected(
            kind="paused",
            message=pause_reason_label(turn.pause_reason) or "Draft is paused.",
        )

    if turn.coach_id != coach_id:
        return SelectionRejected(kind="not_your_turn", message="Not your turn.")

    if item is None:
        return SelectionRejected(kind="unknown_item", message="Player not found.")
    if item.is_drafted:
        return SelectionRejected(kind="already_drafted", message="Player already drafted.")

    return None


def first_coach_id(participants: Iterable[Participant]) -> int:
    """Lowest coach id, or 1 when the roster is empty."""
    ids = [p.coach_id for p in participants]
    return min(ids) if ids else 1


def plan_reset(participants: Iterable[Participant]) -> DraftStateRow:
    """draft_state changes written by a draft reset.

    The room comes back paused (no reason) at round 1, pick 1 with the
    lowest coach id on the clock, which decodes to PAUSED_MANUAL.
    """
    return {
        "is_paused": True,
        "pause_reason": None,
        "current_round": 1,
        "current_pick_in_round": 1,
        "current_coach_id": first_coach_id(participants),
    }


def pause_changes(paused: bool) -> DraftStateRow:
    """draft_state changes written by an admin pause/resume."""
    return {
        "is_paused": paused,
        "pause_reason": MANUAL_PAUSE_REASON if paused else None,
    }
