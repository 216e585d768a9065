"""Draft board reconciliation.

Merges the room configuration, coaches, draft order and players into one
ordered list of pick slots, 1..rounds_total × coach_count. The board is a
pure projection: same inputs, same output, no memory of previous calls.
It tolerates the four inputs being mutually stale (rows that do not fit
the current roster are skipped rather than raised).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .picks import overall_from_round_pick, round_pick_from_overall, total_picks
from .snapshot import RoomSnapshot
from .validation import Item, Participant, RoomConfig, SelectionOrderEntry

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS_TOTAL = 46
FALLBACK_COACH_COUNT = 2


@dataclass(frozen=True)
class PickSlot:
    overall: int
    round_no: int
    pick_in_round: int
    coach_id: Optional[int]
    coach_name: str
    player: Optional[Item]
    is_current: bool = False

    @property
    def is_open(self) -> bool:
        return self.player is None


@dataclass(frozen=True)
class BoardView:
    slots: Tuple[PickSlot, ...]
    coach_count: int
    rounds_total: int
    # Overall pick on the clock, for highlighting and scroll-into-view
    current_overall: Optional[int]

    @property
    def current_slot(self) -> Optional[PickSlot]:
        if self.current_overall is None or not 1 <= self.current_overall <= len(self.slots):
            return None
        return self.slots[self.current_overall - 1]

    def slots_for_round(self, round_no: int) -> Tuple[PickSlot, ...]:
        return tuple(s for s in self.slots if s.round_no == round_no)


def coach_label(coach_id: Optional[int], names: Dict[int, str]) -> str:
    """Display name for a coach id, "Coach <id>" when the name is unknown."""
    if coach_id is None:
        return ""
    return names.get(coach_id) or f"Coach {coach_id}"


def _drafted_by_overall(items: Iterable[Item], coach_count: int) -> Dict[int, Item]:
    """Map overall pick → drafted player.

    If two players claim the same slot (stale roster), the lower player_no
    wins so the result does not depend on row order.
    """
    by_overall: Dict[int, Item] = {}
    for item in items:
        if not item.is_drafted:
            continue
        try:
            overall = overall_from_round_pick(item.drafted_round, item.drafted_pick, coach_count)
        except ValueError as e:
            logger.debug(f"Skipping player {item.player_no} on board: {e}")
            continue
        existing = by_overall.get(overall)
        if existing is None or item.player_no < existing.player_no:
            by_overall[overall] = item
    return by_overall


def build_board(
    config: Optional[RoomConfig],
    participants: Sequence[Participant],
    selection_order: Sequence[SelectionOrderEntry],
    items: Sequence[Item],
    *,
    default_rounds_total: int = DEFAULT_ROUNDS_TOTAL,
    fallback_coach_count: int = FALLBACK_COACH_COUNT,
) -> BoardView:
    """Build the full draft board from the four sources.

    Args:
        config: Room configuration, or None before it has loaded
        participants: Coaches of the room
        selection_order: draft_order rows (may be sparse or empty)
        items: All players of the room
        default_rounds_total: Rounds shown while config is None
        fallback_coach_count: Coach count used while no coaches are loaded

    Returns:
        BoardView with exactly rounds_total × coach_count slots
    """
    coach_count = len(participants) or fallback_coach_count
    rounds_total = config.rounds_total if config is not None else default_rounds_total

    names = {p.coach_id: p.coach_name for p in participants}
    order = {r.overall_pick: r.coach_id for r in selection_order}
    drafted = _drafted_by_overall(items, coach_count)

    current_overall: Optional[int] = None
    if config is not None:
        try:
            current_overall = overall_from_round_pick(
                config.current_round, config.current_pick_in_round, coach_count
            )
        except ValueError:
            current_overall = None

    slots = []
    for overall in range(1, total_picks(rounds_total, coach_count) + 1):
        round_no, pick_in_round = round_pick_from_overall(overall, coach_count)
        coach_id = order.get(overall)
        slots.append(
            PickSlot(
                overall=overall,
                round_no=round_no,
                pick_in_round=pick_in_round,
                coach_id=coach_id,
                coach_name=coach_label(coach_id, names),
                player=drafted.get(overall),
                is_current=overall == current_overall,
            )
        )

    return BoardView(
        slots=tuple(slots),
        coach_count=coach_count,
        rounds_total=rounds_total,
        current_overall=current_overall,
    )


def board_from_snapshot(snapshot: RoomSnapshot, **kwargs) -> BoardView:
    return build_board(
        snapshot.config,
        snapshot.participants,
        snapshot.selection_order,
        snapshot.items,
        **kwargs,
    )
