"""Read-only projections for the draft, board and admin screens."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence

from .board import coach_label
from .positions import matches_tab
from .snapshot import RoomSnapshot
from .turn import pause_reason_label
from .validation import Item, Participant, SelectionOrderEntry

SortKey = Literal["player_no", "player_name", "club", "average"]

ORDER_SUMMARY_LIMIT = 10


def _live_label(snapshot: RoomSnapshot) -> str:
    return "PAUSED" if snapshot.config.is_paused else "LIVE"


def board_status_line(snapshot: RoomSnapshot, fallback_coach_count: int = 2) -> str:
    """One-line header of the big board."""
    config = snapshot.config
    if config is None:
        return f"Room {snapshot.room_id} • Loading…"
    coach_count = snapshot.coach_count or fallback_coach_count
    on_clock = coach_label(config.current_coach_id, snapshot.coach_names)
    return (
        f"Room {snapshot.room_id} • Round {config.current_round}/{config.rounds_total} • "
        f"Pick {config.current_pick_in_round}/{coach_count} • On the clock: {on_clock} • "
        f"{_live_label(snapshot)}"
    )


def draft_top_bar(snapshot: RoomSnapshot) -> str:
    """Header of a coach's draft screen (and the admin screen)."""
    config = snapshot.config
    if config is None:
        return f"Room {snapshot.room_id} • Loading…"
    return (
        f"Room {snapshot.room_id} • Round {config.current_round}/{config.rounds_total} • "
        f"Pick {config.current_pick_in_round} • {_live_label(snapshot)}"
    )


def turn_banner(snapshot: RoomSnapshot, coach_id: int) -> str:
    """Status line under a coach's top bar."""
    config = snapshot.config
    if config is None:
        return "Loading…"
    if config.is_paused:
        return pause_reason_label(config.pause_reason) or "Waiting (Admin hasn't started the draft yet)…"
    if config.current_coach_id == coach_id:
        return "You are ON THE CLOCK"
    return "Waiting for your turn…"


def available_players(
    items: Sequence[Item],
    tab: str = "ALL",
    sort_key: SortKey = "player_no",
    descending: bool = False,
) -> List[Item]:
    """Undrafted players on ``tab``, sorted by ``sort_key``.

    Text keys sort case-insensitively; ties fall back to player_no.
    """
    available = [i for i in items if not i.is_drafted and matches_tab(i, tab)]
    available.sort(key=lambda i: i.player_no)
    if sort_key == "player_no":
        available.sort(key=lambda i: i.player_no, reverse=descending)
    elif sort_key == "average":
        available.sort(key=lambda i: i.average, reverse=descending)
    elif sort_key in ("player_name", "club"):
        available.sort(key=lambda i: getattr(i, sort_key).casefold(), reverse=descending)
    else:
        raise ValueError(f"unknown sort key {sort_key!r}")
    return available


@dataclass(frozen=True)
class SheetRow:
    slot_no: int
    player: Optional[Item]

    @property
    def position(self) -> str:
        return self.player.pos if self.player is not None else ""

    @property
    def pick_label(self) -> str:
        if self.player is None or not self.player.is_drafted:
            return ""
        return f"{self.player.drafted_round}.{self.player.drafted_pick}"


def my_draft_sheet(items: Sequence[Item], coach_id: int, rounds_total: int) -> List[SheetRow]:
    """One row per round; row k holds the coach's k-th pick in draft order."""
    picks = sorted(
        (i for i in items if i.is_drafted and i.drafted_by_coach_id == coach_id),
        key=lambda i: (i.drafted_round, i.drafted_pick),
    )
    return [
        SheetRow(slot_no=n, player=picks[n - 1] if n <= len(picks) else None)
        for n in range(1, rounds_total + 1)
    ]


def order_summary(
    selection_order: Sequence[SelectionOrderEntry],
    participants: Sequence[Participant],
) -> str:
    if not selection_order:
        return "No draft order set yet."
    names = {p.coach_id: p.coach_name for p in participants}
    rows = sorted(selection_order, key=lambda r: r.overall_pick)
    first = ", ".join(coach_label(r.coach_id, names) for r in rows[:ORDER_SUMMARY_LIMIT])
    more = "…" if len(rows) > ORDER_SUMMARY_LIMIT else ""
    return f"Order loaded • First picks: {first}{more}"
