"""Interfaces to the persistent store and its change notifications.

The store owns the four tables and the atomic ``draft_pick`` procedure;
this package only reads rows, calls the procedure and (for admin screens)
writes the room configuration. InMemoryDraftStore is a complete
single-process implementation used by tests and local tools.
"""
from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .picks import overall_from_round_pick, round_pick_from_overall
from .snapshot import DataSource
from .turn import DraftPhase, decode_pause_reason, encode_wait_block
from .types import CoachRow, DraftOrderRow, DraftStateRow, PlayerRow

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]

DRAFT_COMPLETE_REASON = "Draft complete"


class StoreError(Exception):
    """Base class for store failures."""


class FetchError(StoreError):
    """Reading a table failed; callers keep their previous data."""

    def __init__(self, room_id: str, source: DataSource, message: str):
        super().__init__(f"fetch {source.value} for room {room_id} failed: {message}")
        self.room_id = room_id
        self.source = source


class CommitTransportError(StoreError):
    """The draft_pick call did not produce a result."""


class StoreWriteError(StoreError):
    """An administrative write was rejected or failed."""


class DraftStore(Protocol):
    async def fetch_rows(self, room_id: str, source: DataSource) -> List[dict]:
        """All rows of ``source`` for the room (draft_state: zero or one row)."""
        ...

    async def commit_pick(
        self, room_id: str, player_no: int, coach_id: int, override_turn: bool
    ) -> Any:
        """Call draft_pick; returns the raw structured result."""
        ...

    async def update_room_config(self, room_id: str, changes: DraftStateRow) -> None:
        ...

    async def clear_item_outcomes(self, room_id: str) -> None:
        ...

    async def delete_selection_order(self, room_id: str) -> None:
        ...


class Subscription(Protocol):
    def close(self) -> None:
        ...


class ChangeFeed(Protocol):
    def subscribe(self, room_id: str, source: DataSource, callback: ChangeCallback) -> Subscription:
        """Call ``callback`` (no payload) whenever ``source`` changes for the room."""
        ...


@dataclass
class _RoomTables:
    state: DraftStateRow
    coaches: List[CoachRow] = field(default_factory=list)
    order: List[DraftOrderRow] = field(default_factory=list)
    players: List[PlayerRow] = field(default_factory=list)

    def rows(self, source: DataSource) -> List[dict]:
        if source is DataSource.ROOM_CONFIG:
            return [self.state]
        if source is DataSource.PARTICIPANTS:
            return sorted(self.coaches, key=lambda r: r["coach_id"])
        if source is DataSource.SELECTION_ORDER:
            return sorted(self.order, key=lambda r: r["overall_pick"])
        return list(self.players)


class _FeedSubscription:
    def __init__(self, store: "InMemoryDraftStore", key: Tuple[str, DataSource], callback: ChangeCallback):
        self._store = store
        self._key = key
        self._callback = callback
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        callbacks = self._store._subscribers.get(self._key, [])
        if self._callback in callbacks:
            callbacks.remove(self._callback)


class InMemoryDraftStore:
    """DraftStore + ChangeFeed backed by plain dicts.

    commit_pick() mirrors the remote draft_pick transaction: it re-checks
    pause state and turn, records the pick, then advances to the next
    overall pick. If the next slot has no draft_order row the room is
    paused with a WAIT_BLOCK reason covering the unconfigured rounds.
    """

    def __init__(self):
        self._rooms: Dict[str, _RoomTables] = {}
        self._subscribers: Dict[Tuple[str, DataSource], List[ChangeCallback]] = {}

    # ---- setup helpers ----

    def add_room(
        self,
        room_id: str,
        *,
        rounds_total: int,
        coaches: List[CoachRow],
        players: List[PlayerRow],
        order: Optional[List[DraftOrderRow]] = None,
        is_paused: bool = True,
    ) -> None:
        first_coach = min((c["coach_id"] for c in coaches), default=1)
        self._rooms[room_id] = _RoomTables(
            state={
                "room_id": room_id,
                "is_paused": is_paused,
                "pause_reason": None,
                "rounds_total": rounds_total,
                "current_round": 1,
                "current_pick_in_round": 1,
                "current_coach_id": first_coach,
            },
            coaches=deepcopy(coaches),
            order=deepcopy(order or []),
            players=[
                {
                    "drafted_by_coach_id": None,
                    "drafted_round": None,
                    "drafted_pick": None,
                    **p,
                }
                for p in deepcopy(players)
            ],
        )
        for source in DataSource:
            self._notify(room_id, source)

    def set_selection_order(self, room_id: str, rows: List[DraftOrderRow]) -> None:
        """Administrative draft order entry (replaces every row)."""
        self._room(room_id).order = deepcopy(rows)
        self._notify(room_id, DataSource.SELECTION_ORDER)

    def room_state(self, room_id: str) -> DraftStateRow:
        return deepcopy(self._room(room_id).state)

    def players(self, room_id: str) -> List[PlayerRow]:
        return deepcopy(self._room(room_id).players)

    def selection_order(self, room_id: str) -> List[DraftOrderRow]:
        return deepcopy(self._room(room_id).order)

    # ---- ChangeFeed ----

    def subscribe(self, room_id: str, source: DataSource, callback: ChangeCallback) -> _FeedSubscription:
        key = (room_id, source)
        self._subscribers.setdefault(key, []).append(callback)
        return _FeedSubscription(self, key, callback)

    def subscriber_count(self, room_id: str, source: DataSource) -> int:
        return len(self._subscribers.get((room_id, source), []))

    def _notify(self, room_id: str, source: DataSource) -> None:
        for callback in list(self._subscribers.get((room_id, source), [])):
            callback()

    # ---- DraftStore ----

    def _room(self, room_id: str) -> _RoomTables:
        try:
            return self._rooms[room_id]
        except KeyError:
            raise StoreWriteError(f"room {room_id} not found") from None

    async def fetch_rows(self, room_id: str, source: DataSource) -> List[dict]:
        tables = self._rooms.get(room_id)
        if tables is None:
            raise FetchError(room_id, source, "room not found")
        return deepcopy(tables.rows(source))

    async def update_room_config(self, room_id: str, changes: DraftStateRow) -> None:
        room = self._room(room_id)
        room.state = {**room.state, **changes}
        self._notify(room_id, DataSource.ROOM_CONFIG)

    async def clear_item_outcomes(self, room_id: str) -> None:
        room = self._room(room_id)
        for player in room.players:
            player["drafted_by_coach_id"] = None
            player["drafted_round"] = None
            player["drafted_pick"] = None
        self._notify(room_id, DataSource.ITEMS)

    async def delete_selection_order(self, room_id: str) -> None:
        self._room(room_id).order = []
        self._notify(room_id, DataSource.SELECTION_ORDER)

    async def commit_pick(
        self, room_id: str, player_no: int, coach_id: int, override_turn: bool
    ) -> Dict[str, Any]:
        room = self._rooms.get(room_id)
        if room is None:
            return {"ok": False, "message": "Room not found"}
        state = room.state

        phase, _ = decode_pause_reason(state["is_paused"], state.get("pause_reason"))
        if phase is not DraftPhase.LIVE and not override_turn:
            return {"ok": False, "message": "Draft is paused"}
        if state["current_coach_id"] != coach_id and not override_turn:
            return {"ok": False, "message": "Not your turn"}
        slot = (state["current_round"], state["current_pick_in_round"])
        if any((p.get("drafted_round"), p.get("drafted_pick")) == slot for p in room.players):
            return {"ok": False, "message": DRAFT_COMPLETE_REASON}

        player = next((p for p in room.players if p["player_no"] == player_no), None)
        if player is None:
            return {"ok": False, "message": "Player not found"}
        if player.get("drafted_by_coach_id") is not None:
            return {"ok": False, "message": "Player already drafted"}

        player["drafted_by_coach_id"] = coach_id
        player["drafted_round"] = state["current_round"]
        player["drafted_pick"] = state["current_pick_in_round"]
        self._advance(room)

        self._notify(room_id, DataSource.ITEMS)
        self._notify(room_id, DataSource.ROOM_CONFIG)
        return {"ok": True, "message": None}

    def _advance(self, room: _RoomTables) -> None:
        state = room.state
        coach_count = len(room.coaches) or 1
        rounds_total = state["rounds_total"]
        overall = overall_from_round_pick(
            state["current_round"], state["current_pick_in_round"], coach_count
        )
        next_overall = overall + 1
        if next_overall > rounds_total * coach_count:
            state["is_paused"] = True
            state["pause_reason"] = DRAFT_COMPLETE_REASON
            return

        round_no, pick_in_round = round_pick_from_overall(next_overall, coach_count)
        state["current_round"] = round_no
        state["current_pick_in_round"] = pick_in_round

        order = {r["overall_pick"]: r["coach_id"] for r in room.order}
        next_coach = order.get(next_overall)
        if next_coach is not None:
            state["current_coach_id"] = next_coach
            return

        # Pause until the admin enters order for this and following empty rounds
        configured_rounds = {
            round_pick_from_overall(o, coach_count)[0] for o in order
        }
        last_round = round_no
        while last_round + 1 <= rounds_total and last_round + 1 not in configured_rounds:
            last_round += 1
        state["is_paused"] = True
        state["pause_reason"] = encode_wait_block(round_no, last_round)
