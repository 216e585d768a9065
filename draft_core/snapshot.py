"""Room-scoped, versioned snapshot of the four draft tables.

A RoomSnapshot is never mutated: every refresh of one source produces a
new snapshot with that source replaced wholesale and ``version`` bumped.
Readers therefore always work on one consistent copy per source, even
though the four sources may be up to one poll interval apart.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Dict, FrozenSet, Optional, Tuple

from .turn import TurnState, derive_turn_state
from .validation import Item, Participant, RoomConfig, SelectionOrderEntry


class DataSource(str, enum.Enum):
    """The four per-room sources, valued by their table name."""

    ROOM_CONFIG = "draft_state"
    PARTICIPANTS = "coaches"
    SELECTION_ORDER = "draft_order"
    ITEMS = "players"


ALL_SOURCES: Tuple[DataSource, ...] = (
    DataSource.ROOM_CONFIG,
    DataSource.PARTICIPANTS,
    DataSource.SELECTION_ORDER,
    DataSource.ITEMS,
)


@dataclass(frozen=True)
class RoomSnapshot:
    room_id: str
    config: Optional[RoomConfig] = None
    participants: Tuple[Participant, ...] = ()
    selection_order: Tuple[SelectionOrderEntry, ...] = ()
    items: Tuple[Item, ...] = ()
    version: int = 0
    loaded: FrozenSet[DataSource] = field(default_factory=frozenset)

    def with_source(self, source: DataSource, value) -> "RoomSnapshot":
        """Return a new snapshot with ``source`` replaced by ``value``."""
        if source is DataSource.ROOM_CONFIG:
            changes = {"config": value}
        elif source is DataSource.PARTICIPANTS:
            changes = {"participants": tuple(sorted(value, key=lambda p: p.coach_id))}
        elif source is DataSource.SELECTION_ORDER:
            changes = {"selection_order": tuple(sorted(value, key=lambda r: r.overall_pick))}
        else:
            changes = {"items": tuple(sorted(value, key=lambda i: i.player_no))}
        return replace(
            self,
            version=self.version + 1,
            loaded=self.loaded | {source},
            **changes,
        )

    def is_loaded(self, source: DataSource) -> bool:
        return source in self.loaded

    @property
    def coach_count(self) -> int:
        return len(self.participants)

    @cached_property
    def coach_names(self) -> Dict[int, str]:
        return {p.coach_id: p.coach_name for p in self.participants}

    @cached_property
    def order_by_overall(self) -> Dict[int, int]:
        return {r.overall_pick: r.coach_id for r in self.selection_order}

    @cached_property
    def items_by_no(self) -> Dict[int, Item]:
        return {i.player_no: i for i in self.items}

    def item(self, player_no: int) -> Optional[Item]:
        return self.items_by_no.get(player_no)

    def turn_state(self, fallback_coach_count: int = 2) -> Optional[TurnState]:
        """TurnState of the loaded room configuration (None before first load)."""
        if self.config is None:
            return None
        return derive_turn_state(self.config, self.coach_count or fallback_coach_count)
