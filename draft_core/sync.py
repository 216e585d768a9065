"""Keeps a RoomSnapshot in step with the store.

Two independent triggers feed one idempotent operation, refresh(source):
- change notifications from a ChangeFeed (one subscription per table)
- a fixed-interval poll of every source, as a backstop for missed signals

Each refresh re-fetches the whole source for the room and swaps it into a
new snapshot. Overlapping refreshes of one source are coalesced: a signal
arriving mid-fetch schedules exactly one more fetch after the current one.
A failed fetch is logged and leaves the previous snapshot in place; the
next signal or poll retries.

Switching rooms closes every subscription, cancels the poll timer and any
pending fetch, and bumps ``generation``; results that belong to an older
generation are dropped, never applied to the new room.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError

from .board import BoardView, board_from_snapshot
from .config import Settings
from .snapshot import ALL_SOURCES, DataSource, RoomSnapshot
from .store import ChangeFeed, DraftStore, FetchError, Subscription
from .turn import TurnState
from .validation import Item, Participant, RoomConfig, SelectionOrderEntry, parse_rows

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[RoomSnapshot], None]

_ROW_MODELS = {
    DataSource.PARTICIPANTS: Participant,
    DataSource.SELECTION_ORDER: SelectionOrderEntry,
    DataSource.ITEMS: Item,
}


def parse_source(room_id: str, source: DataSource, rows: List[dict]):
    """Validate fetched rows into the value stored on the snapshot.

    Raises:
        FetchError: draft_state returned no row
        pydantic.ValidationError: the draft_state row is malformed

    Malformed coach, order and player rows are skipped (see parse_rows).
    """
    if source is DataSource.ROOM_CONFIG:
        if not rows:
            raise FetchError(room_id, source, "no draft_state row")
        return RoomConfig.model_validate(rows[0])
    return parse_rows(_ROW_MODELS[source], rows, source.value)


class SyncController:
    def __init__(
        self,
        store: DraftStore,
        feed: Optional[ChangeFeed] = None,
        *,
        settings: Optional[Settings] = None,
        sources: Iterable[DataSource] = ALL_SOURCES,
    ):
        self._store = store
        self._feed = feed
        self._settings = settings or Settings()
        self._sources: Tuple[DataSource, ...] = tuple(sources)

        self._room_id: Optional[str] = None
        self._generation = 0
        self._snapshot: Optional[RoomSnapshot] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._subscriptions: List[Subscription] = []
        self._poll_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._inflight: Dict[Tuple[int, DataSource], asyncio.Task] = {}
        self._dirty: Set[Tuple[int, DataSource]] = set()
        self._listeners: List[SnapshotListener] = []

    # ---- read side ----

    @property
    def room_id(self) -> Optional[str]:
        return self._room_id

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def snapshot(self) -> Optional[RoomSnapshot]:
        return self._snapshot

    def turn_state(self) -> Optional[TurnState]:
        if self._snapshot is None:
            return None
        return self._snapshot.turn_state(self._settings.fallback_participant_count)

    def board(self) -> Optional[BoardView]:
        if self._snapshot is None:
            return None
        return board_from_snapshot(
            self._snapshot,
            default_rounds_total=self._settings.default_rounds_total,
            fallback_coach_count=self._settings.fallback_participant_count,
        )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot; returns an unsubscribe function."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ---- lifecycle ----

    async def start(self, room_id: str) -> None:
        await self.switch_room(room_id)

    async def switch_room(self, room_id: str) -> None:
        """Tear down the current room and load ``room_id``."""
        previous = self._room_id
        self._generation += 1
        self._room_id = room_id
        self._snapshot = RoomSnapshot(room_id=room_id)
        self._loop = asyncio.get_running_loop()
        generation = self._generation
        await self._teardown(previous)
        if generation != self._generation:
            return
        logger.info(f"Syncing room {room_id} (generation {generation})")

        if self._feed is not None:
            for source in self._sources:
                self._subscriptions.append(
                    self._feed.subscribe(room_id, source, self._signal_handler(generation, source))
                )

        await self.refresh_all()
        if generation == self._generation:
            self._poll_task = self._loop.create_task(self._poll_loop(generation))

    async def stop(self) -> None:
        previous = self._room_id
        self._generation += 1
        self._room_id = None
        await self._teardown(previous)

    async def _teardown(self, room_id: Optional[str]) -> None:
        """Close subscriptions and cancel work of every older generation."""
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()

        tasks = list(self._tasks)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
            self._poll_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Sync task for room {room_id} failed: {result!r}")
        current = self._generation
        self._inflight = {k: t for k, t in self._inflight.items() if k[0] == current}
        self._dirty = {k for k in self._dirty if k[0] == current}

    # ---- triggers ----

    def _signal_handler(self, generation: int, source: DataSource) -> Callable[[], None]:
        def on_change() -> None:
            loop = self._loop
            if loop is None or loop.is_closed():
                return
            loop.call_soon_threadsafe(self._spawn_refresh, generation, source)

        return on_change

    def _spawn_refresh(self, generation: int, source: DataSource) -> None:
        if generation != self._generation:
            return
        self._track(asyncio.get_running_loop().create_task(self.refresh(source)))

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _poll_loop(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self._settings.poll_interval)
            try:
                await self.refresh_all()
            except Exception:
                logger.exception(f"Poll cycle for room {self._room_id} failed")

    async def drain(self) -> None:
        """Wait for every refresh scheduled so far (signals included) to finish."""
        await asyncio.sleep(0)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)

    # ---- refresh ----

    async def refresh_all(self) -> None:
        await asyncio.gather(*(self.refresh(source) for source in self._sources))

    async def refresh(self, source: DataSource) -> None:
        """Re-fetch ``source`` for the current room and swap it into the snapshot.

        Returns once a fetch that started after this call has completed
        (or failed), so callers can rely on seeing writes made before it.
        Returns early, without raising, if a room switch cancels the fetch.
        """
        room_id, generation = self._room_id, self._generation
        if room_id is None:
            return
        key = (generation, source)
        self._dirty.add(key)
        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(
                self._refresh_loop(room_id, generation, source)
            )
            self._inflight[key] = task
            self._track(task)
            task.add_done_callback(lambda t, key=key: self._release(key, t))
        await asyncio.wait({task})
        if task.cancelled():
            # Fetch was cancelled by a room switch; the caller itself was not
            return
        task.result()

    def _release(self, key: Tuple[int, DataSource], task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _refresh_loop(self, room_id: str, generation: int, source: DataSource) -> None:
        key = (generation, source)
        while key in self._dirty and generation == self._generation:
            self._dirty.discard(key)
            await self._fetch_once(room_id, generation, source)

    async def _fetch_once(self, room_id: str, generation: int, source: DataSource) -> None:
        try:
            rows = await self._store.fetch_rows(room_id, source)
            value = parse_source(room_id, source, rows)
        except (FetchError, ValidationError) as e:
            logger.warning(
                f"Refresh of {source.value} for room {room_id} failed, keeping previous data: {e}"
            )
            return

        if generation != self._generation or self._snapshot is None:
            logger.debug(f"Dropping {source.value} rows for room {room_id}: room switched")
            return

        self._snapshot = self._snapshot.with_source(source, value)
        snapshot = self._snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Snapshot listener failed for room {room_id}")
