import asyncio
from collections import Counter

from draft_core import (
    ALL_SOURCES,
    DataSource,
    DraftPhase,
    FetchError,
    InMemoryDraftStore,
    Settings,
    SyncController,
)

# Long poll period so only explicit signals drive refreshes unless a test opts in
QUIET = Settings(poll_interval=60)

COACHES = [{"coach_id": 1, "coach_name": "A"}, {"coach_id": 2, "coach_name": "B"}]


def _players(count=6):
    return [
        {"player_no": n, "pos": "MID", "club": "Club", "player_name": f"P{n}", "average": 50.0 + n}
        for n in range(1, count + 1)
    ]


def _order(rounds=2):
    return [{"overall_pick": n, "coach_id": 1 if n % 2 else 2} for n in range(1, rounds * 2 + 1)]


class InstrumentedStore(InMemoryDraftStore):
    """Counts fetches, can fail or corrupt them, and can hold one source behind a gate."""

    def __init__(self):
        super().__init__()
        self.fetches = Counter()
        self.failing = set()
        self.malformed = set()
        self.gates = {}
        self.patches = {}

    async def fetch_rows(self, room_id, source):
        self.fetches[(room_id, source)] += 1
        gate = self.gates.get((room_id, source))
        if gate is not None:
            await gate.wait()
        if source in self.failing:
            raise FetchError(room_id, source, "connection reset")
        if source in self.malformed:
            return [{}]
        rows = await super().fetch_rows(room_id, source)
        for index, changes in self.patches.get(source, {}).items():
            rows[index].update(changes)
        return rows


def _store():
    store = InstrumentedStore()
    store.add_room("R1", rounds_total=2, coaches=COACHES, players=_players(), order=_order(), is_paused=False)
    store.add_room("R2", rounds_total=3, coaches=COACHES + [{"coach_id": 3, "coach_name": "C"}], players=_players(2))
    return store


def test_start_loads_every_source():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")
        snapshot = sync.snapshot
        assert snapshot.room_id == "R1"
        assert snapshot.loaded == frozenset(ALL_SOURCES)
        assert snapshot.version == 4
        assert snapshot.coach_count == 2
        assert len(snapshot.items) == 6
        assert len(snapshot.selection_order) == 4
        assert sync.turn_state().is_on_clock(1)
        assert len(sync.board().slots) == 4
        await sync.stop()

    asyncio.run(run())


def test_change_signal_triggers_refetch():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")

        result = await store.commit_pick("R1", 3, 1, False)
        assert result["ok"] is True
        # snapshot only changes once the signalled refresh has run
        assert sync.snapshot.item(3).is_drafted is False

        await sync.drain()
        assert sync.snapshot.item(3).is_drafted is True
        assert sync.turn_state().coach_id == 2
        assert sync.board().slots[0].player.player_no == 3
        await sync.stop()

    asyncio.run(run())


def test_polling_converges_without_change_feed():
    async def run():
        store = _store()
        sync = SyncController(store, settings=Settings(poll_interval=0.01))
        await sync.start("R1")
        await store.commit_pick("R1", 2, 1, False)

        for _ in range(100):
            await asyncio.sleep(0.01)
            if sync.snapshot.item(2).is_drafted:
                break
        assert sync.snapshot.item(2).is_drafted is True
        assert sync.snapshot.config.current_pick_in_round == 2
        await sync.stop()

    asyncio.run(run())


def test_failed_fetch_keeps_previous_snapshot():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")
        before = sync.snapshot

        store.failing.add(DataSource.ITEMS)
        await store.commit_pick("R1", 1, 1, False)
        await sync.drain()
        assert sync.snapshot.items == before.items
        assert sync.snapshot.item(1).is_drafted is False

        store.failing.clear()
        await sync.refresh(DataSource.ITEMS)
        assert sync.snapshot.item(1).is_drafted is True
        await sync.stop()

    asyncio.run(run())


def test_malformed_room_config_keeps_previous_snapshot():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")
        version = sync.snapshot.version

        store.malformed.add(DataSource.ROOM_CONFIG)
        await sync.refresh(DataSource.ROOM_CONFIG)
        assert sync.snapshot.version == version
        assert sync.snapshot.config.room_id == "R1"
        await sync.stop()

    asyncio.run(run())


def test_malformed_player_row_is_skipped_and_others_stay_current():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")

        store.patches[DataSource.ITEMS] = {4: {"average": "n/a"}}
        await store.commit_pick("R1", 1, 1, False)
        await sync.drain()
        assert sync.snapshot.item(5) is None
        assert sync.snapshot.item(1).is_drafted is True
        assert len(sync.snapshot.items) == 5
        assert sync.board().slots[0].player.player_no == 1
        await sync.stop()

    asyncio.run(run())


def test_round_past_total_still_tracks_pause_flag():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")

        await store.update_room_config("R1", {"current_round": 2})
        await store.update_room_config("R1", {"rounds_total": 1})
        await store.update_room_config("R1", {"is_paused": True, "pause_reason": "Paused"})
        await sync.drain()
        await sync.refresh(DataSource.ROOM_CONFIG)

        turn = sync.turn_state()
        assert turn.phase is DraftPhase.PAUSED_MANUAL
        assert turn.is_past_final_round
        board = sync.board()
        assert len(board.slots) == 2
        assert board.current_slot is None
        await sync.stop()

    asyncio.run(run())


def test_overlapping_refreshes_are_coalesced():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")
        key = ("R1", DataSource.ITEMS)
        assert store.fetches[key] == 1

        gate = asyncio.Event()
        store.gates[key] = gate
        first = asyncio.create_task(sync.refresh(DataSource.ITEMS))
        for _ in range(3):
            await asyncio.sleep(0)
        assert store.fetches[key] == 2  # first refresh is mid-fetch

        others = [asyncio.create_task(sync.refresh(DataSource.ITEMS)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        await asyncio.gather(first, *others)
        # one follow-up fetch covers every call made during the first
        assert store.fetches[key] == 3
        await sync.stop()

    asyncio.run(run())


def test_switch_room_moves_subscriptions_and_resets_snapshot():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")
        first_generation = sync.generation
        for source in ALL_SOURCES:
            assert store.subscriber_count("R1", source) == 1

        await sync.switch_room("R2")
        assert sync.generation == first_generation + 1
        for source in ALL_SOURCES:
            assert store.subscriber_count("R1", source) == 0
            assert store.subscriber_count("R2", source) == 1
        assert sync.snapshot.room_id == "R2"
        assert sync.snapshot.coach_count == 3
        assert len(sync.snapshot.items) == 2

        # signals for the old room no longer reach the controller
        await store.commit_pick("R1", 4, 1, False)
        await sync.drain()
        assert store.fetches[("R1", DataSource.ITEMS)] == 1

        await sync.stop()
        for source in ALL_SOURCES:
            assert store.subscriber_count("R2", source) == 0

    asyncio.run(run())


def test_switch_room_cancels_pending_fetch():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")

        store.gates[("R1", DataSource.ITEMS)] = asyncio.Event()
        pending = asyncio.create_task(sync.refresh(DataSource.ITEMS))
        for _ in range(3):
            await asyncio.sleep(0)

        await sync.switch_room("R2")
        # the waiting caller is not cancelled along with the fetch
        assert await pending is None
        assert not pending.cancelled()
        assert sync.snapshot.room_id == "R2"
        assert all(not item.is_drafted for item in sync.snapshot.items)
        await sync.stop()

    asyncio.run(run())


def test_listeners_receive_each_new_snapshot():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        seen = []

        def broken(_snapshot):
            raise RuntimeError("display crashed")

        sync.add_listener(broken)
        remove = sync.add_listener(seen.append)
        await sync.start("R1")
        assert [s.version for s in seen] == [1, 2, 3, 4]

        remove()
        await sync.refresh(DataSource.ITEMS)
        assert len(seen) == 4
        assert sync.snapshot.version == 5
        await sync.stop()

    asyncio.run(run())


def test_overlapping_room_switches_settle_on_last_room():
    async def run():
        store = _store()
        sync = SyncController(store, store, settings=QUIET)
        await sync.start("R1")

        store.gates[("R2", DataSource.ITEMS)] = asyncio.Event()
        first = asyncio.create_task(sync.switch_room("R2"))
        for _ in range(5):
            await asyncio.sleep(0)

        await sync.switch_room("R1")
        assert await first is None
        assert sync.snapshot.room_id == "R1"
        assert sync.snapshot.loaded == frozenset(ALL_SOURCES)
        for source in ALL_SOURCES:
            assert store.subscriber_count("R1", source) == 1
            assert store.subscriber_count("R2", source) == 0
        await sync.stop()

    asyncio.run(run())
