import asyncio
import json

import httpx
import pytest

from draft_core import (
    CommitTransportError,
    DataSource,
    FetchError,
    RestDraftStore,
    SelectionSubmitter,
    Settings,
    StoreWriteError,
    SyncController,
)

TABLES = {
    "draft_state": [
        {
            "room_id": "R1",
            "is_paused": False,
            "pause_reason": None,
            "rounds_total": 2,
            "current_round": 1,
            "current_pick_in_round": 1,
            "current_coach_id": 1,
        }
    ],
    "coaches": [{"coach_id": 1, "coach_name": "A"}, {"coach_id": 2, "coach_name": "B"}],
    "draft_order": [{"overall_pick": 1, "coach_id": 1}],
    "players": [
        {
            "player_no": 7,
            "pos": "MID/FWD",
            "club": "Club",
            "player_name": "Seven",
            "average": 77.5,
            "drafted_by_coach_id": None,
            "drafted_round": None,
            "drafted_pick": None,
        }
    ],
}


def _client(handler):
    return httpx.AsyncClient(base_url="https://db.example", transport=httpx.MockTransport(handler))


def _table_handler(seen):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        table = request.url.path.rsplit("/", 1)[-1]
        if request.url.path.startswith("/rest/v1/rpc/"):
            return httpx.Response(200, json=[{"ok": False, "message": "not your turn"}])
        return httpx.Response(200, json=TABLES[table])

    return handler


def test_fetch_rows_filters_by_room():
    async def run():
        seen = []
        store = RestDraftStore("", client=_client(_table_handler(seen)))
        rows = await store.fetch_rows("R1", DataSource.PARTICIPANTS)
        assert rows == TABLES["coaches"]
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/coaches"
        assert request.url.params["room_id"] == "eq.R1"
        assert request.url.params["select"] == "coach_id,coach_name"
        assert request.url.params["order"] == "coach_id"

    asyncio.run(run())


def test_fetch_errors_are_wrapped():
    def failing(request):
        return httpx.Response(500, json={"message": "db down"})

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        with pytest.raises(FetchError, match="db down"):
            await RestDraftStore("", client=_client(failing)).fetch_rows("R1", DataSource.ITEMS)
        with pytest.raises(FetchError, match="connection refused"):
            await RestDraftStore("", client=_client(unreachable)).fetch_rows("R1", DataSource.ITEMS)

    asyncio.run(run())


def test_commit_pick_sends_rpc_arguments():
    async def run():
        seen = []
        store = RestDraftStore("", client=_client(_table_handler(seen)))
        result = await store.commit_pick("R1", 7, 1, False)
        assert result == [{"ok": False, "message": "not your turn"}]
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/rpc/draft_pick"
        assert json.loads(request.content) == {
            "p_room_id": "R1",
            "p_player_no": 7,
            "p_coach_id": 1,
            "p_override_turn": False,
        }

    asyncio.run(run())


def test_commit_pick_transport_failure():
    def unreachable(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async def run():
        with pytest.raises(CommitTransportError, match="timed out"):
            await RestDraftStore("", client=_client(unreachable)).commit_pick("R1", 7, 1, False)

    asyncio.run(run())


def test_admin_writes():
    async def run():
        seen = []

        def handler(request):
            seen.append(request)
            if request.method == "DELETE":
                return httpx.Response(403, json={"message": "permission denied"})
            return httpx.Response(204)

        store = RestDraftStore("", client=_client(handler))
        await store.update_room_config("R1", {"is_paused": True, "pause_reason": "Paused"})
        await store.clear_item_outcomes("R1")
        with pytest.raises(StoreWriteError, match="permission denied"):
            await store.delete_selection_order("R1")

        patch_state, patch_players, delete_order = seen
        assert patch_state.method == "PATCH"
        assert patch_state.url.path == "/rest/v1/draft_state"
        assert patch_state.url.params["room_id"] == "eq.R1"
        assert json.loads(patch_state.content) == {"is_paused": True, "pause_reason": "Paused"}
        assert json.loads(patch_players.content) == {
            "drafted_by_coach_id": None,
            "drafted_round": None,
            "drafted_pick": None,
        }
        assert delete_order.method == "DELETE"
        assert delete_order.url.path == "/rest/v1/draft_order"

    asyncio.run(run())


def test_sync_and_submit_over_rest():
    async def run():
        seen = []
        store = RestDraftStore("", client=_client(_table_handler(seen)))
        sync = SyncController(store, settings=Settings(poll_interval=60))
        await sync.start("R1")
        assert sync.snapshot.item(7).pos == "MID/FWD"
        assert len(sync.board().slots) == 4

        messages = []
        outcome = await SelectionSubmitter(store, sync, notify=messages.append).submit(7, 1)
        assert outcome.kind == "rejected"
        assert messages == ["not your turn"]
        await sync.stop()
        await store.aclose()

    asyncio.run(run())
