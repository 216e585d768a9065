"""DraftStore over a PostgREST-style HTTP API (e.g. a Supabase project).

Tables are read with ``GET /rest/v1/<table>?room_id=eq.<room>``, the pick
procedure is ``POST /rest/v1/rpc/draft_pick``. This adapter has no change
notifications; pair it with SyncController polling, or with a ChangeFeed
from the realtime client of your choice.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings
from .snapshot import DataSource
from .store import CommitTransportError, FetchError, StoreWriteError
from .types import DraftPickParams, DraftStateRow

logger = logging.getLogger(__name__)

_COLUMNS = {
    DataSource.ROOM_CONFIG: (
        "room_id,is_paused,pause_reason,rounds_total,current_round,"
        "current_pick_in_round,current_coach_id"
    ),
    DataSource.PARTICIPANTS: "coach_id,coach_name",
    DataSource.SELECTION_ORDER: "overall_pick,coach_id",
    DataSource.ITEMS: (
        "player_no,pos,club,player_name,average,"
        "drafted_by_coach_id,drafted_round,drafted_pick"
    ),
}

_ORDER = {
    DataSource.PARTICIPANTS: "coach_id",
    DataSource.SELECTION_ORDER: "overall_pick",
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


class RestDraftStore:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RestDraftStore":
        return cls(settings.rest_url, settings.rest_api_key, timeout=settings.request_timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RestDraftStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    def _room_filter(room_id: str) -> Dict[str, str]:
        return {"room_id": f"eq.{room_id}"}

    async def fetch_rows(self, room_id: str, source: DataSource) -> List[dict]:
        params = {"select": _COLUMNS[source], **self._room_filter(room_id)}
        if source in _ORDER:
            params["order"] = _ORDER[source]
        try:
            response = await self._client.get(f"/rest/v1/{source.value}", params=params)
        except httpx.HTTPError as e:
            raise FetchError(room_id, source, str(e) or type(e).__name__) from e
        if response.status_code != 200:
            raise FetchError(room_id, source, _error_message(response))
        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(room_id, source, "invalid JSON") from e
        if not isinstance(data, list):
            raise FetchError(room_id, source, "expected a JSON array")
        return data

    async def commit_pick(
        self, room_id: str, player_no: int, coach_id: int, override_turn: bool
    ) -> Any:
        params: DraftPickParams = {
            "p_room_id": room_id,
            "p_player_no": player_no,
            "p_coach_id": coach_id,
            "p_override_turn": override_turn,
        }
        try:
            response = await self._client.post("/rest/v1/rpc/draft_pick", json=params)
        except httpx.HTTPError as e:
            raise CommitTransportError(str(e) or type(e).__name__) from e
        if response.is_error:
            raise CommitTransportError(_error_message(response))
        try:
            return response.json()
        except ValueError as e:
            raise CommitTransportError("invalid JSON from draft_pick") from e

    async def _write(self, method: str, table: str, room_id: str, json: Optional[dict] = None) -> None:
        try:
            response = await self._client.request(
                method,
                f"/rest/v1/{table}",
                params=self._room_filter(room_id),
                json=json,
                headers={"Prefer": "return=minimal"},
            )
        except httpx.HTTPError as e:
            raise StoreWriteError(str(e) or type(e).__name__) from e
        if response.is_error:
            raise StoreWriteError(_error_message(response))

    async def update_room_config(self, room_id: str, changes: DraftStateRow) -> None:
        await self._write("PATCH", DataSource.ROOM_CONFIG.value, room_id, changes)

    async def clear_item_outcomes(self, room_id: str) -> None:
        await self._write(
            "PATCH",
            DataSource.ITEMS.value,
            room_id,
            {"drafted_by_coach_id": None, "drafted_round": None, "drafted_pick": None},
        )

    async def delete_selection_order(self, room_id: str) -> None:
        await self._write("DELETE", DataSource.SELECTION_ORDER.value, room_id)
