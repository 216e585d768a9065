"""Pick submission: local pre-check, remote draft_pick call, result handling.

The local snapshot is never patched after a pick. Whether the pick went
through becomes visible only when the next refresh (signal or poll) brings
the store's rows in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import ValidationError

from .store import CommitTransportError, DraftStore
from .sync import SyncController
from .turn import check_selection
from .validation import CommitResult

logger = logging.getLogger(__name__)

# The engine never forces a pick out of turn
OVERRIDE_TURN = False


@dataclass
class SubmitOutcome:
    """Result of one submit() call."""

    ok: bool
    kind: str  # "ok", a SelectionRejected kind, "busy", "rejected", "transport", "stale_room"
    room_id: Optional[str]
    player_no: int
    coach_id: int
    message: Optional[str] = None
    remote_called: bool = False


class SelectionSubmitter:
    def __init__(
        self,
        store: DraftStore,
        sync: SyncController,
        *,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self._store = store
        self._sync = sync
        self._notify = notify
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def _report(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)

    async def submit(self, player_no: int, coach_id: int) -> SubmitOutcome:
        """Try to draft ``player_no`` for ``coach_id`` in the synced room."""
        room_id = self._sync.room_id
        generation = self._sync.generation
        snapshot = self._sync.snapshot

        if self._busy:
            return SubmitOutcome(
                ok=False,
                kind="busy",
                room_id=room_id,
                player_no=player_no,
                coach_id=coach_id,
                message="A pick is already being submitted.",
            )

        item = snapshot.item(player_no) if snapshot is not None else None
        rejection = check_selection(self._sync.turn_state(), coach_id, item)
        if rejection is not None:
            logger.debug(f"Pick of {player_no} by coach {coach_id} rejected locally: {rejection.kind}")
            self._report(rejection.message)
            return SubmitOutcome(
                ok=False,
                kind=rejection.kind,
                room_id=room_id,
                player_no=player_no,
                coach_id=coach_id,
                message=rejection.message,
            )

        self._busy = True
        error_message: Optional[str] = None
        try:
            raw = await self._store.commit_pick(room_id, player_no, coach_id, OVERRIDE_TURN)
            result = CommitResult.from_response(raw)
        except (CommitTransportError, ValidationError) as e:
            logger.warning(f"draft_pick for room {room_id} failed: {e}")
            result = None
            error_message = str(e)
        finally:
            self._busy = False

        if generation != self._sync.generation:
            # Room switched while the call was in flight; the result belongs to the old room
            logger.debug(f"Ignoring draft_pick result for room {room_id}: room switched")
            return SubmitOutcome(
                ok=result is not None and result.ok,
                kind="stale_room",
                room_id=room_id,
                player_no=player_no,
                coach_id=coach_id,
                message=result.message if result is not None else error_message,
                remote_called=True,
            )

        if result is None:
            message = error_message or "Draft failed"
            self._report(message)
            return SubmitOutcome(
                ok=False,
                kind="transport",
                room_id=room_id,
                player_no=player_no,
                coach_id=coach_id,
                message=message,
                remote_called=True,
            )

        if not result.ok:
            message = result.message or "Unknown error"
            logger.warning(f"draft_pick rejected in room {room_id}: {message}")
            self._report(message)
            return SubmitOutcome(
                ok=False,
                kind="rejected",
                room_id=room_id,
                player_no=player_no,
                coach_id=coach_id,
                message=message,
                remote_called=True,
            )

        logger.info(f"Coach {coach_id} drafted player {player_no} in room {room_id}")
        return SubmitOutcome(
            ok=True,
            kind="ok",
            room_id=room_id,
            player_no=player_no,
            coach_id=coach_id,
            message=result.message,
            remote_called=True,
        )
