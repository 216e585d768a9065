"""Administrative room controls: pause, resume, rounds total, reset.

Every action checks the transition against the current phase, writes the
store, then refreshes the affected sources through the SyncController.
Nothing here edits the local snapshot directly.
"""
from __future__ import annotations

import logging
from typing import Optional

from .snapshot import DataSource
from .store import DraftStore, StoreError
from .sync import SyncController
from .turn import DraftAction, DraftPhase, next_phase, pause_changes, plan_reset

logger = logging.getLogger(__name__)

MIN_ROUNDS_TOTAL = 1
MAX_ROUNDS_TOTAL = 200


class AdminActionError(RuntimeError):
    """An admin action was refused locally or a store write failed."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class DraftAdmin:
    def __init__(self, store: DraftStore, sync: SyncController):
        self._store = store
        self._sync = sync
        self._resetting = False

    @property
    def phase(self) -> Optional[DraftPhase]:
        """Current phase; RESET while a reset is being written."""
        if self._resetting:
            return DraftPhase.RESET
        turn = self._sync.turn_state()
        return turn.phase if turn is not None else None

    def _require_room(self) -> str:
        room_id = self._sync.room_id
        if room_id is None or self.phase is None:
            raise AdminActionError("Draft state not loaded yet.")
        return room_id

    async def pause(self) -> DraftPhase:
        return await self._set_paused(True)

    async def resume(self) -> DraftPhase:
        return await self._set_paused(False)

    async def _set_paused(self, paused: bool) -> DraftPhase:
        room_id = self._require_room()
        action = DraftAction.PAUSE if paused else DraftAction.RESUME
        target = next_phase(self.phase, action)

        try:
            await self._store.update_room_config(room_id, pause_changes(paused))
        except StoreError as e:
            logger.warning(f"Pause update for room {room_id} failed: {e}")
            raise AdminActionError(f"Pause update failed: {e}", step="draft state") from e

        logger.info(f"Room {room_id}: {action.value} → {target.value}")
        await self._sync.refresh(DataSource.ROOM_CONFIG)
        return target

    async def set_rounds_total(self, rounds_total: int) -> None:
        room_id = self._require_room()
        if not MIN_ROUNDS_TOTAL <= rounds_total <= MAX_ROUNDS_TOTAL:
            raise AdminActionError(
                f"Rounds total must be between {MIN_ROUNDS_TOTAL} and {MAX_ROUNDS_TOTAL}."
            )
        config = self._sync.snapshot.config
        if rounds_total < config.current_round:
            raise AdminActionError(
                f"Rounds total cannot be less than the current round ({config.current_round})."
            )

        try:
            await self._store.update_room_config(room_id, {"rounds_total": rounds_total})
        except StoreError as e:
            logger.warning(f"Rounds update for room {room_id} failed: {e}")
            raise AdminActionError(f"Rounds update failed: {e}", step="draft state") from e

        logger.info(f"Room {room_id}: rounds_total set to {rounds_total}")
        await self._sync.refresh(DataSource.ROOM_CONFIG)

    async def reset_draft(self) -> DraftPhase:
        """Undraft every player, clear the draft order and rewind to round 1 pick 1.

        Raises:
            InvalidTransition: A reset is already running
            AdminActionError: The room was switched before any write, or a
                store write failed and later steps were skipped
        """
        room_id = self._require_room()
        next_phase(self.phase, DraftAction.RESET)

        # Fresh roster so the lowest coach id is right even if coaches changed
        await self._sync.refresh(DataSource.PARTICIPANTS)
        if self._sync.room_id != room_id:
            raise AdminActionError(f"Room switched away from {room_id} before the reset started.")
        participants = self._sync.snapshot.participants

        self._resetting = True
        logger.info(f"Room {room_id}: reset started")
        try:
            step = "players"
            try:
                await self._store.clear_item_outcomes(room_id)
                step = "draft order"
                await self._store.delete_selection_order(room_id)
                step = "draft state"
                await self._store.update_room_config(room_id, plan_reset(participants))
            except StoreError as e:
                logger.warning(f"Reset of room {room_id} failed at {step}: {e}")
                raise AdminActionError(f"Reset failed ({step}): {e}", step=step) from e
        finally:
            self._resetting = False

        target = next_phase(DraftPhase.RESET, DraftAction.RESET_COMPLETE)
        logger.info(f"Room {room_id}: reset complete → {target.value}")
        await self._sync.refresh_all()
        return target
