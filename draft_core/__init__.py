from .admin import AdminActionError, DraftAdmin
from .board import BoardView, PickSlot, board_from_snapshot, build_board, coach_label
from .config import Settings, configure_logging, load_settings
from .picks import overall_from_round_pick, round_pick_from_overall, total_picks
from .positions import POSITION_TABS, matches_position, matches_tab, split_positions
from .rest_store import RestDraftStore
from .snapshot import ALL_SOURCES, DataSource, RoomSnapshot
from .store import (
    ChangeFeed,
    CommitTransportError,
    DraftStore,
    FetchError,
    InMemoryDraftStore,
    StoreError,
    StoreWriteError,
)
from .submit import SelectionSubmitter, SubmitOutcome
from .sync import SyncController
from .turn import (
    DraftAction,
    DraftPhase,
    InvalidTransition,
    SelectionRejected,
    TurnState,
    check_selection,
    decode_pause_reason,
    derive_turn_state,
    next_phase,
    pause_reason_label,
    plan_reset,
)
from .types import CoachRow, DraftOrderRow, DraftStateRow, PlayerRow
from .validation import (
    CommitResult,
    InputSanitizer,
    Item,
    Participant,
    RoomConfig,
    SelectionOrderEntry,
)
from .views import (
    available_players,
    board_status_line,
    draft_top_bar,
    my_draft_sheet,
    order_summary,
    turn_banner,
)

__all__ = [
    "ALL_SOURCES",
    "AdminActionError",
    "BoardView",
    "ChangeFeed",
    "CoachRow",
    "CommitResult",
    "CommitTransportError",
    "DataSource",
    "DraftAction",
    "DraftAdmin",
    "DraftOrderRow",
    "DraftPhase",
    "DraftStateRow",
    "DraftStore",
    "FetchError",
    "InMemoryDraftStore",
    "InputSanitizer",
    "InvalidTransition",
    "Item",
    "Participant",
    "PickSlot",
    "PlayerRow",
    "POSITION_TABS",
    "RestDraftStore",
    "RoomConfig",
    "RoomSnapshot",
    "SelectionOrderEntry",
    "SelectionRejected",
    "SelectionSubmitter",
    "Settings",
    "StoreError",
    "StoreWriteError",
    "SubmitOutcome",
    "SyncController",
    "TurnState",
    "available_players",
    "board_from_snapshot",
    "board_status_line",
    "build_board",
    "check_selection",
    "coach_label",
    "configure_logging",
    "decode_pause_reason",
    "derive_turn_state",
    "draft_top_bar",
    "load_settings",
    "matches_position",
    "matches_tab",
    "my_draft_sheet",
    "next_phase",
    "order_summary",
    "overall_from_round_pick",
    "pause_reason_label",
    "plan_reset",
    "round_pick_from_overall",
    "split_positions",
    "total_picks",
    "turn_banner",
]
