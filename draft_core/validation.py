"""
Row validation schemas using Pydantic v2
Validates every row fetched from the draft tables and the draft_pick result
"""

import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

WAIT_BLOCK_PREFIX = "WAIT_BLOCK_"


class InputSanitizer:
    """Utility class for display-string sanitization"""

    @staticmethod
    def sanitize_string(value: Any, max_length: int = 255) -> str:
        """Sanitize string input"""
        if value is None:
            return ""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_display_name(name: Any) -> str:
        """Sanitize coach/player names for display, keeping apostrophes and diacritics"""
        name = InputSanitizer.sanitize_string(name, 255)
        # Control characters only; names like O'Brien or De Goey stay intact
        name = re.sub(r"[\x00-\x1f\x7f]", "", name)
        return name.strip()

    @staticmethod
    def normalize_position(pos: Any) -> str:
        """Upper-case a "/"-delimited position tag string, dropping empty parts"""
        raw = InputSanitizer.sanitize_string(pos, 50)
        tags = [part.strip().upper() for part in raw.split("/")]
        return "/".join(tag for tag in tags if tag)


class RoomConfig(BaseModel):
    """Validated ``draft_state`` row"""

    model_config = ConfigDict(frozen=True, extra="ignore")

    room_id: str = Field(..., min_length=1, max_length=64, description="Room identifier")
    is_paused: bool = Field(True, description="Draft paused flag")
    pause_reason: Optional[str] = Field(None, max_length=100)
    rounds_total: int = Field(..., ge=1, description="Total rounds")
    current_round: int = Field(1, ge=1)
    current_pick_in_round: int = Field(1, ge=1)
    current_coach_id: int

    @field_validator("pause_reason")
    @classmethod
    def validate_pause_reason(cls, v: Optional[str]) -> Optional[str]:
        """Empty reasons are stored as None"""
        if v is None:
            return v
        v = v.strip()
        return v or None

    @property
    def is_past_final_round(self) -> bool:
        """current_round beyond rounds_total (rounds_total lowered mid-draft)"""
        return self.current_round > self.rounds_total


class Participant(BaseModel):
    """Validated ``coaches`` row"""

    model_config = ConfigDict(frozen=True, extra="ignore")

    coach_id: int
    coach_name: str = ""

    @field_validator("coach_name", mode="before")
    @classmethod
    def clean_name(cls, v: Any) -> str:
        return InputSanitizer.sanitize_display_name(v)


class SelectionOrderEntry(BaseModel):
    """Validated ``draft_order`` row"""

    model_config = ConfigDict(frozen=True, extra="ignore")

    overall_pick: int = Field(..., ge=1)
    coach_id: int


class Item(BaseModel):
    """Validated ``players`` row

    Outcome fields (drafted_by_coach_id, drafted_round, drafted_pick) are
    either all set or all None. A partially-set row is normalized to
    undrafted instead of dropping the row.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    player_no: int
    pos: str = ""
    club: str = ""
    player_name: str = ""
    average: float = 0.0
    drafted_by_coach_id: Optional[int] = None
    drafted_round: Optional[int] = Field(None, ge=1)
    drafted_pick: Optional[int] = Field(None, ge=1)

    @field_validator("pos", mode="before")
    @classmethod
    def clean_pos(cls, v: Any) -> str:
        return InputSanitizer.normalize_position(v)

    @field_validator("club", "player_name", mode="before")
    @classmethod
    def clean_text(cls, v: Any) -> str:
        return InputSanitizer.sanitize_display_name(v)

    @field_validator("average", mode="before")
    @classmethod
    def coerce_average(cls, v: Any) -> Any:
        # Null averages appear for players without games yet
        return 0.0 if v is None else v

    @model_validator(mode="before")
    @classmethod
    def normalize_outcome(cls, data: Any) -> Any:
        """Treat partially-set outcome fields as undrafted"""
        if not isinstance(data, dict):
            return data
        fields = ("drafted_by_coach_id", "drafted_round", "drafted_pick")
        present = [data.get(f) is not None for f in fields]
        if any(present) and not all(present):
            outcome = {f: data.get(f) for f in fields}
            logger.warning(
                f"Player {data.get('player_no')} has partial draft outcome {outcome}; "
                "treating as undrafted"
            )
            data = {**data, **{f: None for f in fields}}
        return data

    @property
    def is_drafted(self) -> bool:
        return self.drafted_by_coach_id is not None


class CommitResult(BaseModel):
    """Structured result of the remote ``draft_pick`` call"""

    model_config = ConfigDict(extra="allow")

    ok: bool = False
    message: Optional[str] = None

    @classmethod
    def from_response(cls, data: Any) -> "CommitResult":
        """Accept either a single object or a one-row list (table-returning RPC)"""
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            return cls(ok=False, message=None)
        return cls.model_validate(data)


def parse_rows(model: type[BaseModel], rows: Optional[List[dict]], label: str = "") -> Tuple[Any, ...]:
    """Validate a list of raw rows into a tuple of models.

    Malformed rows are logged and skipped; the valid ones are kept.
    """
    parsed = []
    for row in rows or []:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {label or model.__name__} row {row!r}: {e.error_count()} error(s)"
            )
    return tuple(parsed)


# ==================== EXPORT ====================

__all__ = [
    "CommitResult",
    "InputSanitizer",
    "Item",
    "Participant",
    "RoomConfig",
    "SelectionOrderEntry",
    "WAIT_BLOCK_PREFIX",
    "parse_rows",
]
