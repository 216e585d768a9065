"""Position tab filtering for the available-players list.

Positions are "/"-delimited tags ("MID/FWD", "DEF", "KD"). Tab rules:
- ALL matches everything
- DEF shows DEF players but not KD (key defenders), even if dual-tagged
- FWD shows FWD players but not KF (key forwards), even if dual-tagged
- KD / KF show only players carrying that exact tag
- any other tab (MID, RUC, ...) matches by tag membership
"""
from __future__ import annotations

from typing import Any, List

ALL_TAB = "ALL"

# Tab key → display label, in display order
POSITION_TABS = {
    "ALL": "All",
    "DEF": "DEF",
    "KD": "KD",
    "MID": "MID",
    "RUC": "RUC",
    "FWD": "FWD",
    "KF": "KF",
}

# General tag → sub-category tag it excludes
_EXCLUDED_SUBCATEGORY = {
    "DEF": "KD",
    "FWD": "KF",
}


def split_positions(pos_raw: str | None) -> List[str]:
    """Split a raw position string into upper-case tags."""
    return [part.strip().upper() for part in (pos_raw or "").split("/") if part.strip()]


def matches_position(pos_raw: str | None, tab: str) -> bool:
    """True if a player with position string ``pos_raw`` belongs on ``tab``."""
    tab = (tab or "").strip().upper()
    if tab == ALL_TAB:
        return True

    tags = split_positions(pos_raw)
    excluded = _EXCLUDED_SUBCATEGORY.get(tab)
    if excluded is not None:
        return tab in tags and excluded not in tags

    return tab in tags


def matches_tab(player: Any, tab: str) -> bool:
    """matches_position() for anything with a ``pos`` attribute or key."""
    if isinstance(player, dict):
        pos = player.get("pos")
    else:
        pos = getattr(player, "pos", None)
    return matches_position(pos, tab)
