# -*- coding: utf-8 -*-
"""
Game state shape, creation, and the validation/repair step used on load.

The persisted layout keeps the camelCase keys of the browser saves so old
save files restore without a migration tool.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from .config import MAX_DUPE_STREAK

log = logging.getLogger("stampslot.state")

SCHEMA_VERSION = 4
PAGES = 10

_CODE_RE = re.compile(r"^[0-9]{3}$")

Cube = List[List[List[bool]]]


def _empty_cube() -> Cube:
    return [[[False for _ in range(10)] for _ in range(10)] for _ in range(10)]


def _empty_rows() -> List[List[bool]]:
    return [[False for _ in range(10)] for _ in range(10)]


def today_key(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


@dataclass
class SpinStats:
    total_spins: int = 0
    total_new: int = 0
    total_dupe: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"totalSpins": self.total_spins, "totalNew": self.total_new, "totalDupe": self.total_dupe}


@dataclass(frozen=True)
class RewardEntry:
    label: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "amount": self.amount}


@dataclass
class LastOutcome:
    is_new: Optional[bool] = None
    ticket_delta: int = 0
    breakdown: List[RewardEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isNew": self.is_new,
            "ticketDelta": self.ticket_delta,
            "breakdown": [e.to_dict() for e in self.breakdown],
        }


@dataclass(frozen=True)
class HistoryPoint:
    spins: int
    tickets: int
    stamps: int

    def to_dict(self) -> Dict[str, int]:
        return {"spins": self.spins, "tickets": self.tickets, "stamps": self.stamps}


@dataclass
class GameState:
    bookmark_tickets: int = 0
    dupe_streak: int = 0
    current_page: int = 0
    stamps: Cube = field(default_factory=_empty_cube)
    page_rewarded: List[bool] = field(default_factory=lambda: [False] * PAGES)
    row_rewarded: List[List[bool]] = field(default_factory=_empty_rows)
    last_result_code: str = ""
    last_outcome: LastOutcome = field(default_factory=LastOutcome)
    stats: SpinStats = field(default_factory=SpinStats)
    history: List[HistoryPoint] = field(default_factory=list)
    free_spins_left: int = 0
    last_play_date: str = ""
    schema_version: int = SCHEMA_VERSION

    def is_stamped(self, x: int, y: int, z: int) -> bool:
        return self.stamps[x][y][z]

    def stamped_count(self) -> int:
        return sum(1 for page in self.stamps for row in page for cell in row if cell)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "bookmarkTickets": self.bookmark_tickets,
            "dupeStreak": self.dupe_streak,
            "currentPage": self.current_page,
            "stamps": [[list(row) for row in page] for page in self.stamps],
            "pageRewarded": list(self.page_rewarded),
            "rowRewarded": [list(row) for row in self.row_rewarded],
            "lastResultCode": self.last_result_code,
            "lastOutcome": self.last_outcome.to_dict(),
            "stats": self.stats.to_dict(),
            "history": [h.to_dict() for h in self.history],
            "freeSpinsLeft": self.free_spins_left,
            "lastPlayDate": self.last_play_date,
        }


def create_initial_state(start_tickets: int = 30, free_spins: int = 0, today: Optional[date] = None) -> GameState:
    return GameState(
        bookmark_tickets=max(0, int(start_tickets)),
        free_spins_left=max(0, int(free_spins)),
        last_play_date=today_key(today),
    )


# -----------------------------
# Shape checks
# -----------------------------
def _is_bool_list(value: Any, length: int) -> bool:
    return isinstance(value, list) and len(value) == length and all(isinstance(v, bool) for v in value)


def is_stamps_shape_ok(stamps: Any) -> bool:
    if not isinstance(stamps, list) or len(stamps) != 10:
        return False
    for page in stamps:
        if not isinstance(page, list) or len(page) != 10:
            return False
        for row in page:
            if not _is_bool_list(row, 10):
                return False
    return True


def is_row_rewarded_shape_ok(rows: Any) -> bool:
    return isinstance(rows, list) and len(rows) == 10 and all(_is_bool_list(r, 10) for r in rows)


def _clamp_int(value: Any, lo: int, hi: Optional[int] = None) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        v = value
    else:
        try:
            v = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return lo
    if v < lo:
        return lo
    if hi is not None and v > hi:
        return hi
    return v


def _restore_outcome(raw: Any) -> LastOutcome:
    if not isinstance(raw, dict):
        return LastOutcome()
    is_new = raw.get("isNew")
    if is_new is not None and not isinstance(is_new, bool):
        return LastOutcome()
    breakdown = raw.get("breakdown")
    if not isinstance(breakdown, list):
        return LastOutcome()
    entries: List[RewardEntry] = []
    for item in breakdown:
        if not isinstance(item, dict) or not isinstance(item.get("label"), str):
            return LastOutcome()
        try:
            entries.append(RewardEntry(item["label"], int(item.get("amount", 0))))
        except (TypeError, ValueError):
            return LastOutcome()
    try:
        delta = int(raw.get("ticketDelta", 0) or 0)
    except (TypeError, ValueError):
        return LastOutcome()
    return LastOutcome(is_new=is_new, ticket_delta=delta, breakdown=entries)


def _restore_history(raw: Any) -> List[HistoryPoint]:
    if not isinstance(raw, list):
        return []
    out: List[HistoryPoint] = []
    for item in raw:
        if not isinstance(item, dict):
            return []
        out.append(
            HistoryPoint(
                spins=_clamp_int(item.get("spins"), 0),
                tickets=_clamp_int(item.get("tickets"), 0),
                stamps=_clamp_int(item.get("stamps"), 0, 1000),
            )
        )
    return out


def restore_state(payload: Any, start_tickets: int = 30, index: Any = None, free_spins: int = 0) -> GameState:
    """
    Validate and repair a persisted payload into a ``GameState``.

    Bad shapes for the stamp cube or the reward flags discard the whole payload
    in favor of a fresh state. Numbers are clamped into range. When ``index``
    is given, stamps on invalid codes and reward flags for incomplete rows or
    pages are cleared.
    """
    fresh = create_initial_state(start_tickets=start_tickets, free_spins=free_spins)
    if not isinstance(payload, dict):
        log.warning("Discarding save: root is not an object")
        return fresh
    if not is_stamps_shape_ok(payload.get("stamps")):
        log.warning("Discarding save: stamp cube is not 10x10x10 booleans")
        return fresh

    page_rewarded = payload.get("pageRewarded", [False] * PAGES)
    row_rewarded = payload.get("rowRewarded", _empty_rows())
    version = _clamp_int(payload.get("schemaVersion", 1), 1)
    if version < SCHEMA_VERSION and "rowRewarded" not in payload:
        # v1-v3 saves predate row bonuses
        row_rewarded = _empty_rows()
    if not _is_bool_list(page_rewarded, PAGES) or not is_row_rewarded_shape_ok(row_rewarded):
        log.warning("Discarding save: reward flags have the wrong shape")
        return fresh

    # "" means no spin has happened yet
    last_code = payload.get("lastResultCode", "")
    if last_code != "" and (not isinstance(last_code, str) or not _CODE_RE.match(last_code)):
        last_code = "000"

    raw_stats = payload.get("stats")
    stats = SpinStats()
    if isinstance(raw_stats, dict):
        stats = SpinStats(
            total_spins=_clamp_int(raw_stats.get("totalSpins", 0), 0),
            total_new=_clamp_int(raw_stats.get("totalNew", 0), 0),
            total_dupe=_clamp_int(raw_stats.get("totalDupe", 0), 0),
        )

    last_play = payload.get("lastPlayDate", fresh.last_play_date)
    state = GameState(
        bookmark_tickets=_clamp_int(payload.get("bookmarkTickets", 0), 0),
        dupe_streak=_clamp_int(payload.get("dupeStreak", 0), 0, MAX_DUPE_STREAK),
        current_page=_clamp_int(payload.get("currentPage", 0), 0, PAGES - 1),
        stamps=[[list(row) for row in page] for page in payload["stamps"]],
        page_rewarded=list(page_rewarded),
        row_rewarded=[list(r) for r in row_rewarded],
        last_result_code=last_code,
        last_outcome=_restore_outcome(payload.get("lastOutcome")),
        stats=stats,
        history=_restore_history(payload.get("history")),
        free_spins_left=_clamp_int(payload.get("freeSpinsLeft", 0), 0),
        last_play_date=last_play if isinstance(last_play, str) else fresh.last_play_date,
        schema_version=SCHEMA_VERSION,
    )
    if index is not None:
        enforce_index_invariants(state, index)
    return state


def enforce_index_invariants(state: GameState, index: Any) -> None:
    """Clear stamps on invalid codes and reward flags that are not actually earned."""
    cleared = 0
    for x in range(10):
        for y in range(10):
            for z in range(10):
                if state.stamps[x][y][z] and not index.is_valid_cell(x, y, z):
                    state.stamps[x][y][z] = False
                    cleared += 1
    if cleared:
        log.warning("Cleared %d stamps on codes missing from the classification", cleared)

    for x in range(PAGES):
        if state.page_rewarded[x] and not all(state.stamps[t.x][t.y][t.z] for t in index.valid_by_page[x]):
            state.page_rewarded[x] = False
        for y in range(10):
            if state.row_rewarded[x][y] and not all(state.stamps[x][y][z] for z in index.row_valid_columns(x, y)):
                state.row_rewarded[x][y] = False


# -----------------------------
# Small mutators and counters used by the session and display
# -----------------------------
def set_current_page(state: GameState, page: Any) -> None:
    state.current_page = _clamp_int(page, 0, PAGES - 1)


def apply_daily_reset(state: GameState, free_spins_per_day: int, today: Optional[date] = None) -> bool:
    """Refill free spins on a new calendar day. The dupe streak carries over."""
    key = today_key(today)
    if state.last_play_date == key:
        return False
    state.last_play_date = key
    state.free_spins_left = max(0, int(free_spins_per_day))
    return True


def count_page_display_filled(state: GameState, index: Any, page: int) -> int:
    """Filled cells as the album shows them: invalid cells count as pre-filled."""
    n = 0
    for y in range(10):
        for z in range(10):
            if state.stamps[page][y][z] or not index.is_valid_cell(page, y, z):
                n += 1
    return n


def count_total_display_filled(state: GameState, index: Any) -> int:
    return sum(count_page_display_filled(state, index, p) for p in range(PAGES))
