"""Stamp application and the multi-tier reward breakdown for one draw."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .classification import ClassificationIndex, Triple
from .config import RewardConfig
from .state import GameState, RewardEntry

log = logging.getLogger("stampslot.rewards")

LABEL_NEW = "New stamp"
LABEL_DUPE = "Duplicate"
LABEL_TRIPLE = "Triple"
LABEL_STRAIGHT = "Straight"
LABEL_SANDWICH = "Sandwich"
LABEL_ZERO_TAIL = "Round number"


def row_label(x: int, y: int) -> str:
    return f"Row {x}{y}x complete"


def page_label(x: int) -> str:
    return f"Page {x}xx complete"


@dataclass
class StampOutcome:
    is_new: bool
    page_completed_now: bool = False
    row_completed_now: bool = False
    ticket_delta: int = 0
    breakdown: List[RewardEntry] = field(default_factory=list)


def is_row_complete(state: GameState, index: ClassificationIndex, page: int, row: int) -> bool:
    """Every valid column of the row is stamped; invalid columns count as done."""
    return all(state.stamps[page][row][z] for z in index.row_valid_columns(page, row))


def is_page_complete(state: GameState, index: ClassificationIndex, page: int) -> bool:
    return all(state.stamps[t.x][t.y][t.z] for t in index.valid_by_page[page])


def digit_patterns(x: int, y: int, z: int) -> Tuple[bool, bool, bool, bool]:
    """(triple, ascending straight, sandwich, zero tail) for a code's digits."""
    triple = x == y == z
    straight = y == x + 1 and z == y + 1
    # x != y keeps sandwich disjoint from triple
    sandwich = x == z and x != y
    zero_tail = y == 0 and z == 0
    return triple, straight, sandwich, zero_tail


def digit_pattern_bonuses(result: Triple, rewards: RewardConfig) -> List[RewardEntry]:
    triple, straight, sandwich, zero_tail = digit_patterns(result.x, result.y, result.z)
    candidates = (
        (triple, LABEL_TRIPLE, rewards.triple_bonus),
        (straight, LABEL_STRAIGHT, rewards.straight_bonus),
        (sandwich, LABEL_SANDWICH, rewards.sandwich_bonus),
        (zero_tail, LABEL_ZERO_TAIL, rewards.zero_tail_bonus),
    )
    return [RewardEntry(label, amount) for hit, label, amount in candidates if hit and amount > 0]


def check_row_bonus(
    state: GameState, index: ClassificationIndex, page: int, row: int, rewards: RewardConfig
) -> Optional[RewardEntry]:
    """Pay the row bonus once; later calls for the same row return None."""
    if state.row_rewarded[page][row] or not is_row_complete(state, index, page, row):
        return None
    state.row_rewarded[page][row] = True
    if rewards.row_complete_bonus <= 0:
        return None
    return RewardEntry(row_label(page, row), rewards.row_complete_bonus)


def check_page_bonus(
    state: GameState, index: ClassificationIndex, page: int, rewards: RewardConfig
) -> Optional[RewardEntry]:
    if state.page_rewarded[page] or not is_page_complete(state, index, page):
        return None
    state.page_rewarded[page] = True
    if rewards.page_complete_bonus <= 0:
        return None
    return RewardEntry(page_label(page), rewards.page_complete_bonus)


def apply_stamp_and_rewards(
    state: GameState,
    index: ClassificationIndex,
    result: Triple,
    rewards: Optional[RewardConfig] = None,
) -> StampOutcome:
    """
    Stamp ``result`` and credit every reward tier it earns.

    Breakdown order is fixed: base outcome, row complete, page complete, then
    the digit patterns (triple, straight, sandwich, round number). An invalid
    code is a no-op that reports a duplicate-like outcome with no reward.
    """
    rewards = rewards or RewardConfig()
    x, y, z = result.x, result.y, result.z

    if not index.is_valid_code(result.code):
        log.warning("Drew code %s which is not in the classification; no reward", result.code)
        return StampOutcome(is_new=False)

    is_new = not state.stamps[x][y][z]
    if is_new:
        state.stamps[x][y][z] = True

    breakdown: List[RewardEntry] = []
    base_amount = rewards.new_bonus if is_new else rewards.dupe_bonus
    if base_amount > 0:
        breakdown.append(RewardEntry(LABEL_NEW if is_new else LABEL_DUPE, base_amount))

    # Flags flip even when the configured bonus is zero so they stay one-shot.
    row_already = state.row_rewarded[x][y]
    row_entry = check_row_bonus(state, index, x, y, rewards)
    row_completed_now = not row_already and state.row_rewarded[x][y]
    if row_entry is not None:
        breakdown.append(row_entry)

    page_already = state.page_rewarded[x]
    page_entry = check_page_bonus(state, index, x, rewards)
    page_completed_now = not page_already and state.page_rewarded[x]
    if page_entry is not None:
        breakdown.append(page_entry)

    breakdown.extend(digit_pattern_bonuses(result, rewards))

    ticket_delta = sum(e.amount for e in breakdown)
    state.bookmark_tickets = max(0, state.bookmark_tickets + ticket_delta)
    if page_completed_now:
        log.info("Page %dxx completed", x)

    return StampOutcome(
        is_new=is_new,
        page_completed_now=page_completed_now,
        row_completed_now=row_completed_now,
        ticket_delta=ticket_delta,
        breakdown=breakdown,
    )
