"""
Spin engine: affordability, pity decision and code selection.

Every function takes its collaborators explicitly (state, classification
index, config values, random source) so two sessions never share hidden state
and tests can replay any draw with a seeded or scripted random source.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Sequence

from .classification import ClassificationIndex, Triple
from .config import DEFAULT_PITY_TABLE, MAX_DUPE_STREAK
from .state import GameState

log = logging.getLogger("stampslot.engine")

MODE_AUTO = "auto"
MODE_TICKET = "ticket"
SPIN_MODES = (MODE_AUTO, MODE_TICKET)

CLOSE_POOL_SIZE = 12
PAGE_WEIGHT = 3
ROW_WEIGHT = 2
COLUMN_WEIGHT = 1


class RandomSource(Protocol):
    def random(self) -> float: ...


def rand_int(rng: RandomSource, lo: int, hi: int) -> int:
    """Uniform integer in [lo, hi] derived from a single ``random()`` draw."""
    return lo + int(rng.random() * (hi - lo + 1))


def _clamp_streak(value: Any) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(MAX_DUPE_STREAK, v))


# -----------------------------
# Affordability & cost
# -----------------------------
def can_spin(state: GameState, cost_per_spin: int, mode: str = MODE_TICKET) -> bool:
    if mode == MODE_AUTO and state.free_spins_left > 0:
        return True
    return state.bookmark_tickets >= cost_per_spin


def consume_spin(state: GameState, cost_per_spin: int, mode: str = MODE_TICKET) -> bool:
    """Pay for one spin. Returns True when a free spin was used instead of tickets."""
    if mode == MODE_AUTO and state.free_spins_left > 0:
        state.free_spins_left -= 1
        return True
    state.bookmark_tickets = max(0, state.bookmark_tickets - cost_per_spin)
    return False


# -----------------------------
# Pity
# -----------------------------
def count_remaining_valid_unstamped(state: GameState, index: ClassificationIndex) -> int:
    return sum(1 for t in index.valid_all if not state.stamps[t.x][t.y][t.z])


def pity_probability(pity_table: Sequence[float], streak: int) -> float:
    ds = _clamp_streak(streak)
    return pity_table[ds] if ds < len(pity_table) else 0.0


def should_trigger_pity(
    state: GameState,
    index: ClassificationIndex,
    rng: RandomSource,
    pity_table: Sequence[float] = DEFAULT_PITY_TABLE,
) -> bool:
    if count_remaining_valid_unstamped(state, index) <= 0:
        return False
    p = pity_probability(pity_table, state.dupe_streak)
    if p >= 1:
        return True
    return rng.random() < p


# -----------------------------
# Selection
# -----------------------------
def roll_random_valid(index: ClassificationIndex, rng: RandomSource) -> Triple:
    if not index.valid_all:
        raise ValueError("classification index has no valid codes")
    return index.valid_all[rand_int(rng, 0, len(index.valid_all) - 1)]


def closeness(candidate: Triple, base: Triple) -> int:
    return (
        abs(candidate.x - base.x) * PAGE_WEIGHT
        + abs(candidate.y - base.y) * ROW_WEIGHT
        + abs(candidate.z - base.z) * COLUMN_WEIGHT
    )


def pick_prefer_close(candidates: Sequence[Triple], base: Triple, rng: RandomSource) -> Triple:
    """Pick uniformly among the candidates closest to ``base``."""
    if not candidates:
        raise ValueError("no candidates to pick from")
    if len(candidates) == 1:
        return candidates[0]
    scored = sorted(candidates, key=lambda c: closeness(c, base))
    top_n = min(CLOSE_POOL_SIZE, len(scored))
    return scored[rand_int(rng, 0, top_n - 1)]


def _resolve_base(state: GameState, index: ClassificationIndex, rng: RandomSource) -> Triple:
    code = state.last_result_code
    if code and index.is_valid_code(code):
        return Triple.from_code(code)
    return roll_random_valid(index, rng)


def roll_new_guaranteed(
    state: GameState,
    index: ClassificationIndex,
    rng: RandomSource,
    base: Optional[Triple] = None,
) -> Triple:
    """
    Draw an unstamped valid code near ``base``.

    Pools are tried in order: same page, same row digit on any page, anything
    left. A complete collection falls back to a plain random draw.
    """
    if base is None:
        base = _resolve_base(state, index, rng)

    def unstamped(pool: Sequence[Triple]) -> List[Triple]:
        return [t for t in pool if not state.stamps[t.x][t.y][t.z]]

    tiers = (
        ("page", unstamped(index.valid_by_page[base.x])),
        ("row", unstamped([t for t in index.valid_all if t.y == base.y])),
        ("all", unstamped(index.valid_all)),
    )
    for name, pool in tiers:
        if pool:
            log.debug("Guaranteed-new from %s pool (%d candidates, base %s)", name, len(pool), base.code)
            return pick_prefer_close(pool, base, rng)

    log.debug("Guaranteed-new requested on a complete collection; using a random draw")
    return roll_random_valid(index, rng)


def update_dupe_streak(state: GameState, is_new: bool) -> None:
    if is_new:
        state.dupe_streak = 0
    else:
        state.dupe_streak = min(MAX_DUPE_STREAK, _clamp_streak(state.dupe_streak) + 1)


def record_spin_stats(state: GameState, is_new: bool) -> None:
    state.stats.total_spins += 1
    if is_new:
        state.stats.total_new += 1
    else:
        state.stats.total_dupe += 1
