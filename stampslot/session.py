"""
Spin session: sequences one spin at a time over the engine functions.

A spin is split into ``begin_spin`` (pay, decide pity, pick the code) and
``commit_spin`` (stamp, reward, persist) so a presentation layer can run its
reel animation in between. While a draw is pending, further spin requests
are rejected without touching the state.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Union

from . import engine
from .classification import ClassificationIndex, Triple
from .config import GameConfig
from .errors import PersistenceError
from .rewards import apply_stamp_and_rewards
from .state import (
    GameState,
    HistoryPoint,
    LastOutcome,
    RewardEntry,
    apply_daily_reset,
    create_initial_state,
    set_current_page,
)

log = logging.getLogger("stampslot.session")

REJECT_IN_PROGRESS = "spin_in_progress"
REJECT_INSUFFICIENT = "insufficient_tickets"


@dataclass(frozen=True)
class SpinDraw:
    result: Triple
    pity_triggered: bool
    used_free_spin: bool
    mode: str


@dataclass
class SpinOutcome:
    accepted: bool
    reason: Optional[str] = None
    code: Optional[str] = None
    label: Optional[str] = None
    pity_triggered: bool = False
    is_new: Optional[bool] = None
    ticket_delta: int = 0
    page_completed_now: bool = False
    row_completed_now: bool = False
    breakdown: List[RewardEntry] = field(default_factory=list)
    tickets_after: int = 0
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def rejected(cls, reason: str, tickets: int) -> "SpinOutcome":
        return cls(accepted=False, reason=reason, tickets_after=tickets)


class SpinSession:
    def __init__(
        self,
        index: ClassificationIndex,
        config: Optional[GameConfig] = None,
        state: Optional[GameState] = None,
        rng: Optional[engine.RandomSource] = None,
        store: Any = None,
        today: Optional[date] = None,
    ) -> None:
        self.index = index
        self.config = config or GameConfig()
        self.rng = rng if rng is not None else random.Random()
        self.store = store
        if state is None:
            state = store.load() if store is not None else create_initial_state(
                start_tickets=self.config.start_tickets,
                free_spins=self.config.free_spins_per_day,
                today=today,
            )
        self.state = state
        self._pending: Optional[SpinDraw] = None
        if self.config.free_spins_per_day > 0 and apply_daily_reset(
            self.state, self.config.free_spins_per_day, today
        ):
            self._persist([])

    @property
    def in_progress(self) -> bool:
        return self._pending is not None

    # -----------------------------
    # Spin lifecycle
    # -----------------------------
    def begin_spin(self, mode: str = engine.MODE_TICKET) -> Union[SpinDraw, SpinOutcome]:
        if mode not in engine.SPIN_MODES:
            raise ValueError(f"unknown spin mode: {mode!r}")
        if self._pending is not None:
            log.info("Spin request ignored; a spin is already in progress")
            return SpinOutcome.rejected(REJECT_IN_PROGRESS, self.state.bookmark_tickets)
        if not engine.can_spin(self.state, self.config.cost_per_spin, mode):
            return SpinOutcome.rejected(REJECT_INSUFFICIENT, self.state.bookmark_tickets)

        used_free = engine.consume_spin(self.state, self.config.cost_per_spin, mode)
        pity = engine.should_trigger_pity(self.state, self.index, self.rng, self.config.pity_table)
        if pity:
            log.debug("Pity triggered at streak %d", self.state.dupe_streak)
            result = engine.roll_new_guaranteed(self.state, self.index, self.rng)
        else:
            result = engine.roll_random_valid(self.index, self.rng)

        set_current_page(self.state, result.x)
        self.state.last_result_code = result.code
        self._pending = SpinDraw(result=result, pity_triggered=pity, used_free_spin=used_free, mode=mode)
        return self._pending

    def commit_spin(self, draw: SpinDraw) -> SpinOutcome:
        if self._pending is None or draw is not self._pending:
            raise ValueError("commit_spin called without a matching begin_spin")

        stamp = apply_stamp_and_rewards(self.state, self.index, draw.result, self.config.rewards)
        engine.update_dupe_streak(self.state, stamp.is_new)
        engine.record_spin_stats(self.state, stamp.is_new)
        self.state.last_outcome = LastOutcome(
            is_new=stamp.is_new, ticket_delta=stamp.ticket_delta, breakdown=list(stamp.breakdown)
        )
        self._append_history()
        self._pending = None

        warnings: List[str] = []
        self._persist(warnings)
        return SpinOutcome(
            accepted=True,
            code=draw.result.code,
            label=self.index.get_label(draw.result.code),
            pity_triggered=draw.pity_triggered,
            is_new=stamp.is_new,
            ticket_delta=stamp.ticket_delta,
            page_completed_now=stamp.page_completed_now,
            row_completed_now=stamp.row_completed_now,
            breakdown=list(stamp.breakdown),
            tickets_after=self.state.bookmark_tickets,
            warnings=warnings,
        )

    def spin(self, mode: str = engine.MODE_TICKET) -> SpinOutcome:
        draw = self.begin_spin(mode)
        if isinstance(draw, SpinOutcome):
            return draw
        return self.commit_spin(draw)

    # -----------------------------
    # Other intents
    # -----------------------------
    def select_page(self, page: int) -> List[str]:
        set_current_page(self.state, page)
        warnings: List[str] = []
        self._persist(warnings)
        return warnings

    def reset(self) -> List[str]:
        self._pending = None
        self.state = create_initial_state(
            start_tickets=self.config.start_tickets, free_spins=self.config.free_spins_per_day
        )
        warnings: List[str] = []
        self._persist(warnings)
        return warnings

    def remaining(self) -> int:
        return engine.count_remaining_valid_unstamped(self.state, self.index)

    # -----------------------------
    # Helpers
    # -----------------------------
    def _append_history(self) -> None:
        s = self.state
        s.history.append(
            HistoryPoint(spins=s.stats.total_spins, tickets=s.bookmark_tickets, stamps=s.stamped_count())
        )
        limit = self.config.history_limit
        if limit >= 0 and len(s.history) > limit:
            del s.history[: len(s.history) - limit]

    def _persist(self, warnings: List[str]) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.state)
        except PersistenceError as e:
            # In-memory effects stand; the caller shows the warning.
            warnings.append(f"save failed: {e}")
