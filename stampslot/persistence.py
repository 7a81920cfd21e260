"""JSON file store for the game state (stands in for browser local storage)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .errors import PersistenceError
from .state import GameState, create_initial_state, restore_state
from .utils.io_atomic import write_json_atomic

log = logging.getLogger("stampslot.persistence")


class StateStore:
    def __init__(
        self, path: str | Path, start_tickets: int = 30, index: Any = None, free_spins: int = 0
    ) -> None:
        self.path = Path(path)
        self.start_tickets = start_tickets
        self.free_spins = free_spins
        self.index = index

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> GameState:
        """Return the saved state, or a fresh one when the save is missing or unusable."""
        if not self.path.exists():
            return self._fresh()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("Failed to load state from %s; resetting. (%s)", self.path, e)
            return self._fresh()
        return restore_state(
            payload, start_tickets=self.start_tickets, index=self.index, free_spins=self.free_spins
        )

    def _fresh(self) -> GameState:
        return create_initial_state(start_tickets=self.start_tickets, free_spins=self.free_spins)

    def save(self, state: GameState) -> None:
        try:
            write_json_atomic(self.path, state.to_dict())
        except OSError as e:
            log.warning("Failed to save state to %s: %s", self.path, e)
            raise PersistenceError(f"failed to save state: {e}") from e

    def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True


class MemoryStore:
    """Keeps the last saved payload in memory; used by simulations and tests."""

    def __init__(self, payload: Optional[dict] = None, start_tickets: int = 30, free_spins: int = 0) -> None:
        self.payload = payload
        self.start_tickets = start_tickets
        self.free_spins = free_spins
        self.saves = 0

    def _fresh(self) -> GameState:
        return create_initial_state(start_tickets=self.start_tickets, free_spins=self.free_spins)

    def load(self) -> GameState:
        if self.payload is None:
            return self._fresh()
        return restore_state(self.payload, start_tickets=self.start_tickets, free_spins=self.free_spins)

    def save(self, state: GameState) -> None:
        self.payload = state.to_dict()
        self.saves += 1

    def clear(self) -> bool:
        had = self.payload is not None
        self.payload = None
        return had
