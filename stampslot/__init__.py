# stampslot/__init__.py
"""
stampslot: spin/reward engine for a 10x10x10 stamp album gacha: classification
index, game state with load-time repair, pity-escalated code selection,
stamp rewards and a small CLI.
"""

__version__ = "1.0.0"

from .classification import ClassificationIndex, Triple, load_classification_file
from .config import DEFAULT_PITY_TABLE, GameConfig, RewardConfig, load_config_file, validate_config
from .engine import (
    can_spin,
    consume_spin,
    count_remaining_valid_unstamped,
    pick_prefer_close,
    roll_new_guaranteed,
    roll_random_valid,
    should_trigger_pity,
    update_dupe_streak,
)
from .errors import ClassificationError, ConfigValidationError, PersistenceError, StampSlotError
from .persistence import StateStore
from .rewards import StampOutcome, apply_stamp_and_rewards
from .session import SpinDraw, SpinOutcome, SpinSession
from .state import GameState, RewardEntry, create_initial_state, restore_state

__all__ = [
    # Classification
    "ClassificationIndex",
    "Triple",
    "load_classification_file",
    # Config
    "DEFAULT_PITY_TABLE",
    "GameConfig",
    "RewardConfig",
    "load_config_file",
    "validate_config",
    # Engine
    "can_spin",
    "consume_spin",
    "count_remaining_valid_unstamped",
    "pick_prefer_close",
    "roll_new_guaranteed",
    "roll_random_valid",
    "should_trigger_pity",
    "update_dupe_streak",
    "StampOutcome",
    "apply_stamp_and_rewards",
    # State
    "GameState",
    "RewardEntry",
    "create_initial_state",
    "restore_state",
    "StateStore",
    # Session
    "SpinDraw",
    "SpinOutcome",
    "SpinSession",
    # Errors
    "StampSlotError",
    "ClassificationError",
    "ConfigValidationError",
    "PersistenceError",
    "__version__",
]
