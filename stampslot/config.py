"""Game configuration defaults, validation and file loading."""

from __future__ import annotations

import json
import logging
import math
import warnings
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from .errors import ConfigValidationError

log = logging.getLogger("stampslot.config")

_issued_deprecations = set()

MAX_DUPE_STREAK = 7

# Escalates late; index = dupe streak, last entry always triggers.
DEFAULT_PITY_TABLE: Tuple[float, ...] = (0.00, 0.10, 0.20, 0.35, 0.55, 0.75, 0.90, 1.00)

# Keys carried over from the browser save era.
DEPRECATED_KEY_MAP: Dict[str, str] = {
    "ticketsPerExtraSpin": "cost_per_spin",
    "startTickets": "start_tickets",
    "freeSpinsPerDay": "free_spins_per_day",
    "pityTable": "pity_table",
}

_INT_FIELDS = (
    "cost_per_spin",
    "start_tickets",
    "free_spins_per_day",
    "new_bonus",
    "dupe_bonus",
    "row_complete_bonus",
    "page_complete_bonus",
    "triple_bonus",
    "straight_bonus",
    "sandwich_bonus",
    "zero_tail_bonus",
    "history_limit",
)
_NON_NEGATIVE_FIELDS = ("cost_per_spin", "start_tickets", "free_spins_per_day", "history_limit")


@dataclass(frozen=True)
class RewardConfig:
    """Reward amounts; anything <= 0 is left out of the breakdown."""

    new_bonus: int = 2
    dupe_bonus: int = 1
    row_complete_bonus: int = 5
    page_complete_bonus: int = 50
    triple_bonus: int = 10
    straight_bonus: int = 5
    sandwich_bonus: int = 3
    zero_tail_bonus: int = 5


@dataclass(frozen=True)
class GameConfig:
    cost_per_spin: int = 10
    start_tickets: int = 30
    free_spins_per_day: int = 0
    pity_table: Tuple[float, ...] = DEFAULT_PITY_TABLE
    new_bonus: int = 2
    dupe_bonus: int = 1
    row_complete_bonus: int = 5
    page_complete_bonus: int = 50
    triple_bonus: int = 10
    straight_bonus: int = 5
    sandwich_bonus: int = 3
    zero_tail_bonus: int = 5
    history_limit: int = 200
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def rewards(self) -> RewardConfig:
        return RewardConfig(
            new_bonus=self.new_bonus,
            dupe_bonus=self.dupe_bonus,
            row_complete_bonus=self.row_complete_bonus,
            page_complete_bonus=self.page_complete_bonus,
            triple_bonus=self.triple_bonus,
            straight_bonus=self.straight_bonus,
            sandwich_bonus=self.sandwich_bonus,
            zero_tail_bonus=self.zero_tail_bonus,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameConfig":
        """Build a config from a validated mapping; unknown keys land in ``extra``."""
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                extra[key] = value
                continue
            if key == "pity_table":
                kwargs[key] = tuple(float(p) for p in value)
            else:
                kwargs[key] = int(value)
        if extra:
            log.warning("Ignoring unknown config keys: %s", sorted(extra))
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out.pop("extra", None)
        out["pity_table"] = list(self.pity_table)
        return out


def _is_int_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(data: Mapping[str, Any]) -> List[str]:
    """Return a flat list of hard validation errors for a config mapping."""
    errors: List[str] = []
    if not isinstance(data, Mapping):
        return ["config root must be a mapping"]

    for key in _INT_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if not _is_int_like(value):
            errors.append(f"{key} must be an integer")
        elif key in _NON_NEGATIVE_FIELDS and value < 0:
            errors.append(f"{key} must be >= 0")

    if "pity_table" in data:
        table = data["pity_table"]
        if not isinstance(table, (list, tuple)):
            errors.append("pity_table must be a list")
        elif len(table) != MAX_DUPE_STREAK + 1:
            errors.append(f"pity_table must have exactly {MAX_DUPE_STREAK + 1} entries")
        elif not all(_is_number(p) for p in table):
            errors.append("pity_table entries must be numbers")
        elif not all(math.isfinite(p) for p in table):
            errors.append("pity_table entries must be finite")
        else:
            if any(p < 0 or p > 1 for p in table):
                errors.append("pity_table entries must be within [0, 1]")
            if any(b < a for a, b in zip(table, table[1:])):
                errors.append("pity_table must be non-decreasing")
            if table[-1] != 1:
                errors.append("pity_table must end with 1.0 so the streak is bounded")

    return errors


def _warn_once(key: str, message: str) -> None:
    if key not in _issued_deprecations:
        warnings.warn(message, DeprecationWarning, stacklevel=3)
        _issued_deprecations.add(key)


def reset_deprecation_warnings() -> None:
    _issued_deprecations.clear()


def normalize_deprecated_keys(data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Dict[str, str]]]:
    """Rename legacy camelCase keys in place; the new spelling wins on conflict."""
    records: List[Dict[str, str]] = []
    for old_key, new_key in DEPRECATED_KEY_MAP.items():
        if old_key not in data:
            continue
        _warn_once(old_key, f"config key '{old_key}' is deprecated; use '{new_key}'")
        if new_key in data:
            data.pop(old_key)
            records.append({"old": old_key, "new": new_key, "action": "kept_new_dropped_old"})
        else:
            data[new_key] = data.pop(old_key)
            records.append({"old": old_key, "new": new_key, "action": "migrated"})
    return data, records


def read_mapping_file(path: str | Path) -> Any:
    """Parse a JSON or YAML file by suffix."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text)
    return json.loads(text or "null")


def load_config_file(path: str | Path) -> GameConfig:
    data = read_mapping_file(path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(["config root must be a mapping"])
    data, _ = normalize_deprecated_keys(data)
    errors = validate_config(data)
    if errors:
        raise ConfigValidationError(errors)
    return GameConfig.from_dict(data)
