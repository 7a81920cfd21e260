# stampslot/journal.py
from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

JOURNAL_COLUMNS: List[str] = [
    "ts",
    "spin",
    "code",
    "label",
    "pity",
    "is_new",
    "ticket_delta",
    "tickets_after",
    "breakdown",
]


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _as_bool_str(x: Any) -> str:
    if x is None:
        return ""
    return "true" if x else "false"


class SpinJournal:
    """Append-only CSV log with one row per accepted spin."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _needs_header(self) -> bool:
        return not self.path.exists() or self.path.stat().st_size == 0

    def record(self, spin_number: int, outcome: Any) -> None:
        if not getattr(outcome, "accepted", False):
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_header = self._needs_header()
        row = {
            "ts": _iso_now(),
            "spin": spin_number,
            "code": outcome.code or "",
            "label": outcome.label or "",
            "pity": _as_bool_str(outcome.pity_triggered),
            "is_new": _as_bool_str(outcome.is_new),
            "ticket_delta": outcome.ticket_delta,
            "tickets_after": outcome.tickets_after,
            "breakdown": json.dumps(
                [e.to_dict() for e in outcome.breakdown], ensure_ascii=False, separators=(",", ":")
            ),
        }
        with self.path.open("a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=JOURNAL_COLUMNS)
            if write_header:
                writer.writeheader()
            writer.writerow(row)


def summarize_journal(path: str | Path) -> Dict[str, int]:
    """Totals over a spin journal: spins, new, dupes, pity triggers, tickets earned."""
    summary = {"spins": 0, "new": 0, "dupes": 0, "pity": 0, "tickets_earned": 0}
    p = Path(path)
    if not p.exists():
        return summary
    with p.open("r", newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            summary["spins"] += 1
            if row.get("is_new") == "true":
                summary["new"] += 1
            else:
                summary["dupes"] += 1
            if row.get("pity") == "true":
                summary["pity"] += 1
            try:
                summary["tickets_earned"] += int(row.get("ticket_delta") or 0)
            except ValueError:
                continue
    return summary
