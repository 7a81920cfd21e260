"""Classification index: the fixed table of valid 3-digit codes and their labels."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .config import read_mapping_file
from .errors import ClassificationError

log = logging.getLogger("stampslot.classification")

_CODE_RE = re.compile(r"^[0-9]{3}$")


@dataclass(frozen=True)
class Triple:
    x: int
    y: int
    z: int
    code: str

    @property
    def page(self) -> int:
        return self.x

    @classmethod
    def from_code(cls, code: str) -> "Triple":
        if not isinstance(code, str) or not _CODE_RE.match(code):
            raise ValueError(f"not a 3-digit code: {code!r}")
        return cls(int(code[0]), int(code[1]), int(code[2]), code)

    @classmethod
    def of(cls, x: int, y: int, z: int) -> "Triple":
        return cls(x, y, z, f"{x}{y}{z}")


def normalize_code(raw: Any) -> Optional[str]:
    """Zero-pad a code to 3 digits; None when it is not three decimal digits."""
    if raw is None or isinstance(raw, bool):
        return None
    text = str(raw).strip().zfill(3)
    return text if _CODE_RE.match(text) else None


class ClassificationIndex:
    """
    Read-only lookup built once from ``{code, label}`` records.

    Codes absent from the source are invalid for the whole session: the engine
    never draws them and the album shows them as pre-filled.
    """

    def __init__(self, labels: Mapping[str, str]):
        self._labels: Dict[str, str] = dict(labels)
        valid_all: List[Triple] = []
        by_page: List[List[Triple]] = [[] for _ in range(10)]
        for code in self._labels:
            t = Triple.from_code(code)
            valid_all.append(t)
            by_page[t.x].append(t)
        self.valid_all: Tuple[Triple, ...] = tuple(valid_all)
        self.valid_by_page: Tuple[Tuple[Triple, ...], ...] = tuple(tuple(p) for p in by_page)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "ClassificationIndex":
        labels: Dict[str, str] = {}
        for rec in records:
            if not isinstance(rec, Mapping):
                log.debug("Skipping non-mapping record: %r", rec)
                continue
            raw_code = rec.get("code", rec.get("ndc"))
            code = normalize_code(raw_code)
            label = rec.get("label", rec.get("subject"))
            label = "" if label is None else str(label).strip()
            if code is None or not label:
                log.debug("Skipping record without a usable code/label: %r", rec)
                continue
            labels[code] = label
        return cls(labels)

    # -----------------------------
    # Lookups
    # -----------------------------
    @staticmethod
    def triple_to_code(x: int, y: int, z: int) -> str:
        return f"{x}{y}{z}"

    def is_valid_code(self, code: str) -> bool:
        return code in self._labels

    def is_valid_cell(self, x: int, y: int, z: int) -> bool:
        return self.is_valid_code(self.triple_to_code(x, y, z))

    def get_label(self, code: str) -> Optional[str]:
        return self._labels.get(code)

    @property
    def valid_count(self) -> int:
        return len(self.valid_all)

    def page_valid_count(self, page: int) -> int:
        return len(self.valid_by_page[page])

    def row_valid_columns(self, page: int, row: int) -> List[int]:
        return [t.z for t in self.valid_by_page[page] if t.y == row]

    def __len__(self) -> int:
        return len(self.valid_all)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code in self._labels


def load_classification_file(path: str | Path) -> ClassificationIndex:
    """Load a JSON/YAML list of ``{code, label}`` (or legacy ``{ndc, subject}``) records."""
    p = Path(path)
    if not p.exists():
        raise ClassificationError(f"classification file not found: {p}")
    try:
        data = read_mapping_file(p)
    except (ValueError, yaml.YAMLError) as e:
        raise ClassificationError(f"cannot parse classification file {p}: {e}") from e
    if not isinstance(data, list):
        raise ClassificationError("classification root must be a list of records")
    index = ClassificationIndex.from_records(data)
    if not index.valid_count:
        raise ClassificationError(f"no valid codes in {p}")
    log.info("Loaded %d valid codes from %s", index.valid_count, p)
    return index
