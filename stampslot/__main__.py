"""
Module entrypoint:

  python -m stampslot spin --classification ndc.json --save save.json
"""
from __future__ import annotations

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
