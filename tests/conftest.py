"""Shared fixtures for the stampslot test-suite."""

from __future__ import annotations

import sys
import warnings
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

warnings.simplefilter("default", DeprecationWarning)

from tests._index_helpers import full_index  # noqa: E402


@pytest.fixture(scope="session")
def full_idx():
    """Index where every one of the 1000 codes is valid; never mutated by tests."""
    return full_index()


@pytest.fixture
def save_path(tmp_path):
    return tmp_path / "save" / "album.json"
