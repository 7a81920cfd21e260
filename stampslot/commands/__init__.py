"""Command entrypoints for CLI wiring."""

from .init_cmd import run as init_run  # noqa: F401
from .status_cmd import run as status_run  # noqa: F401

__all__ = [
    "init_run",
    "status_run",
]
