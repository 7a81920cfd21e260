from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__ as STAMPSLOT_VERSION
from .classification import ClassificationIndex, load_classification_file
from .commands import init_run, status_run
from .config import GameConfig, load_config_file, normalize_deprecated_keys, read_mapping_file, validate_config
from .engine import MODE_AUTO, MODE_TICKET, can_spin
from .errors import ClassificationError, ConfigValidationError
from .journal import SpinJournal
from .logging_utils import setup_logging
from .persistence import StateStore
from .session import SpinOutcome, SpinSession

log = logging.getLogger("stampslot")


# ------------------------------- Helpers ------------------------------------ #


def _fail(msg: str) -> int:
    print(f"failed: {msg}", file=sys.stderr)
    return 2


def _load_inputs(args: argparse.Namespace) -> Tuple[ClassificationIndex, GameConfig]:
    index = load_classification_file(args.classification)
    config_path = getattr(args, "config", None)
    config = load_config_file(config_path) if config_path else GameConfig()
    return index, config


def _rng(seed: Optional[int]) -> random.Random:
    return random.Random(seed) if seed is not None else random.Random()


def _format_outcome(n: int, outcome: SpinOutcome) -> str:
    kind = "NEW " if outcome.is_new else "dupe"
    pity = " (pity)" if outcome.pity_triggered else ""
    parts = ", ".join(f"{e.label} +{e.amount}" for e in outcome.breakdown) or "no reward"
    return f"#{n:<4} {outcome.code} {kind}{pity}  {outcome.label}  [{parts}]  tickets={outcome.tickets_after}"


# ------------------------------- Commands ----------------------------------- #


def _cmd_init(args: argparse.Namespace) -> int:
    return init_run(args.dir)


def _cmd_validate(args: argparse.Namespace) -> int:
    p = Path(args.path)
    try:
        data = read_mapping_file(p)
    except FileNotFoundError:
        print(f"failed validation: file not found: {p}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"failed validation: cannot parse {p}: {e}", file=sys.stderr)
        return 2
    if data is None:
        data = {}
    if not isinstance(data, dict):
        errs = ["config root must be a mapping"]
    else:
        data, _ = normalize_deprecated_keys(data)
        errs = validate_config(data)
    if errs:
        print("failed validation:", file=sys.stderr)
        for e in errs:
            print(f"- {e}", file=sys.stderr)
        return 2
    print("ok")
    return 0


def _cmd_spin(args: argparse.Namespace) -> int:
    try:
        index, config = _load_inputs(args)
    except (ClassificationError, ConfigValidationError) as e:
        return _fail(str(e))

    store = StateStore(
        args.save, start_tickets=config.start_tickets, index=index, free_spins=config.free_spins_per_day
    )
    session = SpinSession(index, config, rng=_rng(args.seed), store=store)
    journal = SpinJournal(args.journal) if args.journal else None

    for _ in range(max(0, args.count)):
        outcome = session.spin(args.mode)
        if not outcome.accepted:
            print(
                f"Cannot spin: need {config.cost_per_spin} tickets, have {outcome.tickets_after}",
                file=sys.stderr,
            )
            return 1
        n = session.state.stats.total_spins
        print(_format_outcome(n, outcome))
        if outcome.page_completed_now:
            print(f"      Page {outcome.code[0]}xx complete!")
        for w in outcome.warnings:
            print(f"warning: {w}", file=sys.stderr)
        if journal is not None:
            journal.record(n, outcome)
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    try:
        index, config = _load_inputs(args)
    except (ClassificationError, ConfigValidationError) as e:
        return _fail(str(e))
    state = StateStore(
        args.save, start_tickets=config.start_tickets, index=index, free_spins=config.free_spins_per_day
    ).load()
    return status_run(state, index)


def _cmd_simulate(args: argparse.Namespace) -> int:
    try:
        index, config = _load_inputs(args)
    except (ClassificationError, ConfigValidationError) as e:
        return _fail(str(e))

    session = SpinSession(index, config, rng=_rng(args.seed))
    topped_up = 0
    longest_dupe_run = 0
    pity_count = 0
    earned = 0
    while session.remaining() > 0 and session.state.stats.total_spins < args.max_spins:
        if not can_spin(session.state, config.cost_per_spin):
            need = config.cost_per_spin - session.state.bookmark_tickets
            session.state.bookmark_tickets += need
            topped_up += need
        outcome = session.spin(MODE_TICKET)
        earned += outcome.ticket_delta
        pity_count += int(outcome.pity_triggered)
        longest_dupe_run = max(longest_dupe_run, session.state.dupe_streak)

    stats = session.state.stats
    complete = session.remaining() == 0
    print(f"Spins: {stats.total_spins} (new {stats.total_new}, dupes {stats.total_dupe})")
    print(f"Collection: {'complete' if complete else f'{session.remaining()} codes left'}")
    print(f"Pity triggers: {pity_count}")
    print(f"Longest duplicate run: {longest_dupe_run}")
    print(f"Tickets earned: {earned}  topped up: {topped_up}")
    return 0


def _cmd_reset(args: argparse.Namespace) -> int:
    removed = StateStore(args.save).clear()
    print("Save removed." if removed else "No save to remove.")
    return 0


# ------------------------------- Parser ------------------------------------- #


def _add_inputs(p: argparse.ArgumentParser, *, save_required: bool) -> None:
    p.add_argument("--classification", required=True, help="Path to the classification list (JSON or YAML)")
    p.add_argument("--config", default=None, help="Path to a game config (JSON or YAML)")
    if save_required:
        p.add_argument("--save", required=True, help="Path to the JSON save file")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stampslot", description="Stamp album gacha engine")
    parser.add_argument("--version", action="version", version=f"%(prog)s {STAMPSLOT_VERSION}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v INFO, -vv DEBUG")

    sub = parser.add_subparsers(dest="subcommand", required=False)

    p_init = sub.add_parser("init", help="Scaffold a config and sample classification")
    p_init.add_argument("dir", nargs="?", default=".")
    p_init.set_defaults(func=_cmd_init)

    p_val = sub.add_parser("validate", help="Validate a game config (JSON or YAML)")
    p_val.add_argument("path", help="Path to the config file")
    p_val.set_defaults(func=_cmd_validate)

    p_spin = sub.add_parser("spin", help="Spin against a save file")
    _add_inputs(p_spin, save_required=True)
    p_spin.add_argument("--count", type=int, default=1, help="Number of spins (default 1)")
    p_spin.add_argument("--seed", type=int, default=None, help="Seed the random source")
    p_spin.add_argument("--mode", choices=[MODE_AUTO, MODE_TICKET], default=MODE_AUTO)
    p_spin.add_argument("--journal", default=None, help="Append one CSV row per spin to this path")
    p_spin.set_defaults(func=_cmd_spin)

    p_status = sub.add_parser("status", help="Show album progress for a save file")
    _add_inputs(p_status, save_required=True)
    p_status.set_defaults(func=_cmd_status)

    p_sim = sub.add_parser("simulate", help="Play a fresh in-memory album until complete")
    _add_inputs(p_sim, save_required=False)
    p_sim.add_argument("--seed", type=int, default=None)
    p_sim.add_argument("--max-spins", type=int, default=100_000)
    p_sim.set_defaults(func=_cmd_simulate)

    p_reset = sub.add_parser("reset", help="Delete a save file")
    p_reset.add_argument("--save", required=True)
    p_reset.set_defaults(func=_cmd_reset)

    return parser


def main(argv: List[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, logger_name="stampslot")

    if not hasattr(args, "func") or args.func is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
