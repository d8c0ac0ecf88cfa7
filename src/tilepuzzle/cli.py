"""tilepuzzle command-line interface."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config import PRESETS, PuzzleConfig, preset
from .errors import ConfigError, PuzzleError
from .io import load_config, load_puzzle_session, load_session_config, save_puzzle_session
from .logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Twisty puzzles on {p,q} tilings")
    parser.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", dest="log_file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("presets", help="List the built-in puzzle presets")

    info = sub.add_parser("info", help="Build a puzzle and print its topology and counts")
    _add_puzzle_source(info)

    scramble = sub.add_parser("scramble", help="Build, scramble and save a session")
    _add_puzzle_source(scramble)
    scramble.add_argument("--twists", type=int, default=20)
    scramble.add_argument("--seed", type=int)
    scramble.add_argument("--out", dest="output_path", required=True)

    render = sub.add_parser("render", help="Render a puzzle's stickers to PNG")
    _add_puzzle_source(render)
    render.add_argument("--session", dest="session_path", help="Session file to restore first")
    render.add_argument("--out", dest="output_path", required=True)
    render.add_argument("--dpi", type=int, default=150)
    render.add_argument("--highlight", type=int, help="Outline the circles of this twist axis")

    gap = sub.add_parser("gap", help="Write the puzzle group as a GAP script")
    _add_puzzle_source(gap)
    gap.add_argument("--out", dest="output_path", required=True)

    return parser


def _add_puzzle_source(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--preset", choices=sorted(PRESETS), default="cube")
    group.add_argument("--config", dest="config_path", help="Puzzle config JSON file")


def _config_from_args(args) -> PuzzleConfig:
    if getattr(args, "session_path", None):
        return load_session_config(args.session_path)
    if args.config_path:
        return load_config(args.config_path)
    return preset(args.preset)


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    if args.command == "presets":
        for name in sorted(PRESETS):
            config = PRESETS[name]()
            print(f"{name}: {config.display_name} ({config.geometry.value})")
        return

    try:
        if args.command == "info":
            _cmd_info(args)
        elif args.command == "scramble":
            _cmd_scramble(args)
        elif args.command == "render":
            _cmd_render(args)
        elif args.command == "gap":
            _cmd_gap(args)
    except (PuzzleError, OSError, RuntimeError) as exc:
        print(exc)
        raise SystemExit(1)


def _build(args):
    from .puzzle import Puzzle

    return Puzzle.build(_config_from_args(args))


def _cmd_info(args) -> None:
    puzzle = _build(args)
    for line in _info_lines(puzzle):
        print(line)


def _info_lines(puzzle) -> List[str]:
    return [
        f"puzzle: {puzzle.config.display_name}",
        f"geometry: {puzzle.geometry.value}",
        f"colors: {len(puzzle.masters)}",
        f"tiles: {puzzle.num_tiles}",
        f"cells: {puzzle.graph.num_cells}",
        f"stickers per cell: {puzzle.num_stickers}",
        f"twist axes: {len(puzzle.all_twist_data)}",
        f"topology: {puzzle.topology}",
    ]


def _cmd_scramble(args) -> None:
    puzzle = _build(args)
    puzzle.scramble(args.twists, np.random.default_rng(args.seed))
    save_puzzle_session(puzzle, args.output_path)
    if puzzle.is_toggling:
        print(f"Scrambled {puzzle.twist_history.scrambles} toggles; all on={puzzle.state.is_all_on}")
    else:
        print(f"Scrambled {puzzle.twist_history.scrambles} twists; solved={puzzle.state.is_solved}")
    print(f"Saved {args.output_path}")


def _cmd_render(args) -> None:
    from .render import render_puzzle_png

    puzzle = _build(args)
    if args.session_path:
        load_puzzle_session(puzzle, args.session_path)
    highlight = None
    if args.highlight is not None:
        if not 0 <= args.highlight < len(puzzle.all_twist_data):
            raise ConfigError(f"No twist axis {args.highlight}; the puzzle has {len(puzzle.all_twist_data)}")
        highlight = puzzle.make_twist(args.highlight)
    render_puzzle_png(puzzle, args.output_path, dpi=args.dpi, highlight=highlight)
    print(f"Saved {args.output_path}")


def _cmd_gap(args) -> None:
    from .gap import gap_generators, gap_script

    puzzle = _build(args)
    generators = gap_generators(puzzle)
    Path(args.output_path).write_text(gap_script(generators), encoding="utf-8")
    print(f"{len(generators)} generators")
    print(f"Saved {args.output_path}")
