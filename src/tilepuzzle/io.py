from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from .config import PuzzleConfig
from .errors import ConfigError, StateFormatError
from .state import State
from .twist_data import IdentifiedTwistData
from .twists import TwistHistory, TwistList

PathLike = Union[str, Path]

SESSION_FORMAT = 1


# ── Configuration ───────────────────────────────────────────────────


def load_config(path: PathLike) -> PuzzleConfig:
    """Read a config document; malformed JSON or fields raise :class:`ConfigError`."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Config {path} is not valid JSON: {exc}") from exc
    return config_from_dict(data, path)


def config_from_dict(data: Any, source: PathLike) -> PuzzleConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"Config {source} must be a JSON object")
    try:
        return PuzzleConfig.from_dict(data)
    except KeyError as exc:
        raise ConfigError(f"Config {source} is missing {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Config {source} has a bad value: {exc}") from exc


def save_config(config: PuzzleConfig, path: PathLike) -> None:
    Path(path).write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")


# ── State ───────────────────────────────────────────────────────────


def save_state(state: State, path: PathLike) -> None:
    """One line of hex colors per master cell."""
    Path(path).write_text("\n".join(state.to_strings()) + "\n", encoding="utf-8")


def load_state(state: State, path: PathLike) -> None:
    state.from_strings(Path(path).read_text(encoding="utf-8").splitlines())


# ── Twist history ───────────────────────────────────────────────────


def history_to_lines(history: TwistHistory) -> List[str]:
    return [f"scrambles={history.scrambles}"] + history.twists.to_blocks()


def history_from_lines(lines: Sequence[str], all_twist_data: Sequence[IdentifiedTwistData]) -> TwistHistory:
    lines = [line for line in lines if line.strip()]
    history = TwistHistory()
    if not lines:
        return history

    header, blocks = lines[0].strip(), lines[1:]
    key, _, value = header.partition("=")
    if key != "scrambles":
        raise StateFormatError(f"History must start with 'scrambles=N', got {header!r}")
    try:
        history.scrambles = int(value)
    except ValueError:
        raise StateFormatError(f"Bad scramble count {value!r}") from None
    history.twists = TwistList.from_blocks(blocks, all_twist_data)
    return history


def save_history(history: TwistHistory, path: PathLike) -> None:
    Path(path).write_text("\n".join(history_to_lines(history)) + "\n", encoding="utf-8")


def load_history(path: PathLike, all_twist_data: Sequence[IdentifiedTwistData]) -> TwistHistory:
    return history_from_lines(Path(path).read_text(encoding="utf-8").splitlines(), all_twist_data)


# ── Sessions ────────────────────────────────────────────────────────


def session_to_dict(puzzle) -> Dict[str, Any]:
    """Config id, colors and history of a built puzzle."""
    return {
        "format": SESSION_FORMAT,
        "puzzle_id": puzzle.config.id,
        "config": puzzle.config.to_dict(),
        "state": puzzle.state.to_strings(),
        "history": history_to_lines(puzzle.twist_history),
    }


def save_puzzle_session(puzzle, path: PathLike) -> None:
    Path(path).write_text(json.dumps(session_to_dict(puzzle), indent=2), encoding="utf-8")


def load_puzzle_session(puzzle, path: PathLike) -> None:
    """Restore state and history saved for the same puzzle into *puzzle*."""
    data = _read_session(path)
    if data.get("format") != SESSION_FORMAT:
        raise StateFormatError(f"Unsupported session format {data.get('format')!r}")
    if data.get("puzzle_id") != puzzle.config.id:
        raise StateFormatError(
            f"Session was saved for {data.get('puzzle_id')!r}, not {puzzle.config.id!r}"
        )
    # Nothing is applied until both parts have parsed.
    history = history_from_lines(data.get("history", []), puzzle.all_twist_data)
    puzzle.state.from_strings(data.get("state", []))
    puzzle.twist_history = history


def load_session_config(path: PathLike) -> PuzzleConfig:
    """The configuration stored in a session file, to rebuild the puzzle first."""
    return config_from_dict(_read_session(path).get("config"), path)


def _read_session(path: PathLike) -> Dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as exc:
        raise StateFormatError(f"Session {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise StateFormatError(f"Session {path} must be a JSON object")
    return data
