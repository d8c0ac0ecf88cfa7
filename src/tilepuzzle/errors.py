"""Exception types raised by tilepuzzle."""

from __future__ import annotations


class PuzzleError(Exception):
    """Base class for errors raised while building or driving a puzzle."""


class ConfigError(PuzzleError):
    """The puzzle configuration is inconsistent; the build cannot continue."""


class BuildCancelled(PuzzleError):
    """The status callback asked for the build to stop."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Puzzle building cancelled before: {stage}")
        self.stage = stage


class StateFormatError(PuzzleError, ValueError):
    """A persisted state or twist string could not be parsed."""
