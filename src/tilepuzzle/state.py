"""Puzzle color state.

Three ``(n_cells, n_stickers)`` integer matrices:

* ``committed``: the colors as seen by everyone else;
* ``staging``: where a twist writes while it is in progress;
* ``original``: the solved coloring, used to switch stickers back on
  when toggling.

Outside a twist, ``committed`` equals ``staging``.  A twist reads from
``committed``, writes to ``staging`` and then commits, so a partially
applied twist is never observable.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

import numpy as np

from .errors import StateFormatError

OFF_COLOR = -1


class State:
    def __init__(self, n_cells: int, n_stickers: int) -> None:
        if n_cells < 0 or n_stickers < 0:
            raise ValueError(f"State needs non-negative sizes, got {n_cells}x{n_stickers}")
        self.num_cells = n_cells
        self.num_stickers = n_stickers
        self.reset()

    def reset(self) -> None:
        """Back to solved: every sticker of cell *c* has color *c*."""
        solved = np.repeat(np.arange(self.num_cells, dtype=np.int32)[:, None], self.num_stickers, axis=1)
        self.original = solved
        self.committed = solved.copy()
        self.staging = solved.copy()

    def __repr__(self) -> str:
        return f"State({self.num_cells}x{self.num_stickers}, solved={self.is_solved})"

    # ── Access ──────────────────────────────────────────────────────

    def get(self, cell: int, sticker: int) -> int:
        return int(self.committed[cell, sticker])

    def set(self, cell: int, sticker: int, color: int) -> None:
        """Stage a color; nothing is visible until :meth:`commit`."""
        self.staging[cell, sticker] = color

    def toggle(self, cell: int, sticker: int) -> None:
        if self.staging[cell, sticker] == OFF_COLOR:
            self.staging[cell, sticker] = self.original[cell, sticker]
        else:
            self.staging[cell, sticker] = OFF_COLOR

    def commit(self, cells: Optional[Union[int, Iterable[int]]] = None) -> None:
        """Copy staged colors to the committed matrix.

        With no argument everything is committed, otherwise just the
        given cell or cells.
        """
        if cells is None:
            self.committed[:] = self.staging
        elif isinstance(cells, (int, np.integer)):
            self.committed[cells] = self.staging[cells]
        else:
            rows = list(cells)
            self.committed[rows] = self.staging[rows]

    # ── Queries ─────────────────────────────────────────────────────

    @property
    def is_solved(self) -> bool:
        if self.num_stickers == 0:
            return True
        return bool(np.all(self.committed == self.committed[:, :1]))

    @property
    def is_all_on(self) -> bool:
        return bool(np.array_equal(self.committed, self.original))

    # ── Persistence ─────────────────────────────────────────────────

    def save_cell(self, cell: int) -> str:
        """Two lowercase hex digits per sticker."""
        return "".join(_hex_color(int(c)) for c in self.committed[cell])

    def load_cell(self, cell: int, saved: str) -> None:
        self.staging[cell] = self._parse_cell(cell, saved)
        self.commit(cell)

    def _parse_cell(self, cell: int, saved: str) -> List[int]:
        if len(saved) != 2 * self.num_stickers:
            raise StateFormatError(
                f"Cell {cell}: expected {2 * self.num_stickers} hex digits, got {len(saved)}"
            )
        try:
            colors = [int(saved[i : i + 2], 16) for i in range(0, len(saved), 2)]
        except ValueError:
            raise StateFormatError(f"Cell {cell}: {saved!r} is not hexadecimal") from None
        colors = [OFF_COLOR if c == 0xFF else c for c in colors]
        for c in colors:
            if c != OFF_COLOR and not 0 <= c < self.num_cells:
                raise StateFormatError(f"Cell {cell}: color {c} out of range for {self.num_cells} cells")
        return colors

    def to_strings(self) -> List[str]:
        return [self.save_cell(c) for c in range(self.num_cells)]

    def from_strings(self, lines: Iterable[str]) -> None:
        lines = [line.strip() for line in lines if line.strip()]
        if len(lines) != self.num_cells:
            raise StateFormatError(f"Expected {self.num_cells} cells, got {len(lines)}")
        # Every row is checked before anything is staged.
        parsed = np.array(
            [self._parse_cell(c, line) for c, line in enumerate(lines)], dtype=np.int32
        ).reshape(self.num_cells, self.num_stickers)
        self.staging[:] = parsed
        self.commit()


def _hex_color(color: int) -> str:
    # The off color is stored as ff so every sticker stays two digits.
    return "ff" if color == OFF_COLOR else f"{color:02x}"
