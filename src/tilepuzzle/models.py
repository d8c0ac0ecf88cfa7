from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Set

from .circles import CircleNE
from .isometry import Isometry
from .polygon import Polygon


@dataclass(eq=False)
class Sticker:
    """One colored piece of a cell.

    *cell_index* is the color class (the master's ``index_of_master``)
    and *sticker_index* the position in the template's sticker order,
    which is the same for every cell.
    """

    cell_index: int
    sticker_index: int
    poly: Polygon

    def __repr__(self) -> str:
        return f"Sticker({self.cell_index}, {self.sticker_index})"


@dataclass(eq=False)
class Cell:
    """A tile of the puzzle.

    Cells live in an arena (:class:`tilepuzzle.cells.CellGraph`); *index*
    is the arena slot and *master* the arena slot of the master cell, or
    ``None`` for masters themselves.  *neighbors* holds the
    ``index_of_master`` of every color class sharing an edge.
    """

    index: int
    boundary: Polygon
    vertex_circle: CircleNE
    isometry: Isometry = field(default_factory=Isometry)
    index_of_master: int = -1
    master: Optional[int] = None
    neighbors: Set[int] = field(default_factory=set)
    stickers: List[Sticker] = field(default_factory=list)

    @property
    def center(self) -> complex:
        return self.boundary.center

    @property
    def is_master(self) -> bool:
        return self.master is None

    @property
    def is_slave(self) -> bool:
        return self.master is not None

    @property
    def master_or_self(self) -> int:
        return self.index if self.master is None else self.master

    @property
    def isometry_inverse(self) -> Isometry:
        return self.isometry.inverse()

    @property
    def reflected(self) -> bool:
        return self.isometry.reflected

    def __repr__(self) -> str:
        role = "master" if self.is_master else f"slave of {self.master}"
        return f"Cell({self.index}, color={self.index_of_master}, {role})"
