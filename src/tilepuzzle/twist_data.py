"""Twist axes.

A :class:`TwistData` is one twist axis located at one cell: a center, a
rotational order and a stack of concentric slicing circles ordered from
the innermost outward.  All instances that are the same logical move are
collected in an :class:`IdentifiedTwistData`, whose ``index`` is the
stable identifier persisted in twist histories.

Slice masks
-----------
Slices are numbered from 1 (the innermost) and selected with a bit mask,
bit ``n-1`` standing for slice ``n``.  At most ten slices are
addressable.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, List, Optional, Set

from .circles import CircleNE
from .geometry import TOLERANCE, Geometry
from .isometry import Isometry
from .mobius import Mobius
from .models import Cell, Sticker

MAX_SLICES = 10


class ElementType(Enum):
    FACE = "face"
    EDGE = "edge"
    VERTEX = "vertex"


# ═══════════════════════════════════════════════════════════════════
# Slice masks
# ═══════════════════════════════════════════════════════════════════


def slice_to_mask(slice_number: int) -> int:
    if 1 <= slice_number <= MAX_SLICES:
        return 1 << (slice_number - 1)
    return 0


def mask_to_slices(mask: int) -> List[int]:
    return [s for s in range(1, MAX_SLICES + 1) if slice_to_mask(s) & mask]


def mask_to_slice(mask: int) -> int:
    """The first selected slice, defaulting to slice 1."""
    slices = mask_to_slices(mask)
    return slices[0] if slices else 1


# Systolic twists use slices 1-3 to mean the odd hexagon segments.
_DIR_SEGS = {1: 1, 2: 3, 3: 5}


def slice_to_dir_seg(slice_number: int) -> int:
    return _DIR_SEGS.get(slice_number, 0)


def dir_seg_to_mask(dir_seg: int) -> int:
    for slice_number, seg in _DIR_SEGS.items():
        if seg == dir_seg:
            return slice_to_mask(slice_number)
    return 0


def mask_to_dir_seg(mask: int) -> int:
    return slice_to_dir_seg(mask_to_slice(mask))


# ═══════════════════════════════════════════════════════════════════
# Twist data
# ═══════════════════════════════════════════════════════════════════


class TwistData:
    def __init__(
        self,
        twist_type: ElementType,
        center: complex,
        order: int,
        circles: List[CircleNE],
        reverse: bool = False,
    ) -> None:
        self.twist_type = twist_type
        self.center = center
        self.order = order
        self.circles = circles
        self.reverse = reverse
        self.num_slices_no_opp = len(circles)
        self._num_slices = -1

        self.identified: Optional[IdentifiedTwistData] = None

        # Arena index of each master this twist moves, and the stickers
        # it moves bucketed by slice.  Both filled by mark_affected.
        self.affected_master_cells: Optional[Set[int]] = None
        self._affected_stickers: Optional[List[List[Sticker]]] = None

    def __repr__(self) -> str:
        return (
            f"TwistData({self.twist_type.value}, center={self.center:.4f}, "
            f"order={self.order}, slices={self.num_slices})"
        )

    @property
    def num_slices(self) -> int:
        """Number of slices; spherical twists get one beyond the last circle."""
        if self._num_slices == -1:
            return len(self.circles)
        return self._num_slices

    @num_slices.setter
    def num_slices(self, value: int) -> None:
        self._num_slices = value

    def transformed(self, isometry: Isometry, reverse: bool) -> "TwistData":
        """A copy moved by *isometry*.

        The center is not made infinity-safe; it has to stay exact for
        later transformations.
        """
        circles = []
        for c in self.circles:
            copy = c.clone()
            copy.transform(isometry)
            circles.append(copy)
        result = TwistData(self.twist_type, isometry.apply(self.center), self.order, circles, reverse)
        result._num_slices = self._num_slices
        return result

    # ── Slices ──────────────────────────────────────────────────────

    def circles_for_slice_mask(self, mask: int) -> List[CircleNE]:
        """The circles bounding the selected slices, innermost first."""
        count = len(self.circles)
        indexes: Set[int] = set()
        for s in mask_to_slices(mask):
            if s > self.num_slices:
                continue
            for i in (s - 2, s - 1):
                if 0 <= i < count:
                    indexes.add(i)
        return [self.circles[i] for i in sorted(indexes)]

    def affected_stickers_for_slice_mask(self, mask: int) -> List[List[Sticker]]:
        if self._affected_stickers is None:
            return []
        return [
            self._affected_stickers[s - 1]
            for s in mask_to_slices(mask)
            if s <= len(self._affected_stickers)
        ]

    @property
    def affected_stickers(self) -> List[List[Sticker]]:
        return self._affected_stickers or []

    # ── Affectedness ────────────────────────────────────────────────

    def will_affect_cell(self, cell: Cell, spherical: bool) -> bool:
        for c in self.circles:
            if not spherical and _disjoint(c, cell.vertex_circle):
                continue
            inside = c.is_point_inside_ne(cell.center) if spherical else c.is_point_inside_fast(cell.center)
            if inside or c.intersects(cell.boundary):
                return True
        return False

    def will_affect_master(self, master: Cell, spherical: bool) -> None:
        if self.affected_master_cells is None:
            self.affected_master_cells = set()
        if self.will_affect_cell(master, spherical):
            self.affected_master_cells.add(master.index)

    def will_affect_sticker(self, sticker: Sticker, spherical: bool) -> None:
        if self._affected_stickers is None:
            self._affected_stickers = [[] for _ in range(self.num_slices)]

        center = sticker.poly.center
        for i, c in enumerate(self.circles):
            inside = c.is_point_inside_ne(center) if spherical else c.is_point_inside_fast(center)
            if inside:
                self._affected_stickers[i].append(sticker)
                return

        # Beyond the last circle: only spherical twists have that slice.
        if spherical and self.num_slices != len(self.circles):
            self._affected_stickers[self.num_slices - 1].append(sticker)

    def mobius_for_twist(self, g: Geometry, rotation: float) -> Mobius:
        return Mobius.elliptic(g, self.center, -rotation if self.reverse else rotation)


def _disjoint(c: CircleNE, bound: CircleNE) -> bool:
    """True when the Euclidean disks of *c* and *bound* cannot meet."""
    if c.is_line or bound.is_line:
        return False
    if math.isinf(c.radius) or math.isinf(bound.radius):
        return False
    return abs(c.center - bound.center) > c.radius + bound.radius + TOLERANCE


class IdentifiedTwistData:
    """All twist data instances that make up one logical move."""

    def __init__(self, index: int = -1) -> None:
        self.index = index
        self.for_drawing: List[TwistData] = []
        self.for_state_calcs: List[TwistData] = []

    def __repr__(self) -> str:
        return (
            f"IdentifiedTwistData({self.index}, drawing={len(self.for_drawing)}, "
            f"state_calcs={len(self.for_state_calcs)})"
        )

    def add(self, td: TwistData, state_calc: bool) -> None:
        self.for_drawing.append(td)
        if state_calc:
            self.for_state_calcs.append(td)
        td.identified = self

    @property
    def order(self) -> int:
        source = self.for_state_calcs or self.for_drawing
        return source[0].order

    @property
    def twist_type(self) -> ElementType:
        return self.for_drawing[0].twist_type

    @property
    def num_slices(self) -> int:
        return max((td.num_slices for td in self.for_drawing), default=0)

    @property
    def affected_master_cells(self) -> List[int]:
        """Arena indices of every master moved by a state-calc instance."""
        seen: Dict[int, None] = {}
        for td in self.for_state_calcs:
            for index in td.affected_master_cells or ():
                seen[index] = None
        return list(seen)
