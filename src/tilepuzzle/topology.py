"""Count the faces, edges and vertices of a puzzle's quotient surface.

Faces are easy: one per master.  Edges and vertices are not, because a
point on the fundamental region's boundary can sit in several places
and walking master -> slaves from one copy may reach only part of its
class.  Sets of identified points are therefore grown per master point
and merged whenever a slave point turns out to belong to another set.

The resulting per-point class lookup is what gives every twist axis its
stable logical index, also for irregular colorings.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .cells import CellGraph
from .geometry import Geometry, PointMap, infinity_safe
from .models import Cell
from .tiling import Tile
from .twist_data import ElementType

logger = logging.getLogger(__name__)


class _ElementSets:
    """Disjoint sets of points with an O(1) point -> set lookup."""

    def __init__(self) -> None:
        self.members: Dict[int, List[complex]] = {}
        self.owner: PointMap[int] = PointMap()
        self._next = 0

    def new_set(self, point: complex) -> int:
        set_id = self._next
        self._next += 1
        self.members[set_id] = [point]
        self.owner[point] = set_id
        return set_id

    def add(self, set_id: int, point: complex) -> None:
        self.members[set_id].append(point)
        self.owner[point] = set_id

    def find(self, point: complex) -> Optional[int]:
        return self.owner.get(point)

    def merge(self, keep: int, drop: int) -> None:
        for point in self.members.pop(drop):
            self.add(keep, point)

    def __len__(self) -> int:
        return len(self.members)

    def ordinals(self) -> Dict[int, int]:
        """Set id -> position among the surviving sets.

        A merge keeps the absorbing set where it was, so creation order of
        the survivors is the order.
        """
        return {set_id: i for i, set_id in enumerate(sorted(self.members))}


class TopologyAnalyzer:
    def __init__(self, graph: CellGraph, template: Tile, geometry: Geometry) -> None:
        self.graph = graph
        self.template = template
        self.geometry = geometry
        self.f = 0
        self.e = 0
        self.v = 0
        self._sets: Dict[ElementType, _ElementSets] = {}
        self._ordinals: Dict[ElementType, Dict[int, int]] = {}

    def __str__(self) -> str:
        return f"F={self.f}, E={self.e}, V={self.v}, χ={self.euler_characteristic}"

    @property
    def euler_characteristic(self) -> int:
        return self.v - self.e + self.f

    def infinity_safe(self, point: complex) -> complex:
        if self.geometry != Geometry.SPHERICAL:
            return point
        return infinity_safe(point)

    def analyze(self) -> "TopologyAnalyzer":
        faces = _ElementSets()
        for master in self.graph.master_cells:
            set_id = faces.new_set(self.infinity_safe(master.center))
            for slave in self.graph.slaves_of(master):
                faces.add(set_id, self.infinity_safe(slave.center))
        self._sets[ElementType.FACE] = faces

        self._sets[ElementType.EDGE] = self._analyze_element(ElementType.EDGE)
        self._sets[ElementType.VERTEX] = self._analyze_element(ElementType.VERTEX)
        self._ordinals = {t: s.ordinals() for t, s in self._sets.items()}

        self.f = len(faces)
        self.e = len(self._sets[ElementType.EDGE])
        self.v = len(self._sets[ElementType.VERTEX])
        logger.debug(f"Topology: {self}")
        return self

    def _analyze_element(self, element_type: ElementType) -> _ElementSets:
        sets = _ElementSets()
        for master in self.graph.master_cells:
            for i in range(master.boundary.num_sides):
                master_point = self._segment_point(element_type, master, i)
                identified = sets.find(master_point)
                if identified is None:
                    identified = sets.new_set(master_point)

                for slave in self.graph.slaves_of(master):
                    slave_point = self._segment_point(element_type, slave, i)
                    other = sets.find(slave_point)
                    if other is None:
                        sets.add(identified, slave_point)
                    elif other != identified:
                        # Two identification trees met; their points are
                        # all the same logical element.
                        sets.merge(identified, other)
        return sets

    def _segment_point(self, element_type: ElementType, cell: Cell, index: int) -> complex:
        if element_type == ElementType.EDGE:
            # The Euclidean midpoint of a transformed segment is not the
            # transformed midpoint, so map the template's.
            mid = self.template.boundary.segments[index].midpoint
            return self.infinity_safe(cell.isometry_inverse.apply(mid))
        return self.infinity_safe(cell.boundary.segments[index].p1)

    def logical_element_index(self, element_type: ElementType, point: complex) -> int:
        """Index of the element class containing *point*, or -1.

        Faces come first, then edges, then vertices, so indices are unique
        across types.
        """
        sets = self._sets.get(element_type)
        if sets is None:
            raise RuntimeError("analyze() has not been run")
        set_id = sets.find(point)
        if set_id is None:
            return -1
        result = self._ordinals[element_type][set_id]
        if element_type == ElementType.EDGE:
            result += self.f
        elif element_type == ElementType.VERTEX:
            result += self.f + self.e
        return result
