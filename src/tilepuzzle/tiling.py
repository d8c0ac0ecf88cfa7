"""Regular {p,q} tilings generated by reflecting a base tile across its edges.

Usage
-----
>>> from tilepuzzle.tiling import Tiling, TilingConfig
>>> tiling = Tiling.generate(TilingConfig(7, 3, max_tiles=200))
>>> template = tiling.tiles[0]
>>> tiling.tile_positions[template.center] is template
True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .circles import Circle, CircleNE
from .geometry import Geometry, PointMap, PointSet, geometry_for, is_infinite
from .isometry import Isometry
from .mobius import Mobius
from .polygon import Polygon, Segment

logger = logging.getLogger(__name__)

# Tiles whose non-Euclidean center gets this close to the disk boundary
# are dropped; they are numerically useless and unbounded in number.
HYPERBOLIC_CUTOFF = 0.99999
POSITIONS_CUTOFF = 0.9999


def num_facets(p: int, q: int) -> int:
    """Number of faces of the spherical {p,q} tiling."""
    if geometry_for(p, q) != Geometry.SPHERICAL:
        raise ValueError(f"{{{p},{q}}} is not spherical")
    return (4 * q) // (4 - (p - 2) * (q - 2))


@dataclass
class TilingConfig:
    p: int
    q: int
    max_tiles: int = 0
    m: Mobius = field(default_factory=Mobius.identity)
    shrink: float = 1.0

    def __post_init__(self) -> None:
        if self.max_tiles <= 0:
            self.max_tiles = num_facets(self.p, self.q)

    @property
    def geometry(self) -> Geometry:
        return geometry_for(self.p, self.q)


class Tile:
    """One tile of a tiling.

    ``drawn`` is the (possibly shrunk) polygon used for slicing stickers;
    only the base tile's copy is meaningful.  ``isometry`` carries this
    tile onto the base tile.
    """

    def __init__(self, boundary: Polygon, drawn: Polygon, geometry: Geometry) -> None:
        self.boundary = boundary
        self.drawn = drawn
        self.geometry = geometry
        self.vertex_circle: CircleNE = boundary.circumcircle
        self.isometry = Isometry()
        self.edge_incidences: List["Tile"] = []
        self.vertex_incidences: List["Tile"] = []

    @property
    def center(self) -> complex:
        return self.boundary.center

    def clone(self) -> "Tile":
        tile = Tile(self.boundary.clone(), self.drawn.clone(), self.geometry)
        tile.vertex_circle = self.vertex_circle.clone()
        return tile

    def reflect(self, s: Segment) -> None:
        self.boundary.reflect(s)
        self.vertex_circle.reflect(s)

    def transform(self, t) -> None:
        self.boundary.transform(t)
        self.vertex_circle.transform(t)

    @property
    def has_points_projected_to_infinity(self) -> bool:
        if self.geometry != Geometry.SPHERICAL:
            return False
        if is_infinite(self.boundary.center):
            return True
        return any(is_infinite(s.p1) or is_infinite(s.p2) for s in self.boundary.segments)

    def include(self) -> bool:
        if self.geometry == Geometry.HYPERBOLIC:
            return abs(self.vertex_circle.center_ne) < HYPERBOLIC_CUTOFF
        return True

    def __repr__(self) -> str:
        return f"Tile(center={self.center:.4f}, sides={self.boundary.num_sides})"


def create_base_tile(config: TilingConfig) -> Tile:
    boundary = Polygon.create_regular(config.p, config.q)
    tile = Tile(boundary, boundary.clone(), config.geometry)
    if config.shrink != 1.0:
        tile.drawn.transform(Mobius.hyperbolic(config.geometry, 0j, config.shrink))
    return tile


class Tiling:
    def __init__(self, config: TilingConfig) -> None:
        self.config = config
        self.tiles: List[Tile] = []
        self.tile_positions: PointMap[Tile] = PointMap()

    @classmethod
    def generate(cls, config: TilingConfig) -> "Tiling":
        tiling = cls(config)
        base = create_base_tile(config)
        tiling._transform_and_add(base)

        completed = PointSet([config.m.apply(base.center)])
        frontier = [base]
        while frontier:
            frontier = tiling._reflect_generation(frontier, completed)

        for tile in tiling.tiles:
            tile.isometry = Isometry.from_two_polygons(base, tile.boundary, config.geometry)
        tiling._fill_out_incidences()
        logger.debug(f"Generated {{{config.p},{config.q}}} tiling with {len(tiling.tiles)} tiles")
        return tiling

    def __len__(self) -> int:
        return len(self.tiles)

    def _transform_and_add(self, tile: Tile) -> bool:
        if not tile.include():
            return False
        clone = tile.clone()
        clone.transform(self.config.m)
        self.tiles.append(clone)
        self.tile_positions[clone.center] = clone
        return True

    def _reflect_generation(self, tiles: List[Tile], completed: PointSet) -> List[Tile]:
        reflected: List[Tile] = []
        for tile in tiles:
            # Tiles touching infinity reflect badly; their neighbours are
            # reached from elsewhere anyway.
            if tile.has_points_projected_to_infinity:
                continue
            if len(self.tiles) >= self.config.max_tiles:
                return []

            for seg in tile.boundary.segments:
                circle = tile.vertex_circle.clone()
                circle.reflect(seg)
                key = self.config.m.apply(circle.center_ne)
                if key in completed:
                    continue

                new_tile = tile.clone()
                new_tile.reflect(seg)
                if self._transform_and_add(new_tile):
                    completed.add(key)
                    reflected.append(new_tile)
        return reflected

    def _fill_out_incidences(self) -> None:
        edges: PointMap[List[Tile]] = PointMap()
        vertices: PointMap[List[Tile]] = PointMap()
        for tile in self.tiles:
            for mid in tile.boundary.edge_midpoints:
                edges.setdefault(mid, []).append(tile)
            for v in tile.boundary.vertices:
                vertices.setdefault(v, []).append(tile)

        for tile in self.tiles:
            tile.edge_incidences = []
            tile.vertex_incidences = []
        for group in edges.values():
            for tile in group:
                tile.edge_incidences.extend(group)
        for group in vertices.values():
            for tile in group:
                tile.vertex_incidences.extend(group)

        for tile in self.tiles:
            edge = _distinct_except(tile.edge_incidences, tile)
            vertex = _distinct_except(tile.vertex_incidences, tile)
            tile.edge_incidences = edge
            tile.vertex_incidences = [t for t in vertex if t not in edge]


def _distinct_except(tiles: List[Tile], exclude: Tile) -> List[Tile]:
    seen = set()
    result = []
    for t in tiles:
        if t is exclude or id(t) in seen:
            continue
        seen.add(id(t))
        result.append(t)
    return result


class TilingPositions:
    """Tile centers only, found by reflecting the origin in the three
    mirrors of the fundamental triangle.

    Much cheaper than a full :class:`Tiling`, so it can be made large
    enough for the deep searches relation-built puzzles need.
    """

    def __init__(self) -> None:
        self.positions = PointSet()

    @classmethod
    def build(cls, config: TilingConfig) -> "TilingPositions":
        result = cls()
        seg = create_base_tile(config).boundary.segments[0]
        mirrors = [
            Circle.from_2_points(0j, seg.midpoint),
            Circle.from_2_points(0j, seg.p1),
            seg.circle if seg.is_arc else Circle.from_2_points(seg.p1, seg.p2),
        ]
        hyperbolic = config.geometry == Geometry.HYPERBOLIC

        starting = [0j]
        while starting:
            added = []
            for v in starting:
                for mirror in mirrors:
                    candidate = mirror.reflect_point(v)
                    if hyperbolic and abs(candidate) > POSITIONS_CUTOFF:
                        continue
                    if result.positions.add(candidate):
                        added.append(candidate)
                    if len(result.positions) > config.max_tiles - 1:
                        return result
            starting = added
        return result

    def __contains__(self, point: complex) -> bool:
        return point in self.positions

    def __len__(self) -> int:
        return len(self.positions)


def lookup_tile(tiling: Optional[Tiling], center: complex) -> Optional[Tile]:
    if tiling is None:
        return None
    return tiling.tile_positions.get(center)
