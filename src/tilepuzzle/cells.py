"""Cell graph: master cells and their identified slave copies.

Architecture
------------
Cells are stored in a flat arena (:attr:`CellGraph.cells`) and refer to
each other by arena index only.  Every tile of the tiling becomes one
cell.  A tile that no earlier master has claimed becomes a new master;
the identification isometries are then applied breadth-first, starting
from the master, to find all its slaves.

The ``completed`` point map (cell center -> arena index) is what stops
the walk and what lets the cell near-tree be built afterwards.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .config import PuzzleConfig
from .geometry import INFINITY, Geometry, PointMap, is_infinite
from .identifications import PuzzleIdentification
from .isometry import Isometry
from .models import Cell, Sticker
from .polygon import Polygon
from .tiling import Tile, Tiling, TilingConfig, TilingPositions

logger = logging.getLogger(__name__)


class CellGraph:
    """Arena of cells plus the master -> slaves relation."""

    def __init__(self, geometry: Geometry) -> None:
        self.geometry = geometry
        self.cells: List[Cell] = []
        self.masters: List[int] = []
        self.completed: PointMap[int] = PointMap()
        self._slaves: Dict[int, List[int]] = {}

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, index: int) -> Cell:
        return self.cells[index]

    # ── Enumeration ─────────────────────────────────────────────────

    @property
    def master_cells(self) -> List[Cell]:
        return [self.cells[i] for i in self.masters]

    def slaves_of(self, master: Cell) -> List[Cell]:
        return [self.cells[i] for i in self._slaves.get(master.index, [])]

    @property
    def all_cells(self) -> Iterator[Cell]:
        """Masters, each followed by its slaves (orphans excluded)."""
        for i in self.masters:
            yield self.cells[i]
            for j in self._slaves.get(i, []):
                yield self.cells[j]

    @property
    def all_slave_cells(self) -> Iterator[Cell]:
        for i in self.masters:
            for j in self._slaves.get(i, []):
                yield self.cells[j]

    @property
    def num_cells(self) -> int:
        return len(self.masters) + sum(len(v) for v in self._slaves.values())

    # ── Construction ────────────────────────────────────────────────

    def setup_cell(self, home: Tile, boundary: Polygon) -> Cell:
        """Create a cell for *boundary* and mark its center completed.

        The isometry is recomputed against *home* rather than taken from
        the tiling, since identified boundaries may differ in vertex order.
        """
        cell = Cell(len(self.cells), boundary, boundary.circumcircle)
        cell.isometry = Isometry.from_two_polygons(home, boundary, self.geometry)
        self.cells.append(cell)
        self.completed[boundary.center] = cell.index
        return cell

    def add_slave(self, master: Cell, slave: Cell) -> None:
        slave.master = master.index
        slave.index_of_master = master.index_of_master
        self._slaves.setdefault(master.index, []).append(slave.index)


# ═══════════════════════════════════════════════════════════════════
# Building
# ═══════════════════════════════════════════════════════════════════


def master_candidates(config: PuzzleConfig, tiling: Tiling) -> List[Tile]:
    """Tiles to try as masters, in order.

    Two Euclidean Klein-bottle colorings use a hand-picked subset so the
    fundamental region stays compact.
    """
    tiles = tiling.tiles
    if config.geometry == Geometry.EUCLIDEAN:
        if (config.p, config.q, config.expected_num_colors) == (4, 4, 4):
            return [t for i, t in enumerate(tiles) if i < 3 or i == 5]
        if (config.p, config.q, config.expected_num_colors) == (6, 3, 9):
            return [t for i, t in enumerate(tiles) if i < 8 or i == 15]
    return list(tiles)


def build_cell_graph(
    config: PuzzleConfig,
    tiling: Tiling,
    identifications: List[PuzzleIdentification],
) -> CellGraph:
    graph = CellGraph(config.geometry)
    for tile in master_candidates(config, tiling):
        if tile.center in graph.completed:
            continue
        add_master(graph, config, tile, tiling, identifications)

    logger.debug(
        f"Cell graph: {len(graph.masters)} masters, {graph.num_cells} cells, "
        f"{len(graph.cells) - graph.num_cells} orphans"
    )
    return graph


def add_master(
    graph: CellGraph,
    config: PuzzleConfig,
    tile: Tile,
    tiling: Tiling,
    identifications: List[PuzzleIdentification],
) -> Optional[Cell]:
    template = tiling.tiles[0]
    master = graph.setup_cell(template, tile.boundary.clone())
    index = len(graph.masters)

    # A malformed identification can produce too many colors; the extra
    # cell stays claimed but uncolored.
    if config.expected_num_colors and index >= config.expected_num_colors:
        logger.debug(f"Dropping surplus master at {tile.center} (color {index})")
        master.index_of_master = -1
        return None

    master.index_of_master = index
    graph.masters.append(master.index)

    # Relation-built puzzles need a deeper search, but only from the
    # central tile.
    search_tiling: Optional[Tiling] = tiling
    positions: Optional[TilingPositions] = None
    if index == 0 and config.using_relations:
        search_tiling = None
        positions = TilingPositions.build(TilingConfig(config.p, config.q, max_tiles=config.num_tiles * 5))

    add_slaves(graph, master, template, identifications, search_tiling, positions)
    return master


def add_slaves(
    graph: CellGraph,
    master: Cell,
    template: Tile,
    identifications: List[PuzzleIdentification],
    tiling: Optional[Tiling],
    positions: Optional[TilingPositions],
) -> None:
    """Apply every identification to each generation until none is new."""
    if not identifications:
        return
    parents = [master]
    while parents:
        added = []
        for parent in parents:
            for identification in identifications:
                for isometry in identification.isometries:
                    slave = apply_one_isometry(graph, master, parent, isometry, template, tiling, positions)
                    if slave is not None:
                        added.append(slave)
        parents = added


def apply_one_isometry(
    graph: CellGraph,
    master: Cell,
    parent: Cell,
    isometry: Isometry,
    template: Tile,
    tiling: Optional[Tiling],
    positions: Optional[TilingPositions],
) -> Optional[Cell]:
    # Identifications are applied unconjugated; conjugating by the parent
    # isometry mirrors asymmetric (Klein bottle) identifications.
    new_center = isometry.apply_infinite_safe(parent.vertex_circle.center_ne)
    if is_infinite(new_center):
        new_center = INFINITY

    if tiling is not None and new_center not in tiling.tile_positions:
        return None
    if positions is not None and new_center not in positions:
        return None
    if new_center in graph.completed:
        return None

    boundary = parent.boundary.clone()
    boundary.transform(isometry)
    slave = graph.setup_cell(template, boundary)
    graph.add_slave(master, slave)
    return slave


# ═══════════════════════════════════════════════════════════════════
# Stickers and neighbors
# ═══════════════════════════════════════════════════════════════════


def add_stickers_to_cell(cell: Cell, template_stickers: Iterable[Polygon]) -> None:
    inverse = cell.isometry.inverse()
    for i, poly in enumerate(template_stickers):
        transformed = poly.clone()
        transformed.transform(inverse)
        cell.stickers.append(Sticker(cell.index_of_master, i, transformed))


def populate_neighbors(graph: CellGraph) -> None:
    """Record which colors share an edge, for single-sticker puzzles."""
    midpoints = {cell.index: PointMap() for cell in graph.all_cells}
    for cell in graph.all_cells:
        for mid in cell.boundary.edge_midpoints:
            midpoints[cell.index][mid] = True

    for master in graph.master_cells:
        for cell in graph.all_cells:
            if cell.index == master.index:
                continue
            if any(mid in midpoints[cell.index] for mid in master.boundary.edge_midpoints):
                other = graph[cell.master_or_self]
                master.neighbors.add(other.index_of_master)
                other.neighbors.add(master.index_of_master)
