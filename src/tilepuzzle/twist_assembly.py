"""Assemble the twist axes of a built cell graph.

Architecture
------------
1. :func:`template_twist_data` places one twist axis at the template
   tile's center (face twisting) and one per edge midpoint and vertex.
2. :func:`slice_up_template` cuts the template tile with every slicing
   circle of those axes (and of the neighbouring tiles) into stickers.
3. :func:`mark_cells_for_state_calcs` picks the cells whose stickers
   have to be tracked for the state to stay correct.
4. :func:`assemble_current` (or :func:`assemble_preview` for puzzles
   saved by the preview version) copies every template axis onto every
   cell and groups copies that are the same logical move.
5. :func:`add_opp_twisters` fuses spherical axes with their antipodes.
6. :func:`mark_affected` records which masters and stickers each axis
   moves, then drops state-calc copies that move nothing.

Steps 3 and 6 fan out over a thread pool.  Every task writes only to its
own twist data (or returns a flag gathered afterwards), so no locking is
needed.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from .cells import CellGraph
from .circles import CircleNE, unique_circles
from .config import VERSION_PREVIEW, PuzzleConfig
from .geometry import Geometry, PointMap, PointSet, h2e_norm, infinity_safe, points_equal, s2e_norm, zero
from .mobius import Mobius
from .models import Cell
from .polygon import Polygon
from .slicer import slice_polygon
from .tiling import Tile, Tiling, lookup_tile
from .topology import TopologyAnalyzer
from .twist_data import ElementType, IdentifiedTwistData, TwistData

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class BuildStrategy(Enum):
    PREVIEW = "preview"
    CURRENT = "current"


def strategy_for(version: str) -> BuildStrategy:
    return BuildStrategy.PREVIEW if version == VERSION_PREVIEW else BuildStrategy.CURRENT


def _safe(config: PuzzleConfig, point: complex) -> complex:
    if config.geometry != Geometry.SPHERICAL:
        return point
    return infinity_safe(point)


def _parallel_map(fn: Callable[[T], R], items: Sequence[T], workers: Optional[int] = None) -> List[R]:
    """``[fn(x) for x in items]`` on a thread pool, results in order."""
    if len(items) < 2:
        return [fn(x) for x in items]
    with ThreadPoolExecutor(max_workers=workers or os.cpu_count()) as pool:
        return list(pool.map(fn, items))


# ═══════════════════════════════════════════════════════════════════
# Template twist data and slicing
# ═══════════════════════════════════════════════════════════════════


def template_slicing_circle(config: PuzzleConfig, template: Tile, radius: float, m: Mobius) -> CircleNE:
    if config.geometry == Geometry.SPHERICAL:
        e_radius = s2e_norm(radius)
    elif config.geometry == Geometry.HYPERBOLIC:
        e_radius = h2e_norm(radius)
    else:
        e_radius = radius
    circle = CircleNE(template.center, e_radius, 0j, 0j, template.center)
    circle.transform(m)
    return circle


def _circles_at(config: PuzzleConfig, template: Tile, center: complex, distances) -> List[CircleNE]:
    m = Mobius.isometry(config.geometry, 0, center)
    return [template_slicing_circle(config, template, d.dist(config.p, config.q), m) for d in distances]


def template_twist_data(config: PuzzleConfig, template: Tile) -> List[TwistData]:
    """Twist axes of the template tile: face first, then edge/vertex per side."""
    sc = config.slicing_circles
    result: List[TwistData] = []
    if sc is None:
        return result

    if sc.face_twisting:
        center = template.center
        result.append(
            TwistData(ElementType.FACE, center, config.p, _circles_at(config, template, center, sc.face_centered))
        )

    for seg in template.boundary.segments:
        if sc.edge_twisting:
            center = seg.midpoint
            result.append(
                TwistData(ElementType.EDGE, center, 2, _circles_at(config, template, center, sc.edge_centered))
            )
        if sc.vertex_twisting:
            center = seg.p1
            result.append(
                TwistData(ElementType.VERTEX, center, config.q, _circles_at(config, template, center, sc.vertex_centered))
            )
    return result


def template_slicers(template: Tile, template_tds: Iterable[TwistData]) -> List[CircleNE]:
    """Every circle that cuts the template, from its own axes and its neighbours'."""
    # Edge and vertex neighbours are enough for the slicing radii in use.
    tiles = [template] + list(template.edge_incidences) + list(template.vertex_incidences)
    result: List[CircleNE] = []
    for td in template_tds:
        for circle in td.circles:
            for tile in tiles:
                moved = circle.clone()
                moved.transform(tile.isometry)
                if not any(moved.same_as(c) for c in result):
                    result.append(moved)
    return result


def slice_up_template(config: PuzzleConfig, template: Tile, template_tds: Sequence[TwistData]) -> List[Polygon]:
    """The template's stickers, in the order shared by every cell."""
    slicers = template_slicers(template, template_tds)
    thickness = config.slicing_circles.thickness if config.slicing_circles is not None else 0.0

    pieces = [template.drawn]
    while slicers:
        slicer = slicers.pop()
        sliced: List[Polygon] = []
        for piece in pieces:
            sliced.extend(slice_polygon(piece, slicer, config.geometry, thickness))
        pieces = sliced

    # Complicated slicings can leave slivers with no area.
    stickers = [p for p in pieces if not zero(p.signed_area)]
    logger.debug(f"Template sliced into {len(stickers)} stickers")
    return stickers


# ═══════════════════════════════════════════════════════════════════
# State-calc cells
# ═══════════════════════════════════════════════════════════════════


def mark_cells_for_state_calcs(
    config: PuzzleConfig,
    graph: CellGraph,
    tiling: Tiling,
    template_tds: Sequence[TwistData],
    workers: Optional[int] = None,
) -> List[int]:
    """Arena indices of the cells whose stickers must be tracked.

    Masters always count.  A slave counts if a twist located on some
    slave would move a master (a "hot" twist), or if a hot twist moves it.
    """
    spherical = config.geometry == Geometry.SPHERICAL
    masters = graph.master_cells
    slaves = list(graph.all_slave_cells)
    result: List[int] = [m.index for m in masters]
    complete = PointSet()

    if config.earthquake:
        to_check: List[TwistData] = []
        for td in template_tds:
            for master in masters:
                moved = td.transformed(master.isometry_inverse, False)
                if complete.add(moved.center):
                    to_check.append(moved)
        hits = _parallel_map(
            lambda slave: any(td.will_affect_cell(slave, spherical) for td in to_check), slaves, workers
        )
        result.extend(s.index for s, hit in zip(slaves, hits) if hit)
        return _distinct(result)

    hot_twists: List[TwistData] = []
    for td in template_tds:
        for slave in slaves:
            moved = td.transformed(slave.isometry_inverse, False)
            if not complete.add(moved.center):
                continue
            if any(moved.will_affect_cell(master, spherical) for master in masters):
                result.append(slave.index)
                hot_twists.append(moved)

    # Any slave a hot twist touches can also carry stickers onto a master.
    hits = _parallel_map(
        lambda slave: any(td.will_affect_cell(slave, spherical) for td in hot_twists), slaves, workers
    )
    result.extend(s.index for s, hit in zip(slaves, hits) if hit)

    irp = config.irp_config
    if irp is not None and irp.data_file and len(masters) == len(result):
        # Unsliced puzzles with a mesh still need the cells around each master.
        for master in masters:
            tile = lookup_tile(tiling, master.center)
            if tile is None:
                continue
            for t in [tile] + tile.edge_incidences + tile.vertex_incidences:
                index = graph.completed.get(t.center)
                if index is not None:
                    result.append(index)

    return _distinct(result)


def _distinct(indices: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(indices))


# ═══════════════════════════════════════════════════════════════════
# Assembling identified twist data
# ═══════════════════════════════════════════════════════════════════


TwistDataMap = PointMap  # infinity-safe center -> TwistData


def assemble_current(
    config: PuzzleConfig,
    graph: CellGraph,
    topology: TopologyAnalyzer,
    template_tds: Sequence[TwistData],
    state_calc_cells: Set[int],
) -> Tuple[List[IdentifiedTwistData], TwistDataMap]:
    """Group twist copies by the logical element their center lies on."""
    collections = [IdentifiedTwistData() for _ in range(topology.f + topology.e + topology.v)]
    td_map: TwistDataMap = PointMap()

    def setup(cell: Cell, template_td: TwistData, reverse: bool) -> None:
        td = template_td.transformed(cell.isometry_inverse, reverse)
        key = _safe(config, td.center)
        if key in td_map:
            return
        index = topology.logical_element_index(template_td.twist_type, key)
        if index == -1:
            logger.debug(f"No logical {template_td.twist_type.value} at {key}; skipping twist")
            return
        collections[index].add(td, cell.index in state_calc_cells)
        td_map[key] = td

    for master in graph.master_cells:
        for template_td in template_tds:
            setup(master, template_td, False)
            for slave in graph.slaves_of(master):
                setup(slave, template_td, master.reflected ^ slave.reflected)

    result = [c for c in collections if c.for_drawing]
    for i, collection in enumerate(result):
        collection.index = i
    return result, td_map


def assemble_preview(
    config: PuzzleConfig,
    graph: CellGraph,
    template_tds: Sequence[TwistData],
    state_calc_cells: Set[int],
) -> Tuple[List[IdentifiedTwistData], TwistDataMap]:
    """Older grouping: one collection per distinct axis on each master.

    Kept so twist histories saved by the preview version replay with
    the same indices.
    """
    result: List[IdentifiedTwistData] = []
    td_map: TwistDataMap = PointMap()
    used = PointSet()

    def setup(cell: Cell, template_td: TwistData, reverse: bool, collection: IdentifiedTwistData) -> None:
        td = template_td.transformed(cell.isometry_inverse, reverse)
        collection.add(td, cell.index in state_calc_cells)
        td_map[_safe(config, td.center)] = td

    for master in graph.master_cells:
        for template_td in template_tds:
            if not used.add(master.isometry_inverse.apply(template_td.center)):
                continue
            collection = IdentifiedTwistData(len(result))
            result.append(collection)
            setup(master, template_td, False, collection)
            for slave in graph.slaves_of(master):
                setup(slave, template_td, master.reflected ^ slave.reflected, collection)
    return result, td_map


def add_opp_twisters(config: PuzzleConfig, td_map: TwistDataMap) -> None:
    """Fuse spherical twist axes with the axis at their antipode.

    A fused axis twists from both ends, its circles ordered outward from
    this end.  Fusion is refused when the antipodal axis is identified
    with anything other than itself or this axis at opposite
    orientation; the axis then just gets the slice beyond its last
    circle.
    """
    spherical = config.geometry == Geometry.SPHERICAL
    for td in list(td_map.values()):
        td.num_slices_no_opp = len(td.circles)
        if not spherical or not td.circles:
            continue

        first = td.circles[0]
        antipode = _safe(config, first.reflect_point(td.center))
        anti = td_map.get(antipode)
        if anti is None:
            td.num_slices = len(td.circles) + 1
            continue

        if not _fusion_allowed(config, td, anti):
            logger.warning(
                f"Not fusing {td.twist_type.value} twist at {td.center} with its antipode; "
                f"its identifications would make the slices ambiguous"
            )
            td.num_slices = len(td.circles) + 1
            continue

        circles = list(td.circles)
        for opp in anti.circles:
            clone = opp.clone()
            clone.center_ne = first.center_ne
            circles.append(clone)

        to_origin = Mobius.isometry(Geometry.SPHERICAL, 0, -first.center_ne)

        def centered_radius(c: CircleNE) -> float:
            moved = c.clone()
            moved.transform(to_origin)
            return moved.radius

        circles.sort(key=centered_radius)
        for c in circles:
            if c.is_line:
                c.normalize_line()
        td.circles = unique_circles(circles)
        td.num_slices = len(td.circles) + 1


def _fusion_allowed(config: PuzzleConfig, td: TwistData, anti: TwistData) -> bool:
    # Irregular colorings (e.g. {3,5} 8 colors) identify the antipode with
    # other axes, and some ({3,4} 4CA) identify it with us at the same
    # orientation; slices are ill-defined in both cases.
    if anti.identified is None:
        return True
    td_center = _safe(config, td.center)
    for other in anti.identified.for_drawing:
        if other is anti:
            continue
        if points_equal(_safe(config, other.center), td_center) and (anti.reverse ^ td.reverse):
            continue
        return False
    return True


# ═══════════════════════════════════════════════════════════════════
# Affected masters and stickers
# ═══════════════════════════════════════════════════════════════════


def mark_affected(
    config: PuzzleConfig,
    graph: CellGraph,
    all_twist_data: Sequence[IdentifiedTwistData],
    state_calc_cells: Sequence[int],
    workers: Optional[int] = None,
) -> None:
    spherical = config.geometry == Geometry.SPHERICAL
    masters = graph.master_cells
    # Spherical puzzles draw every cell, so everything gets marked.
    if spherical:
        cells = list(graph.all_cells)
    else:
        cells = [graph[i] for i in state_calc_cells]
    stickers = [s for cell in cells for s in cell.stickers]

    def mark(td: TwistData) -> None:
        for master in masters:
            td.will_affect_master(master, spherical)
        for sticker in stickers:
            td.will_affect_sticker(sticker, spherical)

    tds = [
        td
        for collection in all_twist_data
        for td in (collection.for_drawing if spherical else collection.for_state_calcs)
    ]
    _parallel_map(mark, tds, workers)

    # Only state-calc copies that move a master matter for the state.
    for collection in all_twist_data:
        collection.for_state_calcs = [td for td in collection.for_state_calcs if td.affected_master_cells]
