"""Build a puzzle from its configuration and apply twists to it.

Usage
-----
>>> from tilepuzzle.config import preset
>>> from tilepuzzle.puzzle import Puzzle
>>> puzzle = Puzzle.build(preset("cube"))
>>> puzzle.apply_twist(puzzle.make_twist(0))
>>> puzzle.state.is_solved
False

Architecture
------------
:func:`build_puzzle` runs the build stages in order (tiling,
identifications, cells, topology, state-calc cells, slicing, stickers,
twisting) and checks the status callback between stages.  It returns a
fully built :class:`Puzzle`, or :class:`Cancelled` naming the stage it
stopped before.  Nothing of a cancelled build is kept.

:func:`update_state` is the atomic twist: sticker moves are computed
from the twist's state-calc axes, written to the staging matrix and
committed together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Union

import numpy as np

from .cells import CellGraph, add_stickers_to_cell, build_cell_graph, populate_neighbors
from .config import PuzzleConfig
from .errors import BuildCancelled, ConfigError
from .geometry import INFINITY, Geometry, PointMap, infinity_safe, is_infinite
from .identifications import precalc_identifications
from .models import Cell, Sticker
from .neartree import NearTree, metric_for
from .state import State
from .tiling import Tiling, TilingConfig
from .topology import TopologyAnalyzer
from .twist_assembly import (
    BuildStrategy,
    add_opp_twisters,
    assemble_current,
    assemble_preview,
    mark_affected,
    mark_cells_for_state_calcs,
    slice_up_template,
    strategy_for,
    template_twist_data,
)
from .twist_data import IdentifiedTwistData, TwistData, slice_to_mask
from .twists import SingleTwist, TwistHistory

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Build status
# ═══════════════════════════════════════════════════════════════════


class BuildStatus(Protocol):
    """Receives progress messages and is polled for cancellation between stages."""

    def status(self, message: str) -> None:
        ...

    @property
    def cancelled(self) -> bool:
        ...


class LoggingStatus:
    """Default status callback: messages go to the log, never cancels."""

    cancelled = False

    def status(self, message: str) -> None:
        logger.info(message)


@dataclass(frozen=True)
class Cancelled:
    stage: str


BuildResult = Union["Puzzle", Cancelled]


def check_irp_sides(irp_sides: int, tiling_sides: int) -> None:
    if irp_sides and irp_sides != tiling_sides:
        raise ConfigError(
            f"IRP had a cell with {irp_sides} sides, but the underlying hyperbolic "
            f"tiling has cells with {tiling_sides} sides."
        )


# ═══════════════════════════════════════════════════════════════════
# Building
# ═══════════════════════════════════════════════════════════════════


def build_puzzle(
    config: PuzzleConfig,
    status: Optional[BuildStatus] = None,
    workers: Optional[int] = None,
) -> BuildResult:
    """Build *config* into a :class:`Puzzle`.

    Raises :class:`ConfigError` for an inconsistent configuration.
    """
    status = status or LoggingStatus()
    problems = config.validate()
    if problems:
        raise ConfigError("Invalid puzzle configuration: " + "; ".join(problems))
    if config.irp_config is not None:
        check_irp_sides(config.irp_config.expected_sides, config.p)

    try:
        return _build_stages(config, status, workers)
    except BuildCancelled as exc:
        logger.info(str(exc))
        return Cancelled(exc.stage)


def _build_stages(config: PuzzleConfig, status: BuildStatus, workers: Optional[int]) -> "Puzzle":
    g = config.geometry
    spherical = g == Geometry.SPHERICAL

    def stage(message: str) -> None:
        if status.cancelled:
            raise BuildCancelled(message)
        status.status(message)

    stage("creating underlying tiling...")
    tiling = Tiling.generate(TilingConfig(config.p, config.q, config.num_tiles, shrink=config.tile_shrink))
    template = tiling.tiles[0]

    stage("precalculating identification isometries...")
    identifications = precalc_identifications(config, template)

    stage("adding in cells...")
    graph = build_cell_graph(config, tiling, identifications)

    stage("analyzing topology...")
    topology = TopologyAnalyzer(graph, template, g).analyze()

    stage("marking cells for state calcs...")
    template_tds = template_twist_data(config, template)
    state_calc_cells = mark_cells_for_state_calcs(config, graph, tiling, template_tds, workers)

    stage("slicing up template tile...")
    template_stickers = slice_up_template(config, template, template_tds)

    stage("adding in stickers...")
    sticker_cells = list(graph.all_cells) if spherical else [graph[i] for i in state_calc_cells]
    for cell in sticker_cells:
        add_stickers_to_cell(cell, template_stickers)

    stage("preparing twisting...")
    state_calc_set = set(state_calc_cells)
    if strategy_for(config.version) == BuildStrategy.PREVIEW:
        all_twist_data, td_map = assemble_preview(config, graph, template_tds, state_calc_set)
    else:
        all_twist_data, td_map = assemble_current(config, graph, topology, template_tds, state_calc_set)
    add_opp_twisters(config, td_map)
    mark_affected(config, graph, all_twist_data, state_calc_cells, workers)

    metric = metric_for(g)
    twist_tree: NearTree[TwistData] = NearTree(metric)
    for center, td in td_map.items():
        twist_tree.insert(_safe(g, center), td)
    cell_tree: NearTree[Cell] = NearTree(metric)
    for center, index in graph.completed.items():
        # Surplus masters were never colored and are not part of the puzzle.
        if graph[index].index_of_master == -1:
            continue
        cell_tree.insert(_safe(g, center), graph[index])

    if len(template_stickers) == 1:
        stage("populating neighbors...")
        populate_neighbors(graph)

    puzzle = Puzzle(
        config=config,
        graph=graph,
        topology=topology,
        all_twist_data=all_twist_data,
        state_calc_cells=state_calc_cells,
        state=State(len(graph.masters), len(template_stickers)),
        twist_history=TwistHistory(),
        cell_tree=cell_tree,
        twist_tree=twist_tree,
        num_tiles=len(tiling.tiles),
    )

    status.status(f"Number of colors:{len(graph.masters)}")
    status.status(f"Number of tiles:{len(tiling.tiles)}")
    status.status(f"Number of cells:{graph.num_cells}")
    status.status(f"Number of stickers per cell:{len(template_stickers)}")
    return puzzle


def _safe(g: Geometry, point: complex) -> complex:
    return infinity_safe(point) if g == Geometry.SPHERICAL else point


# ═══════════════════════════════════════════════════════════════════
# Twisting
# ═══════════════════════════════════════════════════════════════════


def update_state(config: PuzzleConfig, state: State, twist: SingleTwist) -> Dict[Sticker, Sticker]:
    """Apply *twist* to *state*; return the stickers that moved (old -> new).

    Stickers whose rotated position matches no sticker are skipped; this
    happens at the edge of the generated tiling for p >= 6 and for
    points sent to infinity.
    """
    g = config.geometry
    spherical = g == Geometry.SPHERICAL
    rotation = 1.0 if config.earthquake else twist.magnitude
    if not twist.left_click:
        rotation = -rotation

    old_positions: PointMap[Sticker] = PointMap()
    new_positions: Dict[Sticker, complex] = {}
    for td in twist.state_calc_td:
        mobius = td.mobius_for_twist(g, rotation)
        for bucket in td.affected_stickers_for_slice_mask(twist.slice_mask):
            for sticker in bucket:
                center = sticker.poly.center
                at_infinity = spherical and is_infinite(center)
                if at_infinity:
                    center = INFINITY
                old_positions[center] = sticker

                moved = mobius.apply_to_infinite() if at_infinity else mobius.apply(center)
                if spherical and is_infinite(moved):
                    moved = INFINITY
                new_positions[sticker] = moved

    updated: Dict[Sticker, Sticker] = {}
    skipped = 0
    for source, moved in new_positions.items():
        target = old_positions.get(moved)
        if target is None:
            skipped += 1
            continue
        state.set(target.cell_index, target.sticker_index, state.get(source.cell_index, source.sticker_index))
        if (source.cell_index, source.sticker_index) == (target.cell_index, target.sticker_index):
            continue
        updated[source] = target

    state.commit()
    if skipped:
        logger.debug(f"Twist {twist.to_string()}: {skipped} sticker positions had no match")
    return updated


# ═══════════════════════════════════════════════════════════════════
# Puzzle
# ═══════════════════════════════════════════════════════════════════


class Puzzle:
    """A built puzzle.  Only its state and twist history change afterwards."""

    def __init__(
        self,
        config: PuzzleConfig,
        graph: CellGraph,
        topology: TopologyAnalyzer,
        all_twist_data: List[IdentifiedTwistData],
        state_calc_cells: Sequence[int],
        state: State,
        twist_history: TwistHistory,
        cell_tree: NearTree,
        twist_tree: NearTree,
        num_tiles: int = 0,
    ) -> None:
        self.config = config
        self.graph = graph
        self.topology = topology
        self.all_twist_data = all_twist_data
        self.state_calc_cells = list(state_calc_cells)
        self._state_calc_set = set(state_calc_cells)
        self.state = state
        self.twist_history = twist_history
        self._cell_tree = cell_tree
        self._twist_tree = twist_tree
        self.num_tiles = num_tiles

    @classmethod
    def build(cls, config: PuzzleConfig, status: Optional[BuildStatus] = None) -> "Puzzle":
        """Like :func:`build_puzzle`, but raises :class:`BuildCancelled`."""
        result = build_puzzle(config, status)
        if isinstance(result, Cancelled):
            raise BuildCancelled(result.stage)
        return result

    def __repr__(self) -> str:
        return (
            f"Puzzle({self.config.display_name!r}, colors={len(self.masters)}, "
            f"twists={len(self.all_twist_data)}, {self.topology})"
        )

    # ── Cells ───────────────────────────────────────────────────────

    @property
    def geometry(self) -> Geometry:
        return self.config.geometry

    @property
    def is_spherical(self) -> bool:
        return self.geometry == Geometry.SPHERICAL

    @property
    def masters(self) -> List[Cell]:
        return self.graph.master_cells

    def slaves_of(self, master: Cell) -> List[Cell]:
        return self.graph.slaves_of(master)

    @property
    def all_cells(self) -> List[Cell]:
        return list(self.graph.all_cells)

    @property
    def num_stickers(self) -> int:
        return self.state.num_stickers

    def is_state_calc_cell(self, cell: Cell) -> bool:
        return cell.index in self._state_calc_set

    def infinity_safe(self, point: complex) -> complex:
        return _safe(self.geometry, point)

    def closest_cell(self, point: complex) -> Optional[Cell]:
        return self._cell_tree.nearest(point)

    def closest_twisting_circles(self, point: complex) -> Optional[TwistData]:
        return self._twist_tree.nearest(point)

    # ── Twisting ────────────────────────────────────────────────────

    def make_twist(self, index: int, left_click: bool = True, slice_mask: int = 1) -> SingleTwist:
        return SingleTwist(self.all_twist_data[index], left_click=left_click, slice_mask=slice_mask)

    def update_state(self, twist: SingleTwist) -> Dict[Sticker, Sticker]:
        return update_state(self.config, self.state, twist)

    def apply_twist(self, twist: SingleTwist) -> Dict[Sticker, Sticker]:
        """Twist and record it in the history."""
        moved = self.update_state(twist)
        self.twist_history.update(twist)
        return moved

    def undo(self) -> bool:
        twist = self.twist_history.undo_twist()
        if twist is None:
            return False
        self.apply_twist(twist)
        return True

    def redo(self) -> bool:
        twist = self.twist_history.redo_twist()
        if twist is None:
            return False
        self.apply_twist(twist)
        return True

    def scramble(self, num_twists: int, rng: Optional[np.random.Generator] = None) -> List[SingleTwist]:
        """Apply *num_twists* random twists, never repeating the previous axis.

        Toggling puzzles get random toggles instead, and the returned list
        is empty.
        """
        rng = rng if rng is not None else np.random.default_rng()
        if self.is_toggling:
            self.random_toggles(num_twists, rng)
            return []
        candidates = self.all_twist_data
        if not candidates or num_twists <= 0:
            return []

        applied: List[SingleTwist] = []
        for _ in range(num_twists):
            identified = candidates[int(rng.integers(len(candidates)))]
            last = self.twist_history.twists[-1].identified if self.twist_history.twists else None
            if last is not None and len(candidates) > 2:
                while identified is last:
                    identified = candidates[int(rng.integers(len(candidates)))]

            td = (identified.for_state_calcs or identified.for_drawing)[0]
            slice_number = int(rng.integers(td.num_slices)) + 1
            twist = SingleTwist(
                identified,
                left_click=bool(rng.integers(2)),
                slice_mask=slice_to_mask(slice_number),
            )
            self.apply_twist(twist)
            applied.append(twist)

        self.twist_history.scrambles += num_twists
        return applied

    @property
    def is_toggling(self) -> bool:
        """Single-sticker puzzles are played by toggling cells, not twisting."""
        return self.num_stickers == 1

    def toggle_cell(self, cell: Cell, include_self: bool = True) -> None:
        """Lights-out move: flip the first sticker of the cell's neighbors."""
        master = self.graph[cell.master_or_self]
        colors = set(master.neighbors)
        if include_self:
            colors.add(master.index_of_master)
        for color in sorted(colors):
            if color >= 0:
                self.state.toggle(color, 0)
        self.state.commit()
        self.twist_history.update_toggle(master.index)

    def random_toggles(self, num_toggles: int, rng: Optional[np.random.Generator] = None) -> None:
        rng = rng if rng is not None else np.random.default_rng()
        masters = self.masters
        for _ in range(num_toggles):
            self.toggle_cell(masters[int(rng.integers(len(masters)))])
        self.twist_history.scrambles += num_toggles

    def reset(self) -> None:
        self.state.reset()
        self.twist_history.clear()
