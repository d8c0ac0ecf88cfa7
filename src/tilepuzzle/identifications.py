"""Turn a puzzle's identification rules into isometries.

Each resulting :class:`PuzzleIdentification` holds the isometry (and,
optionally, its mirror image) that carries a parent cell onto a cell one
identification step away.  Applying them breadth-first from a master
cell discovers all its slave cells (see :mod:`tilepuzzle.cells`).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .circles import Circle
from .config import PuzzleConfig
from .group_presentation import read_relations
from .isometry import Isometry
from .mobius import Mobius, MobiusSet
from .polygon import Segment
from .tiling import Tile

logger = logging.getLogger(__name__)


@dataclass
class PuzzleIdentification:
    unmirrored: Isometry
    mirrored: Optional[Isometry] = None
    use_mirrored: bool = False

    @property
    def isometries(self) -> List[Isometry]:
        if self.use_mirrored and self.mirrored is not None:
            return [self.unmirrored, self.mirrored]
        return [self.unmirrored]


def precalc_identifications(config: PuzzleConfig, template: Tile) -> List[PuzzleIdentification]:
    """Pre-compute every identification isometry once.

    Applying a precomputed isometry is far cheaper than repeating the
    reflections for every cell.
    """
    if config.using_relations:
        return relation_identifications(config, template)
    return explicit_identifications(config, template)


# ═══════════════════════════════════════════════════════════════════
# Explicit edge-reflection sequences
# ═══════════════════════════════════════════════════════════════════


def explicit_identifications(config: PuzzleConfig, template: Tile) -> List[PuzzleIdentification]:
    result: List[PuzzleIdentification] = []
    num_sides = template.boundary.num_sides

    for identification in config.identifications:
        initial_edges = list(identification.initial_edges) or list(range(num_sides))
        edge_sets = [
            list(identification.edges),
            [config.p - edge for edge in identification.edges],
        ]

        for initial_edge in initial_edges:
            ident = PuzzleIdentification(Isometry(), use_mirrored=identification.use_mirrored)
            for i, edge_set in enumerate(edge_sets):
                mirror = i == 1
                if mirror and initial_edge != 0:
                    initial_edge = config.p - initial_edge
                isometry = _reflect_sequence(
                    config, template, initial_edge, edge_set, mirror, identification
                )
                if mirror:
                    ident.mirrored = isometry
                else:
                    ident.unmirrored = isometry
            result.append(ident)

    logger.debug(f"Pre-computed {len(result)} explicit identifications")
    return result


def _reflect_sequence(config, template, initial_edge, edge_set, mirror, identification) -> Isometry:
    boundary = template.boundary.clone()
    segment = boundary.segments[initial_edge]

    if identification.in_place_reflection:
        boundary.reflect(Segment.line(0j, segment.midpoint))
    boundary.reflect(segment)

    s_index = initial_edge
    even = boundary.orientation
    for offset in edge_set:
        s_index += offset if even else -offset
        even = not even
        s_index %= boundary.num_sides
        boundary.reflect(boundary.segments[s_index])

    if identification.end_rotation != 0:
        angle = identification.end_rotation * 2 * math.pi / config.p
        if mirror:
            angle = -angle
        rotate = Mobius.elliptic(config.geometry, boundary.center, angle)
        boundary.transform(rotate)

    return Isometry.from_two_polygons(template, boundary, config.geometry).inverse()


# ═══════════════════════════════════════════════════════════════════
# Group presentations
# ═══════════════════════════════════════════════════════════════════


def fundamental_mirrors(template: Tile):
    """The fundamental triangle's defining points and its three mirrors."""
    seg = template.boundary.segments[0]
    p1, p2, p3 = 0j, seg.midpoint, seg.p1
    mirrors = [
        Circle.from_2_points(p1, p2),
        Circle.from_2_points(p1, p3),
        seg.circle if seg.is_arc else Circle.from_2_points(seg.p1, seg.p2),
    ]
    return (p1, p2, p3), mirrors


def relation_identifications(config: PuzzleConfig, template: Tile) -> List[PuzzleIdentification]:
    source, mirrors = fundamental_mirrors(template)
    p1, p2, p3 = source
    identity = Mobius.identity()

    transforms = MobiusSet()
    for reflections in read_relations(config.group_relations):
        points = list(source)
        for index in reflections:
            points = [mirrors[index].reflect_point(z) for z in points]
        m = Mobius.map_points(*points, p1, p2, p3)
        if m != identity:
            transforms.add(m)

    def rot(v: complex, n: int, m1: int, m2: int) -> complex:
        for _ in range(n):
            v = mirrors[m1].reflect_point(v)
            v = mirrors[m2].reflect_point(v)
        return v

    # Relation words alone under-generate; close up under conjugation.
    target = config.p * config.expected_num_colors * 2
    while len(transforms) < target:
        before = len(transforms)
        for p in range(config.p):
            add_conjugations(transforms, source, lambda v, p=p: rot(v, p, 0, 1), target)
        add_conjugations(transforms, source, mirrors[2].reflect_point, target)
        if len(transforms) == before:
            logger.warning(
                f"Relation closure stalled at {before} transforms (wanted {target})"
            )
            break

    logger.debug(f"Pre-computed {len(transforms)} identifications from relations")
    return [PuzzleIdentification(Isometry(m)) for m in transforms]


def add_conjugations(
    transforms: MobiusSet,
    source: Sequence[complex],
    transform: Callable[[complex], complex],
    limit: int,
) -> None:
    """Add the conjugate of every transform by *transform* (up to *limit*)."""
    conjugations = MobiusSet(transforms)
    p1, p2, p3 = source
    for m in transforms:
        points = [transform(z) for z in (p1, p2, p3, m.apply(p1), m.apply(p2), m.apply(p3))]
        conjugations.add(Mobius.map_points(*points))
        if len(conjugations) >= limit:
            break
    transforms.update(conjugations)
