"""Cut polygons with slicing circles.

A twisting circle is drawn with a small thickness, so
:func:`slice_polygon` cuts twice, with circles offset outward and inward
by half the thickness in the true metric, and keeps the pieces lying
outside the first and inside the second.  The gap between them becomes
the visible groove between stickers.

The single-circle cut (:func:`slice_polygon_with_circle`) works like this:

1. Split the boundary segments at every intersection point with the
   circle, remembering where each point landed in the diced boundary.
2. From each pair of consecutive intersection points, walk the boundary
   in both directions, splicing in an arc of the slicing circle whenever
   the walk reaches another intersection point.
3. Drop pieces that repeat.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .circles import Circle, CircleNE
from .geometry import Geometry, points_equal, rotate
from .mobius import Mobius
from .polygon import Polygon, Segment

logger = logging.getLogger(__name__)


@dataclass
class _IntersectionPoint:
    location: complex
    index: int


class SliceError(Exception):
    """Raised internally when a cut cannot be resolved."""


# ═══════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════


def offset_circles(c: CircleNE, g: Geometry, thickness: float) -> Tuple[CircleNE, CircleNE]:
    """The two circles offset by +-thickness/2 from *c* in geometry *g*."""
    point_on_circle = c.p1 if c.is_line else c.center + c.radius
    offset = thickness / 2
    c1 = c.clone()
    c1.transform(Mobius.hyperbolic_offset(g, c.center_ne, point_on_circle, offset))
    c2 = c.clone()
    c2.transform(Mobius.hyperbolic_offset(g, c.center_ne, point_on_circle, -offset))
    return c1, c2


def slice_polygon(polygon: Polygon, c: CircleNE, g: Geometry, thickness: float) -> List[Polygon]:
    """Cut *polygon* along a thick copy of *c*; the groove is discarded."""
    c1, c2 = offset_circles(c, g, thickness)
    output: List[Polygon] = []
    for piece in slice_polygon_with_circle(polygon, c1):
        if not c1.is_point_inside_ne(piece.centroid_approx):
            output.append(piece)
    for piece in slice_polygon_with_circle(polygon, c2):
        if c2.is_point_inside_ne(piece.centroid_approx):
            output.append(piece)
    return output


def slice_polygon_with_circle(polygon: Polygon, c: Circle) -> List[Polygon]:
    """Cut *polygon* along *c*.

    *polygon* is made counter-clockwise in place.  A polygon the circle
    misses (or only touches) is returned unsliced; a cut that cannot be
    resolved returns an empty list.
    """
    try:
        return _slice(polygon, c)
    except SliceError as exc:
        logger.debug(f"Could not slice polygon: {exc}")
        return []


# ═══════════════════════════════════════════════════════════════════
# Internals
# ═══════════════════════════════════════════════════════════════════


def _slice(p: Polygon, c: Circle) -> List[Polygon]:
    if p.num_sides < 2:
        raise SliceError("fewer than two sides")

    if not p.orientation:
        p.reverse()

    diced = Polygon()
    i_points: List[_IntersectionPoint] = []
    for s in p.segments:
        intersections = c.intersection_points(s)
        if intersections is None:
            continue
        if len(intersections) == 0:
            diced.segments.append(s)
        elif len(intersections) == 1:
            diced.segments.append(_split_helper(s, intersections[0], diced, i_points))
        elif len(intersections) == 2:
            i1, i2 = intersections
            if not s.ordered(i1, i2):
                i1, i2 = i2, i1
            second = _split_helper(s, i1, diced, i_points)
            diced.segments.append(_split_helper(second, i2, diced, i_points))
        else:
            raise SliceError(f"{len(intersections)} intersections on one segment")

    # Tangencies are let through unsliced.
    if len(i_points) < 2:
        return [p]

    if len(i_points) % 2 == 1:
        raise SliceError(f"odd number of intersections ({len(i_points)})")

    if len(i_points) > 2:
        # Walking i1 -> i2 along the circle must pass through the interior.
        test_arc, _, _ = _smaller_spliced_arc(c, i_points, 0, True)
        if not p.is_point_inside_paranoid(test_arc.midpoint):
            i_points.append(i_points.pop(0))

    output: List[Polygon] = []
    for pair in range(len(i_points) // 2):
        output.append(_walk_polygon(p, diced, c, pair, i_points, True))
        output.append(_walk_polygon(p, diced, c, pair, i_points, False))

    for poly in output:
        poly.center = poly.centroid_approx

    unique: List[Polygon] = []
    for poly in output:
        if not any(_same_polygon(poly, kept) for kept in unique):
            unique.append(poly)
    return unique


def _split_helper(
    segment: Segment, location: complex, diced: Polygon, i_points: List[_IntersectionPoint]
) -> Segment:
    split = segment.split(location)
    if split:
        diced.segments.append(split[0])
        i_points.append(_IntersectionPoint(location, len(diced.segments)))
        return split[1]

    # At an endpoint; only the start point is recorded so nothing repeats.
    if points_equal(location, segment.p1):
        i_points.append(_IntersectionPoint(location, len(diced.segments)))
    return segment


def _pair_points(
    i_points: List[_IntersectionPoint], pair: int, increment: bool
) -> Tuple[_IntersectionPoint, _IntersectionPoint]:
    idx1, idx2 = pair * 2, pair * 2 + 1
    if not increment:
        idx1, idx2 = idx2, idx1
    return i_points[idx1], i_points[idx2]


def _smaller_spliced_arc(
    c: Circle, i_points: List[_IntersectionPoint], pair: int, increment: bool
) -> Tuple[Segment, int, int]:
    """Returns the spliced segment, the next pair and the next segment index."""
    ip1, ip2 = _pair_points(i_points, pair, increment)
    if c.is_line:
        seg = Segment.line(ip1.location, ip2.location)
    else:
        seg = Segment.arc(ip1.location, ip2.location, c.center)
        if seg.angle > math.pi:
            seg.clockwise = False
    pair += 1
    if pair == len(i_points) // 2:
        pair = 0
    return seg, pair, ip2.index


def _spliced_seg(
    parent: Polygon, c: Circle, i_points: List[_IntersectionPoint], pair: int, increment: bool
) -> Tuple[Segment, int, int]:
    spliced, pair, next_index = _smaller_spliced_arc(c, i_points, pair, increment)
    if c.is_line or abs(spliced.angle) < math.pi * 0.75:
        return spliced, pair, next_index

    # Long arcs may go the wrong way round; make sure we run through the parent.
    test_angle = spliced.angle / 1000
    if spliced.clockwise:
        test_angle = -test_angle
    sample = spliced.center + rotate(spliced.p1 - spliced.center, test_angle)
    if not parent.is_point_inside_paranoid(sample):
        spliced.clockwise = not spliced.clockwise
    return spliced, pair, next_index


def _walk_polygon(
    parent: Polygon,
    walking: Polygon,
    c: Circle,
    pair: int,
    i_points: List[_IntersectionPoint],
    increment: bool,
) -> Polygon:
    start, _ = _pair_points(i_points, pair, increment)
    start_location = start.location
    locations = [ip.location for ip in i_points]

    poly = Polygon()
    current, pair, i_seg = _spliced_seg(parent, c, i_points, pair, increment)
    poly.segments.append(current.clone())

    # Every pass either closes the loop or advances one diced segment.
    for _ in range(len(walking.segments) + len(i_points) + 1):
        i_seg %= len(walking.segments)
        current = walking.segments[i_seg]
        poly.segments.append(current.clone())
        i_seg += 1
        if points_equal(current.p2, start_location):
            return poly

        if any(points_equal(current.p2, loc) for loc in locations):
            current, pair, i_seg = _spliced_seg(parent, c, i_points, pair, increment)
            poly.segments.append(current.clone())
            if points_equal(current.p2, start_location):
                return poly

    raise SliceError("walk around the polygon did not close")


def _same_polygon(a: Polygon, b: Polygon) -> bool:
    va, vb = a.vertices, b.vertices
    if len(va) != len(vb):
        return False
    remaining = list(vb)
    for v in va:
        match: Optional[int] = next(
            (i for i, w in enumerate(remaining) if points_equal(v, w)), None
        )
        if match is None:
            return False
        remaining.pop(match)
    return True
