"""Geometry primitives shared by the whole package.

Points are plain :class:`complex` numbers.  This module holds the
float-tolerance helpers, the handling of the point at infinity, the norm
conversions between Euclidean and spherical/hyperbolic distances, the
{p,q} triangle measurements, a set of Euclidean 2D helpers, and
:class:`PointMap`, a dict keyed by points that treats points equal within
tolerance as the same key.
"""

from __future__ import annotations

import cmath
import math
from enum import Enum
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

TOLERANCE = 1e-6

INFINITE_SCALE = 500000.0
FINITE_SCALE = 10000.0
INFINITY = complex(math.inf, math.inf)
LARGE_FINITE = complex(FINITE_SCALE, FINITE_SCALE)

EUCLIDEAN_HYPOTENUSE = 1.0 / 3.0
DISK_RADIUS = 1.0


class Geometry(Enum):
    SPHERICAL = "spherical"
    EUCLIDEAN = "euclidean"
    HYPERBOLIC = "hyperbolic"


def geometry_for(p: int, q: int) -> Geometry:
    """Return the geometry induced by a {p,q} tiling."""
    test = 1.0 / p + 1.0 / q
    if test > 0.5:
        return Geometry.SPHERICAL
    if test == 0.5:
        return Geometry.EUCLIDEAN
    return Geometry.HYPERBOLIC


# ═══════════════════════════════════════════════════════════════════
# Tolerant comparisons
# ═══════════════════════════════════════════════════════════════════


def zero(d: float, threshold: float = TOLERANCE) -> bool:
    return -threshold < d < threshold


def equal(a: float, b: float, threshold: float = TOLERANCE) -> bool:
    return zero(a - b, threshold)


def less_than(a: float, b: float, threshold: float = TOLERANCE) -> bool:
    return a < b - threshold


def greater_than(a: float, b: float, threshold: float = TOLERANCE) -> bool:
    return a > b + threshold


def less_than_or_equal(a: float, b: float, threshold: float = TOLERANCE) -> bool:
    return a <= b + threshold


def points_equal(a: complex, b: complex, threshold: float = TOLERANCE) -> bool:
    if a == b:
        return True
    inf_a, inf_b = is_infinite(a), is_infinite(b)
    if inf_a or inf_b:
        return inf_a and inf_b
    return equal(a.real, b.real, threshold) and equal(a.imag, b.imag, threshold)


# ═══════════════════════════════════════════════════════════════════
# Infinity
# ═══════════════════════════════════════════════════════════════════


def _infinite_value(x: float) -> bool:
    return math.isnan(x) or math.isinf(x) or abs(x) >= INFINITE_SCALE


def is_infinite(z: complex) -> bool:
    """True for points at (or numerically indistinguishable from) infinity."""
    if _infinite_value(z.real) or _infinite_value(z.imag):
        return True
    return abs(z) > INFINITE_SCALE


def infinity_safe(z: complex) -> complex:
    """Replace infinite points with a large finite stand-in."""
    return LARGE_FINITE if is_infinite(z) else z


# ═══════════════════════════════════════════════════════════════════
# Norm conversions
# ═══════════════════════════════════════════════════════════════════


def s2e_norm(spherical: float) -> float:
    return math.tan(spherical / 2)


def e2s_norm(euclidean: float) -> float:
    return 2 * math.atan(euclidean)


def h2e_norm(hyperbolic: float) -> float:
    if math.isnan(hyperbolic):
        return 1.0
    return math.tanh(hyperbolic / 2)


def e2h_norm(euclidean: float) -> float:
    if euclidean >= 1.0:
        return math.inf
    return 2 * math.atanh(euclidean)


# ═══════════════════════════════════════════════════════════════════
# {p,q} triangle measurements
# ═══════════════════════════════════════════════════════════════════
#
# The (2,q,p) triangle has angles pi/2 at the edge midpoint, pi/q at the
# vertex and pi/p at the tile center.


def _triangle_side(g: Geometry, a: float, b: float, c: float) -> float:
    value = (math.cos(a) + math.cos(b) * math.cos(c)) / (math.sin(b) * math.sin(c))
    if g == Geometry.SPHERICAL:
        return math.acos(max(-1.0, min(1.0, value)))
    return math.acosh(max(1.0, value))


def _triangle_angles(p: int, q: int) -> Tuple[float, float, float]:
    return math.pi / 2, math.pi / q, math.pi / p


def triangle_hypotenuse(p: int, q: int) -> float:
    """Distance from the tile center to a tile vertex."""
    g = geometry_for(p, q)
    if g == Geometry.EUCLIDEAN:
        return EUCLIDEAN_HYPOTENUSE
    alpha, beta, gamma = _triangle_angles(p, q)
    return _triangle_side(g, alpha, beta, gamma)


def triangle_p_side(p: int, q: int) -> float:
    """Side opposite the tile-center angle: edge midpoint to vertex."""
    g = geometry_for(p, q)
    alpha, beta, gamma = _triangle_angles(p, q)
    if g == Geometry.EUCLIDEAN:
        return EUCLIDEAN_HYPOTENUSE * math.sin(gamma)
    return _triangle_side(g, gamma, beta, alpha)


def triangle_q_side(p: int, q: int) -> float:
    """Side opposite the vertex angle: tile center to edge midpoint."""
    g = geometry_for(p, q)
    alpha, beta, gamma = _triangle_angles(p, q)
    if g == Geometry.EUCLIDEAN:
        return EUCLIDEAN_HYPOTENUSE * math.sin(beta)
    return _triangle_side(g, beta, gamma, alpha)


def normalized_circumradius(p: int, q: int) -> float:
    """Euclidean circumradius of the regular tile centered at the origin."""
    hypot = triangle_hypotenuse(p, q)
    g = geometry_for(p, q)
    if g == Geometry.SPHERICAL:
        return s2e_norm(hypot)
    if g == Geometry.EUCLIDEAN:
        return EUCLIDEAN_HYPOTENUSE
    return h2e_norm(hypot)


# ═══════════════════════════════════════════════════════════════════
# Euclidean 2D helpers
# ═══════════════════════════════════════════════════════════════════


def cross(a: complex, b: complex) -> float:
    """Z component of the 3D cross product of two planar vectors."""
    return a.real * b.imag - a.imag * b.real


def dot(a: complex, b: complex) -> float:
    return a.real * b.real + a.imag * b.imag


def normalized(v: complex) -> Optional[complex]:
    mag = abs(v)
    if zero(mag):
        return None
    return v / mag


def rotate(v: complex, angle: float) -> complex:
    return v * cmath.exp(1j * angle)


def angle_to_counter_clock(v1: complex, v2: complex) -> float:
    angle = math.atan2(v2.imag, v2.real) - math.atan2(v1.imag, v1.real)
    if angle < 0:
        return angle + 2 * math.pi
    return angle


def angle_to_clock(v1: complex, v2: complex) -> float:
    return 2 * math.pi - angle_to_counter_clock(v1, v2)


def angle_between(v1: complex, v2: complex) -> float:
    """Unsigned angle between two vectors, in [0, pi]."""
    m = abs(v1) * abs(v2)
    if m == 0:
        return 0.0
    return math.acos(max(-1.0, min(1.0, dot(v1, v2) / m)))


def distance_point_line(p: complex, line_p1: complex, line_p2: complex) -> float:
    v1 = line_p2 - line_p1
    mag = abs(v1)
    if zero(mag):
        return math.nan
    return abs(cross(v1, p - line_p1)) / mag


def project_onto_line(p: complex, line_p1: complex, line_p2: complex) -> complex:
    v1 = normalized(line_p2 - line_p1)
    if v1 is None:
        return 0j
    return line_p1 + v1 * dot(p - line_p1, v1)


def reflect_point_in_line(p: complex, line_p1: complex, line_p2: complex) -> complex:
    proj = project_onto_line(p, line_p1, line_p2)
    return p + (proj - p) * 2


def same_side_of_line(line_p1: complex, line_p2: complex, t1: complex, t2: complex) -> bool:
    d = line_p2 - line_p1
    pos1 = cross(t1 - line_p1, d) > 0
    pos2 = cross(t2 - line_p1, d) > 0
    return pos1 == pos2


def intersection_line_line(
    p1: complex, p2: complex, p3: complex, p4: complex
) -> Optional[complex]:
    """Intersection of line p1-p2 with line p3-p4, or None if parallel."""
    n1 = p2 - p1
    n2 = p4 - p3
    if zero(abs(cross(n1, n2))):
        return None

    d3 = distance_point_line(p3, p1, p2)
    d4 = distance_point_line(p4, p1, p2)
    a3 = angle_to_clock(p3 - p1, n1)
    a4 = angle_to_clock(p4 - p1, n1)
    same_side = (a4 > math.pi) if a3 > math.pi else (a4 <= math.pi)
    factor = d3 / (d3 - d4) if same_side else d3 / (d3 + d4)
    return p3 + n2 * factor


def intersection_circle_circle(
    c1: complex, r1: float, c2: complex, r2: float
) -> Tuple[int, List[complex]]:
    """Intersect two circles.

    Returns ``(count, points)`` where a count of -1 means the circles are
    identical.
    """
    v = c2 - c1
    d = abs(v)
    if zero(d):
        return (-1, []) if equal(r1, r2) else (0, [])

    v = v / d
    if greater_than(d, r1 + r2) or less_than(d, abs(r1 - r2)):
        return 0, []

    if equal(d, r1 + r2) or equal(d, abs(r1 - r2)):
        return 1, [c1 + v * r1]

    temp = (r1 * r1 - r2 * r2 + d * d) / (2 * d)
    angle = math.acos(max(-1.0, min(1.0, temp / r1)))
    base = v * r1
    return 2, [c1 + rotate(base, angle), c1 + rotate(base, -angle)]


def intersection_line_circle(
    line_p1: complex, line_p2: complex, center: complex, radius: float
) -> Tuple[int, List[complex]]:
    d = distance_point_line(center, line_p1, line_p2)
    if d > radius:
        return 0, []

    proj = project_onto_line(center, line_p1, line_p2)
    if equal(d, radius):
        return 1, [proj]

    if zero(d):
        line = normalized(line_p2 - line_p1) or 0j
        line *= radius
        return 2, [center + line, center - line]

    base = (normalized(proj - center) or 0j) * radius
    angle = math.acos(max(-1.0, min(1.0, d / radius)))
    return 2, [center + rotate(base, angle), center + rotate(base, -angle)]


# ═══════════════════════════════════════════════════════════════════
# Tolerant point-keyed containers
# ═══════════════════════════════════════════════════════════════════

V = TypeVar("V")

_INF_KEY = ("inf", "inf")


def point_key(z: complex) -> Tuple:
    """Quantised grid key for *z*; all infinite points share one key."""
    if is_infinite(z):
        return _INF_KEY
    return (round(z.real / TOLERANCE), round(z.imag / TOLERANCE))


def _neighbor_keys(key: Tuple) -> Iterator[Tuple]:
    if key == _INF_KEY:
        yield key
        return
    kx, ky = key
    yield key
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx or dy:
                yield (kx + dx, ky + dy)


class PointMap(Generic[V]):
    """Mapping from points to values, with tolerant key equality.

    Points are bucketed on a grid the size of the tolerance; lookups scan
    the neighbouring buckets so two points within tolerance always find
    each other.  Insertion order is preserved.
    """

    def __init__(self) -> None:
        self._buckets: Dict[Tuple, List[int]] = {}
        self._points: List[complex] = []
        self._values: List[V] = []
        self._alive: List[bool] = []
        self._size = 0

    def _find(self, z: complex) -> int:
        for key in _neighbor_keys(point_key(z)):
            for slot in self._buckets.get(key, ()):
                if self._alive[slot] and points_equal(self._points[slot], z):
                    return slot
        return -1

    def __contains__(self, z: complex) -> bool:
        return self._find(z) >= 0

    def __getitem__(self, z: complex) -> V:
        slot = self._find(z)
        if slot < 0:
            raise KeyError(z)
        return self._values[slot]

    def __setitem__(self, z: complex, value: V) -> None:
        slot = self._find(z)
        if slot >= 0:
            self._values[slot] = value
            return
        slot = len(self._points)
        self._points.append(z)
        self._values.append(value)
        self._alive.append(True)
        self._buckets.setdefault(point_key(z), []).append(slot)
        self._size += 1

    def __delitem__(self, z: complex) -> None:
        slot = self._find(z)
        if slot < 0:
            raise KeyError(z)
        self._alive[slot] = False
        self._size -= 1

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[complex]:
        return self.keys()

    def get(self, z: complex, default: Optional[V] = None) -> Optional[V]:
        slot = self._find(z)
        return self._values[slot] if slot >= 0 else default

    def setdefault(self, z: complex, default: V) -> V:
        slot = self._find(z)
        if slot >= 0:
            return self._values[slot]
        self[z] = default
        return default

    def keys(self) -> Iterator[complex]:
        for slot, alive in enumerate(self._alive):
            if alive:
                yield self._points[slot]

    def values(self) -> Iterator[V]:
        for slot, alive in enumerate(self._alive):
            if alive:
                yield self._values[slot]

    def items(self) -> Iterator[Tuple[complex, V]]:
        for slot, alive in enumerate(self._alive):
            if alive:
                yield self._points[slot], self._values[slot]


class PointSet:
    """Set of points with tolerant membership."""

    def __init__(self, points=()) -> None:
        self._map: PointMap[bool] = PointMap()
        for z in points:
            self.add(z)

    def add(self, z: complex) -> bool:
        """Add *z*; return False if an equal point was already present."""
        if z in self._map:
            return False
        self._map[z] = True
        return True

    def __contains__(self, z: complex) -> bool:
        return z in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[complex]:
        return self._map.keys()
