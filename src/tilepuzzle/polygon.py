"""Segments (lines or circular arcs) and the polygons built from them.

In the spherical and hyperbolic models, geodesics are circular arcs, so
a tile's boundary is a closed loop of :class:`Segment` objects that may
be either kind.  Both classes are mutable: ``reflect`` and ``transform``
work in place, and callers ``clone()`` first when they need a copy.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import List, Optional

from .circles import Circle, CircleNE
from .geometry import (
    FINITE_SCALE,
    Geometry,
    angle_between,
    angle_to_clock,
    angle_to_counter_clock,
    cross,
    equal,
    geometry_for,
    is_infinite,
    less_than_or_equal,
    normalized,
    normalized_circumradius,
    points_equal,
    reflect_point_in_line,
    rotate,
)

ARC_RESOLUTION = math.radians(4.5)
MIN_ARC_SEGMENTS = 10

# Prime-ish ray directions for the point-in-polygon test.
_RAY = complex(10007, 103)
_RAY_ALT1 = complex(103, 10007)
_RAY_ALT2 = complex(7001, 7993)


# ═══════════════════════════════════════════════════════════════════
# Segment
# ═══════════════════════════════════════════════════════════════════


@dataclass
class Segment:
    p1: complex
    p2: complex
    is_arc: bool = False
    center: complex = 0j
    clockwise: bool = False

    @classmethod
    def line(cls, start: complex, end: complex) -> "Segment":
        return cls(start, end)

    @classmethod
    def arc(cls, start: complex, end: complex, center: complex, clockwise: bool = True) -> "Segment":
        # Arcs built from a center are always taken clockwise.
        return cls(start, end, True, center, True)

    @classmethod
    def arc_from_3_points(cls, start: complex, mid: complex, end: complex) -> "Segment":
        c = Circle.from_3_points(start, mid, end)
        s = start - c.center
        m = mid - c.center
        e = end - c.center
        clockwise = cross(s, e) < 0
        if not equal(angle_between(s, e), angle_between(s, m) + angle_between(m, e)):
            clockwise = not clockwise
        return cls(start, end, True, c.center, clockwise)

    def clone(self) -> "Segment":
        return copy.copy(self)

    # ── measurements ───────────────────────────────────────────────

    @property
    def radius(self) -> float:
        return abs(self.p1 - self.center)

    @property
    def angle(self) -> float:
        if not self.is_arc:
            return 0.0
        v1 = self.p1 - self.center
        v2 = self.p2 - self.center
        if self.clockwise:
            return angle_to_clock(v1, v2)
        return angle_to_counter_clock(v1, v2)

    @property
    def circle(self) -> Circle:
        return Circle(self.center, self.radius)

    @property
    def length(self) -> float:
        if self.is_arc:
            return self.radius * self.angle
        return abs(self.p2 - self.p1)

    @property
    def midpoint(self) -> complex:
        if self.is_arc:
            a = self.angle / 2
            return self.center + rotate(self.p1 - self.center, -a if self.clockwise else a)
        return (self.p1 + self.p2) / 2

    def subdivide(self, num_segments: int) -> List[complex]:
        """Points splitting the segment into *num_segments* equal pieces."""
        if num_segments < 1:
            return []
        points = []
        if self.is_arc:
            v = self.p1 - self.center
            step = self.angle / num_segments
            for _ in range(num_segments):
                points.append(self.center + v)
                v = rotate(v, -step if self.clockwise else step)
        else:
            v = normalized(self.p2 - self.p1) or 0j
            length = self.length
            for i in range(num_segments):
                points.append(self.p1 + v * i * length / num_segments)
        points.append(self.p2)
        return points

    # ── point tests ────────────────────────────────────────────────

    def is_point_on(self, test: complex) -> bool:
        if self.is_arc:
            v1 = self.p1 - self.center
            v2 = test - self.center
            if self.clockwise:
                angle = angle_to_clock(v1, v2)
            else:
                angle = angle_to_counter_clock(v1, v2)
            return less_than_or_equal(angle, self.angle)
        d1 = abs(self.p2 - self.p1)
        d2 = abs(test - self.p1)
        d3 = abs(self.p2 - test)
        return equal(d1, d2 + d3)

    def reflect_point(self, p: complex) -> complex:
        if self.is_arc:
            return self.circle.reflect_point(p)
        return reflect_point_in_line(p, self.p1, self.p2)

    # ── mutation ───────────────────────────────────────────────────

    def reverse(self) -> None:
        self.p1, self.p2 = self.p2, self.p1
        if self.is_arc:
            self.clockwise = not self.clockwise

    def _finite_midpoint(self) -> complex:
        mid = self.midpoint
        if is_infinite(mid):
            mid = self.p2 * FINITE_SCALE if is_infinite(self.p1) else self.p1 * FINITE_SCALE
        return mid

    def _refit(self, p1: complex, mid: complex, p2: complex) -> None:
        """Become the arc (or line) through the three mapped points."""
        self.p1, self.p2 = p1, p2
        c = Circle()
        if (
            not is_infinite(p1)
            and not is_infinite(p2)
            and not is_infinite(mid)
            and c.set_from_3_points(p1, mid, p2)
        ):
            self.is_arc = True
            self.center = c.center
            t1 = p1 - c.center
            t2 = mid - c.center
            t3 = p2 - c.center
            self.clockwise = angle_to_counter_clock(t3, t1) > angle_to_counter_clock(t2, t1)
        else:
            self.is_arc = False

    def reflect(self, mirror: "Segment") -> None:
        mid = self._finite_midpoint()
        self._refit(
            mirror.reflect_point(self.p1),
            mirror.reflect_point(mid),
            mirror.reflect_point(self.p2),
        )

    def transform(self, t) -> None:
        """Apply a Mobius or an Isometry."""
        mid = self._finite_midpoint()
        self._refit(t.apply(self.p1), t.apply(mid), t.apply(self.p2))

    def split(self, point: complex) -> List["Segment"]:
        """Split at *point*; empty if the point is not interior to us."""
        if not self.is_point_on(point):
            return []
        if points_equal(point, self.p1) or points_equal(point, self.p2):
            return []
        s1 = self.clone()
        s2 = self.clone()
        s1.p2 = point
        s2.p1 = point
        return [s1, s2]

    def ordered(self, test1: complex, test2: complex) -> bool:
        """True if *test1* comes before *test2* walking from p1 to p2."""
        if points_equal(test1, test2):
            return False
        if not self.is_point_on(test1) or not self.is_point_on(test2):
            return False
        if any(points_equal(t, e) for t in (test1, test2) for e in (self.p1, self.p2)):
            return False
        if self.is_arc:
            t1 = self.p1 - self.center
            t2 = test1 - self.center
            t3 = test2 - self.center
            if self.clockwise:
                return angle_to_clock(t1, t2) < angle_to_clock(t1, t3)
            return angle_to_counter_clock(t1, t2) < angle_to_counter_clock(t1, t3)
        return abs(test1 - self.p1) < abs(test2 - self.p1)


# ═══════════════════════════════════════════════════════════════════
# Polygon
# ═══════════════════════════════════════════════════════════════════


@dataclass
class Polygon:
    segments: List[Segment] = field(default_factory=list)
    center: complex = 0j

    @classmethod
    def from_points(cls, points) -> "Polygon":
        points = list(points)
        poly = cls([Segment.line(a, b) for a, b in zip(points, points[1:] + points[:1])])
        poly.center = poly.centroid_approx
        return poly

    @classmethod
    def create_regular(cls, p: int, q: int) -> "Polygon":
        """The regular {p,q} tile centered at the origin.

        Outside Euclidean geometry the edges are arcs orthogonal to the
        boundary of the model, which are set up here directly.
        """
        g = geometry_for(p, q)
        circum = normalized_circumradius(p, q)
        points = [
            complex(circum * math.cos(2 * math.pi * i / p), circum * math.sin(2 * math.pi * i / p))
            for i in range(p)
        ]

        segments = []
        for i, start in enumerate(points):
            seg = Segment(start, points[(i + 1) % p])
            if g != Geometry.EUCLIDEAN:
                seg.is_arc = True
                if p == 2:
                    factor = math.tan(math.pi / 6)
                    seg.center = complex(0, -circum if seg.p1.real > 0 else circum) * factor
                else:
                    t1 = math.pi / p
                    t2 = math.pi / 2 - math.pi / q - t1
                    factor = (math.tan(t1) / math.tan(t2) + 1) / 2
                    seg.center = (seg.p1 + seg.p2) * factor
                seg.clockwise = g != Geometry.SPHERICAL
            segments.append(seg)
        return cls(segments, 0j)

    def clone(self) -> "Polygon":
        return Polygon([s.clone() for s in self.segments], self.center)

    @property
    def num_sides(self) -> int:
        return len(self.segments)

    # ── measurements ───────────────────────────────────────────────

    @property
    def length(self) -> float:
        return sum(s.length for s in self.segments)

    @property
    def centroid_approx(self) -> complex:
        # Arc midpoints weighted by length, biased towards large arcs.
        total = self.length
        if total == 0:
            return 0j
        return sum((s.midpoint * s.length for s in self.segments), 0j) / total

    @property
    def vertices(self) -> List[complex]:
        return [s.p1 for s in self.segments]

    @property
    def edge_midpoints(self) -> List[complex]:
        return [s.midpoint for s in self.segments]

    def edge_points(
        self,
        arc_resolution: float = ARC_RESOLUTION,
        min_segments: int = MIN_ARC_SEGMENTS,
        check_for_infinities: bool = True,
    ) -> List[complex]:
        """Boundary sampled finely enough to stand in for the arcs."""
        points: List[complex] = []
        for s in self.segments:
            if check_for_infinities and is_infinite(s.p1):
                points.append(s.p2 * FINITE_SCALE)
            else:
                points.append(s.p1)

            if s.is_arc:
                max_angle = s.angle
                count = max(int(max_angle / arc_resolution), min_segments)
                step = max_angle / count
                v = s.p1 - s.center
                for _ in range(1, count):
                    v = rotate(v, -step if s.clockwise else step)
                    points.append(s.center + v)

            if check_for_infinities and is_infinite(s.p2):
                points.append(s.p1 * FINITE_SCALE)
            else:
                points.append(s.p2)
        return points

    @property
    def signed_area(self) -> float:
        points = self.edge_points()
        area = 0.0
        for i, v1 in enumerate(points):
            v2 = points[(i + 1) % len(points)]
            area += v1.real * v2.imag - v1.imag * v2.real
        return area / 2

    @property
    def orientation(self) -> bool:
        """True for counter-clockwise."""
        return self.signed_area > 0

    @property
    def circumcircle(self) -> CircleNE:
        result = CircleNE()
        if len(self.segments) > 2:
            result.set_from_3_points(*(s.p1 for s in self.segments[:3]))
        result.center_ne = self.center
        return result

    # ── mutation ───────────────────────────────────────────────────

    def reverse(self) -> None:
        for s in self.segments:
            s.reverse()
        self.segments.reverse()

    def cycle(self, num: int) -> None:
        """Move the first *num* segments to the end."""
        if num < 0 or num > self.num_sides:
            raise ValueError("cycle called with invalid input")
        self.segments = self.segments[num:] + self.segments[:num]

    def reflect(self, mirror: Segment) -> None:
        for s in self.segments:
            s.reflect(mirror)
        self.center = mirror.reflect_point(self.center)

    def transform(self, t) -> None:
        for s in self.segments:
            s.transform(t)
        self.center = t.apply_infinite_safe(self.center)

    # ── inside tests ───────────────────────────────────────────────

    def intersection_points(self, line: Circle) -> List[complex]:
        points: List[complex] = []
        for s in self.segments:
            points.extend(line.intersection_points(s) or [])
        return points

    @property
    def is_inverted(self) -> bool:
        """True when the polygon's interior contains infinity."""
        if abs(self.center) < 1.5:
            return False
        if is_infinite(self.center):
            return True
        if self.is_point_inside(self.center):
            return False
        # Ray casting gives false positives here; let a second ray vote.
        if not self.is_point_inside(self.center, _RAY_ALT1):
            return True
        return not self.is_point_inside(self.center, _RAY_ALT2)

    def is_point_inside_paranoid(self, p: complex) -> bool:
        votes = sum(self.is_point_inside(p, ray) for ray in (_RAY, _RAY_ALT1, _RAY_ALT2))
        return votes >= 2

    def is_point_inside(self, p: complex, direction: Optional[complex] = None) -> bool:
        """Ray-cast test; the ray runs from *p* towards +x."""
        ray = Circle.from_2_points(p, p + (direction if direction is not None else _RAY))
        hits: List[complex] = []
        for hit in self.intersection_points(ray):
            if hit.real <= p.real:
                continue
            if not any(points_equal(hit, h, 1e-4) for h in hits):
                hits.append(hit)
        return len(hits) % 2 == 1
