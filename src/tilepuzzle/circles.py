"""Generalised circles (circles and lines) and their non-Euclidean variant.

A :class:`Circle` with an infinite radius is a line through ``p1`` and
``p2``.  Circles are mutable: :meth:`Circle.reflect` and
:meth:`Circle.transform` update in place, so callers clone first when
they need to keep the original.

:class:`CircleNE` additionally tracks the *non-Euclidean* center.  After
an inversion the Euclidean interior of the circle may no longer be the
interior in the puzzle's geometry; the NE center tells the two apart.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from .geometry import (
    INFINITY,
    angle_to_clock,
    equal,
    intersection_circle_circle,
    intersection_line_circle,
    intersection_line_line,
    is_infinite,
    less_than,
    normalized,
    points_equal,
    project_onto_line,
    reflect_point_in_line,
    rotate,
    same_side_of_line,
)

if TYPE_CHECKING:
    from .polygon import Polygon, Segment


@dataclass
class Circle:
    center: complex = 0j
    radius: float = 1.0
    p1: complex = 0j
    p2: complex = 0j

    @classmethod
    def from_3_points(cls, p1: complex, p2: complex, p3: complex) -> "Circle":
        c = cls()
        c.set_from_3_points(p1, p2, p3)
        return c

    @classmethod
    def from_2_points(cls, p1: complex, p2: complex) -> "Circle":
        c = cls()
        c.set_from_2_points(p1, p2)
        return c

    @property
    def is_line(self) -> bool:
        return math.isinf(self.radius)

    def clone(self):
        return copy.copy(self)

    # ── construction helpers ───────────────────────────────────────

    def set_from_3_points(self, p1: complex, p2: complex, p3: complex) -> bool:
        """Fit through three points.  Returns False if a line resulted."""
        self.center, self.radius, self.p1, self.p2 = 0j, 1.0, 0j, 0j
        if is_infinite(p1):
            self.set_from_2_points(p2, p3)
            return False
        if is_infinite(p2):
            self.set_from_2_points(p1, p3)
            return False
        if is_infinite(p3):
            self.set_from_2_points(p1, p2)
            return False

        m1 = (p1 + p2) / 2
        m2 = (p1 + p3) / 2
        b1 = (normalized(p2 - p1) or 0j) * 1j
        b2 = (normalized(p3 - p1) or 0j) * 1j
        center = intersection_line_line(m1, m1 + b1, m2, m2 + b2)
        if center is None:
            self.set_from_2_points(p1, p2)
            return False

        self.center = center
        self.radius = abs(p1 - center)
        return True

    def set_from_2_points(self, p1: complex, p2: complex) -> None:
        self.p1 = p1
        self.p2 = p2
        self.radius = math.inf
        self.center = 0j
        self.normalize_line()

    def normalize_line(self) -> None:
        """Canonical p1/p2 so equal lines compare equal."""
        if not self.is_line:
            return
        d = normalized(self.p2 - self.p1) or 0j
        self.p1 = project_onto_line(0j, self.p1, self.p2)
        if angle_to_clock(d, 1 + 0j) > math.pi + 1e-6:
            d = -d
        self.p2 = self.p1 + d

    # ── point tests ────────────────────────────────────────────────

    def is_point_inside(self, test: complex) -> bool:
        """Strict Euclidean interior test."""
        return less_than(abs(test - self.center), self.radius)

    def is_point_on(self, test: complex) -> bool:
        return equal(abs(test - self.center), self.radius)

    def reflect_point(self, p: complex) -> complex:
        if self.is_line:
            return reflect_point_in_line(p, self.p1, self.p2)
        if points_equal(p, self.center):
            return INFINITY
        if is_infinite(p):
            return self.center
        v = p - self.center
        d = abs(v)
        return self.center + (v / d) * (self.radius * self.radius / d)

    # ── mutation ───────────────────────────────────────────────────

    def _reflect_in_circle(self, c: "Circle") -> None:
        if c.is_line:
            if self.is_line:
                self.p1 = c.reflect_point(self.p1)
                self.p2 = c.reflect_point(self.p2)
            else:
                self.center = c.reflect_point(self.center)
            return

        if self.is_line:
            p1 = c.reflect_point(self.p1)
            p2 = c.reflect_point(self.p2)
            p3 = c.reflect_point((self.p1 + self.p2) / 2)
            self.set_from_3_points(p1, p2, p3)
            return

        if self.is_point_on(c.center):
            # Inversion through a point on us gives a line.
            v = rotate(c.center - self.center, 2 * math.pi / 3)
            self.p1 = c.reflect_point(self.center + v)
            v = rotate(v, 2 * math.pi / 3)
            self.p2 = c.reflect_point(self.center + v)
            self.radius = math.inf
            self.center = 0j
            return

        a = self.radius
        k = c.radius
        v = self.center - c.center
        s = k * k / (abs(v) ** 2 - a * a)
        self.center = c.center + v * s
        self.radius = abs(s) * a
        self.p1 = self.p2 = 0j

    def reflect(self, mirror) -> None:
        """Reflect in a :class:`Circle` or a :class:`Segment`."""
        if isinstance(mirror, Circle):
            self._reflect_in_circle(mirror)
        elif mirror.is_arc:
            self._reflect_in_circle(mirror.circle)
        elif self.is_line:
            self.p1 = mirror.reflect_point(self.p1)
            self.p2 = mirror.reflect_point(self.p2)
        else:
            self.center = mirror.reflect_point(self.center)

    def transform(self, t) -> None:
        """Apply a Mobius or an Isometry (anything with ``apply``)."""
        if self.is_line:
            p1, p2, p3 = self.p1, (self.p1 + self.p2) / 2, self.p2
        else:
            r = self.radius
            p1, p2, p3 = self.center + r, self.center - r, self.center + 1j * r
        self.set_from_3_points(t.apply(p1), t.apply(p2), t.apply(p3))

    # ── intersections ──────────────────────────────────────────────

    def intersection_points(self, segment: "Segment") -> Optional[List[complex]]:
        """Points where we cross *segment*; None if we coincide with it."""
        if self.is_line:
            if segment.is_arc:
                seg_circle = segment.circle
                count, points = intersection_line_circle(
                    self.p1, self.p2, seg_circle.center, seg_circle.radius
                )
            else:
                hit = intersection_line_line(self.p1, self.p2, segment.p1, segment.p2)
                count, points = (0, []) if hit is None else (1, [hit])
        else:
            if segment.is_arc:
                seg_circle = segment.circle
                count, points = intersection_circle_circle(
                    seg_circle.center, seg_circle.radius, self.center, self.radius
                )
            else:
                count, points = intersection_line_circle(
                    segment.p1, segment.p2, self.center, self.radius
                )

        if count == -1:
            return None
        return [p for p in points if segment.is_point_on(p)]

    def intersects(self, poly: "Polygon") -> bool:
        for seg in poly.segments:
            points = self.intersection_points(seg)
            if points:
                return True
        return False

    def has_vertex_inside(self, poly: "Polygon") -> bool:
        return any(self.is_point_inside(seg.p1) for seg in poly.segments)


@dataclass
class CircleNE(Circle):
    center_ne: complex = 0j

    @classmethod
    def from_circle(cls, c: Circle, center_ne: complex) -> "CircleNE":
        return cls(c.center, c.radius, c.p1, c.p2, center_ne)

    def reflect(self, mirror) -> None:
        super().reflect(mirror)
        self.center_ne = mirror.reflect_point(self.center_ne)

    def transform(self, t) -> None:
        super().transform(t)
        self.center_ne = t.apply(self.center_ne)

    @property
    def inverted(self) -> bool:
        """True when the geometric interior is the Euclidean exterior."""
        return is_infinite(self.center_ne) or not self.is_point_inside(self.center_ne)

    def is_point_inside_ne(self, test: complex) -> bool:
        if self.is_line:
            return same_side_of_line(self.p1, self.p2, test, self.center_ne)
        inside = False if is_infinite(test) else self.is_point_inside(test)
        return inside != self.inverted

    def is_point_inside_fast(self, test: complex) -> bool:
        return self.is_point_inside(test)

    def same_as(self, other: "CircleNE") -> bool:
        """Tolerant equality used to de-duplicate slicing circles."""
        radius_equal = equal(self.radius, other.radius) or (
            math.isinf(self.radius) and math.isinf(other.radius)
        )
        if not radius_equal:
            return False
        if self.is_line:
            return points_equal(self.p1, other.p1) and points_equal(self.p2, other.p2)
        return points_equal(self.center, other.center) and points_equal(
            self.center_ne, other.center_ne
        )


def unique_circles(circles) -> List[CircleNE]:
    """Drop circles equal (within tolerance) to an earlier one."""
    result: List[CircleNE] = []
    for c in circles:
        if not any(c.same_as(kept) for kept in result):
            result.append(c)
    return result
