"""Isometries: a Mobius transform optionally followed by a reflection."""

from __future__ import annotations

import cmath
from typing import TYPE_CHECKING, Optional

from .circles import Circle
from .geometry import INFINITY, Geometry, is_infinite, points_equal
from .mobius import Mobius

if TYPE_CHECKING:
    from .polygon import Polygon
    from .tiling import Tile

_UNIT_POINTS = (1 + 0j, -1 + 0j, 1j)


class Isometry:
    """Orientation-preserving Mobius part plus an optional inversion.

    Inversion in an arbitrary circle is slow to apply directly, so the
    pair of transforms carrying the mirror to the unit circle and back is
    cached whenever the reflection is set.
    """

    def __init__(self, mobius: Optional[Mobius] = None, reflection: Optional[Circle] = None):
        self.mobius = mobius if mobius is not None else Mobius.identity()
        self._to_unit: Optional[Mobius] = None
        self._from_unit: Optional[Mobius] = None
        self.reflection = reflection

    @property
    def reflection(self) -> Optional[Circle]:
        return self._reflection

    @reflection.setter
    def reflection(self, circle: Optional[Circle]) -> None:
        self._reflection = circle
        if circle is None:
            self._to_unit = self._from_unit = None
            return
        if circle.is_line:
            c1, c2 = circle.p1, circle.p2
            c3 = (c1 + c2) / 2
        else:
            r = circle.radius
            c1, c2, c3 = circle.center + r, circle.center - r, circle.center + 1j * r
        self._to_unit = Mobius.map_points(c1, c2, c3, *_UNIT_POINTS)
        self._from_unit = self._to_unit.inverse()

    @property
    def reflected(self) -> bool:
        return self._reflection is not None

    def clone(self) -> "Isometry":
        reflection = self._reflection.clone() if self._reflection is not None else None
        return Isometry(self.mobius, reflection)

    @classmethod
    def identity(cls) -> "Isometry":
        return cls()

    @classmethod
    def reflect_x(cls) -> "Isometry":
        return cls(reflection=Circle.from_2_points(0j, 1 + 0j))

    # ── application ────────────────────────────────────────────────

    def _invert(self, z: complex) -> complex:
        z = self._to_unit.apply(z)
        if cmath.isnan(z):
            z = 0j
        elif z == 0:
            z = INFINITY
        else:
            z = 1 / z.conjugate()
        return self._from_unit.apply(z)

    def apply(self, z: complex) -> complex:
        z = self.mobius.apply(z)
        if self._reflection is not None:
            z = self._invert(z)
        return z

    def apply_infinite_safe(self, z: complex) -> complex:
        z = self.mobius.apply_infinite_safe(z)
        if self._reflection is not None:
            if is_infinite(z):
                z = self._from_unit.apply(self._invert_infinity())
            else:
                z = self._invert(z)
        if is_infinite(z):
            return INFINITY
        return z

    def _invert_infinity(self) -> complex:
        # Inversion of the unit-circle image of infinity.
        z = self._to_unit.apply_to_infinite()
        if is_infinite(z):
            return 0j
        if z == 0:
            return INFINITY
        return 1 / z.conjugate()

    # ── algebra ────────────────────────────────────────────────────

    def __mul__(self, other: "Isometry") -> "Isometry":
        """Composition: ``(self * other).apply(z) == self.apply(other.apply(z))``."""
        w = [self.apply(other.apply(p)) for p in _UNIT_POINTS]
        result = Isometry(Mobius.map_points(*_UNIT_POINTS, *w))
        if self.reflected != other.reflected:
            result.reflection = Circle.from_3_points(*w)
        return result

    def inverse(self) -> "Isometry":
        inverse = self.mobius.inverse()
        if self._reflection is None:
            return Isometry(inverse)
        reflection = self._reflection.clone()
        reflection.transform(inverse)
        return Isometry(inverse, reflection)

    def __repr__(self) -> str:
        return f"Isometry({self.mobius!r}, reflected={self.reflected})"

    # ── construction from tiles ────────────────────────────────────

    @classmethod
    def from_two_polygons(cls, home: "Tile", boundary: "Polygon", g: Geometry) -> "Isometry":
        """The isometry carrying *boundary* onto the *home* tile's boundary.

        Three consecutive vertices fix the Mobius part; the polygon's
        orientation decides whether the home vertex circle is added as a
        reflection.
        """
        home_poly = home.boundary
        if len(boundary.segments) < 3 or len(home_poly.segments) < 3:
            return cls()

        p = [boundary.segments[i].p1 for i in range(3)]
        w = [home_poly.segments[i].p1 for i in range(3)]
        if all(points_equal(a, b) for a, b in zip(p, w)):
            return cls()

        result = cls(Mobius.map_points(*p, *w))
        if g == Geometry.SPHERICAL:
            needs_reflection = not (boundary.is_inverted ^ boundary.orientation)
        else:
            needs_reflection = not boundary.orientation
        if needs_reflection:
            result.reflection = home.vertex_circle
        return result
