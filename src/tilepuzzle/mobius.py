"""Mobius transformations of the extended complex plane.

Every isometry of the three constant-curvature geometries used by the
puzzles (the sphere under stereographic projection, the Euclidean plane
and the Poincare disk) is a Mobius transformation, possibly combined
with a reflection (see :mod:`tilepuzzle.isometry`).

Coefficients are kept normalised so that ``ad - bc = 1`` and the first
non-zero coefficient has a positive leading component.  With that
convention two transforms that act identically also compare equal.
"""

from __future__ import annotations

import cmath
from dataclasses import dataclass
from typing import Iterable, Iterator, List

from .geometry import (
    INFINITY,
    Geometry,
    PointMap,
    e2h_norm,
    e2s_norm,
    h2e_norm,
    is_infinite,
    points_equal,
    s2e_norm,
    zero,
)


def _canonical(a: complex, b: complex, c: complex, d: complex):
    det = a * d - b * c
    if det != 0 and not cmath.isnan(det):
        k = 1 / cmath.sqrt(det)
        a, b, c, d = a * k, b * k, c * k, d * k
    for coeff in (a, b, c, d):
        if not zero(coeff.real):
            if coeff.real < 0:
                return -a, -b, -c, -d
            break
        if not zero(coeff.imag):
            if coeff.imag < 0:
                return -a, -b, -c, -d
            break
    return a, b, c, d


@dataclass(frozen=True, eq=False)
class Mobius:
    """The map ``z -> (a z + b) / (c z + d)``."""

    a: complex = 1
    b: complex = 0
    c: complex = 0
    d: complex = 1

    # ── construction ───────────────────────────────────────────────

    @classmethod
    def normalized(cls, a: complex, b: complex, c: complex, d: complex) -> "Mobius":
        return cls(*_canonical(complex(a), complex(b), complex(c), complex(d)))

    @classmethod
    def identity(cls) -> "Mobius":
        return cls(1 + 0j, 0j, 0j, 1 + 0j)

    @classmethod
    def scale(cls, factor: float) -> "Mobius":
        return cls.normalized(factor, 0, 0, 1)

    @classmethod
    def isometry(cls, g: Geometry, angle: float, p: complex) -> "Mobius":
        """Rotate by *angle* about the origin, then move the origin to *p*."""
        t = cmath.exp(1j * angle)
        if g == Geometry.SPHERICAL:
            c = -p.conjugate() * t
        elif g == Geometry.EUCLIDEAN:
            c = 0j
        else:
            c = p.conjugate() * t
        return cls.normalized(t, p, c, 1)

    @classmethod
    def map_to_standard(cls, z1: complex, z2: complex, z3: complex) -> "Mobius":
        """The transform sending z1, z2, z3 to 0, 1 and infinity."""
        if is_infinite(z1):
            return cls.normalized(0, -(z2 - z3), -1, z3)
        if is_infinite(z2):
            return cls.normalized(1, -z1, 1, -z3)
        if is_infinite(z3):
            return cls.normalized(-1, z1, 0, -(z2 - z1))
        return cls.normalized(z2 - z3, -z1 * (z2 - z3), z2 - z1, -z3 * (z2 - z1))

    @classmethod
    def map_points(
        cls, z1: complex, z2: complex, z3: complex, w1: complex, w2: complex, w3: complex
    ) -> "Mobius":
        """The transform sending each z_i to w_i."""
        m1 = cls.map_to_standard(z1, z2, z3)
        m2 = cls.map_to_standard(w1, w2, w3)
        return m2.inverse() * m1

    @classmethod
    def elliptic(cls, g: Geometry, fixed: complex, angle: float) -> "Mobius":
        """Rotation by *angle* about the point *fixed*."""
        if g == Geometry.SPHERICAL and is_infinite(fixed):
            # Seen from the antipode the rotation runs the other way.
            return cls.elliptic(g, 0j, -angle)
        origin = cls.isometry(g, 0, -fixed)
        rotate = cls.isometry(g, angle, 0j)
        return origin.inverse() * rotate * origin

    @classmethod
    def hyperbolic(cls, g: Geometry, fixed: complex, scale: float) -> "Mobius":
        """Scaling by *scale* about the point *fixed*."""
        to_origin = cls.isometry(g, 0, -fixed)
        back = cls.isometry(g, 0, fixed)
        return back * cls.scale(scale) * to_origin

    @classmethod
    def hyperbolic_offset(
        cls, g: Geometry, fixed: complex, point: complex, offset: float
    ) -> "Mobius":
        """Scaling about *fixed* that moves *point* outward by *offset*.

        The offset is measured in the true metric of *g*.
        """
        e_radius = abs(cls.isometry(g, 0, -fixed).apply(point))
        if zero(e_radius):
            return cls.identity()
        if g == Geometry.SPHERICAL:
            scale = s2e_norm(e2s_norm(e_radius) + offset) / e_radius
        elif g == Geometry.EUCLIDEAN:
            scale = (e_radius + offset) / e_radius
        else:
            scale = h2e_norm(e2h_norm(e_radius) + offset) / e_radius
        return cls.hyperbolic(g, fixed, scale)

    # ── application ────────────────────────────────────────────────

    def apply(self, z: complex) -> complex:
        den = self.c * z + self.d
        if den == 0:
            return INFINITY
        return (self.a * z + self.b) / den

    def apply_to_infinite(self) -> complex:
        if self.c == 0:
            return INFINITY
        return self.a / self.c

    def apply_infinite_safe(self, z: complex) -> complex:
        if is_infinite(z):
            return self.apply_to_infinite()
        result = self.apply(z)
        if is_infinite(result):
            return INFINITY
        return result

    # ── algebra ────────────────────────────────────────────────────

    def inverse(self) -> "Mobius":
        return Mobius.normalized(self.d, -self.b, -self.c, self.a)

    def __mul__(self, other: "Mobius") -> "Mobius":
        """Composition: ``(self * other)(z) == self(other(z))``."""
        return Mobius.normalized(
            self.a * other.a + self.b * other.c,
            self.a * other.b + self.b * other.d,
            self.c * other.a + self.d * other.c,
            self.c * other.b + self.d * other.d,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mobius):
            return NotImplemented
        return all(
            points_equal(x, y)
            for x, y in zip(
                (self.a, self.b, self.c, self.d), (other.a, other.b, other.c, other.d)
            )
        )

    def __hash__(self) -> int:
        return id(self)

    def is_identity(self) -> bool:
        return self == Mobius.identity()

    @property
    def trace(self) -> complex:
        return self.a + self.d


class MobiusSet:
    """Insertion-ordered set of Mobius transforms with tolerant equality."""

    def __init__(self, items: Iterable[Mobius] = ()) -> None:
        self._by_a: PointMap[List[Mobius]] = PointMap()
        self._items: List[Mobius] = []
        for m in items:
            self.add(m)

    def add(self, m: Mobius) -> bool:
        bucket = self._by_a.setdefault(m.a, [])
        if any(m == other for other in bucket):
            return False
        bucket.append(m)
        self._items.append(m)
        return True

    def update(self, items: Iterable[Mobius]) -> None:
        for m in items:
            self.add(m)

    def __contains__(self, m: Mobius) -> bool:
        return any(m == other for other in self._by_a.get(m.a, []) or [])

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Mobius]:
        return iter(list(self._items))
