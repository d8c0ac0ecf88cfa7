"""Nearest-neighbor lookup under spherical, Euclidean or hyperbolic distance.

A near tree (Larry Andrews, C/C++ Users Journal, November 2001) is a
binary partition tree that only needs pairwise distances, so any metric
obeying the triangle inequality works.  Each node holds up to two
objects and, per side, the largest distance from that object to
anything stored below it; queries use that bound to skip subtrees.

The tree is built once and then only read.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Generic, List, Optional, Tuple, TypeVar

from .geometry import Geometry, e2h_norm, e2s_norm
from .mobius import Mobius

T = TypeVar("T")


class Metric(Enum):
    SPHERICAL = "spherical"
    EUCLIDEAN = "euclidean"
    HYPERBOLIC = "hyperbolic"


def metric_for(geometry: Geometry) -> Metric:
    return {
        Geometry.SPHERICAL: Metric.SPHERICAL,
        Geometry.EUCLIDEAN: Metric.EUCLIDEAN,
        Geometry.HYPERBOLIC: Metric.HYPERBOLIC,
    }[geometry]


def distance(metric: Metric, p1: complex, p2: complex) -> float:
    if metric == Metric.EUCLIDEAN:
        return abs(p2 - p1)
    if metric == Metric.SPHERICAL:
        moved = Mobius.isometry(Geometry.SPHERICAL, 0, -p1).apply(p2)
        return e2s_norm(abs(moved))
    moved = Mobius.isometry(Geometry.HYPERBOLIC, 0, -p1).apply(p2)
    return e2h_norm(abs(moved))


class _Node:
    __slots__ = ("left", "right", "max_left", "max_right", "left_branch", "right_branch")

    def __init__(self) -> None:
        self.left: Optional[Tuple[complex, Any]] = None
        self.right: Optional[Tuple[complex, Any]] = None
        # Negative so the first insertion below always raises them.
        self.max_left = -math.inf
        self.max_right = -math.inf
        self.left_branch: Optional[_Node] = None
        self.right_branch: Optional[_Node] = None


class NearTree(Generic[T]):
    def __init__(self, metric: Metric = Metric.EUCLIDEAN) -> None:
        self.metric = metric
        self._root = _Node()
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def _dist(self, p1: complex, p2: complex) -> float:
        return distance(self.metric, p1, p2)

    def insert(self, location: complex, obj: T) -> None:
        item = (location, obj)
        node = self._root
        while True:
            if node.left is None:
                node.left = item
                break
            if node.right is None:
                node.right = item
                break

            d_left = self._dist(location, node.left[0])
            d_right = self._dist(location, node.right[0])
            if d_left > d_right:
                node.max_right = max(node.max_right, d_right)
                if node.right_branch is None:
                    node.right_branch = _Node()
                node = node.right_branch
            else:
                node.max_left = max(node.max_left, d_left)
                if node.left_branch is None:
                    node.left_branch = _Node()
                node = node.left_branch
        self._count += 1

    def nearest(self, location: complex, radius: float = math.inf) -> Optional[T]:
        """The closest object within *radius*, or None."""
        best: Optional[T] = None
        search = radius

        # (node, check_right_only).  A node's right branch is tested only
        # after its whole left branch is done, against the radius found
        # so far.
        stack: List[Tuple[_Node, bool]] = [(self._root, False)]
        while stack:
            node, right_only = stack.pop()
            if right_only:
                if search + node.max_right >= self._dist(location, node.right[0]):
                    stack.append((node.right_branch, False))
                continue

            for item in (node.left, node.right):
                if item is None:
                    continue
                d = self._dist(location, item[0])
                if d <= search:
                    search = d
                    best = item[1]

            if node.right_branch is not None:
                stack.append((node, True))
            if node.left_branch is not None and search + node.max_left >= self._dist(location, node.left[0]):
                stack.append((node.left_branch, False))
        return best

    def close_objects(self, location: complex, radius: float) -> List[T]:
        """Every object within *radius* of *location*."""
        result: List[T] = []
        stack: List[_Node] = [self._root]
        while stack:
            node = stack.pop()
            for item in (node.left, node.right):
                if item is not None and self._dist(location, item[0]) <= radius:
                    result.append(item[1])
            if node.right_branch is not None and radius + node.max_right >= self._dist(location, node.right[0]):
                stack.append(node.right_branch)
            if node.left_branch is not None and radius + node.max_left >= self._dist(location, node.left[0]):
                stack.append(node.left_branch)
        return result
