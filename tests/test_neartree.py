"""Tests for the near tree against brute-force search in each metric."""

import math

import numpy as np
import pytest

from tilepuzzle.geometry import Geometry
from tilepuzzle.neartree import Metric, NearTree, distance, metric_for


def random_points(rng, count, max_radius):
    r = max_radius * np.sqrt(rng.random(count))
    theta = rng.random(count) * 2 * math.pi
    return [complex(x, y) for x, y in zip(r * np.cos(theta), r * np.sin(theta))]


class TestDistance:
    def test_metric_for(self):
        assert metric_for(Geometry.HYPERBOLIC) == Metric.HYPERBOLIC
        assert metric_for(Geometry.SPHERICAL) == Metric.SPHERICAL

    def test_euclidean(self):
        assert distance(Metric.EUCLIDEAN, 0j, 3 + 4j) == pytest.approx(5.0)

    def test_hyperbolic_from_origin(self):
        # d(0, r) = 2 atanh(r) in the Poincaré disk.
        assert distance(Metric.HYPERBOLIC, 0j, 0.5 + 0j) == pytest.approx(2 * math.atanh(0.5))

    def test_spherical_antipodes(self):
        assert distance(Metric.SPHERICAL, 0j, 1e9 + 0j) == pytest.approx(math.pi, rel=1e-6)

    @pytest.mark.parametrize("metric", list(Metric))
    def test_symmetric(self, metric):
        a, b = 0.3 + 0.1j, -0.2 + 0.4j
        assert distance(metric, a, b) == pytest.approx(distance(metric, b, a))


class TestNearTree:
    @pytest.mark.parametrize(
        "metric,max_radius",
        [(Metric.EUCLIDEAN, 3.0), (Metric.HYPERBOLIC, 0.95), (Metric.SPHERICAL, 4.0)],
    )
    def test_nearest_matches_brute_force(self, metric, max_radius):
        rng = np.random.default_rng(7)
        points = random_points(rng, 300, max_radius)
        tree = NearTree(metric)
        for i, p in enumerate(points):
            tree.insert(p, i)
        assert len(tree) == len(points)

        for query in random_points(rng, 50, max_radius):
            expected = min(range(len(points)), key=lambda i: distance(metric, query, points[i]))
            assert tree.nearest(query) == expected

    def test_close_objects_matches_brute_force(self):
        rng = np.random.default_rng(11)
        points = random_points(rng, 200, 0.9)
        tree = NearTree(Metric.HYPERBOLIC)
        for i, p in enumerate(points):
            tree.insert(p, i)

        query = 0.1 - 0.2j
        expected = {i for i, p in enumerate(points) if distance(Metric.HYPERBOLIC, query, p) <= 0.8}
        assert set(tree.close_objects(query, 0.8)) == expected

    def test_radius_limits_nearest(self):
        tree = NearTree(Metric.EUCLIDEAN)
        tree.insert(1 + 0j, "far")
        assert tree.nearest(0j, radius=0.5) is None
        assert tree.nearest(0j) == "far"

    def test_empty_tree(self):
        assert NearTree().nearest(0j) is None
        assert NearTree().close_objects(0j, 1.0) == []
