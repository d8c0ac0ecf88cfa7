"""Tests for tiling generation and tile incidences."""

import pytest

from tilepuzzle.geometry import Geometry, points_equal
from tilepuzzle.tiling import Tiling, TilingConfig, TilingPositions, lookup_tile, num_facets


@pytest.fixture(scope="module")
def cube_tiling():
    return Tiling.generate(TilingConfig(4, 3))


@pytest.fixture(scope="module")
def square_tiling():
    return Tiling.generate(TilingConfig(4, 4, max_tiles=60))


@pytest.fixture(scope="module")
def heptagon_tiling():
    return Tiling.generate(TilingConfig(7, 3, max_tiles=200))


class TestNumFacets:
    @pytest.mark.parametrize("p,q,expected", [(3, 3, 4), (4, 3, 6), (3, 4, 8), (5, 3, 12), (3, 5, 20)])
    def test_platonic_solids(self, p, q, expected):
        assert num_facets(p, q) == expected

    def test_rejects_non_spherical(self):
        with pytest.raises(ValueError):
            num_facets(7, 3)

    def test_default_max_tiles(self):
        assert TilingConfig(5, 3).max_tiles == 12


class TestSphericalTiling:
    def test_cube_has_six_tiles(self, cube_tiling):
        assert len(cube_tiling) == 6
        assert cube_tiling.config.geometry == Geometry.SPHERICAL

    def test_base_tile_at_origin(self, cube_tiling):
        assert points_equal(cube_tiling.tiles[0].center, 0j)

    def test_base_tile_has_four_edge_neighbors(self, cube_tiling):
        assert len(cube_tiling.tiles[0].edge_incidences) == 4
        assert cube_tiling.tiles[0].vertex_incidences == []


class TestEuclideanTiling:
    def test_respects_max_tiles(self, square_tiling):
        assert 0 < len(square_tiling) <= 60 + 4

    def test_incidences(self, square_tiling):
        base = square_tiling.tiles[0]
        assert len(base.edge_incidences) == 4
        assert len(base.vertex_incidences) == 4

    def test_tile_positions_lookup(self, square_tiling):
        for tile in square_tiling.tiles[:10]:
            assert lookup_tile(square_tiling, tile.center) is tile
        assert lookup_tile(None, 0j) is None


class TestHyperbolicTiling:
    def test_tiles_stay_in_disk(self, heptagon_tiling):
        assert all(abs(t.center) < 1 for t in heptagon_tiling.tiles)

    def test_centers_distinct(self, heptagon_tiling):
        centers = [t.center for t in heptagon_tiling.tiles]
        for i, a in enumerate(centers[:30]):
            assert not any(points_equal(a, b) for b in centers[i + 1 :])

    def test_base_incidences(self, heptagon_tiling):
        base = heptagon_tiling.tiles[0]
        assert len(base.edge_incidences) == 7
        # Three tiles meet at each vertex, and they all share edges.
        assert base.vertex_incidences == []

    def test_isometry_carries_tile_home(self, heptagon_tiling):
        base = heptagon_tiling.tiles[0]
        home_vertices = base.boundary.vertices
        for tile in heptagon_tiling.tiles[1:8]:
            moved = tile.isometry.apply(tile.boundary.segments[0].p1)
            assert any(points_equal(moved, v) for v in home_vertices)


class TestTilingPositions:
    def test_contains_neighbor_centers(self, heptagon_tiling):
        positions = TilingPositions.build(TilingConfig(7, 3, max_tiles=300))
        assert 0j in positions
        for tile in heptagon_tiling.tiles[0].edge_incidences:
            assert tile.center in positions
