"""Tests for colouring cells: masters, slaves and the cells tracked for state.

The graphs are built stage by stage here, the way ``Puzzle.build`` does,
so each stage's output can be checked on its own.
"""

import pytest

from tilepuzzle.cells import build_cell_graph, master_candidates
from tilepuzzle.config import Identification, IRPConfig, PuzzleConfig, default_config
from tilepuzzle.geometry import Geometry, PointMap
from tilepuzzle.identifications import precalc_identifications
from tilepuzzle.puzzle import Puzzle
from tilepuzzle.state import OFF_COLOR
from tilepuzzle.tiling import Tiling, TilingConfig
from tilepuzzle.twist_assembly import mark_cells_for_state_calcs, template_twist_data

KLEIN_RELATIONS = "[R^7, S^3, (R*S)^2, (R*R*s)^4]"


def build_graph(config):
    tiling = Tiling.generate(TilingConfig(config.p, config.q, config.num_tiles))
    identifications = precalc_identifications(config, tiling.tiles[0])
    return tiling, identifications, build_cell_graph(config, tiling, identifications)


def torus_config():
    # Four reflections across parallel edges translate by four tiles.
    return PuzzleConfig(
        id="Puzzle.{4,4}.Torus",
        display_name="{4,4} Torus",
        p=4,
        q=4,
        identifications=[Identification(edges=[2, 2, 2])],
        expected_num_colors=16,
        num_tiles=400,
        slicing_circles=None,
    )


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture(scope="module")
def klein_graph():
    return build_graph(default_config().copy(num_tiles=700))


@pytest.fixture(scope="module")
def relations_config():
    return default_config().copy(identifications=[], group_relations=KLEIN_RELATIONS, num_tiles=700)


@pytest.fixture(scope="module")
def relations_graph(relations_config):
    return build_graph(relations_config)


@pytest.fixture(scope="module")
def torus():
    return Puzzle.build(torus_config())


# ═══════════════════════════════════════════════════════════════════
# Master candidates
# ═══════════════════════════════════════════════════════════════════


class TestMasterCandidates:
    def test_all_tiles_by_default(self):
        config = torus_config()
        tiling = Tiling.generate(TilingConfig(4, 4, 30))
        assert master_candidates(config, tiling) == tiling.tiles

    def test_square_klein_bottle_subset(self):
        config = torus_config().copy(expected_num_colors=4)
        tiling = Tiling.generate(TilingConfig(4, 4, 30))
        assert master_candidates(config, tiling) == [tiling.tiles[i] for i in (0, 1, 2, 5)]

    def test_hexagon_klein_bottle_subset(self):
        config = PuzzleConfig(p=6, q=3, expected_num_colors=9, num_tiles=30)
        tiling = Tiling.generate(TilingConfig(6, 3, 30))
        expected = tiling.tiles[:8] + [tiling.tiles[15]]
        assert master_candidates(config, tiling) == expected


# ═══════════════════════════════════════════════════════════════════
# Euclidean surfaces
# ═══════════════════════════════════════════════════════════════════


class TestTorus:
    def test_geometry(self, torus):
        assert torus.config.geometry == Geometry.EUCLIDEAN
        assert torus.is_toggling

    def test_colors(self, torus):
        assert len(torus.masters) == 16
        assert torus.graph.num_cells > 16

    def test_topology(self, torus):
        t = torus.topology
        assert (t.f, t.e, t.v) == (16, 32, 16)
        assert t.euler_characteristic == 0

    def test_closest_cell(self, torus):
        master = torus.masters[0]
        assert torus.closest_cell(master.center + 0.01) is master

    def test_toggle_wraps_around(self, torus):
        # On a 4x4 torus every square has four distinct neighbors.
        master = torus.masters[0]
        assert len(master.neighbors - {master.index_of_master}) == 4
        torus.toggle_cell(master)
        off = torus.state.committed[:, 0] == OFF_COLOR
        assert off.sum() == 5
        torus.reset()


# ═══════════════════════════════════════════════════════════════════
# Colouring from group relations
# ═══════════════════════════════════════════════════════════════════


class TestRelations:
    def test_colors(self, relations_graph):
        _, identifications, graph = relations_graph
        assert identifications
        assert len(graph.masters) == 24

    def test_build(self, relations_config):
        puzzle = Puzzle.build(relations_config)
        t = puzzle.topology
        assert len(puzzle.masters) == 24
        assert (t.f, t.e, t.v) == (24, 84, 56)
        assert t.euler_characteristic == -4


# ═══════════════════════════════════════════════════════════════════
# Identification closure
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture(params=["klein_graph", "relations_graph"])
def graph_parts(request):
    return request.getfixturevalue(request.param)


class TestClosure:
    def test_cell_centers_unique(self, graph_parts):
        _, _, graph = graph_parts
        seen = PointMap()
        for cell in graph.all_cells:
            assert cell.center not in seen
            seen[cell.center] = cell.index
        assert graph.num_cells == len(list(graph.all_cells))

    def test_slaves_share_master_color(self, graph_parts):
        _, _, graph = graph_parts
        for master in graph.master_cells:
            for slave in graph.slaves_of(master):
                assert slave.master == master.index
                assert slave.index_of_master == master.index_of_master

    def test_identified_cells_share_color(self, graph_parts):
        _, identifications, graph = graph_parts
        checked = 0
        for cell in graph.all_cells:
            color = graph[cell.master_or_self].index_of_master
            for identification in identifications:
                for isometry in identification.isometries:
                    image = isometry.apply_infinite_safe(cell.vertex_circle.center_ne)
                    index = graph.completed.get(image)
                    if index is None or graph[index].index_of_master == -1:
                        continue
                    assert graph[index].index_of_master == color
                    checked += 1
        assert checked > 0

    def test_every_color_has_slaves(self, graph_parts):
        _, _, graph = graph_parts
        assert all(graph.slaves_of(master) for master in graph.master_cells)


# ═══════════════════════════════════════════════════════════════════
# State-calc cells
# ═══════════════════════════════════════════════════════════════════


class TestEarthquakeStateCalcs:
    @pytest.fixture(scope="class")
    def marked(self, klein_graph):
        tiling, _, graph = klein_graph
        config = default_config().copy(num_tiles=700, earthquake=True)
        template_tds = template_twist_data(config, tiling.tiles[0])
        return config, template_tds, mark_cells_for_state_calcs(config, graph, tiling, template_tds, workers=2)

    def test_masters_first(self, klein_graph, marked):
        _, _, graph = klein_graph
        _, _, result = marked
        assert result[:24] == graph.masters
        assert len(result) == len(set(result))

    def test_marks_slaves_near_masters(self, klein_graph, marked):
        _, _, graph = klein_graph
        _, template_tds, result = marked
        extra = result[24:]
        assert extra
        for index in extra:
            slave = graph[index]
            assert slave.is_slave
            assert any(
                td.transformed(master.isometry_inverse, False).will_affect_cell(slave, False)
                for td in template_tds
                for master in graph.master_cells
            )

    def test_build(self):
        puzzle = Puzzle.build(default_config().copy(num_tiles=700, earthquake=True))
        assert len(puzzle.masters) == 24
        assert puzzle.state_calc_cells[:24] == [m.index for m in puzzle.masters]
        assert len(puzzle.state_calc_cells) > 24


class TestMeshStateCalcs:
    def test_unsliced_mesh_tracks_neighbors(self, klein_graph):
        tiling, _, graph = klein_graph
        config = default_config().copy(num_tiles=700, slicing_circles=None, irp_config=IRPConfig(data_file="mesh.off"))
        result = mark_cells_for_state_calcs(config, graph, tiling, [])
        assert result[:24] == graph.masters
        assert len(result) == len(set(result))
        master = graph.master_cells[0]
        tile = tiling.tile_positions[master.center]
        for neighbor in tile.edge_incidences:
            assert graph.completed[neighbor.center] in result

    def test_unsliced_without_mesh_tracks_masters(self, klein_graph):
        tiling, _, graph = klein_graph
        config = default_config().copy(num_tiles=700, slicing_circles=None)
        assert mark_cells_for_state_calcs(config, graph, tiling, []) == graph.masters
