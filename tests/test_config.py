"""Tests for puzzle configuration: validation, serialization, presets and schema."""

import json
from pathlib import Path

import pytest

from tilepuzzle.config import (
    PRESETS,
    VERSION_PREVIEW,
    Distance,
    Identification,
    IRPConfig,
    PuzzleConfig,
    SlicingCircles,
    default_config,
    preset,
)
from tilepuzzle.geometry import Geometry, triangle_q_side
from tilepuzzle.io import load_config, save_config

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "puzzle_config.schema.json"


@pytest.fixture(scope="module")
def schema():
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


# ═══════════════════════════════════════════════════════════════════
# Distances
# ═══════════════════════════════════════════════════════════════════


class TestDistance:
    def test_round_trip(self):
        d = Distance(2.0 / 3, 0, 1.0, 0.25)
        assert Distance.from_string(d.to_string()) == d

    def test_three_part_form(self):
        assert Distance.from_string("0:1.5:0") == Distance(0, 1.5, 0, 0)
        assert Distance(0, 1.5, 0, 0).to_short_string() == "0:1.5:0"

    def test_bad_string(self):
        with pytest.raises(ValueError):
            Distance.from_string("1:2")

    def test_dist_scales_triangle_sides(self):
        assert Distance(0, 2, 0, 0.1).dist(4, 3) == pytest.approx(2 * triangle_q_side(4, 3) + 0.1)


# ═══════════════════════════════════════════════════════════════════
# PuzzleConfig
# ═══════════════════════════════════════════════════════════════════


class TestValidate:
    def test_presets_are_valid(self):
        for name in PRESETS:
            assert preset(name).validate() == [], name

    def test_bad_pq(self):
        assert PuzzleConfig(p=1, q=3, num_tiles=10).validate()
        assert PuzzleConfig(p=2, q=2, num_tiles=10).validate()

    def test_hyperbolic_needs_tiles(self):
        problems = PuzzleConfig(p=7, q=3, num_tiles=0).validate()
        assert any("num_tiles" in p for p in problems)

    def test_spherical_defaults_tile_count(self):
        assert PuzzleConfig(p=4, q=3, num_tiles=0).validate() == []

    def test_relations_need_color_count(self):
        config = PuzzleConfig(p=7, q=3, num_tiles=100, group_relations="[R^7]")
        assert any("expected_num_colors" in p for p in config.validate())

    def test_initial_edge_range(self):
        config = PuzzleConfig(
            p=7, q=3, num_tiles=100, identifications=[Identification(edges=[3], initial_edges=[7])]
        )
        assert any("initial edges" in p for p in config.validate())

    def test_unknown_version(self):
        assert PuzzleConfig(p=4, q=3, version="9.9").validate()


class TestProperties:
    def test_geometry(self):
        assert default_config().geometry == Geometry.HYPERBOLIC
        assert preset("cube").geometry == Geometry.SPHERICAL

    def test_twisting_flags(self):
        assert not default_config().edge_or_vertex_twisting
        assert preset("octahedron-edges").edge_or_vertex_twisting
        assert not preset("klein-quartic-tiling").edge_or_vertex_twisting

    def test_slicing_flags(self):
        sc = SlicingCircles(vertex_centered=[Distance(0, 0, 0.5)])
        assert sc.vertex_twisting and sc.sliced
        assert not SlicingCircles().sliced

    def test_unknown_preset(self):
        with pytest.raises(KeyError):
            preset("megaminx")


class TestSerialization:
    @pytest.mark.parametrize("name", sorted(PRESETS))
    def test_dict_round_trip(self, name):
        config = preset(name)
        assert PuzzleConfig.from_dict(config.to_dict()) == config

    def test_round_trip_with_irp(self):
        config = default_config().copy(irp_config=IRPConfig(data_file="klein.irp", expected_sides=7))
        assert PuzzleConfig.from_dict(config.to_dict()) == config

    def test_preview_version_preserved(self):
        config = preset("cube").copy(version=VERSION_PREVIEW)
        assert PuzzleConfig.from_dict(config.to_dict()).version == VERSION_PREVIEW

    def test_file_round_trip(self, tmp_path):
        path = tmp_path / "klein.json"
        save_config(default_config(), path)
        assert load_config(path) == default_config()


class TestSchema:
    @pytest.mark.parametrize("name", sorted(PRESETS))
    def test_presets_validate_against_schema(self, schema, name):
        import jsonschema

        jsonschema.validate(instance=preset(name).to_dict(), schema=schema)

    def test_saved_file_validates(self, schema, tmp_path):
        import jsonschema

        path = tmp_path / "irp.json"
        save_config(default_config().copy(irp_config=IRPConfig(expected_sides=7)), path)
        jsonschema.validate(instance=json.loads(path.read_text(encoding="utf-8")), schema=schema)

    def test_schema_rejects_bad_distance(self, schema):
        import jsonschema

        payload = preset("cube").to_dict()
        payload["slicing_circles"]["face_centered"] = ["wide"]
        with pytest.raises(jsonschema.ValidationError):
            jsonschema.validate(instance=payload, schema=schema)
