"""Tests for the tilepuzzle command-line interface."""

import json
import logging

import pytest

from tilepuzzle.cli import build_parser, main
from tilepuzzle.config import preset
from tilepuzzle.io import save_config


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logger = logging.getLogger("tilepuzzle")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


class TestParser:
    def test_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_preset_and_config_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["info", "--preset", "cube", "--config", "x.json"])

    def test_defaults(self):
        args = build_parser().parse_args(["scramble", "--out", "s.json"])
        assert args.preset == "cube"
        assert args.twists == 20
        assert args.log_level == "WARNING"


class TestCommands:
    def test_presets(self, capsys):
        main(["presets"])
        out = capsys.readouterr().out
        assert "cube: {4,3} Face Turning (spherical)" in out
        assert "klein-quartic" in out

    def test_info(self, capsys):
        main(["info", "--preset", "cube"])
        out = capsys.readouterr().out
        assert "colors: 6" in out
        assert "topology: F=6, E=12, V=8, χ=2" in out

    def test_info_from_config_file(self, capsys, tmp_path):
        path = tmp_path / "dodecahedron.json"
        save_config(preset("dodecahedron"), path)
        main(["info", "--config", str(path)])
        assert "colors: 12" in capsys.readouterr().out

    def test_scramble_writes_session(self, capsys, tmp_path):
        out_path = tmp_path / "session.json"
        main(["scramble", "--preset", "cube", "--twists", "5", "--seed", "1", "--out", str(out_path)])
        data = json.loads(out_path.read_text(encoding="utf-8"))
        assert data["history"][0] == "scrambles=5"
        assert "Saved" in capsys.readouterr().out

    def test_render(self, tmp_path):
        pytest.importorskip("matplotlib")
        session = tmp_path / "session.json"
        main(["scramble", "--preset", "cube", "--twists", "3", "--seed", "2", "--out", str(session)])
        png = tmp_path / "cube.png"
        main(["render", "--session", str(session), "--out", str(png), "--dpi", "40"])
        assert png.exists()
        assert png.stat().st_size > 0

    def test_config_error_exits(self, capsys, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"p": 7, "q": 3, "num_tiles": 0}), encoding="utf-8")
        with pytest.raises(SystemExit) as info:
            main(["info", "--config", str(path)])
        assert info.value.code == 1
        assert "num_tiles" in capsys.readouterr().out

    def test_log_file(self, tmp_path):
        log = tmp_path / "build.log"
        main(["--log-level", "INFO", "--log-file", str(log), "info", "--preset", "cube"])
        assert "creating underlying tiling..." in log.read_text(encoding="utf-8")

    def test_scramble_lights_out_toggles(self, capsys, tmp_path):
        config_path = tmp_path / "lights_out.json"
        save_config(preset("klein-quartic-tiling").copy(num_tiles=700), config_path)
        out_path = tmp_path / "session.json"
        main(["scramble", "--config", str(config_path), "--twists", "1", "--seed", "1", "--out", str(out_path)])
        data = json.loads(out_path.read_text(encoding="utf-8"))
        assert data["history"][0] == "scrambles=1"
        assert sum(line == "ff" for line in data["state"]) == 8
        assert "Scrambled 1 toggles; all on=False" in capsys.readouterr().out

    def test_bad_json_config_exits(self, capsys, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SystemExit) as info:
            main(["info", "--config", str(path)])
        assert info.value.code == 1
        assert "not valid JSON" in capsys.readouterr().out

    def test_config_missing_key_exits(self, capsys, tmp_path):
        path = tmp_path / "no_q.json"
        path.write_text(json.dumps({"p": 4}), encoding="utf-8")
        with pytest.raises(SystemExit) as info:
            main(["info", "--config", str(path)])
        assert info.value.code == 1
        assert "missing 'q'" in capsys.readouterr().out

    def test_missing_config_file_exits(self, tmp_path):
        with pytest.raises(SystemExit) as info:
            main(["info", "--config", str(tmp_path / "absent.json")])
        assert info.value.code == 1

    def test_render_highlight(self, tmp_path):
        pytest.importorskip("matplotlib")
        png = tmp_path / "cube.png"
        main(["render", "--preset", "cube", "--highlight", "0", "--out", str(png), "--dpi", "40"])
        assert png.stat().st_size > 0

    def test_render_unknown_axis_exits(self, tmp_path):
        pytest.importorskip("matplotlib")
        with pytest.raises(SystemExit) as info:
            main(["render", "--preset", "cube", "--highlight", "6", "--out", str(tmp_path / "x.png")])
        assert info.value.code == 1

    def test_gap(self, capsys, tmp_path):
        out_path = tmp_path / "cube.g"
        main(["gap", "--preset", "cube", "--out", str(out_path)])
        assert out_path.read_text(encoding="utf-8").startswith("puzzle := Group(\n")
        assert "6 generators" in capsys.readouterr().out
