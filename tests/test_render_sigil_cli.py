"""Test the render_sigil command-line script.

Tests for scripts/render_sigil.py:
    - JSON and YAML instruction files render to <prefix>_sdf.png + metadata
    - Canvas-code input with preview
    - CLI overrides win over the config file
    - Rejected requests exit with code 2, missing files with 1

Run:
    pytest tests/test_render_sigil_cli.py -v
"""

import importlib.util
import io
import json
import sys
from pathlib import Path

import pytest
import yaml
from PIL import Image

from sigil_sdf.vector import extract_path_data

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "render_sigil.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("render_sigil", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(autouse=True)
def restore_excepthook(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)


@pytest.fixture
def circle_json(tmp_path):
    path = tmp_path / "circle.json"
    path.write_text(json.dumps([
        {"op": "beginPath"},
        {"op": "arc", "args": [50, 50, 20, 0, 6.283185307179586]},
        {"op": "stroke"},
    ]))
    return path


def test_json_instructions(cli, circle_json, tmp_path):
    before = sys.excepthook
    out = tmp_path / "out"
    code = cli.main(["--instructions", str(circle_json), "--output_dir", str(out),
                     "--width", "64", "--height", "48", "--log_level", "WARNING"])
    assert code == 0

    with Image.open(out / "sigil_sdf.png") as img:
        assert img.size == (64, 48)
    assert len(extract_path_data((out / "sigil_path.svg").read_text())) == 1
    assert not (out / "sigil_preview.png").exists()

    meta = yaml.safe_load((out / "sigil_metadata.yaml").read_text())
    assert meta["output_size_px"] == [64, 48]
    assert meta["num_instructions"] == 3
    assert meta["num_subpaths"] == 1
    assert meta["config"]["schema"] == "sigil_sdf.v1"
    assert len(meta["texture_sha256"]) == 64
    assert sys.excepthook is not before


def test_yaml_instructions_with_mapping(cli, tmp_path):
    src = tmp_path / "sigil.yaml"
    src.write_text(yaml.safe_dump({"instructions": [
        {"op": "moveTo", "args": [10, 10]}, ["lineTo", 90, 90], {"op": "stroke"},
    ]}))
    code = cli.main(["--instructions", str(src), "--output_dir", str(tmp_path), "--prefix", "line",
                     "--width", "32", "--height", "32"])
    assert code == 0
    assert (tmp_path / "line_sdf.png").exists()


def test_canvas_code_with_preview(cli, tmp_path):
    src = tmp_path / "sigil.js"
    src.write_text("ctx.beginPath();\nctx.arc(50, 50, 20, 0, Math.PI * 2);\nctx.stroke();\n")
    code = cli.main(["--canvas_code", str(src), "--output_dir", str(tmp_path),
                     "--width", "32", "--height", "32", "--preview"])
    assert code == 0
    with Image.open(io.BytesIO((tmp_path / "sigil_preview.png").read_bytes())) as img:
        assert img.mode == "RGBA"


def test_config_file_and_overrides(cli, circle_json, tmp_path):
    config = tmp_path / "cfg.yaml"
    config.write_text("schema: sigil_sdf.v1\noutput_width: 40\noutput_height: 40\nsearch_radius: 8\n")
    args = cli.parse_args(["--instructions", str(circle_json), "--config", str(config), "--width", "24"])
    cfg = cli.build_config(args)
    assert cfg.output_size == (24, 40)
    assert cfg.search_radius == 8


def test_rejected_request(cli, tmp_path):
    src = tmp_path / "bad.json"
    src.write_text('[{"op": "eval", "args": ["alert(1)"]}]')
    out = tmp_path / "out"
    assert cli.main(["--instructions", str(src), "--output_dir", str(out)]) == 2
    assert not out.exists()


def test_empty_path_rejected(cli, tmp_path):
    src = tmp_path / "empty.json"
    src.write_text('[{"op": "beginPath"}, {"op": "stroke"}]')
    assert cli.main(["--instructions", str(src), "--output_dir", str(tmp_path / "out")]) == 2


def test_missing_file(cli, tmp_path):
    assert cli.main(["--instructions", str(tmp_path / "missing.json")]) == 1


def test_requires_one_input(cli):
    with pytest.raises(SystemExit):
        cli.parse_args([])
