"""Test atomic filesystem operations.

Tests for sigil_sdf.utils.fs:
    - Atomic writes leave no tmp file behind
    - YAML roundtrip preserves structure and key order
    - load_yaml errors and empty files
    - ensure_dir creates parents

Test cases:
    - test_atomic_write_bytes()
    - test_atomic_write_text()
    - test_atomic_yaml_dump()
    - test_load_yaml_missing()
    - test_load_yaml_empty()
    - test_load_yaml_invalid()
    - test_ensure_dir()

Run:
    pytest tests/test_fs.py -v
"""

import pytest
import yaml

from sigil_sdf.utils import fs


def test_atomic_write_bytes(tmp_path):
    target = tmp_path / "nested" / "sigil_sdf.png"
    fs.atomic_write_bytes(target, b"\x89PNG data")
    assert target.read_bytes() == b"\x89PNG data"
    assert list(target.parent.iterdir()) == [target]

    fs.atomic_write_bytes(target, b"replaced")
    assert target.read_bytes() == b"replaced"


def test_atomic_write_text(tmp_path):
    target = tmp_path / "path.svg"
    fs.atomic_write_text(target, "<svg>é</svg>")
    assert target.read_text(encoding="utf-8") == "<svg>é</svg>"


def test_atomic_write_failure_raises(tmp_path):
    target = tmp_path / "dir_in_the_way"
    target.mkdir()
    with pytest.raises(RuntimeError, match="atomically"):
        fs.atomic_write_bytes(target, b"x")
    assert not (tmp_path / "dir_in_the_way.tmp").exists()


def test_atomic_yaml_dump(tmp_path):
    data = {"source": "sigil.json", "output_size_px": [64, 64], "warnings": [], "b": 1, "a": 2}
    target = tmp_path / "sigil_metadata.yaml"
    fs.atomic_yaml_dump(data, target)
    loaded = fs.load_yaml(target)
    assert loaded == data
    assert list(loaded) == list(data)


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")


def test_load_yaml_empty(tmp_path):
    target = tmp_path / "empty.yaml"
    target.write_text("")
    assert fs.load_yaml(target) == {}


def test_load_yaml_invalid(tmp_path):
    target = tmp_path / "bad.yaml"
    target.write_text("a: [1, 2\n")
    with pytest.raises(yaml.YAMLError):
        fs.load_yaml(target)


def test_ensure_dir(tmp_path):
    out = fs.ensure_dir(tmp_path / "a" / "b")
    assert out.is_dir()
    assert fs.ensure_dir(out) == out
