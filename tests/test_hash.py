"""Test hashing functions for provenance.

Tests for sigil_sdf.utils.hashing:
    - sha256_bytes()/sha256_string() match known digests
    - hash_dict() ignores key order
    - hash_instructions() treats objects and float records alike, order matters
    - Non-finite values are rejected

Test cases:
    - test_known_digest()
    - test_hash_dict_key_order()
    - test_hash_instructions()
    - test_rejects_nan()
    - test_short()

Run:
    pytest tests/test_hash.py -v
"""

import pytest

from sigil_sdf.instructions import LineTo, MoveTo, Stroke
from sigil_sdf.utils import hashing

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_known_digest():
    assert hashing.sha256_bytes(b"") == EMPTY_SHA256
    assert hashing.sha256_string("") == EMPTY_SHA256
    digest = hashing.sha256_string("sigil")
    assert len(digest) == 64 and digest == digest.lower()


def test_hash_dict_key_order():
    assert hashing.hash_dict({"a": 1, "b": [1, 2]}) == hashing.hash_dict({"b": [1, 2], "a": 1})
    assert hashing.hash_dict({"a": 1}) != hashing.hash_dict({"a": 2})


def test_hash_instructions():
    objects = [MoveTo(1, 2), LineTo(3, 4), Stroke()]
    records = [{"op": "moveTo", "args": [1.0, 2.0]}, {"args": [3.0, 4.0], "op": "lineTo"}, {"op": "stroke", "args": []}]
    assert hashing.hash_instructions(objects) == hashing.hash_instructions(records)
    assert hashing.hash_instructions(objects) != hashing.hash_instructions(objects[::-1])
    # records are hashed as written
    assert hashing.hash_instructions([{"op": "moveTo", "args": [1, 2]}]) != hashing.hash_instructions([MoveTo(1, 2)])


def test_rejects_nan():
    with pytest.raises(ValueError):
        hashing.hash_dict({"x": float("nan")})


def test_short():
    assert hashing.short(EMPTY_SHA256) == "e3b0c44298fc"
    assert hashing.short(EMPTY_SHA256, 4) == "e3b0"
