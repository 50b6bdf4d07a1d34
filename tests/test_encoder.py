"""Test texture encoding.

Tests for sigil_sdf.sdf.encoder:
    - PNG signature and dimensions
    - RGBA replicates the field into R, G, B with opaque alpha
    - L mode is a single channel
    - Same field → same bytes
    - Preview alpha follows coverage

Test cases:
    - test_encode_rgba()
    - test_encode_l()
    - test_deterministic()
    - test_rejects_bad_arguments()
    - test_encode_preview()

Run:
    pytest tests/test_encoder.py -v
"""

import io

import numpy as np
import pytest
from PIL import Image

from sigil_sdf.raster import OccupancyGrid
from sigil_sdf.sdf import DistanceField, decode_texture, encode_preview, encode_texture, has_png_signature


@pytest.fixture
def field():
    values = np.arange(64 * 40, dtype=np.uint32).reshape(40, 64) % 256
    return DistanceField(values=values.astype(np.uint8), search_radius=32)


def test_encode_rgba(field):
    texture = encode_texture(field)
    assert has_png_signature(texture.data)
    assert (texture.width, texture.height, texture.format) == (64, 40, 'png')

    with Image.open(io.BytesIO(texture.data)) as img:
        assert img.mode == 'RGBA'
        assert img.size == (64, 40)
        array = np.asarray(img)
    assert np.array_equal(array[..., 0], field.values)
    assert np.array_equal(array[..., 1], field.values)
    assert np.array_equal(array[..., 2], field.values)
    assert np.all(array[..., 3] == 255)


def test_encode_l(field):
    texture = encode_texture(field.values, color_mode='L')
    with Image.open(io.BytesIO(texture.data)) as img:
        assert img.mode == 'L'
    assert np.array_equal(decode_texture(texture.data), field.values)


def test_decode_rgba(field):
    assert np.array_equal(decode_texture(encode_texture(field).data), field.values)


def test_deterministic(field):
    assert encode_texture(field).data == encode_texture(field.values.copy()).data


def test_rejects_bad_arguments(field):
    with pytest.raises(ValueError, match="format"):
        encode_texture(field, fmt='jpeg')
    with pytest.raises(ValueError, match="color mode"):
        encode_texture(field, color_mode='RGB')
    with pytest.raises(ValueError, match="2D"):
        encode_texture(np.zeros((4, 4, 3), dtype=np.uint8))


def test_has_png_signature():
    assert not has_png_signature(b'GIF89a')
    assert not has_png_signature(b'')


def test_encode_preview():
    coverage = np.zeros((8, 8), dtype=np.uint8)
    coverage[2:4, 2:6] = 200
    data = encode_preview(OccupancyGrid.from_coverage(coverage))
    with Image.open(io.BytesIO(data)) as img:
        assert img.mode == 'RGBA'
        array = np.asarray(img)
    assert np.all(array[..., :3] == 255)
    assert np.array_equal(array[..., 3], coverage)
