"""Texture encoding (Pillow PNG).

The distance field is written as grayscale replicated across R, G and B
with alpha 255 ("RGBA", what front-end shaders sample), or as a single
"L" channel.  Encoding is pure: the same field gives the same bytes.
"""

import io
from dataclasses import dataclass
from typing import Union

import numpy as np
from PIL import Image

from ..raster.rasterizer import OccupancyGrid
from .distance_field import DistanceField

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
SUPPORTED_FORMATS = ('png',)
COLOR_MODES = ('RGBA', 'L')


@dataclass(frozen=True)
class EncodedTexture:
    """Encoded image bytes plus dimensions."""

    data: bytes
    width: int
    height: int
    format: str = 'png'

    def to_dict(self) -> dict:
        return {'data': self.data, 'width': self.width, 'height': self.height, 'format': self.format}


def has_png_signature(data: bytes) -> bool:
    return data[:len(PNG_SIGNATURE)] == PNG_SIGNATURE


def _png_bytes(array: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(array)).save(buf, format='PNG')
    return buf.getvalue()


def encode_texture(
    field: Union[DistanceField, np.ndarray],
    fmt: str = 'png',
    color_mode: str = 'RGBA',
) -> EncodedTexture:
    """Encode a distance field as an image.

    Parameters
    ----------
    field : DistanceField or np.ndarray
        (H, W) uint8 values
    fmt : str
        Only "png" is supported
    color_mode : str
        "RGBA" (gray replicated, alpha 255) or "L"

    Raises
    ------
    ValueError
        Unsupported format or color mode, or a non-2D field
    """
    fmt = fmt.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported texture format {fmt!r}, expected one of {SUPPORTED_FORMATS}")
    if color_mode not in COLOR_MODES:
        raise ValueError(f"Unsupported color mode {color_mode!r}, expected one of {COLOR_MODES}")

    values = field.values if isinstance(field, DistanceField) else np.asarray(field)
    if values.ndim != 2:
        raise ValueError(f"Field must be 2D, got shape {values.shape}")
    values = values.astype(np.uint8)
    h, w = values.shape

    if color_mode == 'RGBA':
        alpha = np.full_like(values, 255)
        array = np.stack([values, values, values, alpha], axis=-1)
    else:
        array = values
    return EncodedTexture(data=_png_bytes(array), width=w, height=h, format=fmt)


def decode_texture(data: bytes) -> np.ndarray:
    """Read back field values (first channel) from encoded bytes."""
    with Image.open(io.BytesIO(data)) as img:
        array = np.asarray(img)
    return array[..., 0].copy() if array.ndim == 3 else array.copy()


def encode_preview(grid: Union[OccupancyGrid, np.ndarray]) -> bytes:
    """White strokes on a transparent background; alpha = rendered coverage."""
    coverage = grid.coverage if isinstance(grid, OccupancyGrid) else np.asarray(grid, dtype=np.uint8)
    white = np.full_like(coverage, 255)
    return _png_bytes(np.stack([white, white, white, coverage], axis=-1))
