"""Drawing surfaces for the rasterizer.

The rasterizer never touches a global drawing context: the caller passes a
surface factory, and each request draws on a fresh surface.  A surface
accepts pixel-space polylines and polygons and exposes 8-bit coverage
(0 = background, 255 = fully covered).

OpenCVSurface draws white-on-black with anti-aliased OpenCV primitives at
sub-pixel precision (4 fractional bits).  Thick OpenCV lines have round
ends and joins.
"""

from typing import List, Protocol, Sequence

import cv2
import numpy as np

# Fixed-point precision for cv2 drawing calls
SHIFT = 4
_ONE = 1 << SHIFT

# Pixel coordinates are clamped to this range so fixed-point values fit int32
MAX_PIXEL_COORD = float(1 << 20)


class DrawingSurface(Protocol):
    """What the rasterizer needs from a surface."""

    width: int
    height: int

    def stroke_polylines(self, polylines: Sequence[np.ndarray], closed: Sequence[bool], width: float) -> None:
        ...

    def fill_polygons(self, polygons: Sequence[np.ndarray]) -> None:
        ...

    def coverage(self) -> np.ndarray:
        ...


def to_fixed_point(points_px: np.ndarray) -> np.ndarray:
    """Pixel coordinates (N, 2) → int32 cv2 fixed-point, pixel centres at +0.5."""
    pts = np.clip(np.asarray(points_px, dtype=np.float64), -MAX_PIXEL_COORD, MAX_PIXEL_COORD)
    return np.round((pts - 0.5) * _ONE).astype(np.int32).reshape(-1, 1, 2)


class OpenCVSurface:
    """Anti-aliased 8-bit surface backed by OpenCV.

    Parameters
    ----------
    width, height : int
        Surface size in pixels
    """

    def __init__(self, width: int, height: int):
        self.width = int(width)
        self.height = int(height)
        self._canvas = np.zeros((self.height, self.width), dtype=np.uint8)

    def stroke_polylines(self, polylines: Sequence[np.ndarray], closed: Sequence[bool], width: float) -> None:
        """Stroke each polyline with round caps/joins; width in pixels (min 1)."""
        thickness = max(1, int(round(width)))
        for pts, is_closed in zip(polylines, closed):
            if len(pts) < 2:
                continue
            cv2.polylines(
                self._canvas, [to_fixed_point(pts)], bool(is_closed), 255,
                thickness=thickness, lineType=cv2.LINE_AA, shift=SHIFT,
            )

    def fill_polygons(self, polygons: Sequence[np.ndarray]) -> None:
        """Fill contours together (overlaps follow the even-odd rule)."""
        contours: List[np.ndarray] = [to_fixed_point(p) for p in polygons if len(p) >= 3]
        if contours:
            cv2.fillPoly(self._canvas, contours, 255, lineType=cv2.LINE_AA, shift=SHIFT)

    def coverage(self) -> np.ndarray:
        return self._canvas.copy()
