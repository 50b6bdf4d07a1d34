"""Raster layer: virtual→pixel transform, drawing surfaces, path rasterizer."""

from .rasterizer import COVERAGE_THRESHOLD, OccupancyGrid, PathRasterizer, flatten_subpath
from .surface import DrawingSurface, OpenCVSurface
from .transform import Transform

__all__ = [
    "COVERAGE_THRESHOLD", "OccupancyGrid", "PathRasterizer", "flatten_subpath",
    "DrawingSurface", "OpenCVSurface", "Transform",
]
