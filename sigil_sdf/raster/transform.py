"""Virtual drawing space → output pixel space.

The virtual canvas (default 100×100 units) is scaled uniformly to fit the
output, multiplied by the artwork scale, and the scaled canvas box is
centred.  Pixel (i, j) covers [i, i+1) × [j, j+1); its centre is at +0.5.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Transform:
    """Uniform scale + offset, derived per rasterization call.

    Attributes
    ----------
    base_scale : float
        min(output_width / canvas_width, output_height / canvas_height)
    final_scale : float
        base_scale * artwork_scale (pixels per virtual unit)
    offset_x, offset_y : float
        Translation that centres the scaled canvas box (pixels)
    output_width, output_height : int
        Output size (pixels)
    """

    base_scale: float
    final_scale: float
    offset_x: float
    offset_y: float
    output_width: int
    output_height: int

    @classmethod
    def from_sizes(
        cls,
        canvas_width: float,
        canvas_height: float,
        output_width: int,
        output_height: int,
        artwork_scale: float = 1.0,
    ) -> 'Transform':
        if canvas_width <= 0 or canvas_height <= 0:
            raise ValueError(f"Canvas size must be positive, got {canvas_width}x{canvas_height}")
        if output_width < 1 or output_height < 1:
            raise ValueError(f"Output size must be >= 1, got {output_width}x{output_height}")
        if artwork_scale <= 0:
            raise ValueError(f"artwork_scale must be positive, got {artwork_scale}")

        base_scale = min(output_width / canvas_width, output_height / canvas_height)
        final_scale = base_scale * artwork_scale
        return cls(
            base_scale=base_scale,
            final_scale=final_scale,
            offset_x=(output_width - canvas_width * final_scale) / 2.0,
            offset_y=(output_height - canvas_height * final_scale) / 2.0,
            output_width=int(output_width),
            output_height=int(output_height),
        )

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Map virtual points, shape (N, 2), to pixel coordinates (float64)."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        return pts * self.final_scale + np.array([self.offset_x, self.offset_y])

    def apply_point(self, x: float, y: float) -> tuple:
        return (x * self.final_scale + self.offset_x, y * self.final_scale + self.offset_y)

    def to_virtual_length(self, length_px: float) -> float:
        """Convert a pixel length (e.g. flattening tolerance) to virtual units."""
        return length_px / self.final_scale
