"""Path rasterizer: Path + Transform → occupancy grid.

Pipeline per subpath:
    1. Flatten segments to polylines in virtual space.  The tolerance is
       flatten_tolerance_px / final_scale, so curve fidelity tracks the
       output resolution.  Cubics use adaptive subdivision, quadratics are
       degree-elevated (exact), arcs are sampled by angle.
    2. Map points to pixels with the Transform.
    3. Fill (all runs of the subpath as one even-odd polygon set) and/or
       stroke (constant pixel width, round caps/joins) on the surface.

Occupied = coverage strictly above 127 (midpoint of 0..255).

Canvas semantics honoured while flattening:
    - MoveTo starts a new run
    - LineTo/QuadraticCurve/CubicCurve without a current point start the
      run at their first point
    - Arc joins the current point to its start with a straight line
    - ClosePath closes the run; the next run starts at its first point
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..errors import ResourceLimitExceeded
from ..instructions.operations import (
    Arc,
    ClosePath,
    CubicCurve,
    LineTo,
    MoveTo,
    QuadraticCurve,
)
from ..utils import geometry
from ..utils.profiler import Deadline
from ..utils.validators import LimitsV1
from ..vector.model import Path, Subpath
from .surface import DrawingSurface, OpenCVSurface
from .transform import Transform

logger = logging.getLogger(__name__)

COVERAGE_THRESHOLD = 127


@dataclass
class OccupancyGrid:
    """Boolean occupancy plus the coverage it was thresholded from.

    Attributes
    ----------
    mask : np.ndarray
        (H, W) bool, True = inside the drawn shape
    coverage : np.ndarray
        (H, W) uint8 rendered coverage
    """

    mask: np.ndarray
    coverage: np.ndarray

    @property
    def height(self) -> int:
        return int(self.mask.shape[0])

    @property
    def width(self) -> int:
        return int(self.mask.shape[1])

    @property
    def occupied_count(self) -> int:
        return int(np.count_nonzero(self.mask))

    def bbox(self) -> Optional[Tuple[int, int, int, int]]:
        """(x_min, y_min, x_max, y_max) of occupied pixels, inclusive; None if empty."""
        ys, xs = np.nonzero(self.mask)
        if len(xs) == 0:
            return None
        return (int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max()))

    @classmethod
    def from_coverage(cls, coverage: np.ndarray) -> 'OccupancyGrid':
        coverage = np.asarray(coverage, dtype=np.uint8)
        return cls(mask=coverage > COVERAGE_THRESHOLD, coverage=coverage)


class _Run:
    """Polyline under construction (virtual units)."""

    __slots__ = ('chunks', 'closed')

    def __init__(self, start: np.ndarray):
        self.chunks: List[np.ndarray] = [np.asarray(start, dtype=np.float64).reshape(1, 2)]
        self.closed = False

    @property
    def last(self) -> np.ndarray:
        return self.chunks[-1][-1]

    @property
    def first(self) -> np.ndarray:
        return self.chunks[0][0]

    def extend(self, pts: np.ndarray) -> None:
        if len(pts):
            self.chunks.append(np.asarray(pts, dtype=np.float64).reshape(-1, 2))

    def points(self) -> np.ndarray:
        return np.concatenate(self.chunks, axis=0)


def flatten_subpath(
    subpath: Subpath,
    tolerance: float,
    deadline: Optional[Deadline] = None,
    max_points: Optional[int] = None,
    points_used: int = 0,
) -> List[Tuple[np.ndarray, bool]]:
    """Flatten one subpath into (points, closed) runs in virtual units.

    Parameters
    ----------
    subpath : Subpath
        Segments to flatten
    tolerance : float
        Maximum deviation from the true curve (virtual units)
    deadline : Deadline, optional
        Checked after every segment
    max_points : int, optional
        Point budget for the whole request, checked after every segment
    points_used : int
        Points already spent on earlier subpaths of the same request

    Returns
    -------
    List[Tuple[np.ndarray, bool]]
        One entry per run, points shape (N, 2), N >= 1

    Raises
    ------
    ResourceLimitExceeded
        Deadline passed, or points_used plus this subpath's points above
        max_points
    """
    runs: List[_Run] = []
    run: Optional[_Run] = None
    count = points_used

    def start(p) -> _Run:
        nonlocal count
        r = _Run(np.asarray(p, dtype=np.float64))
        runs.append(r)
        count += 1
        return r

    def extend(r: _Run, pts: np.ndarray) -> None:
        nonlocal count
        r.extend(pts)
        count += len(pts)

    for seg in subpath.segments:
        if isinstance(seg, MoveTo):
            run = start((seg.x, seg.y))
        elif isinstance(seg, LineTo):
            if run is None:
                run = start((seg.x, seg.y))
            else:
                extend(run, np.array([[seg.x, seg.y]]))
        elif isinstance(seg, Arc):
            sweep = geometry.arc_sweep(seg.start_angle, seg.end_angle, seg.counter_clockwise)
            pts = geometry.arc_polyline(seg.cx, seg.cy, seg.r, seg.start_angle, sweep, max_err=tolerance).numpy()
            if run is None:
                run = start(pts[0])
            else:
                extend(run, pts[:1])
            extend(run, pts[1:])
        elif isinstance(seg, QuadraticCurve):
            if run is None:
                run = start((seg.cx, seg.cy))
            p0 = geometry.as_point(*run.last)
            cubic = geometry.quadratic_to_cubic(p0, geometry.as_point(seg.cx, seg.cy), geometry.as_point(seg.x, seg.y))
            extend(run, geometry.bezier_cubic_polyline(*cubic, max_err=tolerance).numpy()[1:])
        elif isinstance(seg, CubicCurve):
            if run is None:
                run = start((seg.c1x, seg.c1y))
            pts = geometry.bezier_cubic_polyline(
                geometry.as_point(*run.last),
                geometry.as_point(seg.c1x, seg.c1y),
                geometry.as_point(seg.c2x, seg.c2y),
                geometry.as_point(seg.x, seg.y),
                max_err=tolerance,
            ).numpy()
            extend(run, pts[1:])
        elif isinstance(seg, ClosePath):
            if run is not None:
                run.closed = True
                run = start(run.first)

        if max_points is not None and count > max_points:
            raise ResourceLimitExceeded("points", max_points, count, stage="rasterize")
        if deadline is not None:
            deadline.check("rasterize")

    return [(r.points(), r.closed) for r in runs]


class PathRasterizer:
    """Rasterizes a Path onto a fresh surface per call.

    Parameters
    ----------
    surface_factory : Callable[[int, int], DrawingSurface]
        Builds a blank (width, height) surface, default OpenCVSurface
    flatten_tolerance_px : float
        Curve flattening error in output pixels, default 0.25
    limits : LimitsV1, optional
        Point and pixel budgets
    """

    def __init__(
        self,
        surface_factory: Callable[[int, int], DrawingSurface] = OpenCVSurface,
        flatten_tolerance_px: float = 0.25,
        limits: Optional[LimitsV1] = None,
    ):
        if flatten_tolerance_px <= 0:
            raise ValueError(f"flatten_tolerance_px must be positive, got {flatten_tolerance_px}")
        self.surface_factory = surface_factory
        self.flatten_tolerance_px = flatten_tolerance_px
        self.limits = limits if limits is not None else LimitsV1()

    def rasterize(
        self,
        path: Path,
        transform: Transform,
        stroke_width: float,
        deadline: Optional[Deadline] = None,
    ) -> OccupancyGrid:
        """Draw every painted subpath and threshold the coverage.

        Parameters
        ----------
        path : Path
            Interpreted path (virtual units)
        transform : Transform
            Virtual → pixel mapping; also fixes the output size
        stroke_width : float
            Stroke width in output pixels (not scaled by artwork_scale)
        deadline : Deadline, optional
            Checked before every subpath and after every flattened segment

        Returns
        -------
        OccupancyGrid
            Same size as the output

        Raises
        ------
        ResourceLimitExceeded
            Output larger than max_output_pixels, or more than max_points
            flattened points
        """
        w, h = transform.output_width, transform.output_height
        if w * h > self.limits.max_output_pixels:
            raise ResourceLimitExceeded("pixels", self.limits.max_output_pixels, w * h, stage="rasterize")

        deadline = deadline or Deadline.unlimited()
        tolerance = transform.to_virtual_length(self.flatten_tolerance_px)
        surface = self.surface_factory(w, h)
        total_points = 0

        for subpath in path:
            deadline.check("rasterize")
            runs = flatten_subpath(subpath, tolerance, deadline, self.limits.max_points, total_points)
            total_points += sum(len(pts) for pts, _ in runs)

            runs_px = [(transform.apply(pts), closed) for pts, closed in runs]
            if subpath.filled:
                surface.fill_polygons([pts for pts, _ in runs_px])
            if subpath.stroked:
                surface.stroke_polylines(
                    [pts for pts, _ in runs_px], [closed for _, closed in runs_px], stroke_width)

        grid = OccupancyGrid.from_coverage(surface.coverage())
        logger.debug(
            f"Rasterized {len(path)} subpaths, {total_points} points → "
            f"{grid.occupied_count} occupied px of {w}x{h}"
        )
        return grid
