"""Test rasterization (Path + Transform → occupancy grid).

Tests for sigil_sdf.raster:
    - Transform fits and centres the canvas, artwork scale shrinks about the centre
    - Flattening honours canvas run semantics
    - Strokes, fills and even-odd holes on the OpenCV surface
    - Fill happens before stroke; stroke width is not scaled
    - Point, pixel and time budgets

Test cases:
    - TestTransform
    - TestFlatten
    - TestOpenCVRaster
    - test_spy_surface_call_order()
    - TestLimits (points, pixels, deadline; checked per flattened segment)

Run:
    pytest tests/test_rasterizer.py -v
"""

import itertools
import math

import numpy as np
import pytest

from sigil_sdf.errors import ResourceLimitExceeded
from sigil_sdf.instructions import Arc, ClosePath, CubicCurve, LineTo, MoveTo, QuadraticCurve
from sigil_sdf.raster import OccupancyGrid, PathRasterizer, Transform, flatten_subpath
from sigil_sdf.raster.surface import MAX_PIXEL_COORD, to_fixed_point
from sigil_sdf.utils import geometry
from sigil_sdf.utils.profiler import Deadline
from sigil_sdf.utils.validators import LimitsV1
from sigil_sdf.vector import Path, Subpath


def _rasterize(subpaths, size=100, stroke_width=2.0, scale=1.0):
    transform = Transform.from_sizes(100, 100, size, size, scale)
    return PathRasterizer().rasterize(Path(subpaths), transform, stroke_width)


class SpySurface:
    """Records drawing calls instead of drawing."""

    instances = []

    def __init__(self, width, height):
        self.width, self.height = width, height
        self.calls = []
        SpySurface.instances.append(self)

    def stroke_polylines(self, polylines, closed, width):
        self.calls.append(('stroke', [p.copy() for p in polylines], list(closed), width))

    def fill_polygons(self, polygons):
        self.calls.append(('fill', [p.copy() for p in polygons]))

    def coverage(self):
        return np.zeros((self.height, self.width), dtype=np.uint8)


@pytest.fixture
def spy():
    SpySurface.instances = []
    return SpySurface


# One subpath of 2000 cubics that each flatten to the full subdivision depth
WIDE_CUBICS = Path([Subpath(
    [MoveTo(0, 0)] + [CubicCurve(-1e5, 1e5, 1e5, -1e5, 0, 0)] * 2000, stroked=True)])


@pytest.fixture
def counted_cubics(monkeypatch):
    """Record every cubic the rasterizer flattens."""
    calls = []
    original = geometry.bezier_cubic_polyline

    def counting(*args, **kwargs):
        calls.append(args)
        return original(*args, **kwargs)

    monkeypatch.setattr(geometry, "bezier_cubic_polyline", counting)
    return calls


class TestTransform:
    """Virtual → pixel mapping."""

    def test_square(self):
        t = Transform.from_sizes(100, 100, 256, 256)
        assert t.final_scale == pytest.approx(2.56)
        assert (t.offset_x, t.offset_y) == (0.0, 0.0)
        assert t.apply_point(50, 50) == pytest.approx((128.0, 128.0))

    def test_non_square_fits_and_centres(self):
        t = Transform.from_sizes(100, 100, 64, 40)
        assert t.final_scale == pytest.approx(0.4)
        assert t.offset_x == pytest.approx(12.0)
        assert t.offset_y == pytest.approx(0.0)

    def test_artwork_scale_about_centre(self):
        t = Transform.from_sizes(100, 100, 200, 200, artwork_scale=0.5)
        assert t.final_scale == pytest.approx(1.0)
        assert t.apply_point(50, 50) == pytest.approx((100.0, 100.0))
        assert t.apply_point(0, 0) == pytest.approx((50.0, 50.0))

    def test_apply_array(self):
        t = Transform.from_sizes(100, 100, 200, 200)
        out = t.apply(np.array([[0, 0], [100, 100]]))
        assert np.allclose(out, [[0, 0], [200, 200]])

    def test_virtual_length(self):
        assert Transform.from_sizes(100, 100, 256, 256).to_virtual_length(0.25) == pytest.approx(0.25 / 2.56)

    @pytest.mark.parametrize("args", [(0, 100, 10, 10), (100, 100, 0, 10), (100, 100, 10, 10, 0.0)])
    def test_rejects_bad_sizes(self, args):
        with pytest.raises(ValueError):
            Transform.from_sizes(*args)


class TestFlatten:
    """Segment → run conversion in virtual units."""

    def test_close_starts_new_run_at_first_point(self):
        sp = Subpath([MoveTo(0, 0), LineTo(10, 0), LineTo(10, 10), ClosePath(), LineTo(20, 20)])
        (first, closed1), (second, closed2) = flatten_subpath(sp, 0.1)
        assert closed1 and not closed2
        assert np.allclose(first, [[0, 0], [10, 0], [10, 10]])
        assert np.allclose(second, [[0, 0], [20, 20]])

    def test_line_without_current_point(self):
        ((pts, closed),) = flatten_subpath(Subpath([LineTo(5, 5), LineTo(6, 6)]), 0.1)
        assert np.allclose(pts, [[5, 5], [6, 6]])
        assert not closed

    def test_arc_joins_current_point(self):
        ((pts, _),) = flatten_subpath(Subpath([MoveTo(0, 0), Arc(50, 50, 10, 0, math.pi)]), 0.1)
        assert np.allclose(pts[0], [0, 0])
        assert np.allclose(pts[1], [60, 50])
        assert np.allclose(pts[-1], [40, 50], atol=1e-9)

    def test_curves_without_current_point_start_at_control(self):
        ((q, _),) = flatten_subpath(Subpath([QuadraticCurve(3, 4, 10, 0)]), 0.1)
        assert np.allclose(q[0], [3, 4]) and np.allclose(q[-1], [10, 0])
        ((c, _),) = flatten_subpath(Subpath([CubicCurve(1, 2, 5, 5, 9, 0)]), 0.1)
        assert np.allclose(c[0], [1, 2]) and np.allclose(c[-1], [9, 0])

    def test_tolerance_controls_density(self):
        sp = Subpath([Arc(50, 50, 40, 0, 2 * math.pi)])
        ((coarse, _),) = flatten_subpath(sp, 1.0)
        ((fine, _),) = flatten_subpath(sp, 0.01)
        assert len(fine) > len(coarse)

    def test_move_only(self):
        ((pts, closed),) = flatten_subpath(Subpath([MoveTo(1, 1)]), 0.1)
        assert pts.shape == (1, 2) and not closed


class TestOpenCVRaster:
    """Rendering on the default surface."""

    def test_horizontal_stroke(self):
        grid = _rasterize([Subpath([MoveTo(10, 50), LineTo(90, 50)], stroked=True)])
        assert grid.mask.shape == (100, 100)
        assert grid.mask[49, 50] and grid.mask[50, 50]
        assert not grid.mask[45, 50] and not grid.mask[55, 50]
        assert not grid.mask[50, 2] and not grid.mask[50, 97]

    def test_filled_square(self):
        square = [MoveTo(20, 20), LineTo(80, 20), LineTo(80, 80), LineTo(20, 80), ClosePath()]
        grid = _rasterize([Subpath(square, filled=True)])
        assert grid.mask[50, 50]
        assert not grid.mask[10, 10]
        x0, y0, x1, y1 = grid.bbox()
        assert abs(x0 - 20) <= 1 and abs(y0 - 20) <= 1
        assert abs(x1 - 79) <= 1 and abs(y1 - 79) <= 1

    def test_even_odd_hole(self):
        outer = [MoveTo(10, 10), LineTo(90, 10), LineTo(90, 90), LineTo(10, 90), ClosePath()]
        inner = [MoveTo(30, 30), LineTo(70, 30), LineTo(70, 70), LineTo(30, 70), ClosePath()]
        grid = _rasterize([Subpath(outer + inner, filled=True)])
        assert grid.mask[20, 20]
        assert not grid.mask[50, 50]

    def test_ring_stroke(self):
        grid = _rasterize([Subpath([Arc(50, 50, 30, 0, 2 * math.pi)], stroked=True)])
        assert grid.mask[50, 80] or grid.mask[50, 79]
        assert not grid.mask[50, 50]
        assert not grid.mask[0, 0]

    def test_unpainted_draws_nothing(self):
        grid = _rasterize([Subpath([MoveTo(10, 50), LineTo(90, 50)])])
        assert grid.occupied_count == 0
        assert grid.bbox() is None

    def test_huge_coordinates_are_clamped(self):
        fixed = to_fixed_point(np.array([[1e12, -1e12]]))
        assert fixed.dtype == np.int32
        assert fixed[0, 0, 0] == int(round((MAX_PIXEL_COORD - 0.5) * 16))
        grid = _rasterize([Subpath([MoveTo(50, 50), LineTo(1e9, 50)], stroked=True)])
        assert grid.mask[50, 99]


def test_occupancy_threshold():
    cov = np.array([[0, 127, 128, 255]], dtype=np.uint8)
    grid = OccupancyGrid.from_coverage(cov)
    assert grid.mask.tolist() == [[False, False, True, True]]
    assert (grid.width, grid.height, grid.occupied_count) == (4, 1, 2)


def test_spy_surface_call_order(spy):
    """Fill precedes stroke; width passes through in pixels; points are in pixel space."""
    rasterizer = PathRasterizer(surface_factory=spy)
    transform = Transform.from_sizes(100, 100, 200, 200, artwork_scale=0.5)
    path = Path([Subpath([MoveTo(0, 0), LineTo(100, 100)], stroked=True, filled=True)])
    rasterizer.rasterize(path, transform, stroke_width=3.0)

    (surface,) = spy.instances
    assert (surface.width, surface.height) == (200, 200)
    assert [c[0] for c in surface.calls] == ['fill', 'stroke']
    _, polylines, closed, width = surface.calls[1]
    assert width == 3.0
    assert closed == [False]
    assert np.allclose(polylines[0], [[50, 50], [150, 150]])


def test_fresh_surface_per_call(spy):
    rasterizer = PathRasterizer(surface_factory=spy)
    transform = Transform.from_sizes(100, 100, 32, 32)
    path = Path([Subpath([MoveTo(0, 0), LineTo(10, 10)], stroked=True)])
    rasterizer.rasterize(path, transform, 2.0)
    rasterizer.rasterize(path, transform, 2.0)
    assert len(spy.instances) == 2


class TestLimits:
    """Budgets enforced during rasterization."""

    def test_points(self):
        rasterizer = PathRasterizer(limits=LimitsV1(max_points=16))
        path = Path([Subpath([Arc(50, 50, 40, 0, 2 * math.pi)], stroked=True)])
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            rasterizer.rasterize(path, Transform.from_sizes(100, 100, 256, 256), 2.0)
        assert exc_info.value.resource == "points"

    def test_pixels(self, spy):
        rasterizer = PathRasterizer(surface_factory=spy, limits=LimitsV1(max_output_pixels=100))
        path = Path([Subpath([MoveTo(0, 0), LineTo(10, 10)], stroked=True)])
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            rasterizer.rasterize(path, Transform.from_sizes(100, 100, 64, 64), 2.0)
        assert exc_info.value.resource == "pixels"
        assert spy.instances == []

    def test_deadline(self):
        deadline = Deadline(1.0, clock=itertools.count(0, 10).__next__)
        path = Path([Subpath([MoveTo(0, 0), LineTo(10, 10)], stroked=True)])
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            PathRasterizer().rasterize(path, Transform.from_sizes(100, 100, 32, 32), 2.0, deadline=deadline)
        assert exc_info.value.resource == "time"

    def test_points_inside_one_subpath(self, counted_cubics):
        """A single long subpath is cut off mid-flattening, not after it."""
        rasterizer = PathRasterizer(limits=LimitsV1(max_points=5000))
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            rasterizer.rasterize(WIDE_CUBICS, Transform.from_sizes(100, 100, 256, 256), 2.0)
        assert exc_info.value.resource == "points"
        assert exc_info.value.actual <= 5000 + 1025
        assert len(counted_cubics) < 10

    def test_deadline_inside_one_subpath(self, counted_cubics):
        deadline = Deadline(25.0, clock=itertools.count(0, 10).__next__)
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            PathRasterizer().rasterize(WIDE_CUBICS, Transform.from_sizes(100, 100, 256, 256), 2.0,
                                       deadline=deadline)
        assert exc_info.value.resource == "time"
        assert len(counted_cubics) <= 2

    def test_flatten_counts_earlier_points(self):
        sp = Subpath([MoveTo(0, 0), LineTo(1, 1), LineTo(2, 2)])
        assert len(flatten_subpath(sp, 0.1, max_points=3)[0][0]) == 3
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            flatten_subpath(sp, 0.1, max_points=3, points_used=1)
        assert exc_info.value.actual == 4

    def test_bad_tolerance(self):
        with pytest.raises(ValueError):
            PathRasterizer(flatten_tolerance_px=0.0)
