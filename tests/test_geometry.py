"""Test geometric operations for sigil paths.

Tests for sigil_sdf.utils.geometry:
    - Adaptive flattening converges with max_err
    - Quadratic degree elevation is exact
    - Canvas arc sweep rules (direction, wrap, full circle)
    - Arc sampling respects the chord-error bound

Test cases:
    - test_bezier_cubic_polyline_convergence()
    - test_bezier_degenerate()
    - test_quadratic_to_cubic()
    - test_arc_sweep() (parametrized)
    - test_arc_polyline_error_bound()
    - test_arc_polyline_degenerate()

Run:
    pytest tests/test_geometry.py -v
"""

import math

import pytest
import torch

from sigil_sdf.utils import geometry
from sigil_sdf.utils.geometry import as_point


def _length(points):
    return float(torch.linalg.norm(points[1:] - points[:-1], dim=1).sum())


def _cubic_at(p1, p2, p3, p4, t):
    t = t.unsqueeze(-1)
    s = 1.0 - t
    return s ** 3 * p1 + 3 * s ** 2 * t * p2 + 3 * s * t ** 2 * p3 + t ** 3 * p4


def test_bezier_cubic_polyline_convergence():
    """Tighter tolerance → more vertices and a length approaching the true arc length."""
    p1, p2, p3, p4 = as_point(0, 0), as_point(0, 50), as_point(50, 50), as_point(50, 0)
    lengths = []
    counts = []
    for err in (1.0, 0.1, 0.01, 0.001):
        poly = geometry.bezier_cubic_polyline(p1, p2, p3, p4, max_err=err)
        assert torch.allclose(poly[0], p1) and torch.allclose(poly[-1], p4)
        lengths.append(_length(poly))
        counts.append(poly.shape[0])
    assert counts == sorted(counts)
    assert lengths == sorted(lengths)
    assert lengths[-1] - lengths[-2] < 0.01


def test_bezier_degenerate():
    """Collinear controls give a two-point polyline; a point curve stays a point."""
    line = geometry.bezier_cubic_polyline(as_point(0, 0), as_point(1, 1), as_point(2, 2), as_point(3, 3))
    assert line.shape == (2, 2)
    dot = geometry.bezier_cubic_polyline(*(as_point(4, 4),) * 4)
    assert dot.shape == (2, 2)
    assert _length(dot) == 0.0


def test_quadratic_to_cubic():
    p0, c, p = as_point(0, 0), as_point(5, 10), as_point(10, 0)
    cubic = geometry.quadratic_to_cubic(p0, c, p)
    t = torch.linspace(0, 1, 11, dtype=torch.float64)
    quad = ((1 - t) ** 2).unsqueeze(-1) * p0 + (2 * (1 - t) * t).unsqueeze(-1) * c + (t ** 2).unsqueeze(-1) * p
    assert torch.allclose(_cubic_at(*cubic, t), quad)


@pytest.mark.parametrize("start,end,ccw,expected", [
    (0.0, math.pi / 2, False, math.pi / 2),
    (0.0, math.pi / 2, True, -3 * math.pi / 2),
    (math.pi / 2, 0.0, False, 3 * math.pi / 2),
    (0.0, 2 * math.pi, False, 2 * math.pi),
    (0.0, 4 * math.pi, False, 2 * math.pi),
    (0.0, -2 * math.pi, True, -2 * math.pi),
    (0.0, 2 * math.pi, True, 0.0),
    (1.0, 1.0, False, 0.0),
])
def test_arc_sweep(start, end, ccw, expected):
    assert geometry.arc_sweep(start, end, ccw) == pytest.approx(expected, abs=1e-12)


def test_is_full_circle():
    assert geometry.is_full_circle(2 * math.pi)
    assert geometry.is_full_circle(-2 * math.pi)
    assert not geometry.is_full_circle(math.pi)


def test_arc_point_y_down():
    """Positive angles go clockwise on screen (towards +Y)."""
    x, y = geometry.arc_point(0, 0, 10, math.pi / 2)
    assert x == pytest.approx(0.0, abs=1e-12)
    assert y == pytest.approx(10.0)


def test_arc_polyline_error_bound():
    """Every chord midpoint lies within max_err of the circle."""
    r, err = 40.0, 0.05
    poly = geometry.arc_polyline(50, 50, r, 0.0, 2 * math.pi, max_err=err)
    assert torch.allclose(poly[0], poly[-1], atol=1e-9)
    mids = (poly[1:] + poly[:-1]) / 2.0
    dist = torch.linalg.norm(mids - as_point(50, 50), dim=1)
    assert float((r - dist).max()) <= err + 1e-9
    assert torch.allclose(torch.linalg.norm(poly - as_point(50, 50), dim=1),
                          torch.full((poly.shape[0],), r, dtype=torch.float64))


def test_arc_polyline_direction():
    poly = geometry.arc_polyline(0, 0, 10, 0.0, -math.pi / 2, max_err=0.1)
    assert torch.allclose(poly[-1], as_point(0, -10), atol=1e-9)
    assert float(poly[1, 1]) < 0.0


def test_arc_polyline_max_points():
    poly = geometry.arc_polyline(0, 0, 1e6, 0.0, math.pi, max_err=1e-3, max_points=64)
    assert poly.shape[0] == 64


def test_arc_polyline_degenerate():
    assert geometry.arc_polyline(5, 5, 0.0, 0.0, math.pi).shape == (1, 2)
    assert geometry.arc_polyline(5, 5, 3.0, 1.0, 0.0).shape == (1, 2)

