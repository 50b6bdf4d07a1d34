"""Geometric operations for sigil paths.

Provides:
    - Cubic Bézier adaptive flattening
    - Quadratic → cubic degree elevation (exact)
    - Canvas arc semantics: sweep angle from start/end/direction, endpoints
    - Circular arc sampling with a chord-error bound

Used by:
    - Rasterizer: segments → polylines before drawing on the surface
    - Path serializer: arc endpoint math for the textual bridge
    - Tests: analytic checks on curves and arcs

All coordinates are virtual drawing units unless explicitly noted as pixels.
Callers convert a pixel tolerance to virtual units (tol_px / final_scale)
before flattening, so curve fidelity follows the output resolution.

Tensors are float64 on CPU; results are deterministic across runs.
"""

import math
from typing import Tuple

import torch

TWO_PI = 2.0 * math.pi

# |end - start| within this of a full turn counts as a full circle
FULL_CIRCLE_EPS = 1e-3

_DTYPE = torch.float64


def as_point(x: float, y: float) -> torch.Tensor:
    """(x, y) → float64 tensor of shape (2,)."""
    return torch.tensor([float(x), float(y)], dtype=_DTYPE)


def bezier_cubic_polyline(
    p1: torch.Tensor,
    p2: torch.Tensor,
    p3: torch.Tensor,
    p4: torch.Tensor,
    max_err: float = 0.1,
    max_depth: int = 10
) -> torch.Tensor:
    """Flatten cubic Bézier to polyline via adaptive subdivision.

    Parameters
    ----------
    p1, p2, p3, p4 : torch.Tensor
        Control points, shape (2,)
    max_err : float
        Maximum allowed deviation (virtual units), default 0.1
    max_depth : int
        Maximum recursion depth, default 10 (≤ 1025 vertices)

    Returns
    -------
    torch.Tensor
        Polyline vertices, shape (N, 2), N ≥ 2, first = p1, last = p4

    Notes
    -----
    Flatness criterion: distance from the inner control points to the chord.
    Degenerate chords (p1 == p4) fall back to distance from p1.
    """
    def subdivide(q1, q2, q3, q4, depth):
        if depth >= max_depth:
            return torch.stack([q1, q4], dim=0)

        chord = q4 - q1
        chord_len = float(torch.linalg.norm(chord))
        v2 = q2 - q1
        v3 = q3 - q1
        if chord_len < 1e-12:
            d = max(float(torch.linalg.norm(v2)), float(torch.linalg.norm(v3)))
        else:
            d2 = abs(float(v2[0] * chord[1] - v2[1] * chord[0])) / chord_len
            d3 = abs(float(v3[0] * chord[1] - v3[1] * chord[0])) / chord_len
            d = max(d2, d3)

        if d <= max_err:
            return torch.stack([q1, q4], dim=0)

        # De Casteljau subdivision at t=0.5
        q12 = (q1 + q2) / 2.0
        q23 = (q2 + q3) / 2.0
        q34 = (q3 + q4) / 2.0
        q123 = (q12 + q23) / 2.0
        q234 = (q23 + q34) / 2.0
        q1234 = (q123 + q234) / 2.0

        left = subdivide(q1, q12, q123, q1234, depth + 1)
        right = subdivide(q1234, q234, q34, q4, depth + 1)
        return torch.cat([left[:-1], right], dim=0)

    return subdivide(p1, p2, p3, p4, depth=0)


def quadratic_to_cubic(
    p0: torch.Tensor,
    c: torch.Tensor,
    p: torch.Tensor
) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor]:
    """Exact degree elevation of a quadratic Bézier.

    Returns
    -------
    tuple
        (p0, p0 + 2/3 (c - p0), p + 2/3 (c - p), p)
    """
    return p0, p0 + (2.0 / 3.0) * (c - p0), p + (2.0 / 3.0) * (c - p), p


def arc_point(cx: float, cy: float, r: float, angle: float) -> Tuple[float, float]:
    """Point on the circle at ``angle`` (radians, canvas convention, +Y down)."""
    return (cx + r * math.cos(angle), cy + r * math.sin(angle))


def arc_sweep(start_angle: float, end_angle: float, counter_clockwise: bool = False) -> float:
    """Signed swept angle of a canvas ``arc()`` call.

    Parameters
    ----------
    start_angle, end_angle : float
        Angles in radians
    counter_clockwise : bool
        Canvas ``anticlockwise`` argument

    Returns
    -------
    float
        Positive (clockwise on screen) or negative sweep in radians,
        magnitude in [0, 2π]

    Notes
    -----
    Follows the HTML canvas rules: a difference of at least 2π in the
    drawing direction is a full circle, otherwise the difference is
    reduced modulo 2π.
    """
    if not counter_clockwise:
        diff = end_angle - start_angle
        if diff >= TWO_PI - FULL_CIRCLE_EPS:
            return TWO_PI
        return math.fmod(diff, TWO_PI) % TWO_PI
    diff = start_angle - end_angle
    if diff >= TWO_PI - FULL_CIRCLE_EPS:
        return -TWO_PI
    return -(math.fmod(diff, TWO_PI) % TWO_PI)


def is_full_circle(sweep: float) -> bool:
    """True if a sweep angle covers the whole circle."""
    return abs(abs(sweep) - TWO_PI) < FULL_CIRCLE_EPS


def arc_polyline(
    cx: float,
    cy: float,
    r: float,
    start_angle: float,
    sweep: float,
    max_err: float = 0.1,
    max_points: int = 4096
) -> torch.Tensor:
    """Sample a circular arc into a polyline.

    Parameters
    ----------
    cx, cy, r : float
        Circle center and radius (virtual units)
    start_angle : float
        Start angle (radians)
    sweep : float
        Signed sweep from arc_sweep()
    max_err : float
        Maximum chord deviation (virtual units)
    max_points : int
        Cap on the number of vertices (huge radii)

    Returns
    -------
    torch.Tensor
        Vertices, shape (N, 2), N ≥ 2 (N = 1 for zero radius or sweep)
    """
    if r <= 0.0 or sweep == 0.0:
        return as_point(*arc_point(cx, cy, r, start_angle)).unsqueeze(0)

    # Chord error r(1 - cos(θ/2)) ≤ max_err
    ratio = min(1.0, max_err / r)
    step = 2.0 * math.acos(1.0 - ratio) if ratio < 1.0 else math.pi / 2.0
    step = max(step, 1e-6)
    n_seg = int(math.ceil(abs(sweep) / step))
    n_seg = max(1, min(n_seg, max_points - 1))

    angles = start_angle + torch.linspace(0.0, 1.0, n_seg + 1, dtype=_DTYPE) * sweep
    return torch.stack([cx + r * torch.cos(angles), cy + r * torch.sin(angles)], dim=-1)
