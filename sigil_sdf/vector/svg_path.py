"""Textual path bridge: Path ⇄ SVG path data (``d`` strings) and documents.

Serializer
----------
Segments map to ``M L A Q C Z`` commands.  Numbers are written exactly
(``repr`` for non-integers), so move/line/quadratic/cubic/close round-trip
bit for bit.  Arcs are converted from centre form to SVG endpoint form:

    - sweep angle follows canvas rules (see utils.geometry.arc_sweep)
    - large-arc = 1 if |sweep| > π
    - sweep flag = 1 for clockwise (positive-angle) arcs, 0 otherwise
    - a full circle becomes two half-circle arcs through the opposite point
    - the arc is joined to its start with ``M`` (no current point) or ``L``
      (current point elsewhere), matching the canvas implicit line

Deserializer
------------
Path data is parsed with svgpathtools (absolute and relative commands,
implicit repetition, separators, exponents), one moveto run at a time so
movetos and closes survive.  Only ``M L A Q C Z`` are accepted and arc
flags read as booleans.  Circular arcs (|rx − ry| < 0.01) are reconstructed to centre form with the SVG endpoint convention: centre
offset ``h = sqrt(r² − (chord/2)²)`` on the side given by
``large_arc != sweep``; a radius smaller than chord/2 is scaled up.
Elliptical arcs degrade to a straight line between endpoints and are
reported as UnsupportedGeometry records (raised when ``strict=True``).

Documents
---------
path_to_svg_document() writes one ``<path>`` per painted subpath with
fill/stroke attributes from its flags; svg_document_to_path() reads them
back (SVG defaults: fill black, stroke none).
"""

import logging
import math
import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

import svgpathtools

from ..errors import MalformedInstruction, UnsupportedGeometry
from ..instructions.operations import (
    Arc,
    ClosePath,
    CubicCurve,
    LineTo,
    MoveTo,
    QuadraticCurve,
    Segment,
)
from ..utils import geometry
from .model import Path, Subpath

logger = logging.getLogger(__name__)

CIRCULAR_TOLERANCE = 0.01   # |rx - ry| below this is a circle
MIN_ARC_CHORD = 0.01        # shorter arcs are dropped
_SAME_POINT_EPS = 1e-9

_ALLOWED_RE = re.compile(r'[MmLlAaQqCcZz0-9eE.,+\-\s]*\Z')
_RUN_SPLIT_RE = re.compile(r'(?=[Mm])|(?<=[Zz])')
_COMMAND_LETTERS = 'MmLlAaQqCcZz'

Point = Tuple[float, float]


# ============================================================================
# SERIALIZER
# ============================================================================

def format_number(v: float) -> str:
    """Shortest exact text for a float ('10' rather than '10.0')."""
    v = float(v)
    if v.is_integer() and abs(v) < 1e15:
        return str(int(v))
    return repr(v)


def _cmd(letter: str, *values: float) -> str:
    return ' '.join([letter, *(format_number(v) for v in values)])


def _differs(a: Optional[Point], b: Point) -> bool:
    return a is None or math.hypot(a[0] - b[0], a[1] - b[1]) > _SAME_POINT_EPS


def arc_to_d(arc: Arc, current: Optional[Point] = None) -> Tuple[str, Point]:
    """Serialize one canvas arc.

    Parameters
    ----------
    arc : Arc
        Arc in centre form
    current : Optional[Point]
        Current point before the arc, None if the subpath has none

    Returns
    -------
    Tuple[str, Point]
        Command text (may include the joining M/L) and the new current point
    """
    sweep = geometry.arc_sweep(arc.start_angle, arc.end_angle, arc.counter_clockwise)
    start = geometry.arc_point(arc.cx, arc.cy, arc.r, arc.start_angle)
    end = geometry.arc_point(arc.cx, arc.cy, arc.r, arc.start_angle + sweep)

    parts = []
    if current is None:
        parts.append(_cmd('M', *start))
    elif _differs(current, start):
        parts.append(_cmd('L', *start))

    if arc.r == 0.0 or sweep == 0.0:
        return ' '.join(parts), start

    sweep_flag = 1 if sweep > 0 else 0
    if geometry.is_full_circle(sweep):
        opposite = geometry.arc_point(arc.cx, arc.cy, arc.r, arc.start_angle + math.copysign(math.pi, sweep))
        parts.append(_cmd('A', arc.r, arc.r, 0, 1, sweep_flag, *opposite))
        parts.append(_cmd('A', arc.r, arc.r, 0, 1, sweep_flag, *start))
        return ' '.join(parts), start

    if not _differs(start, end):
        return ' '.join(parts), start

    large_arc = 1 if abs(sweep) > math.pi else 0
    parts.append(_cmd('A', arc.r, arc.r, 0, large_arc, sweep_flag, *end))
    return ' '.join(parts), end


def subpath_to_d(subpath: Subpath) -> str:
    """Serialize one subpath's segments to SVG path data."""
    parts: List[str] = []
    current: Optional[Point] = None
    start: Optional[Point] = None

    for seg in subpath.segments:
        if isinstance(seg, MoveTo):
            parts.append(_cmd('M', seg.x, seg.y))
            current = start = (seg.x, seg.y)
        elif isinstance(seg, LineTo):
            # Canvas: lineTo without a current point only sets it
            parts.append(_cmd('L' if current is not None else 'M', seg.x, seg.y))
            if current is None:
                start = (seg.x, seg.y)
            current = (seg.x, seg.y)
        elif isinstance(seg, Arc):
            text, current = arc_to_d(seg, current)
            if text.startswith('M'):
                start = geometry.arc_point(seg.cx, seg.cy, seg.r, seg.start_angle)
            if text:
                parts.append(text)
        elif isinstance(seg, QuadraticCurve):
            if current is None:
                parts.append(_cmd('M', seg.cx, seg.cy))
                start = (seg.cx, seg.cy)
            parts.append(_cmd('Q', seg.cx, seg.cy, seg.x, seg.y))
            current = (seg.x, seg.y)
        elif isinstance(seg, CubicCurve):
            if current is None:
                parts.append(_cmd('M', seg.c1x, seg.c1y))
                start = (seg.c1x, seg.c1y)
            parts.append(_cmd('C', seg.c1x, seg.c1y, seg.c2x, seg.c2y, seg.x, seg.y))
            current = (seg.x, seg.y)
        elif isinstance(seg, ClosePath):
            if current is not None:
                parts.append('Z')
                current = start
    return ' '.join(parts)


def path_to_d(path: Path) -> str:
    """All subpaths as one path-data string (paint flags are not kept)."""
    return ' '.join(d for d in (subpath_to_d(sp) for sp in path) if d)


def path_to_svg_document(path: Path, width: float = 100.0, height: float = 100.0,
                         stroke_width: float = 1.0) -> str:
    """Standalone SVG document, one ``<path>`` per subpath."""
    w, h = format_number(width), format_number(height)
    lines = [f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">']
    for sp in path:
        fill = 'black' if sp.filled else 'none'
        stroke = 'black' if sp.stroked else 'none'
        lines.append(
            f'  <path d="{subpath_to_d(sp)}" fill="{fill}" stroke="{stroke}" '
            f'stroke-width="{format_number(stroke_width)}" stroke-linecap="round" stroke-linejoin="round"/>'
        )
    lines.append('</svg>')
    return '\n'.join(lines) + '\n'


# ============================================================================
# DESERIALIZER
# ============================================================================

def _point(z: complex) -> Point:
    return (z.real, z.imag)


def split_runs(d: str) -> List[Tuple[str, bool]]:
    """Split path data into (body, closes) pieces at each moveto and after each Z.

    Each body is handed to svgpathtools separately so a moveto and a close
    survive as MoveTo/ClosePath instead of being folded into lines.
    """
    if not _ALLOWED_RE.match(d):
        bad = next(ch for ch in d if not _ALLOWED_RE.match(ch))
        raise MalformedInstruction(f"unexpected character {bad!r} in path data")
    runs = []
    for piece in _RUN_SPLIT_RE.split(d):
        piece = piece.strip()
        if not piece:
            continue
        closes = piece[-1] in 'Zz'
        body = piece[:-1].strip() if closes else piece
        runs.append((body, closes))
    return runs


def _parse_body(body: str, current: Point) -> svgpathtools.Path:
    try:
        return svgpathtools.parse_path(body, current_pos=complex(*current))
    except (ValueError, IndexError, AssertionError, ZeroDivisionError) as e:
        raise MalformedInstruction(f"bad path data {body!r}: {e}") from e


def _move_point(body: str, current: Point) -> Point:
    """Position of a bare moveto (svgpathtools keeps no segment for it)."""
    return _point(_parse_body(body + ' l 0 0', current)[0].start)


def _arc_from_endpoints(
    p0: Point, rx: float, ry: float, large_arc: int, sweep_flag: int, p1: Point,
) -> Optional[Arc]:
    """Centre-form arc for a circular SVG arc; None if the chord is too short."""
    chord = math.hypot(p1[0] - p0[0], p1[1] - p0[1])
    if chord <= MIN_ARC_CHORD:
        return None
    half = chord / 2.0
    r = max(abs(rx), half)
    h = math.sqrt(max(0.0, r * r - half * half))
    sign = 1.0 if large_arc != sweep_flag else -1.0
    mx, my = (p0[0] + p1[0]) / 2.0, (p0[1] + p1[1]) / 2.0
    cx = mx + sign * h * (p0[1] - p1[1]) / chord
    cy = my + sign * h * (p1[0] - p0[0]) / chord
    return Arc(
        cx, cy, r,
        math.atan2(p0[1] - cy, p0[0] - cx),
        math.atan2(p1[1] - cy, p1[0] - cx),
        counter_clockwise=(sweep_flag == 0),
    )


def _convert_segment(seg, index: int, strict: bool, warnings: List[UnsupportedGeometry]) -> Optional[Segment]:
    if isinstance(seg, svgpathtools.Line):
        return LineTo(*_point(seg.end))
    if isinstance(seg, svgpathtools.QuadraticBezier):
        return QuadraticCurve(*_point(seg.control), *_point(seg.end))
    if isinstance(seg, svgpathtools.CubicBezier):
        return CubicCurve(*_point(seg.control1), *_point(seg.control2), *_point(seg.end))
    if isinstance(seg, svgpathtools.Arc):
        rx, ry = seg.radius.real, seg.radius.imag
        if abs(rx - ry) >= CIRCULAR_TOLERANCE:
            record = UnsupportedGeometry(
                f"elliptical arc rx={rx} ry={ry} approximated by a line", command='A', index=index)
            if strict:
                raise record
            logger.warning(str(record))
            warnings.append(record)
            return LineTo(*_point(seg.end))
        large_arc, sweep_flag = int(bool(seg.large_arc)), int(bool(seg.sweep))
        return _arc_from_endpoints(_point(seg.start), rx, ry, large_arc, sweep_flag, _point(seg.end))
    raise MalformedInstruction(f"unsupported path command for segment {type(seg).__name__}", index=index)


def d_to_subpath(
    d: str, stroked: bool = True, filled: bool = False, strict: bool = False,
) -> Tuple[Subpath, List[UnsupportedGeometry]]:
    """Parse path data into a Subpath.

    Parameters
    ----------
    d : str
        SVG path data
    stroked, filled : bool
        Flags for the returned subpath
    strict : bool
        Raise UnsupportedGeometry instead of degrading elliptical arcs

    Returns
    -------
    Tuple[Subpath, List[UnsupportedGeometry]]
        The subpath and one record per degraded command

    Raises
    ------
    MalformedInstruction
        Bad characters, wrong parameter counts, degenerate arcs, or data
        not starting with a moveto
    """
    segments: List[Segment] = []
    warnings: List[UnsupportedGeometry] = []
    current: Optional[Point] = None
    start: Optional[Point] = None
    index = 0

    for body, closes in split_runs(d):
        if body:
            if body[0] in 'Mm':
                parsed = _parse_body(body, current or (0.0, 0.0))
                start = _point(parsed[0].start) if len(parsed) else _move_point(body, current or (0.0, 0.0))
                segments.append(MoveTo(*start))
                current = start
            elif current is None:
                raise MalformedInstruction(f"path data must start with M, got {body[:20]!r}")
            elif body[0] not in _COMMAND_LETTERS:
                raise MalformedInstruction(f"unexpected number after Z in {body[:20]!r}")
            else:
                parsed = _parse_body(body, current)

            for seg in parsed:
                converted = _convert_segment(seg, index, strict, warnings)
                index += 1
                if converted is not None:
                    segments.append(converted)
                current = _point(seg.end)

        if closes:
            if current is None:
                raise MalformedInstruction("path data must start with M, got 'Z'")
            segments.append(ClosePath())
            current = start

    return Subpath(segments=segments, stroked=stroked, filled=filled), warnings


def d_to_path(
    d: str, stroked: bool = True, filled: bool = False, strict: bool = False,
) -> Tuple[Path, List[UnsupportedGeometry]]:
    """Parse path data into a single-subpath Path."""
    subpath, warnings = d_to_subpath(d, stroked=stroked, filled=filled, strict=strict)
    return Path(subpaths=[subpath]), warnings


def _parse_svg(svg: str) -> ET.Element:
    try:
        return ET.fromstring(svg)
    except ET.ParseError as e:
        raise MalformedInstruction(f"invalid SVG document: {e}") from e


def _path_elements(root: ET.Element) -> List[ET.Element]:
    return [el for el in root.iter() if el.tag.rsplit('}', 1)[-1] == 'path']


def extract_path_data(svg: str) -> List[str]:
    """``d`` attributes of every ``<path>`` element, in document order."""
    return [el.get('d', '') for el in _path_elements(_parse_svg(svg))]


def svg_document_to_path(svg: str, strict: bool = False) -> Tuple[Path, List[UnsupportedGeometry]]:
    """Rebuild a Path from an SVG document.

    Paint flags come from each element's ``fill``/``stroke`` attributes
    (SVG defaults: fill black, stroke none).  Elements painted with neither
    are dropped.
    """
    subpaths: List[Subpath] = []
    warnings: List[UnsupportedGeometry] = []
    for el in _path_elements(_parse_svg(svg)):
        filled = el.get('fill', 'black').strip().lower() != 'none'
        stroked = el.get('stroke', 'none').strip().lower() != 'none'
        if not (filled or stroked):
            continue
        subpath, sp_warnings = d_to_subpath(el.get('d', ''), stroked=stroked, filled=filled, strict=strict)
        subpaths.append(subpath)
        warnings.extend(sp_warnings)
    return Path(subpaths=subpaths), warnings
