"""Sigil instructions -- the closed vocabulary between generator and renderer.

Every drawing action is an immutable, slotted dataclass.  The verb set is
closed: nothing outside these nine classes is ever interpreted, and building
one never evaluates code.  Coordinates are **virtual drawing units** (default
canvas 100 x 100, top-left origin, +Y down), angles are radians.

Grouping
--------
*Geometry* verbs (``MoveTo``, ``LineTo``, ``Arc``, ``QuadraticCurve``,
``CubicCurve``, ``ClosePath``) become path segments.  *Control* verbs
(``BeginPath``, ``Stroke``, ``Fill``) delimit subpaths and mark them painted.

Records
-------
Untrusted input usually arrives as JSON.  Each instruction has a record form
``{"op": "<canvas method name>", "args": [...]}``; keyword fields
(``{"op": "arc", "cx": 50, ...}``) and compact lists
(``["lineTo", 90, 90]``) are accepted as well.
"""

import json
import math
from abc import ABC
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union

import numpy as np

from ..errors import MalformedInstruction

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _coerce_number(owner: str, name: str, value: Any) -> float:
    # bool is an int subclass but never a coordinate
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise MalformedInstruction(f"{owner}.{name} must be a number, got {type(value).__name__}")
    try:
        result = float(value)
    except OverflowError:
        raise MalformedInstruction(f"{owner}.{name} out of range") from None
    if not math.isfinite(result):
        raise MalformedInstruction(f"{owner}.{name} must be finite, got {value!r}")
    return result


def _validate_numbers(instr: 'Instruction') -> None:
    owner = type(instr).__name__
    for f in fields(instr):
        if f.name in instr._flag_fields:
            continue
        object.__setattr__(instr, f.name, _coerce_number(owner, f.name, getattr(instr, f.name)))


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Instruction(ABC):
    """Base class for all sigil instructions."""

    verb: ClassVar[str] = ""
    _flag_fields: ClassVar[Tuple[str, ...]] = ()

    def args(self) -> List[Any]:
        """Positional arguments in canvas-call order."""
        return [getattr(self, f.name) for f in fields(self)]

    def to_record(self) -> Dict[str, Any]:
        """JSON-serializable record form."""
        return {"op": self.verb, "args": self.args()}


# ---------------------------------------------------------------------------
# Geometry verbs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MoveTo(Instruction):
    """Start a new run of segments at ``(x, y)`` without drawing."""

    verb: ClassVar[str] = "moveTo"

    x: float
    y: float

    def __post_init__(self) -> None:
        _validate_numbers(self)


@dataclass(frozen=True, slots=True)
class LineTo(Instruction):
    """Straight segment from the current point to ``(x, y)``."""

    verb: ClassVar[str] = "lineTo"

    x: float
    y: float

    def __post_init__(self) -> None:
        _validate_numbers(self)


@dataclass(frozen=True, slots=True)
class Arc(Instruction):
    """Circular arc (canvas ``arc()`` semantics).

    Parameters
    ----------
    cx, cy : float
        Circle centre.
    r : float
        Radius, must be >= 0.
    start_angle, end_angle : float
        Radians, measured clockwise on screen from +X (since +Y is down).
    counter_clockwise : bool
        Draw direction.  ``end - start >= 2π`` in the drawing direction is
        a full circle.

    Notes
    -----
    If the subpath has a current point, a straight line joins it to the
    arc's start point, exactly as on an HTML canvas.
    """

    verb: ClassVar[str] = "arc"
    _flag_fields: ClassVar[Tuple[str, ...]] = ("counter_clockwise",)

    cx: float
    cy: float
    r: float
    start_angle: float
    end_angle: float
    counter_clockwise: bool = False

    def __post_init__(self) -> None:
        _validate_numbers(self)
        if self.r < 0.0:
            raise MalformedInstruction(f"Arc.r must be >= 0, got {self.r}")
        if not isinstance(self.counter_clockwise, bool):
            raise MalformedInstruction(
                f"Arc.counter_clockwise must be a bool, got {type(self.counter_clockwise).__name__}"
            )


@dataclass(frozen=True, slots=True)
class QuadraticCurve(Instruction):
    """Quadratic Bézier from the current point via ``(cx, cy)`` to ``(x, y)``."""

    verb: ClassVar[str] = "quadraticCurveTo"

    cx: float
    cy: float
    x: float
    y: float

    def __post_init__(self) -> None:
        _validate_numbers(self)


@dataclass(frozen=True, slots=True)
class CubicCurve(Instruction):
    """Cubic Bézier from the current point via two controls to ``(x, y)``."""

    verb: ClassVar[str] = "bezierCurveTo"

    c1x: float
    c1y: float
    c2x: float
    c2y: float
    x: float
    y: float

    def __post_init__(self) -> None:
        _validate_numbers(self)


@dataclass(frozen=True, slots=True)
class ClosePath(Instruction):
    """Line back to the start of the current run; the run restarts there."""

    verb: ClassVar[str] = "closePath"


# ---------------------------------------------------------------------------
# Control verbs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BeginPath(Instruction):
    """Start a new subpath (an unpainted previous one is discarded)."""

    verb: ClassVar[str] = "beginPath"


@dataclass(frozen=True, slots=True)
class Stroke(Instruction):
    """Mark the current subpath as stroked (does not clear it)."""

    verb: ClassVar[str] = "stroke"


@dataclass(frozen=True, slots=True)
class Fill(Instruction):
    """Mark the current subpath as filled (does not clear it)."""

    verb: ClassVar[str] = "fill"


Segment = Union[MoveTo, LineTo, Arc, QuadraticCurve, CubicCurve, ClosePath]
"""Geometric verbs stored inside a subpath."""

GEOMETRY_VERBS: Tuple[Type[Instruction], ...] = (
    MoveTo, LineTo, Arc, QuadraticCurve, CubicCurve, ClosePath,
)
CONTROL_VERBS: Tuple[Type[Instruction], ...] = (BeginPath, Stroke, Fill)
DRAWING_VERBS: Tuple[Type[Instruction], ...] = (LineTo, Arc, QuadraticCurve, CubicCurve)
"""Segments that put ink on the surface (a lone MoveTo/ClosePath draws nothing)."""

VERB_NAMES: Dict[str, Type[Instruction]] = {}
for _cls in GEOMETRY_VERBS + CONTROL_VERBS:
    VERB_NAMES[_cls.verb] = _cls
    VERB_NAMES[_cls.__name__] = _cls
del _cls


# ---------------------------------------------------------------------------
# Record parsing
# ---------------------------------------------------------------------------


def _arity(cls: Type[Instruction]) -> Tuple[int, int]:
    all_fields = fields(cls)
    required = sum(1 for f in all_fields if f.name not in cls._flag_fields)
    return required, len(all_fields)


def _build(cls: Type[Instruction], args: Sequence[Any], kwargs: Mapping[str, Any]) -> Instruction:
    names = [f.name for f in fields(cls)]
    if args and kwargs:
        raise MalformedInstruction(f"{cls.verb}: pass either 'args' or keyword fields, not both")
    if kwargs:
        unknown = sorted(set(kwargs) - set(names))
        if unknown:
            raise MalformedInstruction(f"{cls.verb}: unknown field(s) {unknown}")
        missing = [n for n in names if n not in kwargs and n not in cls._flag_fields]
        if missing:
            raise MalformedInstruction(f"{cls.verb}: missing field(s) {missing}")
        return cls(**kwargs)
    lo, hi = _arity(cls)
    if not lo <= len(args) <= hi:
        expected = str(lo) if lo == hi else f"{lo}-{hi}"
        raise MalformedInstruction(f"{cls.verb} takes {expected} argument(s), got {len(args)}")
    return cls(*args)


def instruction_from_dict(obj: Any, index: Optional[int] = None) -> Instruction:
    """Build one instruction from its record form.

    Parameters
    ----------
    obj : Mapping or Sequence
        ``{"op": verb, "args": [...]}``, ``{"op": verb, <field>: ...}`` or
        ``[verb, *args]``.
    index : int, optional
        Position in the input list, attached to any error.

    Raises
    ------
    MalformedInstruction
        Unknown verb, wrong arity, unknown/missing fields or bad types.
    """
    try:
        if isinstance(obj, Instruction):
            return obj
        if isinstance(obj, Mapping):
            if "op" not in obj:
                raise MalformedInstruction("record has no 'op' key")
            verb = obj["op"]
            args = obj.get("args", [])
            kwargs = {k: v for k, v in obj.items() if k not in ("op", "args")}
            if not isinstance(args, (list, tuple)):
                raise MalformedInstruction(f"'args' must be a list, got {type(args).__name__}")
        elif isinstance(obj, (list, tuple)) and obj and isinstance(obj[0], str):
            verb, args, kwargs = obj[0], list(obj[1:]), {}
        else:
            raise MalformedInstruction(f"unrecognized instruction entry of type {type(obj).__name__}")

        if not isinstance(verb, str) or verb not in VERB_NAMES:
            raise MalformedInstruction(f"unknown verb {verb!r}")
        return _build(VERB_NAMES[verb], args, kwargs)
    except MalformedInstruction as e:
        if index is not None and e.index is None:
            raise MalformedInstruction(e.reason, index=index) from None
        raise
    except (TypeError, OverflowError) as e:
        raise MalformedInstruction(str(e), index=index) from e


def instructions_from_records(records: Any) -> List[Instruction]:
    """Parse an ordered list of records (see instruction_from_dict)."""
    if not isinstance(records, (list, tuple)):
        raise MalformedInstruction(f"instruction list must be a list, got {type(records).__name__}")
    return [instruction_from_dict(rec, index=i) for i, rec in enumerate(records)]


def instructions_from_json(text: str) -> List[Instruction]:
    """Parse a JSON array of records."""
    try:
        records = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInstruction(f"invalid JSON: {e}") from e
    return instructions_from_records(records)


def instructions_to_records(instructions: Sequence[Instruction]) -> List[Dict[str, Any]]:
    """Record form of a list of instructions (JSON-serializable)."""
    return [instr.to_record() for instr in instructions]
