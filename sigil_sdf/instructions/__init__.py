"""Instruction vocabulary and untrusted-input parsers.

Convenience imports:
    from sigil_sdf.instructions import MoveTo, LineTo, Arc, Stroke
    from sigil_sdf.instructions import instructions_from_json, parse_canvas_code
"""

from .canvas_code import parse_canvas_code
from .operations import (
    CONTROL_VERBS,
    DRAWING_VERBS,
    GEOMETRY_VERBS,
    VERB_NAMES,
    Arc,
    BeginPath,
    ClosePath,
    CubicCurve,
    Fill,
    Instruction,
    LineTo,
    MoveTo,
    QuadraticCurve,
    Segment,
    Stroke,
    instruction_from_dict,
    instructions_from_json,
    instructions_from_records,
    instructions_to_records,
)

__all__ = [
    "CONTROL_VERBS", "DRAWING_VERBS", "GEOMETRY_VERBS", "VERB_NAMES",
    "Arc", "BeginPath", "ClosePath", "CubicCurve", "Fill", "Instruction",
    "LineTo", "MoveTo", "QuadraticCurve", "Segment", "Stroke",
    "instruction_from_dict", "instructions_from_json", "instructions_from_records",
    "instructions_to_records", "parse_canvas_code",
]
