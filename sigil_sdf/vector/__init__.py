"""Vector layer: Path model, instruction interpreter, textual path bridge."""

from .interpreter import InstructionInterpreter, interpret
from .model import Path, Subpath
from .svg_path import (
    arc_to_d,
    d_to_path,
    d_to_subpath,
    extract_path_data,
    path_to_d,
    path_to_svg_document,
    subpath_to_d,
    svg_document_to_path,
)

__all__ = [
    "InstructionInterpreter", "interpret", "Path", "Subpath",
    "arc_to_d", "d_to_path", "d_to_subpath", "extract_path_data", "path_to_d",
    "path_to_svg_document", "subpath_to_d", "svg_document_to_path",
]
