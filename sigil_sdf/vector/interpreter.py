"""Instruction interpreter: closed verb list → Path.

A small state machine over the instruction vocabulary.  It only builds
data: no verb triggers computation beyond bookkeeping, and the whole input
is validated before the first subpath is created, so a malformed request
never reaches geometry work.

Semantics (canvas-compatible):
    - BeginPath starts a new subpath; an unpainted previous one is dropped
    - Geometry before any BeginPath opens an implicit subpath
    - Stroke / Fill mark the current subpath and do not clear it
    - Geometry after a paint forks: the fork carries the painted segments
      plus the new ones, so a later paint covers the accumulated drawing
    - Unpainted subpaths are dropped at the end

Usage:
    from sigil_sdf.vector.interpreter import interpret
    path = interpret([BeginPath(), MoveTo(10, 10), LineTo(90, 90), Stroke()])
"""

import logging
from typing import Any, List, Optional, Sequence

from ..errors import EmptyPath, MalformedInstruction, ResourceLimitExceeded
from ..instructions.operations import (
    BeginPath,
    Fill,
    GEOMETRY_VERBS,
    Instruction,
    Stroke,
    instruction_from_dict,
)
from ..utils.validators import LimitsV1
from .model import Path, Subpath

logger = logging.getLogger(__name__)


class InstructionInterpreter:
    """Builds a Path from an instruction list.

    Parameters
    ----------
    limits : LimitsV1, optional
        Budgets for instruction, subpath and segment counts and the
        coordinate range; defaults to LimitsV1()

    Attributes
    ----------
    subpaths : List[Subpath]
        Painted subpaths completed so far (reset by run())
    current : Optional[Subpath]
        Subpath receiving geometry
    segment_count : int
        Segments stored across all subpaths, forks included
    """

    def __init__(self, limits: Optional[LimitsV1] = None):
        self.limits = limits if limits is not None else LimitsV1()
        self.subpaths: List[Subpath] = []
        self.current: Optional[Subpath] = None
        self.segment_count: int = 0

    def validate(self, instructions: Sequence[Any]) -> List[Instruction]:
        """Check every entry and return them as Instruction objects.

        Raises
        ------
        ResourceLimitExceeded
            More than limits.max_instructions entries
        MalformedInstruction
            Unknown verb, bad arity/type, or a coordinate outside
            ±limits.max_abs_coordinate (``index`` = entry position)
        """
        if not isinstance(instructions, (list, tuple)):
            raise MalformedInstruction(
                f"instruction list must be a list, got {type(instructions).__name__}")
        if len(instructions) > self.limits.max_instructions:
            raise ResourceLimitExceeded(
                "instructions", self.limits.max_instructions, len(instructions), stage="interpret")

        bound = self.limits.max_abs_coordinate
        validated = []
        for i, entry in enumerate(instructions):
            instr = instruction_from_dict(entry, index=i)
            for value in instr.args():
                if isinstance(value, float) and abs(value) > bound:
                    raise MalformedInstruction(
                        f"{instr.verb}: coordinate {value} outside ±{bound}", index=i)
            validated.append(instr)
        return validated

    def _finish_current(self) -> None:
        if self.current is not None and self.current.painted:
            self.subpaths.append(self.current)
        self.current = None

    def _open(self, subpath: Subpath) -> None:
        if len(self.subpaths) + 1 > self.limits.max_subpaths:
            raise ResourceLimitExceeded(
                "subpaths", self.limits.max_subpaths, len(self.subpaths) + 1, stage="interpret")
        self.current = subpath

    def _add_segments(self, count: int) -> None:
        self.segment_count += count
        if self.segment_count > self.limits.max_segments:
            raise ResourceLimitExceeded(
                "segments", self.limits.max_segments, self.segment_count, stage="interpret")

    def step(self, instr: Instruction) -> None:
        """Apply one validated instruction to the interpreter state."""
        if isinstance(instr, BeginPath):
            self._finish_current()
            self._open(Subpath())
        elif isinstance(instr, (Stroke, Fill)):
            if self.current is None:
                # Painting an empty canvas path draws nothing
                return
            if isinstance(instr, Stroke):
                self.current.stroked = True
            else:
                self.current.filled = True
        elif isinstance(instr, GEOMETRY_VERBS):
            if self.current is None:
                self._open(Subpath())
            elif self.current.painted:
                fork = self.current.fork()
                self._finish_current()
                self._open(fork)
                self._add_segments(len(fork.segments))
            self.current.segments.append(instr)
            self._add_segments(1)
        else:  # pragma: no cover - validate() only yields known verbs
            raise MalformedInstruction(f"unhandled instruction {type(instr).__name__}")

    def run(self, instructions: Sequence[Any]) -> Path:
        """Validate, then interpret the whole list.

        Returns
        -------
        Path
            Painted subpaths that contain at least one drawing segment

        Raises
        ------
        MalformedInstruction, ResourceLimitExceeded
            See validate() and the subpath/segment budgets
        EmptyPath
            Nothing drawable was stroked or filled
        """
        validated = self.validate(instructions)

        self.subpaths = []
        self.current = None
        self.segment_count = 0
        for instr in validated:
            self.step(instr)
        self._finish_current()

        kept = [sp for sp in self.subpaths if sp.has_drawing]
        dropped = len(self.subpaths) - len(kept)
        if not kept:
            raise EmptyPath(f"no stroked or filled geometry in {len(validated)} instructions")

        logger.debug(
            f"Interpreted {len(validated)} instructions → {len(kept)} subpaths, "
            f"{sum(len(sp.segments) for sp in kept)} segments ({dropped} painted without geometry dropped)"
        )
        return Path(subpaths=kept)


def interpret(instructions: Sequence[Any], limits: Optional[LimitsV1] = None) -> Path:
    """Functional wrapper around InstructionInterpreter.run()."""
    return InstructionInterpreter(limits).run(instructions)
