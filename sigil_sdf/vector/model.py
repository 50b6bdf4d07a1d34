"""Path model: painted subpaths of geometric segments.

A Path is what the interpreter hands to the rasterizer and the textual
bridge.  Segments reuse the geometric instruction classes, so a subpath is
literally the run of drawing calls that was painted.
"""

from dataclasses import dataclass, field
from typing import Iterator, List

from ..instructions.operations import DRAWING_VERBS, Segment


@dataclass
class Subpath:
    """Ordered segments plus paint flags."""

    segments: List[Segment] = field(default_factory=list)
    stroked: bool = False
    filled: bool = False

    @property
    def painted(self) -> bool:
        return self.stroked or self.filled

    @property
    def has_drawing(self) -> bool:
        """True if any segment puts ink down (not just MoveTo/ClosePath)."""
        return any(isinstance(seg, DRAWING_VERBS) for seg in self.segments)

    def fork(self) -> 'Subpath':
        """Unpainted continuation carrying a copy of the segments so far."""
        return Subpath(segments=list(self.segments))


@dataclass
class Path:
    """Ordered painted subpaths, in paint order."""

    subpaths: List[Subpath] = field(default_factory=list)

    def __iter__(self) -> Iterator[Subpath]:
        return iter(self.subpaths)

    def __len__(self) -> int:
        return len(self.subpaths)

    @property
    def segment_count(self) -> int:
        return sum(len(sp.segments) for sp in self.subpaths)

    @property
    def is_empty(self) -> bool:
        return not any(sp.painted and sp.has_drawing for sp in self.subpaths)
