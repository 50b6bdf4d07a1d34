"""Typed failures for the sigil pipeline.

Every failure the core can report derives from :class:`SigilError` and
carries a ``kind`` tag so callers can tell the four request outcomes apart
without string matching:

    - ``malformed_instruction``: unknown verb or wrong argument shape
    - ``empty_path``: nothing was stroked or filled
    - ``unsupported_geometry``: elliptical arc degraded to a line (non-fatal)
    - ``resource_limit``: instruction/segment/point/pixel/time budget exceeded

Nothing here is retried inside the core.
"""

from typing import Any, Dict, Optional


class SigilError(Exception):
    """Base class for all sigil pipeline failures."""

    kind: str = "sigil_error"

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for logs and metadata files."""
        return {"kind": self.kind, "message": str(self)}


class MalformedInstruction(SigilError, ValueError):
    """An instruction is not one of the defined verbs or has the wrong shape.

    Parameters
    ----------
    reason : str
        Human-readable description of the problem.
    index : int, optional
        Position of the offending entry in the input list (statement index
        for canvas-code input), ``None`` when not applicable.
    """

    kind = "malformed_instruction"

    def __init__(self, reason: str, index: Optional[int] = None) -> None:
        self.reason = reason
        self.index = index
        where = f"instruction {index}: " if index is not None else ""
        super().__init__(f"{where}{reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "index": self.index, "reason": self.reason}


class EmptyPath(SigilError):
    """No subpath ended up stroked or filled with any drawable segment."""

    kind = "empty_path"


class UnsupportedGeometry(SigilError):
    """Geometry that the textual bridge cannot reconstruct exactly.

    Instances are normally *returned* as warnings (elliptical arcs degrade
    to straight lines); they are raised only when the caller asks for
    strict parsing.
    """

    kind = "unsupported_geometry"

    def __init__(self, reason: str, command: str = "", index: Optional[int] = None) -> None:
        self.reason = reason
        self.command = command
        self.index = index
        super().__init__(reason if index is None else f"command {index} ({command}): {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "command": self.command, "index": self.index}


class ResourceLimitExceeded(SigilError):
    """A request exceeded one of its resource budgets.

    Parameters
    ----------
    resource : str
        One of ``instructions``, ``subpaths``, ``segments``, ``points``,
        ``pixels``, ``time``.
    limit : float
        Configured budget.
    actual : float
        Observed value at the time of the abort.
    """

    kind = "resource_limit"

    def __init__(self, resource: str, limit: float, actual: float, stage: str = "") -> None:
        self.resource = resource
        self.limit = limit
        self.actual = actual
        self.stage = stage
        where = f" during {stage}" if stage else ""
        super().__init__(f"{resource} budget exceeded{where}: {actual} > {limit}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "resource": self.resource,
            "limit": self.limit,
            "actual": self.actual,
            "stage": self.stage,
        }


class ConfigError(SigilError, ValueError):
    """Raised when configuration validation fails."""

    kind = "config_error"
