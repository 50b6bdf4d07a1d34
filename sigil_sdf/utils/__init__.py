"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Geometry operations: Bézier/arc flattening (geometry)
    - Atomic I/O (fs)
    - Profiling and request deadlines (profiler)
    - Hashing for provenance (hashing)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (vector, raster, sdf, pipeline).

Convenience imports:
    from sigil_sdf.utils import fs, validators
    from sigil_sdf.utils.logging_config import setup_logging, request_context
"""

# Re-export commonly used modules for convenience
from . import fs
from . import geometry
from . import hashing
from . import logging_config
from . import profiler
from . import validators
