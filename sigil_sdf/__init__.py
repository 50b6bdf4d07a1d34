"""Sigil SDF: drawing instructions to signed-distance-field textures.

This package turns a short, externally generated list of vector drawing
instructions (a "sigil") into a grayscale distance-field texture that a
front-end can render as a crisp outline at any scale.

Architecture layers (strict one-way dependency):
    scripts/ → sigil_sdf/pipeline.py → sigil_sdf/{sdf,raster}/ → sigil_sdf/vector/
             → sigil_sdf/instructions/ → sigil_sdf/{errors,utils}

Key invariants:
    - Instructions are data, never code: a closed verb set, validated up front
    - Output dimensions always equal the requested output size
    - Field bytes in [0, 255], 128 = path boundary
    - Deterministic: same instructions + config → byte-identical PNG
    - No state survives a request (every buffer is allocated per call)
"""

__version__ = "1.0.0"
