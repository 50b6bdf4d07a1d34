"""Configuration schema validation and loading.

Provides centralized validation for the pipeline configuration using pydantic:
    - Render settings (sigil_sdf.v1.yaml): output/canvas size, stroke width,
      artwork scale, SDF search radius and builder, encoder color mode
    - Resource limits: instruction/subpath/segment/point/pixel/time budgets

All entry points build their config through these validators for fail-fast
error detection with actionable messages (offending key, expected range).

Units:
    - output_*: pixels
    - canvas_*: virtual drawing units (instructions are authored in these)
    - stroke_width: output pixels (not scaled by artwork_scale)
    - search_radius: output pixels

Usage:
    from sigil_sdf.utils import validators

    cfg = validators.load_sigil_config("configs/sigil_sdf.v1.yaml")
    cfg = validators.make_config(cfg, output_width=64, output_height=64)
"""

from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigError
from . import fs

SCHEMA_VERSION = "sigil_sdf.v1"


# ============================================================================
# LIMITS
# ============================================================================

class LimitsV1(BaseModel):
    """Per-request resource budgets (instructions come from an untrusted generator)."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    max_instructions: int = Field(2000, ge=1, description="Max instruction entries per request")
    max_subpaths: int = Field(256, ge=1, description="Max painted + open subpaths")
    max_segments: int = Field(4096, ge=1, description="Max geometric segments (all subpaths)")
    max_points: int = Field(200_000, ge=16, description="Max flattened polyline points")
    max_output_pixels: int = Field(4_194_304, ge=1, description="Max output_width * output_height")
    max_abs_coordinate: float = Field(1e6, gt=0.0, description="Max |coordinate| in virtual units")
    time_budget_s: float = Field(10.0, gt=0.0, description="Wall-clock budget for one request (s)")


# ============================================================================
# RENDER CONFIG V1
# ============================================================================

class SigilConfigV1(BaseModel):
    """Pipeline configuration (sigil_sdf.v1.yaml schema).

    Defaults reproduce the production setting: 256×256 output from a
    100×100 virtual canvas, 2 px strokes, 32 px search radius.
    """
    model_config = ConfigDict(extra='forbid', frozen=True, populate_by_name=True)

    schema_version: str = Field(SCHEMA_VERSION, alias="schema", description="Schema version")
    output_width: int = Field(256, ge=1, le=8192, description="Texture width (px)")
    output_height: int = Field(256, ge=1, le=8192, description="Texture height (px)")
    canvas_width: float = Field(100.0, gt=0.0, description="Virtual drawing width")
    canvas_height: float = Field(100.0, gt=0.0, description="Virtual drawing height")
    stroke_width: float = Field(2.0, gt=0.0, le=64.0, description="Stroke width (output px)")
    artwork_scale: float = Field(1.0, gt=0.0, le=4.0, description="Artwork scale inside the output")
    search_radius: int = Field(32, ge=1, le=256, description="SDF search radius (px)")
    sdf_method: Literal["edt", "bounded_search"] = Field("edt", description="Distance field builder")
    flatten_tolerance_px: float = Field(0.25, gt=0.0, le=4.0, description="Curve flattening error (px)")
    color_mode: Literal["RGBA", "L"] = Field("RGBA", description="PNG channel layout")
    route_via_svg: bool = Field(False, description="Rebuild the path from its SVG text before rasterizing")
    limits: LimitsV1 = Field(default_factory=LimitsV1)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != SCHEMA_VERSION:
            raise ValueError(f"Expected schema '{SCHEMA_VERSION}', got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_pixel_budget(self) -> 'SigilConfigV1':
        """Reject output sizes beyond the pixel budget before any allocation."""
        pixels = self.output_width * self.output_height
        if pixels > self.limits.max_output_pixels:
            raise ValueError(
                f"Output {self.output_width}x{self.output_height} = {pixels} px exceeds "
                f"limits.max_output_pixels={self.limits.max_output_pixels}"
            )
        return self

    @property
    def output_size(self) -> tuple:
        """(width, height) in pixels."""
        return (self.output_width, self.output_height)


# ============================================================================
# LOADERS
# ============================================================================

def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = '.'.join(str(p) for p in err.get('loc', ())) or '<root>'
        parts.append(f"{loc}: {err.get('msg')}")
    return '; '.join(parts)


def validate_config(data: Dict[str, Any], source: str = "<dict>") -> SigilConfigV1:
    """Validate a raw config mapping.

    Raises
    ------
    ConfigError
        With one "key: message" entry per offending field
    """
    try:
        return SigilConfigV1.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid sigil config ({source}): {_format_validation_error(e)}") from e


def load_sigil_config(path: Union[str, Path]) -> SigilConfigV1:
    """Load and validate a sigil_sdf.v1 YAML config.

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    ConfigError
        If a key is unknown or a value is out of range
    """
    data = fs.load_yaml(path)
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")
    return validate_config(data, source=str(path))


def make_config(base: Optional[SigilConfigV1] = None, **overrides: Any) -> SigilConfigV1:
    """Return ``base`` (or the defaults) with ``overrides`` applied and re-validated.

    ``limits`` may be passed as a partial mapping; it is merged over the
    base limits rather than replacing them.
    """
    data = base.model_dump(by_alias=True) if base is not None else {}
    limits_override = overrides.pop('limits', None)
    data.update({k: v for k, v in overrides.items() if v is not None})
    if limits_override:
        if isinstance(limits_override, LimitsV1):
            limits_override = limits_override.model_dump()
        data['limits'] = {**data.get('limits', {}), **limits_override}
    return validate_config(data, source="overrides")
