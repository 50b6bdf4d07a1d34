"""End-to-end sigil generation: instructions → SDF texture.

Stages (each timed, all under one wall-clock Deadline):
    1. interpret      instruction list → Path (validated up front)
    2. svg bridge     optional: Path → SVG document → Path
    3. rasterize      Path → OccupancyGrid (output size, artwork scale)
    4. distance field OccupancyGrid → DistanceField (bounded, 128-centred)
    5. encode         DistanceField → PNG bytes

Nothing survives a request: every buffer is allocated per call, so a
generator instance can serve concurrent requests from a thread pool.

Usage:
    from sigil_sdf.pipeline import generate_sigil_sdf
    texture = generate_sigil_sdf(instructions, output_width=128, output_height=128)
    open("sigil.png", "wb").write(texture.data)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import MalformedInstruction, SigilError, UnsupportedGeometry
from .instructions.canvas_code import parse_canvas_code
from .instructions.operations import instructions_from_records
from .raster.rasterizer import OccupancyGrid, PathRasterizer
from .raster.surface import OpenCVSurface
from .raster.transform import Transform
from .sdf.distance_field import DistanceField, build_distance_field
from .sdf.encoder import EncodedTexture, encode_preview, encode_texture
from .utils import hashing
from .utils.logging_config import request_context
from .utils.profiler import Deadline, TimerAccumulator, timer
from .utils.validators import SigilConfigV1, make_config
from .vector.interpreter import InstructionInterpreter
from .vector.model import Path
from .vector.svg_path import path_to_svg_document, svg_document_to_path

logger = logging.getLogger(__name__)

PREVIEW_STROKE_WIDTH = 1.0


@dataclass
class GenerationResult:
    """Everything one request produced (texture plus intermediates)."""

    texture: EncodedTexture
    path: Path
    grid: OccupancyGrid
    distance_field: DistanceField
    svg: str
    digest: str
    warnings: List[UnsupportedGeometry] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)


class SigilSDFGenerator:
    """Instruction list → SDF texture under one configuration.

    Parameters
    ----------
    config : SigilConfigV1, optional
        Validated configuration; defaults to SigilConfigV1()
    surface_factory : callable
        Drawing surface factory handed to the rasterizer
    """

    def __init__(self, config: Optional[SigilConfigV1] = None, surface_factory=OpenCVSurface):
        self.config = config if config is not None else SigilConfigV1()
        self.interpreter_limits = self.config.limits
        self.rasterizer = PathRasterizer(
            surface_factory=surface_factory,
            flatten_tolerance_px=self.config.flatten_tolerance_px,
            limits=self.config.limits,
        )

    def transform(self) -> Transform:
        cfg = self.config
        return Transform.from_sizes(
            cfg.canvas_width, cfg.canvas_height, cfg.output_width, cfg.output_height, cfg.artwork_scale,
        )

    def run(self, instructions: Sequence[Any], request_id: Optional[str] = None) -> GenerationResult:
        """Run all stages and keep the intermediates.

        Raises
        ------
        MalformedInstruction, EmptyPath, ResourceLimitExceeded
            Propagated unchanged from the failing stage
        """
        cfg = self.config
        deadline = Deadline(cfg.limits.time_budget_s)
        timings: Dict[str, float] = {}
        digest = _digest(instructions, cfg.limits.max_instructions)
        request_id = request_id or hashing.short(digest)
        count = len(instructions) if isinstance(instructions, (list, tuple)) else 0

        with request_context(request=request_id):
            logger.info(
                f"Generating sigil SDF: {count} instructions, "
                f"{cfg.output_width}x{cfg.output_height}, digest={hashing.short(digest)}"
            )
            with timer("interpret", sink=timings.__setitem__):
                path = InstructionInterpreter(self.interpreter_limits).run(instructions)
            deadline.check("interpret")

            warnings: List[UnsupportedGeometry] = []
            svg = path_to_svg_document(path, cfg.canvas_width, cfg.canvas_height, cfg.stroke_width)
            if cfg.route_via_svg:
                with timer("svg_bridge", sink=timings.__setitem__):
                    path, warnings = svg_document_to_path(svg)
                deadline.check("svg_bridge")

            with timer("rasterize", sink=timings.__setitem__):
                grid = self.rasterizer.rasterize(path, self.transform(), cfg.stroke_width, deadline)
            deadline.check("rasterize")

            with timer("distance_field", sink=timings.__setitem__):
                sdf = build_distance_field(grid, cfg.search_radius, cfg.sdf_method, deadline)
            deadline.check("distance_field")

            with timer("encode", sink=timings.__setitem__):
                texture = encode_texture(sdf, fmt="png", color_mode=cfg.color_mode)

            logger.info(
                f"Sigil SDF done: {len(path)} subpaths, {grid.occupied_count} occupied px, "
                f"{len(texture.data)} bytes in {deadline.elapsed:.3f} s"
            )
        return GenerationResult(
            texture=texture, path=path, grid=grid, distance_field=sdf, svg=svg,
            digest=digest, warnings=warnings, timings=timings,
        )

    def generate(self, instructions: Sequence[Any], request_id: Optional[str] = None) -> EncodedTexture:
        """Instruction list → encoded texture."""
        return self.run(instructions, request_id).texture

    def render_preview(self, instructions: Sequence[Any]) -> bytes:
        """Preview PNG (white strokes, transparent background) of the same path."""
        path = InstructionInterpreter(self.interpreter_limits).run(instructions)
        grid = self.rasterizer.rasterize(path, self.transform(), self.config.stroke_width,
                                         Deadline(self.config.limits.time_budget_s))
        return encode_preview(grid)


def _digest(instructions: Sequence[Any], max_instructions: int) -> str:
    """Digest of the normalized instruction list.

    Records are parsed first so ``[10, 10]`` and ``[10.0, 10.0]`` (or an
    object and its record) give the same request id.  Entries that do not
    parse are hashed as written; the interpreter rejects them right after.
    """
    if not isinstance(instructions, (list, tuple)):
        return hashing.sha256_string(repr(instructions))
    normalized = instructions
    if len(instructions) <= max_instructions:
        try:
            normalized = instructions_from_records(instructions)
        except MalformedInstruction:
            normalized = instructions
    try:
        return hashing.hash_instructions(normalized)
    except (TypeError, ValueError):
        return hashing.sha256_string(repr(list(instructions)))


def _resolve_config(config: Optional[SigilConfigV1], overrides: Dict[str, Any]) -> SigilConfigV1:
    if overrides:
        return make_config(config, **overrides)
    return config if config is not None else SigilConfigV1()


def generate_sigil_sdf(
    instructions: Sequence[Any],
    config: Optional[SigilConfigV1] = None,
    **overrides: Any,
) -> EncodedTexture:
    """Functional entry point.

    Parameters
    ----------
    instructions : Sequence
        Instruction objects or records (see instructions.instruction_from_dict)
    config : SigilConfigV1, optional
        Base configuration
    **overrides
        Config fields to override (output_width=64, artwork_scale=0.5, ...)
    """
    return SigilSDFGenerator(_resolve_config(config, overrides)).generate(instructions)


def generate_from_canvas_code(
    code: str,
    config: Optional[SigilConfigV1] = None,
    **overrides: Any,
) -> EncodedTexture:
    """Parse canvas-call text, then generate."""
    cfg = _resolve_config(config, overrides)
    instructions = parse_canvas_code(code, max_statements=cfg.limits.max_instructions)
    return SigilSDFGenerator(cfg).generate(instructions)


def render_preview_png(
    instructions: Sequence[Any],
    config: Optional[SigilConfigV1] = None,
    **overrides: Any,
) -> bytes:
    """Preview PNG; stroke width defaults to 1 px unless overridden."""
    overrides.setdefault('stroke_width', PREVIEW_STROKE_WIDTH)
    return SigilSDFGenerator(_resolve_config(config, overrides)).render_preview(instructions)


def generate_batch(
    requests: Sequence[Sequence[Any]],
    config: Optional[SigilConfigV1] = None,
    max_workers: Optional[int] = None,
) -> List[Union[EncodedTexture, SigilError]]:
    """Generate many sigils in parallel (no retries).

    Returns
    -------
    list
        In request order: the EncodedTexture, or the SigilError that
        request raised
    """
    generator = SigilSDFGenerator(config)

    def one(item):
        index, instructions = item
        try:
            return generator.run(instructions, request_id=f"batch-{index}")
        except SigilError as e:
            logger.warning(f"Batch request {index} failed: {e.kind}: {e}")
            return e

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        outcomes = list(pool.map(one, enumerate(requests)))

    stage_times = TimerAccumulator()
    for outcome in outcomes:
        if isinstance(outcome, GenerationResult):
            for stage, elapsed in outcome.timings.items():
                stage_times.add(stage, elapsed)
    failed = sum(isinstance(o, SigilError) for o in outcomes)
    means = ', '.join(f"{stage}={s['mean_s'] * 1000:.1f}ms" for stage, s in stage_times.summary().items())
    logger.info(f"Batch done: {len(outcomes) - failed}/{len(outcomes)} succeeded; mean stage times: {means or 'n/a'}")

    return [o.texture if isinstance(o, GenerationResult) else o for o in outcomes]
