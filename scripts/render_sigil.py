#!/usr/bin/env python3
"""Render a sigil to an SDF texture from the command line.

Usage:
    # From a JSON/YAML instruction list
    python scripts/render_sigil.py --instructions sigil.json --output_dir outputs/sigil

    # From generator canvas-call text, at 128x128 with a preview
    python scripts/render_sigil.py --canvas_code sigil.js --width 128 --height 128 --preview

    # Half-size artwork, reference distance search
    python scripts/render_sigil.py --instructions sigil.yaml --scale 0.5 --method bounded_search

Instruction files:
    JSON or YAML list of records, e.g. [{"op": "beginPath"},
    {"op": "arc", "args": [50, 50, 30, 0, 6.283185307179586]}, {"op": "stroke"}].
    A YAML mapping with an ``instructions`` key is also accepted.

Outputs (written atomically):
    - <prefix>_sdf.png: distance field texture
    - <prefix>_path.svg: textual path description
    - <prefix>_preview.png: white strokes on transparent (with --preview)
    - <prefix>_metadata.yaml: sizes, digests, timings, warnings

Exit codes:
    0 on success, 2 when the request is rejected (malformed instructions,
    empty path, resource limit, invalid config).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from sigil_sdf.errors import SigilError
from sigil_sdf.instructions import instructions_from_json, instructions_from_records, parse_canvas_code
from sigil_sdf.pipeline import SigilSDFGenerator
from sigil_sdf.sdf.encoder import encode_preview
from sigil_sdf.utils import fs, hashing, logging_config, validators

logger = logging.getLogger(__name__)

EXIT_REJECTED = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a sigil instruction list to an SDF texture",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    # Input sources (mutually exclusive)
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument('--instructions', type=str, help='JSON/YAML file with instruction records')
    input_group.add_argument('--canvas_code', type=str, help='Text file with ctx.* canvas calls')

    parser.add_argument('--config', type=str, default=None,
                        help='sigil_sdf.v1 YAML config (default: built-in defaults)')
    parser.add_argument('--width', type=int, default=None, help='Output width (px)')
    parser.add_argument('--height', type=int, default=None, help='Output height (px)')
    parser.add_argument('--scale', type=float, default=None, help='Artwork scale in (0, 4]')
    parser.add_argument('--stroke_width', type=float, default=None, help='Stroke width (px)')
    parser.add_argument('--search_radius', type=int, default=None, help='SDF search radius (px)')
    parser.add_argument('--method', choices=['edt', 'bounded_search'], default=None,
                        help='Distance field builder')
    parser.add_argument('--output_dir', type=str, default='outputs/sigil', help='Output directory')
    parser.add_argument('--prefix', type=str, default='sigil', help='Output file prefix')
    parser.add_argument('--preview', action='store_true', help='Also write a preview PNG')
    parser.add_argument('--log_level', type=str, default='INFO', help='Logging level')

    return parser.parse_args(argv)


def load_instructions(path: Path) -> List[Any]:
    """Read an instruction list from .json or .yaml/.yml."""
    if path.suffix.lower() == '.json':
        return instructions_from_json(path.read_text(encoding='utf-8'))
    data = fs.load_yaml(path)
    if isinstance(data, dict):
        data = data.get('instructions', [])
    return instructions_from_records(data)


def build_config(args: argparse.Namespace) -> validators.SigilConfigV1:
    base = validators.load_sigil_config(args.config) if args.config else None
    return validators.make_config(
        base,
        output_width=args.width,
        output_height=args.height,
        artwork_scale=args.scale,
        stroke_width=args.stroke_width,
        search_radius=args.search_radius,
        sdf_method=args.method,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging_config.setup_logging(log_level=args.log_level, log_file=None,
                                 context={'app': 'render_sigil'})
    logging_config.install_excepthook()

    output_dir = Path(args.output_dir)
    prefix = args.prefix

    try:
        cfg = build_config(args)
        if args.instructions:
            source = Path(args.instructions)
            logger.info(f"Loading instructions from: {source}")
            instructions = load_instructions(source)
        else:
            source = Path(args.canvas_code)
            logger.info(f"Parsing canvas code from: {source}")
            instructions = parse_canvas_code(source.read_text(encoding='utf-8'),
                                             max_statements=cfg.limits.max_instructions)

        generator = SigilSDFGenerator(cfg)
        result = generator.run(instructions, request_id=prefix)
    except SigilError as e:
        logger.error(f"Rejected ({e.kind}): {e}")
        return EXIT_REJECTED
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    fs.ensure_dir(output_dir)

    sdf_path = output_dir / f'{prefix}_sdf.png'
    fs.atomic_write_bytes(sdf_path, result.texture.data)
    logger.info(f"Saved SDF texture: {sdf_path}")

    svg_path = output_dir / f'{prefix}_path.svg'
    fs.atomic_write_text(svg_path, result.svg)
    logger.info(f"Saved path SVG: {svg_path}")

    if args.preview:
        preview_path = output_dir / f'{prefix}_preview.png'
        fs.atomic_write_bytes(preview_path, encode_preview(result.grid))
        logger.info(f"Saved preview: {preview_path}")

    metadata = {
        'source': str(source),
        'num_instructions': len(instructions),
        'num_subpaths': len(result.path),
        'output_size_px': [result.texture.width, result.texture.height],
        'occupied_px': result.grid.occupied_count,
        'instructions_sha256': result.digest,
        'texture_sha256': hashing.sha256_bytes(result.texture.data),
        'config_sha256': hashing.hash_dict(cfg.model_dump(mode='json')),
        'timings_s': {k: float(v) for k, v in result.timings.items()},
        'warnings': [w.to_dict() for w in result.warnings],
        'config': cfg.model_dump(mode='json', by_alias=True),
    }
    metadata_path = output_dir / f'{prefix}_metadata.yaml'
    fs.atomic_yaml_dump(metadata, metadata_path)
    logger.info(f"Saved metadata: {metadata_path}")

    logger.info("Render complete!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
