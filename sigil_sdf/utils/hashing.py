"""Hashing utilities for request provenance and determinism checks.

Provides SHA-256 hashing for:
    - Encoded textures (bytes): byte-identical output check
    - Instruction lists: request identity in logs and metadata
    - Config dicts: which settings produced an artifact

Used by:
    - pipeline: logs the instruction digest for every request
    - scripts/render_sigil.py: writes digests to <prefix>_metadata.yaml
    - tests: determinism assertions

Hash format: lowercase hex string (64 chars for SHA-256).

Usage:
    from sigil_sdf.utils import hashing
    digest = hashing.sha256_bytes(texture.data)
    cfg_hash = hashing.hash_dict(cfg.model_dump())
"""

import hashlib
import json
from typing import Any, Iterable, Mapping


def sha256_bytes(data: bytes) -> str:
    """SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_string(s: str) -> str:
    """SHA-256 hex digest of a UTF-8 string."""
    return sha256_bytes(s.encode('utf-8'))


def canonical_json(obj: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace, floats via repr."""
    return json.dumps(obj, sort_keys=True, separators=(',', ':'), allow_nan=False)


def hash_dict(d: Mapping[str, Any]) -> str:
    """Compute deterministic hash of a JSON-serializable mapping.

    Notes
    -----
    Key order does not affect the hash.
    Raises TypeError/ValueError for non-serializable or non-finite values.
    """
    return sha256_string(canonical_json(dict(d)))


def hash_instructions(instructions: Iterable[Any]) -> str:
    """Hash an instruction list via the record form of each entry.

    Entries may be instruction objects (anything with ``to_record()``) or
    records. Records are hashed as written, so ``10`` and ``10.0`` differ;
    parse them into instruction objects first when the spelling must not
    matter.
    """
    return sha256_string(canonical_json([
        instr.to_record() if hasattr(instr, 'to_record') else instr
        for instr in instructions
    ]))


def short(digest: str, n: int = 12) -> str:
    """Shorten a hex digest for log lines."""
    return digest[:n]
