"""Distance field builders and texture encoder."""

from .distance_field import (
    BUILDERS,
    BoundedSearchBuilder,
    DistanceField,
    EuclideanTransformBuilder,
    build_distance_field,
)
from .encoder import (
    PNG_SIGNATURE,
    EncodedTexture,
    decode_texture,
    encode_preview,
    encode_texture,
    has_png_signature,
)

__all__ = [
    "BUILDERS", "BoundedSearchBuilder", "DistanceField", "EuclideanTransformBuilder",
    "build_distance_field", "PNG_SIGNATURE", "EncodedTexture", "decode_texture",
    "encode_preview", "encode_texture", "has_png_signature",
]
