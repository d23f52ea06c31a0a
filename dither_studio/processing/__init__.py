"""Image processing components for dither-studio."""

from .animation import AnimationFrame, encode_gif, load_frames, process_animation
from .detect import BoundingBox, detect_regions
from .enhance import adjust
from .masking import rasterize
from .pipeline import (
    SelectiveLayer,
    build_layers,
    composite_layers,
    composite_selective,
    process_image,
)
from .quantize import QuantizeResult, quantize, quantize_result

__all__ = [
    "AnimationFrame",
    "encode_gif",
    "load_frames",
    "process_animation",
    "BoundingBox",
    "detect_regions",
    "adjust",
    "rasterize",
    "SelectiveLayer",
    "build_layers",
    "composite_layers",
    "composite_selective",
    "process_image",
    "QuantizeResult",
    "quantize",
    "quantize_result",
]
