"""Frame-by-frame processing of animated images.

Every frame goes through the same adjust-then-quantize path as a still image
and keeps its own display duration.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from PIL import Image, ImageSequence

from ..buffers import PixelBuffer
from ..config import SETTINGS, StudioSettings
from ..errors import InvalidDimensions
from ..geometry import MaskRegion
from ..params import AdjustmentParams, Algorithm, AlgorithmParams
from .pipeline import process_image

# milliseconds, used when a frame carries no positive delay
DEFAULT_FRAME_DURATION = 100


@dataclass(frozen=True)
class AnimationFrame:
    pixels: PixelBuffer
    duration: int = DEFAULT_FRAME_DURATION


def frame_duration(info: Mapping) -> int:
    try:
        duration = int(info.get("duration") or 0)
    except (TypeError, ValueError):
        duration = 0
    return duration if duration > 0 else DEFAULT_FRAME_DURATION


def load_frames(data: bytes) -> List[AnimationFrame]:
    """Decode every frame of an encoded image; a still image yields one frame."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return [
                AnimationFrame(PixelBuffer.from_image(frame), frame_duration(frame.info))
                for frame in ImageSequence.Iterator(img)
            ]
    except (OSError, Image.DecompressionBombError) as exc:
        raise InvalidDimensions(f"Could not decode animation: {exc}") from None


def encode_gif(frames: Sequence[AnimationFrame], loop: int = 0) -> bytes:
    if not frames:
        raise InvalidDimensions("An animation needs at least one frame")
    images = [frame.pixels.to_image().convert("RGB") for frame in frames]
    buffer = io.BytesIO()
    images[0].save(
        buffer,
        "GIF",
        save_all=True,
        append_images=images[1:],
        duration=[frame.duration for frame in frames],
        loop=loop,
        disposal=2,
    )
    return buffer.getvalue()


def process_animation(
    frames: Sequence[AnimationFrame],
    algorithm: Union[Algorithm, str],
    params: Optional[AlgorithmParams] = None,
    adjustments: Optional[AdjustmentParams] = None,
    regions: Sequence[MaskRegion] = (),
    settings: StudioSettings = SETTINGS,
) -> Tuple[List[AnimationFrame], List[str]]:
    """Process each frame in order; returns the new frames and merged warnings."""
    if not frames:
        raise InvalidDimensions("An animation needs at least one frame")
    size = frames[0].pixels.size
    processed: List[AnimationFrame] = []
    warnings: List[str] = []
    for frame in frames:
        if frame.pixels.size != size:
            raise InvalidDimensions(
                f"Frame size {frame.pixels.size} does not match the first frame {size}"
            )
        result = process_image(
            frame.pixels, algorithm, params, adjustments, regions, settings=settings
        )
        processed.append(AnimationFrame(result.pixels, frame.duration))
        for warning in result.warnings:
            if warning not in warnings:
                warnings.append(warning)
    return processed, warnings
