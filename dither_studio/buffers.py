"""Pixel containers passed between the pipeline stages.

A :class:`PixelBuffer` is owned by exactly one stage at a time. Handing it to
the next stage goes through :meth:`PixelBuffer.transfer`, which moves the
backing array into a new buffer and leaves the old one detached, the same way
a transferable array buffer behaves when posted to a worker.
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
from PIL import Image

from .errors import InvalidDimensions

RawSamples = Union[bytes, bytearray, memoryview, np.ndarray]

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def _as_samples(data: RawSamples) -> np.ndarray:
    if isinstance(data, (bytes, bytearray, memoryview)):
        samples = np.frombuffer(data, dtype=np.uint8)
        if not samples.flags.writeable:
            samples = samples.copy()
        return samples
    samples = np.asarray(data)
    if samples.dtype != np.uint8:
        samples = np.clip(samples, 0, 255).astype(np.uint8)
    return samples


def _check_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Image must have a positive size, got {width}x{height}")


class PixelBuffer:
    """Row-major RGBA samples with shape ``(height, width, 4)``."""

    __slots__ = ("width", "height", "_data")

    def __init__(self, width: int, height: int, data: RawSamples) -> None:
        _check_size(width, height)
        samples = _as_samples(data)
        expected = width * height * 4
        if samples.size != expected:
            raise InvalidDimensions(
                f"Expected {expected} samples for {width}x{height} RGBA, got {samples.size}"
            )
        self.width = int(width)
        self.height = int(height)
        self._data: Optional[np.ndarray] = samples.reshape(self.height, self.width, 4)

    @classmethod
    def blank(cls, width: int, height: int, rgba=(0, 0, 0, 255)) -> "PixelBuffer":
        _check_size(width, height)
        data = np.empty((height, width, 4), dtype=np.uint8)
        data[...] = rgba
        return cls(width, height, data)

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        rgba = img.convert("RGBA")
        width, height = rgba.size
        return cls(width, height, np.array(rgba, dtype=np.uint8))

    @property
    def detached(self) -> bool:
        return self._data is None

    @property
    def data(self) -> np.ndarray:
        if self._data is None:
            raise InvalidDimensions("Pixel buffer was transferred and is detached")
        return self._data

    @property
    def size(self):
        return self.width, self.height

    def __len__(self) -> int:
        return 0 if self._data is None else self._data.size

    def transfer(self) -> "PixelBuffer":
        """Move the backing samples into a new buffer and detach this one."""
        moved = PixelBuffer(self.width, self.height, self.data)
        self._data = None
        return moved

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.data)

    def to_grayscale(self) -> "GrayscaleBuffer":
        return GrayscaleBuffer.from_pixels(self)

    def __repr__(self) -> str:
        state = "detached" if self.detached else "attached"
        return f"PixelBuffer({self.width}x{self.height}, {state})"


class GrayscaleBuffer:
    """Single-channel luminance with shape ``(height, width)``."""

    __slots__ = ("width", "height", "data")

    def __init__(self, width: int, height: int, data: RawSamples) -> None:
        _check_size(width, height)
        samples = _as_samples(data)
        if samples.size != width * height:
            raise InvalidDimensions(
                f"Expected {width * height} samples for {width}x{height} gray, got {samples.size}"
            )
        self.width = int(width)
        self.height = int(height)
        self.data = samples.reshape(self.height, self.width)

    @classmethod
    def from_pixels(cls, pixels: PixelBuffer) -> "GrayscaleBuffer":
        rgb = pixels.data[..., :3].astype(np.float64)
        r_w, g_w, b_w = LUMA_WEIGHTS
        luma = r_w * rgb[..., 0] + g_w * rgb[..., 1] + b_w * rgb[..., 2]
        # Halves round up, matching Math.round on the canvas side.
        gray = np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8)
        return cls(pixels.width, pixels.height, gray)

    @classmethod
    def from_image(cls, img: Image.Image) -> "GrayscaleBuffer":
        return cls.from_pixels(PixelBuffer.from_image(img))

    @property
    def size(self):
        return self.width, self.height

    def to_pixels(self) -> PixelBuffer:
        out = np.empty((self.height, self.width, 4), dtype=np.uint8)
        out[..., :3] = self.data[..., None]
        out[..., 3] = 255
        return PixelBuffer(self.width, self.height, out)

    def __repr__(self) -> str:
        return f"GrayscaleBuffer({self.width}x{self.height})"
