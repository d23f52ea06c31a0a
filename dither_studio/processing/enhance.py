from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image, ImageFilter, ImageOps

from ..buffers import PixelBuffer
from ..params import AdjustmentParams


def contrast_factor(contrast: float) -> float:
    return (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))


def _to_image(rgb: np.ndarray) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8), "RGB")


def _clamp(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def apply_brightness_contrast(rgb: np.ndarray, brightness: float, contrast: float) -> np.ndarray:
    if brightness == 0 and contrast == 0:
        return rgb
    factor = contrast_factor(contrast)
    values = factor * (rgb.astype(np.float64) - 128.0) + 128.0 + brightness * 2.55
    return _clamp(values)


def rgb_to_hsl(rgb: np.ndarray):
    values = rgb.astype(np.float64) / 255.0
    r, g, b = values[..., 0], values[..., 1], values[..., 2]
    high = values.max(axis=-1)
    low = values.min(axis=-1)
    lightness = (high + low) / 2.0
    delta = high - low
    chromatic = delta > 0

    saturation = np.zeros_like(lightness)
    denom = np.where(lightness > 0.5, 2.0 - high - low, high + low)
    np.divide(delta, denom, out=saturation, where=chromatic)

    safe = np.where(chromatic, delta, 1.0)
    hue = np.zeros_like(lightness)
    red_max = chromatic & (high == r)
    green_max = chromatic & ~red_max & (high == g)
    blue_max = chromatic & ~red_max & ~green_max
    hue = np.where(red_max, ((g - b) / safe + np.where(g < b, 6.0, 0.0)), hue)
    hue = np.where(green_max, (b - r) / safe + 2.0, hue)
    hue = np.where(blue_max, (r - g) / safe + 4.0, hue)
    return hue / 6.0, saturation, lightness


def _hue_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.mod(t, 1.0)
    return np.select(
        [t < 1 / 6, t < 1 / 2, t < 2 / 3],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2 / 3 - t) * 6.0],
        default=p,
    )


def hsl_to_rgb(hue: np.ndarray, saturation: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    q = np.where(
        lightness < 0.5,
        lightness * (1.0 + saturation),
        lightness + saturation - lightness * saturation,
    )
    p = 2.0 * lightness - q
    channels = [
        _hue_channel(p, q, hue + 1 / 3),
        _hue_channel(p, q, hue),
        _hue_channel(p, q, hue - 1 / 3),
    ]
    rgb = np.stack(channels, axis=-1)
    gray = saturation == 0
    rgb[gray] = lightness[gray][:, None]
    return _clamp(rgb * 255.0)


def apply_hsl(rgb: np.ndarray, hue: float, saturation: float, lightness: float) -> np.ndarray:
    if hue == 0 and saturation == 0 and lightness == 0:
        return rgb
    h, s, l = rgb_to_hsl(rgb)
    h = np.mod(h + hue / 360.0, 1.0)
    s = np.clip(s * (1.0 + saturation / 100.0), 0.0, 1.0)
    amount = lightness / 100.0
    if amount > 0:
        l = l + (1.0 - l) * amount
    elif amount < 0:
        l = l + l * amount
    return hsl_to_rgb(h, s, np.clip(l, 0.0, 1.0))


def gamma_table(gamma: float):
    inv = 1.0 / gamma
    return [
        min(255, max(0, int(((value / 255.0) ** inv) * 255 + 0.5)))
        for value in range(256)
    ]


def apply_gamma(img: Image.Image, gamma: float) -> Image.Image:
    if abs(gamma - 1.0) < 1e-3:
        return img
    return img.point(gamma_table(gamma) * 3)


def apply_sharpness(img: Image.Image, amount: float) -> Image.Image:
    if amount <= 0:
        return img
    original = np.asarray(img, dtype=np.float64)
    blurred = np.asarray(img.filter(ImageFilter.GaussianBlur(1)), dtype=np.float64)
    sharpened = original + (original - blurred) * (amount / 100.0)
    return _to_image(_clamp(sharpened))


def apply_blur(img: Image.Image, radius: float) -> Image.Image:
    if radius <= 0:
        return img
    return img.filter(ImageFilter.BoxBlur(radius))


def adjust(pixels: PixelBuffer, params: Optional[AdjustmentParams] = None) -> PixelBuffer:
    """Run the fixed adjustment chain over the RGB channels of ``pixels``.

    Each stage reads the previous stage's output and is skipped when its
    parameter is neutral, so all-neutral parameters return an identical copy.
    Alpha is carried through untouched.
    """
    params = (params or AdjustmentParams()).validate()
    source = pixels.data
    out = source.copy()
    if params.is_neutral:
        return PixelBuffer(pixels.width, pixels.height, out)

    rgb = source[..., :3]
    rgb = apply_brightness_contrast(rgb, params.brightness, params.contrast)
    rgb = apply_hsl(rgb, params.hue, params.saturation, params.lightness)

    img = _to_image(rgb)
    img = apply_gamma(img, params.gamma)
    img = apply_sharpness(img, params.sharpness)
    img = apply_blur(img, params.blur)
    if params.invert:
        img = ImageOps.invert(img)

    out[..., :3] = np.asarray(img, dtype=np.uint8)
    return PixelBuffer(pixels.width, pixels.height, out)
