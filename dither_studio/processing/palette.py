from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from ..buffers import LUMA_WEIGHTS
from ..errors import InvalidPalette

RGB = Tuple[int, int, int]


def parse_hex_color(value: str) -> RGB:
    text = str(value).strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise InvalidPalette(f"Invalid hex color: {value!r}")
    try:
        return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)
    except ValueError:
        raise InvalidPalette(f"Invalid hex color: {value!r}") from None


def luminance(rgb: RGB) -> float:
    r_w, g_w, b_w = LUMA_WEIGHTS
    return r_w * rgb[0] + g_w * rgb[1] + b_w * rgb[2]


def sorted_palette(colors: Sequence[str]) -> List[RGB]:
    """Parse ``colors`` and order them from darkest to lightest."""
    if len(colors) < 2:
        raise InvalidPalette(f"Custom palettes need at least 2 colors, got {len(colors)}")
    parsed = [parse_hex_color(color) for color in colors]
    return sorted(parsed, key=luminance)


def palette_levels(palette: Sequence[RGB]) -> np.ndarray:
    return np.array([luminance(color) for color in palette], dtype=np.float64)


def separate_cmyk(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Split RGB into ink coverage planes (0 = no ink, 255 = full ink).

    Under-color removal takes the shared gray component out of C, M and Y and
    moves it to K.
    """
    inks = 255 - rgb[..., :3].astype(np.int16)
    black = inks.min(axis=-1)
    cyan = inks[..., 0] - black
    magenta = inks[..., 1] - black
    yellow = inks[..., 2] - black
    return (
        cyan.astype(np.uint8),
        magenta.astype(np.uint8),
        yellow.astype(np.uint8),
        black.astype(np.uint8),
    )


def combine_cmyk(
    cyan: np.ndarray, magenta: np.ndarray, yellow: np.ndarray, black: np.ndarray
) -> np.ndarray:
    """Recombine ink coverage planes (255 = full ink) into RGB; black ink wins."""
    key = black.astype(np.int16)
    channels = [
        np.clip(255 - (ink.astype(np.int16) + key), 0, 255) for ink in (cyan, magenta, yellow)
    ]
    return np.stack(channels, axis=-1).astype(np.uint8)


def map_to_palette(indices: np.ndarray, palette: Sequence[RGB]) -> np.ndarray:
    table = np.array(palette, dtype=np.uint8)
    return table[indices]
