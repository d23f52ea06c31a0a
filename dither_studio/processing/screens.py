"""Threshold screens: Bayer ordered dither, rotated halftone and pattern stamps."""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from ..params import PatternType

BAYER_4X4 = (
    (0, 8, 2, 10),
    (12, 4, 14, 6),
    (3, 11, 1, 9),
    (15, 7, 13, 5),
)

BAYER_4X4_SCALED = np.array(
    [[math.floor(value / 16 * 255) for value in row] for row in BAYER_4X4],
    dtype=np.float64,
)


def _bias(threshold: int) -> float:
    return float(threshold) - 128.0


def _bilevel(white: np.ndarray) -> np.ndarray:
    return np.where(white, 255, 0).astype(np.uint8)


def ordered(plane: np.ndarray, dot_size: int = 1, threshold: int = 128) -> np.ndarray:
    height, width = plane.shape
    ys = (np.arange(height) // dot_size) % 4
    xs = (np.arange(width) // dot_size) % 4
    matrix = BAYER_4X4_SCALED[ys[:, None], xs[None, :]]
    return _bilevel(plane > matrix + _bias(threshold))


def halftone(
    plane: np.ndarray, dot_size: int = 3, spacing: int = 5, angle: float = 45.0
) -> np.ndarray:
    """Rotated amplitude-modulated screen.

    Every pixel is rotated into screen space, assigned to a cell of
    ``dot_size + spacing`` and inked when it lies within the dot of that cell.
    The dot radius shrinks linearly with the intensity sampled at the cell
    center.
    """
    height, width = plane.shape
    cell = float(dot_size + spacing)
    rad = math.radians(angle)
    cos, sin = math.cos(rad), math.sin(rad)

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    u = xs * cos + ys * sin
    v = -xs * sin + ys * cos
    cu = (np.floor(u / cell) + 0.5) * cell
    cv = (np.floor(v / cell) + 0.5) * cell

    center_x = np.clip(np.floor(cu * cos - cv * sin), 0, width - 1).astype(np.intp)
    center_y = np.clip(np.floor(cu * sin + cv * cos), 0, height - 1).astype(np.intp)
    sample = plane[center_y, center_x]

    radius = (dot_size / 2.0) * (1.0 - sample / 255.0)
    distance = np.hypot(u - cu, v - cv)
    inked = (radius > 0) & (distance <= radius)
    return _bilevel(~inked)


def _dot_pattern(size: int) -> np.ndarray:
    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64)
    dx = (xs + 0.5) / size - 0.5
    dy = (ys + 0.5) / size - 0.5
    return np.minimum(1.0, np.sqrt(dx * dx + dy * dy) * 2.0)


def _line_pattern(size: int) -> np.ndarray:
    ys = np.arange(size, dtype=np.float64)[:, None]
    return np.repeat(ys / size, size, axis=1)


def _cross_pattern(size: int) -> np.ndarray:
    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64)
    to_horizontal = np.abs((ys + 0.5) / size - 0.5) * 2.0
    to_vertical = np.abs((xs + 0.5) / size - 0.5) * 2.0
    return np.minimum(to_horizontal, to_vertical)


def _diamond_pattern(size: int) -> np.ndarray:
    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64)
    dx = np.abs((xs + 0.5) / size - 0.5)
    dy = np.abs((ys + 0.5) / size - 0.5)
    return np.minimum(1.0, (dx + dy) * 2.0)


def _wave_pattern(size: int) -> np.ndarray:
    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64)
    return (np.sin((xs + ys) / size * math.pi * 2.0) + 1.0) / 2.0


def _brick_pattern(size: int) -> np.ndarray:
    pattern = np.zeros((size, size), dtype=np.float64)
    brick_height = max(2, size // 3)
    half = size / 2.0
    for y in range(size):
        course = y // brick_height
        offset = (course % 2) * (size // 2)
        edge_y = min(abs(y - course * brick_height), abs(y - (course + 1) * brick_height - 1))
        for x in range(size):
            shifted = (x + offset) % size
            brick_x = math.floor(shifted / half) * half
            edge_x = min(abs(shifted - brick_x), abs(shifted - (brick_x + half - 1)))
            edge = min(edge_x, edge_y) / (size / 10.0)
            pattern[y, x] = max(0.0, min(1.0, 1.0 - edge))
    return pattern


def _checker_pattern(size: int) -> np.ndarray:
    ys, xs = np.mgrid[0:size, 0:size]
    return np.where((xs + ys) % 2 == 0, 0.25, 0.75)


_PATTERNS = {
    PatternType.DOTS: _dot_pattern,
    PatternType.LINES: _line_pattern,
    PatternType.CROSSES: _cross_pattern,
    PatternType.DIAMONDS: _diamond_pattern,
    PatternType.WAVES: _wave_pattern,
    PatternType.BRICKS: _brick_pattern,
    PatternType.CHECKER: _checker_pattern,
}


def pattern_matrix(
    pattern_type: PatternType,
    size: int = 4,
    custom: Optional[Sequence[Sequence[float]]] = None,
) -> np.ndarray:
    """Tileable threshold stamp with values in 0..1."""
    if pattern_type is PatternType.CUSTOM:
        if custom is not None:
            return np.clip(np.array(custom, dtype=np.float64), 0.0, 1.0)
        return _checker_pattern(size)
    return _PATTERNS[pattern_type](size)


def pattern(
    plane: np.ndarray,
    pattern_type: PatternType = PatternType.DOTS,
    size: int = 4,
    custom: Optional[Sequence[Sequence[float]]] = None,
    threshold: int = 128,
) -> np.ndarray:
    stamp = pattern_matrix(pattern_type, size, custom)
    height, width = plane.shape
    stamp_h, stamp_w = stamp.shape
    ys = np.arange(height) % stamp_h
    xs = np.arange(width) % stamp_w
    limits = stamp[ys[:, None], xs[None, :]] * 255.0 + _bias(threshold)
    return _bilevel(~(plane < limits))
