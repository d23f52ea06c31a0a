from __future__ import annotations

import math
from typing import Dict, Iterator, Optional, Sequence, Tuple

import numpy as np

from ..params import Algorithm

# (dx, dy, weight) offsets relative to the current pixel.
Kernel = Tuple[Tuple[int, int, float], ...]


def _kernel(divisor: float, *taps: Tuple[int, int, int]) -> Kernel:
    return tuple((dx, dy, weight / divisor) for dx, dy, weight in taps)


KERNELS: Dict[Algorithm, Kernel] = {
    Algorithm.FLOYD_STEINBERG: _kernel(16, (1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1)),
    Algorithm.ATKINSON: _kernel(
        8, (1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1)
    ),
    Algorithm.JARVIS_JUDICE_NINKE: _kernel(
        48,
        (1, 0, 7), (2, 0, 5),
        (-2, 1, 3), (-1, 1, 5), (0, 1, 7), (1, 1, 5), (2, 1, 3),
        (-2, 2, 1), (-1, 2, 3), (0, 2, 5), (1, 2, 3), (2, 2, 1),
    ),
    Algorithm.STUCKI: _kernel(
        42,
        (1, 0, 8), (2, 0, 4),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2),
        (-2, 2, 1), (-1, 2, 2), (0, 2, 4), (1, 2, 2), (2, 2, 1),
    ),
    Algorithm.BURKES: _kernel(
        32,
        (1, 0, 8), (2, 0, 4),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2),
    ),
    Algorithm.SIERRA_LITE: _kernel(4, (1, 0, 2), (-1, 1, 1), (0, 1, 1)),
}

ERROR_DIFFUSION = frozenset(KERNELS)


def _nearest(levels: Sequence[float], value: float) -> int:
    best_index = 0
    best_distance = abs(value - levels[0])
    for index in range(1, len(levels)):
        distance = abs(value - levels[index])
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index


def error_diffusion(
    plane: np.ndarray,
    kernel: Kernel,
    threshold: int = 128,
    levels: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Diffuse quantization error in raster order.

    Without ``levels`` the output is bilevel: ``0`` below ``threshold``,
    ``255`` otherwise. With ``levels`` (ascending) every pixel snaps to the
    nearest level and the result holds level indices instead of values.
    """
    height, width = plane.shape
    buffer = plane.astype(np.float64).tolist()
    out_rows = [[0] * width for _ in range(height)]
    values = list(levels) if levels is not None else None

    for y in range(height):
        row = buffer[y]
        out_row = out_rows[y]
        for x in range(width):
            old = row[x]
            if values is None:
                new = 0.0 if old < threshold else 255.0
                out_row[x] = int(new)
            else:
                index = _nearest(values, old)
                new = values[index]
                out_row[x] = index
            error = old - new
            if error == 0:
                continue
            for dx, dy, weight in kernel:
                nx = x + dx
                ny = y + dy
                if nx < 0 or nx >= width or ny >= height:
                    continue
                buffer[ny][nx] += error * weight

    return np.array(out_rows, dtype=np.uint8)


def random_threshold(
    plane: np.ndarray,
    rng: np.random.Generator,
    threshold: int = 128,
    noise_amount: float = 50.0,
) -> np.ndarray:
    noise = (rng.random(plane.shape) - 0.5) * noise_amount
    return np.where(plane + noise < threshold, 0, 255).astype(np.uint8)


def hilbert_point(order: int, distance: int) -> Tuple[int, int]:
    """Map a position along a Hilbert curve to ``(x, y)`` in a 2**order square."""
    x = y = 0
    t = distance
    step = 1
    side = 1 << order
    while step < side:
        rx = 1 & (t // 2)
        ry = 1 & (t ^ rx)
        if ry == 0:
            if rx == 1:
                x = step - 1 - x
                y = step - 1 - y
            x, y = y, x
        x += step * rx
        y += step * ry
        t //= 4
        step *= 2
    return x, y


def hilbert_path(width: int, height: int) -> Iterator[Tuple[int, int]]:
    order = max(0, math.ceil(math.log2(max(width, height))))
    for distance in range((1 << order) ** 2):
        x, y = hilbert_point(order, distance)
        if x < width and y < height:
            yield x, y


RIEMERSMA_HISTORY = 16
RIEMERSMA_RATIO = 16.0


def riemersma_weights(size: int = RIEMERSMA_HISTORY, ratio: float = RIEMERSMA_RATIO):
    """Weights from ``1/ratio`` (oldest entry) up to ``1`` (newest entry)."""
    if size == 1:
        return [1.0]
    growth = math.exp(math.log(ratio) / (size - 1))
    return [growth ** index / ratio for index in range(size)]


def riemersma(plane: np.ndarray, threshold: int = 128) -> np.ndarray:
    height, width = plane.shape
    source = plane.astype(np.float64).tolist()
    out = np.zeros((height, width), dtype=np.uint8)
    weights = riemersma_weights()
    history = [0.0] * RIEMERSMA_HISTORY

    for x, y in hilbert_path(width, height):
        value = source[y][x]
        carried = sum(w * e for w, e in zip(weights, history))
        new = 0 if value + carried < threshold else 255
        out[y, x] = new
        history.pop(0)
        history.append(value - new)

    return out
