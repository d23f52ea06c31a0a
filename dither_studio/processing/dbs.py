"""Direct binary search halftoning.

The error is measured through a Gaussian model of the eye. Instead of
refiltering the image for every trial, the cross-correlation between the
filtered error and the filter (``c_ep``) is kept up to date, which turns each
trial into a handful of table lookups.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

HVS_SIZE = 7
_NEIGHBOURS = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0), (1, 0),
    (-1, 1), (0, 1), (1, 1),
)


def hvs_filter(size: int = HVS_SIZE) -> np.ndarray:
    radius = size // 2
    sigma = radius / 2.5
    offsets = np.arange(size, dtype=np.float64) - radius
    dist2 = offsets[:, None] ** 2 + offsets[None, :] ** 2
    kernel = np.exp(-dist2 / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def autocorrelation(kernel: np.ndarray) -> np.ndarray:
    size = kernel.shape[0]
    span = 2 * size - 1
    padded = np.zeros((size + 2 * (size - 1),) * 2, dtype=np.float64)
    padded[size - 1:2 * size - 1, size - 1:2 * size - 1] = kernel
    out = np.empty((span, span), dtype=np.float64)
    for dy in range(span):
        for dx in range(span):
            out[dy, dx] = np.sum(kernel * padded[dy:dy + size, dx:dx + size])
    return out


def correlate(values: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Zero-padded correlation of ``values`` with an odd, square ``kernel``."""
    radius = kernel.shape[0] // 2
    height, width = values.shape
    padded = np.pad(values, radius)
    out = np.zeros((height, width), dtype=np.float64)
    for dy in range(kernel.shape[0]):
        for dx in range(kernel.shape[1]):
            out += kernel[dy, dx] * padded[dy:dy + height, dx:dx + width]
    return out


def _splat(target: np.ndarray, kernel: np.ndarray, y: int, x: int, amount: float) -> None:
    radius = kernel.shape[0] // 2
    height, width = target.shape
    y0, y1 = max(0, y - radius), min(height, y + radius + 1)
    x0, x1 = max(0, x - radius), min(width, x + radius + 1)
    target[y0:y1, x0:x1] += amount * kernel[
        y0 - y + radius:y1 - y + radius, x0 - x + radius:x1 - x + radius
    ]


def direct_binary_search(
    plane: np.ndarray, max_iterations: int = 15, threshold: int = 128
) -> Tuple[np.ndarray, bool]:
    """Return ``(bilevel plane, converged)``.

    Passes run in raster order, trying a toggle and a swap with each of the
    eight neighbours at every pixel and keeping the single best improvement.
    ``converged`` is ``False`` when the pass limit was hit while the last pass
    still changed pixels.
    """
    height, width = plane.shape
    target = plane.astype(np.float64) / 255.0
    halftone = (plane >= threshold).astype(np.float64)

    c_pp = autocorrelation(hvs_filter())
    radius = c_pp.shape[0] // 2
    c_zero = c_pp[radius, radius]
    c_ep = correlate(halftone - target, c_pp)

    converged = False
    for _ in range(max_iterations):
        changes = 0
        for y in range(height):
            for x in range(width):
                a0 = 1.0 - 2.0 * halftone[y, x]
                cep_p = c_ep[y, x]
                best = 2.0 * a0 * cep_p + c_zero
                best_q = None

                for dx, dy in _NEIGHBOURS:
                    qx, qy = x + dx, y + dy
                    if qx < 0 or qy < 0 or qx >= width or qy >= height:
                        continue
                    if halftone[qy, qx] == halftone[y, x]:
                        continue
                    a1 = -a0
                    delta = (
                        2.0 * a0 * cep_p
                        + 2.0 * a1 * c_ep[qy, qx]
                        + 2.0 * c_zero
                        + 2.0 * a0 * a1 * c_pp[radius + dy, radius + dx]
                    )
                    if delta < best:
                        best = delta
                        best_q = (qx, qy)

                if best >= -1e-12:
                    continue
                halftone[y, x] += a0
                _splat(c_ep, c_pp, y, x, a0)
                if best_q is not None:
                    qx, qy = best_q
                    halftone[qy, qx] -= a0
                    _splat(c_ep, c_pp, qy, qx, -a0)
                changes += 1

        if changes == 0:
            converged = True
            break

    return np.where(halftone > 0.5, 255, 0).astype(np.uint8), converged
