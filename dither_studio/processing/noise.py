"""Generated dither arrays: void-and-cluster and best-candidate blue noise.

Both arrays depend only on ``(size, seed)`` and are memoised as read-only
tables, so repeated requests reuse them without sharing mutable state.
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np

VOID_AND_CLUSTER_SIZE = 32
VOID_AND_CLUSTER_SIGMA = 1.5
BLUE_NOISE_SIZE = 64
BLUE_NOISE_CANDIDATES = 16
INITIAL_DENSITY = 0.1


def _toroidal_offsets(size: int) -> np.ndarray:
    offsets = np.arange(size)
    return np.minimum(offsets, size - offsets)


def gaussian_kernel(size: int, sigma: float = VOID_AND_CLUSTER_SIGMA) -> np.ndarray:
    """Energy contributed by a single point at the origin of a wrapping grid."""
    offsets = _toroidal_offsets(size).astype(np.float64)
    dist2 = offsets[:, None] ** 2 + offsets[None, :] ** 2
    return np.exp(-dist2 / (2.0 * sigma * sigma))


class _Energy:
    def __init__(self, pattern: np.ndarray, kernel: np.ndarray) -> None:
        self.pattern = pattern
        self.kernel = kernel
        spectrum = np.fft.fft2(pattern.astype(np.float64)) * np.fft.fft2(kernel)
        self.values = np.real(np.fft.ifft2(spectrum))

    def _splat(self, index: int, sign: float) -> None:
        y, x = divmod(index, self.pattern.shape[1])
        self.values += sign * np.roll(np.roll(self.kernel, y, axis=0), x, axis=1)

    def add(self, index: int) -> None:
        self.pattern.flat[index] = True
        self._splat(index, 1.0)

    def remove(self, index: int) -> None:
        self.pattern.flat[index] = False
        self._splat(index, -1.0)

    def tightest_cluster(self) -> int:
        return int(np.where(self.pattern, self.values, -np.inf).argmax())

    def largest_void(self) -> int:
        return int(np.where(self.pattern, np.inf, self.values).argmin())


def _initial_pattern(size: int, seed: int, kernel: np.ndarray) -> np.ndarray:
    rng = np.random.default_rng(seed)
    pattern = rng.random((size, size)) < INITIAL_DENSITY
    if not pattern.any():
        pattern.flat[0] = True

    energy = _Energy(pattern, kernel)
    for _ in range(size * size):
        cluster = energy.tightest_cluster()
        energy.remove(cluster)
        void = energy.largest_void()
        if void == cluster:
            energy.add(cluster)
            break
        energy.add(void)
    return energy.pattern


@lru_cache(maxsize=8)
def void_and_cluster_ranks(size: int = VOID_AND_CLUSTER_SIZE, seed: int = 0) -> np.ndarray:
    """Ulichney's void-and-cluster rank array with values ``0..size*size-1``."""
    kernel = gaussian_kernel(size)
    prototype = _initial_pattern(size, seed, kernel)
    ones = int(prototype.sum())
    total = size * size
    ranks = np.zeros(total, dtype=np.int32)

    energy = _Energy(prototype.copy(), kernel)
    for rank in range(ones - 1, -1, -1):
        cluster = energy.tightest_cluster()
        energy.remove(cluster)
        ranks[cluster] = rank

    energy = _Energy(prototype.copy(), kernel)
    for rank in range(ones, total):
        void = energy.largest_void()
        energy.add(void)
        ranks[void] = rank

    ranks = ranks.reshape(size, size)
    ranks.setflags(write=False)
    return ranks


@lru_cache(maxsize=8)
def blue_noise_ranks(size: int = BLUE_NOISE_SIZE, seed: int = 0) -> np.ndarray:
    """Mitchell best-candidate insertion order on a wrapping grid.

    Each step draws a handful of free cells and keeps the one farthest from
    every point placed so far; the insertion order is the rank.
    """
    rng = np.random.default_rng(seed)
    total = size * size
    ys, xs = np.divmod(np.arange(total), size)
    nearest = np.full(total, np.inf)
    free = np.ones(total, dtype=bool)
    ranks = np.zeros(total, dtype=np.int32)

    for rank in range(total):
        candidates = np.flatnonzero(free)
        if candidates.size > BLUE_NOISE_CANDIDATES:
            candidates = rng.choice(candidates, size=BLUE_NOISE_CANDIDATES, replace=False)
        chosen = int(candidates[np.argmax(nearest[candidates])])

        ranks[chosen] = rank
        free[chosen] = False
        dy = np.abs(ys - ys[chosen])
        dx = np.abs(xs - xs[chosen])
        dist2 = np.minimum(dy, size - dy) ** 2 + np.minimum(dx, size - dx) ** 2
        np.minimum(nearest, dist2, out=nearest)

    ranks = ranks.reshape(size, size)
    ranks.setflags(write=False)
    return ranks


def rank_thresholds(ranks: np.ndarray) -> np.ndarray:
    return (ranks.astype(np.float64) + 0.5) / ranks.size * 255.0


def threshold_array(plane: np.ndarray, ranks: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Compare ``plane`` against a tiled rank array; black below the threshold."""
    height, width = plane.shape
    size_y, size_x = ranks.shape
    limits = rank_thresholds(ranks)[
        (np.arange(height) % size_y)[:, None], (np.arange(width) % size_x)[None, :]
    ]
    return np.where(plane < limits + (threshold - 128.0), 0, 255).astype(np.uint8)
