from __future__ import annotations

import math
from typing import Callable, List, Sequence

import numpy as np

from ..params import ToneDistribution

BilevelFn = Callable[[np.ndarray], np.ndarray]


def _spacing(position: float, distribution: ToneDistribution) -> float:
    if distribution is ToneDistribution.LOGARITHMIC:
        return math.log(1.0 + 9.0 * position) / math.log(10.0)
    if distribution is ToneDistribution.EXPONENTIAL:
        return (10.0 ** position - 1.0) / 9.0
    return position


def tone_values(levels: int, distribution: ToneDistribution = ToneDistribution.LINEAR) -> List[int]:
    """Output grays from black to white, ``levels`` of them."""
    last = levels - 1
    return [int(round(_spacing(index / last, distribution) * 255.0)) for index in range(levels)]


def banded(plane: np.ndarray, levels: Sequence[float], bilevel: BilevelFn) -> np.ndarray:
    """Dither between the two levels that bracket each pixel.

    The pixel's position inside its band is stretched to 0..255 and handed to
    a bilevel dither; a white result picks the upper level. Returns indices
    into ``levels``.
    """
    table = np.asarray(levels, dtype=np.float64)
    top = len(table) - 2
    band = np.clip(np.searchsorted(table, plane, side="right") - 1, 0, top)
    low = table[band]
    high = table[band + 1]
    span = high - low
    position = np.divide(plane - low, span, out=np.ones_like(low), where=span > 0)
    fraction = np.clip(position, 0.0, 1.0) * 255.0
    upper = bilevel(fraction) == 255
    return (band + upper).astype(np.intp)
