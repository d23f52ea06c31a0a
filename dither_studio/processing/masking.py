from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from ..errors import InvalidDimensions
from ..geometry import Circle, MaskRegion, Polygon, Rectangle


def _grid(width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    ys, xs = np.mgrid[0:height, 0:width]
    return xs.astype(np.float64), ys.astype(np.float64)


def _inward_ramp(distance: np.ndarray, band: float) -> np.ndarray:
    """1 at ``band`` pixels or more inside the edge, falling to 0 on the edge."""
    if band <= 0:
        return np.ones_like(distance)
    return np.clip(distance / band, 0.0, 1.0)


def _circle(shape: Circle, feather: float, width: int, height: int) -> np.ndarray:
    xs, ys = _grid(width, height)
    center_x = math.floor(shape.center_x * width)
    center_y = math.floor(shape.center_y * height)
    radius = math.floor(shape.radius * min(width, height))
    distance = np.hypot(xs - center_x, ys - center_y)
    inside = distance <= radius
    # the feather band is a fraction of the radius
    ramp = _inward_ramp(radius - distance, math.floor(radius * feather))
    return np.where(inside, ramp, 0.0)


def _rectangle(shape: Rectangle, feather: float, width: int, height: int) -> np.ndarray:
    xs, ys = _grid(width, height)
    left, right = sorted((math.floor(shape.x1 * width), math.floor(shape.x2 * width)))
    top, bottom = sorted((math.floor(shape.y1 * height), math.floor(shape.y2 * height)))
    inside = (xs >= left) & (xs <= right) & (ys >= top) & (ys <= bottom)
    edge = np.minimum.reduce([xs - left, right - xs, ys - top, bottom - ys])
    ramp = _inward_ramp(edge, math.floor(feather * min(width, height)))
    return np.where(inside, ramp, 0.0)


def _polygon(shape: Polygon, feather: float, width: int, height: int) -> np.ndarray:
    xs, ys = _grid(width, height)
    points = [(math.floor(vx * width), math.floor(vy * height)) for vx, vy in shape.vertices]
    inside = np.zeros((height, width), dtype=bool)
    nearest = np.full((height, width), np.inf)

    for index, (ax, ay) in enumerate(points):
        bx, by = points[index - 1]
        # even-odd rule
        crosses = (ay > ys) != (by > ys)
        with np.errstate(divide="ignore", invalid="ignore"):
            at_x = (bx - ax) * (ys - ay) / (by - ay) + ax
        inside ^= crosses & (xs < at_x)

        dx, dy = bx - ax, by - ay
        length2 = dx * dx + dy * dy
        if length2 == 0:
            t = np.zeros_like(xs)
        else:
            t = np.clip(((xs - ax) * dx + (ys - ay) * dy) / length2, 0.0, 1.0)
        distance = np.hypot(xs - (ax + t * dx), ys - (ay + t * dy))
        np.minimum(nearest, distance, out=nearest)

    ramp = _inward_ramp(nearest, math.floor(feather * min(width, height)))
    return np.where(inside, ramp, 0.0)


_RASTERIZERS = {
    Circle: _circle,
    Rectangle: _rectangle,
    Polygon: _polygon,
}


def rasterize(region: MaskRegion, width: int, height: int) -> np.ndarray:
    """Coverage weights for ``region`` as a ``(height, width)`` uint8 array.

    255 is fully inside, 0 is outside, and the feather band ramps linearly
    between them moving inward from the edge.
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Mask must have a positive size, got {width}x{height}")
    region.validate()
    shape = region.geometry
    coverage = _RASTERIZERS[type(shape)](shape, region.feather, width, height)
    return np.floor(coverage * 255.0).astype(np.uint8)
