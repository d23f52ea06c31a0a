from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Union

import numpy as np
from scipy import ndimage

from ..buffers import GrayscaleBuffer, PixelBuffer

# 4-connected neighbourhood
FOUR_CONNECTED = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=int)


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive pixel bounds of one detected component."""

    x1: int
    y1: int
    x2: int
    y2: int
    pixel_count: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1 + 1

    @property
    def height(self) -> int:
        return self.y2 - self.y1 + 1

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """3x3 Sobel gradient magnitude, with the image border reflected outward."""
    values = gray.astype(np.float64)
    gx = ndimage.sobel(values, axis=1, mode="reflect")
    gy = ndimage.sobel(values, axis=0, mode="reflect")
    return np.hypot(gx, gy)


def edge_map(gray: np.ndarray, sensitivity: float) -> np.ndarray:
    return sobel_magnitude(gray) > sensitivity


def detect_regions(
    image: Union[GrayscaleBuffer, PixelBuffer],
    sensitivity: float = 30,
    min_size: int = 500,
) -> List[BoundingBox]:
    """Bounding boxes of the edge-free areas of ``image``.

    Pixels whose gradient magnitude exceeds ``sensitivity`` act as walls; the
    remaining pixels are grouped 4-connectedly and groups with at least
    ``min_size`` pixels are reported in row-major discovery order.
    """
    gray = image.to_grayscale() if isinstance(image, PixelBuffer) else image
    labels, count = ndimage.label(~edge_map(gray.data, sensitivity), structure=FOUR_CONNECTED)
    if count == 0:
        return []

    flat = labels.ravel()
    sizes = np.bincount(flat, minlength=count + 1)
    first_seen = np.full(count + 1, flat.size, dtype=np.int64)
    np.minimum.at(first_seen, flat, np.arange(flat.size))

    boxes: List[BoundingBox] = []
    for label, bounds in sorted(
        enumerate(ndimage.find_objects(labels), start=1), key=lambda item: first_seen[item[0]]
    ):
        if bounds is None or sizes[label] < min_size:
            continue
        rows, cols = bounds
        boxes.append(
            BoundingBox(
                int(cols.start), int(rows.start), int(cols.stop - 1), int(rows.stop - 1),
                int(sizes[label]),
            )
        )
    return boxes
