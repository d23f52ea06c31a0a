"""Region geometry in normalized image coordinates.

Each shape only carries the fields it needs; a region pairs a shape with the
algorithm that should be used inside it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import InvalidRegionGeometry
from .params import Algorithm, AlgorithmParams

MAX_FEATHER = 0.5


@dataclass(frozen=True)
class Circle:
    center_x: float
    center_y: float
    radius: float

    kind = "circle"

    def validate(self) -> None:
        if self.radius <= 0:
            raise InvalidRegionGeometry(f"Circle radius must be positive, got {self.radius}")


@dataclass(frozen=True)
class Rectangle:
    x1: float
    y1: float
    x2: float
    y2: float

    kind = "rectangle"

    def validate(self) -> None:
        if self.x1 == self.x2 or self.y1 == self.y2:
            raise InvalidRegionGeometry("Rectangle must have a non-zero width and height")


@dataclass(frozen=True)
class Polygon:
    vertices: Tuple[Tuple[float, float], ...]

    kind = "polygon"

    def validate(self) -> None:
        if len(self.vertices) < 3:
            raise InvalidRegionGeometry(
                f"Polygon needs at least 3 vertices, got {len(self.vertices)}"
            )


Geometry = Union[Circle, Rectangle, Polygon]


@dataclass(frozen=True)
class MaskRegion:
    geometry: Geometry
    algorithm: Algorithm
    feather: float = 0.0
    params: Optional[AlgorithmParams] = None

    def validate(self) -> "MaskRegion":
        self.geometry.validate()
        if not 0 <= self.feather <= MAX_FEATHER:
            raise InvalidRegionGeometry(
                f"Feather must be within 0..{MAX_FEATHER}, got {self.feather}"
            )
        return self

    def resolved_params(self, default: AlgorithmParams) -> AlgorithmParams:
        return self.params if self.params is not None else default

    @classmethod
    def from_mapping(
        cls, payload: Mapping[str, Any], base_params: Optional[AlgorithmParams] = None
    ) -> "MaskRegion":
        """Build a region from the host's wire format.

        ``{"type": "circle", "centerX": .5, "centerY": .5, "radius": .2,
        "feather": .1, "algorithm": "atkinson", "params": {...}}``
        """
        shape = str(payload.get("type", "")).lower()
        try:
            if shape == "circle":
                geometry: Geometry = Circle(
                    float(payload["centerX"]), float(payload["centerY"]), float(payload["radius"])
                )
            elif shape == "rectangle":
                geometry = Rectangle(
                    float(payload["x1"]),
                    float(payload["y1"]),
                    float(payload["x2"]),
                    float(payload["y2"]),
                )
            elif shape == "polygon":
                geometry = Polygon(
                    tuple((float(x), float(y)) for x, y in payload["vertices"])
                )
            else:
                raise InvalidRegionGeometry(f"Unknown region type: {shape or None!r}")
            feather = float(payload.get("feather", 0.0))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidRegionGeometry(f"Malformed {shape or 'region'} geometry: {exc}") from None

        overrides = payload.get("params")
        params = None
        if overrides:
            params = AlgorithmParams.from_mapping(overrides, base=base_params)

        algorithm = Algorithm.parse(payload.get("algorithm", Algorithm.ORDERED.value))
        return cls(geometry=geometry, algorithm=algorithm, feather=feather, params=params).validate()


class RegionSequence:
    """Ordered region list; index 0 is drawn first, the last entry on top."""

    def __init__(self, regions: Sequence[MaskRegion] = ()) -> None:
        self._regions: List[MaskRegion] = list(regions)

    def __iter__(self) -> Iterator[MaskRegion]:
        return iter(list(self._regions))

    def __len__(self) -> int:
        return len(self._regions)

    def __getitem__(self, index: int) -> MaskRegion:
        return self._regions[index]

    def add(self, region: MaskRegion) -> int:
        self._regions.append(region)
        return len(self._regions) - 1

    def remove(self, index: int) -> MaskRegion:
        return self._regions.pop(index)

    def replace(self, index: int, region: MaskRegion) -> None:
        self._regions[index] = region

    def swap(self, first: int, second: int) -> None:
        regions = self._regions
        regions[first], regions[second] = regions[second], regions[first]

    def move_up(self, index: int) -> int:
        """Move a region one step earlier (further down the stack)."""
        if index <= 0 or index >= len(self._regions):
            return index
        self.swap(index, index - 1)
        return index - 1

    def move_down(self, index: int) -> int:
        """Move a region one step later (closer to the top)."""
        if index < 0 or index >= len(self._regions) - 1:
            return index
        self.swap(index, index + 1)
        return index + 1

    def clear(self) -> None:
        self._regions.clear()

    def as_tuple(self) -> Tuple[MaskRegion, ...]:
        return tuple(self._regions)
