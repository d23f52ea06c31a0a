"""Request-scoped parameter objects.

Everything the host used to keep in global editor state is passed into the
core as one of these frozen values, so a request never depends on anything
but its own arguments.
"""

import math
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .errors import InvalidAdjustment, InvalidParameter, UnsupportedAlgorithm


class Algorithm(str, Enum):
    ORDERED = "ordered"
    FLOYD_STEINBERG = "floydSteinberg"
    ATKINSON = "atkinson"
    HALFTONE = "halftone"
    JARVIS_JUDICE_NINKE = "jarvisJudiceNinke"
    STUCKI = "stucki"
    BURKES = "burkes"
    SIERRA_LITE = "sierraLite"
    RANDOM = "random"
    VOID_AND_CLUSTER = "voidAndCluster"
    BLUE_NOISE = "blueNoise"
    RIEMERSMA = "riemersma"
    DIRECT_BINARY_SEARCH = "directBinarySearch"
    PATTERN = "pattern"
    MULTI_TONE = "multiTone"
    SELECTIVE = "selective"

    @classmethod
    def parse(cls, value: Any) -> "Algorithm":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            raise UnsupportedAlgorithm(f"Unknown dithering algorithm: {value!r}") from None


class ColorMode(str, Enum):
    BW = "bw"
    CMYK = "cmyk"
    RGB = "rgb"
    CUSTOM = "custom"


class PatternType(str, Enum):
    DOTS = "dots"
    LINES = "lines"
    CROSSES = "crosses"
    DIAMONDS = "diamonds"
    WAVES = "waves"
    BRICKS = "bricks"
    CHECKER = "checker"
    CUSTOM = "custom"


class ToneDistribution(str, Enum):
    LINEAR = "linear"
    LOGARITHMIC = "logarithmic"
    EXPONENTIAL = "exponential"


class MultiToneAlgorithm(str, Enum):
    ORDERED = "ordered"
    ERROR_DIFFUSION = "errorDiffusion"
    BLUE_NOISE = "blueNoise"
    HALFTONE = "halftone"


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _enum(enum_cls) -> Callable[[Any], Enum]:
    def convert(value: Any) -> Enum:
        return enum_cls(value if isinstance(value, enum_cls) else str(value))

    return convert


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None or value == "" else int(value)


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _colors(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]
    return tuple(str(color).strip() for color in value)


def _matrix(value: Any) -> Optional[Tuple[Tuple[float, ...], ...]]:
    if value is None:
        return None
    return tuple(tuple(float(cell) for cell in row) for row in value)


def _coerce_fields(
    target_cls,
    converters: Mapping[str, Callable[[Any], Any]],
    aliases: Mapping[str, str],
    payload: Mapping[str, Any],
    error_cls,
) -> Dict[str, Any]:
    known = {field.name for field in fields(target_cls)}
    applied: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for raw_key, raw_value in payload.items():
        name = aliases.get(raw_key, snake_case(raw_key))
        if name not in known:
            continue
        try:
            applied[name] = converters[name](raw_value)
        except (TypeError, ValueError):
            errors[name] = f"Invalid value {raw_value!r}"

    if errors:
        detail = ", ".join(f"{name}: {message}" for name, message in sorted(errors.items()))
        raise error_cls(detail)
    return applied


@dataclass(frozen=True)
class AdjustmentParams:
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    hue: float = 0.0
    lightness: float = 0.0
    gamma: float = 1.0
    sharpness: float = 0.0
    blur: float = 0.0
    invert: bool = False

    @property
    def is_neutral(self) -> bool:
        return self == AdjustmentParams()

    def validate(self) -> "AdjustmentParams":
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, float) and not math.isfinite(value):
                raise InvalidAdjustment(f"{field.name} must be a finite number, got {value}")
        for name in ("brightness", "contrast", "saturation", "lightness"):
            value = getattr(self, name)
            if not -100 <= value <= 100:
                raise InvalidAdjustment(f"{name} must be within -100..100, got {value}")
        if not -180 <= self.hue <= 180:
            raise InvalidAdjustment(f"hue must be within -180..180, got {self.hue}")
        if self.gamma <= 0:
            raise InvalidAdjustment(f"gamma must be positive, got {self.gamma}")
        if not 0 <= self.sharpness <= 100:
            raise InvalidAdjustment(f"sharpness must be within 0..100, got {self.sharpness}")
        if self.blur < 0:
            raise InvalidAdjustment(f"blur radius must not be negative, got {self.blur}")
        return self

    @classmethod
    def from_mapping(
        cls, payload: Optional[Mapping[str, Any]], base: Optional["AdjustmentParams"] = None
    ) -> "AdjustmentParams":
        applied = _coerce_fields(
            cls, _ADJUSTMENT_CONVERTERS, _ADJUSTMENT_ALIASES, payload or {}, InvalidAdjustment
        )
        return replace(base or cls(), **applied).validate()


_ADJUSTMENT_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "brightness": float,
    "contrast": float,
    "saturation": float,
    "hue": float,
    "lightness": float,
    "gamma": float,
    "sharpness": float,
    "blur": float,
    "invert": _bool,
}

_ADJUSTMENT_ALIASES = {
    "gammaCorrection": "gamma",
    "blurRadius": "blur",
}


@dataclass(frozen=True)
class AlgorithmParams:
    dot_size: int = 3
    contrast: float = 0.0
    color_mode: ColorMode = ColorMode.BW
    spacing: int = 5
    angle: float = 45.0
    custom_colors: Tuple[str, ...] = ("#000000", "#ffffff")
    pattern_type: PatternType = PatternType.DOTS
    pattern_size: int = 4
    custom_pattern: Optional[Tuple[Tuple[float, ...], ...]] = None
    tone_levels: int = 4
    tone_distribution: ToneDistribution = ToneDistribution.LINEAR
    multi_tone_algorithm: MultiToneAlgorithm = MultiToneAlgorithm.ORDERED
    threshold: int = 128
    noise_amount: float = 50.0
    seed: Optional[int] = None
    max_iterations: Optional[int] = None

    def validate(self) -> "AlgorithmParams":
        for name in ("contrast", "angle", "noise_amount"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidParameter(f"{name} must be a finite number, got {value}")
        if self.dot_size < 1:
            raise InvalidParameter(f"dot_size must be at least 1, got {self.dot_size}")
        if self.spacing < 0:
            raise InvalidParameter(f"spacing must not be negative, got {self.spacing}")
        if self.pattern_size < 1:
            raise InvalidParameter(f"pattern_size must be at least 1, got {self.pattern_size}")
        if self.tone_levels < 2:
            raise InvalidParameter(f"tone_levels must be at least 2, got {self.tone_levels}")
        if not 0 <= self.contrast <= 100:
            raise InvalidParameter(f"contrast must be within 0..100, got {self.contrast}")
        if not 0 <= self.threshold <= 255:
            raise InvalidParameter(f"threshold must be within 0..255, got {self.threshold}")
        if self.noise_amount < 0:
            raise InvalidParameter(f"noise_amount must not be negative, got {self.noise_amount}")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise InvalidParameter(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.custom_pattern is not None:
            widths = {len(row) for row in self.custom_pattern}
            if not self.custom_pattern or len(widths) != 1 or 0 in widths:
                raise InvalidParameter("custom_pattern must be a non-empty rectangular matrix")
            if not all(math.isfinite(cell) for row in self.custom_pattern for cell in row):
                raise InvalidParameter("custom_pattern cells must be finite numbers")
        return self

    @classmethod
    def from_mapping(
        cls, payload: Optional[Mapping[str, Any]], base: Optional["AlgorithmParams"] = None
    ) -> "AlgorithmParams":
        applied = _coerce_fields(
            cls, _ALGORITHM_CONVERTERS, _ALGORITHM_ALIASES, payload or {}, InvalidParameter
        )
        return replace(base or cls(), **applied).validate()

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = [list(row) if isinstance(row, tuple) else row for row in value]
            result[field.name] = value
        return result


_ALGORITHM_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "dot_size": int,
    "contrast": float,
    "color_mode": _enum(ColorMode),
    "spacing": int,
    "angle": float,
    "custom_colors": _colors,
    "pattern_type": _enum(PatternType),
    "pattern_size": int,
    "custom_pattern": _matrix,
    "tone_levels": int,
    "tone_distribution": _enum(ToneDistribution),
    "multi_tone_algorithm": _enum(MultiToneAlgorithm),
    "threshold": int,
    "noise_amount": float,
    "seed": _optional_int,
    "max_iterations": _optional_int,
}

_ALGORITHM_ALIASES = {
    "toneLevel": "tone_levels",
}
