from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from ..buffers import PixelBuffer
from ..config import SETTINGS, StudioSettings
from ..errors import InvalidDimensions
from ..geometry import MaskRegion
from ..params import AdjustmentParams, Algorithm, AlgorithmParams
from .enhance import adjust
from .masking import rasterize
from .quantize import QuantizeResult, quantize_result

logger = logging.getLogger(__name__)

SELECTIVE_BASE = Algorithm.ORDERED


@dataclass(frozen=True)
class SelectiveLayer:
    mask: np.ndarray
    algorithm: Algorithm
    params: Optional[AlgorithmParams] = None


def blend(candidate: np.ndarray, accumulated: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Integer alpha blend; a weight of 255 reproduces ``candidate`` exactly."""
    weight = mask.astype(np.int32)[..., None]
    mixed = (
        candidate.astype(np.int32) * weight
        + accumulated.astype(np.int32) * (255 - weight)
        + 127
    ) // 255
    return mixed.astype(np.uint8)


def composite_layers(
    image: PixelBuffer,
    layers: Sequence[SelectiveLayer],
    default_algorithm: Union[Algorithm, str],
    default_params: Optional[AlgorithmParams] = None,
    workers: Optional[int] = None,
    settings: StudioSettings = SETTINGS,
) -> QuantizeResult:
    """Blend per-layer quantizations over a base rendering, in layer order."""
    default_params = default_params or AlgorithmParams()
    for layer in layers:
        if layer.mask.shape != (image.height, image.width):
            raise InvalidDimensions(
                f"Mask shape {layer.mask.shape} does not match {image.width}x{image.height} image"
            )

    base = quantize_result(image, default_algorithm, default_params, settings=settings)
    warnings: List[str] = list(base.warnings)
    if not layers:
        return base

    def render(layer: SelectiveLayer) -> QuantizeResult:
        return quantize_result(
            image, layer.algorithm, layer.params or default_params, settings=settings
        )

    max_workers = max(1, min(workers or settings.region_workers, len(layers)))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        candidates = list(pool.map(render, layers))

    accumulated = base.pixels.data[..., :3]
    for layer, candidate in zip(layers, candidates):
        logger.debug(
            "Blending %s layer over %d masked pixels",
            layer.algorithm.value,
            int(np.count_nonzero(layer.mask)),
        )
        accumulated = blend(candidate.pixels.data[..., :3], accumulated, layer.mask)
        for warning in candidate.warnings:
            if warning not in warnings:
                warnings.append(warning)

    out = np.empty((image.height, image.width, 4), dtype=np.uint8)
    out[..., :3] = accumulated
    out[..., 3] = 255
    return QuantizeResult(PixelBuffer(image.width, image.height, out), warnings)


def build_layers(regions: Iterable[MaskRegion], width: int, height: int) -> List[SelectiveLayer]:
    return [
        SelectiveLayer(rasterize(region, width, height), region.algorithm, region.params)
        for region in regions
    ]


def composite_selective(
    image: PixelBuffer,
    regions: Iterable[MaskRegion],
    default_algorithm: Union[Algorithm, str],
    default_params: Optional[AlgorithmParams] = None,
    workers: Optional[int] = None,
    settings: StudioSettings = SETTINGS,
) -> QuantizeResult:
    layers = build_layers(regions, image.width, image.height)
    return composite_layers(image, layers, default_algorithm, default_params, workers, settings)


def process_image(
    pixels: PixelBuffer,
    algorithm: Union[Algorithm, str],
    params: Optional[AlgorithmParams] = None,
    adjustments: Optional[AdjustmentParams] = None,
    regions: Sequence[MaskRegion] = (),
    settings: StudioSettings = SETTINGS,
) -> QuantizeResult:
    """Adjust ``pixels`` and quantize them, compositing regions for ``selective``."""
    algorithm = Algorithm.parse(algorithm)
    adjusted = adjust(pixels, adjustments)
    if algorithm is Algorithm.SELECTIVE:
        return composite_selective(adjusted, regions, SELECTIVE_BASE, params, settings=settings)
    return quantize_result(adjusted, algorithm, params, settings=settings)
