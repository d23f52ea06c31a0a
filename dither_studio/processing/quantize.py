"""Algorithm dispatch for the quantization library.

``quantize`` reduces an image to the colors its color mode allows. Every
algorithm is expressed as a function from a luminance plane to a bilevel
plane (0 = black/ink, 255 = white/paper); the color modes decide which planes
are dithered and how the results are recombined.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from ..buffers import LUMA_WEIGHTS, GrayscaleBuffer, PixelBuffer
from ..config import SETTINGS, StudioSettings
from ..errors import CONVERGENCE_EXCEEDED, UnsupportedAlgorithm
from ..params import Algorithm, AlgorithmParams, ColorMode, MultiToneAlgorithm
from . import dither, noise, screens
from .dbs import direct_binary_search
from .enhance import contrast_factor
from .multitone import banded, tone_values
from .palette import combine_cmyk, map_to_palette, palette_levels, separate_cmyk, sorted_palette

logger = logging.getLogger(__name__)

Image = Union[PixelBuffer, GrayscaleBuffer]

RGB_ANGLE_OFFSETS = (0.0, 30.0, 60.0)
# cyan, magenta, yellow, black
CMYK_ANGLE_OFFSETS = (15.0, 75.0, 0.0, 45.0)


@dataclass
class QuantizeResult:
    pixels: PixelBuffer
    warnings: List[str] = field(default_factory=list)


@dataclass
class _Context:
    params: AlgorithmParams
    rng: np.random.Generator
    seed: int
    max_iterations: int
    warnings: List[str]

    def warn(self, warning: str) -> None:
        if warning not in self.warnings:
            self.warnings.append(warning)


PlaneFn = Callable[[np.ndarray, _Context, float], np.ndarray]


def _ordered(plane, ctx, angle):
    return screens.ordered(plane, ctx.params.dot_size, ctx.params.threshold)


def _halftone(plane, ctx, angle):
    params = ctx.params
    return screens.halftone(plane, params.dot_size, params.spacing, angle)


def _pattern(plane, ctx, angle):
    params = ctx.params
    return screens.pattern(
        plane, params.pattern_type, params.pattern_size, params.custom_pattern, params.threshold
    )


def _random(plane, ctx, angle):
    return dither.random_threshold(
        plane, ctx.rng, ctx.params.threshold, ctx.params.noise_amount
    )


def _void_and_cluster(plane, ctx, angle):
    ranks = noise.void_and_cluster_ranks(noise.VOID_AND_CLUSTER_SIZE, ctx.seed)
    return noise.threshold_array(plane, ranks, ctx.params.threshold)


def _blue_noise(plane, ctx, angle):
    ranks = noise.blue_noise_ranks(noise.BLUE_NOISE_SIZE, ctx.seed)
    return noise.threshold_array(plane, ranks, ctx.params.threshold)


def _riemersma(plane, ctx, angle):
    return dither.riemersma(plane, ctx.params.threshold)


def _direct_binary_search(plane, ctx, angle):
    result, converged = direct_binary_search(plane, ctx.max_iterations, ctx.params.threshold)
    if not converged:
        logger.warning(
            "Direct binary search stopped after %d passes without converging",
            ctx.max_iterations,
        )
        ctx.warn(CONVERGENCE_EXCEEDED)
    return result


def _diffuser(algorithm: Algorithm) -> PlaneFn:
    kernel = dither.KERNELS[algorithm]

    def run(plane, ctx, angle):
        return dither.error_diffusion(plane, kernel, ctx.params.threshold)

    return run


BILEVEL: dict = {
    Algorithm.ORDERED: _ordered,
    Algorithm.HALFTONE: _halftone,
    Algorithm.PATTERN: _pattern,
    Algorithm.RANDOM: _random,
    Algorithm.VOID_AND_CLUSTER: _void_and_cluster,
    Algorithm.BLUE_NOISE: _blue_noise,
    Algorithm.RIEMERSMA: _riemersma,
    Algorithm.DIRECT_BINARY_SEARCH: _direct_binary_search,
}
BILEVEL.update({algorithm: _diffuser(algorithm) for algorithm in dither.ERROR_DIFFUSION})

_MULTI_TONE_BANDS = {
    MultiToneAlgorithm.ORDERED: Algorithm.ORDERED,
    MultiToneAlgorithm.BLUE_NOISE: Algorithm.BLUE_NOISE,
    MultiToneAlgorithm.HALFTONE: Algorithm.HALFTONE,
}


def _leveled(plane: np.ndarray, levels: Sequence[float], algorithm: Algorithm, ctx: _Context, angle: float):
    """Indices into ``levels`` for a multi-level rendering of ``plane``."""
    params = ctx.params
    if algorithm is Algorithm.MULTI_TONE:
        if params.multi_tone_algorithm is MultiToneAlgorithm.ERROR_DIFFUSION:
            kernel = dither.KERNELS[Algorithm.FLOYD_STEINBERG]
            return dither.error_diffusion(plane, kernel, levels=levels).astype(np.intp)
        algorithm = _MULTI_TONE_BANDS[params.multi_tone_algorithm]
    if algorithm in dither.ERROR_DIFFUSION:
        return dither.error_diffusion(plane, dither.KERNELS[algorithm], levels=levels).astype(np.intp)
    bilevel = BILEVEL[algorithm]
    return banded(plane, levels, lambda fraction: bilevel(fraction, ctx, angle))


def _render_plane(plane: np.ndarray, algorithm: Algorithm, ctx: _Context, angle: float) -> np.ndarray:
    if algorithm is Algorithm.MULTI_TONE:
        params = ctx.params
        tones = tone_values(params.tone_levels, params.tone_distribution)
        indices = _leveled(plane, tones, algorithm, ctx, angle)
        return np.asarray(tones, dtype=np.uint8)[indices]
    return BILEVEL[algorithm](plane, ctx, angle)


def apply_contrast(rgb: np.ndarray, contrast: float) -> np.ndarray:
    """Stretch channels around mid-gray; ``contrast`` runs 0 (off) to 100."""
    if contrast <= 0:
        return rgb
    factor = contrast_factor(contrast / 100.0 * 255.0)
    values = factor * (rgb - 128.0) + 128.0
    return np.clip(np.rint(values), 0.0, 255.0)


def _luma(rgb: np.ndarray) -> np.ndarray:
    r_w, g_w, b_w = LUMA_WEIGHTS
    luma = r_w * rgb[..., 0] + g_w * rgb[..., 1] + b_w * rgb[..., 2]
    return np.clip(np.floor(luma + 0.5), 0.0, 255.0)


def _source_rgb(image: Image) -> np.ndarray:
    if isinstance(image, GrayscaleBuffer):
        gray = image.data.astype(np.float64)
        return np.repeat(gray[..., None], 3, axis=-1)
    return image.data[..., :3].astype(np.float64)


def _to_pixels(width: int, height: int, rgb: np.ndarray) -> PixelBuffer:
    out = np.empty((height, width, 4), dtype=np.uint8)
    out[..., :3] = rgb
    out[..., 3] = 255
    return PixelBuffer(width, height, out)


def quantize_result(
    image: Image,
    algorithm: Union[Algorithm, str],
    params: Optional[AlgorithmParams] = None,
    rng: Optional[np.random.Generator] = None,
    settings: StudioSettings = SETTINGS,
) -> QuantizeResult:
    algorithm = Algorithm.parse(algorithm)
    if algorithm is Algorithm.SELECTIVE:
        raise UnsupportedAlgorithm("selective is a compositing mode, not a quantizer")
    params = (params or AlgorithmParams()).validate()

    seed = params.seed if params.seed is not None else settings.dither_seed
    ctx = _Context(
        params=params,
        rng=rng if rng is not None else np.random.default_rng(seed),
        seed=seed,
        max_iterations=params.max_iterations or settings.dbs_max_iterations,
        warnings=[],
    )

    rgb = apply_contrast(_source_rgb(image), params.contrast)
    mode = params.color_mode

    if mode is ColorMode.BW:
        plane = _render_plane(_luma(rgb), algorithm, ctx, params.angle)
        result = np.repeat(plane[..., None], 3, axis=-1)
    elif mode is ColorMode.RGB:
        channels = [
            _render_plane(rgb[..., channel], algorithm, ctx, params.angle + offset)
            for channel, offset in enumerate(RGB_ANGLE_OFFSETS)
        ]
        result = np.stack(channels, axis=-1)
    elif mode is ColorMode.CMYK:
        inks = separate_cmyk(rgb.astype(np.uint8))
        coverage = [
            255 - _render_plane(
                255.0 - ink.astype(np.float64), algorithm, ctx, params.angle + offset
            ).astype(np.int16)
            for ink, offset in zip(inks, CMYK_ANGLE_OFFSETS)
        ]
        result = combine_cmyk(*coverage)
    else:
        palette = sorted_palette(params.custom_colors)
        levels = palette_levels(palette)
        indices = _leveled(_luma(rgb), levels, algorithm, ctx, params.angle)
        result = map_to_palette(indices, palette)

    pixels = _to_pixels(image.width, image.height, result.astype(np.uint8))
    return QuantizeResult(pixels=pixels, warnings=ctx.warnings)


def quantize(
    image: Image,
    algorithm: Union[Algorithm, str],
    params: Optional[AlgorithmParams] = None,
    rng: Optional[np.random.Generator] = None,
    settings: StudioSettings = SETTINGS,
) -> PixelBuffer:
    return quantize_result(image, algorithm, params, rng, settings=settings).pixels
