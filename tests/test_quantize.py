from dataclasses import replace

import numpy as np
import pytest

from dither_studio.buffers import GrayscaleBuffer, PixelBuffer
from dither_studio.config import SETTINGS
from dither_studio.errors import (
    CONVERGENCE_EXCEEDED,
    InvalidPalette,
    UnsupportedAlgorithm,
)
from dither_studio.params import (
    Algorithm,
    AlgorithmParams,
    ColorMode,
    MultiToneAlgorithm,
    PatternType,
    ToneDistribution,
)
from dither_studio.processing import dither, noise
from dither_studio.processing.multitone import tone_values
from dither_studio.processing.quantize import quantize, quantize_result
from dither_studio.processing.screens import pattern_matrix

BILEVEL_ALGORITHMS = [
    algorithm
    for algorithm in Algorithm
    if algorithm not in (Algorithm.SELECTIVE, Algorithm.MULTI_TONE)
]


def _gradient(width=24, height=16):
    xs = np.linspace(0, 255, width)
    gray = np.tile(xs, (height, 1))
    data = np.empty((height, width, 4), dtype=np.uint8)
    data[..., :3] = np.rint(gray)[..., None]
    data[..., 3] = 255
    return PixelBuffer(width, height, data)


def _colorful(width=20, height=14, seed=11):
    rng = np.random.default_rng(seed)
    data = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    data[..., 3] = 255
    return PixelBuffer(width, height, data)


def _uniform_gray(value, width=64, height=64):
    return GrayscaleBuffer(width, height, np.full((height, width), value, dtype=np.uint8))


@pytest.mark.parametrize("algorithm", BILEVEL_ALGORITHMS)
def test_bw_output_is_bilevel_and_keeps_dimensions(algorithm):
    source = _gradient()

    result = quantize(source, algorithm, AlgorithmParams(max_iterations=2))

    assert result.size == source.size
    assert set(np.unique(result.data[..., :3]).tolist()) <= {0, 255}
    assert np.all(result.data[..., 3] == 255)
    assert np.array_equal(result.data[..., 0], result.data[..., 1])


@pytest.mark.parametrize("algorithm", BILEVEL_ALGORITHMS)
def test_rgb_mode_dithers_every_channel_to_bilevel(algorithm):
    source = _colorful()

    result = quantize(
        source, algorithm, AlgorithmParams(color_mode=ColorMode.RGB, max_iterations=1)
    )

    assert result.size == source.size
    assert set(np.unique(result.data[..., :3]).tolist()) <= {0, 255}


def test_floyd_steinberg_mid_gray_averages_half_coverage():
    result = quantize(_uniform_gray(128), Algorithm.FLOYD_STEINBERG)

    white_share = (result.data[..., 0] == 255).mean()

    assert abs(white_share - 0.5) < 0.02


@pytest.mark.parametrize(
    "algorithm",
    [
        Algorithm.ORDERED,
        Algorithm.FLOYD_STEINBERG,
        Algorithm.ATKINSON,
        Algorithm.STUCKI,
        Algorithm.VOID_AND_CLUSTER,
        Algorithm.BLUE_NOISE,
        Algorithm.RIEMERSMA,
    ],
)
def test_solid_black_and_white_stay_solid(algorithm):
    black = quantize(_uniform_gray(0, 16, 16), algorithm)
    white = quantize(_uniform_gray(255, 16, 16), algorithm)

    assert np.all(black.data[..., :3] == 0)
    assert np.all(white.data[..., :3] == 255)


def test_ordered_matches_scaled_bayer_matrix():
    source = _uniform_gray(100, 4, 4)

    result = quantize(source, Algorithm.ORDERED, AlgorithmParams(dot_size=1))

    # floor(v / 16 * 255) below 100 for v in 0..6
    expected = np.array(
        [[1, 0, 1, 0], [0, 1, 0, 1], [1, 0, 1, 0], [0, 0, 0, 1]], dtype=bool
    )
    assert np.array_equal(result.data[..., 0] == 255, expected)


def test_threshold_biases_the_decision_point():
    light = quantize(_uniform_gray(128, 32, 32), Algorithm.ORDERED, AlgorithmParams(threshold=64))
    dark = quantize(_uniform_gray(128, 32, 32), Algorithm.ORDERED, AlgorithmParams(threshold=192))

    assert (light.data[..., 0] == 255).mean() > (dark.data[..., 0] == 255).mean()


def test_random_dither_is_reproducible_for_a_seed():
    params = AlgorithmParams(seed=42)

    first = quantize(_gradient(), Algorithm.RANDOM, params)
    second = quantize(_gradient(), Algorithm.RANDOM, params)

    assert np.array_equal(first.data, second.data)


def test_random_dither_accepts_an_injected_generator():
    generator = np.random.default_rng(7)

    result = quantize(_gradient(), Algorithm.RANDOM, AlgorithmParams(noise_amount=0), rng=generator)

    expected = np.where(_gradient().data[..., 0] < 128, 0, 255)
    assert np.array_equal(result.data[..., 0], expected)


def test_selective_is_not_a_quantizer():
    with pytest.raises(UnsupportedAlgorithm):
        quantize(_gradient(), Algorithm.SELECTIVE)


def test_unknown_algorithm_tag_is_rejected():
    with pytest.raises(UnsupportedAlgorithm):
        quantize(_gradient(), "crayon")


@pytest.mark.parametrize("colors", [("#000000",), ("#000000", "not-a-color")])
def test_custom_mode_needs_a_valid_palette(colors):
    params = AlgorithmParams(color_mode=ColorMode.CUSTOM, custom_colors=colors)

    with pytest.raises(InvalidPalette):
        quantize(_gradient(), Algorithm.ORDERED, params)


@pytest.mark.parametrize(
    "algorithm", [Algorithm.ORDERED, Algorithm.ATKINSON, Algorithm.HALFTONE, Algorithm.MULTI_TONE]
)
def test_custom_mode_only_uses_palette_colors(algorithm):
    palette = ("#ffffff", "#203040", "#c04020")
    params = AlgorithmParams(color_mode=ColorMode.CUSTOM, custom_colors=palette)

    result = quantize(_gradient(), algorithm, params)

    used = {tuple(color) for color in result.data[..., :3].reshape(-1, 3).tolist()}
    assert used <= {(255, 255, 255), (32, 48, 64), (192, 64, 32)}
    assert len(used) >= 2


def test_cmyk_mode_recombines_to_rgb_corners():
    corners = {
        (r, g, b) for r in (0, 255) for g in (0, 255) for b in (0, 255)
    }

    result = quantize(_colorful(), Algorithm.HALFTONE, AlgorithmParams(color_mode=ColorMode.CMYK))

    used = {tuple(color) for color in result.data[..., :3].reshape(-1, 3).tolist()}
    assert used <= corners


def test_cmyk_black_ink_wins():
    black = PixelBuffer.blank(8, 8, (0, 0, 0, 255))

    result = quantize(black, Algorithm.ORDERED, AlgorithmParams(color_mode=ColorMode.CMYK))

    assert np.all(result.data[..., :3] == 0)


@pytest.mark.parametrize("strategy", list(MultiToneAlgorithm))
def test_multi_tone_outputs_only_tone_levels(strategy):
    params = AlgorithmParams(tone_levels=4, multi_tone_algorithm=strategy)

    result = quantize(_gradient(48, 8), Algorithm.MULTI_TONE, params)

    assert set(np.unique(result.data[..., 0]).tolist()) <= {0, 85, 170, 255}


@pytest.mark.parametrize(
    "distribution, expected",
    [
        (ToneDistribution.LINEAR, [0, 85, 170, 255]),
        (ToneDistribution.LOGARITHMIC, [0, 154, 216, 255]),
        (ToneDistribution.EXPONENTIAL, [0, 33, 103, 255]),
    ],
)
def test_tone_values_follow_the_distribution(distribution, expected):
    assert tone_values(4, distribution) == expected


def test_direct_binary_search_reports_cap():
    result = quantize_result(
        _gradient(16, 16), Algorithm.DIRECT_BINARY_SEARCH, AlgorithmParams(max_iterations=1)
    )

    assert result.warnings == [CONVERGENCE_EXCEEDED]
    assert set(np.unique(result.pixels.data[..., :3]).tolist()) <= {0, 255}


def test_direct_binary_search_converges_on_flat_input():
    result = quantize_result(_uniform_gray(0, 8, 8), Algorithm.DIRECT_BINARY_SEARCH)

    assert result.warnings == []


def test_contrast_pushes_gray_towards_the_extremes():
    source = _uniform_gray(140, 8, 8)

    flat = quantize(source, Algorithm.ORDERED)
    boosted = quantize(source, Algorithm.ORDERED, AlgorithmParams(contrast=80))

    assert (boosted.data[..., 0] == 255).mean() > (flat.data[..., 0] == 255).mean()


@pytest.mark.parametrize("algorithm", sorted(dither.KERNELS, key=lambda a: a.value))
def test_diffusion_kernel_weights(algorithm):
    total = sum(weight for _, _, weight in dither.KERNELS[algorithm])

    # Atkinson deliberately drops a quarter of the error
    expected = 0.75 if algorithm is Algorithm.ATKINSON else 1.0
    assert total == pytest.approx(expected)


def test_hilbert_path_visits_every_pixel_once():
    path = list(dither.hilbert_path(5, 3))

    assert len(path) == 15
    assert set(path) == {(x, y) for x in range(5) for y in range(3)}


def test_riemersma_weights_span_a_sixteenth_to_one():
    weights = dither.riemersma_weights()

    assert len(weights) == 16
    assert weights[0] == pytest.approx(1 / 16)
    assert weights[-1] == pytest.approx(1.0)


def test_void_and_cluster_ranks_are_a_permutation():
    ranks = noise.void_and_cluster_ranks(16, 5)

    assert sorted(ranks.ravel().tolist()) == list(range(256))
    assert not ranks.flags.writeable


def test_blue_noise_ranks_are_a_permutation():
    ranks = noise.blue_noise_ranks(16, 5)

    assert sorted(ranks.ravel().tolist()) == list(range(256))


@pytest.mark.parametrize("pattern_type", list(PatternType))
def test_pattern_matrices_stay_in_unit_range(pattern_type):
    stamp = pattern_matrix(pattern_type, 6)

    assert stamp.shape == (6, 6)
    assert stamp.min() >= 0.0
    assert stamp.max() <= 1.0


def test_custom_pattern_matrix_is_used_verbatim():
    custom = ((0.0, 1.0), (1.0, 0.0))

    stamp = pattern_matrix(PatternType.CUSTOM, 4, custom)

    assert stamp.tolist() == [[0.0, 1.0], [1.0, 0.0]]


def test_settings_supply_the_default_pass_cap():
    settings = replace(SETTINGS, dbs_max_iterations=1)

    result = quantize_result(
        _gradient(16, 16), Algorithm.DIRECT_BINARY_SEARCH, settings=settings
    )

    assert result.warnings == [CONVERGENCE_EXCEEDED]
