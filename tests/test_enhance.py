import numpy as np
import pytest

from dither_studio.buffers import PixelBuffer
from dither_studio.params import AdjustmentParams
from dither_studio.processing.enhance import adjust, gamma_table, hsl_to_rgb, rgb_to_hsl


def _noise(width=12, height=9, seed=3):
    rng = np.random.default_rng(seed)
    data = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    return PixelBuffer(width, height, data)


def test_neutral_adjust_is_bit_identical():
    pixels = _noise()

    result = adjust(pixels, AdjustmentParams())

    assert result is not pixels
    assert np.array_equal(result.data, pixels.data)


@pytest.mark.parametrize(
    "adjustments",
    [
        AdjustmentParams(brightness=20),
        AdjustmentParams(contrast=-40, hue=90, saturation=30),
        AdjustmentParams(gamma=2.2, sharpness=50, blur=2),
        AdjustmentParams(lightness=-30, invert=True),
    ],
)
def test_adjust_keeps_dimensions_and_alpha(adjustments):
    pixels = _noise()

    result = adjust(pixels, adjustments)

    assert result.size == pixels.size
    assert np.array_equal(result.data[..., 3], pixels.data[..., 3])


def test_invert_runs_last():
    pixels = PixelBuffer.blank(2, 2, (10, 100, 250, 77))

    result = adjust(pixels, AdjustmentParams(invert=True))

    assert result.data[0, 0].tolist() == [245, 155, 5, 77]


def test_brightness_shifts_by_two_and_a_half_per_step():
    pixels = PixelBuffer.blank(1, 1, (100, 100, 100, 255))

    result = adjust(pixels, AdjustmentParams(brightness=10))

    assert result.data[0, 0, :3].tolist() == [126, 126, 126]


def test_contrast_stretches_around_mid_gray():
    pixels = PixelBuffer(2, 1, np.array([[[64, 64, 64, 255], [192, 192, 192, 255]]], dtype=np.uint8))

    result = adjust(pixels, AdjustmentParams(contrast=50))

    low, high = result.data[0, 0, 0], result.data[0, 1, 0]
    assert low < 64
    assert high > 192


def test_gamma_table_brightens_midtones():
    table = gamma_table(2.0)

    assert table[0] == 0
    assert table[255] == 255
    assert table[64] == 128


def test_hsl_round_trip_preserves_colors():
    rgb = np.array([[[255, 0, 0], [12, 200, 99], [128, 128, 128]]], dtype=np.uint8)

    back = hsl_to_rgb(*rgb_to_hsl(rgb))

    assert np.abs(back.astype(int) - rgb.astype(int)).max() <= 1


def test_hue_rotation_turns_red_into_green():
    pixels = PixelBuffer.blank(1, 1, (255, 0, 0, 255))

    result = adjust(pixels, AdjustmentParams(hue=120))

    assert result.data[0, 0, :3].tolist() == [0, 255, 0]
