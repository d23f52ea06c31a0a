import numpy as np
import pytest

from dither_studio.errors import InvalidDimensions, InvalidRegionGeometry
from dither_studio.geometry import Circle, MaskRegion, Polygon, Rectangle
from dither_studio.params import Algorithm
from dither_studio.processing.masking import rasterize


def _mask(geometry, feather=0.0, width=100, height=100):
    return rasterize(MaskRegion(geometry, Algorithm.ORDERED, feather), width, height)


def test_circle_center_outside_and_band():
    mask = _mask(Circle(0.5, 0.5, 0.25), feather=0.2)

    assert mask.shape == (100, 100)
    assert mask.dtype == np.uint8
    assert mask[50, 50] == 255
    assert mask[0, 0] == 0
    # radius 25 px, band from 20 to 25 px; (72, 50) sits 22 px out
    assert 0 < mask[50, 72] < 255


def test_circle_radius_scales_with_the_short_side():
    mask = _mask(Circle(0.5, 0.5, 0.5), width=200, height=100)

    assert mask[50, 100] == 255
    assert mask[50, 151] == 0
    assert mask[50, 149] == 255


def test_hard_rectangle_has_no_ramp():
    mask = _mask(Rectangle(0.2, 0.2, 0.6, 0.8))

    assert mask[50, 40] == 255
    assert mask[50, 19] == 0
    assert mask[50, 61] == 0
    assert set(np.unique(mask).tolist()) == {0, 255}


def test_feathered_rectangle_ramps_inward():
    mask = _mask(Rectangle(0.1, 0.1, 0.9, 0.9), feather=0.1)

    row = mask[50, 10:51].astype(int)

    assert row[0] == 0
    assert row[-1] == 255
    assert np.all(np.diff(row) >= 0)


def test_polygon_even_odd_inside():
    triangle = Polygon(((0.1, 0.1), (0.9, 0.1), (0.5, 0.9)))

    mask = _mask(triangle)

    assert mask[30, 50] == 255
    assert mask[80, 10] == 0
    assert mask[5, 50] == 0


def test_feathered_polygon_never_decreases_inward():
    square = Polygon(((0.2, 0.2), (0.8, 0.2), (0.8, 0.8), (0.2, 0.8)))

    mask = _mask(square, feather=0.2)

    column = mask[20:51, 50].astype(int)
    assert np.all(np.diff(column) >= 0)
    assert mask[50, 50] == 255
    assert mask[10, 50] == 0


@pytest.mark.parametrize(
    "region",
    [
        MaskRegion(Polygon(((0.0, 0.0), (1.0, 1.0))), Algorithm.ORDERED),
        MaskRegion(Circle(0.5, 0.5, -0.1), Algorithm.ORDERED),
        MaskRegion(Rectangle(0.3, 0.3, 0.3, 0.7), Algorithm.ORDERED),
        MaskRegion(Circle(0.5, 0.5, 0.2), Algorithm.ORDERED, feather=0.6),
    ],
)
def test_invalid_geometry_is_rejected(region):
    with pytest.raises(InvalidRegionGeometry):
        rasterize(region, 10, 10)


def test_empty_raster_is_rejected():
    with pytest.raises(InvalidDimensions):
        rasterize(MaskRegion(Circle(0.5, 0.5, 0.2), Algorithm.ORDERED), 0, 10)


def test_circle_snaps_center_and_radius_to_whole_pixels():
    mask = _mask(Circle(0.505, 0.5, 0.1))

    # center 50.5 snaps to 50, so the disc spans x 40..60
    assert mask[50, 40] == 255
    assert mask[50, 60] == 255
    assert mask[50, 61] == 0


def test_feather_band_is_a_whole_number_of_pixels():
    mask = _mask(Circle(0.5, 0.5, 0.25), feather=0.3)

    # band of floor(25 * 0.3) = 7 px
    assert mask[50, 68] == 255
    assert mask[50, 69] == 218


def test_rectangle_corners_snap_to_whole_pixels():
    mask = _mask(Rectangle(0.205, 0.2, 0.6, 0.8))

    assert mask[50, 20] == 255
    assert mask[50, 19] == 0
