from __future__ import annotations

import pytest
from rasterio.transform import Affine

from vrt_buffer.raster.errors import GeometryError
from vrt_buffer.raster.geotransform import (
    expand_extent,
    intersect,
    pixel_to_spatial,
    round_pixel,
    spatial_to_pixel,
    translate_window,
    window_offset,
)
from vrt_buffer.raster.models import RasterExtent, Window

TILE = RasterExtent(100.0, 200.0, 10, 10, 1.0, -1.0)
MOSAIC = RasterExtent(0.0, 300.0, 300, 300, 1.0, -1.0)


def test_pixel_spatial_roundtrip() -> None:
    assert pixel_to_spatial(TILE, 0, 0) == (100.0, 200.0)
    assert pixel_to_spatial(TILE, 10, 10) == (110.0, 190.0)
    assert spatial_to_pixel(TILE, 105.5, 197.0) == (5.5, 3.0)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.5, 1), (-0.5, -1), (1.5, 2), (2.5, 3), (-2.5, -3), (2.4999999999, 2), (2.3, 2), (-2.7, -3)],
)
def test_round_pixel_ties_away_from_zero(value: float, expected: int) -> None:
    assert round_pixel(value) == expected


def test_translate_window_into_mosaic() -> None:
    window = Window(-2, -2, 14, 14, "tile")
    translated = translate_window(window, TILE, MOSAIC, frame="mosaic")
    assert translated == Window(98, 98, 14, 14, "mosaic")
    back = translate_window(translated, MOSAIC, TILE, frame="tile")
    assert back == window


def test_translate_window_rejects_resolution_mismatch() -> None:
    coarse = RasterExtent(0.0, 300.0, 150, 150, 2.0, -2.0)
    with pytest.raises(GeometryError, match="Pixel size"):
        translate_window(Window(0, 0, 1, 1, "tile"), TILE, coarse, frame="mosaic")


def test_intersect_clips_and_detects_disjoint() -> None:
    assert intersect(Window(-3, 5, 10, 10, "t"), 10, 10) == Window(0, 5, 7, 5, "t")
    assert intersect(Window(10, 0, 5, 5, "t"), 10, 10) is None
    assert intersect(Window(0, 0, 10, 10, "t"), 10, 10) == Window(0, 0, 10, 10, "t")


def test_window_offset_requires_same_frame() -> None:
    outer = Window(90, 90, 20, 20, "mosaic")
    assert window_offset(outer, Window(100, 95, 5, 5, "mosaic")) == Window(10, 5, 5, 5, "relative")
    with pytest.raises(GeometryError):
        window_offset(outer, Window(0, 0, 1, 1, "tile"))


def test_expand_extent_shifts_origin_by_margin() -> None:
    expanded = expand_extent(TILE, 3)
    assert (expanded.x_origin, expanded.y_origin) == (97.0, 203.0)
    assert (expanded.width, expanded.height) == (16, 16)
    assert expanded.resolution == TILE.resolution


def test_extent_rejects_rotation() -> None:
    with pytest.raises(GeometryError, match="Rotated"):
        RasterExtent.from_transform(Affine(1.0, 0.1, 0.0, 0.0, -1.0, 0.0), 10, 10)


def test_extent_bounds() -> None:
    assert TILE.bounds == (100.0, 190.0, 110.0, 200.0)
    assert RasterExtent.from_transform(TILE.transform, 10, 10) == TILE
