from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from tests.utils import write_grid, write_raster
from vrt_buffer.raster.errors import GeometryError, IncompatibleTilesError, MisalignedGridError
from vrt_buffer.raster.info import inspect_tile, list_tiles
from vrt_buffer.raster.models import RasterExtent, Tile, Window
from vrt_buffer.raster.mosaic import build_mosaic, load_mosaic, read_vrt_sources, write_vrt


def make_tile(
    name: str,
    x: float,
    y: float,
    *,
    size: int = 10,
    res: float = 1.0,
    dtype: str = "float32",
    crs: str = "EPSG:32633",
) -> Tile:
    return Tile(
        name=name,
        path=Path(name),
        extent=RasterExtent(x, y, size, size, res, -res),
        count=1,
        dtype=dtype,
        nodata=-9999.0,
        crs=crs,
    )


def grid_tiles() -> list[Tile]:
    # Deliberately out of row-major order.
    return [
        make_tile("c", 0.0, 10.0),
        make_tile("d", 10.0, 10.0),
        make_tile("a", 0.0, 20.0),
        make_tile("b", 10.0, 20.0),
    ]


def test_build_mosaic_requires_tiles() -> None:
    with pytest.raises(ValueError, match="tile"):
        build_mosaic([])


def test_build_mosaic_extent_and_order() -> None:
    mosaic = build_mosaic(grid_tiles())

    assert mosaic.extent == RasterExtent(0.0, 20.0, 20, 20, 1.0, -1.0)
    assert [tile.name for tile in mosaic.tiles] == ["a", "b", "c", "d"]
    assert mosaic.placement("d") == Window(10, 10, 10, 10, "mosaic")
    assert mosaic.tile("b").extent.x_origin == 10.0
    with pytest.raises(KeyError):
        mosaic.placement("missing")


def test_locate_returns_tile_local_windows() -> None:
    mosaic = build_mosaic(grid_tiles())
    spans = mosaic.locate(Window(8, 7, 4, 5, "mosaic"))

    assert [span.tile.name for span in spans] == ["a", "b", "c", "d"]
    by_name = {span.tile.name: span for span in spans}
    assert by_name["a"].source == Window(8, 7, 2, 3, "a")
    assert by_name["a"].target == Window(8, 7, 2, 3, "mosaic")
    assert by_name["d"].source == Window(0, 0, 2, 2, "d")
    assert by_name["d"].target == Window(10, 10, 2, 2, "mosaic")


def test_locate_outside_mosaic_is_empty() -> None:
    mosaic = build_mosaic(grid_tiles())
    assert mosaic.locate(Window(-5, -5, 5, 5, "mosaic")) == []
    with pytest.raises(GeometryError):
        mosaic.locate(Window(0, 0, 1, 1, "a"))


def test_coverage_marks_gaps() -> None:
    # An L-shaped mosaic leaves the lower-right quadrant uncovered.
    mosaic = build_mosaic(grid_tiles()[:3])
    mask = mosaic.coverage(Window(-1, -1, 22, 22, "mosaic"))

    assert mask.shape == (22, 22)
    assert not mask[0].any()
    assert not mask[:, 0].any()
    assert mask[1:11, 1:21].all()
    assert not mask[11:21, 11:21].any()
    assert int(mask.sum()) == 300


def test_build_mosaic_rejects_misaligned_origin() -> None:
    tiles = [make_tile("a", 0.0, 10.0), make_tile("b", 10.5, 10.0)]
    with pytest.raises(MisalignedGridError, match="b"):
        build_mosaic(tiles)


def test_build_mosaic_rejects_mixed_resolution() -> None:
    tiles = [make_tile("a", 0.0, 10.0), make_tile("b", 10.0, 10.0, res=2.0)]
    with pytest.raises(GeometryError, match="Pixel size"):
        build_mosaic(tiles)


def test_build_mosaic_rejects_mixed_crs_and_dtype() -> None:
    with pytest.raises(GeometryError, match="CRS"):
        build_mosaic([make_tile("a", 0.0, 10.0), make_tile("b", 10.0, 10.0, crs="EPSG:4326")])
    with pytest.raises(IncompatibleTilesError, match="dtype"):
        build_mosaic([make_tile("a", 0.0, 10.0), make_tile("b", 10.0, 10.0, dtype="int16")])


def test_write_and_read_vrt_sources(tmp_path) -> None:
    paths = write_grid(tmp_path / "tiles", rows=2, cols=2, size=4)
    tiles = [inspect_tile(path) for path in list_tiles(tmp_path / "tiles")]

    vrt_path = write_vrt(tiles, tmp_path / "ref" / "tiles.vrt")
    sources = read_vrt_sources(vrt_path)

    assert [source.resolve() for source in sources] == [
        paths[(0, 0)].resolve(),
        paths[(0, 1)].resolve(),
        paths[(1, 0)].resolve(),
        paths[(1, 1)].resolve(),
    ]
    text = vrt_path.read_text(encoding="utf-8")
    assert 'rasterXSize="8"' in text
    assert "<NoDataValue>-9999.0</NoDataValue>" in text


def test_read_vrt_sources_rejects_empty(tmp_path) -> None:
    vrt_path = tmp_path / "empty.vrt"
    vrt_path.write_text(
        '<VRTDataset rasterXSize="1" rasterYSize="1">'
        '<VRTRasterBand dataType="Byte" band="1"/>'
        "</VRTDataset>",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="no source rasters"):
        read_vrt_sources(vrt_path)


def test_read_vrt_sources_rejects_unreadable_vrt(tmp_path) -> None:
    vrt_path = tmp_path / "broken.vrt"
    vrt_path.write_text("not xml", encoding="utf-8")
    with pytest.raises(ValueError, match="Cannot open VRT"):
        read_vrt_sources(vrt_path)


def test_load_mosaic_appends_unreferenced_tiles(tmp_path) -> None:
    write_grid(tmp_path / "tiles", rows=1, cols=2, size=4)
    tiles = [inspect_tile(path) for path in list_tiles(tmp_path / "tiles")]
    vrt_path = write_vrt(tiles[:1], tmp_path / "partial.vrt")
    extra = inspect_tile(
        write_raster(
            tmp_path / "other" / "extra.tif",
            np.zeros((4, 4), dtype=np.float32),
            origin=(0.0, 996.0),
            nodata=-9999.0,
        )
    )

    mosaic = load_mosaic(vrt_path, [tiles[1], extra])

    assert {tile.name for tile in mosaic.tiles} == {"tile_0_0.tif", "tile_0_1.tif", "extra.tif"}
    assert (mosaic.extent.width, mosaic.extent.height) == (8, 8)


def test_load_mosaic_without_vrt_uses_tiles(tmp_path) -> None:
    write_grid(tmp_path, rows=2, cols=1, size=4)
    tiles = [inspect_tile(path) for path in list_tiles(tmp_path)]
    mosaic = load_mosaic(None, tiles)
    assert (mosaic.extent.width, mosaic.extent.height) == (4, 8)
