"""Virtual mosaic index over a set of grid-aligned tiles.

The mosaic never touches pixel data. It records where every tile sits on a
shared pixel grid and answers which tiles (and which of their pixels) back an
arbitrary mosaic window. Tiles are kept in row-major order of their placement;
where tiles overlap, later tiles in that order win, which matches the source
order of the VRT files written by :func:`write_vrt`.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import rasterio
from rasterio.dtypes import _gdal_typename
from rasterio.errors import RasterioError

from vrt_buffer.raster.errors import (
    GeometryError,
    IncompatibleTilesError,
    MisalignedGridError,
)
from vrt_buffer.raster.geotransform import (
    check_same_resolution,
    grid_offset,
    intersect,
    is_whole_pixel,
    pixel_to_spatial,
    round_pixel,
    translate_window,
    window_offset,
)
from vrt_buffer.raster.info import inspect_tile
from vrt_buffer.raster.models import MOSAIC_FRAME, RasterExtent, Tile, TileSpan, Window

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class VirtualMosaic:
    """Immutable geometry of all tiles on one pixel grid."""

    extent: RasterExtent
    tiles: tuple[Tile, ...]
    placements: tuple[Window, ...]

    def tile(self, name: str) -> Tile:
        """Return the tile registered under ``name``."""
        for tile in self.tiles:
            if tile.name == name:
                return tile
        raise KeyError(name)

    def placement(self, name: str) -> Window:
        """Return the mosaic-frame window occupied by a tile."""
        for tile, placement in zip(self.tiles, self.placements):
            if tile.name == name:
                return placement
        raise KeyError(name)

    def locate(self, window: Window) -> list[TileSpan]:
        """Return every tile overlapping a mosaic window, in construction order."""
        if window.frame != MOSAIC_FRAME:
            raise GeometryError(f"locate expects a mosaic window, got frame {window.frame!r}.")
        spans: list[TileSpan] = []
        for tile in self.tiles:
            local = translate_window(window, self.extent, tile.extent, frame=tile.name)
            source = intersect(local, tile.width, tile.height)
            if source is None:
                continue
            target = translate_window(source, tile.extent, self.extent, frame=MOSAIC_FRAME)
            spans.append(TileSpan(tile=tile, source=source, target=target))
        return spans

    def coverage(self, window: Window) -> np.ndarray:
        """Return a (height, width) mask that is True where a tile backs the pixel."""
        mask = np.zeros((window.height, window.width), dtype=bool)
        for span in self.locate(window):
            mask[window_offset(window, span.target).slices()] = True
        return mask


def _check_compatible(base: Tile, tile: Tile) -> None:
    """Ensure a tile can share a mosaic with the base tile."""
    try:
        check_same_resolution(base.extent, tile.extent)
    except GeometryError as exc:
        raise GeometryError(f"{tile.name}: {exc}") from exc
    if tile.crs != base.crs:
        raise GeometryError(f"{tile.name}: CRS {tile.crs} differs from {base.crs}.")
    if tile.count != base.count:
        raise IncompatibleTilesError(
            f"{tile.name}: band count {tile.count} differs from {base.count}."
        )
    if tile.dtype != base.dtype:
        raise IncompatibleTilesError(f"{tile.name}: dtype {tile.dtype} differs from {base.dtype}.")


def build_mosaic(tiles: Sequence[Tile]) -> VirtualMosaic:
    """Place tiles on a common pixel grid and compute the bounding mosaic."""
    if not tiles:
        raise ValueError("At least one tile is required to build a mosaic.")
    base = tiles[0]
    offsets: list[tuple[int, int]] = []
    for tile in tiles:
        _check_compatible(base, tile)
        col, row = grid_offset(tile.extent, base.extent)
        if not (is_whole_pixel(col) and is_whole_pixel(row)):
            raise MisalignedGridError(
                f"{tile.name}: origin is offset by ({col:.6f}, {row:.6f}) pixels from "
                f"{base.name}; tiles must share a pixel grid."
            )
        offsets.append((round_pixel(col), round_pixel(row)))

    min_col = min(col for col, _ in offsets)
    min_row = min(row for _, row in offsets)
    max_col = max(col + tile.width for (col, _), tile in zip(offsets, tiles))
    max_row = max(row + tile.height for (_, row), tile in zip(offsets, tiles))
    x_origin, y_origin = pixel_to_spatial(base.extent, min_col, min_row)
    extent = RasterExtent(
        x_origin=x_origin,
        y_origin=y_origin,
        width=max_col - min_col,
        height=max_row - min_row,
        res_x=base.extent.res_x,
        res_y=base.extent.res_y,
    )

    placed = [
        Window(col - min_col, row - min_row, tile.width, tile.height, MOSAIC_FRAME)
        for (col, row), tile in zip(offsets, tiles)
    ]
    order = sorted(range(len(tiles)), key=lambda index: (placed[index].row_off, placed[index].col_off))
    LOGGER.debug(
        "Built mosaic of %s tile(s): %sx%s pixels",
        len(tiles),
        extent.width,
        extent.height,
    )
    return VirtualMosaic(
        extent=extent,
        tiles=tuple(tiles[index] for index in order),
        placements=tuple(placed[index] for index in order),
    )


def read_vrt_sources(vrt_path: Path) -> list[Path]:
    """Return the source raster paths referenced by a VRT, in source order."""
    vrt_path = Path(vrt_path)
    try:
        with rasterio.open(vrt_path) as dataset:
            files = dataset.files
    except RasterioError as exc:
        raise ValueError(f"Cannot open VRT {vrt_path}: {exc}") from exc
    own = vrt_path.resolve()
    sources: list[Path] = []
    for name in files:
        path = Path(name)
        if path.resolve() == own or path in sources:
            continue
        sources.append(path)
    if not sources:
        raise ValueError(f"VRT references no source rasters: {vrt_path}")
    return sources


def load_mosaic(vrt_path: Path | None, tiles: Iterable[Tile] = ()) -> VirtualMosaic:
    """Build a mosaic from a VRT reference, adding any input tiles it lacks."""
    tiles = list(tiles)
    if vrt_path is None:
        return build_mosaic(tiles)
    sources = [inspect_tile(path) for path in read_vrt_sources(vrt_path)]
    known = {tile.name for tile in sources}
    for tile in tiles:
        if tile.name not in known:
            LOGGER.warning(
                "Tile is not referenced by %s; adding it to the mosaic.",
                vrt_path,
                extra={"tile": tile.name},
            )
            sources.append(tile)
    return build_mosaic(sources)


def write_vrt(tiles: Sequence[Tile], output_path: Path) -> Path:
    """Write a GDAL VRT that mosaics the tiles in construction order."""
    mosaic = build_mosaic(tiles)
    base = mosaic.tiles[0]
    root = ET.Element(
        "VRTDataset",
        rasterXSize=str(mosaic.extent.width),
        rasterYSize=str(mosaic.extent.height),
    )
    if base.crs:
        ET.SubElement(root, "SRS").text = base.crs
    ET.SubElement(root, "GeoTransform").text = ", ".join(
        repr(float(value)) for value in mosaic.extent.transform.to_gdal()
    )

    relative_root = Path(output_path).parent
    dtype_name = _gdal_typename(base.dtype)
    for band_index in range(1, base.count + 1):
        band_node = ET.SubElement(
            root,
            "VRTRasterBand",
            dataType=dtype_name,
            band=str(band_index),
        )
        if base.nodata is not None:
            ET.SubElement(band_node, "NoDataValue").text = repr(float(base.nodata))
        for tile, placement in zip(mosaic.tiles, mosaic.placements):
            source_node = ET.SubElement(band_node, "SimpleSource")
            rel_path = os.path.relpath(tile.path, relative_root)
            ET.SubElement(
                source_node,
                "SourceFilename",
                relativeToVRT="1",
            ).text = Path(rel_path).as_posix()
            ET.SubElement(source_node, "SourceBand").text = str(band_index)
            ET.SubElement(
                source_node,
                "SrcRect",
                xOff="0",
                yOff="0",
                xSize=str(tile.width),
                ySize=str(tile.height),
            )
            ET.SubElement(
                source_node,
                "DstRect",
                xOff=str(placement.col_off),
                yOff=str(placement.row_off),
                xSize=str(placement.width),
                ySize=str(placement.height),
            )

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    ET.ElementTree(root).write(output_path, encoding="utf-8", xml_declaration=True)
    return output_path
