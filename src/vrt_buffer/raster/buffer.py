"""Pad tiles with a margin of pixels sourced from neighbouring tiles."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import rasterio
from rasterio.errors import RasterioError

from vrt_buffer.raster.errors import FillValueError, TileIOError
from vrt_buffer.raster.geotransform import expand_extent, translate_window, window_offset
from vrt_buffer.raster.models import MOSAIC_FRAME, PadResult, Tile, Window
from vrt_buffer.raster.mosaic import VirtualMosaic

LOGGER = logging.getLogger(__name__)

DEFAULT_NODATA = -9999.0
MARGIN_TAG = "VRT_BUFFER_MARGIN"


def expanded_window(tile: Tile, margin: int) -> Window:
    """Return the tile-local window grown by ``margin`` pixels on every side."""
    if margin < 0:
        raise ValueError(f"Margin must be >= 0, got {margin}.")
    return Window(
        -margin,
        -margin,
        tile.width + 2 * margin,
        tile.height + 2 * margin,
        tile.name,
    )


def resolve_fill_value(tile: Tile, default_nodata: float) -> float:
    """Return the value used for pixels outside every tile."""
    value = tile.nodata if tile.nodata is not None else default_nodata
    dtype = np.dtype(tile.dtype)
    if np.isnan(value):
        if not np.issubdtype(dtype, np.floating):
            raise FillValueError(
                f"{tile.name}: NaN no-data requires a floating dtype, got {dtype}."
            )
        return float(value)
    with np.errstate(invalid="ignore", over="ignore"):
        cast = np.array([value]).astype(dtype)[0]
    if float(cast) != float(value):
        raise FillValueError(
            f"{tile.name}: no-data value {value} is not representable as {dtype}; "
            "declare a no-data value on the tiles or pass a fitting default."
        )
    return float(value)


def padded_target(tile: Tile, margin: int, mosaic: VirtualMosaic) -> Window:
    """Return the tile's expanded window in the mosaic frame."""
    local = expanded_window(tile, margin)
    return translate_window(local, tile.extent, mosaic.extent, frame=MOSAIC_FRAME)


def read_padded(
    tile: Tile,
    target: Window,
    mosaic: VirtualMosaic,
    fill_value: float,
) -> np.ndarray:
    """Assemble the padded pixel block for a tile from every overlapping source."""
    data = np.full((tile.count, target.height, target.width), fill_value, dtype=tile.dtype)
    for span in mosaic.locate(target):
        rows, cols = window_offset(target, span.target).slices()
        try:
            with rasterio.open(span.tile.path) as src:
                data[:, rows, cols] = src.read(window=span.source.to_rasterio())
        except (RasterioError, OSError) as exc:
            raise TileIOError(
                tile.name,
                span.tile.path,
                f"failed to read neighbour {span.tile.name}: {exc}",
            ) from exc
    return data


def pad_tile(
    tile: Tile,
    margin: int,
    mosaic: VirtualMosaic,
    output_path: Path,
    *,
    default_nodata: float = DEFAULT_NODATA,
    compression: str | None = None,
) -> PadResult:
    """Write ``tile`` grown by ``margin`` pixels, filling gaps with no-data.

    The fill value only has to fit the tile dtype when some padded pixel lies
    outside every tile; fully surrounded tiles keep their own no-data setting.
    """
    target = padded_target(tile, margin, mosaic)
    filled_pixels = int((~mosaic.coverage(target)).sum())
    nodata: float | None
    if filled_pixels:
        nodata = resolve_fill_value(tile, default_nodata)
    else:
        nodata = tile.nodata
    data = read_padded(tile, target, mosaic, 0 if nodata is None else nodata)
    extent = expand_extent(tile.extent, margin)

    profile = {
        "driver": "GTiff",
        "height": extent.height,
        "width": extent.width,
        "count": tile.count,
        "dtype": tile.dtype,
        "crs": tile.crs,
        "transform": extent.transform,
        "nodata": nodata,
    }
    if compression:
        profile["compress"] = compression
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with rasterio.open(output_path, "w", **profile) as dest:
            dest.write(data)
            dest.update_tags(**{MARGIN_TAG: str(margin)})
    except (RasterioError, OSError) as exc:
        raise TileIOError(tile.name, output_path, f"failed to write padded tile: {exc}") from exc

    LOGGER.debug(
        "Padded to %sx%s (%s no-data pixels)",
        extent.width,
        extent.height,
        filled_pixels,
        extra={"tile": tile.name},
    )
    return PadResult(
        tile=tile.name,
        path=output_path,
        extent=extent,
        margin=margin,
        nodata=nodata,
        filled_pixels=filled_pixels,
    )
