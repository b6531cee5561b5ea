"""Trim padded tiles back to the extent of their original tiles."""

from __future__ import annotations

import logging
from pathlib import Path

import rasterio
from rasterio.errors import RasterioError

from vrt_buffer.raster.buffer import MARGIN_TAG
from vrt_buffer.raster.errors import DimensionMismatchError, GeometryError, TileIOError
from vrt_buffer.raster.geotransform import (
    GRID_TOLERANCE,
    check_same_resolution,
    grid_offset,
)
from vrt_buffer.raster.models import CropResult, RasterExtent, Tile, Window

LOGGER = logging.getLogger(__name__)


def interior_window(original: Tile, margin: int) -> Window:
    """Return the window of a padded tile covering the original extent."""
    if margin < 0:
        raise ValueError(f"Margin must be >= 0, got {margin}.")
    return Window(margin, margin, original.width, original.height, f"padded:{original.name}")


def resolve_margin(tags: dict[str, str], margin: int | None, *, tile: str) -> int:
    """Return the explicit margin, falling back to the one recorded by padding."""
    if margin is not None:
        return int(margin)
    recorded = tags.get(MARGIN_TAG)
    if recorded is None:
        raise DimensionMismatchError(
            f"{tile}: no margin given and none recorded in the padded file."
        )
    try:
        return int(recorded)
    except ValueError as exc:
        raise DimensionMismatchError(f"{tile}: invalid recorded margin {recorded!r}.") from exc


def check_padded_geometry(original: Tile, padded: RasterExtent, margin: int) -> None:
    """Validate that a padded extent is the original extent grown by ``margin``."""
    expected = (original.width + 2 * margin, original.height + 2 * margin)
    if (padded.width, padded.height) != expected:
        raise DimensionMismatchError(
            f"{original.name}: padded size {padded.width}x{padded.height} does not match "
            f"{expected[0]}x{expected[1]} (original {original.width}x{original.height} "
            f"+ 2*{margin})."
        )
    try:
        check_same_resolution(original.extent, padded)
    except GeometryError as exc:
        raise GeometryError(f"{original.name}: {exc}") from exc
    col, row = grid_offset(original.extent, padded)
    if abs(col - margin) > GRID_TOLERANCE or abs(row - margin) > GRID_TOLERANCE:
        raise DimensionMismatchError(
            f"{original.name}: original origin sits at pixel ({col:.6f}, {row:.6f}) of the "
            f"padded tile, expected ({margin}, {margin})."
        )


def crop_tile(
    original: Tile,
    padded_path: Path,
    output_path: Path,
    margin: int | None = None,
    *,
    compression: str | None = None,
) -> CropResult:
    """Write the interior of a padded tile with the original tile's geotransform."""
    padded_path = Path(padded_path)
    try:
        with rasterio.open(padded_path) as src:
            padded = RasterExtent.from_transform(src.transform, src.width, src.height)
            margin = resolve_margin(src.tags(), margin, tile=original.name)
            check_padded_geometry(original, padded, margin)
            window = interior_window(original, margin)
            data = src.read(window=window.to_rasterio())
            dtype = src.dtypes[0]
            nodata = original.nodata if dtype == original.dtype else src.nodata
    except (RasterioError, OSError) as exc:
        raise TileIOError(original.name, padded_path, f"failed to read padded tile: {exc}") from exc

    profile = {
        "driver": "GTiff",
        "height": original.height,
        "width": original.width,
        "count": data.shape[0],
        "dtype": dtype,
        "crs": original.crs,
        "transform": original.extent.transform,
        "nodata": nodata,
    }
    if compression:
        profile["compress"] = compression
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with rasterio.open(output_path, "w", **profile) as dest:
            dest.write(data)
    except (RasterioError, OSError) as exc:
        raise TileIOError(original.name, output_path, f"failed to write trimmed tile: {exc}") from exc

    LOGGER.debug("Cropped margin of %s pixel(s)", margin, extra={"tile": original.name})
    return CropResult(
        tile=original.name,
        path=output_path,
        extent=original.extent,
        margin=margin,
    )
