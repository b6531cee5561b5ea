"""Tile inspection and directory scanning helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import rasterio
from rasterio.errors import RasterioError

from vrt_buffer.raster.errors import TileIOError
from vrt_buffer.raster.models import RasterExtent, Tile

DEFAULT_EXTENSIONS = (".tif", ".tiff")


def inspect_tile(path: Path) -> Tile:
    """Collect metadata about a raster tile on disk."""
    path = Path(path)
    try:
        with rasterio.open(path) as dataset:
            extent = RasterExtent.from_transform(dataset.transform, dataset.width, dataset.height)
            return Tile(
                name=path.name,
                path=path,
                extent=extent,
                count=dataset.count,
                dtype=dataset.dtypes[0],
                nodata=dataset.nodata,
                crs=dataset.crs.to_string() if dataset.crs else None,
            )
    except (RasterioError, OSError) as exc:
        raise TileIOError(path.name, path, f"failed to read metadata: {exc}") from exc


def list_tiles(directory: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> list[Path]:
    """Return raster files in a directory, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Tile directory not found: {directory}")
    suffixes = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() in suffixes
    )
