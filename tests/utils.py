from __future__ import annotations

import os
from pathlib import Path

import numpy as np
import rasterio
from rasterio.transform import Affine, from_origin

CRS = "EPSG:32633"


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    origin: tuple[float, float] = (0.0, 0.0),
    res: float = 1.0,
    crs: str = CRS,
    nodata: float | None = None,
) -> Path:
    """Write a north-up GeoTIFF; ``data`` is (rows, cols) or (bands, rows, cols)."""
    if data.ndim == 2:
        data = data[np.newaxis, ...]
    count, height, width = data.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=count,
        dtype=data.dtype,
        crs=crs,
        transform=from_origin(origin[0], origin[1], res, res),
        nodata=nodata,
    ) as dataset:
        dataset.write(data)
    return path


def tile_data(row: int, col: int, size: int, *, cols: int = 3) -> np.ndarray:
    """Return a tile whose values encode the tile index and pixel position."""
    base = (row * cols + col + 1) * 100000
    return (np.arange(size * size, dtype=np.float32).reshape(size, size) + base).astype(np.float32)


def write_grid(
    directory: Path,
    *,
    rows: int = 3,
    cols: int = 3,
    size: int = 100,
    res: float = 1.0,
    top: float = 1000.0,
    nodata: float | None = -9999.0,
) -> dict[tuple[int, int], Path]:
    """Write a rows x cols grid of adjacent tiles named tile_<row>_<col>.tif."""
    paths = {}
    for row in range(rows):
        for col in range(cols):
            paths[(row, col)] = write_raster(
                directory / f"tile_{row}_{col}.tif",
                tile_data(row, col, size, cols=cols),
                origin=(col * size * res, top - row * size * res),
                res=res,
                nodata=nodata,
            )
    return paths


def read_raster(path: Path) -> tuple[np.ndarray, Affine, float | None]:
    with rasterio.open(path) as dataset:
        return dataset.read(), dataset.transform, dataset.nodata


def with_src_env(base_env: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment with repo src/ on PYTHONPATH."""
    env = dict(base_env or os.environ)
    src_path = Path(__file__).resolve().parents[1] / "src"
    existing = [entry for entry in env.get("PYTHONPATH", "").split(os.pathsep) if entry]
    if str(src_path) not in existing:
        existing.insert(0, str(src_path))
    env["PYTHONPATH"] = os.pathsep.join(existing)
    return env
