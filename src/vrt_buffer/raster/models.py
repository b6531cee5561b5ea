"""Data models shared by the mosaic, padding, and cropping helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from rasterio.transform import Affine
from rasterio.windows import Window as RasterioWindow

from vrt_buffer.raster.errors import GeometryError

Bounds = Tuple[float, float, float, float]
Resolution = Tuple[float, float]

MOSAIC_FRAME = "mosaic"


@dataclass(frozen=True)
class RasterExtent:
    """Pixel grid of a north-up raster: origin, size, and signed pixel size."""

    x_origin: float
    y_origin: float
    width: int
    height: int
    res_x: float
    res_y: float

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise GeometryError(f"Raster size must be positive, got {self.width}x{self.height}.")
        if self.res_x == 0 or self.res_y == 0:
            raise GeometryError("Pixel size must be non-zero.")

    @classmethod
    def from_transform(cls, transform: Affine, width: int, height: int) -> "RasterExtent":
        """Build an extent from a rasterio affine transform."""
        if transform.b != 0 or transform.d != 0:
            raise GeometryError("Rotated or sheared geotransforms are not supported.")
        return cls(
            x_origin=transform.c,
            y_origin=transform.f,
            width=int(width),
            height=int(height),
            res_x=transform.a,
            res_y=transform.e,
        )

    @property
    def transform(self) -> Affine:
        return Affine(self.res_x, 0.0, self.x_origin, 0.0, self.res_y, self.y_origin)

    @property
    def resolution(self) -> Resolution:
        return (self.res_x, self.res_y)

    @property
    def bounds(self) -> Bounds:
        """Return (left, bottom, right, top)."""
        x_end = self.x_origin + self.width * self.res_x
        y_end = self.y_origin + self.height * self.res_y
        return (
            min(self.x_origin, x_end),
            min(self.y_origin, y_end),
            max(self.x_origin, x_end),
            max(self.y_origin, y_end),
        )


@dataclass(frozen=True)
class Tile:
    """Metadata for a single raster tile on disk."""

    name: str
    path: Path
    extent: RasterExtent
    count: int
    dtype: str
    nodata: float | None
    crs: str | None

    @property
    def width(self) -> int:
        return self.extent.width

    @property
    def height(self) -> int:
        return self.extent.height


@dataclass(frozen=True)
class Window:
    """Axis-aligned pixel rectangle in the pixel space of ``frame``."""

    col_off: int
    row_off: int
    width: int
    height: int
    frame: str

    @property
    def col_end(self) -> int:
        return self.col_off + self.width

    @property
    def row_end(self) -> int:
        return self.row_off + self.height

    def to_rasterio(self) -> RasterioWindow:
        return RasterioWindow(self.col_off, self.row_off, self.width, self.height)

    def slices(self) -> tuple[slice, slice]:
        """Return (rows, cols) slices for indexing a 2D array."""
        return (
            slice(self.row_off, self.row_end),
            slice(self.col_off, self.col_end),
        )


@dataclass(frozen=True)
class TileSpan:
    """Part of a mosaic window sourced from a single tile."""

    tile: Tile
    source: Window
    target: Window


@dataclass(frozen=True)
class PadResult:
    """Result of writing a padded tile."""

    tile: str
    path: Path
    extent: RasterExtent
    margin: int
    nodata: float | None
    filled_pixels: int


@dataclass(frozen=True)
class CropResult:
    """Result of writing a trimmed tile."""

    tile: str
    path: Path
    extent: RasterExtent
    margin: int
