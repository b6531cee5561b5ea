"""Error types raised by the padding and cropping engines."""

from __future__ import annotations

from pathlib import Path


class VrtBufferError(Exception):
    """Base class for vrt_buffer errors."""

    kind = "error"


class GeometryError(VrtBufferError):
    """Raised for unsupported or inconsistent raster geometry."""

    kind = "geometry"


class MisalignedGridError(VrtBufferError):
    """Raised when tile origins do not share a common pixel grid."""

    kind = "misaligned_grid"


class IncompatibleTilesError(VrtBufferError):
    """Raised when mosaic tiles differ in band count or dtype."""

    kind = "incompatible_tiles"


class DimensionMismatchError(VrtBufferError):
    """Raised when a padded raster does not match its original plus margin."""

    kind = "dimension_mismatch"


class FillValueError(VrtBufferError):
    """Raised when a tile needs no-data fill but the fill value does not fit its dtype."""

    kind = "nodata"


class TileIOError(VrtBufferError):
    """Raised when reading or writing a tile fails."""

    kind = "io"

    def __init__(self, tile: str, path: Path | str, message: str) -> None:
        super().__init__(f"{tile}: {message} ({path})")
        self.tile = tile
        self.path = Path(path)


# Errors that invalidate the whole tile set rather than a single tile.
FATAL_ERRORS = (GeometryError, MisalignedGridError, IncompatibleTilesError)
