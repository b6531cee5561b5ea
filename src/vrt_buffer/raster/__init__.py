"""Raster mosaic, padding, and cropping helpers and exports."""

from vrt_buffer.raster.buffer import DEFAULT_NODATA, expanded_window, pad_tile
from vrt_buffer.raster.crop import crop_tile, interior_window
from vrt_buffer.raster.errors import (
    DimensionMismatchError,
    FillValueError,
    GeometryError,
    IncompatibleTilesError,
    MisalignedGridError,
    TileIOError,
    VrtBufferError,
)
from vrt_buffer.raster.geotransform import (
    intersect,
    pixel_to_spatial,
    round_pixel,
    spatial_to_pixel,
    translate_window,
)
from vrt_buffer.raster.info import inspect_tile, list_tiles
from vrt_buffer.raster.models import (
    CropResult,
    PadResult,
    RasterExtent,
    Tile,
    TileSpan,
    Window,
)
from vrt_buffer.raster.mosaic import (
    VirtualMosaic,
    build_mosaic,
    load_mosaic,
    read_vrt_sources,
    write_vrt,
)
from vrt_buffer.raster.pipeline import RunResult, TileWorkResult, crop_directory, pad_directory

__all__ = [
    "CropResult",
    "DEFAULT_NODATA",
    "DimensionMismatchError",
    "FillValueError",
    "GeometryError",
    "IncompatibleTilesError",
    "MisalignedGridError",
    "PadResult",
    "RasterExtent",
    "RunResult",
    "Tile",
    "TileIOError",
    "TileSpan",
    "TileWorkResult",
    "VirtualMosaic",
    "VrtBufferError",
    "Window",
    "build_mosaic",
    "crop_directory",
    "crop_tile",
    "expanded_window",
    "inspect_tile",
    "interior_window",
    "intersect",
    "list_tiles",
    "load_mosaic",
    "pad_directory",
    "pad_tile",
    "pixel_to_spatial",
    "read_vrt_sources",
    "round_pixel",
    "spatial_to_pixel",
    "translate_window",
    "write_vrt",
]
