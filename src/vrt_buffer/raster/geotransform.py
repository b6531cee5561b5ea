"""Pixel/spatial coordinate arithmetic for north-up rasters.

Every conversion from a fractional pixel position to an integer pixel index
goes through :func:`round_pixel`, so window edges computed in different
places of the system always agree.
"""

from __future__ import annotations

import math

from vrt_buffer.raster.errors import GeometryError
from vrt_buffer.raster.models import RasterExtent, Window

# Fractional pixel positions closer than this to an integer are treated as exact.
GRID_TOLERANCE = 1e-6
RESOLUTION_RTOL = 1e-9


def pixel_to_spatial(extent: RasterExtent, px: float, py: float) -> tuple[float, float]:
    """Return the spatial coordinate of pixel position (px, py)."""
    return (extent.x_origin + px * extent.res_x, extent.y_origin + py * extent.res_y)


def spatial_to_pixel(extent: RasterExtent, x: float, y: float) -> tuple[float, float]:
    """Return the (possibly fractional) pixel position of a spatial coordinate."""
    return ((x - extent.x_origin) / extent.res_x, (y - extent.y_origin) / extent.res_y)


def round_pixel(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    nearest = round(value)
    if abs(value - nearest) <= GRID_TOLERANCE:
        return int(nearest)
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def is_whole_pixel(value: float) -> bool:
    """Return True when a pixel offset lies on the grid."""
    return abs(value - round(value)) <= GRID_TOLERANCE


def check_same_resolution(first: RasterExtent, second: RasterExtent) -> None:
    """Raise GeometryError unless both extents share the same signed pixel size."""
    same = math.isclose(first.res_x, second.res_x, rel_tol=RESOLUTION_RTOL) and math.isclose(
        first.res_y, second.res_y, rel_tol=RESOLUTION_RTOL
    )
    if not same:
        raise GeometryError(
            f"Pixel size mismatch: {first.resolution} != {second.resolution}."
        )


def grid_offset(from_extent: RasterExtent, to_extent: RasterExtent) -> tuple[float, float]:
    """Return the fractional pixel offset of ``from_extent``'s origin in ``to_extent``."""
    return spatial_to_pixel(to_extent, from_extent.x_origin, from_extent.y_origin)


def translate_window(
    window: Window,
    from_extent: RasterExtent,
    to_extent: RasterExtent,
    *,
    frame: str,
) -> Window:
    """Express a window of one raster in the pixel space of another raster."""
    check_same_resolution(from_extent, to_extent)
    col_shift, row_shift = grid_offset(from_extent, to_extent)
    return Window(
        col_off=window.col_off + round_pixel(col_shift),
        row_off=window.row_off + round_pixel(row_shift),
        width=window.width,
        height=window.height,
        frame=frame,
    )


def intersect(window: Window, width: int, height: int) -> Window | None:
    """Clip a window to the [0, width) x [0, height) area of its raster."""
    col_start = max(window.col_off, 0)
    row_start = max(window.row_off, 0)
    col_end = min(window.col_end, width)
    row_end = min(window.row_end, height)
    if col_start >= col_end or row_start >= row_end:
        return None
    return Window(col_start, row_start, col_end - col_start, row_end - row_start, window.frame)


def window_offset(outer: Window, inner: Window) -> Window:
    """Return ``inner`` relative to the top-left corner of ``outer``."""
    if outer.frame != inner.frame:
        raise GeometryError(f"Windows are in different frames: {outer.frame} != {inner.frame}.")
    return Window(
        inner.col_off - outer.col_off,
        inner.row_off - outer.row_off,
        inner.width,
        inner.height,
        "relative",
    )


def expand_extent(extent: RasterExtent, margin: int) -> RasterExtent:
    """Return the extent grown by ``margin`` pixels on every side."""
    x_origin, y_origin = pixel_to_spatial(extent, -margin, -margin)
    return RasterExtent(
        x_origin=x_origin,
        y_origin=y_origin,
        width=extent.width + 2 * margin,
        height=extent.height + 2 * margin,
        res_x=extent.res_x,
        res_y=extent.res_y,
    )
