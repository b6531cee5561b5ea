"""Pad raster tiles with neighbour pixels from a mosaic and crop them back."""

__version__ = "0.3.0"
