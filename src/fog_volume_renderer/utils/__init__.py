"""Utilities module."""

from .config import RenderConfig
from .image import allocate_image, as_2d, load_pfm, save_pfm
from .volume_io import load_dense_grid, save_dense_grid

__all__ = [
    "RenderConfig",
    "allocate_image",
    "as_2d",
    "load_pfm",
    "save_pfm",
    "load_dense_grid",
    "save_dense_grid",
]
