"""Sparse density grids, bounding boxes, transforms and rays."""

from .base import Accessor, FogGrid
from .bbox import CoordBBox, WorldBBox
from .buffers import GridBuffers
from .dense import DenseGrid
from .primitives import make_fog_box, make_fog_sphere
from .ray import Ray
from .sparse import SparseGrid
from .transform import AffineTransform

__all__ = [
    "Accessor",
    "AffineTransform",
    "CoordBBox",
    "DenseGrid",
    "FogGrid",
    "GridBuffers",
    "Ray",
    "SparseGrid",
    "WorldBBox",
    "make_fog_box",
    "make_fog_sphere",
]
