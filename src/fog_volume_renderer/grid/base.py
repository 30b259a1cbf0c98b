"""Read-only sparse scalar field capability consumed by the renderer."""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from .bbox import CoordBBox, WorldBBox
from .buffers import GridBuffers
from .ray import Ray
from .transform import AffineTransform


class Accessor(ABC):
    """Point lookups into a grid.

    Accessors may cache traversal state between calls, so each render worker
    creates its own and never shares it.
    """

    @abstractmethod
    def sample(self, ijk) -> np.float32:
        """Value of the voxel at integer coordinate ``ijk``."""


class FogGrid(ABC):
    """Sparse scalar density field over 3D integer index coordinates.

    Subclasses provide storage; the renderer only uses the operations defined
    here and never mutates the grid.

    Args:
        background: Value of voxels without data (typically 0)
        transform: Index-to-world transform (identity if omitted)
        name: Grid name, informational
    """

    def __init__(self, background: float = 0.0,
                 transform: Optional[AffineTransform] = None,
                 name: str = "density"):
        self._background = np.float32(background)
        self._transform = transform or AffineTransform()
        self.name = name
        self._buffers: Optional[GridBuffers] = None

    @property
    def background(self) -> np.float32:
        return self._background

    @property
    def transform(self) -> AffineTransform:
        return self._transform

    @abstractmethod
    def active_bounding_box(self) -> CoordBBox:
        """Smallest index-space box containing every active voxel."""

    def index_to_world(self, bbox: CoordBBox) -> WorldBBox:
        """World-space bounds of an index-space box."""
        return self._transform.index_to_world_bbox(bbox)

    def world_to_index(self, ray: Ray) -> Ray:
        """Copy of a world-space ray expressed in this grid's index space."""
        return ray.world_to_index(self._transform.world_to_index_f32())

    @abstractmethod
    def sample(self, ijk) -> np.float32:
        """Value at integer coordinate ``ijk``; background outside the data."""

    @abstractmethod
    def accessor(self) -> Accessor:
        """New accessor for repeated lookups."""

    @abstractmethod
    def _pack(self) -> GridBuffers:
        """Build the kernel layout from scratch."""

    def to_buffers(self) -> GridBuffers:
        """Kernel layout of this grid, built once and reused until modified."""
        if self._buffers is None:
            self._buffers = self._pack()
        return self._buffers

    def max_value(self) -> float:
        """Largest value stored in the grid (including the background)."""
        buffers = self.to_buffers()
        return float(max(buffers.leaf_values.max(), buffers.background))

    def _invalidate(self):
        self._buffers = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, bbox={self.active_bounding_box()})"
