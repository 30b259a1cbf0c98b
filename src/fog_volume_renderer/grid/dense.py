"""Fog grid backed by a single dense numpy block."""

from typing import Optional, Sequence

import numpy as np

from .base import Accessor, FogGrid
from .bbox import CoordBBox
from .buffers import LEAF_DIM, LEAF_LOG2DIM, GridBuffers, pack_leaves
from .transform import AffineTransform


class DenseAccessor(Accessor):
    """Direct array lookups; nothing to cache."""

    def __init__(self, grid: "DenseGrid"):
        self._values = grid.values
        self._origin = grid.origin
        self._background = grid.background

    def sample(self, ijk) -> np.float32:
        i = int(ijk[0]) - self._origin[0]
        j = int(ijk[1]) - self._origin[1]
        k = int(ijk[2]) - self._origin[2]
        nx, ny, nz = self._values.shape
        if 0 <= i < nx and 0 <= j < ny and 0 <= k < nz:
            return self._values[i, j, k]
        return self._background


class DenseGrid(FogGrid):
    """Fog grid over the box ``origin .. origin + values.shape - 1``.

    ``values[i, j, k]`` holds voxel ``origin + (i, j, k)``. Voxels whose value
    differs from the background are active.

    Args:
        values: 3D density array in x-y-z order
        origin: Index coordinate of ``values[0, 0, 0]``
        background: Value outside the array and of inactive voxels
        transform: Index-to-world transform
        name: Grid name
    """

    def __init__(self, values: np.ndarray, origin: Sequence[int] = (0, 0, 0),
                 background: float = 0.0,
                 transform: Optional[AffineTransform] = None,
                 name: str = "density"):
        super().__init__(background, transform, name)
        values = np.asarray(values)
        if values.ndim != 3:
            raise ValueError(f"Expected a 3D array, got shape {values.shape}")
        self._values = np.ascontiguousarray(values, dtype=np.float32)
        self._values.setflags(write=False)
        self._origin = tuple(int(v) for v in origin)
        if len(self._origin) != 3:
            raise ValueError(f"origin must have 3 components, got {origin}")

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def origin(self):
        return self._origin

    def active_mask(self) -> np.ndarray:
        return self._values != self.background

    def active_voxel_count(self) -> int:
        return int(np.count_nonzero(self.active_mask()))

    def active_bounding_box(self) -> CoordBBox:
        offsets = np.argwhere(self.active_mask())
        if offsets.shape[0] == 0:
            return CoordBBox.empty()
        return CoordBBox.from_coords(offsets + np.asarray(self._origin))

    def sample(self, ijk) -> np.float32:
        return DenseAccessor(self).sample(ijk)

    def accessor(self) -> DenseAccessor:
        return DenseAccessor(self)

    def _pack(self) -> GridBuffers:
        origin = np.asarray(self._origin, dtype=np.int64)
        shape = np.asarray(self._values.shape, dtype=np.int64)

        # Pad the block out to whole leaves, then cut it into 8^3 tiles.
        leaf_min = origin >> LEAF_LOG2DIM
        leaf_max = (origin + shape - 1) >> LEAF_LOG2DIM
        n_leaves = leaf_max - leaf_min + 1
        start = origin - leaf_min * LEAF_DIM

        padded = np.full(tuple(n_leaves * LEAF_DIM), self.background, dtype=np.float32)
        padded[start[0]:start[0] + shape[0],
               start[1]:start[1] + shape[1],
               start[2]:start[2] + shape[2]] = self._values
        tiles = padded.reshape(
            n_leaves[0], LEAF_DIM, n_leaves[1], LEAF_DIM, n_leaves[2], LEAF_DIM
        ).transpose(0, 2, 4, 1, 3, 5)

        occupied = (tiles != self.background).any(axis=(3, 4, 5))
        leaves = {
            tuple(int(v) for v in (idx + leaf_min)): np.array(tiles[tuple(idx)])
            for idx in np.argwhere(occupied)
        }
        return pack_leaves(leaves, self.background, self.active_bounding_box(), self.transform)
