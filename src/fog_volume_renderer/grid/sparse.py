"""Sparse grid made of 8^3 leaf nodes allocated on demand."""

from typing import Dict, Optional, Tuple

import numpy as np

from .base import Accessor, FogGrid
from .bbox import CoordBBox
from .buffers import LEAF_DIM, LEAF_LOG2DIM, LEAF_MASK, GridBuffers, pack_leaves
from .transform import AffineTransform

LeafKey = Tuple[int, int, int]


class LeafNode:
    """8x8x8 block of voxel values with a per-voxel active mask."""

    __slots__ = ("origin", "values", "active")

    def __init__(self, origin: LeafKey, background: np.float32):
        self.origin = origin
        self.values = np.full((LEAF_DIM,) * 3, background, dtype=np.float32)
        self.active = np.zeros((LEAF_DIM,) * 3, dtype=bool)

    @property
    def active_count(self) -> int:
        return int(np.count_nonzero(self.active))

    def active_bbox(self) -> CoordBBox:
        offsets = np.argwhere(self.active)
        if offsets.shape[0] == 0:
            return CoordBBox.empty()
        base = np.asarray(self.origin, dtype=np.int64) * LEAF_DIM
        return CoordBBox.from_coords(offsets + base)


class SparseAccessor(Accessor):
    """Accessor that remembers the last leaf it visited.

    Consecutive samples along a ray usually land in the same leaf, so the
    dictionary lookup is skipped most of the time.
    """

    def __init__(self, grid: "SparseGrid"):
        self._grid = grid
        self._key: Optional[LeafKey] = None
        self._leaf: Optional[LeafNode] = None

    def sample(self, ijk) -> np.float32:
        x, y, z = (int(v) for v in ijk)
        key = (x >> LEAF_LOG2DIM, y >> LEAF_LOG2DIM, z >> LEAF_LOG2DIM)
        if key != self._key:
            self._key = key
            self._leaf = self._grid._leaves.get(key)
        if self._leaf is None:
            return self._grid.background
        return self._leaf.values[x & LEAF_MASK, y & LEAF_MASK, z & LEAF_MASK]

    def is_cached(self, ijk) -> bool:
        """Whether ``ijk`` falls in the currently cached leaf."""
        x, y, z = (int(v) for v in ijk)
        return self._key == (x >> LEAF_LOG2DIM, y >> LEAF_LOG2DIM, z >> LEAF_LOG2DIM)


class SparseGrid(FogGrid):
    """Fog grid storing only the leaves that hold data.

    Voxels become active when a value is set. Inactive voxels read back as
    the background.

    Example:
        >>> grid = SparseGrid(background=0.0)
        >>> grid.set_value((3, -2, 10), 1.0)
        >>> float(grid.sample((3, -2, 10)))
        1.0
        >>> grid.active_bounding_box()
        CoordBBox(min=(3, -2, 10), max=(3, -2, 10))
    """

    def __init__(self, background: float = 0.0,
                 transform: Optional[AffineTransform] = None,
                 name: str = "density"):
        super().__init__(background, transform, name)
        self._leaves: Dict[LeafKey, LeafNode] = {}

    @classmethod
    def from_coords(
        cls,
        coords: np.ndarray,
        values,
        background: float = 0.0,
        transform: Optional[AffineTransform] = None,
        name: str = "density"
    ) -> "SparseGrid":
        """Build a grid from (N, 3) integer coordinates and matching values.

        Args:
            coords: Voxel coordinates, shape (N, 3)
            values: Scalar or array of shape (N,)
            background: Background value
            transform: Index-to-world transform
            name: Grid name

        Returns:
            SparseGrid with every listed voxel active
        """
        grid = cls(background, transform, name)
        coords = np.asarray(coords, dtype=np.int64).reshape(-1, 3)
        values = np.broadcast_to(np.asarray(values, dtype=np.float32), (coords.shape[0],))
        if coords.shape[0] == 0:
            return grid

        keys = coords >> LEAF_LOG2DIM
        unique_keys, inverse = np.unique(keys, axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)
        order = np.argsort(inverse, kind="stable")
        splits = np.cumsum(np.bincount(inverse, minlength=len(unique_keys)))[:-1]

        for key, idx in zip(unique_keys, np.split(order, splits)):
            leaf_key = tuple(int(v) for v in key)
            leaf = LeafNode(leaf_key, grid.background)
            local = coords[idx] & LEAF_MASK
            leaf.values[local[:, 0], local[:, 1], local[:, 2]] = values[idx]
            leaf.active[local[:, 0], local[:, 1], local[:, 2]] = True
            grid._leaves[leaf_key] = leaf

        return grid

    def _leaf_for(self, ijk, create: bool) -> Tuple[Optional[LeafNode], Tuple[int, int, int]]:
        x, y, z = (int(v) for v in ijk)
        key = (x >> LEAF_LOG2DIM, y >> LEAF_LOG2DIM, z >> LEAF_LOG2DIM)
        leaf = self._leaves.get(key)
        if leaf is None and create:
            leaf = LeafNode(key, self.background)
            self._leaves[key] = leaf
        return leaf, (x & LEAF_MASK, y & LEAF_MASK, z & LEAF_MASK)

    def set_value(self, ijk, value: float):
        """Set a voxel and mark it active."""
        leaf, offset = self._leaf_for(ijk, create=True)
        leaf.values[offset] = value
        leaf.active[offset] = True
        self._invalidate()

    def set_inactive(self, ijk):
        """Reset a voxel to the background and deactivate it."""
        leaf, offset = self._leaf_for(ijk, create=False)
        if leaf is None:
            return
        leaf.values[offset] = self.background
        leaf.active[offset] = False
        if leaf.active_count == 0:
            del self._leaves[leaf.origin]
        self._invalidate()

    def get_value(self, ijk) -> np.float32:
        leaf, offset = self._leaf_for(ijk, create=False)
        if leaf is None:
            return self.background
        return leaf.values[offset]

    def is_active(self, ijk) -> bool:
        leaf, offset = self._leaf_for(ijk, create=False)
        return bool(leaf is not None and leaf.active[offset])

    def sample(self, ijk) -> np.float32:
        return self.get_value(ijk)

    def accessor(self) -> SparseAccessor:
        return SparseAccessor(self)

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    def active_voxel_count(self) -> int:
        return sum(leaf.active_count for leaf in self._leaves.values())

    def active_bounding_box(self) -> CoordBBox:
        bbox = CoordBBox.empty()
        for leaf in self._leaves.values():
            bbox = bbox.expand(leaf.active_bbox())
        return bbox

    def _pack(self) -> GridBuffers:
        leaves = {key: leaf.values for key, leaf in self._leaves.items()}
        return pack_leaves(leaves, self.background, self.active_bounding_box(), self.transform)
