"""Flat array layout of a fog grid for the compiled render kernels.

Every grid type packs into the same two-level structure: a dense table over
leaf coordinates (``ijk >> 3``) holding an index into a stack of 8^3 value
blocks, or -1 where no leaf is allocated.
"""

from typing import Dict, NamedTuple, Tuple

import numpy as np

from .bbox import CoordBBox
from .transform import AffineTransform

LEAF_LOG2DIM = 3
LEAF_DIM = 1 << LEAF_LOG2DIM
LEAF_MASK = LEAF_DIM - 1


class GridBuffers(NamedTuple):
    """Read-only arrays describing one grid.

    Attributes:
        origin_leaf: int64 (3,) leaf coordinate stored at ``leaf_table[0, 0, 0]``
        leaf_table: int32 (nx, ny, nz) leaf index or -1
        leaf_values: float32 (n_leaves, 8, 8, 8) voxel values, x-y-z order
        background: float32 value of unallocated voxels
        bounds: float32 (2, 3) clip region ``[bbox.min, bbox.max + 1]``;
            ``bounds[0, 0] > bounds[1, 0]`` marks an empty bounding box
        world_to_index: float32 (3, 4) affine world-to-index matrix
    """

    origin_leaf: np.ndarray
    leaf_table: np.ndarray
    leaf_values: np.ndarray
    background: np.float32
    bounds: np.ndarray
    world_to_index: np.ndarray

    @property
    def leaf_count(self) -> int:
        return int(np.count_nonzero(self.leaf_table >= 0))

    @property
    def nbytes(self) -> int:
        return self.leaf_table.nbytes + self.leaf_values.nbytes


def find_leaf(kx, ky, kz, origin_leaf, leaf_table):
    """Index of the leaf at leaf coordinate (kx, ky, kz), or -1."""
    lx = kx - origin_leaf[0]
    ly = ky - origin_leaf[1]
    lz = kz - origin_leaf[2]
    if lx < 0 or ly < 0 or lz < 0:
        return -1
    if lx >= leaf_table.shape[0] or ly >= leaf_table.shape[1] or lz >= leaf_table.shape[2]:
        return -1
    return leaf_table[lx, ly, lz]


def pack_leaves(
    leaves: Dict[Tuple[int, int, int], np.ndarray],
    background: float,
    bbox: CoordBBox,
    transform: AffineTransform
) -> GridBuffers:
    """Pack a mapping of leaf coordinate -> (8, 8, 8) values into GridBuffers.

    Args:
        leaves: Leaf blocks keyed by ``(i >> 3, j >> 3, k >> 3)``
        background: Value of voxels outside any leaf
        bbox: Active voxel bounding box
        transform: Index-to-world transform of the grid

    Returns:
        GridBuffers with contiguous arrays
    """
    background = np.float32(background)

    if not leaves:
        # Keep arrays non-empty so they can be uploaded to a device.
        origin_leaf = np.zeros(3, dtype=np.int64)
        leaf_table = np.full((1, 1, 1), -1, dtype=np.int32)
        leaf_values = np.full((1, LEAF_DIM, LEAF_DIM, LEAF_DIM), background, dtype=np.float32)
    else:
        keys = np.array(sorted(leaves.keys()), dtype=np.int64)
        origin_leaf = keys.min(axis=0)
        table_shape = tuple(keys.max(axis=0) - origin_leaf + 1)

        leaf_table = np.full(table_shape, -1, dtype=np.int32)
        leaf_values = np.empty((len(keys), LEAF_DIM, LEAF_DIM, LEAF_DIM), dtype=np.float32)
        for n, key in enumerate(keys):
            lx, ly, lz = key - origin_leaf
            leaf_table[lx, ly, lz] = n
            leaf_values[n] = leaves[tuple(int(v) for v in key)]

    return GridBuffers(
        origin_leaf=np.ascontiguousarray(origin_leaf, dtype=np.int64),
        leaf_table=np.ascontiguousarray(leaf_table),
        leaf_values=np.ascontiguousarray(leaf_values),
        background=background,
        bounds=np.ascontiguousarray(bbox.clip_bounds()),
        world_to_index=transform.world_to_index_f32(),
    )
