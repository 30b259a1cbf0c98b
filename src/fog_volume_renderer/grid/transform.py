"""Affine index <-> world transforms for fog grids."""

from typing import Optional, Sequence

import numpy as np

from .bbox import CoordBBox, WorldBBox


class AffineTransform:
    """Affine map from a grid's index space to world space.

    The map is stored as a 4x4 homogeneous matrix acting on column vectors,
    ``world = M @ [i, j, k, 1]``.

    Args:
        matrix: 4x4 index-to-world matrix (identity if omitted)

    Example:
        >>> xform = AffineTransform.linear(voxel_size=0.5, translation=(1, 0, 0))
        >>> xform.index_to_world([2, 0, 0])
        array([2., 0., 0.])
    """

    def __init__(self, matrix: Optional[np.ndarray] = None):
        if matrix is None:
            matrix = np.eye(4)
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Transform matrix must be 4x4, got shape {matrix.shape}")
        if not np.allclose(matrix[3], [0.0, 0.0, 0.0, 1.0]):
            raise ValueError("Transform matrix must be affine (last row 0, 0, 0, 1)")
        if abs(np.linalg.det(matrix[:3, :3])) < 1e-12:
            raise ValueError("Transform matrix is singular")

        self._index_to_world = matrix
        self._world_to_index = np.linalg.inv(matrix)

    @classmethod
    def linear(cls, voxel_size: float = 1.0,
               translation: Sequence[float] = (0.0, 0.0, 0.0)) -> "AffineTransform":
        """Uniform scale followed by a translation."""
        if voxel_size <= 0:
            raise ValueError(f"voxel_size must be positive, got {voxel_size}")
        matrix = np.eye(4)
        matrix[:3, :3] *= voxel_size
        matrix[:3, 3] = translation
        return cls(matrix)

    @property
    def matrix(self) -> np.ndarray:
        return self._index_to_world.copy()

    @property
    def voxel_size(self) -> np.ndarray:
        """Length of each index axis in world units."""
        return np.linalg.norm(self._index_to_world[:3, :3], axis=0)

    def index_to_world(self, ijk) -> np.ndarray:
        ijk = np.asarray(ijk, dtype=np.float64)
        return ijk @ self._index_to_world[:3, :3].T + self._index_to_world[:3, 3]

    def world_to_index(self, xyz) -> np.ndarray:
        xyz = np.asarray(xyz, dtype=np.float64)
        return xyz @ self._world_to_index[:3, :3].T + self._world_to_index[:3, 3]

    def apply_inverse_jacobian(self, vector) -> np.ndarray:
        """Map a world-space direction into index space (no translation)."""
        vector = np.asarray(vector, dtype=np.float64)
        return vector @ self._world_to_index[:3, :3].T

    def index_to_world_bbox(self, bbox: CoordBBox) -> WorldBBox:
        """World bounds of the eight transformed corners of ``bbox``."""
        if bbox.is_empty:
            return WorldBBox(np.zeros(3), np.zeros(3))
        corners = self.index_to_world(np.array(list(bbox.corners()), dtype=np.float64))
        return WorldBBox(corners.min(axis=0), corners.max(axis=0))

    def world_to_index_f32(self) -> np.ndarray:
        """World-to-index map as a float32 (3, 4) matrix for the kernels."""
        return np.ascontiguousarray(self._world_to_index[:3, :4], dtype=np.float32)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AffineTransform):
            return NotImplemented
        return np.array_equal(self._index_to_world, other._index_to_world)

    def __repr__(self) -> str:
        return f"AffineTransform(voxel_size={self.voxel_size.tolist()}, translation={self._index_to_world[:3, 3].tolist()})"
