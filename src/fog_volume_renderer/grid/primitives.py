"""Procedural fog volumes for tests and demos."""

from typing import Sequence

import numpy as np

from .sparse import SparseGrid
from .transform import AffineTransform


def make_fog_sphere(
    radius: int,
    center: Sequence[int] = (0, 0, 0),
    voxel_size: float = 1.0,
    density: float = 1.0,
    background: float = 0.0,
    name: str = "density"
) -> SparseGrid:
    """Uniform-density sphere of voxels.

    Every voxel ``ijk`` with ``|ijk - center|^2 <= radius^2`` is set to
    ``density``. The grid's index origin maps to world ``(0, 0, 0)``.

    Args:
        radius: Sphere radius in voxels
        center: Index-space center
        voxel_size: World size of one voxel
        density: Value of voxels inside the sphere
        background: Value everywhere else
        name: Grid name

    Returns:
        SparseGrid holding the sphere
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")

    r = int(radius)
    offsets = np.arange(-r, r + 1, dtype=np.int64)
    i, j, k = np.meshgrid(offsets, offsets, offsets, indexing="ij")
    inside = i * i + j * j + k * k <= r * r
    coords = np.stack([i[inside], j[inside], k[inside]], axis=1)
    coords += np.asarray(center, dtype=np.int64)

    return SparseGrid.from_coords(
        coords, density, background=background,
        transform=AffineTransform.linear(voxel_size), name=name
    )


def make_fog_box(
    bbox_min: Sequence[int],
    bbox_max: Sequence[int],
    voxel_size: float = 1.0,
    density: float = 1.0,
    background: float = 0.0,
    name: str = "density"
) -> SparseGrid:
    """Uniform-density box covering ``bbox_min .. bbox_max`` inclusive."""
    lo = np.asarray(bbox_min, dtype=np.int64)
    hi = np.asarray(bbox_max, dtype=np.int64)
    if np.any(lo > hi):
        raise ValueError(f"Box min {tuple(lo)} exceeds max {tuple(hi)}")

    axes = [np.arange(a, b + 1, dtype=np.int64) for a, b in zip(lo, hi)]
    coords = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)

    return SparseGrid.from_coords(
        coords, density, background=background,
        transform=AffineTransform.linear(voxel_size), name=name
    )
