"""Pinhole camera looking down -z at a grid's world bounding box."""

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from ..grid.base import FogGrid
from ..grid.ray import Ray


def generate_ray(i, width, height, cx, cy, cz, depth, tan_half_fov):
    """World-space ray through the center of pixel ``i``.

    Pixel ``i`` sits at column ``i % width`` and row ``i // width``; row 0 is
    the bottom scanline. The eye is ``center + (0, 0, depth)`` and the image
    plane spans ``tan_half_fov`` vertically at unit distance.

    Returns:
        (ox, oy, oz, dx, dy, dz) with a unit direction, all float32
    """
    x = i % width
    y = i // width
    u = np.float32((np.float32(x) + np.float32(0.5)) / np.float32(width))
    v = np.float32((np.float32(y) + np.float32(0.5)) / np.float32(height))
    aspect = np.float32(np.float32(width) / np.float32(height))

    px = (np.float32(2.0) * u - np.float32(1.0)) * tan_half_fov * aspect
    py = (np.float32(2.0) * v - np.float32(1.0)) * tan_half_fov
    pz = np.float32(-1.0)

    inv_length = np.float32(1.0) / np.float32(math.sqrt(px * px + py * py + pz * pz))
    return (cx, cy, cz + depth,
            px * inv_length, py * inv_length, pz * inv_length)


@dataclass(frozen=True)
class CameraParams:
    """Immutable camera inputs for one render.

    Attributes:
        center: World-space center of the grid's active bounds
        depth: Distance of the eye from ``center`` along +z
        fov: Vertical field of view in degrees
    """

    center: Tuple[float, float, float]
    depth: float
    fov: float = 45.0

    def __post_init__(self):
        object.__setattr__(self, "center", tuple(float(c) for c in self.center))
        if len(self.center) != 3:
            raise ValueError(f"center must have 3 components, got {self.center}")
        if not 0.0 < self.fov < 180.0:
            raise ValueError(f"fov must be in (0, 180) degrees, got {self.fov}")

    @classmethod
    def from_grid(cls, grid: FogGrid, fov: float = 45.0) -> "CameraParams":
        """Frame the grid's active voxels.

        The eye is placed twice the world z-extent in front of the center.
        An empty grid gives a camera at the origin with zero depth.
        """
        world_bbox = grid.index_to_world(grid.active_bounding_box())
        return cls(
            center=tuple(world_bbox.center),
            depth=float(world_bbox.extents[2] * 2.0),
            fov=fov,
        )

    @property
    def eye(self) -> np.ndarray:
        return np.array([self.center[0], self.center[1], self.center[2] + self.depth])

    @property
    def tan_half_fov(self) -> np.float32:
        return np.float32(math.tan(math.radians(self.fov) / 2.0))

    def kernel_args(self):
        """Float32 scalars ``(cx, cy, cz, depth, tan_half_fov)``."""
        cx, cy, cz = (np.float32(c) for c in self.center)
        return cx, cy, cz, np.float32(self.depth), self.tan_half_fov


class RayGenerator:
    """Maps pixel indices of a ``width`` x ``height`` image to world rays."""

    def __init__(self, camera: CameraParams, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        self.camera = camera
        self.width = int(width)
        self.height = int(height)
        self._args = camera.kernel_args()

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def __call__(self, i: int) -> Ray:
        if not 0 <= i < self.pixel_count:
            raise IndexError(f"Pixel index {i} out of range [0, {self.pixel_count})")
        ox, oy, oz, dx, dy, dz = generate_ray(i, self.width, self.height, *self._args)
        return Ray.from_unit((ox, oy, oz), (dx, dy, dz))

    def __iter__(self) -> Iterator[Ray]:
        for i in range(self.pixel_count):
            yield self(i)
