"""Index-space and world-space bounding boxes."""

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

_INT_MAX = np.iinfo(np.int32).max
_INT_MIN = np.iinfo(np.int32).min

Coord = Tuple[int, int, int]


@dataclass(frozen=True)
class CoordBBox:
    """Inclusive integer bounding box in index space.

    A box covers every voxel ``ijk`` with ``min <= ijk <= max``. The voxels
    themselves have unit extent, so the continuous region spanned by the box is
    ``[min, max + 1]`` on each axis.

    Attributes:
        min: Minimum corner (i, j, k)
        max: Maximum corner (i, j, k), inclusive
    """

    min: Coord
    max: Coord

    def __post_init__(self):
        object.__setattr__(self, "min", tuple(int(v) for v in self.min))
        object.__setattr__(self, "max", tuple(int(v) for v in self.max))
        if len(self.min) != 3 or len(self.max) != 3:
            raise ValueError(f"CoordBBox corners must be 3D, got {self.min} and {self.max}")

    @classmethod
    def empty(cls) -> "CoordBBox":
        """Box containing no voxels (min > max on every axis)."""
        return cls((_INT_MAX,) * 3, (_INT_MIN,) * 3)

    @classmethod
    def from_coords(cls, coords: np.ndarray) -> "CoordBBox":
        """Smallest box containing an (N, 3) array of coordinates."""
        coords = np.asarray(coords).reshape(-1, 3)
        if coords.shape[0] == 0:
            return cls.empty()
        return cls(tuple(coords.min(axis=0)), tuple(coords.max(axis=0)))

    @property
    def is_empty(self) -> bool:
        return any(lo > hi for lo, hi in zip(self.min, self.max))

    @property
    def dim(self) -> Coord:
        """Number of voxels along each axis."""
        if self.is_empty:
            return (0, 0, 0)
        return tuple(hi - lo + 1 for lo, hi in zip(self.min, self.max))

    @property
    def volume(self) -> int:
        dx, dy, dz = self.dim
        return dx * dy * dz

    def contains(self, ijk) -> bool:
        return all(lo <= v <= hi for v, lo, hi in zip(ijk, self.min, self.max))

    def expand(self, other: "CoordBBox") -> "CoordBBox":
        """Union of two boxes."""
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return CoordBBox(
            tuple(min(a, b) for a, b in zip(self.min, other.min)),
            tuple(max(a, b) for a, b in zip(self.max, other.max)),
        )

    def corners(self) -> Iterator[Coord]:
        """The eight corners of the box (min and max corners, not max + 1)."""
        for x in (self.min[0], self.max[0]):
            for y in (self.min[1], self.max[1]):
                for z in (self.min[2], self.max[2]):
                    yield (x, y, z)

    def clip_bounds(self) -> np.ndarray:
        """Continuous clip region as a float32 (2, 3) array ``[min, max + 1]``.

        For an empty box the rows are swapped infinities, so ``bounds[0] >
        bounds[1]`` flags it for the compiled kernels.
        """
        if self.is_empty:
            return np.array([[np.inf] * 3, [-np.inf] * 3], dtype=np.float32)
        lo = np.asarray(self.min, dtype=np.float64)
        hi = np.asarray(self.max, dtype=np.float64) + 1.0
        return np.stack([lo, hi]).astype(np.float32)

    def __str__(self) -> str:
        if self.is_empty:
            return "CoordBBox(empty)"
        return f"{self.min} -> {self.max}"


@dataclass(frozen=True)
class WorldBBox:
    """Axis-aligned box in world space."""

    min: np.ndarray
    max: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "min", np.asarray(self.min, dtype=np.float64))
        object.__setattr__(self, "max", np.asarray(self.max, dtype=np.float64))

    @property
    def extents(self) -> np.ndarray:
        return self.max - self.min

    @property
    def center(self) -> np.ndarray:
        return self.min + self.extents * 0.5
