"""Parametric rays and the scalar ray math shared with the render kernels.

The module-level functions operate on float32 scalars only, with no array
allocation, so the same source runs as plain Python and compiles unchanged
under ``numba.njit`` and ``numba.cuda.jit(device=True)``.
"""

import math

import numpy as np

from .bbox import CoordBBox

FLT_MAX = np.float32(3.4028234663852886e38)
RAY_EPSILON = np.float32(1e-5)
# Direction components smaller than this are treated as parallel to a slab.
PARALLEL_EPSILON = np.float32(1e-20)


def transform_ray(m, ox, oy, oz, dx, dy, dz):
    """Move a world-space ray into index space.

    Args:
        m: float32 (3, 4) world-to-index matrix
        ox, oy, oz: World-space eye
        dx, dy, dz: World-space direction

    Returns:
        (ex, ey, ez, ix, iy, iz, length): index-space eye, unit index-space
        direction, and the length of the unnormalised index-space direction,
        which rescales the ray's parametric interval.
    """
    ex = m[0, 0] * ox + m[0, 1] * oy + m[0, 2] * oz + m[0, 3]
    ey = m[1, 0] * ox + m[1, 1] * oy + m[1, 2] * oz + m[1, 3]
    ez = m[2, 0] * ox + m[2, 1] * oy + m[2, 2] * oz + m[2, 3]
    ix = m[0, 0] * dx + m[0, 1] * dy + m[0, 2] * dz
    iy = m[1, 0] * dx + m[1, 1] * dy + m[1, 2] * dz
    iz = m[2, 0] * dx + m[2, 1] * dy + m[2, 2] * dz
    length = np.float32(math.sqrt(ix * ix + iy * iy + iz * iz))
    inv_length = np.float32(1.0) / length
    return ex, ey, ez, ix * inv_length, iy * inv_length, iz * inv_length, length


def clip_slab(lo, hi, e, d, t0, t1):
    """Intersect ``[t0, t1]`` with the slab ``lo <= e + t * d <= hi``.

    Returns:
        (hit, t0, t1) with the narrowed interval
    """
    if abs(d) < PARALLEL_EPSILON:
        if e < lo or e > hi:
            return False, t0, t1
        return True, t0, t1
    inv = np.float32(1.0) / d
    a = (lo - e) * inv
    b = (hi - e) * inv
    if a > b:
        a, b = b, a
    if a > t0:
        t0 = a
    if b < t1:
        t1 = b
    return t0 <= t1, t0, t1


class Ray:
    """Ray ``eye + t * direction`` restricted to ``t0 <= t < t1``.

    All components are stored as float32. The direction is normalised on
    construction.

    Args:
        eye: Ray origin
        direction: Ray direction (need not be unit length)
        t0: Start of the parametric interval
        t1: End of the parametric interval
    """

    def __init__(self, eye, direction, t0=RAY_EPSILON, t1=FLT_MAX):
        self.eye = np.asarray(eye, dtype=np.float32).reshape(3)
        direction = np.asarray(direction, dtype=np.float32).reshape(3)
        length = np.float32(math.sqrt(float(np.dot(direction, direction))))
        if length == 0:
            raise ValueError("Ray direction must be non-zero")
        self.direction = direction / length
        self.t0 = np.float32(t0)
        self.t1 = np.float32(t1)
        if self.t0 > self.t1:
            raise ValueError(f"Ray interval is inverted: t0={self.t0} > t1={self.t1}")

    @classmethod
    def from_unit(cls, eye, direction, t0=RAY_EPSILON, t1=FLT_MAX) -> "Ray":
        """Build a ray from a direction that is already unit length.

        Skips renormalisation so the components are kept bit for bit.
        """
        ray = cls.__new__(cls)
        ray.eye = np.asarray(eye, dtype=np.float32).reshape(3)
        ray.direction = np.asarray(direction, dtype=np.float32).reshape(3)
        ray.t0 = np.float32(t0)
        ray.t1 = np.float32(t1)
        return ray

    def __call__(self, t) -> np.ndarray:
        """Position at parameter ``t``."""
        return self.eye + self.direction * np.float32(t)

    @property
    def inv_direction(self) -> np.ndarray:
        with np.errstate(divide="ignore"):
            return np.float32(1.0) / self.direction

    @property
    def times(self):
        return self.t0, self.t1

    def world_to_index(self, m: np.ndarray) -> "Ray":
        """Index-space copy of this ray given a float32 (3, 4) world-to-index matrix.

        The interval is scaled by the length of the transformed direction so
        that ``t`` keeps addressing the same points along the ray; an infinite
        (``FLT_MAX``) end stays unbounded.
        """
        ex, ey, ez, ix, iy, iz, length = transform_ray(
            m, self.eye[0], self.eye[1], self.eye[2],
            self.direction[0], self.direction[1], self.direction[2]
        )
        t1 = self.t1 if self.t1 >= FLT_MAX else self.t1 * length
        return Ray.from_unit((ex, ey, ez), (ix, iy, iz), self.t0 * length, t1)

    def clip(self, bbox: CoordBBox) -> bool:
        """Shrink the interval to the voxel extent of ``bbox``.

        Returns:
            False (interval untouched) if the ray misses the box or the box is
            empty, True otherwise.
        """
        if bbox.is_empty:
            return False
        bounds = bbox.clip_bounds()
        t0, t1 = self.t0, self.t1
        for axis in range(3):
            hit, t0, t1 = clip_slab(bounds[0, axis], bounds[1, axis],
                                    self.eye[axis], self.direction[axis], t0, t1)
            if not hit:
                return False
        self.t0, self.t1 = np.float32(t0), np.float32(t1)
        return True

    def __repr__(self) -> str:
        return (f"Ray(eye={self.eye.tolist()}, direction={self.direction.tolist()}, "
                f"t0={float(self.t0)}, t1={float(self.t1)})")
