"""Fixed-step transmittance integration through a fog grid.

Reference implementation on top of the grid interface. The compiled kernels in
:mod:`fog_volume_renderer.render.kernels` perform the same float32 arithmetic
directly on packed grid buffers.
"""

import math
from typing import Optional, Tuple

import numpy as np

from ..grid.base import Accessor, FogGrid
from ..grid.bbox import CoordBBox
from ..grid.ray import Ray


def check_step_size(t_end, dt):
    """Raise if a float32 march with step ``dt`` stalls before ``t_end``.

    Float32 spacing grows with magnitude; once it exceeds ``dt``,
    ``t + dt`` rounds back to ``t``. Spacing is monotonic in ``t``, so
    checking the largest reachable ``t`` covers the whole interval.

    Raises:
        ValueError: ``t_end + dt`` rounds to ``t_end`` in float32
    """
    t_end = np.float32(t_end)
    if not np.float32(t_end + np.float32(dt)) > t_end:
        raise ValueError(
            f"Step dt={float(dt)} is below float32 resolution at t={float(t_end):.6g}; "
            f"move the camera closer or increase dt"
        )


class FogIntegrator:
    """March a ray through a grid and accumulate transmittance.

    Each step samples the voxel containing ``ray(t)`` and applies
    ``T *= 1 - sigma * density_scale * dt``. The returned opacity is ``1 - T``.
    Transmittance can go negative when ``sigma * density_scale * dt > 1``; it
    is not clamped.

    Args:
        dt: Step size in index-space units (must be > 0)
        density_scale: Multiplier applied to every sampled density

    Example:
        >>> from fog_volume_renderer.grid import make_fog_box, Ray
        >>> grid = make_fog_box((0, 0, 0), (3, 3, 3))
        >>> integrator = FogIntegrator(dt=0.5, density_scale=0.1)
        >>> color, opacity = integrator.integrate(Ray((2, 2, 10), (0, 0, -1)), grid)
    """

    def __init__(self, dt: float = 0.5, density_scale: float = 0.1):
        if not dt > 0:
            raise ValueError(f"dt must be positive, got {dt}")
        if density_scale < 0:
            raise ValueError(f"density_scale must be non-negative, got {density_scale}")
        self.dt = np.float32(dt)
        self.density_scale = np.float32(density_scale)

    def transmittance(self, ray: Ray, accessor: Accessor) -> np.float32:
        """Transmittance along an index-space ray over its current interval."""
        transmittance = np.float32(1.0)
        t, t1 = ray.times
        while t < t1:
            x = ray.eye[0] + ray.direction[0] * t
            y = ray.eye[1] + ray.direction[1] * t
            z = ray.eye[2] + ray.direction[2] * t
            ijk = (math.floor(x), math.floor(y), math.floor(z))
            sigma = np.float32(accessor.sample(ijk)) * self.density_scale
            transmittance = transmittance * (np.float32(1.0) - sigma * self.dt)
            t_next = np.float32(t + self.dt)
            if t_next <= t:
                break
            t = t_next
        return transmittance

    def integrate(
        self,
        ray: Ray,
        grid: FogGrid,
        accessor: Optional[Accessor] = None,
        bbox: Optional[CoordBBox] = None
    ) -> Tuple[np.float32, np.float32]:
        """Integrate a world-space ray.

        Args:
            ray: World-space ray
            grid: Density grid
            accessor: Accessor to reuse (a new one is created if omitted)
            bbox: Precomputed active bounding box of ``grid``

        Returns:
            (color, opacity); both 0 when the ray misses the active bounds

        Raises:
            ValueError: ``dt`` is below float32 resolution over the clipped interval
        """
        if bbox is None:
            bbox = grid.active_bounding_box()
        index_ray = grid.world_to_index(ray)
        if not index_ray.clip(bbox):
            return np.float32(0.0), np.float32(0.0)
        check_step_size(index_ray.t1, self.dt)

        if accessor is None:
            accessor = grid.accessor()
        transmittance = self.transmittance(index_ray, accessor)
        return np.float32(0.0), np.float32(1.0) - transmittance

    def __repr__(self) -> str:
        return f"FogIntegrator(dt={float(self.dt)}, density_scale={float(self.density_scale)})"
