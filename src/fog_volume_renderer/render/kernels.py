"""Compiled per-pixel render pipeline for CPU and CUDA targets.

The pipeline is assembled from the plain scalar functions used elsewhere in
the package (:func:`generate_ray`, :func:`transform_ray`, :func:`clip_slab`,
:func:`find_leaf`, :func:`composite`). :func:`build_pixel_pipeline` wraps each
of them with a target's ``jit`` decorator, so the CPU and CUDA kernels share a
single source for the per-pixel work and differ only in how pixel ranges are
launched.

Every kernel takes the same argument list after its range arguments (see
``RenderJob.kernel_args``)::

    width, height,
    cx, cy, cz, depth, tan_half_fov,          # camera
    origin_leaf, leaf_table, leaf_values,     # grid buffers
    background, bounds, world_to_index,
    dt, density_scale, mode,
    image
"""

import math
from functools import lru_cache, partial

import numpy as np
from numba import cuda, njit, prange

from ..grid.buffers import LEAF_LOG2DIM, LEAF_MASK, find_leaf
from ..grid.ray import FLT_MAX, RAY_EPSILON, clip_slab, transform_ray
from .camera import generate_ray
from .compositor import composite

CUDA_BLOCK_SIZE = 128

# Leaf coordinate that no real voxel maps to; marks an empty leaf cache.
_NO_LEAF = np.int64(-(1 << 62))


def build_pixel_pipeline(jit):
    """Compile the pixel pipeline with the given decorator.

    Args:
        jit: Decorator applied to every stage, e.g. ``numba.njit`` or
            ``partial(numba.cuda.jit, device=True)``. An identity function
            gives a pure Python pipeline.

    Returns:
        ``render_pixel(i, <kernel args>)`` compiled for the target
    """
    gen_ray = jit(generate_ray)
    xform_ray = jit(transform_ray)
    clip = jit(clip_slab)
    lookup_leaf = jit(find_leaf)
    write_pixel = jit(composite)

    def integrate(ex, ey, ez, ix, iy, iz, t0, t1,
                  origin_leaf, leaf_table, leaf_values, background, bounds,
                  dt, density_scale):
        zero = np.float32(0.0)
        if bounds[0, 0] > bounds[1, 0]:
            return zero, zero

        hit, t0, t1 = clip(bounds[0, 0], bounds[1, 0], ex, ix, t0, t1)
        if not hit:
            return zero, zero
        hit, t0, t1 = clip(bounds[0, 1], bounds[1, 1], ey, iy, t0, t1)
        if not hit:
            return zero, zero
        hit, t0, t1 = clip(bounds[0, 2], bounds[1, 2], ez, iz, t0, t1)
        if not hit:
            return zero, zero

        one = np.float32(1.0)
        transmittance = one
        cached_x = _NO_LEAF
        cached_y = _NO_LEAF
        cached_z = _NO_LEAF
        leaf = -1
        t = t0
        while t < t1:
            vx = int(math.floor(ex + ix * t))
            vy = int(math.floor(ey + iy * t))
            vz = int(math.floor(ez + iz * t))
            kx = vx >> LEAF_LOG2DIM
            ky = vy >> LEAF_LOG2DIM
            kz = vz >> LEAF_LOG2DIM
            if kx != cached_x or ky != cached_y or kz != cached_z:
                leaf = lookup_leaf(kx, ky, kz, origin_leaf, leaf_table)
                cached_x = kx
                cached_y = ky
                cached_z = kz
            if leaf < 0:
                density = background
            else:
                density = leaf_values[leaf, vx & LEAF_MASK, vy & LEAF_MASK, vz & LEAF_MASK]
            sigma = density * density_scale
            transmittance = transmittance * (one - sigma * dt)
            t_next = t + dt
            if t_next <= t:
                break
            t = t_next
        return zero, one - transmittance

    integrate = jit(integrate)

    def render_pixel(i, width, height, cx, cy, cz, depth, tan_half_fov,
                     origin_leaf, leaf_table, leaf_values, background, bounds,
                     world_to_index, dt, density_scale, mode, image):
        ox, oy, oz, dx, dy, dz = gen_ray(i, width, height, cx, cy, cz, depth, tan_half_fov)
        ex, ey, ez, ix, iy, iz, length = xform_ray(world_to_index, ox, oy, oz, dx, dy, dz)
        value, alpha = integrate(ex, ey, ez, ix, iy, iz, RAY_EPSILON * length, FLT_MAX,
                                 origin_leaf, leaf_table, leaf_values, background, bounds,
                                 dt, density_scale)
        write_pixel(image, i, width, value, alpha, mode)

    return jit(render_pixel)


@lru_cache(maxsize=None)
def cpu_kernels():
    """Serial and parallel CPU range kernels, compiled on first call.

    Returns:
        (render_range, render_chunks):
        ``render_range(start, end, <kernel args>)`` renders ``[start, end)``
        in a loop; ``render_chunks(start, end, grain_size, <kernel args>)``
        splits the range into ``grain_size`` chunks run with ``prange``.
    """
    render_pixel = build_pixel_pipeline(njit)

    @njit(nogil=True)
    def render_range(start, end, width, height, cx, cy, cz, depth, tan_half_fov,
                     origin_leaf, leaf_table, leaf_values, background, bounds,
                     world_to_index, dt, density_scale, mode, image):
        for i in range(start, end):
            render_pixel(i, width, height, cx, cy, cz, depth, tan_half_fov,
                         origin_leaf, leaf_table, leaf_values, background, bounds,
                         world_to_index, dt, density_scale, mode, image)

    @njit(parallel=True, nogil=True)
    def render_chunks(start, end, grain_size, width, height, cx, cy, cz, depth, tan_half_fov,
                      origin_leaf, leaf_table, leaf_values, background, bounds,
                      world_to_index, dt, density_scale, mode, image):
        n_chunks = (end - start + grain_size - 1) // grain_size
        for chunk in prange(n_chunks):
            lo = start + chunk * grain_size
            hi = min(lo + grain_size, end)
            for i in range(lo, hi):
                render_pixel(i, width, height, cx, cy, cz, depth, tan_half_fov,
                             origin_leaf, leaf_table, leaf_values, background, bounds,
                             world_to_index, dt, density_scale, mode, image)

    return render_range, render_chunks


@lru_cache(maxsize=None)
def cuda_kernel():
    """CUDA kernel rendering one pixel per thread.

    Launch as ``kernel[blocks, CUDA_BLOCK_SIZE](start, end, <kernel args>)``
    with at least ``end - start`` threads in total.
    """
    render_pixel = build_pixel_pipeline(partial(cuda.jit, device=True))

    @cuda.jit
    def render_kernel(start, end, width, height, cx, cy, cz, depth, tan_half_fov,
                      origin_leaf, leaf_table, leaf_values, background, bounds,
                      world_to_index, dt, density_scale, mode, image):
        i = start + cuda.grid(1)
        if i < end:
            render_pixel(i, width, height, cx, cy, cz, depth, tan_half_fov,
                         origin_leaf, leaf_table, leaf_values, background, bounds,
                         world_to_index, dt, density_scale, mode, image)

    return render_kernel


def python_pipeline():
    """Uncompiled pipeline, handy for stepping through a single pixel."""
    return build_pixel_pipeline(lambda func: func)
