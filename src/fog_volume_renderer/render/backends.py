"""Execution targets for the per-pixel pipeline.

A backend runs the pipeline over a pixel range ``[start, end)`` and writes
into the caller's image. ``prepare`` is called once per render to set up
per-target state (accessors, compiled kernels, device buffers); ``execute``
is then called for each range of each pass.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Type

import numpy as np
from numba import cuda

from .camera import RayGenerator
from .compositor import Compositor
from .integrator import FogIntegrator
from .kernels import CUDA_BLOCK_SIZE, cpu_kernels, cuda_kernel


class Backend(ABC):
    """Target that executes the pixel pipeline over contiguous ranges.

    Attributes:
        name: Registry name of the target
        chunked: If True the dispatcher splits each pass into
            ``grain_size`` ranges and calls :meth:`execute` per range;
            otherwise it passes the whole pixel range at once.
    """

    name: str = ""
    chunked: bool = False

    def prepare(self, job) -> Any:
        """Per-render state passed back to :meth:`execute`."""
        return job

    @abstractmethod
    def execute(self, start: int, end: int, image: np.ndarray, prepared: Any):
        """Render pixels ``[start, end)`` into ``image``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PythonBackend(Backend):
    """Interface-driven pipeline in plain Python, one range at a time.

    Goes through :class:`FogGrid`, :class:`Ray` and :class:`Accessor` rather
    than packed buffers. Slow, but it is the reference the compiled targets
    are checked against.
    """

    name = "python"
    chunked = True

    def prepare(self, job):
        return {
            "grid": job.grid,
            "bbox": job.grid.active_bounding_box(),
            "rays": RayGenerator(job.camera, job.width, job.height),
            "integrator": FogIntegrator(job.dt, job.density_scale),
            "compositor": Compositor(job.mode),
            "width": job.width,
        }

    def execute(self, start, end, image, prepared):
        grid = prepared["grid"]
        bbox = prepared["bbox"]
        rays = prepared["rays"]
        integrator = prepared["integrator"]
        compositor = prepared["compositor"]
        width = prepared["width"]

        # One accessor per range so its leaf cache is never shared.
        accessor = grid.accessor()
        for i in range(start, end):
            value, alpha = integrator.integrate(rays(i), grid, accessor, bbox)
            compositor(image, i, width, value, alpha)


class SerialBackend(Backend):
    """Compiled CPU kernel looping over the range on the calling thread."""

    name = "serial"

    def prepare(self, job):
        render_range, _ = cpu_kernels()
        args = job.kernel_args()
        # Compile ahead of the first timed pass.
        render_range(0, 0, *args, np.empty(job.image_size, dtype=np.float32))
        return render_range, args

    def execute(self, start, end, image, prepared):
        render_range, args = prepared
        render_range(start, end, *args, image)


class ParallelBackend(Backend):
    """Compiled CPU kernel spreading ``grain_size`` chunks over numba threads."""

    name = "parallel"

    def prepare(self, job):
        _, render_chunks = cpu_kernels()
        args = job.kernel_args()
        render_chunks(0, 0, job.grain_size, *args, np.empty(job.image_size, dtype=np.float32))
        return render_chunks, job.grain_size, args

    def execute(self, start, end, image, prepared):
        render_chunks, grain_size, args = prepared
        render_chunks(start, end, grain_size, *args, image)


class CudaBackend(Backend):
    """Numba CUDA kernel with one thread per pixel.

    The grid buffers are uploaded once in :meth:`prepare`; the image is copied
    to the device and back on every :meth:`execute`.

    Raises:
        RuntimeError: If no CUDA device is available
    """

    name = "cuda"

    def __init__(self):
        if not cuda.is_available():
            raise RuntimeError(
                "CUDA target requested but no CUDA device is available. "
                "Use target='parallel' to render on the CPU."
            )

    def prepare(self, job):
        kernel = cuda_kernel()
        args = tuple(
            cuda.to_device(arg) if isinstance(arg, np.ndarray) else arg
            for arg in job.kernel_args()
        )
        warmup = cuda.device_array(job.image_size, dtype=np.float32)
        kernel[1, CUDA_BLOCK_SIZE](0, 0, *args, warmup)
        cuda.synchronize()
        return kernel, args

    def execute(self, start, end, image, prepared):
        kernel, args = prepared
        count = end - start
        if count <= 0:
            return
        d_image = cuda.to_device(image)
        blocks = (count + CUDA_BLOCK_SIZE - 1) // CUDA_BLOCK_SIZE
        kernel[blocks, CUDA_BLOCK_SIZE](start, end, *args, d_image)
        cuda.synchronize()
        d_image.copy_to_host(image)


BACKENDS: Dict[str, Type[Backend]] = {
    cls.name: cls for cls in (PythonBackend, SerialBackend, ParallelBackend, CudaBackend)
}


def get_backend(target: str) -> Backend:
    """Instantiate the backend registered under ``target``.

    Raises:
        ValueError: Unknown target
        RuntimeError: Target exists but cannot run here (no CUDA device)
    """
    try:
        cls = BACKENDS[target]
    except KeyError:
        raise ValueError(
            f"Unknown target {target!r}, expected one of {sorted(BACKENDS)}"
        ) from None
    return cls()


def available_backends() -> List[str]:
    """Targets that can run on this machine."""
    names = [name for name in BACKENDS if name != CudaBackend.name]
    if cuda.is_available():
        names.append(CudaBackend.name)
    return names
