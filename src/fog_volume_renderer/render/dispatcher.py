"""Partitioning the pixel range and running timed render passes."""

import time
import warnings
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from ..grid.base import FogGrid
from ..grid.buffers import GridBuffers
from ..utils.config import RenderConfig
from ..utils.image import allocate_image
from .backends import Backend, get_backend
from .camera import CameraParams
from .compositor import channels_for, resolve_mode
from .integrator import check_step_size


def chunk_ranges(count: int, grain_size: int) -> Iterator[Tuple[int, int]]:
    """Contiguous ``[start, end)`` ranges of at most ``grain_size`` covering ``[0, count)``."""
    if grain_size < 1:
        raise ValueError(f"grain_size must be >= 1, got {grain_size}")
    for start in range(0, count, grain_size):
        yield start, min(start + grain_size, count)


@dataclass(frozen=True)
class RenderJob:
    """Everything the per-pixel pipeline reads during one render.

    Built once per render and shared read-only by every worker.
    """

    grid: FogGrid
    buffers: GridBuffers
    camera: CameraParams
    width: int
    height: int
    dt: np.float32
    density_scale: np.float32
    mode: int
    grain_size: int

    @classmethod
    def create(cls, grid: FogGrid, camera: CameraParams, config: RenderConfig) -> "RenderJob":
        return cls(
            grid=grid,
            buffers=grid.to_buffers(),
            camera=camera,
            width=config.width,
            height=config.height,
            dt=np.float32(config.dt),
            density_scale=np.float32(config.density_scale),
            mode=resolve_mode(config.compositor),
            grain_size=config.grain_size,
        )

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def image_size(self) -> int:
        return self.pixel_count * channels_for(self.mode)

    def kernel_args(self) -> tuple:
        """Arguments shared by every compiled kernel, in kernel order."""
        b = self.buffers
        return (
            self.width, self.height,
            *self.camera.kernel_args(),
            b.origin_leaf, b.leaf_table, b.leaf_values,
            b.background, b.bounds, b.world_to_index,
            self.dt, self.density_scale, self.mode,
        )


@dataclass
class RenderResult:
    """Image and timings of a render.

    Attributes:
        image: Flat float32 buffer from the final pass
        durations_ms: Wall-clock duration of each pass in milliseconds
        camera: Camera the image was rendered with
        target: Backend name
    """

    image: np.ndarray
    durations_ms: List[float] = field(default_factory=list)
    camera: Optional[CameraParams] = None
    target: str = ""

    @property
    def average_ms(self) -> float:
        if not self.durations_ms:
            return 0.0
        return sum(self.durations_ms) / len(self.durations_ms)


class RenderDispatcher:
    """Runs the per-pixel pipeline over every pixel of the image.

    Args:
        config: Render configuration
        backend: Backend to use instead of the one named by ``config.target``

    Example:
        >>> from fog_volume_renderer.grid import make_fog_sphere
        >>> dispatcher = RenderDispatcher(RenderConfig(width=64, height=64, target="serial"))
        >>> result = dispatcher.render(make_fog_sphere(radius=10))
        >>> result.image.shape
        (4096,)
    """

    def __init__(self, config: RenderConfig, backend: Optional[Backend] = None):
        self.config = config
        self.backend = backend if backend is not None else get_backend(config.target)

    def _check_image(self, image: np.ndarray) -> np.ndarray:
        expected = self.config.image_size
        if not isinstance(image, np.ndarray) or image.dtype != np.float32:
            raise ValueError("Image buffer must be a float32 numpy array")
        if image.ndim != 1 or image.size != expected:
            raise ValueError(
                f"Image buffer must be flat with {expected} values "
                f"({self.config.width}x{self.config.height}x{self.config.channels}), "
                f"got shape {image.shape}"
            )
        if not image.flags.c_contiguous or not image.flags.writeable:
            raise ValueError("Image buffer must be contiguous and writeable")
        return image

    def _check_stability(self, grid: FogGrid):
        peak = grid.max_value() * self.config.density_scale * self.config.dt
        if peak >= 1.0:
            warnings.warn(
                f"max density * density_scale * dt = {peak:.3g} >= 1; "
                f"transmittance may go negative. Reduce dt or density_scale.",
                RuntimeWarning,
                stacklevel=3,
            )

    def _check_step_resolution(self, grid: FogGrid, camera: CameraParams):
        bbox = grid.active_bounding_box()
        if bbox.is_empty:
            return
        # Index-space directions are unit length, so t is the index-space distance
        eye = grid.transform.world_to_index(camera.eye)
        bounds = bbox.clip_bounds().astype(np.float64)
        corners = np.array([[x, y, z] for x in bounds[:, 0] for y in bounds[:, 1] for z in bounds[:, 2]])
        t_end = np.linalg.norm(corners - eye, axis=1).max()
        check_step_size(t_end, self.config.dt)

    def ranges(self, count: int) -> List[Tuple[int, int]]:
        """Pixel ranges passed to the backend for one pass."""
        if self.backend.chunked:
            return list(chunk_ranges(count, self.config.grain_size))
        return [(0, count)]

    def render(
        self,
        grid: FogGrid,
        image: Optional[np.ndarray] = None,
        camera: Optional[CameraParams] = None,
        progress_callback: Optional[Callable[[int, float], None]] = None
    ) -> RenderResult:
        """Render ``config.passes`` passes of ``grid`` into ``image``.

        Args:
            grid: Density grid to render
            image: Pre-allocated flat float32 buffer (allocated if omitted)
            camera: Camera parameters (framed on the grid if omitted)
            progress_callback: Called as ``callback(pass_index, duration_ms)``
                after each pass

        Returns:
            RenderResult holding the image of the final pass and all timings

        Raises:
            TypeError: ``grid`` is not a FogGrid
            ValueError: ``image`` does not match the configuration
                or ``dt`` is below float32 resolution along the camera rays
        """
        if not isinstance(grid, FogGrid):
            raise TypeError(f"Expected a FogGrid, got {type(grid).__name__}")

        config = self.config
        if image is None:
            image = allocate_image(config.width, config.height, config.channels)
        else:
            image = self._check_image(image)

        if camera is None:
            camera = CameraParams.from_grid(grid, config.fov)

        self._check_stability(grid)
        self._check_step_resolution(grid, camera)

        job = RenderJob.create(grid, camera, config)
        prepared = self.backend.prepare(job)
        ranges = self.ranges(job.pixel_count)

        durations = []
        for pass_index in range(config.passes):
            start_time = time.perf_counter()
            for start, end in ranges:
                self.backend.execute(start, end, image, prepared)
            duration_ms = (time.perf_counter() - start_time) * 1000.0
            durations.append(duration_ms)
            if progress_callback is not None:
                progress_callback(pass_index, duration_ms)

        return RenderResult(image, durations, camera, self.backend.name)
