"""Ray generation, transmittance integration, compositing and dispatch."""

from .backends import BACKENDS, Backend, available_backends, get_backend
from .camera import CameraParams, RayGenerator, generate_ray
from .compositor import CHECKERBOARD, COLOR_ALPHA, OPACITY, Compositor, composite
from .dispatcher import RenderDispatcher, RenderJob, RenderResult, chunk_ranges
from .integrator import FogIntegrator

__all__ = [
    "BACKENDS",
    "Backend",
    "available_backends",
    "get_backend",
    "CameraParams",
    "RayGenerator",
    "generate_ray",
    "CHECKERBOARD",
    "COLOR_ALPHA",
    "OPACITY",
    "Compositor",
    "composite",
    "RenderDispatcher",
    "RenderJob",
    "RenderResult",
    "chunk_ranges",
    "FogIntegrator",
]
