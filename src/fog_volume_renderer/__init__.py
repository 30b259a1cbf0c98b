"""Fixed-step transmittance renderer for sparse fog volumes."""

from .grid import (
    AffineTransform,
    CoordBBox,
    DenseGrid,
    FogGrid,
    Ray,
    SparseGrid,
    make_fog_box,
    make_fog_sphere,
)
from .render import CameraParams, FogIntegrator, RenderDispatcher, RenderResult
from .utils.config import RenderConfig


def render_volume(grid: FogGrid, config: RenderConfig = None, **kwargs) -> RenderResult:
    """Render ``grid`` with ``config`` (or a config built from ``kwargs``)."""
    if config is None:
        config = RenderConfig(**kwargs)
    elif kwargs:
        raise TypeError("Pass either a RenderConfig or keyword options, not both")
    return RenderDispatcher(config).render(grid)


__version__ = "0.1.0"
__all__ = [
    "AffineTransform",
    "CoordBBox",
    "DenseGrid",
    "FogGrid",
    "Ray",
    "SparseGrid",
    "make_fog_box",
    "make_fog_sphere",
    "CameraParams",
    "FogIntegrator",
    "RenderDispatcher",
    "RenderResult",
    "RenderConfig",
    "render_volume",
]
