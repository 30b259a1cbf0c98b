"""Render configuration."""

from dataclasses import dataclass

TARGETS = ("python", "serial", "parallel", "cuda")
COMPOSITORS = ("opacity", "color_alpha", "checkerboard")


@dataclass
class RenderConfig:
    """Configuration for a fog volume render.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        dt: Ray-march step in index-space units (default: 0.5)
        density_scale: Multiplier applied to sampled densities (default: 0.1)
        passes: Number of timed render passes (default: 1)
        target: Execution target: python, serial, parallel or cuda
        grain_size: Pixels per chunk for chunked targets (default: 512)
        fov: Vertical field of view in degrees (default: 45)
        compositor: Output mode: opacity, color_alpha or checkerboard
    """

    width: int = 1024
    height: int = 1024
    dt: float = 0.5
    density_scale: float = 0.1
    passes: int = 1
    target: str = "parallel"
    grain_size: int = 512
    fov: float = 45.0
    compositor: str = "opacity"

    def __post_init__(self):
        """Validate configuration."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image size must be positive, got {self.width}x{self.height}"
            )

        if not self.dt > 0:
            raise ValueError(f"dt must be positive, got {self.dt}")

        if self.density_scale < 0:
            raise ValueError(f"density_scale must be non-negative, got {self.density_scale}")

        if self.passes < 1:
            raise ValueError(f"passes must be >= 1, got {self.passes}")

        if self.grain_size < 1:
            raise ValueError(f"grain_size must be >= 1, got {self.grain_size}")

        if not 0 < self.fov < 180:
            raise ValueError(f"fov must be in (0, 180) degrees, got {self.fov}")

        if self.target not in TARGETS:
            raise ValueError(f"Unknown target {self.target!r}, expected one of {TARGETS}")

        if self.compositor not in COMPOSITORS:
            raise ValueError(
                f"Unknown compositor {self.compositor!r}, expected one of {COMPOSITORS}"
            )

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def channels(self) -> int:
        """Values stored per pixel by the selected compositor."""
        return 2 if self.compositor == "color_alpha" else 1

    @property
    def image_size(self) -> int:
        """Length of the flat image buffer."""
        return self.pixel_count * self.channels

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "dt": self.dt,
            "density_scale": self.density_scale,
            "passes": self.passes,
            "target": self.target,
            "grain_size": self.grain_size,
            "fov": self.fov,
            "compositor": self.compositor,
        }
