"""Basic usage example for the fog volume renderer."""

from pathlib import Path

import numpy as np

from fog_volume_renderer import RenderConfig, RenderDispatcher, SparseGrid, make_fog_sphere
from fog_volume_renderer.utils import as_2d, save_pfm


def example_sphere():
    """Render a procedural fog sphere on the CPU."""
    grid = make_fog_sphere(radius=40, voxel_size=0.1)
    print(f"Grid: {grid}")
    print(f"Active voxels: {grid.active_voxel_count():,} in {grid.leaf_count} leaves")

    config = RenderConfig(width=256, height=256, target="parallel", passes=3)
    result = RenderDispatcher(config).render(grid)

    print(f"Durations: {[f'{ms:.2f}' for ms in result.durations_ms]} ms")
    print(f"Average: {result.average_ms:.2f} ms")

    output = Path("output/fog_sphere.pfm")
    save_pfm(output, as_2d(result.image, config.width, config.height))
    print(f"Saved to {output}")


def example_custom_grid():
    """Build a grid voxel by voxel and compare execution targets."""
    grid = SparseGrid(name="smoke")
    rng = np.random.default_rng(0)
    # Noisy column of smoke
    for z in range(-30, 30):
        for _ in range(40):
            x, y = rng.normal(0, 3, size=2).astype(int)
            grid.set_value((x, y, z), rng.uniform(0.5, 2.0))

    for target in ("python", "serial", "parallel"):
        config = RenderConfig(width=64, height=64, target=target)
        result = RenderDispatcher(config).render(grid)
        print(f"{target:>8}: {result.average_ms:8.2f} ms, "
              f"mean opacity {result.image.mean():.4f}")


if __name__ == "__main__":
    print("Fog Volume Renderer - Basic Usage Examples")
    print("=" * 60)

    print("\n1. Fog sphere:")
    example_sphere()

    print("\n2. Custom grid on every CPU target:")
    example_custom_grid()
