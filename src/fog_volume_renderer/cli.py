"""Command line harness: render a fog volume for N timed passes and save a PFM."""

import argparse
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .grid.base import FogGrid
from .grid.primitives import make_fog_sphere
from .render.dispatcher import RenderDispatcher, RenderResult
from .utils.config import COMPOSITORS, TARGETS, RenderConfig
from .utils.image import as_2d, save_pfm
from .utils.volume_io import load_dense_grid


def load_grid(args: argparse.Namespace) -> FogGrid:
    """Grid from ``--input`` or a procedural sphere."""
    if args.input is not None:
        print(f"Loading {args.input}...")
        return load_dense_grid(args.input, key=args.key, voxel_size=args.voxel_size)
    print(f"Building fog sphere (radius {args.sphere_radius} voxels)...")
    return make_fog_sphere(
        radius=args.sphere_radius,
        voxel_size=args.voxel_size or 1.0,
        density=args.density,
    )


def render_grid(grid: FogGrid, config: RenderConfig, show_progress: bool = True) -> RenderResult:
    """Render with a progress bar over passes."""
    dispatcher = RenderDispatcher(config)
    pbar = tqdm(total=config.passes, desc=f"Rendering ({config.target})", disable=not show_progress)

    def on_pass(pass_index: int, duration_ms: float):
        pbar.set_postfix(ms=f"{duration_ms:.2f}")
        pbar.update(1)

    try:
        return dispatcher.render(grid, progress_callback=on_pass)
    finally:
        pbar.close()


def save_result(result: RenderResult, config: RenderConfig, output: Path):
    """Write the opacity (or composited) image of a result as PFM."""
    image = as_2d(result.image, config.width, config.height)
    if config.channels == 2:
        image = image[..., 1]
    save_pfm(output, image)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ray-march a fog volume and save its opacity image",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--input", "-i",
        type=Path,
        default=None,
        help="Density volume (.npz); a procedural sphere is used if omitted"
    )
    source.add_argument(
        "--sphere-radius",
        type=int,
        default=50,
        help="Radius in voxels of the procedural fog sphere"
    )
    parser.add_argument("--key", default=None, help="Array name inside the .npz file")
    parser.add_argument("--voxel-size", type=float, default=None, help="World size of one voxel")
    parser.add_argument("--density", type=float, default=1.0, help="Density of the procedural sphere")
    parser.add_argument("--width", type=int, default=1024, help="Image width")
    parser.add_argument("--height", type=int, default=1024, help="Image height")
    parser.add_argument("--dt", type=float, default=0.5, help="Ray-march step (index units)")
    parser.add_argument("--density-scale", type=float, default=0.1, help="Density multiplier")
    parser.add_argument("--passes", type=int, default=1, help="Number of timed passes")
    parser.add_argument("--target", choices=TARGETS, default="parallel", help="Execution target")
    parser.add_argument("--grain-size", type=int, default=512, help="Pixels per chunk")
    parser.add_argument("--fov", type=float, default=45.0, help="Vertical field of view (degrees)")
    parser.add_argument("--compositor", choices=COMPOSITORS, default="opacity", help="Output mode")
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("raytrace_fog_volume.pfm"),
        help="Output PFM path"
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    return parser


def main(argv: Optional[List[str]] = None):
    """Entry point for ``fog-render``."""
    args = build_parser().parse_args(argv)

    config = RenderConfig(
        width=args.width,
        height=args.height,
        dt=args.dt,
        density_scale=args.density_scale,
        passes=args.passes,
        target=args.target,
        grain_size=args.grain_size,
        fov=args.fov,
        compositor=args.compositor,
    )

    grid = load_grid(args)
    bbox = grid.active_bounding_box()
    world_bbox = grid.index_to_world(bbox)
    print(f"Bounds: [{world_bbox.min[0]:.3f}, {world_bbox.min[1]:.3f}, {world_bbox.min[2]:.3f}] -> "
          f"[{world_bbox.max[0]:.3f}, {world_bbox.max[1]:.3f}, {world_bbox.max[2]:.3f}]")
    buffers = grid.to_buffers()
    print(f"Grid buffers: {buffers.leaf_count} leaves, {buffers.nbytes / 2**20:.2f} MiB")

    result = render_grid(grid, config, show_progress=not args.no_progress)
    print(f"Average duration ({result.target}) = {result.average_ms:.3f} ms")

    save_result(result, config, args.output)
    print(f"Saved to {args.output}")
    return 0


if __name__ == "__main__":
    main()
