"""Loading and saving dense density volumes as .npz archives."""

from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..grid.dense import DenseGrid
from ..grid.transform import AffineTransform

DENSITY_KEYS = ("density", "voxels", "data", "arr_0")


def load_dense_grid(
    path: Union[str, Path],
    key: Optional[str] = None,
    voxel_size: Optional[float] = None,
    background: float = 0.0
) -> DenseGrid:
    """Load a 3D density array from an .npz file into a DenseGrid.

    Archives written by :func:`save_dense_grid` also carry the grid origin and
    voxel size, which are restored.

    Args:
        path: Path to .npz file
        key: Array name; if omitted, common names are tried in turn and the
            first array is used as a last resort
        voxel_size: Overrides the stored voxel size
        background: Background value of the grid

    Returns:
        DenseGrid over the loaded array

    Raises:
        KeyError: ``key`` is not in the archive, or the archive is empty
    """
    with np.load(path) as data:
        if key is not None:
            if key not in data:
                raise KeyError(f"Array {key!r} not found in {path}, available: {data.files}")
            values = data[key]
        else:
            # Try common key names
            for name in DENSITY_KEYS:
                if name in data:
                    values = data[name]
                    break
            else:
                if not data.files:
                    raise KeyError(f"No arrays found in {path}")
                values = data[data.files[0]]

        origin = tuple(data["origin"]) if "origin" in data else (0, 0, 0)
        if voxel_size is None:
            voxel_size = float(data["voxel_size"]) if "voxel_size" in data else 1.0

    return DenseGrid(
        values.astype(np.float32),
        origin=origin,
        background=background,
        transform=AffineTransform.linear(voxel_size),
        name=key or "density",
    )


def save_dense_grid(
    path: Union[str, Path],
    values: np.ndarray,
    origin: Sequence[int] = (0, 0, 0),
    voxel_size: float = 1.0
):
    """Save a density array with its origin and voxel size (compressed)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        density=np.asarray(values, dtype=np.float32),
        origin=np.asarray(origin, dtype=np.int64),
        voxel_size=np.float64(voxel_size),
    )
