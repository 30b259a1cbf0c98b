"""Image buffers and PFM (portable float map) files."""

from pathlib import Path
from typing import Union

import numpy as np


def allocate_image(width: int, height: int, channels: int = 1, fill: float = 0.0) -> np.ndarray:
    """Flat float32 buffer of ``width * height * channels`` values."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive, got {width}x{height}")
    if channels < 1:
        raise ValueError(f"channels must be >= 1, got {channels}")
    return np.full(width * height * channels, fill, dtype=np.float32)


def as_2d(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """View a flat buffer as (height, width) or (height, width, channels)."""
    channels = image.size // (width * height)
    if channels * width * height != image.size:
        raise ValueError(f"Buffer of {image.size} values does not match {width}x{height}")
    if channels == 1:
        return image.reshape(height, width)
    return image.reshape(height, width, channels)


def save_pfm(path: Union[str, Path], image: np.ndarray):
    """Write a grayscale (H, W) or RGB (H, W, 3) float image as PFM.

    Row 0 of ``image`` is the bottom scanline, which is also the order PFM
    stores rows in, so the buffer is written as is (little-endian).
    """
    image = np.asarray(image, dtype=np.float32)
    if image.ndim == 2:
        header = "Pf"
    elif image.ndim == 3 and image.shape[2] == 3:
        header = "PF"
    else:
        raise ValueError(f"PFM needs an (H, W) or (H, W, 3) image, got shape {image.shape}")

    height, width = image.shape[:2]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(f"{header}\n{width} {height}\n-1.0\n".encode("ascii"))
        f.write(np.ascontiguousarray(image, dtype="<f4").tobytes())


def load_pfm(path: Union[str, Path]) -> np.ndarray:
    """Read a PFM file written by :func:`save_pfm` (either byte order).

    Returns:
        float32 array of shape (H, W) or (H, W, 3), row 0 at the bottom
    """
    with open(path, "rb") as f:
        header = f.readline().strip()
        if header == b"Pf":
            channels = 1
        elif header == b"PF":
            channels = 3
        else:
            raise ValueError(f"Not a PFM file: {path}")

        try:
            width, height = (int(v) for v in f.readline().split())
            scale = float(f.readline().strip())
        except ValueError as e:
            raise ValueError(f"Malformed PFM header in {path}") from e

        dtype = "<f4" if scale < 0 else ">f4"
        data = np.frombuffer(f.read(), dtype=dtype)

    expected = width * height * channels
    if data.size != expected:
        raise ValueError(f"PFM {path} holds {data.size} values, expected {expected}")

    data = data.astype(np.float32)
    if channels == 1:
        return data.reshape(height, width)
    return data.reshape(height, width, 3)
