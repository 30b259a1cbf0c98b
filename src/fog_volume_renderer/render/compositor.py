"""Writing per-pixel integration results into the image buffer."""

from typing import Union

import numpy as np

OPACITY = 0
COLOR_ALPHA = 1
CHECKERBOARD = 2

MODES = {
    "opacity": OPACITY,
    "color_alpha": COLOR_ALPHA,
    "checkerboard": CHECKERBOARD,
}

# Side length in pixels of one checkerboard square.
CHECKER_BIT = 128


def composite(image, i, width, value, alpha, mode):
    """Store ``(value, alpha)`` for pixel ``i`` in a flat float32 image.

    ``OPACITY`` writes ``alpha`` to slot ``i``. ``COLOR_ALPHA`` writes both to
    slots ``2i`` and ``2i + 1``. ``CHECKERBOARD`` blends ``value`` over a
    two-tone background and writes the result to slot ``i``.
    """
    if mode == COLOR_ALPHA:
        image[2 * i] = value
        image[2 * i + 1] = alpha
    elif mode == CHECKERBOARD:
        x = i % width
        y = i // width
        if ((x & CHECKER_BIT) ^ (y & CHECKER_BIT)) != 0:
            bg = np.float32(1.0)
        else:
            bg = np.float32(0.5)
        image[i] = alpha * value + (np.float32(1.0) - alpha) * bg
    else:
        image[i] = alpha


def channels_for(mode: int) -> int:
    return 2 if mode == COLOR_ALPHA else 1


def resolve_mode(mode: Union[str, int]) -> int:
    """Mode constant for a name such as ``"opacity"`` or for a constant."""
    if isinstance(mode, str):
        try:
            return MODES[mode]
        except KeyError:
            raise ValueError(
                f"Unknown compositor {mode!r}, expected one of {sorted(MODES)}"
            ) from None
    if mode not in MODES.values():
        raise ValueError(f"Unknown compositor mode {mode}")
    return int(mode)


class Compositor:
    """Python-side wrapper around :func:`composite`.

    Args:
        mode: Mode name or constant (default ``"opacity"``)
    """

    def __init__(self, mode: Union[str, int] = "opacity"):
        self.mode = resolve_mode(mode)

    @property
    def channels(self) -> int:
        return channels_for(self.mode)

    @property
    def name(self) -> str:
        return next(name for name, value in MODES.items() if value == self.mode)

    def __call__(self, image: np.ndarray, i: int, width: int, value, alpha):
        composite(image, i, width, np.float32(value), np.float32(alpha), self.mode)

    def __repr__(self) -> str:
        return f"Compositor({self.name!r})"
