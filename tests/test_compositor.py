"""Tests for compositing integration results into the image."""

import numpy as np
import pytest

from fog_volume_renderer.render import CHECKERBOARD, COLOR_ALPHA, OPACITY, Compositor, composite
from fog_volume_renderer.render.compositor import resolve_mode


class TestComposite:
    """Tests for the scalar composite function."""

    def test_opacity_writes_single_slot(self):
        """Test opacity mode writes only the pixel's own slot."""
        image = np.full(6, np.nan, dtype=np.float32)
        composite(image, 4, 3, np.float32(0.0), np.float32(0.75), OPACITY)
        assert image[4] == np.float32(0.75)
        assert np.isnan(np.delete(image, 4)).all()

    def test_color_alpha(self):
        """Test color and alpha are written as an interleaved pair."""
        image = np.full(12, np.nan, dtype=np.float32)
        composite(image, 3, 3, np.float32(0.25), np.float32(0.5), COLOR_ALPHA)
        assert image[6] == np.float32(0.25)
        assert image[7] == np.float32(0.5)
        assert np.isnan(np.delete(image, [6, 7])).all()

    @pytest.mark.parametrize("x, y, background", [
        (0, 0, 0.5),
        (128, 0, 1.0),
        (0, 128, 1.0),
        (128, 128, 0.5),
        (255, 3, 1.0),
    ])
    def test_checkerboard(self, x, y, background):
        """Test transparent pixels show the checkerboard pattern."""
        width = 256
        i = y * width + x
        image = np.zeros(width * 256, dtype=np.float32)
        alpha = np.float32(0.4)
        composite(image, i, width, np.float32(0.0), alpha, CHECKERBOARD)
        assert image[i] == pytest.approx((1.0 - 0.4) * background)

    def test_checkerboard_opaque_shows_value(self):
        """Test an opaque pixel hides the checkerboard."""
        image = np.zeros(4, dtype=np.float32)
        composite(image, 1, 2, np.float32(0.3), np.float32(1.0), CHECKERBOARD)
        assert image[1] == pytest.approx(0.3)


class TestCompositor:
    """Tests for the Compositor wrapper."""

    def test_modes(self):
        """Test mode names resolve to their channel counts."""
        assert Compositor().mode == OPACITY
        assert Compositor("color_alpha").channels == 2
        assert Compositor("checkerboard").channels == 1
        assert Compositor(COLOR_ALPHA).name == "color_alpha"

    def test_unknown_mode(self):
        """Test unknown mode names are rejected."""
        with pytest.raises(ValueError):
            Compositor("additive")
        with pytest.raises(ValueError):
            resolve_mode(7)

    def test_call(self):
        """Test the compositor wrapper writes through to the image."""
        image = np.zeros(4, dtype=np.float32)
        Compositor("color_alpha")(image, 1, 2, 0.0, 0.5)
        np.testing.assert_array_equal(image, [0, 0, 0, 0.5])
