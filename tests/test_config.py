"""Tests for render configuration."""

import pytest

from fog_volume_renderer.utils.config import RenderConfig


def test_defaults():
    """Test default configuration values."""
    config = RenderConfig()
    assert (config.width, config.height) == (1024, 1024)
    assert config.dt == 0.5
    assert config.density_scale == 0.1
    assert config.passes == 1
    assert config.target == "parallel"
    assert config.compositor == "opacity"


def test_derived_sizes():
    """Test pixel count and buffer size per compositor."""
    config = RenderConfig(width=10, height=4)
    assert config.pixel_count == 40
    assert config.channels == 1
    assert config.image_size == 40

    config = RenderConfig(width=10, height=4, compositor="color_alpha")
    assert config.channels == 2
    assert config.image_size == 80


def test_single_pixel_allowed():
    """Test a 1x1 image is a valid configuration."""
    config = RenderConfig(width=1, height=1)
    assert config.pixel_count == 1


@pytest.mark.parametrize("options", [
    dict(width=0),
    dict(height=-3),
    dict(dt=0.0),
    dict(dt=-0.5),
    dict(density_scale=-0.1),
    dict(passes=0),
    dict(grain_size=0),
    dict(fov=0.0),
    dict(fov=180.0),
    dict(target="metal"),
    dict(compositor="additive"),
])
def test_validation(options):
    """Test invalid values are rejected before rendering."""
    with pytest.raises(ValueError):
        RenderConfig(**options)


def test_to_dict():
    """Test the configuration serialises to a plain dict."""
    config = RenderConfig(width=8, height=6, target="serial")
    options = config.to_dict()
    assert options["target"] == "serial"
    assert RenderConfig(**options) == config
