"""Tests for image buffers, PFM files and volume archives."""

import numpy as np
import pytest

from fog_volume_renderer.grid import DenseGrid
from fog_volume_renderer.utils import (
    allocate_image,
    as_2d,
    load_dense_grid,
    load_pfm,
    save_dense_grid,
    save_pfm,
)


class TestImage:
    """Tests for image allocation and PFM files."""

    def test_allocate(self):
        """Test allocated images are flat zeroed float32."""
        image = allocate_image(4, 3)
        assert image.shape == (12,)
        assert image.dtype == np.float32
        assert np.all(image == 0)
        assert allocate_image(4, 3, channels=2).shape == (24,)

    def test_allocate_invalid(self):
        """Test invalid image sizes are rejected."""
        with pytest.raises(ValueError):
            allocate_image(0, 3)
        with pytest.raises(ValueError):
            allocate_image(2, 2, channels=0)

    def test_as_2d(self):
        """Test reshaping a flat buffer to rows and channels."""
        image = np.arange(24, dtype=np.float32)
        assert as_2d(image, 4, 3).shape == (3, 4, 2)
        assert as_2d(image[:12], 4, 3)[1, 0] == 4
        with pytest.raises(ValueError):
            as_2d(image[:13], 4, 3)

    def test_pfm_header_and_data(self, tmp_path):
        """Test the PFM header and bottom-up float data."""
        image = np.arange(12, dtype=np.float32).reshape(3, 4) / 10
        path = tmp_path / "out.pfm"
        save_pfm(path, image)

        raw = path.read_bytes()
        assert raw.startswith(b"Pf\n4 3\n-1.0\n")
        assert len(raw) == len(b"Pf\n4 3\n-1.0\n") + 12 * 4

        loaded = load_pfm(path)
        np.testing.assert_array_equal(loaded, image)

    def test_pfm_rgb(self, tmp_path):
        """Test three-channel PFM files."""
        image = np.random.default_rng(0).random((2, 5, 3)).astype(np.float32)
        save_pfm(tmp_path / "rgb.pfm", image)
        np.testing.assert_array_equal(load_pfm(tmp_path / "rgb.pfm"), image)

    def test_pfm_big_endian(self, tmp_path):
        """Test reading big-endian PFM data."""
        path = tmp_path / "be.pfm"
        data = np.array([[1.0, 2.0]], dtype=">f4")
        path.write_bytes(b"Pf\n2 1\n1.0\n" + data.tobytes())
        np.testing.assert_array_equal(load_pfm(path), [[1.0, 2.0]])

    def test_pfm_invalid(self, tmp_path):
        """Test malformed PFM input is rejected."""
        with pytest.raises(ValueError):
            save_pfm(tmp_path / "bad.pfm", np.zeros((2, 2, 2)))
        path = tmp_path / "not.pfm"
        path.write_bytes(b"P6\n1 1\n255\n\x00\x00\x00")
        with pytest.raises(ValueError):
            load_pfm(path)
        path.write_bytes(b"Pf\n2 2\n-1.0\n" + b"\x00" * 4)
        with pytest.raises(ValueError):
            load_pfm(path)


class TestVolumeIO:
    """Tests for dense volume archives."""

    def test_save_and_load(self, tmp_path):
        """Test a saved volume loads with its origin and voxel size."""
        values = np.zeros((6, 5, 4), dtype=np.float32)
        values[2, 3, 1] = 0.75
        path = tmp_path / "volumes" / "fog.npz"
        save_dense_grid(path, values, origin=(-3, 0, 7), voxel_size=0.5)

        grid = load_dense_grid(path)
        assert isinstance(grid, DenseGrid)
        assert grid.origin == (-3, 0, 7)
        assert grid.sample((-1, 3, 8)) == np.float32(0.75)
        np.testing.assert_allclose(grid.transform.voxel_size, [0.5, 0.5, 0.5])

    def test_key_search(self, tmp_path):
        """Test the density array is found by a common key."""
        path = tmp_path / "voxels.npz"
        voxels = np.ones((2, 2, 2), dtype=np.uint8)
        np.savez_compressed(path, labels=np.zeros(3), voxels=voxels)
        grid = load_dense_grid(path)
        assert grid.active_voxel_count() == 8
        assert grid.origin == (0, 0, 0)

    def test_first_array_fallback(self, tmp_path):
        """Test the first array is used when no common key matches."""
        path = tmp_path / "other.npz"
        np.savez(path, occupancy=np.ones((3, 1, 1)))
        assert load_dense_grid(path).active_voxel_count() == 3

    def test_explicit_key(self, tmp_path):
        """Test an explicit key selects the array."""
        path = tmp_path / "two.npz"
        np.savez(path, density=np.zeros((2, 2, 2)), smoke=np.ones((2, 2, 2)))
        assert load_dense_grid(path, key="smoke").active_voxel_count() == 8
        with pytest.raises(KeyError):
            load_dense_grid(path, key="missing")

    def test_voxel_size_override(self, tmp_path):
        """Test the voxel size argument overrides the stored one."""
        path = tmp_path / "fog.npz"
        save_dense_grid(path, np.ones((2, 2, 2)), voxel_size=0.5)
        grid = load_dense_grid(path, voxel_size=3.0)
        np.testing.assert_allclose(grid.transform.voxel_size, [3.0, 3.0, 3.0])
