"""Tests for transmittance integration."""

import numpy as np
import pytest

from fog_volume_renderer.grid import Ray, SparseGrid, make_fog_box, make_fog_sphere
from fog_volume_renderer.render import CameraParams, FogIntegrator, RayGenerator
from fog_volume_renderer.render.compositor import OPACITY
from fog_volume_renderer.render.integrator import check_step_size
from fog_volume_renderer.render.kernels import python_pipeline

STEP_FACTOR = float(np.float32(1.0) - np.float32(0.1) * np.float32(0.5))


def column_grid():
    """Unit-density slab far larger than any test path."""
    return make_fog_box((-4, -4, -64), (4, 4, 63))


class TestFogIntegrator:
    """Tests for the reference integrator."""

    def test_invalid_parameters(self):
        """Test invalid step and scale are rejected."""
        with pytest.raises(ValueError):
            FogIntegrator(dt=0.0)
        with pytest.raises(ValueError):
            FogIntegrator(dt=-0.5)
        with pytest.raises(ValueError):
            FogIntegrator(density_scale=-1.0)

    def test_miss_is_exactly_transparent(self, sphere_grid):
        """Test a missed ray is exactly transparent."""
        integrator = FogIntegrator()
        color, opacity = integrator.integrate(Ray((100, 0, 0), (0, 0, -1)), sphere_grid)
        assert color == 0.0
        assert opacity == 0.0
        color, opacity = integrator.integrate(Ray((0, 0, 50), (0, 0, 1)), sphere_grid)
        assert opacity == 0.0

    def test_empty_grid(self, empty_grid):
        """Test an empty grid is exactly transparent."""
        color, opacity = FogIntegrator().integrate(Ray((0, 0, 5), (0, 0, -1)), empty_grid)
        assert (color, opacity) == (0.0, 0.0)

    def test_float32_results(self, sphere_grid):
        """Test results are float32 with zero color."""
        color, opacity = FogIntegrator().integrate(Ray((0, 0, 20), (0, 0, -1)), sphere_grid)
        assert isinstance(opacity, np.float32)
        assert isinstance(color, np.float32)
        assert color == 0.0
        assert 0.0 < opacity < 1.0

    def test_exact_step_count(self):
        """Test transmittance after exactly n steps."""
        grid = column_grid()
        integrator = FogIntegrator(dt=0.5, density_scale=0.1)
        for n in (1, 4, 10):
            ray = Ray((0.5, 0.5, 0.5), (0, 0, -1), t0=0.0, t1=n * 0.5)
            _, opacity = integrator.integrate(ray, grid)
            assert 1.0 - opacity == pytest.approx(STEP_FACTOR ** n, rel=1e-5)

    def test_monotonic_in_path_length(self):
        """Test opacity grows with path length."""
        grid = column_grid()
        integrator = FogIntegrator()
        opacities = []
        for n in (2, 4, 8, 16, 32, 64):
            ray = Ray((0.5, 0.5, 0.5), (0, 0, -1), t0=0.0, t1=n * 0.5)
            opacities.append(integrator.integrate(ray, grid)[1])
        assert all(a < b for a, b in zip(opacities, opacities[1:]))

    def test_doubling_steps_squares_transmittance(self):
        """Test doubling the steps squares the transmittance."""
        grid = column_grid()
        integrator = FogIntegrator()
        for n in (3, 8, 20):
            short = Ray((0.5, 0.5, 0.5), (0, 0, -1), t0=0.0, t1=n * 0.5)
            long = Ray((0.5, 0.5, 0.5), (0, 0, -1), t0=0.0, t1=2 * n * 0.5)
            t_short = 1.0 - integrator.integrate(short, grid)[1]
            t_long = 1.0 - integrator.integrate(long, grid)[1]
            assert t_long == pytest.approx(t_short ** 2, rel=1e-5)

    @pytest.mark.parametrize("density", [0.5, 1.0, 4.0, 9.0])
    @pytest.mark.parametrize("dt", [0.1, 0.5, 1.0])
    def test_opacity_in_unit_range(self, density, dt):
        """Test opacity stays in [0, 1] for stable settings."""
        grid = make_fog_sphere(radius=5, density=density)
        integrator = FogIntegrator(dt=dt, density_scale=0.1)
        rays = RayGenerator(CameraParams.from_grid(grid), 6, 6)
        for ray in rays:
            _, opacity = integrator.integrate(ray, grid)
            assert 0.0 <= opacity <= 1.0

    def test_overshoot_not_clamped(self):
        """Test transmittance is not clamped when a step overshoots."""
        grid = make_fog_box((0, 0, 0), (3, 3, 3), density=30.0)
        ray = Ray((0.5, 0.5, 10), (0, 0, -1))
        # sigma * dt = 1.5: each step inside multiplies transmittance by -0.5.
        # Clipped interval is [6, 10); the entry sample at z = 4 floors to
        # voxel 4, outside the box, so 7 of the 8 steps see density.
        _, opacity = FogIntegrator(dt=0.5, density_scale=0.1).integrate(ray, grid)
        assert opacity == pytest.approx(1.0 - (-0.5) ** 7)
        assert opacity > 1.0

    def test_accessor_reuse(self, sphere_grid):
        """Test reusing an accessor and bbox gives the same result."""
        integrator = FogIntegrator()
        accessor = sphere_grid.accessor()
        bbox = sphere_grid.active_bounding_box()
        for ray in RayGenerator(CameraParams.from_grid(sphere_grid), 5, 5):
            fresh = integrator.integrate(ray, sphere_grid)
            reused = integrator.integrate(ray, sphere_grid, accessor, bbox)
            assert fresh == reused

    def test_background_density_counts_inside_bounds(self):
        """Test background density inside the bounds is integrated."""
        grid = SparseGrid(background=1.0)
        grid.set_value((0, 0, 0), 1.0)
        grid.set_value((0, 0, 15), 1.0)
        ray = Ray((0.5, 0.5, 20), (0, 0, -1))
        _, opacity = FogIntegrator().integrate(ray, grid)
        # Path through 16 voxels of unit density, background included
        assert 1.0 - opacity == pytest.approx(STEP_FACTOR ** 32, rel=1e-5)

    def test_step_below_float32_resolution_raises(self):
        """Test a step too small to advance t far down the ray is rejected."""
        grid = column_grid()
        ray = Ray((0.5, 0.5, 2e7), (0, 0, -1))
        with pytest.raises(ValueError, match="float32 resolution"):
            FogIntegrator(dt=0.5).integrate(ray, grid)

    def test_check_step_size(self):
        """Test the stall check against the float32 spacing at t."""
        check_step_size(1000.0, 0.5)
        # Spacing at 2e7 is 2, so 0.5 rounds away and 4 does not
        check_step_size(2e7, 4.0)
        with pytest.raises(ValueError):
            check_step_size(2e7, 0.5)


class TestSphereScenario:
    """Uniform sphere viewed through its center."""

    RADIUS = 8

    def expected_transmittance(self):
        # Eye at z = 4R looking down -z; samples at z = 4R - t for t in
        # [3R - 1, 5R), voxel floor(z) is inside the sphere for z in [-R, R + 1).
        r = self.RADIUS
        t = np.float32(3 * r - 1)
        transmittance = 1.0
        while t < np.float32(5 * r):
            z = int(np.floor(np.float32(4 * r) - t))
            if z * z <= r * r:
                transmittance *= STEP_FACTOR
            t = np.float32(t + np.float32(0.5))
        return transmittance

    def test_center_ray(self):
        """Test the ray through the sphere center."""
        grid = make_fog_sphere(radius=self.RADIUS)
        camera = CameraParams.from_grid(grid)
        assert camera.depth == pytest.approx(4 * self.RADIUS)

        ray = RayGenerator(camera, 1, 1)(0)
        _, opacity = FogIntegrator(dt=0.5, density_scale=0.1).integrate(ray, grid)

        assert 1.0 - opacity == pytest.approx(self.expected_transmittance(), rel=1e-5)
        # Continuous estimate over a chord of length 2R
        assert opacity == pytest.approx(1.0 - 0.95 ** (2 * self.RADIUS / 0.5), abs=0.02)

    def test_python_pipeline_matches_integrator(self):
        """Test the uncompiled pipeline matches the integrator."""
        grid = make_fog_sphere(radius=self.RADIUS)
        camera = CameraParams.from_grid(grid)
        buffers = grid.to_buffers()
        render_pixel = python_pipeline()
        width, height = 9, 7

        image = np.full(width * height, np.nan, dtype=np.float32)
        for i in range(width * height):
            render_pixel(i, width, height, *camera.kernel_args(),
                         buffers.origin_leaf, buffers.leaf_table, buffers.leaf_values,
                         buffers.background, buffers.bounds, buffers.world_to_index,
                         np.float32(0.5), np.float32(0.1), OPACITY, image)

        integrator = FogIntegrator()
        rays = RayGenerator(camera, width, height)
        expected = np.array([integrator.integrate(rays(i), grid)[1]
                             for i in range(width * height)], dtype=np.float32)
        np.testing.assert_allclose(image, expected, atol=1e-6)
