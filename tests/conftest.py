"""Shared fixtures for the renderer tests."""

import numpy as np
import pytest

from fog_volume_renderer.grid import SparseGrid, make_fog_box, make_fog_sphere
from fog_volume_renderer.grid.buffers import LEAF_LOG2DIM, LEAF_MASK, find_leaf


@pytest.fixture
def sphere_grid():
    """Unit-density sphere of radius 6 voxels centered at the origin."""
    return make_fog_sphere(radius=6)


@pytest.fixture
def box_grid():
    """Unit-density 4^3 box at the origin."""
    return make_fog_box((0, 0, 0), (3, 3, 3))


@pytest.fixture
def empty_grid():
    return SparseGrid()


def sample_buffers(buffers, ijk):
    """Look up a voxel in packed grid buffers the way the kernels do."""
    x, y, z = (int(v) for v in ijk)
    leaf = find_leaf(x >> LEAF_LOG2DIM, y >> LEAF_LOG2DIM, z >> LEAF_LOG2DIM,
                     buffers.origin_leaf, buffers.leaf_table)
    if leaf < 0:
        return buffers.background
    return buffers.leaf_values[leaf, x & LEAF_MASK, y & LEAF_MASK, z & LEAF_MASK]


@pytest.fixture
def buffer_sampler():
    return sample_buffers


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
