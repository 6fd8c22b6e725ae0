"""
Tests for seed position generators.
"""

import numpy as np
import pytest

from fieldtrace.fields import uniform_field
from fieldtrace.tracking import line_seeds, random_seeds, slice_seeds, uniform_grid_seeds


BOUNDS = [[0.0, -1.0, 2.0], [1.0, 1.0, 4.0]]


def test_random_seeds_inside_bounds_and_reproducible():
    seeds = random_seeds(200, BOUNDS, rng_seed=7)
    assert seeds.shape == (200, 3)
    assert seeds.dtype == np.float64
    assert np.all(seeds >= np.array(BOUNDS[0]))
    assert np.all(seeds <= np.array(BOUNDS[1]))
    np.testing.assert_array_equal(seeds, random_seeds(200, BOUNDS, rng_seed=7))
    assert not np.array_equal(seeds, random_seeds(200, BOUNDS, rng_seed=8))


def test_random_seeds_empty():
    assert random_seeds(0, BOUNDS).shape == (0, 3)


@pytest.mark.parametrize("bounds", [
    BOUNDS,
    np.array(BOUNDS).T,
    [0.0, 1.0, -1.0, 1.0, 2.0, 4.0],
    uniform_field((1, 0, 0), BOUNDS[0], BOUNDS[1]).get_spatial_bounds(),
], ids=["rows", "columns", "flat", "sampler"])
def test_bounds_formats_agree(bounds):
    seeds = uniform_grid_seeds(2, bounds)
    np.testing.assert_allclose(seeds, uniform_grid_seeds(2, BOUNDS))


@pytest.mark.parametrize("bounds", [
    [[0.0, 0.0, 0.0], [1.0, 0.0, 1.0]],
    [[0.0, 0.0, 0.0], [1.0, np.inf, 1.0]],
    [0.0, 1.0, 0.0, 1.0],
    np.zeros((4, 3)),
])
def test_bad_bounds_rejected(bounds):
    with pytest.raises(ValueError):
        random_seeds(3, bounds)


def test_uniform_grid_seeds_cell_centres():
    seeds = uniform_grid_seeds((2, 1, 4), BOUNDS)
    assert seeds.shape == (8, 3)
    np.testing.assert_allclose(np.unique(seeds[:, 0]), [0.25, 0.75])
    np.testing.assert_allclose(np.unique(seeds[:, 1]), [0.0])
    np.testing.assert_allclose(np.unique(seeds[:, 2]), [2.25, 2.75, 3.25, 3.75])
    # x varies slowest
    np.testing.assert_allclose(seeds[:4, 0], 0.25)


def test_uniform_grid_seeds_with_boundaries():
    seeds = uniform_grid_seeds(3, BOUNDS, include_boundaries=True)
    assert seeds.shape == (27, 3)
    np.testing.assert_allclose(seeds[0], BOUNDS[0])
    np.testing.assert_allclose(seeds[-1], BOUNDS[1])


def test_uniform_grid_seeds_bad_resolution():
    with pytest.raises(ValueError):
        uniform_grid_seeds(0, BOUNDS)
    with pytest.raises(ValueError):
        uniform_grid_seeds((2, 2), BOUNDS)


def test_line_seeds():
    seeds = line_seeds((0, 0, 0), (1, 2, 3), 5)
    assert seeds.shape == (5, 3)
    np.testing.assert_allclose(seeds[0], [0, 0, 0])
    np.testing.assert_allclose(seeds[-1], [1, 2, 3])
    np.testing.assert_allclose(seeds[2], [0.5, 1.0, 1.5])

    np.testing.assert_allclose(line_seeds((1, 1, 1), (2, 2, 2), 1), [[1, 1, 1]])
    assert line_seeds((0, 0, 0), (1, 1, 1), 0).shape == (0, 3)


@pytest.mark.parametrize("axis", [1, "y", "Y"])
def test_slice_seeds(axis):
    seeds = slice_seeds(axis, 0.5, (2, 3), BOUNDS)
    assert seeds.shape == (6, 3)
    np.testing.assert_allclose(seeds[:, 1], 0.5)
    np.testing.assert_allclose(np.unique(seeds[:, 0]), [0.25, 0.75])
    np.testing.assert_allclose(np.unique(seeds[:, 2]), [2.0 + 1 / 3, 3.0, 4.0 - 1 / 3])


def test_slice_seeds_rejects_bad_arguments():
    with pytest.raises(ValueError, match="outside bounds"):
        slice_seeds("x", 2.0, (2, 2), BOUNDS)
    with pytest.raises(ValueError):
        slice_seeds("w", 0.5, (2, 2), BOUNDS)
    with pytest.raises(ValueError):
        slice_seeds(3, 0.5, (2, 2), BOUNDS)
    with pytest.raises(ValueError):
        slice_seeds(0, 0.5, (2, 0), BOUNDS)
