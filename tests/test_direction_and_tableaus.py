"""
Tests for the direction normalizer and the Butcher tableaus.
"""

import numpy as np
import pytest

from fieldtrace.fields import uniform_field
from fieldtrace.stepping import (
    RKF23,
    RKF45,
    SteppingSense,
    StoppingCause,
    compute_stepping_direction,
    sample_direction,
)


def test_direction_is_unit_vector():
    d = compute_stepping_direction(np.array([3.0, 0.0, 4.0]))
    np.testing.assert_allclose(d, [0.6, 0.0, 0.8])


def test_direction_opposite_sense_flips():
    d = compute_stepping_direction(np.array([0.0, 2.0, 0.0]), SteppingSense.opposite)
    np.testing.assert_allclose(d, [0.0, -1.0, 0.0])


def test_zero_vector_has_no_direction():
    assert compute_stepping_direction(np.zeros(3)) is None


def test_tiny_vector_still_normalized():
    d = compute_stepping_direction(np.array([1e-300, 0.0, 0.0]))
    np.testing.assert_allclose(d, [1.0, 0.0, 0.0])


def test_sample_direction_wraps_periodic_position():
    sampler = uniform_field((1.0, 0.0, 0.0), periodic=(True, False, False))
    sampled = sample_direction(sampler, np.array([1.25, 0.5, 0.5]))
    np.testing.assert_allclose(sampled.wrapped_position, [0.25, 0.5, 0.5])
    np.testing.assert_allclose(sampled.direction, [1.0, 0.0, 0.0])


def test_sample_direction_causes():
    sampler = uniform_field((1.0, 0.0, 0.0))
    assert sample_direction(sampler, np.array([2.0, 0.5, 0.5])) == StoppingCause.out_of_bounds

    null_sampler = uniform_field((0.0, 0.0, 0.0))
    assert sample_direction(null_sampler, np.array([0.5, 0.5, 0.5])) == StoppingCause.null


def test_sample_direction_inside_has_no_wrap():
    sampler = uniform_field((0.0, 0.0, 2.0))
    sampled = sample_direction(sampler, np.array([0.5, 0.5, 0.5]))
    assert sampled.wrapped_position is None
    np.testing.assert_allclose(sampled.direction, [0.0, 0.0, 1.0])


class _InconsistentSampler:
    """Rejects every position, including the ones it wraps to."""

    def sample(self, position):
        return None

    def resolve_wrap(self, position):
        return np.zeros(3)

    def get_spatial_bounds(self):
        return np.zeros(3), np.ones(3)


def test_sample_direction_rejects_inconsistent_wrap():
    with pytest.raises(RuntimeError, match="after wrapping"):
        sample_direction(_InconsistentSampler(), np.array([2.0, 0.0, 0.0]))


@pytest.mark.parametrize("tableau", [RKF23, RKF45], ids=lambda t: t.name)
def test_tableau_consistency(tableau):
    s = tableau.n_stages
    np.testing.assert_allclose(tableau.A.sum(axis=1), tableau.C, atol=1e-14)
    assert tableau.B.sum() == pytest.approx(1.0)
    # the embedded solution is also consistent, so the error weights cancel
    assert tableau.E.sum() == pytest.approx(0.0, abs=1e-15)
    # the dense polynomial reaches the propagated solution at the end of the step
    np.testing.assert_allclose(tableau.P.sum(axis=1), np.append(tableau.B, 0.0), atol=1e-12)
    # a constant direction is interpolated linearly
    col_sums = tableau.P.sum(axis=0)
    np.testing.assert_allclose(col_sums, np.eye(1, tableau.dense_order)[0], atol=1e-12)
    assert tableau.P.shape[0] == s + 1


def test_tableau_orders():
    assert RKF23.n_stages == 3
    assert RKF23.control_order == 3
    assert RKF23.dense_order == 3
    assert RKF45.n_stages == 6
    assert RKF45.control_order == 5
    assert RKF45.dense_order == 4
