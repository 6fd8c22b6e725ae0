"""
Tests for the adaptive RKF stepper: placement, retries, sinks and step bookkeeping.
"""

import numpy as np
import pytest

from fieldtrace.fields import AnalyticFieldSampler, circular_field, uniform_field
from fieldtrace.stepping import (
    RKF23,
    RKF45,
    RKFStepper,
    RKFStepperFactory,
    RKFStepperType,
    StepperConfig,
    StepperInstruction,
    SteppingSense,
    StoppingCause,
)


class _SignedSampler:
    """Uniform +x field whose sign can be flipped from outside; counts samples."""

    def __init__(self, alternate_each_sample=False):
        self.sign = 1.0
        self.n_samples = 0
        self.alternate_each_sample = alternate_each_sample
        self.lo = np.full(3, -100.0)
        self.hi = np.full(3, 100.0)

    def flip(self):
        self.sign = -self.sign

    def sample(self, position):
        self.n_samples += 1
        value = np.array([self.sign, 0.0, 0.0])
        if self.alternate_each_sample:
            self.flip()
        return value

    def resolve_wrap(self, position):
        return None

    def get_spatial_bounds(self):
        return self.lo.copy(), self.hi.copy()


def _flip_on_calls(sampler, flip_calls):
    """Callback that flips the sampler's sign right after the listed callback calls."""
    calls = []

    def callback(position):
        if len(calls) in flip_calls:
            sampler.flip()
        calls.append(np.array(position))
        return StepperInstruction.continue_

    return callback, calls


def test_sink_after_consecutive_reversals():
    sampler = _SignedSampler()
    callback, calls = _flip_on_calls(sampler, flip_calls=set(range(100)))
    stepper = RKFStepper(RKF45)

    assert stepper.place(sampler, np.zeros(3), callback) is None
    assert stepper.step(sampler, callback) is None
    assert stepper.step(sampler, callback) is None
    position_before = stepper.position
    distance_before = stepper.distance

    assert stepper.step(sampler, callback) == StoppingCause.sink
    assert len(calls) == 3
    assert stepper.state.n_sudden_reversals == 3
    # the reversing step is not committed
    np.testing.assert_array_equal(stepper.position, position_before)
    assert stepper.distance == distance_before
    assert stepper.stopping_cause == StoppingCause.sink


def test_sink_counter_resets_on_forward_step():
    sampler = _SignedSampler()
    callback, calls = _flip_on_calls(sampler, flip_calls={0, 2, 3, 4})
    stepper = RKFStepper(RKF45)

    assert stepper.place(sampler, np.zeros(3), callback) is None
    causes = [stepper.step(sampler, callback) for _ in range(4)]
    assert causes == [None, None, None, None]
    assert stepper.state.n_sudden_reversals == 2

    assert stepper.step(sampler, callback) == StoppingCause.sink
    assert len(calls) == 5


def test_sink_threshold_is_configurable():
    sampler = _SignedSampler()
    callback, calls = _flip_on_calls(sampler, flip_calls=set(range(100)))
    stepper = RKFStepper(RKF45, StepperConfig(sudden_reversals_for_sink=1))

    stepper.place(sampler, np.zeros(3), callback)
    assert stepper.step(sampler, callback) == StoppingCause.sink
    assert len(calls) == 1


@pytest.mark.parametrize("tableau, expected_samples", [(RKF45, 1 + 16 * 6), (RKF23, 1 + 16 * 3)],
                         ids=["rkf45", "rkf23"])
def test_too_many_attempts(tableau, expected_samples):
    sampler = _SignedSampler(alternate_each_sample=True)
    config = StepperConfig(absolute_tolerance=1e-30, relative_tolerance=1e-30)
    stepper = RKFStepper(tableau, config)

    assert stepper.place(sampler, np.zeros(3)) is None
    initial_step = stepper.step_size
    assert stepper.step(sampler) == StoppingCause.too_many_attempts

    assert sampler.n_samples == expected_samples
    np.testing.assert_array_equal(stepper.position, np.zeros(3))
    assert stepper.distance == 0.0
    # every rejection shrinks the step
    assert stepper.step_size < initial_step * config.min_step_scale ** 15


def test_place_reports_null_field():
    stepper = RKFStepper(RKF45)
    sampler = uniform_field((0.0, 0.0, 0.0))
    assert stepper.place(sampler, (0.5, 0.5, 0.5)) == StoppingCause.null
    assert not stepper.is_placed


def test_place_reports_out_of_bounds():
    stepper = RKFStepper(RKF45)
    sampler = uniform_field((1.0, 0.0, 0.0))
    assert stepper.place(sampler, (1.5, 0.5, 0.5)) == StoppingCause.out_of_bounds
    assert not stepper.is_placed


def test_place_rejects_bad_start_position():
    stepper = RKFStepper(RKF45)
    with pytest.raises(ValueError):
        stepper.place(uniform_field((1.0, 0.0, 0.0)), (0.5, 0.5))


def test_step_before_place_raises():
    stepper = RKFStepper(RKF45)
    with pytest.raises(RuntimeError, match="not been placed"):
        stepper.step(uniform_field((1.0, 0.0, 0.0)))
    with pytest.raises(RuntimeError):
        stepper.distance


def test_step_after_stop_raises_until_placed_again():
    sampler = uniform_field((1.0, 0.0, 0.0))
    stepper = RKFStepper(RKF45)
    assert stepper.place(sampler, (0.5, 0.5, 0.5), lambda p: StepperInstruction.terminate) \
        == StoppingCause.stopped_by_callback
    with pytest.raises(RuntimeError, match="stopped_by_callback"):
        stepper.step(sampler)

    assert stepper.place(sampler, (0.25, 0.5, 0.5)) is None
    assert stepper.stopping_cause is None
    assert stepper.distance == 0.0
    assert stepper.step(sampler) is None


def test_place_resets_state():
    sampler = circular_field()
    stepper = RKFStepper(RKF45)
    stepper.place(sampler, (0.5, 0.0, 0.0))
    for _ in range(5):
        stepper.step(sampler)
    assert stepper.distance > 0.0

    stepper.place(sampler, (0.25, 0.0, 0.0))
    assert stepper.distance == 0.0
    assert stepper.step_size == stepper.config.initial_step_size
    assert stepper.error == stepper.config.initial_error
    np.testing.assert_array_equal(stepper.position, [0.25, 0.0, 0.0])


def test_distance_advances_by_step_size_used():
    sampler = circular_field()
    stepper = RKFStepper(RKF45)
    stepper.place(sampler, (0.5, 0.0, 0.0))

    expected_distance = 0.0
    step_sizes = []
    for _ in range(20):
        h = stepper.step_size
        assert stepper.step(sampler) is None
        expected_distance += h
        step_sizes.append(h)
        assert stepper.distance == expected_distance
        assert stepper.state.previous_step_size == h

    assert len(set(step_sizes)) > 1
    # positions stay on the circle of radius 0.5
    assert np.hypot(*stepper.position[:2]) == pytest.approx(0.5, abs=1e-4)


def test_uniform_field_grows_step_by_max_scale():
    sampler = uniform_field((0.0, 1.0, 0.0), bounds_min=(-1, -1, -1), bounds_max=(1, 100, 1))
    config = StepperConfig()
    stepper = RKFStepper(RKF45, config)
    stepper.place(sampler, (0.0, 0.0, 0.0))
    stepper.step(sampler)
    assert stepper.step_size == pytest.approx(config.initial_step_size * config.max_step_scale)
    np.testing.assert_allclose(stepper.position, [0.0, config.initial_step_size, 0.0], atol=1e-15)


def test_callback_receives_each_accepted_position():
    sampler = circular_field()
    stepper = RKFStepper(RKF45)
    seen = []

    def record(position):
        seen.append(position)
        return StepperInstruction.continue_

    stepper.place(sampler, (0.5, 0.0, 0.0), record)
    for _ in range(3):
        stepper.step(sampler, record)
    assert len(seen) == 4
    np.testing.assert_array_equal(seen[-1], stepper.position)
    # callbacks get copies
    seen[-1][:] = 0.0
    assert stepper.position[0] != 0.0


def test_callback_object_with_on_point():
    class Stopper:
        def __init__(self):
            self.n = 0

        def on_point(self, position):
            self.n += 1
            return StepperInstruction.terminate if self.n == 2 else StepperInstruction.continue_

    sampler = circular_field()
    stepper = RKFStepper(RKF45)
    stopper = Stopper()
    assert stepper.place(sampler, (0.5, 0.0, 0.0), stopper) is None
    assert stepper.step(sampler, stopper) == StoppingCause.stopped_by_callback
    assert stopper.n == 2


def test_invalid_callback_raises():
    stepper = RKFStepper(RKF45)
    with pytest.raises(TypeError):
        stepper.place(uniform_field((1.0, 0.0, 0.0)), (0.5, 0.5, 0.5), callback=42)


def test_opposite_sense_steps_against_field():
    sampler = uniform_field((1.0, 0.0, 0.0))
    stepper = RKFStepper(RKF45)
    stepper.place(sampler, (0.5, 0.5, 0.5), sense=SteppingSense.opposite)
    np.testing.assert_array_equal(stepper.direction, [-1.0, 0.0, 0.0])
    for _ in range(3):
        assert stepper.step(sampler) is None
    assert stepper.position[0] < 0.5


def test_leaving_domain_stops_out_of_bounds():
    sampler = uniform_field((1.0, 0.0, 0.0))
    stepper = RKFStepper(RKF45)
    stepper.place(sampler, (0.5, 0.5, 0.5))
    cause = None
    for _ in range(100):
        cause = stepper.step(sampler)
        if cause is not None:
            break
    assert cause == StoppingCause.out_of_bounds
    assert 0.5 < stepper.position[0] <= 1.0


@pytest.mark.parametrize("tableau", [RKF23, RKF45], ids=lambda t: t.name)
def test_reaching_null_region_stops_null(tableau):
    def fn(p):
        return np.array([1.0, 0.0, 0.0]) if p[0] < 0.7 else np.zeros(3)

    # long enough in x that the growing step reaches the zero region first
    sampler = AnalyticFieldSampler(fn, (0.0, 0.0, 0.0), (10.0, 1.0, 1.0))
    stepper = RKFStepper(tableau)
    stepper.place(sampler, (0.5, 0.5, 0.5))
    cause = None
    for _ in range(100):
        cause = stepper.step(sampler)
        if cause is not None:
            break
    assert cause == StoppingCause.null
    assert stepper.position[0] < 0.7


def test_config_type_checked():
    with pytest.raises(TypeError):
        RKFStepper(RKF45, config={"dense_step_size": 0.1})


def test_pi_control_switch():
    pi_stepper = RKFStepper(RKF45)
    classic_stepper = RKFStepper(RKF45, StepperConfig(use_pi_control=False))
    assert pi_stepper.pi_control.k_i > 0.0
    assert classic_stepper.pi_control.k_i == 0.0
    assert classic_stepper.pi_control.k_p == pytest.approx(1.0 / RKF45.control_order)


def test_factory_produces_independent_steppers():
    config = StepperConfig(dense_step_size=0.1)
    factory = RKFStepperFactory("rkf23", config)
    a = factory.produce()
    b = factory.produce()
    assert a is not b
    assert a.config is config
    assert a.scheme.tableau is RKF23

    sampler = uniform_field((1.0, 0.0, 0.0))
    a.place(sampler, (0.1, 0.5, 0.5))
    a.step(sampler)
    assert not b.is_placed
    assert "rkf23" in repr(factory)


def test_factory_defaults_and_unknown_type():
    assert RKFStepperFactory().stepper_type == RKFStepperType.rkf45
    assert RKFStepperType("rkf45").tableau is RKF45
    with pytest.raises(ValueError, match="Unknown stepper type"):
        RKFStepperFactory("euler")
