# fieldtrace/stepping/rkf.py
"""
Adaptive Runge-Kutta-Fehlberg stepper for field line tracing.

The stepper follows the unit direction of a sampled vector field,
dr/ds = +-B(r)/|B(r)|, using an embedded Runge-Kutta pair. Each call to
`step` retries with smaller step sizes until the error estimate is
acceptable, then commits the step and picks the next step size with a
proportional-integral controller. `step_dense_output` additionally
reports positions at regular arc-length intervals reconstructed from the
dense output polynomial of the accepted step.

Operations return None when the stepper can continue, otherwise the
`StoppingCause` that ended the trace.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import numpy as np

from ..fields.base import FieldSampler, as_point, domain_extent
from .base import (
    CallbackLike,
    StepResult,
    StepperInstruction,
    SteppingSense,
    StoppingCause,
    resolve_callback,
)
from .config import PIControlParams, StepperConfig
from .direction import sample_direction
from .scheme import EmbeddedRKScheme, StepAttempt
from .tableaus import RKF23, RKF45, ButcherTableau


# Errors below this are treated as zero when picking the next step size
_TINY_ERROR = 1e-9


@dataclass
class StepperState:
    """
    Mutable state of one stepper during one trace.

    The `previous_*` fields and `intermediate_directions` describe the
    last accepted step and feed the dense output.
    """
    position: np.ndarray
    direction: np.ndarray
    distance: float
    step_size: float
    error: float
    n_sudden_reversals: int = 0
    previous_position: np.ndarray = None
    previous_direction: np.ndarray = None
    previous_step_size: float = 0.0
    previous_step_displacement: np.ndarray = field(default_factory=lambda: np.zeros(3))
    previous_step_wrapped: bool = False
    intermediate_directions: Optional[np.ndarray] = None
    next_output_distance: float = 0.0

    @classmethod
    def initial(cls, position: np.ndarray, direction: np.ndarray, config: StepperConfig) -> "StepperState":
        return cls(
            position=position.copy(),
            direction=direction.copy(),
            distance=0.0,
            step_size=config.initial_step_size,
            error=config.initial_error,
            previous_position=position.copy(),
            previous_direction=direction.copy(),
            next_output_distance=config.dense_step_size,
        )


class RKFStepper:
    """
    Adaptive embedded Runge-Kutta stepper.

    Parameters
    ----------
    scheme : EmbeddedRKScheme or ButcherTableau
        Runge-Kutta pair to step with
    config : StepperConfig, optional
        Numerical settings; defaults to `StepperConfig()`

    Notes
    -----
    A stepper must be placed before stepping. Once any operation returns
    a stopping cause, the stepper refuses to step until placed again.
    """

    def __init__(self, scheme, config: Optional[StepperConfig] = None):
        if isinstance(scheme, ButcherTableau):
            scheme = EmbeddedRKScheme(scheme)
        self.scheme: EmbeddedRKScheme = scheme
        self.config = config if config is not None else StepperConfig()
        if not isinstance(self.config, StepperConfig):
            raise TypeError(f"config must be a StepperConfig, got {type(self.config).__name__}")
        self.pi_control = PIControlParams.for_config(self.config, self.scheme.control_order)

        self._state: Optional[StepperState] = None
        self._sense = SteppingSense.same
        self._extent: Optional[np.ndarray] = None
        self._stopping_cause: Optional[StoppingCause] = None

    # ---------- Properties ----------

    @property
    def state(self) -> StepperState:
        self._require_state()
        return self._state

    @property
    def position(self) -> np.ndarray:
        return self.state.position.copy()

    @property
    def direction(self) -> np.ndarray:
        return self.state.direction.copy()

    @property
    def distance(self) -> float:
        return self.state.distance

    @property
    def step_size(self) -> float:
        return self.state.step_size

    @property
    def error(self) -> float:
        return self.state.error

    @property
    def stopping_cause(self) -> Optional[StoppingCause]:
        return self._stopping_cause

    @property
    def is_placed(self) -> bool:
        return self._state is not None

    # ---------- Public operations ----------

    def place(
        self,
        sampler: FieldSampler,
        start_position,
        callback: CallbackLike = None,
        sense: SteppingSense = SteppingSense.same,
    ) -> StepResult:
        """
        Start a new trace at `start_position`.

        Positions outside the domain are wrapped once across periodic
        boundaries. The callback receives the (possibly wrapped) start
        position.

        Returns
        -------
        StoppingCause or None
            `null`, `out_of_bounds` or `stopped_by_callback`, or None when
            the stepper is ready to step
        """
        position = as_point(start_position, "start_position")
        on_point = resolve_callback(callback)

        self._state = None
        self._stopping_cause = None
        self._sense = SteppingSense(sense)

        sampled = sample_direction(sampler, position, self._sense)
        if isinstance(sampled, StoppingCause):
            return self._stop(sampled)
        if sampled.wrapped_position is not None:
            position = sampled.wrapped_position

        self._extent = domain_extent(sampler)
        self._state = StepperState.initial(position, sampled.direction, self.config)

        if on_point(self._state.position.copy()) == StepperInstruction.terminate:
            return self._stop(StoppingCause.stopped_by_callback)
        return None

    def step(self, sampler: FieldSampler, callback: CallbackLike = None) -> StepResult:
        """
        Take one adaptive step and report the new position to the callback.
        """
        self._require_steppable()
        on_point = resolve_callback(callback)

        cause = self._perform_step(sampler)
        if cause is not None:
            return self._stop(cause)

        if on_point(self._state.position.copy()) == StepperInstruction.terminate:
            return self._stop(StoppingCause.stopped_by_callback)
        return None

    def step_dense_output(self, sampler: FieldSampler, callback: CallbackLike = None) -> StepResult:
        """
        Take one adaptive step and report every dense output position that
        falls inside it. A step may report no position at all.
        """
        self._require_steppable()
        on_point = resolve_callback(callback)

        cause = self._perform_step(sampler)
        if cause is None:
            cause = self._compute_dense_output(sampler, on_point)
        if cause is not None:
            return self._stop(cause)
        return None

    # ---------- Internals ----------

    def _require_state(self) -> None:
        if self._state is None:
            raise RuntimeError("Stepper has not been placed")

    def _require_steppable(self) -> None:
        self._require_state()
        if self._stopping_cause is not None:
            raise RuntimeError(
                f"Stepper was stopped ({self._stopping_cause.value}); place it again to start a new trace"
            )

    def _stop(self, cause: StoppingCause) -> StoppingCause:
        self._stopping_cause = cause
        return cause

    def _perform_step(self, sampler: FieldSampler) -> StepResult:
        state = self._state
        config = self.config

        for attempt_number in range(1, config.max_step_attempts + 1):
            attempt = self.scheme.attempt_step(sampler, state, self._sense)
            if isinstance(attempt, StoppingCause):
                return attempt

            new_error = self._compute_error(attempt)

            if new_error <= 1.0:
                new_step_size = self._compute_step_size_accepted(new_error)

                # Never grow the step right after a rejection
                if attempt_number > 1 and new_step_size > state.step_size:
                    new_step_size = state.step_size

                if self._check_for_sink(attempt):
                    return StoppingCause.sink

                self._apply_step_attempt(attempt)
                self._update_step_size(new_step_size, new_error)
                return None

            state.step_size = self._compute_step_size_rejected(new_error)
            state.error = new_error

        return StoppingCause.too_many_attempts

    def _compute_error(self, attempt: StepAttempt) -> float:
        config = self.config
        deltas = self.scheme.compute_error_deltas(self._state, attempt)
        errors = deltas / (config.absolute_tolerance + config.relative_tolerance * self._extent)
        return float(np.sqrt(0.5 * np.dot(errors, errors)))

    def _compute_step_size_accepted(self, new_error: float) -> float:
        config = self.config
        state = self._state
        if new_error < _TINY_ERROR:
            scale = config.max_step_scale
        else:
            scale = (
                config.safety_factor
                * state.error ** self.pi_control.k_i
                / new_error ** self.pi_control.k_p
            )
            scale = min(max(scale, config.min_step_scale), config.max_step_scale)
        return state.step_size * scale

    def _compute_step_size_rejected(self, new_error: float) -> float:
        config = self.config
        scale = max(config.safety_factor / new_error ** self.pi_control.k_p, config.min_step_scale)
        return self._state.step_size * scale

    def _check_for_sink(self, attempt: StepAttempt) -> bool:
        state = self._state
        if np.dot(attempt.next_direction, state.direction) < 0.0:
            state.n_sudden_reversals += 1
            return state.n_sudden_reversals >= self.config.sudden_reversals_for_sink
        state.n_sudden_reversals = 0
        return False

    def _apply_step_attempt(self, attempt: StepAttempt) -> None:
        state = self._state
        state.previous_position = state.position
        state.previous_direction = state.direction
        state.position = attempt.next_position
        state.direction = attempt.next_direction
        # Advance with the step size that produced this step, before it is updated
        state.distance += state.step_size
        state.intermediate_directions = attempt.intermediate_directions
        state.previous_step_displacement = attempt.step_displacement
        state.previous_step_wrapped = attempt.step_wrapped

    def _update_step_size(self, new_step_size: float, new_error: float) -> None:
        state = self._state
        state.previous_step_size = state.step_size
        state.step_size = new_step_size
        state.error = new_error

    def _compute_dense_output(self, sampler: FieldSampler, on_point) -> StepResult:
        state = self._state
        previous_distance = state.distance - state.previous_step_size
        next_output_distance = state.next_output_distance

        if next_output_distance <= state.distance:
            coefs = self.scheme.compute_dense_coefficients(state)
            while True:
                fraction = (next_output_distance - previous_distance) / state.previous_step_size
                position = self.scheme.interpolate_dense_position(sampler, state, coefs, fraction)

                if on_point(position) == StepperInstruction.terminate:
                    return StoppingCause.stopped_by_callback

                next_output_distance += self.config.dense_step_size
                if next_output_distance > state.distance:
                    break

        state.next_output_distance = next_output_distance
        return None


class RKFStepperType(str, Enum):
    """Available embedded Runge-Kutta pairs."""
    rkf23 = "rkf23"
    rkf45 = "rkf45"

    @property
    def tableau(self) -> ButcherTableau:
        return RKF23 if self is RKFStepperType.rkf23 else RKF45


class RKFStepperFactory:
    """
    Produces independent RKF steppers sharing one configuration.

    Parameters
    ----------
    stepper_type : RKFStepperType or str
        Which pair to use, 'rkf23' or 'rkf45'
    config : StepperConfig, optional
        Numerical settings for every produced stepper
    """

    def __init__(self, stepper_type=RKFStepperType.rkf45, config: Optional[StepperConfig] = None):
        try:
            self.stepper_type = RKFStepperType(stepper_type)
        except ValueError:
            raise ValueError(
                f"Unknown stepper type '{stepper_type}', expected one of "
                f"{[t.value for t in RKFStepperType]}"
            ) from None
        self.config = config if config is not None else StepperConfig()
        self._scheme = EmbeddedRKScheme(self.stepper_type.tableau)

    def produce(self) -> RKFStepper:
        """Create a fresh stepper."""
        return RKFStepper(self._scheme, self.config)

    def __repr__(self) -> str:
        return f"RKFStepperFactory(stepper_type={self.stepper_type.value!r}, config={self.config!r})"
