# fieldtrace/stepping/scheme.py
"""
Scheme-dependent parts of an embedded Runge-Kutta stepper.

`EmbeddedRKScheme` evaluates the stages of one trial step, the error
deltas of a trial and the dense output polynomial of the last accepted
step, all from a `ButcherTableau`. The retry loop and the dense output
loop live in `RKFStepper`.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union
import numpy as np

from ..fields.base import FieldSampler
from .base import SteppingSense, StoppingCause
from .direction import sample_direction
from .tableaus import ButcherTableau

if TYPE_CHECKING:
    from .rkf import StepperState


@dataclass
class StepAttempt:
    """Outcome of one trial step that has not been committed yet."""
    next_position: np.ndarray
    next_direction: np.ndarray
    intermediate_directions: np.ndarray   # (n_stages + 1, 3), last row at next_position
    step_displacement: np.ndarray
    step_wrapped: bool


class EmbeddedRKScheme:
    """
    Embedded Runge-Kutta pair defined by a Butcher tableau.

    Parameters
    ----------
    tableau : ButcherTableau
        Coefficients of the pair
    """

    def __init__(self, tableau: ButcherTableau):
        self.tableau = tableau
        self._powers = np.arange(1, tableau.dense_order + 1)

    @property
    def name(self) -> str:
        return self.tableau.name

    @property
    def control_order(self) -> int:
        return self.tableau.control_order

    def attempt_step(
        self,
        sampler: FieldSampler,
        state: "StepperState",
        sense: SteppingSense,
    ) -> Union[StepAttempt, StoppingCause]:
        """
        Evaluate all stages of a step of size `state.step_size`.

        Returns the stopping cause as soon as any stage cannot be sampled.
        """
        tab = self.tableau
        s = tab.n_stages
        h = state.step_size

        K = np.empty((s + 1, 3))
        K[0] = state.direction
        for i in range(1, s):
            stage_position = state.position + h * (tab.A[i, :i] @ K[:i])
            sampled = sample_direction(sampler, stage_position, sense)
            if isinstance(sampled, StoppingCause):
                return sampled
            K[i] = sampled.direction

        displacement = h * (tab.B @ K[:s])
        next_position = state.position + displacement

        sampled = sample_direction(sampler, next_position, sense)
        if isinstance(sampled, StoppingCause):
            return sampled
        K[s] = sampled.direction

        step_wrapped = sampled.wrapped_position is not None
        if step_wrapped:
            next_position = sampled.wrapped_position

        return StepAttempt(
            next_position=next_position,
            next_direction=sampled.direction,
            intermediate_directions=K,
            step_displacement=displacement,
            step_wrapped=step_wrapped,
        )

    def compute_error_deltas(self, state: "StepperState", attempt: StepAttempt) -> np.ndarray:
        """Per-axis absolute difference between the two solutions of a trial step."""
        return np.abs(state.step_size * (self.tableau.E @ attempt.intermediate_directions))

    def compute_dense_coefficients(self, state: "StepperState") -> np.ndarray:
        """
        Polynomial coefficients of the last accepted step.

        Returns an array of shape (m, 3) such that the position at
        fraction x of the step is previous_position + sum_j x^(j+1) coefs[j].
        """
        return state.previous_step_size * (self.tableau.P.T @ state.intermediate_directions)

    def interpolate_dense_position(
        self,
        sampler: FieldSampler,
        state: "StepperState",
        coefs: np.ndarray,
        fraction: float,
    ) -> np.ndarray:
        """Position at `fraction` of the last accepted step, wrapped into the domain if that step wrapped."""
        position = state.previous_position + (fraction ** self._powers) @ coefs
        if state.previous_step_wrapped:
            wrapped = sampler.resolve_wrap(position)
            if wrapped is not None:
                position = np.asarray(wrapped, dtype=np.float64)
        return position
