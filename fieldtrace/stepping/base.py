# fieldtrace/stepping/base.py
"""
Core types shared by steppers and tracers.

Stopping causes are plain values returned by stepper operations; they are
never raised. Operations return None when the stepper can keep going.
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, Optional, Protocol, Union
import numpy as np

from ..fields.base import FieldSampler


class SteppingSense(str, Enum):
    """Whether to step along or against the field direction."""
    same = "same"
    opposite = "opposite"


class StoppingCause(str, Enum):
    """Reason a trace terminated."""
    null = "null"                                  # field vector is exactly zero
    out_of_bounds = "out_of_bounds"                # outside the domain, no periodic counterpart
    sink = "sink"                                  # too many consecutive direction reversals
    too_many_attempts = "too_many_attempts"        # no acceptable step within the attempt budget
    stopped_by_callback = "stopped_by_callback"    # callback requested termination


class StepperInstruction(str, Enum):
    """Instruction returned by point callbacks."""
    continue_ = "continue"
    terminate = "terminate"


StepResult = Optional[StoppingCause]
"""None when the operation succeeded, otherwise the cause that stopped it."""


class PointCallback(Protocol):
    """
    Receives every placed or emitted position of a trace.

    Implementations may accumulate data but must not touch the stepper.
    """

    def on_point(self, position: np.ndarray) -> StepperInstruction:
        ...


CallbackLike = Union[PointCallback, Callable[[np.ndarray], StepperInstruction], None]


class Stepper(Protocol):
    """Protocol for field line steppers."""

    def place(
        self,
        sampler: FieldSampler,
        start_position: np.ndarray,
        callback: CallbackLike = None,
        sense: SteppingSense = SteppingSense.same,
    ) -> StepResult:
        ...

    def step(self, sampler: FieldSampler, callback: CallbackLike = None) -> StepResult:
        ...

    def step_dense_output(self, sampler: FieldSampler, callback: CallbackLike = None) -> StepResult:
        ...

    @property
    def position(self) -> np.ndarray:
        ...

    @property
    def distance(self) -> float:
        ...


class StepperFactory(Protocol):
    """Creates a fresh, unshared stepper for every trace."""

    def produce(self) -> Stepper:
        ...


def resolve_callback(callback: CallbackLike) -> Callable[[np.ndarray], StepperInstruction]:
    """
    Normalize a callback to a plain function of the position.

    Accepts an object with `on_point`, a callable, or None (accept every
    point).
    """
    if callback is None:
        return lambda position: StepperInstruction.continue_
    if hasattr(callback, "on_point"):
        return callback.on_point
    if callable(callback):
        return callback
    raise TypeError(f"callback must have an on_point method or be callable, got {type(callback).__name__}")
