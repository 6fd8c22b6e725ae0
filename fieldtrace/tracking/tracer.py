# fieldtrace/tracking/tracer.py
"""
Generic field line tracing driver.

The driver places a stepper, then steps until a stopping cause comes
back. Positions are handed to the caller's callback as they are produced;
accumulating them is the callback's job.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ..fields.base import FieldSampler, as_point
from ..stepping.base import (
    CallbackLike,
    Stepper,
    SteppingSense,
    StoppingCause,
    resolve_callback,
)


@dataclass(frozen=True)
class TracerResult:
    """
    Outcome of one trace.

    A void result means no line was produced because placement failed.
    Otherwise `stopping_cause` tells why the trace ended.
    """
    is_void: bool
    stopping_cause: Optional[StoppingCause] = None

    @classmethod
    def void(cls) -> "TracerResult":
        return cls(is_void=True)

    @classmethod
    def ok(cls, cause: StoppingCause) -> "TracerResult":
        return cls(is_void=False, stopping_cause=cause)

    @property
    def is_ok(self) -> bool:
        return not self.is_void

    def __repr__(self) -> str:
        if self.is_void:
            return "TracerResult.void()"
        return f"TracerResult.ok({self.stopping_cause.value})"


def trace_field_line(
    sampler: FieldSampler,
    stepper: Stepper,
    start_position,
    callback: CallbackLike = None,
    sense: SteppingSense = SteppingSense.same,
    dense_output: bool = True,
) -> TracerResult:
    """
    Trace a single field line from `start_position`.

    Parameters
    ----------
    sampler : FieldSampler
        Vector field to follow
    stepper : Stepper
        Stepper dedicated to this trace
    start_position : array-like, shape (3,)
        Seed point
    callback : PointCallback, callable or None
        Receives the start position and every emitted position and
        decides whether tracing continues. None accepts every point.
    sense : SteppingSense
        Trace along (`same`) or against (`opposite`) the field
    dense_output : bool
        Emit positions at regular arc-length spacing instead of at the
        end of every adaptive step

    Returns
    -------
    TracerResult
        Void if placement failed for any reason other than the callback
        stopping it, otherwise the cause that ended the trace
    """
    start = as_point(start_position, "start_position")
    on_point = resolve_callback(callback)

    cause = stepper.place(sampler, start, on_point, sense)
    if cause is not None:
        if cause == StoppingCause.stopped_by_callback:
            return TracerResult.ok(cause)
        return TracerResult.void()

    step = stepper.step_dense_output if dense_output else stepper.step
    while True:
        cause = step(sampler, on_point)
        if cause is not None:
            return TracerResult.ok(cause)
