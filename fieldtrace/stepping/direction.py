# fieldtrace/stepping/direction.py

from __future__ import annotations
from typing import NamedTuple, Optional, Union
import numpy as np

from ..fields.base import FieldSampler
from .base import SteppingSense, StoppingCause


class SampledDirection(NamedTuple):
    """Unit direction at a position, plus the wrapped position if a periodic boundary was crossed."""
    direction: np.ndarray
    wrapped_position: Optional[np.ndarray] = None


def compute_stepping_direction(vector: np.ndarray, sense: SteppingSense = SteppingSense.same) -> Optional[np.ndarray]:
    """
    Turn a sampled field vector into a unit stepping direction.

    Parameters
    ----------
    vector : np.ndarray
        Sampled field vector, shape (3,)
    sense : SteppingSense
        `opposite` flips the vector before normalization

    Returns
    -------
    np.ndarray or None
        Unit direction, shape (3,), or None when the vector is exactly zero
    """
    v = np.asarray(vector, dtype=np.float64)
    if not np.any(v):
        return None
    # rescale first so tiny or huge vectors do not under- or overflow
    v = v / np.max(np.abs(v))
    direction = v / np.sqrt(np.dot(v, v))
    if sense == SteppingSense.opposite:
        direction = -direction
    return direction


def sample_direction(
    sampler: FieldSampler,
    position: np.ndarray,
    sense: SteppingSense = SteppingSense.same,
) -> Union[SampledDirection, StoppingCause]:
    """
    Sample the stepping direction at a position.

    Positions outside the domain are wrapped once through
    `sampler.resolve_wrap`. Returns the `null` cause for a zero field and
    `out_of_bounds` when no periodic counterpart exists.

    Raises
    ------
    RuntimeError
        If the sampler rejects the position it returned from `resolve_wrap`
    """
    vector = sampler.sample(position)
    wrapped_position = None

    if vector is None:
        wrapped_position = sampler.resolve_wrap(position)
        if wrapped_position is None:
            return StoppingCause.out_of_bounds
        wrapped_position = np.asarray(wrapped_position, dtype=np.float64)
        vector = sampler.sample(wrapped_position)
        if vector is None:
            raise RuntimeError(f"Position {wrapped_position} is out of bounds after wrapping")

    direction = compute_stepping_direction(vector, sense)
    if direction is None:
        return StoppingCause.null
    return SampledDirection(direction, wrapped_position)
