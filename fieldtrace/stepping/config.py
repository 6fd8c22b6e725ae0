# fieldtrace/stepping/config.py
"""
Configuration of the adaptive RKF stepper.

All values are checked when the configuration is created, so invalid
settings fail before any tracing starts.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace as _dc_replace
from typing import Any, Mapping
import math
import numbers


@dataclass(frozen=True)
class StepperConfig:
    """
    Numerical settings of an RKF stepper.

    Attributes
    ----------
    dense_step_size : float
        Arc length between consecutive dense output positions
    max_step_attempts : int
        Trial steps allowed per call before giving up
    absolute_tolerance, relative_tolerance : float
        Error tolerances; the relative one is scaled by the domain extent
    safety_factor : float
        Multiplier applied to every new step size, in (0, 1]
    min_step_scale, max_step_scale : float
        Bounds on the factor by which the step size may change
    initial_step_size : float
        Step size attempted first after placement
    initial_error : float
        Error estimate assumed before the first accepted step, in (0, 1]
    sudden_reversals_for_sink : int
        Consecutive direction reversals that count as a sink
    use_pi_control : bool
        Use proportional-integral step size control instead of the
        classical controller
    """
    dense_step_size: float = 1e-2
    max_step_attempts: int = 16
    absolute_tolerance: float = 1e-6
    relative_tolerance: float = 1e-6
    safety_factor: float = 0.9
    min_step_scale: float = 0.2
    max_step_scale: float = 10.0
    initial_step_size: float = 1e-4
    initial_error: float = 1e-4
    sudden_reversals_for_sink: int = 3
    use_pi_control: bool = True

    def __post_init__(self):
        for name in ("dense_step_size", "absolute_tolerance", "relative_tolerance",
                     "min_step_scale", "max_step_scale", "initial_step_size"):
            value = getattr(self, name)
            if not _is_real(value) or not math.isfinite(value) or value <= 0.0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")

        if not _is_real(self.safety_factor) or not (0.0 < self.safety_factor <= 1.0):
            raise ValueError(f"safety_factor must be in (0, 1], got {self.safety_factor!r}")
        if not _is_real(self.initial_error) or not (0.0 < self.initial_error <= 1.0):
            raise ValueError(f"initial_error must be in (0, 1], got {self.initial_error!r}")
        if self.max_step_scale < self.min_step_scale:
            raise ValueError(
                f"max_step_scale ({self.max_step_scale}) must be >= min_step_scale ({self.min_step_scale})"
            )

        for name in ("max_step_attempts", "sudden_reversals_for_sink"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
                raise ValueError(f"{name} must be an integer >= 1, got {value!r}")

        if not isinstance(self.use_pi_control, bool):
            raise ValueError(f"use_pi_control must be a bool, got {self.use_pi_control!r}")

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "StepperConfig":
        """
        Build a configuration from a flat mapping of option names.

        Missing options keep their defaults; unknown names raise ValueError.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ValueError(f"Unknown stepper options: {', '.join(unknown)}")
        return cls(**dict(options))

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def replace(self, **changes) -> "StepperConfig":
        """Return a validated copy with some options changed."""
        return _dc_replace(self, **changes)


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class PIControlParams:
    """Exponents of the step size controller."""
    k_i: float
    k_p: float

    @classmethod
    def activated(cls, order: int) -> "PIControlParams":
        """Proportional-integral control for a scheme of the given order."""
        k_i = 0.4 / order
        return cls(k_i=k_i, k_p=1.0 / order - 0.75 * k_i)

    @classmethod
    def deactivated(cls, order: int) -> "PIControlParams":
        """Classical control: no integral term."""
        return cls(k_i=0.0, k_p=1.0 / order)

    @classmethod
    def for_config(cls, config: StepperConfig, order: int) -> "PIControlParams":
        return cls.activated(order) if config.use_pi_control else cls.deactivated(order)
