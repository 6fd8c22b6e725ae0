# fieldtrace/stepping/__init__.py
"""
Adaptive stepping engine for field line tracing.

Contains:
- base: stopping causes, stepping sense, callback and stepper protocols
- direction: direction normalizer and sampling with periodic wrapping
- config: validated stepper configuration and step size controller
- tableaus: Bogacki-Shampine 3(2) and Dormand-Prince 5(4) coefficients
- scheme: stage evaluation, error estimate and dense output of a pair
- rkf: the generic RKF stepper and its factory
"""

from .base import (
    SteppingSense,
    StoppingCause,
    StepperInstruction,
    StepResult,
    PointCallback,
    CallbackLike,
    Stepper,
    StepperFactory,
    resolve_callback,
)

from .direction import (
    SampledDirection,
    compute_stepping_direction,
    sample_direction,
)

from .config import (
    StepperConfig,
    PIControlParams,
)

from .tableaus import (
    ButcherTableau,
    RKF23,
    RKF45,
)

from .scheme import (
    EmbeddedRKScheme,
    StepAttempt,
)

from .rkf import (
    StepperState,
    RKFStepper,
    RKFStepperType,
    RKFStepperFactory,
)

__all__ = [
    "SteppingSense",
    "StoppingCause",
    "StepperInstruction",
    "StepResult",
    "PointCallback",
    "CallbackLike",
    "Stepper",
    "StepperFactory",
    "resolve_callback",
    "SampledDirection",
    "compute_stepping_direction",
    "sample_direction",
    "StepperConfig",
    "PIControlParams",
    "ButcherTableau",
    "RKF23",
    "RKF45",
    "EmbeddedRKScheme",
    "StepAttempt",
    "StepperState",
    "RKFStepper",
    "RKFStepperType",
    "RKFStepperFactory",
]
