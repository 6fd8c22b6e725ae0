"""
fieldtrace: adaptive field line tracing through sampled vector fields.

Follows the direction of a 3D vector field (e.g. a magnetic field) with
an embedded Runge-Kutta pair and PI step size control, and reports
positions at regular arc-length spacing to a callback that decides when
to stop and what to keep:
- Regular grid and analytic field samplers with periodic boundaries
- RKF23 (Bogacki-Shampine) and RKF45 (Dormand-Prince) steppers
- Dense output independent of the adaptive step size
- Sink, null field, out-of-bounds and retry-budget stopping causes
- Field line sets traced serially or on worker threads

Core workflow:
1. Build a sampler → StructuredGridSampler / AnalyticFieldSampler
2. Configure steppers → StepperConfig + RKFStepperFactory
3. Generate seeds → random_seeds / slice_seeds / ...
4. Trace → FieldLineSet.trace or trace_field_line with your own callback
"""

from __future__ import annotations

# Version info
__version__ = "0.1.0"
__author__ = "fieldtrace Contributors"

from .utils.jax_utils import JAX_AVAILABLE
from .utils.config import PackageConfig, get_config, configure, reset_config
from .utils.logging import Timer, timeit, memory_info

from .fields import (
    FieldSampler,
    ScalarSampler,
    StructuredGridSampler,
    StructuredScalarSampler,
    AnalyticFieldSampler,
    AnalyticScalarSampler,
    create_structured_sampler_from_arrays,
    create_sampler_from_function,
    uniform_field,
    circular_field,
    dipole_field,
)

from .stepping import (
    SteppingSense,
    StoppingCause,
    StepperInstruction,
    PointCallback,
    StepperConfig,
    StepperState,
    RKFStepper,
    RKFStepperType,
    RKFStepperFactory,
    EmbeddedRKScheme,
    ButcherTableau,
    RKF23,
    RKF45,
    compute_stepping_direction,
)

from .tracking import (
    TracerResult,
    trace_field_line,
    FieldLine,
    FieldLineSet,
    random_seeds,
    uniform_grid_seeds,
    line_seeds,
    slice_seeds,
)

__all__ = [
    # Version
    "__version__",
    # Utilities
    "JAX_AVAILABLE",
    "PackageConfig",
    "get_config",
    "configure",
    "reset_config",
    "Timer",
    "timeit",
    "memory_info",
    # Fields
    "FieldSampler",
    "ScalarSampler",
    "StructuredGridSampler",
    "StructuredScalarSampler",
    "AnalyticFieldSampler",
    "AnalyticScalarSampler",
    "create_structured_sampler_from_arrays",
    "create_sampler_from_function",
    "uniform_field",
    "circular_field",
    "dipole_field",
    # Stepping
    "SteppingSense",
    "StoppingCause",
    "StepperInstruction",
    "PointCallback",
    "StepperConfig",
    "StepperState",
    "RKFStepper",
    "RKFStepperType",
    "RKFStepperFactory",
    "EmbeddedRKScheme",
    "ButcherTableau",
    "RKF23",
    "RKF45",
    "compute_stepping_direction",
    # Tracking
    "TracerResult",
    "trace_field_line",
    "FieldLine",
    "FieldLineSet",
    # Seeding
    "random_seeds",
    "uniform_grid_seeds",
    "line_seeds",
    "slice_seeds",
]


def get_version() -> str:
    """Return the package version."""
    return __version__
