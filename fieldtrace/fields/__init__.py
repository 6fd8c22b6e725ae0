# fieldtrace/fields/__init__.py
"""
Field samplers for fieldtrace.

This module provides the sampler protocol followed by the stepping engine
and concrete implementations:
- FieldSampler / ScalarSampler: protocols for vector and scalar fields
- StructuredGridSampler: regular grid vector fields with periodic axes
- StructuredScalarSampler: regular grid scalar fields
- AnalyticFieldSampler: fields defined by Python callables
"""

from .base import (
    FieldSampler,
    ScalarSampler,
    GridMeta,
    as_point,
    as_positions,
    domain_extent,
    validate_bounds,
)

from .structured import (
    StructuredGridSampler,
    StructuredScalarSampler,
    create_structured_sampler_from_arrays,
    create_sampler_from_function,
)

from .analytic import (
    AnalyticFieldSampler,
    AnalyticScalarSampler,
    uniform_field,
    circular_field,
    dipole_field,
)

__all__ = [
    "FieldSampler",
    "ScalarSampler",
    "GridMeta",
    "as_point",
    "as_positions",
    "domain_extent",
    "validate_bounds",
    "StructuredGridSampler",
    "StructuredScalarSampler",
    "create_structured_sampler_from_arrays",
    "create_sampler_from_function",
    "AnalyticFieldSampler",
    "AnalyticScalarSampler",
    "uniform_field",
    "circular_field",
    "dipole_field",
]
