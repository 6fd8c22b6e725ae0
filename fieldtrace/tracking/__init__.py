# fieldtrace/tracking/__init__.py
"""
Field line tracing.

Contains:
- tracer: the generic tracing driver and its result type
- field_lines: field line accumulator and sets of traced lines
- seeding: seed position generators
"""

from .tracer import (
    TracerResult,
    trace_field_line,
)

from .field_lines import (
    FieldLine,
    FieldLineSet,
)

from .seeding import (
    random_seeds,
    uniform_grid_seeds,
    line_seeds,
    slice_seeds,
)

__all__ = [
    "TracerResult",
    "trace_field_line",
    "FieldLine",
    "FieldLineSet",
    "random_seeds",
    "uniform_grid_seeds",
    "line_seeds",
    "slice_seeds",
]
