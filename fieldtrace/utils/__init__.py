# fieldtrace/utils/__init__.py
"""
Utilities for fieldtrace.

Contains:
- jax_utils: JAX availability guard and jit helper
- logging: timers, memory monitoring, progress reporting
- config: global package settings

All modules handle JAX availability gracefully with NumPy fallbacks.
"""

from .jax_utils import (
    JAX_AVAILABLE,
    get_jax_version,
    enable_x64,
    to_numpy,
    maybe_jit,
)

from .logging import (
    Timer,
    timeit,
    memory_info,
    LineProgress,
    make_progress,
)

from .config import (
    PackageConfig,
    get_config,
    configure,
    reset_config,
)

__all__ = [
    "JAX_AVAILABLE",
    "get_jax_version",
    "enable_x64",
    "to_numpy",
    "maybe_jit",
    "Timer",
    "timeit",
    "memory_info",
    "LineProgress",
    "make_progress",
    "PackageConfig",
    "get_config",
    "configure",
    "reset_config",
]
