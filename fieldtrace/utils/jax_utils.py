# fieldtrace/utils/jax_utils.py
from __future__ import annotations
from typing import Any, Callable, Optional, Sequence

try:
    import jax
    import jax.numpy as jnp
    from jax import jit as _jit
    JAX_AVAILABLE = True
except Exception:
    JAX_AVAILABLE = False
    jax = None  # type: ignore
    jnp = None  # type: ignore

import numpy as np
import warnings


def get_jax_version() -> Optional[str]:
    """Return the JAX version string if available, else None."""
    return getattr(jax, "__version__", None) if JAX_AVAILABLE else None


def enable_x64(enable: bool = True) -> bool:
    """
    Switch JAX to double precision so batched sampling matches the
    float64 stepping engine. Returns whether the flag could be set.
    """
    if not JAX_AVAILABLE:
        return False
    try:
        jax.config.update("jax_enable_x64", bool(enable))
        return True
    except Exception as e:
        warnings.warn(f"Could not set jax_enable_x64: {e}", RuntimeWarning)
        return False


def to_numpy(x: Any, dtype: Any = np.float64) -> np.ndarray:
    """Convert JAX/NumPy arrays to NumPy with the given dtype."""
    return np.asarray(x, dtype=dtype)


def maybe_jit(fn: Callable, enable: bool = True, static_argnums: Optional[Sequence[int]] = None):
    """
    JIT-wrap `fn` with JAX when available and enabled; otherwise return `fn` unchanged.
    """
    if JAX_AVAILABLE and enable:
        return _jit(fn, static_argnums=static_argnums)
    return fn
