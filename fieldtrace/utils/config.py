# fieldtrace/utils/config.py
"""
Global package configuration.

Provides centralized settings for data types, progress reporting and
parallel tracing defaults used across all modules. Numerical settings of
the stepping engine live in `fieldtrace.stepping.config.StepperConfig`.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Any, Optional
import os
import warnings

try:
    import psutil
except Exception:
    psutil = None  # type: ignore

from .jax_utils import JAX_AVAILABLE, enable_x64, get_jax_version


_PROGRESS_STYLES = ("auto", "tqdm", "simple", "none")


@dataclass
class PackageConfig:
    """
    Global configuration for fieldtrace.

    Controls data types, progress output and the defaults used when
    tracing many field lines at once.
    """
    # Numerics
    dtype: str = "float64"              # 'float32' | 'float64'

    # Output
    verbose: bool = False               # Print timings and trace summaries
    show_progress: bool = True          # Show progress for line sets
    progress_style: str = "auto"        # 'auto' | 'tqdm' | 'simple' | 'none'

    # Parallel tracing
    n_workers: Optional[int] = None     # None or 1 = serial

    # Batched sampling
    use_jax_jit: bool = True            # JIT batched grid sampling

    _cpu_count: int = field(init=False, default=1)
    _system_memory_gb: float = field(init=False, default=0.0)

    def __post_init__(self):
        self._detect_system_resources()
        self._validate_config()
        self._apply_jax_config()

    def _detect_system_resources(self):
        """Record CPU count and total memory."""
        self._cpu_count = os.cpu_count() or 1
        try:
            self._system_memory_gb = psutil.virtual_memory().total / (1024**3)
        except Exception:
            self._system_memory_gb = 0.0

    def _validate_config(self):
        """Raise ValueError for unusable settings; warn for questionable ones."""
        if self.dtype not in ("float32", "float64"):
            raise ValueError(f"dtype must be 'float32' or 'float64', got '{self.dtype}'")

        if self.progress_style not in _PROGRESS_STYLES:
            raise ValueError(
                f"progress_style must be one of {_PROGRESS_STYLES}, got '{self.progress_style}'"
            )

        if self.n_workers is not None:
            if int(self.n_workers) < 1:
                raise ValueError(f"n_workers must be >= 1, got {self.n_workers}")
            if self.n_workers > self._cpu_count * 4:
                warnings.warn(
                    f"n_workers={self.n_workers} is much larger than the CPU count ({self._cpu_count})"
                )

        if self.dtype == "float32":
            warnings.warn(
                "float32 is used for batched sampling only; the stepping engine always works in float64"
            )

    def _apply_jax_config(self):
        """Match the JAX float width to `dtype`."""
        if not JAX_AVAILABLE:
            return
        enable_x64(self.dtype == "float64")

    # ---------- Queries ----------

    def resolved_workers(self, n_workers: Optional[int] = None) -> int:
        """Number of workers to use, given an optional per-call override."""
        n = n_workers if n_workers is not None else self.n_workers
        return max(1, int(n)) if n is not None else 1

    def get_system_info(self) -> Dict[str, Any]:
        """CPU, memory and JAX details plus the current settings."""
        return {
            "cpu_count": self._cpu_count,
            "system_memory_gb": self._system_memory_gb,
            "jax_available": JAX_AVAILABLE,
            "jax_version": get_jax_version(),
            "current_config": {
                "dtype": self.dtype,
                "verbose": self.verbose,
                "show_progress": self.show_progress,
                "progress_style": self.progress_style,
                "n_workers": self.n_workers,
                "use_jax_jit": self.use_jax_jit,
            },
        }


# Active configuration, replaced by reset_config()
_global_config = PackageConfig()


def get_config() -> PackageConfig:
    """Return the active package configuration."""
    return _global_config


def configure(**kwargs) -> None:
    """
    Update the active package configuration in place.

    Parameters
    ----------
    **kwargs : dict
        Configuration parameters to update. Unknown names are reported
        with a warning and ignored.

    Raises
    ------
    ValueError
        If the updated settings are invalid. The active configuration is
        left unchanged in that case.
    """
    updates = {}
    for key, value in kwargs.items():
        if hasattr(_global_config, key) and not key.startswith("_"):
            updates[key] = value
        else:
            warnings.warn(f"Unknown configuration parameter: {key}")

    # Validated on a copy first
    replace(_global_config, **updates)

    for key, value in updates.items():
        setattr(_global_config, key, value)
    _global_config._apply_jax_config()


def reset_config() -> None:
    """Restore the default package configuration."""
    global _global_config
    _global_config = PackageConfig()
