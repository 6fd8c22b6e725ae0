# fieldtrace/fields/analytic.py
"""
Samplers backed by Python callables.

Useful for synthetic fields and for testing the stepping engine against
known solutions. The callable receives a position of shape (3,) and
returns the field vector there.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple
import numpy as np

from .base import as_point, inside_bounds, validate_bounds, wrap_periodic


@dataclass
class AnalyticFieldSampler:
    """
    Vector field given by a function on a bounded box.

    Attributes
    ----------
    fn : callable
        Maps a position (3,) to a vector (3,)
    bounds_min, bounds_max : array-like
        Domain box
    periodic : tuple of bool
        Per-axis periodicity; periodic axes exclude `bounds_max`
    """
    fn: Callable[[np.ndarray], np.ndarray]
    bounds_min: np.ndarray
    bounds_max: np.ndarray
    periodic: Tuple[bool, bool, bool] = (False, False, False)

    def __post_init__(self):
        if not callable(self.fn):
            raise ValueError("fn must be callable")
        self.bounds_min, self.bounds_max = validate_bounds(self.bounds_min, self.bounds_max)
        self.periodic = tuple(bool(p) for p in self.periodic)
        if len(self.periodic) != 3:
            raise ValueError(f"periodic must have 3 entries, got {len(self.periodic)}")

    def sample(self, position) -> Optional[np.ndarray]:
        p = as_point(position)
        if not inside_bounds(p, self.bounds_min, self.bounds_max, self.periodic):
            return None
        value = np.array(self.fn(p), dtype=np.float64)
        if value.shape != (3,):
            raise ValueError(f"Field function must return shape (3,), got {value.shape}")
        return value

    def sample_many(self, positions) -> np.ndarray:
        """Sample at positions (N, 3); rows outside the domain are NaN."""
        pos = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        out = np.full(pos.shape, np.nan)
        for i, p in enumerate(pos):
            value = self.sample(p)
            if value is not None:
                out[i] = value
        return out

    def resolve_wrap(self, position) -> Optional[np.ndarray]:
        return wrap_periodic(as_point(position), self.bounds_min, self.bounds_max, self.periodic)

    def get_spatial_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.bounds_min.copy(), self.bounds_max.copy()


@dataclass
class AnalyticScalarSampler:
    """Scalar field given by a function on a bounded box."""
    fn: Callable[[np.ndarray], float]
    bounds_min: np.ndarray
    bounds_max: np.ndarray
    periodic: Tuple[bool, bool, bool] = (False, False, False)

    def __post_init__(self):
        self.bounds_min, self.bounds_max = validate_bounds(self.bounds_min, self.bounds_max)
        self.periodic = tuple(bool(p) for p in self.periodic)

    def sample(self, position) -> Optional[float]:
        p = as_point(position)
        if not inside_bounds(p, self.bounds_min, self.bounds_max, self.periodic):
            return None
        return float(self.fn(p))

    def get_spatial_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.bounds_min.copy(), self.bounds_max.copy()


# ---------- Stock fields ----------

def uniform_field(
    vector: Sequence[float],
    bounds_min=(0.0, 0.0, 0.0),
    bounds_max=(1.0, 1.0, 1.0),
    periodic: Sequence[bool] = (False, False, False),
) -> AnalyticFieldSampler:
    """Constant field `vector` everywhere in the box."""
    v = as_point(vector, "vector")
    return AnalyticFieldSampler(lambda p: v, bounds_min, bounds_max, tuple(periodic))


def circular_field(
    center: Sequence[float] = (0.0, 0.0, 0.0),
    axis: Sequence[float] = (0.0, 0.0, 1.0),
    bounds_min=(-1.0, -1.0, -1.0),
    bounds_max=(1.0, 1.0, 1.0),
    strength: float = 1.0,
) -> AnalyticFieldSampler:
    """
    Rotation about `axis` through `center`: B = strength * axis x (r - center).

    Field lines are circles around the axis; the field vanishes on it.
    """
    c = as_point(center, "center")
    a = as_point(axis, "axis")
    norm = np.linalg.norm(a)
    if norm == 0.0:
        raise ValueError("axis must be non-zero")
    a = a / norm

    def fn(p: np.ndarray) -> np.ndarray:
        return strength * np.cross(a, p - c)

    return AnalyticFieldSampler(fn, bounds_min, bounds_max)


def dipole_field(
    moment: Sequence[float] = (0.0, 0.0, 1.0),
    center: Sequence[float] = (0.0, 0.0, 0.0),
    bounds_min=(-2.0, -2.0, -2.0),
    bounds_max=(2.0, 2.0, 2.0),
) -> AnalyticFieldSampler:
    """
    Point dipole field B = (3 (m.r_hat) r_hat - m) / |r|^3.

    The field is undefined at the center, where the sampler returns zero.
    """
    m = as_point(moment, "moment")
    c = as_point(center, "center")

    def fn(p: np.ndarray) -> np.ndarray:
        r = p - c
        dist = np.linalg.norm(r)
        if dist == 0.0:
            return np.zeros(3)
        r_hat = r / dist
        return (3.0 * np.dot(m, r_hat) * r_hat - m) / dist**3

    return AnalyticFieldSampler(fn, bounds_min, bounds_max)
