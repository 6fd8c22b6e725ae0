# fieldtrace/fields/base.py
"""
Base protocols and utilities for sampled fields.

Defines the FieldSampler and ScalarSampler protocols consumed by the
stepping engine, regular grid metadata, and small helpers for bounds and
position handling. Samplers are read-only after construction so a single
instance can be shared by concurrent traces.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple
import numpy as np


@dataclass(frozen=True)
class GridMeta:
    """Regular grid metadata."""
    origin: np.ndarray                   # (3,) coordinates of the first node
    spacing: np.ndarray                  # (3,) dx, dy, dz
    shape: Tuple[int, int, int]          # (Nx, Ny, Nz) node counts
    periodic: Tuple[bool, bool, bool]    # per-axis periodicity
    bounds: np.ndarray                   # (2, 3) [[xmin,ymin,zmin], [xmax,ymax,zmax]]


class FieldSampler(Protocol):
    """
    Protocol for vector fields that can be followed by a stepper.

    `sample` returns None for positions outside the domain. Positions
    outside the domain along periodic axes can be mapped back inside with
    `resolve_wrap`.
    """

    def sample(self, position: np.ndarray) -> Optional[np.ndarray]:
        """
        Sample the field at a single position.

        Parameters
        ----------
        position : np.ndarray
            Query position, shape (3,)

        Returns
        -------
        np.ndarray or None
            Field vector, shape (3,), or None when out of bounds
        """
        ...

    def resolve_wrap(self, position: np.ndarray) -> Optional[np.ndarray]:
        """
        Map a position across periodic boundaries into the domain.

        Returns
        -------
        np.ndarray or None
            Equivalent position inside the domain, or None when the
            position is outside along a non-periodic axis
        """
        ...

    def get_spatial_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return spatial bounds of the field domain.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]
            (bounds_min, bounds_max) each shape (3,) as [xmin,ymin,zmin], [xmax,ymax,zmax]
        """
        ...


class ScalarSampler(Protocol):
    """Protocol for scalar fields sampled along traced lines."""

    def sample(self, position: np.ndarray) -> Optional[float]:
        ...

    def get_spatial_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        ...


# ---------- Helpers ----------

def as_point(position, name: str = "position") -> np.ndarray:
    """Return `position` as a float64 array of shape (3,)."""
    p = np.asarray(position, dtype=np.float64)
    if p.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {p.shape}")
    return p


def as_positions(positions, name: str = "positions") -> np.ndarray:
    """Return `positions` as a float64 array of shape (N, 3)."""
    p = np.asarray(positions, dtype=np.float64)
    if p.ndim == 1:
        p = p.reshape((1, p.shape[0]))
    if p.ndim != 2 or p.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N, 3), got {p.shape}")
    return p


def validate_bounds(bounds_min, bounds_max) -> Tuple[np.ndarray, np.ndarray]:
    """Validate a bounding box and return it as two float64 (3,) arrays."""
    lo = as_point(bounds_min, "bounds_min")
    hi = as_point(bounds_max, "bounds_max")
    if not np.all(np.isfinite(lo)) or not np.all(np.isfinite(hi)):
        raise ValueError("Bounds must be finite")
    if np.any(hi <= lo):
        raise ValueError(f"bounds_max must exceed bounds_min on every axis, got {lo} and {hi}")
    return lo, hi


def domain_extent(sampler: FieldSampler) -> np.ndarray:
    """Per-axis extent of a sampler's domain, bounds_max - bounds_min."""
    lo, hi = sampler.get_spatial_bounds()
    return np.asarray(hi, dtype=np.float64) - np.asarray(lo, dtype=np.float64)


def wrap_periodic(
    position: np.ndarray,
    bounds_min: np.ndarray,
    bounds_max: np.ndarray,
    periodic: Tuple[bool, bool, bool],
) -> Optional[np.ndarray]:
    """
    Wrap periodic coordinates into [min, max) and check the rest.

    Non-periodic coordinates must lie in [min, max], otherwise None is
    returned.
    """
    wrapped = np.array(position, dtype=np.float64)
    if not np.all(np.isfinite(wrapped)):
        return None
    for axis in range(3):
        lo, hi = bounds_min[axis], bounds_max[axis]
        if periodic[axis]:
            period = hi - lo
            x = lo + np.mod(wrapped[axis] - lo, period)
            # mod can round up to the period itself
            wrapped[axis] = lo if x >= hi else x
        elif wrapped[axis] < lo or wrapped[axis] > hi:
            return None
    return wrapped


def inside_bounds(
    position: np.ndarray,
    bounds_min: np.ndarray,
    bounds_max: np.ndarray,
    periodic: Tuple[bool, bool, bool],
) -> bool:
    """Whether a position lies in the domain. Periodic axes exclude their upper bound."""
    for axis in range(3):
        x = position[axis]
        if not np.isfinite(x):
            return False
        if x < bounds_min[axis]:
            return False
        if periodic[axis]:
            if x >= bounds_max[axis]:
                return False
        elif x > bounds_max[axis]:
            return False
    return True
