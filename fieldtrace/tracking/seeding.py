# fieldtrace/tracking/seeding.py
"""
Seed position generators for field line tracing.

Every generator returns float64 positions of shape (N, 3). Bounds may be
given as [[xmin, ymin, zmin], [xmax, ymax, zmax]], as their transpose, or
as a flat [xmin, xmax, ymin, ymax, zmin, zmax]; a sampler's
`get_spatial_bounds()` tuple is accepted too.
"""

from __future__ import annotations
from typing import List, Tuple, Union
import numpy as np

# Import JAX utilities with fallback
from ..utils.jax_utils import JAX_AVAILABLE

if JAX_AVAILABLE:
    try:
        import jax
        import jax.numpy as jnp
    except Exception:
        JAX_AVAILABLE = False

from ..fields.base import as_point

BoundsLike = Union[np.ndarray, List, Tuple]


def _validate_bounds(bounds: BoundsLike) -> np.ndarray:
    """
    Validate and standardize domain bounds.

    Returns
    -------
    np.ndarray
        Bounds, shape (2, 3), dtype float64
    """
    if isinstance(bounds, tuple) and len(bounds) == 2:
        bounds = np.stack([np.asarray(b, dtype=np.float64) for b in bounds])
    bounds = np.asarray(bounds, dtype=np.float64)

    if bounds.ndim == 1:
        if bounds.shape[0] != 6:
            raise ValueError(f"1D bounds must have 6 elements, got {bounds.shape[0]}")
        bounds = np.array([bounds[0::2], bounds[1::2]])
    elif bounds.shape == (3, 2):
        bounds = bounds.T
    elif bounds.shape != (2, 3):
        raise ValueError(f"Bounds must have shape (2, 3), (3, 2) or (6,), got {bounds.shape}")

    if not np.all(np.isfinite(bounds)):
        raise ValueError("Bounds must be finite")
    if not np.all(bounds[0] < bounds[1]):
        raise ValueError(f"Invalid bounds: min {bounds[0]} >= max {bounds[1]}")

    return bounds


def random_seeds(n: int, bounds: BoundsLike, rng_seed: int = 0) -> np.ndarray:
    """
    Uniformly sample n seed positions within bounds.

    Parameters
    ----------
    n : int
        Number of seed positions
    bounds : array-like
        Domain bounds
    rng_seed : int
        Seed for reproducibility

    Returns
    -------
    np.ndarray
        Seed positions, shape (n, 3)
    """
    if n <= 0:
        return np.zeros((0, 3))

    bounds_std = _validate_bounds(bounds)
    lo, hi = bounds_std[0], bounds_std[1]

    if JAX_AVAILABLE:
        key = jax.random.PRNGKey(rng_seed)
        u = np.asarray(jax.random.uniform(key, shape=(n, 3)), dtype=np.float64)
    else:
        rng = np.random.default_rng(rng_seed)
        u = rng.uniform(0.0, 1.0, size=(n, 3))

    return lo + u * (hi - lo)


def uniform_grid_seeds(
    resolution: Union[int, Tuple[int, int, int]],
    bounds: BoundsLike,
    include_boundaries: bool = False,
) -> np.ndarray:
    """
    Generate seeds on a regular lattice within bounds.

    Parameters
    ----------
    resolution : int or tuple of 3 ints
        Points per axis
    bounds : array-like
        Domain bounds
    include_boundaries : bool
        Place the outermost points on the bounds. Otherwise points sit at
        cell centres, strictly inside the box.

    Returns
    -------
    np.ndarray
        Seed positions, shape (nx*ny*nz, 3), x varying slowest
    """
    bounds_std = _validate_bounds(bounds)

    if isinstance(resolution, (int, np.integer)):
        shape = (int(resolution),) * 3
    else:
        shape = tuple(int(r) for r in resolution)
        if len(shape) != 3:
            raise ValueError(f"Resolution must be an int or 3 ints, got {resolution}")
    if min(shape) < 1:
        raise ValueError(f"Resolution must be positive, got {shape}")

    axes = []
    for axis in range(3):
        lo, hi, n = bounds_std[0, axis], bounds_std[1, axis], shape[axis]
        if include_boundaries:
            axes.append(np.linspace(lo, hi, n))
        else:
            width = (hi - lo) / n
            axes.append(lo + width * (np.arange(n) + 0.5))

    X, Y, Z = np.meshgrid(*axes, indexing="ij")
    return np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])


def line_seeds(start, end, n: int) -> np.ndarray:
    """
    Generate n evenly spaced seeds from `start` to `end`, both included.
    """
    if n <= 0:
        return np.zeros((0, 3))

    start = as_point(start, "start")
    end = as_point(end, "end")
    t = np.linspace(0.0, 1.0, n) if n > 1 else np.zeros(1)
    return start[None, :] + t[:, None] * (end - start)[None, :]


def slice_seeds(
    axis: Union[int, str],
    coordinate: float,
    shape: Tuple[int, int],
    bounds: BoundsLike,
) -> np.ndarray:
    """
    Generate seeds on a regular grid in an axis-aligned plane.

    The plane is normal to `axis` at `coordinate`. The two remaining axes,
    in increasing order, are divided into `shape` cells each and a seed is
    placed at every cell centre.

    Parameters
    ----------
    axis : int or str
        0/1/2 or 'x'/'y'/'z'
    coordinate : float
        Position of the plane along `axis`; must lie within bounds
    shape : tuple of 2 ints
        Number of cells along the two in-plane axes
    bounds : array-like
        Domain bounds

    Returns
    -------
    np.ndarray
        Seed positions, shape (shape[0]*shape[1], 3)
    """
    if isinstance(axis, str):
        names = {"x": 0, "y": 1, "z": 2}
        if axis.lower() not in names:
            raise ValueError(f"axis must be 'x', 'y' or 'z', got '{axis}'")
        axis = names[axis.lower()]
    axis = int(axis)
    if axis not in (0, 1, 2):
        raise ValueError(f"axis must be 0, 1 or 2, got {axis}")

    bounds_std = _validate_bounds(bounds)
    coordinate = float(coordinate)
    if not (bounds_std[0, axis] <= coordinate <= bounds_std[1, axis]):
        raise ValueError(
            f"coordinate {coordinate} outside bounds [{bounds_std[0, axis]}, {bounds_std[1, axis]}] on axis {axis}"
        )

    shape = tuple(int(s) for s in shape)
    if len(shape) != 2 or min(shape) < 1:
        raise ValueError(f"shape must be 2 positive ints, got {shape}")

    in_plane = [a for a in range(3) if a != axis]
    centres = []
    for a, n in zip(in_plane, shape):
        lo, hi = bounds_std[0, a], bounds_std[1, a]
        width = (hi - lo) / n
        centres.append(lo + width * (np.arange(n) + 0.5))

    U, V = np.meshgrid(centres[0], centres[1], indexing="ij")
    seeds = np.empty((U.size, 3))
    seeds[:, axis] = coordinate
    seeds[:, in_plane[0]] = U.ravel()
    seeds[:, in_plane[1]] = V.ravel()
    return seeds
