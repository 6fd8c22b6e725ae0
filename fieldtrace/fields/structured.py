# fieldtrace/fields/structured.py
"""
Regular grid field sampling with per-axis periodic boundaries.

Provides trilinear interpolation of vector and scalar fields stored on
regular grids. Single-point sampling (used inside the stepping loop) runs
in NumPy. Batched sampling of many positions, used when extracting values
along traced lines, is JIT-compiled with JAX when available.

Boundary handling:
- non-periodic axis : domain is [first node, last node], outside -> None
- periodic axis     : domain is [first node, last node + spacing), the last
                      cell joins the last node to the first; positions past
                      the edge are mapped back with `resolve_wrap`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple
import warnings
import numpy as np

# Import JAX utilities with fallback
from ..utils.jax_utils import JAX_AVAILABLE, maybe_jit, to_numpy
from ..utils.config import get_config

if JAX_AVAILABLE:
    try:
        import jax
        import jax.numpy as jnp
    except Exception:
        JAX_AVAILABLE = False

from .base import (
    GridMeta,
    as_point,
    as_positions,
    inside_bounds,
    validate_bounds,
    wrap_periodic,
)


# ------------------------- Internal helpers -------------------------

def _make_trilinear(xp, values, origin, spacing, shape, periodic) -> Callable:
    """
    Build a trilinear interpolation kernel for array module `xp`.

    `values` has shape (Nx, Ny, Nz, C). The returned function maps
    positions (M, 3) to values (M, C) without any bounds checking.
    """
    def interpolate(positions):
        lo_idx = []
        hi_idx = []
        weights = []
        for axis in range(3):
            n = shape[axis]
            f = (positions[:, axis] - origin[axis]) / spacing[axis]
            if periodic[axis]:
                fl = xp.floor(f)
                w = f - fl
                i0 = xp.mod(fl.astype(xp.int32), n)
                i1 = xp.mod(i0 + 1, n)
            else:
                fl = xp.clip(xp.floor(f), 0, n - 2)
                w = f - fl
                i0 = fl.astype(xp.int32)
                i1 = i0 + 1
            lo_idx.append(i0)
            hi_idx.append(i1)
            weights.append(w[:, None])

        (i0, j0, k0), (i1, j1, k1) = lo_idx, hi_idx
        wx, wy, wz = weights
        V = values

        c00 = V[i0, j0, k0] * (1.0 - wx) + V[i1, j0, k0] * wx
        c10 = V[i0, j1, k0] * (1.0 - wx) + V[i1, j1, k0] * wx
        c01 = V[i0, j0, k1] * (1.0 - wx) + V[i1, j0, k1] * wx
        c11 = V[i0, j1, k1] * (1.0 - wx) + V[i1, j1, k1] * wx

        c0 = c00 * (1.0 - wy) + c10 * wy
        c1 = c01 * (1.0 - wy) + c11 * wy

        return c0 * (1.0 - wz) + c1 * wz

    return interpolate


def _make_valid_mask(xp, bounds_min, bounds_max, periodic) -> Callable:
    def valid(positions):
        mask = xp.all(xp.isfinite(positions), axis=1)
        for axis in range(3):
            x = positions[:, axis]
            mask = mask & (x >= bounds_min[axis])
            if periodic[axis]:
                mask = mask & (x < bounds_max[axis])
            else:
                mask = mask & (x <= bounds_max[axis])
        return mask
    return valid


# ------------------------- Grid base -------------------------

@dataclass
class _RegularGridSampler:
    """
    Common machinery for regular grid samplers.

    Attributes
    ----------
    data : np.ndarray
        Node values, shape (Nx, Ny, Nz, C)
    origin : array-like
        Coordinates of the first node, shape (3,)
    spacing : array-like
        Node spacing per axis, shape (3,)
    periodic : tuple of bool
        Periodicity per axis
    """
    data: np.ndarray
    origin: np.ndarray
    spacing: np.ndarray
    periodic: Tuple[bool, bool, bool] = (False, False, False)

    grid_meta: GridMeta = field(init=False, repr=False)
    _interp_np: Callable = field(init=False, repr=False)
    _sample_many_jax: Optional[Callable] = field(init=False, repr=False, default=None)

    def _setup(self, values: np.ndarray) -> None:
        self.origin = as_point(self.origin, "origin")
        self.spacing = as_point(self.spacing, "spacing")
        self.periodic = tuple(bool(p) for p in self.periodic)
        if len(self.periodic) != 3:
            raise ValueError(f"periodic must have 3 entries, got {len(self.periodic)}")
        if np.any(self.spacing <= 0) or not np.all(np.isfinite(self.spacing)):
            raise ValueError(f"spacing must be positive and finite, got {self.spacing}")

        shape = tuple(int(n) for n in values.shape[:3])
        for axis, n in enumerate(shape):
            if n < 1:
                raise ValueError(f"Grid axis {axis} has no nodes")
            if n < 2 and not self.periodic[axis]:
                raise ValueError(f"Non-periodic grid axis {axis} needs at least 2 nodes, got {n}")

        n_cells = np.array(
            [n if p else n - 1 for n, p in zip(shape, self.periodic)], dtype=np.float64
        )
        bounds_min = self.origin.copy()
        bounds_max = self.origin + n_cells * self.spacing

        self.grid_meta = GridMeta(
            origin=self.origin,
            spacing=self.spacing,
            shape=shape,
            periodic=self.periodic,
            bounds=np.stack([bounds_min, bounds_max]),
        )

        origin_t = tuple(float(v) for v in self.origin)
        spacing_t = tuple(float(v) for v in self.spacing)
        self._interp_np = _make_trilinear(np, values, origin_t, spacing_t, shape, self.periodic)

        if JAX_AVAILABLE and get_config().use_jax_jit:
            try:
                values_dev = jax.device_put(jnp.asarray(values))
                interp_jax = _make_trilinear(jnp, values_dev, origin_t, spacing_t, shape, self.periodic)
                valid_jax = _make_valid_mask(
                    jnp, tuple(float(v) for v in bounds_min), tuple(float(v) for v in bounds_max), self.periodic
                )

                def _sample_many(positions):
                    vals = interp_jax(positions)
                    return jnp.where(valid_jax(positions)[:, None], vals, jnp.nan)

                self._sample_many_jax = maybe_jit(_sample_many)
            except Exception as e:
                warnings.warn(f"JAX sampler setup failed, using NumPy: {e}")
                self._sample_many_jax = None

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.grid_meta.shape

    def _inside(self, position: np.ndarray) -> bool:
        b = self.grid_meta.bounds
        return inside_bounds(position, b[0], b[1], self.periodic)

    def _sample_point(self, position) -> Optional[np.ndarray]:
        p = as_point(position)
        if not self._inside(p):
            return None
        return self._interp_np(p[None, :])[0]

    def _sample_many(self, positions) -> np.ndarray:
        pos = as_positions(positions)
        if self._sample_many_jax is not None:
            try:
                return to_numpy(self._sample_many_jax(pos))
            except Exception as e:
                warnings.warn(f"JAX batched sampling failed, falling back to NumPy: {e}")
                self._sample_many_jax = None

        b = self.grid_meta.bounds
        valid = _make_valid_mask(np, b[0], b[1], self.periodic)(pos)
        vals = np.full((pos.shape[0], self.data.shape[-1] if self.data.ndim == 4 else 1), np.nan)
        if np.any(valid):
            vals[valid] = self._interp_np(pos[valid])
        return vals

    def resolve_wrap(self, position) -> Optional[np.ndarray]:
        """
        Map a position across periodic boundaries into the domain.

        Returns None when the position is outside along a non-periodic axis.
        """
        b = self.grid_meta.bounds
        return wrap_periodic(as_point(position), b[0], b[1], self.periodic)

    def get_spatial_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return spatial bounds as (min, max), each shape (3,).
        """
        b = self.grid_meta.bounds
        return b[0].copy(), b[1].copy()


# ------------------------- Public samplers -------------------------

@dataclass
class StructuredGridSampler(_RegularGridSampler):
    """
    Vector field on a regular grid with trilinear interpolation.

    Attributes
    ----------
    data : np.ndarray
        Field vectors on grid nodes, shape (Nx, Ny, Nz, 3)
    origin : array-like
        Coordinates of node (0, 0, 0)
    spacing : array-like
        Grid spacing dx, dy, dz
    periodic : tuple of bool
        Whether each axis wraps around
    """

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.float64)
        if self.data.ndim != 4:
            raise ValueError(f"data must be 4D (Nx,Ny,Nz,3), got {self.data.shape}")
        if self.data.shape[3] != 3:
            raise ValueError(f"data must have 3 components, got {self.data.shape[3]}")
        self._setup(self.data)

    def sample(self, position) -> Optional[np.ndarray]:
        """
        Sample the field at one position.

        Returns
        -------
        np.ndarray or None
            Interpolated vector, shape (3,), or None outside the domain
        """
        return self._sample_point(position)

    def sample_many(self, positions) -> np.ndarray:
        """
        Sample the field at many positions.

        Parameters
        ----------
        positions : array-like, shape (N, 3)

        Returns
        -------
        np.ndarray
            Vectors, shape (N, 3); rows outside the domain are NaN
        """
        return self._sample_many(positions)


@dataclass
class StructuredScalarSampler(_RegularGridSampler):
    """Scalar field on a regular grid with trilinear interpolation."""

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.float64)
        if self.data.ndim != 3:
            raise ValueError(f"data must be 3D (Nx,Ny,Nz), got {self.data.shape}")
        self._setup(self.data[..., None])

    def sample(self, position) -> Optional[float]:
        """Sample the scalar at one position, or None outside the domain."""
        value = self._sample_point(position)
        return None if value is None else float(value[0])

    def sample_many(self, positions) -> np.ndarray:
        """Sample the scalar at many positions, shape (N,); NaN outside the domain."""
        return self._sample_many(positions)[:, 0]


# ------------------------- Factory functions -------------------------

def _node_spacing(coords: np.ndarray, periodic: bool, name: str) -> float:
    if coords.ndim != 1 or coords.size < 1:
        raise ValueError(f"{name} must be a non-empty 1D array")
    if coords.size == 1:
        if not periodic:
            raise ValueError(f"{name} needs at least 2 nodes on a non-periodic axis")
        return 1.0
    steps = np.diff(coords)
    if np.any(steps <= 0):
        raise ValueError(f"{name} must be strictly increasing")
    if not np.allclose(steps, steps[0], rtol=1e-6, atol=0.0):
        raise ValueError(f"{name} must be uniformly spaced")
    return float(steps[0])


def create_structured_sampler_from_arrays(
    data: np.ndarray,
    x_coords: np.ndarray,
    y_coords: np.ndarray,
    z_coords: np.ndarray,
    periodic: Sequence[bool] = (False, False, False),
):
    """
    Create a grid sampler from node coordinate arrays.

    Parameters
    ----------
    data : np.ndarray
        Node values, shape (Nx, Ny, Nz, 3) for vectors or (Nx, Ny, Nz)
        for scalars
    x_coords, y_coords, z_coords : np.ndarray
        Uniformly spaced node coordinates per axis
    periodic : sequence of bool
        Per-axis periodicity

    Returns
    -------
    StructuredGridSampler or StructuredScalarSampler
    """
    data = np.asarray(data, dtype=np.float64)
    coords = [np.asarray(c, dtype=np.float64) for c in (x_coords, y_coords, z_coords)]
    periodic = tuple(bool(p) for p in periodic)

    for axis, (c, name) in enumerate(zip(coords, ("x_coords", "y_coords", "z_coords"))):
        if data.ndim < 3 or data.shape[axis] != c.size:
            raise ValueError(f"{name} length {c.size} doesn't match data shape {data.shape}")

    spacing = [_node_spacing(c, p, name) for c, p, name in zip(coords, periodic, ("x_coords", "y_coords", "z_coords"))]
    origin = [c[0] for c in coords]

    cls = StructuredGridSampler if data.ndim == 4 else StructuredScalarSampler
    return cls(data=data, origin=np.asarray(origin), spacing=np.asarray(spacing), periodic=periodic)


def create_sampler_from_function(
    fn: Callable[[np.ndarray], np.ndarray],
    bounds_min,
    bounds_max,
    shape: Tuple[int, int, int],
    periodic: Sequence[bool] = (False, False, False),
):
    """
    Evaluate `fn` on the nodes of a regular grid covering a box.

    `fn` receives node positions of shape (M, 3) and returns values of
    shape (M, 3) or (M,). On periodic axes the nodes stop one spacing
    short of `bounds_max`, so the box is exactly one period.
    """
    lo, hi = validate_bounds(bounds_min, bounds_max)
    periodic = tuple(bool(p) for p in periodic)
    shape = tuple(int(n) for n in shape)
    if len(shape) != 3:
        raise ValueError(f"shape must have 3 entries, got {shape}")

    spacing = np.empty(3)
    for axis in range(3):
        n = shape[axis]
        if n < 2 and not periodic[axis]:
            raise ValueError(f"Non-periodic axis {axis} needs at least 2 nodes")
        spacing[axis] = (hi[axis] - lo[axis]) / (n if periodic[axis] else n - 1)

    axes = [lo[a] + spacing[a] * np.arange(shape[a]) for a in range(3)]
    X, Y, Z = np.meshgrid(*axes, indexing="ij")
    nodes = np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=1)
    values = np.asarray(fn(nodes), dtype=np.float64)

    if values.ndim == 2 and values.shape[1] == 3:
        return StructuredGridSampler(
            data=values.reshape(shape + (3,)), origin=lo, spacing=spacing, periodic=periodic
        )
    if values.ndim == 1:
        return StructuredScalarSampler(
            data=values.reshape(shape), origin=lo, spacing=spacing, periodic=periodic
        )
    raise ValueError(f"fn must return shape (M, 3) or (M,), got {values.shape}")
