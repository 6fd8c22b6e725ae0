# fieldtrace/tracking/field_lines.py
"""
Field line accumulators.

`FieldLine` collects the positions emitted while tracing, together with
named scalar and vector values sampled along the line afterwards.
`FieldLineSet` traces one field line per seed point, optionally on a pool
of worker threads sharing the read-only sampler.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterator, List, Optional
import warnings
import numpy as np

from ..fields.base import FieldSampler, ScalarSampler, as_positions
from ..stepping.base import (
    Stepper,
    StepperFactory,
    StepperInstruction,
    SteppingSense,
    StoppingCause,
)
from ..utils.config import get_config
from ..utils.logging import Timer, make_progress
from .tracer import TracerResult, trace_field_line


class FieldLine:
    """
    Trajectory of one traced field line.

    Parameters
    ----------
    max_points : int, optional
        Stop tracing once this many points have been collected. Useful for
        closed field lines, which never reach a stopping cause on their own.

    Notes
    -----
    Positions are appended through `on_point` while tracing. After
    `finalize` the positions are frozen; named values can still be added.
    """

    def __init__(self, max_points: Optional[int] = None):
        if max_points is not None and int(max_points) < 1:
            raise ValueError(f"max_points must be >= 1, got {max_points}")
        self.max_points = None if max_points is None else int(max_points)
        self.scalar_values: Dict[str, np.ndarray] = {}
        self.vector_values: Dict[str, np.ndarray] = {}
        self.stopping_cause: Optional[StoppingCause] = None
        self._points: List[np.ndarray] = []
        self._positions: Optional[np.ndarray] = None

    # ---------- Tracing ----------

    def on_point(self, position: np.ndarray) -> StepperInstruction:
        """Append a position; ask to stop once `max_points` is reached."""
        if self.is_finalized:
            raise RuntimeError("Cannot append to a finalized field line")
        self._points.append(np.array(position, dtype=np.float64))
        if self.max_points is not None and len(self._points) >= self.max_points:
            return StepperInstruction.terminate
        return StepperInstruction.continue_

    def trace(
        self,
        sampler: FieldSampler,
        stepper: Stepper,
        start_position,
        sense: SteppingSense = SteppingSense.same,
        dense_output: bool = True,
    ) -> TracerResult:
        """Trace this line from `start_position`, then finalize it."""
        result = trace_field_line(sampler, stepper, start_position, self, sense, dense_output)
        self.stopping_cause = result.stopping_cause
        self.finalize()
        return result

    def finalize(self) -> None:
        """Freeze the positions."""
        if self._positions is None:
            if self._points:
                self._positions = np.stack(self._points)
            else:
                self._positions = np.zeros((0, 3))
            self._positions.setflags(write=False)
            self._points = []

    @property
    def is_finalized(self) -> bool:
        return self._positions is not None

    # ---------- Data ----------

    @property
    def positions(self) -> np.ndarray:
        """Positions, shape (N, 3)."""
        if self._positions is not None:
            return self._positions
        if not self._points:
            return np.zeros((0, 3))
        return np.stack(self._points)

    @property
    def number_of_points(self) -> int:
        if self._positions is not None:
            return self._positions.shape[0]
        return len(self._points)

    def __len__(self) -> int:
        return self.number_of_points

    @property
    def length(self) -> float:
        """
        Sum of the distances between consecutive points.

        Jumps across periodic boundaries are included as they appear.
        """
        pos = self.positions
        if pos.shape[0] < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(pos, axis=0), axis=1)))

    def add_scalar_values(self, name: str, values) -> None:
        """Store one scalar per point under `name`."""
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.number_of_points,):
            raise ValueError(
                f"Expected {self.number_of_points} scalar values for '{name}', got shape {values.shape}"
            )
        self.scalar_values[name] = values

    def add_vector_values(self, name: str, values) -> None:
        """Store one vector per point under `name`."""
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.number_of_points, 3):
            raise ValueError(
                f"Expected ({self.number_of_points}, 3) vector values for '{name}', got shape {values.shape}"
            )
        self.vector_values[name] = values

    def extract_scalars(self, name: str, sampler: ScalarSampler) -> np.ndarray:
        """Sample a scalar field at every point and store it under `name`."""
        values = _sample_along(sampler, self.positions, n_components=1)
        self.add_scalar_values(name, values)
        return self.scalar_values[name]

    def extract_vectors(self, name: str, sampler: FieldSampler) -> np.ndarray:
        """Sample a vector field at every point and store it under `name`."""
        values = _sample_along(sampler, self.positions, n_components=3)
        self.add_vector_values(name, values)
        return self.vector_values[name]

    def to_dict(self) -> Dict[str, object]:
        """Plain dictionary view of the line's data."""
        return {
            "positions": self.positions,
            "scalar_values": dict(self.scalar_values),
            "vector_values": dict(self.vector_values),
            "stopping_cause": None if self.stopping_cause is None else self.stopping_cause.value,
        }

    def __repr__(self) -> str:
        cause = None if self.stopping_cause is None else self.stopping_cause.value
        return f"FieldLine(n_points={self.number_of_points}, stopping_cause={cause})"


def _sample_along(sampler, positions: np.ndarray, n_components: int) -> np.ndarray:
    """Sample at positions; points outside the sampler's domain give NaN."""
    n = positions.shape[0]
    if n == 0:
        return np.zeros((0,)) if n_components == 1 else np.zeros((0, 3))

    if hasattr(sampler, "sample_many"):
        values = np.asarray(sampler.sample_many(positions), dtype=np.float64)
    else:
        shape = (n,) if n_components == 1 else (n, n_components)
        values = np.full(shape, np.nan)
        for i, p in enumerate(positions):
            v = sampler.sample(p)
            if v is not None:
                values[i] = v

    if n_components == 1:
        values = values.reshape(n)
        missing = int(np.count_nonzero(np.isnan(values)))
    else:
        missing = int(np.count_nonzero(np.any(np.isnan(values), axis=1)))
    if missing:
        warnings.warn(f"{missing} of {n} field line points are outside the sampled field; stored as NaN")
    return values


class FieldLineSet:
    """
    Collection of traced field lines.

    Use `FieldLineSet.trace` to trace one line per seed point.
    """

    def __init__(self, field_lines: Optional[List[FieldLine]] = None):
        self.field_lines: List[FieldLine] = list(field_lines) if field_lines is not None else []

    def __len__(self) -> int:
        return len(self.field_lines)

    def __iter__(self) -> Iterator[FieldLine]:
        return iter(self.field_lines)

    def __getitem__(self, index: int) -> FieldLine:
        return self.field_lines[index]

    @property
    def total_points(self) -> int:
        return sum(line.number_of_points for line in self.field_lines)

    @classmethod
    def trace(
        cls,
        sampler: FieldSampler,
        stepper_factory: StepperFactory,
        seeds,
        sense: SteppingSense = SteppingSense.same,
        field_line_initializer: Callable[[], FieldLine] = FieldLine,
        n_workers: Optional[int] = None,
        verbose: Optional[bool] = None,
        dense_output: bool = True,
        progress_style: Optional[str] = None,
    ) -> "FieldLineSet":
        """
        Trace one field line from every seed point.

        Parameters
        ----------
        sampler : FieldSampler
            Vector field shared by all traces
        stepper_factory : StepperFactory
            Produces a fresh stepper for every seed
        seeds : array-like, shape (N, 3)
            Start positions
        sense : SteppingSense
            Trace along or against the field
        field_line_initializer : callable
            Creates an empty field line for every seed
        n_workers : int, optional
            Worker threads; defaults to the package configuration
        verbose : bool, optional
            Print timing and a summary; defaults to the package configuration
        dense_output : bool
            Emit regularly spaced positions
        progress_style : str, optional
            'auto' | 'tqdm' | 'simple' | 'none'; defaults to the package
            configuration

        Returns
        -------
        FieldLineSet
            Lines in seed order. Seeds whose placement failed are left out,
            so the set can be empty.
        """
        config = get_config()
        seeds = as_positions(seeds, "seeds")
        workers = config.resolved_workers(n_workers)
        verbose = config.verbose if verbose is None else verbose
        style = progress_style or (config.progress_style if config.show_progress else "none")

        n_seeds = seeds.shape[0]
        if n_seeds == 0:
            return cls()

        def trace_one(start_position: np.ndarray) -> Optional[FieldLine]:
            field_line = field_line_initializer()
            result = field_line.trace(sampler, stepper_factory.produce(), start_position, sense, dense_output)
            return None if result.is_void else field_line

        results: List[Optional[FieldLine]] = [None] * n_seeds
        update, close = make_progress(n_seeds, desc="Tracing field lines", style=style)

        with Timer("Field line tracing", verbose=verbose):
            try:
                if workers <= 1:
                    for i, start_position in enumerate(seeds):
                        results[i] = trace_one(start_position)
                        update(1)
                else:
                    with ThreadPoolExecutor(max_workers=workers) as pool:
                        futures = {pool.submit(trace_one, seeds[i]): i for i in range(n_seeds)}
                        for future in as_completed(futures):
                            results[futures[future]] = future.result()
                            update(1)
            finally:
                close()

        line_set = cls([line for line in results if line is not None])

        if verbose:
            print(f"Traced {len(line_set)} of {n_seeds} field lines "
                  f"({line_set.total_points} points, {workers} worker{'s' if workers > 1 else ''})")
            for cause, count in line_set.stopping_cause_counts().items():
                print(f"  {cause}: {count}")

        return line_set

    def stopping_cause_counts(self) -> Dict[str, int]:
        """Number of lines per stopping cause."""
        counts: Dict[str, int] = {}
        for line in self.field_lines:
            key = "none" if line.stopping_cause is None else line.stopping_cause.value
            counts[key] = counts.get(key, 0) + 1
        return counts

    def extract_scalars(self, name: str, sampler: ScalarSampler) -> None:
        """Sample a scalar field along every line."""
        for line in self.field_lines:
            line.extract_scalars(name, sampler)

    def extract_vectors(self, name: str, sampler: FieldSampler) -> None:
        """Sample a vector field along every line."""
        for line in self.field_lines:
            line.extract_vectors(name, sampler)

    def __repr__(self) -> str:
        return f"FieldLineSet(n_lines={len(self)}, total_points={self.total_points})"
