# fieldtrace/utils/logging.py
"""
Timing, memory and progress reporting for long tracing runs.

Everything here writes to stdout with print, the same channel used by
the `verbose` switches across the package.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, Tuple, Callable
import time
import gc
import sys
from contextlib import contextmanager

try:
    import psutil
    PSUTIL_AVAILABLE = True
except Exception:
    PSUTIL_AVAILABLE = False


def memory_info() -> Dict[str, float]:
    """
    Memory usage of the current process in MB.

    Returns
    -------
    dict
        'rss_mb' and 'available_mb' from psutil. Without psutil only
        'rss_mb' (0.0) and 'gc_objects' are reported.
    """
    if PSUTIL_AVAILABLE:
        try:
            rss = psutil.Process().memory_info().rss
            available = psutil.virtual_memory().available
            return {"rss_mb": rss / 2**20, "available_mb": available / 2**20}
        except Exception:
            pass
    return {"rss_mb": 0.0, "gc_objects": float(len(gc.get_objects()))}


class Timer:
    """
    Wall-clock timer, usable as a context manager.

    Parameters
    ----------
    name : str
        Label printed in the report
    track_memory : bool
        Also record resident memory at start and stop
    verbose : bool
        Print a report when leaving the context
    """

    def __init__(self, name: str = "Timer", track_memory: bool = False, verbose: bool = True):
        self.name = name
        self.track_memory = track_memory
        self.verbose = verbose
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self._memory_before: Optional[Dict[str, float]] = None
        self._memory_after: Optional[Dict[str, float]] = None

    def start(self) -> "Timer":
        self.start_time = time.perf_counter()
        self.end_time = None
        self._memory_before = memory_info() if self.track_memory else None
        return self

    def stop(self) -> float:
        """Stop timing; returns elapsed seconds."""
        if self.start_time is None:
            raise RuntimeError("Timer not started")
        self.end_time = time.perf_counter()
        self._memory_after = memory_info() if self.track_memory else None
        return self.elapsed

    @property
    def elapsed(self) -> float:
        """Seconds since start, or between start and stop."""
        if self.start_time is None:
            return 0.0
        end = time.perf_counter() if self.end_time is None else self.end_time
        return end - self.start_time

    @property
    def memory_delta(self) -> Optional[Dict[str, float]]:
        """Change of every memory figure between start and stop."""
        if self._memory_before is None or self._memory_after is None:
            return None
        return {
            key: self._memory_after[key] - value
            for key, value in self._memory_before.items()
            if key in self._memory_after
        }

    def report(self) -> None:
        line = f"{self.name}: {self.elapsed:.3f}s"
        delta = self.memory_delta
        if delta is not None:
            line += f" (rss {delta['rss_mb']:+.1f} MB)"
        print(line)

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
        if self.verbose:
            self.report()


@contextmanager
def timeit(name: str = "Operation", track_memory: bool = False, verbose: bool = True):
    """
    Time a block of code.

    >>> with timeit("Tracing", verbose=False) as t:
    ...     pass
    """
    with Timer(name, track_memory=track_memory, verbose=verbose) as timer:
        yield timer


class LineProgress:
    """
    Single-line progress reporter for runs without tqdm.

    The line is rewritten in place roughly every `total / n_updates`
    items and terminated with a newline once the run completes.
    """

    def __init__(self, total: int, desc: str = "Tracing", n_updates: int = 20, stream=None):
        self.total = max(0, int(total))
        self.desc = desc
        self.every = max(1, self.total // max(1, n_updates))
        self.stream = stream if stream is not None else sys.stdout
        self.done = 0
        self._t0 = time.perf_counter()

    def update(self, n: int = 1, **fields: Any) -> None:
        self.done += n
        if self.done % self.every and self.done < self.total:
            return

        elapsed = time.perf_counter() - self._t0
        pct = 100.0 * self.done / max(1, self.total)
        parts = [f"{self.desc}: {self.done}/{self.total} ({pct:.1f}%)"]
        if elapsed > 0:
            parts.append(f"{self.done / elapsed:.1f} lines/s")
        if 0 < self.done < self.total and elapsed > 1:
            parts.append(f"ETA {elapsed * (self.total - self.done) / self.done:.1f}s")
        parts.extend(f"{key}={value}" for key, value in fields.items())

        self.stream.write("\r" + ", ".join(parts))
        if self.done >= self.total:
            self.stream.write("\n")
        self.stream.flush()

    def close(self) -> None:
        pass


def make_progress(total: int, desc: str = "Tracing", style: str = "auto") -> Tuple[Callable[[int], None], Callable[[], None]]:
    """
    Create a progress reporter for `total` work items.

    Returns a tuple (update_fn(n=1), close_fn()). 'auto' and 'tqdm' use
    tqdm when it is installed, 'simple' always uses `LineProgress`,
    'none' reports nothing.
    """
    style = (style or "auto").lower()

    if style == "none":
        return (lambda n=1: None), (lambda: None)

    if style in ("auto", "tqdm"):
        try:
            from tqdm import tqdm  # type: ignore
        except ImportError:
            tqdm = None
        if tqdm is not None:
            bar = tqdm(total=total, desc=desc, leave=True)
            return bar.update, bar.close

    progress = LineProgress(total, desc)
    return progress.update, progress.close
