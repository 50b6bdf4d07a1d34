"""Lightweight profiling and wall-clock budgets.

Provides:
    - timer(): Context manager for wall-clock timing with optional sink
    - TimerAccumulator: per-stage totals for a batch of requests (generate_batch)
    - Deadline: per-request time budget, checked between and inside stages

Used to measure and bound:
    - Instruction interpretation
    - Curve flattening + rasterization
    - Distance transform (the hot path)
    - PNG encoding

No heavy dependencies (no line_profiler, no cProfile overhead per request).
"""

import time
from contextlib import contextmanager
from typing import Callable, Dict, Optional

from ..errors import ResourceLimitExceeded


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds); if None, prints to stdout

    Examples
    --------
    >>> timings = {}
    >>> with timer("distance_field", sink=timings.__setitem__):
    ...     field = build_distance_field(grid, 32)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            print(f"{name}: {elapsed:.3f} s")


class TimerAccumulator:
    """Accumulate timing measurements per stage for averaging.

    Examples
    --------
    >>> acc = TimerAccumulator()
    >>> for result in results:
    ...     for stage, elapsed in result.timings.items():
    ...         acc.add(stage, elapsed)
    >>> acc.summary()["rasterize"]["mean_s"]
    """

    def __init__(self):
        self.totals: Dict[str, float] = {}
        self.counts: Dict[str, int] = {}

    def add(self, name: str, elapsed: float) -> None:
        self.totals[name] = self.totals.get(name, 0.0) + elapsed
        self.counts[name] = self.counts.get(name, 0) + 1

    def mean(self, name: str) -> float:
        count = self.counts.get(name, 0)
        return self.totals[name] / count if count else 0.0

    def summary(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {'total_s': total, 'count': self.counts[name], 'mean_s': self.mean(name)}
            for name, total in self.totals.items()
        }


class Deadline:
    """Wall-clock budget for one request.

    Parameters
    ----------
    budget_s : float or None
        Seconds allowed from construction; None disables the check.
    clock : Callable[[], float]
        Monotonic clock, default time.perf_counter (injectable for tests)

    Notes
    -----
    Checks are cooperative: long loops call check() periodically, so an
    overrun aborts at the next check rather than mid-operation.
    """

    def __init__(self, budget_s: Optional[float], clock: Callable[[], float] = time.perf_counter):
        self.budget_s = budget_s
        self._clock = clock
        self._start = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    @property
    def remaining(self) -> float:
        if self.budget_s is None:
            return float('inf')
        return self.budget_s - self.elapsed

    def expired(self) -> bool:
        return self.remaining < 0.0

    def check(self, stage: str = "") -> None:
        """Raise ResourceLimitExceeded("time", ...) if the budget is spent."""
        if self.budget_s is not None:
            elapsed = self.elapsed
            if elapsed > self.budget_s:
                raise ResourceLimitExceeded("time", self.budget_s, round(elapsed, 4), stage=stage)

    @classmethod
    def unlimited(cls) -> 'Deadline':
        return cls(None)
