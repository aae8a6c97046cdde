"""
Fixed-size sliding-window statistics.

Used by the voice analyzer for volume consistency, pitch stability
and pace peak counting.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable
import numpy as np
from numpy.typing import NDArray


def rms(samples: NDArray[np.floating] | Iterable[float]) -> float:
    """Root mean square of a block of samples."""
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(data ** 2)))


def smooth(current: float, incoming: float, alpha: float) -> float:
    """Exponential smoothing."""
    return current * (1 - alpha) + incoming * alpha


def count_peaks(values: Iterable[float], threshold: float) -> int:
    """
    Count local maxima strictly above threshold.

    Endpoints count when they exceed their single neighbour.
    """
    data = list(values)
    n = len(data)
    peaks = 0
    for i, value in enumerate(data):
        if value <= threshold:
            continue
        left_ok = i == 0 or value > data[i - 1]
        right_ok = i == n - 1 or value > data[i + 1]
        if left_ok and right_ok:
            peaks += 1
    return peaks


class SlidingWindow:
    """
    Bounded history of scalar values.

    Oldest values are evicted once max_size is reached.
    """

    def __init__(self, max_size: int = 100) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._values: deque[float] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._values.maxlen or 0

    def push(self, value: float) -> None:
        self._values.append(float(value))

    @property
    def values(self) -> list[float]:
        return list(self._values)

    def tail(self, count: int) -> list[float]:
        """Most recent `count` values, oldest first."""
        if count <= 0:
            return []
        return list(self._values)[-count:]

    @property
    def is_full(self) -> bool:
        return len(self._values) == self.max_size

    def mean(self) -> float:
        if not self._values:
            return 0.0
        return float(np.mean(self._values))

    def variance(self) -> float:
        """Population variance."""
        if len(self._values) < 2:
            return 0.0
        return float(np.var(self._values))

    def stddev(self) -> float:
        return float(np.sqrt(self.variance()))

    def rms(self) -> float:
        return rms(self._values)

    def peaks(self, threshold: float, last: int | None = None) -> int:
        values = self.tail(last) if last is not None else self.values
        return count_peaks(values, threshold)

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)
