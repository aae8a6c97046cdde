"""
Base analyzer.

Analyzers turn raw media into smoothed MetricSnapshots.
They do not decide when feedback happens; they only measure.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod

from poise.core.models import MetricSnapshot, clamp


class Analyzer(ABC):
    """
    Abstract base for streaming analyzers.

    One instance is owned by one session: constructed on session start,
    disposed on session end.

    Implementation requirements:
    - Must be fast (well under one tick interval)
    - Must not block
    - Smooths every output with the same alpha
    - Must not touch conversation state
    """

    def __init__(self, smoothing_alpha: float = 0.3, score_noise: float = 0.0, seed: int | None = 0) -> None:
        if not (0.0 < smoothing_alpha <= 1.0):
            raise ValueError("smoothing_alpha must be in (0, 1]")
        self._alpha = smoothing_alpha
        self._score_noise = score_noise
        self._rng = random.Random(seed)
        self._disposed = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique analyzer name."""
        ...

    @property
    def smoothing_alpha(self) -> float:
        return self._alpha

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _update(self, snapshot: MetricSnapshot, score: float, confidence: float, timestamp_ms: int) -> None:
        """Smooth one measurement into a snapshot, applying configured noise."""
        snapshot.update(self._jitter(score), confidence, timestamp_ms, self._alpha)

    def _jitter(self, score: float) -> float:
        if self._score_noise <= 0:
            return score
        return clamp(score + self._rng.uniform(-self._score_noise, self._score_noise))

    def reset(self) -> None:
        """Reset analyzer state (if any)."""
        pass

    def dispose(self) -> None:
        """Release per-session state. The analyzer must not be reused."""
        self.reset()
        self._disposed = True
