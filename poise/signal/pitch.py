"""
Autocorrelation pitch estimation.

Simple and fast enough to run on every 100ms window.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class PitchEstimate:
    """
    Result of one estimation.

    - pitch_hz: fundamental frequency, 0.0 when unvoiced
    - lag: best lag in samples (0 when unvoiced)
    - correlation: normalized peak correlation (0.0-1.0)
    """
    pitch_hz: float = 0.0
    lag: int = 0
    correlation: float = 0.0

    @property
    def voiced(self) -> bool:
        return self.pitch_hz > 0


class PitchEstimator:
    """
    Fundamental frequency via normalized autocorrelation.

    For every lag L in [sample_rate/max_hz, sample_rate/min_hz]:
        r(L) = sum(x[i] * x[i+L]) / (N - L)

    The chosen lag is the first local peak whose correlation is within
    `peak_tolerance` of the global maximum, so integer multiples of the
    true period never win over the period itself. Exact ties favor the
    lowest lag. Parabolic interpolation refines the peak.

    Parameters:
        min_pitch_hz: Lowest detectable pitch (default 50 Hz)
        max_pitch_hz: Highest detectable pitch (default 500 Hz)
        voicing_threshold: Minimum r(L)/r(0) to report a pitch
        silence_rms: Windows quieter than this are unvoiced
        peak_tolerance: Fraction of the global maximum a peak must reach
    """

    def __init__(
        self,
        min_pitch_hz: float = 50.0,
        max_pitch_hz: float = 500.0,
        voicing_threshold: float = 0.3,
        silence_rms: float = 0.01,
        peak_tolerance: float = 0.9,
    ) -> None:
        if min_pitch_hz <= 0 or max_pitch_hz <= min_pitch_hz:
            raise ValueError("require 0 < min_pitch_hz < max_pitch_hz")
        self._min_pitch_hz = min_pitch_hz
        self._max_pitch_hz = max_pitch_hz
        self._voicing_threshold = voicing_threshold
        self._silence_rms = silence_rms
        self._peak_tolerance = peak_tolerance

    def lag_range(self, sample_rate: int, length: int) -> tuple[int, int]:
        """Inclusive lag search range for a window of `length` samples."""
        min_lag = max(1, int(sample_rate / self._max_pitch_hz))
        max_lag = min(int(sample_rate / self._min_pitch_hz), length - 2)
        return min_lag, max_lag

    def estimate(self, samples: NDArray[np.floating], sample_rate: int) -> PitchEstimate:
        data = np.asarray(samples, dtype=np.float64)
        n = data.size
        if n < 100 or sample_rate <= 0:
            return PitchEstimate()

        data = data - np.mean(data)
        if np.sqrt(np.mean(data ** 2)) < self._silence_rms:
            return PitchEstimate()

        min_lag, max_lag = self.lag_range(sample_rate, n)
        if min_lag >= max_lag:
            return PitchEstimate()

        full = np.correlate(data, data, mode='full')[n - 1:]
        counts = n - np.arange(n)
        autocorr = full / counts

        energy = autocorr[0]
        if energy <= 0:
            return PitchEstimate()

        search = autocorr[min_lag:max_lag + 1]
        best = float(np.max(search))
        if best / energy < self._voicing_threshold:
            return PitchEstimate(correlation=max(0.0, best / energy))

        lag = self._first_strong_peak(autocorr, min_lag, max_lag, best)
        refined = self._interpolate(autocorr, lag, min_lag, max_lag)

        return PitchEstimate(
            pitch_hz=float(sample_rate / refined),
            lag=lag,
            correlation=float(min(1.0, autocorr[lag] / energy)),
        )

    def _first_strong_peak(
        self,
        autocorr: NDArray[np.float64],
        min_lag: int,
        max_lag: int,
        best: float,
    ) -> int:
        """
        Lowest lag that is a local peak within tolerance of the maximum.

        This is deliberately not the plain argmax. A periodic signal
        correlates almost as well at two or three periods as at one, so
        the global maximum can land on a multiple of the true period and
        report an octave too low. Taking the first near-maximal peak
        keeps the fundamental.
        """
        floor = best * self._peak_tolerance
        for lag in range(min_lag, max_lag + 1):
            value = autocorr[lag]
            if value < floor:
                continue
            left = autocorr[lag - 1]
            right = autocorr[lag + 1]
            if value >= left and value >= right:
                return lag
        # np.argmax returns the first occurrence on ties.
        return int(np.argmax(autocorr[min_lag:max_lag + 1])) + min_lag

    def _interpolate(
        self,
        autocorr: NDArray[np.float64],
        lag: int,
        min_lag: int,
        max_lag: int,
    ) -> float:
        """Parabolic interpolation around the chosen lag."""
        if lag <= min_lag or lag >= max_lag:
            return float(lag)
        left, center, right = autocorr[lag - 1], autocorr[lag], autocorr[lag + 1]
        denom = left - 2 * center + right
        if denom == 0:
            return float(lag)
        offset = 0.5 * (left - right) / denom
        if abs(offset) > 1:
            return float(lag)
        return lag + float(offset)
