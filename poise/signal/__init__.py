"""Signal helpers: windowed statistics and pitch estimation."""

from poise.signal.windowing import SlidingWindow, count_peaks, rms, smooth
from poise.signal.pitch import PitchEstimate, PitchEstimator

__all__ = [
    "SlidingWindow",
    "count_peaks",
    "rms",
    "smooth",
    "PitchEstimate",
    "PitchEstimator",
]
