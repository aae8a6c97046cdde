"""
Voice analyzer.

Turns 100ms PCM windows into smoothed volume, pitch, clarity,
pace and overall quality scores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
import numpy as np
from numpy.typing import NDArray

from poise.analyzers.base import Analyzer
from poise.core.models import Dimension, MetricSnapshot, clamp
from poise.core.stream import AudioWindow
from poise.signal.pitch import PitchEstimator
from poise.signal.windowing import SlidingWindow, rms, smooth

logger = logging.getLogger(__name__)


@dataclass
class VoiceConfig:
    """Voice analyzer tuning."""
    smoothing_alpha: float = 0.3
    volume_calibration: float = 400.0
    volume_history: int = 100
    consistency_penalty: float = 2.0
    speech_threshold: float = 20.0
    calibration_ms: int = 1000
    floor_percentile: float = 75.0
    floor_alpha: float = 0.02
    floor_headroom: float = 10.0
    max_noise_floor: float = 60.0
    min_pitch_hz: float = 50.0
    max_pitch_hz: float = 500.0
    voicing_threshold: float = 0.3
    pitch_history: int = 50
    clarity_band_hz: float = 4000.0
    clarity_gain: float = 200.0
    pace_windows: int = 20
    expected_peaks: int = 5
    rhythm_penalty: float = 15.0
    score_noise: float = 0.0
    seed: int | None = 0


@dataclass
class VoiceAnalysis:
    """
    Continuously updated voice readings.

    Snapshot scores:
    - volume: loudness consistency
    - pitch: pitch stability
    - clarity: mid-band spectral balance
    - pace: speaking rhythm
    - quality: mean of the four above
    """
    volume: MetricSnapshot = field(default_factory=MetricSnapshot)
    pitch: MetricSnapshot = field(default_factory=MetricSnapshot)
    clarity: MetricSnapshot = field(default_factory=MetricSnapshot)
    pace: MetricSnapshot = field(default_factory=MetricSnapshot)
    quality: MetricSnapshot = field(default_factory=MetricSnapshot)
    volume_level: float = 0.0
    average_volume: float = 0.0
    pitch_hz: float = 0.0
    average_pitch_hz: float = 0.0
    speech_rate: float = 0.0
    is_speaking: bool = False
    noise_floor: float | None = None
    speech_threshold: float = 0.0
    windows_analyzed: int = 0

    @property
    def words_per_minute(self) -> float:
        """Rough estimate: one volume peak per syllable, ~1.5 syllables per word."""
        return self.speech_rate * 60 / 1.5

    def dimension_scores(self) -> dict[Dimension, MetricSnapshot]:
        """Scored dimensions that have received at least one update."""
        snapshots = {
            Dimension.VOLUME: self.volume,
            Dimension.PITCH: self.pitch,
            Dimension.CLARITY: self.clarity,
            Dimension.PACE: self.pace,
        }
        return {dim: snap for dim, snap in snapshots.items() if snap.has_data}

    def reset(self) -> None:
        for snapshot in (self.volume, self.pitch, self.clarity, self.pace, self.quality):
            snapshot.reset()
        self.volume_level = 0.0
        self.average_volume = 0.0
        self.pitch_hz = 0.0
        self.average_pitch_hz = 0.0
        self.speech_rate = 0.0
        self.is_speaking = False
        self.noise_floor = None
        self.speech_threshold = 0.0
        self.windows_analyzed = 0


class VoiceAnalyzer(Analyzer):
    """
    Streaming voice quality estimator.

    Per window:
    - Volume: RMS scaled to 0-100; consistency from the stddev of
      recent speaking levels
    - Pitch: autocorrelation F0; stability from the variance of
      recent voiced pitches relative to their mean
    - Clarity: share of spectral magnitude in the middle half of the
      speech band
    - Pace: volume-envelope peaks over the last ~2 seconds compared to
      an expected syllable count

    Silent windows still feed the volume envelope but leave the
    speech-quality snapshots untouched, so a quiet start does not
    count against the speaker.

    The speech gate adapts to the room. The first second of levels sets
    a noise floor (a high percentile, so brief sounds do not count),
    which then follows quiet windows through a slow moving average.
    A window is speech when it is louder than the floor plus headroom,
    and never below the fixed speech_threshold.
    """

    def __init__(self, config: VoiceConfig | None = None) -> None:
        self._config = config or VoiceConfig()
        super().__init__(
            smoothing_alpha=self._config.smoothing_alpha,
            score_noise=self._config.score_noise,
            seed=self._config.seed,
        )
        self._pitch_estimator = PitchEstimator(
            min_pitch_hz=self._config.min_pitch_hz,
            max_pitch_hz=self._config.max_pitch_hz,
            voicing_threshold=self._config.voicing_threshold,
        )
        self._envelope = SlidingWindow(self._config.volume_history)
        self._speech_levels = SlidingWindow(self._config.volume_history)
        self._pitches = SlidingWindow(self._config.pitch_history)
        self._calibration: list[float] = []
        self._calibrated_ms = 0
        self._analysis = VoiceAnalysis(speech_threshold=self._config.speech_threshold)

    @property
    def name(self) -> str:
        return "voice"

    @property
    def config(self) -> VoiceConfig:
        return self._config

    @property
    def analysis(self) -> VoiceAnalysis:
        return self._analysis

    def process_window(self, window: AudioWindow) -> VoiceAnalysis:
        """Analyze one window and return the updated readings."""
        samples = window.samples
        timestamp = window.timestamp_ms
        analysis = self._analysis
        analysis.windows_analyzed += 1

        level = self._volume_level(samples)
        self._envelope.push(level)
        is_speaking = level > self.speech_threshold
        analysis.is_speaking = is_speaking
        self._track_noise_floor(level, is_speaking, window.duration_ms)
        analysis.volume_level = smooth(analysis.volume_level, level, self._alpha)

        if is_speaking:
            self._speech_levels.push(level)
            self._analyze_volume(timestamp)
            self._analyze_pitch(samples, window.sample_rate, timestamp)
            self._analyze_clarity(samples, window.sample_rate, level, timestamp)
            self._analyze_pace(timestamp, window.duration_ms)
        else:
            analysis.pitch_hz = 0.0

        self._analyze_quality(timestamp)
        return analysis

    @property
    def speech_threshold(self) -> float:
        """Level a window must exceed to count as speech."""
        floor = self._analysis.noise_floor
        if floor is None:
            return self._config.speech_threshold
        return max(floor + self._config.floor_headroom, self._config.speech_threshold)

    def _track_noise_floor(self, level: float, is_speaking: bool, window_ms: int) -> None:
        analysis = self._analysis
        if analysis.noise_floor is None:
            if self._config.calibration_ms <= 0:
                return
            self._calibration.append(level)
            self._calibrated_ms += window_ms
            if self._calibrated_ms < self._config.calibration_ms:
                return
            floor = float(np.percentile(self._calibration, self._config.floor_percentile))
            self._calibration.clear()
            logger.info(f"Calibrated noise floor: {floor:.1f}")
        elif is_speaking:
            return
        else:
            floor = smooth(analysis.noise_floor, level, self._config.floor_alpha)

        analysis.noise_floor = min(floor, self._config.max_noise_floor)
        analysis.speech_threshold = self.speech_threshold

    def _volume_level(self, samples: NDArray[np.float32]) -> float:
        return clamp(rms(samples) * self._config.volume_calibration)

    def _analyze_volume(self, timestamp: int) -> None:
        stddev = self._speech_levels.stddev()
        consistency = max(0.0, 100.0 - stddev * self._config.consistency_penalty)
        confidence = min(1.0, len(self._speech_levels) / 10)
        self._update(self._analysis.volume, consistency, confidence, timestamp)
        self._analysis.average_volume = self._speech_levels.mean()

    def _analyze_pitch(self, samples: NDArray[np.float32], sample_rate: int, timestamp: int) -> None:
        estimate = self._pitch_estimator.estimate(samples, sample_rate)
        self._analysis.pitch_hz = estimate.pitch_hz
        if not estimate.voiced:
            return

        self._pitches.push(estimate.pitch_hz)
        self._analysis.average_pitch_hz = self._pitches.mean()
        if len(self._pitches) < 2:
            return

        mean = self._pitches.mean()
        stability = 100.0 - (self._pitches.variance() / mean) * 100 if mean > 0 else 0.0
        self._update(self._analysis.pitch, clamp(stability), estimate.correlation, timestamp)

    def _analyze_clarity(
        self,
        samples: NDArray[np.float32],
        sample_rate: int,
        level: float,
        timestamp: int,
    ) -> None:
        n = len(samples)
        if n < 16:
            return

        spectrum = np.abs(np.fft.rfft(samples * np.hanning(n)))
        freqs = np.fft.rfftfreq(n, d=1.0 / sample_rate)
        band = spectrum[1:][freqs[1:] <= self._config.clarity_band_hz]
        if band.size < 4:
            return

        total = float(np.sum(band))
        if total <= 0:
            return

        lo, hi = band.size // 4, (3 * band.size) // 4
        ratio = float(np.sum(band[lo:hi])) / total
        clarity = min(100.0, ratio * self._config.clarity_gain)
        confidence = min(1.0, level / 50.0)
        self._update(self._analysis.clarity, clarity, confidence, timestamp)

    def _analyze_pace(self, timestamp: int, window_ms: int) -> None:
        recent = self._envelope.tail(self._config.pace_windows)
        peaks = self._envelope.peaks(self.speech_threshold, last=self._config.pace_windows)

        rhythm = max(0.0, 100.0 - abs(peaks - self._config.expected_peaks) * self._config.rhythm_penalty)
        confidence = len(recent) / self._config.pace_windows

        duration_s = len(recent) * window_ms / 1000.0
        self._analysis.speech_rate = peaks / duration_s if duration_s > 0 else 0.0
        self._update(self._analysis.pace, rhythm, confidence, timestamp)

    def _analyze_quality(self, timestamp: int) -> None:
        components = [
            snap for snap in (
                self._analysis.volume,
                self._analysis.pitch,
                self._analysis.clarity,
                self._analysis.pace,
            )
            if snap.has_data
        ]
        if not components:
            return
        overall = sum(snap.score for snap in components) / len(components)
        confidence = sum(snap.confidence for snap in components) / len(components)
        self._analysis.quality.update(overall, confidence, timestamp, self._alpha)

    def reset(self) -> None:
        self._envelope.clear()
        self._speech_levels.clear()
        self._pitches.clear()
        self._calibration.clear()
        self._calibrated_ms = 0
        self._analysis.reset()
        self._analysis.speech_threshold = self._config.speech_threshold
