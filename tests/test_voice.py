"""Tests for the voice analyzer."""

import pytest

from poise.analyzers.voice import VoiceAnalyzer, VoiceConfig
from poise.core.models import Dimension
from poise.sources.synthetic import NoiseSource, SilenceSource, SineSource


def run(analyzer, source):
    analysis = None
    for window in source.windows():
        analysis = analyzer.process_window(window)
    return analysis


class TestVoiceAnalyzer:
    def test_name(self):
        assert VoiceAnalyzer().name == "voice"

    def test_sustained_tone(self):
        analyzer = VoiceAnalyzer()
        analysis = run(analyzer, SineSource(frequency_hz=220, amplitude=0.5, duration_ms=2000))

        assert analysis.windows_analyzed == 20
        assert analysis.is_speaking
        assert analysis.pitch_hz == pytest.approx(220, abs=5)
        assert analysis.average_pitch_hz == pytest.approx(220, abs=5)
        assert analysis.volume_level > 95

    def test_steady_tone_is_consistent_and_stable(self):
        analysis = run(VoiceAnalyzer(), SineSource(frequency_hz=220, amplitude=0.5, duration_ms=2000))
        assert analysis.volume.score > 95
        assert analysis.pitch.score > 95

    def test_flat_envelope_has_poor_rhythm(self):
        analysis = run(VoiceAnalyzer(), SineSource(frequency_hz=220, amplitude=0.5, duration_ms=2000))
        assert analysis.pace.has_data
        assert analysis.pace.score < 50

    def test_broadband_noise_is_clearer_than_low_tone(self):
        tone = run(VoiceAnalyzer(), SineSource(frequency_hz=220, amplitude=0.5, duration_ms=2000))
        noise = run(VoiceAnalyzer(), NoiseSource(amplitude=0.1, duration_ms=2000, seed=3))
        assert noise.clarity.score > 80
        assert tone.clarity.score < 30

    def test_quality_is_mean_of_components(self):
        analyzer = VoiceAnalyzer(VoiceConfig(smoothing_alpha=1.0))
        analysis = run(analyzer, SineSource(frequency_hz=220, amplitude=0.5, duration_ms=500))
        components = [analysis.volume, analysis.pitch, analysis.clarity, analysis.pace]
        expected = sum(c.score for c in components) / 4
        assert analysis.quality.score == pytest.approx(expected)

    def test_silence_leaves_scores_without_data(self):
        analysis = run(VoiceAnalyzer(), SilenceSource(duration_ms=1000))
        assert analysis.windows_analyzed == 10
        assert not analysis.is_speaking
        assert analysis.volume_level == 0.0
        assert analysis.dimension_scores() == {}
        assert not analysis.quality.has_data

    def test_dimension_scores(self):
        analysis = run(VoiceAnalyzer(), SineSource(duration_ms=500))
        assert set(analysis.dimension_scores()) == {
            Dimension.VOLUME, Dimension.PITCH, Dimension.CLARITY, Dimension.PACE,
        }

    def test_returns_same_readings_object(self):
        analyzer = VoiceAnalyzer()
        windows = SineSource(duration_ms=200).windows()
        first = analyzer.process_window(windows[0])
        second = analyzer.process_window(windows[1])
        assert first is second is analyzer.analysis


class TestVoiceLifecycle:
    def test_reset(self):
        analyzer = VoiceAnalyzer()
        run(analyzer, SineSource(duration_ms=500))
        analyzer.reset()
        assert analyzer.analysis.windows_analyzed == 0
        assert analyzer.analysis.dimension_scores() == {}

    def test_dispose(self):
        analyzer = VoiceAnalyzer()
        run(analyzer, SineSource(duration_ms=300))
        analyzer.dispose()
        assert analyzer.disposed
        assert analyzer.analysis.windows_analyzed == 0

    def test_invalid_alpha(self):
        with pytest.raises(ValueError):
            VoiceAnalyzer(VoiceConfig(smoothing_alpha=0.0))


class TestScoreNoise:
    def test_default_is_deterministic(self):
        a = run(VoiceAnalyzer(), NoiseSource(duration_ms=500, seed=1))
        b = run(VoiceAnalyzer(), NoiseSource(duration_ms=500, seed=1))
        assert a.clarity.score == b.clarity.score
        assert a.volume.score == b.volume.score

    def test_seeded_noise_is_reproducible(self):
        config = VoiceConfig(score_noise=5.0, seed=42)
        a = run(VoiceAnalyzer(config), SineSource(duration_ms=500))
        b = run(VoiceAnalyzer(VoiceConfig(score_noise=5.0, seed=42)), SineSource(duration_ms=500))
        assert a.pitch.score == b.pitch.score
        assert a.clarity.score == b.clarity.score

    def test_noise_changes_scores(self):
        plain = run(VoiceAnalyzer(), SineSource(duration_ms=500))
        noisy = run(VoiceAnalyzer(VoiceConfig(score_noise=10.0, seed=5)), SineSource(duration_ms=500))
        assert plain.pace.score != noisy.pace.score


class TestPace:
    def test_words_per_minute_follows_peak_rate(self):
        analysis = run(VoiceAnalyzer(), SineSource(duration_ms=500))
        analysis.speech_rate = 3.0
        assert analysis.words_per_minute == pytest.approx(120.0)


def level_window(level):
    """One 100ms tone window whose volume level is exactly `level`."""
    amplitude = level * 2 ** 0.5 / 400.0
    return SineSource(amplitude=amplitude, duration_ms=100).windows()[0]


class TestNoiseFloor:
    def test_steady_noise_becomes_the_floor(self):
        analyzer = VoiceAnalyzer()
        analysis = run(analyzer, NoiseSource(amplitude=0.1, duration_ms=2000, seed=3))

        assert analysis.noise_floor == pytest.approx(40.0, abs=2.0)
        assert analysis.speech_threshold == pytest.approx(analysis.noise_floor + 10.0)
        assert analyzer.speech_threshold == analysis.speech_threshold
        assert not analysis.is_speaking

    def test_uses_fixed_threshold_while_calibrating(self):
        analysis = run(VoiceAnalyzer(), NoiseSource(amplitude=0.1, duration_ms=500, seed=3))
        assert analysis.noise_floor is None
        assert analysis.speech_threshold == 20.0
        assert analysis.is_speaking

    def test_voice_over_noise_is_speech(self):
        analyzer = VoiceAnalyzer()
        run(analyzer, NoiseSource(amplitude=0.1, duration_ms=1000, seed=3))
        assert not run(analyzer, NoiseSource(amplitude=0.1, duration_ms=300, seed=4)).is_speaking

        analysis = run(analyzer, SineSource(amplitude=0.5, duration_ms=300))
        assert analysis.is_speaking
        assert analysis.noise_floor == pytest.approx(40.0, abs=2.0)

    def test_floor_follows_quieter_room(self):
        analyzer = VoiceAnalyzer()
        run(analyzer, NoiseSource(amplitude=0.1, duration_ms=1000, seed=3))
        start = analyzer.analysis.noise_floor

        analysis = run(analyzer, NoiseSource(amplitude=0.05, duration_ms=2000, seed=5))
        assert 20.0 < analysis.noise_floor < start - 4.0

    def test_speech_does_not_raise_the_floor(self):
        analyzer = VoiceAnalyzer()
        run(analyzer, NoiseSource(amplitude=0.1, duration_ms=1000, seed=3))
        start = analyzer.analysis.noise_floor

        run(analyzer, SineSource(amplitude=0.5, duration_ms=1000))
        assert analyzer.analysis.noise_floor == start

    def test_floor_is_capped(self):
        analysis = run(VoiceAnalyzer(), SineSource(amplitude=0.5, duration_ms=2000))
        assert analysis.noise_floor == 60.0
        assert analysis.speech_threshold == 70.0
        assert analysis.is_speaking

    def test_calibration_can_be_disabled(self):
        config = VoiceConfig(calibration_ms=0)
        analysis = run(VoiceAnalyzer(config), NoiseSource(amplitude=0.1, duration_ms=2000, seed=3))
        assert analysis.noise_floor is None
        assert analysis.is_speaking

    def test_pace_ignores_bumps_under_the_floor(self):
        pattern = [level_window(level) for level in (100, 30, 45, 30)] * 5

        fixed = VoiceAnalyzer(VoiceConfig(calibration_ms=0))
        calibrated = VoiceAnalyzer()
        run(calibrated, NoiseSource(amplitude=0.1, duration_ms=1000, seed=3))
        for window in pattern:
            fixed.process_window(window)
            calibrated.process_window(window)

        assert calibrated.analysis.speech_rate < fixed.analysis.speech_rate

    def test_reset_forgets_the_floor(self):
        analyzer = VoiceAnalyzer()
        run(analyzer, NoiseSource(amplitude=0.1, duration_ms=1000, seed=3))
        analyzer.reset()
        assert analyzer.analysis.noise_floor is None
        assert analyzer.speech_threshold == 20.0
