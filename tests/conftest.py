"""
Shared fixtures for poise tests.
"""

import pytest
import numpy as np

from poise.core.models import Dimension
from poise.core.stream import AudioConfig, AudioWindow
from poise.sources.synthetic import frontal_face, upright_pose


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def no_sleep():
    """Stand-in for asyncio.sleep that returns immediately."""
    return _no_sleep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audio_config():
    return AudioConfig()


@pytest.fixture
def sine_window(audio_config):
    """One 100ms window of a 220Hz tone."""
    t = np.arange(audio_config.samples_per_window) / audio_config.sample_rate
    samples = (0.5 * np.sin(2 * np.pi * 220 * t)).astype(np.float32)
    return AudioWindow(samples=samples, sample_rate=audio_config.sample_rate)


@pytest.fixture
def pose():
    return upright_pose()


@pytest.fixture
def face():
    return frontal_face()


@pytest.fixture
def scenario_scores():
    """Voice {volume 70, pitch 90, clarity 85} plus vision {posture 85, gestures 60}."""
    return {
        Dimension.VOLUME: 70.0,
        Dimension.PITCH: 90.0,
        Dimension.CLARITY: 85.0,
        Dimension.POSTURE: 85.0,
        Dimension.GESTURES: 60.0,
    }
