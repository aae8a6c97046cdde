"""Synthetic media sources for testing and demos."""

from __future__ import annotations

from typing import Sequence
import numpy as np

from poise.core.errors import DeviceUnavailableError
from poise.core.models import KeypointSet
from poise.core.stream import AudioConfig, AudioWindow, VideoFrame


class ArraySource:
    """Audio capture over a numpy array, one window per call."""

    def __init__(self, data: np.ndarray, config: AudioConfig | None = None) -> None:
        self._config = config or AudioConfig()
        self._data = np.asarray(data, dtype=np.float32)
        peak = float(np.max(np.abs(self._data))) if self._data.size else 0.0
        if peak > 1.0:
            self._data = self._data / peak
        self._position = 0
        self._window_id = 0
        self._opened = False
        self._closed = False

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def open(self) -> None:
        self._opened = True
        self._closed = False

    def capture_audio_window(self) -> AudioWindow | None:
        if not self.is_open:
            raise DeviceUnavailableError("audio source is not open")

        size = self._config.samples_per_window
        if self._position + size > len(self._data):
            return None

        samples = self._data[self._position:self._position + size]
        window = AudioWindow(
            samples=samples,
            sample_rate=self._config.sample_rate,
            window_id=self._window_id,
            timestamp_ms=int(self._position / self._config.sample_rate * 1000),
        )
        self._position += size
        self._window_id += 1
        return window

    def windows(self) -> list[AudioWindow]:
        """Every remaining window, for offline use."""
        if not self._opened:
            self.open()
        result = []
        while (window := self.capture_audio_window()) is not None:
            result.append(window)
        return result

    def close(self) -> None:
        self._closed = True


class SineSource(ArraySource):
    """Pure tone."""

    def __init__(
        self,
        frequency_hz: float = 220.0,
        amplitude: float = 0.5,
        duration_ms: int = 1000,
        config: AudioConfig | None = None,
    ) -> None:
        config = config or AudioConfig()
        total = int(config.sample_rate * duration_ms / 1000)
        t = np.arange(total, dtype=np.float64) / config.sample_rate
        data = amplitude * np.sin(2 * np.pi * frequency_hz * t)
        super().__init__(data, config)
        self.frequency_hz = frequency_hz


class NoiseSource(ArraySource):
    """Seeded white noise."""

    def __init__(
        self,
        amplitude: float = 0.1,
        duration_ms: int = 1000,
        seed: int = 0,
        config: AudioConfig | None = None,
    ) -> None:
        config = config or AudioConfig()
        total = int(config.sample_rate * duration_ms / 1000)
        rng = np.random.default_rng(seed)
        data = amplitude * rng.standard_normal(total)
        super().__init__(np.clip(data, -1.0, 1.0), config)


class SilenceSource(ArraySource):
    """Digital silence."""

    def __init__(self, duration_ms: int = 1000, config: AudioConfig | None = None) -> None:
        config = config or AudioConfig()
        total = int(config.sample_rate * duration_ms / 1000)
        super().__init__(np.zeros(total, dtype=np.float32), config)


Detections = tuple[Sequence[KeypointSet], Sequence[KeypointSet]]


class ScriptedFrameSource:
    """
    Video source replaying pre-built detections.

    Each frame carries its (poses, faces) pair as data, to be unpacked
    by PassthroughEstimator. Frames are spaced interval_ms apart.
    """

    def __init__(self, detections: Sequence[Detections], interval_ms: int = 33) -> None:
        self._detections = list(detections)
        self._interval_ms = interval_ms
        self._index = 0
        self._opened = False

    def open(self) -> None:
        self._opened = True

    def read_frame(self) -> VideoFrame | None:
        if not self._opened:
            raise DeviceUnavailableError("video source is not open")
        if self._index >= len(self._detections):
            return None
        frame = VideoFrame(
            data=self._detections[self._index],
            frame_id=self._index,
            timestamp_ms=self._index * self._interval_ms,
        )
        self._index += 1
        return frame

    def close(self) -> None:
        self._opened = False


class PassthroughEstimator:
    """Pose estimator for ScriptedFrameSource frames."""

    def estimate_poses(self, frame: VideoFrame) -> list[KeypointSet]:
        poses, _ = frame.data
        return list(poses)

    def estimate_faces(self, frame: VideoFrame) -> list[KeypointSet]:
        _, faces = frame.data
        return list(faces)


def upright_pose(gesturing: bool = True, score: float = 0.9) -> KeypointSet:
    """Front-facing, level body pose in pixel coordinates."""
    wrist_y = 200.0 if gesturing else 330.0
    wrist_dx = 30.0 if gesturing else 10.0
    points = {
        "nose": (320.0, 100.0),
        "left_eye": (335.0, 90.0),
        "right_eye": (305.0, 90.0),
        "left_ear": (350.0, 95.0),
        "right_ear": (290.0, 95.0),
        "left_shoulder": (380.0, 180.0),
        "right_shoulder": (260.0, 180.0),
        "left_elbow": (400.0, 260.0),
        "right_elbow": (240.0, 260.0),
        "left_wrist": (380.0 + wrist_dx, wrist_y),
        "right_wrist": (260.0 - wrist_dx, wrist_y),
        "left_hip": (350.0, 400.0),
        "right_hip": (290.0, 400.0),
        "left_knee": (350.0, 520.0),
        "right_knee": (290.0, 520.0),
        "left_ankle": (350.0, 630.0),
        "right_ankle": (290.0, 630.0),
    }
    return KeypointSet.from_tuples({name: (x, y, score) for name, (x, y) in points.items()})


def frontal_face(smiling: bool = True, score: float = 0.9) -> KeypointSet:
    """Camera-facing face landmarks in pixel coordinates."""
    lip_offset = 2.0 if smiling else 0.0
    points = {
        "left_eye": (300.0, 100.0),
        "right_eye": (340.0, 100.0),
        "nose": (320.0, 120.0),
        "mouth_left": (305.0, 140.0),
        "mouth_right": (335.0, 140.0),
        "upper_lip": (320.0, 136.0 + lip_offset),
        "lower_lip": (320.0, 144.0 + lip_offset),
        "left_eye_top": (300.0, 96.0),
        "left_eye_bottom": (300.0, 104.0),
        "right_eye_top": (340.0, 96.0),
        "right_eye_bottom": (340.0, 104.0),
    }
    return KeypointSet.from_tuples({name: (x, y, score) for name, (x, y) in points.items()})
