"""
Media stream abstractions and external collaborator protocols.

Window-based processing: ~100ms PCM chunks, one keypoint frame per tick.
No dependency on specific capture or model libraries.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Protocol, Sequence, TypeVar, runtime_checkable
import numpy as np
from numpy.typing import NDArray

from poise.core.models import AIResponse, AnalysisResult, KeypointSet

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Audio capture configuration."""
    sample_rate: int = 16000
    channels: int = 1
    window_duration_ms: int = 100
    dtype: str = "float32"

    @property
    def samples_per_window(self) -> int:
        """Samples per analysis window."""
        return int(self.sample_rate * self.window_duration_ms / 1000)


@dataclass(frozen=True, slots=True)
class AudioWindow:
    """
    Fixed-length block of PCM samples.

    Attributes:
        samples: float32 samples normalized to [-1.0, 1.0]
        sample_rate: capture sample rate in Hz
        window_id: monotonically increasing identifier
        timestamp_ms: start time from stream start
    """
    samples: NDArray[np.float32]
    sample_rate: int
    window_id: int = 0
    timestamp_ms: int = 0

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        samples.setflags(write=False)
        object.__setattr__(self, 'samples', samples)

    @property
    def duration_ms(self) -> int:
        if self.sample_rate <= 0:
            return 0
        return int(len(self.samples) * 1000 / self.sample_rate)

    @property
    def rms(self) -> float:
        """Root mean square energy."""
        if len(self.samples) == 0:
            return 0.0
        return float(np.sqrt(np.mean(self.samples.astype(np.float64) ** 2)))

    @property
    def peak(self) -> float:
        """Peak absolute amplitude."""
        if len(self.samples) == 0:
            return 0.0
        return float(np.max(np.abs(self.samples)))

    @classmethod
    def from_bytes(
        cls,
        raw: bytes,
        sample_rate: int,
        window_id: int = 0,
        timestamp_ms: int = 0,
    ) -> AudioWindow:
        """Create window from raw PCM16 bytes."""
        samples = np.frombuffer(raw, dtype=np.int16).astype(np.float32)
        samples /= 32768.0
        return cls(samples=samples, sample_rate=sample_rate,
                   window_id=window_id, timestamp_ms=timestamp_ms)

    @classmethod
    def silence(cls, config: AudioConfig, window_id: int = 0, timestamp_ms: int = 0) -> AudioWindow:
        """Create a silent window."""
        return cls(
            samples=np.zeros(config.samples_per_window, dtype=np.float32),
            sample_rate=config.sample_rate,
            window_id=window_id,
            timestamp_ms=timestamp_ms,
        )


@dataclass(frozen=True, slots=True)
class VideoFrame:
    """Opaque camera frame handed to the pose/face estimator."""
    data: Any
    frame_id: int = 0
    timestamp_ms: int = 0


@dataclass(frozen=True, slots=True)
class Transcript:
    """Speech-to-text output. Only final transcripts become user input."""
    text: str
    confidence: float = 1.0
    is_final: bool = True


@runtime_checkable
class AudioCapture(Protocol):
    """Microphone-like source of fixed-size PCM windows."""

    def open(self) -> None | Awaitable[None]:
        """Acquire the device. Raises DeviceUnavailableError."""
        ...

    def capture_audio_window(self) -> AudioWindow | None | Awaitable[AudioWindow | None]:
        """Return the next window, or None once the stream has ended."""
        ...

    def close(self) -> None | Awaitable[None]:
        """Release the device."""
        ...


@runtime_checkable
class FrameSource(Protocol):
    """Camera-like source of video frames."""

    def open(self) -> None | Awaitable[None]:
        ...

    def read_frame(self) -> VideoFrame | None | Awaitable[VideoFrame | None]:
        """Return the next frame, or None once the stream has ended."""
        ...

    def close(self) -> None | Awaitable[None]:
        ...


@runtime_checkable
class PoseEstimator(Protocol):
    """Pretrained pose/face landmark models."""

    def estimate_poses(
        self, frame: VideoFrame
    ) -> Sequence[KeypointSet] | Awaitable[Sequence[KeypointSet]]:
        ...

    def estimate_faces(
        self, frame: VideoFrame
    ) -> Sequence[KeypointSet] | Awaitable[Sequence[KeypointSet]]:
        ...


@runtime_checkable
class Transcriber(Protocol):
    """Speech-to-text engine."""

    def transcribe(self, window: AudioWindow) -> Transcript | None | Awaitable[Transcript | None]:
        ...


@runtime_checkable
class Speaker(Protocol):
    """Text-to-speech playback."""

    def speak(self, text: str) -> None | Awaitable[None]:
        ...


@runtime_checkable
class ResponseGenerator(Protocol):
    """Language-generation service producing the coach's reply."""

    def generate_ai_response(
        self, analysis: AnalysisResult, user_text: str
    ) -> AIResponse | Awaitable[AIResponse]:
        ...


async def maybe_await(result: T | Awaitable[T]) -> T:
    """Collaborator methods may be plain or async; resolve either."""
    if inspect.isawaitable(result):
        return await result
    return result
