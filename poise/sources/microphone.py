"""
Live microphone capture.

Requires: pip install poise[mic]  (sounddevice)
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any
import numpy as np

from poise.core.errors import DeviceUnavailableError
from poise.core.stream import AudioConfig, AudioWindow

logger = logging.getLogger(__name__)


def _sounddevice() -> Any:
    try:
        import sounddevice as sd
    except ImportError as e:
        raise DeviceUnavailableError(
            "sounddevice is required for microphone input. "
            "Install with: pip install poise[mic]"
        ) from e
    return sd


class MicrophoneCapture:
    """
    Microphone input using sounddevice.

    The PortAudio callback fills a bounded buffer of windows; the
    async capture_audio_window() waits on it without blocking the
    event loop. When the buffer overflows the oldest windows are lost.

    Usage:
        capture = MicrophoneCapture()
        session = CoachingSession(audio=capture)
        await session.start_session()
    """

    def __init__(
        self,
        config: AudioConfig | None = None,
        device: int | str | None = None,
        buffer_size: int = 50,
        poll_interval_ms: int = 5,
    ) -> None:
        self._config = config or AudioConfig()
        self._device = device
        self._buffer: deque[np.ndarray] = deque(maxlen=buffer_size)
        self._poll_interval = poll_interval_ms / 1000
        self._stream = None
        self._window_id = 0
        self._timestamp_ms = 0

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def _audio_callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning(f"Audio status: {status}")
        self._buffer.append(indata[:, 0].copy().astype(np.float32))

    def open(self) -> None:
        if self._stream is not None:
            return
        sd = _sounddevice()
        try:
            stream = sd.InputStream(
                samplerate=self._config.sample_rate,
                blocksize=self._config.samples_per_window,
                channels=self._config.channels,
                dtype=np.float32,
                device=self._device,
                callback=self._audio_callback,
            )
            stream.start()
        except Exception as e:
            raise DeviceUnavailableError(f"Cannot open microphone: {e}") from e
        self._stream = stream
        logger.info(f"Microphone opened at {self._config.sample_rate} Hz")

    async def capture_audio_window(self) -> AudioWindow | None:
        """Next window, or None once the capture has been closed."""
        while not self._buffer:
            if self._stream is None:
                return None
            await asyncio.sleep(self._poll_interval)

        samples = self._buffer.popleft()
        window = AudioWindow(
            samples=samples,
            sample_rate=self._config.sample_rate,
            window_id=self._window_id,
            timestamp_ms=self._timestamp_ms,
        )
        self._window_id += 1
        self._timestamp_ms += self._config.window_duration_ms
        return window

    def close(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("Microphone closed")
        self._buffer.clear()


def list_input_devices() -> list[dict]:
    """Input-capable audio devices as reported by PortAudio."""
    sd = _sounddevice()
    return [dict(device) for device in sd.query_devices() if device.get("max_input_channels", 0) > 0]
