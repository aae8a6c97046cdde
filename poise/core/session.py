"""
Coaching session.

Owns the analyzers for one session and runs the three cooperative
loops on the current asyncio event loop:

- voice tick: capture window -> VoiceAnalyzer -> optional transcription
- vision tick: read frame -> throttle -> pose/face models -> VisionAnalyzer
- input: final transcripts heard while the conversation waits ->
  ConversationFlowManager
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from poise.adapters.base import DictAdapter, SessionSnapshot
from poise.analyzers.transcript import TranscriptAnalyzer, TranscriptConfig
from poise.analyzers.vision import VisionAnalysis, VisionAnalyzer, VisionConfig
from poise.analyzers.voice import VoiceAnalysis, VoiceAnalyzer, VoiceConfig
from poise.conversation.flow import ConversationFlowManager
from poise.core.errors import AnalysisError, CoachError, DeviceUnavailableError
from poise.core.events import EventBus, Handler, SessionEvent
from poise.core.models import AIResponse, AnalysisResult, ConversationState
from poise.core.stream import (
    AudioCapture,
    AudioConfig,
    FrameSource,
    PoseEstimator,
    ResponseGenerator,
    Speaker,
    Transcriber,
    maybe_await,
)
from poise.scoring.aggregator import AggregationScoringEngine, ScoringConfig
from poise.scoring.feedback import FeedbackComposer, FeedbackConfig, FeedbackThrottle
from poise.scoring.summary import SessionSummary, summarize

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    """Session configuration."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    transcript: TranscriptConfig = field(default_factory=TranscriptConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    response_cooldown_ms: int = 2000
    error_backoff_ms: int = 100


class CoachingSession:
    """
    One live coaching session.

    Analyzers are created by start_session() and disposed by
    end_session(); nothing survives between sessions except the
    event subscriptions.

    Each tick is guarded by its own busy flag, so a tick that is
    suspended on a device or model never overlaps the next one.
    The running flag is re-tested after every await.

    Usage:
        session = CoachingSession(audio=MicrophoneCapture())
        session.on(SessionEvent.AI_RESPONSE_READY, lambda r: print(r.message))
        await session.start_session()
        await session.handle_user_input("Tell me about a challenge you solved")
        await session.end_session()
    """

    def __init__(
        self,
        audio: AudioCapture | None = None,
        video: FrameSource | None = None,
        pose_estimator: PoseEstimator | None = None,
        transcriber: Transcriber | None = None,
        responder: ResponseGenerator | None = None,
        speaker: Speaker | None = None,
        config: SessionConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or SessionConfig()
        self._audio = audio
        self._video = video
        self._pose_estimator = pose_estimator
        self._transcriber = transcriber
        self._events = EventBus()
        self._throttle = FeedbackThrottle(self._config.feedback)
        self._engine = AggregationScoringEngine(self._config.scoring)
        self._flow = ConversationFlowManager(
            analyze=self._analyze,
            responder=responder or FeedbackComposer(seed=self._config.scoring.phrase_seed),
            speaker=speaker,
            throttle=self._throttle,
            events=self._events,
            cooldown_ms=self._config.response_cooldown_ms,
            sleep=sleep,
        )

        self._voice: VoiceAnalyzer | None = None
        self._vision: VisionAnalyzer | None = None
        self._transcript: TranscriptAnalyzer | None = None

        self._running = False
        self._audio_open = False
        self._video_open = False
        self._voice_busy = False
        self._vision_busy = False
        self._audio_ended = False
        self._video_ended = False
        self._error_count = 0
        self._started_at = 0.0
        self._inputs: asyncio.Queue[str] | None = None
        self._tasks: list[asyncio.Task] = []

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def flow(self) -> ConversationFlowManager:
        return self._flow

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def voice_analyzer(self) -> VoiceAnalyzer | None:
        return self._voice

    @property
    def vision_analyzer(self) -> VisionAnalyzer | None:
        return self._vision

    @property
    def transcript_analyzer(self) -> TranscriptAnalyzer | None:
        return self._transcript

    def on(self, event: SessionEvent | str, handler: Handler) -> Callable[[], None]:
        """Subscribe to a session event. Returns an unsubscribe callable."""
        return self._events.subscribe(event, handler)

    def _now_ms(self) -> int:
        return int((time.monotonic() - self._started_at) * 1000)

    def _report(self, error: Exception, context: str) -> None:
        self._error_count += 1
        if not isinstance(error, CoachError):
            wrapped = AnalysisError(f"{context}: {error}")
            wrapped.__cause__ = error
            error = wrapped
        logger.warning(f"{context}: {error}")
        self._events.emit(SessionEvent.ERROR, error)

    async def _open(self, device: Any, label: str) -> bool:
        try:
            await maybe_await(device.open())
        except Exception as e:
            error = e if isinstance(e, DeviceUnavailableError) else DeviceUnavailableError(f"{label} unavailable: {e}")
            if error is not e:
                error.__cause__ = e
            self._report(error, f"Opening {label} failed")
            return False
        return True

    async def start_session(self) -> None:
        """
        Acquire media, build analyzers and start the loops.

        Raises DeviceUnavailableError (state stays inactive) when no
        media stream at all can be opened.
        """
        if self._running:
            logger.info("Session already running, ignoring start")
            return

        self._audio_open = self._audio is not None and await self._open(self._audio, "audio")
        if self._video is not None and self._pose_estimator is None:
            self._report(DeviceUnavailableError("video source has no pose estimator"), "Opening video failed")
            self._video_open = False
        else:
            self._video_open = self._video is not None and await self._open(self._video, "video")

        if not (self._audio_open or self._video_open):
            raise DeviceUnavailableError("no media stream could be opened")

        self._started_at = time.monotonic()
        self._voice = VoiceAnalyzer(self._config.voice) if self._audio_open else None
        self._vision = VisionAnalyzer(self._config.vision) if self._video_open else None
        self._transcript = TranscriptAnalyzer(self._config.transcript)
        self._engine.reset()
        self._inputs = asyncio.Queue()
        self._error_count = 0
        self._audio_ended = self._video_ended = False
        self._running = True
        self._flow.start_session()

        if self._voice is not None:
            self._tasks.append(asyncio.create_task(self._voice_loop()))
        if self._vision is not None:
            self._tasks.append(asyncio.create_task(self._vision_loop()))
        self._tasks.append(asyncio.create_task(self._input_loop()))
        logger.info(f"Session started (audio={self._audio_open}, video={self._video_open})")

    async def end_session(self) -> None:
        """Stop every loop, release devices and dispose the analyzers."""
        if not self._running:
            return
        self._running = False
        self._flow.end_session()

        tasks, self._tasks = self._tasks, []
        current = asyncio.current_task()
        for task in tasks:
            if task is not current:
                task.cancel()
        await asyncio.gather(*(t for t in tasks if t is not current), return_exceptions=True)

        if self._audio_open:
            await self._close(self._audio, "audio")
        if self._video_open:
            await self._close(self._video, "video")
        self._audio_open = self._video_open = False

        for analyzer in (self._voice, self._vision, self._transcript):
            if analyzer is not None:
                analyzer.dispose()
        self._voice = self._vision = self._transcript = None
        self._inputs = None
        logger.info("Session ended")

    async def _close(self, device: Any, label: str) -> None:
        try:
            await maybe_await(device.close())
        except Exception as e:
            logger.warning(f"Closing {label} failed: {e}")

    async def voice_tick(self) -> VoiceAnalysis | None:
        """
        Analyze one audio window.

        Returns None when skipped (busy, stopped, stream ended or failed).
        """
        if self._voice_busy or not self._running or self._voice is None:
            return None
        self._voice_busy = True
        try:
            window = await maybe_await(self._audio.capture_audio_window())
            if not self._running or self._voice is None:
                return None
            if window is None:
                logger.info("Audio stream ended")
                self._audio_ended = True
                return None

            analysis = self._voice.process_window(window)
            self._events.emit(SessionEvent.VOICE_ANALYSIS, analysis)

            if self._transcriber is not None:
                transcript = await maybe_await(self._transcriber.transcribe(window))
                if not self._running:
                    return analysis
                if transcript is not None and transcript.is_final and transcript.text.strip():
                    self._queue_input(transcript.text)
            return analysis
        except Exception as e:
            self._report(e, "Voice tick failed")
            return None
        finally:
            self._voice_busy = False

    async def vision_tick(self) -> VisionAnalysis | None:
        """
        Analyze one video frame.

        Frames inside the sampling interval are dropped before any
        model inference.
        """
        if self._vision_busy or not self._running or self._vision is None:
            return None
        self._vision_busy = True
        try:
            frame = await maybe_await(self._video.read_frame())
            if not self._running or self._vision is None:
                return None
            if frame is None:
                logger.info("Video stream ended")
                self._video_ended = True
                return None

            if not self._vision.should_process(frame.timestamp_ms):
                self._vision.drop_frame()
                return None

            poses = await maybe_await(self._pose_estimator.estimate_poses(frame))
            if not self._running:
                return None
            faces = await maybe_await(self._pose_estimator.estimate_faces(frame))
            if not self._running or self._vision is None:
                return None

            analysis = self._vision.process_frame(poses or (), faces or (), frame.timestamp_ms)
            if analysis is not None:
                self._events.emit(SessionEvent.ANALYSIS_UPDATE, analysis)
            return analysis
        except Exception as e:
            self._report(e, "Vision tick failed")
            return None
        finally:
            self._vision_busy = False

    async def _pause(self, errors_before: int) -> None:
        """Yield to the other loops; back off after a failed tick."""
        failed = self._error_count > errors_before
        await asyncio.sleep(self._config.error_backoff_ms / 1000 if failed else 0)

    async def _voice_loop(self) -> None:
        while self._running and not self._audio_ended:
            errors = self._error_count
            await self.voice_tick()
            await self._pause(errors)

    async def _vision_loop(self) -> None:
        while self._running and not self._video_ended:
            errors = self._error_count
            await self.vision_tick()
            await self._pause(errors)

    def _queue_input(self, text: str) -> None:
        """Hand a final transcript to the conversation if it is waiting for one."""
        if not self._flow.is_ready_for_input or not self._inputs.empty():
            logger.info(f"Transcript dropped in state {self._flow.current_state.value}: {text!r}")
            return
        self._inputs.put_nowait(text)

    async def _input_loop(self) -> None:
        while self._running and self._inputs is not None:
            text = await self._inputs.get()
            if not self._running:
                break
            await self._flow.handle_user_input(text)
            # Speech heard during the turn is not an answer to the next prompt
            while self._inputs is not None and not self._inputs.empty():
                stale = self._inputs.get_nowait()
                logger.info(f"Discarded transcript queued during turn: {stale!r}")

    def _analyze(self, text: str) -> AnalysisResult:
        timestamp = self._now_ms()
        if self._transcript is not None:
            self._transcript.process_transcript(text, timestamp)
        return self._engine.aggregate(
            voice=self._voice.analysis if self._voice is not None else None,
            vision=self._vision.analysis if self._vision is not None else None,
            transcript=self._transcript.analysis if self._transcript is not None else None,
            timestamp_ms=timestamp,
        )

    async def handle_user_input(self, text: str) -> AIResponse | None:
        """Run one conversation turn directly (bypassing the transcript queue)."""
        return await self._flow.handle_user_input(text)

    def get_current_state(self) -> ConversationState:
        return self._flow.current_state

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._flow.current_state,
            voice=self._voice.analysis if self._voice is not None else None,
            vision=self._vision.analysis if self._vision is not None else None,
            transcript=self._transcript.analysis if self._transcript is not None else None,
            last_analysis=self._flow.last_analysis,
            history=self._flow.history,
        )

    def get_analysis_data(self) -> dict[str, Any]:
        """Current readings as a plain dictionary."""
        return DictAdapter().transform(self.snapshot())

    def get_session_summary(self) -> SessionSummary:
        return summarize(self._flow.history)

    def clear_feedback(self) -> None:
        self._throttle.clear()
