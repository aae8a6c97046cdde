"""Core data structures, media protocols and events."""

from poise.core.models import (
    AIResponse,
    AnalysisResult,
    ConversationState,
    Dimension,
    EmotionLabel,
    FeedbackEntry,
    Improvement,
    Keypoint,
    KeypointSet,
    MetricSnapshot,
    PerformanceLevel,
    Priority,
    Strength,
)
from poise.core.stream import AudioConfig, AudioWindow, Transcript, VideoFrame
from poise.core.events import EventBus, SessionEvent
from poise.core.errors import AnalysisError, CoachError, DeviceUnavailableError, ExternalServiceError

__all__ = [
    "AIResponse",
    "AnalysisResult",
    "ConversationState",
    "Dimension",
    "EmotionLabel",
    "FeedbackEntry",
    "Improvement",
    "Keypoint",
    "KeypointSet",
    "MetricSnapshot",
    "PerformanceLevel",
    "Priority",
    "Strength",
    "AudioConfig",
    "AudioWindow",
    "Transcript",
    "VideoFrame",
    "EventBus",
    "SessionEvent",
    "AnalysisError",
    "CoachError",
    "DeviceUnavailableError",
    "ExternalServiceError",
]
