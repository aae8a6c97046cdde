"""
poise - Real-time multimodal speaking coach

poise measures how something is said (voice, posture, gestures, eye
contact) and decides when to give feedback. It does not render UI,
run pose models or call language services; those plug in from outside.
"""

from poise.core.models import (
    AnalysisResult,
    ConversationState,
    Dimension,
    FeedbackEntry,
    KeypointSet,
    Keypoint,
    MetricSnapshot,
)
from poise.core.stream import AudioConfig, AudioWindow, VideoFrame
from poise.core.events import EventBus, SessionEvent
from poise.core.errors import CoachError, DeviceUnavailableError
from poise.core.session import CoachingSession, SessionConfig
from poise.analyzers.base import Analyzer
from poise.adapters.base import Adapter

__version__ = "0.1.0"
__all__ = [
    # Data model
    "AnalysisResult",
    "ConversationState",
    "Dimension",
    "FeedbackEntry",
    "KeypointSet",
    "Keypoint",
    "MetricSnapshot",
    "AudioConfig",
    "AudioWindow",
    "VideoFrame",
    # Session
    "CoachingSession",
    "SessionConfig",
    "EventBus",
    "SessionEvent",
    # Errors
    "CoachError",
    "DeviceUnavailableError",
    # Extension protocols
    "Analyzer",
    "Adapter",
]
