"""
Base adapter protocol.

Adapters turn a point-in-time view of a coaching session into
whatever the UI layer consumes. poise ships the dictionary form;
other formats are provided by consumers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from poise.core.models import AnalysisResult, ConversationState, FeedbackEntry

if TYPE_CHECKING:
    from poise.analyzers.transcript import TranscriptAnalysis
    from poise.analyzers.vision import VisionAnalysis
    from poise.analyzers.voice import VoiceAnalysis


T = TypeVar("T")


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the UI may render at one instant."""
    state: ConversationState
    voice: VoiceAnalysis | None = None
    vision: VisionAnalysis | None = None
    transcript: TranscriptAnalysis | None = None
    last_analysis: AnalysisResult | None = None
    history: tuple[FeedbackEntry, ...] = ()


class Adapter(ABC, Generic[T]):
    """
    Abstract base for output adapters.

    Usage:
        class MyAdapter(Adapter[MyPayload]):
            def transform(self, snapshot: SessionSnapshot) -> MyPayload:
                return MyPayload(...)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique adapter name."""
        ...

    @abstractmethod
    def transform(self, snapshot: SessionSnapshot) -> T:
        ...


def _snapshots(scores: dict) -> dict[str, dict]:
    return {dimension.value: snapshot.to_dict() for dimension, snapshot in scores.items()}


def analysis_to_dict(result: AnalysisResult) -> dict[str, Any]:
    return {
        "overall_score": result.overall_score,
        "performance_level": result.performance_level.value,
        "dimension_scores": {
            dimension.value: round(score, 2) for dimension, score in result.dimension_scores.items()
        },
        "strengths": [
            {"area": s.area.value, "score": round(s.score, 2), "message": s.message}
            for s in result.strengths
        ],
        "improvements": [
            {
                "area": i.area.value,
                "score": round(i.score, 2),
                "message": i.message,
                "priority": i.priority.value,
            }
            for i in result.improvements
        ],
        "recommendations": list(result.recommendations),
        "timestamp_ms": result.timestamp_ms,
    }


def entry_to_dict(entry: FeedbackEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "timestamp_ms": entry.timestamp_ms,
        "message": entry.message,
        "user_text": entry.user_text,
        "performance_level": entry.performance_level.value,
        "overall_score": entry.analysis.overall_score,
    }


class DictAdapter(Adapter[dict[str, Any]]):
    """
    Plain-dictionary view of a session.

    Useful for JSON serialization to a web UI.
    """

    @property
    def name(self) -> str:
        return "dict"

    def transform(self, snapshot: SessionSnapshot) -> dict[str, Any]:
        data: dict[str, Any] = {"state": snapshot.state.value}

        voice = snapshot.voice
        data["voice"] = None if voice is None else {
            "scores": _snapshots(voice.dimension_scores()),
            "quality": voice.quality.to_dict() if voice.quality.has_data else None,
            "volume_level": round(voice.volume_level, 2),
            "pitch_hz": round(voice.pitch_hz, 1),
            "average_pitch_hz": round(voice.average_pitch_hz, 1),
            "speech_rate": round(voice.speech_rate, 2),
            "words_per_minute": round(voice.words_per_minute, 1),
            "is_speaking": voice.is_speaking,
            "noise_floor": None if voice.noise_floor is None else round(voice.noise_floor, 1),
        }

        vision = snapshot.vision
        data["vision"] = None if vision is None else {
            "scores": _snapshots(vision.dimension_scores()),
            "dominant_emotion": vision.dominant_emotion.value,
            "pose_complete": vision.pose_complete,
            "notes": list(vision.notes),
            "persons_detected": vision.persons_detected,
        }

        transcript = snapshot.transcript
        data["transcript"] = None if transcript is None else {
            "scores": _snapshots(transcript.dimension_scores()),
            "word_count": transcript.word_count,
            "filler_ratio": round(transcript.filler_ratio, 3),
        }

        data["last_analysis"] = (
            analysis_to_dict(snapshot.last_analysis) if snapshot.last_analysis is not None else None
        )
        data["history"] = [entry_to_dict(entry) for entry in snapshot.history]
        return data
