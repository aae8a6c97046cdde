"""
Data model shared by analyzers, scoring and the conversation flow.

MetricSnapshots are smoothed in place for the whole session.
AnalysisResults and FeedbackEntries are immutable once created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping


class Dimension(str, Enum):
    """Scored analysis dimensions."""
    POSTURE = "posture"
    GESTURES = "gestures"
    EYE_CONTACT = "eye_contact"
    EMOTION = "emotion"
    ENGAGEMENT = "engagement"
    BODY_PRESENCE = "body_presence"
    VOLUME = "volume"
    PITCH = "pitch"
    CLARITY = "clarity"
    PACE = "pace"
    FLUENCY = "fluency"
    CONFIDENCE = "confidence"


VISION_DIMENSIONS = (
    Dimension.POSTURE,
    Dimension.GESTURES,
    Dimension.EYE_CONTACT,
    Dimension.EMOTION,
    Dimension.ENGAGEMENT,
    Dimension.BODY_PRESENCE,
)
VOICE_DIMENSIONS = (
    Dimension.VOLUME,
    Dimension.PITCH,
    Dimension.CLARITY,
    Dimension.PACE,
)
TRANSCRIPT_DIMENSIONS = (
    Dimension.FLUENCY,
    Dimension.CONFIDENCE,
)


class ConversationState(str, Enum):
    """Whose turn it is."""
    WAITING = "waiting"
    LISTENING = "listening"
    ANALYZING = "analyzing"
    RESPONDING = "responding"
    INACTIVE = "inactive"


class EmotionLabel(str, Enum):
    """Heuristic facial expression classes."""
    HAPPY = "happy"
    SAD = "sad"
    FOCUSED = "focused"
    NEUTRAL = "neutral"


class Priority(str, Enum):
    """Improvement priority."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher rank sorts first."""
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class PerformanceLevel(str, Enum):
    """Coarse banding of an overall score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs_improvement"

    @classmethod
    def from_score(cls, score: float) -> PerformanceLevel:
        if score >= 85:
            return cls.EXCELLENT
        if score >= 70:
            return cls.GOOD
        if score >= 55:
            return cls.FAIR
        return cls.NEEDS_IMPROVEMENT


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


@dataclass(slots=True)
class MetricSnapshot:
    """
    Smoothed score and confidence for one dimension.

    - score: 0-100
    - confidence: 0.0-1.0
    - updates: number of smoothing updates applied (0 = no data yet)
    """
    score: float = 0.0
    confidence: float = 0.0
    timestamp_ms: int = 0
    updates: int = 0

    @property
    def has_data(self) -> bool:
        return self.updates > 0

    def update(
        self,
        score: float,
        confidence: float,
        timestamp_ms: int,
        alpha: float,
    ) -> None:
        """Exponentially smooth a new measurement into this snapshot."""
        score = clamp(score)
        confidence = clamp(confidence, 0.0, 1.0)
        self.score = self.score * (1 - alpha) + score * alpha
        self.confidence = self.confidence * (1 - alpha) + confidence * alpha
        self.timestamp_ms = timestamp_ms
        self.updates += 1

    def reset(self) -> None:
        self.score = 0.0
        self.confidence = 0.0
        self.timestamp_ms = 0
        self.updates = 0

    def to_dict(self) -> dict:
        return {
            "score": round(self.score, 2),
            "confidence": round(self.confidence, 3),
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass(frozen=True, slots=True)
class Keypoint:
    """Named, confidence-scored 2D landmark."""
    name: str
    x: float
    y: float
    score: float = 1.0

    def __post_init__(self) -> None:
        if not (0.0 <= self.score <= 1.0):
            object.__setattr__(self, 'score', clamp(self.score, 0.0, 1.0))


class KeypointSet(Mapping[str, Keypoint]):
    """
    Read-only mapping of keypoint name to Keypoint for one detection.

    Produced by an external pose or face model.
    """

    __slots__ = ("_points", "_score")

    def __init__(
        self,
        keypoints: Mapping[str, Keypoint] | list[Keypoint] | tuple[Keypoint, ...] = (),
        score: float | None = None,
    ) -> None:
        if isinstance(keypoints, Mapping):
            points = dict(keypoints)
        else:
            points = {kp.name: kp for kp in keypoints}
        self._points: dict[str, Keypoint] = points
        if score is None:
            score = (
                sum(kp.score for kp in points.values()) / len(points)
                if points else 0.0
            )
        self._score = clamp(score, 0.0, 1.0)

    @classmethod
    def from_tuples(
        cls,
        points: Mapping[str, tuple[float, float] | tuple[float, float, float]],
        score: float | None = None,
    ) -> KeypointSet:
        """Build from {name: (x, y[, score])}."""
        return cls(
            [Keypoint(name, *values) for name, values in points.items()],
            score=score,
        )

    @property
    def score(self) -> float:
        """Overall detection confidence."""
        return self._score

    def visible(self, name: str, min_score: float = 0.3) -> Keypoint | None:
        """Return the keypoint if present with score >= min_score."""
        kp = self._points.get(name)
        if kp is None or kp.score < min_score:
            return None
        return kp

    def __getitem__(self, name: str) -> Keypoint:
        return self._points[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"KeypointSet({len(self)} keypoints, score={self._score:.2f})"


@dataclass(frozen=True, slots=True)
class Strength:
    area: Dimension
    score: float
    message: str


@dataclass(frozen=True, slots=True)
class Improvement:
    area: Dimension
    score: float
    message: str
    priority: Priority


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """
    Aggregate produced once per completed analyzing phase.

    Never mutated after creation.
    """
    overall_score: int = 0
    dimension_scores: Mapping[Dimension, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    strengths: tuple[Strength, ...] = ()
    improvements: tuple[Improvement, ...] = ()
    recommendations: tuple[str, ...] = ()
    timestamp_ms: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.dimension_scores, MappingProxyType):
            object.__setattr__(
                self, 'dimension_scores', MappingProxyType(dict(self.dimension_scores))
            )
        object.__setattr__(self, 'strengths', tuple(self.strengths))
        object.__setattr__(self, 'improvements', tuple(self.improvements))
        object.__setattr__(self, 'recommendations', tuple(self.recommendations))

    @property
    def performance_level(self) -> PerformanceLevel:
        return PerformanceLevel.from_score(self.overall_score)

    @property
    def has_data(self) -> bool:
        return len(self.dimension_scores) > 0


@dataclass(frozen=True, slots=True)
class AIResponse:
    """Reply produced for one analysis cycle."""
    message: str
    analysis: AnalysisResult


@dataclass(frozen=True, slots=True)
class FeedbackEntry:
    """One accepted item of the ordered feedback history."""
    id: int
    timestamp_ms: int
    message: str
    analysis: AnalysisResult
    performance_level: PerformanceLevel
    user_text: str | None = None
