"""
Aggregation and scoring.

Combines the latest voice, vision and transcript snapshots into one
immutable AnalysisResult.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Sequence

from poise.core.models import (
    TRANSCRIPT_DIMENSIONS,
    VISION_DIMENSIONS,
    VOICE_DIMENSIONS,
    AnalysisResult,
    Dimension,
    Improvement,
    Priority,
    Strength,
)

if TYPE_CHECKING:
    from poise.analyzers.transcript import TranscriptAnalysis
    from poise.analyzers.vision import VisionAnalysis
    from poise.analyzers.voice import VoiceAnalysis

logger = logging.getLogger(__name__)

DIMENSION_ORDER: tuple[Dimension, ...] = VISION_DIMENSIONS + VOICE_DIMENSIONS + TRANSCRIPT_DIMENSIONS

STRENGTH_PHRASES: dict[Dimension, tuple[str, ...]] = {
    Dimension.POSTURE: (
        "Your posture is upright and professional.",
        "You hold a confident, balanced stance.",
    ),
    Dimension.GESTURES: (
        "Your hand gestures support your points naturally.",
        "Great use of open, expressive gestures.",
    ),
    Dimension.EYE_CONTACT: (
        "You keep steady eye contact with the camera.",
        "Your eye contact feels direct and engaged.",
    ),
    Dimension.EMOTION: (
        "Your facial expressions are engaging and natural.",
        "You come across as warm and expressive.",
    ),
    Dimension.ENGAGEMENT: (
        "You're doing great at engaging your audience.",
        "Your presence keeps the listener engaged.",
    ),
    Dimension.BODY_PRESENCE: (
        "You are well framed and fully present on camera.",
        "Your body language fills the frame with confidence.",
    ),
    Dimension.VOLUME: (
        "Your volume stays steady and easy to follow.",
        "Excellent volume consistency throughout.",
    ),
    Dimension.PITCH: (
        "Your pitch is controlled and stable.",
        "Your voice sounds calm and well controlled.",
    ),
    Dimension.CLARITY: (
        "Your voice is clear and easy to understand.",
        "Your speech is crisp and well articulated.",
    ),
    Dimension.PACE: (
        "Excellent speaking pace, not too fast or slow.",
        "Your rhythm is natural and easy to follow.",
    ),
    Dimension.FLUENCY: (
        "Great job minimizing filler words.",
        "Your sentences flow smoothly without fillers.",
    ),
    Dimension.CONFIDENCE: (
        "You're speaking with great confidence.",
        "Your wording sounds decisive and sure.",
    ),
}

IMPROVEMENT_PHRASES: dict[Dimension, tuple[str, ...]] = {
    Dimension.POSTURE: (
        "Sit up straight and keep your shoulders level.",
        "Align your head with your spine and keep your shoulders back.",
    ),
    Dimension.GESTURES: (
        "Use your hands to emphasize key points.",
        "Try more open hand gestures at chest height.",
    ),
    Dimension.EYE_CONTACT: (
        "Look directly at the camera more often.",
        "Hold eye contact for 3-5 seconds at a time.",
    ),
    Dimension.EMOTION: (
        "Try to show more enthusiasm in your expression.",
        "Let your face reflect the energy of your message.",
    ),
    Dimension.ENGAGEMENT: (
        "Connect more with your audience using gestures and eye contact.",
        "Engage the listener with your body language.",
    ),
    Dimension.BODY_PRESENCE: (
        "Step back so your upper body is fully in frame.",
        "Center yourself in the frame and face the camera.",
    ),
    Dimension.VOLUME: (
        "Practice maintaining a steady volume.",
        "Keep your volume even from start to finish.",
    ),
    Dimension.PITCH: (
        "Keep your pitch steady and controlled.",
        "Relax your voice to avoid pitch swings.",
    ),
    Dimension.CLARITY: (
        "Focus on speaking more clearly.",
        "Articulate each word and project your voice.",
    ),
    Dimension.PACE: (
        "Work on a steady, natural speaking rhythm.",
        "Use short pauses to control your pace.",
    ),
    Dimension.FLUENCY: (
        "Practice pausing instead of using filler words.",
        "Replace 'um' and 'uh' with a brief pause.",
    ),
    Dimension.CONFIDENCE: (
        "Speak with more conviction and fewer uncertainty words.",
        "Drop hedges like 'maybe' and 'I think' when you are sure.",
    ),
}

_FALLBACK_STRENGTH = "Keep doing what you're doing here."
_FALLBACK_IMPROVEMENT = "Keep working on this area."


class PhraseSelector:
    """
    Picks message wording from a fixed pool.

    Seeded so identical inputs produce identical text. With seed=None
    the first phrase of each pool is always used.
    """

    def __init__(self, seed: int | None = 0) -> None:
        self._seed = seed
        self._rng = random.Random(seed) if seed is not None else None

    def choose(self, pool: Sequence[str]) -> str:
        if not pool:
            raise ValueError("phrase pool is empty")
        if self._rng is None:
            return pool[0]
        return self._rng.choice(pool)

    def reset(self) -> None:
        if self._seed is not None:
            self._rng = random.Random(self._seed)


@dataclass
class ScoringConfig:
    """Thresholds for strengths, improvements and priorities."""
    strength_threshold: float = 80.0
    improvement_threshold: float = 70.0
    high_priority_below: float = 50.0
    medium_priority_below: float = 60.0
    phrase_seed: int | None = 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class AggregationScoringEngine:
    """
    Turns per-dimension scores into an AnalysisResult.

    - overall: unweighted mean of the dimensions that have data
    - strengths: every dimension >= strength_threshold
    - improvements: every dimension < improvement_threshold, sorted by
      priority (high first) then by ascending score
    - recommendations: overall tier sentence plus one "Priority:" line
      per high-priority improvement

    Dimension selection depends only on the scores; only the wording is
    drawn from the phrase selector.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()
        self._selector = PhraseSelector(self._config.phrase_seed)

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def aggregate(
        self,
        voice: VoiceAnalysis | None = None,
        vision: VisionAnalysis | None = None,
        transcript: TranscriptAnalysis | None = None,
        timestamp_ms: int = 0,
    ) -> AnalysisResult:
        """Score the current snapshots of whichever analyzers are present."""
        scores: dict[Dimension, float] = {}
        for source in (vision, voice, transcript):
            if source is None:
                continue
            for dimension, snapshot in source.dimension_scores().items():
                scores[dimension] = snapshot.score
        return self.score(scores, timestamp_ms)

    def score(self, dimension_scores: Mapping[Dimension, float], timestamp_ms: int = 0) -> AnalysisResult:
        ordered = self._order(dimension_scores)
        if not ordered:
            logger.debug("No dimension has data yet; overall score is 0")
            return AnalysisResult(
                overall_score=0,
                recommendations=("Keep talking so I can measure your delivery.",),
                timestamp_ms=timestamp_ms,
            )

        overall = round_half_up(sum(ordered.values()) / len(ordered))
        strengths = self._strengths(ordered)
        improvements = self._improvements(ordered)
        recommendations = self._recommendations(overall, improvements)

        return AnalysisResult(
            overall_score=overall,
            dimension_scores=ordered,
            strengths=strengths,
            improvements=improvements,
            recommendations=recommendations,
            timestamp_ms=timestamp_ms,
        )

    def _order(self, dimension_scores: Mapping[Dimension, float]) -> dict[Dimension, float]:
        ordered: dict[Dimension, float] = {}
        for dimension in DIMENSION_ORDER:
            if dimension in dimension_scores:
                ordered[dimension] = float(dimension_scores[dimension])
        unknown = set(dimension_scores) - set(ordered)
        if unknown:
            logger.warning(f"Ignoring unknown dimensions: {sorted(str(d) for d in unknown)}")
        return ordered

    def _strengths(self, scores: dict[Dimension, float]) -> list[Strength]:
        return [
            Strength(
                area=dimension,
                score=value,
                message=self._selector.choose(STRENGTH_PHRASES.get(dimension, (_FALLBACK_STRENGTH,))),
            )
            for dimension, value in scores.items()
            if value >= self._config.strength_threshold
        ]

    def _improvements(self, scores: dict[Dimension, float]) -> list[Improvement]:
        improvements = [
            Improvement(
                area=dimension,
                score=value,
                message=self._selector.choose(IMPROVEMENT_PHRASES.get(dimension, (_FALLBACK_IMPROVEMENT,))),
                priority=self.priority_for(value),
            )
            for dimension, value in scores.items()
            if value < self._config.improvement_threshold
        ]
        # sorted() is stable: equal priority and score keep dimension order
        return sorted(improvements, key=lambda imp: (-imp.priority.rank, imp.score))

    def priority_for(self, score: float) -> Priority:
        if score < self._config.high_priority_below:
            return Priority.HIGH
        if score < self._config.medium_priority_below:
            return Priority.MEDIUM
        return Priority.LOW

    def _recommendations(self, overall: int, improvements: list[Improvement]) -> list[str]:
        if overall >= 85:
            recommendations = ["Excellent presentation! Keep up the great work."]
        elif overall >= 70:
            recommendations = ["Good presentation! Focus on the areas we discussed."]
        elif overall >= 50:
            recommendations = ["You're making progress! Let's work on the key areas together."]
        else:
            recommendations = ["Every expert was once a beginner. Let's practice together."]

        for improvement in improvements:
            if improvement.priority is Priority.HIGH:
                recommendations.append(f"Priority: {improvement.message}")
        return recommendations

    def reset(self) -> None:
        self._selector.reset()
