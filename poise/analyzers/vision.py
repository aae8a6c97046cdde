"""
Vision analyzer.

Consumes externally produced body-pose and face keypoints and keeps
smoothed posture, gesture, eye-contact, emotion, engagement and body
presence snapshots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from poise.analyzers import geometry
from poise.analyzers.base import Analyzer
from poise.core.models import Dimension, EmotionLabel, KeypointSet, MetricSnapshot

logger = logging.getLogger(__name__)


@dataclass
class VisionConfig:
    """Vision analyzer tuning."""
    interval_ms: int = 100
    smoothing_alpha: float = 0.3
    min_keypoint_confidence: float = 0.3
    score_noise: float = 0.0
    seed: int | None = 0


@dataclass
class VisionAnalysis:
    """Continuously updated body-language readings."""
    posture: MetricSnapshot = field(default_factory=MetricSnapshot)
    gestures: MetricSnapshot = field(default_factory=MetricSnapshot)
    eye_contact: MetricSnapshot = field(default_factory=MetricSnapshot)
    emotion: MetricSnapshot = field(default_factory=MetricSnapshot)
    engagement: MetricSnapshot = field(default_factory=MetricSnapshot)
    body_presence: MetricSnapshot = field(default_factory=MetricSnapshot)
    dominant_emotion: EmotionLabel = EmotionLabel.NEUTRAL
    pose_complete: bool = False
    notes: tuple[str, ...] = ()
    persons_detected: int = 0
    faces_detected: int = 0
    frames_analyzed: int = 0
    frames_dropped: int = 0

    def dimension_scores(self) -> dict[Dimension, MetricSnapshot]:
        snapshots = {
            Dimension.POSTURE: self.posture,
            Dimension.GESTURES: self.gestures,
            Dimension.EYE_CONTACT: self.eye_contact,
            Dimension.EMOTION: self.emotion,
            Dimension.ENGAGEMENT: self.engagement,
            Dimension.BODY_PRESENCE: self.body_presence,
        }
        return {dim: snap for dim, snap in snapshots.items() if snap.has_data}

    def reset(self) -> None:
        for snapshot in (
            self.posture, self.gestures, self.eye_contact,
            self.emotion, self.engagement, self.body_presence,
        ):
            snapshot.reset()
        self.dominant_emotion = EmotionLabel.NEUTRAL
        self.pose_complete = False
        self.notes = ()
        self.persons_detected = 0
        self.faces_detected = 0
        self.frames_analyzed = 0
        self.frames_dropped = 0


_NO_DETECTION = geometry.GeometryScore(score=0.0, confidence=0.0, complete=False)


def _best(detections: Sequence[KeypointSet]) -> KeypointSet | None:
    """Most confident detection (first one on ties)."""
    best = None
    for detection in detections:
        if best is None or detection.score > best.score:
            best = detection
    return best


class VisionAnalyzer(Analyzer):
    """
    Per-frame body-language scoring.

    Frames are sampled at a fixed interval; anything arriving sooner
    is dropped, never queued. When several people or faces are
    detected only the most confident one is scored.

    A frame with no pose (or no face) scores zero for the dependent
    dimensions, so lost tracking decays the smoothed values instead
    of freezing stale ones.
    """

    def __init__(self, config: VisionConfig | None = None) -> None:
        self._config = config or VisionConfig()
        super().__init__(
            smoothing_alpha=self._config.smoothing_alpha,
            score_noise=self._config.score_noise,
            seed=self._config.seed,
        )
        self._analysis = VisionAnalysis()
        self._last_processed_ms: int | None = None

    @property
    def name(self) -> str:
        return "vision"

    @property
    def config(self) -> VisionConfig:
        return self._config

    @property
    def analysis(self) -> VisionAnalysis:
        return self._analysis

    def should_process(self, timestamp_ms: int) -> bool:
        """True when the sampling interval has elapsed since the last processed frame."""
        if self._last_processed_ms is None:
            return True
        return timestamp_ms - self._last_processed_ms >= self._config.interval_ms

    def drop_frame(self) -> None:
        """Count a frame skipped by the throttle."""
        self._analysis.frames_dropped += 1

    def process_frame(
        self,
        poses: Sequence[KeypointSet],
        faces: Sequence[KeypointSet],
        timestamp_ms: int,
    ) -> VisionAnalysis | None:
        """
        Score one frame's detections.

        Returns None when the frame was dropped by the throttle.
        """
        analysis = self._analysis
        if not self.should_process(timestamp_ms):
            self.drop_frame()
            return None

        self._last_processed_ms = timestamp_ms
        analysis.frames_analyzed += 1
        analysis.persons_detected = len(poses)
        analysis.faces_detected = len(faces)
        min_conf = self._config.min_keypoint_confidence
        notes: list[str] = []

        pose = _best(poses)
        if pose is None:
            posture = gestures = presence = _NO_DETECTION
            notes.append("no pose detected")
        else:
            posture = geometry.score_posture(pose, min_conf)
            gestures = geometry.score_gestures(pose, min_conf)
            presence = geometry.score_body_presence(pose, min_conf)
            if posture.note:
                notes.append(posture.note)
        analysis.pose_complete = posture.complete

        face = _best(faces)
        if face is None:
            eye_contact = _NO_DETECTION
            emotion = geometry.EmotionReading(label=EmotionLabel.NEUTRAL, score=0.0, confidence=0.0)
            notes.append("no face detected")
        else:
            eye_contact = geometry.score_eye_contact(face, min_conf)
            emotion = geometry.classify_emotion(face, min_conf)

        engagement = geometry.score_engagement(gestures, eye_contact)
        analysis.dominant_emotion = emotion.label
        analysis.notes = tuple(notes)

        self._update(analysis.posture, posture.score, posture.confidence, timestamp_ms)
        self._update(analysis.gestures, gestures.score, gestures.confidence, timestamp_ms)
        self._update(analysis.eye_contact, eye_contact.score, eye_contact.confidence, timestamp_ms)
        self._update(analysis.emotion, emotion.score, emotion.confidence, timestamp_ms)
        self._update(analysis.engagement, engagement.score, engagement.confidence, timestamp_ms)
        self._update(analysis.body_presence, presence.score, presence.confidence, timestamp_ms)

        if notes:
            logger.debug(f"Frame at {timestamp_ms}ms: {', '.join(notes)}")
        return analysis

    def reset(self) -> None:
        self._analysis.reset()
        self._last_processed_ms = None
