"""
Keypoint geometry heuristics.

Pure functions from KeypointSets to 0-100 scores. Distances are
normalized by a body or face scale (shoulder width, arm length,
inter-eye distance) so pixel and normalized coordinates both work.

Image convention: y grows downwards.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from poise.core.models import EmotionLabel, Keypoint, KeypointSet, clamp

BODY_KEYPOINTS = (
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)
POSTURE_KEYPOINTS = ("nose", "left_shoulder", "right_shoulder", "left_hip", "right_hip")

INCOMPLETE_POSE = "incomplete pose"
POSTURE_FALLBACK_SCORE = 50.0

EMOTION_SCORES = {
    EmotionLabel.HAPPY: 80.0,
    EmotionLabel.FOCUSED: 70.0,
    EmotionLabel.NEUTRAL: 50.0,
    EmotionLabel.SAD: 30.0,
}

_EPS = 1e-6


@dataclass(frozen=True, slots=True)
class GeometryScore:
    """
    One heuristic score.

    complete is False when required keypoints were missing; note says why.
    """
    score: float
    confidence: float
    complete: bool = True
    missing: tuple[str, ...] = ()
    note: str | None = None


@dataclass(frozen=True, slots=True)
class EmotionReading:
    label: EmotionLabel
    score: float
    confidence: float
    curvature: float | None = None
    eye_openness: float | None = None


def distance(a: Keypoint, b: Keypoint) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def _require(
    points: KeypointSet,
    names: Sequence[str],
    min_confidence: float,
) -> tuple[dict[str, Keypoint], tuple[str, ...]]:
    found: dict[str, Keypoint] = {}
    missing: list[str] = []
    for name in names:
        kp = points.visible(name, min_confidence)
        if kp is None:
            missing.append(name)
        else:
            found[name] = kp
    return found, tuple(missing)


def _mean_score(points: dict[str, Keypoint]) -> float:
    if not points:
        return 0.0
    return sum(kp.score for kp in points.values()) / len(points)


def score_posture(
    pose: KeypointSet,
    min_confidence: float = 0.3,
    tilt_penalty: float = 200.0,
    spine_penalty: float = 100.0,
) -> GeometryScore:
    """
    Upright, level posture.

    Penalties against 100 for:
    - shoulder tilt: |left_shoulder.y - right_shoulder.y|
    - hip tilt: |left_hip.y - right_hip.y|
    - spine lean: horizontal offset of nose from hip center

    All normalized by shoulder width. Any missing keypoint yields the
    fixed fallback score with an "incomplete pose" note.
    """
    found, missing = _require(pose, POSTURE_KEYPOINTS, min_confidence)
    if missing:
        return GeometryScore(
            score=POSTURE_FALLBACK_SCORE,
            confidence=0.0,
            complete=False,
            missing=missing,
            note=INCOMPLETE_POSE,
        )

    ls, rs = found["left_shoulder"], found["right_shoulder"]
    lh, rh = found["left_hip"], found["right_hip"]
    nose = found["nose"]

    width = distance(ls, rs)
    if width < _EPS:
        return GeometryScore(
            score=POSTURE_FALLBACK_SCORE,
            confidence=0.0,
            complete=False,
            note=INCOMPLETE_POSE,
        )

    shoulder_alignment = max(0.0, 100.0 - abs(ls.y - rs.y) / width * tilt_penalty)
    hip_alignment = max(0.0, 100.0 - abs(lh.y - rh.y) / width * tilt_penalty)
    hip_center_x = (lh.x + rh.x) / 2
    spine_alignment = max(0.0, 100.0 - abs(nose.x - hip_center_x) / width * spine_penalty)

    score = (shoulder_alignment + hip_alignment + spine_alignment) / 3
    return GeometryScore(score=clamp(score), confidence=_mean_score(found))


def _arm_score(shoulder: Keypoint, elbow: Keypoint, wrist: Keypoint) -> float | None:
    arm_length = distance(shoulder, elbow) + distance(elbow, wrist)
    if arm_length < _EPS:
        return None
    raise_ratio = (shoulder.y - wrist.y) / arm_length
    spread_ratio = abs(wrist.x - shoulder.x) / arm_length

    # Hanging arm: raise -1. Wrist level with shoulder: raise 0.
    raise_component = clamp((raise_ratio + 1) / 1.5, 0.0, 1.0)
    spread_component = clamp(spread_ratio / 0.6, 0.0, 1.0)
    return 100.0 * (0.6 * raise_component + 0.4 * spread_component)


def score_gestures(pose: KeypointSet, min_confidence: float = 0.3) -> GeometryScore:
    """
    Open, active hand gestures.

    Per arm: wrist raise relative to the shoulder and horizontal
    spread, both normalized by arm length. Averaged over visible arms.
    """
    arm_scores: list[float] = []
    confidences: list[float] = []
    missing: list[str] = []

    for side in ("left", "right"):
        names = (f"{side}_shoulder", f"{side}_elbow", f"{side}_wrist")
        found, side_missing = _require(pose, names, min_confidence)
        if side_missing:
            missing.extend(side_missing)
            continue
        arm = _arm_score(*(found[n] for n in names))
        if arm is None:
            continue
        arm_scores.append(arm)
        confidences.append(_mean_score(found))

    if not arm_scores:
        return GeometryScore(score=0.0, confidence=0.0, complete=False,
                             missing=tuple(missing), note="arms not visible")

    return GeometryScore(
        score=clamp(sum(arm_scores) / len(arm_scores)),
        confidence=sum(confidences) / len(confidences),
        complete=len(arm_scores) == 2,
        missing=tuple(missing),
        note=None if len(arm_scores) == 2 else "one arm visible",
    )


def score_eye_contact(
    face: KeypointSet,
    min_confidence: float = 0.3,
    offset_penalty: float = 200.0,
) -> GeometryScore:
    """
    Facing the camera.

    Horizontal offset between the eye midpoint and the nose,
    normalized by inter-eye distance. Small offset, high score.
    """
    found, missing = _require(face, ("left_eye", "right_eye", "nose"), min_confidence)
    if missing:
        return GeometryScore(score=0.0, confidence=0.0, complete=False,
                             missing=missing, note="face incomplete")

    le, re, nose = found["left_eye"], found["right_eye"], found["nose"]
    eye_distance = distance(le, re)
    if eye_distance < _EPS:
        return GeometryScore(score=0.0, confidence=0.0, complete=False, note="face incomplete")

    eye_center_x = (le.x + re.x) / 2
    offset = abs(eye_center_x - nose.x) / eye_distance
    return GeometryScore(
        score=clamp(100.0 - offset * offset_penalty),
        confidence=_mean_score(found),
    )


def classify_emotion(
    face: KeypointSet,
    min_confidence: float = 0.3,
    smile_threshold: float = 0.04,
    focus_threshold: float = 0.12,
    resting_mouth_drop: float = 0.5,
) -> EmotionReading:
    """
    Heuristic expression class from mouth curvature and eye openness.

    Needs the five face keypoints (eyes, nose, mouth corners); every
    measure is taken over inter-eye distance.

    - curvature: how far the mouth corners sit above their resting
      height below the nose (positive when corners are raised). When
      both lip midpoints are visible the lip center is used as the
      reference instead, which does not depend on face proportions.
    - eye openness: mean eyelid gap, only when all four lid points
      are visible

    Raised corners vote happy, lowered corners vote sad, narrowed eyes
    vote focused. No evidence or a tie between votes gives neutral.
    """
    found, missing = _require(
        face, ("left_eye", "right_eye", "nose", "mouth_left", "mouth_right"), min_confidence,
    )
    if missing:
        return EmotionReading(label=EmotionLabel.NEUTRAL, score=0.0, confidence=0.0)

    eye_distance = distance(found["left_eye"], found["right_eye"])
    if eye_distance < _EPS:
        return EmotionReading(label=EmotionLabel.NEUTRAL, score=0.0, confidence=0.0)

    corners_y = (found["mouth_left"].y + found["mouth_right"].y) / 2

    upper, lower = face.visible("upper_lip", min_confidence), face.visible("lower_lip", min_confidence)
    if upper is not None and lower is not None:
        curvature = ((upper.y + lower.y) / 2 - corners_y) / eye_distance
    else:
        curvature = resting_mouth_drop - (corners_y - found["nose"].y) / eye_distance

    openness = None
    lids, _ = _require(
        face,
        ("left_eye_top", "left_eye_bottom", "right_eye_top", "right_eye_bottom"),
        min_confidence,
    )
    if len(lids) == 4:
        gaps = (
            abs(lids["left_eye_bottom"].y - lids["left_eye_top"].y),
            abs(lids["right_eye_bottom"].y - lids["right_eye_top"].y),
        )
        openness = (sum(gaps) / 2) / eye_distance

    evidence: dict[EmotionLabel, float] = {}
    if curvature > smile_threshold:
        evidence[EmotionLabel.HAPPY] = (curvature - smile_threshold) / smile_threshold
    elif curvature < -smile_threshold:
        evidence[EmotionLabel.SAD] = (-curvature - smile_threshold) / smile_threshold
    if openness is not None and openness < focus_threshold:
        evidence[EmotionLabel.FOCUSED] = (focus_threshold - openness) / focus_threshold

    base_confidence = _mean_score(found)
    if not evidence:
        return EmotionReading(
            label=EmotionLabel.NEUTRAL,
            score=EMOTION_SCORES[EmotionLabel.NEUTRAL],
            confidence=base_confidence * 0.5,
            curvature=curvature,
            eye_openness=openness,
        )

    ranked = sorted(evidence.items(), key=lambda item: item[1], reverse=True)
    if len(ranked) > 1 and math.isclose(ranked[0][1], ranked[1][1], rel_tol=1e-6):
        label, strength = EmotionLabel.NEUTRAL, 0.0
    else:
        label, strength = ranked[0]

    return EmotionReading(
        label=label,
        score=EMOTION_SCORES[label],
        confidence=base_confidence * min(1.0, 0.5 + strength / 2),
        curvature=curvature,
        eye_openness=openness,
    )


def posture_indicator(pose: KeypointSet, min_confidence: float = 0.3) -> float:
    """Level shoulders and a head centered over them (0-100)."""
    found, missing = _require(pose, ("nose", "left_shoulder", "right_shoulder"), min_confidence)
    if missing:
        return 0.0
    ls, rs, nose = found["left_shoulder"], found["right_shoulder"], found["nose"]
    width = distance(ls, rs)
    if width < _EPS:
        return 0.0
    level = max(0.0, 100.0 - abs(ls.y - rs.y) / width * 200.0)
    centered = max(0.0, 100.0 - abs(nose.x - (ls.x + rs.x) / 2) / width * 100.0)
    return (level + centered) / 2


def score_body_presence(
    pose: KeypointSet,
    min_confidence: float = 0.3,
    expected: Sequence[str] = BODY_KEYPOINTS,
) -> GeometryScore:
    """Share of expected keypoints visible, blended with the posture indicator."""
    if not expected:
        return GeometryScore(score=0.0, confidence=0.0, complete=False)
    visible = sum(1 for name in expected if pose.visible(name, min_confidence) is not None)
    visibility = visible / len(expected) * 100.0
    score = (visibility + posture_indicator(pose, min_confidence)) / 2
    return GeometryScore(
        score=clamp(score),
        confidence=pose.score,
        complete=visible == len(expected),
    )


def score_engagement(gestures: GeometryScore, eye_contact: GeometryScore) -> GeometryScore:
    """Derived composite: mean of gesture and eye-contact scores."""
    return GeometryScore(
        score=(gestures.score + eye_contact.score) / 2,
        confidence=min(gestures.confidence, eye_contact.confidence),
        complete=gestures.complete and eye_contact.complete,
    )
