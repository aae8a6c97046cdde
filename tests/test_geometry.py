"""Tests for keypoint geometry heuristics."""

import pytest

from poise.analyzers import geometry
from poise.analyzers.vision import VisionAnalyzer, VisionConfig
from poise.core.models import EmotionLabel, KeypointSet
from poise.sources.synthetic import frontal_face, upright_pose


def with_points(points: KeypointSet, drop=(), **overrides) -> KeypointSet:
    """Copy a KeypointSet, moving or removing named points."""
    values = {
        name: (kp.x, kp.y, kp.score)
        for name, kp in points.items()
        if name not in drop
    }
    for name, value in overrides.items():
        values[name] = value
    return KeypointSet.from_tuples(values)


class TestPosture:
    def test_upright(self, pose):
        result = geometry.score_posture(pose)
        assert result.score == pytest.approx(100.0)
        assert result.complete
        assert result.note is None
        assert result.confidence == pytest.approx(0.9)

    def test_missing_keypoint_falls_back(self, pose):
        result = geometry.score_posture(with_points(pose, drop=("left_hip",)))
        assert result.score == geometry.POSTURE_FALLBACK_SCORE
        assert result.confidence == 0.0
        assert not result.complete
        assert result.missing == ("left_hip",)
        assert result.note == geometry.INCOMPLETE_POSE

    def test_low_confidence_counts_as_missing(self, pose):
        faint = with_points(pose, left_hip=(350.0, 400.0, 0.1))
        result = geometry.score_posture(faint)
        assert result.score == geometry.POSTURE_FALLBACK_SCORE
        assert result.missing == ("left_hip",)

    def test_shoulder_tilt(self, pose):
        tilted = with_points(pose, right_shoulder=(260.0, 192.0, 0.9))
        width = (120.0 ** 2 + 12.0 ** 2) ** 0.5
        expected = (100.0 - 12.0 / width * 200.0 + 100.0 + 100.0) / 3
        result = geometry.score_posture(tilted)
        assert result.score == pytest.approx(expected)
        assert result.score == pytest.approx(93.4, abs=0.1)

    def test_scale_invariant(self, pose):
        tilted = with_points(pose, right_shoulder=(260.0, 192.0, 0.9))
        normalized = KeypointSet.from_tuples({
            name: (kp.x / 640.0, kp.y / 480.0 * 0.75, kp.score) for name, kp in tilted.items()
        })
        scaled = KeypointSet.from_tuples({
            name: (kp.x * 0.01, kp.y * 0.01, kp.score) for name, kp in tilted.items()
        })
        assert geometry.score_posture(scaled).score == pytest.approx(geometry.score_posture(tilted).score)
        assert geometry.score_posture(normalized).score < 100.0

    def test_lean(self, pose):
        leaning = with_points(pose, nose=(350.0, 100.0, 0.9))
        # 30px off center over a 120px shoulder width
        assert geometry.score_posture(leaning).score == pytest.approx((100 + 100 + 75) / 3)


class TestGestures:
    def test_open_gestures_beat_hanging_arms(self):
        open_arms = geometry.score_gestures(upright_pose(gesturing=True))
        hanging = geometry.score_gestures(upright_pose(gesturing=False))
        assert open_arms.score == pytest.approx(48.4, abs=0.5)
        assert hanging.score == pytest.approx(5.2, abs=0.5)
        assert open_arms.score > hanging.score + 20

    def test_no_arms(self, pose):
        armless = with_points(pose, drop=("left_wrist", "right_wrist"))
        result = geometry.score_gestures(armless)
        assert result.score == 0.0
        assert result.note == "arms not visible"
        assert set(result.missing) == {"left_wrist", "right_wrist"}

    def test_one_arm_is_incomplete(self, pose):
        result = geometry.score_gestures(with_points(pose, drop=("right_elbow",)))
        assert not result.complete
        assert result.score == pytest.approx(48.4, abs=0.5)


class TestEyeContact:
    def test_facing_camera(self, face):
        assert geometry.score_eye_contact(face).score == pytest.approx(100.0)

    def test_turned_head(self, face):
        turned = with_points(face, nose=(330.0, 120.0, 0.9))
        assert geometry.score_eye_contact(turned).score == pytest.approx(50.0)

    def test_missing_eye(self, face):
        result = geometry.score_eye_contact(with_points(face, drop=("left_eye",)))
        assert result.score == 0.0
        assert not result.complete


class TestEmotion:
    def test_smile_is_happy(self):
        reading = geometry.classify_emotion(frontal_face(smiling=True))
        assert reading.label == EmotionLabel.HAPPY
        assert reading.score == 80.0
        assert reading.curvature == pytest.approx(0.05)
        assert reading.eye_openness == pytest.approx(0.2)

    def test_flat_mouth_is_neutral(self):
        reading = geometry.classify_emotion(frontal_face(smiling=False))
        assert reading.label == EmotionLabel.NEUTRAL
        assert reading.score == 50.0

    def test_lowered_corners_are_sad(self):
        face = with_points(frontal_face(smiling=False),
                           upper_lip=(320.0, 130.0, 0.9), lower_lip=(320.0, 138.0, 0.9))
        reading = geometry.classify_emotion(face)
        assert reading.label == EmotionLabel.SAD
        assert reading.score == 30.0

    def test_narrowed_eyes_are_focused(self):
        face = with_points(
            frontal_face(smiling=False),
            left_eye_top=(300.0, 99.0, 0.9), left_eye_bottom=(300.0, 101.0, 0.9),
            right_eye_top=(340.0, 99.0, 0.9), right_eye_bottom=(340.0, 101.0, 0.9),
        )
        reading = geometry.classify_emotion(face)
        assert reading.label == EmotionLabel.FOCUSED
        assert reading.score == 70.0

    def test_tied_votes_are_neutral(self):
        # curvature 0.06 and openness 0.06 give equal happy and focused strength
        face = with_points(
            frontal_face(smiling=False),
            upper_lip=(320.0, 138.4, 0.9), lower_lip=(320.0, 146.4, 0.9),
            left_eye_top=(300.0, 98.8, 0.9), left_eye_bottom=(300.0, 101.2, 0.9),
            right_eye_top=(340.0, 98.8, 0.9), right_eye_bottom=(340.0, 101.2, 0.9),
        )
        reading = geometry.classify_emotion(face)
        assert reading.label == EmotionLabel.NEUTRAL
        assert reading.score == 50.0

    def test_missing_mouth(self, face):
        reading = geometry.classify_emotion(with_points(face, drop=("mouth_left",)))
        assert reading.label == EmotionLabel.NEUTRAL
        assert reading.score == 0.0
        assert reading.confidence == 0.0

    def test_missing_nose(self, face):
        reading = geometry.classify_emotion(with_points(face, drop=("nose",)))
        assert reading.score == 0.0


FIVE_POINTS = ("left_eye", "right_eye", "nose", "mouth_left", "mouth_right")


def five_point_face(left_y: float = 140.0, right_y: float = 140.0) -> KeypointSet:
    """Detector-style face: eyes, nose and mouth corners only."""
    face = frontal_face(smiling=False)
    extras = tuple(name for name, _ in face.items() if name not in FIVE_POINTS)
    return with_points(
        face,
        drop=extras,
        mouth_left=(305.0, left_y, 0.9),
        mouth_right=(335.0, right_y, 0.9),
    )


class TestFivePointEmotion:
    def test_resting_mouth_is_neutral(self):
        reading = geometry.classify_emotion(five_point_face())
        assert reading.label == EmotionLabel.NEUTRAL
        assert reading.score == 50.0
        assert reading.curvature == pytest.approx(0.0)
        assert reading.eye_openness is None

    def test_raised_corners_are_happy(self):
        # corners 16px under the nose against a resting 20px, over a 40px eye distance
        reading = geometry.classify_emotion(five_point_face(136.0, 136.0))
        assert reading.label == EmotionLabel.HAPPY
        assert reading.score == 80.0
        assert reading.curvature == pytest.approx(0.1)

    def test_lowered_corners_are_sad(self):
        reading = geometry.classify_emotion(five_point_face(146.0, 146.0))
        assert reading.label == EmotionLabel.SAD
        assert reading.score == 30.0
        assert reading.curvature == pytest.approx(-0.15)

    def test_uneven_corners_still_give_a_reading(self):
        reading = geometry.classify_emotion(five_point_face(130.0, 145.0))
        assert reading.curvature is not None
        assert reading.label == EmotionLabel.HAPPY
        assert reading.confidence > 0.0

    def test_lip_points_take_precedence(self):
        face = with_points(
            five_point_face(136.0, 136.0),
            upper_lip=(320.0, 136.0, 0.9),
            lower_lip=(320.0, 136.0, 0.9),
        )
        reading = geometry.classify_emotion(face)
        assert reading.curvature == pytest.approx(0.0)
        assert reading.label == EmotionLabel.NEUTRAL

    def test_vision_scores_five_point_face(self, pose):
        analyzer = VisionAnalyzer(VisionConfig(smoothing_alpha=1.0))
        analysis = analyzer.process_frame([pose], [five_point_face(136.0, 136.0)], 0)
        assert analysis.dominant_emotion == EmotionLabel.HAPPY
        assert analysis.emotion.score == 80.0


class TestPresenceAndEngagement:
    def test_full_body(self, pose):
        result = geometry.score_body_presence(pose)
        assert result.score == pytest.approx(100.0)
        assert result.complete

    def test_empty_detection(self):
        result = geometry.score_body_presence(KeypointSet())
        assert result.score == 0.0
        assert not result.complete

    def test_engagement_is_mean(self):
        gestures = geometry.GeometryScore(score=40.0, confidence=0.8)
        eye_contact = geometry.GeometryScore(score=90.0, confidence=0.6)
        result = geometry.score_engagement(gestures, eye_contact)
        assert result.score == pytest.approx(65.0)
        assert result.confidence == pytest.approx(0.6)
