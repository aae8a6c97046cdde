"""Tests for output adapters."""

from poise.adapters.base import DictAdapter, SessionSnapshot
from poise.analyzers.transcript import TranscriptAnalysis
from poise.analyzers.voice import VoiceAnalysis
from poise.core.models import ConversationState, Dimension
from poise.scoring.aggregator import AggregationScoringEngine


class TestDictAdapter:
    def test_empty_snapshot(self):
        data = DictAdapter().transform(SessionSnapshot(state=ConversationState.INACTIVE))
        assert data == {
            "state": "inactive",
            "voice": None,
            "vision": None,
            "transcript": None,
            "last_analysis": None,
            "history": [],
        }

    def test_scores_and_analysis(self, scenario_scores):
        voice = VoiceAnalysis()
        voice.volume.update(70, 1.0, 100, alpha=1.0)
        result = AggregationScoringEngine().score(scenario_scores)

        data = DictAdapter().transform(SessionSnapshot(
            state=ConversationState.WAITING,
            voice=voice,
            transcript=TranscriptAnalysis(),
            last_analysis=result,
        ))

        assert data["voice"]["scores"] == {
            "volume": {"score": 70.0, "confidence": 1.0, "timestamp_ms": 100},
        }
        assert data["voice"]["quality"] is None
        assert data["transcript"]["scores"] == {}
        assert data["last_analysis"]["overall_score"] == 78
        assert data["last_analysis"]["performance_level"] == "good"
        assert data["last_analysis"]["dimension_scores"][Dimension.POSTURE.value] == 85.0
        assert data["last_analysis"]["improvements"][0]["priority"] == "low"

    def test_name(self):
        assert DictAdapter().name == "dict"
