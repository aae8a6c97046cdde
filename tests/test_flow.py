"""Tests for the conversation flow state machine."""

import asyncio

import pytest

from poise.analyzers.transcript import TranscriptAnalyzer
from poise.analyzers.vision import VisionAnalysis
from poise.analyzers.voice import VoiceAnalysis
from poise.conversation.flow import ConversationFlowManager
from poise.core.errors import AnalysisError, ExternalServiceError
from poise.core.events import SessionEvent
from poise.core.models import ConversationState, Dimension
from poise.scoring.aggregator import AggregationScoringEngine
from poise.scoring.feedback import FeedbackThrottle


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FailingResponder:
    def generate_ai_response(self, analysis, user_text):
        raise RuntimeError("service down")


class RecordingSpeaker:
    def __init__(self, fail=False):
        self.spoken = []
        self.fail = fail

    async def speak(self, text):
        if self.fail:
            raise RuntimeError("no audio output")
        self.spoken.append(text)


@pytest.fixture
def result(scenario_scores):
    return AggregationScoringEngine().score(scenario_scores)


@pytest.fixture
def make_flow(result, clock, no_sleep):
    def factory(**kwargs):
        kwargs.setdefault("analyze", lambda text: result)
        kwargs.setdefault("sleep", no_sleep)
        kwargs.setdefault("throttle", FeedbackThrottle(clock=clock))
        return ConversationFlowManager(**kwargs)
    return factory


def record_states(flow):
    states = []
    flow.events.subscribe(SessionEvent.STATE_CHANGE, states.append)
    return states


class TestLifecycle:
    def test_starts_inactive(self, make_flow):
        flow = make_flow()
        assert flow.current_state == ConversationState.INACTIVE
        assert not flow.is_ready_for_input

    def test_start_and_end(self, make_flow):
        flow = make_flow()
        states = record_states(flow)
        flow.start_session()
        flow.start_session()
        assert flow.is_ready_for_input
        flow.end_session()
        flow.end_session()
        assert states == [ConversationState.WAITING, ConversationState.INACTIVE]

    @pytest.mark.asyncio
    async def test_input_while_inactive_is_ignored(self, make_flow):
        flow = make_flow()
        assert await flow.handle_user_input("hello") is None
        assert flow.current_state == ConversationState.INACTIVE


class TestTurnTaking:
    @pytest.mark.asyncio
    async def test_full_cycle(self, make_flow, result):
        flow = make_flow()
        states = record_states(flow)
        inputs = []
        flow.events.subscribe(SessionEvent.USER_INPUT, inputs.append)
        flow.start_session()

        response = await flow.handle_user_input("  Tell me about your project  ")

        assert states == [
            ConversationState.WAITING,
            ConversationState.LISTENING,
            ConversationState.ANALYZING,
            ConversationState.RESPONDING,
            ConversationState.WAITING,
        ]
        assert inputs == ["Tell me about your project"]
        assert response.analysis is result
        assert flow.last_analysis is result
        assert flow.last_response is response
        assert [e.message for e in flow.history] == [response.message]
        assert flow.history[0].user_text == "Tell me about your project"

    @pytest.mark.asyncio
    async def test_overlapping_input_is_dropped(self, make_flow, result):
        async def slow_analyze(text):
            for _ in range(3):
                await asyncio.sleep(0)
            return result

        flow = make_flow(analyze=slow_analyze)
        states = record_states(flow)
        flow.start_session()

        first, second = await asyncio.gather(
            flow.handle_user_input("first answer"),
            flow.handle_user_input("second answer"),
        )

        assert first is not None
        assert second is None
        assert states.count(ConversationState.ANALYZING) == 1
        assert len(flow.history) == 1

    @pytest.mark.asyncio
    async def test_empty_input_is_ignored(self, make_flow):
        flow = make_flow()
        flow.start_session()
        assert await flow.handle_user_input("   ") is None
        assert flow.current_state == ConversationState.WAITING

    @pytest.mark.asyncio
    async def test_duplicate_input_is_ignored(self, make_flow):
        flow = make_flow()
        flow.start_session()
        assert await flow.handle_user_input("same question") is not None
        assert await flow.handle_user_input("Same  question") is None
        assert len(flow.history) == 1

    @pytest.mark.asyncio
    async def test_cooldown(self, make_flow):
        sleep = RecordingSleep()
        flow = make_flow(sleep=sleep)
        flow.start_session()
        await flow.handle_user_input("hello")
        assert sleep.calls == [2.0]


class TestFailures:
    @pytest.mark.asyncio
    async def test_analysis_error_returns_to_waiting(self, make_flow):
        def broken(text):
            raise ValueError("bad snapshot")

        flow = make_flow(analyze=broken)
        errors = []
        flow.events.subscribe(SessionEvent.ERROR, errors.append)
        flow.start_session()

        assert await flow.handle_user_input("hello") is None
        assert flow.current_state == ConversationState.WAITING
        assert isinstance(errors[0], AnalysisError)
        assert isinstance(errors[0].__cause__, ValueError)
        assert len(flow.history) == 0

    @pytest.mark.asyncio
    async def test_responder_failure_apologizes(self, make_flow):
        flow = make_flow(responder=FailingResponder())
        errors = []
        flow.events.subscribe(SessionEvent.ERROR, errors.append)
        flow.start_session()

        response = await flow.handle_user_input("hello")

        assert response.message.startswith("Sorry")
        assert isinstance(errors[0], ExternalServiceError)
        assert flow.current_state == ConversationState.WAITING
        assert len(flow.history) == 1

    @pytest.mark.asyncio
    async def test_end_during_analysis(self, make_flow, result):
        release = asyncio.Event()

        async def waiting_analyze(text):
            await release.wait()
            return result

        flow = make_flow(analyze=waiting_analyze)
        completed = []
        flow.events.subscribe(SessionEvent.ANALYSIS_COMPLETE, completed.append)
        flow.start_session()

        task = asyncio.create_task(flow.handle_user_input("hello"))
        await asyncio.sleep(0)
        assert flow.current_state == ConversationState.ANALYZING

        flow.end_session()
        release.set()

        assert await task is None
        assert flow.current_state == ConversationState.INACTIVE
        assert completed == []
        assert len(flow.history) == 0


class TestSpeaker:
    @pytest.mark.asyncio
    async def test_response_is_spoken(self, make_flow):
        speaker = RecordingSpeaker()
        flow = make_flow(speaker=speaker)
        flow.start_session()
        response = await flow.handle_user_input("hello")
        assert speaker.spoken == [response.message]

    @pytest.mark.asyncio
    async def test_speech_failure_is_reported(self, make_flow):
        flow = make_flow(speaker=RecordingSpeaker(fail=True))
        errors = []
        flow.events.subscribe(SessionEvent.ERROR, errors.append)
        flow.start_session()

        assert await flow.handle_user_input("hello") is not None
        assert isinstance(errors[0], ExternalServiceError)
        assert flow.current_state == ConversationState.WAITING


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_scored_turn(self, clock, no_sleep):
        voice = VoiceAnalysis()
        voice.volume.update(70, 1.0, 0, alpha=1.0)
        voice.pitch.update(90, 1.0, 0, alpha=1.0)
        voice.clarity.update(85, 1.0, 0, alpha=1.0)
        vision = VisionAnalysis()
        vision.posture.update(85, 1.0, 0, alpha=1.0)
        vision.gestures.update(60, 1.0, 0, alpha=1.0)

        transcript = TranscriptAnalyzer()
        engine = AggregationScoringEngine()

        def analyze(text):
            transcript.process_transcript(text, clock())
            return engine.aggregate(voice, vision, transcript.analysis, clock())

        flow = ConversationFlowManager(
            analyze=analyze, throttle=FeedbackThrottle(clock=clock), sleep=no_sleep,
        )
        flow.start_session()
        response = await flow.handle_user_input("Tell me about a challenge you solved")

        analysis = response.analysis
        assert analysis.overall_score == 78
        assert Dimension.FLUENCY not in analysis.dimension_scores
        assert {s.area for s in analysis.strengths} == {Dimension.POSTURE, Dimension.PITCH, Dimension.CLARITY}
        assert [i.area for i in analysis.improvements] == [Dimension.GESTURES]
        assert len(flow.history) == 1
