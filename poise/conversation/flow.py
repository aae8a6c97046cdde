"""
Conversation flow.

Single source of truth for whose turn it is:

    waiting -> listening -> analyzing -> responding -> (cool-down) -> waiting

`inactive` is entered from any state when the session ends and left
only by start_session().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from poise.core.errors import AnalysisError, ExternalServiceError
from poise.core.events import EventBus, SessionEvent
from poise.core.models import AIResponse, AnalysisResult, ConversationState, FeedbackEntry
from poise.core.stream import ResponseGenerator, Speaker, maybe_await
from poise.scoring.feedback import FeedbackComposer, FeedbackThrottle

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[str], "AnalysisResult | Awaitable[AnalysisResult]"]


class ConversationFlowManager:
    """
    Turn-taking state machine.

    Input is accepted only while active and waiting; anything else is
    logged and dropped so analysis cycles never overlap. Failures
    always land back in waiting (or inactive if the session ended).

    Usage:
        flow = ConversationFlowManager(analyze=engine_callback)
        flow.events.subscribe(SessionEvent.STATE_CHANGE, print)
        flow.start_session()
        response = await flow.handle_user_input("Hello")
    """

    def __init__(
        self,
        analyze: AnalyzeFn,
        responder: ResponseGenerator | None = None,
        speaker: Speaker | None = None,
        throttle: FeedbackThrottle | None = None,
        events: EventBus | None = None,
        cooldown_ms: int = 2000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._analyze = analyze
        self._responder = responder or FeedbackComposer()
        self._speaker = speaker
        self._throttle = throttle or FeedbackThrottle()
        self._events = events or EventBus()
        self._cooldown_ms = cooldown_ms
        self._sleep = sleep

        self._state = ConversationState.INACTIVE
        self._active = False
        self._generation = 0
        self._user_input: str | None = None
        self._pending: AnalysisResult | None = None
        self._last_analysis: AnalysisResult | None = None
        self._last_response: AIResponse | None = None

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def throttle(self) -> FeedbackThrottle:
        return self._throttle

    @property
    def current_state(self) -> ConversationState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_ready_for_input(self) -> bool:
        return self._active and self._state is ConversationState.WAITING

    @property
    def history(self) -> tuple[FeedbackEntry, ...]:
        return self._throttle.history

    @property
    def last_analysis(self) -> AnalysisResult | None:
        return self._last_analysis

    @property
    def last_response(self) -> AIResponse | None:
        return self._last_response

    def _set_state(self, state: ConversationState) -> None:
        self._state = state
        logger.debug(f"Conversation state -> {state.value}")
        self._events.emit(SessionEvent.STATE_CHANGE, state)

    def _is_current(self, generation: int) -> bool:
        return self._active and generation == self._generation

    def start_session(self) -> None:
        if self._active:
            logger.info("Session already active, ignoring start")
            return
        self._active = True
        self._generation += 1
        self._throttle.clear()
        self._user_input = None
        self._pending = None
        self._last_analysis = None
        self._last_response = None
        logger.info("Conversation session started")
        self._set_state(ConversationState.WAITING)

    def end_session(self) -> None:
        if not self._active and self._state is ConversationState.INACTIVE:
            return
        self._active = False
        self._user_input = None
        self._pending = None
        logger.info("Conversation session ended")
        self._set_state(ConversationState.INACTIVE)

    async def handle_user_input(self, text: str) -> AIResponse | None:
        """
        Run one analysis/response cycle for a user utterance.

        Returns the response delivered, or None when the input was
        rejected or the cycle was cut short.
        """
        if not self._active:
            logger.warning("Input ignored: session is not active")
            return None
        if self._state is not ConversationState.WAITING:
            logger.warning(f"Input ignored while {self._state.value}")
            return None

        text = text.strip()
        if not text:
            logger.warning("Input ignored: empty text")
            return None

        reason = self._throttle.check_input(text)
        if reason is not None:
            logger.warning(f"Input ignored ({reason.value}): {text[:60]!r}")
            return None

        generation = self._generation
        self._user_input = text
        self._set_state(ConversationState.LISTENING)
        self._events.emit(SessionEvent.USER_INPUT, text)
        self._set_state(ConversationState.ANALYZING)

        try:
            return await self._run_cycle(text, generation)
        finally:
            if self._is_current(generation) and self._state is not ConversationState.WAITING:
                self._reset_for_next_input()

    async def _run_cycle(self, text: str, generation: int) -> AIResponse | None:
        try:
            analysis = await maybe_await(self._analyze(text))
        except Exception as e:
            logger.warning(f"Analysis failed: {e}")
            error = AnalysisError(f"Analysis failed: {e}")
            error.__cause__ = e
            if self._is_current(generation):
                self._events.emit(SessionEvent.ERROR, error)
            return None

        if not self._is_current(generation):
            return None

        self._pending = analysis
        self._last_analysis = analysis
        self._events.emit(SessionEvent.ANALYSIS_COMPLETE, analysis)
        self._set_state(ConversationState.RESPONDING)

        try:
            response = await maybe_await(self._responder.generate_ai_response(analysis, text))
        except Exception as e:
            logger.warning(f"Response generation failed: {e}")
            error = ExternalServiceError(f"Response generation failed: {e}")
            error.__cause__ = e
            if self._is_current(generation):
                self._events.emit(SessionEvent.ERROR, error)
            response = FeedbackComposer.apology(analysis)

        if not self._is_current(generation):
            return None

        self._last_response = response
        self._throttle.submit(response.message, analysis, user_text=text)
        self._events.emit(SessionEvent.AI_RESPONSE_READY, response)

        if self._speaker is not None:
            try:
                await maybe_await(self._speaker.speak(response.message))
            except Exception as e:
                logger.warning(f"Speech playback failed: {e}")
                error = ExternalServiceError(f"Speech playback failed: {e}")
                error.__cause__ = e
                if self._is_current(generation):
                    self._events.emit(SessionEvent.ERROR, error)

        if not self._is_current(generation):
            return response

        await self._sleep(self._cooldown_ms / 1000)
        return response

    def _reset_for_next_input(self) -> None:
        self._user_input = None
        self._pending = None
        self._set_state(ConversationState.WAITING)
