"""
Feedback throttling, deduplication and local response composition.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from poise.core.models import (
    AIResponse,
    AnalysisResult,
    FeedbackEntry,
    PerformanceLevel,
    Priority,
)
from poise.scoring.aggregator import PhraseSelector

logger = logging.getLogger(__name__)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def similarity(message1: str, message2: str) -> float:
    """
    Token-overlap similarity.

    Count of words from message1 that also occur in message2, over
    the longer message's word count. Lower-cased whitespace tokens.
    """
    words1 = message1.lower().split()
    words2 = message2.lower().split()
    longest = max(len(words1), len(words2))
    if longest == 0:
        return 1.0
    vocabulary = set(words2)
    shared = sum(1 for word in words1 if word in vocabulary)
    return shared / longest


class RejectReason(str, Enum):
    """Why a response was kept out of the feedback history."""
    DUPLICATE_INPUT = "duplicate_input"
    RATE_LIMITED = "rate_limited"
    DUPLICATE_MESSAGE = "duplicate_message"
    SIMILAR_MESSAGE = "similar_message"


@dataclass
class FeedbackConfig:
    """Feedback spam limits."""
    duplicate_input_window_ms: int = 5000
    rate_window_ms: int = 10000
    max_responses_per_window: int = 3
    similarity_threshold: float = 0.8
    similarity_history: int = 3


class FeedbackThrottle:
    """
    Gatekeeper for the feedback history.

    Input checks (before analysis):
    - same input text already answered within duplicate_input_window_ms
    - more than max_responses_per_window responses in rate_window_ms

    Message checks (after generation):
    - identical to the immediately preceding message
    - similarity above the threshold with any of the last entries

    Accepted entries are appended in arrival order and numbered with
    a sequence id; timestamps are informational only.
    """

    def __init__(
        self,
        config: FeedbackConfig | None = None,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self._config = config or FeedbackConfig()
        self._clock = clock
        self._history: list[FeedbackEntry] = []
        self._answered_inputs: dict[str, int] = {}
        self._response_times: deque[int] = deque()
        self._next_id = 1
        self.last_rejection: RejectReason | None = None

    @property
    def config(self) -> FeedbackConfig:
        return self._config

    @property
    def history(self) -> tuple[FeedbackEntry, ...]:
        return tuple(self._history)

    def now(self) -> int:
        return self._clock()

    @staticmethod
    def _normalize(text: str) -> str:
        return " ".join(text.lower().split())

    def _prune(self, now_ms: int) -> None:
        window = self._config.rate_window_ms
        while self._response_times and now_ms - self._response_times[0] >= window:
            self._response_times.popleft()

        horizon = self._config.duplicate_input_window_ms
        expired = [text for text, ts in self._answered_inputs.items() if now_ms - ts >= horizon]
        for text in expired:
            del self._answered_inputs[text]

    def check_input(self, user_text: str, now_ms: int | None = None) -> RejectReason | None:
        """Return a reject reason for this input, or None when it may proceed."""
        now_ms = self.now() if now_ms is None else now_ms
        self._prune(now_ms)

        if self._normalize(user_text) in self._answered_inputs:
            return RejectReason.DUPLICATE_INPUT
        if len(self._response_times) > self._config.max_responses_per_window:
            return RejectReason.RATE_LIMITED
        return None

    def check_message(self, message: str) -> RejectReason | None:
        """Return a reject reason for this message, or None when it is new enough."""
        if self._history and message == self._history[-1].message:
            return RejectReason.DUPLICATE_MESSAGE

        recent = self._history[-self._config.similarity_history:] if self._config.similarity_history > 0 else []
        for entry in recent:
            if similarity(message, entry.message) > self._config.similarity_threshold:
                return RejectReason.SIMILAR_MESSAGE
        return None

    def submit(
        self,
        message: str,
        analysis: AnalysisResult,
        user_text: str | None = None,
        now_ms: int | None = None,
    ) -> FeedbackEntry | None:
        """
        Run every check and append the entry when all pass.

        Returns the new entry, or None (see last_rejection).
        """
        now_ms = self.now() if now_ms is None else now_ms

        reason = self.check_input(user_text, now_ms) if user_text is not None else None
        if reason is None:
            reason = self.check_message(message)
        self.last_rejection = reason
        if reason is not None:
            logger.warning(f"Feedback rejected ({reason.value}): {message[:60]!r}")
            return None

        entry = FeedbackEntry(
            id=self._next_id,
            timestamp_ms=now_ms,
            message=message,
            analysis=analysis,
            performance_level=analysis.performance_level,
            user_text=user_text,
        )
        self._next_id += 1
        self._history.append(entry)

        self._response_times.append(now_ms)
        if user_text is not None:
            self._answered_inputs[self._normalize(user_text)] = now_ms
        return entry

    def clear(self) -> None:
        """Drop history and trackers. Sequence ids keep increasing."""
        self._history.clear()
        self._answered_inputs.clear()
        self._response_times.clear()
        self.last_rejection = None

    def __len__(self) -> int:
        return len(self._history)


_OPENINGS: dict[PerformanceLevel, tuple[str, ...]] = {
    PerformanceLevel.EXCELLENT: (
        "Wow! That was an excellent answer!",
        "Outstanding delivery, really well done!",
    ),
    PerformanceLevel.GOOD: (
        "Great job! You delivered a solid answer.",
        "Nice work, that came across well.",
    ),
    PerformanceLevel.FAIR: (
        "Good effort! I can see you're improving.",
        "That was a decent start to build on.",
    ),
    PerformanceLevel.NEEDS_IMPROVEMENT: (
        "I appreciate your effort! Let's work together to improve.",
        "Thanks for giving it a go, we have a few things to practice.",
    ),
}

_CLOSINGS = (
    "Keep practicing and you'll continue to improve!",
    "Let's keep going, what would you like to talk about next?",
    "Try another answer whenever you're ready.",
)

_APOLOGY = "Sorry, I couldn't put my feedback into words just now. Let's keep going, please try again."


class FeedbackComposer:
    """
    Local response generator.

    Builds the coach's reply from an AnalysisResult without any external
    language service: a tier opening, the top strength, the most
    urgent improvement and an encouraging close.
    """

    def __init__(self, seed: int | None = 0) -> None:
        self._selector = PhraseSelector(seed)

    def compose(self, analysis: AnalysisResult) -> str:
        if not analysis.has_data:
            return "I'm still getting a read on your delivery. Keep talking and I'll share feedback soon."

        parts = [self._selector.choose(_OPENINGS[analysis.performance_level])]

        if analysis.strengths:
            strength = max(analysis.strengths, key=lambda s: s.score)
            parts.append(f"I particularly liked this: {strength.message.lower()}")

        if analysis.improvements:
            top = analysis.improvements[0]
            lead = "Let's focus on this" if top.priority is Priority.HIGH else "One thing to try"
            parts.append(f"{lead}: {top.message.lower()}")

        parts.append(self._selector.choose(_CLOSINGS))
        return " ".join(parts)

    def generate_ai_response(self, analysis: AnalysisResult, user_text: str) -> AIResponse:
        return AIResponse(message=self.compose(analysis), analysis=analysis)

    @staticmethod
    def apology(analysis: AnalysisResult) -> AIResponse:
        """Stand-in reply when the response service fails."""
        return AIResponse(message=_APOLOGY, analysis=analysis)
