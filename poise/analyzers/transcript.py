"""
Transcript analyzer.

Word-level delivery signals from final transcripts: filler-word
ratio (fluency) and hedging versus assertive wording (confidence).
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass, field

from poise.analyzers.base import Analyzer
from poise.core.models import Dimension, MetricSnapshot, clamp

logger = logging.getLogger(__name__)

FILLER_PHRASES = (
    "um", "uh", "er", "like", "so", "well", "actually", "basically",
    "you know", "i mean",
)
HEDGE_PHRASES = (
    "maybe", "perhaps", "might", "could", "possibly", "somewhat", "rather",
    "i think", "i guess", "kind of", "sort of", "a bit",
)
ASSERTIVE_PHRASES = (
    "definitely", "certainly", "absolutely", "clearly", "obviously",
    "specifically", "exactly", "precisely",
)

_WORD = re.compile(r"[a-z']+")


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens."""
    return _WORD.findall(text.lower())


def count_phrases(tokens: list[str], phrases: tuple[str, ...]) -> int:
    """Occurrences of single words and multi-word phrases in a token list."""
    count = 0
    for phrase in phrases:
        parts = phrase.split()
        width = len(parts)
        for i in range(len(tokens) - width + 1):
            if tokens[i:i + width] == parts:
                count += 1
    return count


@dataclass
class TranscriptConfig:
    """
    Transcript analyzer tuning.

    The word history already averages across utterances, so scores
    replace the snapshot value by default (alpha 1.0).
    """
    history_words: int = 200
    min_words: int = 10
    filler_penalty: float = 200.0
    confidence_base: float = 70.0
    assertive_bonus: float = 5.0
    hedge_penalty: float = 3.0
    smoothing_alpha: float = 1.0


@dataclass
class TranscriptAnalysis:
    fluency: MetricSnapshot = field(default_factory=MetricSnapshot)
    confidence: MetricSnapshot = field(default_factory=MetricSnapshot)
    word_count: int = 0
    filler_count: int = 0
    hedge_count: int = 0
    assertive_count: int = 0
    utterances: int = 0

    @property
    def filler_ratio(self) -> float:
        if self.word_count == 0:
            return 0.0
        return self.filler_count / self.word_count

    def dimension_scores(self) -> dict[Dimension, MetricSnapshot]:
        snapshots = {
            Dimension.FLUENCY: self.fluency,
            Dimension.CONFIDENCE: self.confidence,
        }
        return {dim: snap for dim, snap in snapshots.items() if snap.has_data}

    def reset(self) -> None:
        self.fluency.reset()
        self.confidence.reset()
        self.word_count = 0
        self.filler_count = 0
        self.hedge_count = 0
        self.assertive_count = 0
        self.utterances = 0


class TranscriptAnalyzer(Analyzer):
    """
    Rolling word-history scorer.

    Scores only once min_words words are buffered; short utterances
    leave the dimensions without data so they drop out of aggregation.
    """

    def __init__(self, config: TranscriptConfig | None = None) -> None:
        self._config = config or TranscriptConfig()
        super().__init__(smoothing_alpha=self._config.smoothing_alpha)
        self._words: deque[str] = deque(maxlen=self._config.history_words)
        self._analysis = TranscriptAnalysis()

    @property
    def name(self) -> str:
        return "transcript"

    @property
    def analysis(self) -> TranscriptAnalysis:
        return self._analysis

    def process_transcript(self, text: str, timestamp_ms: int) -> TranscriptAnalysis:
        tokens = tokenize(text)
        analysis = self._analysis
        if not tokens:
            return analysis

        self._words.extend(tokens)
        analysis.utterances += 1

        words = list(self._words)
        analysis.word_count = len(words)
        analysis.filler_count = count_phrases(words, FILLER_PHRASES)
        analysis.hedge_count = count_phrases(words, HEDGE_PHRASES)
        analysis.assertive_count = count_phrases(words, ASSERTIVE_PHRASES)

        if analysis.word_count < self._config.min_words:
            logger.debug(f"Transcript history has {analysis.word_count} words, not scoring yet")
            return analysis

        fluency = 100.0 - analysis.filler_ratio * self._config.filler_penalty
        confidence = (
            self._config.confidence_base
            + analysis.assertive_count * self._config.assertive_bonus
            - analysis.hedge_count * self._config.hedge_penalty
        )
        coverage = min(1.0, analysis.word_count / self._config.history_words)
        self._update(analysis.fluency, clamp(fluency), coverage, timestamp_ms)
        self._update(analysis.confidence, clamp(confidence), coverage, timestamp_ms)
        return analysis

    def reset(self) -> None:
        self._words.clear()
        self._analysis.reset()
