"""Aggregation, feedback throttling and session summaries."""

from poise.scoring.aggregator import AggregationScoringEngine, PhraseSelector, ScoringConfig
from poise.scoring.feedback import (
    FeedbackComposer,
    FeedbackConfig,
    FeedbackThrottle,
    RejectReason,
    similarity,
)
from poise.scoring.summary import SessionSummary, Trend, summarize

__all__ = [
    "AggregationScoringEngine",
    "PhraseSelector",
    "ScoringConfig",
    "FeedbackComposer",
    "FeedbackConfig",
    "FeedbackThrottle",
    "RejectReason",
    "similarity",
    "SessionSummary",
    "Trend",
    "summarize",
]
