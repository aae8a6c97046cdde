"""
Session summary over the feedback history.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from poise.core.models import FeedbackEntry, PerformanceLevel
from poise.scoring.aggregator import round_half_up


class Trend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True, slots=True)
class TrendReport:
    direction: Trend
    change: int
    recent_average: int
    previous_average: int


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Aggregate statistics for one session's feedback."""
    total_responses: int = 0
    average_score: int = 0
    highest_score: int = 0
    lowest_score: int = 0
    performance_level: PerformanceLevel = PerformanceLevel.NEEDS_IMPROVEMENT
    trend: TrendReport | None = None

    @property
    def spread(self) -> int:
        return self.highest_score - self.lowest_score

    def to_dict(self) -> dict:
        return {
            "total_responses": self.total_responses,
            "average_score": self.average_score,
            "highest_score": self.highest_score,
            "lowest_score": self.lowest_score,
            "performance_level": self.performance_level.value,
            "trend": None if self.trend is None else {
                "direction": self.trend.direction.value,
                "change": self.trend.change,
                "recent_average": self.trend.recent_average,
                "previous_average": self.trend.previous_average,
            },
        }


def analyze_trend(
    scores: Sequence[float],
    window: int = 5,
    threshold: float = 5.0,
    min_entries: int = 3,
) -> TrendReport | None:
    """
    Compare the mean of the last `window` scores with the `window` before.

    Without an earlier window the recent mean is its own baseline.
    """
    if len(scores) < min_entries:
        return None

    recent = list(scores[-window:])
    previous = list(scores[-2 * window:-window]) if len(scores) > window else []

    recent_avg = sum(recent) / len(recent)
    previous_avg = sum(previous) / len(previous) if previous else recent_avg
    change = recent_avg - previous_avg

    if change > threshold:
        direction = Trend.IMPROVING
    elif change < -threshold:
        direction = Trend.DECLINING
    else:
        direction = Trend.STABLE

    return TrendReport(
        direction=direction,
        change=round_half_up(change),
        recent_average=round_half_up(recent_avg),
        previous_average=round_half_up(previous_avg),
    )


def summarize(entries: Sequence[FeedbackEntry]) -> SessionSummary:
    if not entries:
        return SessionSummary()

    scores = [entry.analysis.overall_score for entry in entries]
    average = sum(scores) / len(scores)
    return SessionSummary(
        total_responses=len(entries),
        average_score=round_half_up(average),
        highest_score=max(scores),
        lowest_score=min(scores),
        performance_level=PerformanceLevel.from_score(average),
        trend=analyze_trend(scores),
    )
