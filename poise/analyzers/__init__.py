"""Streaming analyzers for voice, body language and transcripts."""

from poise.analyzers.base import Analyzer
from poise.analyzers.voice import VoiceAnalyzer, VoiceAnalysis, VoiceConfig
from poise.analyzers.vision import VisionAnalyzer, VisionAnalysis, VisionConfig
from poise.analyzers.transcript import TranscriptAnalyzer, TranscriptAnalysis, TranscriptConfig

__all__ = [
    "Analyzer",
    "VoiceAnalyzer",
    "VoiceAnalysis",
    "VoiceConfig",
    "VisionAnalyzer",
    "VisionAnalysis",
    "VisionConfig",
    "TranscriptAnalyzer",
    "TranscriptAnalysis",
    "TranscriptConfig",
]
