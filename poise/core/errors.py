"""Error taxonomy for the coaching core."""

from __future__ import annotations


class CoachError(Exception):
    """Base class for all poise errors."""


class DeviceUnavailableError(CoachError):
    """Microphone or camera could not be acquired or stopped delivering."""


class AnalysisError(CoachError):
    """Scoring or aggregation failed while analyzing."""


class ExternalServiceError(CoachError):
    """An external collaborator (response generation, speech) failed."""
