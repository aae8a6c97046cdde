"""Media sources for poise sessions."""

from poise.sources.synthetic import (
    ArraySource,
    NoiseSource,
    PassthroughEstimator,
    ScriptedFrameSource,
    SilenceSource,
    SineSource,
    frontal_face,
    upright_pose,
)
from poise.sources.microphone import MicrophoneCapture, list_input_devices

__all__ = [
    # Audio
    "ArraySource",
    "SineSource",
    "NoiseSource",
    "SilenceSource",
    "MicrophoneCapture",
    "list_input_devices",
    # Video
    "ScriptedFrameSource",
    "PassthroughEstimator",
    "upright_pose",
    "frontal_face",
]
