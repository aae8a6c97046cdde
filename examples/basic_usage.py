"""
poise Basic Usage Example

Runs a coaching session on a synthetic tone and scripted keypoints,
then asks for feedback on one answer.
"""

import asyncio
import json

from poise import CoachingSession, SessionConfig, SessionEvent
from poise.analyzers import VoiceAnalyzer
from poise.sources import (
    NoiseSource,
    PassthroughEstimator,
    ScriptedFrameSource,
    SineSource,
    frontal_face,
    upright_pose,
)


def example_offline_voice():
    """Score a few sources window by window, without a session."""
    print("=" * 60)
    print("Offline Voice Analysis Example")
    print("=" * 60)

    for label, source in [
        ("220Hz tone", SineSource(frequency_hz=220, duration_ms=1000)),
        ("white noise", NoiseSource(amplitude=0.1, duration_ms=1000)),
    ]:
        analyzer = VoiceAnalyzer()
        for window in source.windows():
            analysis = analyzer.process_window(window)
        print(f"\n{label}:")
        print(f"  pitch: {analysis.pitch_hz:.1f} Hz (stability {analysis.pitch.score:.1f})")
        print(f"  volume consistency: {analysis.volume.score:.1f}")
        print(f"  clarity: {analysis.clarity.score:.1f}")
        print(f"  pace: {analysis.pace.score:.1f}")
        print(f"  overall quality: {analysis.quality.score:.1f}")


async def example_session():
    """Full session: media loops, one conversation turn, summary."""
    print("=" * 60)
    print("Coaching Session Example")
    print("=" * 60)

    frames = [([upright_pose(gesturing=i % 2 == 0)], [frontal_face()]) for i in range(30)]
    session = CoachingSession(
        audio=SineSource(frequency_hz=180, duration_ms=3000),
        video=ScriptedFrameSource(frames, interval_ms=100),
        pose_estimator=PassthroughEstimator(),
        config=SessionConfig(response_cooldown_ms=500),
    )

    session.on(SessionEvent.STATE_CHANGE, lambda state: print(f"  [state] {state.value}"))
    session.on(SessionEvent.AI_RESPONSE_READY, lambda response: print(f"\nCoach: {response.message}\n"))
    session.on(SessionEvent.ERROR, lambda error: print(f"  [error] {error}"))

    await session.start_session()
    # let the loops consume the synthetic media
    await asyncio.sleep(0.5)

    await session.handle_user_input(
        "I led the migration of our billing service and we cut latency in half"
    )

    print(json.dumps(session.get_analysis_data()["last_analysis"], indent=2))
    print(json.dumps(session.get_session_summary().to_dict(), indent=2))

    await session.end_session()


if __name__ == "__main__":
    example_offline_voice()
    print("\n")
    asyncio.run(example_session())
