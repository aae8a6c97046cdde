#!/usr/bin/env python3
"""
poise Microphone Demo

Live voice scores from your microphone. Type an answer and press
Enter to get feedback on how you sounded while saying it.

Usage:
    python examples/microphone_demo.py

Requires:
    pip install poise[mic]

Stop with Ctrl+C or an empty line.
"""

import asyncio
import logging
import sys

from poise import CoachingSession, DeviceUnavailableError, SessionEvent
from poise.sources import MicrophoneCapture, list_input_devices


def format_bar(value: float, width: int = 20, filled: str = "#", empty: str = ".") -> str:
    """Create a visual bar for a 0-100 score."""
    filled_count = int(value / 100 * width)
    return filled * filled_count + empty * (width - filled_count)


def print_voice_live(analysis):
    line = (
        f"\rvol {format_bar(analysis.volume_level, 10)} "
        f"pitch {analysis.pitch_hz:5.0f}Hz "
        f"clarity {analysis.clarity.score:5.1f} "
        f"pace {analysis.pace.score:5.1f} "
        f"{'SPEAKING' if analysis.is_speaking else '        '}"
    )
    print(line, end="", flush=True)


async def read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def main():
    logging.basicConfig(level=logging.WARNING)

    try:
        devices = list_input_devices()
    except DeviceUnavailableError as e:
        print(e)
        sys.exit(1)

    print("Input devices:")
    for device in devices:
        print(f"  - {device.get('name')}")

    session = CoachingSession(audio=MicrophoneCapture())
    session.on(SessionEvent.VOICE_ANALYSIS, print_voice_live)
    session.on(SessionEvent.AI_RESPONSE_READY, lambda r: print(f"\n\nCoach: {r.message}\n"))

    try:
        await session.start_session()
    except DeviceUnavailableError as e:
        print(f"Cannot start: {e}")
        sys.exit(1)

    try:
        while True:
            text = await read_line("\nYour answer (empty to quit): ")
            if not text.strip():
                break
            await session.handle_user_input(text)
    finally:
        await session.end_session()

    summary = session.get_session_summary()
    print(f"\n{summary.total_responses} answers, average score {summary.average_score}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped.")
