"""
Typed event subscription.

Any number of subscribers per event kind, notified in registration order.
A failing subscriber is logged and does not stop delivery to the others.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    """Events exposed to the UI layer."""
    STATE_CHANGE = "state_change"
    VOICE_ANALYSIS = "voice_analysis"
    ANALYSIS_UPDATE = "analysis_update"
    USER_INPUT = "user_input"
    ANALYSIS_COMPLETE = "analysis_complete"
    AI_RESPONSE_READY = "ai_response_ready"
    ERROR = "error"


Handler = Callable[[Any], None]


class EventBus:
    """
    Observer registry keyed by SessionEvent.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(SessionEvent.STATE_CHANGE, print)
        bus.emit(SessionEvent.STATE_CHANGE, ConversationState.WAITING)
        unsubscribe()
    """

    def __init__(self) -> None:
        self._handlers: dict[SessionEvent, list[Handler]] = {event: [] for event in SessionEvent}

    def subscribe(self, event: SessionEvent | str, handler: Handler) -> Callable[[], None]:
        """Register a handler. Returns a callable that removes it again."""
        kind = SessionEvent(event)
        self._handlers[kind].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[kind].remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def emit(self, event: SessionEvent, payload: Any = None) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(payload)
            except Exception as e:
                logger.warning(f"Handler {handler!r} for {event.value} failed: {e}")

    def handler_count(self, event: SessionEvent | str) -> int:
        return len(self._handlers[SessionEvent(event)])

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
