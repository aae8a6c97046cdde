"""Turn-taking state machine."""

from poise.conversation.flow import ConversationFlowManager

__all__ = [
    "ConversationFlowManager",
]
