"""
Conversation module for codeagent.

ConversationState is the append-only log of turns that is sent to the
model on every round.

Usage:
    from codeagent.conversation import ConversationState

    state = ConversationState()
    state.append(Turn.user("hello"))
    turns = state.snapshot()
"""

from codeagent.conversation.state import ConversationState, new_session_id

__all__ = [
    "ConversationState",
    "new_session_id",
]
