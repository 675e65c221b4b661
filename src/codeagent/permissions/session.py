"""
Per-session mutable state shared by the gate and the agent loop.
"""

from dataclasses import dataclass


@dataclass
class SessionContext:
    """
    State that lives exactly as long as one interactive session.

    One SessionContext belongs to one AgentLoop; two loops never share
    one. Nothing here is ever written to disk.

    Attributes:
        session_id: Current conversation session id (changes on /clear)
        auto_approve: When set, the permission gate approves without asking.
            Clearing the conversation does not reset it.
        model: Model identifier in use, for the session log
    """

    session_id: str = ""
    auto_approve: bool = False
    model: str = ""

    def toggle_auto_approve(self) -> bool:
        """Flip the auto-approve flag and return the new value."""
        self.auto_approve = not self.auto_approve
        return self.auto_approve
