"""
Append-only conversation log.

The log is the durable context sent to the model each round. Turns are
frozen models, so handing out a tuple of them is enough to keep an
in-flight request isolated from later appends.
"""

import uuid
from typing import Iterator

from codeagent.schema import Turn


def new_session_id() -> str:
    """Generate a session identifier."""
    return uuid.uuid4().hex[:12]


class ConversationState:
    """
    Ordered, append-only log of turns for one session.

    Supported operations are append, snapshot and clear. Turns are never
    removed or edited individually.

    Attributes:
        session_id: Identifier of the current session; changes on clear()
    """

    def __init__(self, session_id: str | None = None) -> None:
        self._turns: list[Turn] = []
        self.session_id = session_id or new_session_id()

    def append(self, turn: Turn) -> Turn:
        """
        Append a turn at the end of the log.

        The stored copy carries its position in `order`.

        Returns:
            The turn as stored
        """
        stored = turn.model_copy(update={"order": len(self._turns)})
        self._turns.append(stored)
        return stored

    def snapshot(self) -> tuple[Turn, ...]:
        """Return an immutable copy of the log in insertion order."""
        return tuple(self._turns)

    def clear(self) -> str:
        """
        Empty the log and mint a new session id.

        Both happen together: no caller can observe the new id with old
        turns or the old id with an empty log.

        Returns:
            The new session id
        """
        session_id = new_session_id()
        self._turns, self.session_id = [], session_id
        return session_id

    @property
    def last(self) -> Turn | None:
        """Most recently appended turn, if any."""
        return self._turns[-1] if self._turns else None

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"<ConversationState: {self.session_id} ({len(self._turns)} turns)>"
