"""
Storage module for codeagent.

A flat, append-only SQLite log of sessions, turns and permission
decisions. Nothing reads it back to resume a conversation; it exists for
audit (`codeagent sessions`, `codeagent show-session`).

Tables:
    - sessions: one row per session id
    - turns: conversation turns, in order
    - permissions: every permission request and its answer
"""

from codeagent.store.log import SessionLog, SessionSummary

__all__ = [
    "SessionLog",
    "SessionSummary",
]
