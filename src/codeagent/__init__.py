"""
codeagent - Terminal coding agent with human-approved tool calls.

codeagent converses with a language model and, when the model asks, reads
and writes files, runs commands, drives git and reads the web. Every
effectful action is shown to the user and runs only after approval.
It provides:
- A tool-calling loop over the Anthropic Messages API
- A permission gate with per-session auto-approve
- A fixed set of local tools plus optional governed remote tools
- An append-only SQLite log of sessions and decisions

Example usage:
    $ codeagent chat
    $ codeagent sessions
    $ codeagent show-session <session_id>
"""

__version__ = "0.1.0"
__author__ = "codeagent Contributors"

__all__ = [
    "__version__",
    "__author__",
]
