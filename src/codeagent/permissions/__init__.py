"""
Permission module for codeagent.

The gate asks the human before any effectful action and honors the
session's auto-approve flag.

Usage:
    from codeagent.permissions import PermissionGate, SessionContext

    gate = PermissionGate(SessionContext())
    decision = gate.request_permission(ActionKind.READ, "x.txt")
"""

from codeagent.permissions.gate import PermissionGate, describe_action
from codeagent.permissions.session import SessionContext

__all__ = [
    "PermissionGate",
    "SessionContext",
    "describe_action",
]
