"""
Permission Gate for codeagent.

The gate is the only place a human authorizes an effectful action. Every
executor that reads, writes, deletes or executes something asks the gate
first and does nothing if the answer is a denial.

Protocol:
    - session.auto_approve set: approve at once, print an audit line
    - otherwise: describe the action and block on one line of input
        yes / y  -> approve once
        always   -> approve and set session.auto_approve
        never    -> raise UserAbortError (the session ends)
        anything else, empty input or EOF -> deny

Fail-closed: only the three approving answers above approve. There is no
timeout; the loop is sequential, so nothing else waits on the prompt.
"""

from typing import Callable

from rich.console import Console
from rich.markup import escape

from codeagent.errors import USER_DENIED_REASON, UserAbortError
from codeagent.permissions.session import SessionContext
from codeagent.schema import ActionKind, PermissionDecision
from codeagent.store.log import SessionLog

PROMPT_TEXT = "Allow this action? (yes/no/always/never): "

APPROVE_ONCE = frozenset({"yes", "y"})
APPROVE_ALWAYS = "always"
ABORT = "never"

_ICONS = {
    ActionKind.READ: "📖",
    ActionKind.WRITE: "✏️ ",
    ActionKind.DELETE: "🗑️ ",
    ActionKind.EXECUTE: "⚡",
}

_PENDING = {
    ActionKind.READ: "AI wants to read",
    ActionKind.WRITE: "AI wants to write to",
    ActionKind.DELETE: "AI wants to delete",
    ActionKind.EXECUTE: "AI wants to run",
}

_AUTO = {
    ActionKind.READ: "Reading",
    ActionKind.WRITE: "Writing to",
    ActionKind.DELETE: "Deleting",
    ActionKind.EXECUTE: "Running",
}

_DETAILS_LABEL = {
    ActionKind.WRITE: "Changes",
    ActionKind.EXECUTE: "Purpose",
}


def describe_action(action: ActionKind, target: str, details: str | None = None) -> str:
    """
    Render a pending action as the text shown above the prompt.

    Args:
        action: What kind of action is requested
        target: Path, command or URL the action applies to
        details: Optional extra line (size of a write, purpose of a command)

    Returns:
        Plain text, one or two lines
    """
    lines = [f"{_ICONS[action]} {_PENDING[action]}: {target}"]
    if details:
        label = _DETAILS_LABEL.get(action, "Details")
        lines.append(f"   {label}: {details}")
    return "\n".join(lines)


class PermissionGate:
    """
    Synchronous human authorization for effectful actions.

    Usage:
        gate = PermissionGate(SessionContext())
        decision = gate.request_permission(ActionKind.WRITE, "a.txt", "12 characters")
        if not decision.approved:
            return ToolResult.fail(decision.reason)

    Attributes:
        session: Holds the auto-approve flag for this session
        console: Where prompts and audit lines are printed
        log: Optional session log that records every decision
    """

    def __init__(
        self,
        session: SessionContext,
        prompt: Callable[[str], str] | None = None,
        console: Console | None = None,
        log: SessionLog | None = None,
    ) -> None:
        """
        Initialize the gate.

        Args:
            session: The session whose auto-approve flag this gate honors
            prompt: Reads one line of human input after showing the given
                text. Defaults to console.input.
            console: Rich console for output
            log: Optional session log for the audit trail
        """
        self.session = session
        self.console = console if console is not None else Console()
        self._prompt = prompt or self.console.input
        self.log = log

    def request_permission(
        self,
        action: ActionKind,
        target: str,
        details: str | None = None,
    ) -> PermissionDecision:
        """
        Ask for permission to perform one action.

        Args:
            action: Classification of the action
            target: Path, command or URL the action applies to
            details: Optional extra information shown to the human

        Returns:
            PermissionDecision; denials carry reason "User denied permission"

        Raises:
            UserAbortError: The human answered "never"
        """
        if self.session.auto_approve:
            self.console.print(
                f"[dim]{_ICONS[action]} Auto-approved: {_AUTO[action]} {escape(target)}[/dim]"
            )
            decision = PermissionDecision.approve("auto-approve")
            self._record(action, target, details, decision, auto_approved=True)
            return decision

        self.console.print(escape(describe_action(action, target, details)))
        try:
            answer = self._prompt(PROMPT_TEXT)
        except EOFError:
            answer = ""
        normalized = answer.strip().lower()

        if normalized == ABORT:
            self._record(
                action, target, details, PermissionDecision.deny("User aborted session")
            )
            raise UserAbortError(action=action.value, target=target)

        if normalized in APPROVE_ONCE:
            decision = PermissionDecision.approve()
        elif normalized == APPROVE_ALWAYS:
            self.session.auto_approve = True
            self.console.print("[yellow]⚡ Auto-approve enabled for this session[/yellow]")
            decision = PermissionDecision.approve("always")
        else:
            decision = PermissionDecision.deny(USER_DENIED_REASON)

        self._record(action, target, details, decision)
        return decision

    def _record(
        self,
        action: ActionKind,
        target: str,
        details: str | None,
        decision: PermissionDecision,
        auto_approved: bool = False,
    ) -> None:
        """Write the decision to the session log if one is attached."""
        if self.log is None:
            return
        self.log.record_permission(
            session_id=self.session.session_id,
            action=action.value,
            target=target,
            details=details,
            decision=decision,
            auto_approved=auto_approved,
        )
