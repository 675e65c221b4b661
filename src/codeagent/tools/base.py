"""
Base classes for the tool interface.

This module defines the contract every capability implements:
- Tool: abstract base class with name, description, parameters, execute()
- ToolContext: runtime context passed to tools (gate, working dir, session)

Design Principles:
    - Tools declare their parameters; the descriptor built from them is what
      the model sees and what its input is validated against
    - Tools ask the permission gate themselves, with the action kind that
      fits what they do
    - Tools return ToolResult for expected failures instead of raising
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from codeagent.errors import USER_DENIED_REASON, ToolInvalidArgsError
from codeagent.schema import ActionKind, ToolDescriptor, ToolParameter, ToolResult

if TYPE_CHECKING:
    from codeagent.permissions.gate import PermissionGate


@dataclass
class ToolContext:
    """
    Runtime context passed to tools during execution.

    Attributes:
        gate: The permission gate for this session. With no gate, every
            permission request is denied.
        working_dir: Directory relative paths and commands resolve against
        session_id: Current session id
        metadata: Additional context-specific values
    """

    gate: "PermissionGate | None" = None
    working_dir: str = "."
    session_id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def resolve_path(self, path_str: str) -> Path:
        """Resolve a path relative to the working directory."""
        path = Path(path_str).expanduser()
        if not path.is_absolute():
            path = Path(self.working_dir) / path
        return path.resolve()


class Tool(ABC):
    """
    Abstract base class for all codeagent tools.

    Subclasses must implement:
    - name property: the tool's unique identifier
    - execute(): performs the action and returns a ToolResult

    Subclasses usually override description and parameters.

    Example:
        class EchoTool(Tool):
            name = "echo"
            parameters = (ToolParameter(name="message", required=True),)

            def execute(self, args, context):
                return ToolResult.ok(args["message"])
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The unique identifier for this tool, e.g. "read_file"."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description shown to the model."""
        return f"Tool: {self.name}"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        """Declared parameters, in the order they are advertised."""
        return ()

    def descriptor(self) -> ToolDescriptor:
        """The schema advertised to the model."""
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=tuple(self.parameters),
        )

    def validate_args(self, args: Any) -> list[str]:
        """
        Validate raw input against the declared parameters.

        Override to add tool-specific checks on top of the schema.

        Returns:
            List of validation error messages (empty if valid)
        """
        return self.descriptor().validate_input(args)

    def check_args(self, args: Any) -> None:
        """
        Raise if the input does not validate.

        Raises:
            ToolInvalidArgsError: Carrying every validation message
        """
        errors = self.validate_args(args)
        if errors:
            raise ToolInvalidArgsError(
                tool=self.name,
                tool_args=args if isinstance(args, dict) else {},
                validation_errors=errors,
            )

    @abstractmethod
    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        """
        Execute the tool with the given (already validated) arguments.

        Note:
            - Ask permission through authorize() before any side effect
            - Return ToolResult.fail() for expected errors
            - UserAbortError raised by the gate must not be caught
        """
        ...

    def authorize(
        self,
        context: ToolContext,
        action: ActionKind,
        target: str,
        details: str | None = None,
    ) -> ToolResult | None:
        """
        Ask the gate for permission.

        Returns:
            None if approved, otherwise the failed ToolResult to return
        """
        if context.gate is None:
            return ToolResult.fail(USER_DENIED_REASON)
        decision = context.gate.request_permission(action, target, details)
        if decision.approved:
            return None
        return ToolResult.fail(decision.reason or "Permission denied")

    def __repr__(self) -> str:
        """String representation of the tool."""
        return f"<Tool: {self.name}>"
