"""
Schema definitions for codeagent.

This module defines the Pydantic models shared by the agent loop, the
permission gate, the tool registry and the model client:
- Turn and its content blocks: what the conversation log holds
- ToolCallRequest: a tool call emitted by the model
- ToolParameter/ToolDescriptor: the schema a tool advertises to the model
- ToolResult: what an executor returns
- PermissionDecision: the outcome of asking the human
- ModelResponse: one round trip's worth of model output

Design Decisions:
    - Conversation models are frozen; a Turn never changes once appended
    - Content blocks carry a literal "type" so lists of them round-trip
      through model_validate without losing their kind
    - Tool argument validation is driven by ToolDescriptor, not by the
      executor, so malformed input is rejected before any side effect
"""

import json
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


class ActionKind(str, Enum):
    """Classification of an effectful action shown in a permission prompt."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    EXECUTE = "execute"


class StopReason(str, Enum):
    """Why the model stopped generating."""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    OTHER = "other"

    @classmethod
    def from_api(cls, value: str | None) -> "StopReason":
        """Map a provider stop reason onto the three values the loop knows."""
        if value == "end_turn":
            return cls.END_TURN
        if value == "tool_use":
            return cls.TOOL_USE
        return cls.OTHER


# =============================================================================
# Content Blocks
# =============================================================================


class TextBlock(BaseModel):
    """Plain text emitted by the user or the model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["text"] = "text"
    text: str


class ToolCallRequest(BaseModel):
    """
    A tool call emitted by the model inside an assistant turn.

    Attributes:
        id: Provider-assigned call id; the matching result must echo it
        name: Name of the requested tool
        input: Raw arguments, untrusted until validated against a descriptor
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(..., min_length=1)
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The answer to one ToolCallRequest, keyed by its id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = Union[TextBlock, ToolCallRequest, ToolResultBlock]


# =============================================================================
# Tool Models
# =============================================================================


ParameterType = Literal["string", "number", "integer", "boolean", "array", "object"]

_TYPE_CHECKS: dict[str, Any] = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}


class ToolParameter(BaseModel):
    """One declared argument of a tool."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    type: ParameterType = "string"
    description: str = ""
    required: bool = False


class ToolDescriptor(BaseModel):
    """
    The schema a tool advertises to the model.

    Parameters are an ordered list; the order is preserved in the JSON
    schema sent to the model and in validation messages.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    description: str
    parameters: tuple[ToolParameter, ...] = ()

    @field_validator("name")
    @classmethod
    def validate_name_format(cls, v: str) -> str:
        """Tool names are identifiers: letters, digits and underscores."""
        if not v.replace("_", "").isalnum():
            msg = f"Invalid tool name format: {v}"
            raise ValueError(msg)
        return v

    def input_schema(self) -> dict[str, Any]:
        """Render the parameters as a JSON schema object."""
        properties: dict[str, Any] = {}
        required: list[str] = []
        for param in self.parameters:
            properties[param.name] = {
                "type": param.type,
                "description": param.description,
            }
            if param.required:
                required.append(param.name)
        return {"type": "object", "properties": properties, "required": required}

    def validate_input(self, args: Any) -> list[str]:
        """
        Check raw model input against the declared parameters.

        Unknown keys are ignored; missing required keys and type mismatches
        are reported. A null value for an optional parameter counts as
        absent.

        Returns:
            List of validation error messages (empty if valid)
        """
        if not isinstance(args, dict):
            return [f"input must be an object, got {type(args).__name__}"]

        errors = []
        for param in self.parameters:
            if param.name not in args or args[param.name] is None:
                if param.required:
                    errors.append(f"'{param.name}' is required")
                continue
            if not _TYPE_CHECKS[param.type](args[param.name]):
                errors.append(
                    f"'{param.name}' must be of type {param.type}, "
                    f"got {type(args[param.name]).__name__}"
                )
        return errors


class ToolResult(BaseModel):
    """
    Outcome of a tool execution, successful or not.

    Attributes:
        success: Whether the tool did what was asked
        output: Human/model readable text
        data: Structured payload (type varies by tool)
        error: Error message if success is False
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    output: str | None = None
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, output: str | None = None, data: Any = None) -> "ToolResult":
        """Create a successful result."""
        return cls(success=True, output=output, data=data)

    @classmethod
    def fail(cls, error: str, output: str | None = None, data: Any = None) -> "ToolResult":
        """Create a failed result."""
        return cls(success=False, error=error, output=output, data=data)

    def to_content(self) -> str:
        """Text sent back to the model for this result."""
        if not self.success:
            if self.output:
                return f"Error: {self.error}\n{self.output}"
            return f"Error: {self.error}"
        if self.output:
            return self.output
        if self.data is not None:
            return json.dumps(self.data, default=str)
        return ""


# =============================================================================
# Conversation Models
# =============================================================================


class Turn(BaseModel):
    """
    One entry in the conversation log.

    `order` is assigned by ConversationState.append; a Turn built by one of
    the constructors below carries order -1 until then.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Role
    content: tuple[ContentBlock, ...]
    order: int = -1

    @classmethod
    def user(cls, text: str) -> "Turn":
        """A user message."""
        return cls(role=Role.USER, content=(TextBlock(text=text),))

    @classmethod
    def assistant(cls, blocks: list[TextBlock | ToolCallRequest]) -> "Turn":
        """An assistant message, kept verbatim including tool calls."""
        return cls(role=Role.ASSISTANT, content=tuple(blocks))

    @classmethod
    def tool_result(cls, call_id: str, result: ToolResult) -> "Turn":
        """The answer to the tool call with the given id."""
        block = ToolResultBlock(
            tool_use_id=call_id,
            content=result.to_content(),
            is_error=not result.success,
        )
        return cls(role=Role.TOOL_RESULT, content=(block,))

    @property
    def text(self) -> str:
        """Concatenated text blocks."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_calls(self) -> list[ToolCallRequest]:
        """Tool calls carried by this turn, in emission order."""
        return [b for b in self.content if isinstance(b, ToolCallRequest)]

    @property
    def tool_use_id(self) -> str | None:
        """For a tool_result turn, the call id it answers."""
        for block in self.content:
            if isinstance(block, ToolResultBlock):
                return block.tool_use_id
        return None


# =============================================================================
# Runtime Models
# =============================================================================


class PermissionDecision(BaseModel):
    """Result of asking the human (or the auto-approve flag) for permission."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    approved: bool
    reason: str | None = None

    @classmethod
    def approve(cls, reason: str | None = None) -> "PermissionDecision":
        """Create an approval."""
        return cls(approved=True, reason=reason)

    @classmethod
    def deny(cls, reason: str) -> "PermissionDecision":
        """Create a denial."""
        return cls(approved=False, reason=reason)


class ModelResponse(BaseModel):
    """
    One response from the model collaborator.

    Attributes:
        content: Ordered text and tool_use blocks as emitted
        stop_reason: Why generation stopped
        model: Model that produced the response, if reported
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    content: tuple[TextBlock | ToolCallRequest, ...] = ()
    stop_reason: StopReason = StopReason.END_TURN
    model: str | None = None

    @property
    def text(self) -> str:
        """Concatenated text blocks."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_calls(self) -> list[ToolCallRequest]:
        """Tool calls in emission order."""
        return [b for b in self.content if isinstance(b, ToolCallRequest)]
