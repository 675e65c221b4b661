"""
Exception hierarchy for codeagent.

All codeagent exceptions inherit from CodeAgentError, allowing callers to
catch every agent-specific exception with a single except clause.

Exception Categories:
    - UserAbortError: the human ended the session at a permission prompt
    - ToolError: unknown tool, invalid arguments, executor failure
    - ModelCallError: the remote model could not produce a response
    - ConfigError: missing or malformed configuration
    - StorageError: session log operation failed

Propagation:
    Permission denials, unknown tools, invalid arguments and executor
    failures are fed back to the model as failed ToolResults. Model call
    failures end the current round and reach the caller. UserAbortError
    ends the process.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Permission errors: 1xxx
ERROR_USER_ABORT = 1002

# Tool errors: 2xxx
ERROR_TOOL_NOT_FOUND = 2001
ERROR_TOOL_INVALID_ARGS = 2002
ERROR_REMOTE_SERVICE = 2004

# Model errors: 3xxx
ERROR_MODEL_CONNECTION = 3001
ERROR_MODEL_TIMEOUT = 3002
ERROR_MODEL_RESPONSE = 3003

# Config errors: 4xxx
ERROR_CONFIG_INVALID = 4001
ERROR_CONFIG_MISSING_API_KEY = 4002

# Storage errors: 5xxx
ERROR_STORAGE_CONNECTION = 5001
ERROR_STORAGE_WRITE = 5002
ERROR_STORAGE_READ = 5003

# Reason attached to every interactive denial
USER_DENIED_REASON = "User denied permission"


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class CodeAgentError(Exception):
    """
    Base exception for all codeagent errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Permission Errors
# =============================================================================


@dataclass
class UserAbortError(CodeAgentError):
    """
    Raised when the human answers "never" to a permission prompt.

    This is not a denial: it ends the whole session. Nothing in the agent
    loop catches it.
    """

    action: str = ""
    target: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "User aborted the session"
        if self.code == 0:
            self.code = ERROR_USER_ABORT
        self.context.update({
            "action": self.action,
            "target": self.target,
        })


# =============================================================================
# Tool Errors
# =============================================================================


@dataclass
class ToolError(CodeAgentError):
    """
    Base class for tool errors.

    Attributes:
        tool: Name of the tool that failed
        tool_args: Arguments that were provided
    """

    tool: str = ""
    tool_args: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "tool": self.tool,
            "tool_args": self.tool_args,
        })


@dataclass
class ToolNotFoundError(ToolError):
    """Raised when a tool is not registered."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool not found: {self.tool}"
        if self.code == 0:
            self.code = ERROR_TOOL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check tool name spelling or register the tool"
        super().__post_init__()


@dataclass
class ToolInvalidArgsError(ToolError):
    """Raised when tool arguments do not match the tool's descriptor."""

    validation_errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            joined = "; ".join(self.validation_errors)
            self.message = f"Invalid arguments for {self.tool}: {joined}"
        if self.code == 0:
            self.code = ERROR_TOOL_INVALID_ARGS
        super().__post_init__()
        self.context["validation_errors"] = self.validation_errors


@dataclass
class RemoteServiceError(CodeAgentError):
    """
    Raised by LogLineClient when the remote service call fails.

    Attributes:
        url: Endpoint that was called
        status_code: HTTP status, or 0 if no response was received
    """

    url: str = ""
    status_code: int = 0
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.status_code:
                self.message = f"LogLine boot failed: {self.status_code} {self.underlying_error}"
            else:
                self.message = f"LogLine request failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_REMOTE_SERVICE
        self.context.update({
            "url": self.url,
            "status_code": self.status_code,
        })


# =============================================================================
# Model Errors
# =============================================================================


@dataclass
class ModelCallError(CodeAgentError):
    """
    Base class for failures of the remote model call.

    A model call failure aborts the current round. The orchestrator appends
    nothing for that round and re-raises to its caller.

    Attributes:
        model: Model identifier that was being called
    """

    model: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Model call failed: {self.model}"
        if self.code == 0:
            self.code = ERROR_MODEL_RESPONSE
        self.context["model"] = self.model


@dataclass
class ModelConnectionError(ModelCallError):
    """Raised when the model API cannot be reached or rejects the request."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot reach model {self.model}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_MODEL_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check your network connection and API key"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ModelTimeoutError(ModelCallError):
    """Raised when the model call exceeds its timeout."""

    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Model {self.model} timed out after {self.timeout_seconds}s"
        if self.code == 0:
            self.code = ERROR_MODEL_TIMEOUT
        super().__post_init__()
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class ModelResponseError(ModelCallError):
    """Raised when the model returns a response that cannot be used."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Bad response from model {self.model}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_MODEL_RESPONSE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(CodeAgentError):
    """Raised when the configuration file cannot be loaded or is invalid."""

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["path"] = self.path


@dataclass
class MissingApiKeyError(ConfigError):
    """Raised when no model API key is configured."""

    env_var: str = "ANTHROPIC_API_KEY"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "No Anthropic API key found"
        if self.code == 0:
            self.code = ERROR_CONFIG_MISSING_API_KEY
        if not self.suggestion:
            self.suggestion = f"Set {self.env_var} or run /config"
        super().__post_init__()
        self.context["env_var"] = self.env_var


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(CodeAgentError):
    """
    Base class for session log errors.

    Attributes:
        operation: The operation that failed (e.g., "insert", "query")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageConnectionError(StorageError):
    """Raised when the session database cannot be opened."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error
