"""
Agent loop for codeagent.

This module implements the tool-calling orchestration loop. For one user
message the loop follows a call -> dispatch -> answer cycle:

1. The model is called with the full conversation and the tool descriptors
2. Text blocks are handed to the caller as they appear in the response
3. Every tool call in the response is resolved, one at a time, in order:
   looked up, validated against its descriptor, then executed (the
   executor asks the permission gate itself)
4. One tool_result turn per call is appended and the model is called again
5. A response without tool calls ends the message

Design Principles:
    - Model output is untrusted: tool input is validated before execution
    - Every tool call gets exactly one result before the next model call
    - Tool failures are fed back to the model, never raised to the caller
    - A model call failure appends nothing for that round and is raised
    - UserAbortError from the gate passes straight through
    - Every appended turn is recorded in the session log when one is attached

States:
    IDLE -> AWAITING_MODEL -> EXECUTING_TOOL -> AWAITING_MODEL ... -> DONE
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from codeagent.conversation import ConversationState
from codeagent.errors import ToolInvalidArgsError, ToolNotFoundError, UserAbortError
from codeagent.model.base import ModelClient
from codeagent.permissions import PermissionGate, SessionContext
from codeagent.schema import ModelResponse, StopReason, ToolCallRequest, ToolResult, Turn
from codeagent.store.log import SessionLog
from codeagent.tools.base import ToolContext
from codeagent.tools.registry import ToolRegistry

UNKNOWN_TOOL = "UnknownTool"
INVALID_ARGUMENTS = "InvalidArguments"


class AgentState(str, Enum):
    """Where the loop is in handling the current message."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOL = "executing_tool"
    DONE = "done"


@dataclass
class AgentConfig:
    """
    Configuration for the agent loop.

    Attributes:
        max_rounds: Model calls allowed for one user message
        working_dir: Directory tools resolve paths and run commands in
    """

    max_rounds: int = 25
    working_dir: str = "."


@dataclass
class ToolCallRecord:
    """One resolved tool call, as reported in AgentReply."""

    call_id: str
    tool_name: str
    success: bool
    error: str | None = None


@dataclass
class AgentReply:
    """
    Outcome of one send_message call.

    Attributes:
        text: Text of the final model response
        status: "completed", "max_rounds" or "incomplete" (the model
            stopped for a reason other than finishing its turn)
        rounds: Number of model calls made
        tool_calls: Every tool call resolved, in order
    """

    text: str
    status: str = "completed"
    rounds: int = 0
    tool_calls: list[ToolCallRecord] = field(default_factory=list)


class AgentLoop:
    """
    Drives the conversation between the user, the model and the tools.

    One AgentLoop owns one ConversationState and one SessionContext; they
    are never shared with another loop.

    Usage:
        gate = PermissionGate(SessionContext())
        loop = AgentLoop(model_client, registry, gate)
        reply = loop.send_message("What's in README.md?", on_text=print)

    Attributes:
        model_client: The model collaborator
        registry: Tools offered to the model
        gate: Permission gate handed to every executor
        conversation: The conversation log
        log: Optional session log
        config: Loop configuration
        state: Current AgentState
    """

    def __init__(
        self,
        model_client: ModelClient,
        registry: ToolRegistry,
        gate: PermissionGate,
        conversation: ConversationState | None = None,
        log: SessionLog | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        self.model_client = model_client
        self.registry = registry
        self.gate = gate
        self.conversation = conversation if conversation is not None else ConversationState()
        self.log = log
        self.config = config if config is not None else AgentConfig()
        self.state = AgentState.IDLE

        self.session.session_id = self.conversation.session_id
        if self.log is not None:
            self.log.start_session(self.conversation.session_id, model=self.session.model)

    @property
    def session(self) -> SessionContext:
        """The session context shared with the gate."""
        return self.gate.session

    @property
    def session_id(self) -> str:
        return self.conversation.session_id

    def send_message(
        self,
        text: str,
        on_text: Callable[[str], None] | None = None,
        on_tool_call: Callable[[ToolCallRequest], None] | None = None,
        on_tool_result: Callable[[ToolCallRequest, ToolResult], None] | None = None,
    ) -> AgentReply:
        """
        Handle one user message until the model stops calling tools.

        Args:
            text: The user's message
            on_text: Called with each text block, in emission order, before
                any tool call of the same response is dispatched
            on_tool_call: Called before each tool call is resolved
            on_tool_result: Called with each call and its result

        Returns:
            AgentReply describing how the message ended

        Raises:
            ModelCallError: The model call failed; nothing was appended for
                the failing round
            UserAbortError: The human answered "never" to a prompt
        """
        self._append(Turn.user(text))
        reply = AgentReply(text="")

        while True:
            self.state = AgentState.AWAITING_MODEL
            response = self.model_client.create(
                self.conversation.snapshot(),
                self.registry.descriptors(),
            )
            reply.rounds += 1
            reply.text = response.text

            if on_text is not None:
                for block_text in self._texts(response):
                    on_text(block_text)

            calls = response.tool_calls
            self._append(Turn.assistant(list(response.content)))

            if not calls:
                self.state = AgentState.DONE
                if response.stop_reason != StopReason.END_TURN:
                    reply.status = "incomplete"
                return reply

            self.state = AgentState.EXECUTING_TOOL
            results = []
            for call in calls:
                if on_tool_call is not None:
                    on_tool_call(call)
                result = self._resolve(call)
                if on_tool_result is not None:
                    on_tool_result(call, result)
                results.append((call, result))
                reply.tool_calls.append(
                    ToolCallRecord(
                        call_id=call.id,
                        tool_name=call.name,
                        success=result.success,
                        error=result.error,
                    )
                )

            for call, result in results:
                self._append(Turn.tool_result(call.id, result))

            if reply.rounds >= self.config.max_rounds:
                self.state = AgentState.DONE
                reply.status = "max_rounds"
                return reply

    def clear(self) -> str:
        """
        Start a new conversation.

        The log is emptied and a new session id minted. The auto-approve
        flag is left as it is.

        Returns:
            The new session id
        """
        session_id = self.conversation.clear()
        self.session.session_id = session_id
        self.state = AgentState.IDLE
        if self.log is not None:
            self.log.start_session(session_id, model=self.session.model)
        return session_id

    def _resolve(self, call: ToolCallRequest) -> ToolResult:
        """
        Produce the result for one tool call.

        Unknown names and malformed input get a synthetic failure without
        the executor running. Executor exceptions become failures too,
        except UserAbortError, which ends the session.
        """
        try:
            tool = self.registry.get(call.name)
        except ToolNotFoundError:
            return ToolResult.fail(UNKNOWN_TOOL)

        try:
            tool.check_args(call.input)
            return tool.execute(dict(call.input), self._context())
        except ToolInvalidArgsError as e:
            return ToolResult.fail(f"{INVALID_ARGUMENTS}: {'; '.join(e.validation_errors)}")
        except UserAbortError:
            raise
        except Exception as e:
            return ToolResult.fail(f"{type(e).__name__}: {e}")

    def _context(self) -> ToolContext:
        return ToolContext(
            gate=self.gate,
            working_dir=self.config.working_dir,
            session_id=self.conversation.session_id,
        )

    def _append(self, turn: Turn) -> Turn:
        stored = self.conversation.append(turn)
        if self.log is not None:
            self.log.record_turn(self.conversation.session_id, stored)
        return stored

    @staticmethod
    def _texts(response: ModelResponse) -> list[str]:
        return [block.text for block in response.content if getattr(block, "type", "") == "text"]
