"""
Anthropic Messages API client for codeagent.

This module converts the conversation log into Messages API requests and
the API's content blocks back into a ModelResponse.

Conversion rules:
    - user turns and tool_result turns both become "user" messages
    - assistant turns become "assistant" messages, tool_use blocks included
    - consecutive turns that map to the same API role are merged into one
      message, so the several tool_result turns answering one assistant
      turn travel together as the API requires

Retries:
    Connection failures, timeouts, rate limiting and 5xx responses are
    retried up to max_retries times. Other API errors are raised at once.

Usage:
    client = AnthropicModelClient(api_key="...", model="claude-sonnet-4-5-20250929")
    response = client.create(conversation.snapshot(), registry.descriptors())
"""

import time
from typing import Any, Sequence

import anthropic

from codeagent.config import DEFAULT_MODEL, Settings
from codeagent.errors import (
    ModelCallError,
    ModelConnectionError,
    ModelResponseError,
    ModelTimeoutError,
)
from codeagent.model.base import ModelClient
from codeagent.schema import (
    ModelResponse,
    Role,
    StopReason,
    TextBlock,
    ToolCallRequest,
    ToolDescriptor,
    ToolResultBlock,
    Turn,
)

DEFAULT_SYSTEM_PROMPT = """You are a helpful coding assistant with access to local file operations.

Your capabilities:
- Read, write, and list local files
- Execute shell commands
- Perform git operations
- Search the internet and read web pages
{remote}

Every action that touches the machine is shown to the user for approval first.
If an action is denied, do not retry it unchanged; explain or ask instead.
Be concise and helpful."""

REMOTE_CAPABILITIES = "- Access governed prompts from LogLine\n- Store and search memories in LogLine"
LOCAL_ONLY = "- Local-only mode (LogLine not configured)"


def build_system_prompt(remote_enabled: bool) -> str:
    """The system prompt, mentioning remote tools only when offered."""
    return DEFAULT_SYSTEM_PROMPT.format(remote=REMOTE_CAPABILITIES if remote_enabled else LOCAL_ONLY)


def tool_to_api(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Render a descriptor as a Messages API tool definition."""
    return {
        "name": descriptor.name,
        "description": descriptor.description,
        "input_schema": descriptor.input_schema(),
    }


def _block_to_api(block: TextBlock | ToolCallRequest | ToolResultBlock) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ToolCallRequest):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    return {
        "type": "tool_result",
        "tool_use_id": block.tool_use_id,
        "content": block.content,
        "is_error": block.is_error,
    }


def turns_to_messages(turns: Sequence[Turn]) -> list[dict[str, Any]]:
    """
    Convert conversation turns into Messages API messages.

    Empty text blocks are dropped because the API rejects them.
    """
    messages: list[dict[str, Any]] = []
    for turn in turns:
        role = "assistant" if turn.role == Role.ASSISTANT else "user"
        blocks = [
            _block_to_api(block)
            for block in turn.content
            if not (isinstance(block, TextBlock) and not block.text)
        ]
        if not blocks:
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"].extend(blocks)
        else:
            messages.append({"role": role, "content": blocks})
    return messages


def response_from_api(message: Any) -> ModelResponse:
    """
    Convert an SDK Message into a ModelResponse.

    Block kinds other than text and tool_use are ignored.

    Raises:
        ModelResponseError: If a block cannot be converted
    """
    blocks: list[TextBlock | ToolCallRequest] = []
    model = getattr(message, "model", None)
    try:
        for block in message.content:
            if block.type == "text":
                blocks.append(TextBlock(text=block.text))
            elif block.type == "tool_use":
                blocks.append(
                    ToolCallRequest(id=block.id, name=block.name, input=block.input or {})
                )
    except (AttributeError, TypeError, ValueError) as e:
        raise ModelResponseError(model=model or "", underlying_error=str(e)) from e

    return ModelResponse(
        content=tuple(blocks),
        stop_reason=StopReason.from_api(getattr(message, "stop_reason", None)),
        model=model,
    )


class AnthropicModelClient(ModelClient):
    """
    Model client for the Anthropic Messages API.

    Attributes:
        model: Model identifier
        max_tokens: Output token limit per call
        max_retries: Retries for transient failures
        timeout_seconds: Timeout for one call
        system_prompt: Sent as the API's system parameter
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        max_retries: int = 2,
        timeout_seconds: float = 120.0,
        retry_delay_seconds: float = 1.0,
        system_prompt: str | None = None,
        client: Any = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: Anthropic API key
            client: Pre-built SDK client; built from api_key if omitted.
                The SDK's own retries are disabled so that retry policy
                lives here.
        """
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self.retry_delay_seconds = retry_delay_seconds
        self.system_prompt = system_prompt
        self._client = client or anthropic.Anthropic(
            api_key=api_key,
            max_retries=0,
            timeout=timeout_seconds,
        )

    @classmethod
    def from_settings(cls, settings: Settings, system_prompt: str | None = None) -> "AnthropicModelClient":
        """
        Build a client from loaded settings.

        Raises:
            MissingApiKeyError: If no API key is configured
        """
        return cls(
            api_key=settings.require_api_key(),
            model=settings.model,
            max_tokens=settings.max_tokens,
            max_retries=settings.max_retries,
            timeout_seconds=settings.request_timeout_seconds,
            system_prompt=system_prompt,
        )

    def create(
        self,
        turns: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
    ) -> ModelResponse:
        """Call the API with retries and convert the result."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": turns_to_messages(turns),
        }
        if tools:
            kwargs["tools"] = [tool_to_api(t) for t in tools]
        if self.system_prompt:
            kwargs["system"] = self.system_prompt

        message = self._call_with_retries(kwargs)
        return response_from_api(message)

    def _call_with_retries(self, kwargs: dict[str, Any]) -> Any:
        """Call messages.create, retrying transient failures."""
        last_error: ModelCallError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return self._call(kwargs)
            except (ModelConnectionError, ModelTimeoutError) as e:
                if not self._is_retryable(e):
                    raise
                last_error = e
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay_seconds * (2**attempt))

        # All retries exhausted
        if last_error:
            raise last_error
        raise ModelConnectionError(model=self.model, underlying_error="no attempt made")

    @staticmethod
    def _is_retryable(error: ModelCallError) -> bool:
        return bool(error.context.get("retryable", True))

    def _call(self, kwargs: dict[str, Any]) -> Any:
        """Make a single API call, mapping SDK exceptions."""
        try:
            return self._client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            raise ModelTimeoutError(
                model=self.model,
                timeout_seconds=self.timeout_seconds,
            ) from e
        except anthropic.APIConnectionError as e:
            raise ModelConnectionError(model=self.model, underlying_error=str(e)) from e
        except anthropic.APIStatusError as e:
            retryable = e.status_code == 429 or e.status_code >= 500
            error = ModelConnectionError(
                model=self.model,
                underlying_error=f"HTTP {e.status_code}: {e.message}",
            )
            error.context["status_code"] = e.status_code
            error.context["retryable"] = retryable
            raise error from e

    def get_name(self) -> str:
        return f"AnthropicModelClient({self.model})"

    def get_config(self) -> dict[str, Any]:
        return {
            "backend": "anthropic",
            "model": self.model,
            "max_tokens": self.max_tokens,
            "max_retries": self.max_retries,
            "timeout_seconds": self.timeout_seconds,
        }
