"""
Base class for model clients.

A model client turns the conversation history plus the tool descriptors
into one ModelResponse. It holds no conversation state of its own; the
full history is passed on every call.

Design Principles:
    - Stateless between calls (history passed explicitly)
    - Model output is untrusted; tool input is validated by the loop
    - Failures are raised as ModelCallError subclasses
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from codeagent.schema import ModelResponse, ToolDescriptor, Turn


class ModelClient(ABC):
    """
    Abstract base class for model collaborators.

    Implementations:
        - AnthropicModelClient: Anthropic Messages API

    Example Implementation:
        class ScriptedClient(ModelClient):
            def create(self, turns, tools):
                return ModelResponse(content=(TextBlock(text="hi"),))
    """

    @abstractmethod
    def create(
        self,
        turns: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
    ) -> ModelResponse:
        """
        Ask the model for its next response.

        Args:
            turns: Full conversation history, oldest first
            tools: Descriptors of the tools the model may call

        Returns:
            The model's response blocks and stop reason

        Raises:
            ModelConnectionError: Cannot reach the API, or it refused
            ModelTimeoutError: The call timed out
            ModelResponseError: The response could not be used
        """
        ...

    def get_name(self) -> str:
        """Return a display name for this client."""
        return self.__class__.__name__

    def get_config(self) -> dict[str, Any]:
        """Return client configuration for display (no secrets)."""
        return {}
