"""
Model clients for codeagent.

The agent loop talks to the model through the ModelClient interface:
- ModelClient: abstract base, create(turns, tools) -> ModelResponse
- AnthropicModelClient: Anthropic Messages API implementation
"""

from codeagent.model.base import ModelClient
from codeagent.model.claude import AnthropicModelClient, build_system_prompt

__all__ = [
    "AnthropicModelClient",
    "ModelClient",
    "build_system_prompt",
]
