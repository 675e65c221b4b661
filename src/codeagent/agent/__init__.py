"""Tool-calling orchestration loop."""

from codeagent.agent.loop import (
    AgentConfig,
    AgentLoop,
    AgentReply,
    AgentState,
    ToolCallRecord,
)

__all__ = [
    "AgentConfig",
    "AgentLoop",
    "AgentReply",
    "AgentState",
    "ToolCallRecord",
]
