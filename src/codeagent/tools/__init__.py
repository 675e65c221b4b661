"""
Tools module for codeagent.

Tools are the capabilities the model may call. Each one declares its
parameters, validates input against them and asks the permission gate
before doing anything effectful.

Local tools:
    - read_file, write_file, list_directory
    - execute_command
    - git_status, git_diff, git_commit, git_create_branch, git_push
    - web_search, fetch_webpage

Remote tools (only when LogLine is configured):
    - logline_prompt_fetch, logline_memory_store, logline_memory_search

Architecture:
    - Tool: Abstract base class defining the tool interface
    - ToolRegistry: Name-keyed set of tools, last registration wins
    - ToolContext: Runtime context passed to tools (gate, working dir)
    - build_registry: Assembles local then remote tools from settings
"""

from codeagent.tools.base import Tool, ToolContext
from codeagent.tools.registry import ToolRegistry, build_registry, local_tools

__all__ = [
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "build_registry",
    "local_tools",
]
