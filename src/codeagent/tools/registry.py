"""
Tool registry for codeagent.

The registry is the set of capabilities offered to the model. It is built
once at startup by build_registry() and not changed afterwards.

Collision policy:
    Registering a name that is already present replaces the earlier tool
    (last writer wins). build_registry() registers the local tools first
    and the remote tools second, so a remote tool shadows a local tool of
    the same name. The order of descriptors follows first registration.

Usage:
    registry = build_registry(settings)
    tool = registry.get("read_file")
    descriptors = registry.descriptors()
"""

from typing import Iterable, Iterator

from rich.console import Console

from codeagent.config import Settings
from codeagent.errors import ToolNotFoundError
from codeagent.schema import ToolDescriptor
from codeagent.tools.base import Tool


class ToolRegistry:
    """
    Registry for looking up tools by name.

    Attributes:
        _tools: Mapping of tool names to tool instances
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> Tool | None:
        """
        Register a tool, replacing any tool already registered under its name.

        Args:
            tool: The tool instance to register

        Returns:
            The tool that was replaced, or None

        Raises:
            ValueError: If tool is None or has an empty name
        """
        if tool is None:
            msg = "Cannot register None as a tool"
            raise ValueError(msg)

        name = tool.name
        if not name:
            msg = "Tool must have a non-empty name"
            raise ValueError(msg)

        replaced = self._tools.get(name)
        self._tools[name] = tool
        return replaced

    def register_all(self, tools: Iterable[Tool]) -> list[str]:
        """
        Register tools in iteration order.

        Returns:
            Names that replaced an earlier registration
        """
        replaced = []
        for tool in tools:
            if self.register(tool) is not None:
                replaced.append(tool.name)
        return replaced

    def get(self, name: str) -> Tool:
        """
        Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool with that name is registered
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(tool=name)
        return tool

    def get_optional(self, name: str) -> Tool | None:
        """Look up a tool by name, returning None if not found."""
        return self._tools.get(name)

    def descriptors(self) -> list[ToolDescriptor]:
        """Descriptors of every registered tool, in registration order."""
        return [tool.descriptor() for tool in self._tools.values()]

    def list_tools(self) -> list[str]:
        """Registered tool names in sorted order."""
        return sorted(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __repr__(self) -> str:
        tools = ", ".join(self.list_tools())
        return f"<ToolRegistry: [{tools}]>"


def local_tools(settings: Settings) -> list[Tool]:
    """The fixed local tool set, in advertised order."""
    from codeagent.tools.fs import filesystem_tools
    from codeagent.tools.git import git_tools
    from codeagent.tools.shell import shell_tools
    from codeagent.tools.web import web_tools

    return [
        *filesystem_tools(),
        *shell_tools(settings),
        *git_tools(),
        *web_tools(settings),
    ]


def build_registry(
    settings: Settings,
    console: Console | None = None,
) -> ToolRegistry:
    """
    Assemble the registry: local tools, then remote tools if configured.

    Remote tools are only offered when the remote service is fully
    configured, so the model is never offered a tool it cannot run.

    Args:
        settings: Loaded configuration
        console: Where to report shadowed tool names

    Returns:
        The populated registry
    """
    from codeagent.tools.logline import LogLineClient, logline_tools

    registry = ToolRegistry()
    registry.register_all(local_tools(settings))

    if settings.logline.is_configured():
        client = LogLineClient(settings.logline)
        replaced = registry.register_all(logline_tools(client))
        if replaced and console is not None:
            console.print(
                f"[yellow]Remote tools replaced local tools: {', '.join(replaced)}[/yellow]"
            )

    return registry
