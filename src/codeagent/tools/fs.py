"""
Filesystem tools for codeagent.

This module provides tools for local file access:
- read_file: Read a UTF-8 text file
- write_file: Write a UTF-8 text file, creating parent directories
- list_directory: List the entries of a directory

Permission Note:
    Each tool asks the permission gate before touching the filesystem.
    read_file and list_directory ask with action "read"; write_file asks
    with action "write" and shows the size of the content as details.
    The path is resolved against the working directory first, so the
    prompt names the file that will actually be touched.

    These tools still handle:
    - File not found errors
    - Permission errors
    - Encoding errors
"""

from typing import Any

from codeagent.schema import ActionKind, ToolParameter, ToolResult
from codeagent.tools.base import Tool, ToolContext


class ReadFileTool(Tool):
    """
    Read file contents.

    Arguments:
        path (str): Path to the file to read (required)

    Returns:
        On success: File contents as output
        On failure: Error message describing what went wrong
    """

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return "Read the contents of a file"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="path",
                type="string",
                description="Path to the file to read",
                required=True,
            ),
        )

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        path_str = args["path"]

        try:
            path = context.resolve_path(path_str)
        except (ValueError, OSError) as e:
            return ToolResult.fail(f"Invalid path: {e}")

        denied = self.authorize(context, ActionKind.READ, str(path))
        if denied is not None:
            return denied

        if not path.exists():
            return ToolResult.fail(f"File not found: {path_str}")
        if not path.is_file():
            return ToolResult.fail(f"Not a file: {path_str}")

        try:
            content = path.read_text(encoding="utf-8")
        except PermissionError:
            return ToolResult.fail(f"Permission denied: {path_str}")
        except UnicodeDecodeError as e:
            return ToolResult.fail(f"Encoding error reading {path_str}: {e}")
        except OSError as e:
            return ToolResult.fail(f"Error reading {path_str}: {e}")

        return ToolResult.ok(content)


class WriteFileTool(Tool):
    """
    Write content to a file.

    Arguments:
        path (str): Path to the file to write (required)
        content (str): Content to write (required)

    Missing parent directories are created. An existing file is
    overwritten.
    """

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def description(self) -> str:
        return "Write content to a file"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="path",
                type="string",
                description="Path to the file to write",
                required=True,
            ),
            ToolParameter(
                name="content",
                type="string",
                description="Content to write to the file",
                required=True,
            ),
        )

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        path_str = args["path"]
        content = args["content"]

        try:
            path = context.resolve_path(path_str)
        except (ValueError, OSError) as e:
            return ToolResult.fail(f"Invalid path: {e}")

        denied = self.authorize(
            context,
            ActionKind.WRITE,
            str(path),
            details=f"{len(content)} characters",
        )
        if denied is not None:
            return denied

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ToolResult.fail(f"Failed to create directories: {e}")

        if path.exists() and not path.is_file():
            return ToolResult.fail(f"Not a file: {path_str}")

        try:
            path.write_text(content, encoding="utf-8")
        except PermissionError:
            return ToolResult.fail(f"Permission denied: {path_str}")
        except OSError as e:
            return ToolResult.fail(f"Error writing {path_str}: {e}")

        return ToolResult.ok(
            f"Successfully wrote to {path_str}",
            data={"path": str(path), "characters": len(content)},
        )


class ListDirectoryTool(Tool):
    """
    List the contents of a directory.

    Arguments:
        path (str): Path to the directory (required)

    Returns:
        output: One line per entry, directories marked with a folder icon
        data: [{"name": ..., "is_directory": ...}, ...] sorted by name
    """

    @property
    def name(self) -> str:
        return "list_directory"

    @property
    def description(self) -> str:
        return "List contents of a directory"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="path",
                type="string",
                description="Path to the directory",
                required=True,
            ),
        )

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        path_str = args["path"]

        try:
            path = context.resolve_path(path_str)
        except (ValueError, OSError) as e:
            return ToolResult.fail(f"Invalid path: {e}")

        denied = self.authorize(context, ActionKind.READ, str(path))
        if denied is not None:
            return denied

        if not path.exists():
            return ToolResult.fail(f"Directory not found: {path_str}")
        if not path.is_dir():
            return ToolResult.fail(f"Not a directory: {path_str}")

        try:
            entries = sorted(path.iterdir(), key=lambda p: p.name)
        except PermissionError:
            return ToolResult.fail(f"Permission denied: {path_str}")
        except OSError as e:
            return ToolResult.fail(f"Error listing {path_str}: {e}")

        data = [{"name": entry.name, "is_directory": entry.is_dir()} for entry in entries]
        output = "\n".join(
            f"{'📁' if item['is_directory'] else '📄'} {item['name']}" for item in data
        )
        return ToolResult.ok(output, data=data)


def filesystem_tools() -> list[Tool]:
    """The filesystem tools, in advertised order."""
    return [ReadFileTool(), WriteFileTool(), ListDirectoryTool()]
