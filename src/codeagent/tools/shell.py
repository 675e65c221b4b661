"""
Shell tool for codeagent.

This module provides the execute_command tool and the process runners the
other tools share.

Execution Model:
    execute_command hands the command line to the system shell, so pipes,
    redirection, && chaining and variable expansion work as typed:
        "grep -rn TODO src | wc -l"

    The command runs only after the permission gate has shown the exact
    line to the human and they approved it.

    Additional protections:
    - Timeout enforcement to prevent runaway processes
    - Output size limits to prevent memory exhaustion

    run_argv runs an argument vector without a shell; the git tools use it
    so commit messages and branch names are never interpreted.
"""

import os
import subprocess
from typing import TYPE_CHECKING, Any, Mapping

from codeagent.schema import ActionKind, ToolParameter, ToolResult
from codeagent.tools.base import Tool, ToolContext

if TYPE_CHECKING:
    from codeagent.config import Settings

DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024


def decode_output(raw: bytes) -> str:
    """Decode process output as UTF-8, replacing undecodable bytes."""
    return raw.decode("utf-8", errors="replace")


def truncate_output(stdout: bytes, stderr: bytes, max_bytes: int) -> tuple[bytes, bytes]:
    """Split max_bytes between stdout and stderr, marking any cut."""
    if len(stdout) + len(stderr) <= max_bytes:
        return stdout, stderr

    marker = f"\n... [truncated, exceeded {max_bytes} bytes]".encode()
    half = max_bytes // 2
    if len(stdout) > half:
        stdout = stdout[: half - len(marker)] + marker
    if len(stderr) > half:
        stderr = stderr[: half - len(marker)] + marker
    return stdout, stderr


class ExecuteCommandTool(Tool):
    """
    Run a shell command in the working directory.

    Arguments:
        command (str): The command line to run (required)
        purpose (str): What the command is for, shown in the prompt

    Returns:
        output: stdout, or stderr when stdout is empty
        data: {"stdout", "stderr", "return_code"}

    A non-zero exit status is a failed result that still carries the
    output, so the model can see what went wrong.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """
        Args:
            timeout_seconds: Kill the command after this many seconds
            max_output_bytes: Combined limit for stdout and stderr
            env: Variables set on top of the agent's own environment
        """
        self.timeout_seconds = timeout_seconds
        self.max_output_bytes = max_output_bytes
        self.env = dict(env or {})

    @property
    def name(self) -> str:
        return "execute_command"

    @property
    def description(self) -> str:
        return (
            "Execute a shell command in the current directory. Use this for running "
            "tests, installing packages, building projects, etc."
        )

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="command",
                type="string",
                description="The command to execute",
                required=True,
            ),
            ToolParameter(
                name="purpose",
                type="string",
                description="Explanation of what the command does",
            ),
        )

    def validate_args(self, args: Any) -> list[str]:
        errors = super().validate_args(args)
        if errors:
            return errors
        if not args["command"].strip():
            errors.append("'command' cannot be empty")
        return errors

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        command = args["command"]
        purpose = args.get("purpose")

        denied = self.authorize(context, ActionKind.EXECUTE, command, details=purpose)
        if denied is not None:
            return denied

        return run_shell(
            command,
            cwd=context.working_dir,
            env=self.env,
            timeout_seconds=self.timeout_seconds,
            max_output_bytes=self.max_output_bytes,
        )


def run_shell(
    command: str,
    cwd: str,
    env: Mapping[str, str] | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> ToolResult:
    """
    Run a command line through the system shell and wrap the outcome.

    Args:
        command: Command line, interpreted by the shell
        cwd: Working directory
        env: Variables set on top of the current environment
        timeout_seconds: Kill the process after this many seconds
        max_output_bytes: Combined limit for stdout and stderr

    Returns:
        ToolResult with {"stdout", "stderr", "return_code"} as data
    """
    full_env = {**os.environ, **env} if env else None
    return _run(command, cwd, timeout_seconds, max_output_bytes, shell=True, env=full_env)


def run_argv(
    argv: list[str],
    cwd: str,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> ToolResult:
    """
    Run an argument vector without a shell and wrap the outcome.

    Args:
        argv: Executable followed by its arguments
        cwd: Working directory
        timeout_seconds: Kill the process after this many seconds
        max_output_bytes: Combined limit for stdout and stderr

    Returns:
        ToolResult with {"stdout", "stderr", "return_code"} as data
    """
    return _run(argv, cwd, timeout_seconds, max_output_bytes, shell=False)


def _run(
    args: str | list[str],
    cwd: str,
    timeout_seconds: float,
    max_output_bytes: int,
    shell: bool,
    env: dict[str, str] | None = None,
) -> ToolResult:
    program = args if isinstance(args, str) else args[0]
    if not os.path.isdir(cwd):
        return ToolResult.fail(f"Working directory not found: {cwd}")
    try:
        completed = subprocess.run(
            args,
            cwd=cwd,
            env=env,
            capture_output=True,
            timeout=timeout_seconds,
            shell=shell,
        )
    except subprocess.TimeoutExpired:
        return ToolResult.fail(f"Command timed out after {timeout_seconds} seconds")
    except FileNotFoundError:
        return ToolResult.fail(f"Executable not found: {program}")
    except PermissionError:
        return ToolResult.fail(f"Permission denied executing: {program}")
    except OSError as e:
        return ToolResult.fail(f"OS error executing command: {e}")

    stdout, stderr = truncate_output(completed.stdout, completed.stderr, max_output_bytes)
    data = {
        "stdout": decode_output(stdout),
        "stderr": decode_output(stderr),
        "return_code": completed.returncode,
    }
    output = data["stdout"] or data["stderr"]

    if completed.returncode != 0:
        return ToolResult.fail(
            f"Command exited with status {completed.returncode}",
            output=output,
            data=data,
        )
    return ToolResult.ok(output, data=data)


def shell_tools(settings: "Settings | None" = None) -> list[Tool]:
    """The shell tool configured from settings."""
    if settings is None:
        return [ExecuteCommandTool()]
    return [
        ExecuteCommandTool(
            timeout_seconds=settings.shell_timeout_seconds,
            max_output_bytes=settings.shell_max_output_bytes,
        )
    ]
