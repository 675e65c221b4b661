"""
Security tests for the shell and git tools.

These tests verify that:
1. The human sees the whole command line, chained parts included, before it runs
2. Nothing runs without an approving permission decision
3. Git arguments from the model are never interpreted by a shell
4. Timeouts and output limits hold

These are security-critical tests - failures here indicate
potential vulnerabilities in the shell tool.
"""

import shutil
from pathlib import Path

import pytest

from codeagent.tools.base import ToolContext
from codeagent.tools.shell import ExecuteCommandTool, run_argv

requires_posix_tools = pytest.mark.skipif(
    shutil.which("sh") is None or shutil.which("touch") is None,
    reason="sh and touch executables required",
)


@pytest.fixture
def approving_context(make_gate, temp_dir: Path) -> ToolContext:
    gate, _ = make_gate(auto_approve=True)
    return ToolContext(gate=gate, working_dir=str(temp_dir))


@requires_posix_tools
class TestApprovalShowsWholeCommand:
    """The prompt carries every part of a chained command."""

    @pytest.mark.parametrize(
        "command",
        [
            "echo hi; touch pwned",
            "echo hi && touch pwned",
            "echo hi || touch pwned",
            "echo hi | touch pwned",
            "echo $(touch pwned)",
            "echo hi > pwned",
        ],
    )
    def test_denied_chain_runs_nothing(
        self, command: str, make_gate, console, temp_dir: Path
    ) -> None:
        gate, prompt = make_gate(["no"])
        context = ToolContext(gate=gate, working_dir=str(temp_dir))

        result = ExecuteCommandTool().execute({"command": command}, context)

        assert result.success is False
        assert not (temp_dir / "pwned").exists()
        assert len(prompt.prompts) == 1
        assert f"AI wants to run: {command}" in console.file.getvalue()

    def test_approved_chain_runs_as_shown(
        self, approving_context: ToolContext, temp_dir: Path
    ) -> None:
        result = ExecuteCommandTool().execute(
            {"command": "echo hi; touch made"}, approving_context
        )

        assert result.output == "hi\n"
        assert (temp_dir / "made").exists()


class TestPermissionRequired:
    """Nothing runs without approval."""

    def test_denied_command_not_run(self, make_gate, temp_dir: Path) -> None:
        gate, prompt = make_gate(["no"])
        context = ToolContext(gate=gate, working_dir=str(temp_dir))

        result = ExecuteCommandTool().execute({"command": "touch created"}, context)

        assert result.success is False
        assert not (temp_dir / "created").exists()
        assert len(prompt.prompts) == 1

    def test_no_gate_not_run(self, temp_dir: Path) -> None:
        context = ToolContext(working_dir=str(temp_dir))

        result = ExecuteCommandTool().execute({"command": "touch created"}, context)

        assert result.success is False
        assert not (temp_dir / "created").exists()

    def test_eof_at_prompt_not_run(self, make_gate, temp_dir: Path) -> None:
        gate, _ = make_gate([])
        context = ToolContext(gate=gate, working_dir=str(temp_dir))

        ExecuteCommandTool().execute({"command": "touch created"}, context)

        assert not (temp_dir / "created").exists()


@requires_posix_tools
class TestArgvRunner:
    """run_argv passes metacharacters through untouched."""

    @pytest.mark.parametrize(
        "argument",
        ["hi; touch pwned", "$(touch pwned)", "`touch pwned`", "> pwned"],
    )
    def test_argument_not_interpreted(self, argument: str, temp_dir: Path) -> None:
        result = run_argv(["echo", argument], cwd=str(temp_dir))

        assert result.output == f"{argument}\n"
        assert not (temp_dir / "pwned").exists()


@pytest.mark.skipif(shutil.which("sleep") is None, reason="sleep executable required")
class TestResourceLimits:
    """Timeouts and output caps."""

    def test_timeout(self, approving_context: ToolContext) -> None:
        tool = ExecuteCommandTool(timeout_seconds=0.5)

        result = tool.execute({"command": "sleep 5"}, approving_context)

        assert result.success is False
        assert "timed out" in result.error

    @pytest.mark.skipif(shutil.which("seq") is None, reason="seq executable required")
    def test_output_capped(self, approving_context: ToolContext) -> None:
        tool = ExecuteCommandTool(max_output_bytes=1000)

        result = tool.execute({"command": "seq 1 100000"}, approving_context)

        assert len(result.data["stdout"]) < 1000
        assert "truncated" in result.data["stdout"]
