"""
Unit tests for the interactive chat session.

Tests cover:
- Slash commands (/help, /auto, /clear, /config, /exit, unknown)
- Message processing output
- Missing API key and model failures
- Permission prompts sharing the session's input
"""

from pathlib import Path
from typing import Sequence
from unittest.mock import MagicMock

import pytest

from codeagent.chat import ChatSession
from codeagent.config import Settings, load_settings
from codeagent.errors import ModelConnectionError
from codeagent.model.base import ModelClient
from codeagent.schema import (
    ModelResponse,
    StopReason,
    TextBlock,
    ToolCallRequest,
    ToolDescriptor,
    Turn,
)
from codeagent.tools import ToolRegistry
from codeagent.tools.fs import filesystem_tools


# =============================================================================
# Test Fixtures
# =============================================================================


class ScriptedModelClient(ModelClient):
    """Returns queued responses or raises queued errors."""

    def __init__(self, responses: list) -> None:
        self.responses = list(responses)
        self.calls = 0
        self.requests: list[list[Turn]] = []

    def create(self, turns: Sequence[Turn], tools: Sequence[ToolDescriptor]) -> ModelResponse:
        self.calls += 1
        self.requests.append(list(turns))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def say(text: str) -> ModelResponse:
    return ModelResponse(content=(TextBlock(text=text),), stop_reason=StopReason.END_TURN)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("ANTHROPIC_API_KEY", "CODEAGENT_MODEL", "LOGLINE_API_URL", "LOGLINE_TENANT", "LOGLINE_TOKEN"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register_all(filesystem_tools())
    return registry


@pytest.fixture
def make_session(temp_dir: Path, console, registry: ToolRegistry, scripted_prompt):
    """Factory: make_session(lines, responses=None, settings=None, secrets=None)."""

    def _make(
        lines: list[str] | None = None,
        responses: list | None = None,
        settings: Settings | None = None,
        secrets: list[str] | None = None,
    ):
        prompt = scripted_prompt(lines)
        session = ChatSession(
            settings or Settings(anthropic_api_key="sk-test"),
            config_path=temp_dir / "config.yaml",
            console=console,
            working_dir=str(temp_dir),
            model_client=ScriptedModelClient(responses or []),
            registry=registry,
            prompt=prompt,
            secret_prompt=scripted_prompt(secrets),
        )
        return session, prompt

    return _make


def output(console) -> str:
    return console.file.getvalue()


# =============================================================================
# Command Tests
# =============================================================================


class TestCommands:
    """Tests for slash commands."""

    def test_exit_and_quit(self, make_session) -> None:
        session, _ = make_session()
        assert session.handle_line("/exit") is False
        assert session.handle_line("/QUIT") is False
        assert session.handle_line("   ") is True

    def test_unknown_command(self, make_session, console) -> None:
        session, _ = make_session()
        assert session.handle_line("/frobnicate now") is True
        assert "Unknown command: /frobnicate" in output(console)

    def test_help_lists_tools(self, make_session, console) -> None:
        session, _ = make_session()
        session.handle_line("/help")
        text = output(console)
        assert "/config" in text
        assert "read_file" in text
        assert "(currently: OFF)" in text

    def test_auto_toggles(self, make_session, console) -> None:
        session, _ = make_session()

        session.handle_line("/auto")
        assert session.session.auto_approve is True
        assert "Auto-approve mode ENABLED" in output(console)

        session.handle_line("/auto")
        assert session.session.auto_approve is False
        assert "Auto-approve mode DISABLED" in output(console)

    def test_clear_keeps_auto_approve(self, make_session, console) -> None:
        session, _ = make_session(responses=[say("hi")])
        session.handle_line("hello")
        session.session.auto_approve = True
        old_id = session.conversation.session_id

        session.handle_line("/clear")

        assert len(session.conversation) == 0
        assert session.conversation.session_id != old_id
        assert session.session.session_id == session.conversation.session_id
        assert session.session.auto_approve is True
        assert "Conversation cleared" in output(console)

    def test_clear_before_agent_exists(self, make_session) -> None:
        session, _ = make_session()
        new_id = session.clear()
        assert session.session.session_id == new_id


class TestConfigure:
    """Tests for /config."""

    def test_saves_key_and_model(self, make_session, temp_dir: Path, console) -> None:
        session, _ = make_session(lines=["claude-other"], secrets=["sk-new"])

        session.handle_line("/config")

        saved = load_settings(temp_dir / "config.yaml", environ={})
        assert saved.anthropic_api_key == "sk-new"
        assert saved.model == "claude-other"
        assert session.settings.model == "claude-other"
        assert session.session.model == "claude-other"
        assert session.agent is None
        assert "Configuration saved to" in output(console)

    def test_blank_answers_keep_values(self, make_session, temp_dir: Path) -> None:
        (temp_dir / "config.yaml").write_text("anthropic_api_key: sk-old\nmodel: kept\n")
        session, _ = make_session(lines=[""], secrets=[""])

        session.handle_line("/config")

        saved = load_settings(temp_dir / "config.yaml", environ={})
        assert saved.anthropic_api_key == "sk-old"
        assert saved.model == "kept"

    def test_env_key_not_persisted(
        self, make_session, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        session, _ = make_session(lines=["m"], secrets=[""])

        session.handle_line("/config")

        assert "sk-env" not in (temp_dir / "config.yaml").read_text()
        assert session.settings.anthropic_api_key == "sk-env"

    def test_conversation_survives_config(self, make_session) -> None:
        session, _ = make_session(
            lines=["claude-other"], secrets=[""], responses=[say("Noted."), say("42")]
        )
        session.handle_line("remember the number 42")
        session_id = session.conversation.session_id

        session.handle_line("/config")
        session.handle_line("what was the number?")

        model = session._model_client
        assert [t.text for t in model.requests[-1] if t.text] == [
            "remember the number 42",
            "Noted.",
            "what was the number?",
        ]
        assert session.agent.conversation is session.conversation
        assert session.conversation.session_id == session_id

    def test_eof_saves_nothing(self, make_session, temp_dir: Path) -> None:
        session, _ = make_session(lines=[], secrets=[])
        session.handle_line("/config")
        assert not (temp_dir / "config.yaml").exists()


# =============================================================================
# Message Tests
# =============================================================================


class TestMessages:
    """Tests for sending messages to the agent."""

    def test_reply_printed(self, make_session, console) -> None:
        session, _ = make_session(responses=[say("Hello there")])

        session.handle_line("hi")

        text = output(console)
        assert "Assistant:" in text
        assert "Hello there" in text

    def test_tool_call_with_permission_prompt(
        self, make_session, temp_dir: Path, console
    ) -> None:
        (temp_dir / "notes.txt").write_text("remember the milk")
        responses = [
            ModelResponse(
                content=(ToolCallRequest(id="t1", name="read_file", input={"path": "notes.txt"}),),
                stop_reason=StopReason.TOOL_USE,
            ),
            say("It says to remember the milk."),
        ]
        session, prompt = make_session(lines=["yes"], responses=responses)

        session.handle_line("what is in notes.txt?")

        text = output(console)
        assert "Calling tool: read_file" in text
        assert f"AI wants to read: {temp_dir.resolve() / 'notes.txt'}" in text
        assert "Result: ✓ Success" in text
        assert "Output: remember the milk" in text
        assert len(prompt.prompts) == 1

    def test_spinner_runs_again_after_tool_results(
        self, make_session, console, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        status = MagicMock()
        monkeypatch.setattr(console, "status", lambda *args, **kwargs: status)
        responses = [
            ModelResponse(
                content=(ToolCallRequest(id="t1", name="list_directory", input={"path": "."}),),
                stop_reason=StopReason.TOOL_USE,
            ),
            say("done"),
        ]
        session, _ = make_session(responses=responses)
        session.session.auto_approve = True

        session.handle_line("look around")

        assert [name for name, _, _ in status.mock_calls] == [
            "start",
            "stop",
            "start",
            "stop",
            "stop",
        ]

    def test_missing_api_key(self, make_session, console) -> None:
        session, _ = make_session(settings=Settings())
        session._model_client = None

        session.handle_line("hi")

        assert "Cannot initialize agent: No Anthropic API key found" in output(console)
        assert session.agent is None
        assert len(session.conversation) == 0

    def test_model_error_reported(self, make_session, console) -> None:
        session, _ = make_session(
            responses=[ModelConnectionError(model="m", underlying_error="down"), say("ok")]
        )

        session.handle_line("first")
        session.handle_line("second")

        text = output(console)
        assert "✗ Error:" in text
        assert "down" in text
        assert "ok" in text

    def test_max_rounds_reported(self, make_session, console) -> None:
        loop_call = ModelResponse(
            content=(ToolCallRequest(id="t1", name="list_directory", input={"path": "."}),),
            stop_reason=StopReason.TOOL_USE,
        )
        session, _ = make_session(
            responses=[loop_call], settings=Settings(anthropic_api_key="sk", max_rounds=1)
        )
        session.session.auto_approve = True

        session.handle_line("go")

        assert "Stopped after 1 model calls" in output(console)


class TestRun:
    """Tests for the read loop."""

    def test_run_until_exit(self, make_session, console) -> None:
        session, prompt = make_session(lines=["/auto", "/exit", "never read"])

        session.run()

        assert session.session.auto_approve is True
        assert prompt.answers == ["never read"]
        assert "Goodbye" in output(console)

    def test_run_until_eof(self, make_session, console) -> None:
        session, _ = make_session(lines=[])
        session.run()
        assert "Coding Agent CLI" in output(console)
