"""
Unit tests for the command-line interface.

Tests cover:
- --version
- doctor (text and JSON output)
- sessions and show-session against a session log
- chat startup, commands and exit
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from codeagent import __version__
from codeagent.cli import app
from codeagent.schema import PermissionDecision, TextBlock, ToolCallRequest, ToolResult, Turn
from codeagent.store import SessionLog

runner = CliRunner()


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "ANTHROPIC_API_KEY",
        "CODEAGENT_MODEL",
        "CODEAGENT_CONFIG",
        "LOGLINE_API_URL",
        "LOGLINE_TENANT",
        "LOGLINE_TOKEN",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_path(temp_dir: Path) -> Path:
    path = temp_dir / "config.yaml"
    path.write_text("anthropic_api_key: sk-test\nmodel: claude-test\n")
    return path


@pytest.fixture
def recorded_db(temp_dir: Path) -> Path:
    """A session log with one short session."""
    db_path = temp_dir / "history.db"
    turns = [
        Turn.user("read a.txt"),
        Turn.assistant([ToolCallRequest(id="t1", name="read_file", input={"path": "a.txt"})]),
        Turn.tool_result("t1", ToolResult.fail("User denied permission")),
        Turn.assistant([TextBlock(text="Okay, I won't read it.")]),
    ]
    with SessionLog(db_path) as log:
        log.start_session("abc123", model="claude-test")
        for order, turn in enumerate(turns):
            log.record_turn("abc123", turn.model_copy(update={"order": order}))
        log.record_permission(
            "abc123", "read", "a.txt", None, PermissionDecision.deny("User denied permission")
        )
    return db_path


# =============================================================================
# Basic Tests
# =============================================================================


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "chat" in result.output


class TestDoctor:
    """Tests for the doctor command."""

    def test_json(self, config_path: Path) -> None:
        result = runner.invoke(app, ["doctor", "--json", "--config", str(config_path)])

        data = json.loads(result.output)
        checks = {c["name"]: c for c in data["checks"]}
        assert data["version"] == __version__
        assert checks["Config"]["ok"] is True
        assert checks["Anthropic API key"]["ok"] is True
        assert checks["LogLine"]["ok"] is True
        assert checks["Session log"]["value"] == str(config_path.parent / "history.db")
        assert result.exit_code == (0 if data["ok"] else 1)

    def test_missing_key_fails(self, temp_dir: Path) -> None:
        result = runner.invoke(app, ["doctor", "--json", "--config", str(temp_dir / "none.yaml")])

        data = json.loads(result.output)
        checks = {c["name"]: c for c in data["checks"]}
        assert checks["Anthropic API key"]["ok"] is False
        assert result.exit_code == 1

    def test_invalid_config(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("max_rounds: [1\n")

        result = runner.invoke(app, ["doctor", "--json", "--config", str(path)])

        data = json.loads(result.output)
        assert {c["name"]: c for c in data["checks"]}["Config"]["ok"] is False
        assert result.exit_code == 1

    def test_text_output(self, config_path: Path) -> None:
        result = runner.invoke(app, ["doctor", "--config", str(config_path)])
        assert "codeagent doctor" in result.output
        assert "Anthropic API key" in result.output


# =============================================================================
# Session Log Commands
# =============================================================================


class TestSessions:
    """Tests for the sessions command."""

    def test_missing_db(self, config_path: Path, temp_dir: Path) -> None:
        result = runner.invoke(
            app, ["sessions", "--config", str(config_path), "--db", str(temp_dir / "none.db")]
        )
        assert result.exit_code == 0
        assert "No session log found" in result.output

    def test_lists_sessions(self, config_path: Path, recorded_db: Path) -> None:
        result = runner.invoke(
            app, ["sessions", "--config", str(config_path), "--db", str(recorded_db)]
        )
        assert result.exit_code == 0
        assert "abc123" in result.output
        assert "claude-test" in result.output

    def test_default_db_beside_config(self, config_path: Path, recorded_db: Path) -> None:
        result = runner.invoke(app, ["sessions", "--config", str(config_path)])
        assert "abc123" in result.output


class TestShowSession:
    """Tests for the show-session command."""

    def test_show(self, config_path: Path, recorded_db: Path) -> None:
        result = runner.invoke(
            app,
            ["show-session", "abc123", "--config", str(config_path), "--db", str(recorded_db)],
        )

        assert result.exit_code == 0
        assert "read a.txt" in result.output
        assert '🔧 read_file({"path": "a.txt"})' in result.output
        assert "✗ Error: User denied permission" in result.output
        assert "denied" in result.output

    def test_unknown_session(self, config_path: Path, recorded_db: Path) -> None:
        result = runner.invoke(
            app,
            ["show-session", "nope", "--config", str(config_path), "--db", str(recorded_db)],
        )
        assert result.exit_code == 1
        assert "Session not found" in result.output


# =============================================================================
# Chat Tests
# =============================================================================


class TestChat:
    """Tests for the chat command (no model calls are made)."""

    def test_help_then_exit(self, config_path: Path, temp_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["chat", "--config", str(config_path), "-C", str(temp_dir)],
            input="/help\n/exit\n",
        )

        assert result.exit_code == 0
        assert "Claude API key configured" in result.output
        assert "execute_command" in result.output
        assert "Goodbye" in result.output

    def test_no_session_logged_without_messages(self, config_path: Path, temp_dir: Path) -> None:
        db_path = temp_dir / "chat.db"

        runner.invoke(
            app,
            ["chat", "--config", str(config_path), "--db", str(db_path)],
            input="/exit\n",
        )

        with SessionLog(db_path) as log:
            assert log.list_sessions() == []

    def test_invalid_config_exits(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("unknown_key: 1\n")

        result = runner.invoke(app, ["chat", "--config", str(path)], input="/exit\n")

        assert result.exit_code == 1
        assert "Error:" in result.output
