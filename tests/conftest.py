"""
Pytest configuration and fixtures for codeagent tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import io
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from rich.console import Console

from codeagent.permissions import PermissionGate, SessionContext
from codeagent.store import SessionLog


class ScriptedPrompt:
    """Stands in for the human: returns queued answers, then raises EOFError."""

    def __init__(self, answers: list[str] | None = None) -> None:
        self.answers = list(answers or [])
        self.prompts: list[str] = []

    def __call__(self, text: str) -> str:
        self.prompts.append(text)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


@pytest.fixture
def scripted_prompt() -> type[ScriptedPrompt]:
    """The ScriptedPrompt class, for tests that wire their own input."""
    return ScriptedPrompt


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def console() -> Console:
    """A console that writes to memory; read it with console.file.getvalue()."""
    return Console(file=io.StringIO(), force_terminal=False, width=200)


@pytest.fixture
def session_log() -> Generator[SessionLog, None, None]:
    """An in-memory session log."""
    log = SessionLog(":memory:")
    yield log
    log.close()


@pytest.fixture
def make_gate(console: Console) -> Callable[..., tuple[PermissionGate, ScriptedPrompt]]:
    """
    Factory for a gate answered by a script.

    Usage:
        gate, prompt = make_gate(["yes", "no"])
    """

    def _make(
        answers: list[str] | None = None,
        auto_approve: bool = False,
        log: SessionLog | None = None,
        session_id: str = "test-session",
    ) -> tuple[PermissionGate, ScriptedPrompt]:
        prompt = ScriptedPrompt(answers)
        session = SessionContext(session_id=session_id, auto_approve=auto_approve)
        gate = PermissionGate(session, prompt=prompt, console=console, log=log)
        return gate, prompt

    return _make
