"""
Unit tests for the permission gate.

Tests cover:
- Approving answers (yes, y, always) and everything else denying
- The always answer setting auto-approve for later requests
- The never answer raising UserAbortError
- Auto-approve skipping the prompt but still printing and recording
- Action descriptions shown above the prompt
"""

import pytest

from codeagent.errors import USER_DENIED_REASON, UserAbortError
from codeagent.permissions import describe_action
from codeagent.permissions.gate import PROMPT_TEXT
from codeagent.schema import ActionKind


class TestAnswers:
    """Tests for how answers map to decisions."""

    @pytest.mark.parametrize("answer", ["yes", "y", "YES", "  Y  "])
    def test_approve_once(self, make_gate, answer: str) -> None:
        gate, prompt = make_gate([answer])

        decision = gate.request_permission(ActionKind.READ, "README.md")

        assert decision.approved is True
        assert gate.session.auto_approve is False
        assert prompt.prompts == [PROMPT_TEXT]

    @pytest.mark.parametrize("answer", ["no", "n", "", "yess", "sure", "ok", "nope"])
    def test_everything_else_denies(self, make_gate, answer: str) -> None:
        gate, _ = make_gate([answer])

        decision = gate.request_permission(ActionKind.WRITE, "a.txt", "3 characters")

        assert decision.approved is False
        assert decision.reason == USER_DENIED_REASON

    def test_eof_denies(self, make_gate) -> None:
        gate, _ = make_gate([])

        decision = gate.request_permission(ActionKind.EXECUTE, "ls")

        assert decision.approved is False
        assert decision.reason == USER_DENIED_REASON

    def test_always_enables_auto_approve(self, make_gate) -> None:
        gate, prompt = make_gate(["always"])

        first = gate.request_permission(ActionKind.WRITE, "a.txt")
        second = gate.request_permission(ActionKind.EXECUTE, "make test")

        assert first.approved is True
        assert second.approved is True
        assert gate.session.auto_approve is True
        assert len(prompt.prompts) == 1

    def test_never_aborts(self, make_gate) -> None:
        gate, _ = make_gate(["never"])

        with pytest.raises(UserAbortError) as exc_info:
            gate.request_permission(ActionKind.EXECUTE, "rm -rf build")

        assert exc_info.value.target == "rm -rf build"
        assert exc_info.value.action == "execute"


class TestAutoApprove:
    """Tests for requests made while auto-approve is set."""

    def test_no_prompt(self, make_gate, console) -> None:
        gate, prompt = make_gate([], auto_approve=True)

        decision = gate.request_permission(ActionKind.WRITE, "out.txt", "12 characters")

        assert decision.approved is True
        assert prompt.prompts == []
        assert "Auto-approved: Writing to out.txt" in console.file.getvalue()

    def test_recorded_as_auto(self, make_gate, session_log) -> None:
        gate, _ = make_gate([], auto_approve=True, log=session_log)

        gate.request_permission(ActionKind.READ, "a.txt")

        [record] = session_log.get_permissions("test-session")
        assert record["approved"] is True
        assert record["auto_approved"] is True

    def test_turning_off_prompts_again(self, make_gate) -> None:
        gate, prompt = make_gate(["no"], auto_approve=True)

        gate.session.toggle_auto_approve()
        decision = gate.request_permission(ActionKind.READ, "a.txt")

        assert decision.approved is False
        assert len(prompt.prompts) == 1


class TestAuditTrail:
    """Tests for decisions written to the session log."""

    def test_every_answer_recorded(self, make_gate, session_log) -> None:
        gate, _ = make_gate(["yes", "no"], log=session_log)

        gate.request_permission(ActionKind.READ, "a.txt")
        gate.request_permission(ActionKind.WRITE, "b.txt", "5 characters")

        records = session_log.get_permissions("test-session")
        assert [(r["target"], r["approved"]) for r in records] == [
            ("a.txt", True),
            ("b.txt", False),
        ]
        assert records[1]["details"] == "5 characters"
        assert records[1]["reason"] == USER_DENIED_REASON

    def test_abort_recorded(self, make_gate, session_log) -> None:
        gate, _ = make_gate(["never"], log=session_log)

        with pytest.raises(UserAbortError):
            gate.request_permission(ActionKind.EXECUTE, "ls")

        [record] = session_log.get_permissions("test-session")
        assert record["approved"] is False


class TestDescribeAction:
    """Tests for describe_action()."""

    def test_read(self) -> None:
        assert describe_action(ActionKind.READ, "a.txt") == "📖 AI wants to read: a.txt"

    def test_write_with_details(self) -> None:
        text = describe_action(ActionKind.WRITE, "a.txt", "12 characters")
        assert text.splitlines()[1].strip() == "Changes: 12 characters"

    def test_execute_with_purpose(self) -> None:
        text = describe_action(ActionKind.EXECUTE, "pytest -q", "Run the tests")
        assert "AI wants to run: pytest -q" in text
        assert "Purpose: Run the tests" in text

    def test_description_printed_before_prompt(self, make_gate, console) -> None:
        gate, _ = make_gate(["y"])
        gate.request_permission(ActionKind.DELETE, "old.log")
        assert "AI wants to delete: old.log" in console.file.getvalue()
