"""
Version-control tools for codeagent.

These tools drive the `git` executable in the working directory through
the no-shell argv runner from the shell module:
- git_status: branch and counts of modified, staged and untracked files
- git_diff: unstaged changes
- git_commit: stage everything and commit
- git_create_branch: create and switch to a new branch
- git_push: push a branch to a remote

git_status and git_diff only read the repository and ask nothing. The
other three ask the permission gate with action "execute", showing the
git command line that will run.
"""

import shlex
from dataclasses import dataclass, field
from typing import Any

from codeagent.schema import ActionKind, ToolParameter, ToolResult
from codeagent.tools.base import Tool, ToolContext
from codeagent.tools.shell import run_argv

GIT = "git"


@dataclass
class GitStatus:
    """Parsed output of `git status --porcelain --branch`."""

    branch: str = ""
    modified: list[str] = field(default_factory=list)
    staged: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Branch: {self.branch}\n"
            f"Modified: {len(self.modified)} files\n"
            f"Staged: {len(self.staged)} files\n"
            f"Untracked: {len(self.untracked)} files"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "modified": self.modified,
            "staged": self.staged,
            "untracked": self.untracked,
        }


def parse_porcelain_status(text: str) -> GitStatus:
    """
    Parse porcelain v1 status output with a branch header.

    The first line looks like "## main...origin/main [ahead 1]"; each
    following line is "XY path" where X is the index state and Y the
    work tree state.
    """
    status = GitStatus()
    for line in text.splitlines():
        if line.startswith("## "):
            header = line[3:]
            if header.startswith("No commits yet on "):
                header = header[len("No commits yet on ") :]
            status.branch = header.split("...")[0].split(" ")[0]
            continue
        if len(line) < 4:
            continue
        index_state, tree_state, path = line[0], line[1], line[3:]
        if index_state == "?" and tree_state == "?":
            status.untracked.append(path)
            continue
        if index_state not in (" ", "?"):
            status.staged.append(path)
        if tree_state not in (" ", "?"):
            status.modified.append(path)
    return status


def run_git(context: ToolContext, *args: str) -> ToolResult:
    """Run one git subcommand in the working directory."""
    return run_argv([GIT, *args], cwd=context.working_dir)


def git_error(result: ToolResult, fallback: str) -> ToolResult:
    """Rewrite a failed git run so stderr becomes the error message."""
    data = result.data or {}
    stderr = (data.get("stderr") or "").strip()
    return ToolResult.fail(stderr or result.error or fallback, data=result.data)


class GitStatusTool(Tool):
    """Report the current branch and file state counts."""

    @property
    def name(self) -> str:
        return "git_status"

    @property
    def description(self) -> str:
        return "Get the current git status (modified, staged, untracked files)"

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        result = run_git(context, "status", "--porcelain=v1", "--branch")
        if not result.success:
            return git_error(result, "Failed to get git status")

        status = parse_porcelain_status(result.data["stdout"])
        return ToolResult.ok(status.summary(), data=status.to_dict())


class GitDiffTool(Tool):
    """Show unstaged changes."""

    @property
    def name(self) -> str:
        return "git_diff"

    @property
    def description(self) -> str:
        return "Show diff of unstaged changes"

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        result = run_git(context, "diff")
        if not result.success:
            return git_error(result, "Failed to get git diff")
        return ToolResult.ok(result.data["stdout"] or "No unstaged changes")


class GitCommitTool(Tool):
    """
    Stage all changes and create a commit.

    Arguments:
        message (str): Commit message (required)
    """

    @property
    def name(self) -> str:
        return "git_commit"

    @property
    def description(self) -> str:
        return "Stage all changes and create a commit"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="message",
                type="string",
                description="Commit message",
                required=True,
            ),
        )

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        message = args["message"]

        denied = self.authorize(
            context,
            ActionKind.EXECUTE,
            f"git add . && git commit -m {shlex.quote(message)}",
            details="Stage and commit all changes",
        )
        if denied is not None:
            return denied

        added = run_git(context, "add", ".")
        if not added.success:
            return git_error(added, "Failed to stage changes")

        committed = run_git(context, "commit", "-m", message)
        if not committed.success:
            # "nothing to commit" is reported on stdout
            data = committed.data or {}
            reason = (data.get("stderr") or "").strip() or (data.get("stdout") or "").strip()
            return ToolResult.fail(reason or "Failed to commit", data=committed.data)

        head = run_git(context, "rev-parse", "--short", "HEAD")
        commit = head.data["stdout"].strip() if head.success else ""
        return ToolResult.ok(
            f"Committed: {commit}",
            data={"commit": commit, "output": committed.data["stdout"]},
        )


class GitCreateBranchTool(Tool):
    """
    Create and check out a new branch.

    Arguments:
        branch_name (str): Name of the new branch (required)
    """

    @property
    def name(self) -> str:
        return "git_create_branch"

    @property
    def description(self) -> str:
        return "Create and checkout a new git branch"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="branch_name",
                type="string",
                description="Name of the new branch",
                required=True,
            ),
        )

    def validate_args(self, args: Any) -> list[str]:
        errors = super().validate_args(args)
        if not errors and (not args["branch_name"].strip() or args["branch_name"].startswith("-")):
            errors.append("'branch_name' must be a non-empty name not starting with '-'")
        return errors

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        branch_name = args["branch_name"]

        denied = self.authorize(
            context,
            ActionKind.EXECUTE,
            f"git checkout -b {branch_name}",
            details="Create and switch to new branch",
        )
        if denied is not None:
            return denied

        result = run_git(context, "checkout", "-b", branch_name)
        if not result.success:
            return git_error(result, "Failed to create branch")
        return ToolResult.ok(f"Created and switched to branch: {branch_name}")


class GitPushTool(Tool):
    """
    Push commits to a remote.

    Arguments:
        remote (str): Remote name, default "origin"
        branch (str): Branch name, default the current branch
    """

    @property
    def name(self) -> str:
        return "git_push"

    @property
    def description(self) -> str:
        return "Push commits to remote repository"

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="remote",
                type="string",
                description="Remote name (defaults to origin)",
            ),
            ToolParameter(
                name="branch",
                type="string",
                description="Branch name (defaults to current branch)",
            ),
        )

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        remote = args.get("remote") or "origin"
        branch = args.get("branch")

        if not branch:
            current = run_git(context, "rev-parse", "--abbrev-ref", "HEAD")
            if not current.success:
                return git_error(current, "Failed to determine current branch")
            branch = current.data["stdout"].strip()

        denied = self.authorize(
            context,
            ActionKind.EXECUTE,
            f"git push {remote} {branch}",
            details="Push commits to remote repository",
        )
        if denied is not None:
            return denied

        result = run_git(context, "push", remote, branch)
        if not result.success:
            return git_error(result, "Failed to push")
        return ToolResult.ok(f"Pushed to {remote}/{branch}")


def git_tools() -> list[Tool]:
    """The version-control tools, in advertised order."""
    return [
        GitStatusTool(),
        GitDiffTool(),
        GitCommitTool(),
        GitCreateBranchTool(),
        GitPushTool(),
    ]
