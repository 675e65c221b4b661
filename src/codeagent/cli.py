"""
CLI entry point for codeagent.

This module provides the Typer-based command-line interface for codeagent.

Commands:
    chat          Start an interactive session with the agent
    sessions      List recorded sessions
    show-session  Show the turns and permission decisions of a session
    doctor        Check configuration and environment

Architecture Note:
    The CLI is intentionally thin - it loads settings, opens the session
    log and hands over to ChatSession. The agent itself can be used
    programmatically without the CLI.
"""

import json
import shutil
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from codeagent import __version__
from codeagent.chat import ChatSession
from codeagent.config import Settings, default_config_path, load_settings
from codeagent.errors import ConfigError, StorageError, UserAbortError
from codeagent.store import SessionLog

# Initialize Typer app with metadata
app = typer.Typer(
    name="codeagent",
    help="Chat with a coding agent that asks before it acts.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]codeagent[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    codeagent - a terminal coding agent.

    Every file write, command and web request the model asks for is shown
    to you and runs only after you approve it.
    """
    pass


ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to the config YAML file. Defaults to ~/.codeagent/config.yaml.",
    ),
]

DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        help="Path to the session log database. Defaults to history.db beside the config file.",
    ),
]


def _load(config: Path | None) -> tuple[Settings, Path]:
    """Load settings or exit with code 1."""
    config_path = config or default_config_path()
    try:
        return load_settings(config_path), config_path
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        if e.suggestion:
            console.print(f"[dim]{escape(e.suggestion)}[/dim]")
        raise typer.Exit(code=1)


def _history_path(settings: Settings, config_path: Path, db: Path | None) -> Path:
    return db or settings.history_path(config_path.parent)


@app.command()
def chat(
    config: ConfigOption = None,
    db: DbOption = None,
    model: Annotated[
        Optional[str],
        typer.Option(
            "--model",
            "-m",
            help="Model to use for this session.",
        ),
    ] = None,
    working_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--working-dir",
            "-C",
            help="Directory tools operate in. Defaults to the current directory.",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ] = None,
    auto_approve: Annotated[
        bool,
        typer.Option(
            "--auto-approve",
            help="Start with auto-approve enabled (every action runs without asking).",
        ),
    ] = False,
    no_history: Annotated[
        bool,
        typer.Option(
            "--no-history",
            help="Do not record the session in the session log.",
        ),
    ] = False,
) -> None:
    """
    Start an interactive session.

    Type a task; the agent answers and asks before each action.
    Commands: /help, /config, /auto, /clear, /exit.

    Example:
        $ codeagent chat
        $ codeagent chat --model claude-sonnet-4-5-20250929 -C ./project
    """
    settings, config_path = _load(config)
    if model:
        settings = settings.model_copy(update={"model": model})

    log: SessionLog | None = None
    if not no_history:
        history_path = _history_path(settings, config_path, db)
        try:
            log = SessionLog(history_path)
        except StorageError as e:
            console.print(f"[yellow]⚠️  Session log disabled: {escape(e.message)}[/yellow]")

    session = ChatSession(
        settings,
        config_path=config_path,
        console=console,
        log=log,
        working_dir=str(working_dir or Path.cwd()),
    )
    session.session.auto_approve = auto_approve

    try:
        session.run()
    except UserAbortError:
        console.print("\n[red]Session aborted by user.[/red]")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Goodbye! 👋[/yellow]")
        raise typer.Exit(code=130)
    finally:
        if log is not None:
            log.close()


@app.command("sessions")
def list_sessions(
    config: ConfigOption = None,
    db: DbOption = None,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of sessions to show.",
        ),
    ] = 20,
) -> None:
    """
    List recorded sessions.

    Example:
        $ codeagent sessions -n 5
    """
    settings, config_path = _load(config)
    db_path = _history_path(settings, config_path, db)

    if not db_path.exists():
        console.print(f"[yellow]No session log found at {escape(str(db_path))}[/yellow]")
        raise typer.Exit(code=0)

    with SessionLog(db_path) as log:
        sessions = log.list_sessions(limit=limit)

    if not sessions:
        console.print("[dim]No sessions found.[/dim]")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Session ID", style="cyan")
    table.add_column("Created")
    table.add_column("Model")
    table.add_column("Turns", justify="right")
    table.add_column("Permissions", justify="right")

    for s in sessions:
        table.add_row(
            s.session_id,
            s.created_at.isoformat()[:19],
            s.model or "-",
            str(s.turn_count),
            str(s.permission_count),
        )

    console.print(table)


def _render_block(block: dict) -> str:
    """One-line rendering of a stored content block."""
    kind = block.get("type")
    if kind == "text":
        return block.get("text", "")
    if kind == "tool_use":
        return f"🔧 {block.get('name')}({json.dumps(block.get('input', {}), default=str)})"
    if kind == "tool_result":
        marker = "✗" if block.get("is_error") else "✓"
        return f"{marker} {block.get('content', '')}"
    return json.dumps(block, default=str)


@app.command("show-session")
def show_session(
    session_id: Annotated[
        str,
        typer.Argument(help="The session ID to show."),
    ],
    config: ConfigOption = None,
    db: DbOption = None,
) -> None:
    """
    Show the turns and permission decisions of a session.

    Example:
        $ codeagent show-session 3f2a9c1b7e4d
    """
    settings, config_path = _load(config)
    db_path = _history_path(settings, config_path, db)

    if not db_path.exists():
        console.print(f"[red]Session log not found: {escape(str(db_path))}[/red]")
        raise typer.Exit(code=1)

    with SessionLog(db_path) as log:
        turns = log.get_turns(session_id)
        permissions = log.get_permissions(session_id)

    if not turns and not permissions:
        console.print(f"[red]Session not found: {escape(session_id)}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[bold]Session {escape(session_id)}[/bold]\n")

    role_style = {"user": "cyan", "assistant": "blue", "tool_result": "magenta"}
    for turn in turns:
        style = role_style.get(turn["role"], "white")
        for block in turn["content"]:
            text = _render_block(block)
            if len(text) > 300:
                text = text[:297] + "..."
            console.print(f"[{style}]{turn['role']:>11}[/{style}] {escape(text)}")
    console.print()

    if permissions:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Action", width=8)
        table.add_column("Target", style="cyan")
        table.add_column("Decision")
        table.add_column("Reason")

        for p in permissions:
            if p["auto_approved"]:
                decision = "[yellow]auto[/yellow]"
            elif p["approved"]:
                decision = "[green]approved[/green]"
            else:
                decision = "[red]denied[/red]"
            table.add_row(p["action"], escape(p["target"]), decision, escape(p["reason"] or ""))

        console.print(table)
    else:
        console.print("[dim]No permission requests recorded.[/dim]")


@app.command()
def doctor(
    config: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    Check configuration and environment.

    Verifies:
    - Python version (3.11+)
    - Config file and Anthropic API key
    - LogLine configuration (optional)
    - git on PATH
    - Session log location

    Example:
        $ codeagent doctor
    """
    checks = []

    # Check 1: Python version
    py_version = sys.version_info
    py_ok = py_version >= (3, 11)
    checks.append({
        "name": "Python version",
        "ok": py_ok,
        "value": f"{py_version.major}.{py_version.minor}.{py_version.micro}",
        "message": "OK" if py_ok else "Requires Python 3.11+",
    })

    # Check 2: Config file
    config_path = config or default_config_path()
    settings: Settings | None = None
    try:
        settings = load_settings(config_path)
        checks.append({
            "name": "Config",
            "ok": True,
            "value": str(config_path),
            "message": "Loaded" if config_path.exists() else "Not found (defaults in use)",
        })
    except ConfigError as e:
        checks.append({
            "name": "Config",
            "ok": False,
            "value": str(config_path),
            "message": e.message,
        })

    # Check 3: API key
    has_key = bool(settings and settings.anthropic_api_key)
    checks.append({
        "name": "Anthropic API key",
        "ok": has_key,
        "value": settings.model if settings else "",
        "message": "Configured" if has_key else "Set ANTHROPIC_API_KEY or run /config in chat",
    })

    # Check 4: LogLine (optional, never fails the run)
    logline_ok = bool(settings and settings.logline.is_configured())
    checks.append({
        "name": "LogLine",
        "ok": True,
        "optional": True,
        "value": (settings.logline.api_url or "") if settings else "",
        "message": "Configured" if logline_ok else "Not configured (optional)",
    })

    # Check 5: git
    git_path = shutil.which("git")
    checks.append({
        "name": "git",
        "ok": git_path is not None,
        "value": git_path or "",
        "message": "Found" if git_path else "git not found on PATH; git tools will fail",
    })

    # Check 6: Session log location
    if settings is not None:
        db_path = settings.history_path(config_path.parent)
        parent = db_path.parent
        if db_path.exists():
            db_ok, db_message = True, f"Exists ({db_path.stat().st_size} bytes)"
        elif parent.exists() and not parent.is_dir():
            db_ok, db_message = False, f"Not a directory: {parent}"
        else:
            db_ok, db_message = True, "Not found (will be created on first chat)"
        checks.append({
            "name": "Session log",
            "ok": db_ok,
            "value": str(db_path),
            "message": db_message,
        })

    all_ok = all(check["ok"] for check in checks)

    if json_output:
        output = {
            "ok": all_ok,
            "version": __version__,
            "checks": checks,
        }
        print(json.dumps(output, indent=2))
    else:
        console.print(f"[bold]codeagent doctor[/bold] v{__version__}")
        console.print()

        for check in checks:
            icon = "[green]✓[/green]" if check["ok"] else "[red]✗[/red]"
            name = check["name"]
            value = escape(check.get("value", ""))
            message = escape(check.get("message", ""))

            if check["ok"]:
                console.print(f"{icon} {name}: [dim]{value}[/dim] - {message}")
            else:
                console.print(f"{icon} {name}: [dim]{value}[/dim]")
                console.print(f"    [red]{message}[/red]")

        console.print()
        if all_ok:
            console.print("[green]All checks passed![/green]")
        else:
            console.print("[yellow]Some checks failed. See above for details.[/yellow]")

    raise typer.Exit(code=0 if all_ok else 1)


if __name__ == "__main__":
    app()
