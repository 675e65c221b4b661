"""
Interactive chat session for codeagent.

ChatSession is the line loop behind `codeagent chat`. Lines starting with
"/" are session commands; everything else is sent to the agent as a user
message.

Commands:
    /help         Show commands and available tools
    /config       Set the API key and model, saved to the config file
    /auto         Toggle auto-approve for this session
    /clear        Start a new conversation (auto-approve is kept)
    /exit, /quit  Leave the session

The agent is built on the first message, so the session can start (and
/config can be used) before an API key exists. Rebuilding the agent after
/config keeps the same conversation and session context.
"""

import json
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.markup import escape

from codeagent.agent import AgentConfig, AgentLoop
from codeagent.config import Settings, load_settings, save_settings
from codeagent.conversation import ConversationState
from codeagent.errors import CodeAgentError, ConfigError, MissingApiKeyError, ModelCallError
from codeagent.model import AnthropicModelClient, ModelClient, build_system_prompt
from codeagent.permissions import PermissionGate, SessionContext
from codeagent.schema import ToolCallRequest, ToolResult
from codeagent.store import SessionLog
from codeagent.tools import ToolRegistry, build_registry

COMMANDS = {
    "/help": "Show this help message",
    "/config": "Configure API key and model",
    "/auto": "Toggle auto-approve mode",
    "/clear": "Clear conversation history",
    "/exit": "Exit the agent",
}

EXIT_COMMANDS = frozenset({"/exit", "/quit"})

PREVIEW_CHARS = 200


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class ChatSession:
    """
    One interactive session: settings, conversation, gate and agent.

    Attributes:
        settings: Effective settings (file plus environment)
        config_path: Config file /config writes to
        session: Auto-approve flag and session id
        conversation: The conversation log, kept across agent rebuilds
        log: Optional session log
        agent: The agent loop, built on first use
    """

    def __init__(
        self,
        settings: Settings,
        config_path: Path,
        console: Console | None = None,
        log: SessionLog | None = None,
        working_dir: str = ".",
        model_client: ModelClient | None = None,
        registry: ToolRegistry | None = None,
        prompt: Callable[[str], str] | None = None,
        secret_prompt: Callable[[str], str] | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            settings: Effective settings
            config_path: Where /config saves
            console: Rich console for all output
            log: Optional session log
            working_dir: Directory tools operate in
            model_client: Prebuilt model client; built from settings if omitted
            registry: Prebuilt registry; built from settings if omitted
            prompt: Reads one line of input; defaults to console.input and
                is shared with the permission gate
            secret_prompt: Reads a line without echo, for the API key
        """
        self.settings = settings
        self.config_path = config_path
        self.console = console if console is not None else Console()
        self.log = log
        self.working_dir = working_dir
        self._prompt = prompt or self.console.input
        self._secret_prompt = secret_prompt or (
            lambda text: self.console.input(text, password=True)
        )
        self._model_client = model_client
        self._registry = registry

        self.session = SessionContext(model=settings.model)
        self.conversation = ConversationState()
        self.gate = PermissionGate(
            self.session,
            prompt=self._prompt,
            console=self.console,
            log=self.log,
        )
        self.agent: AgentLoop | None = None

    # =========================================================================
    # Agent
    # =========================================================================

    @property
    def registry(self) -> ToolRegistry:
        if self._registry is None:
            self._registry = build_registry(self.settings, console=self.console)
        return self._registry

    def build_agent(self) -> AgentLoop:
        """
        Build the agent loop around this session's conversation.

        Raises:
            MissingApiKeyError: If no API key is configured
        """
        client = self._model_client or AnthropicModelClient.from_settings(
            self.settings,
            system_prompt=build_system_prompt(self.settings.logline.is_configured()),
        )
        return AgentLoop(
            client,
            self.registry,
            self.gate,
            conversation=self.conversation,
            log=self.log,
            config=AgentConfig(
                max_rounds=self.settings.max_rounds,
                working_dir=self.working_dir,
            ),
        )

    def ensure_agent(self) -> AgentLoop | None:
        """Return the agent, building it if needed; None if no API key."""
        if self.agent is None:
            try:
                self.agent = self.build_agent()
            except MissingApiKeyError:
                self.console.print(
                    "\n[red]✗ Cannot initialize agent: No Anthropic API key found[/red]"
                )
                self.console.print("[dim]  Run /config to set up your API key[/dim]\n")
                return None
            if self.settings.logline.is_configured():
                self.console.print("[green]✓ LogLine tools enabled[/green]")
        return self.agent

    # =========================================================================
    # Loop
    # =========================================================================

    def run(self) -> None:
        """
        Read lines until /exit, /quit or end of input.

        Raises:
            UserAbortError: The human answered "never" to a permission prompt
        """
        self.display_welcome()
        while True:
            try:
                line = self._prompt("[cyan]You:[/cyan] ")
            except EOFError:
                break
            if not self.handle_line(line):
                break
        self.console.print("[yellow]\nGoodbye! 👋\n[/yellow]")

    def handle_line(self, line: str) -> bool:
        """
        Handle one input line.

        Returns:
            False when the session should end
        """
        message = line.strip()
        if not message:
            return True
        if message.startswith("/"):
            return self.handle_command(message)
        self.process_message(message)
        return True

    def handle_command(self, message: str) -> bool:
        """Run a slash command. Returns False for /exit and /quit."""
        command = message.split()[0].lower()

        if command in EXIT_COMMANDS:
            return False
        if command == "/help":
            self.display_help()
        elif command == "/auto":
            self.toggle_auto()
        elif command == "/clear":
            self.clear()
        elif command == "/config":
            self.configure()
        else:
            self.console.print(f"[red]Unknown command: {escape(command)}[/red]")
            self.console.print("[dim]Type /help for available commands[/dim]\n")
        return True

    def process_message(self, message: str) -> None:
        """Send a message to the agent and print the conversation as it happens."""
        agent = self.ensure_agent()
        if agent is None:
            return

        status = self.console.status("Thinking...")
        status.start()

        def on_text(text: str) -> None:
            status.stop()
            self.console.print("\n[blue]Assistant:[/blue] ", end="")
            self.console.print(text, markup=False, highlight=False)

        def on_tool_call(call: ToolCallRequest) -> None:
            status.stop()
            self.console.print(f"\n🔧 Calling tool: [bold]{escape(call.name)}[/bold]")
            self.console.print(
                f"[dim]   Input: {escape(_preview(json.dumps(call.input, default=str)))}[/dim]"
            )

        def on_tool_result(call: ToolCallRequest, result: ToolResult) -> None:
            if result.success:
                self.console.print("   Result: [green]✓ Success[/green]")
            else:
                self.console.print(f"   Result: [red]✗ Failed[/red] {escape(result.error or '')}")
            if result.output:
                self.console.print(f"[dim]   Output: {escape(_preview(result.output))}[/dim]")
            status.start()

        try:
            reply = agent.send_message(
                message,
                on_text=on_text,
                on_tool_call=on_tool_call,
                on_tool_result=on_tool_result,
            )
        except ModelCallError as e:
            self.console.print(f"\n[red]✗ Error:[/red] {escape(e.message)}\n")
            return
        finally:
            status.stop()

        if reply.status == "max_rounds":
            self.console.print(
                f"\n[yellow]Stopped after {reply.rounds} model calls "
                f"(max_rounds). Send another message to continue.[/yellow]"
            )
        elif reply.status == "incomplete":
            self.console.print("\n[yellow]The response was cut short.[/yellow]")
        self.console.print()

    # =========================================================================
    # Commands
    # =========================================================================

    def display_welcome(self) -> None:
        self.console.print("[bold blue]🤖 Coding Agent CLI[/bold blue]")
        self.console.print("[dim]" + "─" * 50 + "[/dim]\n")

        if self.settings.anthropic_api_key:
            self.console.print("[green]✓ Claude API key configured[/green]")
        else:
            self.console.print("[yellow]⚠️  No Anthropic API key found[/yellow]")
            self.console.print("[dim]   Set ANTHROPIC_API_KEY environment variable[/dim]")
            self.console.print("[dim]   or run: /config[/dim]\n")

        logline = self.settings.logline
        if logline.is_configured():
            self.console.print("[green]✓ LogLine configured[/green]")
            self.console.print(f"[dim]   Tenant: {escape(logline.tenant or '')}[/dim]")
            self.console.print(f"[dim]   API: {escape(logline.api_url or '')}[/dim]\n")
        else:
            self.console.print("[yellow]⚠️  LogLine not configured (optional)[/yellow]")
            self.console.print(
                "[dim]   To enable: set LOGLINE_API_URL, LOGLINE_TENANT, LOGLINE_TOKEN[/dim]\n"
            )

        self.console.print("[dim]Type your coding task and I will help you.[/dim]")
        self.console.print(f"[dim]Commands: {', '.join(COMMANDS)}[/dim]")
        self.console.print("[dim]" + "─" * 50 + "[/dim]\n")

    def display_help(self) -> None:
        auto = "[green]ON[/green]" if self.session.auto_approve else "[red]OFF[/red]"
        self.console.print("\n[bold]Available Commands:[/bold]\n")
        for command, text in COMMANDS.items():
            suffix = f" (currently: {auto})" if command == "/auto" else ""
            self.console.print(f"[cyan]  {command:<9}[/cyan] - {text}{suffix}")

        self.console.print("\n[bold]Available Tools:[/bold]\n")
        for tool in self.registry:
            self.console.print(f"[cyan]  {tool.name:<22}[/cyan] - {escape(tool.description)}")
        self.console.print()

        if self.session.auto_approve:
            self.console.print(
                "[yellow]⚠️  Auto-approve is ON - all actions will be executed automatically[/yellow]"
            )
            self.console.print("[dim]   Use /auto to toggle off for safety[/dim]\n")

    def toggle_auto(self) -> bool:
        """Flip auto-approve and report the new state."""
        enabled = self.session.toggle_auto_approve()
        if enabled:
            self.console.print("[yellow]⚡ Auto-approve mode ENABLED[/yellow]")
            self.console.print(
                "[dim]   All file operations and commands will execute automatically[/dim]"
            )
            self.console.print("[dim]   Use /auto again to disable for safety[/dim]\n")
        else:
            self.console.print("[green]✓ Auto-approve mode DISABLED[/green]")
            self.console.print("[dim]   You will be asked to approve each action[/dim]\n")
        return enabled

    def clear(self) -> str:
        """Empty the conversation and start a new session id."""
        if self.agent is not None:
            session_id = self.agent.clear()
        else:
            session_id = self.conversation.clear()
            self.session.session_id = session_id
        self.console.print("[yellow]✓ Conversation cleared[/yellow]\n")
        return session_id

    def configure(self) -> None:
        """
        Ask for the API key and model and save them to the config file.

        Only values from the file itself are written back; environment
        overrides are not persisted.
        """
        try:
            file_settings = load_settings(self.config_path, environ={})
        except ConfigError as e:
            self.console.print(f"[red]✗ {escape(str(e))}[/red]\n")
            return

        try:
            api_key = self._secret_prompt(
                "Anthropic API Key (press Enter to keep current): "
            ).strip()
            model = self._prompt(f"Default model [{file_settings.model}]: ").strip()
        except EOFError:
            self.console.print()
            return

        updates: dict[str, str] = {}
        if api_key:
            updates["anthropic_api_key"] = api_key
        if model:
            updates["model"] = model

        try:
            path = save_settings(file_settings.model_copy(update=updates), self.config_path)
            self.settings = load_settings(self.config_path)
        except CodeAgentError as e:
            self.console.print(f"[red]✗ {escape(str(e))}[/red]\n")
            return

        self.session.model = self.settings.model
        self.agent = None
        self.console.print(f"[green]\n✓ Configuration saved to {escape(str(path))}[/green]\n")
