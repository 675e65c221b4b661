"""
Governed remote tools for codeagent.

These tools bridge the agent to a LogLine service. Every call goes through
one endpoint, POST {api_url}/boot, which runs a server-side "boot function"
identified by a fixed UUID:

    {"boot_function_id": "<uuid>", "input": {...}}

The service enforces its own governance (tenant isolation, consent,
sensitivity). Every call still leaves the machine, so each tool asks the
local permission gate for an execute-class action first.

The tools are only registered when api_url, tenant and token are all
configured (see build_registry).
"""

from typing import Any

import httpx

from codeagent.config import LogLineSettings
from codeagent.errors import RemoteServiceError
from codeagent.schema import ActionKind, ToolParameter, ToolResult
from codeagent.tools.base import Tool, ToolContext

BOOT_FUNCTIONS = {
    "PROVIDER_EXEC": "00000000-0000-4000-8000-000000000005",
    "PROMPT_FETCH": "00000000-0000-4000-8000-000000000006",
    "MEMORY_STORE": "00000000-0000-4000-8000-000000000007",
    "APP_ENROLLMENT": "00000000-0000-4000-8000-000000000008",
}

MEMORY_TYPES = ("session", "local", "permanent")
SENSITIVITY_LEVELS = ("internal", "secret", "pii", "public")

PREVIEW_CHARS = 100


class LogLineClient:
    """
    HTTP client for the LogLine boot endpoint.

    Usage:
        client = LogLineClient(settings.logline)
        response = client.boot(BOOT_FUNCTIONS["PROMPT_FETCH"], {"prompt_id": ...})
    """

    def __init__(self, settings: LogLineSettings, timeout_seconds: float = 30.0) -> None:
        self.settings = settings
        self.timeout_seconds = timeout_seconds

    @property
    def headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-logline-tenant": self.settings.tenant or "",
            "authorization": self.settings.token or "",
        }

    def boot(self, boot_function_id: str, input_data: dict[str, Any]) -> dict[str, Any]:
        """
        Run a boot function and return the decoded JSON response.

        Raises:
            RemoteServiceError: On transport failure, non-2xx status or a
                body that is not a JSON object
        """
        url = f"{(self.settings.api_url or '').rstrip('/')}/boot"
        payload = {"boot_function_id": boot_function_id, "input": input_data}

        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(url, json=payload, headers=self.headers)
        except httpx.HTTPError as e:
            raise RemoteServiceError(url=url, underlying_error=str(e)) from e

        if response.status_code >= 400:
            raise RemoteServiceError(
                url=url,
                status_code=response.status_code,
                underlying_error=response.text,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteServiceError(
                url=url,
                status_code=response.status_code,
                message=f"LogLine returned invalid JSON: {e}",
            ) from e

        if not isinstance(body, dict):
            raise RemoteServiceError(
                url=url,
                status_code=response.status_code,
                message="LogLine returned a non-object response",
            )
        return body


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_CHARS:
        return text
    return text[:PREVIEW_CHARS] + "..."


def _section(response: dict[str, Any], key: str) -> dict[str, Any]:
    """response[key] if it is an object, else an empty dict."""
    value = response.get(key)
    return value if isinstance(value, dict) else {}


class _LogLineTool(Tool):
    """Base for tools backed by a LogLineClient."""

    def __init__(self, client: LogLineClient) -> None:
        self.client = client

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        target, details = self.describe(args)
        denied = self.authorize(context, ActionKind.EXECUTE, target, details=details)
        if denied is not None:
            return denied

        try:
            return self.call(args)
        except RemoteServiceError as e:
            return ToolResult.fail(e.message)

    def describe(self, args: dict[str, Any]) -> tuple[str, str]:
        """Permission target and details for one call."""
        raise NotImplementedError

    def call(self, args: dict[str, Any]) -> ToolResult:
        raise NotImplementedError


class PromptFetchTool(_LogLineTool):
    """
    Fetch a versioned prompt and render it with variables.

    Arguments:
        prompt_id (str): UUID of the prompt block (required)
        vars (dict): Template variables
    """

    @property
    def name(self) -> str:
        return "logline_prompt_fetch"

    @property
    def description(self) -> str:
        return (
            "Fetch a versioned, governed prompt from the LogLine system. Use this to "
            "get consistent, centrally-managed prompts instead of hardcoding them."
        )

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="prompt_id",
                type="string",
                description="UUID of the prompt block to fetch",
                required=True,
            ),
            ToolParameter(
                name="vars",
                type="object",
                description="Variables to interpolate into the prompt template "
                "(e.g., user_name, org_name, context)",
            ),
        )

    def describe(self, args: dict[str, Any]) -> tuple[str, str]:
        return f"LogLine prompt fetch: {args['prompt_id']}", "Fetch a governed prompt"

    def call(self, args: dict[str, Any]) -> ToolResult:
        response = self.client.boot(
            BOOT_FUNCTIONS["PROMPT_FETCH"],
            {"prompt_id": args["prompt_id"], "vars": args.get("vars") or {}},
        )

        output = response.get("output")
        text = (
            _section(response, "output").get("text")
            or _section(response, "data").get("content")
            or (output if isinstance(output, str) else "")
        )
        return ToolResult.ok(text, data=response)


class MemoryStoreTool(_LogLineTool):
    """
    Store a memory.

    Arguments:
        content (str): What to remember (required)
        tags (list): Category tags
        memory_type (str): session, local or permanent; default session
        sensitivity (str): internal, secret, pii or public; default internal
    """

    @property
    def name(self) -> str:
        return "logline_memory_store"

    @property
    def description(self) -> str:
        return (
            "Store information in the LogLine memory system. Memories are persisted "
            "as spans with governance, consent tracking, and optional embeddings "
            "for semantic search."
        )

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="content",
                type="string",
                description="The content to store in memory",
                required=True,
            ),
            ToolParameter(
                name="tags",
                type="array",
                description='Tags for categorizing this memory (e.g., ["conversation", "code-review"])',
            ),
            ToolParameter(
                name="memory_type",
                type="string",
                description="Type of memory: session (temporary), local (user-specific), "
                "or permanent (long-term)",
            ),
            ToolParameter(
                name="sensitivity",
                type="string",
                description="Sensitivity level: internal, secret, pii, or public",
            ),
        )

    def validate_args(self, args: Any) -> list[str]:
        errors = super().validate_args(args)
        if errors:
            return errors
        memory_type = args.get("memory_type")
        if memory_type is not None and memory_type not in MEMORY_TYPES:
            errors.append(f"'memory_type' must be one of {', '.join(MEMORY_TYPES)}")
        sensitivity = args.get("sensitivity")
        if sensitivity is not None and sensitivity not in SENSITIVITY_LEVELS:
            errors.append(f"'sensitivity' must be one of {', '.join(SENSITIVITY_LEVELS)}")
        return errors

    def describe(self, args: dict[str, Any]) -> tuple[str, str]:
        return (
            f"LogLine memory store: {_preview(args['content'])}",
            f"Send {len(args['content'])} characters to the memory service",
        )

    def call(self, args: dict[str, Any]) -> ToolResult:
        response = self.client.boot(
            BOOT_FUNCTIONS["MEMORY_STORE"],
            {
                "action": "store",
                "content": args["content"],
                "tags": list(args.get("tags") or []),
                "memory_type": args.get("memory_type") or "session",
                "sensitivity": args.get("sensitivity") or "internal",
            },
        )

        memory_id = (
            _section(response, "data").get("id")
            or _section(response, "output").get("id")
            or "unknown"
        )
        return ToolResult.ok(f"Memory stored successfully with ID: {memory_id}", data=response)


class MemorySearchTool(_LogLineTool):
    """
    Search stored memories.

    Arguments:
        query (str): Search query (required)
        limit (int): Maximum results, default 5
    """

    @property
    def name(self) -> str:
        return "logline_memory_search"

    @property
    def description(self) -> str:
        return (
            "Search the LogLine memory system for relevant information. Uses semantic "
            "search with embeddings and respects tenant isolation and consent policies."
        )

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="query",
                type="string",
                description="Search query to find relevant memories",
                required=True,
            ),
            ToolParameter(
                name="limit",
                type="number",
                description="Maximum number of results to return (default: 5)",
            ),
        )

    def describe(self, args: dict[str, Any]) -> tuple[str, str]:
        return f"LogLine memory search: \"{args['query']}\"", "Search stored memories"

    def call(self, args: dict[str, Any]) -> ToolResult:
        response = self.client.boot(
            BOOT_FUNCTIONS["MEMORY_STORE"],
            {
                "action": "search",
                "query": args["query"],
                "limit": int(args.get("limit") or 5),
            },
        )

        results = (
            _section(response, "data").get("results")
            or _section(response, "output").get("results")
            or []
        )
        lines = []
        for i, item in enumerate(results, start=1):
            if not isinstance(item, dict):
                item = {"content": str(item)}
            tags = ", ".join(item.get("tags") or []) or "no tags"
            content = item.get("content") or ""
            lines.append(f"{i}. [{tags}] {_preview(content)}")

        return ToolResult.ok("\n".join(lines) or "No memories found", data=results)


def logline_tools(client: LogLineClient) -> list[Tool]:
    """The remote tools bound to one client."""
    return [PromptFetchTool(client), MemoryStoreTool(client), MemorySearchTool(client)]
