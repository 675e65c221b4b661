"""
Configuration for codeagent.

Settings are read from a YAML file (default ~/.codeagent/config.yaml) and
then overridden by environment variables:

    ANTHROPIC_API_KEY   -> anthropic_api_key
    CODEAGENT_MODEL     -> model
    LOGLINE_API_URL     -> logline.api_url
    LOGLINE_WS_URL      -> logline.ws_url
    LOGLINE_TENANT      -> logline.tenant
    LOGLINE_TOKEN       -> logline.token

A missing file is not an error; defaults apply. A file that is not valid
YAML, or that does not match the Settings schema, raises ConfigError.

The auto-approve flag is session state and is never part of Settings.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from codeagent.errors import ConfigError, MissingApiKeyError

DEFAULT_CONFIG_DIR = Path.home() / ".codeagent"
CONFIG_FILENAME = "config.yaml"
HISTORY_FILENAME = "history.db"

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "ANTHROPIC_API_KEY": ("anthropic_api_key",),
    "CODEAGENT_MODEL": ("model",),
    "LOGLINE_API_URL": ("logline", "api_url"),
    "LOGLINE_WS_URL": ("logline", "ws_url"),
    "LOGLINE_TENANT": ("logline", "tenant"),
    "LOGLINE_TOKEN": ("logline", "token"),
}


class LogLineSettings(BaseModel):
    """Connection settings for the governed remote service."""

    model_config = ConfigDict(extra="forbid")

    api_url: str | None = None
    ws_url: str | None = None
    tenant: str | None = None
    token: str | None = None

    def is_configured(self) -> bool:
        """True when the remote tools can be offered."""
        return bool(self.api_url and self.tenant and self.token)


class Settings(BaseModel):
    """
    Complete codeagent configuration.

    Attributes:
        anthropic_api_key: Key for the model API
        model: Model identifier
        max_tokens: Output token limit per model call
        max_retries: Transport-level retries for a model call
        request_timeout_seconds: Timeout for one model call
        max_rounds: Model calls allowed for one user message
        shell_timeout_seconds: Timeout for execute_command
        shell_max_output_bytes: Combined stdout/stderr limit
        web_timeout_seconds: Timeout for web_search and fetch_webpage
        history_db: Session log location; defaults to history.db beside
            the config file
        logline: Remote service settings
    """

    model_config = ConfigDict(extra="forbid")

    anthropic_api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(default=4096, gt=0)
    max_retries: int = Field(default=2, ge=0)
    request_timeout_seconds: float = Field(default=120.0, gt=0)
    max_rounds: int = Field(default=25, gt=0)
    shell_timeout_seconds: float = Field(default=60.0, gt=0)
    shell_max_output_bytes: int = Field(default=1024 * 1024, gt=0)
    web_timeout_seconds: float = Field(default=30.0, gt=0)
    history_db: str | None = None
    logline: LogLineSettings = Field(default_factory=LogLineSettings)

    def require_api_key(self) -> str:
        """
        Return the API key.

        Raises:
            MissingApiKeyError: If none is configured
        """
        if not self.anthropic_api_key:
            raise MissingApiKeyError()
        return self.anthropic_api_key

    def history_path(self, config_dir: Path = DEFAULT_CONFIG_DIR) -> Path:
        """Where the session log lives."""
        if self.history_db:
            return Path(self.history_db).expanduser()
        return config_dir / HISTORY_FILENAME


def default_config_path() -> Path:
    """Config file location, overridable with CODEAGENT_CONFIG."""
    override = os.environ.get("CODEAGENT_CONFIG")
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_DIR / CONFIG_FILENAME


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping; a missing or empty file yields {}."""
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(path=str(path), message=f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(path=str(path), message=f"Cannot read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            path=str(path),
            message=f"Config file must contain a mapping, got {type(data).__name__}",
        )
    return data


def apply_env_overrides(data: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Return a copy of data with non-empty environment variables applied."""
    environ = os.environ if environ is None else environ
    merged = dict(data)
    merged["logline"] = dict(merged.get("logline") or {})

    for var, keys in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = merged
        for key in keys[:-1]:
            target = target[key]
        target[keys[-1]] = value
    return merged


def load_settings(
    path: Path | str | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """
    Load settings from YAML and the environment.

    Args:
        path: Config file; defaults to default_config_path()
        environ: Environment mapping; defaults to os.environ

    Returns:
        Validated Settings

    Raises:
        ConfigError: If the file is unreadable, not YAML, or invalid
    """
    path = Path(path).expanduser() if path is not None else default_config_path()
    data = apply_env_overrides(_read_yaml(path), environ)

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            path=str(path),
            message=f"Invalid configuration in {path}",
            suggestion=str(e),
        ) from e


def save_settings(settings: Settings, path: Path | str | None = None) -> Path:
    """
    Write settings to YAML, creating the directory if needed.

    Unset values are omitted. The file may contain secrets, so it is
    created readable by the owner only.

    Returns:
        The path written
    """
    path = Path(path).expanduser() if path is not None else default_config_path()
    data = settings.model_dump(exclude_none=True)
    if not data.get("logline"):
        data.pop("logline", None)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
        path.chmod(0o600)
    except OSError as e:
        raise ConfigError(path=str(path), message=f"Cannot write {path}: {e}") from e
    return path
