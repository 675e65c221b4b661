"""
Unit tests for configuration loading.

Tests cover:
- Defaults when no file exists
- YAML parsing and validation errors
- Environment variable overrides
- Saving settings
"""

import stat
from pathlib import Path

import pytest

from codeagent.config import (
    DEFAULT_MODEL,
    LogLineSettings,
    Settings,
    apply_env_overrides,
    default_config_path,
    load_settings,
    save_settings,
)
from codeagent.errors import ConfigError, MissingApiKeyError


class TestDefaults:
    """Tests for default settings."""

    def test_missing_file_gives_defaults(self, temp_dir: Path) -> None:
        settings = load_settings(temp_dir / "config.yaml", environ={})
        assert settings.model == DEFAULT_MODEL
        assert settings.anthropic_api_key is None
        assert settings.max_rounds == 25
        assert settings.logline.is_configured() is False

    def test_empty_file_gives_defaults(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("")
        assert load_settings(path, environ={}) == Settings()

    def test_require_api_key(self) -> None:
        with pytest.raises(MissingApiKeyError):
            Settings().require_api_key()
        assert Settings(anthropic_api_key="sk").require_api_key() == "sk"

    def test_history_path_default(self, temp_dir: Path) -> None:
        assert Settings().history_path(temp_dir) == temp_dir / "history.db"

    def test_history_path_override(self, temp_dir: Path) -> None:
        settings = Settings(history_db=str(temp_dir / "x.db"))
        assert settings.history_path() == temp_dir / "x.db"

    def test_default_config_path_env(self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
        monkeypatch.setenv("CODEAGENT_CONFIG", str(temp_dir / "c.yaml"))
        assert default_config_path() == temp_dir / "c.yaml"


class TestYamlLoading:
    """Tests for reading the config file."""

    def test_values_from_file(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text(
            "anthropic_api_key: sk-file\n"
            "model: claude-test\n"
            "max_rounds: 5\n"
            "logline:\n"
            "  api_url: http://logline\n"
            "  tenant: acme\n"
            "  token: tok\n"
        )

        settings = load_settings(path, environ={})

        assert settings.anthropic_api_key == "sk-file"
        assert settings.model == "claude-test"
        assert settings.max_rounds == 5
        assert settings.logline.is_configured() is True

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("model: [unclosed\n")
        with pytest.raises(ConfigError) as exc_info:
            load_settings(path, environ={})
        assert "Invalid YAML" in exc_info.value.message

    def test_non_mapping(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError) as exc_info:
            load_settings(path, environ={})
        assert "mapping" in exc_info.value.message

    def test_unknown_key(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("auto_approve: true\n")
        with pytest.raises(ConfigError):
            load_settings(path, environ={})

    def test_invalid_value(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("max_rounds: 0\n")
        with pytest.raises(ConfigError):
            load_settings(path, environ={})


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_env_overrides_file(self, temp_dir: Path) -> None:
        path = temp_dir / "config.yaml"
        path.write_text("anthropic_api_key: sk-file\nmodel: from-file\n")

        settings = load_settings(
            path,
            environ={"ANTHROPIC_API_KEY": "sk-env", "CODEAGENT_MODEL": "from-env"},
        )

        assert settings.anthropic_api_key == "sk-env"
        assert settings.model == "from-env"

    def test_empty_env_ignored(self) -> None:
        merged = apply_env_overrides({"model": "m"}, environ={"CODEAGENT_MODEL": ""})
        assert merged["model"] == "m"

    def test_logline_from_env(self) -> None:
        merged = apply_env_overrides(
            {},
            environ={
                "LOGLINE_API_URL": "http://x",
                "LOGLINE_TENANT": "t",
                "LOGLINE_TOKEN": "k",
            },
        )
        assert LogLineSettings(**merged["logline"]).is_configured() is True

    def test_input_not_mutated(self) -> None:
        data = {"logline": {"tenant": "a"}}
        apply_env_overrides(data, environ={"LOGLINE_TENANT": "b"})
        assert data == {"logline": {"tenant": "a"}}


class TestSaveSettings:
    """Tests for save_settings()."""

    def test_round_trip(self, temp_dir: Path) -> None:
        path = temp_dir / "sub" / "config.yaml"
        original = Settings(anthropic_api_key="sk", model="m")

        written = save_settings(original, path)

        assert written == path
        assert load_settings(path, environ={}) == original

    def test_unset_values_omitted(self, temp_dir: Path) -> None:
        path = save_settings(Settings(), temp_dir / "config.yaml")
        text = path.read_text()
        assert "anthropic_api_key" not in text
        assert "logline" not in text

    def test_owner_only_permissions(self, temp_dir: Path) -> None:
        path = save_settings(Settings(anthropic_api_key="sk"), temp_dir / "config.yaml")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
