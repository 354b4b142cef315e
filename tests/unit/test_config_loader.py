"""Unit tests for the settings loader."""

import json
import os
from unittest.mock import patch

import pytest

from chatgate.utils.config_loader import SettingsLoader, get_settings_loader, load_settings
from chatgate.utils.exceptions import ConfigurationError

SETTINGS_YAML = """
global:
  max_tokens: 512
  context_length: 6

proxy:
  on: true
  server: http://127.0.0.1:7890
  https: true

models:
  gpt:
    provider: OpenAI
    config: {apiKey: "${TEST_OPENAI_KEY}", model: gpt-4o-mini}
    options: {stream: true, temperature: 0.2}
  llama:
    provider: Ollama
    config: '{"endpoint": "http://localhost:11434", "model": "llama3"}'
  broken:
    config: {apiKey: x}
"""


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML, encoding="utf-8")
    return path


class TestSettingsLoader:
    """Test SettingsLoader."""

    def test_global_settings(self, settings_file):
        settings = SettingsLoader(settings_file).get_global_settings()
        assert settings.max_tokens == 512
        assert settings.context_length == 6

    def test_proxy(self, settings_file):
        proxy = SettingsLoader(settings_file).get_proxy()
        assert proxy.on is True
        assert proxy.server == "http://127.0.0.1:7890"
        assert proxy.https is True
        assert proxy.http is False

    def test_missing_proxy_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("models: {}\n", encoding="utf-8")
        loader = SettingsLoader(path)

        assert loader.get_proxy() is None
        assert loader.list_models() == []

    def test_model_entry_expands_env(self, settings_file):
        with patch.dict(os.environ, {"TEST_OPENAI_KEY": "sk-from-env"}):
            entry = SettingsLoader(settings_file).get_model("gpt")

        assert entry.name == "gpt"
        assert entry.config.provider == "OpenAI"
        assert json.loads(entry.config.config) == {"apiKey": "sk-from-env", "model": "gpt-4o-mini"}
        assert json.loads(entry.options.options) == {"stream": True, "temperature": 0.2}

    def test_string_config_passed_through(self, settings_file):
        entry = SettingsLoader(settings_file).get_model("llama")
        assert entry.config.config == '{"endpoint": "http://localhost:11434", "model": "llama3"}'
        assert entry.options.options == "{}"

    def test_env_file_next_to_settings(self, settings_file):
        (settings_file.parent / ".env").write_text("TEST_OPENAI_KEY=sk-dotenv\n", encoding="utf-8")
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("TEST_OPENAI_KEY", None)
            entry = SettingsLoader(settings_file).get_model("gpt")
        assert json.loads(entry.config.config)["apiKey"] == "sk-dotenv"

    def test_list_models(self, settings_file):
        assert SettingsLoader(settings_file).list_models() == ["gpt", "llama", "broken"]

    def test_unknown_model(self, settings_file):
        with pytest.raises(ConfigurationError, match="available: gpt, llama, broken"):
            SettingsLoader(settings_file).get_model("nope")

    def test_model_without_provider(self, settings_file):
        with pytest.raises(ConfigurationError, match="no provider"):
            SettingsLoader(settings_file).get_model("broken")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            SettingsLoader(tmp_path / "absent.yaml").load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("models: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            SettingsLoader(path).load()

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            SettingsLoader(path).load()

    def test_reload_rereads_file(self, settings_file):
        loader = SettingsLoader(settings_file)
        assert loader.get_global_settings().max_tokens == 512

        settings_file.write_text("global: {max_tokens: 64}\n", encoding="utf-8")
        assert loader.get_global_settings().max_tokens == 512

        loader.reload()
        assert loader.get_global_settings().max_tokens == 64

    def test_global_loader_replaced_for_new_path(self, settings_file, tmp_path):
        other = tmp_path / "other.yaml"
        other.write_text("models: {}\n", encoding="utf-8")

        first = get_settings_loader(settings_file)
        assert get_settings_loader(settings_file) is first
        assert get_settings_loader(other) is not first

    def test_quoted_on_key(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text('proxy: {"on": false, server: "http://proxy:8080"}\n', encoding="utf-8")
        proxy = SettingsLoader(path).get_proxy()
        assert proxy.on is False
        assert proxy.server == "http://proxy:8080"

    def test_load_settings_helper(self, settings_file):
        data = load_settings(settings_file)
        assert set(data) == {"global", "proxy", "models"}
