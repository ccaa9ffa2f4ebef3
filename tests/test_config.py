"""Tests for KachoriOS config loading."""

import os
import tempfile

from kachori.config import (
    AppConfig,
    AssistantConfig,
    KachoriConfig,
    StorageConfig,
    load_config,
)


def test_load_config_defaults(monkeypatch):
    """Loading with no path returns all defaults."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    config = load_config()
    assert isinstance(config, KachoriConfig)
    assert config.storage.path == "~/.config/kachori/kachori.db"
    assert config.storage.key_prefix == "kachori"
    assert config.camera.index == 0
    assert config.camera.save_dir == "/tmp/kachori"
    assert config.vision.backend == "gemini"
    assert config.vision.item_name == "kachori"
    assert config.vision.gemini.api_key == ""
    assert config.assistant.max_items == 0
    assert config.assistant.context_items == 5
    assert config.app.default_mode == "assistant"


def test_load_config_missing_file_uses_defaults(tmp_path):
    """A path that doesn't exist falls back to defaults."""
    config = load_config(tmp_path / "nope.toml")
    assert config.vision.backend == "gemini"


def test_load_config_from_toml():
    """Loading a valid TOML file populates config."""
    toml_content = b"""\
[storage]
path = "/var/kachori/shop.db"
key_prefix = "shop"

[camera]
index = 2
save_dir = "/var/kachori/frames"

[vision]
backend = "claude"
item_name = "samosa"

[vision.gemini]
api_key = "test-key-123"
model = "gemini-pro"

[assistant]
model = "gemini-1.5-pro"
max_items = 50
context_items = 3

[app]
default_mode = "counter"
"""
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(toml_content)
        f.flush()
        config = load_config(f.name)

    os.unlink(f.name)

    assert config.storage == StorageConfig(path="/var/kachori/shop.db", key_prefix="shop")
    assert config.camera.index == 2
    assert config.camera.save_dir == "/var/kachori/frames"
    assert config.vision.backend == "claude"
    assert config.vision.item_name == "samosa"
    assert config.vision.gemini.api_key == "test-key-123"
    assert config.vision.gemini.model == "gemini-pro"
    assert config.assistant == AssistantConfig(
        model="gemini-1.5-pro", max_items=50, context_items=3
    )
    assert config.app == AppConfig(default_mode="counter")


def test_load_config_env_override(monkeypatch):
    """Environment variables override empty API keys."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic-key")
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini-key")

    config = load_config()
    assert config.vision.claude.api_key == "env-anthropic-key"
    assert config.vision.gemini.api_key == "env-gemini-key"


def test_load_config_file_key_takes_precedence(monkeypatch, tmp_path):
    """Config file API key takes precedence over env var."""
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")

    config_file = tmp_path / "config.toml"
    config_file.write_text('[vision.gemini]\napi_key = "file-key"\n')

    config = load_config(config_file)
    assert config.vision.gemini.api_key == "file-key"


def test_load_config_partial_toml(tmp_path):
    """Partial TOML uses defaults for missing sections."""
    config_file = tmp_path / "config.toml"
    config_file.write_text("[camera]\nindex = 3\n")

    config = load_config(config_file)
    assert config.camera.index == 3
    # Other sections use defaults
    assert config.camera.save_dir == "/tmp/kachori"
    assert config.vision.backend == "gemini"
    assert config.app.default_mode == "assistant"
