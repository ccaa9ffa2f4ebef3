"""TOML configuration loader for KachoriOS."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class StorageConfig:
    path: str = "~/.config/kachori/kachori.db"
    key_prefix: str = "kachori"


@dataclass
class CameraConfig:
    index: int = 0
    save_dir: str = "/tmp/kachori"


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class VisionConfig:
    backend: str = "gemini"
    item_name: str = "kachori"
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)


@dataclass
class AssistantConfig:
    model: str = "gemini-2.0-flash"
    max_items: int = 0  # 0 = unbounded
    context_items: int = 5


@dataclass
class AppConfig:
    default_mode: str = "assistant"


@dataclass
class KachoriConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    app: AppConfig = field(default_factory=AppConfig)


def load_config(path: str | Path | None = None) -> KachoriConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    sto = raw.get("storage", {})
    cam = raw.get("camera", {})
    vis = raw.get("vision", {})
    ast = raw.get("assistant", {})
    app = raw.get("app", {})

    gemini_cfg = vis.get("gemini", {})
    claude_cfg = vis.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    return KachoriConfig(
        storage=StorageConfig(
            path=sto.get("path", "~/.config/kachori/kachori.db"),
            key_prefix=sto.get("key_prefix", "kachori"),
        ),
        camera=CameraConfig(
            index=cam.get("index", 0),
            save_dir=cam.get("save_dir", "/tmp/kachori"),
        ),
        vision=VisionConfig(
            backend=vis.get("backend", "gemini"),
            item_name=vis.get("item_name", "kachori"),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        assistant=AssistantConfig(
            model=ast.get("model", "gemini-2.0-flash"),
            max_items=ast.get("max_items", 0),
            context_items=ast.get("context_items", 5),
        ),
        app=AppConfig(
            default_mode=app.get("default_mode", "assistant"),
        ),
    )
