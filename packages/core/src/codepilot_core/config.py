import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "anthropic",
    "strictness": "moderate",
    "max_lines_per_chunk": 600,
    "max_continuations": 50,  # continuation calls allowed per chunk before giving up
    "request_timeout": 120,  # seconds per backend call
    "max_file_bytes": 200 * 1024,
    "store": "json",  # json | sqlite | none
    "store_path": None,  # None = the backend's default location
}

DEFAULT_JSON_STORE_PATH = Path("~/.codepilot/history.json")
DEFAULT_SQLITE_STORE_PATH = Path("~/.codepilot/history.db")


def load_config(config_path: str = ".codepilot.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .codepilot.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables; a key in the file is the fallback.
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY") or config.get("anthropic_api_key")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY") or config.get("openai_api_key")

    return config


def resolve_store_path(config: dict) -> Path:
    """Return the history location for the configured store, with ~ expanded."""
    custom = config.get("store_path")
    if custom:
        return Path(custom).expanduser()
    if config.get("store") == "sqlite":
        return DEFAULT_SQLITE_STORE_PATH.expanduser()
    return DEFAULT_JSON_STORE_PATH.expanduser()
