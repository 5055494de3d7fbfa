"""Layered configuration.

Loads and merges configuration from:
1. Default settings (built-in)
2. Config file (posture.yaml in the working directory, or an explicit path)
3. CLI parameters (override)

Secrets are never stored here; config only names the environment variables
that hold them.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Optional

import yaml

CONFIG_FILENAME = "posture.yaml"

DEFAULT_CONFIG: dict = {
    "ai": {
        "provider": "openai",
        "temperature": 0.2,
        "timeout_seconds": 20,
        "openai": {
            "model": "gpt-4o-mini",
            "api_key_env": "OPENAI_API_KEY",
            "fallback_key_envs": ["OPENAI_API_TOKEN", "GPT_API_KEY"],
            "max_tokens": 4000,
        },
        "anthropic": {
            "model": "claude-sonnet-4-5-20250929",
            "api_key_env": "ANTHROPIC_API_KEY",
            "max_tokens": 4000,
        },
    },
    "report": {
        "title": "Olezka Global",
        "subtitle": "Cloud Security Posture Assessment",
        "environment": "Azure + Microsoft 365",
        "brand_color": "#19f5c6",
        "logo_url": (
            "https://cdn.builder.io/api/v1/image/assets%2F74452fbd65844fa092de7a3dcf4c1086"
            "%2Fdfa2f0d5c3b54a6583627c5690a0e221?format=png&width=1600"
        ),
        "logo_timeout_seconds": 5,
        "filename": "Olezka-Assessment.pdf",
    },
    "storage": {
        "database_url_env": "DATABASE_URL",
        "pool_size": 5,
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_config_file(path: Path) -> dict:
    """Read a YAML config file; a missing or empty file yields {}."""
    if not path.exists():
        return {}
    content = path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
    loaded = yaml.safe_load(content) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return loaded


def build_cli_overrides(
    ai_provider: Optional[str] = None,
    ai_model: Optional[str] = None,
    timeout: Optional[int] = None,
) -> dict:
    overrides: dict = {}
    if ai_provider:
        overrides.setdefault("ai", {})["provider"] = ai_provider
    if ai_model:
        # Applied to the active provider once all layers are merged.
        overrides.setdefault("ai", {})["model"] = ai_model
    if timeout is not None:
        overrides.setdefault("ai", {})["timeout_seconds"] = timeout
    return overrides


def get_effective_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    file_config = load_config_file(config_path or Path.cwd() / CONFIG_FILENAME)
    if file_config:
        config = deep_merge(config, file_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    ai_config = config.setdefault("ai", {})
    model = ai_config.pop("model", None)
    if model:
        provider_name = ai_config.get("provider", DEFAULT_CONFIG["ai"]["provider"])
        ai_config[provider_name] = {**ai_config.get(provider_name, {}), "model": model}

    return config
