"""Tests for core/config.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from posture.core.config import (
    DEFAULT_CONFIG,
    build_cli_overrides,
    deep_merge,
    get_effective_config,
    load_config_file,
)


class TestDeepMerge:
    def test_simple_merge(self):
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"ai": {"provider": "openai", "timeout_seconds": 20}}
        result = deep_merge(base, {"ai": {"provider": "anthropic"}})
        assert result["ai"]["provider"] == "anthropic"
        assert result["ai"]["timeout_seconds"] == 20

    def test_arrays_replaced(self):
        base = {"keys": ["A", "B"]}
        assert deep_merge(base, {"keys": ["C"]})["keys"] == ["C"]

    def test_base_not_mutated(self):
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base["a"]["b"] == 1


class TestLoadConfigFile:
    def test_loads_yaml(self, tmp_path: Path):
        path = tmp_path / "posture.yaml"
        path.write_text("report:\n  title: Acme Security\n", encoding="utf-8")
        assert load_config_file(path) == {"report": {"title": "Acme Security"}}

    def test_missing_file(self, tmp_path: Path):
        assert load_config_file(tmp_path / "nope.yaml") == {}

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "posture.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config_file(path) == {}

    def test_non_mapping_rejected(self, tmp_path: Path):
        path = tmp_path / "posture.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config_file(path)


class TestGetEffectiveConfig:
    def test_defaults(self, tmp_path: Path):
        config = get_effective_config(tmp_path / "missing.yaml")
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_file_overrides_defaults(self, tmp_path: Path):
        path = tmp_path / "posture.yaml"
        path.write_text("ai:\n  timeout_seconds: 5\n", encoding="utf-8")
        config = get_effective_config(path)
        assert config["ai"]["timeout_seconds"] == 5
        assert config["ai"]["provider"] == "openai"

    def test_cli_overrides_file(self, tmp_path: Path):
        path = tmp_path / "posture.yaml"
        path.write_text("ai:\n  provider: openai\n", encoding="utf-8")
        config = get_effective_config(path, {"ai": {"provider": "anthropic"}})
        assert config["ai"]["provider"] == "anthropic"

    def test_reads_working_directory(self, tmp_path: Path, monkeypatch):
        (tmp_path / "posture.yaml").write_text("report:\n  title: Local\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert get_effective_config()["report"]["title"] == "Local"


class TestBuildCliOverrides:
    def test_empty(self):
        assert build_cli_overrides() == {}

    def test_provider_and_model(self):
        overrides = build_cli_overrides(ai_provider="anthropic", ai_model="claude-x")
        assert overrides == {"ai": {"provider": "anthropic", "model": "claude-x"}}

    def test_model_applies_to_provider_override(self, tmp_path: Path):
        overrides = build_cli_overrides(ai_provider="anthropic", ai_model="claude-x")
        config = get_effective_config(tmp_path / "missing.yaml", overrides)
        assert config["ai"]["anthropic"]["model"] == "claude-x"
        assert config["ai"]["openai"]["model"] == "gpt-4o-mini"
        assert "model" not in config["ai"]

    def test_model_defaults_to_openai(self, tmp_path: Path):
        config = get_effective_config(tmp_path / "missing.yaml", build_cli_overrides(ai_model="gpt-4o"))
        assert config["ai"]["openai"]["model"] == "gpt-4o"

    def test_model_follows_provider_from_file(self, tmp_path: Path):
        path = tmp_path / "posture.yaml"
        path.write_text("ai:\n  provider: anthropic\n", encoding="utf-8")
        config = get_effective_config(path, build_cli_overrides(ai_model="claude-x"))
        assert config["ai"]["anthropic"]["model"] == "claude-x"
        assert config["ai"]["anthropic"]["api_key_env"] == "ANTHROPIC_API_KEY"
        assert config["ai"]["openai"]["model"] == "gpt-4o-mini"

    def test_timeout(self):
        assert build_cli_overrides(timeout=3) == {"ai": {"timeout_seconds": 3}}
