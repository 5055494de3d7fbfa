"""AI provider abstraction.

Narrative generation makes exactly one call per report. Failures come back
as an unsuccessful CompletionResult and the caller falls back locally.
"""

from __future__ import annotations

import os
from typing import Optional, Protocol, runtime_checkable

from ..models.provider import CompletionResult


@runtime_checkable
class AIProvider(Protocol):
    """Protocol that all AI providers must implement."""

    name: str

    def has_credentials(self) -> bool: ...

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult: ...


class BaseProvider:
    """Base class with shared config handling."""

    name: str = "base"
    default_key_env: str = ""

    def __init__(self, provider_config: dict, common_config: dict):
        self.config = provider_config
        self.common = common_config
        self.timeout = common_config.get("timeout_seconds", 20)
        self.temperature = common_config.get("temperature", 0.2)

    @property
    def key_envs(self) -> list[str]:
        primary = self.config.get("api_key_env", self.default_key_env)
        return [primary, *self.config.get("fallback_key_envs", [])]

    def _get_api_key(self) -> Optional[str]:
        if self.config.get("api_key"):
            return self.config["api_key"]
        for env_var in self.key_envs:
            value = os.environ.get(env_var)
            if value:
                return value
        return None

    def has_credentials(self) -> bool:
        return bool(self._get_api_key())

    def _missing_key_result(self) -> CompletionResult:
        return CompletionResult(
            success=False,
            error=f"API key not found in environment variable: {self.key_envs[0]}",
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        raise NotImplementedError


def get_ai_provider(
    config: dict,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
) -> BaseProvider:
    """Factory function to create the configured AI provider."""
    ai_config = config.get("ai", {})
    provider_name = provider_override or ai_config.get("provider", "openai")

    provider_config = dict(ai_config.get(provider_name, {}))
    if model_override:
        provider_config["model"] = model_override

    # Common config is the ai section minus provider sub-configs
    common_config = {
        k: v for k, v in ai_config.items() if k not in ("openai", "anthropic")
    }

    if provider_name == "openai":
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, common_config)
    elif provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, common_config)
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}")
