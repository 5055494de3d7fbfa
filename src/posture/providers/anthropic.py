"""Anthropic Messages API provider."""

from __future__ import annotations

import httpx

from ..models.provider import CompletionResult
from ..utils.sanitize import sanitize_error
from .base import BaseProvider


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    default_key_env = "ANTHROPIC_API_KEY"
    API_URL = "https://api.anthropic.com/v1/messages"

    def _resolve_model(self) -> str:
        return self.config.get("model", "claude-sonnet-4-5-20250929")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 0,
    ) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            return self._missing_key_result()

        model = self._resolve_model()
        body = {
            "model": model,
            "max_tokens": max_tokens or self.config.get("max_tokens", 4000),
            "temperature": self.temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

        headers = {
            "x-api-key": api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.config.get("endpoint", self.API_URL), json=body, headers=headers
                )
                response.raise_for_status()
                data = response.json()

            content = None
            for block in data.get("content", []):
                if block.get("type") == "text":
                    content = block.get("text")
                    break

            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("input_tokens", 0),
                "output": usage.get("output_tokens", 0),
            }

            return CompletionResult(
                success=True, content=content, model=model, tokens_used=tokens
            )
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                status_code=e.response.status_code,
                error=sanitize_error(f"{e.response.status_code} | {e.response.text}"),
            )
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
            return CompletionResult(success=False, error=sanitize_error(str(e) or type(e).__name__))
