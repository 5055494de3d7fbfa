"""OpenAI chat completions provider."""

from __future__ import annotations

import httpx

from ..models.provider import CompletionResult
from ..utils.sanitize import sanitize_error
from .base import BaseProvider


class OpenAIProvider(BaseProvider):
    name = "openai"
    default_key_env = "OPENAI_API_KEY"
    API_URL = "https://api.openai.com/v1/chat/completions"

    def _resolve_model(self) -> str:
        return self.config.get("model", "gpt-4o-mini")

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
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.config.get("endpoint", self.API_URL), json=body, headers=headers
                )
                response.raise_for_status()
                data = response.json()

            content = data["choices"][0]["message"]["content"]
            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("prompt_tokens", 0),
                "output": usage.get("completion_tokens", 0),
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
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            return CompletionResult(success=False, error=sanitize_error(str(e) or type(e).__name__))
