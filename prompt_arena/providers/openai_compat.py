"""OpenAI-compatible chat-completions adapter.

Serves OpenAI itself and every provider exposing the same wire format
(DeepSeek, OpenRouter, Ollama, AiHubMix, custom endpoints).
"""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from prompt_arena.core.errors import ResponseShapeError
from prompt_arena.core.models import Message, ModelParameters, Usage
from prompt_arena.providers.base import (
    DEFAULT_TIMEOUT,
    HTTPAdapter,
    build_endpoint,
    host_matches,
    int_field,
)

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENROUTER_DOMAIN = "openrouter.ai"


class OpenAICompatibleAdapter(HTTPAdapter):
    """POST ``{base}/chat/completions`` and normalize the reply."""

    def __init__(
        self,
        *,
        provider_name: str = "openai",
        default_base_url: str = OPENAI_BASE_URL,
        app_url: str | None = None,
        app_title: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self.provider_name = provider_name
        self.default_base_url = default_base_url
        self.app_url = app_url
        self.app_title = app_title

    def build_headers(self, credential: str, base_url: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        # Local inference servers run without a key
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        if host_matches(base_url, OPENROUTER_DOMAIN):
            if self.app_url:
                headers["HTTP-Referer"] = self.app_url
            if self.app_title:
                headers["X-Title"] = self.app_title
        return headers

    def build_payload(
        self,
        model: str,
        messages: Sequence[Message],
        temperature: float,
        parameters: ModelParameters | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "temperature": temperature,
            "stream": False,
        }
        if parameters is not None:
            if parameters.top_p is not None:
                payload["top_p"] = parameters.top_p
            if parameters.max_tokens is not None:
                payload["max_tokens"] = parameters.max_tokens
        return payload

    def parse_response(self, data: dict[str, Any]) -> tuple[str, Usage]:
        provider = self.provider_name
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ResponseShapeError(f"{provider} response contained no choices", provider=provider)
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise ResponseShapeError(f"{provider} choices[0] has no message object", provider=provider)
        content = message.get("content")
        if not isinstance(content, str):
            raise ResponseShapeError(
                f"{provider} choices[0].message.content is {type(content).__name__}, expected str",
                provider=provider,
            )

        usage_data = data.get("usage")
        if usage_data is None:
            usage = Usage()
        elif isinstance(usage_data, dict):
            usage = Usage(
                prompt_tokens=int_field(usage_data, "prompt_tokens", provider=provider),
                completion_tokens=int_field(usage_data, "completion_tokens", provider=provider),
            )
        else:
            raise ResponseShapeError(f"{provider} usage is not an object", provider=provider)
        return content, usage

    async def execute(
        self,
        model: str,
        messages: Sequence[Message],
        temperature: float,
        credential: str,
        base_url: str | None = None,
        *,
        parameters: ModelParameters | None = None,
    ) -> tuple[str, Usage]:
        base = base_url or self.default_base_url
        data = await self.request_json(
            "POST",
            build_endpoint(base, "chat/completions"),
            headers=self.build_headers(credential, base),
            payload=self.build_payload(model, messages, temperature, parameters),
        )
        return self.parse_response(data)
