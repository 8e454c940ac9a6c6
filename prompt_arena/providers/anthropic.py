"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from prompt_arena.core.errors import ResponseShapeError
from prompt_arena.core.models import Message, MessageRole, ModelParameters, Usage
from prompt_arena.providers.base import DEFAULT_TIMEOUT, HTTPAdapter, build_endpoint, int_field

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096


class AnthropicAdapter(HTTPAdapter):
    """POST ``{base}/v1/messages``.

    System messages travel in the top-level ``system`` field; the remaining
    messages keep their order. ``input_tokens``/``output_tokens`` map onto
    the normalized ``Usage``.
    """

    provider_name = "anthropic"

    def __init__(
        self,
        *,
        default_base_url: str = ANTHROPIC_BASE_URL,
        api_version: str = ANTHROPIC_VERSION,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self.default_base_url = default_base_url
        self.api_version = api_version
        self.default_max_tokens = default_max_tokens

    def build_headers(self, credential: str) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": self.api_version,
        }
        if credential:
            headers["x-api-key"] = credential
        return headers

    def build_payload(
        self,
        model: str,
        messages: Sequence[Message],
        temperature: float,
        parameters: ModelParameters | None = None,
    ) -> dict[str, Any]:
        system_parts = [m.content for m in messages if m.role is MessageRole.SYSTEM]
        conversation = [
            {"role": m.role.value, "content": m.content}
            for m in messages
            if m.role is not MessageRole.SYSTEM
        ]
        max_tokens = self.default_max_tokens
        if parameters is not None and parameters.max_tokens is not None:
            max_tokens = parameters.max_tokens

        payload: dict[str, Any] = {
            "model": model,
            "messages": conversation,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if parameters is not None and parameters.top_p is not None:
            payload["top_p"] = parameters.top_p
        return payload

    def parse_response(self, data: dict[str, Any]) -> tuple[str, Usage]:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise ResponseShapeError("anthropic response has no content list", provider="anthropic")
        texts = [
            block["text"]
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        if not texts:
            raise ResponseShapeError("anthropic response contained no text blocks", provider="anthropic")

        usage_data = data.get("usage")
        if usage_data is None:
            usage = Usage()
        elif isinstance(usage_data, dict):
            usage = Usage(
                prompt_tokens=int_field(usage_data, "input_tokens", provider="anthropic"),
                completion_tokens=int_field(usage_data, "output_tokens", provider="anthropic"),
            )
        else:
            raise ResponseShapeError("anthropic usage is not an object", provider="anthropic")
        return "".join(texts), usage

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
            build_endpoint(base, "messages"),
            headers=self.build_headers(credential),
            payload=self.build_payload(model, messages, temperature, parameters),
        )
        return self.parse_response(data)
