"""Adapter for providers that are declared but intentionally not wired up."""

from __future__ import annotations

from typing import Sequence

from prompt_arena.core.errors import UnsupportedProviderError
from prompt_arena.core.models import Message, ModelParameters, Usage


class DeferredProviderAdapter:
    """Fails immediately without touching the network."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason

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
        raise UnsupportedProviderError(
            f"Provider '{self.provider}' is not implemented: {self.reason}",
            provider=self.provider,
        )
