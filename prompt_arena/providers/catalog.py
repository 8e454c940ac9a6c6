"""Model catalog — list a provider's models and check that a key works."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx
import structlog

from prompt_arena.config import Settings, get_settings
from prompt_arena.core.errors import ResponseShapeError, UnsupportedProviderError
from prompt_arena.core.models import ProviderKind
from prompt_arena.providers.base import HTTPAdapter, build_endpoint
from prompt_arena.providers.dispatcher import ProviderDispatcher, WireProtocol

logger = structlog.get_logger()


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    description: str | None = None


# Anthropic has no public listing we rely on; the catalog is static
ANTHROPIC_MODELS = [
    ModelInfo("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", "Most capable model"),
    ModelInfo("claude-3-5-haiku-20241022", "Claude 3.5 Haiku", "Fast and efficient"),
    ModelInfo("claude-3-opus-20240229", "Claude 3 Opus", "Previous generation flagship"),
]


def _ollama_root(base_url: str) -> str:
    base = base_url.strip().rstrip("/")
    if base.endswith("/v1"):
        base = base[: -len("/v1")]
    return base


def _rows(data: dict[str, Any], field: str, key: str, provider: str) -> list[dict[str, Any]]:
    rows = data.get(field)
    if not isinstance(rows, list):
        raise ResponseShapeError(f"{provider} model listing has no '{field}' list", provider=provider)
    return [r for r in rows if isinstance(r, dict) and isinstance(r.get(key), str)]


class ModelCatalog:
    """Lists models for a provider using the same routes and HTTP plumbing as execution."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.transport = transport
        self.dispatcher = ProviderDispatcher(self.settings, transport=transport)

    def _http(self, kind: ProviderKind) -> HTTPAdapter:
        http = HTTPAdapter(timeout=self.settings.request_timeout, transport=self.transport)
        http.provider_name = kind.value
        return http

    async def list_models(
        self,
        kind: ProviderKind,
        credential: str = "",
        base_url: str | None = None,
        *,
        timeout: float | None = None,
    ) -> list[ModelInfo]:
        kind = ProviderKind(kind)
        route = self.dispatcher.route(kind)

        if route.protocol is WireProtocol.DEFERRED:
            raise UnsupportedProviderError(
                f"Model listing for '{kind.value}' is not implemented", provider=kind.value
            )
        if route.protocol is WireProtocol.ANTHROPIC_MESSAGES:
            return list(ANTHROPIC_MODELS)

        base = self.dispatcher.resolve_base_url(kind, base_url)
        http = self._http(kind)
        if kind is ProviderKind.OLLAMA:
            data = await http.request_json("GET", f"{_ollama_root(base)}/api/tags", timeout=timeout)
            return [ModelInfo(m["name"], m["name"]) for m in _rows(data, "models", "name", kind.value)]

        headers = {"Authorization": f"Bearer {credential}"} if credential else {}
        data = await http.request_json(
            "GET", build_endpoint(base, "models"), headers=headers, timeout=timeout
        )
        rows = _rows(data, "data", "id", kind.value)
        if kind is ProviderKind.OPENAI:
            rows = [r for r in rows if r["id"].startswith(("gpt-", "o1"))]
        return [ModelInfo(r["id"], r.get("name") or r["id"]) for r in rows]

    async def test_connection(
        self,
        kind: ProviderKind,
        credential: str = "",
        base_url: str | None = None,
    ) -> str:
        """Return a success message or raise the provider error."""
        kind = ProviderKind(kind)
        if kind is ProviderKind.ANTHROPIC:
            # Static catalog: only the key format can be checked without spending tokens
            if credential.startswith("sk-ant-"):
                return "API key format looks valid (connection not tested)"
            raise UnsupportedProviderError(
                "Invalid API key format. Anthropic keys start with 'sk-ant-'", provider=kind.value
            )
        models = await self.list_models(
            kind, credential, base_url, timeout=self.settings.connection_test_timeout
        )
        logger.info("catalog.connection_ok", provider=kind.value, models=len(models))
        if kind is ProviderKind.OLLAMA:
            return "Connection successful! Ollama is running."
        return "Connection successful! API key is valid."


@lru_cache
def get_catalog() -> ModelCatalog:
    """Get cached model catalog instance."""
    return ModelCatalog(get_settings())
