"""Provider dispatcher — routes a ProviderKind to its adapter and default endpoint.

``PROVIDER_ROUTES`` must cover every ``ProviderKind``; a kind added to the
enum without a route fails at import time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Sequence
from urllib.parse import urlparse

import httpx
import structlog

from prompt_arena.config import Settings
from prompt_arena.core.errors import InvalidBaseURLError, MissingBaseURLError
from prompt_arena.core.models import Message, ModelParameters, ProviderKind, Usage
from prompt_arena.providers.anthropic import ANTHROPIC_BASE_URL, AnthropicAdapter
from prompt_arena.providers.base import ProviderAdapter
from prompt_arena.providers.deferred import DeferredProviderAdapter
from prompt_arena.providers.openai_compat import OPENAI_BASE_URL, OpenAICompatibleAdapter

logger = structlog.get_logger()


class WireProtocol(str, Enum):
    OPENAI_COMPATIBLE = "openai_compatible"
    ANTHROPIC_MESSAGES = "anthropic_messages"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class ProviderRoute:
    protocol: WireProtocol
    default_base_url: str | None = None
    requires_credential: bool = True
    requires_base_url: bool = False
    reason: str | None = None

    @property
    def supported(self) -> bool:
        return self.protocol is not WireProtocol.DEFERRED


PROVIDER_ROUTES: dict[ProviderKind, ProviderRoute] = {
    ProviderKind.OPENAI: ProviderRoute(WireProtocol.OPENAI_COMPATIBLE, OPENAI_BASE_URL),
    ProviderKind.ANTHROPIC: ProviderRoute(WireProtocol.ANTHROPIC_MESSAGES, ANTHROPIC_BASE_URL),
    ProviderKind.DEEPSEEK: ProviderRoute(WireProtocol.OPENAI_COMPATIBLE, "https://api.deepseek.com/v1"),
    ProviderKind.OPENROUTER: ProviderRoute(WireProtocol.OPENAI_COMPATIBLE, "https://openrouter.ai/api/v1"),
    ProviderKind.OLLAMA: ProviderRoute(
        WireProtocol.OPENAI_COMPATIBLE, "http://localhost:11434/v1", requires_credential=False
    ),
    ProviderKind.AIHUBMIX: ProviderRoute(WireProtocol.OPENAI_COMPATIBLE, "https://aihubmix.com/v1"),
    ProviderKind.CUSTOM: ProviderRoute(WireProtocol.OPENAI_COMPATIBLE, requires_base_url=True),
    ProviderKind.GOOGLE: ProviderRoute(
        WireProtocol.DEFERRED,
        reason="the Gemini API format differs and needs a dedicated adapter",
    ),
    ProviderKind.GITHUB: ProviderRoute(
        WireProtocol.DEFERRED,
        reason="GitHub Copilot models are not available yet",
    ),
    ProviderKind.AZURE_OPENAI: ProviderRoute(
        WireProtocol.DEFERRED,
        reason="Azure OpenAI needs deployment-specific URL configuration",
    ),
}

_unrouted = set(ProviderKind) - set(PROVIDER_ROUTES)
if _unrouted:
    raise RuntimeError(f"Provider kinds without a route: {sorted(k.value for k in _unrouted)}")

AdapterFactory = Callable[[ProviderKind, ProviderRoute], ProviderAdapter]


def get_route(kind: ProviderKind) -> ProviderRoute:
    return PROVIDER_ROUTES[ProviderKind(kind)]


def check_base_url(provider: str, base_url: str) -> None:
    """Reject a base URL that cannot be parsed or lacks an http(s) scheme and host."""
    try:
        urlparse(base_url)
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, ValueError) as e:
        raise InvalidBaseURLError(provider, base_url, str(e)) from e
    if url.scheme not in ("http", "https"):
        raise InvalidBaseURLError(provider, base_url, "scheme must be http or https")
    if not url.host:
        raise InvalidBaseURLError(provider, base_url, "missing host")


class ProviderDispatcher:
    """Stateless switch over adapters; a new adapter instance is built per dispatch."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        factories: Mapping[WireProtocol, AdapterFactory] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.transport = transport
        self._factories: dict[WireProtocol, AdapterFactory] = {
            WireProtocol.OPENAI_COMPATIBLE: self._openai_compatible,
            WireProtocol.ANTHROPIC_MESSAGES: self._anthropic,
            WireProtocol.DEFERRED: self._deferred,
        }
        if factories:
            self._factories.update(factories)

    def route(self, kind: ProviderKind) -> ProviderRoute:
        return get_route(kind)

    def resolve_base_url(self, kind: ProviderKind, base_url: str | None = None) -> str | None:
        """Caller-supplied URL, else the provider default; ``Custom`` has no default."""
        route = self.route(kind)
        resolved = (base_url or "").strip() or route.default_base_url
        if resolved is None:
            if route.requires_base_url:
                raise MissingBaseURLError(ProviderKind(kind).value)
            return None
        check_base_url(ProviderKind(kind).value, resolved)
        return resolved

    def adapter_for(self, kind: ProviderKind) -> ProviderAdapter:
        kind = ProviderKind(kind)
        route = self.route(kind)
        return self._factories[route.protocol](kind, route)

    async def dispatch(
        self,
        kind: ProviderKind,
        model: str,
        messages: Sequence[Message],
        temperature: float,
        credential: str,
        base_url: str | None = None,
        *,
        parameters: ModelParameters | None = None,
    ) -> tuple[str, Usage]:
        kind = ProviderKind(kind)
        route = self.route(kind)
        resolved_base = base_url
        if route.supported:
            resolved_base = self.resolve_base_url(kind, base_url)
        adapter = self.adapter_for(kind)
        logger.debug(
            "dispatch.route",
            provider=kind.value,
            protocol=route.protocol.value,
            model=model,
            has_credential=bool(credential),
        )
        return await adapter.execute(
            model,
            messages,
            temperature,
            credential,
            resolved_base,
            parameters=parameters,
        )

    # --- default adapter factories ---

    def _openai_compatible(self, kind: ProviderKind, route: ProviderRoute) -> ProviderAdapter:
        return OpenAICompatibleAdapter(
            provider_name=kind.value,
            default_base_url=route.default_base_url or OPENAI_BASE_URL,
            app_url=self.settings.app_url,
            app_title=self.settings.app_title,
            timeout=self.settings.request_timeout,
            transport=self.transport,
        )

    def _anthropic(self, kind: ProviderKind, route: ProviderRoute) -> ProviderAdapter:
        return AnthropicAdapter(
            default_base_url=route.default_base_url or ANTHROPIC_BASE_URL,
            api_version=self.settings.anthropic_version,
            default_max_tokens=self.settings.anthropic_max_tokens,
            timeout=self.settings.request_timeout,
            transport=self.transport,
        )

    def _deferred(self, kind: ProviderKind, route: ProviderRoute) -> ProviderAdapter:
        return DeferredProviderAdapter(kind.value, route.reason or "not implemented")
