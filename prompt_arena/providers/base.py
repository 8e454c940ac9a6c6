"""Provider adapter protocol and the shared HTTP plumbing adapters build on."""

from __future__ import annotations

import re
from typing import Any, Protocol, Sequence, runtime_checkable
from urllib.parse import urlparse

import httpx
import structlog

from prompt_arena.core.errors import (
    ApiError,
    ProviderTimeoutError,
    ResponseShapeError,
    TransportError,
)
from prompt_arena.core.models import Message, ModelParameters, Usage
from prompt_arena.utils.security import sanitise_body

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 60.0

# Trailing API version segment: /v1, /v2, /v1beta ...
_VERSION_SEGMENT = re.compile(r"/v\d+[a-z0-9]*$")


@runtime_checkable
class ProviderAdapter(Protocol):
    """One wire protocol: shapes the request, parses the reply into ``(text, Usage)``."""

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
        ...


def build_endpoint(base_url: str, resource: str) -> str:
    """Join a provider base URL and a resource path.

    Trailing slashes are dropped. A base that already ends in an API version
    segment (``.../v1``) gets the resource appended directly; anything else
    gets ``/v1/<resource>``. A base that already names the resource is used
    as-is.
    """
    base = base_url.strip().rstrip("/")
    resource = resource.strip("/")
    if base.endswith(f"/{resource}"):
        return base
    if _VERSION_SEGMENT.search(urlparse(base).path):
        return f"{base}/{resource}"
    return f"{base}/v1/{resource}"


def host_matches(base_url: str, domain: str) -> bool:
    host = (urlparse(base_url).hostname or "").lower()
    return host == domain or host.endswith(f".{domain}")


def int_field(payload: dict[str, Any], field: str, *, provider: str) -> int:
    """Read a non-negative integer token count; absent counts are zero."""
    value = payload.get(field, 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ResponseShapeError(f"usage.{field} is not a token count: {value!r}", provider=provider)
    return value


class HTTPAdapter:
    """Base for adapters that speak JSON over HTTP.

    A fresh ``httpx.AsyncClient`` is opened per call so concurrent executions
    share nothing. ``transport`` is injectable for tests.
    """

    provider_name = "provider"

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.transport = transport

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or self.timeout),
            transport=self.transport,
        )

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON object.

        Maps transport failures to ``TransportError``/``ProviderTimeoutError``,
        non-2xx statuses to ``ApiError`` and undecodable bodies to
        ``ResponseShapeError``.
        """
        provider = self.provider_name
        log = logger.bind(provider=provider, method=method, url=url)
        log.debug("provider.request")
        try:
            async with self._client(timeout) as client:
                response = await client.request(method, url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            log.warning("provider.timeout", timeout=timeout or self.timeout)
            raise ProviderTimeoutError(
                f"{provider} request timed out after {timeout or self.timeout:g}s", provider=provider
            ) from e
        except httpx.HTTPError as e:
            log.warning("provider.transport_error", error=str(e))
            raise TransportError(f"{provider} network error: {e}", provider=provider) from e

        if not response.is_success:
            body = sanitise_body(response.text)
            log.warning("provider.api_error", status=response.status_code, body=body)
            raise ApiError(response.status_code, body, provider=provider)

        try:
            data = response.json()
        except ValueError as e:
            snippet = sanitise_body(response.text, limit=200)
            raise ResponseShapeError(
                f"{provider} returned a non-JSON payload: {snippet}", provider=provider
            ) from e
        if not isinstance(data, dict):
            raise ResponseShapeError(
                f"{provider} returned JSON {type(data).__name__}, expected an object",
                provider=provider,
            )
        log.debug("provider.response", status=response.status_code)
        return data
