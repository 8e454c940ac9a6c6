"""Error taxonomy for prompt execution.

Every failure the execution layer can produce is a ``PromptArenaError``
subclass with a stable ``kind`` string. The outer layers (API, CLI) translate
kinds into user-facing responses; nothing inside the core retries or recovers.
"""

from __future__ import annotations

from typing import Any, Iterable


class PromptArenaError(Exception):
    """Base class for every error raised while executing a prompt."""

    kind = "error"

    def as_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": str(self)}


class MissingVariablesError(PromptArenaError, ValueError):
    """One or more ``{{placeholders}}`` had no value."""

    kind = "missing_variables"

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(dict.fromkeys(names))
        super().__init__(f"Missing variables: {', '.join(self.names)}")

    def as_dict(self) -> dict[str, Any]:
        return {**super().as_dict(), "variables": self.names}


# --- Credentials ---


class CredentialError(PromptArenaError):
    """Credential could not be resolved."""

    kind = "credential_missing"


class CredentialMissingError(CredentialError):
    """Nothing usable is configured for this credential source."""


class CredentialEmptyError(CredentialMissingError):
    def __init__(self, message: str = "API key is empty") -> None:
        super().__init__(message)


class CredentialNotSetError(CredentialMissingError):
    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable '{var_name}' is not set")


class CredentialNotFoundError(CredentialMissingError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No secret stored under '{key}'")


class CredentialStoreUnavailableError(CredentialError):
    """The secret store itself is broken or unreachable."""

    kind = "credential_store_unavailable"


# --- Providers ---


class ProviderError(PromptArenaError):
    """Failure while dispatching to or talking with an LLM provider."""

    kind = "provider_error"

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)

    def as_dict(self) -> dict[str, Any]:
        return {**super().as_dict(), "provider": self.provider}


class UnsupportedProviderError(ProviderError):
    """Provider is known but deliberately not implemented, or is missing required configuration."""

    kind = "unsupported_provider"


class MissingBaseURLError(UnsupportedProviderError):
    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Provider '{provider}' requires a base URL and none was configured",
            provider=provider,
        )


class InvalidBaseURLError(UnsupportedProviderError):
    def __init__(self, provider: str, base_url: str, reason: str) -> None:
        super().__init__(f"Invalid base URL '{base_url}' for provider '{provider}': {reason}", provider=provider)


class TransportError(ProviderError):
    """Network-level failure: DNS, refused connection, reset, timeout."""

    kind = "transport"


class ProviderTimeoutError(TransportError):
    kind = "timeout"


class ApiError(ProviderError):
    """Provider answered with a non-2xx status."""

    kind = "api_error"

    def __init__(self, status_code: int, body: str, *, provider: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        label = provider or "provider"
        super().__init__(f"{label} API error {status_code}: {body or 'no body'}", provider=provider)

    def as_dict(self) -> dict[str, Any]:
        return {**super().as_dict(), "status_code": self.status_code, "body": self.body}


class ResponseShapeError(ProviderError):
    """Response decoded but did not match the provider's documented shape."""

    kind = "response_shape"
