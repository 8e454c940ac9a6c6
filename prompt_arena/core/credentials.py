"""Credential resolution — direct values, environment variables and secret stores.

Resolution is lazy and uncached: every call re-reads its source so rotated
keys take effect on the next execution.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

import structlog

from prompt_arena.core.errors import (
    CredentialEmptyError,
    CredentialMissingError,
    CredentialNotFoundError,
    CredentialNotSetError,
    CredentialStoreUnavailableError,
)
from prompt_arena.core.models import (
    CredentialSource,
    DirectCredential,
    EnvCredential,
    SecretStoreCredential,
)

logger = structlog.get_logger()

CONFIGURED = "configured"
MISSING = "missing"
UNAVAILABLE = "unavailable"


@runtime_checkable
class SecretStore(Protocol):
    """Opaque platform secret store (keychain or equivalent)."""

    def get(self, key: str) -> str | None:
        """Return the secret for ``key``, ``None`` if absent.

        Raise ``CredentialStoreUnavailableError`` when the store itself fails.
        """
        ...


class InMemorySecretStore:
    """Dict-backed secret store for tests and embedding."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets: dict[str, str] = dict(secrets or {})

    def get(self, key: str) -> str | None:
        return self._secrets.get(key)

    def set(self, key: str, value: str) -> None:
        self._secrets[key] = value

    def delete(self, key: str) -> None:
        self._secrets.pop(key, None)


class DirectorySecretStore:
    """One file per secret under a root directory (``/run/secrets`` layout)."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def get(self, key: str) -> str | None:
        if not self.root.is_dir():
            raise CredentialStoreUnavailableError(f"Secret directory '{self.root}' is not available")
        # Keys are plain file names; anything path-like cannot exist in the store
        if Path(key).name != key or key in (".", ".."):
            return None
        secret_path = self.root / key
        if not secret_path.is_file():
            return None
        try:
            return secret_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise CredentialStoreUnavailableError(f"Failed to read secret '{key}': {e}") from e


def resolve_credential(
    source: CredentialSource,
    store: SecretStore | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Return the usable secret for ``source`` or raise a ``CredentialError``."""
    if isinstance(source, DirectCredential):
        value = source.value.get_secret_value()
        if not value:
            raise CredentialEmptyError()
        return value

    if isinstance(source, EnvCredential):
        env = os.environ if environ is None else environ
        value = env.get(source.name)
        if not value:
            raise CredentialNotSetError(source.name)
        return value

    if isinstance(source, SecretStoreCredential):
        if store is None:
            raise CredentialStoreUnavailableError("No secret store is configured")
        try:
            value = store.get(source.key)
        except CredentialStoreUnavailableError:
            raise
        except Exception as e:
            logger.warning("credentials.store_failed", key=source.key, error=type(e).__name__)
            raise CredentialStoreUnavailableError(f"Secret store lookup failed: {e}") from e
        if not value:
            raise CredentialNotFoundError(source.key)
        return value

    raise TypeError(f"Unknown credential source: {type(source).__name__}")


def credential_status(
    source: CredentialSource | None,
    store: SecretStore | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Report ``configured``, ``missing`` or ``unavailable`` without exposing the secret."""
    if source is None:
        return MISSING
    try:
        resolve_credential(source, store, environ)
    except CredentialStoreUnavailableError:
        return UNAVAILABLE
    except CredentialMissingError:
        return MISSING
    return CONFIGURED
