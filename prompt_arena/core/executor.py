"""Executor — substitute, resolve credential, dispatch, measure, price.

One ``execute`` call is one provider request: no retries, no caching, no
persistence. Either a complete ``ExecutionResult`` comes back or an error is
raised.
"""

from __future__ import annotations

import time
from functools import lru_cache
from typing import Callable, Mapping
from uuid import uuid4

import structlog

from prompt_arena.config import Settings, get_settings
from prompt_arena.core.credentials import DirectorySecretStore, SecretStore, resolve_credential
from prompt_arena.core.errors import CredentialEmptyError, PromptArenaError
from prompt_arena.core.models import (
    CredentialSource,
    ExecutionMetadata,
    ExecutionResult,
    PromptDefinition,
    ProviderConfig,
    ProviderKind,
)
from prompt_arena.core.pricing import ModelPrice, estimate_cost
from prompt_arena.core.template import substitute_messages
from prompt_arena.providers.dispatcher import ProviderDispatcher

logger = structlog.get_logger()

DEFAULT_TEMPERATURE = 0.7


def resolve_temperature(prompt: PromptDefinition) -> float:
    """The prompt's temperature, else the documented 0.7 default."""
    parameters = prompt.config.parameters
    if parameters is not None and parameters.temperature is not None:
        return parameters.temperature
    return DEFAULT_TEMPERATURE


class Executor:
    """Runs prompt definitions against providers."""

    def __init__(
        self,
        dispatcher: ProviderDispatcher | None = None,
        secret_store: SecretStore | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.monotonic,
        price_table: Mapping[tuple[ProviderKind, str], ModelPrice] | None = None,
    ) -> None:
        self.dispatcher = dispatcher or ProviderDispatcher()
        self.secret_store = secret_store
        self._environ = environ
        self._clock = clock
        self._price_table = price_table

    def resolve_credential(
        self, provider: ProviderKind, source: CredentialSource | None
    ) -> str:
        """Resolve ``source`` now; providers that need no key accept ``None``."""
        if source is None:
            if self.dispatcher.route(provider).requires_credential:
                raise CredentialEmptyError(
                    f"No credential configured for provider '{ProviderKind(provider).value}'"
                )
            return ""
        return resolve_credential(source, self.secret_store, self._environ)

    async def execute(
        self,
        prompt: PromptDefinition,
        variables: Mapping[str, str] | None = None,
        credential_source: CredentialSource | None = None,
        base_url: str | None = None,
    ) -> ExecutionResult:
        """Execute ``prompt`` once and return the normalized result."""
        config = prompt.config
        log = logger.bind(prompt=prompt.name, provider=config.provider.value, model=config.model)

        try:
            messages = substitute_messages(prompt.messages, variables or {})
            temperature = resolve_temperature(prompt)
            credential = self.resolve_credential(config.provider, credential_source)

            started = self._clock()
            output, usage = await self.dispatcher.dispatch(
                config.provider,
                config.model,
                messages,
                temperature,
                credential,
                base_url,
                parameters=config.parameters,
            )
            latency_ms = int((self._clock() - started) * 1000)
        except PromptArenaError as e:
            log.warning("executor.failed", error=e.kind, detail=str(e))
            raise

        cost = estimate_cost(
            config.provider,
            config.model,
            usage.prompt_tokens,
            usage.completion_tokens,
            self._price_table,
        )
        result = ExecutionResult(
            id=str(uuid4()),
            output=output,
            metadata=ExecutionMetadata(
                model=config.model,
                provider=config.provider.value,
                latency_ms=latency_ms,
                tokens_input=usage.prompt_tokens,
                tokens_output=usage.completion_tokens,
                cost_usd=cost,
                timestamp=int(time.time()),
            ),
        )
        log.info(
            "executor.completed",
            execution_id=result.id,
            latency_ms=latency_ms,
            tokens_input=usage.prompt_tokens,
            tokens_output=usage.completion_tokens,
            cost_usd=cost,
        )
        return result

    async def execute_with_config(
        self,
        prompt: PromptDefinition,
        variables: Mapping[str, str] | None,
        config: ProviderConfig,
    ) -> ExecutionResult:
        """Run ``prompt`` against a named provider configuration."""
        target = prompt.with_target(config.provider, config.model, config.parameters)
        return await self.execute(target, variables, config.credential, config.base_url)


def build_executor(settings: Settings) -> Executor:
    return Executor(
        ProviderDispatcher(settings),
        DirectorySecretStore(settings.secrets_dir),
    )


@lru_cache
def get_executor() -> Executor:
    """Get cached executor instance."""
    return build_executor(get_settings())
