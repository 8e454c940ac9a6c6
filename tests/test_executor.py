"""Tests for the executor — substitution, credentials, dispatch, timing and cost."""

from __future__ import annotations

import httpx
import pytest

from prompt_arena.core.credentials import InMemorySecretStore
from prompt_arena.core.errors import (
    ApiError,
    CredentialEmptyError,
    CredentialNotFoundError,
    CredentialNotSetError,
    MissingVariablesError,
    ProviderTimeoutError,
    ResponseShapeError,
    UnsupportedProviderError,
)
from prompt_arena.core.executor import DEFAULT_TEMPERATURE, Executor, resolve_temperature
from prompt_arena.core.models import (
    DirectCredential,
    EnvCredential,
    ProviderConfig,
    ProviderKind,
    SecretStoreCredential,
)
from prompt_arena.core.pricing import estimate_cost
from prompt_arena.providers.dispatcher import ProviderDispatcher
from tests.conftest import StubTransport, make_stub

KEY = DirectCredential(value="sk-test")


def _executor(settings, stub, **kwargs) -> Executor:
    return Executor(ProviderDispatcher(settings, transport=stub), **kwargs)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_hello_ada(self, executor, stub, make_prompt):
        result = await executor.execute(make_prompt(), {"name": "Ada"}, KEY)

        assert result.output == "Hi Ada"
        assert result.metadata.tokens_input == 5
        assert result.metadata.tokens_output == 3
        assert result.metadata.model == "gpt-4o-mini"
        assert result.metadata.provider == "openai"
        assert result.metadata.cost_usd == pytest.approx(
            estimate_cost(ProviderKind.OPENAI, "gpt-4o-mini", 5, 3)
        )
        assert result.metadata.cost_usd > 0
        assert stub.json_body()["messages"] == [{"role": "user", "content": "Hello Ada"}]

    @pytest.mark.asyncio
    async def test_unpriced_model_costs_zero(self, executor, make_prompt):
        result = await executor.execute(make_prompt(model="my-finetune"), {"name": "Ada"}, KEY)
        assert result.metadata.cost_usd == 0.0

    @pytest.mark.asyncio
    async def test_unique_ids_and_timestamp(self, executor, make_prompt):
        a = await executor.execute(make_prompt(), {"name": "Ada"}, KEY)
        b = await executor.execute(make_prompt(), {"name": "Ada"}, KEY)
        assert a.id != b.id
        assert a.metadata.timestamp > 1_600_000_000

    @pytest.mark.asyncio
    async def test_latency_uses_injected_clock(self, settings, stub, make_prompt):
        ticks = iter([10.0, 10.25])
        executor = _executor(settings, stub, clock=lambda: next(ticks))
        result = await executor.execute(make_prompt(), {"name": "Ada"}, KEY)
        assert result.metadata.latency_ms == 250


class TestMissingVariables:
    @pytest.mark.asyncio
    async def test_no_network_call(self, executor, stub, make_prompt):
        with pytest.raises(MissingVariablesError) as exc:
            await executor.execute(make_prompt("Hi {{x}}"), {}, KEY)
        assert exc.value.names == ["x"]
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_aggregated_across_messages(self, executor, stub, make_prompt):
        prompt = make_prompt("You are {{persona}}", "Explain {{topic}}", roles=["system", "user"])
        with pytest.raises(MissingVariablesError) as exc:
            await executor.execute(prompt, {}, KEY)
        assert sorted(exc.value.names) == ["persona", "topic"]
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_checked_before_credential(self, executor, stub, make_prompt):
        with pytest.raises(MissingVariablesError):
            await executor.execute(make_prompt("Hi {{x}}"), {}, EnvCredential(name="UNSET"))


class TestTemperature:
    def test_default(self, make_prompt):
        assert resolve_temperature(make_prompt()) == DEFAULT_TEMPERATURE == 0.7

    def test_from_prompt(self, make_prompt):
        assert resolve_temperature(make_prompt(parameters={"temperature": 0.0})) == 0.0

    @pytest.mark.asyncio
    async def test_sent_on_the_wire(self, executor, stub, make_prompt):
        await executor.execute(make_prompt(), {"name": "Ada"}, KEY)
        assert stub.json_body()["temperature"] == 0.7
        await executor.execute(make_prompt(parameters={"temperature": 1.2}), {"name": "Ada"}, KEY)
        assert stub.json_body()["temperature"] == 1.2


class TestCredentials:
    @pytest.mark.asyncio
    async def test_empty_direct_value(self, executor, stub, make_prompt):
        with pytest.raises(CredentialEmptyError):
            await executor.execute(make_prompt(), {"name": "Ada"}, DirectCredential(value=""))
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_env_var(self, settings, stub, make_prompt):
        executor = _executor(settings, stub, environ={"OPENAI_API_KEY": "sk-env"})
        await executor.execute(make_prompt(), {"name": "Ada"}, EnvCredential(name="OPENAI_API_KEY"))
        assert stub.requests[0].headers["authorization"] == "Bearer sk-env"

    @pytest.mark.asyncio
    async def test_env_var_not_set(self, executor, stub, make_prompt):
        with pytest.raises(CredentialNotSetError):
            await executor.execute(make_prompt(), {"name": "Ada"}, EnvCredential(name="NOPE"))
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_secret_store(self, executor, stub, make_prompt):
        await executor.execute(make_prompt(), {"name": "Ada"}, SecretStoreCredential(key="openai"))
        assert stub.requests[0].headers["authorization"] == "Bearer sk-store-key"

    @pytest.mark.asyncio
    async def test_secret_store_rotation(self, settings, stub, make_prompt):
        store = InMemorySecretStore({"k": "sk-one"})
        executor = _executor(settings, stub, secret_store=store)
        source = SecretStoreCredential(key="k")
        await executor.execute(make_prompt(), {"name": "Ada"}, source)
        store.set("k", "sk-two")
        await executor.execute(make_prompt(), {"name": "Ada"}, source)
        assert [r.headers["authorization"] for r in stub.requests] == ["Bearer sk-one", "Bearer sk-two"]

    @pytest.mark.asyncio
    async def test_secret_not_found(self, executor, make_prompt):
        with pytest.raises(CredentialNotFoundError):
            await executor.execute(make_prompt(), {"name": "Ada"}, SecretStoreCredential(key="absent"))

    @pytest.mark.asyncio
    async def test_no_source_for_keyed_provider(self, executor, stub, make_prompt):
        with pytest.raises(CredentialEmptyError):
            await executor.execute(make_prompt(), {"name": "Ada"}, None)
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_no_source_for_local_provider(self, executor, stub, make_prompt):
        result = await executor.execute(make_prompt(provider="ollama", model="llama3"), {"name": "Ada"})
        assert result.output == "Hi Ada"
        assert "authorization" not in stub.requests[0].headers
        assert str(stub.requests[0].url) == "http://localhost:11434/v1/chat/completions"


class TestProviderFailures:
    @pytest.mark.asyncio
    async def test_401(self, settings, make_prompt):
        stub = make_stub(401, {"error": "invalid key"})
        with pytest.raises(ApiError) as exc:
            await _executor(settings, stub).execute(make_prompt(), {"name": "Ada"}, KEY)
        assert exc.value.status_code == 401
        assert "401" in str(exc.value)
        assert "invalid key" in str(exc.value)

    @pytest.mark.asyncio
    async def test_empty_choices(self, settings, make_prompt):
        stub = make_stub(payload={"choices": [], "usage": {"prompt_tokens": 5, "completion_tokens": 0}})
        with pytest.raises(ResponseShapeError):
            await _executor(settings, stub).execute(make_prompt(), {"name": "Ada"}, KEY)

    @pytest.mark.asyncio
    async def test_timeout(self, settings, make_prompt):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderTimeoutError):
            await _executor(settings, StubTransport(handler)).execute(make_prompt(), {"name": "Ada"}, KEY)

    @pytest.mark.asyncio
    async def test_deferred_provider(self, executor, stub, make_prompt):
        with pytest.raises(UnsupportedProviderError):
            await executor.execute(make_prompt(provider="google", model="gemini-pro"), {"name": "Ada"}, KEY)
        assert stub.calls == 0

    @pytest.mark.asyncio
    async def test_custom_base_url(self, executor, stub, make_prompt):
        prompt = make_prompt(provider="custom", model="local")
        await executor.execute(prompt, {"name": "Ada"}, KEY, "http://llm.internal:8000/")
        assert str(stub.requests[0].url) == "http://llm.internal:8000/v1/chat/completions"


class TestExecuteWithConfig:
    @pytest.mark.asyncio
    async def test_retargets_prompt(self, executor, stub, make_prompt):
        config = ProviderConfig(
            name="deepseek-main",
            provider="deepseek",
            model="deepseek-chat",
            credential=KEY,
            parameters={"temperature": 0.1, "max_tokens": 64},
        )
        result = await executor.execute_with_config(
            make_prompt(parameters={"temperature": 0.9, "top_p": 0.5}), {"name": "Ada"}, config
        )
        assert result.metadata.provider == "deepseek"
        assert result.metadata.model == "deepseek-chat"
        body = stub.json_body()
        assert body["model"] == "deepseek-chat"
        assert body["temperature"] == 0.1
        assert body["max_tokens"] == 64
        assert body["top_p"] == 0.5
        assert str(stub.requests[0].url) == "https://api.deepseek.com/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_config_base_url(self, executor, stub, make_prompt):
        config = ProviderConfig(
            name="proxy", provider="openai", model="gpt-4o", base_url="https://proxy.example.com", credential=KEY
        )
        await executor.execute_with_config(make_prompt(), {"name": "Ada"}, config)
        assert str(stub.requests[0].url) == "https://proxy.example.com/v1/chat/completions"
