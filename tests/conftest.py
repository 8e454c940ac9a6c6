"""Test fixtures — recording stub transport, prompt factory and wired-up executors."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
import structlog
from fastapi.testclient import TestClient

from prompt_arena.config import Settings
from prompt_arena.core.credentials import InMemorySecretStore
from prompt_arena.core.executor import Executor
from prompt_arena.core.models import PromptDefinition
from prompt_arena.providers.dispatcher import ProviderDispatcher


class StubTransport(httpx.MockTransport):
    """MockTransport that records every request it serves."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json_body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def chat_completion(content: str = "Hi Ada", prompt_tokens: int = 5, completion_tokens: int = 3):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
    }


def anthropic_message(text: str = "Hi Ada", input_tokens: int = 7, output_tokens: int = 2):
    return {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


def make_stub(status: int = 200, payload: Any = None, text: str | None = None) -> StubTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=chat_completion() if payload is None else payload)

    return StubTransport(handler)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, secrets_dir=str(tmp_path / "secrets"))


@pytest.fixture
def make_prompt() -> Callable[..., PromptDefinition]:
    """Factory for prompt definitions with sensible defaults."""

    def _make(
        *contents: str,
        provider: str = "openai",
        model: str = "gpt-4o-mini",
        parameters: dict[str, Any] | None = None,
        roles: list[str] | None = None,
    ) -> PromptDefinition:
        contents = contents or ("Hello {{name}}",)
        roles = roles or ["user"] * len(contents)
        config: dict[str, Any] = {"provider": provider, "model": model}
        if parameters is not None:
            config["parameters"] = parameters
        return PromptDefinition.model_validate(
            {
                "schema": "v1",
                "name": "greeting",
                "config": config,
                "messages": [{"role": r, "content": c} for r, c in zip(roles, contents)],
            }
        )

    return _make


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    return InMemorySecretStore({"openai": "sk-store-key"})


@pytest.fixture
def stub() -> StubTransport:
    """OpenAI-compatible stub answering 'Hi Ada' with 5/3 tokens."""
    return make_stub()


@pytest.fixture
def executor(settings, stub, secret_store) -> Executor:
    return Executor(ProviderDispatcher(settings, transport=stub), secret_store, environ={})


@pytest.fixture
def app(executor, settings, stub):
    """FastAPI test app with the executor, arena and catalog wired to the stub transport."""
    from prompt_arena.core.arena import Arena, get_arena
    from prompt_arena.core.executor import get_executor
    from prompt_arena.main import app as _app
    from prompt_arena.providers.catalog import ModelCatalog, get_catalog

    arena = Arena(executor, max_concurrent=2, cost_warning_threshold=settings.cost_warning_threshold)
    catalog = ModelCatalog(settings, transport=stub)

    _app.dependency_overrides[get_executor] = lambda: executor
    _app.dependency_overrides[get_arena] = lambda: arena
    _app.dependency_overrides[get_catalog] = lambda: catalog

    yield _app

    _app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """HTTP test client."""
    return TestClient(app)
