"""Pydantic request/response models for the API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from prompt_arena.core.models import (
    CredentialSource,
    ExecutionResult,
    PromptDefinition,
    ProviderConfig,
    ProviderKind,
)

# --- Execution ---


class ExecuteRequest(BaseModel):
    """Run one prompt once."""

    prompt: PromptDefinition
    variables: dict[str, str] = Field(default_factory=dict)
    credential: CredentialSource | None = None
    base_url: str | None = None


class CompareRequest(BaseModel):
    """Run one prompt against several provider configurations."""

    prompt: PromptDefinition
    variables: dict[str, str] = Field(default_factory=dict)
    targets: list[ProviderConfig] = Field(..., min_length=1, max_length=20)


class OutcomeResponse(BaseModel):
    target: str
    ok: bool
    result: ExecutionResult | None = None
    error: dict[str, Any] | None = None


class CompareResponse(BaseModel):
    outcomes: list[OutcomeResponse]
    total_cost_usd: float
    cost_warning: bool


class VariablesRequest(BaseModel):
    prompt: PromptDefinition


class VariablesResponse(BaseModel):
    variables: list[str]


# --- Providers ---


class ProviderInfo(BaseModel):
    provider: ProviderKind
    supported: bool
    default_base_url: str | None = None
    requires_credential: bool
    requires_base_url: bool
    reason: str | None = None


class ModelsRequest(BaseModel):
    """List models, or test a connection, for one provider."""

    provider: ProviderKind
    credential: CredentialSource | None = None
    base_url: str | None = None


class ModelInfoResponse(BaseModel):
    id: str
    name: str
    description: str | None = None


class ConnectionTestResponse(BaseModel):
    provider: ProviderKind
    ok: bool
    message: str


class PriceEntry(BaseModel):
    provider: ProviderKind
    model: str
    input_per_million: float
    output_per_million: float
