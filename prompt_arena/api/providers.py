"""Provider discovery, pricing, model listing and connection-test endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from prompt_arena.api.errors import to_http_exception
from prompt_arena.api.models import (
    ConnectionTestResponse,
    ModelInfoResponse,
    ModelsRequest,
    PriceEntry,
    ProviderInfo,
)
from prompt_arena.core.errors import PromptArenaError
from prompt_arena.core.executor import Executor, get_executor
from prompt_arena.core.models import ProviderKind
from prompt_arena.core.pricing import PRICE_TABLE
from prompt_arena.providers.catalog import ModelCatalog, get_catalog
from prompt_arena.providers.dispatcher import get_route

router = APIRouter()


@router.get("/providers", response_model=list[ProviderInfo])
async def list_providers() -> list[ProviderInfo]:
    """Every provider kind with its routing details."""
    rows = []
    for kind in ProviderKind:
        route = get_route(kind)
        rows.append(
            ProviderInfo(
                provider=kind,
                supported=route.supported,
                default_base_url=route.default_base_url,
                requires_credential=route.requires_credential,
                requires_base_url=route.requires_base_url,
                reason=route.reason,
            )
        )
    return rows


@router.get("/pricing", response_model=list[PriceEntry])
async def list_pricing() -> list[PriceEntry]:
    return [
        PriceEntry(
            provider=provider,
            model=model,
            input_per_million=price.input_per_million,
            output_per_million=price.output_per_million,
        )
        for (provider, model), price in PRICE_TABLE.items()
    ]


@router.post("/providers/models", response_model=list[ModelInfoResponse])
async def list_models(
    data: ModelsRequest,
    executor: Executor = Depends(get_executor),
    catalog: ModelCatalog = Depends(get_catalog),
) -> list[ModelInfoResponse]:
    """List the models a provider offers."""
    try:
        credential = ""
        if data.credential is not None:
            credential = executor.resolve_credential(data.provider, data.credential)
        models = await catalog.list_models(data.provider, credential, data.base_url)
    except PromptArenaError as e:
        raise to_http_exception(e)
    return [ModelInfoResponse(id=m.id, name=m.name, description=m.description) for m in models]


@router.post("/providers/test", response_model=ConnectionTestResponse)
async def test_connection(
    data: ModelsRequest,
    executor: Executor = Depends(get_executor),
    catalog: ModelCatalog = Depends(get_catalog),
) -> ConnectionTestResponse:
    """Check that a provider is reachable with the given credential.

    Failures are reported in the body rather than as an HTTP error.
    """
    try:
        credential = executor.resolve_credential(data.provider, data.credential)
        message = await catalog.test_connection(data.provider, credential, data.base_url)
    except PromptArenaError as e:
        return ConnectionTestResponse(provider=data.provider, ok=False, message=str(e))
    return ConnectionTestResponse(provider=data.provider, ok=True, message=message)
