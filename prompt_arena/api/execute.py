"""Execution, comparison and variable-extraction endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from prompt_arena.api.errors import to_http_exception
from prompt_arena.api.models import (
    CompareRequest,
    CompareResponse,
    ExecuteRequest,
    OutcomeResponse,
    VariablesRequest,
    VariablesResponse,
)
from prompt_arena.core.arena import Arena, get_arena
from prompt_arena.core.errors import PromptArenaError
from prompt_arena.core.executor import Executor, get_executor
from prompt_arena.core.models import ExecutionResult

router = APIRouter()


@router.post("/execute", response_model=ExecutionResult)
async def execute(
    data: ExecuteRequest,
    executor: Executor = Depends(get_executor),
) -> ExecutionResult:
    """Execute a prompt once against its configured provider."""
    try:
        return await executor.execute(data.prompt, data.variables, data.credential, data.base_url)
    except PromptArenaError as e:
        raise to_http_exception(e)


@router.post("/compare", response_model=CompareResponse)
async def compare(
    data: CompareRequest,
    arena: Arena = Depends(get_arena),
) -> CompareResponse:
    """Run a prompt against several provider configurations side by side."""
    try:
        report = await arena.compare(data.prompt, data.variables, data.targets)
    except PromptArenaError as e:
        raise to_http_exception(e)
    return CompareResponse(
        outcomes=[
            OutcomeResponse(
                target=o.target,
                ok=o.ok,
                result=o.result,
                error=o.error.as_dict() if o.error else None,
            )
            for o in report.outcomes
        ],
        total_cost_usd=report.total_cost_usd,
        cost_warning=report.cost_warning,
    )


@router.post("/variables", response_model=VariablesResponse)
async def variables(data: VariablesRequest) -> VariablesResponse:
    """List the placeholders a prompt needs."""
    return VariablesResponse(variables=data.prompt.extract_variables())
