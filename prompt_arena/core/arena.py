"""Arena — run one prompt against several provider configurations side by side."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Sequence

import structlog

from prompt_arena.config import get_settings
from prompt_arena.core.errors import PromptArenaError
from prompt_arena.core.executor import Executor, get_executor
from prompt_arena.core.models import ExecutionResult, PromptDefinition, ProviderConfig
from prompt_arena.core.template import substitute_messages

logger = structlog.get_logger()


@dataclass(frozen=True)
class ArenaOutcome:
    """Either a complete result or the error that target raised."""

    target: str
    result: ExecutionResult | None = None
    error: PromptArenaError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    def as_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "result": self.result.model_dump() if self.result else None,
            "error": self.error.as_dict() if self.error else None,
        }


@dataclass(frozen=True)
class ArenaReport:
    outcomes: list[ArenaOutcome]
    total_cost_usd: float
    cost_warning: bool


class Arena:
    """Concurrent comparison bounded by ``max_concurrent``."""

    def __init__(
        self,
        executor: Executor,
        *,
        max_concurrent: int = 3,
        cost_warning_threshold: float = 0.5,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.executor = executor
        self.max_concurrent = max_concurrent
        self.cost_warning_threshold = cost_warning_threshold

    async def compare(
        self,
        prompt: PromptDefinition,
        variables: Mapping[str, str] | None,
        targets: Sequence[ProviderConfig],
    ) -> ArenaReport:
        """Execute ``prompt`` once per target; outcomes keep target order.

        Missing variables fail the whole comparison before any request is made.
        """
        if not targets:
            raise ValueError("At least one target is required")
        variables = variables or {}
        substitute_messages(prompt.messages, variables)

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def run(target: ProviderConfig) -> ArenaOutcome:
            async with semaphore:
                try:
                    result = await self.executor.execute_with_config(prompt, variables, target)
                except PromptArenaError as e:
                    return ArenaOutcome(target=target.name, error=e)
                return ArenaOutcome(target=target.name, result=result)

        tasks = [asyncio.ensure_future(run(t)) for t in targets]
        try:
            outcomes = list(await asyncio.gather(*tasks))
        except BaseException:
            # No target may outlive a failed or cancelled comparison.
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        total_cost = sum(o.result.metadata.cost_usd for o in outcomes if o.result)
        cost_warning = total_cost > self.cost_warning_threshold
        if cost_warning:
            logger.warning(
                "arena.cost_warning",
                total_cost_usd=total_cost,
                threshold=self.cost_warning_threshold,
            )
        logger.info(
            "arena.compared",
            prompt=prompt.name,
            targets=len(targets),
            succeeded=sum(1 for o in outcomes if o.ok),
            total_cost_usd=total_cost,
        )
        return ArenaReport(outcomes=outcomes, total_cost_usd=total_cost, cost_warning=cost_warning)


@lru_cache
def get_arena() -> Arena:
    """Get cached arena instance."""
    settings = get_settings()
    return Arena(
        get_executor(),
        max_concurrent=settings.arena_max_concurrent,
        cost_warning_threshold=settings.cost_warning_threshold,
    )
