"""Cost model — static USD price table keyed by (provider, model).

The table is data: pricing a new model means adding one ``PRICE_TABLE``
entry, nothing else. Prices are USD per million tokens. Pairs that are not in
the table cost ``0.0`` so missing pricing never fails an execution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from prompt_arena.core.models import ProviderKind


@dataclass(frozen=True)
class ModelPrice:
    input_per_million: float
    output_per_million: float


PRICE_TABLE: dict[tuple[ProviderKind, str], ModelPrice] = {
    # OpenAI
    (ProviderKind.OPENAI, "gpt-4o"): ModelPrice(2.5, 10.0),
    (ProviderKind.OPENAI, "gpt-4o-mini"): ModelPrice(0.15, 0.60),
    (ProviderKind.OPENAI, "gpt-4-turbo"): ModelPrice(10.0, 30.0),
    (ProviderKind.OPENAI, "gpt-4"): ModelPrice(30.0, 60.0),
    (ProviderKind.OPENAI, "gpt-3.5-turbo"): ModelPrice(0.5, 1.5),
    # Anthropic
    (ProviderKind.ANTHROPIC, "claude-3-opus-20240229"): ModelPrice(15.0, 75.0),
    (ProviderKind.ANTHROPIC, "claude-3-sonnet-20240229"): ModelPrice(3.0, 15.0),
    (ProviderKind.ANTHROPIC, "claude-3-haiku-20240307"): ModelPrice(0.25, 1.25),
    (ProviderKind.ANTHROPIC, "claude-3-5-sonnet-20241022"): ModelPrice(3.0, 15.0),
    (ProviderKind.ANTHROPIC, "claude-3-5-haiku-20241022"): ModelPrice(0.8, 4.0),
    # DeepSeek
    (ProviderKind.DEEPSEEK, "deepseek-chat"): ModelPrice(0.14, 0.28),
    (ProviderKind.DEEPSEEK, "deepseek-coder"): ModelPrice(0.14, 0.28),
    (ProviderKind.DEEPSEEK, "deepseek-reasoner"): ModelPrice(0.14, 0.28),
}


def price_for(
    provider: ProviderKind,
    model: str,
    table: Mapping[tuple[ProviderKind, str], ModelPrice] | None = None,
) -> ModelPrice | None:
    return (PRICE_TABLE if table is None else table).get((provider, model))


def estimate_cost(
    provider: ProviderKind,
    model: str,
    input_tokens: int,
    output_tokens: int,
    table: Mapping[tuple[ProviderKind, str], ModelPrice] | None = None,
) -> float:
    """Estimated USD cost of one call; ``0.0`` for unpriced models."""
    price = price_for(provider, model, table)
    if price is None:
        return 0.0
    return (input_tokens / 1_000_000) * price.input_per_million + (
        output_tokens / 1_000_000
    ) * price.output_per_million
